"""
Voice scoring and selection.
"""

import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from ..models.data_models import VoiceInfo

FEMALE_HINTS = re.compile(r'female|woman|girl|samantha|karen|moira|tessa|zira|hazel|serena|susan|allison|ava|melina')
MALE_HINTS = re.compile(r'male|man|boy|alex|daniel|david|mark|james|ryan|bruce|fred|junior|ralph|albert')
QUALITY_HINTS = ('enhanced', 'premium', 'neural')


@dataclass
class VoiceDescription:
    """Voice as reported by get_available_voices()."""
    name: str
    lang: str
    gender: str
    quality: str
    local_service: bool
    default: bool


def detect_gender(voice_name: str) -> str:
    """'female', 'male' or 'unknown' from hints in the voice name."""
    name = voice_name.lower()
    # "female" contains "male", so check female hints first
    if FEMALE_HINTS.search(name):
        return 'female'
    if MALE_HINTS.search(name):
        return 'male'
    return 'unknown'


def estimate_quality(voice: VoiceInfo) -> str:
    """'high', 'medium' or 'basic'."""
    name = voice.name.lower()
    if any(marker in name for marker in QUALITY_HINTS + ('natural',)):
        return 'high'
    if voice.local_service or 'compact' in name:
        return 'medium'
    return 'basic'


def describe_voice(voice: VoiceInfo) -> VoiceDescription:
    return VoiceDescription(
        name=voice.name,
        lang=voice.lang,
        gender=detect_gender(voice.name),
        quality=estimate_quality(voice),
        local_service=voice.local_service,
        default=voice.default,
    )


def score_voice(
    voice: VoiceInfo,
    preferred_language: str,
    preferred_gender: Optional[str],
    preferred_names: Iterable[str]
) -> int:
    name = voice.name.lower()
    score = 0

    if voice.local_service:
        score += 10

    for preferred_name in preferred_names:
        if preferred_name.lower() in name:
            score += 15

    if preferred_gender in ('female', 'male') and detect_gender(voice.name) == preferred_gender:
        score += 8

    if any(marker in name for marker in QUALITY_HINTS):
        score += 7

    if voice.lang == preferred_language:
        score += 5

    return score


def select_voice(
    voices: Sequence[VoiceInfo],
    preferred_language: str = 'en-US',
    preferred_gender: Optional[str] = 'female',
    preferred_names: Iterable[str] = ()
) -> Optional[VoiceInfo]:
    """
    Pick the best-scoring voice.

    Voices are filtered to the preferred language prefix first; when none
    match, every voice is considered. Ties keep the engine's order.
    """
    if not voices:
        return None

    prefix = preferred_language[:2].lower()
    candidates: List[VoiceInfo] = [v for v in voices if v.lang.lower().startswith(prefix)]
    if not candidates:
        candidates = list(voices)

    preferred_names = list(preferred_names)
    best = candidates[0]
    best_score = score_voice(best, preferred_language, preferred_gender, preferred_names)
    for voice in candidates[1:]:
        score = score_voice(voice, preferred_language, preferred_gender, preferred_names)
        if score > best_score:
            best, best_score = voice, score
    return best
