"""
Filler classification and confidence-based acceptance of recognized speech.
"""

import re
from dataclasses import dataclass
from typing import FrozenSet, Iterable, List, Optional, Tuple

from ..models.data_models import Classification, RecognitionAlternative

FILLER_VOCABULARY: FrozenSet[str] = frozenset({
    'uh', 'um', 'er', 'ah', 'eh', 'oh', 'hmm', 'hm', 'mm', 'mhm', 'uh-huh',
})

_TOKEN_PATTERN = re.compile(r"[a-z]+(?:-[a-z]+)*")


@dataclass(frozen=True)
class FillerPreset:
    """Named threshold pair for filler detection."""
    name: str
    filler_threshold: float
    normal_threshold: float
    detect_fillers: bool = True


FILLER_PRESETS = {
    'natural': FillerPreset('natural', 0.4, 0.6),
    'sensitive': FillerPreset('sensitive', 0.25, 0.5),
    'strict': FillerPreset('strict', 0.55, 0.75),
    'disabled': FillerPreset('disabled', 0.4, 0.6, detect_fillers=False),
}


def get_filler_preset(name: str) -> FillerPreset:
    """
    Look up a filler preset by name.

    Raises:
        ValueError: If the preset is unknown
    """
    try:
        return FILLER_PRESETS[name.lower()]
    except KeyError:
        available = ', '.join(FILLER_PRESETS.keys())
        raise ValueError(f"Unknown filler mode: {name}. Available: {available}") from None


def tokenize(transcript: str) -> List[str]:
    return _TOKEN_PATTERN.findall(transcript.lower())


class FillerClassifier:
    """Classifies transcripts made up entirely of hesitation markers."""

    def __init__(self, vocabulary: Iterable[str] = FILLER_VOCABULARY, enabled: bool = True):
        self.vocabulary = frozenset(word.lower() for word in vocabulary)
        self.enabled = enabled

    def is_filler(self, transcript: str) -> bool:
        if not self.enabled:
            return False
        tokens = tokenize(transcript)
        return bool(tokens) and all(token in self.vocabulary for token in tokens)

    def classify(self, transcript: str) -> Classification:
        return Classification.FILLER if self.is_filler(transcript) else Classification.NORMAL

    def select(
        self,
        alternatives: List[RecognitionAlternative]
    ) -> Optional[Tuple[RecognitionAlternative, Classification]]:
        """
        Pick the alternative to report for a segment.

        A filler alternative wins over higher-confidence normal ones, so a
        hesitation is not rewritten into a spurious word. Among candidates the
        highest confidence wins and ties go to the engine's first-ranked one.

        Returns:
            (alternative, classification), or None for an empty list
        """
        if not alternatives:
            return None

        fillers = [alt for alt in alternatives if self.is_filler(alt.transcript)]
        if fillers:
            return _highest_confidence(fillers), Classification.FILLER
        return _highest_confidence(alternatives), Classification.NORMAL


def _highest_confidence(alternatives: List[RecognitionAlternative]) -> RecognitionAlternative:
    best = alternatives[0]
    for alt in alternatives[1:]:
        if (alt.confidence or 0.0) > (best.confidence or 0.0):
            best = alt
    return best


class AcceptancePolicy:
    """
    Gate applied to final segments.

    A segment passes when its stripped transcript is at least min_length
    characters long and its confidence reaches the threshold for its
    classification. Engines that report no score (confidence 0) are rejected
    unless accept_unscored is set.
    """

    def __init__(
        self,
        filler_threshold: float = 0.4,
        normal_threshold: float = 0.6,
        min_length: int = 1,
        accept_unscored: bool = False
    ):
        if not filler_threshold < normal_threshold:
            raise ValueError(
                f"filler_threshold ({filler_threshold}) must be below normal_threshold ({normal_threshold})"
            )
        self.filler_threshold = filler_threshold
        self.normal_threshold = normal_threshold
        self.min_length = min_length
        self.accept_unscored = accept_unscored

    def threshold(self, classification: Classification) -> float:
        if classification == Classification.FILLER:
            return self.filler_threshold
        return self.normal_threshold

    def accepts(self, transcript: str, confidence: float, classification: Classification) -> bool:
        if len(transcript.strip()) < self.min_length:
            return False
        if self.accept_unscored and not confidence:
            return True
        return (confidence or 0.0) >= self.threshold(classification)
