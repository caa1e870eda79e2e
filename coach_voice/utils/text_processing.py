"""
Text preparation for speech synthesis.
"""

import re
from typing import Dict, Tuple

TRUNCATION_MARKER = "..."

# Markup patterns, applied in order
_MARKUP_PATTERNS: Tuple[Tuple[re.Pattern, str], ...] = (
    (re.compile(r'```.*?```', re.DOTALL), ' '),        # Fenced code blocks
    (re.compile(r'!\[([^\]]*)\]\([^)]*\)'), r'\1'),    # Images
    (re.compile(r'\[([^\]]*)\]\([^)]*\)'), r'\1'),     # Links
    (re.compile(r'\*\*(.*?)\*\*'), r'\1'),             # Bold
    (re.compile(r'__(.*?)__'), r'\1'),                 # Bold (underscore)
    (re.compile(r'\*(.*?)\*'), r'\1'),                 # Italic
    (re.compile(r'(?<!\w)_(.*?)_(?!\w)'), r'\1'),      # Italic (underscore)
    (re.compile(r'`(.*?)`'), r'\1'),                   # Inline code
    (re.compile(r'^\s{0,3}#{1,6}\s*', re.MULTILINE), ''),   # Headings
    (re.compile(r'^\s*[-*+]\s+', re.MULTILINE), ''),        # Bullets
    (re.compile(r'^\s*>\s?', re.MULTILINE), ''),            # Block quotes
    (re.compile(r'<[^>]+>'), ' '),                     # HTML/SSML tags
)

ENTITIES: Dict[str, str] = {
    '&amp;': ' and ',
    '&lt;': ' less than ',
    '&gt;': ' greater than ',
    '&nbsp;': ' ',
    '&quot;': '"',
    '&#39;': "'",
}

# Spoken forms for acronyms and abbreviations
PRONUNCIATIONS: Dict[str, str] = {
    'API': 'A P I',
    'URL': 'U R L',
    'HTML': 'H T M L',
    'CSS': 'C S S',
    'JS': 'JavaScript',
    'AI': 'A I',
    'CV': 'C V',
    'HR': 'H R',
    'FAQ': 'F A Q',
    'e.g.': 'for example',
    'i.e.': 'that is',
    'etc.': 'et cetera',
    'vs.': 'versus',
}


def _pronunciation_pattern(term: str) -> re.Pattern:
    if term.endswith('.'):
        return re.compile(r'(?<!\w)' + re.escape(term))
    return re.compile(r'\b' + re.escape(term) + r'\b')


_PRONUNCIATION_PATTERNS = tuple(
    (_pronunciation_pattern(term), spoken) for term, spoken in PRONUNCIATIONS.items()
)


def strip_markup(text: str) -> str:
    """Remove markdown and HTML formatting, keeping the readable text."""
    processed = text
    for pattern, replacement in _MARKUP_PATTERNS:
        processed = pattern.sub(replacement, processed)
    for entity, spoken in ENTITIES.items():
        processed = processed.replace(entity, spoken)
    return processed


def expand_pronunciations(text: str) -> str:
    """Expand acronyms and abbreviations to their spoken forms."""
    processed = text
    for pattern, spoken in _PRONUNCIATION_PATTERNS:
        processed = pattern.sub(spoken, processed)
    return processed


def truncate(text: str, max_length: int) -> str:
    """Bound text to max_length characters, marking the cut with an ellipsis."""
    if len(text) <= max_length:
        return text
    cut = max(0, max_length - len(TRUNCATION_MARKER))
    return text[:cut].rstrip() + TRUNCATION_MARKER


def normalize_for_speech(text: str, max_length: int = 1000) -> str:
    """
    Prepare raw assistant text for synthesis.

    Args:
        text: Raw text, possibly containing markdown or HTML
        max_length: Maximum number of characters to synthesize

    Returns:
        Speakable text; empty string when nothing speakable remains
    """
    if not text:
        return ''
    processed = strip_markup(text)
    processed = expand_pronunciations(processed)
    processed = re.sub(r'\s+', ' ', processed).strip()
    return truncate(processed, max_length)


def estimate_speech_duration(text: str, rate: float = 1.0) -> float:
    """Estimated playback time in seconds (about 155 words per minute at rate 1.0)."""
    words = len(text.split())
    if words == 0:
        return 0.0
    words_per_minute = 155 * max(rate, 0.1)
    return round(words / words_per_minute * 60, 3)
