"""
Continuous speech recognition.
"""

from .session import RecognitionSession, SessionCallbacks
from .filler import AcceptancePolicy, FillerClassifier, get_filler_preset
from .errors import build_recognition_error

__all__ = [
    'RecognitionSession',
    'SessionCallbacks',
    'AcceptancePolicy',
    'FillerClassifier',
    'get_filler_preset',
    'build_recognition_error',
]
