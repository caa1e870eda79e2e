"""
Fallback coordination between voice and text modes.
"""

from .coordinator import FailureOutcome, FallbackCoordinator, FallbackEvent, derive_mode
from .messages import Alternative, StatusMessage

__all__ = [
    'FailureOutcome',
    'FallbackCoordinator',
    'FallbackEvent',
    'derive_mode',
    'Alternative',
    'StatusMessage',
]
