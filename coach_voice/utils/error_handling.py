"""
Structured error handling for the voice layer.

Every engine failure is wrapped in a ``VoiceError`` and categorized against a
fixed taxonomy so the fallback coordinator can decide between retrying and
degrading.
"""

import traceback
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional, Dict, Any, List, Union

from ..models.data_models import ErrorCategory


class ErrorSeverity(Enum):
    """User-facing severity of a status."""
    SUCCESS = "success"
    WARNING = "warning"
    INFO = "info"


class VoiceFrameworkError(Exception):
    """Base class for exceptions raised by the voice layer."""


class PermissionDeniedError(VoiceFrameworkError):
    """Microphone access was rejected."""


class EngineUnavailableError(VoiceFrameworkError):
    """A native engine is missing or failed to start."""


class MicrophoneBusyError(VoiceFrameworkError):
    """The microphone is already claimed by another owner."""


@dataclass
class VoiceError:
    """Structured error information."""
    code: str
    message: str
    recoverable: Optional[bool] = None
    category: Optional[ErrorCategory] = None
    suggestion: Optional[str] = None
    component: str = "unknown"
    exception: Optional[BaseException] = None
    context: Dict[str, Any] = field(default_factory=dict)
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())
    traceback_str: Optional[str] = None

    def __post_init__(self):
        """Capture traceback if exception provided."""
        if self.exception and not self.traceback_str:
            self.traceback_str = ''.join(
                traceback.format_exception(
                    type(self.exception),
                    self.exception,
                    self.exception.__traceback__
                )
            )

    @classmethod
    def from_exception(cls, exc: BaseException, component: str = "unknown") -> 'VoiceError':
        """Wrap an arbitrary exception."""
        if isinstance(exc, PermissionDeniedError):
            code = 'not-allowed'
        elif isinstance(exc, EngineUnavailableError):
            code = 'not-supported'
        elif isinstance(exc, MicrophoneBusyError):
            code = 'audio-capture'
        else:
            code = type(exc).__name__
        return cls(code=code, message=str(exc) or type(exc).__name__, component=component, exception=exc)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'type': self.code,
            'message': self.message,
            'recoverable': self.recoverable,
            'category': self.category.value if self.category else None,
            'suggestion': self.suggestion,
            'component': self.component,
            'context': dict(self.context),
            'timestamp': self.timestamp,
        }


ErrorLike = Union[VoiceError, BaseException, None]


def _as_voice_error(error: ErrorLike) -> Optional[VoiceError]:
    if error is None or isinstance(error, VoiceError):
        return error
    return VoiceError.from_exception(error)


def categorize_error(error: ErrorLike) -> ErrorCategory:
    """
    Categorize an error by pattern matching its code and message.

    Args:
        error: VoiceError, exception, or None

    Returns:
        ErrorCategory (TEMPORARY when nothing matches)
    """
    voice_error = _as_voice_error(error)
    if voice_error is None:
        return ErrorCategory.TEMPORARY

    if voice_error.category is not None:
        return voice_error.category

    code = (voice_error.code or '').lower()
    message = (voice_error.message or '').lower()

    if code in ('not-allowed', 'permission-denied') or 'permission' in message or 'denied' in message:
        return ErrorCategory.PERMISSION

    if code == 'not-supported' or 'not supported' in message or 'not available' in message:
        return ErrorCategory.COMPATIBILITY

    if 'https' in message or 'secure context' in message or 'security' in message:
        return ErrorCategory.SECURITY

    if code == 'network' or 'network' in message or 'connection' in message:
        return ErrorCategory.NETWORK

    if code in ('initialization', 'initialization-failure') or 'initialize' in message:
        return ErrorCategory.INITIALIZATION

    if code == 'runtime' or 'runtime' in message or 'operation' in message:
        return ErrorCategory.RUNTIME

    return ErrorCategory.TEMPORARY


def compute_backoff_delay(
    attempt: int,
    base_delay: float = 1.0,
    backoff_factor: float = 2.0,
    max_delay: float = 10.0
) -> float:
    """
    Exponential backoff delay for a zero-based attempt number.

    attempt 0 -> base_delay, attempt 1 -> base_delay * factor, ... capped at max_delay.
    """
    return min(base_delay * (backoff_factor ** max(0, attempt)), max_delay)


class ErrorHandler:
    """
    Bounded error history shared by the voice components.

    Features:
    - Error history tracking
    - Per-component and per-category summaries
    """

    def __init__(self, max_history: int = 100):
        self._error_log: List[VoiceError] = []
        self._max_history = max_history

    def record(self, error: VoiceError) -> None:
        self._error_log.append(error)
        if len(self._error_log) > self._max_history:
            self._error_log.pop(0)

    def get_error_history(self, component: Optional[str] = None) -> List[VoiceError]:
        """
        Get error history, optionally filtered by component.

        Args:
            component: Optional component name to filter by

        Returns:
            List of errors
        """
        if component:
            return [e for e in self._error_log if e.component == component]
        return self._error_log.copy()

    def get_error_summary(self) -> Dict[str, Any]:
        """Get summary of errors."""
        summary = {
            'total_errors': len(self._error_log),
            'by_category': {},
            'by_component': {}
        }

        for error in self._error_log:
            category = categorize_error(error).value
            summary['by_category'][category] = summary['by_category'].get(category, 0) + 1

            component = error.component
            summary['by_component'][component] = summary['by_component'].get(component, 0) + 1

        return summary

    def clear(self) -> None:
        self._error_log.clear()
