# Utils package

from .error_handling import (
    ErrorSeverity,
    VoiceFrameworkError,
    PermissionDeniedError,
    EngineUnavailableError,
    MicrophoneBusyError,
    VoiceError,
    ErrorHandler,
    categorize_error,
    compute_backoff_delay,
)
from .logging_config import setup_logging, get_logger
from .microphone import MicrophoneManager
from .state_machine import SessionState, SessionStateMachine, TerminationCause
from .timers import GenerationTimer

__all__ = [
    "ErrorSeverity",
    "VoiceFrameworkError",
    "PermissionDeniedError",
    "EngineUnavailableError",
    "MicrophoneBusyError",
    "VoiceError",
    "ErrorHandler",
    "categorize_error",
    "compute_backoff_delay",
    "setup_logging",
    "get_logger",
    "MicrophoneManager",
    "SessionState",
    "SessionStateMachine",
    "TerminationCause",
    "GenerationTimer",
]
