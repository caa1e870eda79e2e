"""
Recognition error taxonomy.

Maps native engine error codes onto the session's error types, each with a
recoverable flag, a message and a suggestion for the user.
"""

from dataclasses import dataclass
from typing import Dict, Optional

from ..models.data_models import ErrorCategory
from ..utils.error_handling import VoiceError


@dataclass(frozen=True)
class RecognitionErrorSpec:
    type: str
    recoverable: bool
    message: str
    suggestion: str
    category: Optional[ErrorCategory] = None


NETWORK = 'network'
PERMISSION_DENIED = 'permission-denied'
NO_SPEECH = 'no-speech'
AUDIO_CAPTURE = 'audio-capture'
SERVICE_UNAVAILABLE = 'service-unavailable'
INITIALIZATION_FAILURE = 'initialization-failure'
NO_MATCH = 'no-match'

# Native code emitted after abort(); never reported
ABORTED = 'aborted'

ERROR_SPECS: Dict[str, RecognitionErrorSpec] = {
    NETWORK: RecognitionErrorSpec(
        NETWORK, True,
        'Network connection issues detected',
        'Check your internet connection and try again',
        ErrorCategory.NETWORK,
    ),
    PERMISSION_DENIED: RecognitionErrorSpec(
        PERMISSION_DENIED, False,
        'Microphone access denied',
        'Please allow microphone access in your settings',
        ErrorCategory.PERMISSION,
    ),
    NO_SPEECH: RecognitionErrorSpec(
        NO_SPEECH, True,
        'No speech detected',
        'Please speak clearly into your microphone',
        ErrorCategory.RUNTIME,
    ),
    AUDIO_CAPTURE: RecognitionErrorSpec(
        AUDIO_CAPTURE, True,
        'Audio capture failed',
        'Check your microphone connection and permissions',
        ErrorCategory.TEMPORARY,
    ),
    SERVICE_UNAVAILABLE: RecognitionErrorSpec(
        SERVICE_UNAVAILABLE, True,
        'Speech service not allowed',
        'Speech recognition service is not available right now',
        ErrorCategory.TEMPORARY,
    ),
    INITIALIZATION_FAILURE: RecognitionErrorSpec(
        INITIALIZATION_FAILURE, False,
        'Speech recognition could not be started',
        'Check that speech recognition is supported on this device',
        ErrorCategory.INITIALIZATION,
    ),
    NO_MATCH: RecognitionErrorSpec(
        NO_MATCH, True,
        'Could not understand the speech',
        'Please speak more clearly and try again',
        ErrorCategory.RUNTIME,
    ),
}

# Native codes that differ from the session's error types
NATIVE_CODE_ALIASES: Dict[str, str] = {
    'not-allowed': PERMISSION_DENIED,
    'service-not-allowed': SERVICE_UNAVAILABLE,
    'not-supported': INITIALIZATION_FAILURE,
    'no_match': NO_MATCH,
}


def normalize_error_code(native_code: Optional[str]) -> str:
    code = (native_code or '').strip().lower()
    return NATIVE_CODE_ALIASES.get(code, code)


def build_recognition_error(
    native_code: Optional[str],
    detail: Optional[str] = None,
    exception: Optional[BaseException] = None,
    **context
) -> VoiceError:
    """
    Build a VoiceError for a native recognition error code.

    Unknown codes are reported as non-recoverable with a generic message.
    """
    code = normalize_error_code(native_code)
    spec = ERROR_SPECS.get(code)
    if spec is None:
        return VoiceError(
            code=code or 'unknown',
            message=f"Speech recognition error: {detail or code or 'unknown'}",
            recoverable=False,
            suggestion='Please try again or check that your device supports speech recognition',
            component='recognition',
            exception=exception,
            context=dict(context),
        )

    if detail:
        context['detail'] = detail
    return VoiceError(
        code=spec.type,
        message=spec.message,
        recoverable=spec.recoverable,
        category=spec.category,
        suggestion=spec.suggestion,
        component='recognition',
        exception=exception,
        context=dict(context),
    )
