"""
User-facing copy for fallback modes and failure categories.
"""

from dataclasses import dataclass
from typing import Dict, List, Optional

from ..models.data_models import ErrorCategory, FallbackMode
from ..utils.error_handling import ErrorSeverity


@dataclass(frozen=True)
class StatusMessage:
    title: str
    message: str
    severity: ErrorSeverity
    icon: str = ''


@dataclass(frozen=True)
class Alternative:
    """Something the user can do instead of, or to restore, voice."""
    type: str
    title: str
    description: str
    action: str
    priority: str  # high, medium or low


STATUS_MESSAGES: Dict[FallbackMode, StatusMessage] = {
    FallbackMode.NONE: StatusMessage(
        'Voice Features Active', 'All voice features are working normally', ErrorSeverity.SUCCESS, '✅'
    ),
    FallbackMode.PARTIAL: StatusMessage(
        'Limited Voice Features', 'Some voice features are available', ErrorSeverity.WARNING, '⚠️'
    ),
    FallbackMode.TEXT_ONLY: StatusMessage(
        'Text Mode Only', 'Voice features are not available, using text mode', ErrorSeverity.INFO, '📝'
    ),
    FallbackMode.RETRY_PENDING: StatusMessage(
        'Retrying Voice Features', 'Attempting to restore voice functionality', ErrorSeverity.INFO, '🔄'
    ),
    FallbackMode.PERMISSION_REQUIRED: StatusMessage(
        'Permission Required', 'Microphone permission needed for voice features', ErrorSeverity.WARNING, '🔐'
    ),
    FallbackMode.UPGRADE_REQUIRED: StatusMessage(
        'Upgrade Needed', 'Voice features require a supported environment', ErrorSeverity.WARNING, '🌐'
    ),
}

USER_MESSAGES: Dict[ErrorCategory, str] = {
    ErrorCategory.PERMISSION: 'Microphone permission needed for voice features',
    ErrorCategory.COMPATIBILITY: 'Voice features are not supported in this environment',
    ErrorCategory.SECURITY: 'Voice features require a secure connection (HTTPS)',
    ErrorCategory.NETWORK: 'Network issues affecting voice features',
    ErrorCategory.TEMPORARY: 'Temporary voice service issue',
}

DEFAULT_USER_MESSAGE = 'Voice feature temporarily unavailable'

_TEXT_MODE = Alternative(
    'text_mode', 'Use Text Mode', 'Continue with text-based interaction', 'switchToTextMode', 'low'
)

ALTERNATIVES: Dict[ErrorCategory, List[Alternative]] = {
    ErrorCategory.PERMISSION: [
        Alternative('permission_request', 'Grant Microphone Permission',
                    'Allow microphone access for voice features', 'requestPermission', 'high'),
        Alternative('settings', 'Check Settings',
                    'Enable microphone permission in your settings', 'openSettings', 'medium'),
        _TEXT_MODE,
    ],
    ErrorCategory.COMPATIBILITY: [
        Alternative('environment_upgrade', 'Use a Supported Environment',
                    'Switch to an environment with speech support', 'suggestUpgrade', 'high'),
        Alternative('partial_features', 'Try Text-to-Speech Only',
                    'Some voice features may still work', 'enablePartialMode', 'medium'),
        _TEXT_MODE,
    ],
    ErrorCategory.SECURITY: [
        Alternative('https_required', 'Use HTTPS Connection',
                    'Voice features require a secure HTTPS connection', 'redirectToHTTPS', 'high'),
        Alternative('localhost_info', 'Development Mode Info',
                    'Use localhost or HTTPS for voice features in development', 'showDevInfo', 'medium'),
        _TEXT_MODE,
    ],
    ErrorCategory.NETWORK: [
        Alternative('retry', 'Retry Voice Operation',
                    'Try the voice operation again', 'retryOperation', 'high'),
        Alternative('check_connection', 'Check Internet Connection',
                    'Verify your internet connection is stable', 'checkConnection', 'medium'),
        _TEXT_MODE,
    ],
    ErrorCategory.TEMPORARY: [
        Alternative('auto_retry', 'Automatic Retry',
                    'Voice features will retry automatically in a moment', 'autoRetry', 'high'),
        Alternative('manual_retry', 'Try Again',
                    'Manually retry the voice operation', 'retryOperation', 'medium'),
        _TEXT_MODE,
    ],
}

GENERIC_ALTERNATIVES: List[Alternative] = [
    Alternative('restart_voice', 'Restart Voice Features',
                'Reset voice features and try again', 'resetVoice', 'medium'),
    Alternative('check_environment', 'Check Environment',
                'Make sure this environment supports voice features', 'checkEnvironment', 'medium'),
    Alternative('text_mode', 'Use Text Mode',
                'Continue with text-based interaction', 'switchToTextMode', 'high'),
]

EXHAUSTED_ALTERNATIVES: List[Alternative] = [
    Alternative('text_mode', 'Continue with Text',
                'Voice features are currently unavailable', 'switchToTextMode', 'high'),
]


def status_message(mode: FallbackMode) -> StatusMessage:
    return STATUS_MESSAGES.get(mode, STATUS_MESSAGES[FallbackMode.TEXT_ONLY])


def user_message(category: Optional[ErrorCategory]) -> str:
    if category is None:
        return DEFAULT_USER_MESSAGE
    return USER_MESSAGES.get(category, DEFAULT_USER_MESSAGE)


def alternatives_for(category: ErrorCategory) -> List[Alternative]:
    return list(ALTERNATIVES.get(category, GENERIC_ALTERNATIVES))
