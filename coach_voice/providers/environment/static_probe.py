"""
Environment probe driven by configuration instead of live platform queries.
"""

import asyncio
import os
import platform
from typing import Any, Dict, Mapping, Optional

from ...interfaces.environment import EnvironmentProbeInterface, MicrophoneStream
from ...models.data_models import PermissionState
from ...utils.error_handling import PermissionDeniedError
from ...utils.logging_config import get_logger


class StaticMicrophoneStream(MicrophoneStream):
    """Stream handle that only tracks whether it was closed."""

    def __init__(self):
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def close(self) -> None:
        self._active = False


class StaticEnvironmentProbe(EnvironmentProbeInterface):
    """
    Probe with fixed answers.

    A ``prompt`` permission is resolved by ``prompt_response`` the first time
    the microphone is requested, the way a user answers a permission dialog.
    """

    def __init__(
        self,
        secure_context: bool = True,
        permission: Any = PermissionState.GRANTED,
        platform_info: Optional[Mapping[str, Any]] = None,
        prompt_response: Any = PermissionState.GRANTED,
        permission_delay: float = 0.0,
    ):
        self.secure_context = secure_context
        self.permission = PermissionState.parse(permission)
        self.prompt_response = PermissionState.parse(prompt_response)
        self.permission_delay = permission_delay
        self._platform_info = dict(platform_info) if platform_info is not None else _default_platform()
        self.streams = []
        self._logger = get_logger("environment")

    @classmethod
    def from_mapping(cls, config: Mapping[str, Any]) -> 'StaticEnvironmentProbe':
        return cls(
            secure_context=bool(config.get('secure_context', True)),
            permission=config.get('permission', PermissionState.GRANTED),
            platform_info=config.get('platform'),
            prompt_response=config.get('prompt_response', PermissionState.GRANTED),
            permission_delay=float(config.get('permission_delay', 0.0)),
        )

    @classmethod
    def from_env(cls) -> 'StaticEnvironmentProbe':
        """Read COACH_VOICE_SECURE_CONTEXT and COACH_VOICE_MIC_PERMISSION."""
        secure = os.getenv('COACH_VOICE_SECURE_CONTEXT', 'true').strip().lower() in ('1', 'true', 'yes', 'on')
        return cls(
            secure_context=secure,
            permission=os.getenv('COACH_VOICE_MIC_PERMISSION', 'granted'),
        )

    def is_secure_context(self) -> bool:
        return self.secure_context

    async def query_microphone_permission(self) -> PermissionState:
        if self.permission_delay:
            await asyncio.sleep(self.permission_delay)
        return self.permission

    async def request_microphone(self) -> MicrophoneStream:
        if self.permission == PermissionState.PROMPT:
            self.permission = self.prompt_response
            self._logger.info(f"Microphone prompt answered: {self.permission.value}")
        if self.permission == PermissionState.DENIED:
            raise PermissionDeniedError("Microphone access denied")
        stream = StaticMicrophoneStream()
        self.streams.append(stream)
        return stream

    def platform_info(self) -> Dict[str, Any]:
        return dict(self._platform_info)


def _default_platform() -> Dict[str, Any]:
    return {
        'name': platform.system() or 'unknown',
        'version': platform.release(),
        'python': platform.python_version(),
        'mobile': False,
    }
