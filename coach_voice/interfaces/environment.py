"""
Abstract interface for probing the host environment.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict

from ..models.data_models import PermissionState


class MicrophoneStream(ABC):
    """Handle on an open microphone capture."""

    @property
    @abstractmethod
    def active(self) -> bool:
        pass

    @abstractmethod
    def close(self) -> None:
        """Stop every capture track. Safe to call more than once."""
        pass


class EnvironmentProbeInterface(ABC):
    """Secure-context, permission and platform queries."""

    @abstractmethod
    def is_secure_context(self) -> bool:
        pass

    @abstractmethod
    async def query_microphone_permission(self) -> PermissionState:
        """
        Current microphone permission without prompting the user.

        Returns:
            PermissionState: UNKNOWN when the platform cannot tell
        """
        pass

    @abstractmethod
    async def request_microphone(self) -> MicrophoneStream:
        """
        Open the microphone, prompting the user if needed.

        Raises:
            PermissionDeniedError: If access is rejected
        """
        pass

    @abstractmethod
    def platform_info(self) -> Dict[str, Any]:
        """Free-form platform metadata (name, version, mobile flag...)."""
        pass
