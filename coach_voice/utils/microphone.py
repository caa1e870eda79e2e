"""
Exclusive microphone ownership to prevent conflicts between components.
"""

import asyncio
from typing import Optional, Dict, Any

from ..interfaces.environment import EnvironmentProbeInterface, MicrophoneStream
from .error_handling import MicrophoneBusyError
from .logging_config import get_logger


class MicrophoneManager:
    """
    Hands out the microphone to one owner at a time.

    The stream is opened fresh on every acquire and closed on release, so the
    device is never held across an error boundary.
    """

    def __init__(self, probe: EnvironmentProbeInterface):
        self._probe = probe
        self._lock = asyncio.Lock()
        self._stream: Optional[MicrophoneStream] = None
        self._current_owner: Optional[str] = None
        self._logger = get_logger("microphone")

    @property
    def current_owner(self) -> Optional[str]:
        return self._current_owner

    def is_held_by(self, owner_name: str) -> bool:
        return self._current_owner == owner_name and self._stream is not None

    async def acquire(self, owner_name: str, force_cleanup: bool = False) -> MicrophoneStream:
        """
        Open the microphone for the given owner.

        Args:
            owner_name: Name of the component requesting the microphone
            force_cleanup: Take the microphone away from another owner

        Returns:
            MicrophoneStream for the new claim

        Raises:
            MicrophoneBusyError: If another owner holds it and force_cleanup is False
            PermissionDeniedError: If the user rejects access
        """
        async with self._lock:
            if self._current_owner and self._current_owner != owner_name:
                if not force_cleanup:
                    raise MicrophoneBusyError(
                        f"Microphone busy with {self._current_owner}, cannot acquire for {owner_name}"
                    )
                self._logger.warning(f"Taking microphone from {self._current_owner} for {owner_name}")
                self._cleanup_unsafe()

            if self._stream is not None:
                # Same owner requesting again gets a fresh stream
                self._cleanup_unsafe()

            stream = await self._probe.request_microphone()
            self._stream = stream
            self._current_owner = owner_name
            self._logger.debug(f"🎤 Microphone acquired by {owner_name}")
            return stream

    def release(self, owner_name: str) -> bool:
        """
        Release the microphone if owner_name holds it.

        Returns:
            True if a claim was released
        """
        if self._current_owner is None:
            return False
        if self._current_owner != owner_name:
            self._logger.warning(
                f"{owner_name} tried to release the microphone, but {self._current_owner} owns it"
            )
            return False
        self._cleanup_unsafe()
        self._logger.debug(f"📤 Microphone released by {owner_name}")
        return True

    def _cleanup_unsafe(self) -> None:
        stream = self._stream
        self._stream = None
        self._current_owner = None
        if stream is not None:
            try:
                stream.close()
            except Exception as e:
                self._logger.warning(f"Error closing microphone stream: {e}")

    def force_cleanup(self) -> None:
        """Close the stream whoever owns it."""
        self._cleanup_unsafe()

    def get_status(self) -> Dict[str, Any]:
        return {
            'has_stream': self._stream is not None,
            'current_owner': self._current_owner,
        }
