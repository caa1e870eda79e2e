"""
Capability assessment.

Probes the environment and the engines and folds the answers into an
immutable CapabilitySnapshot. Every probe failure maps to the least capable
value, so assess() never raises.
"""

import asyncio
from typing import Any, Callable, Dict, Optional, TypeVar

from ..config_models import CapabilityConfig
from ..interfaces.environment import EnvironmentProbeInterface
from ..interfaces.recognition_engine import RecognitionEngineInterface
from ..interfaces.synthesis_engine import SynthesisEngineInterface
from ..models.data_models import CapabilitySnapshot, PermissionState
from ..utils.logging_config import get_logger
from .report import CapabilityReport, build_report

T = TypeVar('T')


class CapabilityAssessor:
    """Produces capability snapshots on demand."""

    def __init__(
        self,
        probe: EnvironmentProbeInterface,
        recognition_engine: Optional[RecognitionEngineInterface] = None,
        synthesis_engine: Optional[SynthesisEngineInterface] = None,
        config: Optional[CapabilityConfig] = None,
    ):
        self._probe = probe
        self._recognition_engine = recognition_engine
        self._synthesis_engine = synthesis_engine
        self._config = config or CapabilityConfig()
        self._last_snapshot: Optional[CapabilitySnapshot] = None
        self._logger = get_logger("capability")

    @property
    def last_snapshot(self) -> Optional[CapabilitySnapshot]:
        return self._last_snapshot

    async def assess(self) -> CapabilitySnapshot:
        """Probe everything and return a fresh snapshot."""
        recognition_supported = self._check(
            "recognition support",
            lambda: bool(self._recognition_engine and self._recognition_engine.is_available),
            False,
        )
        synthesis_supported = self._check(
            "synthesis support",
            lambda: bool(self._synthesis_engine and self._synthesis_engine.is_available),
            False,
        )
        secure_context = self._check("secure context", lambda: bool(self._probe.is_secure_context()), False)
        platform = self._check("platform info", lambda: dict(self._probe.platform_info() or {}), {})
        voice_count = 0
        if synthesis_supported:
            voice_count = self._check("voices", lambda: len(self._synthesis_engine.get_voices()), 0)

        permission = await self._query_permission()

        snapshot = CapabilitySnapshot(
            recognition_supported=recognition_supported,
            synthesis_supported=synthesis_supported,
            secure_context=secure_context,
            microphone_permission=permission,
            platform=platform,
            voice_count=voice_count,
        )
        self._last_snapshot = snapshot
        self._logger.info(
            f"Capabilities: recognition={snapshot.can_use_recognition} "
            f"synthesis={snapshot.can_use_synthesis} permission={permission.value} "
            f"readiness={snapshot.readiness_level}"
        )
        return snapshot

    async def report(self) -> CapabilityReport:
        """Assess and describe the result for people."""
        snapshot = await self.assess()
        return build_report(snapshot)

    def _check(self, name: str, probe: Callable[[], T], fallback: T) -> T:
        try:
            return probe()
        except Exception as e:
            self._logger.warning(f"Probing {name} failed, assuming unavailable: {e}")
            return fallback

    async def _query_permission(self) -> PermissionState:
        try:
            reported = await asyncio.wait_for(
                self._probe.query_microphone_permission(),
                timeout=self._config.permission_timeout,
            )
        except asyncio.TimeoutError:
            self._logger.warning(
                f"Permission query timed out after {self._config.permission_timeout}s"
            )
            return PermissionState.UNKNOWN
        except Exception as e:
            self._logger.warning(f"Permission query failed: {e}")
            return PermissionState.UNKNOWN
        return PermissionState.parse(reported)

    def get_status(self) -> Dict[str, Any]:
        return {
            'has_snapshot': self._last_snapshot is not None,
            'last_snapshot': self._last_snapshot.to_dict() if self._last_snapshot else None,
        }
