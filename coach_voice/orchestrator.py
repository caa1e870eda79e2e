"""
Voice orchestrator.

Owns the capability assessor, recognition session, synthesis queue and
fallback coordinator for one conversation, wires their events together and
gates voice features on the current fallback mode.
"""

import time
from typing import Any, Callable, Dict, Optional

from .capability.assessor import CapabilityAssessor
from .capability.report import CapabilityReport
from .config_models import VoiceConfig
from .factory import ProviderFactory
from .fallback.coordinator import FallbackCoordinator, FallbackEvent
from .interfaces import (
    EnvironmentProbeInterface,
    KeyValueStoreInterface,
    RecognitionEngineInterface,
    SynthesisEngineInterface,
)
from .models.data_models import FallbackMode, FallbackState, PermissionState, Priority, Utterance
from .recognition.session import RecognitionSession
from .synthesis import queue as synthesis_events
from .synthesis.queue import SynthesisQueue
from .utils.error_handling import VoiceError
from .utils.logging_config import get_logger
from .utils.microphone import MicrophoneManager
from .utils.timers import GenerationTimer

RECOGNITION_MODES = frozenset({FallbackMode.NONE})
SYNTHESIS_MODES = frozenset({FallbackMode.NONE, FallbackMode.PARTIAL})

# Permission states the first microphone request can still resolve
PENDING_PERMISSIONS = frozenset({PermissionState.PROMPT, PermissionState.UNKNOWN})


class VoiceOrchestrator:
    """
    Explicitly owned context for the voice layer.

    Features:
    - Single construction point for all voice components
    - Recognition runs in mode NONE (or PARTIAL until the microphone is answered), synthesis in NONE or PARTIAL
    - Every recognition and synthesis error is reported to the coordinator
    - Listening resumes by itself when the coordinator recovers
    """

    def __init__(
        self,
        recognition_engine: RecognitionEngineInterface,
        synthesis_engine: SynthesisEngineInterface,
        probe: EnvironmentProbeInterface,
        store: Optional[KeyValueStoreInterface] = None,
        config: Optional[VoiceConfig] = None,
        timer_factory: Callable[[str], GenerationTimer] = GenerationTimer,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or VoiceConfig()
        self.microphone = MicrophoneManager(probe)
        self.assessor = CapabilityAssessor(
            probe, recognition_engine, synthesis_engine, self.config.capability
        )
        self.recognition = RecognitionSession(
            recognition_engine, self.microphone, self.config.recognition, timer_factory
        )
        self.synthesis = SynthesisQueue(synthesis_engine, self.config.synthesis, timer_factory)
        self.fallback = FallbackCoordinator(
            self.assessor, store, self.config.fallback, timer_factory, clock
        )

        self._resume_timer = timer_factory("orchestrator-resume")
        self._listening_requested = False
        self._last_mode = self.fallback.mode
        self._callbacks: Dict[str, Optional[Callable]] = {}
        self._logger = get_logger("orchestrator")
        self.is_initialized = False

    @classmethod
    def from_config(
        cls,
        config: Optional[VoiceConfig] = None,
        provider_configs: Optional[Dict[str, Dict[str, Any]]] = None,
        **kwargs: Any
    ) -> 'VoiceOrchestrator':
        """Build an orchestrator with providers selected by configuration."""
        config = config or VoiceConfig()
        providers = ProviderFactory.create_all_providers(config, provider_configs)
        return cls(
            recognition_engine=providers['recognition'],
            synthesis_engine=providers['synthesis'],
            probe=providers['environment'],
            store=providers['storage'],
            config=config,
            **kwargs
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def initialize(self) -> FallbackState:
        """Assess capabilities and derive the starting mode."""
        self._logger.info("🚀 Initializing voice layer...")
        self.fallback.add_listener(self._on_fallback_change)
        self.synthesis.add_listener(self._on_synthesis_event)

        state = await self.fallback.initialize()
        if self.synthesis_enabled:
            self.synthesis.refresh_voices()

        self.is_initialized = True
        message = self.fallback.get_status_message()
        self._logger.info(f"✅ Voice layer ready: {message.title}")
        return state

    def dispose(self) -> None:
        """Release every resource. The orchestrator cannot be reused afterwards."""
        self._logger.info("🧹 Disposing voice layer...")
        self._listening_requested = False
        self._resume_timer.shutdown()
        self.recognition.dispose()
        self.synthesis.dispose()
        self.fallback.dispose()
        self.microphone.force_cleanup()
        self.is_initialized = False

    # ------------------------------------------------------------------
    # Mode gating
    # ------------------------------------------------------------------

    @property
    def mode(self) -> FallbackMode:
        return self.fallback.mode

    @property
    def recognition_enabled(self) -> bool:
        return self._recognition_allowed(self.fallback.mode)

    def _recognition_allowed(self, mode: FallbackMode) -> bool:
        """Mode none, or partial while the microphone permission is still undecided."""
        if mode in RECOGNITION_MODES:
            return True
        return mode == FallbackMode.PARTIAL and self._permission_pending()

    def _permission_pending(self) -> bool:
        snapshot = self.assessor.last_snapshot
        return (
            snapshot is not None
            and snapshot.can_use_voice_mode
            and snapshot.microphone_permission in PENDING_PERMISSIONS
        )

    @property
    def synthesis_enabled(self) -> bool:
        return self.fallback.mode in SYNTHESIS_MODES

    # ------------------------------------------------------------------
    # Recognition
    # ------------------------------------------------------------------

    async def start_listening(
        self,
        on_result: Optional[Callable] = None,
        on_error: Optional[Callable] = None,
        on_start: Optional[Callable] = None,
        on_end: Optional[Callable] = None,
        on_interim: Optional[Callable] = None,
    ) -> bool:
        """
        Start continuous recognition if the current mode allows it.

        The request is remembered, so listening resumes when voice features
        recover from a fallback. In partial mode with the microphone
        permission still undecided, starting asks for the microphone and a
        grant reassesses capabilities.

        Returns:
            bool: True if recognition started
        """
        self._listening_requested = True
        self._callbacks = {
            'on_result': on_result,
            'on_error': on_error,
            'on_start': on_start,
            'on_end': on_end,
            'on_interim': on_interim,
        }
        if not self.recognition_enabled:
            self._logger.info(f"Recognition disabled in mode {self.mode.value}")
            return False
        started = await self._start_recognition()
        if started and self.mode == FallbackMode.PARTIAL:
            self._logger.info("🎤 Microphone granted, reassessing voice capabilities")
            await self.fallback.initialize()
        return started

    def stop_listening(self) -> None:
        self._listening_requested = False
        self._resume_timer.cancel()
        self.recognition.stop()

    async def restart_listening(self) -> bool:
        if not self.recognition_enabled:
            return False
        self._listening_requested = True
        return await self.recognition.restart()

    async def _start_recognition(self) -> bool:
        return await self.recognition.start(
            on_result=self._callbacks.get('on_result'),
            on_error=self._on_recognition_error,
            on_start=self._callbacks.get('on_start'),
            on_end=self._callbacks.get('on_end'),
            on_interim=self._callbacks.get('on_interim'),
        )

    async def _resume_listening(self) -> None:
        if self._listening_requested and self.recognition_enabled and not self.recognition.is_active:
            self._logger.info("🎙️  Resuming recognition after recovery")
            await self._start_recognition()

    def _on_recognition_error(self, error: VoiceError) -> None:
        user_callback = self._callbacks.get('on_error')
        if user_callback is not None:
            try:
                user_callback(error)
            except Exception:
                self._logger.exception("on_error callback raised")
        self.fallback.report_failure(error, {'component': 'recognition'})

    # ------------------------------------------------------------------
    # Synthesis
    # ------------------------------------------------------------------

    def speak(
        self,
        text: str,
        interrupt: bool = False,
        priority: Priority = Priority.NORMAL,
        **options: Any
    ) -> Optional[Utterance]:
        """
        Speak text if the current mode allows it.

        Returns:
            The queued utterance, or None when synthesis is disabled or the text is empty
        """
        if not self.synthesis_enabled:
            self._logger.debug(f"Synthesis disabled in mode {self.mode.value}")
            return None
        return self.synthesis.speak(text, interrupt=interrupt, priority=priority, **options)

    def stop_speaking(self) -> None:
        self.synthesis.stop()

    def pause_speaking(self) -> bool:
        return self.synthesis.pause()

    def resume_speaking(self) -> bool:
        return self.synthesis.resume()

    def _on_synthesis_event(self, event: str, data: Dict[str, Any]) -> None:
        if event == synthesis_events.ERROR:
            self.fallback.report_failure(data['error'], {'component': 'synthesis'})

    # ------------------------------------------------------------------
    # Fallback
    # ------------------------------------------------------------------

    def _on_fallback_change(self, state: FallbackState, event: FallbackEvent) -> None:
        previous, self._last_mode = self._last_mode, state.mode
        if not self._recognition_allowed(state.mode):
            self._resume_timer.cancel()
            if self.recognition.is_active:
                self._logger.info(f"Stopping recognition for mode {state.mode.value}")
                self.recognition.stop()
        if state.mode not in SYNTHESIS_MODES and not self.synthesis.is_idle:
            self._logger.info(f"Stopping synthesis for mode {state.mode.value}")
            self.synthesis.stop()
        if (
            state.mode in RECOGNITION_MODES
            and previous not in RECOGNITION_MODES
            and self._listening_requested
            and not self.recognition.is_active
            and not self._resume_timer.pending
        ):
            self._resume_timer.schedule(0, self._resume_listening)

    def force_text_mode(self, reason: str = 'Manual fallback requested') -> None:
        self.fallback.force_text_mode(reason)

    def reset_fallback(self) -> None:
        self.fallback.reset()

    async def get_capability_report(self) -> CapabilityReport:
        return await self.assessor.report()

    def get_status(self) -> Dict[str, Any]:
        """Get orchestrator status."""
        state = self.fallback.get_state()
        message = self.fallback.get_status_message()
        return {
            'initialized': self.is_initialized,
            'mode': state.mode.value,
            'status_message': {
                'title': message.title,
                'message': message.message,
                'severity': message.severity.value,
            },
            'retry_count': state.retry_count,
            'recognition': self.recognition.get_status(),
            'synthesis': self.synthesis.get_status(),
            'microphone': self.microphone.get_status(),
            'errors': self.fallback.error_handler.get_error_summary(),
        }
