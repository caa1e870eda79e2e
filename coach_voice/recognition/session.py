"""
Continuous speech recognition session.

Wraps a native recognition engine that stops on its own after silence or
transient faults, and keeps one logical session alive across those native
sessions.
"""

import asyncio
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from ..config_models import RecognitionConfig
from ..interfaces.recognition_engine import RecognitionEngineInterface
from ..models.data_models import (
    RecognitionEngineEvent,
    RecognitionEventType,
    RecognitionResult,
    RecognitionSegment,
)
from ..utils.error_handling import PermissionDeniedError, VoiceError, VoiceFrameworkError
from ..utils.logging_config import get_logger
from ..utils.microphone import MicrophoneManager
from ..utils.state_machine import SessionState, SessionStateMachine, TerminationCause
from ..utils.timers import GenerationTimer
from . import errors
from .filler import AcceptancePolicy, FillerClassifier, get_filler_preset

ResultCallback = Callable[[RecognitionResult], Any]
ErrorCallback = Callable[[VoiceError], Any]
LifecycleCallback = Callable[[], Any]


@dataclass
class SessionCallbacks:
    on_result: Optional[ResultCallback] = None
    on_error: Optional[ErrorCallback] = None
    on_start: Optional[LifecycleCallback] = None
    on_end: Optional[LifecycleCallback] = None
    on_interim: Optional[ResultCallback] = None


class RecognitionSession:
    """
    One logical continuous recognition session.

    Lifecycle: IDLE -> STARTING -> LISTENING -> ENDING -> IDLE. When the engine
    ends a native session on its own the session goes ENDING -> STARTING after
    ``restart_delay``. A user stop is recorded as the termination cause, so the
    engine's trailing "end" event never triggers a restart.

    Events from a native session that has been abandoned are discarded by
    session id.
    """

    MICROPHONE_OWNER = "recognition"

    def __init__(
        self,
        engine: RecognitionEngineInterface,
        microphone: MicrophoneManager,
        config: Optional[RecognitionConfig] = None,
        timer_factory: Callable[[str], GenerationTimer] = GenerationTimer,
    ):
        self._engine = engine
        self._microphone = microphone
        self._config = config or RecognitionConfig()
        self._machine = SessionStateMachine()
        self._restart_timer = timer_factory("recognition-restart")
        self._callbacks = SessionCallbacks()
        self._logger = get_logger("recognition")

        self._classifier = FillerClassifier()
        self._policy = AcceptancePolicy()
        self._apply_thresholds()

        self._run_counter = 0
        self._active_run_id: Optional[int] = None
        self._start_generation = 0
        self._engine_running = False
        self._restart_count = 0
        self._last_activity: Optional[float] = None

        self._engine.add_listener(self._on_engine_event)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    @property
    def state(self) -> SessionState:
        return self._machine.current_state

    @property
    def is_listening(self) -> bool:
        return self._machine.current_state == SessionState.LISTENING

    @property
    def is_active(self) -> bool:
        return self._machine.current_state != SessionState.IDLE

    @property
    def restart_count(self) -> int:
        return self._restart_count

    @property
    def policy(self) -> AcceptancePolicy:
        return self._policy

    async def start(
        self,
        on_result: Optional[ResultCallback] = None,
        on_error: Optional[ErrorCallback] = None,
        on_start: Optional[LifecycleCallback] = None,
        on_end: Optional[LifecycleCallback] = None,
        on_interim: Optional[ResultCallback] = None,
    ) -> bool:
        """
        Start continuous recognition.

        Args:
            on_result: Called with each accepted final result
            on_error: Called with a VoiceError for every engine or start failure
            on_start: Called whenever a native session starts listening
            on_end: Called once the logical session is over
            on_interim: Called with every interim result

        Returns:
            bool: False if the engine is unavailable or the microphone was refused
        """
        self._callbacks = SessionCallbacks(on_result, on_error, on_start, on_end, on_interim)

        state = self._machine.current_state
        if state in (SessionState.STARTING, SessionState.LISTENING):
            self._logger.debug("Recognition already active; callbacks replaced")
            return True
        if state == SessionState.ENDING:
            # A previous native session is still winding down
            self._restart_timer.cancel()
            self._abandon_run()
            self._go_idle("superseded", TerminationCause.USER_STOP, notify=False)

        self._restart_count = 0
        return await self._begin("start")

    def stop(self) -> None:
        """Stop listening. Safe to call from any state and more than once."""
        self._restart_timer.cancel()
        self._start_generation += 1

        state = self._machine.current_state
        if state == SessionState.IDLE:
            return

        self._microphone.release(self.MICROPHONE_OWNER)

        if not self._engine_running:
            self._go_idle("stop", TerminationCause.USER_STOP)
            return

        self._machine.transition_to(SessionState.ENDING, "stop", cause=TerminationCause.USER_STOP)
        self._machine.set_cause(TerminationCause.USER_STOP)
        self._logger.info("🛑 Stopping recognition")
        try:
            self._engine.stop()
        except Exception as e:
            self._logger.warning(f"Engine stop failed, aborting: {e}")
            self._abandon_run()
            self._go_idle("stop-failed", TerminationCause.USER_STOP)

    async def restart(self) -> bool:
        """Stop, let the engine settle, then start again with the last callbacks."""
        callbacks = self._callbacks
        self.stop()
        await asyncio.sleep(self._config.settle_delay)
        return await self.start(
            on_result=callbacks.on_result,
            on_error=callbacks.on_error,
            on_start=callbacks.on_start,
            on_end=callbacks.on_end,
            on_interim=callbacks.on_interim,
        )

    def configure(
        self,
        filler_threshold: Optional[float] = None,
        normal_threshold: Optional[float] = None,
        min_speech_length: Optional[int] = None,
        filler_mode: Optional[str] = None,
        accept_unscored_results: Optional[bool] = None,
    ) -> None:
        """
        Update acceptance settings at runtime.

        Raises:
            ValueError: If the resulting thresholds are inconsistent or the mode is unknown
        """
        updates: Dict[str, Any] = {}
        if filler_mode is not None:
            get_filler_preset(filler_mode)
            updates['filler_mode'] = filler_mode.lower()
        elif filler_threshold is not None or normal_threshold is not None:
            updates['filler_mode'] = None
        if filler_threshold is not None:
            updates['filler_threshold'] = filler_threshold
        if normal_threshold is not None:
            updates['normal_threshold'] = normal_threshold
        if min_speech_length is not None:
            updates['min_speech_length'] = min_speech_length
        if accept_unscored_results is not None:
            updates['accept_unscored_results'] = accept_unscored_results

        merged = self._config.model_dump()
        merged.update(updates)
        self._config = RecognitionConfig(**merged)
        self._apply_thresholds()
        self._logger.info(
            f"Thresholds updated: filler={self._policy.filler_threshold} "
            f"normal={self._policy.normal_threshold} fillers={'on' if self._classifier.enabled else 'off'}"
        )

    def get_status(self) -> Dict[str, Any]:
        status = self._machine.get_status()
        status.update({
            'is_listening': self.is_listening,
            'restart_count': self._restart_count,
            'restart_pending': self._restart_timer.pending,
            'last_activity': self._last_activity,
            'filler_threshold': self._policy.filler_threshold,
            'normal_threshold': self._policy.normal_threshold,
            'history': [
                f"{t.from_state.name}->{t.to_state.name}:{t.event}"
                for t in self._machine.get_transition_history()
            ],
        })
        return status

    def dispose(self) -> None:
        """Stop the session and detach from the engine."""
        self.stop()
        if self._engine_running:
            self._abandon_run()
            self._go_idle("dispose", TerminationCause.USER_STOP, notify=False)
        self._engine.remove_listener(self._on_engine_event)
        self._restart_timer.shutdown()

    # ------------------------------------------------------------------
    # Native session management
    # ------------------------------------------------------------------

    def _apply_thresholds(self) -> None:
        config = self._config
        filler_threshold = config.filler_threshold
        normal_threshold = config.normal_threshold
        detect_fillers = True
        if config.filler_mode:
            preset = get_filler_preset(config.filler_mode)
            filler_threshold = preset.filler_threshold
            normal_threshold = preset.normal_threshold
            detect_fillers = preset.detect_fillers

        self._classifier.enabled = detect_fillers
        self._policy = AcceptancePolicy(
            filler_threshold=filler_threshold,
            normal_threshold=normal_threshold,
            min_length=config.min_speech_length,
            accept_unscored=config.accept_unscored_results,
        )

    async def _begin(self, event: str) -> bool:
        if not self._engine.is_available:
            error = errors.build_recognition_error(
                'not-supported', 'Speech recognition engine is not available'
            )
            self._fail(error)
            return False

        self._machine.transition_to(SessionState.STARTING, event)
        self._start_generation += 1
        generation = self._start_generation
        self._run_counter += 1
        run_id = self._run_counter
        self._active_run_id = run_id

        try:
            await self._microphone.acquire(self.MICROPHONE_OWNER)
        except PermissionDeniedError as e:
            if generation != self._start_generation:
                self._logger.debug(f"Microphone refused after run {run_id} was stopped")
                return False
            self._fail(errors.build_recognition_error('not-allowed', str(e), exception=e))
            return False
        except VoiceFrameworkError as e:
            if generation != self._start_generation:
                self._logger.debug(f"Microphone unavailable after run {run_id} was stopped")
                return False
            self._fail(errors.build_recognition_error('audio-capture', str(e), exception=e))
            return False

        if generation != self._start_generation:
            # stop() ran while the microphone request was pending
            self._microphone.release(self.MICROPHONE_OWNER)
            return False

        self._engine_running = True
        try:
            await self._engine.start(run_id)
        except Exception as e:
            self._engine_running = False
            if generation != self._start_generation:
                return False
            self._fail(errors.build_recognition_error(
                'initialization-failure', str(e), exception=e, run_id=run_id
            ))
            return False

        if generation != self._start_generation:
            self._logger.debug(f"Start of run {run_id} superseded")
            if self._active_run_id == run_id and self._machine.current_state == SessionState.IDLE:
                self._safe_abort()
            return False

        self._logger.info(f"🎙️  Recognition started (run {run_id})")
        return True

    def _fail(self, error: VoiceError) -> None:
        """Terminal failure: release everything, go idle, report."""
        self._abandon_run()
        self._go_idle("error", TerminationCause.ERROR, notify=False)
        self._report_error(error)
        self._invoke('on_end')

    def _go_idle(self, event: str, cause: TerminationCause, notify: bool = True) -> None:
        self._restart_timer.cancel()
        self._microphone.release(self.MICROPHONE_OWNER)
        self._active_run_id = None
        self._engine_running = False
        if self._machine.current_state != SessionState.IDLE:
            self._machine.transition_to(SessionState.IDLE, event, cause=cause)
        if cause == TerminationCause.USER_STOP:
            self._machine.clear_cause()
        if notify:
            self._invoke('on_end')

    def _abandon_run(self) -> None:
        """Detach from the native session so its trailing events are ignored, then abort it."""
        self._active_run_id = None
        if self._engine_running:
            self._safe_abort()

    def _safe_abort(self) -> None:
        try:
            self._engine.abort()
        except Exception as e:
            self._logger.warning(f"Engine abort failed: {e}")

    async def _auto_restart(self) -> None:
        if (
            self._machine.current_state != SessionState.ENDING
            or self._machine.termination_cause == TerminationCause.USER_STOP
        ):
            return
        self._logger.info(
            f"🔄 Restarting recognition (attempt {self._restart_count}/{self._config.max_auto_restarts})"
        )
        await self._begin("auto-restart")

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _on_engine_event(self, event: RecognitionEngineEvent) -> None:
        if self._active_run_id is None or event.session_id != self._active_run_id:
            self._logger.debug(f"Ignoring stale {event.type.value} event from run {event.session_id}")
            return

        handlers = {
            RecognitionEventType.START: self._handle_start,
            RecognitionEventType.RESULT: self._handle_results,
            RecognitionEventType.ERROR: self._handle_error,
            RecognitionEventType.NO_MATCH: self._handle_no_match,
            RecognitionEventType.END: self._handle_end,
        }
        handlers[event.type](event)

    def _handle_start(self, event: RecognitionEngineEvent) -> None:
        self._engine_running = True
        if self._machine.current_state != SessionState.STARTING:
            return
        self._machine.transition_to(SessionState.LISTENING, "engine-start")
        self._restart_count = 0
        self._last_activity = datetime.now().timestamp()
        self._invoke('on_start')

    def _handle_results(self, event: RecognitionEngineEvent) -> None:
        for segment in event.segments:
            self._handle_segment(segment)

    def _handle_segment(self, segment: RecognitionSegment) -> None:
        selection = self._classifier.select(segment.alternatives)
        if selection is None:
            return
        alternative, classification = selection
        self._last_activity = datetime.now().timestamp()

        result = RecognitionResult(
            transcript=alternative.transcript.strip(),
            confidence=alternative.confidence or 0.0,
            is_final=segment.is_final,
            classification=classification,
        )

        if not segment.is_final:
            self._invoke('on_interim', result)
            return

        if len(result.transcript) < self._policy.min_length:
            self._logger.debug(f"Ignoring final result shorter than {self._policy.min_length} chars")
            return

        if not self._policy.accepts(result.transcript, result.confidence, classification):
            self._logger.info(
                f"Ignoring {classification.value} result '{result.transcript}' "
                f"(confidence {result.confidence:.2f} < {self._policy.threshold(classification):.2f})",
                event="low-confidence-ignored"
            )
            return

        self._logger.debug(f"✅ Accepted {result} ({result.confidence:.2f}, {classification.value})")
        self._invoke('on_result', result)

    def _handle_error(self, event: RecognitionEngineEvent) -> None:
        error = errors.build_recognition_error(
            event.error_code, event.message, run_id=event.session_id
        )
        if error.code == errors.ABORTED:
            self._logger.debug("Engine reported abort")
            return
        if error.code == errors.NO_MATCH:
            self._handle_no_match(event)
            return

        if error.recoverable:
            self._logger.warning(f"Recoverable recognition error: {error.code} ({error.message})")
            if self._machine.current_state in (SessionState.STARTING, SessionState.LISTENING):
                self._machine.transition_to(
                    SessionState.ENDING, f"error:{error.code}", cause=TerminationCause.ENGINE_TERMINATED
                )
            self._microphone.release(self.MICROPHONE_OWNER)
            self._report_error(error)
            return

        self._logger.error(f"Recognition error: {error.code} ({error.message})")
        self._fail(error)

    def _handle_no_match(self, event: RecognitionEngineEvent) -> None:
        self._report_error(errors.build_recognition_error(errors.NO_MATCH, event.message))

    def _handle_end(self, event: RecognitionEngineEvent) -> None:
        self._engine_running = False
        self._microphone.release(self.MICROPHONE_OWNER)

        state = self._machine.current_state
        if state == SessionState.IDLE:
            return

        if self._machine.termination_cause == TerminationCause.USER_STOP:
            self._logger.info("Recognition stopped")
            self._go_idle("end", TerminationCause.USER_STOP)
            return

        if state in (SessionState.STARTING, SessionState.LISTENING):
            self._machine.transition_to(
                SessionState.ENDING, "engine-end", cause=TerminationCause.ENGINE_TERMINATED
            )

        if not self._config.auto_restart:
            self._go_idle("end", TerminationCause.ENGINE_TERMINATED)
            return

        if self._restart_count >= self._config.max_auto_restarts:
            self._logger.error(
                f"Recognition restarted {self._restart_count} times without starting; giving up"
            )
            error = errors.build_recognition_error(
                errors.SERVICE_UNAVAILABLE, 'Automatic restarts exhausted',
                restart_count=self._restart_count
            )
            self._go_idle("restarts-exhausted", TerminationCause.ERROR, notify=False)
            self._report_error(error)
            self._invoke('on_end')
            return

        self._restart_count += 1
        self._restart_timer.schedule(self._config.restart_delay, self._auto_restart)

    # ------------------------------------------------------------------
    # Callbacks
    # ------------------------------------------------------------------

    def _report_error(self, error: VoiceError) -> None:
        self._invoke('on_error', error)

    def _invoke(self, name: str, *args: Any) -> None:
        callback = getattr(self._callbacks, name)
        if callback is None:
            return
        try:
            callback(*args)
        except Exception:
            self._logger.exception(f"{name} callback raised")
