"""
Serialized speech playback queue.
"""

import asyncio
from collections import deque
from typing import Any, Callable, Deque, Dict, List, Optional

from ..config_models import SynthesisConfig
from ..interfaces.synthesis_engine import SynthesisEngineInterface
from ..models.data_models import (
    ErrorCategory,
    Priority,
    SynthesisEngineEvent,
    SynthesisEventType,
    Utterance,
    VoiceInfo,
)
from ..utils.error_handling import VoiceError
from ..utils.logging_config import get_logger
from ..utils.text_processing import estimate_speech_duration, normalize_for_speech
from ..utils.timers import GenerationTimer
from .voices import VoiceDescription, describe_voice, select_voice

QueueListener = Callable[[str, Dict[str, Any]], Any]

# Listener event names
STARTED = 'started'
ENDED = 'ended'
CANCELLED = 'cancelled'
ERROR = 'error'
PAUSED = 'paused'
RESUMED = 'resumed'
QUEUE_CHANGED = 'queue_changed'


class SynthesisQueue:
    """
    Plays utterances one at a time through a synthesis engine.

    Features:
    - Bounded FIFO queue that drops the oldest waiting item on overflow
    - Interrupting speech that cancels the current utterance and plays at once
    - Pause between utterances
    - Pause/resume passthrough while something plays
    - Engine errors are reported and skipped, never fatal
    """

    def __init__(
        self,
        engine: SynthesisEngineInterface,
        config: Optional[SynthesisConfig] = None,
        timer_factory: Callable[[str], GenerationTimer] = GenerationTimer,
    ):
        self._engine = engine
        self._config = config or SynthesisConfig()
        self._queue: Deque[Utterance] = deque()
        self._current: Optional[Utterance] = None
        self._is_speaking = False
        self._is_paused = False
        self._next_timer = timer_factory("synthesis-next")
        self._listeners: List[QueueListener] = []
        self._idle_waiters: List[asyncio.Future] = []
        self._selected_voice: Optional[VoiceInfo] = None
        self._logger = get_logger("synthesis")

        self._engine.add_listener(self._on_engine_event)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def current(self) -> Optional[Utterance]:
        return self._current

    @property
    def is_speaking(self) -> bool:
        return self._is_speaking

    @property
    def is_paused(self) -> bool:
        return self._is_paused

    @property
    def is_idle(self) -> bool:
        return self._current is None and not self._queue

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    def queued(self) -> List[Utterance]:
        return list(self._queue)

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def add_listener(self, listener: QueueListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: QueueListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _emit(self, event: str, **data: Any) -> None:
        for listener in list(self._listeners):
            try:
                listener(event, data)
            except Exception:
                self._logger.exception(f"Synthesis listener failed on '{event}'")

    # ------------------------------------------------------------------
    # Voices
    # ------------------------------------------------------------------

    @property
    def selected_voice(self) -> Optional[VoiceInfo]:
        return self._selected_voice

    def refresh_voices(self) -> Optional[VoiceInfo]:
        """Re-read the engine's voices and select the best match."""
        voices = self._engine.get_voices()
        self._selected_voice = select_voice(
            voices,
            preferred_language=self._config.preferred_language,
            preferred_gender=self._config.preferred_gender,
            preferred_names=self._config.preferred_names,
        )
        if self._selected_voice:
            self._logger.info(f"🗣️  Selected voice: {self._selected_voice.name} ({self._selected_voice.lang})")
        else:
            self._logger.warning("No voices available for selection")
        return self._selected_voice

    def get_available_voices(self) -> List[VoiceDescription]:
        return [describe_voice(voice) for voice in self._engine.get_voices()]

    def set_voice(self, name: str) -> bool:
        """Select a voice by exact name. Keeps the current selection if not found."""
        for voice in self._engine.get_voices():
            if voice.name == name:
                self._selected_voice = voice
                self._logger.info(f"Voice changed to: {name}")
                return True
        self._logger.warning(f"Voice '{name}' not found, keeping current selection")
        return False

    # ------------------------------------------------------------------
    # Queueing
    # ------------------------------------------------------------------

    def create_utterance(
        self,
        text: str,
        priority: Priority = Priority.NORMAL,
        voice: Optional[str] = None,
        rate: Optional[float] = None,
        pitch: Optional[float] = None,
        volume: Optional[float] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Optional[Utterance]:
        """
        Normalize text and build an utterance with the configured defaults.

        Returns:
            Utterance, or None when nothing speakable remains
        """
        spoken = normalize_for_speech(text, self._config.max_text_length)
        if not spoken:
            return None

        if voice is None:
            if self._selected_voice is None:
                self.refresh_voices()
            voice = self._selected_voice.name if self._selected_voice else None

        rate = self._config.rate if rate is None else rate
        return Utterance(
            text=spoken,
            voice_ref=voice,
            rate=rate,
            pitch=self._config.pitch if pitch is None else pitch,
            volume=self._config.volume if volume is None else volume,
            priority=priority,
            estimated_duration=estimate_speech_duration(spoken, rate),
            metadata=dict(metadata or {}),
        )

    def enqueue(self, utterance: Utterance) -> Optional[int]:
        """
        Add an utterance to the back of the queue.

        The text is normalized first. When the queue is full the oldest
        waiting item is dropped; the playing utterance is never touched.

        Returns:
            1-based queue position, or None if the text was empty
        """
        spoken = normalize_for_speech(utterance.text, self._config.max_text_length)
        if not spoken:
            self._logger.debug("Skipping empty utterance")
            return None
        utterance.text = spoken
        if utterance.estimated_duration is None:
            utterance.estimated_duration = estimate_speech_duration(spoken, utterance.rate)

        if len(self._queue) >= self._config.max_queue_size:
            dropped = self._queue.popleft()
            self._logger.warning(f"Queue full, dropped utterance {dropped.id}")

        self._queue.append(utterance)
        position = len(self._queue)
        self._emit(QUEUE_CHANGED, length=len(self._queue))

        if self._config.auto_play:
            self._process_queue()
        return position

    def speak(
        self,
        text: str,
        interrupt: bool = False,
        priority: Priority = Priority.NORMAL,
        **options: Any
    ) -> Optional[Utterance]:
        """
        Speak text, queueing it behind current playback by default.

        Args:
            text: Text to speak (markup is stripped)
            interrupt: Cancel current playback and play this immediately
            priority: HIGH behaves like interrupt
            **options: voice, rate, pitch, volume, metadata

        Returns:
            The utterance created, or None if the text was empty
        """
        priority = Priority(priority)
        utterance = self.create_utterance(text, priority=priority, **options)
        if utterance is None:
            return None

        if interrupt or priority == Priority.HIGH:
            if self._current is not None:
                self._cancel_current()
            self._next_timer.cancel()
            self._play(utterance)
            return utterance

        self.enqueue(utterance)
        return utterance

    def play_queued(self) -> None:
        """Start playing queued items when auto_play is off."""
        self._process_queue()

    def stop(self) -> None:
        """Cancel current playback and clear the queue."""
        self._next_timer.cancel()
        had_queue = bool(self._queue)
        self._queue.clear()
        if self._current is not None:
            self._cancel_current()
        if had_queue:
            self._emit(QUEUE_CHANGED, length=0)
        self._resolve_idle()

    def pause(self) -> bool:
        """Pause the current utterance. Returns False if nothing plays."""
        if self._current is None or self._is_paused:
            return False
        self._engine.pause()
        return True

    def resume(self) -> bool:
        """Resume paused playback. No-op when nothing is paused."""
        if self._current is None or not self._is_paused:
            return False
        self._engine.resume()
        return True

    async def wait_until_idle(self) -> None:
        """Wait until nothing is playing or queued."""
        if self.is_idle:
            return
        waiter = asyncio.get_running_loop().create_future()
        self._idle_waiters.append(waiter)
        await waiter

    # ------------------------------------------------------------------
    # Playback
    # ------------------------------------------------------------------

    def _process_queue(self) -> None:
        if self._current is not None or self._next_timer.pending:
            return
        if not self._queue:
            self._resolve_idle()
            return
        utterance = self._queue.popleft()
        self._emit(QUEUE_CHANGED, length=len(self._queue))
        self._play(utterance)

    def _play(self, utterance: Utterance) -> None:
        self._current = utterance
        self._is_speaking = False
        self._is_paused = False
        self._logger.debug(f"🔊 Speaking utterance {utterance.id}: {utterance.text[:50]}")
        try:
            self._engine.speak(utterance)
        except Exception as e:
            self._logger.error(f"Engine failed to speak utterance {utterance.id}: {e}")
            self._finish(utterance, self._build_error(str(e) or type(e).__name__, utterance, e))

    def _cancel_current(self) -> None:
        cancelled = self._current
        self._current = None
        self._is_speaking = False
        self._is_paused = False
        try:
            self._engine.cancel()
        except Exception as e:
            self._logger.warning(f"Engine cancel failed: {e}")
        self._logger.debug(f"Cancelled utterance {cancelled.id}")
        self._emit(CANCELLED, utterance=cancelled)

    def _finish(self, utterance: Utterance, error: Optional[VoiceError]) -> None:
        self._current = None
        self._is_speaking = False
        self._is_paused = False

        if error is None:
            self._emit(ENDED, utterance=utterance)
        else:
            self._emit(ERROR, utterance=utterance, error=error)

        if self._current is not None:
            # A listener started new playback
            return
        if self._queue and self._config.auto_play:
            self._next_timer.schedule(self._config.pause_between_utterances, self._play_next)
        elif not self._queue:
            self._resolve_idle()

    def _play_next(self) -> None:
        self._process_queue()

    def _build_error(
        self,
        message: str,
        utterance: Utterance,
        exception: Optional[BaseException] = None
    ) -> VoiceError:
        return VoiceError(
            code='synthesis-error',
            message=message,
            recoverable=True,
            category=ErrorCategory.RUNTIME,
            suggestion='Continue in text mode if speech keeps failing',
            component='synthesis',
            exception=exception,
            context={'utterance_id': utterance.id},
        )

    def _resolve_idle(self) -> None:
        if not self.is_idle:
            return
        waiters, self._idle_waiters = self._idle_waiters, []
        for waiter in waiters:
            if not waiter.done():
                waiter.set_result(None)

    # ------------------------------------------------------------------
    # Engine events
    # ------------------------------------------------------------------

    def _on_engine_event(self, event: SynthesisEngineEvent) -> None:
        current = self._current
        if current is None or event.utterance_id != current.id:
            self._logger.debug(f"Ignoring stale {event.type.value} event for utterance {event.utterance_id}")
            return

        if event.type == SynthesisEventType.START:
            self._is_speaking = True
            self._emit(STARTED, utterance=current)
        elif event.type == SynthesisEventType.END:
            self._finish(current, None)
        elif event.type == SynthesisEventType.ERROR:
            message = f"Speech synthesis error: {event.error or 'unknown'}"
            self._logger.warning(message)
            self._finish(current, self._build_error(message, current))
        elif event.type == SynthesisEventType.PAUSE:
            self._is_paused = True
            self._emit(PAUSED, utterance=current)
        elif event.type == SynthesisEventType.RESUME:
            self._is_paused = False
            self._emit(RESUMED, utterance=current)

    # ------------------------------------------------------------------
    # Status and lifecycle
    # ------------------------------------------------------------------

    def configure(self, **updates: Any) -> None:
        """
        Update settings at runtime.

        Raises:
            ValueError: If a value fails validation
        """
        merged = self._config.model_dump()
        merged.update(updates)
        self._config = SynthesisConfig(**merged)
        if {'preferred_language', 'preferred_gender', 'preferred_names'} & set(updates):
            self.refresh_voices()
        self._logger.info(f"Synthesis configuration updated: {sorted(updates)}")

    def get_status(self) -> Dict[str, Any]:
        return {
            'is_speaking': self._is_speaking,
            'is_paused': self._is_paused,
            'current_utterance': self._current.id if self._current else None,
            'queue_size': len(self._queue),
            'next_pending': self._next_timer.pending,
            'selected_voice': self._selected_voice.name if self._selected_voice else None,
            'config': self._config.model_dump(),
        }

    def dispose(self) -> None:
        self.stop()
        self._engine.remove_listener(self._on_engine_event)
        self._next_timer.shutdown()
        self._listeners.clear()
        for waiter in self._idle_waiters:
            if not waiter.done():
                waiter.cancel()
        self._idle_waiters = []
