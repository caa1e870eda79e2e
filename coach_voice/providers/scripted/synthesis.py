"""
Scripted synthesis engine.

Records what it is asked to speak and reports progress when told to.
"""

from typing import List, Optional

from ...interfaces.synthesis_engine import SynthesisEngineInterface, SynthesisListener
from ...models.data_models import SynthesisEngineEvent, SynthesisEventType, Utterance, VoiceInfo

DEFAULT_VOICES = [
    VoiceInfo(name='Samantha', lang='en-US', local_service=True, default=True),
    VoiceInfo(name='Daniel', lang='en-GB', local_service=True),
    VoiceInfo(name='Google US English', lang='en-US', local_service=False),
]


class ScriptedSynthesisEngine(SynthesisEngineInterface):
    """
    Synthesis engine driven by the caller.

    speak() emits "start" immediately when ``auto_start`` is on; the caller
    finishes the utterance with finish() or fail(). cancel() reports the
    cancelled utterance as interrupted, as native engines do.
    """

    def __init__(
        self,
        voices: Optional[List[VoiceInfo]] = None,
        available: bool = True,
        auto_start: bool = True,
    ):
        self.available = available
        self.auto_start = auto_start
        self.voices = list(DEFAULT_VOICES if voices is None else voices)
        self.current: Optional[Utterance] = None
        self.spoken: List[Utterance] = []
        self.cancelled: List[int] = []
        self.paused = False
        self._listeners: List[SynthesisListener] = []

    @property
    def is_available(self) -> bool:
        return self.available

    def get_voices(self) -> List[VoiceInfo]:
        return list(self.voices)

    def add_listener(self, listener: SynthesisListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: SynthesisListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def speak(self, utterance: Utterance) -> None:
        self.current = utterance
        self.spoken.append(utterance)
        self.paused = False
        if self.auto_start:
            self._emit(SynthesisEventType.START, utterance.id)

    def cancel(self) -> None:
        utterance, self.current = self.current, None
        self.paused = False
        if utterance is not None:
            self.cancelled.append(utterance.id)
            self._emit(SynthesisEventType.ERROR, utterance.id, error='interrupted')

    def pause(self) -> None:
        if self.current is not None and not self.paused:
            self.paused = True
            self._emit(SynthesisEventType.PAUSE, self.current.id)

    def resume(self) -> None:
        if self.current is not None and self.paused:
            self.paused = False
            self._emit(SynthesisEventType.RESUME, self.current.id)

    # ------------------------------------------------------------------
    # Scripting helpers
    # ------------------------------------------------------------------

    def begin(self) -> None:
        """Emit "start" for the current utterance when auto_start is off."""
        if self.current is not None:
            self._emit(SynthesisEventType.START, self.current.id)

    def finish(self) -> None:
        """Complete the current utterance."""
        utterance, self.current = self.current, None
        if utterance is not None:
            self._emit(SynthesisEventType.END, utterance.id)

    def fail(self, error: str = 'synthesis-failed') -> None:
        utterance, self.current = self.current, None
        if utterance is not None:
            self._emit(SynthesisEventType.ERROR, utterance.id, error=error)

    def _emit(self, event_type: SynthesisEventType, utterance_id: int, error: Optional[str] = None) -> None:
        event = SynthesisEngineEvent(type=event_type, utterance_id=utterance_id, error=error)
        for listener in list(self._listeners):
            listener(event)
