"""
Scripted recognition engine.

Emits engine events on command. Used for demos, integration wiring and
tests where no native recognizer exists.
"""

from typing import List, Optional, Sequence, Tuple, Union

from ...interfaces.recognition_engine import RecognitionEngineInterface, RecognitionListener
from ...models.data_models import (
    RecognitionAlternative,
    RecognitionEngineEvent,
    RecognitionEventType,
    RecognitionSegment,
)
from ...utils.error_handling import EngineUnavailableError

AlternativeSpec = Union[RecognitionAlternative, Tuple[str, float]]


class ScriptedRecognitionEngine(RecognitionEngineInterface):
    """
    Recognition engine whose events are driven by the caller.

    With ``auto_events`` on, start() emits "start" and stop()/abort() emit
    "end", the way a native engine acknowledges those calls.
    """

    def __init__(self, available: bool = True, auto_events: bool = True):
        self.available = available
        self.auto_events = auto_events
        self.start_error: Optional[BaseException] = None
        self.current_session_id: Optional[int] = None
        self.started_sessions: List[int] = []
        self.stop_calls = 0
        self.abort_calls = 0
        self._listeners: List[RecognitionListener] = []

    @property
    def is_available(self) -> bool:
        return self.available

    @property
    def running(self) -> bool:
        return self.current_session_id is not None

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def add_listener(self, listener: RecognitionListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: RecognitionListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    async def start(self, session_id: int) -> None:
        if not self.available:
            raise EngineUnavailableError("Speech recognition is not supported")
        if self.start_error is not None:
            raise self.start_error
        self.current_session_id = session_id
        self.started_sessions.append(session_id)
        if self.auto_events:
            self.emit(RecognitionEventType.START)

    def stop(self) -> None:
        self.stop_calls += 1
        if self.auto_events and self.running:
            self.end()

    def abort(self) -> None:
        self.abort_calls += 1
        if self.auto_events and self.running:
            self.end()

    # ------------------------------------------------------------------
    # Scripting helpers
    # ------------------------------------------------------------------

    def emit(self, event_type: RecognitionEventType, session_id: Optional[int] = None, **fields) -> None:
        sid = self.current_session_id if session_id is None else session_id
        event = RecognitionEngineEvent(type=event_type, session_id=sid if sid is not None else 0, **fields)
        for listener in list(self._listeners):
            listener(event)

    def say(self, alternatives: Sequence[AlternativeSpec], is_final: bool = True) -> None:
        """Deliver one segment built from (transcript, confidence) pairs."""
        segment = RecognitionSegment(
            alternatives=[
                alt if isinstance(alt, RecognitionAlternative) else RecognitionAlternative(*alt)
                for alt in alternatives
            ],
            is_final=is_final,
        )
        self.emit(RecognitionEventType.RESULT, segments=[segment])

    def say_final(self, transcript: str, confidence: float = 0.9) -> None:
        self.say([(transcript, confidence)], is_final=True)

    def say_interim(self, transcript: str, confidence: float = 0.0) -> None:
        self.say([(transcript, confidence)], is_final=False)

    def fail(self, error_code: str, message: Optional[str] = None) -> None:
        self.emit(RecognitionEventType.ERROR, error_code=error_code, message=message)

    def no_match(self) -> None:
        self.emit(RecognitionEventType.NO_MATCH)

    def end(self) -> None:
        """End the native session, as after silence or a fault."""
        sid = self.current_session_id
        self.current_session_id = None
        self.emit(RecognitionEventType.END, session_id=sid)
