"""
Recognition session state machine.
"""

from enum import Enum, auto
from typing import Optional, Dict, Any, List
from dataclasses import dataclass, field
from datetime import datetime

from .logging_config import get_logger


class SessionState(Enum):
    """Recognition session states."""
    IDLE = auto()
    STARTING = auto()
    LISTENING = auto()
    ENDING = auto()


class TerminationCause(Enum):
    """Why a native session is ending."""
    USER_STOP = auto()          # stop() was called
    ENGINE_TERMINATED = auto()  # engine ended on its own (timeout, transient fault)
    ERROR = auto()              # non-recoverable error


@dataclass
class StateTransition:
    """Record of a state transition."""
    from_state: SessionState
    to_state: SessionState
    event: str
    timestamp: float = field(default_factory=lambda: datetime.now().timestamp())
    metadata: Dict[str, Any] = field(default_factory=dict)


class SessionStateMachine:
    """
    Validated lifecycle for one logical recognition session.

    Idle -> Starting -> Listening -> Ending -> Idle, with Ending -> Starting
    for automatic restarts and any state -> Idle on error.

    Features:
    - Validates state transitions
    - Records the termination cause of the native session
    - State history tracking
    """

    _VALID_TRANSITIONS = {
        SessionState.IDLE: [SessionState.STARTING],
        SessionState.STARTING: [SessionState.LISTENING, SessionState.ENDING, SessionState.IDLE],
        SessionState.LISTENING: [SessionState.ENDING, SessionState.IDLE],
        SessionState.ENDING: [SessionState.IDLE, SessionState.STARTING],
    }

    def __init__(self, max_history: int = 50):
        self._state = SessionState.IDLE
        self._cause: Optional[TerminationCause] = None
        self._history: List[StateTransition] = []
        self._max_history = max_history
        self._logger = get_logger("recognition")

    @property
    def current_state(self) -> SessionState:
        return self._state

    @property
    def termination_cause(self) -> Optional[TerminationCause]:
        return self._cause

    def transition_to(
        self,
        target_state: SessionState,
        event: str,
        cause: Optional[TerminationCause] = None,
        metadata: Optional[Dict[str, Any]] = None
    ) -> None:
        """
        Move to a new state.

        Args:
            target_state: Desired state
            event: Name of the event causing the transition
            cause: Termination cause to record when entering ENDING or IDLE
            metadata: Optional metadata about the transition

        Raises:
            ValueError: If transition is invalid
        """
        if target_state == self._state:
            return
        if target_state not in self._VALID_TRANSITIONS[self._state]:
            raise ValueError(
                f"Invalid transition: {self._state.name} → {target_state.name} ({event})"
            )

        self._history.append(StateTransition(
            from_state=self._state,
            to_state=target_state,
            event=event,
            metadata=metadata or {}
        ))
        if len(self._history) > self._max_history:
            self._history.pop(0)

        self._logger.debug(f"🔄 {self._state.name} → {target_state.name} ({event})")
        self._state = target_state

        if target_state == SessionState.STARTING:
            self._cause = None
        elif cause is not None:
            self._cause = cause

    def set_cause(self, cause: TerminationCause) -> None:
        """Override the cause of a termination already in progress."""
        self._cause = cause

    def clear_cause(self) -> None:
        self._cause = None

    def get_transition_history(self, last_n: int = 10) -> List[StateTransition]:
        return self._history[-last_n:]

    def get_status(self) -> Dict[str, Any]:
        return {
            'state': self._state.name,
            'termination_cause': self._cause.name if self._cause else None,
            'history_size': len(self._history),
            'last_transition': self._history[-1] if self._history else None
        }
