"""
Abstract interface for continuous speech-recognition engines.
"""

from abc import ABC, abstractmethod
from typing import Callable

from ..models.data_models import RecognitionEngineEvent

RecognitionListener = Callable[[RecognitionEngineEvent], None]


class RecognitionEngineInterface(ABC):
    """
    Native continuous recognizer.

    Engines report everything through listener callbacks. Each event carries
    the ``session_id`` passed to ``start()`` so the consumer can discard events
    from a native session it has already abandoned.
    """

    @property
    @abstractmethod
    def is_available(self) -> bool:
        """Whether the platform provides this engine at all."""
        pass

    @abstractmethod
    def add_listener(self, listener: RecognitionListener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, listener: RecognitionListener) -> None:
        pass

    @abstractmethod
    async def start(self, session_id: int) -> None:
        """
        Begin a native recognition session.

        Args:
            session_id: Identifier echoed in every event of this session

        Raises:
            EngineUnavailableError: If the engine cannot start
        """
        pass

    @abstractmethod
    def stop(self) -> None:
        """Stop gracefully; pending results are delivered, then "end"."""
        pass

    @abstractmethod
    def abort(self) -> None:
        """Stop immediately, discarding pending results."""
        pass
