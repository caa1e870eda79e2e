"""
Abstract interface for speech-synthesis engines.
"""

from abc import ABC, abstractmethod
from typing import Callable, List

from ..models.data_models import SynthesisEngineEvent, Utterance, VoiceInfo

SynthesisListener = Callable[[SynthesisEngineEvent], None]


class SynthesisEngineInterface(ABC):
    """Native synthesizer that plays one utterance at a time."""

    @property
    @abstractmethod
    def is_available(self) -> bool:
        pass

    @abstractmethod
    def get_voices(self) -> List[VoiceInfo]:
        """
        List installed voices.

        Returns:
            List[VoiceInfo]: May be empty while the engine is still loading
        """
        pass

    @abstractmethod
    def speak(self, utterance: Utterance) -> None:
        """
        Start playing an utterance.

        Progress is reported through listener events tagged with ``utterance.id``.
        """
        pass

    @abstractmethod
    def cancel(self) -> None:
        """Stop the current utterance."""
        pass

    @abstractmethod
    def pause(self) -> None:
        pass

    @abstractmethod
    def resume(self) -> None:
        pass

    @abstractmethod
    def add_listener(self, listener: SynthesisListener) -> None:
        pass

    @abstractmethod
    def remove_listener(self, listener: SynthesisListener) -> None:
        pass
