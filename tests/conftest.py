"""
Pytest configuration and shared fixtures for coach_voice tests.
"""

import inspect

import pytest

from coach_voice.capability.assessor import CapabilityAssessor
from coach_voice.config_models import FallbackConfig, RecognitionConfig, SynthesisConfig
from coach_voice.fallback.coordinator import FallbackCoordinator
from coach_voice.providers.environment import StaticEnvironmentProbe
from coach_voice.providers.scripted import ScriptedRecognitionEngine, ScriptedSynthesisEngine
from coach_voice.providers.storage import MemoryStore
from coach_voice.recognition.session import RecognitionSession
from coach_voice.synthesis.queue import SynthesisQueue
from coach_voice.utils.microphone import MicrophoneManager


class ManualTimer:
    """
    Stand-in for GenerationTimer that only fires when told to.

    Records every scheduled delay so backoff and restart timing can be
    asserted without sleeping.
    """

    def __init__(self, name: str):
        self.name = name
        self.generation = 0
        self.pending = False
        self.delays = []
        self._callback = None
        self._args = ()

    def is_current(self, generation: int) -> bool:
        return generation == self.generation

    def schedule(self, delay, callback, *args) -> int:
        self.cancel()
        self.delays.append(delay)
        self._callback = callback
        self._args = args
        self.pending = True
        return self.generation

    def cancel(self) -> bool:
        self.generation += 1
        dropped = self.pending
        self.pending = False
        self._callback = None
        self._args = ()
        return dropped

    def shutdown(self) -> None:
        self.cancel()

    async def fire(self) -> None:
        """Run the pending callback, awaiting it if it is a coroutine."""
        assert self.pending, f"timer '{self.name}' has nothing scheduled"
        callback, args = self._callback, self._args
        self.pending = False
        self._callback = None
        result = callback(*args)
        if inspect.isawaitable(result):
            await result


class TimerRegistry:
    """Timer factory that keeps every timer it creates, by name."""

    def __init__(self):
        self.timers = {}

    def __call__(self, name: str) -> ManualTimer:
        timer = ManualTimer(name)
        self.timers[name] = timer
        return timer

    def __getitem__(self, name: str) -> ManualTimer:
        return self.timers[name]


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class Recorder:
    """Collects callback invocations."""

    def __init__(self):
        self.calls = []

    def __call__(self, *args):
        self.calls.append(args[0] if len(args) == 1 else args)

    @property
    def count(self) -> int:
        return len(self.calls)


@pytest.fixture
def timers():
    return TimerRegistry()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def recorder():
    """Factory for independent callback recorders."""
    return Recorder


@pytest.fixture
def recognition_engine():
    return ScriptedRecognitionEngine()


@pytest.fixture
def synthesis_engine():
    return ScriptedSynthesisEngine()


@pytest.fixture
def probe():
    return StaticEnvironmentProbe(platform_info={'name': 'TestOS', 'mobile': False})


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def microphone(probe):
    return MicrophoneManager(probe)


@pytest.fixture
def session(recognition_engine, microphone, timers):
    return RecognitionSession(recognition_engine, microphone, RecognitionConfig(), timer_factory=timers)


@pytest.fixture
def queue(synthesis_engine, timers):
    return SynthesisQueue(synthesis_engine, SynthesisConfig(), timer_factory=timers)


@pytest.fixture
def assessor(probe, recognition_engine, synthesis_engine):
    return CapabilityAssessor(probe, recognition_engine, synthesis_engine)


@pytest.fixture
def coordinator(assessor, store, timers, clock):
    return FallbackCoordinator(assessor, store, FallbackConfig(), timer_factory=timers, clock=clock)
