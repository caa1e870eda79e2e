"""
Abstract interfaces for the collaborators the voice layer depends on.
"""

from .recognition_engine import RecognitionEngineInterface, RecognitionListener
from .synthesis_engine import SynthesisEngineInterface, SynthesisListener
from .environment import EnvironmentProbeInterface, MicrophoneStream
from .key_value_store import KeyValueStoreInterface

__all__ = [
    'RecognitionEngineInterface',
    'RecognitionListener',
    'SynthesisEngineInterface',
    'SynthesisListener',
    'EnvironmentProbeInterface',
    'MicrophoneStream',
    'KeyValueStoreInterface',
]
