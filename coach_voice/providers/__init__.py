"""
Concrete implementations of the voice layer interfaces.
"""

from .storage import MemoryStore, JSONFileStore
from .environment import StaticEnvironmentProbe
from .scripted import ScriptedRecognitionEngine, ScriptedSynthesisEngine

__all__ = [
    'MemoryStore',
    'JSONFileStore',
    'StaticEnvironmentProbe',
    'ScriptedRecognitionEngine',
    'ScriptedSynthesisEngine',
]
