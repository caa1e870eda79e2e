"""
Scripted engines for demos and tests.
"""

from .recognition import ScriptedRecognitionEngine
from .synthesis import ScriptedSynthesisEngine

__all__ = ['ScriptedRecognitionEngine', 'ScriptedSynthesisEngine']
