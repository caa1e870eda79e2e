"""
Speech synthesis queue and voice selection.
"""

from .queue import SynthesisQueue
from .voices import describe_voice, score_voice, select_voice

__all__ = [
    'SynthesisQueue',
    'describe_voice',
    'score_voice',
    'select_voice',
]
