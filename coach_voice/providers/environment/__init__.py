"""
Environment probe providers.
"""

from .static_probe import StaticEnvironmentProbe, StaticMicrophoneStream

__all__ = ['StaticEnvironmentProbe', 'StaticMicrophoneStream']
