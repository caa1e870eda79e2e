"""
Data models for the voice layer.
"""

from .data_models import (
    PermissionState,
    Classification,
    Priority,
    FallbackMode,
    ErrorCategory,
    CapabilitySnapshot,
    RecognitionAlternative,
    RecognitionSegment,
    RecognitionResult,
    Utterance,
    VoiceInfo,
    FallbackState,
    RecognitionEventType,
    RecognitionEngineEvent,
    SynthesisEventType,
    SynthesisEngineEvent,
)

__all__ = [
    'PermissionState',
    'Classification',
    'Priority',
    'FallbackMode',
    'ErrorCategory',
    'CapabilitySnapshot',
    'RecognitionAlternative',
    'RecognitionSegment',
    'RecognitionResult',
    'Utterance',
    'VoiceInfo',
    'FallbackState',
    'RecognitionEventType',
    'RecognitionEngineEvent',
    'SynthesisEventType',
    'SynthesisEngineEvent',
]
