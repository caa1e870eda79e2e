"""
Common data structures for the voice layer.
"""

import itertools
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping


def _now() -> float:
    return datetime.now().timestamp()


class PermissionState(str, Enum):
    """Microphone permission as reported by the environment."""
    GRANTED = "granted"
    DENIED = "denied"
    PROMPT = "prompt"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> 'PermissionState':
        """Map any reported value onto the enum; anything unrecognised is UNKNOWN."""
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            return cls.UNKNOWN


class Classification(str, Enum):
    """Recognized speech classification."""
    NORMAL = "normal"
    FILLER = "filler"


class Priority(str, Enum):
    """Utterance playback priority."""
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class FallbackMode(str, Enum):
    """Operating tiers of the voice layer."""
    NONE = "none"                                  # Full voice functionality
    PARTIAL = "partial"                            # Some voice features available
    TEXT_ONLY = "text_only"                        # Text interaction only
    RETRY_PENDING = "retry_pending"                # Temporary failure, retrying
    PERMISSION_REQUIRED = "permission_required"    # Needs user permission
    UPGRADE_REQUIRED = "upgrade_required"          # Needs a different environment


class ErrorCategory(str, Enum):
    """Error categories driving fallback strategy."""
    COMPATIBILITY = "compatibility"
    PERMISSION = "permission"
    NETWORK = "network"
    INITIALIZATION = "initialization"
    RUNTIME = "runtime"
    SECURITY = "security"
    TEMPORARY = "temporary"


@dataclass(frozen=True)
class CapabilitySnapshot:
    """Point-in-time assessment of platform support for voice features."""
    recognition_supported: bool = False
    synthesis_supported: bool = False
    secure_context: bool = False
    microphone_permission: PermissionState = PermissionState.UNKNOWN
    platform: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    voice_count: int = 0
    timestamp: float = field(default_factory=_now)

    def __post_init__(self):
        # Freeze the platform mapping so the snapshot stays immutable end to end
        if not isinstance(self.platform, MappingProxyType):
            object.__setattr__(self, 'platform', MappingProxyType(dict(self.platform)))

    @property
    def can_use_recognition(self) -> bool:
        return (
            self.recognition_supported
            and self.secure_context
            and self.microphone_permission != PermissionState.DENIED
        )

    @property
    def can_use_synthesis(self) -> bool:
        return self.synthesis_supported

    @property
    def can_use_voice_mode(self) -> bool:
        return self.can_use_recognition and self.can_use_synthesis

    @property
    def readiness_level(self) -> str:
        """One of 'ready', 'needs-setup', 'limited' or 'not-ready'."""
        if not self.can_use_voice_mode:
            return 'not-ready'
        if self.microphone_permission == PermissionState.GRANTED:
            return 'ready'
        if self.microphone_permission in (PermissionState.PROMPT, PermissionState.UNKNOWN):
            return 'needs-setup'
        return 'limited'

    def to_dict(self) -> Dict[str, Any]:
        return {
            'recognition_supported': self.recognition_supported,
            'synthesis_supported': self.synthesis_supported,
            'secure_context': self.secure_context,
            'microphone_permission': self.microphone_permission.value,
            'platform': dict(self.platform),
            'voice_count': self.voice_count,
            'readiness_level': self.readiness_level,
            'timestamp': self.timestamp,
        }


@dataclass
class RecognitionAlternative:
    """One ranked hypothesis for a segment."""
    transcript: str
    confidence: float = 0.0


@dataclass
class RecognitionSegment:
    """A chunk of speech as delivered by the engine, with 1..N alternatives."""
    alternatives: List[RecognitionAlternative]
    is_final: bool = False


@dataclass
class RecognitionResult:
    """Standardized output of the recognition session."""
    transcript: str
    confidence: float
    is_final: bool
    classification: Classification = Classification.NORMAL
    timestamp: float = field(default_factory=_now)

    @property
    def is_filler(self) -> bool:
        return self.classification == Classification.FILLER

    def __str__(self) -> str:
        return f"{'[FINAL]' if self.is_final else '[PARTIAL]'} {self.transcript}"


_utterance_ids = itertools.count(1)


@dataclass
class Utterance:
    """A single request to synthesize speech."""
    text: str
    voice_ref: Optional[str] = None
    rate: float = 1.0
    pitch: float = 1.0
    volume: float = 0.8
    priority: Priority = Priority.NORMAL
    id: int = field(default_factory=lambda: next(_utterance_ids))
    estimated_duration: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        self.priority = Priority(self.priority)
        self.rate = max(0.1, min(10.0, float(self.rate)))
        self.pitch = max(0.0, min(2.0, float(self.pitch)))
        self.volume = max(0.0, min(1.0, float(self.volume)))


@dataclass
class VoiceInfo:
    """A synthesis voice offered by the engine."""
    name: str
    lang: str
    local_service: bool = False
    default: bool = False


@dataclass
class FallbackState:
    """Authoritative fallback bookkeeping; written only by the coordinator."""
    mode: FallbackMode = FallbackMode.NONE
    category: Optional[ErrorCategory] = None
    retry_count: int = 0
    last_error: Optional[Dict[str, Any]] = None
    timestamp: float = field(default_factory=_now)

    def to_persisted(self) -> Dict[str, Any]:
        """Subset of the state written to durable storage."""
        return {
            'mode': self.mode.value,
            'category': self.category.value if self.category else None,
            'retry_count': self.retry_count,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_persisted(cls, data: Dict[str, Any]) -> 'FallbackState':
        category = data.get('category')
        return cls(
            mode=FallbackMode(data['mode']),
            category=ErrorCategory(category) if category else None,
            retry_count=int(data.get('retry_count', 0)),
            timestamp=float(data['timestamp']),
        )


class RecognitionEventType(str, Enum):
    START = "start"
    END = "end"
    RESULT = "result"
    ERROR = "error"
    NO_MATCH = "no_match"


@dataclass
class RecognitionEngineEvent:
    """Event emitted by a recognition engine for one native session."""
    type: RecognitionEventType
    session_id: int
    segments: List[RecognitionSegment] = field(default_factory=list)
    error_code: Optional[str] = None
    message: Optional[str] = None


class SynthesisEventType(str, Enum):
    START = "start"
    END = "end"
    ERROR = "error"
    PAUSE = "pause"
    RESUME = "resume"


@dataclass
class SynthesisEngineEvent:
    """Per-utterance event emitted by a synthesis engine."""
    type: SynthesisEventType
    utterance_id: int
    error: Optional[str] = None
