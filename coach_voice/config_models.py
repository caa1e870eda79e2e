"""
Pydantic configuration models with validation.
"""

from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Optional, List
import os


class RecognitionConfig(BaseModel):
    """Continuous speech recognition configuration."""
    language: str = Field("en-US", description="Recognition language")
    continuous: bool = Field(True, description="Keep listening across pauses")
    interim_results: bool = Field(True, description="Request interim results from the engine")
    max_alternatives: int = Field(3, ge=1, le=10, description="Alternatives per segment")
    min_speech_length: int = Field(1, ge=0, description="Minimum transcript length to accept")
    filler_threshold: float = Field(0.4, ge=0.0, le=1.0, description="Confidence needed for fillers")
    normal_threshold: float = Field(0.6, ge=0.0, le=1.0, description="Confidence needed for normal speech")
    filler_mode: Optional[str] = Field(None, description="Preset overriding the thresholds")
    auto_restart: bool = Field(True, description="Restart after engine-terminated sessions")
    restart_delay: float = Field(0.1, ge=0.0, le=5.0, description="Delay before an automatic restart")
    max_auto_restarts: int = Field(10, ge=0, description="Consecutive restarts without a successful start")
    settle_delay: float = Field(0.1, ge=0.0, le=5.0, description="Pause between stop and start on restart()")
    accept_unscored_results: bool = Field(False, description="Accept finals reported with zero confidence")

    @field_validator('filler_mode')
    @classmethod
    def validate_filler_mode(cls, v):
        if v is None:
            return v
        valid_modes = ['natural', 'sensitive', 'strict', 'disabled']
        if v.lower() not in valid_modes:
            raise ValueError(f'Invalid filler mode. Must be one of: {valid_modes}')
        return v.lower()

    @model_validator(mode='after')
    def validate_thresholds(self):
        if self.filler_threshold >= self.normal_threshold:
            raise ValueError('filler_threshold must be below normal_threshold')
        return self


class SynthesisConfig(BaseModel):
    """Speech synthesis queue configuration."""
    preferred_language: str = Field("en-US", description="Preferred voice language")
    preferred_gender: Optional[str] = Field("female", description="Preferred voice gender")
    preferred_names: List[str] = Field(
        default_factory=lambda: ['Samantha', 'Alex', 'Daniel', 'Karen', 'Moira', 'Tessa'],
        description="Voice names to favour"
    )
    rate: float = Field(1.0, ge=0.1, le=10.0, description="Speech rate")
    pitch: float = Field(1.0, ge=0.0, le=2.0, description="Speech pitch")
    volume: float = Field(0.8, ge=0.0, le=1.0, description="Speech volume")
    max_queue_size: int = Field(5, ge=1, le=100, description="Maximum queued utterances")
    pause_between_utterances: float = Field(0.3, ge=0.0, le=5.0, description="Pause before the next item")
    max_text_length: int = Field(1000, ge=10, description="Maximum characters per utterance")
    auto_play: bool = Field(True, description="Start playback as soon as text is queued")

    @field_validator('preferred_gender')
    @classmethod
    def validate_gender(cls, v):
        if v is None:
            return v
        valid_genders = ['female', 'male', 'neutral']
        if v.lower() not in valid_genders:
            raise ValueError(f'Invalid gender. Must be one of: {valid_genders}')
        return v.lower()


class FallbackConfig(BaseModel):
    """Fallback coordination configuration."""
    max_retries: int = Field(3, ge=0, le=10, description="Retries before forcing text mode")
    base_delay: float = Field(1.0, ge=0.0, description="First retry delay in seconds")
    max_delay: float = Field(10.0, ge=0.0, description="Retry delay cap in seconds")
    backoff_multiplier: float = Field(2.0, ge=1.0, description="Retry delay growth factor")
    state_ttl: float = Field(3600.0, gt=0.0, description="Seconds a persisted state stays valid")
    storage_key: str = Field("voiceFallbackState", description="Persisted state key prefix")
    session_id: str = Field("default", description="Session id included in the persisted key")

    @field_validator('storage_key', 'session_id')
    @classmethod
    def validate_not_empty(cls, v):
        if not v or not v.strip():
            raise ValueError('must not be empty')
        return v


class CapabilityConfig(BaseModel):
    """Capability assessment configuration."""
    permission_timeout: float = Field(2.0, gt=0.0, le=30.0, description="Permission query timeout")


class VoiceConfig(BaseModel):
    """Complete voice layer configuration."""
    recognition: RecognitionConfig = Field(default_factory=RecognitionConfig)
    synthesis: SynthesisConfig = Field(default_factory=SynthesisConfig)
    fallback: FallbackConfig = Field(default_factory=FallbackConfig)
    capability: CapabilityConfig = Field(default_factory=CapabilityConfig)
    recognition_provider: str = Field("scripted", description="Recognition engine provider")
    synthesis_provider: str = Field("scripted", description="Synthesis engine provider")
    environment_provider: str = Field("static", description="Environment probe provider")
    storage_provider: str = Field("memory", description="Key-value store provider")
    storage_path: Optional[str] = Field(None, description="File used by the json storage provider")

    @model_validator(mode='after')
    def validate_consistency(self):
        """Validate cross-section settings."""
        errors = []

        if self.fallback.base_delay > self.fallback.max_delay:
            errors.append("fallback.base_delay must not exceed fallback.max_delay")

        if self.storage_provider == 'json' and not self.storage_path:
            errors.append("storage_path required for the json storage provider")

        if errors:
            raise ValueError('; '.join(errors))

        return self

    @classmethod
    def from_env(cls) -> 'VoiceConfig':
        """Load configuration from COACH_VOICE_* environment variables."""
        recognition = {}
        synthesis = {}
        fallback = {}
        capability = {}

        _read_env(recognition, 'language', 'COACH_VOICE_LANGUAGE')
        _read_env(recognition, 'filler_mode', 'COACH_VOICE_FILLER_MODE')
        _read_env(recognition, 'filler_threshold', 'COACH_VOICE_FILLER_THRESHOLD', float)
        _read_env(recognition, 'normal_threshold', 'COACH_VOICE_NORMAL_THRESHOLD', float)
        _read_env(recognition, 'auto_restart', 'COACH_VOICE_AUTO_RESTART', _parse_bool)
        _read_env(recognition, 'max_auto_restarts', 'COACH_VOICE_MAX_AUTO_RESTARTS', int)
        _read_env(recognition, 'accept_unscored_results', 'COACH_VOICE_ACCEPT_UNSCORED', _parse_bool)

        _read_env(synthesis, 'preferred_language', 'COACH_VOICE_TTS_LANGUAGE')
        _read_env(synthesis, 'preferred_gender', 'COACH_VOICE_TTS_GENDER')
        _read_env(synthesis, 'rate', 'COACH_VOICE_TTS_RATE', float)
        _read_env(synthesis, 'volume', 'COACH_VOICE_TTS_VOLUME', float)
        _read_env(synthesis, 'max_queue_size', 'COACH_VOICE_MAX_QUEUE_SIZE', int)

        _read_env(fallback, 'max_retries', 'COACH_VOICE_MAX_RETRIES', int)
        _read_env(fallback, 'session_id', 'COACH_VOICE_SESSION_ID')

        _read_env(capability, 'permission_timeout', 'COACH_VOICE_PERMISSION_TIMEOUT', float)

        providers = {}
        _read_env(providers, 'recognition_provider', 'COACH_VOICE_RECOGNITION_PROVIDER')
        _read_env(providers, 'synthesis_provider', 'COACH_VOICE_SYNTHESIS_PROVIDER')
        _read_env(providers, 'environment_provider', 'COACH_VOICE_ENVIRONMENT_PROVIDER')
        _read_env(providers, 'storage_provider', 'COACH_VOICE_STORAGE_PROVIDER')
        _read_env(providers, 'storage_path', 'COACH_VOICE_STORAGE_PATH')

        return cls(
            recognition=RecognitionConfig(**recognition),
            synthesis=SynthesisConfig(**synthesis),
            fallback=FallbackConfig(**fallback),
            capability=CapabilityConfig(**capability),
            **providers
        )


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


def _read_env(target: dict, key: str, env_name: str, cast=str) -> None:
    value = os.getenv(env_name)
    if value is None or value == '':
        return
    target[key] = cast(value)
