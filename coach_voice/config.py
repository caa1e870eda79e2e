"""
Configuration for the voice layer.
Organized into discrete feature sections for clarity.
"""

import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .config_models import VoiceConfig


# =============================================================================
# SECTION 1: ENVIRONMENT
# =============================================================================

# Load environment variables from the project root
project_dir = Path(__file__).parent.parent
env_path = project_dir / ".env"
if env_path.exists():
    load_dotenv(env_path)


# =============================================================================
# SECTION 2: PROVIDER SELECTION
# =============================================================================

RECOGNITION_PROVIDER = os.getenv("COACH_VOICE_RECOGNITION_PROVIDER", "scripted")
SYNTHESIS_PROVIDER = os.getenv("COACH_VOICE_SYNTHESIS_PROVIDER", "scripted")
ENVIRONMENT_PROVIDER = os.getenv("COACH_VOICE_ENVIRONMENT_PROVIDER", "env")
STORAGE_PROVIDER = os.getenv("COACH_VOICE_STORAGE_PROVIDER", "memory")  # Options: "memory", "json"
STORAGE_PATH = os.getenv("COACH_VOICE_STORAGE_PATH")


# =============================================================================
# SECTION 3: RECOGNITION
# =============================================================================

RECOGNITION_CONFIG = {
    "language": "en-US",
    "continuous": True,
    "interim_results": True,
    "max_alternatives": 3,
    "min_speech_length": 1,
    "filler_threshold": 0.4,   # Hesitations need less confidence
    "normal_threshold": 0.6,
    "auto_restart": True,
    "restart_delay": 0.1,
    "max_auto_restarts": 10,
    "accept_unscored_results": False,
}


# =============================================================================
# SECTION 4: SYNTHESIS
# =============================================================================

SYNTHESIS_CONFIG = {
    "preferred_language": "en-US",
    "preferred_gender": "female",
    "preferred_names": ["Samantha", "Alex", "Daniel", "Karen", "Moira", "Tessa"],
    "rate": 1.0,
    "pitch": 1.0,
    "volume": 0.8,
    "max_queue_size": 5,
    "pause_between_utterances": 0.3,
    "max_text_length": 1000,
    "auto_play": True,
}


# =============================================================================
# SECTION 5: FALLBACK & CAPABILITY
# =============================================================================

FALLBACK_CONFIG = {
    "max_retries": 3,
    "base_delay": 1.0,
    "max_delay": 10.0,
    "backoff_multiplier": 2.0,
    "state_ttl": 3600.0,      # Persisted state older than an hour is stale
    "storage_key": "voiceFallbackState",
    "session_id": os.getenv("COACH_VOICE_SESSION_ID", "default"),
}

CAPABILITY_CONFIG = {
    "permission_timeout": 2.0,
}


# =============================================================================
# SECTION 6: LOGGING
# =============================================================================

LOGGING_CONFIG = {
    "level": os.getenv("COACH_VOICE_LOG_LEVEL", "INFO"),
    "log_file": os.getenv("COACH_VOICE_LOG_FILE"),
    "use_colors": True,
    "use_emojis": True,
}


# =============================================================================
# SECTION 7: PRESETS
# =============================================================================

VOICE_CONFIG = {
    "recognition": RECOGNITION_CONFIG,
    "synthesis": SYNTHESIS_CONFIG,
    "fallback": FALLBACK_CONFIG,
    "capability": CAPABILITY_CONFIG,
}

PRESET_OVERRIDES: Dict[str, Dict[str, Dict[str, Any]]] = {
    "default": {},
    # Lenient acceptance for noisy rooms
    "sensitive": {"recognition": {"filler_mode": "sensitive"}},
    "strict": {"recognition": {"filler_mode": "strict"}},
    # Fast timings for tests
    "test": {
        "recognition": {"restart_delay": 0.0, "settle_delay": 0.0},
        "synthesis": {"pause_between_utterances": 0.0},
        "fallback": {"base_delay": 0.01, "max_delay": 0.05},
        "capability": {"permission_timeout": 0.5},
    },
}


def get_voice_config(preset: Optional[str] = None) -> VoiceConfig:
    """
    Assemble a validated VoiceConfig.

    Args:
        preset: Name from PRESET_OVERRIDES, or None for defaults

    Returns:
        VoiceConfig

    Raises:
        ValueError: If the preset is unknown or the result fails validation
    """
    name = (preset or "default").lower()
    if name not in PRESET_OVERRIDES:
        available = ', '.join(PRESET_OVERRIDES.keys())
        raise ValueError(f"Unknown preset: {name}. Available: {available}")

    sections = {key: dict(value) for key, value in VOICE_CONFIG.items()}
    for section, overrides in PRESET_OVERRIDES[name].items():
        sections[section].update(overrides)

    return VoiceConfig(
        recognition_provider=RECOGNITION_PROVIDER,
        synthesis_provider=SYNTHESIS_PROVIDER,
        environment_provider=ENVIRONMENT_PROVIDER,
        storage_provider=STORAGE_PROVIDER,
        storage_path=STORAGE_PATH,
        **sections,
    )


def validate_environment() -> Dict[str, Any]:
    """Check environment-driven settings without raising."""
    results = {"valid": True, "errors": [], "warnings": [], "info": []}

    if STORAGE_PROVIDER == "json" and not STORAGE_PATH:
        results["errors"].append("COACH_VOICE_STORAGE_PATH required for json storage")
        results["valid"] = False
    elif STORAGE_PATH:
        results["info"].append(f"Fallback state file: {STORAGE_PATH}")

    if not env_path.exists():
        results["warnings"].append(f".env not found at {env_path}, using process environment")

    return results
