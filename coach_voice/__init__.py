"""
Coach Voice - voice interaction layer for a conversational coaching app.

This package provides:
- Continuous speech recognition with filler-aware confidence gating
- A bounded, prioritized speech synthesis queue
- Capability assessment of the host environment
- Fallback coordination with backoff retries and persisted state

Usage:
    from coach_voice import VoiceOrchestrator, get_voice_config

    orchestrator = VoiceOrchestrator.from_config(get_voice_config())
    await orchestrator.initialize()
    await orchestrator.start_listening(on_result=handle_result)
    orchestrator.speak("Tell me about a project you led.")
"""

from .orchestrator import VoiceOrchestrator
from .factory import ProviderFactory
from .config import get_voice_config
from .config_models import VoiceConfig
from .utils.logging_config import setup_logging, get_logger
from . import interfaces
from . import models
from . import providers

__version__ = "0.1.0"

__all__ = [
    'VoiceOrchestrator',
    'ProviderFactory',
    'get_voice_config',
    'VoiceConfig',
    'setup_logging',
    'get_logger',
    'interfaces',
    'models',
    'providers',
]
