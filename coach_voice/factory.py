"""
Factory for creating provider instances based on configuration.
"""

from typing import Any, Callable, Dict, Optional

from .config_models import VoiceConfig
from .interfaces import (
    EnvironmentProbeInterface,
    KeyValueStoreInterface,
    RecognitionEngineInterface,
    SynthesisEngineInterface,
)
from .providers.environment import StaticEnvironmentProbe
from .providers.scripted import ScriptedRecognitionEngine, ScriptedSynthesisEngine
from .providers.storage import JSONFileStore, MemoryStore


def _json_store(config: Dict[str, Any]) -> JSONFileStore:
    path = config.get('path')
    if not path:
        raise ValueError("json storage provider requires a 'path'")
    return JSONFileStore(path)


class ProviderFactory:
    """Factory for creating provider instances."""

    RECOGNITION_PROVIDERS: Dict[str, Callable[[Dict[str, Any]], RecognitionEngineInterface]] = {
        'scripted': lambda config: ScriptedRecognitionEngine(
            available=config.get('available', True),
            auto_events=config.get('auto_events', True),
        ),
    }

    SYNTHESIS_PROVIDERS: Dict[str, Callable[[Dict[str, Any]], SynthesisEngineInterface]] = {
        'scripted': lambda config: ScriptedSynthesisEngine(
            voices=config.get('voices'),
            available=config.get('available', True),
            auto_start=config.get('auto_start', True),
        ),
    }

    ENVIRONMENT_PROVIDERS: Dict[str, Callable[[Dict[str, Any]], EnvironmentProbeInterface]] = {
        'static': StaticEnvironmentProbe.from_mapping,
        'env': lambda config: StaticEnvironmentProbe.from_env(),
    }

    STORAGE_PROVIDERS: Dict[str, Callable[[Dict[str, Any]], KeyValueStoreInterface]] = {
        'memory': lambda config: MemoryStore(config.get('initial')),
        'json': _json_store,
    }

    @classmethod
    def _create(cls, kind: str, registry: Dict[str, Callable], provider_name: str, config: Optional[Dict[str, Any]]):
        if provider_name not in registry:
            available = ', '.join(registry.keys())
            raise ValueError(f"Unsupported {kind} provider: {provider_name}. Available: {available}")
        return registry[provider_name](config or {})

    @classmethod
    def create_recognition_engine(cls,
                                  provider_name: str,
                                  config: Optional[Dict[str, Any]] = None) -> RecognitionEngineInterface:
        """
        Create a recognition engine instance.

        Args:
            provider_name: Name of the provider to create
            config: Configuration for the provider

        Returns:
            RecognitionEngineInterface: Engine instance

        Raises:
            ValueError: If provider name is not supported
        """
        return cls._create('recognition', cls.RECOGNITION_PROVIDERS, provider_name, config)

    @classmethod
    def create_synthesis_engine(cls,
                                provider_name: str,
                                config: Optional[Dict[str, Any]] = None) -> SynthesisEngineInterface:
        """
        Create a synthesis engine instance.

        Raises:
            ValueError: If provider name is not supported
        """
        return cls._create('synthesis', cls.SYNTHESIS_PROVIDERS, provider_name, config)

    @classmethod
    def create_environment_probe(cls,
                                 provider_name: str,
                                 config: Optional[Dict[str, Any]] = None) -> EnvironmentProbeInterface:
        """
        Create an environment probe instance.

        Raises:
            ValueError: If provider name is not supported
        """
        return cls._create('environment', cls.ENVIRONMENT_PROVIDERS, provider_name, config)

    @classmethod
    def create_store(cls,
                     provider_name: str,
                     config: Optional[Dict[str, Any]] = None) -> KeyValueStoreInterface:
        """
        Create a key-value store instance.

        Raises:
            ValueError: If provider name is not supported
        """
        return cls._create('storage', cls.STORAGE_PROVIDERS, provider_name, config)

    @classmethod
    def create_all_providers(cls,
                             config: VoiceConfig,
                             provider_configs: Optional[Dict[str, Dict[str, Any]]] = None) -> Dict[str, Any]:
        """
        Create every provider named in a VoiceConfig.

        Args:
            config: Voice configuration selecting the providers
            provider_configs: Optional per-type provider settings keyed by
                'recognition', 'synthesis', 'environment' or 'storage'

        Returns:
            Dictionary containing all provider instances
        """
        provider_configs = provider_configs or {}
        storage_config = dict(provider_configs.get('storage', {}))
        if config.storage_path and 'path' not in storage_config:
            storage_config['path'] = config.storage_path

        return {
            'recognition': cls.create_recognition_engine(
                config.recognition_provider, provider_configs.get('recognition')
            ),
            'synthesis': cls.create_synthesis_engine(
                config.synthesis_provider, provider_configs.get('synthesis')
            ),
            'environment': cls.create_environment_probe(
                config.environment_provider, provider_configs.get('environment')
            ),
            'storage': cls.create_store(config.storage_provider, storage_config),
        }

    @classmethod
    def get_available_providers(cls) -> Dict[str, list]:
        """
        Get list of all available providers by type.

        Returns:
            Dictionary mapping provider types to available provider names
        """
        return {
            'recognition': list(cls.RECOGNITION_PROVIDERS.keys()),
            'synthesis': list(cls.SYNTHESIS_PROVIDERS.keys()),
            'environment': list(cls.ENVIRONMENT_PROVIDERS.keys()),
            'storage': list(cls.STORAGE_PROVIDERS.keys()),
        }
