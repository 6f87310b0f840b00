"""
Component Forge Code Generation Module

Transforms semantic component definitions into target-library components.
"""

from typing import Optional

from .adapters import create_function_registry
from .registry import AdapterRegistry, MigrationReport, compare_features
from .core.cache import GenerationCache
from .core.config import ConfigurationStore, EngineConfig, load_engine_config
from .core.generator import (
    BatchResult,
    ComponentGenerator,
    GeneratedArtifact,
    GenerationOptions,
    GenerationRequest,
)
from .core.themes import JsonThemeProvider

__version__ = "0.1.0"


def create_generator(
    config: Optional[EngineConfig] = None,
    registry: Optional[AdapterRegistry] = None,
    cache: Optional[GenerationCache] = None,
) -> ComponentGenerator:
    """
    Build a generator wired to the configured search directories.

    Args:
        config: Engine settings (defaults when omitted)
        registry: Existing adapter registry to reuse
        cache: Existing artifact cache to share

    Returns:
        ComponentGenerator ready to use
    """
    config = config or EngineConfig()
    if registry is None:
        functions = create_function_registry()
        store = ConfigurationStore.from_config(config, functions=functions)
        registry = AdapterRegistry(store=store, functions=functions)

    return ComponentGenerator(
        registry,
        cache=cache,
        theme_provider=JsonThemeProvider(config.search_dirs("themes")),
        config=config,
    )


def quick_generate(component: str, library: Optional[str] = None, **options) -> GeneratedArtifact:
    """
    Generate one built-in component with default settings.

    Args:
        component: Semantic component name
        library: Target library (the configured default when omitted)
        **options: Generation options such as ``theme`` or ``typescript``

    Returns:
        Generated artifact
    """
    generator = create_generator()
    return generator.generate(component, options or None, adapter=library)


__all__ = [
    "AdapterRegistry",
    "MigrationReport",
    "compare_features",
    "ComponentGenerator",
    "GenerationOptions",
    "GenerationRequest",
    "GeneratedArtifact",
    "BatchResult",
    "ConfigurationStore",
    "EngineConfig",
    "load_engine_config",
    "create_generator",
    "quick_generate",
]
