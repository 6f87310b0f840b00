"""
Core generation components.

Provides the definition records, rule system, transformation engine and
generation pipeline shared by every target-library adapter.
"""

from .adapter import Adapter
from .cache import GenerationCache, make_fingerprint
from .config import ConfigurationStore, EngineConfig, load_engine_config, save_engine_config
from .errors import (
    AdapterLoadError,
    CircularDependencyError,
    CollisionWarning,
    ComponentNotSupported,
    ConfigError,
    ConfigInvalid,
    ConfigNotFound,
    ConfigParseError,
    ConfigValidationError,
    DependencyFailed,
    ForgeError,
    MissingComputationInput,
    RegistryError,
    TransformationError,
    UnknownTransformationType,
)
from .functions import FunctionRegistry, UnknownFunction
from .generator import (
    BatchResult,
    ComponentGenerator,
    ComponentState,
    GeneratedArtifact,
    GenerationOptions,
    GenerationRequest,
)
from .graph import DependencyGraph
from .naming import NamingCase, convert_case
from .resolver import DependencyResolver
from .rules import RuleKind, WrappedHandler, parse_rule
from .schema import AdapterDefinition, SemanticComponentDefinition
from .templates import TemplateEngine, TemplateError
from .themes import JsonThemeProvider, ThemeProvider
from .transforms import TransformationEngine
from .validation import ConfigValidator, ValidationResult

__all__ = [
    # Definitions and configuration
    "SemanticComponentDefinition",
    "AdapterDefinition",
    "ConfigurationStore",
    "EngineConfig",
    "load_engine_config",
    "save_engine_config",
    "ConfigValidator",
    "ValidationResult",
    # Rules and transformation
    "RuleKind",
    "WrappedHandler",
    "parse_rule",
    "FunctionRegistry",
    "UnknownFunction",
    "TransformationEngine",
    "TemplateEngine",
    "TemplateError",
    "Adapter",
    # Dependencies
    "DependencyGraph",
    "DependencyResolver",
    # Generation
    "ComponentGenerator",
    "ComponentState",
    "GenerationOptions",
    "GenerationRequest",
    "GeneratedArtifact",
    "BatchResult",
    "GenerationCache",
    "make_fingerprint",
    "ThemeProvider",
    "JsonThemeProvider",
    # Naming utilities
    "NamingCase",
    "convert_case",
    # Errors
    "ForgeError",
    "ConfigError",
    "ConfigNotFound",
    "ConfigParseError",
    "ConfigValidationError",
    "ConfigInvalid",
    "ComponentNotSupported",
    "TransformationError",
    "UnknownTransformationType",
    "MissingComputationInput",
    "CircularDependencyError",
    "DependencyFailed",
    "RegistryError",
    "AdapterLoadError",
    "CollisionWarning",
]
