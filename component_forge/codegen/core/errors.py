"""
Exception hierarchy for the generation engine.

Every error carries a human readable message plus an optional ``details``
dict so batch summaries can report structured causes.
"""

from typing import Any, Dict, List, Optional, Sequence


class ForgeError(Exception):
    """Base exception for all component_forge errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        if self.details:
            detail_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({detail_str})"
        return self.message


# Configuration errors


class ConfigError(ForgeError):
    """Base class for configuration loading and validation failures."""

    pass


class ConfigNotFound(ConfigError):
    """Raised when a component or adapter configuration does not exist."""

    def __init__(self, name: str, searched: Sequence[str] = ()):
        super().__init__(f"Configuration not found: {name}")
        self.name = name
        self.searched = list(searched)


class ConfigParseError(ConfigError):
    """Raised when a configuration document is malformed."""

    def __init__(self, source: str, reason: str):
        super().__init__(f"Failed to parse configuration {source}: {reason}")
        self.source = source
        self.reason = reason


class ConfigValidationError(ConfigError):
    """Raised when a configuration is structurally invalid."""

    def __init__(
        self, source: str, errors: List[str], warnings: Optional[List[str]] = None
    ):
        super().__init__(
            f"Configuration {source} is invalid: " + "; ".join(errors),
        )
        self.source = source
        self.errors = list(errors)
        self.warnings = list(warnings or [])


class ConfigInvalid(ConfigError):
    """Raised when an adapter definition fails construction-time validation."""

    def __init__(self, adapter: str, errors: List[str]):
        super().__init__(f"Adapter '{adapter}' is invalid: " + "; ".join(errors))
        self.adapter = adapter
        self.errors = list(errors)


# Adapter / generation errors


class ComponentNotSupported(ForgeError):
    """Raised when the active adapter has no mapping for a semantic component."""

    def __init__(self, component: str, adapter: str):
        super().__init__(
            f"Component '{component}' is not supported by adapter '{adapter}'"
        )
        self.component = component
        self.adapter = adapter


class TransformationError(ForgeError):
    """Base class for prop/event/slot transformation failures."""

    def __init__(self, message: str, component: str, prop: str):
        super().__init__(message, {"component": component, "prop": prop})
        self.component = component
        self.prop = prop


class UnknownTransformationType(TransformationError):
    """Raised when a rule declares a type the engine does not know."""

    def __init__(self, component: str, prop: str, rule_type: Any = None):
        super().__init__(
            f"Unknown transformation type {rule_type!r}", component, prop
        )
        self.rule_type = rule_type


class MissingComputationInput(TransformationError):
    """Raised when a computed rule fails or lacks one of its inputs."""

    def __init__(self, component: str, prop: str, reason: str = ""):
        message = "Computed transformation could not be evaluated"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message, component, prop)
        self.reason = reason


class CircularDependencyError(ForgeError):
    """Raised when a dependency graph contains a cycle."""

    def __init__(self, cycle: Sequence[str], kind: str = "component"):
        self.cycle = list(cycle)
        self.kind = kind
        super().__init__(
            f"Circular {kind} dependency detected: {', '.join(self.cycle)}"
        )


class DependencyFailed(ForgeError):
    """Raised for a component whose dependency failed to generate."""

    def __init__(self, component: str, dependency: str, cause: Optional[BaseException] = None):
        super().__init__(
            f"Dependency '{dependency}' of '{component}' failed",
            {"cause": type(cause).__name__} if cause else None,
        )
        self.component = component
        self.dependency = dependency
        self.cause = cause


class RegistryError(ForgeError):
    """Raised for adapter registry misuse."""

    pass


class AdapterLoadError(RegistryError):
    """Fatal adapter load failure with no previously active adapter to fall back to."""

    def __init__(self, library: str, cause: Optional[BaseException] = None):
        super().__init__(f"Failed to load adapter '{library}': {cause}")
        self.library = library
        self.cause = cause


class CollisionWarning(UserWarning):
    """Two rules wrote the same output prop; the later one won."""

    def __init__(self, component: str, key: str, previous: str, current: str):
        super().__init__(
            f"{component}: output prop '{key}' from '{previous}' "
            f"overwritten by '{current}'"
        )
        self.component = component
        self.key = key
        self.previous = previous
        self.current = current
