"""
Configuration management for the generation engine.

Two concerns live here:

* :class:`EngineConfig` - engine settings merged from defaults, an optional
  JSON settings file and explicit overrides (:func:`load_engine_config`).
* :class:`ConfigurationStore` - loads, validates and memoizes semantic
  component definitions and adapter definitions from search directories,
  single files or URLs.
"""

import json
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from ... import utils
from ...logging_config import get_logger
from .errors import ConfigError, ConfigNotFound, ConfigValidationError
from .functions import FunctionRegistry
from .naming import to_kebab_case, to_pascal_case
from .rules import RuleOverlay, compile_prop_mappings
from .schema import (
    AdapterDefinition,
    SemanticComponentDefinition,
    parse_adapter,
    parse_component,
)
from .validation import ConfigValidator, ValidationResult

logger = get_logger(__name__)

CODEGEN_DIR = Path(__file__).resolve().parent.parent
BUILTIN_COMPONENTS_DIR = CODEGEN_DIR / "components"
BUILTIN_ADAPTERS_DIR = CODEGEN_DIR / "adapters"
BUILTIN_THEMES_DIR = CODEGEN_DIR / "themes"

PathLike = Union[str, Path]


@dataclass
class EngineConfig:
    """Settings for a generation session."""

    # Search locations (built-in data packages are always searched last)
    component_dirs: List[str] = field(default_factory=list)
    adapter_dirs: List[str] = field(default_factory=list)
    theme_dirs: List[str] = field(default_factory=list)

    # Generation defaults
    default_library: Optional[str] = "primevue"
    strict: bool = False
    use_cache: bool = True
    typescript: bool = False
    format: str = "sfc"
    optimize: bool = True
    partition_static: bool = False
    debounce_ms: int = 300

    # Logging
    log_level: str = "WARNING"

    # Custom settings
    custom: Dict[str, Any] = field(default_factory=dict)

    def search_dirs(self, kind: str) -> List[Path]:
        """User directories for ``kind`` followed by the built-in one."""
        builtin = {
            "components": BUILTIN_COMPONENTS_DIR,
            "adapters": BUILTIN_ADAPTERS_DIR,
            "themes": BUILTIN_THEMES_DIR,
        }[kind]
        user_dirs = getattr(self, f"{kind[:-1]}_dirs")
        return [Path(d) for d in user_dirs] + [builtin]


_ENGINE_DEFAULTS: Dict[str, Any] = {
    "default_library": "primevue",
    "strict": False,
    "use_cache": True,
    "debounce_ms": 300,
}


def load_engine_config(
    config_file: Optional[PathLike] = None,
    overrides: Optional[Dict[str, Any]] = None,
) -> EngineConfig:
    """
    Build an :class:`EngineConfig`.

    Args:
        config_file: Optional path to a JSON settings file
        overrides: Explicit settings that win over the file

    Returns:
        Merged configuration
    """
    settings = dict(_ENGINE_DEFAULTS)

    if config_file:
        settings.update(_load_settings_file(config_file))

    if overrides:
        settings.update({k: v for k, v in overrides.items() if v is not None})

    return _dict_to_config(settings)


def _load_settings_file(config_path: PathLike) -> Dict[str, Any]:
    """Load engine settings from JSON file."""
    path = Path(config_path)

    if not path.exists():
        raise ConfigError(f"Configuration file not found: {path}")

    if not path.suffix.lower() == ".json":
        raise ConfigError(f"Configuration file must be JSON: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            config = json.load(f)
    except json.JSONDecodeError as e:
        raise ConfigError(f"Invalid JSON in configuration file {path}: {e}") from e
    except OSError as e:
        raise ConfigError(f"Failed to load configuration file {path}: {e}") from e

    if not isinstance(config, dict):
        raise ConfigError(f"Configuration file must contain a JSON object: {path}")

    return config


def _dict_to_config(config_dict: Dict[str, Any]) -> EngineConfig:
    """Convert dictionary to EngineConfig instance."""
    known_fields = set(EngineConfig.__dataclass_fields__)

    config_args: Dict[str, Any] = {}
    custom_args: Dict[str, Any] = {}

    for key, value in config_dict.items():
        if key in known_fields:
            config_args[key] = value
        else:
            custom_args[key] = value

    if custom_args:
        existing_custom = dict(config_args.get("custom", {}))
        existing_custom.update(custom_args)
        config_args["custom"] = existing_custom

    return EngineConfig(**config_args)


def save_engine_config(config: EngineConfig, output_path: PathLike):
    """Save engine settings to a JSON file."""
    path = Path(output_path)
    config_dict = asdict(config)
    config_dict.update(config_dict.pop("custom"))

    try:
        with open(path, "w", encoding="utf-8") as f:
            json.dump(config_dict, f, indent=2, ensure_ascii=False)
    except OSError as e:
        raise ConfigError(f"Failed to save configuration to {path}: {e}") from e


class ConfigurationStore:
    """Loads and memoizes component and adapter definitions."""

    def __init__(
        self,
        component_dirs: Optional[Iterable[PathLike]] = None,
        adapter_dirs: Optional[Iterable[PathLike]] = None,
        validator: Optional[ConfigValidator] = None,
        functions: Optional[FunctionRegistry] = None,
    ):
        """
        Initialize the store.

        Args:
            component_dirs: Directories searched for ``<Component>.json``
                (defaults to the built-in components)
            adapter_dirs: Directories searched for ``<library>.json``
                (defaults to the built-in adapters)
            validator: Validator to use
            functions: Function registry used to compile component prop mappings
        """
        self.component_dirs = _paths(component_dirs, BUILTIN_COMPONENTS_DIR)
        self.adapter_dirs = _paths(adapter_dirs, BUILTIN_ADAPTERS_DIR)
        self.validator = validator or ConfigValidator()
        self.functions = functions or FunctionRegistry()

        self._components: Dict[str, SemanticComponentDefinition] = {}
        self._registered: Dict[str, SemanticComponentDefinition] = {}
        self._overlays: Dict[str, RuleOverlay] = {}
        self._epochs: Dict[str, int] = {}

    @classmethod
    def from_config(
        cls, config: EngineConfig, functions: Optional[FunctionRegistry] = None
    ) -> "ConfigurationStore":
        return cls(
            component_dirs=config.search_dirs("components"),
            adapter_dirs=config.search_dirs("adapters"),
            functions=functions,
        )

    # Components

    def load_component(self, name: str) -> SemanticComponentDefinition:
        """
        Load a semantic component definition by name.

        Args:
            name: PascalCase component name

        Returns:
            The (memoized) definition

        Raises:
            ConfigNotFound: If no document exists for the name
            ConfigParseError: If the document is malformed
            ConfigValidationError: If the document fails validation
        """
        if name in self._registered:
            return self._registered[name]
        if name in self._components:
            return self._components[name]

        path = self._find(_component_filenames(name), self.component_dirs)
        if path is None:
            raise ConfigNotFound(name, [str(d) for d in self.component_dirs])

        source, data = utils.load_document(path)
        definition = self._build_component(data, source)
        if definition.name != name:
            logger.warning("Document %s declares component %s, expected %s", source, definition.name, name)

        self._components[name] = definition
        logger.info("Loaded component %s from %s", name, source)
        return definition

    def register_component(
        self, definition: Union[SemanticComponentDefinition, Mapping[str, Any]]
    ) -> SemanticComponentDefinition:
        """Register an in-memory component definition (validated like a file)."""
        if isinstance(definition, SemanticComponentDefinition):
            result = self.validator.validate(definition)
            if not result.valid:
                raise ConfigValidationError(definition.name, result.errors, result.warnings)
        else:
            definition = self._build_component(definition, "<memory>")

        if definition.name in self._registered or definition.name in self._components:
            self._bump(definition.name)
        self._registered[definition.name] = definition
        self._overlays.pop(definition.name, None)
        logger.debug("Registered component %s", definition.name)
        return definition

    def reload_component(self, name: str) -> SemanticComponentDefinition:
        """Drop the memoized definition and bump the component's epoch."""
        self._components.pop(name, None)
        self._overlays.pop(name, None)
        self._bump(name)
        return self.load_component(name)

    def component_epoch(self, name: str) -> int:
        return self._epochs.get(name, 0)

    def component_overlay(self, name: str) -> RuleOverlay:
        """Compiled ``propMappings`` rules for a component."""
        overlay = self._overlays.get(name)
        if overlay is None:
            definition = self.load_component(name)
            overlay = compile_prop_mappings(definition.prop_mappings, self.functions, name)
            self._overlays[name] = overlay
        return overlay

    def list_components(self) -> List[str]:
        """Names of registered components plus those found in the search dirs."""
        names = set(self._registered) | set(self._components)
        for directory in self.component_dirs:
            if directory.is_dir():
                names.update(to_pascal_case(p.stem) for p in directory.glob("*.json"))
        return sorted(names)

    # Adapters

    def load_adapter_definition(self, name: str) -> AdapterDefinition:
        """
        Load and validate an adapter definition by library name, path or URL.

        Raises:
            ConfigNotFound: If no document exists for the name
            ConfigParseError: If the document is malformed
            ConfigValidationError: If the document fails validation
        """
        if utils.is_url(name) or name.endswith(".json"):
            location: Union[str, Path] = name
        else:
            found = self._find((f"{name.lower()}.json", f"{name}.json"), self.adapter_dirs)
            if found is None:
                raise ConfigNotFound(name, [str(d) for d in self.adapter_dirs])
            location = found

        source, data = utils.load_document(location)
        return self._build_adapter(data, source)

    def list_adapters(self) -> List[str]:
        names = set()
        for directory in self.adapter_dirs:
            if directory.is_dir():
                names.update(p.stem for p in directory.glob("*.json"))
        return sorted(names)

    # Documents

    def load_config(self, source: PathLike) -> Union[SemanticComponentDefinition, AdapterDefinition]:
        """
        Load a single component or adapter document from a path or URL.

        Documents with a ``componentMappings`` section are adapters.

        Raises:
            ConfigNotFound: If the document doesn't exist
            ConfigParseError: If the document is malformed
            ConfigValidationError: If the document is structurally invalid
        """
        description, data = utils.load_document(source)
        if "componentMappings" in data:
            return self._build_adapter(data, description)
        return self._build_component(data, description)

    def validate(self, config: Union[Mapping[str, Any], SemanticComponentDefinition]) -> ValidationResult:
        return self.validator.validate(config)

    def validate_adapter(self, config: Mapping[str, Any]) -> ValidationResult:
        return self.validator.validate_adapter(config)

    # Internal

    def _build_component(self, data: Mapping[str, Any], source: str) -> SemanticComponentDefinition:
        result = self.validator.validate(data)
        for warning in result.warnings:
            logger.warning("%s: %s", source, warning)
        if not result.valid:
            raise ConfigValidationError(source, result.errors, result.warnings)
        return parse_component(data, source)

    def _build_adapter(self, data: Mapping[str, Any], source: str) -> AdapterDefinition:
        result = self.validator.validate_adapter(data)
        for warning in result.warnings:
            logger.warning("%s: %s", source, warning)
        if not result.valid:
            raise ConfigValidationError(source, result.errors, result.warnings)
        return parse_adapter(data, source)

    def _bump(self, name: str):
        self._epochs[name] = self._epochs.get(name, 0) + 1
        logger.debug("Component %s epoch is now %d", name, self._epochs[name])

    @staticmethod
    def _find(filenames: Iterable[str], directories: List[Path]) -> Optional[Path]:
        for directory in directories:
            for filename in filenames:
                candidate = directory / filename
                if candidate.is_file():
                    return candidate
        return None


def _paths(dirs: Optional[Iterable[PathLike]], builtin: Path) -> List[Path]:
    if dirs is None:
        return [builtin]
    return [Path(d) for d in dirs]


def _component_filenames(name: str) -> Tuple[str, ...]:
    return (f"{name}.json", f"{to_kebab_case(name)}.json", f"{name.lower()}.json")
