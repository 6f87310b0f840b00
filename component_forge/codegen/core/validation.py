"""
Structural validation of component and adapter documents.

Validation collects every problem instead of stopping at the first one:
errors make a document unusable, warnings are reported but tolerated.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Union

from ...logging_config import get_logger
from .errors import CircularDependencyError
from .expressions import ExpressionError, ExpressionEvaluator
from .graph import DependencyGraph
from .naming import is_pascal_case
from .rules import MAPPING_TYPES, RuleKind, TransformationRule, rule_kind
from .schema import PROP_TYPES, SemanticComponentDefinition, named_entries

logger = get_logger(__name__)

# Rule kinds whose output key is known without running the rule
_STATIC_TARGET_KINDS = (RuleKind.DIRECT, RuleKind.MAPPING, RuleKind.TEMPLATE)

# Required keys per propMappings type
_MAPPING_REQUIREMENTS = {
    "direct": ("source",),
    "conditional": ("source", "condition"),
    "value": ("source", "transform"),
    "computed": ("computedRef", "computation"),
    "librarySpecific": ("library", "transform"),
}


@dataclass
class ValidationResult:
    """Outcome of validating one document."""

    valid: bool = True
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def add_error(self, message: str):
        self.errors.append(message)
        self.valid = False

    def add_warning(self, message: str):
        self.warnings.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


class ConfigValidator:
    """Validates semantic component and adapter documents."""

    def validate(
        self, config: Union[Mapping[str, Any], SemanticComponentDefinition]
    ) -> ValidationResult:
        """
        Validate a semantic component document.

        Args:
            config: Component document (or an already-built definition)

        Returns:
            ValidationResult with errors and warnings
        """
        if isinstance(config, SemanticComponentDefinition):
            config = _definition_document(config)

        result = ValidationResult()
        if not isinstance(config, Mapping):
            result.add_error("Component configuration must be an object")
            return result

        self._validate_core(config, result)
        prop_names = self._validate_props(config, result)
        self._validate_named_section(config, "events", "Event", result)
        self._validate_named_section(config, "slots", "Slot", result)
        self._validate_dependencies(config, result)
        self._validate_mapping_integrity(config, prop_names, result)
        self._validate_computed_cycles(config, result)

        logger.debug(
            "Validated component %s: %d errors, %d warnings",
            config.get("name"), len(result.errors), len(result.warnings),
        )
        return result

    def _validate_core(self, config: Mapping[str, Any], result: ValidationResult):
        name = config.get("name")
        if not name:
            result.add_error("Component name is required")
        elif not isinstance(name, str) or not is_pascal_case(name):
            result.add_error(f"Component name must be PascalCase: {name!r}")

        if not config.get("baseComponent") and not config.get("targetComponent"):
            result.add_error("Base component is required")

    def _validate_props(self, config: Mapping[str, Any], result: ValidationResult) -> List[str]:
        names: List[str] = []
        for index, entry in enumerate(named_entries(config.get("props"))):
            name = entry.get("name")
            if not name:
                result.add_error(f"Prop at index {index} missing name")
                continue
            if name in names:
                result.add_error(f"Duplicate prop: {name}")
            names.append(name)

            prop_type = entry.get("type", "string")
            if prop_type not in PROP_TYPES:
                result.add_warning(f"Prop '{name}' has unknown type '{prop_type}'")
            options = entry.get("enum", entry.get("options"))
            default = entry.get("default")
            if options and default is not None and default not in options:
                result.add_warning(f"Default of prop '{name}' is not one of its options")
        return names

    def _validate_named_section(
        self, config: Mapping[str, Any], key: str, label: str, result: ValidationResult
    ):
        seen = set()
        for index, entry in enumerate(named_entries(config.get(key))):
            name = entry.get("name")
            if not name:
                result.add_error(f"{label} at index {index} missing name")
                continue
            if name in seen:
                result.add_error(f"Duplicate {label.lower()}: {name}")
            seen.add(name)

    def _validate_dependencies(self, config: Mapping[str, Any], result: ValidationResult):
        dependencies = config.get("dependencies", [])
        if not isinstance(dependencies, (list, tuple)):
            result.add_error("Dependencies must be a list of component names")
            return
        if config.get("name") in dependencies:
            result.add_error(f"Component {config.get('name')} depends on itself")

    def _validate_mapping_integrity(
        self, config: Mapping[str, Any], prop_names: List[str], result: ValidationResult
    ):
        targets = set()
        for index, mapping in enumerate(config.get("propMappings") or []):
            target = mapping.get("target")
            mapping_type = mapping.get("type")
            if not target:
                result.add_error(f"Prop mapping at index {index} missing target")
                continue
            if not mapping_type:
                result.add_error(f"Prop mapping at index {index} missing type")
                continue

            if target in targets:
                result.add_error(f"Duplicate prop mapping target: {target}")
            targets.add(target)

            if mapping_type not in MAPPING_TYPES:
                result.add_error(
                    f"Invalid mapping type '{mapping_type}' at index {index}. "
                    f"Valid types: {', '.join(MAPPING_TYPES)}"
                )
                continue

            for key in _MAPPING_REQUIREMENTS[mapping_type]:
                if not mapping.get(key):
                    result.add_error(f"{mapping_type} mapping at index {index} missing {key}")

            source = mapping.get("source")
            if source and prop_names and source not in prop_names:
                result.add_warning(f"Source '{source}' not found in props definition")

    def _validate_computed_cycles(self, config: Mapping[str, Any], result: ValidationResult):
        computed = {}
        for mapping in config.get("propMappings") or []:
            if mapping.get("type") != "computed":
                continue
            ref, computation = mapping.get("computedRef"), mapping.get("computation")
            if not ref or not computation:
                continue
            try:
                computed[ref] = ExpressionEvaluator.compile(computation).names
            except ExpressionError as e:
                result.add_error(f"Invalid computation for '{ref}': {e}")

        graph = DependencyGraph(kind="computed prop")
        for ref, names in computed.items():
            graph.add_node(ref)
            for name in sorted(names):
                if name in computed:
                    graph.add_edge(ref, name)

        cycle = graph.find_cycle()
        if cycle:
            result.add_error(str(CircularDependencyError(cycle, kind="computed prop")))

    def validate_adapter(self, config: Mapping[str, Any]) -> ValidationResult:
        """
        Validate an adapter document.

        Args:
            config: Adapter document

        Returns:
            ValidationResult with errors and warnings
        """
        result = ValidationResult()
        if not isinstance(config, Mapping):
            result.add_error("Adapter configuration must be an object")
            return result

        for key in ("name", "version", "componentMappings"):
            if not config.get(key):
                result.add_error(f"Adapter is missing required field '{key}'")

        mappings = config.get("componentMappings") or {}
        if not isinstance(mappings, Mapping):
            result.add_error("componentMappings must be an object")
            return result

        shared = config.get("propTransformations") or {}
        for component, mapping in mappings.items():
            if not isinstance(mapping, Mapping):
                result.add_error(f"Mapping for {component} must be an object")
                continue
            if not mapping.get("import"):
                result.add_error(f"Mapping for {component} is missing an import statement")
            if "props" not in mapping or not isinstance(mapping.get("props"), Mapping):
                result.add_error(f"Mapping for {component} is missing a props map")
            if not mapping.get("component"):
                result.add_warning(f"Mapping for {component} has no target component name")

            transformations = dict(mapping.get("propTransformations") or {})
            transformations.update(shared.get(component) or {})
            self._check_static_targets(component, transformations, result)

        for component in shared:
            if component not in mappings:
                result.add_warning(f"propTransformations for unmapped component {component}")

        logger.debug(
            "Validated adapter %s: %d errors, %d warnings",
            config.get("name"), len(result.errors), len(result.warnings),
        )
        return result

    def _check_static_targets(
        self, component: str, transformations: Mapping[str, Any], result: ValidationResult
    ):
        for error in static_target_errors(component, transformations):
            result.add_error(error)


def static_target_errors(component: str, transformations: Mapping[str, Any]) -> List[str]:
    """Reject two rules writing one statically-known target unless acknowledged.

    Accepts rules in configuration form or as built rule objects.
    """
    writers: Dict[str, List[str]] = {}
    acknowledged = set()
    for prop, rule in transformations.items():
        if isinstance(rule, TransformationRule):
            target, kind, overwrite = rule.target, rule.kind, rule.overwrite
        elif isinstance(rule, Mapping):
            target, kind, overwrite = rule.get("target"), rule_kind(rule.get("type")), rule.get("overwrite")
        else:
            continue
        if not target and kind in _STATIC_TARGET_KINDS:
            target = prop
        if not target:
            continue
        writers.setdefault(target, []).append(prop)
        if overwrite:
            acknowledged.add(target)

    return [
        f"{component}: props {', '.join(props)} all write '{target}' "
        "without an overwrite acknowledgment"
        for target, props in writers.items()
        if len(props) > 1 and target not in acknowledged
    ]


def _definition_document(definition: SemanticComponentDefinition) -> Dict[str, Any]:
    """Rebuild the document form of a definition for validation."""
    return {
        "name": definition.name,
        "baseComponent": definition.base_component,
        "props": [
            {
                "name": prop.name,
                "type": prop.type,
                "default": prop.default,
                "enum": list(prop.options),
            }
            for prop in definition.props
        ],
        "events": [{"name": event.name} for event in definition.events],
        "slots": [{"name": slot.name} for slot in definition.slots],
        "dependencies": list(definition.dependencies),
        "propMappings": [dict(m) for m in definition.prop_mappings],
    }
