"""
Target-library adapter.

An :class:`Adapter` wraps a validated :class:`AdapterDefinition`, compiles
each component mapping's rules once at construction and exposes the
per-component transformation operations used by the generator.
"""

import json
import warnings
from collections import OrderedDict
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from ...logging_config import get_logger
from .errors import CollisionWarning, ComponentNotSupported, ConfigInvalid, RegistryError
from .functions import FunctionRegistry
from .rules import (
    EventRule,
    RuleOverlay,
    SlotRule,
    TransformationRule,
    parse_event_rule,
    parse_rule,
    parse_slot_rule,
)
from .schema import AdapterDefinition, ComponentMapping, parse_adapter
from .transforms import Collision, TransformationEngine, TransformResult
from .validation import ConfigValidator, static_target_errors

logger = get_logger(__name__)

DEFAULT_MEMO_SIZE = 512


@dataclass(frozen=True)
class CompiledMapping:
    """A component mapping with its rules built."""

    mapping: ComponentMapping
    rules: Mapping[str, TransformationRule]
    events: Mapping[str, EventRule]
    slots: Mapping[str, SlotRule]


class Adapter:
    """Validated, compiled adapter for one target library."""

    def __init__(
        self,
        definition: Union[AdapterDefinition, Mapping[str, Any]],
        functions: Optional[FunctionRegistry] = None,
        engine: Optional[TransformationEngine] = None,
        validator: Optional[ConfigValidator] = None,
        memo_size: int = DEFAULT_MEMO_SIZE,
    ):
        """
        Build an adapter.

        Args:
            definition: Adapter definition or its document form
            functions: Registry used to resolve rule function ids
            engine: Transformation engine (shared engines are fine, it is stateless)
            validator: Validator for document-form definitions
            memo_size: Most recently used prop transformations kept in memory

        Raises:
            ConfigInvalid: If the definition is structurally invalid
            UnknownTransformationType: If a rule declares an unknown type
        """
        if isinstance(definition, AdapterDefinition):
            errors = _definition_errors(definition)
        else:
            errors = (validator or ConfigValidator()).validate_adapter(definition).errors
        if errors:
            name = definition.name if isinstance(definition, AdapterDefinition) else definition.get("name")
            raise ConfigInvalid(name or "<unnamed>", errors)
        if not isinstance(definition, AdapterDefinition):
            definition = parse_adapter(definition)

        self.definition = definition
        self.functions = functions or FunctionRegistry()
        self.engine = engine or TransformationEngine()

        compiled = {}
        for component, mapping in definition.component_mappings.items():
            compiled[component] = self._compile(component, mapping)
        self._compiled: Mapping[str, CompiledMapping] = MappingProxyType(compiled)
        self.memo_size = memo_size
        self._memo: "OrderedDict[Tuple[Any, ...], TransformResult]" = OrderedDict()

        logger.info(
            "Adapter %s@%s ready (%d components)", self.name, self.version, len(compiled)
        )

    def _compile(self, component: str, mapping: ComponentMapping) -> CompiledMapping:
        try:
            rules = {
                prop: parse_rule(raw, self.functions, component, prop)
                for prop, raw in mapping.prop_transformations.items()
            }
            events = {
                name: parse_event_rule(raw, self.functions) for name, raw in mapping.events.items()
            }
        except (RegistryError, ValueError) as e:
            raise ConfigInvalid(self.definition.name, [f"{component}: {e}"]) from e
        slots = {name: parse_slot_rule(raw) for name, raw in mapping.slots.items()}

        conflicts = static_target_errors(component, rules)
        if conflicts:
            raise ConfigInvalid(self.definition.name, conflicts)

        return CompiledMapping(
            mapping=mapping,
            rules=MappingProxyType(rules),
            events=MappingProxyType(events),
            slots=MappingProxyType(slots),
        )

    @property
    def name(self) -> str:
        return self.definition.name

    @property
    def version(self) -> str:
        return self.definition.version

    @property
    def display_name(self) -> str:
        return self.definition.display_name or self.definition.name

    # Lookup

    def get_component_mapping(self, name: str) -> ComponentMapping:
        """
        Get the mapping for a semantic component.

        Raises:
            ComponentNotSupported: If the adapter has no mapping for it
        """
        return self._get(name).mapping

    def is_component_supported(self, name: str) -> bool:
        return name in self._compiled

    def supported_components(self) -> List[str]:
        return list(self._compiled)

    def _get(self, name: str) -> CompiledMapping:
        compiled = self._compiled.get(name)
        if compiled is None:
            raise ComponentNotSupported(name, self.name)
        return compiled

    # Transformations

    def transform_props(
        self,
        name: str,
        props: Mapping[str, Any],
        overlay: Optional[RuleOverlay] = None,
        strict: bool = False,
        collisions: Optional[List[Collision]] = None,
    ) -> Dict[str, Any]:
        """
        Transform semantic props into target props.

        Results are memoized per component, prop values, prop order and
        overlay in a bounded LRU map; callers always receive a fresh dict.
        Strict calls warn about collisions on memo hits too.

        Args:
            name: Semantic component name
            props: Semantic props in request order
            overlay: Component-level rules for props the adapter has no rule for
            strict: Emit CollisionWarning for unacknowledged collisions
            collisions: Optional list that receives the recorded collisions

        Returns:
            Target props
        """
        compiled = self._get(name)
        signature = overlay.signature if overlay else ""
        key = (name, tuple(props), _canonical(props), signature, strict)

        result = self._memo.get(key)
        if result is None:
            rules: Dict[str, TransformationRule] = {}
            derived = ()
            if overlay:
                rules.update(overlay.rules_for(self.name))
                derived = overlay.derived_for(self.name)
            rules.update(compiled.rules)

            result = self.engine.transform_props(
                name,
                props,
                rules,
                rename=compiled.mapping.props,
                defaults=compiled.mapping.defaults,
                derived=derived,
                strict=strict,
                adapter=self,
            )
            self._memo[key] = result
            if len(self._memo) > self.memo_size:
                self._memo.popitem(last=False)
        else:
            logger.debug("Prop transformation memo hit for %s", name)
            self._memo.move_to_end(key)
            if strict:
                for collision in result.collisions:
                    if not collision.acknowledged:
                        warnings.warn(
                            CollisionWarning(name, collision.key, collision.previous, collision.current),
                            stacklevel=2,
                        )

        if collisions is not None:
            collisions.extend(result.collisions)
        return dict(result.props)

    def transform_events(self, name: str, events: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename semantic events and wrap handlers per the event map."""
        return self.engine.transform_events(name, events, self._get(name).events)

    def transform_slots(self, name: str, slots: Mapping[str, Any]) -> Dict[str, Any]:
        """Rename semantic slots per the slot map."""
        return self.engine.transform_slots(name, slots, self._get(name).slots)

    # Metadata

    def get_target_component(self, name: str) -> str:
        mapping = self.get_component_mapping(name)
        return mapping.component or name

    def get_required_imports(self, name: str) -> List[str]:
        """Component-specific, extra and global imports; de-duplicated and sorted."""
        mapping = self.get_component_mapping(name)
        imports = {mapping.import_statement, *mapping.imports, *self.definition.imports}
        return sorted(i for i in imports if i and i.strip())

    def get_performance_hints(self, name: str) -> Dict[str, Any]:
        performance = self.definition.performance
        return dict(performance.get(name) or performance.get("default") or {})

    def get_target_dependencies(self, name: str) -> List[str]:
        return list(self.get_component_mapping(name).dependencies)

    def get_features(self) -> List[str]:
        """Library-wide features plus every mapping's supported features."""
        features = set(self.definition.features)
        for compiled in self._compiled.values():
            features.update(compiled.mapping.supported_features)
        return sorted(features)

    def info(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "version": self.version,
            "display_name": self.display_name,
            "components": self.supported_components(),
            "features": self.get_features(),
            "versions": list(self.definition.compatibility.get("versions", ())),
            "source": self.definition.source,
        }

    def clear_cache(self):
        """Drop memoized prop transformations."""
        self._memo.clear()

    def __repr__(self) -> str:
        return f"Adapter({self.name}@{self.version})"


def _definition_errors(definition: AdapterDefinition) -> List[str]:
    errors = []
    if not definition.name:
        errors.append("Adapter is missing required field 'name'")
    if not definition.version:
        errors.append("Adapter is missing required field 'version'")
    if not definition.component_mappings:
        errors.append("Adapter is missing required field 'componentMappings'")
    for component, mapping in definition.component_mappings.items():
        if not mapping.import_statement:
            errors.append(f"Mapping for {component} is missing an import statement")
        if mapping.props is None:
            errors.append(f"Mapping for {component} is missing a props map")
    return errors


def _canonical(props: Mapping[str, Any]) -> str:
    return json.dumps(props, sort_keys=True, default=repr)
