"""
Definition records for semantic components and target-library adapters.

Both are parsed from JSON documents using the camelCase keys of the
configuration format and exposed as frozen dataclasses.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

PROP_TYPES = ("string", "number", "boolean", "array", "object", "function", "any")


def _frozen(mapping: Optional[Mapping[str, Any]]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping or {}))


# Semantic components


@dataclass(frozen=True)
class PropDefinition:
    """A single semantic prop."""

    name: str
    type: str = "string"
    required: bool = False
    default: Any = None
    options: Tuple[Any, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class EventDefinition:
    name: str
    parameters: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class SlotDefinition:
    name: str
    props: Tuple[str, ...] = ()
    description: str = ""


@dataclass(frozen=True)
class SemanticComponentDefinition:
    """Library-agnostic description of a UI component."""

    name: str
    base_component: str = ""
    category: str = ""
    description: str = ""
    props: Tuple[PropDefinition, ...] = ()
    events: Tuple[EventDefinition, ...] = ()
    slots: Tuple[SlotDefinition, ...] = ()
    dependencies: Tuple[str, ...] = ()
    prop_mappings: Tuple[Mapping[str, Any], ...] = ()
    source: Optional[str] = None

    @property
    def prop_names(self) -> List[str]:
        return [prop.name for prop in self.props]

    def get_prop(self, name: str) -> Optional[PropDefinition]:
        for prop in self.props:
            if prop.name == name:
                return prop
        return None

    def default_props(self) -> Dict[str, Any]:
        """Declared prop defaults in declaration order; ``None`` defaults are omitted."""
        return {prop.name: prop.default for prop in self.props if prop.default is not None}

    def default_events(self) -> Dict[str, Any]:
        """Re-emit handler reference per declared event."""
        return {event.name: event.name for event in self.events}

    def default_slots(self) -> Dict[str, Any]:
        return {slot.name: slot.name for slot in self.slots}


def named_entries(raw: Any) -> List[Dict[str, Any]]:
    """Normalize ``{name: {...}}`` or ``[{name, ...}]`` collections to a list."""
    if raw is None:
        return []
    if isinstance(raw, Mapping):
        entries = []
        for name, item in raw.items():
            entry = dict(item) if isinstance(item, Mapping) else {}
            entry.setdefault("name", name)
            entries.append(entry)
        return entries
    entries = []
    for item in raw:
        if isinstance(item, str):
            entries.append({"name": item})
        else:
            entries.append(dict(item))
    return entries


def parse_component(data: Mapping[str, Any], source: Optional[str] = None) -> SemanticComponentDefinition:
    """
    Build a component definition from its document form.

    Args:
        data: Parsed component document
        source: Where the document came from (path or URL)

    Returns:
        Frozen component definition
    """
    props = tuple(
        PropDefinition(
            name=entry["name"],
            type=entry.get("type", "string"),
            required=bool(entry.get("required", False)),
            default=entry.get("default"),
            options=tuple(entry.get("enum", entry.get("options", ()))),
            description=entry.get("description", ""),
        )
        for entry in named_entries(data.get("props"))
    )
    events = tuple(
        EventDefinition(
            name=entry["name"],
            parameters=tuple(entry.get("parameters", ())),
            description=entry.get("description", ""),
        )
        for entry in named_entries(data.get("events"))
    )
    slots = tuple(
        SlotDefinition(
            name=entry["name"],
            props=tuple(entry.get("props", ())),
            description=entry.get("description", ""),
        )
        for entry in named_entries(data.get("slots"))
    )
    return SemanticComponentDefinition(
        name=data["name"],
        base_component=data.get("baseComponent") or data.get("targetComponent") or "",
        category=data.get("category", ""),
        description=data.get("description", ""),
        props=props,
        events=events,
        slots=slots,
        dependencies=tuple(data.get("dependencies", ())),
        prop_mappings=tuple(_frozen(m) for m in data.get("propMappings", ())),
        source=source,
    )


# Adapters


@dataclass(frozen=True)
class ComponentMapping:
    """How one semantic component maps onto a target library component.

    Rule, event and slot entries keep their configuration form; the adapter
    compiles them when it is constructed.
    """

    component: str
    import_statement: str
    props: Mapping[str, str] = field(default_factory=lambda: MappingProxyType({}))
    defaults: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    prop_transformations: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    events: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    slots: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    supported_features: Tuple[str, ...] = ()
    dependencies: Tuple[str, ...] = ()
    imports: Tuple[str, ...] = ()


@dataclass(frozen=True)
class AdapterDefinition:
    """Validated-at-construction description of one target library."""

    name: str
    version: str
    display_name: str = ""
    component_mappings: Mapping[str, ComponentMapping] = field(
        default_factory=lambda: MappingProxyType({})
    )
    imports: Tuple[str, ...] = ()
    performance: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    compatibility: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    source: Optional[str] = None

    @property
    def features(self) -> Tuple[str, ...]:
        return tuple(self.compatibility.get("features", ()))


def _string_list(raw: Any) -> Tuple[str, ...]:
    if raw is None:
        return ()
    if isinstance(raw, str):
        return (raw,)
    if isinstance(raw, Mapping):
        # {"base": [...], "plugin": "..."} style groups
        items: List[str] = []
        for value in raw.values():
            items.extend(_string_list(value))
        return tuple(items)
    return tuple(str(item) for item in raw)


def parse_component_mapping(
    data: Mapping[str, Any], extra_transformations: Optional[Mapping[str, Any]] = None
) -> ComponentMapping:
    """Build a :class:`ComponentMapping` from a ``componentMappings`` entry."""
    transformations = dict(data.get("propTransformations", {}))
    if extra_transformations:
        transformations.update(extra_transformations)
    return ComponentMapping(
        component=data.get("component", ""),
        import_statement=data.get("import", ""),
        props=_frozen(data.get("props")),
        defaults=_frozen(data.get("defaults")),
        prop_transformations=_frozen(transformations),
        events=_frozen(data.get("events")),
        slots=_frozen(data.get("slots")),
        supported_features=tuple(data.get("supportedFeatures", ())),
        dependencies=tuple(data.get("dependencies", ())),
        imports=_string_list(data.get("imports")),
    )


def parse_adapter(data: Mapping[str, Any], source: Optional[str] = None) -> AdapterDefinition:
    """
    Build an adapter definition from its document form.

    Top-level ``propTransformations: {Component: {...}}`` sections are folded
    into the matching component mapping.

    Args:
        data: Parsed adapter document (already structurally validated)
        source: Where the document came from

    Returns:
        Frozen adapter definition
    """
    shared_transformations = data.get("propTransformations", {})
    mappings = {
        name: parse_component_mapping(mapping, shared_transformations.get(name))
        for name, mapping in data.get("componentMappings", {}).items()
    }
    compatibility = dict(data.get("compatibility", {}))
    if "supportedVersions" in data:
        compatibility.setdefault("versions", list(data["supportedVersions"]))
    return AdapterDefinition(
        name=data["name"],
        version=str(data["version"]),
        display_name=data.get("displayName", data["name"]),
        component_mappings=MappingProxyType(mappings),
        imports=_string_list(data.get("imports")),
        performance=_frozen(data.get("performance")),
        compatibility=_frozen(compatibility),
        source=source,
    )
