"""
Type-descriptor synthesis from semantic definitions.

Descriptors are structured records (interface name plus typed members); the
rendering collaborator decides how to print them.
"""

from dataclasses import dataclass
from typing import Any, Dict, Tuple

from .naming import handler_prop_name
from .schema import EventDefinition, PropDefinition, SemanticComponentDefinition

TYPE_MAP = {
    "string": "string",
    "number": "number",
    "boolean": "boolean",
    "array": "unknown[]",
    "object": "Record<string, unknown>",
    "function": "(...args: unknown[]) => unknown",
    "any": "unknown",
}


@dataclass(frozen=True)
class TypedMember:
    name: str
    type: str
    optional: bool = True
    description: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "type": self.type,
            "optional": self.optional,
            "description": self.description,
        }


@dataclass(frozen=True)
class TypeDescriptor:
    """Declared types of a component's props and event handlers."""

    interface_name: str
    props: Tuple[TypedMember, ...] = ()
    events: Tuple[TypedMember, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "interface": self.interface_name,
            "props": [member.to_dict() for member in self.props],
            "events": [member.to_dict() for member in self.events],
        }


def literal(value: Any) -> str:
    """Literal type for one enum option."""
    if isinstance(value, str):
        escaped = value.replace("\\", "\\\\").replace("'", "\\'")
        return f"'{escaped}'"
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def prop_type(prop: PropDefinition) -> str:
    if prop.options:
        return " | ".join(literal(option) for option in prop.options)
    return TYPE_MAP.get(prop.type, "unknown")


def event_type(event: EventDefinition) -> str:
    params = ", ".join(f"{param}: unknown" for param in event.parameters)
    return f"({params}) => void"


def synthesize_types(definition: SemanticComponentDefinition) -> TypeDescriptor:
    """Build the type descriptor for a semantic component."""
    props = tuple(
        TypedMember(
            name=prop.name,
            type=prop_type(prop),
            optional=not prop.required,
            description=prop.description,
        )
        for prop in definition.props
    )
    events = tuple(
        TypedMember(
            name=handler_prop_name(event.name),
            type=event_type(event),
            description=event.description,
        )
        for event in definition.events
    )
    return TypeDescriptor(interface_name=f"{definition.name}Props", props=props, events=events)
