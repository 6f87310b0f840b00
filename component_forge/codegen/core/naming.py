"""
Naming utilities for component and prop identifiers.

Handles case detection and conversion for semantic component names,
prop names and event names across target libraries.
"""

import re
from enum import Enum

_PASCAL_RE = re.compile(r"^[A-Z][a-zA-Z0-9]*$")


class NamingCase(Enum):
    """Different naming case styles."""

    SNAKE_CASE = "snake"  # icon_position
    CAMEL_CASE = "camel"  # iconPosition
    PASCAL_CASE = "pascal"  # IconPosition
    KEBAB_CASE = "kebab"  # icon-position


def is_pascal_case(name: str) -> bool:
    """Return True if ``name`` is a PascalCase identifier."""
    return bool(name) and bool(_PASCAL_RE.match(name))


def to_snake_case(name: str) -> str:
    """Convert to snake_case."""
    name = str(name).replace("-", "_").replace(":", "_")
    name = re.sub(r"([a-z0-9])([A-Z])", r"\1_\2", name)
    name = re.sub(r"\s+", "_", name).lower()
    name = re.sub(r"_+", "_", name)
    return name.strip("_")


def to_camel_case(name: str) -> str:
    """Convert to camelCase."""
    parts = to_snake_case(name).split("_")
    if not parts:
        return name
    return parts[0] + "".join(part.capitalize() for part in parts[1:])


def to_pascal_case(name: str) -> str:
    """Convert to PascalCase."""
    return "".join(part.capitalize() for part in to_snake_case(name).split("_") if part)


def to_kebab_case(name: str) -> str:
    """Convert to kebab-case."""
    return to_snake_case(name).replace("_", "-")


def convert_case(name: str, target_case: NamingCase) -> str:
    """Convert name to target case style."""
    if target_case == NamingCase.SNAKE_CASE:
        return to_snake_case(name)
    elif target_case == NamingCase.CAMEL_CASE:
        return to_camel_case(name)
    elif target_case == NamingCase.PASCAL_CASE:
        return to_pascal_case(name)
    elif target_case == NamingCase.KEBAB_CASE:
        return to_kebab_case(name)
    return name


def handler_prop_name(event_name: str) -> str:
    """Name of the listener prop for an event, e.g. ``update:modelValue`` -> ``onUpdateModelValue``."""
    return "on" + to_pascal_case(event_name)
