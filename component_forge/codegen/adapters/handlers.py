"""
Named handlers referenced by the built-in adapter documents.

Custom handlers take ``(value, all_props, component, adapter)``; computed
handlers take ``(value, all_props)``.
"""

from typing import Any, Dict, Mapping

from ..core.functions import FunctionRegistry


def omit(value: Any, *_: Any) -> Dict[str, Any]:
    """Drop the prop from the output."""
    return {}


def primevue_icon(value: Any, all_props: Mapping[str, Any], *_: Any) -> Dict[str, Any]:
    """PrimeIcons class for the ``icon`` prop."""
    if not value:
        return {}
    value = str(value)
    if value.startswith("pi "):
        return {"icon": value}
    if value.startswith("pi-"):
        return {"icon": f"pi {value}"}
    return {"icon": f"pi pi-{value}"}


def primevue_full_width(value: Any, *_: Any) -> Dict[str, Any]:
    return {"class": "w-full"} if value else {}


def vuetify_icon(value: Any, all_props: Mapping[str, Any], *_: Any) -> Dict[str, Any]:
    """Vuetify buttons take the icon as either prependIcon or appendIcon, never both."""
    if not value:
        return {}
    icon = str(value)
    if not icon.startswith("mdi-"):
        icon = f"mdi-{icon}"
    if all_props.get("iconPosition") == "right":
        return {"appendIcon": icon}
    return {"prependIcon": icon}


def register_builtin_handlers(registry: FunctionRegistry, replace: bool = False):
    """Register the handlers used by the built-in adapters."""
    registry.register("omit", omit, replace=replace)
    registry.register("primevue.icon", primevue_icon, replace=replace)
    registry.register("primevue.full_width", primevue_full_width, replace=replace)
    registry.register("vuetify.icon", vuetify_icon, replace=replace)


def create_function_registry() -> FunctionRegistry:
    """Function registry with the generic helpers and the built-in handlers."""
    registry = FunctionRegistry()
    register_builtin_handlers(registry)
    return registry
