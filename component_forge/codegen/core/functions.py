"""
Registry of named transformation functions.

Adapter documents never embed executable code. Rules that need a function
(``computed``, ``custom``, conditional predicates, event ``wrap``) reference a
function by id, and the id is resolved against a :class:`FunctionRegistry`
when the adapter is constructed.
"""

from typing import Any, Callable, Dict, List, Optional, Union

from ...logging_config import get_logger
from .errors import RegistryError

logger = get_logger(__name__)

TransformFunction = Callable[..., Any]


class UnknownFunction(RegistryError):
    """Raised when a rule references a function id that is not registered."""

    def __init__(self, name: str):
        super().__init__(f"Transformation function not registered: {name}")
        self.name = name


class FunctionRegistry:
    """Registry mapping function ids to callables."""

    def __init__(self, include_builtins: bool = True):
        """Initialize registry, optionally with the built-in helpers."""
        self._functions: Dict[str, TransformFunction] = {}
        if include_builtins:
            _register_builtins(self)

    def register(
        self,
        name: str,
        fn: Optional[TransformFunction] = None,
        replace: bool = False,
    ):
        """
        Register a function, directly or as a decorator.

        Args:
            name: Function id referenced from configuration
            fn: Callable to register; omit to use as decorator
            replace: Allow replacing an existing registration

        Raises:
            RegistryError: If the id is taken and replace is False
        """

        def decorator(func: TransformFunction) -> TransformFunction:
            if not callable(func):
                raise RegistryError(f"Function '{name}' must be callable")
            if name in self._functions and not replace:
                raise RegistryError(f"Function '{name}' is already registered")
            self._functions[name] = func
            logger.debug("Registered transformation function: %s", name)
            return func

        if fn is None:
            return decorator
        return decorator(fn)

    def unregister(self, name: str):
        """Remove a registered function if present."""
        self._functions.pop(name, None)

    def get(self, name: str) -> TransformFunction:
        """Get a registered function by id."""
        try:
            return self._functions[name]
        except KeyError:
            raise UnknownFunction(name) from None

    def resolve(self, ref: Union[str, TransformFunction, None]) -> Optional[TransformFunction]:
        """Resolve a function reference (callable or registered id)."""
        if ref is None or callable(ref):
            return ref
        if isinstance(ref, str):
            return self.get(ref)
        raise RegistryError(f"Invalid function reference: {ref!r}")

    def __contains__(self, name: str) -> bool:
        return name in self._functions

    def names(self) -> List[str]:
        """Sorted list of registered ids."""
        return sorted(self._functions)


def _register_builtins(registry: FunctionRegistry):
    """Register the generic value helpers."""
    registry.register("uppercase", lambda value, *_: value.upper() if isinstance(value, str) else value)
    registry.register("lowercase", lambda value, *_: value.lower() if isinstance(value, str) else value)
    registry.register(
        "capitalize",
        lambda value, *_: value[:1].upper() + value[1:] if isinstance(value, str) else value,
    )
    registry.register("to_string", lambda value, *_: "" if value is None else str(value))
    registry.register("to_number", _to_number)
    registry.register("join", lambda value, *_: ",".join(map(str, value)) if isinstance(value, (list, tuple)) else value)
    registry.register("split", lambda value, *_: value.split(",") if isinstance(value, str) else value)
    registry.register("negate", lambda value, *_: not value)
    registry.register("to_boolean", lambda value, *_: bool(value))


def _to_number(value: Any, *_: Any) -> Any:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        return value
    return int(number) if number.is_integer() else number
