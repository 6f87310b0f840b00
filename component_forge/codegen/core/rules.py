"""
Transformation rule types.

A rule is a closed tagged union (:class:`RuleKind`) parsed from adapter
configuration. Function-valued fields hold callables that were either passed
in directly from Python code or resolved by id from a
:class:`~.functions.FunctionRegistry` at parse time.
"""

import hashlib
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .errors import CircularDependencyError, UnknownTransformationType
from .expressions import CompiledExpression, ExpressionEvaluator, ExpressionError
from .functions import FunctionRegistry
from .graph import DependencyGraph


class _Missing:
    """Sentinel for optional rule values where ``None`` is a legal value."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


class RuleKind(Enum):
    """Supported transformation rule types."""

    DIRECT = "direct"
    MAPPING = "mapping"
    CONDITIONAL = "conditional"
    COMPUTED = "computed"
    CUSTOM = "custom"
    CHAIN = "chain"
    TEMPLATE = "template"


RULE_TYPE_ALIASES = {
    "multi-prop": RuleKind.COMPUTED,
    "multiProp": RuleKind.COMPUTED,
    "value": RuleKind.COMPUTED,
}

# Rules whose plain-dict results are merged into the output as multiple props
MERGING_KINDS = frozenset(
    {RuleKind.MAPPING, RuleKind.CONDITIONAL, RuleKind.COMPUTED, RuleKind.CUSTOM, RuleKind.CHAIN}
)

OPERATORS = (
    "===", "!==", "==", "!=", ">", ">=", "<", "<=",
    "includes", "startsWith", "endsWith", "matches", "exists", "empty",
)


# Declarative conditions


@dataclass(frozen=True)
class Condition:
    """Declarative predicate ``{prop?, operator, value}`` with combinators."""

    operator: str = "==="
    value: Any = None
    prop: Optional[str] = None
    all_of: Tuple["Condition", ...] = ()
    any_of: Tuple["Condition", ...] = ()
    negated: Optional["Condition"] = None

    def evaluate(self, value: Any, all_props: Mapping[str, Any]) -> bool:
        """Evaluate against the rule's own value and its sibling props."""
        if self.all_of:
            return all(cond.evaluate(value, all_props) for cond in self.all_of)
        if self.any_of:
            return any(cond.evaluate(value, all_props) for cond in self.any_of)
        if self.negated is not None:
            return not self.negated.evaluate(value, all_props)
        left = all_props.get(self.prop) if self.prop else value
        return compare_values(left, self.operator, self.value)


Predicate = Union[Callable[..., Any], Condition, CompiledExpression]


def compare_values(left: Any, op: str, right: Any) -> bool:
    """Compare values using a comparator operator name."""
    if op == "===":
        return type(left) is type(right) and left == right
    if op == "!==":
        return not (type(left) is type(right) and left == right)
    if op == "==":
        return _loose_equals(left, right)
    if op == "!=":
        return not _loose_equals(left, right)
    if op in (">", ">=", "<", "<="):
        try:
            if op == ">":
                return left > right
            if op == ">=":
                return left >= right
            if op == "<":
                return left < right
            return left <= right
        except TypeError:
            return False
    if op == "includes":
        if isinstance(left, (list, tuple, set, frozenset)):
            return right in left
        if isinstance(left, str) and isinstance(right, str):
            return right in left
        return False
    if op == "startsWith":
        return isinstance(left, str) and isinstance(right, str) and left.startswith(right)
    if op == "endsWith":
        return isinstance(left, str) and isinstance(right, str) and left.endswith(right)
    if op == "matches":
        return isinstance(left, str) and re.search(str(right), left) is not None
    if op == "exists":
        return left is not None
    if op == "empty":
        return not left
    return False


def _loose_equals(left: Any, right: Any) -> bool:
    if left == right:
        return True
    scalars = (str, int, float, bool)
    if isinstance(left, scalars) and isinstance(right, scalars):
        return str(left).lower() == str(right).lower()
    return False


def parse_condition(raw: Mapping[str, Any]) -> Condition:
    """Build a :class:`Condition` from its configuration form."""
    if "and" in raw:
        return Condition(all_of=tuple(parse_condition(c) for c in raw["and"]))
    if "or" in raw:
        return Condition(any_of=tuple(parse_condition(c) for c in raw["or"]))
    if "not" in raw:
        return Condition(negated=parse_condition(raw["not"]))
    operator = raw.get("operator", "===")
    if operator not in OPERATORS:
        raise ValueError(f"Unknown condition operator: {operator}")
    return Condition(operator=operator, value=raw.get("value"), prop=raw.get("prop"))


# Rule variants


@dataclass(frozen=True)
class TransformationRule:
    """Base rule; ``target`` names the output for single-value results."""

    kind: RuleKind = RuleKind.DIRECT
    target: Optional[str] = None
    overwrite: bool = False

    def output_key(self, prop_name: str) -> str:
        return self.target or prop_name


@dataclass(frozen=True)
class DirectRule(TransformationRule):
    kind: RuleKind = RuleKind.DIRECT


@dataclass(frozen=True)
class MappingRule(TransformationRule):
    kind: RuleKind = RuleKind.MAPPING
    table: Mapping[Any, Any] = field(default_factory=dict)
    default: Any = MISSING


@dataclass(frozen=True)
class ConditionalRule(TransformationRule):
    kind: RuleKind = RuleKind.CONDITIONAL
    predicate: Optional[Predicate] = None
    true_value: Any = MISSING
    false_value: Any = MISSING


@dataclass(frozen=True)
class ComputedRule(TransformationRule):
    kind: RuleKind = RuleKind.COMPUTED
    fn: Optional[Callable[..., Any]] = None
    expression: Optional[CompiledExpression] = None
    inputs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class CustomRule(TransformationRule):
    kind: RuleKind = RuleKind.CUSTOM
    fn: Optional[Callable[..., Any]] = None


@dataclass(frozen=True)
class ChainRule(TransformationRule):
    kind: RuleKind = RuleKind.CHAIN
    steps: Tuple[TransformationRule, ...] = ()


@dataclass(frozen=True)
class TemplateRule(TransformationRule):
    kind: RuleKind = RuleKind.TEMPLATE
    template: str = ""


@dataclass(frozen=True)
class DerivedRule:
    """A computed output with no single source prop (component ``computed`` mappings)."""

    ref: str
    target: str
    expression: CompiledExpression
    library: Optional[str] = None

    @property
    def inputs(self) -> Tuple[str, ...]:
        return tuple(sorted(self.expression.names - {"value", "props"}))


# Event / slot rules


@dataclass(frozen=True)
class EventRule:
    """Rename plus optional handler wrapping for one semantic event."""

    target: Optional[str] = None
    debounce: Optional[int] = None
    throttle: Optional[int] = None
    wrap: Optional[Callable[..., Any]] = None


@dataclass(frozen=True)
class SlotRule:
    target: Optional[str] = None


@dataclass(frozen=True)
class WrappedHandler:
    """A handler reference wrapped by a timing strategy, for the renderer to emit."""

    handler: Any
    strategy: str
    delay_ms: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {"handler": self.handler, "strategy": self.strategy, "delayMs": self.delay_ms}


DEFAULT_WRAP_DELAY_MS = 300


def _delay(value: Any) -> Optional[int]:
    if value is None or value is False:
        return None
    if value is True:
        return DEFAULT_WRAP_DELAY_MS
    return int(value)


def parse_event_rule(raw: Any, functions: FunctionRegistry) -> EventRule:
    """Parse an event mapping entry (target name string or rule dict)."""
    if isinstance(raw, EventRule):
        return raw
    if isinstance(raw, str):
        return EventRule(target=raw)
    return EventRule(
        target=raw.get("target"),
        debounce=_delay(raw.get("debounce")),
        throttle=_delay(raw.get("throttle")),
        wrap=functions.resolve(raw.get("wrap")),
    )


def parse_slot_rule(raw: Any) -> SlotRule:
    """Parse a slot mapping entry (target name string or rule dict)."""
    if isinstance(raw, SlotRule):
        return raw
    if isinstance(raw, str):
        return SlotRule(target=raw)
    return SlotRule(target=raw.get("target"))


# Parsing


def rule_kind(raw_type: Any) -> Optional[RuleKind]:
    """Map a configuration ``type`` string to a :class:`RuleKind`, or None."""
    if raw_type is None:
        return RuleKind.DIRECT
    if isinstance(raw_type, RuleKind):
        return raw_type
    if raw_type in RULE_TYPE_ALIASES:
        return RULE_TYPE_ALIASES[raw_type]
    try:
        return RuleKind(raw_type)
    except ValueError:
        return None


def parse_rule(
    raw: Union[Mapping[str, Any], TransformationRule],
    functions: FunctionRegistry,
    component: str = "",
    prop: str = "",
) -> TransformationRule:
    """
    Build a rule object from its configuration form.

    Args:
        raw: Rule dict (``{"type": ..., ...}``) or an already-built rule
        functions: Registry used to resolve function ids
        component: Component name for error reporting
        prop: Prop name for error reporting

    Returns:
        Parsed rule

    Raises:
        UnknownTransformationType: If the rule type is not recognized
    """
    if isinstance(raw, TransformationRule):
        return raw
    if not isinstance(raw, Mapping):
        raise UnknownTransformationType(component, prop, type(raw).__name__)

    kind = rule_kind(raw.get("type"))
    if kind is None:
        raise UnknownTransformationType(component, prop, raw.get("type"))

    common = {"target": raw.get("target"), "overwrite": bool(raw.get("overwrite", False))}

    if kind == RuleKind.DIRECT:
        return DirectRule(**common)

    if kind == RuleKind.MAPPING:
        return MappingRule(
            table=dict(raw.get("table", raw.get("mapping", {}))),
            default=raw["default"] if "default" in raw else MISSING,
            **common,
        )

    if kind == RuleKind.CONDITIONAL:
        return ConditionalRule(
            predicate=_parse_predicate(raw.get("predicate", raw.get("condition")), functions),
            true_value=raw["trueValue"] if "trueValue" in raw else MISSING,
            false_value=raw["falseValue"] if "falseValue" in raw else MISSING,
            **common,
        )

    if kind == RuleKind.COMPUTED:
        fn_ref = raw.get("fn", raw.get("compute", raw.get("transform")))
        expression = raw.get("expression")
        if isinstance(fn_ref, str) and fn_ref not in functions and expression is None:
            # Unregistered string: treat as an inline expression
            expression, fn_ref = fn_ref, None
        return ComputedRule(
            fn=functions.resolve(fn_ref),
            expression=ExpressionEvaluator.compile(expression) if expression else None,
            inputs=tuple(raw.get("inputs", ())),
            **common,
        )

    if kind == RuleKind.CUSTOM:
        return CustomRule(fn=functions.resolve(raw.get("fn", raw.get("transform"))), **common)

    if kind == RuleKind.CHAIN:
        steps = tuple(
            parse_rule(step, functions, component, prop) for step in raw.get("steps", raw.get("chain", ()))
        )
        return ChainRule(steps=steps, **common)

    return TemplateRule(template=str(raw.get("template", "")), **common)


def _parse_predicate(raw: Any, functions: FunctionRegistry) -> Optional[Predicate]:
    if raw is None or callable(raw) or isinstance(raw, (Condition, CompiledExpression)):
        return raw
    if isinstance(raw, Mapping):
        return parse_condition(raw)
    if isinstance(raw, str):
        if raw in functions:
            return functions.get(raw)
        try:
            return ExpressionEvaluator.compile(raw)
        except ExpressionError as e:
            raise ValueError(f"Invalid predicate expression {raw!r}: {e}") from e
    raise ValueError(f"Invalid predicate: {raw!r}")


# Component-level overlays

MAPPING_TYPES = ("direct", "conditional", "value", "computed", "librarySpecific")


@dataclass(frozen=True)
class RuleOverlay:
    """Rules compiled from a component definition's ``propMappings``.

    They apply to props the adapter has no rule for. Derived rules are
    stored in dependency order.
    """

    component: str
    rules: Mapping[str, TransformationRule] = field(default_factory=dict)
    library_rules: Mapping[str, Mapping[str, TransformationRule]] = field(default_factory=dict)
    derived: Tuple[DerivedRule, ...] = ()
    signature: str = ""

    def rules_for(self, library: str) -> Dict[str, TransformationRule]:
        rules = dict(self.rules)
        rules.update(self.library_rules.get(library.lower(), {}))
        return rules

    def derived_for(self, library: str) -> List[DerivedRule]:
        return [
            rule for rule in self.derived
            if rule.library is None or rule.library.lower() == library.lower()
        ]

    def __bool__(self) -> bool:
        return bool(self.rules or self.library_rules or self.derived)


def compile_prop_mappings(
    mappings: Sequence[Mapping[str, Any]],
    functions: FunctionRegistry,
    component: str,
) -> RuleOverlay:
    """
    Compile library-neutral prop mappings into a :class:`RuleOverlay`.

    Args:
        mappings: ``propMappings`` entries of a component definition
        functions: Registry used to resolve function ids
        component: Component name for error reporting

    Returns:
        Compiled overlay

    Raises:
        UnknownTransformationType: For an unknown mapping type
        CircularDependencyError: If computed mappings reference each other in a cycle
    """
    rules: Dict[str, TransformationRule] = {}
    library_rules: Dict[str, Dict[str, TransformationRule]] = {}
    derived: Dict[str, DerivedRule] = {}

    for mapping in mappings:
        mapping_type = mapping.get("type")
        target = mapping.get("target")
        source = mapping.get("source")

        if mapping_type == "direct":
            rules[source] = DirectRule(target=target)
        elif mapping_type == "conditional":
            rules[source] = ConditionalRule(
                target=target,
                predicate=_parse_predicate(mapping.get("condition"), functions),
                true_value=mapping["trueValue"] if "trueValue" in mapping else MISSING,
                false_value=mapping["falseValue"] if "falseValue" in mapping else MISSING,
            )
        elif mapping_type == "value":
            rules[source] = parse_rule(
                {"type": "computed", "target": target, "fn": mapping.get("transform")},
                functions, component, source,
            )
        elif mapping_type == "computed":
            ref = mapping.get("computedRef", target)
            derived[ref] = DerivedRule(
                ref=ref, target=target,
                expression=ExpressionEvaluator.compile(mapping["computation"]),
            )
        elif mapping_type == "librarySpecific":
            library = str(mapping.get("library", "")).lower()
            if source:
                library_rules.setdefault(library, {})[source] = parse_rule(
                    {"type": "computed", "target": target, "fn": mapping.get("transform")},
                    functions, component, source,
                )
            else:
                derived[target] = DerivedRule(
                    ref=target, target=target,
                    expression=ExpressionEvaluator.compile(mapping["transform"]),
                    library=library,
                )
        else:
            raise UnknownTransformationType(component, target or source or "", mapping_type)

    graph = DependencyGraph(kind="computed prop")
    for ref, rule in derived.items():
        graph.add_node(ref)
        for name in rule.inputs:
            if name in derived and name != ref:
                graph.add_edge(ref, name)
            elif name == ref:
                raise CircularDependencyError([ref], kind="computed prop")
    ordered = tuple(derived[ref] for ref in graph.topological_order())

    return RuleOverlay(
        component=component,
        rules=rules,
        library_rules=library_rules,
        derived=ordered,
        signature=_signature(mappings),
    )


def _signature(mappings: Sequence[Mapping[str, Any]]) -> str:
    if not mappings:
        return ""
    payload = json.dumps([dict(m) for m in mappings], sort_keys=True, default=repr)
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()[:16]
