"""
Transformation engine.

Converts a semantic prop bag into a target prop bag in a single pass over
the request's props. Rules read the raw semantic input (the value plus all
sibling props) and never observe each other's output, so the only order
dependence is the collision policy: the later-processed prop wins.
"""

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ...logging_config import get_logger
from .errors import (
    CollisionWarning,
    MissingComputationInput,
    TransformationError,
    UnknownTransformationType,
)
from .expressions import CompiledExpression, ExpressionError
from .rules import (
    MERGING_KINDS,
    MISSING,
    ChainRule,
    ComputedRule,
    Condition,
    ConditionalRule,
    CustomRule,
    DerivedRule,
    DirectRule,
    EventRule,
    MappingRule,
    SlotRule,
    TemplateRule,
    TransformationRule,
    WrappedHandler,
)
from .templates import TemplateEngine, TemplateError

logger = get_logger(__name__)


@dataclass(frozen=True)
class Collision:
    """Two props wrote the same output key."""

    key: str
    previous: str
    current: str
    acknowledged: bool = False


@dataclass
class TransformResult:
    props: Dict[str, Any] = field(default_factory=dict)
    collisions: List[Collision] = field(default_factory=list)


class _Accumulator:
    """Output props plus the writer of each key, for collision tracking."""

    def __init__(self, component: str, strict: bool):
        self.component = component
        self.strict = strict
        self.props: Dict[str, Any] = {}
        self.writers: Dict[str, str] = {}
        self.collisions: List[Collision] = []

    def write(self, key: str, value: Any, writer: str, acknowledged: bool = False):
        previous = self.writers.get(key)
        if previous is not None and previous != writer:
            collision = Collision(key, previous, writer, acknowledged)
            self.collisions.append(collision)
            if not acknowledged:
                logger.debug(
                    "%s: '%s' overwrites output '%s' written by '%s'",
                    self.component, writer, key, previous,
                )
                if self.strict:
                    warnings.warn(
                        CollisionWarning(self.component, key, previous, writer), stacklevel=4
                    )
        self.props[key] = value
        self.writers[key] = writer

    def merge(self, values: Mapping[str, Any], writer: str, acknowledged: bool = False):
        for key, value in values.items():
            self.write(key, value, writer, acknowledged)


class TransformationEngine:
    """Evaluates transformation rules against semantic prop bags."""

    def __init__(self, templates: Optional[TemplateEngine] = None):
        self.templates = templates or TemplateEngine()

    def transform_props(
        self,
        component: str,
        props: Mapping[str, Any],
        rules: Mapping[str, TransformationRule],
        rename: Optional[Mapping[str, str]] = None,
        defaults: Optional[Mapping[str, Any]] = None,
        derived: Iterable[DerivedRule] = (),
        strict: bool = False,
        adapter: Any = None,
    ) -> TransformResult:
        """
        Transform a semantic prop bag.

        Args:
            component: Semantic component name
            props: Semantic props in request order
            rules: Rule per semantic prop
            rename: Rename table for props without a rule
            defaults: Target props filled in when absent from the output
            derived: Computed outputs evaluated after the per-prop pass
            strict: Emit CollisionWarning for unacknowledged collisions
            adapter: Passed to ``custom`` rule functions

        Returns:
            TransformResult with the target props and recorded collisions

        Raises:
            UnknownTransformationType: For a rule of an unknown kind
            MissingComputationInput: When a computed rule cannot be evaluated
        """
        rename = rename or {}
        out = _Accumulator(component, strict)

        for prop, value in props.items():
            rule = rules.get(prop)
            if rule is None:
                out.write(rename.get(prop, prop), value, prop)
                continue

            result = self.apply_rule(rule, value, props, component, prop, adapter)
            if isinstance(result, dict) and rule.kind in MERGING_KINDS:
                out.merge(result, prop, rule.overwrite)
            else:
                out.write(rule.target or rename.get(prop, prop), result, prop, rule.overwrite)

        env = dict(props)
        for rule in derived:
            value = self._evaluate_derived(rule, env, props, component)
            env[rule.ref] = value
            writer = f"computed:{rule.ref}"
            if isinstance(value, dict):
                out.merge(value, writer)
            else:
                out.write(rule.target, value, writer)

        for key, value in (defaults or {}).items():
            if key not in out.props:
                out.props[key] = value

        return TransformResult(props=out.props, collisions=out.collisions)

    def apply_rule(
        self,
        rule: TransformationRule,
        value: Any,
        props: Mapping[str, Any],
        component: str,
        prop: str,
        adapter: Any = None,
    ) -> Any:
        """Evaluate one rule for one prop value."""
        if isinstance(rule, DirectRule):
            return value

        if isinstance(rule, MappingRule):
            found = _lookup(rule.table, value)
            if found is not MISSING:
                return found
            if rule.default is not MISSING:
                return rule.default
            return value

        if isinstance(rule, ConditionalRule):
            matched = self._evaluate_predicate(rule.predicate, value, props, component, prop)
            chosen = rule.true_value if matched else rule.false_value
            return value if chosen is MISSING else chosen

        if isinstance(rule, ComputedRule):
            return self._evaluate_computed(rule, value, props, component, prop)

        if isinstance(rule, CustomRule):
            if rule.fn is None:
                raise TransformationError("Custom rule has no function", component, prop)
            try:
                return rule.fn(value, props, component, adapter)
            except TransformationError:
                raise
            except Exception as e:
                raise TransformationError(
                    f"Custom transformation failed: {e}", component, prop
                ) from e

        if isinstance(rule, ChainRule):
            for step in rule.steps:
                value = self.apply_rule(step, value, props, component, prop, adapter)
            return value

        if isinstance(rule, TemplateRule):
            try:
                return self.templates.render_string(
                    rule.template, {"value": value, "props": props, "component": component}
                )
            except TemplateError as e:
                raise TransformationError(str(e), component, prop) from e

        raise UnknownTransformationType(component, prop, getattr(rule, "kind", rule))

    def _evaluate_predicate(
        self,
        predicate: Any,
        value: Any,
        props: Mapping[str, Any],
        component: str,
        prop: str,
    ) -> bool:
        if predicate is None:
            return bool(value)
        if isinstance(predicate, Condition):
            return predicate.evaluate(value, props)
        try:
            if isinstance(predicate, CompiledExpression):
                return bool(predicate.evaluate({**props, "value": value, "props": props}))
            return bool(predicate(value, props))
        except (ExpressionError, NameError) as e:
            raise TransformationError(f"Predicate failed: {e}", component, prop) from e

    def _evaluate_computed(
        self,
        rule: ComputedRule,
        value: Any,
        props: Mapping[str, Any],
        component: str,
        prop: str,
    ) -> Any:
        for name in rule.inputs:
            if name not in props:
                raise MissingComputationInput(component, prop, f"input '{name}' is absent")

        try:
            if rule.fn is not None:
                return rule.fn(value, props)
            if rule.expression is not None:
                return rule.expression.evaluate({**props, "value": value, "props": props})
        except NameError as e:
            raise MissingComputationInput(component, prop, str(e)) from e
        except Exception as e:
            raise MissingComputationInput(component, prop, f"{type(e).__name__}: {e}") from e

        raise MissingComputationInput(component, prop, "no function or expression")

    def _evaluate_derived(
        self,
        rule: DerivedRule,
        env: Mapping[str, Any],
        props: Mapping[str, Any],
        component: str,
    ) -> Any:
        try:
            return rule.expression.evaluate({**env, "props": props})
        except NameError as e:
            raise MissingComputationInput(component, rule.ref, str(e)) from e
        except Exception as e:
            raise MissingComputationInput(component, rule.ref, f"{type(e).__name__}: {e}") from e

    def transform_events(
        self,
        component: str,
        events: Mapping[str, Any],
        rules: Mapping[str, EventRule],
    ) -> Dict[str, Any]:
        """
        Rename events and wrap their handlers.

        Args:
            component: Semantic component name
            events: Semantic event name -> handler reference
            rules: Event rule per semantic event

        Returns:
            Target event name -> handler (or WrappedHandler)
        """
        output: Dict[str, Any] = {}
        for name, handler in events.items():
            rule = rules.get(name)
            if rule is None:
                output[name] = handler
                continue

            if rule.wrap is not None:
                handler = rule.wrap(handler, name, component)
            if rule.debounce:
                handler = WrappedHandler(handler, "debounce", rule.debounce)
            elif rule.throttle:
                handler = WrappedHandler(handler, "throttle", rule.throttle)

            target = rule.target or name
            if target in output:
                logger.debug("%s: event '%s' overwrites target '%s'", component, name, target)
            output[target] = handler
        return output

    def transform_slots(
        self,
        component: str,
        slots: Mapping[str, Any],
        rules: Mapping[str, SlotRule],
    ) -> Dict[str, Any]:
        """Rename slots; unmapped slots pass through."""
        output: Dict[str, Any] = {}
        for name, content in slots.items():
            rule = rules.get(name)
            target = rule.target if rule is not None and rule.target else name
            if target in output:
                logger.debug("%s: slot '%s' overwrites target '%s'", component, name, target)
            output[target] = content
        return output


def _lookup(table: Mapping[Any, Any], value: Any) -> Any:
    """Table lookup that also matches JSON string keys for scalar values."""
    try:
        if value in table:
            return table[value]
    except TypeError:
        return MISSING
    if isinstance(value, bool):
        key = "true" if value else "false"
        return table.get(key, MISSING)
    if isinstance(value, (int, float)):
        return table.get(str(value), MISSING)
    return MISSING
