"""
Unit tests for rule parsing and the transformation engine.
"""

import warnings

import pytest

from component_forge.codegen.core.errors import (
    CircularDependencyError,
    CollisionWarning,
    MissingComputationInput,
    TransformationError,
    UnknownTransformationType,
)
from component_forge.codegen.core.expressions import ExpressionEvaluator
from component_forge.codegen.core.functions import FunctionRegistry, UnknownFunction
from component_forge.codegen.core.rules import (
    ChainRule,
    ComputedRule,
    ConditionalRule,
    CustomRule,
    DirectRule,
    EventRule,
    MappingRule,
    RuleKind,
    SlotRule,
    TemplateRule,
    WrappedHandler,
    compare_values,
    compile_prop_mappings,
    parse_event_rule,
    parse_rule,
)
from component_forge.codegen.core.transforms import TransformationEngine


class TestRuleParsing:
    """Test cases for building rules from configuration."""

    def setup_method(self):
        self.functions = FunctionRegistry()

    def test_mapping_accepts_table_or_mapping_key(self):
        a = parse_rule({"type": "mapping", "table": {"sm": "small"}}, self.functions)
        b = parse_rule({"type": "mapping", "mapping": {"sm": "small"}}, self.functions)
        assert a.table == b.table == {"sm": "small"}

    def test_missing_type_is_direct(self):
        rule = parse_rule({"target": "severity"}, self.functions)
        assert isinstance(rule, DirectRule)
        assert rule.target == "severity"

    def test_aliases_parse_as_computed(self):
        for alias in ("multi-prop", "multiProp", "value"):
            rule = parse_rule({"type": alias, "expression": "value"}, self.functions)
            assert rule.kind == RuleKind.COMPUTED

    def test_unknown_type(self):
        with pytest.raises(UnknownTransformationType) as exc_info:
            parse_rule({"type": "bogus"}, self.functions, "Button", "variant")
        assert exc_info.value.component == "Button"
        assert exc_info.value.prop == "variant"

    def test_unregistered_string_becomes_expression(self):
        rule = parse_rule({"type": "computed", "fn": "bool(value)"}, self.functions)
        assert rule.fn is None
        assert rule.expression.source == "bool(value)"

    def test_custom_with_unknown_id(self):
        with pytest.raises(UnknownFunction):
            parse_rule({"type": "custom", "fn": "missing.handler"}, self.functions)

    def test_event_rule_wrap_true_uses_default_delay(self):
        rule = parse_event_rule({"target": "update:modelValue", "debounce": True}, self.functions)
        assert rule.debounce == 300


class TestCompareValues:
    @pytest.mark.parametrize(
        "left,op,right,expected",
        [
            (True, "===", True, True),
            (1, "===", True, False),
            ("1", "==", 1, True),
            (5, ">", 3, True),
            ("a", ">", 3, False),
            (["x", "y"], "includes", "y", True),
            ("primary", "startsWith", "pri", True),
            ("btn-lg", "matches", r"-lg$", True),
            (None, "exists", None, False),
            ("", "empty", None, True),
        ],
    )
    def test_operators(self, left, op, right, expected):
        assert compare_values(left, op, right) is expected


class TestTransformationEngine:
    """Test cases for prop transformation."""

    def setup_method(self):
        self.engine = TransformationEngine()

    def transform(self, props, rules, **kwargs):
        return self.engine.transform_props("Button", props, rules, **kwargs)

    def test_unmapped_props_use_rename_table(self):
        result = self.transform({"label": "Save", "size": "lg"}, {}, rename={"label": "text"})
        assert result.props == {"text": "Save", "size": "lg"}

    def test_mapping_table_hit(self):
        rules = {"variant": MappingRule(target="severity", table={"primary": "primary", "secondary": "outlined"})}
        result = self.transform({"variant": "secondary"}, rules)
        assert result.props == {"severity": "outlined"}

    def test_mapping_falls_back_to_original_value(self):
        rules = {"variant": MappingRule(target="severity", table={"primary": "primary"})}
        result = self.transform({"variant": "tertiary"}, rules)
        assert result.props == {"severity": "tertiary"}

    def test_mapping_falls_back_to_default(self):
        rules = {"variant": MappingRule(target="severity", table={"primary": "primary"}, default="elevated")}
        result = self.transform({"variant": "tertiary"}, rules)
        assert result.props == {"severity": "elevated"}

    def test_mapping_matches_json_string_keys(self):
        rules = {"outlined": MappingRule(table={"true": "outlined", "false": "flat"})}
        assert self.transform({"outlined": True}, rules).props == {"outlined": "outlined"}

    def test_conditional_merges_dict_results(self):
        rules = {
            "iconPosition": ConditionalRule(
                predicate=ExpressionEvaluator.compile("value == 'right'"),
                true_value={"iconPos": "end"},
                false_value={"iconPos": "start"},
            )
        }
        assert self.transform({"iconPosition": "right"}, rules).props == {"iconPos": "end"}
        assert self.transform({"iconPosition": "left"}, rules).props == {"iconPos": "start"}

    def test_conditional_without_branch_value_passes_input_through(self):
        rules = {"size": ConditionalRule(target="size", predicate=lambda v, props: v == "lg", true_value="large")}
        assert self.transform({"size": "sm"}, rules).props == {"size": "sm"}

    def test_predicate_sees_sibling_props(self):
        rules = {
            "icon": ConditionalRule(
                target="iconPos",
                predicate=ExpressionEvaluator.compile("props['label'] is not None"),
                true_value="left",
                false_value="center",
            )
        }
        result = self.transform({"label": None, "icon": "check"}, rules)
        assert result.props["iconPos"] == "center"

    def test_computed_missing_input(self):
        rules = {"padding": ComputedRule(expression=ExpressionEvaluator.compile("size * 2"))}
        with pytest.raises(MissingComputationInput):
            self.transform({"padding": 1}, rules)

    def test_computed_declared_input_absent(self):
        rules = {"padding": ComputedRule(fn=lambda v, props: v, inputs=("size",))}
        with pytest.raises(MissingComputationInput) as exc_info:
            self.transform({"padding": 1}, rules)
        assert "size" in str(exc_info.value)

    def test_custom_failure_is_wrapped(self):
        def boom(value, props, component, adapter):
            raise KeyError("nope")

        with pytest.raises(TransformationError):
            self.transform({"icon": "x"}, {"icon": CustomRule(fn=boom)})

    def test_chain_applies_steps_in_order(self):
        rules = {
            "size": ChainRule(
                target="size",
                steps=(
                    MappingRule(table={"sm": "small"}),
                    CustomRule(fn=lambda value, *_: value.upper()),
                ),
            )
        }
        assert self.transform({"size": "sm"}, rules).props == {"size": "SMALL"}

    def test_template_rule(self):
        rules = {
            "variant": TemplateRule(
                target="class", template="btn-{{ value }} icon-{{ props.iconPosition | kebab_case }}"
            )
        }
        result = self.transform({"variant": "primary", "iconPosition": "topLeft"}, rules)
        assert result.props["class"] == "btn-primary icon-top-left"

    def test_template_result_is_never_merged(self):
        rules = {"variant": TemplateRule(template="{{ value }}")}
        assert self.transform({"variant": "x"}, rules).props == {"variant": "x"}

    def test_rules_read_raw_input_not_each_others_output(self):
        rules = {
            "a": DirectRule(target="b"),
            "c": ComputedRule(target="c", expression=ExpressionEvaluator.compile("b")),
        }
        result = self.transform({"b": 2, "a": 1, "c": 0}, rules)
        assert result.props["b"] == 1
        assert result.props["c"] == 2

    def test_defaults_only_fill_absent_keys(self):
        result = self.transform({"label": "Go"}, {}, defaults={"label": "x", "ripple": True})
        assert result.props == {"label": "Go", "ripple": True}

    def test_collision_last_write_wins(self):
        rules = {"a": DirectRule(target="class"), "b": DirectRule(target="class")}
        result = self.transform({"a": "one", "b": "two"}, rules)
        assert result.props == {"class": "two"}
        assert len(result.collisions) == 1
        assert result.collisions[0].previous == "a"

    def test_strict_collision_warns(self):
        rules = {"a": DirectRule(target="class"), "b": DirectRule(target="class")}
        with pytest.warns(CollisionWarning):
            self.transform({"a": "one", "b": "two"}, rules, strict=True)

    def test_acknowledged_collision_is_silent(self):
        rules = {"a": DirectRule(target="class"), "b": DirectRule(target="class", overwrite=True)}
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            result = self.transform({"a": "one", "b": "two"}, rules, strict=True)
        assert result.collisions[0].acknowledged

    def test_events_renamed_and_wrapped(self):
        rules = {
            "input": EventRule(target="update:modelValue", debounce=250),
            "scroll": EventRule(throttle=100),
        }
        events = self.engine.transform_events(
            "Input", {"input": "onInput", "scroll": "onScroll", "blur": "onBlur"}, rules
        )
        assert events["update:modelValue"] == WrappedHandler("onInput", "debounce", 250)
        assert events["scroll"].strategy == "throttle"
        assert events["blur"] == "onBlur"

    def test_slots_renamed(self):
        slots = self.engine.transform_slots("Card", {"default": "body", "footer": "f"}, {"default": SlotRule("content")})
        assert slots == {"content": "body", "footer": "f"}


class TestPropMappingOverlay:
    """Test cases for component-level prop mappings."""

    def setup_method(self):
        self.functions = FunctionRegistry()
        self.engine = TransformationEngine()

    def test_derived_rules_run_in_dependency_order(self):
        overlay = compile_prop_mappings(
            [
                {"type": "computed", "computedRef": "greeting", "target": "greeting", "computation": "'Hi ' + full"},
                {"type": "computed", "computedRef": "full", "target": "fullName", "computation": "first + ' ' + last"},
            ],
            self.functions,
            "Person",
        )
        assert [rule.ref for rule in overlay.derived] == ["full", "greeting"]

        result = self.engine.transform_props(
            "Person", {"first": "Ada", "last": "Lovelace"}, {}, derived=overlay.derived
        )
        assert result.props["fullName"] == "Ada Lovelace"
        assert result.props["greeting"] == "Hi Ada Lovelace"

    def test_library_specific_rules(self):
        overlay = compile_prop_mappings(
            [{"type": "librarySpecific", "library": "Vuetify", "source": "invalid", "target": "error", "transform": "bool(value)"}],
            self.functions,
            "Input",
        )
        assert "invalid" in overlay.rules_for("vuetify")
        assert "invalid" not in overlay.rules_for("primevue")

    def test_computed_cycle(self):
        with pytest.raises(CircularDependencyError) as exc_info:
            compile_prop_mappings(
                [
                    {"type": "computed", "computedRef": "a", "target": "a", "computation": "b + 1"},
                    {"type": "computed", "computedRef": "b", "target": "b", "computation": "a + 1"},
                ],
                self.functions,
                "Broken",
            )
        assert exc_info.value.kind == "computed prop"
        assert set(exc_info.value.cycle) == {"a", "b"}

    def test_unknown_mapping_type(self):
        with pytest.raises(UnknownTransformationType):
            compile_prop_mappings([{"type": "magic", "target": "x"}], self.functions, "Broken")

    def test_empty_overlay_is_falsy(self):
        assert not compile_prop_mappings([], self.functions, "Plain")
