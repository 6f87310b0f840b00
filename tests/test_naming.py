"""
Unit tests for naming utilities.
"""

import pytest

from component_forge.codegen.core.naming import (
    NamingCase,
    convert_case,
    handler_prop_name,
    is_pascal_case,
    to_kebab_case,
    to_snake_case,
)


@pytest.mark.parametrize(
    "name,case,expected",
    [
        ("iconPosition", NamingCase.SNAKE_CASE, "icon_position"),
        ("icon_position", NamingCase.CAMEL_CASE, "iconPosition"),
        ("icon-position", NamingCase.PASCAL_CASE, "IconPosition"),
        ("IconPosition", NamingCase.KEBAB_CASE, "icon-position"),
    ],
)
def test_convert_case(name, case, expected):
    assert convert_case(name, case) == expected


def test_event_names():
    assert to_snake_case("update:modelValue") == "update_model_value"
    assert to_kebab_case("arrowRight") == "arrow-right"
    assert handler_prop_name("update:modelValue") == "onUpdateModelValue"


@pytest.mark.parametrize(
    "name,expected",
    [("Button", True), ("DataTable2", True), ("button", False), ("Data-Table", False), ("", False)],
)
def test_is_pascal_case(name, expected):
    assert is_pascal_case(name) is expected
