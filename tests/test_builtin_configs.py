"""
Integration tests for the built-in component, adapter and theme documents.
"""

import pytest

from component_forge.codegen import create_generator, quick_generate
from component_forge.codegen.core.config import EngineConfig
from component_forge.codegen.core.rules import WrappedHandler

BUILTIN_COMPONENTS = ["Icon", "Button", "Card", "Input", "Select", "Dialog"]


@pytest.fixture
def generator():
    return create_generator(EngineConfig())


@pytest.mark.parametrize("library", ["primevue", "vuetify"])
def test_every_builtin_component_generates(generator, library):
    result = generator.generate_batch(BUILTIN_COMPONENTS, adapter=library)
    assert result.ok, result.summary()
    assert sorted(a.component for a in result.done) == sorted(BUILTIN_COMPONENTS)


class TestPrimeVue:
    """Test cases for the PrimeVue adapter."""

    def test_button_defaults(self, generator):
        artifact = generator.generate("Button", adapter="primevue", props={"label": "Save"})
        assert artifact.tag == "Button"
        assert artifact.props["label"] == "Save"
        assert "severity" not in artifact.props
        assert artifact.props["iconPos"] == "left"
        assert "import Button from 'primevue/button';" in artifact.imports

    def test_button_variant_icon_and_width(self, generator):
        artifact = generator.generate(
            "Button",
            adapter="primevue",
            props={"variant": "danger", "icon": "check", "fullWidth": True, "size": "large"},
        )
        assert artifact.props["severity"] == "danger"
        assert artifact.props["icon"] == "pi pi-check"
        assert artifact.props["class"] == "w-full"
        assert artifact.props["size"] == "large"

    def test_card_padding(self, generator):
        artifact = generator.generate("Card", adapter="primevue", props={"padding": "lg"})
        assert artifact.props["class"] == "p-6"
        assert "elevation" not in artifact.props
        assert artifact.slots["content"] == "default"

    def test_input_model_and_debounce(self, generator):
        artifact = generator.generate("Input", adapter="primevue", props={"value": "hi", "invalid": True})
        assert artifact.tag == "InputText"
        assert artifact.props["modelValue"] == "hi"
        assert artifact.props["aria-invalid"] == "true"
        assert artifact.events["update:modelValue"] == WrappedHandler("input", "debounce", 300)

    def test_dialog(self, generator):
        artifact = generator.generate("Dialog", adapter="primevue", props={"title": "Confirm"})
        assert artifact.props["header"] == "Confirm"
        assert artifact.props["style"] == "width: 32rem"
        assert artifact.props["dismissableMask"] is True
        assert artifact.events == {"hide": "close"}

    def test_icon(self, generator):
        artifact = generator.generate("Icon", adapter="primevue", props={"name": "arrowRight"})
        assert artifact.tag == "i"
        assert artifact.static_props["class"] == "pi pi-arrow-right"


class TestVuetify:
    """Test cases for the Vuetify adapter."""

    def test_button(self, generator):
        artifact = generator.generate(
            "Button",
            adapter="vuetify",
            props={"label": "Go", "variant": "danger", "outlined": True, "rounded": True},
        )
        assert artifact.tag == "VBtn"
        assert artifact.props["text"] == "Go"
        assert artifact.props["color"] == "error"
        assert artifact.props["variant"] == "outlined"
        assert artifact.props["rounded"] == "xl"
        assert artifact.props["size"] == "default"
        assert "iconPosition" not in artifact.props

    def test_button_icon_position(self, generator):
        artifact = generator.generate(
            "Button", adapter="vuetify", props={"icon": "check", "iconPosition": "right"}
        )
        assert artifact.props["appendIcon"] == "mdi-check"
        assert "prependIcon" not in artifact.props

    def test_input_error_is_library_specific(self, generator):
        artifact = generator.generate("Input", adapter="vuetify", props={"invalid": True})
        assert artifact.props["error"] is True
        assert "invalid" not in artifact.props
        assert artifact.props["density"] == "default"
        assert artifact.events["update:modelValue"] == WrappedHandler("input", "debounce", 250)

    def test_select(self, generator):
        artifact = generator.generate("Select", adapter="vuetify", props={"options": ["a", "b"]})
        assert artifact.props["items"] == ["a", "b"]
        assert artifact.props["item-title"] == "label"

    def test_dialog(self, generator):
        artifact = generator.generate("Dialog", adapter="vuetify", props={"visible": True, "title": "x"})
        assert artifact.props["modelValue"] is True
        assert artifact.props["persistent"] is True
        assert "title" not in artifact.props

    def test_grouped_global_imports(self, generator):
        artifact = generator.generate("Card", adapter="vuetify")
        assert "import 'vuetify/styles';" in artifact.imports
        assert artifact.props["class"] == "pa-4"


def test_migration_between_builtin_adapters(generator):
    import asyncio

    report = asyncio.run(generator.registry.check_migration_compatibility("primevue", "vuetify"))
    assert report.from_library == "primevue"
    assert report.to_library == "vuetify"
    assert 0 < report.coverage_percentage <= 100


def test_quick_generate():
    artifact = quick_generate("Button", "vuetify", theme="light")
    assert artifact.tag == "VBtn"
    assert artifact.theme["name"] == "light"
