"""
Unit tests for the component generation pipeline.
"""

import asyncio
from unittest import mock

import pytest

from conftest import write_json

from component_forge.codegen.core.errors import (
    CircularDependencyError,
    ComponentNotSupported,
    ConfigNotFound,
    ConfigParseError,
    DependencyFailed,
)
from component_forge.codegen.core.generator import (
    ComponentGenerator,
    ComponentState,
    GenerationOptions,
    GenerationRequest,
)
from component_forge.codegen.core.rules import WrappedHandler
from component_forge.codegen.core.themes import JsonThemeProvider, ThemeProvider


class TestGenerationOptions:
    def test_merged_accepts_camel_case(self):
        options = GenerationOptions().merged({"useCache": False, "partitionStatic": True})
        assert options.use_cache is False
        assert options.partition_static is True

    def test_merged_rejects_unknown_keys(self):
        with pytest.raises(ValueError):
            GenerationOptions().merged({"minify": True})


class TestGenerate:
    """Test cases for single-component generation."""

    def test_end_to_end(self, generator):
        artifact = generator.generate("Button", props={"label": "Save"})

        assert artifact.component == "Button"
        assert artifact.tag == "TButton"
        assert dict(artifact.props) == {
            "text": "Save",
            "severity": "primary",
            "disabled": False,
            "iconPos": "start",
        }
        assert dict(artifact.events) == {"press": WrappedHandler("click", "debounce", 200)}
        assert dict(artifact.slots) == {"content": "default"}
        assert artifact.imports == (
            "import 'testlib/styles.css';",
            "import { TButton } from 'testlib';",
        )
        assert artifact.dependencies == ("Icon",)
        assert artifact.metadata.adapter == "testlib"
        assert artifact.metadata.adapter_version == "1.0.0"
        assert artifact.metadata.optimizations == ("import-dedupe", "event-debounce")

    def test_bundle(self, generator):
        bundle = generator.generate("Card").bundle()
        assert bundle["tag"] == "TCard"
        assert bundle["slots"] == {"body": "default", "footer": "footer"}

    def test_mapping_table_in_request(self, generator):
        artifact = generator.generate("Button", props={"variant": "secondary"})
        assert artifact.props["severity"] == "outlined"

    def test_artifact_is_immutable(self, generator):
        artifact = generator.generate("Button")
        with pytest.raises(TypeError):
            artifact.props["severity"] = "danger"

    def test_cache_returns_identical_artifact(self, generator):
        first = generator.generate("Button", props={"label": "Save"})
        adapter = generator.registry.get_adapter("testlib")

        with mock.patch.object(adapter, "transform_props", wraps=adapter.transform_props) as props_spy, \
                mock.patch.object(adapter, "transform_events", wraps=adapter.transform_events) as events_spy:
            second = generator.generate("Button", props={"label": "Save"})

        assert second is first
        assert props_spy.call_count == 0
        assert events_spy.call_count == 0

    def test_use_cache_false_regenerates(self, generator):
        first = generator.generate("Button")
        second = generator.generate("Button", {"use_cache": False})
        assert second is not first
        assert second.metadata.fingerprint == first.metadata.fingerprint
        assert dict(second.props) == dict(first.props)

    def test_different_props_do_not_share_cache(self, generator):
        first = generator.generate("Button", props={"label": "Save"})
        second = generator.generate("Button", props={"label": "Cancel"})
        assert first.metadata.fingerprint != second.metadata.fingerprint

    def test_prop_order_is_part_of_cache_key(self, generator):
        # label is renamed to text, so the later prop wins the output key
        first = generator.generate("Button", props={"text": "A", "label": "B"})
        second = generator.generate("Button", props={"label": "B", "text": "A"})
        assert first.props["text"] == "B"
        assert second.props["text"] == "A"
        assert first.metadata.fingerprint != second.metadata.fingerprint

    def test_component_reload_invalidates_cache(self, generator, components_dir):
        first = generator.generate("Card")
        write_json(
            components_dir,
            "Card.json",
            {"name": "Card", "baseComponent": "article", "dependencies": ["Button"],
             "props": {"title": {"type": "string", "default": "Untitled"}}},
        )
        generator.store.reload_component("Card")
        second = generator.generate("Card")
        assert second is not first
        assert second.props["title"] == "Untitled"

    def test_adapter_reload_invalidates_cache(self, generator):
        first = generator.generate("Button")
        asyncio.run(generator.registry.reload_adapter("testlib"))
        second = generator.generate("Button")
        assert second is not first
        assert second.metadata.fingerprint != first.metadata.fingerprint

    def test_unsupported_component(self, generator):
        with pytest.raises(ComponentNotSupported):
            generator.generate("Tooltip")
        assert len(generator.cache) == 0

    def test_mapped_component_without_definition(self, generator, adapter_doc):
        adapter_doc["componentMappings"]["Ghost"] = {
            "component": "TGhost",
            "import": "import { TGhost } from 'testlib';",
            "props": {},
        }
        generator.registry.register_adapter(adapter_doc)
        with pytest.raises(ConfigNotFound):
            generator.generate(GenerationRequest("Ghost", GenerationOptions()))
        assert len(generator.cache) == 0

    def test_typescript_types(self, generator):
        artifact = generator.generate("Button", {"typescript": True})
        types = artifact.types
        assert types.interface_name == "ButtonProps"
        members = {member.name: member for member in types.props}
        assert members["variant"].type == "'primary' | 'secondary' | 'tertiary'"
        assert members["disabled"].type == "boolean"
        assert [member.name for member in types.events] == ["onClick"]

    def test_no_types_by_default(self, generator):
        assert generator.generate("Button").types is None

    def test_collision_is_reported_in_metadata(self, generator, adapter_doc):
        adapter_doc["componentMappings"]["Card"]["propTransformations"] = {
            "title": {"type": "conditional", "trueValue": {"heading": "a"}},
        }
        adapter_doc["componentMappings"]["Card"]["props"] = {"subtitle": "heading"}
        generator.registry.register_adapter(adapter_doc)
        generator.store.register_component(
            {"name": "Card", "baseComponent": "section",
             "props": {"title": {"type": "string"}, "subtitle": {"type": "string"}}}
        )

        artifact = generator.generate("Card", props={"title": "x", "subtitle": "y"})
        assert artifact.props["heading"] == "y"
        assert any("heading" in warning for warning in artifact.metadata.warnings)


class TestOptimizations:
    """Test cases for output optimizations."""

    def test_dead_props_removed(self, generator):
        artifact = generator.generate("Button", props={"label": None})
        assert "text" not in artifact.props
        assert "dead-prop-elimination" in artifact.metadata.optimizations

    def test_optimize_off_keeps_everything(self, generator):
        artifact = generator.generate("Button", {"optimize": False}, props={"label": None})
        assert artifact.props["text"] is None
        assert artifact.metadata.optimizations == ()
        assert artifact.events["press"] == "click"

    def test_static_partition(self, generator):
        artifact = generator.generate(
            "Button", {"partition_static": True}, props={"label": "Go", "icon": ["a", "b"]}
        )
        assert "icon" in artifact.dynamic_props
        assert artifact.static_props["text"] == "Go"
        assert "static-partition" in artifact.metadata.optimizations

    def test_static_partition_hint(self, generator, adapter_doc):
        adapter_doc["performance"]["Card"] = {"staticProps": ["title"]}
        generator.registry.register_adapter(adapter_doc)
        artifact = generator.generate("Card", props={"title": "Hello"})
        assert dict(artifact.static_props) == {"title": "Hello"}


class TestThemes:
    """Test cases for theme resolution."""

    def test_theme_tokens_attached(self, registry, tmp_path):
        write_json(
            tmp_path,
            "dark.json",
            {"name": "dark", "tokens": {"colorPrimary": "#000"}, "components": {"Button": {"radius": "4px"}}},
        )
        generator = ComponentGenerator(registry, theme_provider=JsonThemeProvider([tmp_path]))
        artifact = asyncio.run(generator.generate_async("Button", {"theme": "dark"}, adapter="testlib"))
        assert artifact.theme["tokens"] == {"colorPrimary": "#000"}
        assert artifact.theme["component"] == {"radius": "4px"}

    def test_theme_failure_is_not_fatal(self, generator):
        provider = mock.Mock(spec=ThemeProvider)
        provider.resolve.side_effect = RuntimeError("theme service down")
        generator.theme_provider = provider

        artifact = generator.generate("Button", {"theme": "dark"})

        assert artifact.theme is None
        assert any("theme service down" in warning for warning in artifact.metadata.warnings)
        assert artifact.props["severity"] == "primary"

    def test_missing_theme_document(self, generator, tmp_path):
        generator.theme_provider = JsonThemeProvider([tmp_path])
        artifact = generator.generate("Button", {"theme": "neon"})
        assert artifact.theme is None
        assert artifact.metadata.warnings

    def test_builtin_themes(self):
        provider = JsonThemeProvider()
        assert provider.available_themes() == ["dark", "light"]
        assert "colorPrimary" in provider.resolve("light", "Button")["tokens"]


class TestBatch:
    """Test cases for batch generation."""

    def test_batch_generates_dependencies_first(self, generator):
        result = generator.generate_batch(["Card"])
        assert result.ok
        assert [a.component for a in result.done] == ["Icon", "Button", "Card"]
        assert all(state == ComponentState.DONE for state in result.states.values())

    def test_skipped_items(self, generator):
        result = generator.generate_batch(["Button", "Tooltip", "Button"], skip_unsupported=True)
        assert [(s.component, s.reason) for s in result.skipped] == [
            ("Tooltip", "not supported by testlib"),
            ("Button", "duplicate request"),
        ]
        assert result.artifact("Button") is not None
        assert result.ok

    def test_unsupported_fails_without_skip(self, generator):
        result = generator.generate_batch(["Tooltip", "Button"])
        assert isinstance(result.error("Tooltip"), ComponentNotSupported)
        assert result.artifact("Button") is not None
        assert result.states["Tooltip"] == ComponentState.FAILED

    def test_failure_propagates_to_dependents_only(self, generator, components_dir):
        write_json(components_dir, "Panel.json", {"name": "Panel", "baseComponent": "div", "dependencies": ["Missing"]})
        result = generator.generate_batch(["Panel", "Button"])

        assert isinstance(result.error("Missing"), ConfigNotFound)
        error = result.error("Panel")
        assert isinstance(error, DependencyFailed)
        assert error.dependency == "Missing"
        assert result.artifact("Button") is not None

    def test_undecodable_definition_fails_only_that_component(self, generator, components_dir):
        (components_dir / "Card.json").write_bytes(b'{"name": "Card", "baseComponent": "\xff\xfe"}')
        result = generator.generate_batch(["Button", "Card"])

        assert isinstance(result.error("Card"), ConfigParseError)
        assert [a.component for a in result.done] == ["Icon", "Button"]

    def test_generation_failure_fails_dependents(self, generator, adapter_doc):
        adapter_doc["componentMappings"]["Icon"]["propTransformations"] = {
            "name": {"type": "computed", "expression": "size * 2"}
        }
        generator.registry.register_adapter(adapter_doc)
        result = generator.generate_batch(
            [GenerationRequest("Icon", GenerationOptions(), props={"name": "x"}), "Card"]
        )
        assert result.error("Icon") is not None
        assert isinstance(result.error("Button"), DependencyFailed)
        assert isinstance(result.error("Card"), DependencyFailed)

    def test_cycle_members_fail(self, generator, components_dir):
        write_json(components_dir, "CycA.json", {"name": "CycA", "baseComponent": "div", "dependencies": ["CycB"]})
        write_json(components_dir, "CycB.json", {"name": "CycB", "baseComponent": "div", "dependencies": ["CycA"]})
        result = generator.generate_batch(["CycA", "Button"])
        assert isinstance(result.error("CycA"), CircularDependencyError)
        assert isinstance(result.error("CycB"), CircularDependencyError)
        assert result.artifact("Button") is not None

    def test_generate_raises_dependency_failure(self, generator, adapter_doc):
        adapter_doc["componentMappings"]["Icon"]["propTransformations"] = {
            "name": {"type": "computed", "expression": "size * 2"}
        }
        generator.registry.register_adapter(adapter_doc)
        generator.store.register_component(
            {"name": "Icon", "baseComponent": "i", "props": {"name": {"type": "string", "default": "x"}}}
        )
        with pytest.raises(DependencyFailed):
            generator.generate("Button")

    def test_summary(self, generator):
        result = generator.generate_batch(["Button", "Tooltip"], skip_unsupported=True)
        summary = result.summary()
        assert summary["done"] == ["Icon", "Button"]
        assert summary["failed"] == []
        assert summary["skipped"] == [{"component": "Tooltip", "reason": "not supported by testlib"}]

    def test_concurrent_requests_share_generation(self, generator):
        async def twice():
            return await asyncio.gather(
                generator.generate_async("Button"), generator.generate_async("Button")
            )

        first, second = asyncio.run(twice())
        assert first is second

    def test_to_dict_serializes_wrapped_handlers(self, generator):
        data = generator.generate("Button").to_dict()
        assert data["events"]["press"] == {"handler": "click", "strategy": "debounce", "delayMs": 200}
        assert data["metadata"]["adapter"] == "testlib"
