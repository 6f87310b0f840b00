"""
Pytest configuration and shared fixtures for component_forge tests.

Fixtures build a throwaway component directory and a small ``testlib``
adapter so tests never depend on the built-in documents unless they mean to.
"""

import json
from pathlib import Path
from typing import Any, Dict

import pytest

from component_forge.codegen.adapters import create_function_registry
from component_forge.codegen.core.config import ConfigurationStore, EngineConfig
from component_forge.codegen.core.generator import ComponentGenerator
from component_forge.codegen.registry import AdapterRegistry


def write_json(directory: Path, filename: str, data: Dict[str, Any]) -> Path:
    """Write a JSON document and return its path."""
    path = directory / filename
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


COMPONENTS = {
    "Icon": {
        "name": "Icon",
        "baseComponent": "i",
        "props": {"name": {"type": "string", "required": True}},
    },
    "Button": {
        "name": "Button",
        "baseComponent": "button",
        "dependencies": ["Icon"],
        "props": {
            "label": {"type": "string"},
            "variant": {
                "type": "string",
                "default": "primary",
                "enum": ["primary", "secondary", "tertiary"],
            },
            "disabled": {"type": "boolean", "default": False},
            "icon": {"type": "string"},
            "iconPosition": {"type": "string", "default": "left", "enum": ["left", "right"]},
        },
        "events": {"click": {"parameters": ["event"]}},
        "slots": {"default": {}},
    },
    "Card": {
        "name": "Card",
        "baseComponent": "section",
        "dependencies": ["Button"],
        "props": {"title": {"type": "string"}},
        "slots": {"default": {}, "footer": {}},
    },
    "Tooltip": {
        "name": "Tooltip",
        "baseComponent": "div",
        "props": {"text": {"type": "string"}},
    },
}


@pytest.fixture
def adapter_doc() -> Dict[str, Any]:
    """A small adapter document for the ``testlib`` target library."""
    return {
        "name": "testlib",
        "displayName": "Test Library",
        "version": "1.0.0",
        "imports": ["import 'testlib/styles.css';"],
        "compatibility": {"versions": ["1.x"], "features": ["theming", "icons"]},
        "performance": {"default": {}, "Button": {"debounce": {"press": 200}}},
        "componentMappings": {
            "Icon": {
                "component": "TIcon",
                "import": "import { TIcon } from 'testlib';",
                "props": {"name": "icon"},
            },
            "Button": {
                "component": "TButton",
                "import": "import { TButton } from 'testlib';",
                "props": {"label": "text"},
                "propTransformations": {
                    "variant": {
                        "type": "mapping",
                        "target": "severity",
                        "table": {"primary": "primary", "secondary": "outlined"},
                    },
                    "iconPosition": {
                        "type": "conditional",
                        "predicate": {"operator": "===", "value": "right"},
                        "trueValue": {"iconPos": "end"},
                        "falseValue": {"iconPos": "start"},
                    },
                },
                "events": {"click": "press"},
                "slots": {"default": "content"},
                "supportedFeatures": ["variants"],
            },
            "Card": {
                "component": "TCard",
                "import": "import { TCard } from 'testlib';",
                "props": {},
                "slots": {"default": "body"},
            },
        },
    }


@pytest.fixture
def components_dir(tmp_path) -> Path:
    """Directory holding the test component definitions."""
    directory = tmp_path / "components"
    directory.mkdir()
    for name, data in COMPONENTS.items():
        write_json(directory, f"{name}.json", data)
    return directory


@pytest.fixture
def adapters_dir(tmp_path, adapter_doc) -> Path:
    """Directory holding ``testlib.json``."""
    directory = tmp_path / "adapters"
    directory.mkdir()
    write_json(directory, "testlib.json", adapter_doc)
    return directory


@pytest.fixture
def functions():
    return create_function_registry()


@pytest.fixture
def store(components_dir, adapters_dir, functions) -> ConfigurationStore:
    return ConfigurationStore(
        component_dirs=[components_dir], adapter_dirs=[adapters_dir], functions=functions
    )


@pytest.fixture
def registry(store, functions) -> AdapterRegistry:
    return AdapterRegistry(store=store, functions=functions)


@pytest.fixture
def generator(registry) -> ComponentGenerator:
    """Generator targeting ``testlib`` by default."""
    return ComponentGenerator(registry, config=EngineConfig(default_library="testlib"))
