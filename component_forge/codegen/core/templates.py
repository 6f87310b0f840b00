"""
Template engine wrapper for ``template`` transformation rules.

Provides a sandboxed Jinja2 environment with case-conversion filters so that
rules like ``"btn-{{ value }}-{{ props.size | kebab_case }}"`` can build
target prop values from semantic props.
"""

from typing import Any, Dict, Mapping

from jinja2 import TemplateError as JinjaTemplateError
from jinja2.sandbox import SandboxedEnvironment

from .naming import to_camel_case, to_kebab_case, to_pascal_case, to_snake_case


class TemplateError(Exception):
    """Exception raised for template-related errors."""

    pass


class TemplateEngine:
    """Sandboxed Jinja2 environment for rule templates."""

    def __init__(self):
        """Initialize template engine."""
        self._env = SandboxedEnvironment(autoescape=False, keep_trailing_newline=False)
        self._cache: Dict[str, Any] = {}

        self._env.filters["snake_case"] = to_snake_case
        self._env.filters["camel_case"] = to_camel_case
        self._env.filters["pascal_case"] = to_pascal_case
        self._env.filters["kebab_case"] = to_kebab_case

    def render_string(self, template_string: str, context: Mapping[str, Any]) -> str:
        """
        Render a template string with the given context.

        Args:
            template_string: Template content as string
            context: Variables to pass to template

        Returns:
            Rendered content
        """
        template = self._cache.get(template_string)
        try:
            if template is None:
                template = self._env.from_string(template_string)
                self._cache[template_string] = template
            return template.render(**context)
        except JinjaTemplateError as e:
            raise TemplateError(f"Failed to render template {template_string!r}: {e}") from e
