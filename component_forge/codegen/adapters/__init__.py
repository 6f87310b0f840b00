"""
Built-in adapter documents and the handler functions they reference.
"""

from .handlers import create_function_registry, register_builtin_handlers

__all__ = ["create_function_registry", "register_builtin_handlers"]
