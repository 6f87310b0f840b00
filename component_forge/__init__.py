"""
Component Forge

Generates target-library UI components from library-agnostic semantic
component definitions.
"""

__version__ = "0.1.0"
