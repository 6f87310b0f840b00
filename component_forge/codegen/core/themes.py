"""
Theme-token providers.

Theme documents are opaque to the engine: a provider returns whatever token
data it has for a theme and component, and the generator attaches it to the
artifact untouched.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Union

from ... import utils
from ...logging_config import get_logger
from .config import BUILTIN_THEMES_DIR
from .errors import ConfigNotFound

logger = get_logger(__name__)


class ThemeProvider(ABC):
    """Source of theme tokens."""

    @abstractmethod
    def resolve(self, theme: str, component: str) -> Dict[str, Any]:
        """
        Tokens for ``component`` under ``theme``.

        Raises:
            Exception: Any failure; callers treat it as "no theme data"
        """
        pass

    def available_themes(self) -> List[str]:
        return []


class JsonThemeProvider(ThemeProvider):
    """Reads ``<theme>.json`` documents from search directories.

    A document may carry a ``components`` section with per-component tokens;
    the rest of the document is passed along as global tokens.
    """

    def __init__(self, theme_dirs: Optional[Iterable[Union[str, Path]]] = None):
        if theme_dirs is None:
            theme_dirs = [BUILTIN_THEMES_DIR]
        self.theme_dirs = [Path(d) for d in theme_dirs]
        self._documents: Dict[str, Dict[str, Any]] = {}

    def load(self, theme: str) -> Dict[str, Any]:
        document = self._documents.get(theme)
        if document is not None:
            return document

        for directory in self.theme_dirs:
            path = directory / f"{theme}.json"
            if path.is_file():
                _, document = utils.load_document(path)
                self._documents[theme] = document
                logger.debug("Loaded theme %s from %s", theme, path)
                return document
        raise ConfigNotFound(theme, [str(d) for d in self.theme_dirs])

    def resolve(self, theme: str, component: str) -> Dict[str, Any]:
        document = self.load(theme)
        tokens = {k: v for k, v in document.items() if k != "components"}
        return {
            "name": document.get("name", theme),
            "tokens": tokens.get("tokens", tokens),
            "component": dict(document.get("components", {}).get(component, {})),
        }

    def available_themes(self) -> List[str]:
        names = set()
        for directory in self.theme_dirs:
            if directory.is_dir():
                names.update(p.stem for p in directory.glob("*.json"))
        return sorted(names)
