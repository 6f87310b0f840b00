"""
Generation cache keyed by request fingerprints.
"""

import hashlib
import json
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from ...logging_config import get_logger

logger = get_logger(__name__)

# Options that steer lookup but not the produced artifact
_LOOKUP_ONLY_OPTIONS = frozenset({"use_cache", "useCache"})


def canonical_options(options: Mapping[str, Any]) -> str:
    """Serialize options with sorted keys at every level."""
    cleaned = {k: v for k, v in options.items() if k not in _LOOKUP_ONLY_OPTIONS}
    return json.dumps(cleaned, sort_keys=True, separators=(",", ":"), default=repr)


def make_fingerprint(
    component: str,
    adapter_name: str,
    adapter_version: str,
    options: Optional[Mapping[str, Any]] = None,
    epoch: int = 0,
) -> str:
    """
    Build the cache key for a generation request.

    Args:
        component: Semantic component name
        adapter_name: Target adapter name
        adapter_version: Target adapter version
        options: Generation options plus any request overrides
        epoch: Combined adapter and component epoch

    Returns:
        ``"<component>:<adapter>@<version>#<epoch>:<options digest>"``
    """
    digest = hashlib.sha256(canonical_options(options or {}).encode("utf-8")).hexdigest()
    return f"{component}:{adapter_name}@{adapter_version}#{epoch}:{digest}"


@dataclass
class CacheStats:
    hits: int = 0
    misses: int = 0
    writes: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {"hits": self.hits, "misses": self.misses, "writes": self.writes}


class GenerationCache:
    """In-memory fingerprint -> artifact map.

    A second write for the same fingerprint replaces the first; both come
    from identical inputs so the replacement is harmless.
    """

    def __init__(self):
        self._entries: Dict[str, Any] = {}
        self.stats = CacheStats()

    def get(self, fingerprint: str) -> Optional[Any]:
        artifact = self._entries.get(fingerprint)
        if artifact is None:
            self.stats.misses += 1
        else:
            self.stats.hits += 1
            logger.debug("Cache hit: %s", fingerprint)
        return artifact

    def put(self, fingerprint: str, artifact: Any):
        if fingerprint in self._entries:
            logger.debug("Cache entry replaced: %s", fingerprint)
        self._entries[fingerprint] = artifact
        self.stats.writes += 1

    def clear(self):
        self._entries.clear()

    def __contains__(self, fingerprint: str) -> bool:
        return fingerprint in self._entries

    def __len__(self) -> int:
        return len(self._entries)
