"""
Adapter registry for managing target-library adapters.

Loads adapters on demand, de-duplicates concurrent loads of the same
library through one shared in-flight task, tracks the current library and
hands out per-adapter epochs used to invalidate cached artifacts on reload.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from ..logging_config import get_logger
from .adapters.handlers import create_function_registry
from .core.adapter import Adapter
from .core.config import ConfigurationStore
from .core.errors import AdapterLoadError, ForgeError, RegistryError
from .core.functions import FunctionRegistry
from .core.schema import AdapterDefinition
from .core.transforms import TransformationEngine

logger = get_logger(__name__)

MIGRATION_THRESHOLD = 80.0


@dataclass
class MigrationReport:
    """Feature coverage of a migration between two libraries."""

    possible: bool
    coverage_percentage: float
    common_features: List[str] = field(default_factory=list)
    missing_features: List[str] = field(default_factory=list)
    from_library: Optional[str] = None
    to_library: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "possible": self.possible,
            "coveragePercentage": self.coverage_percentage,
            "commonFeatures": list(self.common_features),
            "missingFeatures": list(self.missing_features),
        }


def compare_features(from_features: Iterable[str], to_features: Iterable[str]) -> MigrationReport:
    """
    Compare feature sets of a source and target library.

    Coverage is the share of source features the target also has; migration
    is considered possible from 80% coverage.
    """
    source = set(from_features)
    target = set(to_features)
    common = sorted(source & target)
    missing = sorted(source - target)
    coverage = 100.0 if not source else round(len(common) / len(source) * 100, 2)
    return MigrationReport(
        possible=coverage >= MIGRATION_THRESHOLD,
        coverage_percentage=coverage,
        common_features=common,
        missing_features=missing,
    )


class AdapterRegistry:
    """Registry of loaded adapters plus the current target library."""

    def __init__(
        self,
        store: Optional[ConfigurationStore] = None,
        functions: Optional[FunctionRegistry] = None,
        engine: Optional[TransformationEngine] = None,
    ):
        """
        Initialize registry.

        Args:
            store: Source of adapter definitions
            functions: Function registry for rule ids (built-in handlers by default)
            engine: Transformation engine shared by all adapters
        """
        self.functions = functions or create_function_registry()
        self.store = store or ConfigurationStore(functions=self.functions)
        self.engine = engine or TransformationEngine()
        self._adapters: Dict[str, Adapter] = {}
        self._inflight: Dict[str, asyncio.Task] = {}
        self._epochs: Dict[str, int] = {}
        self._current: Optional[str] = None

    # Loading

    async def load_adapter(self, name: str) -> Adapter:
        """
        Load (or return the already loaded) adapter for a library.

        Concurrent calls for the same library share one load.

        Raises:
            ConfigError: If the adapter document is missing or invalid
            UnknownTransformationType: If a rule has an unknown type
        """
        key = name.lower()
        adapter = self._adapters.get(key)
        if adapter is not None:
            return adapter

        task = self._inflight.get(key)
        if task is None:
            task = asyncio.ensure_future(self._load(name, key))
            self._inflight[key] = task
            task.add_done_callback(lambda _: self._inflight.pop(key, None))
        else:
            logger.debug("Joining in-flight load of adapter %s", name)
        return await asyncio.shield(task)

    async def _load(self, name: str, key: str) -> Adapter:
        logger.debug("Loading adapter %s", name)
        definition = await asyncio.to_thread(self.store.load_adapter_definition, name)
        adapter = Adapter(definition, self.functions, self.engine)
        self._adapters[key] = adapter
        logger.info("Loaded adapter %s@%s", adapter.name, adapter.version)
        return adapter

    async def set_current_library(self, name: str) -> Adapter:
        """
        Make ``name`` the current target library.

        If loading fails, the previously current adapter stays active.

        Raises:
            AdapterLoadError: If loading fails and there is no previous adapter
        """
        try:
            adapter = await self.load_adapter(name)
        except ForgeError as e:
            previous = self.get_current_adapter()
            if previous is None:
                logger.error("Cannot load adapter %s and no adapter is active: %s", name, e)
                raise AdapterLoadError(name, e) from e
            logger.warning("Cannot load adapter %s, keeping %s: %s", name, previous.name, e)
            return previous

        self._current = name.lower()
        logger.info("Current library: %s", adapter.name)
        return adapter

    async def reload_adapter(self, name: str) -> Adapter:
        """Re-read an adapter and bump its epoch so cached artifacts become stale."""
        key = name.lower()
        old = self._adapters.pop(key, None)
        if old is not None:
            old.clear_cache()
        self._bump(key)
        return await self.load_adapter(name)

    def register_adapter(
        self, adapter: Union[Adapter, AdapterDefinition, Mapping[str, Any]]
    ) -> Adapter:
        """Register an in-memory adapter (replacing one of the same name bumps its epoch)."""
        if not isinstance(adapter, Adapter):
            adapter = Adapter(adapter, self.functions, self.engine)
        key = adapter.name.lower()
        if key in self._adapters:
            self._adapters[key].clear_cache()
            self._bump(key)
        self._adapters[key] = adapter
        logger.debug("Registered adapter %s", adapter.name)
        return adapter

    # Queries

    def get_adapter(self, name: str) -> Adapter:
        adapter = self._adapters.get(name.lower())
        if adapter is None:
            raise RegistryError(
                f"Adapter not loaded: {name}. Loaded: {', '.join(self.get_loaded_adapters()) or 'none'}"
            )
        return adapter

    def get_current_adapter(self) -> Optional[Adapter]:
        if self._current is None:
            return None
        return self._adapters.get(self._current)

    @property
    def current_library(self) -> Optional[str]:
        adapter = self.get_current_adapter()
        return adapter.name if adapter else None

    def is_adapter_loaded(self, name: str) -> bool:
        return name.lower() in self._adapters

    def get_loaded_adapters(self) -> List[str]:
        return sorted(adapter.name for adapter in self._adapters.values())

    def list_available_adapters(self) -> List[str]:
        """Loaded adapters plus the ones the store can find."""
        names = {adapter.name.lower() for adapter in self._adapters.values()}
        names.update(self.store.list_adapters())
        return sorted(names)

    def adapter_epoch(self, name: str) -> int:
        return self._epochs.get(name.lower(), 0)

    def _bump(self, key: str):
        self._epochs[key] = self._epochs.get(key, 0) + 1
        logger.debug("Adapter %s epoch is now %d", key, self._epochs[key])

    # Migration

    async def check_migration_compatibility(self, from_library: str, to_library: str) -> MigrationReport:
        """Feature coverage when moving from one library to another."""
        source, target = await asyncio.gather(
            self.load_adapter(from_library), self.load_adapter(to_library)
        )
        report = compare_features(source.get_features(), target.get_features())
        report.from_library = source.name
        report.to_library = target.name
        logger.info(
            "Migration %s -> %s: %.2f%% coverage", source.name, target.name, report.coverage_percentage
        )
        return report
