"""
Component generation pipeline.

The :class:`ComponentGenerator` turns semantic component requests into
:class:`GeneratedArtifact` bundles for the active adapter. Batches run one
asyncio task per component; a task waits for its dependencies' completion
futures before running its own pipeline, so independent components proceed
concurrently and failures stay scoped to the failing component and its
dependents.
"""

import asyncio
from dataclasses import asdict, dataclass, field, fields, replace
from datetime import datetime, timezone
from enum import Enum
from types import MappingProxyType
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Tuple, Union

from ...logging_config import get_logger
from .cache import GenerationCache, make_fingerprint
from .config import ConfigurationStore, EngineConfig
from .errors import ComponentNotSupported, DependencyFailed, ForgeError
from .resolver import DependencyResolver
from .rules import WrappedHandler
from .themes import ThemeProvider
from .transforms import Collision
from .types import TypeDescriptor, synthesize_types

logger = get_logger(__name__)

_SCALARS = (str, int, float, bool)


class ComponentState(Enum):
    """Per-component progress within a batch."""

    PENDING = "pending"
    RESOLVING = "resolving"
    GENERATING = "generating"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class GenerationOptions:
    """Options that shape a generated artifact."""

    use_cache: bool = True
    theme: Optional[str] = None
    typescript: bool = False
    format: str = "sfc"
    strict: bool = False
    optimize: bool = True
    partition_static: bool = False

    @classmethod
    def from_config(cls, config: EngineConfig) -> "GenerationOptions":
        return cls(
            use_cache=config.use_cache,
            typescript=config.typescript,
            format=config.format,
            strict=config.strict,
            optimize=config.optimize,
            partition_static=config.partition_static,
        )

    def merged(self, overrides: Optional[Mapping[str, Any]] = None) -> "GenerationOptions":
        """Copy with ``overrides`` applied; camelCase keys are accepted."""
        if not overrides:
            return self
        aliases = {"useCache": "use_cache", "partitionStatic": "partition_static"}
        known = {f.name for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            key = aliases.get(key, key)
            if key not in known:
                raise ValueError(f"Unknown generation option: {key}")
            changes[key] = value
        return replace(self, **changes)


@dataclass(frozen=True)
class GenerationRequest:
    component_name: str
    options: GenerationOptions = field(default_factory=GenerationOptions)
    props: Optional[Mapping[str, Any]] = None
    events: Optional[Mapping[str, Any]] = None
    slots: Optional[Mapping[str, Any]] = None
    adapter: Optional[str] = None

    def fingerprint_options(self) -> Dict[str, Any]:
        """Options plus request overrides, as hashed into the fingerprint.

        Override key order decides collision winners, so it is hashed
        alongside the values.
        """
        options = asdict(self.options)
        for key in ("props", "events", "slots"):
            value = getattr(self, key)
            if value is not None:
                options[key] = dict(value)
                options[f"{key}_order"] = list(value)
        return options


@dataclass(frozen=True)
class ArtifactMetadata:
    adapter: str
    adapter_version: str
    generated_at: str
    fingerprint: str
    format: str = "sfc"
    optimizations: Tuple[str, ...] = ()
    warnings: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["optimizations"] = list(self.optimizations)
        data["warnings"] = list(self.warnings)
        return data


@dataclass(frozen=True)
class GeneratedArtifact:
    """Fully resolved output for one component. Never mutated after creation."""

    component: str
    tag: str
    props: Mapping[str, Any]
    events: Mapping[str, Any]
    slots: Mapping[str, Any]
    imports: Tuple[str, ...]
    metadata: ArtifactMetadata
    static_props: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    dynamic_props: Mapping[str, Any] = field(default_factory=lambda: MappingProxyType({}))
    types: Optional[TypeDescriptor] = None
    theme: Optional[Mapping[str, Any]] = None
    dependencies: Tuple[str, ...] = ()

    def bundle(self) -> Dict[str, Any]:
        """The ``{tag, props, events, slots, imports}`` handoff for renderers."""
        return {
            "tag": self.tag,
            "props": dict(self.props),
            "events": dict(self.events),
            "slots": dict(self.slots),
            "imports": list(self.imports),
        }

    def to_dict(self) -> Dict[str, Any]:
        data = self.bundle()
        data["events"] = {
            name: handler.to_dict() if isinstance(handler, WrappedHandler) else handler
            for name, handler in self.events.items()
        }
        data.update(
            {
                "component": self.component,
                "staticProps": dict(self.static_props),
                "dynamicProps": dict(self.dynamic_props),
                "types": self.types.to_dict() if self.types else None,
                "theme": dict(self.theme) if self.theme is not None else None,
                "dependencies": list(self.dependencies),
                "metadata": self.metadata.to_dict(),
            }
        )
        return data


@dataclass(frozen=True)
class FailedItem:
    component: str
    error: BaseException

    @property
    def reason(self) -> str:
        return str(self.error)


@dataclass(frozen=True)
class SkippedItem:
    component: str
    reason: str


@dataclass
class BatchResult:
    """Outcome of a batch: nothing in it is ever left unaccounted for."""

    done: List[GeneratedArtifact] = field(default_factory=list)
    failed: List[FailedItem] = field(default_factory=list)
    skipped: List[SkippedItem] = field(default_factory=list)
    states: Dict[str, ComponentState] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.failed

    def artifact(self, component: str) -> Optional[GeneratedArtifact]:
        for artifact in self.done:
            if artifact.component == component:
                return artifact
        return None

    def error(self, component: str) -> Optional[BaseException]:
        for item in self.failed:
            if item.component == component:
                return item.error
        return None

    def summary(self) -> Dict[str, Any]:
        return {
            "done": [a.component for a in self.done],
            "failed": [{"component": f.component, "reason": f.reason} for f in self.failed],
            "skipped": [{"component": s.component, "reason": s.reason} for s in self.skipped],
        }


RequestLike = Union[str, GenerationRequest]
OptionsLike = Union[GenerationOptions, Mapping[str, Any], None]


class ComponentGenerator:
    """Generates component artifacts for the registry's adapters."""

    def __init__(
        self,
        registry,
        store: Optional[ConfigurationStore] = None,
        cache: Optional[GenerationCache] = None,
        theme_provider: Optional[ThemeProvider] = None,
        config: Optional[EngineConfig] = None,
    ):
        """
        Initialize generator.

        Args:
            registry: AdapterRegistry supplying adapters and their epochs
            store: Component definitions (defaults to the registry's store)
            cache: Artifact cache
            theme_provider: Theme-token source; without one, theme requests
                degrade to no theme data
            config: Engine settings for option defaults
        """
        self.registry = registry
        self.store = store or registry.store
        self.cache = cache if cache is not None else GenerationCache()
        self.theme_provider = theme_provider
        self.config = config or EngineConfig()
        self.resolver = DependencyResolver(self.store)
        self.default_options = GenerationOptions.from_config(self.config)
        self._inflight: Dict[str, asyncio.Future] = {}

    # Public API

    def generate(self, request: RequestLike, options: OptionsLike = None, **overrides) -> GeneratedArtifact:
        """Synchronous :meth:`generate_async`; must not be called from a running loop."""
        return asyncio.run(self.generate_async(request, options, **overrides))

    async def generate_async(
        self, request: RequestLike, options: OptionsLike = None, **overrides
    ) -> GeneratedArtifact:
        """
        Generate one component (and, first, everything it depends on).

        Args:
            request: Component name or full request
            options: Generation options (or a dict of overrides)
            **overrides: ``props``, ``events``, ``slots`` or ``adapter`` for name requests

        Returns:
            The artifact; the identical cached object on a cache hit

        Raises:
            ComponentNotSupported: If the adapter has no mapping for the component
            ForgeError: The component's own failure, or DependencyFailed
        """
        request = self._request(request, options, overrides)
        adapter = await self._adapter(request.adapter)
        if not adapter.is_component_supported(request.component_name):
            raise ComponentNotSupported(request.component_name, adapter.name)

        result = await self._run_batch([request], adapter, skip_unsupported=False)
        artifact = result.artifact(request.component_name)
        if artifact is None:
            raise result.error(request.component_name)
        return artifact

    def generate_batch(
        self,
        requests: Iterable[RequestLike],
        options: OptionsLike = None,
        skip_unsupported: bool = False,
        adapter: Optional[str] = None,
    ) -> BatchResult:
        """Synchronous :meth:`generate_batch_async`."""
        return asyncio.run(self.generate_batch_async(requests, options, skip_unsupported, adapter))

    async def generate_batch_async(
        self,
        requests: Iterable[RequestLike],
        options: OptionsLike = None,
        skip_unsupported: bool = False,
        adapter: Optional[str] = None,
    ) -> BatchResult:
        """
        Generate several components, dependencies first.

        Args:
            requests: Component names or requests
            options: Options for name requests
            skip_unsupported: Skip components the adapter does not map
                instead of failing them
            adapter: Adapter name (defaults to the current library)

        Returns:
            BatchResult with done, failed and skipped items
        """
        built = [self._request(r, options, {"adapter": adapter} if adapter else {}) for r in requests]
        target = await self._adapter(adapter)
        return await self._run_batch(built, target, skip_unsupported)

    def fingerprint(self, request: GenerationRequest, adapter) -> str:
        epoch = self.registry.adapter_epoch(adapter.name) + self.store.component_epoch(
            request.component_name
        )
        return make_fingerprint(
            request.component_name,
            adapter.name,
            adapter.version,
            request.fingerprint_options(),
            epoch,
        )

    # Batch orchestration

    async def _run_batch(
        self, requests: Sequence[GenerationRequest], adapter, skip_unsupported: bool
    ) -> BatchResult:
        result = BatchResult()
        by_name: Dict[str, GenerationRequest] = {}

        for request in requests:
            name = request.component_name
            if name in by_name:
                result.skipped.append(SkippedItem(name, "duplicate request"))
                continue
            if skip_unsupported and not adapter.is_component_supported(name):
                result.skipped.append(SkippedItem(name, f"not supported by {adapter.name}"))
                continue
            by_name[name] = request

        plan = self.resolver.plan(list(by_name))
        states = {name: ComponentState.PENDING for name in plan.order}
        result.states = states
        errors: Dict[str, BaseException] = {}
        artifacts: Dict[str, GeneratedArtifact] = {}
        loop = asyncio.get_running_loop()
        finished = {name: loop.create_future() for name in plan.order}

        # Options for pulled-in dependencies: the batch's, without per-request overrides
        base_options = requests[0].options if requests else self.default_options

        async def run(name: str):
            try:
                states[name] = ComponentState.RESOLVING
                if name in plan.failures:
                    errors[name] = plan.failures[name]
                    states[name] = ComponentState.FAILED
                    return

                for dependency in plan.dependencies.get(name, ()):
                    await finished[dependency]
                    if dependency in errors:
                        raise DependencyFailed(name, dependency, errors[dependency])

                states[name] = ComponentState.GENERATING
                request = by_name.get(name) or GenerationRequest(name, base_options)
                artifacts[name] = await self._generate_one(request, adapter)
                states[name] = ComponentState.DONE
            except ForgeError as e:
                logger.warning("Generation of %s failed: %s", name, e)
                errors[name] = e
                states[name] = ComponentState.FAILED
            except Exception as e:
                logger.error("Unexpected failure generating %s: %s", name, e, exc_info=True)
                errors[name] = e
                states[name] = ComponentState.FAILED
            finally:
                finished[name].set_result(None)

        await asyncio.gather(*(run(name) for name in plan.order))

        for name in plan.order:
            if name in artifacts:
                result.done.append(artifacts[name])
            else:
                result.failed.append(FailedItem(name, errors[name]))

        logger.info(
            "Batch finished: %d done, %d failed, %d skipped",
            len(result.done), len(result.failed), len(result.skipped),
        )
        return result

    async def _generate_one(self, request: GenerationRequest, adapter) -> GeneratedArtifact:
        fingerprint = self.fingerprint(request, adapter)

        if request.options.use_cache:
            cached = self.cache.get(fingerprint)
            if cached is not None:
                return cached

        pending = self._inflight.get(fingerprint)
        if pending is not None:
            logger.debug("Joining in-flight generation %s", fingerprint)
            return await pending

        future = asyncio.get_running_loop().create_future()
        self._inflight[fingerprint] = future
        try:
            artifact = await self._build(request, adapter, fingerprint)
            self.cache.put(fingerprint, artifact)
            future.set_result(artifact)
            return artifact
        except Exception as e:
            future.set_exception(e)
            # Mark retrieved; joiners re-raise it themselves
            future.exception()
            raise
        finally:
            if not future.done():
                future.cancel()
            self._inflight.pop(fingerprint, None)

    # Pipeline

    async def _build(self, request: GenerationRequest, adapter, fingerprint: str) -> GeneratedArtifact:
        name = request.component_name
        options = request.options
        warnings: List[str] = []

        # 1. definition and adapter
        definition = self.store.load_component(name)
        if not adapter.is_component_supported(name):
            raise ComponentNotSupported(name, adapter.name)

        # 2. props: request order first, then remaining declared defaults
        props = dict(request.props or {})
        for key, value in definition.default_props().items():
            props.setdefault(key, value)
        collisions: List[Collision] = []
        target_props = adapter.transform_props(
            name,
            props,
            overlay=self.store.component_overlay(name),
            strict=options.strict,
            collisions=collisions,
        )
        warnings.extend(
            f"Output prop '{c.key}' from '{c.previous}' overwritten by '{c.current}'"
            for c in collisions
            if not c.acknowledged
        )

        # 3-4. events and slots
        events = request.events if request.events is not None else definition.default_events()
        target_events = adapter.transform_events(name, events)
        slots = request.slots if request.slots is not None else definition.default_slots()
        target_slots = adapter.transform_slots(name, slots)

        # 5. tag and imports
        tag = adapter.get_target_component(name)
        imports = adapter.get_required_imports(name)

        # 6. theme tokens (non-fatal)
        theme = None
        if options.theme:
            theme = await self._resolve_theme(options.theme, name, warnings)

        # 7. types
        types = synthesize_types(definition) if options.typescript else None

        # 8. optimizations
        applied: List[str] = []
        static_props: Dict[str, Any] = {}
        dynamic_props: Dict[str, Any] = dict(target_props)
        if options.optimize:
            hints = adapter.get_performance_hints(name)
            target_props = _eliminate_dead_props(target_props, applied)
            dynamic_props = dict(target_props)
            partition = hints.get("staticProps")
            if options.partition_static or partition:
                static_props, dynamic_props = _partition_props(target_props, partition)
                applied.append("static-partition")
            imports = _dedupe_imports(imports, applied)
            target_events = _debounce_events(target_events, hints.get("debounce"), applied)

        # 9. assembly
        artifact = GeneratedArtifact(
            component=name,
            tag=tag,
            props=MappingProxyType(target_props),
            events=MappingProxyType(dict(target_events)),
            slots=MappingProxyType(dict(target_slots)),
            imports=tuple(imports),
            static_props=MappingProxyType(static_props),
            dynamic_props=MappingProxyType(dynamic_props),
            types=types,
            theme=MappingProxyType(theme) if theme is not None else None,
            dependencies=tuple(definition.dependencies),
            metadata=ArtifactMetadata(
                adapter=adapter.name,
                adapter_version=adapter.version,
                generated_at=datetime.now(timezone.utc).isoformat(),
                fingerprint=fingerprint,
                format=options.format,
                optimizations=tuple(applied),
                warnings=tuple(warnings),
            ),
        )
        logger.info("Generated %s as <%s> with %s", name, tag, adapter.name)
        return artifact

    async def _resolve_theme(self, theme: str, component: str, warnings: List[str]) -> Optional[Dict[str, Any]]:
        if self.theme_provider is None:
            warnings.append(f"No theme provider configured for theme '{theme}'")
            return None
        try:
            return await asyncio.to_thread(self.theme_provider.resolve, theme, component)
        except Exception as e:
            logger.warning("Theme '%s' unavailable for %s: %s", theme, component, e)
            warnings.append(f"Theme '{theme}' unavailable: {e}")
            return None

    # Helpers

    def _request(
        self, request: RequestLike, options: OptionsLike, overrides: Mapping[str, Any]
    ) -> GenerationRequest:
        if isinstance(request, GenerationRequest):
            return replace(request, **overrides) if overrides else request
        if isinstance(options, GenerationOptions):
            resolved = options
        else:
            resolved = self.default_options.merged(options)
        return GenerationRequest(component_name=request, options=resolved, **overrides)

    async def _adapter(self, name: Optional[str]):
        if name:
            return await self.registry.load_adapter(name)
        adapter = self.registry.get_current_adapter()
        if adapter is None:
            if not self.config.default_library:
                raise ForgeError("No adapter selected and no default library configured")
            adapter = await self.registry.set_current_library(self.config.default_library)
        return adapter


def _eliminate_dead_props(props: Dict[str, Any], applied: List[str]) -> Dict[str, Any]:
    kept = {key: value for key, value in props.items() if value is not None}
    if len(kept) != len(props):
        applied.append("dead-prop-elimination")
    return kept


def _partition_props(props: Mapping[str, Any], hint: Any) -> Tuple[Dict[str, Any], Dict[str, Any]]:
    """Split into static and dynamic props.

    A list hint names the static props; otherwise JSON scalars are static.
    """
    static: Dict[str, Any] = {}
    dynamic: Dict[str, Any] = {}
    for key, value in props.items():
        if isinstance(hint, (list, tuple)):
            is_static = key in hint
        else:
            is_static = isinstance(value, _SCALARS)
        (static if is_static else dynamic)[key] = value
    return static, dynamic


def _dedupe_imports(imports: Sequence[str], applied: List[str]) -> List[str]:
    seen = set()
    result = []
    for statement in imports:
        statement = statement.strip()
        if statement and statement not in seen:
            seen.add(statement)
            result.append(statement)
    applied.append("import-dedupe")
    return result


def _debounce_events(events: Mapping[str, Any], hint: Any, applied: List[str]) -> Dict[str, Any]:
    """Wrap hinted events (``{event: delay_ms}``) in debounce descriptors."""
    if not hint or not isinstance(hint, Mapping):
        return dict(events)
    result = dict(events)
    wrapped = False
    for name, delay in hint.items():
        handler = result.get(name)
        if handler is None or isinstance(handler, WrappedHandler):
            continue
        result[name] = WrappedHandler(handler, "debounce", int(delay))
        wrapped = True
    if wrapped:
        applied.append("event-debounce")
    return result
