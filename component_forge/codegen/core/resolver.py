"""
Component dependency resolution.

Builds the semantic-component dependency graph from the definitions in a
:class:`ConfigurationStore` and derives a dependencies-first generation
order.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Set

from ...logging_config import get_logger
from .errors import CircularDependencyError, ConfigError, DependencyFailed
from .graph import DependencyGraph

logger = get_logger(__name__)


@dataclass
class ResolutionPlan:
    """Batch resolution outcome.

    ``order`` lists every component reached from the request, dependencies
    first. ``failures`` holds the components that cannot be generated and
    why; their dependents fail with :class:`DependencyFailed`.
    """

    order: List[str] = field(default_factory=list)
    failures: Dict[str, Exception] = field(default_factory=dict)
    dependencies: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def runnable(self) -> List[str]:
        return [name for name in self.order if name not in self.failures]


class DependencyResolver:
    """Resolves generation order for semantic components."""

    def __init__(self, store):
        self.store = store

    def build_graph(
        self, names: Iterable[str], failures: Optional[Dict[str, Exception]] = None
    ) -> DependencyGraph:
        """
        Walk definitions breadth-first from ``names`` and build the graph.

        Args:
            names: Root component names
            failures: When given, load errors are recorded here instead of raised

        Returns:
            Dependency graph over every reachable component
        """
        graph = DependencyGraph(kind="component")
        queue = list(names)
        seen: Set[str] = set()

        while queue:
            name = queue.pop(0)
            if name in seen:
                continue
            seen.add(name)
            graph.add_node(name)

            try:
                definition = self.store.load_component(name)
            except ConfigError as e:
                if failures is None:
                    raise
                logger.warning("Cannot load component %s: %s", name, e)
                failures[name] = e
                continue
            except Exception as e:
                if failures is None:
                    raise
                logger.error("Unexpected failure loading component %s: %s", name, e, exc_info=True)
                failures[name] = e
                continue

            for dependency in definition.dependencies:
                graph.add_edge(name, dependency)
                queue.append(dependency)

        return graph

    def resolve(self, names: Iterable[str]) -> List[str]:
        """
        Generation order for ``names`` and everything they depend on.

        ``A -> B -> C`` yields ``[C, B, A]``.

        Raises:
            CircularDependencyError: If the graph has a cycle
            ConfigError: If a definition cannot be loaded
        """
        names = list(names)
        graph = self.build_graph(names)
        order = graph.topological_order(names)
        logger.debug("Resolved generation order: %s", order)
        return order

    def plan(self, names: Iterable[str]) -> ResolutionPlan:
        """
        Resolve for batch generation without raising.

        Cycle members fail with CircularDependencyError, unloadable
        components with their load error and every dependent of a failed
        component with DependencyFailed.
        """
        names = list(names)
        failures: Dict[str, Exception] = {}
        graph = self.build_graph(names, failures)
        dependencies = {node: graph.dependencies(node) for node in graph.nodes}

        cyclic: List[str] = []
        while True:
            remaining = _subgraph(graph, exclude=set(cyclic))
            cycle = remaining.find_cycle()
            if not cycle:
                break
            error = CircularDependencyError(cycle)
            logger.warning("%s", error)
            for member in cycle:
                failures[member] = error
                cyclic.append(member)

        order = cyclic + remaining.topological_order()

        for name in order:
            if name in failures:
                continue
            for dependency in dependencies.get(name, ()):
                if dependency in failures:
                    failures[name] = DependencyFailed(name, dependency, failures[dependency])
                    break

        return ResolutionPlan(order=order, failures=failures, dependencies=dependencies)


def _subgraph(graph: DependencyGraph, exclude: Set[str]) -> DependencyGraph:
    sub = DependencyGraph(kind=graph.kind)
    for node in graph.nodes:
        if node in exclude:
            continue
        sub.add_node(node)
        for dependency in graph.dependencies(node):
            if dependency not in exclude:
                sub.add_edge(node, dependency)
    return sub
