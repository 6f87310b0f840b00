"""
Index-based dependency graph.

Nodes live in an arena (a list) and edges are adjacency lists of node
indices. All walks use an explicit stack so deep graphs never hit the
interpreter recursion limit. Used for both the component dependency graph
and the computed-prop graph.
"""

from typing import Dict, Iterable, List, Optional

from .errors import CircularDependencyError

# DFS colors
_UNVISITED = 0
_VISITING = 1
_VISITED = 2


class DependencyGraph:
    """Directed graph where an edge ``a -> b`` means "a depends on b"."""

    def __init__(self, kind: str = "component"):
        self.kind = kind
        self._names: List[str] = []
        self._index: Dict[str, int] = {}
        self._edges: List[List[int]] = []

    def add_node(self, name: str) -> int:
        """Add a node (idempotent) and return its index."""
        index = self._index.get(name)
        if index is None:
            index = len(self._names)
            self._names.append(name)
            self._index[name] = index
            self._edges.append([])
        return index

    def add_edge(self, name: str, dependency: str):
        """Record that ``name`` depends on ``dependency``."""
        source = self.add_node(name)
        target = self.add_node(dependency)
        if target not in self._edges[source]:
            self._edges[source].append(target)

    def __contains__(self, name: str) -> bool:
        return name in self._index

    def __len__(self) -> int:
        return len(self._names)

    @property
    def nodes(self) -> List[str]:
        return list(self._names)

    def dependencies(self, name: str) -> List[str]:
        """Direct dependencies of ``name`` in insertion order."""
        return [self._names[i] for i in self._edges[self._index[name]]]

    def dependents(self, name: str) -> List[str]:
        """Nodes that directly depend on ``name``."""
        target = self._index[name]
        return [self._names[i] for i, edges in enumerate(self._edges) if target in edges]

    def find_cycle(self, roots: Optional[Iterable[str]] = None) -> Optional[List[str]]:
        """
        Find one cycle reachable from ``roots`` (all nodes by default).

        Returns:
            The cycle members in traversal order, starting at the first node
            revisited while still being visited, or None when acyclic.
        """
        try:
            self._walk(roots)
        except CircularDependencyError as e:
            return e.cycle
        return None

    def topological_order(self, roots: Optional[Iterable[str]] = None) -> List[str]:
        """
        Order nodes reachable from ``roots`` so dependencies come first.

        Raises:
            CircularDependencyError: If a cycle is reachable
        """
        return self._walk(roots)

    def _walk(self, roots: Optional[Iterable[str]]) -> List[str]:
        color = [_UNVISITED] * len(self._names)
        order: List[str] = []
        start = self._names if roots is None else list(roots)

        for root in start:
            root_index = self.add_node(root)
            if len(color) < len(self._names):
                color.extend([_UNVISITED] * (len(self._names) - len(color)))
            if color[root_index] != _UNVISITED:
                continue

            # Stack of (node, next edge position); path mirrors the VISITING nodes
            stack = [(root_index, 0)]
            path = [root_index]
            color[root_index] = _VISITING

            while stack:
                node, position = stack[-1]
                edges = self._edges[node]
                if position < len(edges):
                    stack[-1] = (node, position + 1)
                    child = edges[position]
                    if color[child] == _VISITING:
                        cycle_start = path.index(child)
                        cycle = [self._names[i] for i in path[cycle_start:]]
                        raise CircularDependencyError(cycle, kind=self.kind)
                    if color[child] == _UNVISITED:
                        color[child] = _VISITING
                        stack.append((child, 0))
                        path.append(child)
                else:
                    stack.pop()
                    path.pop()
                    color[node] = _VISITED
                    order.append(self._names[node])

        return order
