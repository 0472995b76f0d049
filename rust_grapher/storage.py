"""In-memory graph store shared by the dependency and call graph builders.

Architecture:
- **Node arena**: payloads live in a list and are addressed by integer
  handles. A removed slot becomes ``None``; handles are never reused, so a
  handle stays valid for the lifetime of the store.
- **Adjacency**: per-handle outgoing and incoming lists keep edge
  insertion order; a ``(src, dst)`` dict holds the single edge kind.
- **Key index**: maps an opaque identity (package id, qualified function
  name) to its handle and backs the idempotent get-or-insert.

A store is created empty for one run, filled by one builder, optionally
reduced by :func:`~rust_grapher.focus.reduce_to_focus`, then rendered.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, Generic, Hashable, Iterable, Iterator, List, Optional, Set, Tuple, TypeVar

logger = logging.getLogger(__name__)

N = TypeVar("N")
E = TypeVar("E")


class GraphStore(Generic[N, E]):
    """Directed graph with stable handles and at most one edge per pair."""

    def __init__(self) -> None:
        self._nodes: List[Optional[N]] = []
        self._keys: List[Optional[Hashable]] = []
        self._index: Dict[Hashable, int] = {}
        self._out: List[List[int]] = []
        self._in: List[List[int]] = []
        self._edges: Dict[Tuple[int, int], E] = {}
        self._live = 0

    # ------------------------------------------------------------------
    # Nodes
    # ------------------------------------------------------------------

    def add_node(self, key: Hashable, payload: N) -> int:
        """Append a new node and bind *key* to it.

        Unlike :meth:`get_or_insert_node` this always creates a node; an
        earlier node bound to the same key stays in the graph but is no
        longer reachable through :meth:`handle_for`.
        """
        handle = len(self._nodes)
        self._nodes.append(payload)
        self._keys.append(key)
        self._out.append([])
        self._in.append([])
        self._index[key] = handle
        self._live += 1
        return handle

    def get_or_insert_node(self, key: Hashable, factory: Callable[[], N]) -> int:
        """Return the handle bound to *key*, creating the node on first use."""
        handle = self._index.get(key)
        if handle is not None:
            return handle
        return self.add_node(key, factory())

    def handle_for(self, key: Hashable) -> Optional[int]:
        return self._index.get(key)

    def __contains__(self, key: Hashable) -> bool:
        return key in self._index

    def node(self, handle: int) -> N:
        payload = self._nodes[handle]
        if payload is None:
            raise KeyError(f"node {handle} has been removed")
        return payload

    def key_of(self, handle: int) -> Optional[Hashable]:
        return self._keys[handle]

    def handles(self) -> Iterator[int]:
        """Live handles in insertion order."""
        return (h for h, payload in enumerate(self._nodes) if payload is not None)

    def nodes(self) -> Iterator[Tuple[int, N]]:
        return ((h, payload) for h, payload in enumerate(self._nodes) if payload is not None)

    def find(self, predicate: Callable[[N], bool]) -> List[int]:
        return [h for h, payload in self.nodes() if predicate(payload)]

    @property
    def node_count(self) -> int:
        return self._live

    # ------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------

    def add_edge(self, src: int, dst: int, kind: E) -> bool:
        """Add ``src -> dst``. Returns False when the pair already has an edge."""
        if (src, dst) in self._edges:
            return False
        self._edges[(src, dst)] = kind
        self._out[src].append(dst)
        self._in[dst].append(src)
        return True

    def contains_edge(self, src: int, dst: int) -> bool:
        return (src, dst) in self._edges

    def edge_kind(self, src: int, dst: int) -> E:
        return self._edges[(src, dst)]

    def edges(self) -> Iterator[Tuple[int, int, E]]:
        """All edges as ``(src, dst, kind)`` in insertion order."""
        return ((src, dst, kind) for (src, dst), kind in self._edges.items())

    def successors(self, handle: int) -> List[int]:
        return list(self._out[handle])

    def predecessors(self, handle: int) -> List[int]:
        return list(self._in[handle])

    @property
    def edge_count(self) -> int:
        return len(self._edges)

    # ------------------------------------------------------------------
    # Removal
    # ------------------------------------------------------------------

    def remove_nodes(self, handles: Iterable[int]) -> int:
        """Remove nodes together with every incident edge.

        Returns the number of nodes actually removed.
        """
        doomed: Set[int] = {h for h in handles if self._nodes[h] is not None}
        if not doomed:
            return 0

        for src, dst in [pair for pair in self._edges if pair[0] in doomed or pair[1] in doomed]:
            del self._edges[(src, dst)]
            self._out[src].remove(dst)
            self._in[dst].remove(src)

        for handle in doomed:
            key = self._keys[handle]
            if self._index.get(key) == handle:
                del self._index[key]
            self._nodes[handle] = None
            self._keys[handle] = None
        self._live -= len(doomed)

        logger.debug("Removed %d nodes from graph", len(doomed))
        return len(doomed)
