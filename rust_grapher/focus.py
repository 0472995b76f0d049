"""Focus reduction: keep only the neighbourhood of selected nodes."""

from __future__ import annotations

import logging
from collections import deque
from typing import Callable, Dict, List, TypeVar

from .models import DependencyNode, FunctionNode
from .patterns import sanitize_name
from .storage import GraphStore

logger = logging.getLogger(__name__)

N = TypeVar("N")
E = TypeVar("E")


def reduce_to_focus(
    graph: GraphStore[N, E],
    predicate: Callable[[N], bool],
    max_depth: int = 0,
) -> GraphStore[N, E]:
    """Drop every node farther than *max_depth* hops from a focus node.

    Edges are followed in both directions. ``max_depth == 0`` keeps the
    whole connected component. When nothing matches *predicate* the graph
    is returned untouched.
    """
    seeds = graph.find(predicate)
    if not seeds:
        logger.debug("Focus matched no nodes; graph left unchanged")
        return graph

    # distance is measured from the nearest seed
    distance: Dict[int, int] = {seed: 0 for seed in seeds}
    queue = deque(seeds)
    while queue:
        current = queue.popleft()
        level = distance[current]
        if max_depth > 0 and level >= max_depth:
            continue
        for neighbor in graph.successors(current) + graph.predecessors(current):
            if neighbor not in distance:
                distance[neighbor] = level + 1
                queue.append(neighbor)

    doomed: List[int] = [h for h in graph.handles() if h not in distance]
    graph.remove_nodes(doomed)
    logger.debug("Focus kept %d nodes from %d seeds", len(distance), len(seeds))
    return graph


def package_focus(focus: str) -> Callable[[DependencyNode], bool]:
    """Match packages by sanitized name, so ``serde-json`` finds ``serde_json``."""
    wanted = sanitize_name(focus)
    return lambda node: sanitize_name(node.name) == wanted


def function_focus(focus: str) -> Callable[[FunctionNode], bool]:
    """Match functions by short name, qualified name, or qualified-name suffix."""
    suffix = f"::{focus}"
    return lambda node: (
        node.name == focus
        or node.qualified_name == focus
        or node.qualified_name.endswith(suffix)
    )
