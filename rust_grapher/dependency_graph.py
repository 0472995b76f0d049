"""Package dependency graph construction.

The builder walks the dependency edges of every root package depth-first.
Traversal uses an explicit stack of frames instead of recursion so very
deep dependency chains cannot exhaust the interpreter stack; each frame
keeps an iterator over the remaining dependencies of its package, which
keeps the visiting order identical to a recursive walk.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set, Tuple

from .errors import GraphBuildError
from .models import DependencyNode, DepKind, DepsOptions, PackageFact, PackageMetadata
from .patterns import matches_any
from .storage import GraphStore

logger = logging.getLogger(__name__)

DependencyGraph = GraphStore[DependencyNode, DepKind]


@dataclass
class _Frame:
    package: PackageFact
    handle: int
    depth: int
    deps: Iterator[Tuple[str, DepKind]]


class DependencyGraphBuilder:
    """Builds one dependency graph; the visited set spans every root of the run."""

    def __init__(
        self,
        packages: Dict[str, PackageFact],
        workspace_members: Set[str],
        options: DepsOptions,
        graph: Optional[DependencyGraph] = None,
    ) -> None:
        self.packages = packages
        self.workspace_members = workspace_members
        self.options = options
        self.graph: DependencyGraph = graph if graph is not None else GraphStore()
        self.visited: Set[str] = set()

    def build(self, roots: List[PackageFact]) -> DependencyGraph:
        for root in roots:
            self.add_package(root)
        logger.debug(
            "Dependency graph: %d nodes, %d edges from %d roots",
            self.graph.node_count, self.graph.edge_count, len(roots),
        )
        return self.graph

    def add_package(self, root: PackageFact) -> None:
        """Add *root* and everything reachable from it under the current options."""
        stack: List[_Frame] = []
        frame = self._enter(root, 0)
        if frame is not None:
            stack.append(frame)

        while stack:
            top = stack[-1]
            child = self._next_dependency(top)
            if child is None:
                stack.pop()
                continue
            frame = self._enter(child, top.depth + 1)
            if frame is not None:
                stack.append(frame)

    # ------------------------------------------------------------------
    # Traversal steps
    # ------------------------------------------------------------------

    def _enter(self, pkg: PackageFact, depth: int) -> Optional[_Frame]:
        """Visit *pkg*; return a frame when its dependencies should be walked."""
        opts = self.options

        if opts.max_depth > 0 and depth > opts.max_depth:
            return None
        if pkg.package_id in self.visited:
            return None
        if matches_any(pkg.name, opts.exclude):
            return None
        # roots are exempt from the include filter
        if opts.include and not matches_any(pkg.name, opts.include) and depth > 0:
            return None
        if opts.workspace_only and not self._is_member(pkg.package_id) and depth > 0:
            return None

        self.visited.add(pkg.package_id)
        handle = self.graph.get_or_insert_node(pkg.package_id, lambda: self._node_for(pkg))

        if opts.no_transitive and depth >= 1:
            return None
        return _Frame(pkg, handle, depth, iter(pkg.dependencies))

    def _next_dependency(self, frame: _Frame) -> Optional[PackageFact]:
        """Link the next admissible dependency of *frame* and return it."""
        opts = self.options
        for dep_id, kind in frame.deps:
            kind = kind or DepKind.NORMAL
            if opts.no_dev and kind == DepKind.DEV:
                continue
            if opts.no_build and kind == DepKind.BUILD:
                continue

            dep = self.packages.get(dep_id)
            if dep is None:
                continue
            if matches_any(dep.name, opts.exclude):
                continue
            if opts.workspace_only and not self._is_member(dep_id):
                continue

            if opts.dedup:
                dep_handle = self.graph.handle_for(dep_id)
                if dep_handle is None:
                    dep_handle = self.graph.add_node(dep_id, self._node_for(dep))
            else:
                dep_handle = self.graph.get_or_insert_node(dep_id, lambda: self._node_for(dep))

            self.graph.add_edge(frame.handle, dep_handle, kind)
            return dep
        return None

    def _is_member(self, package_id: str) -> bool:
        return package_id in self.workspace_members

    def _node_for(self, pkg: PackageFact) -> DependencyNode:
        return DependencyNode(
            name=pkg.name,
            version=pkg.version,
            is_workspace_member=self._is_member(pkg.package_id),
        )


def select_roots(metadata: PackageMetadata, package: Optional[str] = None) -> List[PackageFact]:
    """Packages named *package*, or every workspace member when no name is given."""
    if package is not None:
        return [p for p in metadata.packages.values() if p.name == package]
    return [
        metadata.packages[pid]
        for pid in metadata.workspace_members
        if pid in metadata.packages
    ]


def build_dependency_graph(
    metadata: PackageMetadata,
    options: DepsOptions,
    package: Optional[str] = None,
) -> DependencyGraph:
    """Build the dependency graph for *metadata*.

    Raises:
        GraphBuildError: no root package could be resolved, or the metadata
            carries no dependency resolution.
    """
    roots = select_roots(metadata, package)
    if not roots:
        raise GraphBuildError("No packages found")
    if not metadata.has_resolve:
        raise GraphBuildError("No resolve data")

    builder = DependencyGraphBuilder(
        metadata.packages,
        set(metadata.workspace_members),
        options,
    )
    return builder.build(roots)
