"""Function call graph assembly from flat function and call facts.

Call targets are resolved by name only. A call's callee text is looked up
in a short-name table first; when two functions share a short name the one
seen last wins. Unresolved names are tried verbatim as qualified names and
are dropped when nothing matches, which is how calls into std or other
crates disappear.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, Iterable, List, Union

from .errors import SourceError
from .focus import function_focus, reduce_to_focus
from .models import CallFact, CallKind, FnGraphOptions, FunctionFact, FunctionNode
from .patterns import matches_any
from .storage import GraphStore

logger = logging.getLogger(__name__)

CallGraph = GraphStore[FunctionNode, CallKind]


def short_name_table(functions: Iterable[FunctionFact]) -> Dict[str, str]:
    """Map each short name to a qualified name; later facts overwrite earlier ones."""
    return {func.name: func.qualified_name for func in functions}


def build_call_graph(
    functions: List[FunctionFact],
    calls: List[CallFact],
    options: FnGraphOptions,
) -> CallGraph:
    graph: CallGraph = GraphStore()
    lookup = short_name_table(functions)

    for func in functions:
        if options.public_only and not func.is_public:
            continue
        if matches_any(func.name, options.exclude):
            continue
        if matches_any(func.qualified_name, options.exclude):
            continue

        graph.add_node(
            func.qualified_name,
            FunctionNode(
                name=func.name,
                qualified_name=func.qualified_name,
                file_path=func.file_path,
                line=func.line,
                is_public=func.is_public,
                is_async=func.is_async,
                signature=func.signature if options.show_signatures else None,
            ),
        )

    for call in calls:
        target = lookup.get(call.callee, call.callee)
        src = graph.handle_for(call.caller)
        dst = graph.handle_for(target)
        if src is None or dst is None or src == dst:
            continue
        graph.add_edge(src, dst, call.kind)

    logger.debug(
        "Call graph: %d functions, %d calls -> %d nodes, %d edges",
        len(functions), len(calls), graph.node_count, graph.edge_count,
    )

    if options.focus:
        reduce_to_focus(graph, function_focus(options.focus), options.depth)
    return graph


def build_call_graph_from_source(
    source_dir: Union[str, Path],
    options: FnGraphOptions,
) -> CallGraph:
    """Parse every Rust file under *source_dir* and assemble its call graph.

    Raises:
        SourceError: *source_dir* does not exist.
    """
    from .parser import RustSourceParser

    root = Path(source_dir)
    if not root.exists():
        raise SourceError(f"Source directory not found: {root}")

    functions, calls = RustSourceParser(root).parse_project()
    return build_call_graph(functions, calls, options)
