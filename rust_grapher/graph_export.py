"""Graph renderers: Mermaid flowcharts, Graphviz DOT and JSON.

Renderers only format; every filtering decision has already been applied
to the graph they receive.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Set, Tuple

from .call_graph import CallGraph
from .dependency_graph import DependencyGraph
from .models import CallKind, DependencyNode, DepKind, FunctionNode, OutputFormat, RenderOptions, Theme
from .patterns import sanitize_name

logger = logging.getLogger(__name__)

HIGHLIGHT_STYLE = "fill:#f9f,stroke:#333,stroke-width:4px"

_DEP_ARROWS: Dict[DepKind, str] = {
    DepKind.NORMAL: "-->",
    DepKind.DEV: "-.->",
    DepKind.BUILD: "==>",
}

_DEP_DOT_STYLES: Dict[DepKind, str] = {
    DepKind.NORMAL: "",
    DepKind.DEV: " [style=dashed, color=blue]",
    DepKind.BUILD: " [style=bold, color=green]",
}

_DEP_GROUPS: List[Tuple[DepKind, str, str]] = [
    (DepKind.NORMAL, "normal", "Dependencies"),
    (DepKind.DEV, "dev", "Dev Dependencies"),
    (DepKind.BUILD, "build", "Build Dependencies"),
]

_CALL_ARROWS: Dict[CallKind, str] = {
    CallKind.DIRECT: "-->",
    CallKind.METHOD: "-.->",
}


def render_deps(graph: DependencyGraph, fmt: OutputFormat, options: RenderOptions) -> str:
    if fmt == OutputFormat.DOT:
        return deps_dot(graph, options)
    if fmt == OutputFormat.JSON:
        return deps_json(graph, options)
    return deps_mermaid(graph, options)


def render_functions(graph: CallGraph, fmt: OutputFormat, options: RenderOptions) -> str:
    if fmt == OutputFormat.DOT:
        return functions_dot(graph, options)
    if fmt == OutputFormat.JSON:
        return functions_json(graph, options)
    return functions_mermaid(graph, options)


# ===================================================================
# Labels
# ===================================================================

def package_label(node: DependencyNode, options: RenderOptions) -> str:
    label = sanitize_name(node.name)
    if options.show_versions:
        return f"{label}_{node.version.replace('.', '_')}"
    return label


def function_label(node: FunctionNode, options: RenderOptions) -> str:
    if options.show_signatures and node.signature:
        flat = node.signature
        for ch in "(), ->":
            flat = flat.replace(ch, "_")
        return sanitize_name(flat)
    return sanitize_name(node.name)


# ===================================================================
# Mermaid
# ===================================================================

def _mermaid_header(options: RenderOptions) -> List[str]:
    lines: List[str] = []
    if options.fence:
        lines.append("```mermaid")
    lines.append(f"flowchart {options.direction}")
    if options.theme == Theme.DARK:
        lines.append("    %%{init: {'theme': 'dark'}}%%")
    elif options.theme == Theme.LIGHT:
        lines.append("    %%{init: {'theme': 'default'}}%%")
    return lines


def _mermaid_footer(options: RenderOptions) -> List[str]:
    lines = [f"    style {sanitize_name(h)} {HIGHLIGHT_STYLE}" for h in options.highlight]
    if options.fence:
        lines.append("```")
    return lines


def deps_mermaid(graph: DependencyGraph, options: RenderOptions) -> str:
    lines = _mermaid_header(options)

    by_kind: Dict[DepKind, List[Tuple[str, str]]] = {kind: [] for kind in DepKind}
    for src, dst, kind in graph.edges():
        by_kind[kind].append((
            package_label(graph.node(src), options),
            package_label(graph.node(dst), options),
        ))

    if options.group_by_kind:
        for kind, group_id, title in _DEP_GROUPS:
            if not by_kind[kind]:
                continue
            lines.append(f'    subgraph {group_id}["{title}"]')
            for src, dst in by_kind[kind]:
                lines.append(f"        {src} {_DEP_ARROWS[kind]} {dst}")
            lines.append("    end")
    else:
        for kind, _group_id, _title in _DEP_GROUPS:
            for src, dst in by_kind[kind]:
                lines.append(f"    {src} {_DEP_ARROWS[kind]} {dst}")

    lines.extend(_mermaid_footer(options))
    return "\n".join(lines) + "\n"


def functions_mermaid(graph: CallGraph, options: RenderOptions) -> str:
    lines = _mermaid_header(options)
    for src, dst, kind in graph.edges():
        lines.append(
            f"    {function_label(graph.node(src), options)} "
            f"{_CALL_ARROWS[kind]} {function_label(graph.node(dst), options)}"
        )
    lines.extend(_mermaid_footer(options))
    return "\n".join(lines) + "\n"


# ===================================================================
# DOT
# ===================================================================

def _dot_header(name: str, options: RenderOptions) -> List[str]:
    lines = [
        f"digraph {name} {{",
        f"    rankdir={options.direction};",
        "    node [shape=box, style=rounded];",
    ]
    if options.theme == Theme.DARK:
        lines.append('    bgcolor="#1e1e1e";')
        lines.append("    node [fontcolor=white, color=white];")
        lines.append("    edge [color=white];")
    elif options.theme == Theme.LIGHT:
        lines.append("    bgcolor=white;")
    return lines


def _highlight_attrs(name: str, options: RenderOptions) -> List[str]:
    if name in options.highlight:
        return ['fillcolor="#ff99ff"', 'style="filled,rounded"']
    return []


def deps_dot(graph: DependencyGraph, options: RenderOptions) -> str:
    lines = _dot_header("dependencies", options)

    defined: Set[str] = set()
    for _handle, node in graph.nodes():
        node_id = sanitize_name(node.name)
        if node_id in defined:
            continue
        defined.add(node_id)
        label = package_label(node, options).replace("_", "-")
        attrs = [f'label="{_esc(label)}"'] + _highlight_attrs(node.name, options)
        if node.is_workspace_member:
            attrs.append("penwidth=2")
        lines.append(f"    {node_id} [{', '.join(attrs)}];")

    for src, dst, kind in graph.edges():
        lines.append(
            f"    {sanitize_name(graph.node(src).name)} -> "
            f"{sanitize_name(graph.node(dst).name)}{_DEP_DOT_STYLES[kind]};"
        )

    lines.append("}")
    return "\n".join(lines) + "\n"


def functions_dot(graph: CallGraph, options: RenderOptions) -> str:
    lines = _dot_header("call_graph", options)

    defined: Set[str] = set()
    for _handle, node in graph.nodes():
        node_id = sanitize_name(node.name)
        if node_id in defined:
            continue
        defined.add(node_id)
        label = node.name
        if options.show_signatures and node.signature:
            label = node.signature
        attrs = [f'label="{_esc(label)}"'] + _highlight_attrs(node.name, options)
        if node.is_public:
            attrs.append("penwidth=2")
        if node.is_async:
            attrs.append("color=blue")
        lines.append(f"    {node_id} [{', '.join(attrs)}];")

    for src, dst, kind in graph.edges():
        style = " [style=dashed]" if kind == CallKind.METHOD else ""
        lines.append(
            f"    {sanitize_name(graph.node(src).name)} -> "
            f"{sanitize_name(graph.node(dst).name)}{style};"
        )

    lines.append("}")
    return "\n".join(lines) + "\n"


# ===================================================================
# JSON
# ===================================================================

def _dump(payload: Dict[str, Any]) -> str:
    try:
        return json.dumps(payload, indent=2)
    except (TypeError, ValueError) as exc:
        logger.warning("JSON rendering failed: %s", exc)
        return "{}"


def deps_json(graph: DependencyGraph, options: RenderOptions) -> str:
    nodes = [
        {
            "id": sanitize_name(node.name),
            "name": node.name,
            "version": node.version,
            "is_workspace_member": node.is_workspace_member,
            "highlighted": node.name in options.highlight,
        }
        for _handle, node in graph.nodes()
    ]
    edges = [
        {
            "from": sanitize_name(graph.node(src).name),
            "to": sanitize_name(graph.node(dst).name),
            "kind": kind.value,
        }
        for src, dst, kind in graph.edges()
    ]
    return _dump({"nodes": nodes, "edges": edges})


def functions_json(graph: CallGraph, options: RenderOptions) -> str:
    nodes: List[Dict[str, Any]] = []
    for _handle, node in graph.nodes():
        entry: Dict[str, Any] = {
            "id": sanitize_name(node.name),
            "name": node.name,
            "qualified_name": node.qualified_name,
            "file": node.file_path,
            "line": node.line,
            "is_public": node.is_public,
            "is_async": node.is_async,
            "highlighted": node.name in options.highlight,
        }
        if node.signature is not None:
            entry["signature"] = node.signature
        nodes.append(entry)

    edges = [
        {
            "from": sanitize_name(graph.node(src).name),
            "to": sanitize_name(graph.node(dst).name),
            "kind": kind.value,
        }
        for src, dst, kind in graph.edges()
    ]
    return _dump({"nodes": nodes, "edges": edges})


def _esc(text: str) -> str:
    return text.replace('"', '\\"')
