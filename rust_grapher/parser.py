"""Rust source fact extraction built on Tree-sitter.

Produces the flat :class:`~rust_grapher.models.FunctionFact` and
:class:`~rust_grapher.models.CallFact` lists consumed by
:func:`~rust_grapher.call_graph.build_call_graph`.

- Each file is handled independently; the facts of a file depend only on
  its text.
- Qualified names are built from inline ``mod`` blocks and the ``impl``
  self type, joined with ``::``. The file's own module path is *not*
  part of the name.
- A file that cannot be read, or whose syntax tree contains errors, is
  skipped and contributes no facts.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, List, Optional, Set, Tuple

from .errors import GraphBuildError
from .models import CallFact, CallKind, FunctionFact

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "::"

SKIP_DIRS: Set[str] = {"target", ".git", ".hg", ".svn"}

FileFacts = Tuple[List[FunctionFact], List[CallFact]]


def _load_rust_parser() -> Any:
    try:
        import tree_sitter_rust  # type: ignore[import-untyped]
        from tree_sitter import Language, Parser as TSParser  # type: ignore[import-untyped]
    except ImportError as exc:
        raise GraphBuildError(
            "Rust grammar unavailable. "
            "Install with: pip install tree-sitter tree-sitter-rust"
        ) from exc
    return TSParser(Language(tree_sitter_rust.language()))


class RustSourceParser:
    """Collects function definitions and call sites from ``.rs`` files."""

    def __init__(self, source_dir: Path) -> None:
        self.source_dir = Path(source_dir)
        self._parser = _load_rust_parser()

    # ------------------------------------------------------------------
    # Project-level parsing
    # ------------------------------------------------------------------

    def source_files(self) -> List[Path]:
        files: List[Path] = []
        for file_path in sorted(self.source_dir.rglob("*.rs")):
            rel_parts = file_path.relative_to(self.source_dir).parts
            if any(part in SKIP_DIRS for part in rel_parts):
                continue
            if file_path.is_file():
                files.append(file_path)
        return files

    def parse_project(self) -> FileFacts:
        """Parse every source file in path order and concatenate the facts."""
        all_functions: List[FunctionFact] = []
        all_calls: List[CallFact] = []
        skipped = 0

        for file_path in self.source_files():
            try:
                source = file_path.read_text(encoding="utf-8")
            except (OSError, UnicodeDecodeError) as exc:
                logger.debug("Skipping unreadable %s: %s", file_path, exc)
                skipped += 1
                continue

            facts = self.parse_file(file_path, source)
            if facts is None:
                skipped += 1
                continue
            functions, calls = facts
            all_functions.extend(functions)
            all_calls.extend(calls)

        logger.debug(
            "Parsed %s: %d functions, %d calls, %d files skipped",
            self.source_dir, len(all_functions), len(all_calls), skipped,
        )
        return all_functions, all_calls

    # ------------------------------------------------------------------
    # File-level parsing
    # ------------------------------------------------------------------

    def parse_file(self, file_path: Path, source: Optional[str] = None) -> Optional[FileFacts]:
        """Return ``(functions, calls)`` for one file, or None if it does not parse."""
        if source is None:
            source = Path(file_path).read_text(encoding="utf-8")

        tree = self._parser.parse(source.encode("utf-8"))
        root = tree.root_node
        if root.has_error:
            logger.debug("Skipping %s: syntax errors", file_path)
            return None

        rel_path = self._relative(Path(file_path))
        functions: List[FunctionFact] = []
        _collect_functions(root, [], None, rel_path, functions)
        calls: List[CallFact] = []
        _collect_calls(root, [], calls)
        return functions, calls

    def _relative(self, file_path: Path) -> str:
        try:
            return file_path.relative_to(self.source_dir).as_posix()
        except ValueError:
            return file_path.as_posix()


# ===================================================================
# Definitions
# ===================================================================

def _collect_functions(
    root: Any,
    module_path: List[str],
    impl_type: Optional[str],
    rel_path: str,
    out: List[FunctionFact],
) -> None:
    """Record every ``fn`` item below *root*, including ones nested in bodies."""
    stack: List[Tuple[Any, List[str], Optional[str]]] = [(root, module_path, impl_type)]
    while stack:
        node, mods, owner = stack.pop()
        children_mods, children_owner = mods, owner

        if node.type == "function_item":
            fact = _function_fact(node, mods, owner, rel_path)
            if fact is not None:
                out.append(fact)
        elif node.type == "impl_item":
            children_owner = _impl_type_name(node)
        elif node.type == "mod_item":
            name = node.child_by_field_name("name")
            if name is not None:
                children_mods = mods + [_text(name)]
        elif node.type == "trait_item":
            # default trait methods are not collected
            continue

        for child in reversed(node.named_children):
            stack.append((child, children_mods, children_owner))


def _function_fact(
    node: Any,
    module_path: List[str],
    impl_type: Optional[str],
    rel_path: str,
) -> Optional[FunctionFact]:
    name_node = node.child_by_field_name("name")
    if name_node is None:
        return None
    name = _text(name_node)
    scope = module_path + ([impl_type] if impl_type else [])
    return FunctionFact(
        name=name,
        qualified_name=PATH_SEPARATOR.join(scope + [name]),
        is_public=_is_public(node),
        is_async=_is_async(node),
        signature=_signature(node, name),
        file_path=rel_path,
        line=node.start_point[0] + 1,
    )


def _is_public(node: Any) -> bool:
    for child in node.children:
        if child.type == "visibility_modifier":
            return _collapse(_text(child)) == "pub"
    return False


def _is_async(node: Any) -> bool:
    for child in node.children:
        if child.type == "async":
            return True
        if child.type == "function_modifiers":
            return any(mod.type == "async" for mod in child.children)
    return False


def _signature(node: Any, name: str) -> str:
    params: List[str] = []
    parameters = node.child_by_field_name("parameters")
    if parameters is not None:
        for param in parameters.named_children:
            if param.type == "attribute_item":
                continue
            if param.type == "self_parameter":
                text = _text(param)
                if "&" in text:
                    params.append("&mut self" if "mut" in text else "&self")
                else:
                    params.append("self")
            else:
                params.append(_collapse(_text(param)))

    output = ""
    return_type = node.child_by_field_name("return_type")
    if return_type is not None:
        output = f" -> {_collapse(_text(return_type))}"
    return f"fn {name}({', '.join(params)}){output}"


def _impl_type_name(node: Any) -> Optional[str]:
    """Last path segment of an ``impl`` self type, without generic arguments."""
    current = node.child_by_field_name("type")
    while current is not None:
        if current.type in ("type_identifier", "primitive_type"):
            return _text(current)
        if current.type == "generic_type":
            current = current.child_by_field_name("type")
        elif current.type == "scoped_type_identifier":
            current = current.child_by_field_name("name")
        else:
            return None
    return None


# ===================================================================
# Calls
# ===================================================================

def _collect_calls(scope: Any, module_path: List[str], out: List[CallFact]) -> None:
    """Attribute call sites to the top-level function or method enclosing them."""
    for item in scope.named_children:
        if item.type == "function_item":
            name = item.child_by_field_name("name")
            if name is not None:
                caller = PATH_SEPARATOR.join(module_path + [_text(name)])
                _calls_in(item, caller, out)
        elif item.type == "impl_item":
            type_name = _impl_type_name(item)
            body = item.child_by_field_name("body")
            if body is None:
                continue
            prefix = module_path + ([type_name] if type_name else [])
            for method in body.named_children:
                if method.type != "function_item":
                    continue
                name = method.child_by_field_name("name")
                if name is not None:
                    _calls_in(method, PATH_SEPARATOR.join(prefix + [_text(name)]), out)
        elif item.type == "mod_item":
            name = item.child_by_field_name("name")
            body = item.child_by_field_name("body")
            if name is not None and body is not None:
                _collect_calls(body, module_path + [_text(name)], out)


def _calls_in(func_node: Any, caller: str, out: List[CallFact]) -> None:
    stack = [func_node]
    while stack:
        node = stack.pop()
        if node.type == "call_expression":
            target = _call_target(node.child_by_field_name("function"))
            if target is not None:
                callee, kind = target
                out.append(CallFact(caller=caller, callee=callee, kind=kind))
        stack.extend(reversed(node.named_children))


def _call_target(func: Any) -> Optional[Tuple[str, CallKind]]:
    if func is None:
        return None
    if func.type == "identifier":
        return _text(func), CallKind.DIRECT
    if func.type == "scoped_identifier":
        path = _strip_generics(_text(func))
        return (path, CallKind.DIRECT) if path else None
    if func.type == "field_expression":
        field = func.child_by_field_name("field")
        if field is not None:
            return _text(field), CallKind.METHOD
        return None
    if func.type == "generic_function":
        return _call_target(func.child_by_field_name("function"))
    return None


def _strip_generics(path: str) -> str:
    """``Vec::<u8>::new`` -> ``Vec::new``; qualified-self prefixes are dropped."""
    kept: List[str] = []
    depth = 0
    prev = ""
    for ch in path:
        if ch == "<":
            depth += 1
        elif ch == ">" and prev != "-":
            depth = max(depth - 1, 0)
        elif depth == 0 and not ch.isspace():
            kept.append(ch)
        prev = ch
    segments = [seg for seg in "".join(kept).split(PATH_SEPARATOR) if seg]
    return PATH_SEPARATOR.join(segments)


# ===================================================================
# Shared Helpers
# ===================================================================

def _text(node: Any) -> str:
    return node.text.decode("utf-8")


def _collapse(text: str) -> str:
    return " ".join(text.split())
