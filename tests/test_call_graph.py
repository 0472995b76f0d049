"""Tests for call graph assembly from function and call facts."""

import pytest

from rust_grapher.call_graph import build_call_graph, build_call_graph_from_source, short_name_table
from rust_grapher.errors import SourceError
from rust_grapher.models import CallFact, CallKind, FnGraphOptions, FunctionFact


def fn(qualified, public=False, is_async=False, signature=""):
    return FunctionFact(
        name=qualified.split("::")[-1],
        qualified_name=qualified,
        is_public=public,
        is_async=is_async,
        signature=signature or f"fn {qualified.split('::')[-1]}()",
        file_path="lib.rs",
        line=1,
    )


def qualified_edges(graph):
    return {
        (graph.node(src).qualified_name, graph.node(dst).qualified_name): kind
        for src, dst, kind in graph.edges()
    }


@pytest.fixture
def facts():
    functions = [
        fn("main", public=True),
        fn("Server::new", public=True),
        fn("Server::run", public=True, is_async=True),
        fn("Server::bind"),
        fn("net::connect", public=True),
    ]
    calls = [
        CallFact("main", "Server::new", CallKind.DIRECT),
        CallFact("main", "run", CallKind.METHOD),
        CallFact("Server::run", "bind", CallKind.METHOD),
        CallFact("Server::run", "connect", CallKind.DIRECT),
        CallFact("Server::run", "println", CallKind.DIRECT),
        CallFact("Server::bind", "to_string", CallKind.METHOD),
    ]
    return functions, calls


class TestEdges:
    """Call resolution and edge rules."""

    def test_resolves_short_names_and_literal_paths(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions())

        assert qualified_edges(graph) == {
            ("main", "Server::new"): CallKind.DIRECT,
            ("main", "Server::run"): CallKind.METHOD,
            ("Server::run", "Server::bind"): CallKind.METHOD,
            ("Server::run", "net::connect"): CallKind.DIRECT,
        }

    def test_unresolved_calls_are_dropped(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions())
        assert graph.node_count == len(functions)
        assert graph.edge_count == 4

    def test_no_self_loops(self):
        functions = [fn("recurse")]
        calls = [CallFact("recurse", "recurse", CallKind.DIRECT)]
        graph = build_call_graph(functions, calls, FnGraphOptions())
        assert graph.edge_count == 0

    def test_duplicate_calls_keep_first_kind(self):
        functions = [fn("a"), fn("b")]
        calls = [
            CallFact("a", "b", CallKind.METHOD),
            CallFact("a", "b", CallKind.DIRECT),
        ]
        graph = build_call_graph(functions, calls, FnGraphOptions())
        assert qualified_edges(graph) == {("a", "b"): CallKind.METHOD}

    def test_unknown_caller_is_dropped(self):
        functions = [fn("a")]
        calls = [CallFact("ghost", "a", CallKind.DIRECT)]
        assert build_call_graph(functions, calls, FnGraphOptions()).edge_count == 0


class TestAmbiguity:
    """Name collisions resolve to the last function seen."""

    def test_short_name_collision_last_wins(self):
        functions = [fn("a::helper"), fn("b::helper"), fn("main")]
        assert short_name_table(functions)["helper"] == "b::helper"

        calls = [CallFact("main", "helper", CallKind.DIRECT)]
        graph = build_call_graph(functions, calls, FnGraphOptions())
        assert set(qualified_edges(graph)) == {("main", "b::helper")}

    def test_qualified_name_collision_keeps_both_nodes(self):
        first = fn("helper", signature="fn helper()")
        second = fn("helper", signature="fn helper(x: u8)")
        functions = [first, second, fn("main")]
        calls = [CallFact("main", "helper", CallKind.DIRECT)]

        graph = build_call_graph(functions, calls, FnGraphOptions(show_signatures=True))

        assert graph.node_count == 3
        (src, dst, _kind), = list(graph.edges())
        assert graph.node(dst).signature == "fn helper(x: u8)"

    def test_lookup_built_before_filtering(self):
        functions = [fn("a::go", public=True), fn("b::go"), fn("main", public=True)]
        calls = [CallFact("main", "go", CallKind.DIRECT)]

        graph = build_call_graph(functions, calls, FnGraphOptions(public_only=True))

        # "go" resolves to the private b::go, which is not in the graph
        assert graph.edge_count == 0


class TestFilters:
    """Visibility, pattern, signature and focus options."""

    def test_public_only(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions(public_only=True))
        names = {node.qualified_name for _, node in graph.nodes()}
        assert "Server::bind" not in names
        assert ("Server::run", "Server::bind") not in qualified_edges(graph)

    def test_exclude_matches_short_name(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions(exclude=["bi*"]))
        assert "Server::bind" not in {node.qualified_name for _, node in graph.nodes()}

    def test_exclude_matches_qualified_name(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions(exclude=["Server::*"]))
        names = {node.qualified_name for _, node in graph.nodes()}
        assert names == {"main", "net::connect"}

    def test_signatures_only_when_requested(self, facts):
        functions, calls = facts
        plain = build_call_graph(functions, calls, FnGraphOptions())
        assert all(node.signature is None for _, node in plain.nodes())

        signed = build_call_graph(functions, calls, FnGraphOptions(show_signatures=True))
        assert all(node.signature for _, node in signed.nodes())

    def test_focus_with_depth(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions(focus="bind", depth=1))
        names = {node.qualified_name for _, node in graph.nodes()}
        assert names == {"Server::bind", "Server::run"}

    def test_focus_unknown_leaves_graph(self, facts):
        functions, calls = facts
        graph = build_call_graph(functions, calls, FnGraphOptions(focus="nothing"))
        assert graph.node_count == len(functions)


def test_missing_source_dir_is_fatal(temp_dir):
    with pytest.raises(SourceError, match="Source directory not found"):
        build_call_graph_from_source(temp_dir / "missing", FnGraphOptions())
