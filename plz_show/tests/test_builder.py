"""
plz_show/tests/test_builder.py — Tests for plz_show.graph.builder and labels.

Tests verify:
- Label parsing for local, subrepo, subtarget and relative labels.
- One node per target with canonical '//pkg:target' ids.
- Relative deps resolve against the declaring package.
- Subrepo deps and deps on unknown targets are skipped.
- Initial positions are seeded and reproducible.
- load_query_json reads a file; summary helpers count correctly.
"""

import json

import pytest

from plz_show.config import LayoutConfig
from plz_show.graph.builder import (
    build_graph_from_query,
    get_labels,
    get_packages,
    graph_stats,
    load_query_json,
)
from plz_show.graph.labels import (
    build_label,
    is_external_label,
    parse_label,
    resolve_label,
    short_label,
)


def make_query() -> dict:
    """
    Two packages:
        //lib:base
        //lib:util      → :base (relative), ///ext//x:y (subrepo), //nope:x (missing)
        //app:main      → //lib:util, //app:main (self-dep, dropped)
    """
    return {
        "packages": {
            "lib": {
                "targets": {
                    "base": {"labels": ["lang:go"]},
                    "util": {"deps": [":base", "///ext//x:y", "//nope:x"]},
                }
            },
            "app": {
                "targets": {
                    "main": {"deps": ["//lib:util", "//app:main"], "binary": True},
                }
            },
        }
    }


# ── Labels ────────────────────────────────────────────────────────────────────

class TestLabels:

    def test_parse_local_label(self):
        parsed = parse_label("//src/core:core")
        assert parsed.package == "src/core"
        assert parsed.target == "core"
        assert parsed.subrepo is None

    def test_parse_subrepo_label(self):
        parsed = parse_label("///third_party//go:errors")
        assert parsed.subrepo == "third_party"
        assert parsed.package == "go"
        assert parsed.target == "errors"

    def test_parse_subtarget(self):
        parsed = parse_label("//src:gen#srcs")
        assert parsed.target == "gen"
        assert parsed.subtarget == "srcs"

    def test_parse_relative_label(self):
        parsed = parse_label(":lib")
        assert parsed.package == ""
        assert parsed.target == "lib"

    def test_parse_root_package_label(self):
        parsed = parse_label("//:all")
        assert parsed.package == ""
        assert parsed.target == "all"

    def test_parse_rejects_non_label(self):
        assert parse_label("src/core") is None

    def test_build_and_resolve(self):
        assert build_label("a/b", "c") == "//a/b:c"
        assert build_label("a", "c", "x") == "//a:c#x"
        assert resolve_label(":c", "a/b") == "//a/b:c"
        assert resolve_label("//x:y", "a/b") == "//x:y"

    def test_short_label_and_external(self):
        assert short_label("//a/b:c") == "c"
        assert short_label("//a:c#x") == "c#x"
        assert is_external_label("///sub//a:b")
        assert not is_external_label("//a:b")


# ── Graph construction ────────────────────────────────────────────────────────

class TestBuildGraphFromQuery:

    def test_one_node_per_target(self):
        graph = build_graph_from_query(make_query())
        assert sorted(graph.nodes()) == ["//app:main", "//lib:base", "//lib:util"]

    def test_node_attributes(self):
        graph = build_graph_from_query(make_query())
        main = graph.node("//app:main")
        assert main["package"] == "app"
        assert main["binary"] is True
        assert graph.node("//lib:base")["labels"] == ["lang:go"]
        assert graph.node("//lib:util")["metadata"]["deps"][0] == ":base"

    def test_relative_dep_resolved(self):
        graph = build_graph_from_query(make_query())
        assert graph.has_edge("//lib:util", "//lib:base")

    def test_subrepo_missing_and_self_deps_skipped(self):
        graph = build_graph_from_query(make_query())
        assert graph.number_of_edges() == 2
        assert not graph.has_edge("//app:main", "//app:main")

    def test_initial_positions_seeded(self):
        config = LayoutConfig(random_scale=500.0)
        a = build_graph_from_query(make_query(), config=config, seed=7)
        b = build_graph_from_query(make_query(), config=config, seed=7)
        assert a.positions() == b.positions()
        for x, y in a.positions().values():
            assert 0.0 <= x < 500.0
            assert 0.0 <= y < 500.0

    def test_empty_query(self):
        graph = build_graph_from_query({})
        assert len(graph) == 0

    def test_synthetic_graph_is_acyclic_and_populated(self, synthetic_graph):
        import networkx as nx

        assert len(synthetic_graph) > 20
        assert synthetic_graph.number_of_edges() > 10
        assert nx.is_directed_acyclic_graph(synthetic_graph.G)


# ── File loading and summaries ────────────────────────────────────────────────

def test_load_query_json(tmp_path):
    path = tmp_path / "query.json"
    path.write_text(json.dumps(make_query()), encoding="utf-8")
    graph = load_query_json(str(path))
    assert len(graph) == 3


def test_summary_helpers():
    graph = build_graph_from_query(make_query())
    assert get_packages(graph) == ["app", "lib"]
    assert get_labels(graph) == ["lang:go"]
    assert graph_stats(graph) == {"node_count": 3, "edge_count": 2, "packages": 2}


@pytest.mark.parametrize("optimize", [True, False])
def test_edge_weight_toggle(optimize):
    graph = build_graph_from_query(make_query(), config=LayoutConfig(optimize_edge_weights=optimize))
    weights = [graph.get_edge_attribute(u, v, "weight") for u, v in graph.edges()]
    if optimize:
        assert all(1.0 <= w <= 11.0 for w in weights)
        assert any(w > 1.0 for w in weights)
    else:
        assert weights == [1.0] * len(weights)
