"""
plz_show/tests/test_cli.py — Tests for the command-line interface and the
optional Plotly preview.

Tests verify:
- `layout` writes one CSV row per node (read back with pandas).
- `path`, `cycles`, `impact` and `stats` print their results and exit 0.
- An unknown node id exits 1 instead of raising.
- The Plotly figure has one node trace per top-level package (skipped when
  plotly is not installed).
"""

import json

import pandas as pd
import pytest

from plz_show.cli import main, positions_frame
from plz_show.geometry.hulls import compute_package_hulls
from plz_show.graph.builder import build_graph_from_query


@pytest.fixture
def query_file(tmp_path, synthetic_query):
    path = tmp_path / "query.json"
    path.write_text(json.dumps(synthetic_query), encoding="utf-8")
    return str(path)


def _first_edge(synthetic_query):
    graph = build_graph_from_query(synthetic_query)
    return graph.edges()[0]


# ── layout ────────────────────────────────────────────────────────────────────

def test_layout_writes_csv(query_file, synthetic_graph, tmp_path, capsys):
    out = tmp_path / "positions.csv"
    code = main([
        "layout", query_file, "--algorithm", "circular", "--out", str(out),
    ])
    assert code == 0
    assert "LAYOUT COMPLETE" in capsys.readouterr().out

    frame = pd.read_csv(out)
    assert list(frame.columns) == ["node", "package", "x", "y", "size", "binary"]
    assert len(frame) == len(synthetic_graph)
    assert set(frame["node"]) == set(synthetic_graph.nodes())


def test_positions_frame(synthetic_graph):
    frame = positions_frame(synthetic_graph)
    assert len(frame) == len(synthetic_graph)
    assert frame["binary"].dtype == bool


# ── Analysis commands ─────────────────────────────────────────────────────────

def test_path_command(query_file, synthetic_query, capsys):
    source, target = _first_edge(synthetic_query)
    assert main(["path", query_file, source, target]) == 0
    assert f"{source} -> {target}" in capsys.readouterr().out


def test_path_command_all(query_file, synthetic_query, capsys):
    source, target = _first_edge(synthetic_query)
    assert main(["path", query_file, source, target, "--all", "--max-paths", "5"]) == 0
    assert "path(s)." in capsys.readouterr().out


def test_path_unknown_node_exits_1(query_file, capsys):
    assert main(["path", query_file, "//nope:a", "//nope:b"]) == 1
    assert "Node not found" in capsys.readouterr().err


def test_cycles_command(query_file, capsys):
    assert main(["cycles", query_file]) == 0
    assert "No dependency cycles." in capsys.readouterr().out


def test_impact_command(query_file, synthetic_query, capsys):
    _, target = _first_edge(synthetic_query)
    assert main(["impact", query_file, target]) == 0
    assert "dependents" in capsys.readouterr().out


def test_stats_command(query_file, synthetic_graph, capsys):
    assert main(["stats", query_file]) == 0
    out = capsys.readouterr().out
    assert f"node_count  : {len(synthetic_graph)}" in out


# ── Plotly preview ────────────────────────────────────────────────────────────

def test_plotly_figure(fresh_graph):
    pytest.importorskip("plotly")
    from plz_show.viz.plotly_graph import build_layout_figure

    hulls = compute_package_hulls(fresh_graph)
    fig = build_layout_figure(fresh_graph, hulls)
    top_levels = {
        (fresh_graph.get_node_attribute(n, "package").split("/", 1)[0] or "//")
        for n in fresh_graph
    }
    marker_traces = [t for t in fig.data if t.mode == "markers"]
    assert {t.name for t in marker_traces} == top_levels
    assert sum(len(t.x) for t in marker_traces) == len(fresh_graph)
