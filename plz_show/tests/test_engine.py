"""
plz_show/tests/test_engine.py — Tests for the layout dispatcher and pipeline.

Tests verify:
- Every algorithm positions every node with finite coordinates.
- Running a layout twice from different starting positions gives the same
  result (layouts depend on seed and structure, not on prior positions).
- Empty graphs are a no-op for every algorithm.
- Invalid configuration values are rejected at construction, including a
  zero slow_down (division by zero) and a Barnes-Hut theta large enough to
  approximate a region containing the body itself.
- apply_layout / run_layout_pipeline commit positions and bump the version.
"""

import math

import pytest

from plz_show.config import LAYOUT_ALGORITHMS, LayoutConfig
from plz_show.graph.model import DependencyGraph
from plz_show.layout.engine import LAYOUTS, apply_layout, compute_layout
from plz_show.layout.overlap import count_overlaps
from plz_show.pipeline import run_layout_pipeline


def test_every_algorithm_registered():
    assert set(LAYOUTS) == set(LAYOUT_ALGORITHMS)


@pytest.mark.parametrize("algorithm", LAYOUT_ALGORITHMS)
def test_layout_covers_every_node(synthetic_graph, algorithm):
    config = LayoutConfig(algorithm=algorithm, layout_quality="fast")
    positions = compute_layout(synthetic_graph, config)
    assert set(positions) == set(synthetic_graph.nodes())
    assert all(math.isfinite(x) and math.isfinite(y) for x, y in positions.values())


@pytest.mark.parametrize("algorithm", LAYOUT_ALGORITHMS)
def test_layout_idempotent(fresh_graph, algorithm):
    config = LayoutConfig(algorithm=algorithm, layout_quality="fast")
    apply_layout(fresh_graph, config)
    first = fresh_graph.positions()
    apply_layout(fresh_graph, config)
    assert fresh_graph.positions() == first, f"{algorithm} is not idempotent"


@pytest.mark.parametrize("algorithm", LAYOUT_ALGORITHMS)
def test_empty_graph_is_noop(algorithm):
    assert compute_layout(DependencyGraph(), LayoutConfig(algorithm=algorithm)) == {}


@pytest.mark.parametrize(
    "field, value",
    [
        ("algorithm", "spring"),
        ("layout_quality", "ultra"),
        ("clustering_strength", "medium"),
        ("layered_direction", "diagonal"),
        ("layered_spacing", "roomy"),
        ("slow_down", 0.0),
        ("slow_down", -1.0),
        ("barnes_hut_theta", 0.75),
        ("barnes_hut_theta", -0.1),
    ],
)
def test_invalid_config_rejected(field, value):
    with pytest.raises(ValueError):
        LayoutConfig(**{field: value})


def test_theta_range_accepted():
    assert LayoutConfig(barnes_hut_theta=0.0).barnes_hut_theta == 0.0
    assert LayoutConfig(barnes_hut_theta=0.7).barnes_hut_theta == 0.7


def test_apply_layout_bumps_version(fresh_graph):
    before = fresh_graph.layout_version
    version = apply_layout(fresh_graph, LayoutConfig(algorithm="circular"))
    assert version == before + 1
    assert fresh_graph.layout_version == version


def test_noverlap_post_process(fresh_graph):
    config = LayoutConfig(
        algorithm="random",
        random_scale=150.0,
        apply_noverlap=True,
        noverlap_max_iterations=300,
    )
    raw = compute_layout(fresh_graph, LayoutConfig(algorithm="random", random_scale=150.0))
    adjusted = compute_layout(fresh_graph, config)
    assert count_overlaps(fresh_graph, adjusted, config) < count_overlaps(fresh_graph, raw, config)


# ── Pipeline ──────────────────────────────────────────────────────────────────

def test_pipeline_commits_then_computes_hulls(fresh_graph, fast_config):
    before = fresh_graph.layout_version
    result = run_layout_pipeline(fresh_graph, fast_config)

    assert result.version == before + 1
    assert result.algorithm == fast_config.algorithm
    assert fresh_graph.positions() == result.positions
    assert "src" in result.hulls
    assert set(result.timings) == {"layout", "hulls"}
