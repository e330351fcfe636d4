"""
plz_show/tests/conftest.py — Shared pytest fixtures for the plz_show test suite.

The synthetic monorepo is generated from a fixed seed (SEED=41) and goes
through the public builder, so every layout and hull test runs against the
same deterministic graph a real `plz query graph` would produce.

Fixtures:
    synthetic_query  — Please query-output mapping (session-scoped).
    synthetic_graph  — DependencyGraph built from it (session-scoped; do not
                       commit positions onto it).
    fresh_graph      — Independent copy of synthetic_graph per test.
    fast_config      — LayoutConfig with the 'fast' iteration budget.
"""

import random

import pytest

from plz_show.config import LayoutConfig
from plz_show.graph.builder import build_graph_from_query
from plz_show.graph.model import DependencyGraph

SEED = 41

# ── Synthetic monorepo layout ─────────────────────────────────────────────────
# Packages are listed dependencies-first: a target only depends on targets
# of packages that appear earlier, so the synthetic graph is acyclic.

PACKAGES = [
    "third_party/go",
    "third_party/python",
    "src/util",
    "src/util/strings",
    "src/core",
    "src/core/proto",
    "src/storage",
    "src/api",
    "src/api/handlers",
    "tools/gen",
    "",
]


def _build_synthetic_query() -> dict:
    """
    Deterministic Please query output (SEED=41).

    - 2-6 targets per package; a few are binaries.
    - Each target depends on 0-3 earlier targets, biased toward its own
      package (intra-package edges are what the clustered layout simulates).
    - Every fifth target also carries a subrepo dependency and a dependency
      on a target missing from the query, both of which the builder skips.
    """
    rng = random.Random(SEED)
    packages: dict[str, dict] = {}
    earlier: list[tuple[str, str]] = []

    for pkg in PACKAGES:
        targets: dict[str, dict] = {}
        own: list[str] = []
        for i in range(rng.randint(2, 6)):
            name = f"{pkg.rsplit('/', 1)[-1] or 'root'}_{i}"
            deps: list[str] = []
            for _ in range(rng.randint(0, 3)):
                if own and rng.random() < 0.5:
                    deps.append(f":{rng.choice(own)}")
                elif earlier:
                    dep_pkg, dep_name = rng.choice(earlier)
                    deps.append(f"//{dep_pkg}:{dep_name}")
            if (len(earlier) + i) % 5 == 0:
                deps.append("///third_party//go:ext")
                deps.append("//missing/pkg:gone")
            targets[name] = {
                "deps": sorted(set(deps)),
                "labels": ["lang:go"] if pkg.startswith("third_party/go") else ["lang:py"],
                "binary": rng.random() < 0.15,
            }
            own.append(name)
        packages[pkg] = {"targets": targets}
        earlier.extend((pkg, name) for name in own)

    return {"packages": packages}


# ── Fixtures ──────────────────────────────────────────────────────────────────

@pytest.fixture(scope="session")
def synthetic_query() -> dict:
    return _build_synthetic_query()


@pytest.fixture(scope="session")
def synthetic_graph(synthetic_query: dict) -> DependencyGraph:
    """
    Deterministic synthetic monorepo graph (SEED=41).

    Session-scoped: built once and reused. Tests that commit positions must
    use fresh_graph instead.
    """
    return build_graph_from_query(synthetic_query, seed=SEED)


@pytest.fixture
def fresh_graph(synthetic_graph: DependencyGraph) -> DependencyGraph:
    return synthetic_graph.copy()


@pytest.fixture(scope="session")
def fast_config() -> LayoutConfig:
    return LayoutConfig(layout_quality="fast", seed=SEED)
