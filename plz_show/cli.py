"""
plz_show/cli.py — Command-line interface for layout and analysis.

Every command reads the JSON written by `plz query graph` and builds the
dependency graph from it.

Usage:
    python -m plz_show layout query.json --algorithm hierarchical --out pos.csv
    python -m plz_show path query.json //src/app:app //src/util:util
    python -m plz_show cycles query.json
    python -m plz_show impact query.json //src/util:util --direction dependents
    python -m plz_show stats query.json

Exit codes: 0 on success, 1 when a referenced node id is not in the graph.
"""

import argparse
import logging
import sys
import time
from dataclasses import replace

import pandas as pd

from plz_show.analysis.cycles import find_cycles
from plz_show.analysis.impact import impact_summary
from plz_show.analysis.paths import all_simple_paths, shortest_path
from plz_show.config import (
    CLUSTERING_STRENGTHS,
    DEFAULT_CONFIG,
    LAYERED_DIRECTIONS,
    LAYOUT_ALGORITHMS,
    LAYOUT_QUALITIES,
    LayoutConfig,
)
from plz_show.errors import NotFound
from plz_show.graph.builder import graph_stats, load_query_json
from plz_show.graph.model import DependencyGraph


# ── Logging setup ─────────────────────────────────────────────────────────────

def _setup_logging(level: str = "INFO") -> None:
    """Configure root logger with timestamps."""
    numeric = getattr(logging, level.upper(), logging.INFO)
    fmt = "%(asctime)s  %(levelname)-8s  %(name)s: %(message)s"
    datefmt = "%H:%M:%S"
    logging.basicConfig(level=numeric, format=fmt, datefmt=datefmt, stream=sys.stderr)


logger = logging.getLogger("plz_show.cli")


def _config_from_args(args: argparse.Namespace) -> LayoutConfig:
    overrides = {
        "algorithm": getattr(args, "algorithm", None),
        "layout_quality": getattr(args, "quality", None),
        "clustering_strength": getattr(args, "clustering", None),
        "layered_direction": getattr(args, "direction", None),
        "radial_center_node": getattr(args, "center", None),
        "seed": getattr(args, "seed", None),
    }
    config = replace(DEFAULT_CONFIG, **{k: v for k, v in overrides.items() if v is not None})
    if getattr(args, "noverlap", False):
        config = replace(config, apply_noverlap=True)
    return config


def positions_frame(graph: DependencyGraph) -> pd.DataFrame:
    """One row per node: node, package, x, y, size, binary."""
    rows = [
        {
            "node": node,
            "package": data.get("package", ""),
            "x": data["x"],
            "y": data["y"],
            "size": data.get("size", 0.0),
            "binary": bool(data.get("binary", False)),
        }
        for node, data in graph.G.nodes(data=True)
    ]
    return pd.DataFrame(rows, columns=["node", "package", "x", "y", "size", "binary"])


# ── Subcommand: layout ────────────────────────────────────────────────────────

def cmd_layout(args: argparse.Namespace) -> int:
    """Compute a layout and its package hulls; optionally export them."""
    _setup_logging(args.log_level)
    from plz_show.pipeline import run_layout_pipeline

    config = _config_from_args(args)
    graph = load_query_json(args.query, config=config)

    t0 = time.monotonic()
    result = run_layout_pipeline(graph, config)
    elapsed = time.monotonic() - t0

    if args.out:
        positions_frame(graph).to_csv(args.out, index=False)
        logger.info("Positions written to: %s", args.out)

    if args.html:
        from plz_show.viz.plotly_graph import build_layout_figure, save_figure_html
        save_figure_html(build_layout_figure(graph, result.hulls), args.html)

    print()
    print("=" * 60)
    print("  LAYOUT COMPLETE")
    print("=" * 60)
    print(f"  Algorithm : {result.algorithm}")
    print(f"  Nodes     : {len(result.positions)}")
    print(f"  Hulls     : {len(result.hulls)}")
    print(f"  Version   : {result.version}")
    print(f"  Elapsed   : {elapsed:.2f}s")
    if args.out:
        print(f"  Positions : {args.out}")
    if args.html:
        print(f"  Preview   : {args.html}")
    print("=" * 60)
    return 0


# ── Subcommand: path ──────────────────────────────────────────────────────────

def cmd_path(args: argparse.Namespace) -> int:
    """Shortest (or every simple) dependency chain between two targets."""
    _setup_logging(args.log_level)
    graph = load_query_json(args.query)

    if args.all:
        paths = all_simple_paths(
            graph, args.source, args.target,
            max_paths=args.max_paths, max_length=args.max_length,
        )
        if not paths:
            print(f"No path from {args.source} to {args.target}.")
            return 0
        for path in paths:
            print(" -> ".join(path))
        print(f"\n{len(paths)} path(s).")
        return 0

    path = shortest_path(graph, args.source, args.target)
    if path is None:
        print(f"No path from {args.source} to {args.target}.")
        return 0
    print(" -> ".join(path))
    return 0


# ── Subcommand: cycles ────────────────────────────────────────────────────────

def cmd_cycles(args: argparse.Namespace) -> int:
    """List dependency cycles."""
    _setup_logging(args.log_level)
    graph = load_query_json(args.query)

    cycles = find_cycles(graph)
    if not cycles:
        print("No dependency cycles.")
        return 0
    for cycle in cycles:
        print(" -> ".join(cycle + [cycle[0]]))
    print(f"\n{len(cycles)} cycle(s).")
    return 0


# ── Subcommand: impact ────────────────────────────────────────────────────────

def cmd_impact(args: argparse.Namespace) -> int:
    """Transitive dependents or dependencies of one target."""
    _setup_logging(args.log_level)
    graph = load_query_json(args.query)

    summary = impact_summary(graph, args.node)
    if args.direction == "dependents":
        direct, reached = summary.direct_dependents, summary.transitive_dependents
    else:
        direct, reached = summary.direct_dependencies, summary.transitive_dependencies

    for node in reached:
        marker = "*" if node in direct else " "
        print(f"  {marker} {node}")
    print()
    print(f"  {args.node}: {len(reached)} {args.direction} ({len(direct)} direct, marked *)")
    if args.direction == "dependents":
        print(f"  Affected packages: {len(summary.affected_packages)}")
    return 0


# ── Subcommand: stats ─────────────────────────────────────────────────────────

def cmd_stats(args: argparse.Namespace) -> int:
    """Node, edge and package counts."""
    _setup_logging(args.log_level)
    graph = load_query_json(args.query)
    for key, value in graph_stats(graph).items():
        print(f"  {key:<12}: {value}")
    return 0


# ── Argument parser ───────────────────────────────────────────────────────────

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="plz-show",
        description="Layout and analysis of Please build graphs.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Clustered ForceAtlas2 layout, positions as CSV
  python -m plz_show layout query.json --out positions.csv

  # Treemap-constrained layout with an HTML preview (needs plotly)
  python -m plz_show layout query.json --algorithm hierarchical --html layout.html

  # Every chain from an app to a library, at most 20
  python -m plz_show path query.json //app:app //lib:lib --all --max-paths 20
        """,
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level (default: WARNING)",
    )

    subparsers = parser.add_subparsers(dest="command", metavar="COMMAND")
    subparsers.required = True

    def add_query_arg(p: argparse.ArgumentParser) -> None:
        p.add_argument("query", metavar="QUERY_JSON", help="Output of `plz query graph`")

    # layout
    p_layout = subparsers.add_parser("layout", help="Compute a layout and package hulls")
    add_query_arg(p_layout)
    p_layout.add_argument(
        "--algorithm", choices=LAYOUT_ALGORITHMS, default=None,
        help=f"Layout algorithm (default: {DEFAULT_CONFIG.algorithm})",
    )
    p_layout.add_argument("--quality", choices=LAYOUT_QUALITIES, default=None)
    p_layout.add_argument("--clustering", choices=CLUSTERING_STRENGTHS, default=None)
    p_layout.add_argument("--direction", choices=LAYERED_DIRECTIONS, default=None,
                          help="Layered layout direction")
    p_layout.add_argument("--center", default=None, metavar="NODE",
                          help="Radial layout center node")
    p_layout.add_argument("--seed", type=int, default=None)
    p_layout.add_argument("--noverlap", action="store_true",
                          help="Run overlap removal after the layout")
    p_layout.add_argument("--out", default=None, metavar="PATH",
                          help="Write positions as CSV")
    p_layout.add_argument("--html", default=None, metavar="PATH",
                          help="Write an interactive Plotly preview")
    p_layout.set_defaults(func=cmd_layout)

    # path
    p_path = subparsers.add_parser("path", help="Dependency chain between two targets")
    add_query_arg(p_path)
    p_path.add_argument("source", metavar="SOURCE")
    p_path.add_argument("target", metavar="TARGET")
    p_path.add_argument("--all", action="store_true", help="Every simple path, not just the shortest")
    p_path.add_argument("--max-paths", type=int, default=DEFAULT_CONFIG.max_simple_paths,
                        metavar="N")
    p_path.add_argument("--max-length", type=int, default=DEFAULT_CONFIG.max_path_length,
                        metavar="N", help="Longest path in edges (default: unlimited)")
    p_path.set_defaults(func=cmd_path)

    # cycles
    p_cycles = subparsers.add_parser("cycles", help="List dependency cycles")
    add_query_arg(p_cycles)
    p_cycles.set_defaults(func=cmd_cycles)

    # impact
    p_impact = subparsers.add_parser("impact", help="Transitive reach of one target")
    add_query_arg(p_impact)
    p_impact.add_argument("node", metavar="NODE")
    p_impact.add_argument("--direction", choices=["dependents", "dependencies"],
                          default="dependents")
    p_impact.set_defaults(func=cmd_impact)

    # stats
    p_stats = subparsers.add_parser("stats", help="Graph size summary")
    add_query_arg(p_stats)
    p_stats.set_defaults(func=cmd_stats)

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        return args.func(args)
    except NotFound as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
