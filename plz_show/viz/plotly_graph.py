"""
plz_show/viz/plotly_graph.py — Interactive Plotly preview of a computed layout.

Draws committed positions as they are; it never runs a layout itself.

Visual encoding:
    - Node position: committed (x, y)
    - Node size:     the node's derived size attribute (doubled for visibility)
    - Node color:    top-level package (one legend entry per top-level package)
    - Diamond:       binary targets
    - Edge:          thin gray line, dependent → dependency
    - Hull:          translucent filled polygon per package, deeper packages
                     drawn on top
    - Hover:         node id, package, in/out degree

Note: Requires plotly (the 'viz' extra). Importable without it.
"""

import logging

from plz_show.geometry.hulls import PackageHull
from plz_show.graph.model import DependencyGraph

logger = logging.getLogger(__name__)

# ── Optional Plotly dependency ─────────────────────────────────────────────────
try:
    import plotly.colors
    import plotly.graph_objects as go
    HAS_PLOTLY = True
except ImportError:
    go = None
    HAS_PLOTLY = False

_EDGE_COLOR = "rgba(150, 150, 150, 0.4)"
_HULL_OPACITY = 0.12


def _top_level(package: str) -> str:
    return package.split("/", 1)[0] if package else "//"


def _palette() -> list[str]:
    return list(plotly.colors.qualitative.Plotly)


def build_layout_figure(
    graph: DependencyGraph,
    hulls: dict[str, PackageHull] | None = None,
    title: str = "plz-show dependency layout",
) -> "go.Figure":
    """
    Build a Plotly figure of the graph's current positions.

    Args:
        graph: Graph with committed positions. Hidden nodes are skipped.
        hulls: Optional output of compute_package_hulls().
        title: Figure title.

    Returns:
        Plotly Figure object (no IO, no files written).

    Raises:
        ImportError: If plotly is not installed.
    """
    if not HAS_PLOTLY:
        raise ImportError("plotly is required: pip install plotly")

    visible = set(graph.visible_nodes())
    palette = _palette()
    groups: dict[str, list[str]] = {}
    for node in graph.nodes():
        if node in visible:
            groups.setdefault(_top_level(graph.G.nodes[node].get("package", "")), []).append(node)
    color_of = {group: palette[i % len(palette)] for i, group in enumerate(sorted(groups))}

    # ── Hull traces (deepest last, so they sit on top) ────────────────────────
    hull_traces = []
    for hull in sorted((hulls or {}).values(), key=lambda h: h.depth):
        xs = [p[0] for p in hull.points] + [hull.points[0][0]]
        ys = [p[1] for p in hull.points] + [hull.points[0][1]]
        color = color_of.get(_top_level(hull.package), "gray")
        hull_traces.append(
            go.Scatter(
                x=xs,
                y=ys,
                mode="lines",
                fill="toself",
                fillcolor=color,
                opacity=_HULL_OPACITY,
                line={"width": 1, "color": color},
                name=hull.package or "//",
                showlegend=False,
                hoverinfo="text",
                text=f"//{hull.package}",
            )
        )

    # ── Edge trace ────────────────────────────────────────────────────────────
    edge_x: list[float | None] = []
    edge_y: list[float | None] = []
    for u, v in graph.edges():
        if u not in visible or v not in visible:
            continue
        x0, y0 = graph.position(u)
        x1, y1 = graph.position(v)
        edge_x += [x0, x1, None]
        edge_y += [y0, y1, None]
    edge_trace = go.Scatter(
        x=edge_x,
        y=edge_y,
        mode="lines",
        line={"width": 1, "color": _EDGE_COLOR},
        name="dependencies",
        hoverinfo="none",
        showlegend=False,
    )

    # ── Node traces, one per top-level package ────────────────────────────────
    node_traces = []
    for group in sorted(groups):
        nodes = groups[group]
        data = [graph.G.nodes[n] for n in nodes]
        node_traces.append(
            go.Scatter(
                x=[d["x"] for d in data],
                y=[d["y"] for d in data],
                mode="markers",
                name=group,
                marker={
                    "size": [2.0 * d.get("size", 3.0) for d in data],
                    "color": color_of[group],
                    "symbol": ["diamond" if d.get("binary") else "circle" for d in data],
                    "line": {"color": "white", "width": 1},
                },
                text=[
                    f"<b>{n}</b><br>"
                    f"Package: //{d.get('package', '')}<br>"
                    f"Dependents: {d.get('in_degree', 0)}<br>"
                    f"Dependencies: {d.get('out_degree', 0)}"
                    for n, d in zip(nodes, data)
                ],
                hovertemplate="%{text}<extra></extra>",
            )
        )

    all_traces = hull_traces + [edge_trace] + node_traces
    fig = go.Figure(
        data=all_traces,
        layout=go.Layout(
            title=title,
            showlegend=True,
            hovermode="closest",
            xaxis={"showgrid": False, "zeroline": False, "showticklabels": False},
            yaxis={
                "showgrid": False, "zeroline": False, "showticklabels": False,
                "scaleanchor": "x", "scaleratio": 1,
            },
            margin={"l": 20, "r": 20, "t": 60, "b": 20},
            paper_bgcolor="white",
            plot_bgcolor="white",
        ),
    )

    logger.info(
        "Plotly figure built: %d nodes, %d hulls, %d traces.",
        len(visible),
        len(hull_traces),
        len(all_traces),
    )
    return fig


def save_figure_html(fig: "go.Figure", output_path: str) -> None:
    """
    Write a Plotly figure to a self-contained HTML file.

    Raises:
        ImportError: If plotly is not installed.
    """
    if not HAS_PLOTLY:
        raise ImportError("plotly is required: pip install plotly")

    fig.write_html(output_path, include_plotlyjs="cdn")
    logger.info("Plotly figure saved to: %s", output_path)
