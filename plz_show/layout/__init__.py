"""
plz_show.layout — Layout algorithms.

Modules:
    force         — ForceSolver: ForceAtlas2 with bounded and neighbor-gravity
                    variants.
    barnes_hut    — Quad-tree repulsion for large graphs.
    clustered     — Package meta-graph layout + per-package member layout.
    treemap       — Squarified treemap over the package tree.
    hierarchical  — Treemap regions filled by bounded ForceSolver runs.
    structural    — Layered, radial, stress, circular and random layouts.
    overlap       — noverlap post-process.
    engine        — compute_layout(): algorithm dispatch.
    runner        — LayoutRunner: cancellable single-writer execution.

Every algorithm returns a fresh node_id → (x, y) mapping. Only
DependencyGraph.commit_positions() writes positions back.

All tunables live in plz_show.config.LayoutConfig.
"""
