"""
plz_show.graph — Dependency graph model and construction.

Modules:
    model         — DependencyGraph: attributed DiGraph wrapper, positions,
                    layout version.
    labels        — Please build label parsing ('//pkg:target').
    builder       — Build the graph from `plz query graph` JSON.
    package_tree  — Arena-backed package hierarchy with bottom-up weights.

Edges point from dependent to dependency: A → B means "A depends on B".
"""
