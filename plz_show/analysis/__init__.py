"""
plz_show.analysis — Read-only graph queries.

Modules:
    paths   — Shortest path and all simple paths (dependency direction).
    cycles  — Dependency cycle detection.
    impact  — Transitive dependents / dependencies.

Unknown node ids raise plz_show.errors.NotFound. "No path", "no cycles" and
an empty reachable set are ordinary results.
"""
