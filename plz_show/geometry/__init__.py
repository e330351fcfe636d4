"""
plz_show.geometry — Rectangles and package hulls.

Modules:
    bounds  — Axis-aligned Bounds rectangle.
    hulls   — Graham scan hulls per package, aggregated up the hierarchy.
"""
