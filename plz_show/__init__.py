"""
plz_show — Layout, hull and analysis core for Please build-graph viewers.

Turns the output of `plz query graph` into a directed dependency graph and
computes everything a viewer needs to draw and explore it:

- Layouts: ForceAtlas2 (plz_show.layout.force), package-clustered
  ForceAtlas2 (plz_show.layout.clustered), treemap-constrained hierarchical
  (plz_show.layout.hierarchical), layered, radial, stress, circular and
  random (plz_show.layout.structural), plus noverlap post-processing.
- Package hulls (plz_show.geometry.hulls).
- Path, cycle and impact queries (plz_show.analysis).
"""

__version__ = "0.1.0"
