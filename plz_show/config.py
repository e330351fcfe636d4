"""
plz_show/config.py — All tunable parameters for layout, hulls and analysis.

No constant should ever be hardcoded in an algorithm module. Every iteration
count, spacing preset, force coefficient and padding lives here so that
tuning a layout is a single-file diff.
"""

from dataclasses import dataclass


LAYOUT_ALGORITHMS = (
    "forceAtlas2",
    "clusteredForceAtlas2",
    "hierarchical",
    "layered",
    "radial",
    "stress",
    "circular",
    "random",
)
LAYOUT_QUALITIES = ("fast", "balanced", "quality")
CLUSTERING_STRENGTHS = ("weak", "strong")
LAYERED_DIRECTIONS = ("TB", "LR", "BT", "RL")
LAYERED_SPACINGS = ("compact", "normal", "spacious")

# A body lies within side * sqrt(2) of the center of mass of any region that
# contains it, so below 1 / sqrt(2) such a region is always opened.
MAX_BARNES_HUT_THETA = 2 ** -0.5

# Iteration budgets per quality preset. Iteration counts, never wall-clock,
# bound every iterative algorithm.
FORCE_ITERATIONS = {"fast": 50, "balanced": 100, "quality": 200}
STRESS_ITERATIONS = {"fast": 30, "balanced": 60, "quality": 120}

# Package radius multiplier: 'weak' clustering spreads members out,
# 'strong' packs them tightly around the package center.
CLUSTER_RADIUS_FACTOR = {"weak": 1.6, "strong": 1.0}

# (inter-node spacing, inter-rank spacing) before log-scaling by graph size.
LAYERED_SPACING_PRESETS = {
    "compact": (20.0, 60.0),
    "normal": (40.0, 100.0),
    "spacious": (70.0, 160.0),
}


@dataclass(frozen=True)
class LayoutConfig:
    """
    Immutable configuration for every layout algorithm and hull pass.

    Defaults are the viewer's out-of-the-box layout presets.
    Override by constructing a new LayoutConfig with the desired values.
    """

    # ── Algorithm selection ───────────────────────────────────────────────────
    algorithm: str = "clusteredForceAtlas2"
    # One of LAYOUT_ALGORITHMS.

    layout_quality: str = "balanced"
    # Picks the iteration budget from FORCE_ITERATIONS / STRESS_ITERATIONS.

    seed: int = 42
    # Seeds every randomized initial placement. Same seed + same graph +
    # same settings reproduces bit-identical coordinates.

    # ── ForceAtlas2 (ForceSolver) ─────────────────────────────────────────────
    gravity: float = 1.0
    scaling_ratio: float = 10.0
    # Repulsion coefficient. Larger values spread the layout out.

    strong_gravity_mode: bool = False
    # True: gravity is uniform regardless of distance from origin.
    # False: gravity scales with 1 / distance ('normal gravity').

    linlog_mode: bool = False
    # Logarithmic attraction. Keeps hubs from stretching the layout.

    dissuade_hubs: bool = True
    # Outbound attraction distribution: attraction divided by source mass.

    edge_weight_influence: float = 1.0
    # Exponent applied to edge weights in the attraction term. 0 ignores weights.

    slow_down: float = 1.0
    # Damping divisor on per-iteration node displacement.

    adjust_sizes: bool = True
    # Inflate repulsion by node size to reduce overlap.

    barnes_hut_threshold: int = 500
    # Node count above which repulsion uses the Barnes-Hut quad-tree.

    barnes_hut_theta: float = 0.5
    # Opening criterion: region_size / distance below theta is approximated.
    # Must stay below MAX_BARNES_HUT_THETA: a region holding the body itself
    # could otherwise be approximated, and the body would repel itself.

    # ── Neighbor-gravity refinement ───────────────────────────────────────────
    neighbor_gravity_passes: int = 0
    # Passes pulling each node toward its neighbors' centroid. 0 disables.

    neighbor_gravity_strength: float = 0.5
    # Pull fraction on the first pass, divided by sqrt(degree) per node and
    # decayed linearly to 0 across passes.

    # ── Bounded simulation ────────────────────────────────────────────────────
    bounded_batch_size: int = 10
    # Iterations between boundary enforcement passes.

    boundary_margin_fraction: float = 0.1
    # Inset margin as a fraction of the smaller bounds dimension.

    boundary_push_strength: float = 0.5
    # Fraction of the margin overshoot removed by the soft boundary force.

    # ── Clustered layout ──────────────────────────────────────────────────────
    clustering_strength: str = "weak"
    # One of CLUSTERING_STRENGTHS.

    cluster_base_radius: float = 30.0
    # Package radius = cluster_base_radius * sqrt(members) * strength factor.

    cluster_spacing: float = 1.2
    # Minimum center distance as a multiple of the two package radii.

    cluster_max_spread: float = 50.0
    # Upper bound on the uniform scale applied to enforce cluster_spacing.

    cluster_circle_max_nodes: int = 8
    # Edgeless packages up to this size are placed on a circle, else a grid.

    # ── Treemap / hierarchical layout ─────────────────────────────────────────
    treemap_padding: float = 20.0
    treemap_min_size: float = 50.0
    # Inner bounds smaller than this in either dimension are not subdivided.

    treemap_area_per_node: float = 2500.0
    # Root canvas area grows linearly with node count.

    # ── Layered layout ────────────────────────────────────────────────────────
    layered_direction: str = "LR"
    layered_spacing: str = "normal"
    layered_sweeps: int = 4
    # Barycenter ordering sweeps (down + up counts as two).

    # ── Radial layout ─────────────────────────────────────────────────────────
    radial_center_node: str | None = None
    # None selects the highest-degree node.

    radial_base_radius: float = 100.0
    radial_ring_increment: float = 80.0

    # ── Stress majorization ───────────────────────────────────────────────────
    stress_scale: float = 50.0
    # Target Euclidean distance per unit of graph distance.

    stress_epsilon: float = 1e-6

    # ── Baselines ─────────────────────────────────────────────────────────────
    random_scale: float = 1000.0
    # Side of the square random placements are drawn from, centered at origin.

    circular_min_radius: float = 100.0
    circular_radius_per_node: float = 2.0

    # ── Overlap removal (noverlap) ────────────────────────────────────────────
    apply_noverlap: bool = False
    noverlap_max_iterations: int = 50
    noverlap_margin: float = 5.0
    noverlap_ratio: float = 1.2
    # Effective radius = size * noverlap_ratio + noverlap_margin.

    # ── Edge weights ──────────────────────────────────────────────────────────
    optimize_edge_weights: bool = True
    # False: every edge weight is 1. True: weights in [1, 11] favour
    # low-degree endpoints.

    # ── Hulls ─────────────────────────────────────────────────────────────────
    hull_padding: float = 20.0

    # ── Analysis ──────────────────────────────────────────────────────────────
    max_simple_paths: int = 100
    # all_simple_paths() stops after this many paths.

    max_path_length: int | None = None
    # Longest path (in edges) all_simple_paths() explores. None: unlimited.

    def __post_init__(self) -> None:
        _check_choice("algorithm", self.algorithm, LAYOUT_ALGORITHMS)
        _check_choice("layout_quality", self.layout_quality, LAYOUT_QUALITIES)
        _check_choice("clustering_strength", self.clustering_strength, CLUSTERING_STRENGTHS)
        _check_choice("layered_direction", self.layered_direction, LAYERED_DIRECTIONS)
        _check_choice("layered_spacing", self.layered_spacing, LAYERED_SPACINGS)
        if not self.slow_down > 0:
            raise ValueError(f"slow_down must be positive, got {self.slow_down!r}")
        if not 0 <= self.barnes_hut_theta < MAX_BARNES_HUT_THETA:
            raise ValueError(
                f"barnes_hut_theta must be in [0, {MAX_BARNES_HUT_THETA:.3f}), "
                f"got {self.barnes_hut_theta!r}"
            )

    @property
    def force_iterations(self) -> int:
        return FORCE_ITERATIONS[self.layout_quality]

    @property
    def stress_iterations(self) -> int:
        return STRESS_ITERATIONS[self.layout_quality]

    @property
    def cluster_radius_factor(self) -> float:
        return CLUSTER_RADIUS_FACTOR[self.clustering_strength]


def _check_choice(name: str, value: str, choices: tuple[str, ...]) -> None:
    if value not in choices:
        raise ValueError(
            f"Invalid {name} {value!r}; expected one of: {', '.join(choices)}"
        )


# Shared default instance. Algorithm modules take it as their default argument.
DEFAULT_CONFIG = LayoutConfig()
