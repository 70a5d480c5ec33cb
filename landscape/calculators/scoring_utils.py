import math
import numpy as np
from typing import List, Sequence, Iterable

from landscape.core.types import Edge, EDGE_PREREQUISITE

# ═══════════════════════════════════════════════════════════════════════════
# SIGNAL STRENGTH WEIGHTS
# Heuristic, uncalibrated. Estimates how much structure can be read from an
# artifact: edge density, disagreement between models, and model coverage.
# ═══════════════════════════════════════════════════════════════════════════
SIGNAL_EDGE_WEIGHT = 0.4
SIGNAL_SUPPORT_WEIGHT = 0.3
SIGNAL_COVERAGE_WEIGHT = 0.3
# At least 15% of claims (and never fewer than 3 edges) before density counts as structure
SIGNAL_MIN_EDGE_FLOOR = 3
SIGNAL_EDGE_CLAIM_FRACTION = 0.15
# Varying support is treated as more informative than uniform support; the amplifier is arbitrary
SIGNAL_SUPPORT_VARIANCE_AMPLIFIER = 5

# Support-ratio gap below which two positions are considered evenly matched
TENSION_SYMMETRY_THRESHOLD = 0.15

# A hub is load-bearing when at least this many claims list it as prerequisite
HUB_LOAD_BEARING_MIN_PREREQS = 2


def _clamp01(value: float) -> float:
    return max(0.0, min(1.0, value))


def get_percentile_threshold(values: Sequence[float], percentile: float) -> float:
    """Value at floor(len * percentile) of the ascending sort (clamped to the last index)."""
    if len(values) == 0:
        return 0
    ordered = sorted(values)
    index = int(math.floor(len(ordered) * percentile))
    return ordered[min(index, len(ordered) - 1)]


def get_top_n_count(total: int, ratio: float) -> int:
    """Size of a top cohort; always at least one."""
    return max(1, int(math.ceil(total * ratio)))


def is_in_top_percentile(value: float, all_values: Sequence[float], percentile: float) -> bool:
    if len(all_values) == 0 or min(all_values) == max(all_values):
        return False
    return value >= get_percentile_threshold(all_values, 1 - percentile)


def is_in_bottom_percentile(value: float, all_values: Sequence[float], percentile: float) -> bool:
    if len(all_values) == 0 or min(all_values) == max(all_values):
        return False
    return value < get_percentile_threshold(all_values, percentile)


def compute_signal_strength(
    claim_count: int,
    edge_count: int,
    model_count: int,
    supporters: List[List[int]],
) -> float:
    """
    Estimate how much structure can be read from an artifact.

    High signal does not mean strong consensus: uniform support means models do
    not discriminate between claims, so support variance is rewarded.

    Returns:
        Weighted blend of edge, support-variance and coverage signals in [0, 1].
    """
    min_edges = max(SIGNAL_MIN_EDGE_FLOOR, claim_count * SIGNAL_EDGE_CLAIM_FRACTION)
    edge_signal = _clamp01(edge_count / min_edges)

    support_signal = 0.0
    counts = np.array([len(s) for s in supporters], dtype=float)
    if counts.size > 0:
        normalized = counts / max(counts.max(), 1.0)
        # Population variance, matching a plain mean of squared deviations
        support_signal = _clamp01(float(np.var(normalized)) * SIGNAL_SUPPORT_VARIANCE_AMPLIFIER)

    unique_models = {m for group in supporters for m in group}
    coverage_signal = _clamp01(len(unique_models) / model_count) if model_count > 0 else 0.0

    return (
        edge_signal * SIGNAL_EDGE_WEIGHT
        + support_signal * SIGNAL_SUPPORT_WEIGHT
        + coverage_signal * SIGNAL_COVERAGE_WEIGHT
    )


def is_hub_load_bearing(hub_id: str, edges: Iterable[Edge]) -> bool:
    prereq_out = [e for e in edges if e.from_id == hub_id and e.type == EDGE_PREREQUISITE]
    return len(prereq_out) >= HUB_LOAD_BEARING_MIN_PREREQS


def determine_tension_dynamics(claim_a, claim_b) -> str:
    """'symmetric' when support ratios are within TENSION_SYMMETRY_THRESHOLD, else 'asymmetric'."""
    diff = abs(claim_a.support_ratio - claim_b.support_ratio)
    return "symmetric" if diff < TENSION_SYMMETRY_THRESHOLD else "asymmetric"
