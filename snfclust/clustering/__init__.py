"""
Clustering engines operating on fused similarity networks.
"""

from .estimate import estimate_n_clusters, normalized_laplacian
from .pam import (
    PAMResult,
    PAMState,
    check_distance_matrix,
    nearest_medoid_distances,
    pam,
    pam_build,
    swap_costs,
    swap_sweep,
)
from .propagation import PropagationResult, gba_scores, propagate_labels

__all__ = [
    "estimate_n_clusters",
    "normalized_laplacian",
    "PAMResult",
    "PAMState",
    "check_distance_matrix",
    "nearest_medoid_distances",
    "pam",
    "pam_build",
    "swap_costs",
    "swap_sweep",
    "PropagationResult",
    "gba_scores",
    "propagate_labels",
]
