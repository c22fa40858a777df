"""
Utilities for multi-view patient clustering with Similarity Network Fusion.

This package provides modular building blocks for fusing per-view similarity
networks and partitioning the fused network around medoids. Use the modules
from notebooks to keep interactive code light and reproducible.
"""

from .views import DataMatrix, MultiViewData
from .exceptions import ConfigurationError, NonConvergenceWarning, NumericDegeneracyError
from .config import PAMConfig, PipelineConfig, SNFConfig, load_config, save_config
from .preprocessing import align_views, standardize, standardize_views
from .similarity import (
    ViewKernels,
    affinity_matrix,
    global_kernel,
    local_kernel,
    similarity_to_distance,
    view_kernels,
)
from .fusion import FusionResult, diffusion_step, fuse_kernels, similarity_network_fusion
from .clustering import (
    PAMResult,
    PAMState,
    PropagationResult,
    estimate_n_clusters,
    gba_scores,
    pam,
    pam_build,
    propagate_labels,
    swap_costs,
    swap_sweep,
)
from .pipeline import GridRunResult, PipelineResult, run_snf_grid, run_snf_pam
from .synthetic import generate_gaussian_mixture, generate_multiview_clusters

__version__ = "0.1.0"

__all__ = [
    "DataMatrix",
    "MultiViewData",
    "ConfigurationError",
    "NonConvergenceWarning",
    "NumericDegeneracyError",
    "PAMConfig",
    "PipelineConfig",
    "SNFConfig",
    "load_config",
    "save_config",
    "align_views",
    "standardize",
    "standardize_views",
    "ViewKernels",
    "affinity_matrix",
    "global_kernel",
    "local_kernel",
    "similarity_to_distance",
    "view_kernels",
    "FusionResult",
    "diffusion_step",
    "fuse_kernels",
    "similarity_network_fusion",
    "PAMResult",
    "PAMState",
    "PropagationResult",
    "estimate_n_clusters",
    "gba_scores",
    "pam",
    "pam_build",
    "propagate_labels",
    "swap_costs",
    "swap_sweep",
    "GridRunResult",
    "PipelineResult",
    "run_snf_grid",
    "run_snf_pam",
    "generate_gaussian_mixture",
    "generate_multiview_clusters",
]
