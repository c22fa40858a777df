"""
Similarity Network Fusion (Wang et al., Nature Methods 2014).

Each view contributes a local kernel ``S_v`` and a global kernel ``P_v``.
At every iteration all views are updated simultaneously from the
iteration-t state:

    P_v <- normalize(sym(S_v . mean_{w != v}(P_w) . S_v^T))

where ``sym(M) = (M + M^T) / 2`` and ``normalize`` is the global-kernel
derivation (diagonal 0.5, off-diagonal mass 0.5), which keeps every
``P_v`` exactly row-stochastic. The consensus is the unweighted mean of
the diffused ``P_v``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple, Union

import numpy as np
from joblib import Parallel, delayed
from scipy import sparse

from .exceptions import ConfigurationError
from .similarity import (
    ViewKernels,
    _check_neighborhood,
    global_kernel,
    similarity_to_distance,
    view_kernels,
)
from .views import DataMatrix, MultiViewData


__all__ = [
    "FusionResult",
    "diffusion_step",
    "fuse_kernels",
    "similarity_network_fusion",
]

logger = logging.getLogger(__name__)

ViewsLike = Union[MultiViewData, Sequence[Union[DataMatrix, np.ndarray]]]


@dataclass(frozen=True)
class FusionResult:
    """
    Output of a fusion run.

    Attributes
    ----------
    fused:
        Consensus similarity ``P_c``, the mean of the diffused view kernels.
        Every row sums to one.
    view_kernels:
        The per-view ``W``/``S``/``P`` built before diffusion.
    diffused:
        Per-view global kernels after the last iteration.
    n_iter:
        Number of diffusion iterations actually performed.
    """

    fused: np.ndarray
    view_kernels: Tuple[ViewKernels, ...]
    diffused: Tuple[np.ndarray, ...]
    n_iter: int

    @property
    def n_samples(self) -> int:
        return int(self.fused.shape[0])

    def distance(self) -> np.ndarray:
        """Dissimilarity derived from the consensus, ready for PAM."""
        return similarity_to_distance(self.fused)


def diffusion_step(
    local_kernels: Sequence[sparse.spmatrix],
    global_kernels: Sequence[np.ndarray],
) -> List[np.ndarray]:
    """
    Perform one synchronous cross-diffusion update of every view.

    Parameters
    ----------
    local_kernels
        Sparse row-stochastic ``S_v``, one per view.
    global_kernels
        Current dense ``P_v``, one per view. Not modified.

    Returns
    -------
    list of np.ndarray
        Updated ``P_v`` in the same order. With a single view the kernel is
        returned unchanged (there is no other view to diffuse from).
    """

    if len(local_kernels) != len(global_kernels):
        raise ConfigurationError("Need one local kernel per global kernel.")
    n_views = len(global_kernels)
    if n_views == 0:
        raise ConfigurationError("At least one view is required.")
    if n_views == 1:
        return [np.array(global_kernels[0], dtype=np.float64, copy=True)]

    total = np.sum(global_kernels, axis=0)
    updated = []
    for local, current in zip(local_kernels, global_kernels):
        others = (total - current) / (n_views - 1)
        # S . M . S^T evaluated as (S . (S . M)^T)^T to keep the sparse operand on the left
        product = np.asarray((local @ np.asarray(local @ others).T).T)
        product = 0.5 * (product + product.T)
        updated.append(global_kernel(product))
    return updated


def fuse_kernels(
    kernels: Sequence[ViewKernels],
    *,
    n_iter: int = 20,
    tol: Optional[float] = None,
) -> FusionResult:
    """
    Run the cross-diffusion loop over prebuilt view kernels.

    Parameters
    ----------
    kernels
        Output of ``view_kernels`` for each view; all must cover the same
        samples.
    n_iter
        Number of diffusion iterations.
    tol
        Optional early-stopping threshold on the relative Frobenius change
        of the consensus between iterations. ``None`` (default) always runs
        exactly ``n_iter`` iterations.
    """

    kernels = tuple(kernels)
    if not kernels:
        raise ConfigurationError("At least one view is required.")
    _check_iterations(n_iter, tol)
    sizes = {kernel.n_samples for kernel in kernels}
    if len(sizes) != 1:
        raise ConfigurationError(f"View kernels have mismatched sample counts: {sorted(sizes)}.")

    current = [np.array(kernel.global_kernel, dtype=np.float64, copy=True) for kernel in kernels]

    if len(kernels) == 1:
        logger.debug("Single view supplied; fusion is the identity.")
        return FusionResult(
            fused=current[0].copy(),
            view_kernels=kernels,
            diffused=tuple(current),
            n_iter=0,
        )

    locals_ = [kernel.local_kernel for kernel in kernels]
    consensus = np.mean(current, axis=0)
    performed = 0
    for iteration in range(1, n_iter + 1):
        current = diffusion_step(locals_, current)
        updated = np.mean(current, axis=0)
        change = np.linalg.norm(updated - consensus) / max(np.linalg.norm(consensus), 1e-300)
        consensus = updated
        performed = iteration
        logger.debug("SNF iteration %d/%d: relative change %.3e", iteration, n_iter, change)
        if tol is not None and change < tol:
            logger.debug("SNF stopped early after %d iterations.", iteration)
            break

    return FusionResult(
        fused=consensus,
        view_kernels=kernels,
        diffused=tuple(current),
        n_iter=performed,
    )


def similarity_network_fusion(
    views: ViewsLike,
    *,
    n_neighbors: int = 20,
    mu: float = 0.5,
    n_iter: int = 20,
    tol: Optional[float] = None,
    n_jobs: Optional[int] = None,
) -> FusionResult:
    """
    Fuse several views of the same samples into one consensus similarity.

    Parameters
    ----------
    views
        ``MultiViewData`` or a sequence of feature matrices (arrays or
        ``DataMatrix``), rows aligned across views, no missing values.
    n_neighbors
        Neighbourhood size K for the affinity scale and the local kernel.
        Every view needs at least K + 1 samples.
    mu
        Affinity bandwidth hyperparameter.
    n_iter, tol
        Diffusion iterations and optional early-stopping threshold, see
        ``fuse_kernels``.
    n_jobs
        If given, build the per-view kernels in parallel with joblib
        (thread backend). Results are joined before diffusion starts.

    Returns
    -------
    FusionResult
    """

    arrays = _resolve_views(views)
    _check_iterations(n_iter, tol)
    _check_neighborhood(arrays[0].shape[0], n_neighbors)
    if not mu > 0:
        raise ConfigurationError(f"mu must be positive, got {mu!r}.")

    if n_jobs is None or len(arrays) == 1:
        kernels = [view_kernels(values, n_neighbors=n_neighbors, mu=mu) for values in arrays]
    else:
        kernels = Parallel(n_jobs=n_jobs, prefer="threads")(
            delayed(view_kernels)(values, n_neighbors=n_neighbors, mu=mu) for values in arrays
        )

    logger.debug(
        "Fusing %d views of %d samples (K=%d, mu=%.3f, t=%d).",
        len(arrays),
        arrays[0].shape[0],
        n_neighbors,
        mu,
        n_iter,
    )
    return fuse_kernels(kernels, n_iter=n_iter, tol=tol)


def _resolve_views(views: ViewsLike) -> List[np.ndarray]:
    if isinstance(views, MultiViewData):
        items = list(views.items())
    else:
        items = [(f"view_{idx}", view) for idx, view in enumerate(views)]
    if not items:
        raise ConfigurationError("At least one view is required.")

    arrays = []
    for name, view in items:
        if isinstance(view, DataMatrix):
            view.require_finite(name=name)
            values = np.asarray(view.values, dtype=np.float64)
        else:
            values = np.asarray(view, dtype=np.float64)
            if values.ndim != 2:
                raise ConfigurationError(f"{name} must be two-dimensional.")
            if not np.all(np.isfinite(values)):
                raise ConfigurationError(f"{name} contains missing or non-finite values.")
        arrays.append(values)

    counts = [values.shape[0] for values in arrays]
    if len(set(counts)) != 1:
        raise ConfigurationError(f"Views have mismatched sample counts: {counts}.")
    return arrays


def _check_iterations(n_iter: int, tol: Optional[float]) -> None:
    if isinstance(n_iter, bool) or not isinstance(n_iter, (int, np.integer)) or n_iter < 1:
        raise ConfigurationError(f"n_iter must be a positive integer, got {n_iter!r}.")
    if tol is not None and not tol >= 0:
        raise ConfigurationError(f"tol must be non-negative, got {tol!r}.")
