"""
Per-view similarity construction for Similarity Network Fusion.

For one feature matrix this module builds
  - the scaled exponential affinity ``W`` (Wang et al., 2014, Eq. 1),
  - the sparse local kernel ``S`` restricted to each sample's neighbourhood,
  - the dense global kernel ``P`` with its diagonal fixed at one half,
and converts a fused similarity back into a dissimilarity for clustering.

Conventions
-----------
``W(i, i) = 1`` (the kernel evaluated at zero distance). The diagonal is
ignored by ``global_kernel`` and contributes the self weight in
``local_kernel``. Neighbour ties are broken towards the lowest sample index.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

import numpy as np
from scipy import sparse
from sklearn.metrics import pairwise_distances

from .exceptions import ConfigurationError, NumericDegeneracyError


__all__ = [
    "ViewKernels",
    "pairwise_euclidean",
    "nearest_neighbors",
    "affinity_matrix",
    "local_kernel",
    "global_kernel",
    "view_kernels",
    "similarity_to_distance",
]

logger = logging.getLogger(__name__)

EPSILON = float(np.finfo(np.float64).eps)


@dataclass(frozen=True)
class ViewKernels:
    """
    Similarity structures derived from one view.

    Attributes
    ----------
    affinity:
        Symmetric affinity matrix ``W`` with unit diagonal (read-only).
    local_kernel:
        Row-stochastic sparse matrix ``S`` supported on each sample and its
        nearest neighbours. Not symmetric in general.
    global_kernel:
        Dense row-stochastic matrix ``P`` with diagonal 0.5.
    """

    affinity: np.ndarray
    local_kernel: sparse.csr_matrix
    global_kernel: np.ndarray

    @property
    def n_samples(self) -> int:
        return int(self.affinity.shape[0])


def pairwise_euclidean(values: np.ndarray) -> np.ndarray:
    """
    Euclidean distance matrix between the rows of ``values``.

    The result is exactly symmetric with a zero diagonal.
    """

    values = _as_feature_matrix(values)
    distances = pairwise_distances(values, metric="euclidean")
    distances = 0.5 * (distances + distances.T)
    np.fill_diagonal(distances, 0.0)
    return distances


def nearest_neighbors(distances: np.ndarray, n_neighbors: int) -> np.ndarray:
    """
    Indices of the ``n_neighbors`` closest samples to each row, excluding itself.

    Parameters
    ----------
    distances
        Square distance matrix.
    n_neighbors
        Neighbourhood size K. Requires at least K + 1 samples.

    Returns
    -------
    np.ndarray
        Integer array with shape (n_samples, n_neighbors), closest first.
        Equal distances are ordered by ascending sample index.
    """

    distances = np.asarray(distances, dtype=np.float64)
    _check_square(distances, name="distances")
    _check_neighborhood(distances.shape[0], n_neighbors)

    masked = distances.copy()
    np.fill_diagonal(masked, np.inf)
    order = np.argsort(masked, axis=1, kind="stable")
    return order[:, :n_neighbors]


def affinity_matrix(
    values: np.ndarray,
    *,
    n_neighbors: int = 20,
    mu: float = 0.5,
) -> np.ndarray:
    """
    Scaled exponential similarity kernel for one view.

    ``W(i, j) = exp(-dist(i, j)**2 / (mu * eps(i, j)))`` where
    ``eps(i, j)`` averages the mean neighbour distance of ``i``, that of
    ``j``, and ``dist(i, j)``. Scaling factors are floored at machine
    epsilon so duplicated samples get similarity 1 instead of a division by
    zero.

    Parameters
    ----------
    values
        Feature matrix with shape (n_samples, n_features), no missing values.
    n_neighbors
        Neighbourhood size K used for the local scale.
    mu
        Positive bandwidth hyperparameter, typically in [0.3, 0.8].
    """

    if not mu > 0:
        raise ConfigurationError(f"mu must be positive, got {mu!r}.")

    distances = pairwise_euclidean(values)
    neighbors = nearest_neighbors(distances, n_neighbors)
    mean_neighbor_dist = np.take_along_axis(distances, neighbors, axis=1).mean(axis=1)

    scale = (mean_neighbor_dist[:, None] + mean_neighbor_dist[None, :] + distances) / 3.0
    n_floored = int(np.count_nonzero(scale < EPSILON))
    if n_floored:
        logger.debug("Flooring %d degenerate scaling factors to %g.", n_floored, EPSILON)
    scale = np.maximum(scale, EPSILON)

    affinity = np.exp(-(distances ** 2) / (mu * scale))
    affinity = 0.5 * (affinity + affinity.T)
    np.fill_diagonal(affinity, 1.0)
    affinity.setflags(write=False)

    logger.debug(
        "Built affinity for %d samples (K=%d, mu=%.3f).", affinity.shape[0], n_neighbors, mu
    )
    return affinity


def local_kernel(affinity: np.ndarray, n_neighbors: int) -> sparse.csr_matrix:
    """
    Row-stochastic kernel restricted to each sample's neighbourhood.

    Row ``i`` is supported on ``i`` itself plus its ``n_neighbors`` most
    similar other samples, normalised to sum to one. Neighbour sets are not
    symmetric, so neither is the result.
    """

    affinity = _as_similarity(affinity)
    n_samples = affinity.shape[0]
    _check_neighborhood(n_samples, n_neighbors)

    masked = affinity.copy()
    np.fill_diagonal(masked, -np.inf)
    neighbors = np.argsort(-masked, axis=1, kind="stable")[:, :n_neighbors]

    rows = np.repeat(np.arange(n_samples), n_neighbors + 1)
    cols = np.hstack([np.arange(n_samples)[:, None], neighbors])
    weights = affinity[np.arange(n_samples)[:, None], cols]

    row_sums = weights.sum(axis=1)
    degenerate = np.flatnonzero(row_sums <= 0)
    if degenerate.size:
        raise NumericDegeneracyError(
            f"Samples {degenerate.tolist()} have no similarity mass in their neighbourhood."
        )
    weights = weights / row_sums[:, None]

    return sparse.csr_matrix(
        (weights.ravel(), (rows, cols.ravel())),
        shape=(n_samples, n_samples),
    )


def global_kernel(affinity: np.ndarray) -> np.ndarray:
    """
    Dense row-stochastic kernel with the diagonal fixed at one half.

    Off-diagonal entries are ``W(i, j) / (2 * sum_{k != i} W(i, k))`` so each
    row sums to one.

    Raises
    ------
    NumericDegeneracyError
        If a sample has zero similarity to every other sample.
    """

    affinity = _as_similarity(affinity)
    off_diagonal = affinity.copy()
    np.fill_diagonal(off_diagonal, 0.0)

    row_sums = off_diagonal.sum(axis=1)
    degenerate = np.flatnonzero(row_sums <= 0)
    if degenerate.size:
        raise NumericDegeneracyError(
            f"Samples {degenerate.tolist()} have zero similarity to all other samples."
        )

    kernel = off_diagonal / (2.0 * row_sums[:, None])
    np.fill_diagonal(kernel, 0.5)
    return kernel


def view_kernels(
    values: np.ndarray,
    *,
    n_neighbors: int = 20,
    mu: float = 0.5,
) -> ViewKernels:
    """Build ``W``, ``S`` and ``P`` for a single view."""

    affinity = affinity_matrix(values, n_neighbors=n_neighbors, mu=mu)
    return ViewKernels(
        affinity=affinity,
        local_kernel=local_kernel(affinity, n_neighbors),
        global_kernel=global_kernel(affinity),
    )


def similarity_to_distance(similarity: np.ndarray) -> np.ndarray:
    """
    Convert a similarity matrix into a dissimilarity usable by PAM.

    The matrix is symmetrised, its off-diagonal entries min-max scaled to
    [0, 1] and inverted (``1 - scaled``). The diagonal is exactly zero. When
    every off-diagonal similarity is equal all samples are at distance one.
    """

    similarity = np.asarray(similarity, dtype=np.float64)
    _check_square(similarity, name="similarity")
    n_samples = similarity.shape[0]
    if n_samples < 2:
        return np.zeros_like(similarity)

    symmetric = 0.5 * (similarity + similarity.T)
    off_mask = ~np.eye(n_samples, dtype=bool)
    low = symmetric[off_mask].min()
    high = symmetric[off_mask].max()
    span = high - low

    if span <= EPSILON * max(1.0, abs(high)):
        logger.debug("Similarity has no off-diagonal spread; using unit distances.")
        distances = np.ones_like(symmetric)
    else:
        distances = 1.0 - (symmetric - low) / span
        distances = np.clip(distances, 0.0, 1.0)

    distances = 0.5 * (distances + distances.T)
    np.fill_diagonal(distances, 0.0)
    return distances


def _as_feature_matrix(values: np.ndarray) -> np.ndarray:
    values = np.asarray(values, dtype=np.float64)
    if values.ndim != 2:
        raise ConfigurationError("Feature matrix must be two-dimensional.")
    if values.shape[0] == 0:
        raise ConfigurationError("Feature matrix has no samples.")
    if not np.all(np.isfinite(values)):
        raise ConfigurationError("Feature matrix contains missing or non-finite values.")
    return values


def _as_similarity(affinity: np.ndarray) -> np.ndarray:
    affinity = np.asarray(affinity, dtype=np.float64)
    _check_square(affinity, name="affinity")
    if not np.all(np.isfinite(affinity)):
        raise ConfigurationError("affinity contains non-finite values.")
    if np.any(affinity < 0):
        raise ConfigurationError("affinity must be non-negative.")
    return affinity


def _check_square(matrix: np.ndarray, *, name: str) -> None:
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ConfigurationError(f"{name} must be a square matrix, got shape {matrix.shape}.")


def _check_neighborhood(n_samples: int, n_neighbors: int) -> None:
    if isinstance(n_neighbors, bool) or not isinstance(n_neighbors, (int, np.integer)):
        raise ConfigurationError(f"n_neighbors must be an integer, got {n_neighbors!r}.")
    if n_neighbors < 1:
        raise ConfigurationError(f"n_neighbors must be at least 1, got {n_neighbors}.")
    if n_samples < n_neighbors + 1:
        raise ConfigurationError(
            f"n_neighbors={n_neighbors} needs at least {n_neighbors + 1} samples, got {n_samples}."
        )
