"""
Eigengap heuristic for choosing the number of clusters of a similarity network.
"""

from __future__ import annotations

import logging
from typing import Iterable, Tuple

import numpy as np
from scipy.linalg import eigh

from ..exceptions import ConfigurationError


__all__ = ["normalized_laplacian", "estimate_n_clusters"]

logger = logging.getLogger(__name__)


def normalized_laplacian(similarity: np.ndarray) -> np.ndarray:
    """
    Symmetric normalised Laplacian ``I - D^{-1/2} W D^{-1/2}`` of a network.

    The network is symmetrised and self loops are dropped first. Isolated
    nodes get a unit degree so the matrix stays finite.
    """

    weights = np.asarray(similarity, dtype=np.float64)
    if weights.ndim != 2 or weights.shape[0] != weights.shape[1]:
        raise ConfigurationError(f"similarity must be square, got shape {weights.shape}.")
    weights = 0.5 * (weights + weights.T)
    np.fill_diagonal(weights, 0.0)

    degrees = weights.sum(axis=1)
    degrees[degrees <= 0] = 1.0
    inv_sqrt = 1.0 / np.sqrt(degrees)
    laplacian = np.eye(weights.shape[0]) - inv_sqrt[:, None] * weights * inv_sqrt[None, :]
    return 0.5 * (laplacian + laplacian.T)


def estimate_n_clusters(
    similarity: np.ndarray,
    *,
    candidates: Iterable[int] = range(2, 6),
) -> Tuple[int, np.ndarray]:
    """
    Pick the cluster count with the largest eigengap.

    ``k`` scores ``lambda_{k+1} - lambda_k``, the gap after the ``k``-th
    smallest eigenvalue of the normalised Laplacian. A network with ``k``
    well separated groups has ``k`` eigenvalues near zero followed by a jump.

    Parameters
    ----------
    similarity
        Fused (or single-view) similarity network.
    candidates
        Cluster counts to consider; each must lie in ``[1, n - 1]``.

    Returns
    -------
    tuple
        ``(best_k, eigenvalues)`` with eigenvalues in ascending order.
    """

    laplacian = normalized_laplacian(similarity)
    n_samples = laplacian.shape[0]
    ks = sorted({int(k) for k in candidates})
    if not ks:
        raise ConfigurationError("candidates must contain at least one cluster count.")
    if ks[0] < 1 or ks[-1] > n_samples - 1:
        raise ConfigurationError(f"candidates must lie in [1, {n_samples - 1}], got {ks}.")

    eigenvalues = eigh(laplacian, eigvals_only=True)
    eigenvalues = np.sort(eigenvalues)

    gaps = np.diff(eigenvalues)
    scores = np.array([gaps[k - 1] for k in ks])
    best = ks[int(np.argmax(scores))]
    logger.debug("Eigengap scores %s -> k=%d", dict(zip(ks, np.round(scores, 6))), best)
    return best, eigenvalues
