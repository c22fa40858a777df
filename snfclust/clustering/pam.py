"""
Partitioning Around Medoids (Kaufman & Rousseeuw, 1990).

The algorithm runs in two phases over a precomputed dissimilarity matrix:

BUILD
    Greedy initialisation. The first medoid is the most central object
    (smallest total distance); each further medoid is the unselected
    object with the largest total gain ``sum_j max(D_j - d(i, j), 0)``.

SWAP
    Local search. For every (medoid ``i``, non-medoid ``h``) pair the change
    in total cost ``T_ih`` of replacing ``i`` by ``h`` is evaluated from each
    object's distance to its closest (``D_j``) and second-closest (``E_j``)
    medoid. The most negative swap is applied and the sweep repeated until
    no swap lowers the cost.

Ties are resolved towards the lowest object index (BUILD) and the lowest
``(i, h)`` pair in lexicographic order (SWAP), so results are fully
deterministic.
"""

from __future__ import annotations

import enum
import logging
import warnings
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from ..exceptions import ConfigurationError, NonConvergenceWarning


__all__ = [
    "PAMState",
    "PAMResult",
    "check_distance_matrix",
    "nearest_medoid_distances",
    "pam_build",
    "swap_costs",
    "swap_sweep",
    "pam",
]

logger = logging.getLogger(__name__)

_EPSILON = float(np.finfo(np.float64).eps)


class PAMState(enum.Enum):
    """Lifecycle of the medoid set during a PAM run."""

    UNASSIGNED = "unassigned"
    BUILDING = "building"
    SWAPPING = "swapping"
    CONVERGED = "converged"


@dataclass(frozen=True)
class PAMResult:
    """
    Results from a PAM run.

    Attributes
    ----------
    medoids:
        Object indices of the medoids. Position ``c`` is cluster ``c``.
    labels:
        Cluster (medoid position) of each object.
    cost:
        Sum of distances from every object to its nearest medoid.
    n_swaps:
        Number of swaps applied during the SWAP phase.
    converged:
        False if the swap cap was reached while an improving swap remained.
    state:
        Final lifecycle state; ``CONVERGED`` unless the cap was hit.
    """

    medoids: np.ndarray
    labels: np.ndarray
    cost: float
    n_swaps: int
    converged: bool
    state: PAMState

    @property
    def n_clusters(self) -> int:
        return int(self.medoids.size)

    @property
    def assignment(self) -> np.ndarray:
        """Medoid object index assigned to every object."""
        return self.medoids[self.labels]


def check_distance_matrix(distances: np.ndarray, *, atol: float = 1e-10) -> np.ndarray:
    """
    Validate a dissimilarity matrix and return it as a float array.

    Raises
    ------
    ConfigurationError
        If the matrix is empty, not square, has non-finite or negative
        entries, is not symmetric, or has a non-zero diagonal (all within
        ``atol``).
    """

    matrix = np.asarray(distances, dtype=np.float64)
    if matrix.ndim != 2 or matrix.shape[0] != matrix.shape[1]:
        raise ConfigurationError(f"Distance matrix must be square, got shape {matrix.shape}.")
    if matrix.shape[0] == 0:
        raise ConfigurationError("Distance matrix is empty.")
    if not np.all(np.isfinite(matrix)):
        raise ConfigurationError("Distance matrix contains non-finite values.")
    if np.any(matrix < 0):
        raise ConfigurationError("Distance matrix contains negative values.")
    if np.any(np.abs(np.diag(matrix)) > atol):
        raise ConfigurationError("Distance matrix must have a zero diagonal.")
    scale = max(1.0, float(matrix.max()))
    if not np.allclose(matrix, matrix.T, rtol=0.0, atol=atol * scale):
        raise ConfigurationError("Distance matrix must be symmetric.")
    return matrix


def nearest_medoid_distances(
    distances: np.ndarray,
    medoids: Sequence[int],
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Distances from every object to its closest and second-closest medoid.

    With a single medoid the second-closest distance is ``inf``.
    """

    to_medoids = np.asarray(distances)[:, np.asarray(medoids, dtype=int)]
    if to_medoids.shape[1] == 1:
        return to_medoids[:, 0].copy(), np.full(to_medoids.shape[0], np.inf)
    ordered = np.partition(to_medoids, 1, axis=1)
    return ordered[:, 0].copy(), ordered[:, 1].copy()


def pam_build(distances: np.ndarray, n_clusters: int) -> np.ndarray:
    """
    BUILD phase: greedily select ``n_clusters`` initial medoids.

    Parameters
    ----------
    distances
        Square, symmetric dissimilarity matrix with zero diagonal.
    n_clusters
        Number of medoids k, ``1 <= k <= n``.

    Returns
    -------
    np.ndarray
        Medoid indices in selection order.
    """

    matrix = check_distance_matrix(distances)
    _check_n_clusters(n_clusters, matrix.shape[0])
    return _build(matrix, n_clusters)


def swap_costs(distances: np.ndarray, medoids: Sequence[int]) -> np.ndarray:
    """
    Total cost change ``T_ih`` for every (medoid, non-medoid) swap.

    For object ``j`` with closest-medoid distance ``D_j`` and second-closest
    ``E_j``, replacing medoid ``i`` by ``h`` contributes

    - ``min(d(j, h) - D_j, 0)`` if ``d(j, i) > D_j``,
    - ``min(d(j, h), E_j) - D_j`` if ``d(j, i) == D_j``.

    Summing over every object (the leaving medoid ``i`` and the entering
    ``h`` included) gives the exact change of the total cost.

    Returns
    -------
    np.ndarray
        Array with shape (k, n). Row ``r`` belongs to the ``r``-th smallest
        medoid index; columns of current medoids hold ``inf``.
    """

    matrix = check_distance_matrix(distances)
    chosen = _check_medoids(medoids, matrix.shape[0])
    return _swap_costs(matrix, chosen)


def swap_sweep(
    distances: np.ndarray,
    medoids: Sequence[int],
) -> Tuple[Optional[int], Optional[int], float]:
    """
    Evaluate one SWAP sweep and return the best ``(i, h, T_ih)``.

    ``i`` and ``h`` are ``None`` (with cost 0) when every object is already
    a medoid. Equal costs go to the lowest medoid index, then the lowest
    candidate index.
    """

    matrix = check_distance_matrix(distances)
    chosen = _check_medoids(medoids, matrix.shape[0])
    return _best_swap(matrix, chosen)


def pam(
    distances: np.ndarray,
    n_clusters: int,
    *,
    init_medoids: Optional[Sequence[int]] = None,
    max_swaps: int = 100,
) -> PAMResult:
    """
    Cluster objects around ``n_clusters`` medoids.

    Parameters
    ----------
    distances
        Square, symmetric, zero-diagonal dissimilarity matrix.
    n_clusters
        Number of clusters k, ``1 <= k <= n``.
    init_medoids
        Optional starting medoid set of size k. Skips BUILD when given.
    max_swaps
        Cap on the number of swaps. When it is reached with an improving
        swap left, a ``NonConvergenceWarning`` is issued and the best
        medoid set found so far is returned.

    Returns
    -------
    PAMResult
    """

    matrix = check_distance_matrix(distances)
    n_objects = matrix.shape[0]
    _check_n_clusters(n_clusters, n_objects)
    if isinstance(max_swaps, bool) or not isinstance(max_swaps, (int, np.integer)) or max_swaps < 0:
        raise ConfigurationError(f"max_swaps must be a non-negative integer, got {max_swaps!r}.")

    state = PAMState.UNASSIGNED
    if init_medoids is None:
        state = _transition(state, PAMState.BUILDING)
        medoids = _build(matrix, n_clusters)
    else:
        medoids = _check_medoids(init_medoids, n_objects)
        if medoids.size != n_clusters:
            raise ConfigurationError(
                f"init_medoids has {medoids.size} entries, expected {n_clusters}."
            )

    state = _transition(state, PAMState.SWAPPING)
    cost = _total_cost(matrix, medoids)
    n_swaps = 0
    while True:
        leaving, entering, delta = _best_swap(matrix, medoids)
        tolerance = 16.0 * _EPSILON * abs(cost)
        if leaving is None or delta >= -tolerance:
            state = _transition(state, PAMState.CONVERGED)
            break
        if n_swaps >= max_swaps:
            warnings.warn(
                f"PAM stopped after {n_swaps} swaps with an improving swap remaining "
                f"(T={delta:.6g}); returning the best medoids found.",
                NonConvergenceWarning,
                stacklevel=2,
            )
            break
        medoids[medoids == leaving] = entering
        n_swaps += 1
        cost = _total_cost(matrix, medoids)
        logger.debug("PAM swap %d: %d -> %d (T=%.6g, cost=%.6g)", n_swaps, leaving, entering, delta, cost)

    labels = np.argmin(matrix[:, medoids], axis=1)
    labels[medoids] = np.arange(medoids.size)

    logger.debug("PAM finished: k=%d, cost=%.6g, swaps=%d, state=%s", medoids.size, cost, n_swaps, state.value)
    return PAMResult(
        medoids=medoids.copy(),
        labels=labels,
        cost=float(cost),
        n_swaps=n_swaps,
        converged=state is PAMState.CONVERGED,
        state=state,
    )


def _transition(current: PAMState, target: PAMState) -> PAMState:
    logger.debug("PAM state %s -> %s", current.value, target.value)
    return target


def _build(matrix: np.ndarray, n_clusters: int) -> np.ndarray:
    n_objects = matrix.shape[0]
    first = int(np.argmin(matrix.sum(axis=1)))
    medoids = [first]
    selected = np.zeros(n_objects, dtype=bool)
    selected[first] = True
    nearest = matrix[:, first].copy()
    logger.debug("PAM BUILD: medoid 1 = %d", first)

    while len(medoids) < n_clusters:
        # gain[i] = sum over unselected j of max(D_j - d(i, j), 0)
        improvement = np.maximum(nearest[None, :] - matrix, 0.0)
        improvement[:, selected] = 0.0
        gains = improvement.sum(axis=1)
        gains[selected] = -np.inf
        candidate = int(np.argmax(gains))

        medoids.append(candidate)
        selected[candidate] = True
        nearest = np.minimum(nearest, matrix[:, candidate])
        logger.debug("PAM BUILD: medoid %d = %d (gain=%.6g)", len(medoids), candidate, gains[candidate])

    return np.array(medoids, dtype=int)


def _swap_costs(matrix: np.ndarray, medoids: np.ndarray) -> np.ndarray:
    n_objects = matrix.shape[0]
    ordered = np.sort(medoids)
    nearest, second = nearest_medoid_distances(matrix, medoids)

    costs = np.empty((ordered.size, n_objects), dtype=np.float64)
    for row, leaving in enumerate(ordered):
        served = matrix[:, leaving] == nearest
        # contributions[j, h] for removing `leaving` and adding h
        contributions = np.where(
            served[:, None],
            np.minimum(matrix, second[:, None]) - nearest[:, None],
            np.minimum(matrix - nearest[:, None], 0.0),
        )
        costs[row] = contributions.sum(axis=0)
    costs[:, ordered] = np.inf
    return costs


def _best_swap(
    matrix: np.ndarray,
    medoids: np.ndarray,
) -> Tuple[Optional[int], Optional[int], float]:
    if medoids.size == matrix.shape[0]:
        return None, None, 0.0
    costs = _swap_costs(matrix, medoids)
    row, entering = np.unravel_index(int(np.argmin(costs)), costs.shape)
    leaving = int(np.sort(medoids)[row])
    return leaving, int(entering), float(costs[row, entering])


def _total_cost(matrix: np.ndarray, medoids: np.ndarray) -> float:
    return float(matrix[:, medoids].min(axis=1).sum())


def _check_n_clusters(n_clusters: int, n_objects: int) -> None:
    if isinstance(n_clusters, bool) or not isinstance(n_clusters, (int, np.integer)):
        raise ConfigurationError(f"n_clusters must be an integer, got {n_clusters!r}.")
    if n_clusters <= 0:
        raise ConfigurationError(f"n_clusters must be positive, got {n_clusters}.")
    if n_clusters > n_objects:
        raise ConfigurationError(
            f"n_clusters={n_clusters} exceeds the number of objects ({n_objects})."
        )


def _check_medoids(medoids: Sequence[int], n_objects: int) -> np.ndarray:
    chosen = np.asarray(medoids)
    if chosen.ndim != 1 or chosen.size == 0:
        raise ConfigurationError("Medoids must be a non-empty 1-D sequence of indices.")
    if not np.issubdtype(chosen.dtype, np.integer):
        raise ConfigurationError("Medoid indices must be integers.")
    chosen = chosen.astype(int)
    if np.any(chosen < 0) or np.any(chosen >= n_objects):
        raise ConfigurationError(f"Medoid indices must lie in [0, {n_objects}).")
    if np.unique(chosen).size != chosen.size:
        raise ConfigurationError("Medoid indices must be distinct.")
    return chosen.copy()
