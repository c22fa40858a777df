"""
Semi-supervised scoring over a similarity network.

Two network-based predictors built on a (fused) similarity matrix:
  - label propagation, spreading known class labels to unlabeled samples
  - guilt-by-association neighbour voting, scoring membership of a single
    positive set
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence, Union

import numpy as np

from ..exceptions import ConfigurationError, NumericDegeneracyError


__all__ = ["PropagationResult", "propagate_labels", "gba_scores"]

logger = logging.getLogger(__name__)

UNLABELED = -1


@dataclass(frozen=True)
class PropagationResult:
    """
    Output of ``propagate_labels``.

    Attributes
    ----------
    scores:
        Array with shape (n_samples, n_classes) of propagated class mass.
    labels:
        Predicted class per sample. Seed samples keep their given label.
    classes:
        Class values in column order of ``scores``.
    """

    scores: np.ndarray
    labels: np.ndarray
    classes: np.ndarray


def propagate_labels(
    similarity: np.ndarray,
    labels: Sequence[int],
    *,
    alpha: float = 0.9,
    method: str = "closed_form",
    max_iter: int = 1000,
) -> PropagationResult:
    """
    Propagate known labels through a similarity network.

    Parameters
    ----------
    similarity
        Square non-negative similarity matrix.
    labels
        Integer class per sample, ``-1`` for unlabeled samples.
    alpha
        Propagation weight in (0, 1) for the closed form
        ``(1 - alpha) (I - alpha P)^{-1} Y0``.
    method
        ``"closed_form"`` or ``"iterative"``. The iterative variant repeats
        ``Y <- P Y`` ``max_iter`` times, resetting seed rows after each step.
    max_iter
        Number of iterations for the iterative variant.
    """

    weights = _as_network(similarity)
    n_samples = weights.shape[0]
    label_arr = np.asarray(labels)
    if label_arr.shape != (n_samples,):
        raise ConfigurationError(f"labels must have shape ({n_samples},), got {label_arr.shape}.")
    if not np.issubdtype(label_arr.dtype, np.integer):
        raise ConfigurationError("labels must be integers (use -1 for unlabeled samples).")

    seeds = label_arr != UNLABELED
    if not seeds.any():
        raise ConfigurationError("At least one labeled sample is required.")
    classes = np.unique(label_arr[seeds])

    seed_matrix = np.zeros((n_samples, classes.size), dtype=np.float64)
    seed_matrix[np.flatnonzero(seeds), np.searchsorted(classes, label_arr[seeds])] = 1.0

    row_sums = weights.sum(axis=1)
    isolated = np.flatnonzero(row_sums <= 0)
    if isolated.size:
        raise NumericDegeneracyError(f"Samples {isolated.tolist()} have no network neighbours.")
    transition = weights / row_sums[:, None]

    if method == "closed_form":
        if not 0 < alpha < 1:
            raise ConfigurationError(f"alpha must lie in (0, 1), got {alpha!r}.")
        system = np.eye(n_samples) - alpha * transition
        scores = (1.0 - alpha) * np.linalg.solve(system, seed_matrix)
    elif method == "iterative":
        if max_iter < 1:
            raise ConfigurationError(f"max_iter must be positive, got {max_iter!r}.")
        scores = seed_matrix.copy()
        for _ in range(max_iter):
            scores = transition @ scores
            scores[seeds] = seed_matrix[seeds]
    else:
        raise ConfigurationError(f"Unsupported propagation method '{method}'.")

    predicted = classes[np.argmax(scores, axis=1)]
    predicted[seeds] = label_arr[seeds]
    logger.debug(
        "Propagated %d seed labels (%d classes) to %d samples.",
        int(seeds.sum()),
        classes.size,
        n_samples,
    )
    return PropagationResult(scores=scores, labels=predicted, classes=classes)


def gba_scores(
    similarity: np.ndarray,
    positives: Union[Sequence[int], Sequence[bool], np.ndarray],
) -> np.ndarray:
    """
    Guilt-by-association neighbour-voting scores.

    ``score_i = sum_{j != i} W_ij y_j / sum_{j != i} W_ij`` where ``y`` marks
    the positive set. Self similarity is excluded so a positive sample does
    not vote for itself. Samples without neighbours score 0.

    Parameters
    ----------
    similarity
        Square non-negative similarity matrix.
    positives
        Boolean mask of length n, or indices of positive samples.
    """

    weights = _as_network(similarity)
    n_samples = weights.shape[0]
    marks = np.asarray(positives)
    if marks.dtype == bool:
        if marks.shape != (n_samples,):
            raise ConfigurationError(f"Boolean positives must have shape ({n_samples},).")
        indicator = marks.astype(np.float64)
    else:
        indices = marks.astype(int).ravel()
        if np.any(indices < 0) or np.any(indices >= n_samples):
            raise ConfigurationError(f"Positive indices must lie in [0, {n_samples}).")
        indicator = np.zeros(n_samples, dtype=np.float64)
        indicator[indices] = 1.0

    np.fill_diagonal(weights, 0.0)
    degrees = weights.sum(axis=1)
    votes = weights @ indicator
    scores = np.zeros(n_samples, dtype=np.float64)
    np.divide(votes, degrees, out=scores, where=degrees > 0)
    return scores


def _as_network(similarity: np.ndarray) -> np.ndarray:
    weights = np.array(similarity, dtype=np.float64, copy=True)
    if weights.ndim != 2 or weights.shape[0] != weights.shape[1]:
        raise ConfigurationError(f"similarity must be square, got shape {weights.shape}.")
    if not np.all(np.isfinite(weights)):
        raise ConfigurationError("similarity contains non-finite values.")
    if np.any(weights < 0):
        raise ConfigurationError("similarity must be non-negative.")
    return weights
