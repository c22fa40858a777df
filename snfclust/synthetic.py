"""
Synthetic multi-view data with a shared cluster structure.

Every view is a Gaussian mixture over the same component labels, so a
fusion method should recover the labelling from any subset of views.
"""

from __future__ import annotations

from typing import Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from .views import DataMatrix, MultiViewData

ArrayLike = np.ndarray
SeedLike = Union[int, np.random.RandomState]


__all__ = ["generate_gaussian_mixture", "generate_multiview_clusters"]


def _as_random_state(seed: Optional[SeedLike]) -> np.random.RandomState:
    """Return a RandomState no matter how the seed is specified."""
    if seed is None:
        return np.random.RandomState()
    if isinstance(seed, np.random.RandomState):
        return seed
    return np.random.RandomState(seed)


def _resolve_means(
    means: Union[Sequence[float], ArrayLike],
    n_features: int,
) -> ArrayLike:
    mean_array = np.asarray(means, dtype=np.float64)
    if mean_array.ndim == 1:
        return np.repeat(mean_array[:, None], n_features, axis=1)
    if mean_array.shape == (mean_array.shape[0], n_features):
        return mean_array
    raise ValueError(
        f"Expected `means` to be 1-D of length K or shape (K, {n_features}). "
        f"Received array with shape {mean_array.shape!r}."
    )


def _component_labels(
    n_samples: int,
    n_components: int,
    *,
    labels: Optional[Sequence[int]],
    label_probs: Optional[Sequence[float]],
    rng: np.random.RandomState,
) -> np.ndarray:
    if labels is not None:
        label_arr = np.asarray(labels, dtype=int)
        if label_arr.shape != (n_samples,):
            raise ValueError(
                f"Provided `labels` has shape {label_arr.shape}, expected ({n_samples},)."
            )
        if (label_arr < 0).any() or (label_arr >= n_components).any():
            raise ValueError("Labels must be in [0, n_components).")
        return label_arr.copy()

    if label_probs is None:
        probs = np.full(n_components, 1.0 / n_components)
    else:
        probs = np.asarray(label_probs, dtype=np.float64)
        if probs.shape != (n_components,):
            raise ValueError("`label_probs` must have length equal to n_components.")
        if not np.isclose(probs.sum(), 1.0):
            raise ValueError("`label_probs` must sum to 1.")
    return rng.choice(n_components, size=n_samples, p=probs)


def generate_gaussian_mixture(
    *,
    n_samples: int,
    n_features: int,
    means: Union[Sequence[float], ArrayLike],
    noise_scale: float = 1.0,
    noise_seed: Optional[SeedLike] = None,
    label_seed: Optional[SeedLike] = None,
    labels: Optional[Sequence[int]] = None,
    label_probs: Optional[Sequence[float]] = None,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Sample an isotropic Gaussian mixture.

    Parameters
    ----------
    n_samples, n_features
        Output shape.
    means
        Component means, either one scalar per component (repeated across
        features) or a (n_components, n_features) array.
    noise_scale
        Standard deviation of the isotropic noise.
    noise_seed, label_seed
        Seeds for the noise and for the component draws.
    labels
        Fixed component per sample; drawn from ``label_probs`` otherwise.
    """
    if n_samples <= 0 or n_features <= 0:
        raise ValueError("`n_samples` and `n_features` must be positive.")
    if noise_scale < 0:
        raise ValueError("`noise_scale` must be non-negative.")

    mean_matrix = _resolve_means(means, n_features)
    component_labels = _component_labels(
        n_samples,
        mean_matrix.shape[0],
        labels=labels,
        label_probs=label_probs,
        rng=_as_random_state(label_seed),
    )
    noise_rng = _as_random_state(noise_seed)
    noise = noise_rng.standard_normal(size=(n_samples, n_features)) * noise_scale
    return mean_matrix[component_labels] + noise, component_labels


def generate_multiview_clusters(
    *,
    n_samples: int,
    view_features: Union[Mapping[str, int], Sequence[int]],
    means: Union[Sequence[float], ArrayLike],
    noise_scale: Union[float, Sequence[float]] = 1.0,
    noise_seed: Optional[int] = None,
    label_seed: Optional[int] = None,
    labels: Optional[Sequence[int]] = None,
    label_probs: Optional[Sequence[float]] = None,
) -> Tuple[MultiViewData, np.ndarray]:
    """
    Sample several views that share one component labelling.

    Parameters
    ----------
    n_samples
        Number of samples common to all views.
    view_features
        Feature count per view, as a mapping of view name -> count or a
        sequence (views are then named ``view_0``, ``view_1``, ...).
    means
        Component means, shared by every view (see
        ``generate_gaussian_mixture``).
    noise_scale
        Noise standard deviation, one value for all views or one per view.
    noise_seed
        Base seed; view ``v`` draws its noise from ``noise_seed + v``.
    label_seed, labels, label_probs
        Control the shared component labelling.

    Returns
    -------
    tuple
        ``(MultiViewData, labels)``.
    """

    if isinstance(view_features, Mapping):
        named = list(view_features.items())
    else:
        named = [(f"view_{idx}", count) for idx, count in enumerate(view_features)]
    if not named:
        raise ValueError("At least one view is required.")

    scales = np.broadcast_to(np.asarray(noise_scale, dtype=np.float64), (len(named),))
    n_components = np.asarray(means, dtype=np.float64).shape[0]
    shared_labels = _component_labels(
        n_samples,
        n_components,
        labels=labels,
        label_probs=label_probs,
        rng=_as_random_state(label_seed),
    )

    sample_ids = tuple(f"sample_{i}" for i in range(n_samples))
    views = {}
    for offset, ((name, n_features), scale) in enumerate(zip(named, scales)):
        values, _ = generate_gaussian_mixture(
            n_samples=n_samples,
            n_features=int(n_features),
            means=means,
            noise_scale=float(scale),
            noise_seed=None if noise_seed is None else int(noise_seed) + offset,
            labels=shared_labels,
        )
        feature_names = tuple(f"{name}_{j}" for j in range(int(n_features)))
        views[name] = DataMatrix(values, sample_ids, feature_names)

    return MultiViewData(views), shared_labels
