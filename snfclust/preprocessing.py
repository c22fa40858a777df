"""
Preprocessing utilities for constructing aligned, standardized views.

Fusion expects every view to cover the same samples in the same order and
each feature to be on a comparable scale:
  - ``align_views`` intersects sample identifiers and reorders rows
  - ``standardize`` z-scores every feature of a view
"""

from __future__ import annotations

from typing import Dict, Mapping

import numpy as np
from sklearn.preprocessing import StandardScaler

from .exceptions import ConfigurationError
from .views import DataMatrix, MultiViewData


__all__ = ["align_views", "standardize", "standardize_views"]


def align_views(views: Mapping[str, DataMatrix]) -> MultiViewData:
    """
    Restrict every view to the samples they share and sort rows by sample id.

    Parameters
    ----------
    views
        Mapping of view name -> ``DataMatrix``. Every view must carry
        ``sample_ids``.

    Returns
    -------
    MultiViewData
        Views restricted to the common samples, rows in sorted id order.
    """

    if not views:
        raise ConfigurationError("At least one view is required.")

    id_sets = []
    for name, view in views.items():
        if view.sample_ids is None:
            raise ConfigurationError(f"View '{name}' has no sample_ids to align on.")
        if len(set(view.sample_ids)) != len(view.sample_ids):
            raise ConfigurationError(f"View '{name}' has duplicated sample_ids.")
        id_sets.append(set(view.sample_ids))

    common = sorted(set.intersection(*id_sets))
    if not common:
        raise ConfigurationError("No common sample ids across views.")

    aligned: Dict[str, DataMatrix] = {}
    for name, view in views.items():
        position = {sample: idx for idx, sample in enumerate(view.sample_ids)}
        order = np.array([position[sample] for sample in common], dtype=int)
        aligned[name] = DataMatrix(
            values=view.values[order],
            sample_ids=tuple(common),
            feature_names=view.feature_names,
        )
    return MultiViewData(aligned)


def standardize(view: DataMatrix) -> DataMatrix:
    """
    Z-score each feature (column) to zero mean and unit variance.

    Features with zero variance are centred only, so they become all zeros.
    """

    view.require_finite()
    scaler = StandardScaler(with_mean=True, with_std=True)
    scaled = scaler.fit_transform(view.values.astype(np.float64, copy=False))
    return DataMatrix(scaled, view.sample_ids, view.feature_names)


def standardize_views(data: MultiViewData) -> MultiViewData:
    """Apply ``standardize`` to every view, keeping names and order."""

    return MultiViewData({name: standardize(view) for name, view in data.items()})
