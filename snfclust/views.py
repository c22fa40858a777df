"""
Containers for per-view feature matrices.

A view is one data source (e.g. one omics layer) measured over a shared set
of samples. Matrices are plain NumPy arrays with optional axis labels; the
containers only check shapes and alignment, they never read or write files.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, List, Mapping, Optional, Tuple

import numpy as np

from .exceptions import ConfigurationError


__all__ = ["DataMatrix", "MultiViewData"]


@dataclass(frozen=True)
class DataMatrix:
    """
    Container for a numeric data matrix and optional axis labels.

    Attributes
    ----------
    values:
        Two-dimensional NumPy array with shape (n_samples, n_features).
    sample_ids:
        Optional iterable of sample identifiers aligned with the rows.
    feature_names:
        Optional iterable of feature identifiers aligned with the columns.
    """

    values: np.ndarray
    sample_ids: Optional[Tuple[str, ...]] = None
    feature_names: Optional[Tuple[str, ...]] = None

    def __post_init__(self) -> None:
        if self.values.ndim != 2:
            raise ValueError("DataMatrix.values must be two-dimensional.")
        if self.sample_ids is not None and len(self.sample_ids) != self.values.shape[0]:
            raise ValueError("sample_ids length must match number of rows.")
        if self.feature_names is not None and len(self.feature_names) != self.values.shape[1]:
            raise ValueError("feature_names length must match number of columns.")

    @property
    def n_samples(self) -> int:
        return int(self.values.shape[0])

    @property
    def n_features(self) -> int:
        return int(self.values.shape[1])

    def as_numpy(self) -> np.ndarray:
        """Return the underlying numeric matrix."""
        return self.values

    def require_finite(self, *, name: str = "view") -> "DataMatrix":
        """
        Raise ``ConfigurationError`` if the matrix holds missing or infinite values.

        Missing values must be purged before similarity construction; this
        check never imputes.
        """

        if not np.all(np.isfinite(self.values)):
            n_bad = int(np.count_nonzero(~np.isfinite(self.values)))
            raise ConfigurationError(f"{name} contains {n_bad} missing or non-finite values.")
        return self


class MultiViewData:
    """
    Ordered collection of views measured over the same samples.

    Parameters
    ----------
    views:
        Mapping of view name -> ``DataMatrix`` (or a raw 2-D array). All views
        must have the same number of rows; when more than one view carries
        ``sample_ids`` they must agree element-wise.
    """

    def __init__(self, views: Mapping[str, object]) -> None:
        if not views:
            raise ConfigurationError("At least one view is required.")

        resolved: Dict[str, DataMatrix] = {}
        for name, view in views.items():
            if isinstance(view, DataMatrix):
                resolved[str(name)] = view
            else:
                resolved[str(name)] = DataMatrix(np.asarray(view, dtype=np.float64))

        counts = {name: view.n_samples for name, view in resolved.items()}
        if len(set(counts.values())) != 1:
            raise ConfigurationError(f"Views have mismatched sample counts: {counts}.")

        reference: Optional[Tuple[str, ...]] = None
        for name, view in resolved.items():
            if view.sample_ids is None:
                continue
            if reference is None:
                reference = tuple(view.sample_ids)
            elif tuple(view.sample_ids) != reference:
                raise ConfigurationError(
                    f"View '{name}' is not aligned with the other views; use align_views first."
                )

        self._views = resolved
        self._sample_ids = reference

    @property
    def names(self) -> Tuple[str, ...]:
        return tuple(self._views)

    @property
    def n_views(self) -> int:
        return len(self._views)

    @property
    def n_samples(self) -> int:
        return next(iter(self._views.values())).n_samples

    @property
    def sample_ids(self) -> Optional[Tuple[str, ...]]:
        return self._sample_ids

    def values(self) -> List[np.ndarray]:
        return [view.values for view in self._views.values()]

    def items(self):
        return self._views.items()

    def __getitem__(self, name: str) -> DataMatrix:
        return self._views[name]

    def __iter__(self) -> Iterator[DataMatrix]:
        return iter(self._views.values())

    def __len__(self) -> int:
        return len(self._views)

    def __repr__(self) -> str:
        shapes = ", ".join(f"{name}={view.values.shape}" for name, view in self._views.items())
        return f"MultiViewData({shapes})"
