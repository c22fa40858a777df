"""
End-to-end SNF + PAM workflow and hyperparameter sweeps.

These helpers support the workflow:
    1. standardize each view (optional),
    2. fuse the views with Similarity Network Fusion,
    3. turn the consensus similarity into a distance matrix,
    4. partition the samples with PAM,
    5. optionally sweep (K, mu, k) and collect per-run diagnostics.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple, Union

import numpy as np
import pandas as pd

from .clustering.estimate import estimate_n_clusters
from .clustering.pam import PAMResult, _check_n_clusters, pam
from .config import PipelineConfig
from .exceptions import ConfigurationError
from .fusion import FusionResult, similarity_network_fusion
from .preprocessing import standardize_views
from .similarity import _check_neighborhood
from .views import DataMatrix, MultiViewData


__all__ = ["PipelineResult", "GridRunResult", "run_snf_pam", "run_snf_grid"]

logger = logging.getLogger(__name__)

ViewsLike = Union[MultiViewData, Sequence[Union[DataMatrix, np.ndarray]]]


@dataclass(frozen=True)
class PipelineResult:
    """
    Results from one SNF + PAM run.

    Attributes
    ----------
    fusion:
        Fused network and per-view kernels.
    distances:
        Distance matrix handed to PAM.
    clustering:
        PAM medoids, labels, and convergence diagnostics.
    sample_ids:
        Sample identifiers aligned with the rows, when known.
    """

    fusion: FusionResult
    distances: np.ndarray
    clustering: PAMResult
    sample_ids: Optional[Tuple[str, ...]] = None

    @property
    def labels(self) -> np.ndarray:
        return self.clustering.labels

    def assignments(self) -> pd.DataFrame:
        """
        Return a DataFrame with one row per sample: cluster and medoid.
        """

        n_samples = self.labels.size
        ids = self.sample_ids or tuple(f"sample_{i}" for i in range(n_samples))
        medoid_ids = [ids[idx] for idx in self.clustering.assignment]
        return pd.DataFrame(
            {"sample": list(ids), "cluster": self.labels, "medoid": medoid_ids}
        )


@dataclass(frozen=True)
class GridRunResult:
    """
    Results from a sweep over SNF and PAM hyperparameters.
    """

    records: pd.DataFrame
    labels: Dict[Tuple[int, float, int], np.ndarray]


def run_snf_pam(views: ViewsLike, config: PipelineConfig) -> PipelineResult:
    """
    Fuse ``views`` and cluster the consensus network with PAM.

    Parameters
    ----------
    views
        ``MultiViewData`` or a sequence of aligned feature matrices.
    config
        Fusion and clustering parameters.
    """

    data = _as_multiview(views)
    snf = config.snf
    _check_run_parameters(data.n_samples, snf.n_neighbors, snf.mu, config.pam.n_clusters)
    if config.standardize:
        data = standardize_views(data)

    fusion = similarity_network_fusion(
        data,
        n_neighbors=snf.n_neighbors,
        mu=snf.mu,
        n_iter=snf.n_iter,
        tol=snf.tol,
        n_jobs=snf.n_jobs,
    )
    distances = fusion.distance()
    clustering = pam(
        distances,
        config.pam.n_clusters,
        max_swaps=config.pam.max_swaps,
    )
    logger.info(
        "SNF+PAM: %d views, %d samples, k=%d, cost=%.4f, swaps=%d",
        data.n_views,
        data.n_samples,
        clustering.n_clusters,
        clustering.cost,
        clustering.n_swaps,
    )
    return PipelineResult(
        fusion=fusion,
        distances=distances,
        clustering=clustering,
        sample_ids=data.sample_ids,
    )


def run_snf_grid(
    views: ViewsLike,
    *,
    n_neighbors: Sequence[int],
    mus: Sequence[float],
    n_clusters: Sequence[int],
    n_iter: int = 20,
    max_swaps: int = 100,
    standardize: bool = True,
    save_labels: bool = False,
) -> GridRunResult:
    """
    Run SNF + PAM over a grid of (n_neighbors, mu, n_clusters) triples.

    Fusion is computed once per (n_neighbors, mu) pair and reused for every
    cluster count.

    Parameters
    ----------
    views
        ``MultiViewData`` or a sequence of aligned feature matrices.
    n_neighbors, mus
        Fusion hyperparameters to sweep.
    n_clusters
        Cluster counts passed to PAM.
    n_iter, max_swaps
        Fixed diffusion iterations and PAM swap cap.
    standardize
        If True, z-score the views once before the sweep.
    save_labels
        If True, retain label arrays keyed by (n_neighbors, mu, n_clusters).

    Returns
    -------
    GridRunResult
        ``records`` dataframe summarising each run, and optionally ``labels``.
    """

    if len(n_neighbors) == 0 or len(mus) == 0 or len(n_clusters) == 0:
        raise ConfigurationError("n_neighbors, mus and n_clusters must be non-empty.")

    data = _as_multiview(views)
    for neighbors in n_neighbors:
        for mu in mus:
            for k in n_clusters:
                _check_run_parameters(data.n_samples, neighbors, mu, k)
    if standardize:
        data = standardize_views(data)

    candidate_ks = [k for k in sorted(set(n_clusters)) if 1 <= k <= data.n_samples - 1]

    records: List[dict] = []
    label_store: Dict[Tuple[int, float, int], np.ndarray] = {}

    for neighbors in n_neighbors:
        for mu in mus:
            start = time.perf_counter()
            fusion = similarity_network_fusion(
                data, n_neighbors=neighbors, mu=mu, n_iter=n_iter
            )
            fusion_runtime = time.perf_counter() - start
            distances = fusion.distance()
            eigengap_k = (
                estimate_n_clusters(fusion.fused, candidates=candidate_ks)[0]
                if candidate_ks
                else np.nan
            )

            for k in n_clusters:
                result = pam(distances, k, max_swaps=max_swaps)
                records.append(
                    {
                        "n_neighbors": neighbors,
                        "mu": mu,
                        "n_clusters": k,
                        "n_iter": fusion.n_iter,
                        "cost": result.cost,
                        "n_swaps": result.n_swaps,
                        "converged": result.converged,
                        "medoids": tuple(int(idx) for idx in result.medoids),
                        "eigengap_k": eigengap_k,
                        "fusion_runtime": fusion_runtime,
                    }
                )
                if save_labels:
                    label_store[(neighbors, mu, k)] = result.labels

    records_df = pd.DataFrame.from_records(records)
    records_df.sort_values(["n_neighbors", "mu", "n_clusters"], inplace=True)
    records_df.reset_index(drop=True, inplace=True)

    return GridRunResult(records=records_df, labels=label_store)


def _check_run_parameters(n_samples: int, n_neighbors: int, mu: float, n_clusters: int) -> None:
    _check_neighborhood(n_samples, n_neighbors)
    if isinstance(mu, bool) or not isinstance(mu, (int, float, np.integer, np.floating)) or not mu > 0:
        raise ConfigurationError(f"mu must be positive, got {mu!r}.")
    _check_n_clusters(n_clusters, n_samples)


def _as_multiview(views: ViewsLike) -> MultiViewData:
    if isinstance(views, MultiViewData):
        return views
    return MultiViewData({f"view_{idx}": view for idx, view in enumerate(views)})
