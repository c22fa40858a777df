from __future__ import annotations

import numpy as np
import pytest
from sklearn.metrics import adjusted_rand_score

from snfclust import pipeline
from snfclust.config import PAMConfig, PipelineConfig, SNFConfig
from snfclust.exceptions import ConfigurationError
from snfclust.pipeline import run_snf_grid, run_snf_pam


def test_pipeline_recovers_blob_labels(blob_views):
    data, truth = blob_views
    config = PipelineConfig(pam=PAMConfig(n_clusters=3), snf=SNFConfig(n_neighbors=10))

    result = run_snf_pam(data, config)

    assert result.clustering.converged
    assert adjusted_rand_score(truth, result.labels) == pytest.approx(1.0)
    np.testing.assert_allclose(result.fusion.fused.sum(axis=1), 1.0)
    assert result.distances.shape == (45, 45)


def test_pipeline_separates_agreeing_views(agreeing_views):
    config = PipelineConfig(
        pam=PAMConfig(n_clusters=2),
        snf=SNFConfig(n_neighbors=2, n_iter=10),
    )
    labels = run_snf_pam(agreeing_views, config).labels

    assert labels[0] == labels[1]
    assert labels[2] == labels[3]
    assert labels[0] != labels[2]


def test_assignments_table_uses_sample_ids(blob_views):
    data, _ = blob_views
    config = PipelineConfig(pam=PAMConfig(n_clusters=3), snf=SNFConfig(n_neighbors=10, n_iter=5))
    result = run_snf_pam(data, config)

    table = result.assignments()
    assert list(table.columns) == ["sample", "cluster", "medoid"]
    assert len(table) == 45
    assert table["sample"].iloc[0] == "sample_0"
    medoid_ids = {data.sample_ids[idx] for idx in result.clustering.medoids}
    assert set(table["medoid"]) == medoid_ids


def test_assignments_without_sample_ids(agreeing_views):
    config = PipelineConfig(pam=PAMConfig(n_clusters=2), snf=SNFConfig(n_neighbors=2))
    table = run_snf_pam(agreeing_views, config).assignments()
    assert list(table["sample"]) == ["sample_0", "sample_1", "sample_2", "sample_3"]


def test_grid_sweeps_every_combination(blob_views):
    data, _ = blob_views
    grid = run_snf_grid(
        data,
        n_neighbors=[5, 10],
        mus=[0.5],
        n_clusters=[2, 3],
        n_iter=5,
        save_labels=True,
    )

    assert len(grid.records) == 4
    assert {
        "n_neighbors",
        "mu",
        "n_clusters",
        "n_iter",
        "cost",
        "n_swaps",
        "converged",
        "medoids",
        "eigengap_k",
        "fusion_runtime",
    } <= set(grid.records.columns)
    assert list(grid.records["n_neighbors"]) == [5, 5, 10, 10]
    assert set(grid.labels) == {(5, 0.5, 2), (5, 0.5, 3), (10, 0.5, 2), (10, 0.5, 3)}
    assert all(labels.shape == (45,) for labels in grid.labels.values())


def test_grid_requires_parameter_values(blob_views):
    data, _ = blob_views
    with pytest.raises(ConfigurationError):
        run_snf_grid(data, n_neighbors=[], mus=[0.5], n_clusters=[3])


@pytest.fixture
def fusion_calls(monkeypatch):
    calls = []

    def record(*args, **kwargs):
        calls.append(kwargs)
        raise AssertionError("fusion should not run")

    monkeypatch.setattr(pipeline, "similarity_network_fusion", record)
    return calls


@pytest.mark.parametrize(
    "config",
    [
        PipelineConfig(pam=PAMConfig(n_clusters=9), snf=SNFConfig(n_neighbors=2, n_iter=3)),
        PipelineConfig(pam=PAMConfig(n_clusters=2), snf=SNFConfig(n_neighbors=4)),
    ],
)
def test_pipeline_rejects_parameters_before_fusing(agreeing_views, fusion_calls, config):
    with pytest.raises(ConfigurationError):
        run_snf_pam(agreeing_views, config)
    assert fusion_calls == []


@pytest.mark.parametrize(
    "grid",
    [
        {"n_neighbors": [5, 10], "mus": [0.5], "n_clusters": [2, 100]},
        {"n_neighbors": [5, 45], "mus": [0.5], "n_clusters": [2]},
        {"n_neighbors": [5], "mus": [0.5, 0.0], "n_clusters": [2]},
        {"n_neighbors": [5], "mus": [0.5], "n_clusters": [2, 0]},
    ],
)
def test_grid_rejects_parameters_before_fusing(blob_views, fusion_calls, grid):
    data, _ = blob_views
    with pytest.raises(ConfigurationError):
        run_snf_grid(data, n_iter=3, **grid)
    assert fusion_calls == []
