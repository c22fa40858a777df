from __future__ import annotations

import numpy as np
import pytest

from snfclust.synthetic import generate_gaussian_mixture, generate_multiview_clusters


def test_gaussian_mixture_is_reproducible():
    first, labels_a = generate_gaussian_mixture(
        n_samples=30, n_features=4, means=(0.0, 4.0), noise_seed=1, label_seed=2
    )
    second, labels_b = generate_gaussian_mixture(
        n_samples=30, n_features=4, means=(0.0, 4.0), noise_seed=1, label_seed=2
    )

    assert first.shape == (30, 4)
    np.testing.assert_array_equal(first, second)
    np.testing.assert_array_equal(labels_a, labels_b)
    assert set(np.unique(labels_a)) <= {0, 1}


def test_gaussian_mixture_without_noise_returns_means():
    values, labels = generate_gaussian_mixture(
        n_samples=4,
        n_features=2,
        means=[[0.0, 1.0], [5.0, 6.0]],
        noise_scale=0.0,
        labels=[0, 1, 1, 0],
    )
    np.testing.assert_array_equal(values, [[0.0, 1.0], [5.0, 6.0], [5.0, 6.0], [0.0, 1.0]])
    np.testing.assert_array_equal(labels, [0, 1, 1, 0])


@pytest.mark.parametrize(
    "kwargs",
    [
        {"n_samples": 0},
        {"noise_scale": -1.0},
        {"labels": [0, 5, 0, 0]},
        {"label_probs": [0.2, 0.2]},
        {"means": np.zeros((2, 3))},
    ],
)
def test_gaussian_mixture_validation(kwargs):
    params = {"n_samples": 4, "n_features": 2, "means": (0.0, 1.0)}
    params.update(kwargs)
    with pytest.raises(ValueError):
        generate_gaussian_mixture(**params)


def test_multiview_clusters_share_labels(blob_views):
    data, labels = blob_views

    assert data.names == ("view_0", "view_1")
    assert data.n_samples == 45
    assert data["view_1"].n_features == 20
    assert data["view_0"].feature_names[0] == "view_0_0"
    assert data.sample_ids[-1] == "sample_44"
    np.testing.assert_array_equal(labels, np.repeat([0, 1, 2], 15))


def test_multiview_clusters_accept_named_views_and_per_view_noise():
    data, labels = generate_multiview_clusters(
        n_samples=20,
        view_features={"rna": 3, "methylation": 6},
        means=(0.0, 10.0),
        noise_scale=(0.0, 1.0),
        noise_seed=3,
        label_seed=4,
    )

    assert data.names == ("rna", "methylation")
    expected = np.repeat(np.array([0.0, 10.0])[labels][:, None], 3, axis=1)
    np.testing.assert_array_equal(data["rna"].values, expected)
    assert not np.allclose(data["methylation"].values[:, 0], np.array([0.0, 10.0])[labels])
