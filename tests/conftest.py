from __future__ import annotations

import numpy as np
import pytest

from snfclust.synthetic import generate_multiview_clusters


@pytest.fixture
def agreeing_views():
    """Two views of four samples that both split {0, 1} from {2, 3}."""
    first = np.array(
        [
            [0.0, 0.0],
            [0.1, 0.0],
            [5.0, 5.0],
            [5.1, 5.0],
        ]
    )
    second = np.array(
        [
            [1.0, 1.0, 1.0],
            [1.0, 1.2, 1.0],
            [-4.0, -4.0, -4.0],
            [-4.0, -4.2, -4.0],
        ]
    )
    return [first, second]


@pytest.fixture
def separated_distances():
    """Two tight 2-point clusters: intra-cluster 0.01, inter-cluster 10."""
    return np.array(
        [
            [0.0, 0.01, 10.0, 10.0],
            [0.01, 0.0, 10.0, 10.0],
            [10.0, 10.0, 0.0, 0.01],
            [10.0, 10.0, 0.01, 0.0],
        ]
    )


@pytest.fixture
def random_distances():
    rng = np.random.default_rng(7)
    points = rng.normal(size=(15, 3))
    diff = points[:, None, :] - points[None, :, :]
    distances = np.sqrt((diff ** 2).sum(axis=-1))
    np.fill_diagonal(distances, 0.0)
    return distances


@pytest.fixture
def blob_views():
    data, labels = generate_multiview_clusters(
        n_samples=45,
        view_features=(10, 20),
        means=(0.0, 5.0, 10.0),
        noise_scale=1.0,
        noise_seed=11,
        labels=np.repeat([0, 1, 2], 15),
    )
    return data, labels
