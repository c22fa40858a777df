from __future__ import annotations

import numpy as np
import pytest

from snfclust.clustering.estimate import estimate_n_clusters, normalized_laplacian
from snfclust.exceptions import ConfigurationError


def _block_network(n_blocks, block_size, within=1.0, between=1e-3):
    n_samples = n_blocks * block_size
    similarity = np.full((n_samples, n_samples), between)
    for block in range(n_blocks):
        members = slice(block * block_size, (block + 1) * block_size)
        similarity[members, members] = within
    return similarity


def test_eigengap_recovers_block_count():
    best, eigenvalues = estimate_n_clusters(_block_network(3, 4), candidates=range(2, 6))

    assert best == 3
    assert eigenvalues.shape == (12,)
    assert np.all(np.diff(eigenvalues) >= -1e-12)
    assert eigenvalues[0] == pytest.approx(0.0, abs=1e-10)


def test_laplacian_is_symmetric_with_unit_diagonal():
    laplacian = normalized_laplacian(_block_network(2, 3))
    np.testing.assert_allclose(laplacian, laplacian.T)
    np.testing.assert_allclose(np.diag(laplacian), 1.0)


def test_candidates_outside_range_are_rejected():
    network = _block_network(2, 3)
    with pytest.raises(ConfigurationError):
        estimate_n_clusters(network, candidates=[0, 2])
    with pytest.raises(ConfigurationError):
        estimate_n_clusters(network, candidates=[6])
    with pytest.raises(ConfigurationError):
        estimate_n_clusters(network, candidates=[])
