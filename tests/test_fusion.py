from __future__ import annotations

import numpy as np
import pytest

from snfclust.exceptions import ConfigurationError
from snfclust.fusion import diffusion_step, fuse_kernels, similarity_network_fusion
from snfclust.similarity import view_kernels


def test_single_view_fusion_is_identity(blob_views):
    data, _ = blob_views
    values = data.values()[0]
    result = similarity_network_fusion([values], n_neighbors=5, n_iter=10)
    expected = view_kernels(values, n_neighbors=5).global_kernel
    np.testing.assert_array_equal(result.fused, expected)
    assert result.n_iter == 0


def test_consensus_rows_sum_to_one(blob_views):
    data, _ = blob_views
    result = similarity_network_fusion(data, n_neighbors=6, n_iter=15)
    np.testing.assert_allclose(result.fused.sum(axis=1), 1.0, atol=1e-9)
    for kernel in result.diffused:
        np.testing.assert_allclose(kernel.sum(axis=1), 1.0, atol=1e-9)
        np.testing.assert_allclose(np.diag(kernel), 0.5)
    assert result.n_iter == 15


def test_three_views_consensus_rows_sum_to_one(blob_views):
    data, _ = blob_views
    views = data.values() + [data.values()[0][:, :5]]
    result = similarity_network_fusion(views, n_neighbors=6, n_iter=5)
    np.testing.assert_allclose(result.fused.sum(axis=1), 1.0, atol=1e-9)
    assert len(result.view_kernels) == 3


def test_fusion_is_deterministic(blob_views):
    data, _ = blob_views
    first = similarity_network_fusion(data, n_neighbors=6, mu=0.4, n_iter=8)
    second = similarity_network_fusion(data, n_neighbors=6, mu=0.4, n_iter=8)
    np.testing.assert_array_equal(first.fused, second.fused)


def test_parallel_kernel_construction_matches_serial(blob_views):
    data, _ = blob_views
    serial = similarity_network_fusion(data, n_neighbors=6, n_iter=5)
    parallel = similarity_network_fusion(data, n_neighbors=6, n_iter=5, n_jobs=2)
    np.testing.assert_allclose(parallel.fused, serial.fused, rtol=0, atol=1e-12)


def test_fused_network_separates_agreeing_groups(agreeing_views):
    result = similarity_network_fusion(agreeing_views, n_neighbors=2, n_iter=10)
    fused = result.fused
    assert fused[0, 1] > fused[0, 2]
    assert fused[0, 1] > fused[0, 3]
    assert fused[2, 3] > fused[2, 1]

    distances = result.distance()
    np.testing.assert_array_equal(distances, distances.T)
    np.testing.assert_array_equal(np.diag(distances), 0.0)


def test_diffusion_step_single_view_returns_copy(blob_views):
    data, _ = blob_views
    kernels = view_kernels(data.values()[0], n_neighbors=5)
    updated = diffusion_step([kernels.local_kernel], [kernels.global_kernel])
    np.testing.assert_array_equal(updated[0], kernels.global_kernel)
    assert updated[0] is not kernels.global_kernel


def test_diffusion_step_uses_other_views(blob_views):
    data, _ = blob_views
    first, second = (view_kernels(values, n_neighbors=5) for values in data.values())
    updated = diffusion_step(
        [first.local_kernel, second.local_kernel],
        [first.global_kernel, second.global_kernel],
    )

    local = first.local_kernel.toarray()
    product = local @ second.global_kernel @ local.T
    product = 0.5 * (product + product.T)
    np.fill_diagonal(product, 0.0)
    expected = product / (2.0 * product.sum(axis=1, keepdims=True))
    np.fill_diagonal(expected, 0.5)
    np.testing.assert_allclose(updated[0], expected, atol=1e-12)


def test_early_stopping_with_tolerance(blob_views):
    data, _ = blob_views
    kernels = [view_kernels(values, n_neighbors=5) for values in data.values()]
    result = fuse_kernels(kernels, n_iter=20, tol=float("inf"))
    assert result.n_iter == 1


def test_finite_tolerance_stops_at_first_small_change(blob_views):
    data, _ = blob_views
    kernels = [view_kernels(values, n_neighbors=5) for values in data.values()]
    locals_ = [kernel.local_kernel for kernel in kernels]

    current = [kernel.global_kernel for kernel in kernels]
    consensus = np.mean(current, axis=0)
    changes = []
    for _ in range(20):
        current = diffusion_step(locals_, current)
        updated = np.mean(current, axis=0)
        changes.append(np.linalg.norm(updated - consensus) / np.linalg.norm(consensus))
        consensus = updated

    tol = sorted(changes)[10]
    expected = next(step for step, change in enumerate(changes, start=1) if change < tol)
    result = fuse_kernels(kernels, n_iter=20, tol=tol)

    assert 1 < expected < 20
    assert result.n_iter == expected
    np.testing.assert_array_equal(result.fused, fuse_kernels(kernels, n_iter=expected).fused)


def test_fusion_rejects_invalid_configuration(agreeing_views):
    with pytest.raises(ConfigurationError):
        similarity_network_fusion(agreeing_views, n_neighbors=4)
    with pytest.raises(ConfigurationError):
        similarity_network_fusion([agreeing_views[0], agreeing_views[1][:3]], n_neighbors=1)
    with pytest.raises(ConfigurationError):
        similarity_network_fusion(agreeing_views, n_neighbors=2, n_iter=0)
    with pytest.raises(ConfigurationError):
        similarity_network_fusion(agreeing_views, n_neighbors=2, mu=-1.0)
    with pytest.raises(ConfigurationError):
        similarity_network_fusion([], n_neighbors=2)
    broken = agreeing_views[0].copy()
    broken[0, 0] = np.inf
    with pytest.raises(ConfigurationError):
        similarity_network_fusion([broken, agreeing_views[1]], n_neighbors=2)
