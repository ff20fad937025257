"""6 領域分割のテスト."""

from __future__ import annotations

import numpy as np
import pytest

from efcontact.core.errors import ContactConfigError
from efcontact.mesh.contact_mesh import ContactMesh
from efcontact.mesh.primitives import make_flat_patch, make_spherical_cap
from efcontact.mesh.regions import (
    N_REGIONS,
    REGION_NAMES,
    compute_region_labels,
    regional_triangle_indices,
)


class TestComputeRegionLabels:
    """既定の分割規則."""

    def test_names(self):
        assert len(REGION_NAMES) == N_REGIONS == 6

    def test_bands_along_x(self):
        centers = np.array(
            [
                [0.0, 0.0, 0.0],
                [1.0, 0.0, 0.0],
                [2.0, 0.0, 0.0],
                [3.0, 0.0, 0.0],
            ]
        )
        labels = compute_region_labels(centers, np.ones(4))
        # z はすべて基準と等しい → side = 1
        np.testing.assert_array_equal(labels, [3, 4, 5, 5])

    def test_side_along_z(self):
        centers = np.array([[0.0, 0.0, -1.0], [0.0, 0.0, 1.0]])
        labels = compute_region_labels(centers, np.ones(2))
        # x 幅ゼロ → 中央バンド
        np.testing.assert_array_equal(labels, [1, 4])

    def test_area_weighted_reference(self):
        centers = np.array([[0.0, 0.0, 0.0], [1.0, 0.0, 1.0], [2.0, 0.0, 2.0]])
        # 重心 z は 0 側に引き寄せられる
        labels = compute_region_labels(centers, np.array([10.0, 1.0, 1.0]))
        assert labels[0] // 3 == 0
        assert labels[1] // 3 == 1
        assert labels[2] // 3 == 1

    def test_same_axes_raise(self):
        with pytest.raises(ContactConfigError):
            compute_region_labels(np.zeros((2, 3)), np.ones(2), split_axis=1, side_axis=1)

    def test_labels_in_range(self):
        verts, faces = make_spherical_cap(0.02, 1.2, 5, 16)
        mesh = ContactMesh(verts, faces)
        assert mesh.region_labels.min() >= 0
        assert mesh.region_labels.max() < N_REGIONS


class TestRegionalTriangleIndices:
    """領域インデックスリスト."""

    def test_partition(self):
        """各三角形はちょうど 1 つの領域に属する."""
        verts, faces = make_flat_patch(0.06, 0.03, 9, 4)
        mesh = ContactMesh(verts, faces)
        idx = mesh.regional_triangle_indices
        assert len(idx) == N_REGIONS
        merged = np.sort(np.concatenate(idx))
        np.testing.assert_array_equal(merged, np.arange(mesh.n_triangles))

    def test_from_labels(self):
        idx = regional_triangle_indices(np.array([2, 0, 2, 5]))
        np.testing.assert_array_equal(idx[0], [1])
        np.testing.assert_array_equal(idx[2], [0, 2])
        np.testing.assert_array_equal(idx[5], [3])
        assert idx[1].size == 0

    def test_out_of_range_raises(self):
        with pytest.raises(ContactConfigError):
            regional_triangle_indices(np.array([0, -1]))

    def test_not_1d_raises(self):
        with pytest.raises(ContactConfigError):
            regional_triangle_indices(np.zeros((2, 2), dtype=int))
