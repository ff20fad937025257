"""基本形状ジェネレータのテスト."""

from __future__ import annotations

import numpy as np
import pytest

from efcontact.mesh.geometry import triangle_geometry
from efcontact.mesh.primitives import make_flat_patch, make_spherical_cap, make_triangle


class TestMakeTriangle:
    def test_normal_up(self):
        v, f = make_triangle(2.0, z=0.5)
        _, n, a = triangle_geometry(v, f)
        np.testing.assert_allclose(n[0], [0.0, 0.0, 1.0])
        assert a[0] == pytest.approx(2.0)
        np.testing.assert_allclose(v[:, 2], 0.5)

    def test_flip(self):
        v, f = make_triangle(flip=True)
        _, n, _ = triangle_geometry(v, f)
        np.testing.assert_allclose(n[0], [0.0, 0.0, -1.0])


class TestMakeFlatPatch:
    def test_counts(self):
        v, f = make_flat_patch(1.0, 2.0, 3, 5)
        assert v.shape == (24, 3)
        assert f.shape == (30, 3)

    def test_centered(self):
        v, _ = make_flat_patch(1.0, 2.0, 3, 5, z=-0.1)
        np.testing.assert_allclose(v[:, :2].mean(axis=0), [0.0, 0.0], atol=1e-15)
        np.testing.assert_allclose(v[:, 2], -0.1)

    def test_normals(self):
        v, f = make_flat_patch(1.0, 1.0, 2, 2)
        _, n, _ = triangle_geometry(v, f)
        np.testing.assert_allclose(n[:, 2], 1.0)
        v, f = make_flat_patch(1.0, 1.0, 2, 2, flip=True)
        _, n, _ = triangle_geometry(v, f)
        np.testing.assert_allclose(n[:, 2], -1.0)

    @pytest.mark.parametrize("args", [(1.0, 1.0, 0, 1), (0.0, 1.0, 1, 1)])
    def test_invalid(self, args):
        with pytest.raises(ValueError):
            make_flat_patch(*args)


class TestMakeSphericalCap:
    def test_counts(self):
        v, f = make_spherical_cap(1.0, 0.5, 3, 8)
        assert v.shape == (1 + 3 * 8, 3)
        assert f.shape == (8 + 2 * 8 * 2, 3)

    def test_vertices_on_sphere(self):
        c = np.array([0.1, -0.2, 0.3])
        v, _ = make_spherical_cap(0.02, 1.0, 4, 10, center=c)
        np.testing.assert_allclose(np.linalg.norm(v - c, axis=1), 0.02)

    def test_normals_outward(self):
        v, f = make_spherical_cap(1.0, 1.2, 4, 12)
        centers, n, _ = triangle_geometry(v, f)
        assert np.all(np.einsum("ij,ij->i", n, centers) > 0.0)

    def test_normals_inward(self):
        v, f = make_spherical_cap(1.0, 1.2, 4, 12, inward=True)
        centers, n, _ = triangle_geometry(v, f)
        assert np.all(np.einsum("ij,ij->i", n, centers) < 0.0)

    def test_area_approaches_exact(self):
        """球冠面積 2πR²(1 - cos α) に近づく."""
        R, alpha = 1.0, 0.9
        v, f = make_spherical_cap(R, alpha, 24, 96)
        _, _, a = triangle_geometry(v, f)
        exact = 2.0 * np.pi * R**2 * (1.0 - np.cos(alpha))
        assert a.sum() == pytest.approx(exact, rel=5e-3)

    @pytest.mark.parametrize(
        "args",
        [(0.0, 0.5, 2, 8), (1.0, 0.0, 2, 8), (1.0, 2.0, 2, 8), (1.0, 0.5, 0, 8), (1.0, 0.5, 2, 2)],
    )
    def test_invalid(self, args):
        with pytest.raises(ValueError):
            make_spherical_cap(*args)
