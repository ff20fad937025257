"""接触力・接触統計量の集計テスト."""

from __future__ import annotations

import numpy as np
import pytest

from efcontact.contact.statistics import (
    ContactStats,
    compute_contact_stats,
    compute_regional_stats,
    compute_triangle_forces,
)
from efcontact.mesh.contact_mesh import ContactMesh
from efcontact.mesh.primitives import make_flat_patch, make_spherical_cap


def _patch() -> ContactMesh:
    verts, faces = make_flat_patch(0.06, 0.03, 6, 3)
    return ContactMesh(verts, faces)


class TestContactStatsDefaults:
    def test_default_is_no_contact(self):
        s = ContactStats()
        assert not s.in_contact
        assert np.isnan(s.mean_pressure)
        assert s.center_of_pressure.shape == (3,)


class TestComputeTriangleForces:
    def test_opposes_normal(self):
        F = compute_triangle_forces(
            np.array([2.0, 0.0]), np.array([0.5, 1.0]), np.array([[0.0, 0.0, 1.0], [1.0, 0.0, 0.0]])
        )
        np.testing.assert_allclose(F, [[0.0, 0.0, -1.0], [0.0, 0.0, 0.0]])


class TestComputeContactStats:
    """全体統計."""

    def test_no_contact(self):
        mesh = _patch()
        n = mesh.n_triangles
        s = compute_contact_stats(mesh, np.full(n, -1.0), np.zeros(n))
        assert s.contact_area == 0.0
        assert s.n_contacting == 0
        assert not s.in_contact
        assert np.isnan(s.mean_pressure)
        assert np.isnan(s.mean_proximity)
        assert np.all(np.isnan(s.center_of_pressure))
        assert np.all(np.isnan(s.center_of_proximity))
        np.testing.assert_array_equal(s.contact_force, 0.0)
        np.testing.assert_array_equal(s.contact_moment, 0.0)
        assert s.max_pressure == 0.0
        assert s.max_proximity == 0.0

    def test_uniform_pressure(self):
        mesh = _patch()
        n = mesh.n_triangles
        s = compute_contact_stats(mesh, np.full(n, 0.001), np.full(n, 2.0e5))
        total_area = 0.06 * 0.03
        assert s.contact_area == pytest.approx(total_area)
        assert s.mean_pressure == pytest.approx(2.0e5)
        assert s.max_pressure == pytest.approx(2.0e5)
        assert s.mean_proximity == pytest.approx(0.001)
        assert s.max_proximity == pytest.approx(0.001)
        np.testing.assert_allclose(s.contact_force, [0.0, 0.0, -2.0e5 * total_area])
        np.testing.assert_allclose(s.center_of_pressure, [0.0, 0.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(s.center_of_proximity, [0.0, 0.0, 0.0], atol=1e-12)
        assert s.n_triangles == n
        assert s.n_contacting == n

    def test_sentinel_counts_as_zero(self):
        """番兵値 -1 は集計で 0 として扱う."""
        mesh = _patch()
        n = mesh.n_triangles
        prox = np.full(n, -1.0)
        prox[0] = 0.002
        pres = np.zeros(n)
        pres[0] = 1.0e5
        s = compute_contact_stats(mesh, prox, pres)
        assert s.max_proximity == pytest.approx(0.002)
        assert s.mean_proximity == pytest.approx(0.002)
        np.testing.assert_allclose(s.center_of_proximity, mesh.triangle_centers[0])
        np.testing.assert_allclose(s.center_of_pressure, mesh.triangle_centers[0])
        assert s.contact_area == pytest.approx(mesh.triangle_areas[0])

    def test_moment_is_force_cross_center(self):
        mesh = _patch()
        n = mesh.n_triangles
        pres = np.zeros(n)
        pres[3] = 1.0e5
        s = compute_contact_stats(mesh, np.where(pres > 0, 0.001, -1.0), pres)
        F = -1.0e5 * mesh.triangle_areas[3] * mesh.triangle_normals[3]
        np.testing.assert_allclose(s.contact_moment, np.cross(F, mesh.triangle_centers[3]))

    def test_center_of_pressure_is_weighted(self):
        mesh = _patch()
        pres = np.where(mesh.triangle_centers[:, 0] > 0.0, 3.0e5, 1.0e5)
        s = compute_contact_stats(mesh, np.full(mesh.n_triangles, 0.001), pres)
        assert s.center_of_pressure[0] > 0.0

    def test_subset(self):
        mesh = _patch()
        n = mesh.n_triangles
        idx = np.array([0, 1, 2])
        s = compute_contact_stats(mesh, np.full(n, 0.001), np.full(n, 1.0e5), idx)
        assert s.n_triangles == 3
        assert s.contact_area == pytest.approx(mesh.triangle_areas[idx].sum())

    def test_empty_subset(self):
        mesh = _patch()
        n = mesh.n_triangles
        s = compute_contact_stats(mesh, np.zeros(n), np.zeros(n), np.array([], dtype=int))
        assert s.n_triangles == 0
        assert s.contact_area == 0.0
        assert np.isnan(s.mean_pressure)

    def test_to_dict(self):
        mesh = _patch()
        n = mesh.n_triangles
        d = compute_contact_stats(mesh, np.full(n, 0.001), np.full(n, 1.0)).to_dict()
        assert isinstance(d["contact_force"], list)
        assert d["n_contacting"] == n


class TestComputeRegionalStats:
    """領域統計."""

    def test_regions_sum_to_total(self):
        """加法的な量（面積・力・モーメント）の領域和は全体と一致する."""
        verts, faces = make_spherical_cap(0.02, 1.0, 6, 24)
        mesh = ContactMesh(verts, faces)
        rng = np.random.default_rng(3)
        n = mesh.n_triangles
        pres = np.where(rng.random(n) > 0.3, rng.uniform(1e4, 1e6, n), 0.0)
        prox = np.where(pres > 0.0, 0.001, -1.0)

        total = compute_contact_stats(mesh, prox, pres)
        regional = compute_regional_stats(mesh, prox, pres)
        assert len(regional) == 6
        assert sum(r.contact_area for r in regional) == pytest.approx(total.contact_area)
        np.testing.assert_allclose(sum(r.contact_force for r in regional), total.contact_force)
        np.testing.assert_allclose(
            sum(r.contact_moment for r in regional), total.contact_moment, atol=1e-14
        )
        assert sum(r.n_contacting for r in regional) == total.n_contacting
        assert max(r.max_pressure for r in regional) == pytest.approx(total.max_pressure)
