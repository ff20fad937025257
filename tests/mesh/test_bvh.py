"""AABB 木によるレイ探索のテスト."""

from __future__ import annotations

import numpy as np
import pytest

from efcontact.mesh.bvh import TriangleBVH, _ray_aabb_interval, compute_triangle_aabb
from efcontact.mesh.geometry import ray_triangles_intersect
from efcontact.mesh.primitives import make_flat_patch, make_spherical_cap


def _brute_force(verts, faces, origin, direction, t_min, t_max):
    t = ray_triangles_intersect(
        origin, direction, verts[faces[:, 0]], verts[faces[:, 1]], verts[faces[:, 2]]
    )
    valid = ~np.isnan(t) & (t >= t_min) & (t <= t_max)
    if not np.any(valid):
        return None
    return float(np.min(t[valid]))


class TestComputeTriangleAabb:
    def test_bounds(self):
        verts = np.array([[0.0, 0.0, 0.0], [1.0, 2.0, 0.0], [-1.0, 0.5, 3.0]])
        lo, hi = compute_triangle_aabb(verts, np.array([[0, 1, 2]]), margin=0.1)
        np.testing.assert_allclose(lo[0], [-1.1, -0.1, -0.1])
        np.testing.assert_allclose(hi[0], [1.1, 2.1, 3.1])


class TestRayAabbInterval:
    """スラブ法."""

    LO = np.zeros(3)
    HI = np.ones(3)

    def _inv(self, direction):
        with np.errstate(divide="ignore"):
            return 1.0 / direction

    def test_grazing_face_with_zero_component(self):
        """方向成分ゼロの軸で原点が箱の面上にあっても交差とみなす."""
        inv = self._inv(np.array([0.0, 0.0, -1.0]))
        for origin in ([0.0, 0.5, 2.0], [1.0, 0.5, 2.0], [0.0, 0.0, 2.0]):
            overlap, enter = _ray_aabb_interval(
                np.array(origin), inv, self.LO, self.HI, 0.0, np.inf
            )
            assert overlap
            assert enter == pytest.approx(1.0)

    def test_parallel_outside_slab(self):
        inv = self._inv(np.array([0.0, 0.0, -1.0]))
        overlap, _ = _ray_aabb_interval(
            np.array([-0.1, 0.5, 2.0]), inv, self.LO, self.HI, 0.0, np.inf
        )
        assert not overlap

    def test_window_before_box(self):
        inv = self._inv(np.array([0.0, 0.0, -1.0]))
        overlap, _ = _ray_aabb_interval(
            np.array([0.5, 0.5, 2.0]), inv, self.LO, self.HI, 0.0, 0.5
        )
        assert not overlap


class TestTriangleBVH:
    """構築と探索."""

    def test_build_leaf_partition(self):
        verts, faces = make_spherical_cap(1.0, 1.0, 6, 16)
        bvh = TriangleBVH(verts, faces, leaf_size=3)
        leaves = np.flatnonzero(bvh.left < 0)
        assert np.all(bvh.count[leaves] <= 3)
        assert bvh.count[leaves].sum() == bvh.n_triangles
        np.testing.assert_array_equal(np.sort(bvh.order), np.arange(len(faces)))

    def test_single_triangle(self):
        verts = np.array([[0.0, 0.0, -1.0], [1.0, 0.0, -1.0], [0.0, 1.0, -1.0]])
        bvh = TriangleBVH(verts, np.array([[0, 1, 2]]))
        assert bvh.n_nodes == 1
        hit = bvh.intersect(np.array([0.2, 0.2, 0.0]), np.array([0.0, 0.0, -1.0]))
        assert hit.triangle == 0
        assert hit.distance == pytest.approx(1.0)

    def test_matches_brute_force(self):
        verts, faces = make_spherical_cap(1.0, 1.3, 8, 24)
        bvh = TriangleBVH(verts, faces, leaf_size=4)
        rng = np.random.default_rng(1)
        for _ in range(40):
            origin = rng.uniform(-0.6, 0.6, size=3) + np.array([0.0, 0.0, 2.0])
            direction = np.array([0.0, 0.0, -1.0]) + rng.normal(scale=0.1, size=3)
            direction /= np.linalg.norm(direction)
            expected = _brute_force(verts, faces, origin, direction, 0.0, np.inf)
            hit = bvh.intersect(origin, direction)
            if expected is None:
                assert not hit.hit
            else:
                assert hit.hit
                assert hit.distance == pytest.approx(expected)

    def test_nearest_of_two_layers(self):
        """2 枚の平板のうち近い方を返す."""
        v1, f1 = make_flat_patch(1.0, 1.0, 3, 3, z=-0.01)
        v2, f2 = make_flat_patch(1.0, 1.0, 3, 3, z=-0.02)
        verts = np.vstack([v1, v2])
        faces = np.vstack([f1, f2 + len(v1)])
        bvh = TriangleBVH(verts, faces)
        o = np.array([0.05, 0.12, 0.0])
        d = np.array([0.0, 0.0, -1.0])
        hit = bvh.intersect(o, d)
        assert hit.distance == pytest.approx(0.01)
        assert hit.triangle < len(f1)
        # 下限で近い方を除外すると遠い方
        hit = bvh.intersect(o, d, t_min=0.015)
        assert hit.distance == pytest.approx(0.02)
        assert hit.triangle >= len(f1)

    def test_window_excludes(self):
        verts, faces = make_flat_patch(1.0, 1.0, 2, 2, z=-0.01)
        bvh = TriangleBVH(verts, faces)
        o = np.array([0.05, 0.12, 0.0])
        d = np.array([0.0, 0.0, -1.0])
        assert not bvh.intersect(o, d, 0.0, 0.009).hit
        assert not bvh.intersect(-o, -d, 0.0, 1.0).hit

    def test_axis_parallel_ray(self):
        """方向成分がゼロの軸があっても探索できる."""
        verts, faces = make_flat_patch(1.0, 1.0, 4, 4, z=0.0)
        bvh = TriangleBVH(verts, faces)
        hit = bvh.intersect(np.array([0.3, -0.1, 0.5]), np.array([0.0, 0.0, -1.0]))
        assert hit.hit
        assert hit.distance == pytest.approx(0.5)

    def test_intersect_triangles_per_ray(self):
        verts, faces = make_flat_patch(1.0, 1.0, 2, 2, z=-0.01)
        bvh = TriangleBVH(verts, faces)
        rng = np.random.default_rng(3)
        origins = np.column_stack([rng.uniform(-0.4, 0.4, size=(10, 2)), np.zeros(10)])
        directions = np.tile([0.0, 0.0, -1.0], (10, 1))
        expected = np.array([bvh.intersect(o, d).triangle for o, d in zip(origins, directions)])
        t = bvh.intersect_triangles(origins, directions, expected)
        np.testing.assert_allclose(t, 0.01)
        # 別の三角形を指定すると非交差
        other = (expected + 1) % bvh.n_triangles
        assert np.all(np.isnan(bvh.intersect_triangles(origins, directions, other)))

    def test_intersect_triangle(self):
        verts, faces = make_flat_patch(1.0, 1.0, 1, 1, z=-0.01)
        bvh = TriangleBVH(verts, faces)
        o = np.array([0.3, -0.2, 0.0])
        d = np.array([0.0, 0.0, -1.0])
        hits = [bvh.intersect_triangle(o, d, k) for k in range(2)]
        assert sum(h.hit for h in hits) == 1
