"""境界ボリューム階層（AABB 木）によるレイ探索.

三角形群の AABB を再帰的に二分割した木を構築し、
レイとの最近接交差（距離ウィンドウ内）を O(log n) 期待で探索する。

構築:
  - ノードの三角形重心の広がりが最大の軸で、重心の中央値により二分割
  - 三角形数が leaf_size 以下でリーフ

木は配列で保持する（node_lo, node_hi, left, right, start, count）。
リーフは order[start : start + count] の三角形を持つ。
"""

from __future__ import annotations

import numpy as np

from efcontact.mesh.geometry import RayHit, ray_triangles_intersect


def compute_triangle_aabb(
    vertices: np.ndarray,
    faces: np.ndarray,
    margin: float = 0.0,
) -> tuple[np.ndarray, np.ndarray]:
    """三角形ごとの AABB を計算する.

    Args:
        vertices: (n_v, 3) 頂点座標
        faces: (n_f, 3) 頂点インデックス
        margin: 追加マージン

    Returns:
        (lo, hi): 各 (n_f, 3)
    """
    tri = vertices[faces]  # (n_f, 3, 3)
    lo = tri.min(axis=1) - margin
    hi = tri.max(axis=1) + margin
    return lo, hi


def _ray_aabb_interval(
    origin: np.ndarray,
    inv_dir: np.ndarray,
    lo: np.ndarray,
    hi: np.ndarray,
    t_min: float,
    t_max: float,
) -> tuple[bool, float]:
    """スラブ法による レイ–AABB 判定.

    Returns:
        (overlap, t_enter): [t_min, t_max] と箱の区間が重なるか、および進入距離
    """
    # 方向成分ゼロの軸: origin がスラブ内なら制約なし、外なら交差なし
    parallel = np.isinf(inv_dir)
    if np.any(parallel & ((origin < lo) | (origin > hi))):
        return False, t_min
    with np.errstate(invalid="ignore"):
        t0 = np.where(parallel, -np.inf, (lo - origin) * inv_dir)
        t1 = np.where(parallel, np.inf, (hi - origin) * inv_dir)
    t_near = np.minimum(t0, t1)
    t_far = np.maximum(t0, t1)
    enter = max(t_min, float(t_near.max()))
    leave = min(t_max, float(t_far.min()))
    return enter <= leave, enter


class TriangleBVH:
    """三角形メッシュの AABB 木.

    Args:
        vertices: (n_v, 3) 頂点座標
        faces: (n_f, 3) 頂点インデックス
        leaf_size: リーフの最大三角形数
        margin: AABB の膨張量（数値誤差対策）
    """

    def __init__(
        self,
        vertices: np.ndarray,
        faces: np.ndarray,
        *,
        leaf_size: int = 4,
        margin: float = 1e-12,
    ) -> None:
        self.vertices = np.asarray(vertices, dtype=float)
        self.faces = np.asarray(faces, dtype=np.intp)
        self.leaf_size = max(1, int(leaf_size))

        self._v0 = self.vertices[self.faces[:, 0]]
        self._v1 = self.vertices[self.faces[:, 1]]
        self._v2 = self.vertices[self.faces[:, 2]]

        tri_lo, tri_hi = compute_triangle_aabb(self.vertices, self.faces, margin)
        centroids = (self._v0 + self._v1 + self._v2) / 3.0

        lo_list: list[np.ndarray] = []
        hi_list: list[np.ndarray] = []
        left: list[int] = []
        right: list[int] = []
        start: list[int] = []
        count: list[int] = []
        order = np.arange(len(self.faces), dtype=np.intp)

        # 明示スタックによる構築（深い再帰を回避）
        def new_node(s: int, c: int) -> int:
            idx = order[s : s + c]
            lo_list.append(tri_lo[idx].min(axis=0))
            hi_list.append(tri_hi[idx].max(axis=0))
            left.append(-1)
            right.append(-1)
            start.append(s)
            count.append(c)
            return len(lo_list) - 1

        if len(self.faces) > 0:
            stack = [new_node(0, len(self.faces))]
            while stack:
                node = stack.pop()
                s, c = start[node], count[node]
                if c <= self.leaf_size:
                    continue
                idx = order[s : s + c]
                cen = centroids[idx]
                spread = cen.max(axis=0) - cen.min(axis=0)
                axis = int(np.argmax(spread))
                if spread[axis] <= 0.0:
                    # 重心が一致 → 分割不能
                    continue
                sorted_idx = idx[np.argsort(cen[:, axis], kind="stable")]
                order[s : s + c] = sorted_idx
                half = c // 2
                left[node] = new_node(s, half)
                right[node] = new_node(s + half, c - half)
                stack.append(left[node])
                stack.append(right[node])

        self.order = order
        self.node_lo = np.array(lo_list).reshape(-1, 3)
        self.node_hi = np.array(hi_list).reshape(-1, 3)
        self.left = np.array(left, dtype=np.intp)
        self.right = np.array(right, dtype=np.intp)
        self.start = np.array(start, dtype=np.intp)
        self.count = np.array(count, dtype=np.intp)

    @property
    def n_nodes(self) -> int:
        """ノード数."""
        return len(self.left)

    @property
    def n_triangles(self) -> int:
        """三角形数."""
        return len(self.faces)

    def intersect_triangle(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        triangle: int,
    ) -> RayHit:
        """指定した1三角形とのレイ交差（ウィンドウ判定なし）."""
        t = ray_triangles_intersect(
            origin,
            direction,
            self._v0[triangle : triangle + 1],
            self._v1[triangle : triangle + 1],
            self._v2[triangle : triangle + 1],
        )[0]
        if np.isnan(t):
            return RayHit()
        return RayHit(triangle=int(triangle), distance=float(t), point=origin + t * direction)

    def intersect_triangles(
        self,
        origins: np.ndarray,
        directions: np.ndarray,
        triangles: np.ndarray,
    ) -> np.ndarray:
        """レイ k と三角形 triangles[k] の交差距離を一括計算する（ウィンドウ判定なし）.

        Returns:
            (m,) 符号付き距離（非交差は nan）
        """
        triangles = np.asarray(triangles, dtype=np.intp)
        return ray_triangles_intersect(
            np.asarray(origins, dtype=float),
            np.asarray(directions, dtype=float),
            self._v0[triangles],
            self._v1[triangles],
            self._v2[triangles],
        )

    def intersect(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        t_min: float = 0.0,
        t_max: float = np.inf,
    ) -> RayHit:
        """距離ウィンドウ [t_min, t_max] 内で最も近い交差を探索する.

        「最も近い」はレイ方向の符号付き距離 t が最小のもの。

        Args:
            origin: レイ原点 (3,)
            direction: レイ方向 (3,)（単位ベクトル）
            t_min: 距離の下限
            t_max: 距離の上限

        Returns:
            RayHit（ウィンドウ内に交差なしなら triangle = -1）
        """
        if self.n_nodes == 0:
            return RayHit()

        origin = np.asarray(origin, dtype=float)
        direction = np.asarray(direction, dtype=float)
        with np.errstate(divide="ignore"):
            inv_dir = 1.0 / direction

        best_t = float(t_max)
        best_tri = -1
        stack = [0]
        while stack:
            node = stack.pop()
            overlap, enter = _ray_aabb_interval(
                origin, inv_dir, self.node_lo[node], self.node_hi[node], t_min, best_t
            )
            if not overlap:
                continue

            if self.left[node] < 0:
                s = self.start[node]
                idx = self.order[s : s + self.count[node]]
                t = ray_triangles_intersect(
                    origin, direction, self._v0[idx], self._v1[idx], self._v2[idx]
                )
                valid = ~np.isnan(t) & (t >= t_min) & (t <= best_t)
                if np.any(valid):
                    k = int(np.argmin(np.where(valid, t, np.inf)))
                    best_t = float(t[k])
                    best_tri = int(idx[k])
                continue

            stack.append(int(self.right[node]))
            stack.append(int(self.left[node]))

        if best_tri < 0:
            return RayHit()
        return RayHit(triangle=best_tri, distance=best_t, point=origin + best_t * direction)
