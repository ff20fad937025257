"""接触幾何: レイ–三角形交差判定.

Möller–Trumbore 法で、原点 o・方向 d のレイ r(t) = o + t·d と
三角形 (v0, v1, v2) の交点を求める。

    o + t·d = (1 - u - v)·v0 + u·v1 + v·v2

t は符号付き距離（d が単位ベクトルのとき）。t < 0 はレイ後方の交点を表し、
近接距離ウィンドウ [t_min, t_max] による採否は呼び出し側で行う。
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np


@dataclass
class RayHit:
    """レイ交差の結果.

    Attributes:
        triangle: 交差した三角形インデックス（交差なしは -1）
        distance: レイ方向の符号付き距離
        point: 交点 (3,)
    """

    triangle: int = -1
    distance: float = float("nan")
    point: np.ndarray | None = None

    @property
    def hit(self) -> bool:
        """交差の有無."""
        return self.triangle >= 0


def ray_triangle_intersect(
    origin: np.ndarray,
    direction: np.ndarray,
    v0: np.ndarray,
    v1: np.ndarray,
    v2: np.ndarray,
    *,
    tol: float = 1e-12,
) -> tuple[bool, float]:
    """1つの三角形とのレイ交差.

    Args:
        origin: レイ原点 (3,)
        direction: レイ方向 (3,)（単位ベクトル）
        v0, v1, v2: 三角形頂点 (3,)
        tol: 平行判定・重心座標の許容誤差

    Returns:
        (hit, t): 交差フラグと符号付き距離（非交差時 t = nan）
    """
    e1 = v1 - v0
    e2 = v2 - v0
    pvec = np.cross(direction, e2)
    det = float(e1 @ pvec)

    # レイと三角形面が平行
    if abs(det) < tol * max(float(e1 @ e1), 1e-300):
        return False, float("nan")

    inv_det = 1.0 / det
    tvec = origin - v0
    u = float(tvec @ pvec) * inv_det
    if u < -tol or u > 1.0 + tol:
        return False, float("nan")

    qvec = np.cross(tvec, e1)
    v = float(direction @ qvec) * inv_det
    if v < -tol or u + v > 1.0 + tol:
        return False, float("nan")

    t = float(e2 @ qvec) * inv_det
    return True, t


def ray_triangles_intersect(
    origin: np.ndarray,
    direction: np.ndarray,
    v0: np.ndarray,
    v1: np.ndarray,
    v2: np.ndarray,
    *,
    tol: float = 1e-12,
) -> np.ndarray:
    """複数三角形とのレイ交差（ベクトル化版）.

    origin / direction は全三角形共通の (3,) か、三角形ごとの (m, 3)。

    Args:
        origin: レイ原点 (3,) または (m, 3)
        direction: レイ方向 (3,) または (m, 3)
        v0, v1, v2: 三角形頂点 (m, 3)

    Returns:
        t: (m,) 符号付き距離（非交差は nan）
    """
    e1 = v1 - v0  # (m, 3)
    e2 = v2 - v0  # (m, 3)
    pvec = np.cross(direction, e2)  # (m, 3)
    det = np.einsum("ij,ij->i", e1, pvec)
    scale = np.maximum(np.einsum("ij,ij->i", e1, e1), 1e-300)
    ok = np.abs(det) >= tol * scale

    inv_det = np.zeros_like(det)
    inv_det[ok] = 1.0 / det[ok]

    tvec = origin - v0  # (m, 3)
    u = np.einsum("ij,ij->i", tvec, pvec) * inv_det
    qvec = np.cross(tvec, e1)  # (m, 3)
    v = np.sum(qvec * direction, axis=1) * inv_det
    t = np.einsum("ij,ij->i", e2, qvec) * inv_det

    ok &= (u >= -tol) & (u <= 1.0 + tol) & (v >= -tol) & (u + v <= 1.0 + tol)
    return np.where(ok, t, np.nan)


def triangle_geometry(
    vertices: np.ndarray, faces: np.ndarray
) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    """三角形の中心・単位法線・面積を一括計算する.

    法線は頂点順序 (v0, v1, v2) の右手系: n ∝ (v1 - v0) × (v2 - v0)。

    Args:
        vertices: (n_v, 3) 頂点座標
        faces: (n_f, 3) 三角形の頂点インデックス

    Returns:
        (centers (n_f,3), normals (n_f,3), areas (n_f,))
    """
    p0 = vertices[faces[:, 0]]
    p1 = vertices[faces[:, 1]]
    p2 = vertices[faces[:, 2]]
    centers = (p0 + p1 + p2) / 3.0
    cross = np.cross(p1 - p0, p2 - p0)
    norm = np.linalg.norm(cross, axis=1)
    areas = 0.5 * norm
    normals = np.zeros_like(cross)
    nz = norm > 0.0
    normals[nz] = cross[nz] / norm[nz, None]
    return centers, normals, areas
