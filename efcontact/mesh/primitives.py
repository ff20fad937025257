"""接触メッシュの基本形状ジェネレータ.

検証・例題用の三角形表面メッシュを生成する。

  - make_triangle: 単一三角形
  - make_flat_patch: 矩形平板（nx × ny の格子を対角分割）
  - make_spherical_cap: 球冠（極座標格子）

いずれも (vertices, faces) を返す。法線は右手系の頂点順序で決まる。
"""

from __future__ import annotations

import numpy as np


def make_triangle(
    size: float = 1.0,
    *,
    z: float = 0.0,
    flip: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """xy 平面上の単一三角形（重心が原点）.

    Args:
        size: 辺の代表長さ
        z: 平面の高さ
        flip: True で法線を -z 向きにする

    Returns:
        vertices (3, 3), faces (1, 3)
    """
    vertices = np.array(
        [
            [0.0, 0.0, z],
            [size, 0.0, z],
            [0.0, size, z],
        ]
    )
    vertices[:, :2] -= vertices[:, :2].mean(axis=0)
    faces = np.array([[0, 2, 1]] if flip else [[0, 1, 2]])
    return vertices, faces


def make_flat_patch(
    length_x: float,
    length_y: float,
    nx: int,
    ny: int,
    *,
    z: float = 0.0,
    flip: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """xy 平面上の矩形平板メッシュ（中心が原点）.

    各格子セルを 2 つの三角形に分割する。

    Args:
        length_x: x 方向長さ
        length_y: y 方向長さ
        nx: x 方向分割数
        ny: y 方向分割数
        z: 平面の高さ
        flip: True で法線を -z 向きにする

    Returns:
        vertices ((nx+1)(ny+1), 3), faces (2 nx ny, 3)
    """
    if nx < 1 or ny < 1:
        raise ValueError(f"nx, ny は 1 以上が必要: nx={nx}, ny={ny}")
    if length_x <= 0.0 or length_y <= 0.0:
        raise ValueError(f"length_x, length_y は正の値が必要: {length_x}, {length_y}")

    xs = np.linspace(-0.5 * length_x, 0.5 * length_x, nx + 1)
    ys = np.linspace(-0.5 * length_y, 0.5 * length_y, ny + 1)
    X, Y = np.meshgrid(xs, ys, indexing="ij")
    vertices = np.column_stack([X.ravel(), Y.ravel(), np.full(X.size, z)])

    def vid(i: int, j: int) -> int:
        return i * (ny + 1) + j

    faces = []
    for i in range(nx):
        for j in range(ny):
            a = vid(i, j)
            b = vid(i + 1, j)
            c = vid(i + 1, j + 1)
            d = vid(i, j + 1)
            faces.append([a, b, c])
            faces.append([a, c, d])
    faces = np.array(faces, dtype=np.intp)
    if flip:
        faces = faces[:, ::-1].copy()
    return vertices, faces


def make_spherical_cap(
    radius: float,
    half_angle: float,
    n_rings: int,
    n_segments: int,
    *,
    center: np.ndarray | None = None,
    inward: bool = False,
) -> tuple[np.ndarray, np.ndarray]:
    """球冠メッシュ（極は +z）.

    極点と n_rings 本の緯線リング（各 n_segments 点）で構成する。

    Args:
        radius: 球半径
        half_angle: 極からの半頂角 [rad]（0 < half_angle <= π/2）
        n_rings: 緯線リング数
        n_segments: 経線分割数（>= 3）
        center: 球中心 (3,)。None なら原点
        inward: True で法線を球中心向きにする

    Returns:
        vertices (1 + n_rings n_segments, 3), faces
    """
    if radius <= 0.0:
        raise ValueError(f"radius は正の値が必要: {radius}")
    if not 0.0 < half_angle <= 0.5 * np.pi:
        raise ValueError(f"half_angle は (0, π/2] が必要: {half_angle}")
    if n_rings < 1 or n_segments < 3:
        raise ValueError(f"n_rings >= 1, n_segments >= 3 が必要: {n_rings}, {n_segments}")

    c = np.zeros(3) if center is None else np.asarray(center, dtype=float)
    thetas = np.linspace(0.0, half_angle, n_rings + 1)[1:]
    phis = np.linspace(0.0, 2.0 * np.pi, n_segments + 1)[:-1]

    vertices = [c + np.array([0.0, 0.0, radius])]
    for th in thetas:
        for ph in phis:
            vertices.append(
                c
                + radius
                * np.array([np.sin(th) * np.cos(ph), np.sin(th) * np.sin(ph), np.cos(th)])
            )
    vertices = np.array(vertices)

    def vid(ring: int, seg: int) -> int:
        return 1 + ring * n_segments + (seg % n_segments)

    faces = []
    # 極まわりの扇形
    for s in range(n_segments):
        faces.append([0, vid(0, s), vid(0, s + 1)])
    for r in range(n_rings - 1):
        for s in range(n_segments):
            a = vid(r, s)
            b = vid(r + 1, s)
            cc = vid(r + 1, s + 1)
            d = vid(r, s + 1)
            faces.append([a, b, cc])
            faces.append([a, cc, d])
    faces = np.array(faces, dtype=np.intp)
    if inward:
        faces = faces[:, ::-1].copy()
    return vertices, faces
