"""接触力・接触統計量の集計.

三角形接触力:
    F_i = -p_i A_i n_i     （外向き法線の逆向き）

三角形集合 S 上の統計量:
    contact_area        = Σ A_i            (p_i > 0)
    mean_pressure       = Σ p_i / n_c      (n_c = #{p_i > 0}, n_c = 0 なら nan)
    max_pressure        = max |p_i|
    center_of_pressure  = Σ p_i A_i c_i / Σ p_i A_i
    center_of_proximity = Σ d_i A_i c_i / Σ d_i A_i
    contact_force       = Σ F_i
    contact_moment      = Σ F_i × c_i

近接距離の番兵値（-1, 非接触）は集計では 0 として扱う。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from efcontact.mesh.contact_mesh import ContactMesh


def _nan3() -> np.ndarray:
    return np.full(3, np.nan)


@dataclass
class ContactStats:
    """接触統計量（1 メッシュ側 × 全体または 1 領域）.

    Attributes:
        contact_area: 接触面積（圧力 > 0 の三角形面積の和）
        mean_proximity: 平均近接距離（分母は接触三角形数）
        max_proximity: 最大近接距離
        center_of_proximity: 近接距離重み付き中心 (3,)
        mean_pressure: 平均圧力（分母は接触三角形数）
        max_pressure: 最大圧力
        center_of_pressure: 圧力中心 (3,)
        contact_force: 合力 (3,)
        contact_moment: 合モーメント Σ F × c (3,)
        n_triangles: 集計対象の三角形数
        n_contacting: 圧力 > 0 の三角形数（0 なら平均・中心は nan）
    """

    contact_area: float = 0.0
    mean_proximity: float = float("nan")
    max_proximity: float = 0.0
    center_of_proximity: np.ndarray = field(default_factory=_nan3)
    mean_pressure: float = float("nan")
    max_pressure: float = 0.0
    center_of_pressure: np.ndarray = field(default_factory=_nan3)
    contact_force: np.ndarray = field(default_factory=lambda: np.zeros(3))
    contact_moment: np.ndarray = field(default_factory=lambda: np.zeros(3))
    n_triangles: int = 0
    n_contacting: int = 0

    @property
    def in_contact(self) -> bool:
        """接触三角形が 1 つ以上あるか（平均値を信頼してよいか）."""
        return self.n_contacting > 0

    def to_dict(self) -> dict:
        """JSON シリアライズ可能な辞書に変換する."""
        return {
            "contact_area": self.contact_area,
            "mean_proximity": self.mean_proximity,
            "max_proximity": self.max_proximity,
            "center_of_proximity": self.center_of_proximity.tolist(),
            "mean_pressure": self.mean_pressure,
            "max_pressure": self.max_pressure,
            "center_of_pressure": self.center_of_pressure.tolist(),
            "contact_force": self.contact_force.tolist(),
            "contact_moment": self.contact_moment.tolist(),
            "n_triangles": self.n_triangles,
            "n_contacting": self.n_contacting,
        }


def compute_triangle_forces(
    pressure: np.ndarray, areas: np.ndarray, normals: np.ndarray
) -> np.ndarray:
    """三角形接触力 F_i = -p_i A_i n_i.

    Args:
        pressure: (n,) 圧力
        areas: (n,) 面積
        normals: (n, 3) 外向き単位法線

    Returns:
        (n, 3) 接触力
    """
    return -(np.asarray(pressure) * np.asarray(areas))[:, None] * np.asarray(normals)


def _weighted_center(weights: np.ndarray, centers: np.ndarray) -> np.ndarray:
    den = float(np.sum(weights))
    if den == 0.0:
        return _nan3()
    return (weights[:, None] * centers).sum(axis=0) / den


def compute_contact_stats(
    mesh: ContactMesh,
    proximity: np.ndarray,
    pressure: np.ndarray,
    triangle_indices: np.ndarray | None = None,
) -> ContactStats:
    """三角形集合上の接触統計量を計算する.

    Args:
        mesh: 統計を取るメッシュ
        proximity: (n_f,) 全三角形の近接距離
        pressure: (n_f,) 全三角形の圧力
        triangle_indices: 対象三角形インデックス。None なら全三角形

    Returns:
        ContactStats
    """
    if triangle_indices is None:
        idx = np.arange(mesh.n_triangles)
    else:
        idx = np.asarray(triangle_indices, dtype=np.intp)

    if idx.size == 0:
        return ContactStats()

    prx = np.maximum(np.asarray(proximity, dtype=float)[idx], 0.0)
    prs = np.asarray(pressure, dtype=float)[idx]
    area = mesh.triangle_areas[idx]
    center = mesh.triangle_centers[idx]
    normal = mesh.triangle_normals[idx]

    contacting = prs > 0.0
    n_contacting = int(np.count_nonzero(contacting))

    if n_contacting > 0:
        mean_pressure = float(prs.sum()) / n_contacting
        mean_proximity = float(prx.sum()) / n_contacting
    else:
        mean_pressure = float("nan")
        mean_proximity = float("nan")

    forces = compute_triangle_forces(prs, area, normal)

    return ContactStats(
        contact_area=float(area[contacting].sum()),
        mean_proximity=mean_proximity,
        max_proximity=float(np.max(np.abs(prx))),
        center_of_proximity=_weighted_center(prx * area, center),
        mean_pressure=mean_pressure,
        max_pressure=float(np.max(np.abs(prs))),
        center_of_pressure=_weighted_center(prs * area, center),
        contact_force=forces.sum(axis=0),
        contact_moment=np.cross(forces, center).sum(axis=0),
        n_triangles=int(idx.size),
        n_contacting=n_contacting,
    )


def compute_regional_stats(
    mesh: ContactMesh, proximity: np.ndarray, pressure: np.ndarray
) -> list[ContactStats]:
    """6 領域それぞれの接触統計量."""
    return [
        compute_contact_stats(mesh, proximity, pressure, indices)
        for indices in mesh.regional_triangle_indices
    ]
