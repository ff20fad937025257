"""接触メッシュ（三角形表面メッシュ + 材料特性 + 空間索引）.

三角形ごとの中心・外向き単位法線・面積・厚さ・弾性係数・ポアソン比、
頂点共有による隣接三角形集合、6 領域分割、AABB 木を保持する。

幾何量はメッシュ局所座標系で定義され、構築後は不変。
材料特性はフレーム間に set_material() で更新できる（評価中は不可）。
"""

from __future__ import annotations

import numpy as np
import scipy.sparse as sp

from efcontact.core.errors import ContactConfigError
from efcontact.materials.elastic import validate_elastic_properties
from efcontact.mesh.bvh import TriangleBVH
from efcontact.mesh.geometry import RayHit, triangle_geometry
from efcontact.mesh.regions import compute_region_labels, regional_triangle_indices


def _broadcast_property(value, n: int, name: str) -> np.ndarray:
    arr = np.asarray(value, dtype=float)
    if arr.ndim == 0:
        return np.full(n, float(arr))
    if arr.shape != (n,):
        raise ContactConfigError(f"{name} は スカラーまたは ({n},) が必要。実際: {arr.shape}")
    return arr.copy()


def build_triangle_adjacency(faces: np.ndarray, n_vertices: int) -> list[np.ndarray]:
    """頂点を共有する三角形の隣接リストを作る.

    三角形–頂点の接続行列 C (n_f × n_v) から A = C Cᵀ を作り、
    非ゼロ成分（自分自身を除く）を隣接三角形とする。

    Args:
        faces: (n_f, 3) 頂点インデックス
        n_vertices: 頂点数

    Returns:
        長さ n_f のリスト。各要素は昇順の隣接三角形インデックス配列
    """
    n_f = len(faces)
    rows = np.repeat(np.arange(n_f), 3)
    cols = faces.ravel()
    C = sp.csr_matrix((np.ones(3 * n_f), (rows, cols)), shape=(n_f, n_vertices))
    A = (C @ C.T).tocsr()
    A = (A - sp.diags(A.diagonal())).tocsr()
    A.eliminate_zeros()
    A.sort_indices()
    return [A.indices[A.indptr[i] : A.indptr[i + 1]].astype(np.intp) for i in range(n_f)]


class ContactMesh:
    """三角形接触メッシュ.

    Args:
        vertices: (n_v, 3) 頂点座標（メッシュ局所座標系）
        faces: (n_f, 3) 頂点インデックス（右手系の順序が外向き法線）
        thickness: 層厚さ h（スカラーまたは (n_f,)）
        elastic_modulus: ヤング率 E（スカラーまたは (n_f,)）
        poissons_ratio: ポアソン比 ν（スカラーまたは (n_f,)）
        region_labels: (n_f,) 領域ラベル 0..5。None なら幾何から自動分割
        name: メッシュ名
        leaf_size: AABB 木のリーフサイズ

    Raises:
        ContactConfigError: 三角形数ゼロ、形状不正、面積ゼロの三角形、
            材料特性が定義域外の場合
    """

    def __init__(
        self,
        vertices: np.ndarray,
        faces: np.ndarray,
        *,
        thickness=0.002,
        elastic_modulus=10.0e6,
        poissons_ratio=0.45,
        region_labels: np.ndarray | None = None,
        name: str = "mesh",
        leaf_size: int = 4,
    ) -> None:
        self.name = name
        self._vertices = np.array(vertices, dtype=float)
        self._faces = np.array(faces, dtype=np.intp)

        if self._vertices.ndim != 2 or self._vertices.shape[1] != 3:
            raise ContactConfigError(
                f"{name}: vertices は (n_v, 3) が必要。実際: {self._vertices.shape}"
            )
        if self._faces.ndim != 2 or self._faces.shape[1] != 3:
            raise ContactConfigError(f"{name}: faces は (n_f, 3) が必要。実際: {self._faces.shape}")
        if len(self._faces) == 0:
            raise ContactConfigError(f"{name}: 三角形が 0 個のメッシュは使用できません")
        if self._faces.min() < 0 or self._faces.max() >= len(self._vertices):
            raise ContactConfigError(f"{name}: faces が範囲外の頂点を参照しています")

        centers, normals, areas = triangle_geometry(self._vertices, self._faces)
        degenerate = np.flatnonzero(areas <= 0.0)
        if degenerate.size:
            raise ContactConfigError(
                f"{name}: 面積ゼロの三角形があります: {degenerate[:10].tolist()}"
            )
        self._centers = centers
        self._normals = normals
        self._areas = areas

        self.set_material(thickness, elastic_modulus, poissons_ratio)

        self._neighbors = build_triangle_adjacency(self._faces, len(self._vertices))

        if region_labels is None:
            labels = compute_region_labels(centers, areas)
        else:
            labels = np.asarray(region_labels, dtype=np.intp)
            if labels.shape != (self.n_triangles,):
                raise ContactConfigError(
                    f"{name}: region_labels は ({self.n_triangles},) が必要。実際: {labels.shape}"
                )
        self._region_labels = labels
        self._regional_indices = regional_triangle_indices(labels)

        self._bvh = TriangleBVH(self._vertices, self._faces, leaf_size=leaf_size)

        for arr in (self._vertices, self._faces, self._centers, self._normals, self._areas):
            arr.flags.writeable = False

    # -- 材料 ------------------------------------------------------

    def set_material(self, thickness, elastic_modulus, poissons_ratio) -> None:
        """材料特性を設定する（フレーム間でのみ呼ぶこと）."""
        n = self.n_triangles
        h = _broadcast_property(thickness, n, "thickness")
        E = _broadcast_property(elastic_modulus, n, "elastic_modulus")
        nu = _broadcast_property(poissons_ratio, n, "poissons_ratio")
        validate_elastic_properties(h, E, nu, label=self.name)
        self._thickness = h
        self._elastic_modulus = E
        self._poissons_ratio = nu

    # -- 幾何・材料クエリ ----------------------------------------------

    @property
    def n_triangles(self) -> int:
        """三角形数."""
        return len(self._faces)

    @property
    def n_vertices(self) -> int:
        """頂点数."""
        return len(self._vertices)

    @property
    def vertices(self) -> np.ndarray:
        return self._vertices

    @property
    def faces(self) -> np.ndarray:
        return self._faces

    @property
    def triangle_centers(self) -> np.ndarray:
        """(n_f, 3) 三角形中心."""
        return self._centers

    @property
    def triangle_normals(self) -> np.ndarray:
        """(n_f, 3) 外向き単位法線."""
        return self._normals

    @property
    def triangle_areas(self) -> np.ndarray:
        """(n_f,) 三角形面積."""
        return self._areas

    @property
    def thickness(self) -> np.ndarray:
        return self._thickness

    @property
    def elastic_modulus(self) -> np.ndarray:
        return self._elastic_modulus

    @property
    def poissons_ratio(self) -> np.ndarray:
        return self._poissons_ratio

    @property
    def region_labels(self) -> np.ndarray:
        """(n_f,) 領域ラベル 0..5."""
        return self._region_labels

    @property
    def regional_triangle_indices(self) -> list[np.ndarray]:
        """領域ごとの三角形インデックス（6 要素のリスト）."""
        return self._regional_indices

    @property
    def bvh(self) -> TriangleBVH:
        return self._bvh

    def neighbor_triangles(self, triangle: int) -> np.ndarray:
        """頂点を共有する隣接三角形インデックス（自身を除く）."""
        return self._neighbors[triangle]

    # -- レイ交差 ------------------------------------------------------

    def ray_intersect_triangle(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        triangle: int,
    ) -> RayHit:
        """指定三角形とのレイ交差."""
        return self._bvh.intersect_triangle(origin, direction, triangle)

    def ray_intersect_triangles(
        self,
        origins: np.ndarray,
        directions: np.ndarray,
        triangles: np.ndarray,
    ) -> np.ndarray:
        """レイごとに指定三角形との交差距離を返す（非交差は nan）."""
        return self._bvh.intersect_triangles(origins, directions, triangles)

    def ray_intersect_mesh(
        self,
        origin: np.ndarray,
        direction: np.ndarray,
        min_distance: float,
        max_distance: float,
    ) -> RayHit:
        """距離ウィンドウ内で最も近いメッシュ全体とのレイ交差（AABB 木探索）."""
        return self._bvh.intersect(origin, direction, min_distance, max_distance)

    def __repr__(self) -> str:
        return (
            f"ContactMesh(name={self.name!r}, n_triangles={self.n_triangles}, "
            f"n_vertices={self.n_vertices})"
        )
