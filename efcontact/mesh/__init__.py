"""接触メッシュ・空間索引・基本形状ジェネレータ.

- geometry: レイ–三角形交差（Möller–Trumbore）、三角形の中心・法線・面積
- bvh: AABB 木によるメッシュ全体のレイ探索
- regions: 6 領域分割
- contact_mesh: ContactMesh（幾何 + 材料 + 隣接 + 領域 + AABB 木）
- primitives: 検証用の基本形状
"""

from efcontact.mesh.bvh import TriangleBVH, compute_triangle_aabb
from efcontact.mesh.contact_mesh import ContactMesh, build_triangle_adjacency
from efcontact.mesh.geometry import (
    RayHit,
    ray_triangle_intersect,
    ray_triangles_intersect,
    triangle_geometry,
)
from efcontact.mesh.primitives import make_flat_patch, make_spherical_cap, make_triangle
from efcontact.mesh.regions import (
    N_REGIONS,
    REGION_NAMES,
    compute_region_labels,
    regional_triangle_indices,
)

__all__ = [
    "ContactMesh",
    "N_REGIONS",
    "REGION_NAMES",
    "RayHit",
    "TriangleBVH",
    "build_triangle_adjacency",
    "compute_region_labels",
    "compute_triangle_aabb",
    "make_flat_patch",
    "make_spherical_cap",
    "make_triangle",
    "ray_triangle_intersect",
    "ray_triangles_intersect",
    "regional_triangle_indices",
    "triangle_geometry",
]
