"""接触検出: 時間コヒーレンス付きレイキャストによる近接距離計算.

casting メッシュの各三角形中心から、外向き法線の逆方向（target 側）へ
レイを飛ばし、target メッシュとの交差距離を近接距離とする。

探索の 3 階層:
  1. 前フレームで交差した target 三角形 j のみを再判定（same）
  2. j の隣接三角形を順に判定（neighbor）
  3. AABB 木による全探索（different）

いずれの階層でも、距離 d が [min_proximity, max_proximity] 内のときのみ採用。
どの階層でも採用されなければ proximity = -1（番兵値）、相手 = -1。
d = 0 は有効な「接触境界」値であり、番兵値とは区別される。
"""

from __future__ import annotations

import numpy as np

from efcontact.core.results import ProximityResult
from efcontact.math.transform import RigidTransform
from efcontact.mesh.contact_mesh import ContactMesh

NO_CONTACT = -1.0

# ヒット階層
TIER_NONE = 0
TIER_SAME = 1
TIER_NEIGHBOR = 2
TIER_DIFFERENT = 3


def cast_triangle_ray(
    origin: np.ndarray,
    direction: np.ndarray,
    target: ContactMesh,
    previous: int,
    min_proximity: float,
    max_proximity: float,
    *,
    check_previous: bool = True,
) -> tuple[int, float, int]:
    """1 本のレイについて 3 階層探索を行う.

    Args:
        origin: target 座標系でのレイ原点 (3,)
        direction: target 座標系でのレイ方向 (3,)（casting 法線の逆向き）
        target: target メッシュ
        previous: 前フレームの相手三角形（なければ -1）
        min_proximity: 近接距離の下限
        max_proximity: 近接距離の上限
        check_previous: False なら階層 1 を判定済みとして省略する

    Returns:
        (triangle, distance, tier): 未接触なら (-1, -1.0, TIER_NONE)
    """

    def in_window(d: float) -> bool:
        return min_proximity <= d <= max_proximity

    if previous >= 0 and check_previous:
        hit = target.ray_intersect_triangle(origin, direction, previous)
        if hit.hit and in_window(hit.distance):
            return previous, hit.distance, TIER_SAME

    if previous >= 0:
        for neighbor in target.neighbor_triangles(previous):
            hit = target.ray_intersect_triangle(origin, direction, int(neighbor))
            if hit.hit and in_window(hit.distance):
                return int(neighbor), hit.distance, TIER_NEIGHBOR

    hit = target.ray_intersect_mesh(origin, direction, min_proximity, max_proximity)
    if hit.hit:
        return hit.triangle, hit.distance, TIER_DIFFERENT

    return -1, NO_CONTACT, TIER_NONE


def detect_mesh_proximity(
    casting: ContactMesh,
    target: ContactMesh,
    transform: RigidTransform,
    previous_triangle: np.ndarray | None,
    min_proximity: float,
    max_proximity: float,
) -> ProximityResult:
    """casting メッシュ全三角形の近接距離を計算する.

    previous_triangle は変更しない。更新後の相手三角形配列は
    ProximityResult.contacting_triangle として返す。

    Args:
        casting: レイを発するメッシュ
        target: レイを受けるメッシュ
        transform: casting 座標系 → target 座標系の剛体変換
        previous_triangle: (n_casting,) 前フレームの相手三角形（None なら全 -1）
        min_proximity: 近接距離の下限
        max_proximity: 近接距離の上限

    Returns:
        ProximityResult
    """
    n = casting.n_triangles
    if previous_triangle is None:
        previous_triangle = np.full(n, -1, dtype=np.intp)
    elif len(previous_triangle) != n:
        raise ValueError(
            f"previous_triangle の長さ {len(previous_triangle)} が三角形数 {n} と一致しません"
        )
    previous_triangle = np.asarray(previous_triangle, dtype=np.intp)

    # 中心・法線を target 座標系へ一括変換
    origins = transform.shift_station_to_base(casting.triangle_centers)
    directions = -transform.xform_vec_to_base(casting.triangle_normals)

    proximity = np.full(n, NO_CONTACT)
    contacting = np.full(n, -1, dtype=np.intp)
    tiers = np.zeros(n, dtype=np.intp)

    # 階層 1 は全三角形を一括判定
    has_previous = np.flatnonzero(previous_triangle >= 0)
    if len(has_previous) > 0:
        t = target.ray_intersect_triangles(
            origins[has_previous], directions[has_previous], previous_triangle[has_previous]
        )
        same = ~np.isnan(t) & (t >= min_proximity) & (t <= max_proximity)
        hit = has_previous[same]
        proximity[hit] = t[same]
        contacting[hit] = previous_triangle[hit]
        tiers[hit] = TIER_SAME

    # 残りは三角形ごとに独立（相手三角形配列の読み書きは自分のインデックスのみ）
    for i in np.flatnonzero(tiers == TIER_NONE):
        tri, dist, tier = cast_triangle_ray(
            origins[i],
            directions[i],
            target,
            int(previous_triangle[i]),
            min_proximity,
            max_proximity,
            check_previous=False,
        )
        contacting[i] = tri
        proximity[i] = dist
        tiers[i] = tier

    active = tiers != TIER_NONE
    return ProximityResult(
        proximity=proximity,
        contacting_triangle=contacting,
        n_active=int(np.count_nonzero(active)),
        n_contacting=int(np.count_nonzero(active & (proximity > 0.0))),
        n_same=int(np.count_nonzero(tiers == TIER_SAME)),
        n_neighbor=int(np.count_nonzero(tiers == TIER_NEIGHBOR)),
        n_different=int(np.count_nonzero(tiers == TIER_DIFFERENT)),
    )
