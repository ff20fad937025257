"""メッシュ三角形の領域分割（6領域）.

三角形を空間的に 6 つの領域へ排他的に分割する。統計量の局所評価に使用。

既定の分割規則（メッシュ局所座標系）:
  - 面積重み付き重心 c を基準に、x 方向を 3 等分（前方・中央・後方）
  - z 方向を c_z で 2 分割（内側・外側）

    region = 3 * side + band
      side: 0 (z < c_z), 1 (z >= c_z)
      band: 0 (x < x1), 1 (x1 <= x < x2), 2 (x >= x2)
    ただし x1, x2 は三角形中心 x 範囲の 1/3, 2/3 点。
"""

from __future__ import annotations

import numpy as np

from efcontact.core.errors import ContactConfigError

N_REGIONS = 6

REGION_NAMES = (
    "medial_anterior",
    "medial_central",
    "medial_posterior",
    "lateral_anterior",
    "lateral_central",
    "lateral_posterior",
)


def compute_region_labels(
    centers: np.ndarray,
    areas: np.ndarray,
    *,
    split_axis: int = 0,
    side_axis: int = 2,
) -> np.ndarray:
    """三角形中心から領域ラベル (0..5) を計算する.

    Args:
        centers: (n, 3) 三角形中心
        areas: (n,) 三角形面積（基準点の重み）
        split_axis: 3 等分する軸
        side_axis: 2 分割する軸

    Returns:
        labels: (n,) 領域ラベル
    """
    centers = np.asarray(centers, dtype=float)
    areas = np.asarray(areas, dtype=float)
    if split_axis == side_axis:
        raise ContactConfigError("split_axis と side_axis は異なる軸が必要")

    total = float(np.sum(areas))
    if total > 0.0:
        ref = (areas[:, None] * centers).sum(axis=0) / total
    else:
        ref = centers.mean(axis=0)

    side = (centers[:, side_axis] >= ref[side_axis]).astype(np.intp)

    x = centers[:, split_axis]
    x_lo, x_hi = float(x.min()), float(x.max())
    width = x_hi - x_lo
    if width > 0.0:
        band = np.clip(np.floor(3.0 * (x - x_lo) / width), 0, 2).astype(np.intp)
    else:
        band = np.ones(len(x), dtype=np.intp)

    return 3 * side + band


def regional_triangle_indices(labels: np.ndarray) -> list[np.ndarray]:
    """ラベル配列から領域ごとの三角形インデックスリストを作る.

    Args:
        labels: (n,) 領域ラベル（0..5）

    Returns:
        長さ 6 のリスト。各要素は昇順の三角形インデックス配列

    Raises:
        ContactConfigError: ラベルが 0..5 の範囲外
    """
    labels = np.asarray(labels)
    if labels.ndim != 1:
        raise ContactConfigError(f"region labels は 1 次元配列が必要: shape={labels.shape}")
    if labels.size and (labels.min() < 0 or labels.max() >= N_REGIONS):
        raise ContactConfigError(
            f"region labels は 0..{N_REGIONS - 1} が必要: "
            f"min={labels.min()}, max={labels.max()}"
        )
    return [np.flatnonzero(labels == r) for r in range(N_REGIONS)]
