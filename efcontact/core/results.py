"""メソッド戻り値の型定義.

接触検出・法線接触則・診断の各段が返す値を NamedTuple で定義する。
"""

from __future__ import annotations

from typing import NamedTuple

import numpy as np


class ProximityResult(NamedTuple):
    """接触検出（レイキャスト）の結果.

    Attributes:
        proximity: (n,) 三角形ごとの近接距離。未接触は -1（番兵値）
        contacting_triangle: (n,) 交差した相手三角形インデックス。未接触は -1。
            次フレームの時間コヒーレンス探索の初期値となる
        n_active: ウィンドウ内の交差が得られた三角形数
        n_contacting: n_active のうち proximity > 0 の三角形数
        n_same: 前フレームと同じ相手三角形で解決した数
        n_neighbor: 前フレームの相手の隣接三角形で解決した数
        n_different: AABB 木の全探索で解決した数
    """

    proximity: np.ndarray
    contacting_triangle: np.ndarray
    n_active: int
    n_contacting: int
    n_same: int
    n_neighbor: int
    n_different: int


class NonlinearSolveResult(NamedTuple):
    """非線形圧力ソルバーの結果.

    Attributes:
        pressure: 圧力（非収束時は線形モデルの推定値）
        converged: 収束フラグ
        nfev: 残差関数の評価回数
        residual: 最終残差 f(P)
    """

    pressure: float
    converged: bool
    nfev: int
    residual: float


class PressureEnergyResult(NamedTuple):
    """圧力・ひずみエネルギー計算の結果.

    Attributes:
        pressure: (n,) 三角形ごとの圧力
        potential_energy: (n,) 三角形ごとのひずみエネルギー
        solver_failed: (n,) 非線形ソルバーが収束しなかった三角形のフラグ
    """

    pressure: np.ndarray
    potential_energy: np.ndarray
    solver_failed: np.ndarray


class TriangleContactResult(NamedTuple):
    """1 メッシュ側の三角形ごとの接触結果.

    Attributes:
        proximity: (n,) 近接距離（未接触 -1）
        pressure: (n,) 圧力
        potential_energy: (n,) ひずみエネルギー
        force: (n, 3) 三角形接触力（メッシュ局所座標系）
        contacting_triangle: (n,) 相手三角形インデックス
        solver_failed: (n,) 非線形ソルバー非収束フラグ
    """

    proximity: np.ndarray
    pressure: np.ndarray
    potential_energy: np.ndarray
    force: np.ndarray
    contacting_triangle: np.ndarray
    solver_failed: np.ndarray


class SideDiagnostics(NamedTuple):
    """1 メッシュ側の診断情報（時間コヒーレンス探索の検証用）."""

    n_active: int
    n_contacting: int
    n_same: int
    n_neighbor: int
    n_different: int
    solver_failed_triangles: np.ndarray

    @property
    def coherence_ratio(self) -> float:
        """(same + neighbor) / active. active = 0 なら nan."""
        if self.n_active == 0:
            return float("nan")
        return (self.n_same + self.n_neighbor) / self.n_active


class ContactLoads(NamedTuple):
    """ホストに渡す三角形ごとの作用力.

    Attributes:
        casting_points: (n, 3) casting 三角形中心（casting 座標系）
        casting_forces: (n, 3) casting に作用する力（casting 座標系）
        target_points: (n, 3) 同じ点の target 座標系表現
        target_forces: (n, 3) target に作用する反力（target 座標系）
    """

    casting_points: np.ndarray
    casting_forces: np.ndarray
    target_points: np.ndarray
    target_forces: np.ndarray
