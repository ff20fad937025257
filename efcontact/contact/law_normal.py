"""法線接触則: 弾性基礎モデルによる圧力・ひずみエネルギー.

近接距離 d (> 0) と両側の材料特性 (h, E, ν) から圧力 p とひずみエネルギー e を計算する。
d <= 0（接触境界・番兵値 -1 を含む）では p = e = 0。

4 つの定式化:

集中（lumped）モデル: 両層を平均特性の 1 層とみなす
    E = (E1 + E2)/2, ν = (ν1 + ν2)/2, h = h1 + h2
    K = (1 - ν) E / ((1 + ν)(1 - 2ν))
  linear:
    p = K d / h
    e = 0.5 A K d² / h
  nonlinear:
    p = -K ln(1 - d/h)
    e = -A K ((d - h) ln(1 - d/h) - d)

可変特性（variable）モデル: 2 層の直列ばね
    k_i = (1 - ν_i) E_i / ((1 + ν_i)(1 - 2ν_i) h_i)
  linear:
    p = k1 k2 / (k1 + k2) · d
    d1 = k2/(k1 + k2) · d, d2 = k1/(k1 + k2) · d
    e = 0.5 A (k1 d1² + k2 d2²)
  nonlinear:
    h1 (1 - e^{-p/K1}) + h2 (1 - e^{-p/K2}) = d  を解く（nonlinear.py）
    d_i = h_i (1 - e^{-p/K_i})
    e = Σ -A K_i ((d_i - h_i) ln(1 - d_i/h_i) - d_i)

非線形モデルで d >= h（集中）や非収束（可変）の場合は線形モデルの値で代用し、
solver_failed フラグを立てる（フレームは中断しない）。
"""

from __future__ import annotations

import numpy as np

from efcontact.contact.nonlinear import (
    DEFAULT_FTOL,
    DEFAULT_MAX_NFEV,
    DEFAULT_XTOL,
    solve_variable_nonlinear_pressure,
)
from efcontact.core.results import PressureEnergyResult
from efcontact.materials.elastic import confined_compression_modulus, foundation_stiffness

FORMULATIONS = ("linear", "nonlinear")


def _log_layer_energy(area, K, depth, h):
    """非線形（対数）層のひずみエネルギー -A K ((d - h) ln(1 - d/h) - d)."""
    return -area * K * ((depth - h) * np.log1p(-depth / h) - depth)


def lumped_linear(proximity, area, K, h):
    """集中・線形モデル. Returns (pressure, energy)."""
    return K * proximity / h, 0.5 * area * K * proximity**2 / h


def lumped_nonlinear(proximity, area, K, h):
    """集中・非線形モデル（d < h が前提）. Returns (pressure, energy)."""
    return -K * np.log1p(-proximity / h), _log_layer_energy(area, K, proximity, h)


def variable_linear(proximity, area, k1, k2):
    """可変特性・線形モデル（k は面積あたり剛性 K/h）. Returns (pressure, energy)."""
    k_series = k1 * k2 / (k1 + k2)
    depth1 = k2 / (k1 + k2) * proximity
    depth2 = k1 / (k1 + k2) * proximity
    energy = 0.5 * area * k1 * depth1**2 + 0.5 * area * k2 * depth2**2
    return k_series * proximity, energy


def compute_pressure_energy(
    proximity: np.ndarray,
    area: np.ndarray,
    casting_props: tuple[np.ndarray, np.ndarray, np.ndarray],
    target_props: tuple[np.ndarray, np.ndarray, np.ndarray],
    *,
    formulation: str = "linear",
    use_lumped_model: bool = True,
    ftol: float = DEFAULT_FTOL,
    xtol: float = DEFAULT_XTOL,
    max_nfev: int = DEFAULT_MAX_NFEV,
) -> PressureEnergyResult:
    """三角形ごとの圧力・ひずみエネルギーを計算する.

    Args:
        proximity: (n,) 近接距離（<= 0 は非接触）
        area: (n,) casting 三角形面積
        casting_props: (h, E, ν) 各 (n,) casting 側材料特性
        target_props: (h, E, ν) 各 (n,) 交差した target 三角形の材料特性
            （非接触の三角形の値は使用しない）
        formulation: "linear" | "nonlinear"
        use_lumped_model: True で集中モデル、False で可変特性モデル
        ftol, xtol, max_nfev: 非線形ソルバーの設定

    Returns:
        PressureEnergyResult
    """
    if formulation not in FORMULATIONS:
        raise ValueError(f"formulation は {FORMULATIONS} のいずれか: {formulation!r}")

    proximity = np.asarray(proximity, dtype=float)
    n = len(proximity)
    pressure = np.zeros(n)
    energy = np.zeros(n)
    failed = np.zeros(n, dtype=bool)

    idx = np.flatnonzero(proximity > 0.0)
    if idx.size == 0:
        return PressureEnergyResult(pressure, energy, failed)

    d = proximity[idx]
    A = np.asarray(area, dtype=float)[idx]
    hC, EC, vC = (np.asarray(x, dtype=float)[idx] for x in casting_props)
    hT, ET, vT = (np.asarray(x, dtype=float)[idx] for x in target_props)

    if use_lumped_model:
        E = 0.5 * (ET + EC)
        v = 0.5 * (vT + vC)
        h = hT + hC
        K = confined_compression_modulus(E, v)

        p_lin, e_lin = lumped_linear(d, A, K, h)
        if formulation == "linear":
            pressure[idx] = p_lin
            energy[idx] = e_lin
            return PressureEnergyResult(pressure, energy, failed)

        # 層厚さ以上の貫入は対数が定義できない
        ok = d < h
        p_nl = np.where(ok, 0.0, p_lin)
        e_nl = np.where(ok, 0.0, e_lin)
        p_nl[ok], e_nl[ok] = lumped_nonlinear(d[ok], A[ok], K[ok], h[ok])
        pressure[idx] = p_nl
        energy[idx] = e_nl
        failed[idx] = ~ok
        return PressureEnergyResult(pressure, energy, failed)

    KC = confined_compression_modulus(EC, vC)
    KT = confined_compression_modulus(ET, vT)
    kC = foundation_stiffness(EC, vC, hC)
    kT = foundation_stiffness(ET, vT, hT)

    p_lin, e_lin = variable_linear(d, A, kC, kT)
    if formulation == "linear":
        pressure[idx] = p_lin
        energy[idx] = e_lin
        return PressureEnergyResult(pressure, energy, failed)

    for m, i in enumerate(idx):
        sol = solve_variable_nonlinear_pressure(
            d[m],
            hC[m],
            hT[m],
            KC[m],
            KT[m],
            p_lin[m],
            ftol=ftol,
            xtol=xtol,
            max_nfev=max_nfev,
        )
        if not sol.converged:
            pressure[i] = p_lin[m]
            energy[i] = e_lin[m]
            failed[i] = True
            continue
        P = sol.pressure
        depthC = hC[m] * (1.0 - np.exp(-P / KC[m]))
        depthT = hT[m] * (1.0 - np.exp(-P / KT[m]))
        pressure[i] = P
        energy[i] = _log_layer_energy(A[m], KC[m], depthC, hC[m]) + _log_layer_energy(
            A[m], KT[m], depthT, hT[m]
        )

    return PressureEnergyResult(pressure, energy, failed)


def triangle_pressure_energy(
    proximity: float,
    area: float,
    casting: tuple[float, float, float],
    target: tuple[float, float, float],
    *,
    formulation: str = "linear",
    use_lumped_model: bool = True,
) -> tuple[float, float]:
    """1 三角形の (pressure, energy) を返す（compute_pressure_energy のスカラー版）.

    Args:
        proximity: 近接距離
        area: 三角形面積
        casting: (h, E, ν) casting 側
        target: (h, E, ν) target 側
    """
    res = compute_pressure_energy(
        np.array([proximity]),
        np.array([area]),
        tuple(np.array([x]) for x in casting),
        tuple(np.array([x]) for x in target),
        formulation=formulation,
        use_lumped_model=use_lumped_model,
    )
    return float(res.pressure[0]), float(res.potential_energy[0])
