"""可変特性・非線形弾性基礎モデルの圧力ソルバー.

2 層直列の非線形ばね床で、両層の圧力が等しい条件から圧力 P を求める。
各層 i は p = -k_i ln(1 - d_i / h_i) に従うので d_i = h_i (1 - e^{-P/k_i})。
層の変形の和が近接距離 d_c に等しいことから:

    f(P) = h1 (1 - e^{-P/k1}) + h2 (1 - e^{-P/k2}) - d_c = 0

k_i は拘束圧縮弾性係数 (1-ν_i)E_i / ((1+ν_i)(1-2ν_i))。

Levenberg–Marquardt 法（scipy.optimize.least_squares, method="lm", MINPACK）で解く。
初期値は線形直列ばねモデルの圧力（小変形で非線形解に漸近）。
d_c >= h1 + h2 では解が存在しないため非収束として扱う。
"""

from __future__ import annotations

import numpy as np
from scipy.optimize import least_squares

from efcontact.core.results import NonlinearSolveResult

DEFAULT_FTOL = 1e-4
DEFAULT_XTOL = 1e-4
DEFAULT_MAX_NFEV = 500


def nonlinear_pressure_residual(
    P: float, proximity: float, h1: float, h2: float, k1: float, k2: float
) -> float:
    """適合条件の残差 f(P)."""
    return h1 * (1.0 - np.exp(-P / k1)) + h2 * (1.0 - np.exp(-P / k2)) - proximity


def nonlinear_pressure_derivative(P: float, h1: float, h2: float, k1: float, k2: float) -> float:
    """df/dP = (h1/k1) e^{-P/k1} + (h2/k2) e^{-P/k2}（常に正）."""
    return (h1 / k1) * np.exp(-P / k1) + (h2 / k2) * np.exp(-P / k2)


def solve_variable_nonlinear_pressure(
    proximity: float,
    h1: float,
    h2: float,
    k1: float,
    k2: float,
    initial_guess: float,
    *,
    ftol: float = DEFAULT_FTOL,
    xtol: float = DEFAULT_XTOL,
    max_nfev: int = DEFAULT_MAX_NFEV,
) -> NonlinearSolveResult:
    """非線形適合条件を P について解く.

    再入可能な純関数（三角形ごとに独立に呼べる）。

    Args:
        proximity: 近接距離 d_c (> 0)
        h1: casting 層厚さ
        h2: target 層厚さ
        k1: casting 拘束圧縮弾性係数
        k2: target 拘束圧縮弾性係数
        initial_guess: 初期値（線形モデルの圧力）
        ftol: 残差の相対収束判定値
        xtol: ステップの相対収束判定値
        max_nfev: 残差評価回数の上限

    Returns:
        NonlinearSolveResult。非収束時は pressure = initial_guess, converged = False
    """
    if proximity >= h1 + h2:
        return NonlinearSolveResult(
            pressure=float(initial_guess),
            converged=False,
            nfev=0,
            residual=float(nonlinear_pressure_residual(initial_guess, proximity, h1, h2, k1, k2)),
        )

    def fun(x: np.ndarray) -> np.ndarray:
        return np.array([nonlinear_pressure_residual(x[0], proximity, h1, h2, k1, k2)])

    def jac(x: np.ndarray) -> np.ndarray:
        return np.array([[nonlinear_pressure_derivative(x[0], h1, h2, k1, k2)]])

    with np.errstate(over="ignore"):
        sol = least_squares(
            fun,
            x0=np.array([float(initial_guess)]),
            jac=jac,
            method="lm",
            ftol=ftol,
            xtol=xtol,
            x_scale="jac",
            max_nfev=max_nfev,
        )

    pressure = float(sol.x[0])
    converged = bool(sol.status > 0) and np.isfinite(pressure) and pressure > 0.0
    if not converged:
        return NonlinearSolveResult(
            pressure=float(initial_guess),
            converged=False,
            nfev=int(sol.nfev),
            residual=float(sol.fun[0]),
        )
    return NonlinearSolveResult(
        pressure=pressure,
        converged=True,
        nfev=int(sol.nfev),
        residual=float(sol.fun[0]),
    )
