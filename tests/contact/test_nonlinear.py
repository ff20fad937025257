"""可変特性・非線形圧力ソルバー（Levenberg–Marquardt）のテスト."""

from __future__ import annotations

import numpy as np
import pytest

from efcontact.contact.nonlinear import (
    nonlinear_pressure_derivative,
    nonlinear_pressure_residual,
    solve_variable_nonlinear_pressure,
)
from efcontact.materials.elastic import confined_compression_modulus

H1, H2 = 0.002, 0.003
K1 = confined_compression_modulus(10.0e6, 0.45)
K2 = confined_compression_modulus(4.0e6, 0.40)


def _proximity_for(P: float) -> float:
    return H1 * (1.0 - np.exp(-P / K1)) + H2 * (1.0 - np.exp(-P / K2))


def _linear_guess(d: float) -> float:
    k1, k2 = K1 / H1, K2 / H2
    return k1 * k2 / (k1 + k2) * d


class TestResidual:
    def test_zero_at_solution(self):
        P = 0.3 * K1
        assert nonlinear_pressure_residual(P, _proximity_for(P), H1, H2, K1, K2) == pytest.approx(
            0.0, abs=1e-15
        )

    def test_derivative_matches_finite_difference(self):
        P, d, eps = 0.2 * K1, 0.001, 1.0
        fd = (
            nonlinear_pressure_residual(P + eps, d, H1, H2, K1, K2)
            - nonlinear_pressure_residual(P - eps, d, H1, H2, K1, K2)
        ) / (2 * eps)
        assert nonlinear_pressure_derivative(P, H1, H2, K1, K2) == pytest.approx(fd, rel=1e-6)

    def test_derivative_positive(self):
        for P in (0.0, 1e5, 1e7, 1e9):
            assert nonlinear_pressure_derivative(P, H1, H2, K1, K2) > 0.0


class TestSolveVariableNonlinearPressure:
    """非線形適合条件の求解."""

    @pytest.mark.parametrize("ratio", [0.01, 0.3, 1.0, 2.5])
    def test_recovers_pressure(self, ratio):
        P_true = ratio * K1
        d = _proximity_for(P_true)
        sol = solve_variable_nonlinear_pressure(
            d, H1, H2, K1, K2, _linear_guess(d), ftol=1e-12, xtol=1e-12
        )
        assert sol.converged
        assert sol.pressure == pytest.approx(P_true, rel=1e-6)
        assert sol.nfev >= 1

    def test_default_tolerance(self):
        P_true = 0.5 * K1
        d = _proximity_for(P_true)
        sol = solve_variable_nonlinear_pressure(d, H1, H2, K1, K2, _linear_guess(d))
        assert sol.converged
        assert sol.pressure == pytest.approx(P_true, rel=1e-3)

    def test_nonlinear_stiffer_than_linear(self):
        """同じ近接距離で非線形圧力は線形圧力以上."""
        d = 0.5 * (H1 + H2)
        guess = _linear_guess(d)
        sol = solve_variable_nonlinear_pressure(d, H1, H2, K1, K2, guess)
        assert sol.converged
        assert sol.pressure > guess

    def test_equal_layers_closed_form(self):
        """同一特性の 2 層では P = -K ln(1 - d / (2h))."""
        h, K = 0.002, K1
        d = 0.0025
        sol = solve_variable_nonlinear_pressure(
            d, h, h, K, K, K * d / (2 * h), ftol=1e-12, xtol=1e-12
        )
        assert sol.pressure == pytest.approx(-K * np.log(1.0 - d / (2 * h)), rel=1e-8)

    def test_proximity_beyond_total_thickness(self):
        """d >= h1 + h2 は解なし → 初期値を返し非収束."""
        d = H1 + H2
        sol = solve_variable_nonlinear_pressure(d, H1, H2, K1, K2, 123.0)
        assert not sol.converged
        assert sol.pressure == 123.0
        assert sol.nfev == 0

    def test_evaluation_limit(self):
        """評価回数上限に達した場合は初期値を返し非収束."""
        d = 0.95 * (H1 + H2)
        guess = _linear_guess(d)
        sol = solve_variable_nonlinear_pressure(d, H1, H2, K1, K2, guess, max_nfev=1)
        assert not sol.converged
        assert sol.pressure == guess
