from __future__ import annotations

import numpy as np

from efcontact.core.errors import ContactConfigError


def confined_compression_modulus(E, nu):
    """拘束圧縮（一軸ひずみ）弾性係数 K = λ + 2μ を返す.

    K = (1 - ν) E / ((1 + ν)(1 - 2ν))

    弾性基礎モデルでは各層を側方拘束されたばね床とみなし、
    圧力 p と厚さ方向ひずみ ε の関係を p = K ε とする。

    Args:
        E: ヤング率（スカラーまたは配列）
        nu: ポアソン比（スカラーまたは配列）

    Returns:
        K: 拘束圧縮弾性係数（入力と同形状）
    """
    E = np.asarray(E, dtype=float)
    nu = np.asarray(nu, dtype=float)
    lam = E * nu / ((1.0 + nu) * (1.0 - 2.0 * nu))
    mu = E / (2.0 * (1.0 + nu))
    K = lam + 2.0 * mu
    return float(K) if K.ndim == 0 else K


def foundation_stiffness(E, nu, h):
    """弾性基礎の単位面積あたりばね剛性 k = K / h を返す."""
    return confined_compression_modulus(E, nu) / np.asarray(h, dtype=float)


def validate_elastic_properties(
    thickness: np.ndarray,
    elastic_modulus: np.ndarray,
    poissons_ratio: np.ndarray,
    *,
    label: str = "mesh",
) -> None:
    """材料特性が物理的な定義域にあるか検証する.

    Raises:
        ContactConfigError: h <= 0, E <= 0, ν ∉ (-1, 0.5) の場合
    """
    h = np.asarray(thickness, dtype=float)
    E = np.asarray(elastic_modulus, dtype=float)
    nu = np.asarray(poissons_ratio, dtype=float)

    if not np.all(np.isfinite(h)) or np.any(h <= 0.0):
        raise ContactConfigError(f"{label}: thickness は正の値が必要: min={np.min(h)}")
    if not np.all(np.isfinite(E)) or np.any(E <= 0.0):
        raise ContactConfigError(f"{label}: elastic_modulus は正の値が必要: min={np.min(E)}")
    if not np.all(np.isfinite(nu)) or np.any(nu <= -1.0) or np.any(nu >= 0.5):
        raise ContactConfigError(
            f"{label}: poissons_ratio は (-1, 0.5) の範囲が必要: "
            f"min={np.min(nu)}, max={np.max(nu)}"
        )
