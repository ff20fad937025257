"""関節面（軟骨）弾性基礎接触モジュール.

モジュール構成:
- detection: 時間コヒーレンス付きレイキャストによる近接距離計算
- nonlinear: 可変特性・非線形モデルの圧力ソルバー（Levenberg–Marquardt）
- law_normal: 弾性基礎モデルの圧力・ひずみエネルギー（4 定式化）
- statistics: 三角形接触力・全体/領域統計
- pair: 接触ペア・接触設定
- force: ステージ付きキャッシュで同期した接触力エンジン
- history: 軌道に沿った接触結果の時系列
"""

from efcontact.contact.detection import NO_CONTACT, cast_triangle_ray, detect_mesh_proximity
from efcontact.contact.force import ArticularContactForce
from efcontact.contact.history import ContactFrame, ContactHistory
from efcontact.contact.law_normal import (
    compute_pressure_energy,
    lumped_linear,
    lumped_nonlinear,
    triangle_pressure_energy,
    variable_linear,
)
from efcontact.contact.nonlinear import (
    nonlinear_pressure_residual,
    solve_variable_nonlinear_pressure,
)
from efcontact.contact.pair import CASTING, SIDES, TARGET, ContactConfig, ContactPair
from efcontact.contact.statistics import (
    ContactStats,
    compute_contact_stats,
    compute_regional_stats,
    compute_triangle_forces,
)

__all__ = [
    "ArticularContactForce",
    "CASTING",
    "ContactConfig",
    "ContactFrame",
    "ContactHistory",
    "ContactPair",
    "ContactStats",
    "NO_CONTACT",
    "SIDES",
    "TARGET",
    "cast_triangle_ray",
    "compute_contact_stats",
    "compute_pressure_energy",
    "compute_regional_stats",
    "compute_triangle_forces",
    "detect_mesh_proximity",
    "lumped_linear",
    "lumped_nonlinear",
    "nonlinear_pressure_residual",
    "solve_variable_nonlinear_pressure",
    "triangle_pressure_energy",
    "variable_linear",
]
