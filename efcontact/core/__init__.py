"""efcontact.core - 状態・キャッシュ・戻り値型・例外.

  Stage / SimulationState / StagedCache: ステージ付きキャッシュ
  *Result (NamedTuple)                  : 公開関数の戻り値
  ContactConfigError / StaleCacheError  : 例外
"""

from efcontact.core.errors import (
    ContactConfigError,
    NonlinearConvergenceWarning,
    StaleCacheError,
)
from efcontact.core.results import (
    ContactLoads,
    NonlinearSolveResult,
    PressureEnergyResult,
    ProximityResult,
    SideDiagnostics,
    TriangleContactResult,
)
from efcontact.core.state import SimulationState, Stage, StagedCache

__all__ = [
    "ContactConfigError",
    "NonlinearConvergenceWarning",
    "StaleCacheError",
    "ContactLoads",
    "NonlinearSolveResult",
    "PressureEnergyResult",
    "ProximityResult",
    "SideDiagnostics",
    "TriangleContactResult",
    "SimulationState",
    "Stage",
    "StagedCache",
]
