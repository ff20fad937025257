"""軌道に沿った接触結果の時系列.

フレームごとに casting 側の全体統計と診断情報を記録し、
時系列アクセサとサマリーを提供する。
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np

from efcontact.contact.force import ArticularContactForce
from efcontact.contact.pair import CASTING
from efcontact.contact.statistics import ContactStats
from efcontact.core.results import SideDiagnostics
from efcontact.core.state import SimulationState


@dataclass
class ContactFrame:
    """1 フレームの記録.

    Attributes:
        time: 時刻
        stats: casting 側の全体統計
        diagnostics: casting 側の診断情報
        potential_energy: casting 側のひずみエネルギー総和
    """

    time: float
    stats: ContactStats
    diagnostics: SideDiagnostics
    potential_energy: float


@dataclass
class ContactHistory:
    """接触結果の時系列."""

    frames: list[ContactFrame] = field(default_factory=list)

    def record(self, engine: ArticularContactForce, state: SimulationState) -> ContactFrame:
        """engine を state で評価し、結果を追加する."""
        frame = ContactFrame(
            time=float(state.time),
            stats=engine.stats(state, CASTING),
            diagnostics=engine.diagnostics(state)[CASTING],
            potential_energy=engine.potential_energy(state),
        )
        self.frames.append(frame)
        return frame

    @property
    def n_frames(self) -> int:
        return len(self.frames)

    def time_series(self) -> np.ndarray:
        return np.array([f.time for f in self.frames])

    def contact_area_series(self) -> np.ndarray:
        return np.array([f.stats.contact_area for f in self.frames])

    def max_pressure_series(self) -> np.ndarray:
        return np.array([f.stats.max_pressure for f in self.frames])

    def force_series(self) -> np.ndarray:
        """(n_frames, 3) 合力."""
        return np.array([f.stats.contact_force for f in self.frames]).reshape(-1, 3)

    def energy_series(self) -> np.ndarray:
        return np.array([f.potential_energy for f in self.frames])

    def coherence_ratio_series(self) -> np.ndarray:
        """(same + neighbor) / active の時系列（active = 0 のフレームは nan）."""
        return np.array([f.diagnostics.coherence_ratio for f in self.frames])

    def solver_failure_count_series(self) -> np.ndarray:
        return np.array([len(f.diagnostics.solver_failed_triangles) for f in self.frames])

    def summary(self) -> dict:
        """時系列のサマリー."""
        if not self.frames:
            return {"n_frames": 0}
        force_mag = np.linalg.norm(self.force_series(), axis=1)
        coh = self.coherence_ratio_series()
        return {
            "n_frames": self.n_frames,
            "t_start": float(self.frames[0].time),
            "t_end": float(self.frames[-1].time),
            "max_contact_area": float(np.max(self.contact_area_series())),
            "max_pressure": float(np.max(self.max_pressure_series())),
            "max_force": float(np.max(force_mag)),
            "mean_coherence_ratio": float(np.nanmean(coh)) if np.any(~np.isnan(coh)) else None,
            "total_solver_failures": int(np.sum(self.solver_failure_count_series())),
            "n_contact_frames": int(sum(1 for f in self.frames if f.stats.in_contact)),
        }
