"""弾性基礎モデルによる関節面接触力（2 メッシュ間）.

ContactPair の casting メッシュから target メッシュへレイキャストして
近接距離を求め、弾性基礎モデルで圧力・エネルギー・三角形力を計算し、
全体/領域統計と合力・合モーメントを返す。

計算はステージ付きキャッシュで状態ごとにメモ化される:

    POSITION : detect_mesh_proximity        → proximity, contacting_triangle, カウント
    DYNAMICS : compute_pressure_energy      → pressure, potential_energy, force, solver_failed
    REPORT   : compute_contact_stats        → 全体 + 6 領域の ContactStats

target 側（flip_meshes=True のときのみ）は役割を入れ替えて同じ計算を行う。
作用力（force_and_moment, body_loads）は casting 側のみから求める。

参考: Smith, Won Choi, Negrut, Thelen (2018), Efficient computation of
cartilage contact pressures within dynamic simulations of movement.
"""

from __future__ import annotations

import warnings

import numpy as np

from efcontact.contact.detection import detect_mesh_proximity
from efcontact.contact.law_normal import compute_pressure_energy
from efcontact.contact.pair import CASTING, SIDES, TARGET, ContactConfig, ContactPair
from efcontact.contact.statistics import (
    ContactStats,
    compute_contact_stats,
    compute_regional_stats,
    compute_triangle_forces,
)
from efcontact.core.errors import NonlinearConvergenceWarning
from efcontact.core.results import (
    ContactLoads,
    SideDiagnostics,
    TriangleContactResult,
)
from efcontact.core.state import SimulationState, Stage, StagedCache
from efcontact.math.transform import RigidTransform
from efcontact.mesh.regions import N_REGIONS

_STAT_LABELS = (
    "contact_area",
    "mean_proximity",
    "max_proximity",
    "center_of_proximity_x",
    "center_of_proximity_y",
    "center_of_proximity_z",
    "mean_pressure",
    "max_pressure",
    "center_of_pressure_x",
    "center_of_pressure_y",
    "center_of_pressure_z",
    "contact_force_x",
    "contact_force_y",
    "contact_force_z",
    "contact_moment_x",
    "contact_moment_y",
    "contact_moment_z",
)


class ArticularContactForce:
    """2 メッシュ間の弾性基礎接触力.

    Args:
        pair: 接触ペア（casting, target, config）
        cache: ステージ付きキャッシュ（None なら新規作成）

    Examples:
        >>> engine = ArticularContactForce(ContactPair(casting, target))  # doctest: +SKIP
        >>> state = SimulationState(time=0.0, transform=X_TC)  # doctest: +SKIP
        >>> force, moment = engine.force_and_moment(state)  # doctest: +SKIP
    """

    def __init__(self, pair: ContactPair, cache: StagedCache | None = None) -> None:
        self.pair = pair
        self.cache = cache if cache is not None else StagedCache()

    @property
    def config(self) -> ContactConfig:
        return self.pair.config

    @property
    def name(self) -> str:
        return self.pair.name

    def enabled_sides(self) -> tuple[str, ...]:
        """評価対象の side（target は flip_meshes=True のときのみ）."""
        return SIDES if self.config.flip_meshes else (CASTING,)

    def _check_side(self, side: str) -> None:
        if side not in SIDES:
            raise ValueError(f"side は {SIDES} のいずれか: {side!r}")
        if side == TARGET and not self.config.flip_meshes:
            raise ValueError("target 側の評価には ContactConfig(flip_meshes=True) が必要")

    @staticmethod
    def _side_transform(side: str, state: SimulationState) -> RigidTransform:
        """side のレイ発信メッシュ座標系 → 受信メッシュ座標系の変換."""
        if side == CASTING:
            return state.transform
        return state.transform.inverse()

    # -- ステージ計算 ------------------------------------------------------

    def _realize_position(self, side: str, state: SimulationState) -> None:
        self.cache.sync(state)
        if self.cache.is_valid(side, Stage.POSITION):
            return

        mesh, other = self.pair.meshes(side)
        previous = self.cache.carried(side, mesh.n_triangles)
        res = detect_mesh_proximity(
            mesh,
            other,
            self._side_transform(side, state),
            previous,
            self.config.min_proximity,
            self.config.max_proximity,
        )

        for name, value in res._asdict().items():
            self.cache.put(side, Stage.POSITION, name, value)
        self.cache.commit(side, res.contacting_triangle)
        self.cache.mark_valid(side, Stage.POSITION)

        if self.config.verbose:
            print(
                f"  [{self.name}.{side}] t={state.time:.6g}: "
                f"active={res.n_active}, contacting={res.n_contacting} "
                f"(same={res.n_same}, neighbor={res.n_neighbor}, different={res.n_different})"
            )

    def _realize_dynamics(self, side: str, state: SimulationState) -> None:
        self._realize_position(side, state)
        if self.cache.is_valid(side, Stage.DYNAMICS):
            return

        mesh, other = self.pair.meshes(side)
        proximity = self.cache.get(side, Stage.POSITION, "proximity")
        contacting = self.cache.get(side, Stage.POSITION, "contacting_triangle")

        # 相手側の材料特性は今フレームで交差した三角形から取る
        j = np.where(contacting >= 0, contacting, 0)
        cfg = self.config
        res = compute_pressure_energy(
            proximity,
            mesh.triangle_areas,
            (mesh.thickness, mesh.elastic_modulus, mesh.poissons_ratio),
            (other.thickness[j], other.elastic_modulus[j], other.poissons_ratio[j]),
            formulation=cfg.formulation,
            use_lumped_model=cfg.use_lumped_model,
            ftol=cfg.nonlinear_ftol,
            xtol=cfg.nonlinear_xtol,
            max_nfev=cfg.nonlinear_max_nfev,
        )
        force = compute_triangle_forces(res.pressure, mesh.triangle_areas, mesh.triangle_normals)

        n_failed = int(np.count_nonzero(res.solver_failed))
        if n_failed:
            warnings.warn(
                f"{self.name}.{side} t={state.time:.6g}: 非線形圧力が {n_failed} 三角形で"
                "収束しませんでした（線形モデルの値で代用）",
                NonlinearConvergenceWarning,
                stacklevel=3,
            )
            if cfg.verbose:
                print(f"  [{self.name}.{side}] nonlinear solve failed: {n_failed} triangles")

        self.cache.put(side, Stage.DYNAMICS, "pressure", res.pressure)
        self.cache.put(side, Stage.DYNAMICS, "potential_energy", res.potential_energy)
        self.cache.put(side, Stage.DYNAMICS, "solver_failed", res.solver_failed)
        self.cache.put(side, Stage.DYNAMICS, "force", force)
        self.cache.mark_valid(side, Stage.DYNAMICS)

    def _realize_report(self, side: str, state: SimulationState) -> None:
        self._realize_dynamics(side, state)
        if self.cache.is_valid(side, Stage.REPORT):
            return

        mesh, _ = self.pair.meshes(side)
        proximity = self.cache.get(side, Stage.POSITION, "proximity")
        pressure = self.cache.get(side, Stage.DYNAMICS, "pressure")

        self.cache.put(
            side, Stage.REPORT, "total", compute_contact_stats(mesh, proximity, pressure)
        )
        self.cache.put(
            side, Stage.REPORT, "regional", compute_regional_stats(mesh, proximity, pressure)
        )
        self.cache.mark_valid(side, Stage.REPORT)

    # -- 公開 API ----------------------------------------------------------

    def evaluate(self, state: SimulationState) -> dict[str, TriangleContactResult]:
        """三角形ごとの接触結果を評価する.

        Returns:
            {side: TriangleContactResult}。casting は常に、target は flip_meshes 時のみ
        """
        out = {}
        for side in self.enabled_sides():
            self._realize_dynamics(side, state)
            out[side] = TriangleContactResult(
                proximity=self.cache.get(side, Stage.POSITION, "proximity"),
                pressure=self.cache.get(side, Stage.DYNAMICS, "pressure"),
                potential_energy=self.cache.get(side, Stage.DYNAMICS, "potential_energy"),
                force=self.cache.get(side, Stage.DYNAMICS, "force"),
                contacting_triangle=self.cache.get(side, Stage.POSITION, "contacting_triangle"),
                solver_failed=self.cache.get(side, Stage.DYNAMICS, "solver_failed"),
            )
        return out

    def stats(
        self,
        state: SimulationState,
        side: str = CASTING,
        region: int | None = None,
    ) -> ContactStats:
        """接触統計量.

        Args:
            state: シミュレーション状態
            side: "casting" | "target"（target は flip_meshes 時のみ）
            region: None で全体、0..5 で領域

        Returns:
            ContactStats（メッシュ局所座標系）
        """
        self._check_side(side)
        if region is not None and not 0 <= region < N_REGIONS:
            raise ValueError(f"region は 0..{N_REGIONS - 1} または None: {region}")
        self._realize_report(side, state)
        if region is None:
            return self.cache.get(side, Stage.REPORT, "total")
        return self.cache.get(side, Stage.REPORT, "regional")[region]

    def regional_stats(self, state: SimulationState, side: str = CASTING) -> list[ContactStats]:
        """6 領域すべての接触統計量."""
        self._check_side(side)
        self._realize_report(side, state)
        return list(self.cache.get(side, Stage.REPORT, "regional"))

    def force_and_moment(
        self, state: SimulationState, *, in_ground: bool = False
    ) -> tuple[np.ndarray, np.ndarray]:
        """casting 側の合力と合モーメント Σ F × c.

        Args:
            state: シミュレーション状態
            in_ground: True で地面座標系（state.casting_to_ground が必要）、
                False で casting 座標系

        Returns:
            (force (3,), moment (3,))
        """
        self._realize_dynamics(CASTING, state)
        force = self.cache.get(CASTING, Stage.DYNAMICS, "force")
        centers = self.pair.casting.triangle_centers
        if in_ground:
            X = state.casting_to_ground
            if X is None:
                raise ValueError("in_ground=True には state.casting_to_ground が必要")
            force = X.xform_vec_to_base(force)
            centers = X.shift_station_to_base(centers)
        return force.sum(axis=0), np.cross(force, centers).sum(axis=0)

    def body_loads(self, state: SimulationState) -> ContactLoads:
        """ホストが各剛体に作用させる三角形ごとの力.

        casting には F_i を casting 三角形中心に、target には -F_i を同じ点
        （target 座標系で表現）に作用させる。
        """
        self._realize_dynamics(CASTING, state)
        force = self.cache.get(CASTING, Stage.DYNAMICS, "force")
        centers = self.pair.casting.triangle_centers
        X = state.transform
        return ContactLoads(
            casting_points=centers,
            casting_forces=force,
            target_points=X.shift_station_to_base(centers),
            target_forces=-X.xform_vec_to_base(force),
        )

    def potential_energy(self, state: SimulationState) -> float:
        """casting 側のひずみエネルギー総和."""
        self._realize_dynamics(CASTING, state)
        return float(np.sum(self.cache.get(CASTING, Stage.DYNAMICS, "potential_energy")))

    def diagnostics(self, state: SimulationState) -> dict[str, SideDiagnostics]:
        """ヒット階層カウントと非線形ソルバー非収束三角形（side ごと）."""
        out = {}
        for side in self.enabled_sides():
            self._realize_dynamics(side, state)
            failed = self.cache.get(side, Stage.DYNAMICS, "solver_failed")
            out[side] = SideDiagnostics(
                n_active=self.cache.get(side, Stage.POSITION, "n_active"),
                n_contacting=self.cache.get(side, Stage.POSITION, "n_contacting"),
                n_same=self.cache.get(side, Stage.POSITION, "n_same"),
                n_neighbor=self.cache.get(side, Stage.POSITION, "n_neighbor"),
                n_different=self.cache.get(side, Stage.POSITION, "n_different"),
                solver_failed_triangles=np.flatnonzero(failed),
            )
        return out

    def previous_contacting_triangle(self, side: str = CASTING) -> np.ndarray:
        """直近に確定した接触相手三角形（次フレームの探索初期値）."""
        self._check_side(side)
        mesh, _ = self.pair.meshes(side)
        if self.cache.is_valid(side, Stage.POSITION):
            return self.cache.get(side, Stage.POSITION, "contacting_triangle").copy()
        return self.cache.carried(side, mesh.n_triangles)

    def reset(self) -> None:
        """キャッシュと時間コヒーレンス履歴を破棄する."""
        self.cache.reset()

    # -- 記録 --------------------------------------------------------------

    def record_labels(self) -> list[str]:
        """記録列のラベル（casting 全体統計 + 領域ごとの接触力）."""
        prefix = f"{self.name}.casting"
        labels = [f"{prefix}.total.{s}" for s in _STAT_LABELS]
        for r in range(N_REGIONS):
            labels.extend(f"{prefix}.regional.contact_force_{r}_{ax}" for ax in "xyz")
        return labels

    def record_values(self, state: SimulationState) -> list[float]:
        """record_labels に対応する値."""
        s = self.stats(state, CASTING)
        values = [s.contact_area, s.mean_proximity, s.max_proximity]
        values.extend(s.center_of_proximity.tolist())
        values.extend([s.mean_pressure, s.max_pressure])
        values.extend(s.center_of_pressure.tolist())
        values.extend(s.contact_force.tolist())
        values.extend(s.contact_moment.tolist())
        for reg in self.regional_stats(state, CASTING):
            values.extend(reg.contact_force.tolist())
        return [float(v) for v in values]
