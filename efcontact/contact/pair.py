"""接触ペアの定義と接触設定.

casting / target の 2 メッシュと、近接距離ウィンドウ・定式化などの
設定をまとめる。設定はセットアップ時に検証され、以後不変。
"""

from __future__ import annotations

from dataclasses import dataclass, field

from efcontact.contact.law_normal import FORMULATIONS
from efcontact.contact.nonlinear import DEFAULT_FTOL, DEFAULT_MAX_NFEV, DEFAULT_XTOL
from efcontact.core.errors import ContactConfigError
from efcontact.mesh.contact_mesh import ContactMesh

CASTING = "casting"
TARGET = "target"
SIDES = (CASTING, TARGET)


@dataclass(frozen=True)
class ContactConfig:
    """弾性基礎接触の設定.

    Attributes:
        min_proximity: 近接距離の下限（>= 0）
        max_proximity: 近接距離の上限（> min_proximity）
        formulation: 弾性基礎の定式化 "linear" | "nonlinear"
        use_lumped_model: True で集中モデル（平均特性の 1 層）、
            False で可変特性モデル（2 層直列）
        flip_meshes: True で target 側も評価する（casting と役割を入れ替えた
            レイキャスト）。作用力には使用しない
        nonlinear_ftol: 非線形ソルバーの残差収束判定値
        nonlinear_xtol: 非線形ソルバーのステップ収束判定値
        nonlinear_max_nfev: 非線形ソルバーの残差評価回数上限
        verbose: フレームごとの診断情報を表示する
    """

    min_proximity: float = 0.0
    max_proximity: float = 0.01
    formulation: str = "linear"
    use_lumped_model: bool = True
    flip_meshes: bool = False
    nonlinear_ftol: float = DEFAULT_FTOL
    nonlinear_xtol: float = DEFAULT_XTOL
    nonlinear_max_nfev: int = DEFAULT_MAX_NFEV
    verbose: bool = False

    def __post_init__(self) -> None:
        if self.min_proximity < 0.0:
            raise ContactConfigError(f"min_proximity は 0 以上が必要: {self.min_proximity}")
        if self.max_proximity <= self.min_proximity:
            raise ContactConfigError(
                "max_proximity > min_proximity が必要: "
                f"min={self.min_proximity}, max={self.max_proximity}"
            )
        if self.formulation not in FORMULATIONS:
            raise ContactConfigError(
                f"formulation は {FORMULATIONS} のいずれか: {self.formulation!r}"
            )
        if self.nonlinear_ftol <= 0.0 or self.nonlinear_xtol <= 0.0:
            raise ContactConfigError("nonlinear_ftol, nonlinear_xtol は正の値が必要")
        if self.nonlinear_max_nfev < 1:
            raise ContactConfigError(
                f"nonlinear_max_nfev は 1 以上が必要: {self.nonlinear_max_nfev}"
            )


@dataclass
class ContactPair:
    """接触ペア（casting メッシュ → target メッシュ）.

    Attributes:
        casting: レイを発するメッシュ（作用力の評価側）
        target: レイを受けるメッシュ
        config: 接触設定
        name: ペア名（記録ラベルの接頭辞）
    """

    casting: ContactMesh
    target: ContactMesh
    config: ContactConfig = field(default_factory=ContactConfig)
    name: str = "contact"

    def __post_init__(self) -> None:
        for side, mesh in ((CASTING, self.casting), (TARGET, self.target)):
            if not isinstance(mesh, ContactMesh):
                raise ContactConfigError(f"{side} は ContactMesh が必要: {type(mesh).__name__}")
        if self.casting is self.target:
            raise ContactConfigError("casting と target に同じメッシュは指定できません")

    def meshes(self, side: str) -> tuple[ContactMesh, ContactMesh]:
        """side から見た (レイを発するメッシュ, レイを受けるメッシュ)."""
        if side == CASTING:
            return self.casting, self.target
        if side == TARGET:
            return self.target, self.casting
        raise ValueError(f"side は {SIDES} のいずれか: {side!r}")
