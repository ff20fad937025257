"""剛体変換（メッシュ座標系間の変換）モジュール.

casting メッシュ座標系から target メッシュ座標系への剛体変換を表現する。
回転は四元数または回転行列で与える。

規約:
  q = [w, x, y, z] = w + x·i + y·j + z·k （単位四元数が回転を表す）

  X_TC = (R, p):
    x_T = R · x_C + p     （点: shift_station_to_base）
    v_T = R · v_C         （ベクトル: xform_vec_to_base）
"""

from __future__ import annotations

from dataclasses import dataclass, field

import numpy as np


def quat_identity() -> np.ndarray:
    """恒等回転 [1, 0, 0, 0]."""
    return np.array([1.0, 0.0, 0.0, 0.0])


def quat_normalize(q: np.ndarray) -> np.ndarray:
    """単位四元数に正規化する.

    Raises:
        ValueError: ノルムがほぼゼロの場合
    """
    q = np.asarray(q, dtype=float)
    n = float(np.linalg.norm(q))
    if n < 1e-15:
        raise ValueError("四元数のノルムがほぼゼロのため正規化できません")
    return q / n


def quat_from_axis_angle(axis: np.ndarray, angle: float) -> np.ndarray:
    """回転軸まわりに angle [rad] 回転する単位四元数 [cos(θ/2), sin(θ/2) n].

    軸がゼロベクトルなら恒等回転。
    """
    axis = np.asarray(axis, dtype=float)
    n = float(np.linalg.norm(axis))
    if n < 1e-15:
        return quat_identity()
    return np.concatenate([[np.cos(0.5 * angle)], np.sin(0.5 * angle) * axis / n])


def _skew(v: np.ndarray) -> np.ndarray:
    return np.array(
        [
            [0.0, -v[2], v[1]],
            [v[2], 0.0, -v[0]],
            [-v[1], v[0], 0.0],
        ]
    )


def quat_to_rotation_matrix(q: np.ndarray) -> np.ndarray:
    """単位四元数 → 回転行列.

    R = I + 2w [v]× + 2 [v]×²   (q = [w, v])
    """
    w = float(q[0])
    S = _skew(np.asarray(q[1:], dtype=float))
    return np.eye(3) + 2.0 * w * S + 2.0 * (S @ S)


def rotation_matrix_to_quat(R: np.ndarray) -> np.ndarray:
    """回転行列 → 単位四元数（w >= 0）.

    4 成分の 2 乗 4w², 4x², 4y², 4z² を対角成分から求め、最大のものを
    基準に残り 3 成分を非対角成分から計算する（数値的に安定）。
    """
    R = np.asarray(R, dtype=float)
    tr = np.trace(R)
    sq = np.array(
        [
            1.0 + tr,
            1.0 + 2.0 * R[0, 0] - tr,
            1.0 + 2.0 * R[1, 1] - tr,
            1.0 + 2.0 * R[2, 2] - tr,
        ]
    )
    k = int(np.argmax(sq))
    s = 2.0 * np.sqrt(sq[k])

    # 非対角成分の和・差: 4wx, 4wy, 4wz, 4xy, 4xz, 4yz
    wx = R[2, 1] - R[1, 2]
    wy = R[0, 2] - R[2, 0]
    wz = R[1, 0] - R[0, 1]
    xy = R[0, 1] + R[1, 0]
    xz = R[0, 2] + R[2, 0]
    yz = R[1, 2] + R[2, 1]

    if k == 0:
        q = np.array([0.25 * s, wx / s, wy / s, wz / s])
    elif k == 1:
        q = np.array([wx / s, 0.25 * s, xy / s, xz / s])
    elif k == 2:
        q = np.array([wy / s, xy / s, 0.25 * s, yz / s])
    else:
        q = np.array([wz / s, xz / s, yz / s, 0.25 * s])

    if q[0] < 0.0:
        q = -q
    return quat_normalize(q)


@dataclass
class RigidTransform:
    """剛体変換 X = (R, p).

    Attributes:
        rotation: (3, 3) 回転行列
        translation: (3,) 並進ベクトル
    """

    rotation: np.ndarray = field(default_factory=lambda: np.eye(3))
    translation: np.ndarray = field(default_factory=lambda: np.zeros(3))

    def __post_init__(self) -> None:
        self.rotation = np.asarray(self.rotation, dtype=float)
        self.translation = np.asarray(self.translation, dtype=float)
        if self.rotation.shape != (3, 3):
            raise ValueError(f"rotation は (3,3) が必要。実際: {self.rotation.shape}")
        if self.translation.shape != (3,):
            raise ValueError(f"translation は (3,) が必要。実際: {self.translation.shape}")

    @classmethod
    def identity(cls) -> RigidTransform:
        """恒等変換."""
        return cls()

    @classmethod
    def from_quat(cls, q: np.ndarray, translation: np.ndarray | None = None) -> RigidTransform:
        """四元数と並進から生成する."""
        R = quat_to_rotation_matrix(quat_normalize(np.asarray(q, dtype=float)))
        p = np.zeros(3) if translation is None else translation
        return cls(rotation=R, translation=p)

    @classmethod
    def from_matrix(cls, T: np.ndarray) -> RigidTransform:
        """4x4 同次変換行列から生成する."""
        T = np.asarray(T, dtype=float)
        if T.shape != (4, 4):
            raise ValueError(f"同次変換行列は (4,4) が必要。実際: {T.shape}")
        return cls(rotation=T[:3, :3].copy(), translation=T[:3, 3].copy())

    def as_matrix(self) -> np.ndarray:
        """4x4 同次変換行列を返す."""
        T = np.eye(4)
        T[:3, :3] = self.rotation
        T[:3, 3] = self.translation
        return T

    @property
    def quaternion(self) -> np.ndarray:
        """回転部の単位四元数."""
        return rotation_matrix_to_quat(self.rotation)

    def shift_station_to_base(self, x: np.ndarray) -> np.ndarray:
        """点（station）を基底座標系へ変換: R·x + p.

        x は (3,) または (n, 3)。
        """
        return np.asarray(x, dtype=float) @ self.rotation.T + self.translation

    def xform_vec_to_base(self, v: np.ndarray) -> np.ndarray:
        """ベクトルを基底座標系へ回転: R·v（並進なし）."""
        return np.asarray(v, dtype=float) @ self.rotation.T

    def inverse(self) -> RigidTransform:
        """逆変換 X⁻¹ = (Rᵀ, -Rᵀp)."""
        Rt = self.rotation.T
        return RigidTransform(rotation=Rt.copy(), translation=-(Rt @ self.translation))

    def compose(self, other: RigidTransform) -> RigidTransform:
        """合成 self ∘ other（other を先に適用）."""
        return RigidTransform(
            rotation=self.rotation @ other.rotation,
            translation=self.rotation @ other.translation + self.translation,
        )

    def key(self) -> bytes:
        """キャッシュ識別用のバイト列."""
        return self.rotation.tobytes() + self.translation.tobytes()
