"""シミュレーション状態とステージ付きキャッシュ.

接触量を時間ステップ（状態）ごとにメモ化する。各キャッシュ値は
依存する最小のステージでタグ付けされる:

  POSITION : 近接距離・相手三角形・ヒット階層カウント（幾何のみに依存）
  DYNAMICS : 圧力・エネルギー・三角形力・ソルバー診断
  REPORT   : 全体/領域統計

状態キーが変わると全ステージが無効化される。ただし前フレームの
接触相手三角形（previous contacting triangle）だけは次の状態へ
引き継がれ、時間コヒーレンス探索の初期値となる。
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import numpy as np

from efcontact.core.errors import StaleCacheError
from efcontact.math.transform import RigidTransform


class Stage(IntEnum):
    """計算ステージ（値が大きいほど上流ステージに依存）."""

    POSITION = 1
    DYNAMICS = 2
    REPORT = 3


@dataclass
class SimulationState:
    """1 時刻のシミュレーション状態.

    Attributes:
        time: 時刻
        transform: casting 座標系 → target 座標系の剛体変換
        casting_to_ground: casting 座標系 → 地面座標系の変換（出力用、任意）
    """

    time: float
    transform: RigidTransform = field(default_factory=RigidTransform.identity)
    casting_to_ground: RigidTransform | None = None

    @property
    def key(self) -> tuple[float, bytes]:
        """キャッシュ識別キー（時刻 + 変換）."""
        return (float(self.time), self.transform.key())


class StagedCache:
    """ステージ付きキャッシュ.

    キャッシュ値は (side, name) で識別し、side ごとに有効ステージ集合を持つ。
    上流ステージが無効なまま下流ステージを有効化することはできない。
    """

    def __init__(self) -> None:
        self._key: tuple[float, bytes] | None = None
        self._values: dict[tuple[str, str], Any] = {}
        self._stages: dict[tuple[str, str], Stage] = {}
        self._valid: dict[str, set[Stage]] = {}
        # 状態をまたいで持ち越す値（前フレームの接触相手三角形）
        self._carried: dict[str, np.ndarray] = {}
        self._committed: dict[str, np.ndarray] = {}

    @property
    def key(self) -> tuple[float, bytes] | None:
        """現在キャッシュが対応している状態キー."""
        return self._key

    def sync(self, state: SimulationState) -> bool:
        """状態に同期する. キーが変われば全ステージを無効化.

        無効化時、直前状態で確定した接触相手三角形を持ち越し値へ移す。

        Returns:
            無効化が発生したら True
        """
        key = state.key
        if key == self._key:
            return False
        self._carried.update(self._committed)
        self._committed = {}
        self._values.clear()
        self._stages.clear()
        self._valid.clear()
        self._key = key
        return True

    def is_valid(self, side: str, stage: Stage) -> bool:
        return stage in self._valid.get(side, set())

    def put(self, side: str, stage: Stage, name: str, value: Any) -> None:
        """値を格納する（ステージ有効化は mark_valid で行う）."""
        self._values[(side, name)] = value
        self._stages[(side, name)] = stage

    def mark_valid(self, side: str, stage: Stage) -> None:
        """ステージを有効化する.

        Raises:
            StaleCacheError: 上流ステージが未計算の場合
        """
        valid = self._valid.setdefault(side, set())
        missing = [s for s in Stage if s < stage and s not in valid]
        if missing:
            raise StaleCacheError(
                f"{side}: {stage.name} の前に {', '.join(s.name for s in missing)} が必要"
            )
        valid.add(stage)

    def invalidate(self, side: str, stage: Stage) -> None:
        """stage 以降（下流）のステージを無効化する."""
        valid = self._valid.get(side)
        if valid is None:
            return
        for s in list(valid):
            if s >= stage:
                valid.discard(s)

    def get(self, side: str, stage: Stage, name: str) -> Any:
        """現在の状態で有効な値を取得する.

        Raises:
            StaleCacheError: ステージが未計算（または無効化済み）の場合
        """
        if not self.is_valid(side, stage):
            raise StaleCacheError(
                f"{side}.{name}: ステージ {stage.name} は現在の状態で未計算です"
            )
        key = (side, name)
        if key not in self._values or self._stages[key] != stage:
            raise StaleCacheError(f"{side}.{name}: ステージ {stage.name} に値がありません")
        return self._values[key]

    # -- 状態をまたぐ値 ---------------------------------------------------

    def carried(self, side: str, n: int) -> np.ndarray:
        """持ち越された接触相手三角形（なければ -1 で初期化）のコピー."""
        prev = self._carried.get(side)
        if prev is None or len(prev) != n:
            return np.full(n, -1, dtype=np.intp)
        return prev.copy()

    def commit(self, side: str, contacting_triangle: np.ndarray) -> None:
        """現在状態で確定した接触相手三角形を登録する（次状態へ持ち越す）."""
        self._committed[side] = np.asarray(contacting_triangle, dtype=np.intp).copy()

    def reset(self) -> None:
        """持ち越し値を含む全キャッシュを破棄する."""
        self._key = None
        self._values.clear()
        self._stages.clear()
        self._valid.clear()
        self._carried.clear()
        self._committed.clear()
