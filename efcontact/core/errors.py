"""例外・警告クラス.

- ContactConfigError: セットアップ時の設定エラー（致命的）
- StaleCacheError: 未計算ステージのキャッシュ読み出し（プログラミングエラー）
- NonlinearConvergenceWarning: 非線形圧力ソルバーの非収束（回復可能）
"""

from __future__ import annotations


class ContactConfigError(ValueError):
    """接触設定・メッシュ・材料特性の不正."""


class StaleCacheError(RuntimeError):
    """現在の状態で未計算のステージを読み出そうとした."""


class NonlinearConvergenceWarning(UserWarning):
    """非線形圧力ソルバーが反復上限内に収束しなかった（線形解で代用）."""
