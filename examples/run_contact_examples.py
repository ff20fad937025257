#!/usr/bin/env python3
"""efcontact 接触解析サンプルの実行スクリプト.

弾性基礎モデルによる関節面接触の例題を実行し、結果を表示する。
解析解が存在する場合は比較結果も出力する。

Usage:
    python examples/run_contact_examples.py                # 全サンプル実行
    python examples/run_contact_examples.py plates         # 平行平板のみ
    python examples/run_contact_examples.py formulations   # 4 定式化の比較のみ
    python examples/run_contact_examples.py sliding        # 球冠の滑り軌道のみ
"""

from __future__ import annotations

import sys
from pathlib import Path

import numpy as np

# プロジェクトルートを PYTHONPATH に追加
project_root = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(project_root))

from efcontact.contact import ArticularContactForce, ContactConfig, ContactHistory, ContactPair
from efcontact.core import SimulationState
from efcontact.materials.elastic import confined_compression_modulus
from efcontact.math.transform import RigidTransform
from efcontact.mesh import REGION_NAMES, ContactMesh, make_flat_patch, make_spherical_cap

# 軟骨の代表値
THICKNESS = 0.002
YOUNG = 10.0e6
POISSON = 0.45


def _cartilage(vertices, faces, name):
    return ContactMesh(
        vertices,
        faces,
        thickness=THICKNESS,
        elastic_modulus=YOUNG,
        poissons_ratio=POISSON,
        name=name,
    )


def _pose(depth, dx=0.0, time=0.0):
    return SimulationState(
        time=time, transform=RigidTransform(translation=np.array([dx, 0.0, depth]))
    )


def run_parallel_plates():
    """平行平板: 一様な重なりで集中・線形モデルの解析解と比較."""
    print("=" * 60)
    print("平行平板（集中・線形モデル）")
    print("=" * 60)

    cv, cf = make_flat_patch(0.02, 0.02, 10, 10)
    tv, tf = make_flat_patch(0.04, 0.04, 20, 20, flip=True)
    engine = ArticularContactForce(
        ContactPair(_cartilage(cv, cf, "femur"), _cartilage(tv, tf, "tibia"), name="plates")
    )

    depth = 0.0005
    stats = engine.stats(_pose(depth))

    K = confined_compression_modulus(YOUNG, POISSON)
    p_exact = K * depth / (2.0 * THICKNESS)
    F_exact = p_exact * 0.02**2
    err = abs(abs(stats.contact_force[2]) - F_exact) / F_exact * 100.0

    print(f"  接触面積:     {stats.contact_area:.6e} m²")
    print(f"  平均圧力:     {stats.mean_pressure:.6e} Pa  (解析解 {p_exact:.6e})")
    print(f"  合力 Fz:      {stats.contact_force[2]:.6e} N   (解析解 {-F_exact:.6e})")
    print(f"  ひずみエネルギー: {engine.potential_energy(_pose(depth)):.6e} J")
    print(f"  誤差:         {err:.4f}%")
    print()
    return err


def run_formulations():
    """球冠–平板: 4 定式化の最大圧力と合力を比較."""
    print("=" * 60)
    print("球冠–平板（4 定式化の比較）")
    print("=" * 60)

    cv, cf = make_spherical_cap(0.03, 0.5, 16, 48)
    tv, tf = make_flat_patch(0.05, 0.05, 40, 40, flip=True)
    # 極 (z = R) を平板の 1.5 mm 下へ
    state = _pose(-0.03 + 0.0015)

    print(f"  {'定式化':<24s} {'最大圧力 [Pa]':>16s} {'|F| [N]':>12s} {'非収束':>6s}")
    for formulation in ("linear", "nonlinear"):
        for lumped in (True, False):
            config = ContactConfig(formulation=formulation, use_lumped_model=lumped)
            engine = ArticularContactForce(
                ContactPair(_cartilage(cv, cf, "condyle"), _cartilage(tv, tf, "plateau"), config)
            )
            stats = engine.stats(state)
            failed = engine.diagnostics(state)["casting"].solver_failed_triangles.size
            label = f"{'lumped' if lumped else 'variable'} / {formulation}"
            print(
                f"  {label:<24s} {stats.max_pressure:16.6e} "
                f"{np.linalg.norm(stats.contact_force):12.6e} {failed:6d}"
            )
    print()


def run_sliding():
    """球冠の滑り軌道: 時間コヒーレンスと領域統計."""
    print("=" * 60)
    print("球冠の滑り軌道（時間コヒーレンス探索）")
    print("=" * 60)

    cv, cf = make_spherical_cap(0.03, 0.6, 16, 48)
    tv, tf = make_flat_patch(0.08, 0.05, 64, 40, flip=True)
    engine = ArticularContactForce(
        ContactPair(_cartilage(cv, cf, "condyle"), _cartilage(tv, tf, "plateau"), name="knee")
    )

    history = ContactHistory()
    n_frames = 21
    for k in range(n_frames):
        t = k / (n_frames - 1)
        state = _pose(-0.03 + 0.001, dx=-0.015 + 0.03 * t, time=t)
        history.record(engine, state)

    summary = history.summary()
    for key, value in summary.items():
        print(f"  {key:<24s} {value}")

    print("  最終フレームの領域別接触力 Fz:")
    for name, reg in zip(REGION_NAMES, engine.regional_stats(state)):
        print(f"    {name:<20s} {reg.contact_force[2]:12.6e} N")
    print()


def main():
    """全サンプルを実行."""
    print()
    print("efcontact 接触解析サンプル")
    print()

    filter_key = sys.argv[1].lower() if len(sys.argv) > 1 else None

    examples = {
        "plates": run_parallel_plates,
        "formulations": run_formulations,
        "sliding": run_sliding,
    }

    errors = []
    for name, func in examples.items():
        if filter_key is None or filter_key in name:
            err = func()
            if err is not None:
                errors.append((name, err))

    if errors:
        print("-" * 60)
        print("解析解比較まとめ:")
        for name, err in errors:
            status = "PASS" if err < 1.0 else "CHECK"
            print(f"  {name}: 誤差 {err:.4f}% [{status}]")
        print()


if __name__ == "__main__":
    main()
