"""
scripts/bench_kernels_workers.py

Worker-count scaling microbenchmark (NOT a unit test) for densecnn.

Benchmarks the CPU kernels across several `WorkerPool` sizes:
- matmul, vector_matrix_multiply, transpose
- convolute3x3, pool2x2
- sigmoid, normalize, randomize

Timing policy
-------------
- Inputs are built once per case, outside the timed region.
- Each pool is warmed up before timing so thread start-up is excluded.
- Reports the median over `--repeats` runs and the speedup over 1 worker.

Usage
-----
python scripts/bench_kernels_workers.py
python scripts/bench_kernels_workers.py --size 1024 --workers 1 2 4 8 --dtype float32
python scripts/bench_kernels_workers.py --kernels matmul convolute3x3 --repeats 20
"""

from __future__ import annotations

import argparse
import logging
import os
import statistics
import sys
import time
from dataclasses import dataclass
from typing import Callable, Dict

import numpy as np

# -------------------------
# Make repo_root/src importable
# -------------------------
THIS_DIR = os.path.dirname(os.path.abspath(__file__))
ROOT_DIR = os.path.abspath(os.path.join(THIS_DIR, ".."))
SRC_DIR = os.path.join(ROOT_DIR, "src")
if SRC_DIR not in sys.path:
    sys.path.insert(0, SRC_DIR)

from densecnn.infrastructure.ops.conv2d_cpu import convolute3x3
from densecnn.infrastructure.ops.elementwise_cpu import normalize, sigmoid
from densecnn.infrastructure.ops.matmul_cpu import (
    matmul,
    transpose,
    vector_matrix_multiply,
)
from densecnn.infrastructure.ops.pool2d_cpu import pool2x2
from densecnn.infrastructure.ops.randomize_cpu import randomize
from densecnn.infrastructure.parallel._random import RandomSource
from densecnn.infrastructure.parallel._worker_pool import WorkerPool
from densecnn.infrastructure.tensor._tensor import Tensor
from densecnn.infrastructure.utils._logging import configure_logging


def _time_one(fn: Callable[[], None], *, warmup: int, repeats: int) -> list[float]:
    for _ in range(warmup):
        fn()
    ts: list[float] = []
    for _ in range(repeats):
        t0 = time.perf_counter()
        fn()
        t1 = time.perf_counter()
        ts.append(t1 - t0)
    return ts


def _fmt_seconds(x: float) -> str:
    if x < 1e-6:
        return f"{x*1e9:.2f} ns"
    if x < 1e-3:
        return f"{x*1e6:.2f} µs"
    if x < 1:
        return f"{x*1e3:.2f} ms"
    return f"{x:.3f} s"


@dataclass(frozen=True)
class Inputs:
    a: Tensor
    b: Tensor
    v: Tensor
    kernel: Tensor


def _make_inputs(size: int, dtype: np.dtype, seed: int) -> Inputs:
    rng = np.random.default_rng(seed)
    return Inputs(
        a=Tensor.from_numpy(rng.standard_normal((size, size)).astype(dtype)),
        b=Tensor.from_numpy(rng.standard_normal((size, size)).astype(dtype)),
        v=Tensor.from_numpy(rng.standard_normal((1, size)).astype(dtype)),
        kernel=Tensor.from_numpy(rng.standard_normal((3, 3)).astype(dtype)),
    )


def _kernels(x: Inputs, seed: int) -> Dict[str, Callable[[WorkerPool], object]]:
    source = RandomSource(seed)
    return {
        "matmul": lambda p: matmul(x.a, x.b, pool=p),
        "vector_matrix_multiply": lambda p: vector_matrix_multiply(x.v, x.a, pool=p),
        "transpose": lambda p: transpose(x.a, pool=p),
        "convolute3x3": lambda p: convolute3x3(x.a, x.kernel, pool=p),
        "pool2x2": lambda p: pool2x2(x.a, pool=p),
        "sigmoid": lambda p: sigmoid(x.a, pool=p),
        "normalize": lambda p: normalize(x.a, pool=p),
        "randomize": lambda p: randomize(x.a, 0.1, pool=p, source=source),
    }


def main() -> None:
    ap = argparse.ArgumentParser()
    ap.add_argument("--size", type=int, default=512, help="Square input extent.")
    ap.add_argument("--workers", type=int, nargs="+", default=[1, 2, 4, 8])
    ap.add_argument("--dtype", choices=["float32", "float64"], default="float64")
    ap.add_argument("--kernels", nargs="+", default=None, help="Subset to run.")
    ap.add_argument("--warmup", type=int, default=2)
    ap.add_argument("--repeats", type=int, default=10)
    ap.add_argument("--seed", type=int, default=0, help="RNG seed.")
    ap.add_argument("--verbose", action="store_true", help="Log pool dispatch.")
    args = ap.parse_args()

    configure_logging(logging.DEBUG if args.verbose else logging.WARNING)

    dtype = np.dtype(args.dtype)
    inputs = _make_inputs(args.size, dtype, args.seed)
    kernels = _kernels(inputs, args.seed)
    if args.kernels:
        unknown = sorted(set(args.kernels) - set(kernels))
        if unknown:
            raise SystemExit(f"Unknown kernels: {', '.join(unknown)}")
        kernels = {k: kernels[k] for k in args.kernels}

    print("\n" + "=" * 98)
    print(
        f"densecnn kernel scaling benchmark  size={args.size}  dtype={args.dtype}  "
        f"(warmup={args.warmup}, repeats={args.repeats})"
    )
    print("=" * 98)

    for name, fn in kernels.items():
        baseline = None
        for n in args.workers:
            with WorkerPool(n) as pool:
                ts = _time_one(lambda: fn(pool), warmup=args.warmup, repeats=args.repeats)
            med = statistics.median(ts)
            baseline = med if baseline is None else baseline
            speedup = baseline / med if med > 0 else float("inf")
            print(
                f"{name:<24} workers={n:<3} "
                f"median={_fmt_seconds(med):>10}  speedup={speedup:>6.2f}x"
            )


if __name__ == "__main__":
    main()
