#!/usr/bin/env python3
"""
bench_commit.py - Timing for commitment generation and verification

Usage:
    python benchmark/bench_commit.py --iterations 20 --workers 4
"""
import argparse
import statistics
import time

from reveler import (
    LOCAL_N, LOCAL_Q, commit, generate_params, generate_vector, optimal_thread_count, verify,
)


def run(iterations: int, workers: int, transform: str) -> None:
    A, B = generate_params()
    m = generate_vector()
    r = generate_vector()

    # warm up numba and the engine cache
    commit(A, B, m, r, workers=workers, transform=transform)

    commit_times = []
    verify_times = []
    for _ in range(iterations):
        t0 = time.perf_counter()
        c = commit(A, B, m, r, workers=workers, transform=transform)
        commit_times.append(time.perf_counter() - t0)

        t0 = time.perf_counter()
        ok = verify(c)
        verify_times.append(time.perf_counter() - t0)
        assert ok, "fresh commitment failed to verify"

    print(f"\nCOMMITMENT BENCHMARK  N={LOCAL_N}  Q={LOCAL_Q}  transform={transform}  workers={workers}")
    print("-" * 60)
    for label, times in (("commit", commit_times), ("verify", verify_times)):
        mean = statistics.mean(times) * 1000
        std = statistics.stdev(times) * 1000 if len(times) > 1 else 0.0
        print(f"  {label:<7} mean {mean:8.2f} ms   std {std:6.2f} ms   min {min(times) * 1000:8.2f} ms")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="reveler commitment benchmark")
    parser.add_argument("--iterations", type=int, default=10, help="timed commit/verify rounds")
    parser.add_argument("--workers", type=int, default=optimal_thread_count(), help="threads for row convolutions")
    parser.add_argument("--transform", choices=["ntt", "float"], default="ntt")
    args = parser.parse_args()
    run(args.iterations, args.workers, args.transform)
