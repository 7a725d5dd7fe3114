"""Benchmark: PolicyGuard.decide latency: per-decision p50/p95/p99.

Measures the full pipeline (ability build, reference resolution,
matching) for a typical two-requirement operation.
"""
from __future__ import annotations

import json
import sys
import time
import tracemalloc
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from docshare_guard.guard.policy_guard import PolicyGuard
from docshare_guard.guard.requirements import PolicyRequirement, RequestContext
from docshare_guard.rules.model import Action, Principal, Subject

_WARMUP: int = 200
_ITERATIONS: int = 5_000


def bench_decision_latency() -> dict[str, object]:
    """Benchmark PolicyGuard.decide() per-call latency.

    Returns
    -------
    dict with keys: operation, iterations, total_seconds, ops_per_second,
    avg_latency_ms, p99_latency_ms, memory_peak_mb.
    """
    guard = PolicyGuard()
    stored = [{"action": "read", "subject": "Notification", "conditions": {"userId": "u1"}}]
    ctx = RequestContext(
        user=Principal(id="u1", role_name="user", stored_permissions=stored),
        params={"id": "u1"},
    )
    requirements = [
        PolicyRequirement(Action.UPDATE, Subject.USER, {"id": "$params.id"}),
        PolicyRequirement(Action.CREATE, Subject.COMMENT),
    ]

    for _ in range(_WARMUP):
        guard.decide(requirements, ctx)

    tracemalloc.start()
    latencies_ms: list[float] = []
    for _ in range(_ITERATIONS):
        t0 = time.perf_counter()
        guard.decide(requirements, ctx)
        latencies_ms.append((time.perf_counter() - t0) * 1000)
    _, peak = tracemalloc.get_traced_memory()
    tracemalloc.stop()

    sorted_lats = sorted(latencies_ms)
    n = len(sorted_lats)
    total = sum(latencies_ms) / 1000

    return {
        "operation": "decision_latency",
        "iterations": _ITERATIONS,
        "total_seconds": round(total, 4),
        "ops_per_second": round(_ITERATIONS / total, 1) if total > 0 else 0.0,
        "avg_latency_ms": round(sum(sorted_lats) / n, 4),
        "p50_latency_ms": round(sorted_lats[n // 2], 4),
        "p95_latency_ms": round(sorted_lats[int(n * 0.95)], 4),
        "p99_latency_ms": round(sorted_lats[int(n * 0.99)], 4),
        "memory_peak_mb": round(peak / 1024 / 1024, 4),
    }


def run_benchmark() -> dict[str, object]:
    """Entry point used by the structural benchmark tests."""
    return bench_decision_latency()


if __name__ == "__main__":
    print("Running decision latency benchmark...")
    result = run_benchmark()
    print(json.dumps(result, indent=2))
    results_dir = Path(__file__).parent / "results"
    results_dir.mkdir(exist_ok=True)
    output_path = results_dir / "baseline.json"
    with output_path.open("w") as fh:
        json.dump(result, fh, indent=2)
    print(f"Results saved to {output_path}")
