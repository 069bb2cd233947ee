"""Benchmark compliance classification.

When a non-compliant benchmark is configured it is the authoritative gate:
results at or above it are compliant. The acceptable benchmark is only
compared when it is the sole threshold defined.
"""

from __future__ import annotations

from typing import Optional

from qi_backend.engine.result import Classification
from qi_backend.models.enums import BenchmarkStatus


def _fmt(value: float) -> str:
    return f"{value:.2f}%"


def classify(
    percentage: Optional[float],
    acceptable_benchmark: Optional[float],
    non_compliant_benchmark: Optional[float],
) -> Classification:
    """Map a percentage and its benchmarks to a status and display message."""
    if percentage is None:
        return Classification(
            status=BenchmarkStatus.UNDETERMINED,
            message=(
                "The result could not be determined, so compliance was not assessed"
            ),
        )

    if acceptable_benchmark is None and non_compliant_benchmark is None:
        return Classification(
            status=BenchmarkStatus.NO_BENCHMARK,
            message=(
                f"No benchmark is defined for this indicator; "
                f"result {_fmt(percentage)} is recorded as-is"
            ),
        )

    if non_compliant_benchmark is not None:
        threshold = non_compliant_benchmark
        label = "non-compliant benchmark"
    else:
        threshold = acceptable_benchmark
        label = "acceptable benchmark"

    if percentage >= threshold:
        return Classification(
            status=BenchmarkStatus.COMPLIANT,
            message=(
                f"Compliant: result {_fmt(percentage)} meets the {label} "
                f"of {_fmt(threshold)}"
            ),
            compared_benchmark=threshold,
        )
    return Classification(
        status=BenchmarkStatus.NON_COMPLIANT,
        message=(
            f"Non-compliant: result {_fmt(percentage)} is below the {label} "
            f"of {_fmt(threshold)}"
        ),
        compared_benchmark=threshold,
    )
