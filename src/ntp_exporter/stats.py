"""
NTP Exporter Statistics

Robust reductions over clock offset samples. `median` is the value the exporter
publishes after a high-drift resampling window; `summarize` only feeds log lines.
"""

from typing import Dict, Sequence

import numpy as np


def median(values: Sequence[float]) -> float:
    """
    Median of a non-empty sequence of floats.

    Sorts a private copy, so the caller's sequence is left untouched. For an even
    number of samples the two middle elements are averaged.

    Raises:
        ValueError: if `values` is empty
    """
    ordered = np.sort(np.asarray(values, dtype=np.float64))
    n = len(ordered)
    if n == 0:
        raise ValueError("median() requires at least one sample")

    middle = n // 2
    if n % 2 == 1:
        return float(ordered[middle])
    return float((ordered[middle - 1] + ordered[middle]) / 2.0)


def summarize(values: Sequence[float]) -> Dict[str, float]:
    """Spread statistics for a resampling window (count, median, mean, std, min, max, mad)."""
    if len(values) == 0:
        return {"count": 0}

    arr = np.asarray(values, dtype=np.float64)
    center = median(arr)
    return {
        "count": int(arr.size),
        "median": center,
        "mean": float(np.mean(arr)),
        "std": float(np.std(arr)),
        "min": float(np.min(arr)),
        "max": float(np.max(arr)),
        "mad": median(np.abs(arr - center)),
    }
