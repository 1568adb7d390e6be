# src/thyroengine/metrics.py
from dataclasses import dataclass
from typing import Iterable

import numpy as np

from .errors import InvalidParameterError
from .types import OUTPUT_SERIES, ThyroidSimulationResult


@dataclass(frozen=True)
class SeriesSummary:
    cmin: float
    cmax: float
    cavg: float
    final: float


def summarize(result: ThyroidSimulationResult) -> dict[str, SeriesSummary]:
    """Min / max / mean / last value of every output series of one run."""
    out = {}
    for name in OUTPUT_SERIES:
        C = getattr(result, name)
        out[name] = SeriesSummary(
            cmin=float(np.min(C)), cmax=float(np.max(C)), cavg=float(np.mean(C)), final=float(C[-1]),
        )
    return out


def combined_range(results: Iterable[ThyroidSimulationResult], series: str) -> tuple[float, float]:
    """
    (min, max) of one series over several overlaid runs, e.g. a run and the
    runs it was chained from. Non-finite samples are ignored.
    """
    if series not in OUTPUT_SERIES:
        raise InvalidParameterError(f"series must be one of {OUTPUT_SERIES} (got {series!r}).")
    values = [np.asarray(getattr(r, series)) for r in results]
    values = np.concatenate(values) if values else np.empty(0)
    values = values[np.isfinite(values)]
    if values.size == 0:
        raise InvalidParameterError(f"no finite {series} samples to compare.")
    return float(np.min(values)), float(np.max(values))
