# src/thyroengine/dosing.py
from __future__ import annotations

import math
from dataclasses import replace
from typing import Sequence, Tuple

import numpy as np

from .constants import DT, ORAL_ABSORPTION_RATE
from .errors import InvalidParameterError
from .types import DoseEvent, DoseSchedule, Hormone, HORMONES, Infusion, IVBolus, OralRepeating, OralSingle


def oral_dose(hormone: Hormone, amount_ug: float, start_d: float,
              end_d: float | None = None, interval_d: float | None = None) -> DoseSchedule:
    """
    Oral tablets of one hormone.
    Examples:
      - 100 µg T4 once at day 1                    -> oral_dose("T4", 100, 1)
      - 100 µg T4 daily from day 0 through day 10  -> oral_dose("T4", 100, 0, end_d=10, interval_d=1)
    Giving only one of end_d / interval_d is an error.
    """
    if end_d is None and interval_d is None:
        dose: DoseEvent = OralSingle(hormone=hormone, amount_ug=float(amount_ug), start_d=float(start_d))
    elif end_d is None or interval_d is None:
        raise InvalidParameterError("repeating oral doses need both end_d and interval_d.")
    else:
        dose = OralRepeating(hormone=hormone, amount_ug=float(amount_ug), start_d=float(start_d),
                             end_d=float(end_d), interval_d=float(interval_d))
    validate_dose(dose)
    return DoseSchedule(doses=(dose,))


def iv_bolus(hormone: Hormone, amount_ug: float, start_d: float) -> DoseSchedule:
    """A single IV push, delivered in full at the integration step nearest start_d."""
    dose = IVBolus(hormone=hormone, amount_ug=float(amount_ug), start_d=float(start_d))
    validate_dose(dose)
    return DoseSchedule(doses=(dose,))


def infusion(hormone: Hormone, amount_ug: float, start_d: float, end_d: float) -> DoseSchedule:
    """
    A constant-rate infusion (zero-order input) of amount_ug total over [start_d, end_d).
    Example: 200 µg T3 from day 2 to day 4 runs at 100 µg/day.
    """
    dose = Infusion(hormone=hormone, amount_ug=float(amount_ug), start_d=float(start_d), end_d=float(end_d))
    validate_dose(dose)
    return DoseSchedule(doses=(dose,))


def combine_schedules(*schedules: DoseSchedule) -> DoseSchedule:
    """
    Merge several schedules into one (e.g., daily oral T4 + a T3 infusion).
    Doses are concatenated; sorting is only for readability.
    """
    all_doses: list[DoseEvent] = []
    for s in schedules:
        all_doses.extend(s.doses)
    return DoseSchedule(doses=tuple(sorted(all_doses, key=lambda d: (d.start_d, d.hormone, type(d).__name__))))


def from_explicit_schedule(entries: Sequence[Tuple[float, float]], hormone: Hormone,
                           route: str = "oral") -> DoseSchedule:
    """
    Build a schedule from manual (start_d, amount_ug) entries.
    route is "oral" or "iv_bolus".
    Example: entries=[(0.0, 100), (1.0, 100), (2.0, 50)]
    """
    kinds = {"oral": OralSingle, "iv_bolus": IVBolus}
    if route not in kinds:
        raise InvalidParameterError(f"route must be one of {sorted(kinds)} (got {route!r}).")
    doses = []
    for start_d, amount_ug in entries:
        dose = kinds[route](hormone=hormone, amount_ug=float(amount_ug), start_d=float(start_d))
        validate_dose(dose)
        doses.append(dose)
    doses.sort(key=lambda d: d.start_d)
    return DoseSchedule(doses=tuple(doses))


def validate_dose(dose: DoseEvent) -> None:
    """Re-assert the per-kind invariants. Never clamps; raises InvalidParameterError."""
    if dose.hormone not in HORMONES:
        raise InvalidParameterError(f"hormone must be one of {HORMONES} (got {dose.hormone!r}).")
    _validate_positive("amount_ug", dose.amount_ug)
    _validate_non_negative("start_d", dose.start_d)
    if isinstance(dose, (OralRepeating, Infusion)):
        _validate_finite("end_d", dose.end_d)
        if not (dose.end_d > dose.start_d):
            raise InvalidParameterError(
                f"end_d must be > start_d (got start_d={dose.start_d}, end_d={dose.end_d}).",
                {"dose": dose},
            )
    if isinstance(dose, OralRepeating):
        _validate_positive("interval_d", dose.interval_d)


def validate_schedule(schedule: DoseSchedule) -> None:
    for dose in schedule.doses:
        validate_dose(dose)


# --------------------------
# Input-rate query
# --------------------------
def oral_ticks(dose: OralRepeating) -> np.ndarray:
    """Times at which a repeating oral dose is taken: start, start+interval, ... <= end."""
    n = int(math.floor((dose.end_d - dose.start_d) / dose.interval_d + 1e-9)) + 1
    return dose.start_d + dose.interval_d * np.arange(n, dtype=float)


def _absorbed_rate(amount_ug: float, ticks: np.ndarray, t: float, ka: float, bioavailability: float,
                   dt: float) -> float:
    """
    First-order absorption: F*A*ka*exp(-ka*(t - t_k)) summed over past ticks.
    A tick counts from the step nearest to it, so 3*0.1 = 0.30000000000000004
    is taken at t = 0.3 like the bolus.
    """
    taken = np.rint(ticks / dt) <= round(t / dt)
    elapsed = np.maximum(t - ticks[taken], 0.0)
    if elapsed.size == 0:
        return 0.0
    return float(bioavailability * amount_ug * ka * np.sum(np.exp(-ka * elapsed)))


def dose_rate(dose: DoseEvent, t: float, *, dt: float = DT, bioavailability: float = 1.0) -> float:
    """Input rate (µg/day) that a single dose contributes at time t (days)."""
    if isinstance(dose, IVBolus):
        # Exactly one step index matches, so the full amount lands once.
        if int(round(t / dt)) == int(round(dose.start_d / dt)):
            return dose.amount_ug / dt
        return 0.0
    if isinstance(dose, Infusion):
        if dose.start_d <= t < dose.end_d:
            return dose.amount_ug / (dose.end_d - dose.start_d)
        return 0.0
    ka = ORAL_ABSORPTION_RATE[dose.hormone]
    if isinstance(dose, OralSingle):
        return _absorbed_rate(dose.amount_ug, np.array([dose.start_d]), t, ka, bioavailability, dt)
    if isinstance(dose, OralRepeating):
        return _absorbed_rate(dose.amount_ug, oral_ticks(dose), t, ka, bioavailability, dt)
    raise InvalidParameterError(f"unknown dose kind {type(dose).__name__}.")


def input_rate(schedule: DoseSchedule, hormone: Hormone, t: float, *,
               dt: float = DT, bioavailability: float = 1.0) -> float:
    """
    Exogenous mass entering the hormone's plasma pool at time t (µg/day),
    summed over every dose of that hormone. Never negative.

    bioavailability : fraction of oral doses absorbed (absorption % / 100);
                      IV and infusion doses are delivered in full.
    """
    total = 0.0
    for dose in schedule.doses:
        if dose.hormone == hormone:
            total += dose_rate(dose, t, dt=dt, bioavailability=bioavailability)
    return total


# --------------------------
# Horizon helpers
# --------------------------
def last_dosing_day(schedule: DoseSchedule) -> float:
    """Latest start (single/bolus) or end (repeating/infusion) day in the schedule, 0 when empty."""
    last = 0.0
    for d in schedule.doses:
        last = max(last, d.end_d if isinstance(d, (OralRepeating, Infusion)) else d.start_d)
    return last


def recommended_horizon(days: float, schedule: DoseSchedule, factor: float = 3.0) -> float:
    """
    Extend the horizon to factor x the last dosing day, truncated to whole
    days, when that is longer. Last dose at day 1.3 -> 3 days, not 3.9.
    """
    return max(float(days), float(int(factor * last_dosing_day(schedule))))


def fit_boluses_to_horizon(schedule: DoseSchedule, days: float, n_steps: int, dt: float = DT) -> DoseSchedule:
    """
    Move boluses that start inside the horizon but round to step n_steps
    (e.g. 4.996 with days=5) onto the last step, n_steps - 1.
    Every other dose is returned unchanged.
    """
    last = n_steps - 1
    doses = []
    for d in schedule.doses:
        if isinstance(d, IVBolus) and d.start_d < days and int(round(d.start_d / dt)) > last:
            d = replace(d, start_d=last * dt)
        doses.append(d)
    return DoseSchedule(doses=tuple(doses))


# --------------------------
# Small input validators
# --------------------------
def _validate_finite(name: str, x: float) -> None:
    if not math.isfinite(x):
        raise InvalidParameterError(f"{name} must be finite (got {x}).", {name: x})

def _validate_positive(name: str, x: float) -> None:
    _validate_finite(name, x)
    if not (x > 0):
        raise InvalidParameterError(f"{name} must be > 0 (got {x}).", {name: x})

def _validate_non_negative(name: str, x: float) -> None:
    _validate_finite(name, x)
    if x < 0:
        raise InvalidParameterError(f"{name} must be >= 0 (got {x}).", {name: x})
