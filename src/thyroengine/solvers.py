# src/thyroengine/solvers.py
import math

import numpy as np
import structlog

from .constants import DT, EQUILIBRATION_STEPS
from .dosing import fit_boluses_to_horizon, input_rate
from .errors import InvalidParameterError, NumericDegeneracyError
from .helpers import split_schedule_by_hormone
from .models.thyroid_feedback import thyroid_feedback
from .types import DoseSchedule, ScalingConstants, SimulationState

log = structlog.get_logger(__name__)


def total_steps(days: float, dt: float = DT) -> int:
    """floor(days/dt), tolerant of float noise such as 5/0.01 = 499.999..."""
    if not (math.isfinite(days) and days > 0):
        raise InvalidParameterError(f"days must be > 0 (got {days}).", {"days": days})
    if not (math.isfinite(dt) and dt > 0):
        raise InvalidParameterError(f"dt must be > 0 (got {dt}).", {"dt": dt})
    n = int(math.floor(days / dt + 1e-9))
    if n < 1:
        raise InvalidParameterError(f"days={days} is shorter than one step of {dt} days.", {"days": days})
    return n


def euler_step(q: np.ndarray, dq, dt: float) -> np.ndarray:
    """Forward Euler update, clamped so no pool goes negative."""
    return np.maximum(q + np.asarray(dq, dtype=float) * dt, 0.0)


def _checked_derivative(t, q, scaling, t4_secretion, t3_secretion, u4=0.0, u3=0.0) -> np.ndarray:
    dq = np.asarray(
        thyroid_feedback(t, q, scaling.peripheral_clearance, t4_secretion, t3_secretion, u4=u4, u3=u3),
        dtype=float,
    )
    if not np.all(np.isfinite(dq)):
        raise NumericDegeneracyError(
            f"non-finite derivative {dq.tolist()} at t={t} for state {np.asarray(q).tolist()}.",
            {"t": t, "state": np.asarray(q).tolist(), "derivative": dq.tolist()},
        )
    return dq


def equilibrate(scaling: ScalingConstants, t4_secretion: float, t3_secretion: float,
                start: SimulationState | None = None, steps: int = EQUILIBRATION_STEPS,
                dt: float = DT) -> SimulationState:
    """
    Pre-run the model to its phase-locked steady point.

    The circadian phase is frozen at t=0 and no doses are applied, so this
    converges to the fixed point of the t=0 dynamics, not a periodic orbit.
    """
    q = (start or SimulationState.baseline()).as_array()
    for _ in range(steps):
        q = euler_step(q, _checked_derivative(0.0, q, scaling, t4_secretion, t3_secretion), dt)
    result = SimulationState.from_array(q)
    log.debug("equilibrate.done", steps=steps, q1=result.q1, q4=result.q4, q7=result.q7)
    return result


def integrate(q0: SimulationState, scaling: ScalingConstants, t4_secretion: float, t3_secretion: float,
              schedule: DoseSchedule, days: float, *, dt: float = DT,
              t4_bioavailability: float = 1.0, t3_bioavailability: float = 1.0):
    """
    Fixed-step forward Euler over [0, days).

    Step i evaluates the model at t = i*dt (circadian drive and doses
    included), applies the clamped update, and records the post-step state
    against t.

    Returns:
      t       : array of step times (days), length floor(days/dt)
      Q       : (N, 3) array of post-step pools [q1, q4, q7]
      q_final : SimulationState after the last step
    """
    n = total_steps(days, dt)
    per_hormone = split_schedule_by_hormone(fit_boluses_to_horizon(schedule, days, n, dt))
    t4_doses, t3_doses = per_hormone["T4"], per_hormone["T3"]

    t_arr = np.arange(n, dtype=float) * dt
    Q = np.empty((n, 3), dtype=float)
    q = q0.as_array()

    for i in range(n):
        t = i * dt
        u4 = input_rate(t4_doses, "T4", t, dt=dt, bioavailability=t4_bioavailability) if t4_doses else 0.0
        u3 = input_rate(t3_doses, "T3", t, dt=dt, bioavailability=t3_bioavailability) if t3_doses else 0.0
        q = euler_step(q, _checked_derivative(t, q, scaling, t4_secretion, t3_secretion, u4=u4, u3=u3), dt)
        Q[i] = q

    return t_arr, Q, SimulationState.from_array(q)
