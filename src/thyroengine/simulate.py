# src/thyroengine/simulate.py
from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from typing import Iterable, Literal, Union

import structlog

from .constants import DT
from .dosing import recommended_horizon, validate_schedule
from .errors import InvalidParameterError, ThyroEngineError
from .models.thyroid_feedback import concentrations
from .patient import scale_patient
from .solvers import equilibrate, integrate, total_steps
from .types import (
    DoseSchedule, FreeHormoneRatios, PatientProfile, ScalingConstants, SimulationState, ThyroidSimulationResult,
)

log = structlog.get_logger(__name__)

RunPhase = Literal["configured", "equilibrating", "stepping", "completed", "failed"]


@dataclass(frozen=True)
class SimulationRequest:
    """
    Everything one run needs.

    patient                        : PatientProfile, or ScalingConstants computed earlier
    days                           : horizon in days (> 0)
    schedule                       : doses for this run (may be empty)
    t4_secretion, t3_secretion     : thyroidal output, % of normal
    t4_absorption, t3_absorption   : oral bioavailability, %
    recalculate_initial_conditions : equilibrate before stepping (ignored when seeded)
    seed_state                     : q_final of a previous run to continue from
    free_ratios                    : free/total fractions for ft4 and ft3
    auto_extend_horizon            : stretch days to 3x the last dosing day
    """
    patient: Union[PatientProfile, ScalingConstants]
    days: float
    schedule: DoseSchedule = field(default_factory=DoseSchedule)
    t4_secretion: float = 100.0
    t3_secretion: float = 100.0
    t4_absorption: float = 88.0
    t3_absorption: float = 88.0
    recalculate_initial_conditions: bool = False
    seed_state: SimulationState | None = None
    free_ratios: FreeHormoneRatios = field(default_factory=FreeHormoneRatios)
    auto_extend_horizon: bool = False
    dt: float = DT


class SimulationRun:
    """
    One run of the engine: configured -> equilibrating (optional) -> stepping -> completed.

    Any precondition failure moves the run to "failed" before stepping and
    re-raises; a failed run never produces a result.
    """

    def __init__(self, request: SimulationRequest):
        self.request = request
        self.phase: RunPhase = "configured"
        self.result: ThyroidSimulationResult | None = None
        self._log = log.bind(days=request.days, seeded=request.seed_state is not None)

    def _enter(self, phase: RunPhase, **kw) -> None:
        self.phase = phase
        self._log.info("run.phase", phase=phase, **kw)

    def execute(self) -> ThyroidSimulationResult:
        if self.phase != "configured":
            raise ThyroEngineError(f"run already {self.phase}; build a new SimulationRun to re-run.")
        req = self.request
        try:
            scaling = _resolve_scaling(req.patient)
            _validate_request(req)
            total_steps(req.days, req.dt)
            days = recommended_horizon(req.days, req.schedule) if req.auto_extend_horizon else float(req.days)
            if days != req.days:
                self._log.info("run.horizon_extended", requested=req.days, days=days)
            n = total_steps(days, req.dt)

            if req.seed_state is not None:
                q0 = req.seed_state
            elif req.recalculate_initial_conditions:
                self._enter("equilibrating")
                q0 = equilibrate(scaling, req.t4_secretion, req.t3_secretion, dt=req.dt)
            else:
                q0 = SimulationState.baseline()

            self._enter("stepping", steps=n, doses=len(req.schedule))
            t, Q, q_final = integrate(
                q0, scaling, req.t4_secretion, req.t3_secretion, req.schedule, days,
                dt=req.dt,
                t4_bioavailability=req.t4_absorption / 100.0,
                t3_bioavailability=req.t3_absorption / 100.0,
            )
        except ThyroEngineError as exc:
            self._enter("failed", error=exc.message)
            raise

        conc = concentrations(Q, scaling, req.free_ratios)
        self.result = ThyroidSimulationResult(
            time=t, q_final=q_final, initial_state=q0, scaling=scaling, **conc,
        )
        self._enter("completed", q1=q_final.q1, q4=q_final.q4, q7=q_final.q7)
        return self.result


def run_simulation(request: SimulationRequest) -> ThyroidSimulationResult:
    """Blocking wrapper: build a run, execute it, return its result."""
    return SimulationRun(request).execute()


def continue_from(result: ThyroidSimulationResult, request: SimulationRequest) -> SimulationRequest:
    """Copy of request that starts from result's terminal state."""
    return replace(request, seed_state=result.q_final, recalculate_initial_conditions=False)


def run_chain(requests: Iterable[SimulationRequest]) -> list[ThyroidSimulationResult]:
    """
    Run requests in order; every run after the first continues from the
    previous run's q_final (any seed_state on those requests is replaced).
    """
    results: list[ThyroidSimulationResult] = []
    for req in requests:
        if results:
            req = continue_from(results[-1], req)
        results.append(run_simulation(req))
    return results


def _resolve_scaling(patient) -> ScalingConstants:
    if isinstance(patient, ScalingConstants):
        for name, value in vars(patient).items():
            if not (math.isfinite(value) and value > 0):
                raise InvalidParameterError(f"{name} must be > 0 (got {value}).", {name: value})
        return patient
    if isinstance(patient, PatientProfile):
        return scale_patient(patient)
    raise InvalidParameterError(f"patient must be a PatientProfile or ScalingConstants (got {type(patient).__name__}).")


def _validate_request(req: SimulationRequest) -> None:
    for name in ("t4_secretion", "t3_secretion", "t4_absorption", "t3_absorption"):
        x = getattr(req, name)
        if not (math.isfinite(x) and x >= 0):
            raise InvalidParameterError(f"{name} must be a finite value >= 0 (got {x}).", {name: x})
    for name in ("ft4", "ft3"):
        x = getattr(req.free_ratios, name)
        if not (math.isfinite(x) and x >= 0):
            raise InvalidParameterError(f"free_ratios.{name} must be a finite value >= 0 (got {x}).")
    if req.seed_state is not None:
        for name, x in vars(req.seed_state).items():
            if not (math.isfinite(x) and x >= 0):
                raise InvalidParameterError(f"seed_state.{name} must be a finite value >= 0 (got {x}).")
    validate_schedule(req.schedule)
