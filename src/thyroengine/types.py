# src/thyroengine/types.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Union

import numpy as np

from .constants import BASELINE_Q1, BASELINE_Q4, BASELINE_Q7, FT3_FRACTION, FT4_FRACTION, LOG_TSH_FLOOR

# All time is in DAYS. Dose amounts are micrograms.
Sex = Literal["MALE", "FEMALE"]
Hormone = Literal["T3", "T4"]
HORMONES: tuple[Hormone, ...] = ("T4", "T3")
OUTPUT_SERIES = ("t4", "t3", "tsh", "ft4", "ft3")


@dataclass(frozen=True)
class PatientProfile:
    """
    Anthropometrics of the simulated patient.

    height_m  : height in meters
    weight_kg : body weight in kilograms
    sex       : "MALE" or "FEMALE"
    """
    height_m: float
    weight_kg: float
    sex: Sex


@dataclass(frozen=True)
class ScalingConstants:
    """
    Patient-specific constants derived from a PatientProfile.

    plasma_volume        : VP_new, plasma distribution volume (L)
    tsh_volume           : VTSH_new, TSH distribution volume (L)
    peripheral_clearance : k05_new, T3 clearance rate (1/day)
    """
    plasma_volume: float
    tsh_volume: float
    peripheral_clearance: float


# --------------------------
# Dose kinds
# --------------------------
@dataclass(frozen=True)
class OralSingle:
    """One oral tablet taken at start_d, absorbed first-order from then on."""
    hormone: Hormone
    amount_ug: float
    start_d: float


@dataclass(frozen=True)
class OralRepeating:
    """
    The same oral dose taken every interval_d days from start_d.
    Every tick <= end_d is taken, including one landing exactly on end_d.
    """
    hormone: Hormone
    amount_ug: float
    start_d: float
    end_d: float
    interval_d: float


@dataclass(frozen=True)
class IVBolus:
    """Instantaneous injection of amount_ug into the plasma pool at start_d."""
    hormone: Hormone
    amount_ug: float
    start_d: float


@dataclass(frozen=True)
class Infusion:
    """Constant-rate delivery of amount_ug spread over [start_d, end_d)."""
    hormone: Hormone
    amount_ug: float
    start_d: float
    end_d: float


DoseEvent = Union[OralSingle, OralRepeating, IVBolus, Infusion]


@dataclass(frozen=True)
class DoseSchedule:
    """
    All doses attached to one run. Order doesn't matter; doses are
    independent and their input rates add up.
    """
    doses: tuple[DoseEvent, ...] = ()

    @classmethod
    def empty(cls) -> "DoseSchedule":
        return cls()

    def for_hormone(self, hormone: Hormone) -> "DoseSchedule":
        return DoseSchedule(doses=tuple(d for d in self.doses if d.hormone == hormone))

    def __len__(self) -> int:
        return len(self.doses)

    def __bool__(self) -> bool:
        return bool(self.doses)


# --------------------------
# State and results
# --------------------------
@dataclass(frozen=True)
class SimulationState:
    """
    Snapshot of the three pools:
      q1 = circulating T4 (µmol)
      q4 = circulating T3 (µmol)
      q7 = circulating TSH (model units)
    """
    q1: float
    q4: float
    q7: float

    @classmethod
    def baseline(cls) -> "SimulationState":
        return cls(BASELINE_Q1, BASELINE_Q4, BASELINE_Q7)

    @classmethod
    def from_array(cls, q: np.ndarray) -> "SimulationState":
        return cls(float(q[0]), float(q[1]), float(q[2]))

    def as_array(self) -> np.ndarray:
        return np.array([self.q1, self.q4, self.q7], dtype=float)


@dataclass(frozen=True)
class FreeHormoneRatios:
    """Free fraction of total T4/T3. FT = ratio * total, in the totals' units."""
    ft4: float = FT4_FRACTION
    ft3: float = FT3_FRACTION


@dataclass(frozen=True, eq=False)
class ThyroidSimulationResult:
    """
    Output of one completed run. Arrays are parallel and read-only.

    time     : step times (days), t = i*dt
    t4, t3   : total hormone concentrations (µg/L)
    tsh      : TSH concentration (mU/L), linear scale
    ft4, ft3 : free hormone concentrations
    q_final  : terminal pools, used to seed a following run
    """
    time: np.ndarray
    t4: np.ndarray
    t3: np.ndarray
    tsh: np.ndarray
    ft4: np.ndarray
    ft3: np.ndarray
    q_final: SimulationState
    initial_state: SimulationState
    scaling: ScalingConstants

    def __post_init__(self):
        for name in ("time",) + OUTPUT_SERIES:
            arr = np.array(getattr(self, name), dtype=float)
            arr.flags.writeable = False
            object.__setattr__(self, name, arr)

    def __len__(self) -> int:
        return len(self.time)

    def log_tsh(self) -> np.ndarray:
        """log10 TSH for display; floors at 0.001 to keep the log finite."""
        return np.log10(np.maximum(self.tsh, LOG_TSH_FLOOR))
