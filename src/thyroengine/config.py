# src/thyroengine/config.py
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

from .simulate import SimulationRequest
from .types import DoseSchedule, PatientProfile, SimulationState

HEIGHT_TO_M = {"cm": 0.01, "in": 0.0254, "m": 1.0}
WEIGHT_TO_KG = {"kg": 1.0, "lb": 0.453592}


class AppConfiguration(BaseModel):
    """Launch defaults for every input form; the engine never reads this implicitly."""

    model_config = ConfigDict(frozen=True)

    t4_secretion: float = Field(100.0, ge=0, le=125, description="Thyroidal T4 output, % of normal")
    t3_secretion: float = Field(100.0, ge=0, le=125, description="Thyroidal T3 output, % of normal")
    t4_absorption: float = Field(88.0, ge=0, le=100, description="Oral T4 bioavailability, %")
    t3_absorption: float = Field(88.0, ge=0, le=100, description="Oral T3 bioavailability, %")

    height: float = Field(170.0, gt=0)
    height_unit: Literal["cm", "in", "m"] = "cm"
    weight: float = Field(70.0, gt=0)
    weight_unit: Literal["kg", "lb"] = "kg"
    sex: Literal["MALE", "FEMALE"] = "FEMALE"

    simulation_days: int = Field(5, ge=1, le=100)
    initial_conditions_on: bool = True

    def patient_profile(self) -> PatientProfile:
        """Patient in engine units (meters, kilograms)."""
        return PatientProfile(
            height_m=self.height * HEIGHT_TO_M[self.height_unit],
            weight_kg=self.weight * WEIGHT_TO_KG[self.weight_unit],
            sex=self.sex,
        )

    def to_request(self, schedule: Optional[DoseSchedule] = None,
                   seed_state: Optional[SimulationState] = None,
                   auto_extend_horizon: bool = False) -> SimulationRequest:
        """Build a run request; a seeded run never recalculates initial conditions."""
        return SimulationRequest(
            patient=self.patient_profile(),
            days=float(self.simulation_days),
            schedule=schedule if schedule is not None else DoseSchedule(),
            t4_secretion=self.t4_secretion,
            t3_secretion=self.t3_secretion,
            t4_absorption=self.t4_absorption,
            t3_absorption=self.t3_absorption,
            recalculate_initial_conditions=self.initial_conditions_on and seed_state is None,
            seed_state=seed_state,
            auto_extend_horizon=auto_extend_horizon,
        )
