# src/thyroengine/patient.py
from __future__ import annotations

import math

from .constants import (
    ALLOMETRIC_EXPONENT, BASE_K05, BV_A, BV_N, BW_REF, HEMATOCRIT, IBW_FEMALE, IBW_MALE,
    MALE_CLEARANCE_MULTIPLIER, VP_NORMAL, VP_REF, VTSH_NORMAL,
)
from .errors import InvalidParameterError
from .types import PatientProfile, ScalingConstants


def ideal_body_weight(height_m: float, sex: str) -> float:
    """Sex-specific quadratic regression of ideal body weight (kg) on height (m)."""
    c0, c1, c2 = IBW_MALE if sex == "MALE" else IBW_FEMALE
    return c0 + c1 * height_m + c2 * height_m ** 2


def scale_patient(profile: PatientProfile) -> ScalingConstants:
    """
    Turn height/weight/sex into the three per-patient model constants.

      iBW      : ideal body weight from height
      deltaIBW : % deviation of actual weight from iBW
      VB       : blood volume, a * (100 + deltaIBW)^(n-1) * weight
      VP       : plasma volume, VB * (1 - hematocrit)
      VP_new   : VP normalized to the 3.2 L reference plasma volume
      VTSH_new : TSH volume, shifted by the same amount as VP_new
      k05_new  : T3 clearance scaled allometrically (weight^0.75),
                 with a 1.05 multiplier for males
    """
    _validate_profile(profile)
    h, w, sex = float(profile.height_m), float(profile.weight_kg), profile.sex

    ibw = ideal_body_weight(h, sex)
    delta_ibw = 100.0 * (w - ibw) / ibw

    vb = BV_A * (100.0 + delta_ibw) ** (BV_N - 1.0) * w
    vp = vb * (1.0 - HEMATOCRIT[sex])

    vp_new = VP_NORMAL * vp / VP_REF
    vtsh_new = VTSH_NORMAL + (vp_new - VP_NORMAL)

    k05_new = BASE_K05 * (w / BW_REF[sex]) ** ALLOMETRIC_EXPONENT
    if sex == "MALE":
        k05_new *= MALE_CLEARANCE_MULTIPLIER

    scaling = ScalingConstants(plasma_volume=vp_new, tsh_volume=vtsh_new, peripheral_clearance=k05_new)
    for name, value in vars(scaling).items():
        if not (math.isfinite(value) and value > 0):
            raise InvalidParameterError(
                f"{name} must be > 0 (got {value}) for patient {profile}.",
                {"profile": profile},
            )
    return scaling


def _validate_profile(profile: PatientProfile) -> None:
    if profile.sex not in HEMATOCRIT:
        raise InvalidParameterError(f"sex must be 'MALE' or 'FEMALE' (got {profile.sex!r}).")
    for name in ("height_m", "weight_kg"):
        x = getattr(profile, name)
        if not (math.isfinite(x) and x > 0):
            raise InvalidParameterError(f"{name} must be > 0 (got {x}).", {name: x})
