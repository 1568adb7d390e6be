# src/thyroengine/models/thyroid_feedback.py
import math

import numpy as np

from ..constants import (
    A0, B0, K_T4_TO_T3, KDEG_T4, KDEG_TSH, KM, M_HILL, S3, S4, T3_MOLAR_MASS, T4_MOLAR_MASS, TSH_SCALE,
)


def circadian_drive(t):
    """sin(pi*t_h/12 - pi/2) with t in days: 24 h period, trough at t=0."""
    t_hours = 24.0 * t
    return math.sin(math.pi * t_hours / 12.0 - math.pi / 2.0)


def thyroid_feedback(t, q, k05, t4_secretion, t3_secretion, u4=0.0, u3=0.0):
    """
    Closed-loop T4/T3/TSH model with circadian TSH drive.
    Three states:
      q[0] = q1, circulating T4 (µmol)
      q[1] = q4, circulating T3 (µmol)
      q[2] = q7, circulating TSH

    Parameters:
      t            : current time (days)
      q            : current state vector [q1, q4, q7]
      k05          : patient-specific T3 clearance (1/day)
      t4_secretion : thyroidal T4 output, % of normal
      t3_secretion : thyroidal T3 output, % of normal
      u4, u3       : exogenous T4 / T3 input (µg/day), already summed over doses
    """
    q1, q4, q7 = q

    # TSH: circadian secretion suppressed by T3 (Hill), first-order degradation.
    # No exogenous TSH input in this model.
    feedback = KM / (KM + q4 ** M_HILL)
    SRTSH = (B0 + A0 * circadian_drive(t)) * feedback
    dq7 = SRTSH - KDEG_TSH * q7

    SR4 = (t4_secretion / 100.0) * S4 * q7
    dq1 = SR4 - KDEG_T4 * q1 + u4 / T4_MOLAR_MASS

    SR3 = (t3_secretion / 100.0) * S3
    dq4 = SR3 + K_T4_TO_T3 * q1 - k05 * q4 + u3 / T3_MOLAR_MASS

    return [dq1, dq4, dq7]


def concentrations(q, scaling, ratios):
    """
    Map pools to reported concentrations. q may be a single state [q1, q4, q7]
    or an (N, 3) trajectory.

    Returns dict with t4, t3 (µg/L), tsh (mU/L), ft4, ft3.
    """
    q = np.asarray(q, dtype=float)
    q1, q4, q7 = q[..., 0], q[..., 1], q[..., 2]
    t4 = T4_MOLAR_MASS * q1 / scaling.plasma_volume
    t3 = T3_MOLAR_MASS * q4 / scaling.plasma_volume
    tsh = TSH_SCALE * q7 / scaling.tsh_volume
    return {
        "t4": t4,
        "t3": t3,
        "tsh": tsh,
        "ft4": ratios.ft4 * t4,
        "ft3": ratios.ft3 * t3,
    }
