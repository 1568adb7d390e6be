import math

import numpy as np
import pytest

from thyroengine.constants import ORAL_ABSORPTION_RATE
from thyroengine.dosing import (
    combine_schedules, dose_rate, from_explicit_schedule, infusion, input_rate, iv_bolus,
    fit_boluses_to_horizon, last_dosing_day, oral_dose, oral_ticks, recommended_horizon, validate_dose,
)
from thyroengine.errors import InvalidParameterError
from thyroengine.helpers import split_schedule_by_hormone
from thyroengine.types import DoseSchedule, Infusion, IVBolus, OralRepeating, OralSingle


@pytest.mark.parametrize("dt", [0.01, 0.003, 0.05, 0.1])
def test_iv_bolus_delivered_exactly_once(dt):
    """Whatever the step size, one step carries the whole bolus."""
    bolus = IVBolus(hormone="T4", amount_ug=50.0, start_d=1.234)
    rates = np.array([dose_rate(bolus, i * dt, dt=dt) for i in range(int(5 / dt))])
    assert np.count_nonzero(rates) == 1
    assert float(np.sum(rates) * dt) == pytest.approx(50.0, rel=1e-12)


def test_bolus_beyond_horizon_contributes_nothing():
    bolus = IVBolus(hormone="T3", amount_ug=10.0, start_d=50.0)
    assert all(dose_rate(bolus, i * 0.01) == 0.0 for i in range(500))


def test_infusion_is_constant_on_half_open_window():
    dose = Infusion(hormone="T3", amount_ug=200.0, start_d=1.0, end_d=3.0)
    assert dose_rate(dose, 0.99) == 0.0
    assert dose_rate(dose, 1.0) == pytest.approx(100.0)
    assert dose_rate(dose, 2.99) == pytest.approx(100.0)
    assert dose_rate(dose, 3.0) == 0.0


def test_oral_single_first_order_absorption():
    dose = OralSingle(hormone="T4", amount_ug=100.0, start_d=2.0)
    ka = ORAL_ABSORPTION_RATE["T4"]
    assert dose_rate(dose, 1.99, bioavailability=0.88) == 0.0
    assert dose_rate(dose, 2.0, bioavailability=0.88) == pytest.approx(0.88 * 100.0 * ka)
    assert dose_rate(dose, 3.0, bioavailability=0.88) == pytest.approx(0.88 * 100.0 * ka * math.exp(-ka))

    # Integrated over a long window, the bioavailable fraction is delivered.
    dt = 0.01
    delivered = sum(dose_rate(dose, i * dt, dt=dt, bioavailability=0.88) * dt for i in range(4000))
    assert delivered == pytest.approx(88.0, rel=1e-2)


def test_t3_and_t4_use_their_own_absorption_constant():
    t4 = OralSingle(hormone="T4", amount_ug=10.0, start_d=0.0)
    t3 = OralSingle(hormone="T3", amount_ug=10.0, start_d=0.0)
    assert dose_rate(t4, 0.0) == pytest.approx(10.0 * ORAL_ABSORPTION_RATE["T4"])
    assert dose_rate(t3, 0.0) == pytest.approx(10.0 * ORAL_ABSORPTION_RATE["T3"])


def test_oral_repeating_ticks_include_end():
    dose = OralRepeating(hormone="T4", amount_ug=100.0, start_d=1.0, end_d=10.0, interval_d=3.0)
    assert np.allclose(oral_ticks(dose), [1.0, 4.0, 7.0, 10.0])
    later = OralRepeating(hormone="T4", amount_ug=100.0, start_d=1.0, end_d=10.5, interval_d=3.0)
    assert np.allclose(oral_ticks(later), [1.0, 4.0, 7.0, 10.0])


def test_oral_repeating_superposes_single_profiles():
    ka = ORAL_ABSORPTION_RATE["T4"]
    dose = OralRepeating(hormone="T4", amount_ug=100.0, start_d=0.0, end_d=2.0, interval_d=1.0)
    expected = 0.5 * 100.0 * ka * (1.0 + math.exp(-ka) + math.exp(-2 * ka))
    assert dose_rate(dose, 2.0, bioavailability=0.5) == pytest.approx(expected)
    # After the last tick no new doses are taken, the old ones keep absorbing.
    assert dose_rate(dose, 5.0, bioavailability=0.5) == pytest.approx(
        0.5 * 100.0 * ka * (math.exp(-5 * ka) + math.exp(-4 * ka) + math.exp(-3 * ka)))


def test_input_rate_sums_by_hormone():
    schedule = combine_schedules(
        infusion("T4", 100.0, 0.0, 2.0),
        oral_dose("T4", 50.0, 0.5),
        iv_bolus("T4", 20.0, 1.0),
        infusion("T3", 30.0, 0.0, 3.0),
    )
    t = 1.0
    t4_parts = sum(dose_rate(d, t, bioavailability=0.8) for d in schedule.doses if d.hormone == "T4")
    assert input_rate(schedule, "T4", t, bioavailability=0.8) == pytest.approx(t4_parts)
    assert input_rate(schedule, "T3", t, bioavailability=0.8) == pytest.approx(10.0)
    assert input_rate(DoseSchedule(), "T4", t) == 0.0


def test_split_schedule_by_hormone():
    schedule = combine_schedules(oral_dose("T4", 100, 0, end_d=5, interval_d=1), iv_bolus("T3", 5, 2))
    parts = split_schedule_by_hormone(schedule)
    assert set(parts) == {"T4", "T3"}
    assert [type(d) for d in parts["T4"].doses] == [OralRepeating]
    assert [type(d) for d in parts["T3"].doses] == [IVBolus]
    assert len(split_schedule_by_hormone(DoseSchedule())["T3"]) == 0


def test_builders_and_explicit_schedule():
    assert isinstance(oral_dose("T3", 25, 1).doses[0], OralSingle)
    sched = from_explicit_schedule([(2.0, 50), (0.0, 100)], hormone="T4", route="iv_bolus")
    assert [d.start_d for d in sched.doses] == [0.0, 2.0]
    assert all(isinstance(d, IVBolus) for d in sched.doses)
    assert len(combine_schedules(sched, oral_dose("T3", 5, 1))) == 3


@pytest.mark.parametrize("build", [
    lambda: oral_dose("T4", 0.0, 1.0),
    lambda: oral_dose("T4", -10.0, 1.0),
    lambda: oral_dose("T4", float("nan"), 1.0),
    lambda: oral_dose("T4", 100.0, -1.0),
    lambda: oral_dose("T4", 100.0, 1.0, end_d=5.0),
    lambda: oral_dose("T4", 100.0, 1.0, end_d=5.0, interval_d=0.0),
    lambda: oral_dose("T4", 100.0, 5.0, end_d=5.0, interval_d=1.0),
    lambda: infusion("T3", 100.0, 2.0, 1.0),
    lambda: infusion("T3", 100.0, 2.0, float("inf")),
    lambda: iv_bolus("TSH", 1.0, 0.0),
    lambda: from_explicit_schedule([(0.0, 10.0)], hormone="T4", route="patch"),
    lambda: validate_dose(Infusion(hormone="T4", amount_ug=10.0, start_d=3.0, end_d=3.0)),
])
def test_malformed_doses_rejected(build):
    with pytest.raises(InvalidParameterError):
        build()


def test_recommended_horizon():
    assert recommended_horizon(5, DoseSchedule()) == 5
    assert last_dosing_day(oral_dose("T4", 100, 0, end_d=4, interval_d=1)) == 4
    assert recommended_horizon(5, oral_dose("T4", 100, 0, end_d=4, interval_d=1)) == 12
    assert recommended_horizon(5, iv_bolus("T3", 10, 10)) == 30
    assert recommended_horizon(50, infusion("T4", 10, 1, 4)) == 50


def test_repeating_ticks_land_on_their_own_step():
    """0.1 * 3 is 0.30000000000000004; that tablet is still taken at step 30."""
    ka = ORAL_ABSORPTION_RATE["T4"]
    dt = 0.01
    dose = OralRepeating(hormone="T4", amount_ug=100.0, start_d=0.0, end_d=1.0, interval_d=0.1)
    for k in range(1, 11):
        i = int(round(k * 0.1 / dt))
        before = dose_rate(dose, (i - 1) * dt, dt=dt)
        at = dose_rate(dose, i * dt, dt=dt)
        assert at - before * math.exp(-ka * dt) == pytest.approx(100.0 * ka, rel=1e-9)


def test_late_bolus_moves_to_last_step():
    sched = combine_schedules(iv_bolus("T4", 50.0, 4.996), iv_bolus("T3", 5.0, 2.0), iv_bolus("T4", 1.0, 7.0))
    fitted = fit_boluses_to_horizon(sched, days=5, n_steps=500, dt=0.01)
    assert [d.start_d for d in fitted.doses] == [2.0, pytest.approx(4.99), 7.0]
    late = fitted.doses[1]
    assert dose_rate(late, 499 * 0.01) == pytest.approx(50.0 / 0.01)


def test_recommended_horizon_is_whole_days():
    assert recommended_horizon(1, oral_dose("T4", 100, 0, end_d=1.3, interval_d=0.5)) == 3.0
    assert recommended_horizon(1, iv_bolus("T3", 10, 0.2)) == 1.0
