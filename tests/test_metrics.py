import numpy as np
import pytest

from thyroengine.dosing import iv_bolus
from thyroengine.errors import InvalidParameterError
from thyroengine.metrics import combined_range, summarize
from thyroengine.simulate import SimulationRequest, continue_from, run_simulation
from thyroengine.types import OUTPUT_SERIES


def test_summarize_run(base_request):
    res = run_simulation(base_request)
    summary = summarize(res)
    assert set(summary) == set(OUTPUT_SERIES)
    tsh = summary["tsh"]
    assert tsh.cmin <= tsh.cavg <= tsh.cmax
    assert tsh.cmin < tsh.cmax
    assert tsh.final == res.tsh[-1]
    assert summary["t4"].cavg == pytest.approx(float(np.mean(res.t4)))


def test_combined_range_covers_every_overlaid_run(base_request):
    first = run_simulation(base_request)
    second = run_simulation(continue_from(first, SimulationRequest(
        patient=base_request.patient, days=3, schedule=iv_bolus("T4", 200.0, 1.0))))

    lo, hi = combined_range([first, second], "t4")
    assert lo == min(float(np.min(first.t4)), float(np.min(second.t4)))
    assert hi == float(np.max(second.t4))
    assert hi > float(np.max(first.t4))


def test_combined_range_rejects_bad_input(base_request):
    res = run_simulation(base_request)
    with pytest.raises(InvalidParameterError):
        combined_range([res], "q1")
    with pytest.raises(InvalidParameterError):
        combined_range([], "tsh")
