import pytest

from thyroengine.patient import scale_patient
from thyroengine.simulate import SimulationRequest
from thyroengine.types import PatientProfile


@pytest.fixture
def female_patient():
    return PatientProfile(height_m=1.70, weight_kg=70.0, sex="FEMALE")


@pytest.fixture
def female_scaling(female_patient):
    return scale_patient(female_patient)


@pytest.fixture
def base_request(female_patient):
    """No doses, 5 days, default euthyroid start."""
    return SimulationRequest(patient=female_patient, days=5)
