import pytest
from fastapi.testclient import TestClient

from api import build_services
from main import app

from fakes import FakeCRM


@pytest.fixture
def crm():
    return FakeCRM()


@pytest.fixture(params=["flat", "envelope", "nested"])
def any_shape_crm(request):
    return FakeCRM(shape=request.param)


@pytest.fixture
def services(crm):
    return build_services(crm)


@pytest.fixture
def client(services):
    original = app.state.services
    app.state.services = services
    try:
        yield TestClient(app)
    finally:
        app.state.services = original


@pytest.fixture
def requirement_form():
    return {
        "jobTitle": "Senior Python Developer",
        "clientName": "Acme",
        "requirementReceivedDate": "2026-10-01",
        "location": "Bengaluru",
        "typeOfPosition": "Permanent",
        "experienceLevel": "5-8 years",
        "positions": "3",
        "requirementStatus": "Open",
        "newProject": "Yes",
        "jdReceived": "Yes",
        "onSiteOpportunity": "No",
        "involveTraveling": "No",
        "skills": "Python, FastAPI",
        "jobDescription": "Build services",
        "manager": "Asha Rao",
        "markCompleteOnceAllFulfilled": "Yes",
        "dueDate": "",
        "additionalNotes": "",
    }
