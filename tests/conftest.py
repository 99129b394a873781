from pathlib import Path

import pytest

from helpers.fakes import FakeAnalyticsClient, FakeCatalogClient, FakeClock, FakeSubmissionClient
from questionnaire_engine.catalog import load_catalog_yaml
from questionnaire_engine.session import QuestionnaireSession
from questionnaire_engine.storage import InMemorySessionStorage

FIXTURES = Path(__file__).parent / "fixtures"
DENTAL_INTAKE = FIXTURES / "dental_intake.yaml"


@pytest.fixture
def catalog():
    """The three-page dental intake catalog."""
    return load_catalog_yaml(DENTAL_INTAKE)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def submissions(clock):
    return FakeSubmissionClient(clock)


@pytest.fixture
def catalog_client(catalog):
    return FakeCatalogClient(catalog)


@pytest.fixture
def analytics():
    return FakeAnalyticsClient()


@pytest.fixture
def storage():
    return InMemorySessionStorage()


@pytest.fixture
def session(submissions, storage, clock):
    """Uninitialised session wired to the in-memory fakes."""
    return QuestionnaireSession(submissions, storage=storage, clock=clock)
