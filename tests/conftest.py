import pytest

from rehearsal.interview.events import InterviewEventBus
from rehearsal.interview.testing import (
    FakeClock,
    create_mock_llm_client,
    create_mock_session_setup,
    create_test_config,
)


@pytest.fixture
def config():
    return create_test_config()


@pytest.fixture
def llm():
    return create_mock_llm_client()


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def event_bus():
    return InterviewEventBus()


@pytest.fixture
def recorded_events(event_bus):
    events = []
    event_bus.subscribe_all(events.append)
    return events


@pytest.fixture
def setup(clock):
    return create_mock_session_setup(clock=clock)


@pytest.fixture
def manager(setup):
    return setup["manager"]
