import pytest

import benchpsu.util
from benchpsu.device import MockResourceManager, PowerSupplyController
from benchpsu.util import TEST_LOGLEVEL


@pytest.fixture()
def client_log():
    benchpsu.util.start_log(
        log_to_file=False, log_to_stdout=True, log_level=TEST_LOGLEVEL
    )
    yield
    benchpsu.util.shutdown_log()


@pytest.fixture
def mock_rm():
    """Resource manager with one simulated supply behind COM5."""
    return MockResourceManager.for_port("COM5")


@pytest.fixture
def instrument(mock_rm):
    return mock_rm.instrument


@pytest.fixture
def psu(mock_rm):
    """Controller opened on the simulated supply."""
    psu = PowerSupplyController("COM5", resource_manager_factory=mock_rm)
    yield psu
    psu.close()


@pytest.fixture
def closed_psu(mock_rm):
    psu = PowerSupplyController("", resource_manager_factory=mock_rm)
    yield psu
    psu.close()
