import os

import pytest

import benchpsu.util
from benchpsu.device import PowerSupplyController
from benchpsu.util import TEST_LOGLEVEL

HW_PORT_ENV = "BENCHPSU_TEST_PORT"


@pytest.fixture(scope="session")
def hw_port():
    """Port of the attached supply, from $BENCHPSU_TEST_PORT."""
    port = os.environ.get(HW_PORT_ENV, "")
    if not port:
        pytest.skip(f"Set {HW_PORT_ENV} to run hardware tests")
    return port


@pytest.fixture()
def client_log():
    benchpsu.util.start_log(log_to_file=True, log_level=TEST_LOGLEVEL)
    yield
    benchpsu.util.shutdown_log()


@pytest.fixture
def psu(hw_port):
    """Open the supply for each test and leave it switched off afterwards."""
    psu = PowerSupplyController(hw_port)
    try:
        yield psu
    finally:
        psu.turn_off()
        psu.close()
