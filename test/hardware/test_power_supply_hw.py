import threading
import time

import pytest
from loguru import logger

from benchpsu.device import PowerSupplyController
from benchpsu.meas import CurrentPoller
from benchpsu.types import PollerConfig, PsError

pytestmark = pytest.mark.hardware


@pytest.mark.usefixtures("client_log")
class TestPowerSupplyHardware:
    def test_connects(self, psu: PowerSupplyController) -> None:
        assert psu.is_open() is PsError.SUCCESS
        logger.info("Connected to {}", psu.session.resource_name)

    def test_output_toggle(self, psu: PowerSupplyController) -> None:
        assert psu.turn_off() is PsError.SUCCESS
        time.sleep(0.2)
        assert psu.is_on() == (PsError.SUCCESS, False)

        assert psu.turn_on() is PsError.SUCCESS
        time.sleep(0.2)
        assert psu.is_on() == (PsError.SUCCESS, True)

    def test_voltage_setpoint(self, psu: PowerSupplyController) -> None:
        """Set a low voltage with the output on and read it back."""
        assert psu.write_voltage(1.0) is PsError.SUCCESS
        assert psu.turn_on() is PsError.SUCCESS
        time.sleep(0.5)  # settle

        err, measured = psu.read_voltage()
        assert err is PsError.SUCCESS
        assert abs(measured - 1.0) < 0.05, f"Voltage error: read {measured} V"

    @pytest.mark.slow
    def test_poller_reports_current(self, psu: PowerSupplyController) -> None:
        psu.write_voltage(1.0)
        psu.turn_on()

        seen = []
        got_one = threading.Event()

        def on_current_changed(current):
            seen.append(current)
            got_one.set()

        with CurrentPoller(
            psu, on_current_changed, config=PollerConfig(sample_interval=0.5)
        ):
            got_one.wait(timeout=10.0)
        logger.info("Poller saw currents {}", seen)
        # an open-circuit output legitimately reads 0.0, which is no change
        assert all(isinstance(c, float) for c in seen)
