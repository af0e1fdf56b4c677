from types import SimpleNamespace
from unittest.mock import patch

import pytest

from benchpsu.device import MockPowerSupplyInstrument, MockResourceManager
from benchpsu.util.check_hw import (
    get_hw_ports,
    list_visa_devices,
    port_to_resource_name,
)


@pytest.mark.parametrize(
    "port, expected",
    [
        ("COM5", "ASRL5::INSTR"),
        ("COM12", "ASRL12::INSTR"),
        ("", None),
        ("AB", None),
        ("COM", None),
    ],
)
def test_port_to_resource_name(port, expected):
    assert port_to_resource_name(port) == expected


class _Port(SimpleNamespace):
    def __iter__(self):
        return iter((self.device, self.description, self.hwid))


@patch("benchpsu.util.check_hw.serial.tools.list_ports.comports")
def test_get_hw_ports_skips_virtual(mock_comports):
    mock_comports.return_value = [
        _Port(device="COM5", description="USB Serial", hwid="USB VID:PID=0403:6001"),
        _Port(device="COM1", description="n/a", hwid="n/a"),
    ]
    assert get_hw_ports() == {"COM5": ("USB Serial", "USB VID:PID=0403:6001")}


@pytest.fixture
def two_port_rm():
    return MockResourceManager(
        {
            "ASRL5::INSTR": MockPowerSupplyInstrument("ASRL5::INSTR"),
            "USB0::0x1AB1::0x0E11::DP8C1::INSTR": MockPowerSupplyInstrument(
                "USB0::0x1AB1::0x0E11::DP8C1::INSTR"
            ),
        }
    )


def test_list_visa_devices_filter(two_port_rm):
    devices = list_visa_devices(filter_string="ASRL", resource_manager=two_port_rm)
    assert devices == {"ASRL5::INSTR": ""}
    # caller-owned manager is left open
    assert not two_port_rm.closed


def test_list_visa_devices_idn(two_port_rm):
    inst = two_port_rm.instruments["USB0::0x1AB1::0x0E11::DP8C1::INSTR"]
    inst.responses["*IDN?"] = "RIGOL,DP832,DP8C1,00.01\n"
    devices = list_visa_devices(query_idn=True, resource_manager=two_port_rm)
    assert devices["USB0::0x1AB1::0x0E11::DP8C1::INSTR"] == "RIGOL,DP832,DP8C1,00.01"
    # plain serial supply does not answer *IDN?
    assert devices["ASRL5::INSTR"] == "Unknown device"
    assert all(i.closed for i in two_port_rm.instruments.values())
