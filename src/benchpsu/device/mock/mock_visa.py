from __future__ import annotations

from collections import deque
from typing import Iterable, Optional

from pyvisa import constants
from pyvisa.errors import VisaIOError

from benchpsu.util.check_hw import port_to_resource_name


class MockPowerSupplyInstrument:
    """Simulated serial power supply speaking the VOLT/MEAS/OUTP command set.

    Behaves like a pyvisa serial resource for the calls the session makes
    (attribute writes, `set_visa_attribute`, `write_raw`, `read_bytes`,
    `close`). The supply drives a resistive load, so the measured current is
    voltage / load_ohms while the output is on, unless a current sequence
    was scripted.

    Fault injection: `fail_writes`, `short_writes`, `timeout_reads`, and
    `responses` (mnemonic -> exact raw reply, overriding the simulation).
    """

    def __init__(
        self,
        resource_name: str = "ASRL5::INSTR",
        voltage: float = 0.0,
        output: bool = False,
        load_ohms: float = 10.0,
        currents: Optional[Iterable[float]] = None,
    ):
        self.resource_name = resource_name
        self.voltage = voltage
        self.output = output
        self.load_ohms = load_ohms
        self.current_setpoint = 0.0
        self.max_current = 1.0
        self.currents = deque(currents or [])

        self.fail_writes = False
        self.short_writes = False
        self.timeout_reads = False
        self.responses: dict[str, str] = {}

        self.attributes: dict[int, object] = {}
        self.written: list[str] = []
        self.read_count = 0
        self.closed = False
        self._pending = bytearray()

        self.baud_rate = None
        self.data_bits = None
        self.parity = None
        self.stop_bits = None
        self.flow_control = None
        self.read_termination = None
        self.timeout = None

    @property
    def measured_current(self) -> float:
        if self.currents:
            return self.currents.popleft()
        if not self.output or self.load_ohms <= 0:
            return 0.0
        return self.voltage / self.load_ohms

    def set_visa_attribute(self, name, state):
        self.attributes[name] = state
        return constants.StatusCode.success

    def write_raw(self, message: bytes) -> int:
        if self.closed:
            raise VisaIOError(constants.StatusCode.error_invalid_object)
        if self.fail_writes:
            raise VisaIOError(constants.StatusCode.error_io)
        line = message.decode("ascii").rstrip("\n")
        self.written.append(line)
        self._handle(line)
        if self.short_writes:
            return len(message) - 1
        return len(message)

    def _handle(self, line: str) -> None:
        if line in ("OUTP ON", "OUTP OFF"):
            mnemonic, arg = line, ""
        else:
            mnemonic, _, arg = line.partition(" ")

        if mnemonic in self.responses:
            self._pending += self.responses[mnemonic].encode("ascii")
            return

        match mnemonic:
            case "OUTP ON":
                self.output = True
            case "OUTP OFF":
                self.output = False
            case "VOLT":
                self.voltage = float(arg)
            case "CURR":
                self.current_setpoint = float(arg)
            case "IMAX":
                self.max_current = float(arg)
            case "OUTP?":
                self._reply("1" if self.output else "0")
            case "MEAS:VOLT?":
                self._reply(str(self.voltage))
            case "MEAS:CURR?":
                self._reply(str(self.measured_current))
            case "IMAX?":
                self._reply(str(self.max_current))
            # unknown commands are silently ignored, as the hardware does

    def _reply(self, text: str) -> None:
        self._pending += (text + "\n").encode("ascii")

    def read_bytes(self, count, chunk_size=None, break_on_termchar=False) -> bytes:
        self.read_count += 1
        if self.closed:
            raise VisaIOError(constants.StatusCode.error_invalid_object)
        if self.timeout_reads or not self._pending:
            raise VisaIOError(constants.StatusCode.error_timeout)

        end = min(count, len(self._pending))
        if break_on_termchar:
            idx = self._pending.find(b"\n")
            if idx != -1 and idx < end:
                end = idx + 1
        out = bytes(self._pending[:end])
        del self._pending[:end]
        return out

    def query(self, message: str) -> str:
        self.write_raw((message + "\n").encode("ascii"))
        return self.read_bytes(1024, break_on_termchar=True).decode("ascii")

    def close(self):
        self.closed = True
        self._pending.clear()


class MockResourceManager:
    """Stand-in for `pyvisa.ResourceManager` holding simulated instruments.

    The manager is callable and returns itself, so it can be passed directly
    as a `resource_manager_factory`.
    """

    def __init__(
        self,
        instruments: Optional[dict[str, MockPowerSupplyInstrument]] = None,
        fail_open: bool = False,
    ):
        self.instruments = instruments or {}
        self.fail_open = fail_open
        self.open_count = 0
        self.closed = False

    @classmethod
    def for_port(cls, port: str, **instrument_kwargs) -> MockResourceManager:
        """Manager with one simulated supply reachable through `port`."""
        name = port_to_resource_name(port) or "ASRL5::INSTR"
        return cls({name: MockPowerSupplyInstrument(name, **instrument_kwargs)})

    @property
    def instrument(self) -> MockPowerSupplyInstrument:
        return next(iter(self.instruments.values()))

    def __call__(self, backend: str = "") -> MockResourceManager:
        self.closed = False
        return self

    def list_resources(self, query: str = "?*::INSTR") -> tuple[str, ...]:
        return tuple(self.instruments)

    def open_resource(self, resource_name: str, **kwargs):
        if self.fail_open or resource_name not in self.instruments:
            raise VisaIOError(constants.StatusCode.error_resource_not_found)
        self.open_count += 1
        inst = self.instruments[resource_name]
        inst.closed = False
        return inst

    def close(self):
        self.closed = True
