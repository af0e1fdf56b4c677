"""Controller for a line-oriented ASCII bench power supply.

Maps the domain operations onto the instrument's command mnemonics and
parses its single-line responses. Every operation returns a `PsError`
(plus the parsed value for queries) rather than raising.

Usage
-----
```python
from benchpsu.device import PowerSupplyController

with PowerSupplyController("COM5") as psu:
    psu.write_voltage(5.0)
    psu.turn_on()
    err, amps = psu.read_current()
```
"""

import re
import threading
from typing import Any, Callable, Optional

from loguru import logger

from benchpsu.device.device import Device
from benchpsu.device.session import InstrumentSession
from benchpsu.types import ControllerConfig, ParsePolicy, PsError, UserSettings

PS_COMMANDS = {
    "write_voltage": "VOLT",
    "set_current": "CURR",
    "write_max_current": "IMAX",
    "read_voltage": "MEAS:VOLT?",
    "read_current": "MEAS:CURR?",
    "read_max_current": "IMAX?",
    "is_on": "OUTP?",
    "turn_on": "OUTP ON",
    "turn_off": "OUTP OFF",
}

# leading numeric part of a response, as C's atof would read it
_NUM_PREFIX_RE = re.compile(r"\s*([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)")


def parse_number(text: str, policy: ParsePolicy) -> tuple[PsError, float]:
    """Parse a numeric response according to `policy`.

    Lenient: "12.50" -> 12.5, "12.5V" -> 12.5, "" or "abc" -> 0.0, all
    reported as SUCCESS. Strict: only a complete number succeeds; anything
    else is (OPERATION_FAILED, 0.0).
    """
    if policy is ParsePolicy.STRICT:
        # float() alone would also take "nan", "inf" and "1_000"
        m = _NUM_PREFIX_RE.fullmatch(text.strip())
        if not m:
            return PsError.OPERATION_FAILED, 0.0
        return PsError.SUCCESS, float(m.group(1))

    m = _NUM_PREFIX_RE.match(text)
    if not m:
        return PsError.SUCCESS, 0.0
    return PsError.SUCCESS, float(m.group(1))


def format_number(value: float) -> str:
    return str(float(value))


class PowerSupplyController(Device):
    """Bench power supply reachable through a VISA serial resource.

    All operations except open/close require an open session and return
    DEVICE_NOT_CONNECTED, without touching the instrument, when it is closed.
    Any failure after that check is OPERATION_FAILED. Nothing is retried.

    Every session access happens under `lock` (re-entrant). Background
    samplers take the same lock so that open/close from the foreground can
    never interleave with a half-finished query.

    Parameters
    ----------
    port : str, optional
        Port to open on construction (e.g. "COM5"). Empty or invalid ports
        are tolerated and leave the controller closed.
    config : ControllerConfig, optional
        Session settings, voltage/current range policy and parse policy.
    resource_manager_factory : callable, optional
        Passed through to InstrumentSession.
    """

    required_config = {"initial_port": str}

    def __init__(
        self,
        port: Optional[str] = "",
        config: Optional[ControllerConfig] = None,
        resource_manager_factory: Optional[Callable[[str], Any]] = None,
    ):
        super().__init__(initial_port=port or "")
        self.config = config if config is not None else ControllerConfig()
        self.lock = threading.RLock()
        self._session = InstrumentSession(
            config=self.config.session,
            resource_manager_factory=resource_manager_factory,
        )
        if self.initial_port:
            self.open(self.initial_port)

    @property
    def session(self) -> InstrumentSession:
        return self._session

    @property
    def port(self) -> str:
        return self._session.port

    @property
    def parse_policy(self) -> ParsePolicy:
        return self.config.parse_policy

    # ------------------------------------------------------------------
    # connection
    # ------------------------------------------------------------------

    def open(self, port: str) -> PsError:
        with self.lock:
            err = self._session.open(port)
        if err is not PsError.SUCCESS:
            logger.error("Power supply: failed to open port {!r}", port)
        return err

    def close(self) -> None:
        with self.lock:
            self._session.close()

    def is_open(self) -> PsError:
        with self.lock:
            return self._session.is_open()

    def is_connected(self) -> bool:
        return self.is_open() is PsError.SUCCESS

    def connect(self, port: str) -> PsError:
        """Open `port` unless it is already the open port.

        A freshly opened port is checked by querying the output state, and
        the voltage when the output is on. If the supply does not answer,
        the port is closed again and the query's error is returned.
        """
        with self.lock:
            if self.port == port and self.is_connected():
                return PsError.SUCCESS
            err = self.open(port)
            if err is not PsError.SUCCESS:
                return err

            err, state = self.is_on()
            if err is PsError.SUCCESS and state:
                err, _ = self.read_voltage()
            if err is not PsError.SUCCESS:
                logger.error("Power supply: no answer on {!r}, closing", port)
                self.close()
            return err

    # ------------------------------------------------------------------
    # helpers
    # ------------------------------------------------------------------

    def _send(self, op: str, argument: str = "") -> PsError:
        err = self._session.send_command(PS_COMMANDS[op], argument)
        if err is not PsError.SUCCESS:
            logger.error("Power supply: {} failed to send. Error: {}", op, err.name)
            return PsError.OPERATION_FAILED
        return PsError.SUCCESS

    def _query(self, op: str) -> tuple[PsError, str]:
        err = self._send(op)
        if err is not PsError.SUCCESS:
            return err, ""
        err, text = self._session.read_line()
        if err is not PsError.SUCCESS:
            logger.error("Power supply: {} failed to read. Error: {}", op, err.name)
            return PsError.OPERATION_FAILED, ""
        return PsError.SUCCESS, text

    def _query_number(self, op: str) -> tuple[PsError, float]:
        with self.lock:
            if not self._check_open(op):
                return PsError.DEVICE_NOT_CONNECTED, 0.0
            err, text = self._query(op)
        if err is not PsError.SUCCESS:
            return err, 0.0
        err, value = parse_number(text, self.parse_policy)
        if err is not PsError.SUCCESS:
            logger.error("Power supply: {} got unparsable response {!r}", op, text)
        return err, value

    def _check_open(self, op: str) -> bool:
        if self._session.is_open() is not PsError.SUCCESS:
            logger.debug("Power supply: {} skipped, device not connected", op)
            return False
        return True

    def _write_value(self, op: str, value: float, allowed: bool, invalid: PsError):
        with self.lock:
            if not self._check_open(op):
                return PsError.DEVICE_NOT_CONNECTED
            if not allowed:
                logger.error("Power supply: {} rejected out of range value {}", op, value)
                return invalid
            err = self._send(op, format_number(value))
        if err is PsError.SUCCESS:
            logger.info("Power supply: {} -> {}", op, value)
        return err

    # ------------------------------------------------------------------
    # output
    # ------------------------------------------------------------------

    def turn_on(self) -> PsError:
        with self.lock:
            if not self._check_open("turn_on"):
                return PsError.DEVICE_NOT_CONNECTED
            err = self._send("turn_on")
        if err is PsError.SUCCESS:
            logger.info("Power supply: turned on")
        return err

    def turn_off(self) -> PsError:
        with self.lock:
            if not self._check_open("turn_off"):
                return PsError.DEVICE_NOT_CONNECTED
            err = self._send("turn_off")
        if err is PsError.SUCCESS:
            logger.info("Power supply: turned off")
        return err

    def is_on(self) -> tuple[PsError, bool]:
        """Query the output state. The first character of the reply decides."""
        with self.lock:
            if not self._check_open("is_on"):
                return PsError.DEVICE_NOT_CONNECTED, False
            err, text = self._query("is_on")
        if err is not PsError.SUCCESS:
            return err, False

        match text[:1]:
            case "1":
                logger.debug("Power supply: output is ON")
                return PsError.SUCCESS, True
            case "0":
                logger.debug("Power supply: output is OFF")
                return PsError.SUCCESS, False
            case _:
                logger.error("Power supply: unknown status response {!r}", text)
                return PsError.OPERATION_FAILED, False

    def toggle_output(
        self, restore_voltage: Optional[float] = None
    ) -> tuple[PsError, bool]:
        """Flip the output state, returning the new state.

        When switching on and `restore_voltage` is given, that voltage is
        written straight after the output is enabled. An out of range
        `restore_voltage` is rejected before anything is switched.
        """
        with self.lock:
            if not self._check_open("toggle_output"):
                return PsError.DEVICE_NOT_CONNECTED, False
            if restore_voltage is not None and not self.config.voltage_limits.allows(
                restore_voltage
            ):
                logger.error(
                    "Power supply: toggle_output rejected restore voltage {}",
                    restore_voltage,
                )
                return PsError.INVALID_VOLTAGE, False
            err, state = self.is_on()
            if err is not PsError.SUCCESS:
                return err, state
            if state:
                err = self.turn_off()
                return err, err is not PsError.SUCCESS
            err = self.turn_on()
            if err is not PsError.SUCCESS:
                return err, False
            if restore_voltage is not None:
                err = self.write_voltage(restore_voltage)
            return err, True

    # ------------------------------------------------------------------
    # voltage / current
    # ------------------------------------------------------------------

    def write_voltage(self, value: float) -> PsError:
        """Set the output voltage.

        Values outside `config.voltage_limits` (negative, by default) and NaN
        return INVALID_VOLTAGE without sending anything.
        """
        return self._write_value(
            "write_voltage",
            value,
            self.config.voltage_limits.allows(value),
            PsError.INVALID_VOLTAGE,
        )

    def read_voltage(self) -> tuple[PsError, float]:
        return self._query_number("read_voltage")

    def read_current(self) -> tuple[PsError, float]:
        return self._query_number("read_current")

    def set_current(self, value: float) -> PsError:
        return self._write_value(
            "set_current",
            value,
            self.config.current_limits.allows(value),
            PsError.INVALID_CURRENT,
        )

    def write_max_current(self, value: float) -> PsError:
        return self._write_value(
            "write_max_current",
            value,
            self.config.current_limits.allows(value),
            PsError.INVALID_CURRENT,
        )

    def read_max_current(self) -> tuple[PsError, float]:
        return self._query_number("read_max_current")

    # ------------------------------------------------------------------
    # front-end support
    # ------------------------------------------------------------------

    def apply_user_settings(self, settings: UserSettings) -> PsError:
        """Open the saved port and restore the saved voltage."""
        err = self.connect(settings.port)
        if err is not PsError.SUCCESS:
            return err
        return self.write_voltage(settings.last_saved_voltage)

    def unroll_metadata(self) -> dict[str, Any]:
        meta = super().unroll_metadata()
        meta.update(
            port=self.port,
            resource_name=self._session.resource_name,
            baud_rate=self._session.baud_rate,
            parse_policy=self.parse_policy.value,
        )
        return meta

    def __del__(self):
        session = getattr(self, "_session", None)
        if session is not None:
            session.close()
