"""VISA serial session to a bench power supply.

Owns the pyvisa resource manager and instrument handles, applies the serial
line configuration, and moves single ASCII lines in and out. It knows
nothing about what the lines mean; see `benchpsu.device.power_supply`.

The session is not thread-safe on its own. PowerSupplyController serialises
all access to it behind one lock.
"""

from typing import Any, Callable, Optional

import pyvisa
from loguru import logger
from pyvisa import constants

from benchpsu.types import PsError, SessionConfig
from benchpsu.util.check_hw import port_to_resource_name

# errors a VISA backend can raise while opening, configuring or talking
VISA_ERRORS = (pyvisa.errors.Error, OSError, ValueError)


def default_resource_manager(backend: str = "") -> pyvisa.ResourceManager:
    """Create a pyvisa ResourceManager, optionally for a given backend."""
    if backend:
        return pyvisa.ResourceManager(backend)
    return pyvisa.ResourceManager()


class InstrumentSession:
    """A serial instrument session addressed by an OS port name.

    The session is either fully closed (no handles held) or fully open
    (resource manager and instrument both held); `open` only publishes the
    handles once the instrument has been configured.

    Parameters
    ----------
    port : str, optional
        Port to open immediately (e.g. "COM5"). An empty or invalid port
        leaves the session closed.
    config : SessionConfig, optional
        Line settings. Defaults to 9600 8N1, no flow control, LF terminated,
        2000 ms timeout.
    resource_manager_factory : callable, optional
        Called with the backend string to produce a resource manager.
        Defaults to `pyvisa.ResourceManager`. Tests pass a mock here.
    """

    def __init__(
        self,
        port: str = "",
        config: Optional[SessionConfig] = None,
        resource_manager_factory: Optional[Callable[[str], Any]] = None,
    ):
        self.config = config if config is not None else SessionConfig()
        self._rm_factory = resource_manager_factory or default_resource_manager
        self._rm = None
        self._inst = None
        self._port = ""
        self._resource_name = ""

        if port:
            if self.open(port) is not PsError.SUCCESS:
                logger.warning("Power supply: failed to open port {}", port)

    @property
    def port(self) -> str:
        return self._port

    @property
    def resource_name(self) -> str:
        return self._resource_name

    @property
    def baud_rate(self) -> int:
        return self.config.baud_rate

    def open(self, port: str) -> PsError:
        """Open the instrument on `port`, closing any previous session first."""
        self.close()

        resource_name = port_to_resource_name(port)
        if resource_name is None:
            logger.error("Power supply: invalid port {!r}", port)
            return PsError.DEVICE_NOT_CONNECTED

        rm = None
        inst = None
        try:
            rm = self._rm_factory(self.config.visa_backend)
            inst = rm.open_resource(resource_name)
            self._configure(inst)
        except VISA_ERRORS as e:
            logger.error("Power supply: failed to open {}: {}", resource_name, e)
            self._release(inst, rm)
            return PsError.DEVICE_NOT_CONNECTED

        self._rm = rm
        self._inst = inst
        self._port = port
        self._resource_name = resource_name
        logger.info("Power supply: opened resource {}", resource_name)
        return PsError.SUCCESS

    def _configure(self, inst) -> None:
        cfg = self.config
        inst.baud_rate = cfg.baud_rate
        inst.data_bits = cfg.data_bits
        inst.parity = constants.Parity.none
        inst.stop_bits = constants.StopBits.one
        inst.flow_control = constants.ControlFlow.none
        inst.read_termination = cfg.read_termination
        inst.set_visa_attribute(constants.VI_ATTR_TERMCHAR_EN, constants.VI_TRUE)
        inst.timeout = cfg.timeout_ms

    def is_open(self) -> PsError:
        if self._inst is None:
            return PsError.DEVICE_NOT_CONNECTED
        return PsError.SUCCESS

    def send_command(self, mnemonic: str, argument: str = "") -> PsError:
        """Write one command line, `<mnemonic>[ <argument>]\\n`, in full."""
        if self._inst is None:
            return PsError.DEVICE_NOT_CONNECTED

        if argument:
            line = f"{mnemonic} {argument}\n"
        else:
            line = f"{mnemonic}\n"

        logger.trace("Power supply: sending {!r}", line)
        try:
            data = line.encode("ascii")
            written = self._inst.write_raw(data)
        except VISA_ERRORS as e:
            logger.error("Power supply: failed to send {!r}: {}", line, e)
            return PsError.OPERATION_FAILED

        if written != len(data):
            logger.error(
                "Power supply: short write for {!r} ({} of {} bytes)",
                line,
                written,
                len(data),
            )
            return PsError.OPERATION_FAILED
        return PsError.SUCCESS

    def read_line(self) -> tuple[PsError, str]:
        """Read one response line, terminator stripped.

        Reads at most `config.max_response_bytes`. A response that does not
        end in the terminator within that bound is an overflow and fails.
        """
        if self._inst is None:
            return PsError.DEVICE_NOT_CONNECTED, ""

        limit = self.config.max_response_bytes
        try:
            raw = self._inst.read_bytes(limit, break_on_termchar=True)
        except VISA_ERRORS as e:
            logger.error("Power supply: read failed: {}", e)
            return PsError.OPERATION_FAILED, ""

        term = self.config.read_termination.encode("ascii")
        if not raw.endswith(term):
            logger.error(
                "Power supply: response exceeded {} bytes without terminator: {!r}",
                limit,
                raw,
            )
            return PsError.OPERATION_FAILED, ""

        text = raw[: -len(term)].decode("ascii", errors="replace").rstrip("\r")
        logger.trace("Power supply: received {!r}", text)
        return PsError.SUCCESS, text

    def close(self) -> None:
        """Release the instrument, then the resource manager. Idempotent."""
        inst, rm = self._inst, self._rm
        self._inst = None
        self._rm = None
        self._port = ""
        self._resource_name = ""
        if inst is not None or rm is not None:
            self._release(inst, rm)
            logger.debug("Power supply: session closed")

    @staticmethod
    def _release(inst, rm) -> None:
        if inst is not None:
            try:
                inst.close()
            except VISA_ERRORS as e:
                logger.error(f"Error closing instrument: {e}")
        if rm is not None:
            try:
                rm.close()
            except VISA_ERRORS as e:
                logger.error(f"Error closing resource manager: {e}")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
