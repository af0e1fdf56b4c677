"""Configuration types for the instrument session, controller and poller."""

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from mashumaro import DataClassDictMixin

from benchpsu.util.defaults import (
    DEFAULT_BAUD_RATE,
    DEFAULT_DATA_BITS,
    DEFAULT_MAX_RESPONSE_BYTES,
    DEFAULT_READ_TERMINATION,
    DEFAULT_SAMPLE_INTERVAL,
    DEFAULT_TIMEOUT_MS,
)


class ParsePolicy(str, Enum):
    """How numeric responses that fail to parse are reported.

    LENIENT keeps the leading numeric part of the response and reads
    empty or non-numeric text as 0.0, reporting success. STRICT reports
    OPERATION_FAILED unless the whole response is a number.
    """

    LENIENT = "lenient"
    STRICT = "strict"


def _check(validators: dict[str, tuple[bool, str]], obj) -> None:
    for param, (valid, message) in validators.items():
        if not valid:
            raise ValueError(f"{message} (got {getattr(obj, param)})")


@dataclass
class SessionConfig(DataClassDictMixin):
    """Serial line and read settings applied when a session opens.

    Attributes
    ----------
    baud_rate : int
        Serial baud rate.
    data_bits : int
        Serial data bits. Parity, stop bits and flow control are fixed
        (none, one, none).
    timeout_ms : int
        I/O timeout for every read and write, in milliseconds.
    read_termination : str
        Line terminator the instrument ends responses with.
    max_response_bytes : int
        Upper bound on a single response line, terminator included.
    visa_backend : str
        pyvisa backend string (e.g. "@py"). Empty selects pyvisa's default.
    """

    baud_rate: int = DEFAULT_BAUD_RATE
    data_bits: int = DEFAULT_DATA_BITS
    timeout_ms: int = DEFAULT_TIMEOUT_MS
    read_termination: str = DEFAULT_READ_TERMINATION
    max_response_bytes: int = DEFAULT_MAX_RESPONSE_BYTES
    visa_backend: str = ""

    def __post_init__(self):
        _check(
            {
                "baud_rate": (self.baud_rate > 0, "Baud rate must be positive"),
                "data_bits": (5 <= self.data_bits <= 8, "Data bits must be 5-8"),
                "timeout_ms": (self.timeout_ms > 0, "Timeout must be positive"),
                "read_termination": (
                    len(self.read_termination) == 1,
                    "Read termination must be a single character",
                ),
                "max_response_bytes": (
                    self.max_response_bytes > 0,
                    "Max response size must be positive",
                ),
            },
            self,
        )


@dataclass
class VoltageLimits(DataClassDictMixin):
    """Range accepted by write_voltage. None means unbounded on that side."""

    min_voltage: Optional[float] = 0.0
    max_voltage: Optional[float] = None

    def __post_init__(self):
        if self.min_voltage is not None and self.max_voltage is not None:
            _check(
                {
                    "max_voltage": (
                        self.max_voltage >= self.min_voltage,
                        "Max voltage must not be below min voltage",
                    )
                },
                self,
            )

    def allows(self, value: float) -> bool:
        return _in_range(value, self.min_voltage, self.max_voltage)


@dataclass
class CurrentLimits(DataClassDictMixin):
    """Range accepted by set_current and write_max_current."""

    min_current: Optional[float] = 0.0
    max_current: Optional[float] = None

    def __post_init__(self):
        if self.min_current is not None and self.max_current is not None:
            _check(
                {
                    "max_current": (
                        self.max_current >= self.min_current,
                        "Max current must not be below min current",
                    )
                },
                self,
            )

    def allows(self, value: float) -> bool:
        return _in_range(value, self.min_current, self.max_current)


def _in_range(value: float, low: Optional[float], high: Optional[float]) -> bool:
    if math.isnan(value):
        return False
    if low is not None and value < low:
        return False
    if high is not None and value > high:
        return False
    return True


@dataclass
class ControllerConfig(DataClassDictMixin):
    """Everything the power supply controller needs besides the port."""

    session: SessionConfig = field(default_factory=SessionConfig)
    voltage_limits: VoltageLimits = field(default_factory=VoltageLimits)
    current_limits: CurrentLimits = field(default_factory=CurrentLimits)
    parse_policy: ParsePolicy = ParsePolicy.LENIENT


@dataclass
class PollerConfig(DataClassDictMixin):
    """Current poller timing and change detection.

    A tolerance of 0 reports every change (exact inequality).
    """

    sample_interval: float = DEFAULT_SAMPLE_INTERVAL
    tolerance: float = 0.0

    def __post_init__(self):
        _check(
            {
                "sample_interval": (
                    self.sample_interval > 0,
                    "Sample interval must be positive",
                ),
                "tolerance": (self.tolerance >= 0, "Tolerance cannot be negative"),
            },
            self,
        )


@dataclass
class UserSettings(DataClassDictMixin):
    """Values the front-end persists between runs.

    The core never stores these itself; the front-end loads them and hands
    them over (see PowerSupplyController.apply_user_settings).
    """

    port: str = ""
    last_saved_voltage: float = 0.0
    pin_state: bool = False
