"""Error codes returned by the instrument session and controller.

Core operations never raise on instrument failures. They return one of these
codes (and, for queries, a value alongside it), so callers decide how to
surface the problem.
"""

from enum import IntEnum

ERROR_MESSAGES = {
    "SUCCESS": "Success",
    "INVALID_VOLTAGE": "Voltage outside the allowed range",
    "INVALID_CURRENT": "Current outside the allowed range",
    "DEVICE_NOT_CONNECTED": "Device not connected",
    "OPERATION_FAILED": "Operation failed",
}


class PsError(IntEnum):
    """Flat result code for power supply operations."""

    SUCCESS = 0
    INVALID_VOLTAGE = 1
    INVALID_CURRENT = 2
    DEVICE_NOT_CONNECTED = 3
    OPERATION_FAILED = 4

    @property
    def ok(self) -> bool:
        return self is PsError.SUCCESS

    def describe(self) -> str:
        """Human-readable message for this code."""
        return ERROR_MESSAGES[self.name]
