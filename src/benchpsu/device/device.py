"""Device base class.

Every instrument driver in benchpsu inherits from Device, which provides:

1. Configuration validation (`required_config`)
2. The connection contract (open / close / is_connected)
3. A metadata snapshot for logging and front-ends

Unlike drivers that raise on failure, benchpsu devices report the outcome of
every instrument operation as a `PsError` code.
"""

from __future__ import annotations

from typing import Any, Type, TypeVar

from loguru import logger

from benchpsu.types import PsError

D = TypeVar("D", bound="Device")


class Device:
    """Base class for all instrument drivers.

    Required Methods
    ----------------
    All device implementations must override these methods:

    - open(port): Connect to the hardware, returning a PsError
    - close(): Disconnect from the hardware, never raising
    - is_connected(): Check connection status without I/O

    Attributes
    ----------
    required_config : dict[str, Type]
        Required configuration parameters and their types

    Examples
    --------
    ```python
    class MyLoad(Device):
        required_config = {"initial_port": str}

        def open(self, port: str) -> PsError:
            ...
            return PsError.SUCCESS

        def close(self) -> None:
            ...

        def is_connected(self) -> bool:
            ...
    ```
    """

    required_config: dict[str, Type] = {}  # Required configuration keys

    def __init__(self, **config_kwargs):
        for key, value in config_kwargs.items():
            setattr(self, key, value)
        for key, value in self.required_config.items():
            if not hasattr(self, key):
                logger.error(
                    f"Device {self.__class__.__name__} missing required config key: "
                    + f"{key}"
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} missing required config "
                    + f"key: {key}"
                )
            if not isinstance(getattr(self, key), value):
                logger.error(
                    f"Device {self.__class__.__name__} config key {key} "
                    + f"has wrong type: {type(getattr(self, key))} (expected {value})"
                )
                raise ValueError(
                    f"Device {self.__class__.__name__} config key {key} has "
                    + f"wrong type: {type(getattr(self, key))} (expected {value})"
                )

    def open(self, port: str) -> PsError:
        raise NotImplementedError()

    def close(self) -> None:
        raise NotImplementedError()

    def is_connected(self) -> bool:
        raise NotImplementedError()

    def unroll_metadata(self) -> dict[str, Any]:
        """Snapshot of the device state for logs and status displays."""
        return {
            "device": self.__class__.__name__,
            "connected": self.is_connected(),
        }

    def __enter__(self: D) -> D:
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
