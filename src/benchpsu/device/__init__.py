# -*- coding: utf-8 -*-
"""
Instrument drivers for benchpsu.

- `InstrumentSession`: VISA serial session (open/close, line I/O)
- `PowerSupplyController`: power supply command set on top of a session
- `MockResourceManager` / `MockPowerSupplyInstrument`: simulated hardware

Examples
--------
```python
from benchpsu.device import PowerSupplyController
from benchpsu.types import PsError

psu = PowerSupplyController("COM5")
if psu.turn_on() is not PsError.SUCCESS:
    ...
psu.close()
```

See Also
--------
benchpsu.meas.current_poller : Background current monitoring
"""

from .device import Device
from .mock import MockPowerSupplyInstrument, MockResourceManager
from .power_supply import PS_COMMANDS, PowerSupplyController
from .session import InstrumentSession

__all__ = [
    "Device",
    "InstrumentSession",
    "MockPowerSupplyInstrument",
    "MockResourceManager",
    "PS_COMMANDS",
    "PowerSupplyController",
]
