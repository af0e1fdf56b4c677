# -*- coding: utf-8 -*-
"""# benchpsu

Control and monitoring for programmable bench power supplies on a serial
VISA bus.

- `benchpsu.device`: instrument session and power supply controller
  (turn on/off, set voltage, read voltage/current, query output state).
- `benchpsu.meas`: background current poller reporting value changes.
- `benchpsu.types`: `PsError` result codes and configuration dataclasses.
- `benchpsu.cli`: the `benchpsu` command-line tool.

Operations return a `PsError` (and a value, for queries) instead of raising,
so a front-end can show the failure and carry on.

```python
from benchpsu import PowerSupplyController, CurrentPoller

psu = PowerSupplyController("COM5")
poller = CurrentPoller(psu, lambda amps: print(amps))
poller.start()
psu.write_voltage(5.0)
psu.turn_on()
...
poller.stop()
psu.close()
```
"""

from ._version import __version__
from .device import InstrumentSession, PowerSupplyController
from .meas import CurrentPoller
from .types import PsError

__all__ = [
    "__version__",
    "CurrentPoller",
    "InstrumentSession",
    "PowerSupplyController",
    "PsError",
]
