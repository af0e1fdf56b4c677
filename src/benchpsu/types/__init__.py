"""
Shared types: result codes and configuration dataclasses.

Configuration classes are mashumaro dataclasses, so they can be built from
(and dumped to) plain dicts, e.g. when a front-end keeps them in a JSON or
INI file:

```python
from benchpsu.types import ControllerConfig
cfg = ControllerConfig.from_dict({"parse_policy": "strict"})
```
"""

from .config import (
    ControllerConfig,
    CurrentLimits,
    ParsePolicy,
    PollerConfig,
    SessionConfig,
    UserSettings,
    VoltageLimits,
)
from .errors import ERROR_MESSAGES, PsError

__all__ = [
    "ERROR_MESSAGES",
    "ControllerConfig",
    "CurrentLimits",
    "ParsePolicy",
    "PollerConfig",
    "PsError",
    "SessionConfig",
    "UserSettings",
    "VoltageLimits",
]
