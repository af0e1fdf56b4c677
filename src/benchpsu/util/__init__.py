# -*- coding: utf-8 -*-
"""
Utility functions and constants for benchpsu.

- Logging configuration and management
- Hardware port and VISA resource discovery
- Default constants (serial line settings, timeouts, log levels)

Examples
--------
Listing serial ports:
```python
from benchpsu.util import get_hw_ports
print(get_hw_ports())
```

See Also
--------
benchpsu.util.logging : Logging configuration
benchpsu.util.check_hw : Hardware discovery
"""

from .check_hw import get_hw_ports, list_visa_devices, port_to_resource_name
from .defaults import (
    DEFAULT_BAUD_RATE,
    DEFAULT_LOGLEVEL,
    DEFAULT_SAMPLE_INTERVAL,
    DEFAULT_TIMEOUT_MS,
    SINGLE_LINE_ERR_LOG,
    TEST_LOGLEVEL,
)
from .logging import (
    clear_log,
    format_error_response,
    get_log_filename,
    log_default_path,
    shutdown_log,
    start_log,
)

__all__ = [
    "DEFAULT_BAUD_RATE",
    "DEFAULT_LOGLEVEL",
    "DEFAULT_SAMPLE_INTERVAL",
    "DEFAULT_TIMEOUT_MS",
    "SINGLE_LINE_ERR_LOG",
    "TEST_LOGLEVEL",
    "clear_log",
    "format_error_response",
    "get_hw_ports",
    "get_log_filename",
    "list_visa_devices",
    "log_default_path",
    "port_to_resource_name",
    "shutdown_log",
    "start_log",
]
