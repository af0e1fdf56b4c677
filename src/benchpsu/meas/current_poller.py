"""Background current monitoring.

`CurrentPoller` samples the supply's output current on its own thread and
calls a subscriber only when the value changes, so a front-end never blocks
on the instrument's I/O timeout and is not flooded with identical readings.

```python
def on_current_changed(amps: float):
    print(f"{amps:.3f} A")

poller = CurrentPoller(psu, on_current_changed)
poller.start()
...
poller.stop()   # before psu.close()
```
"""

import threading
from typing import Callable, Optional

import numpy as np
from loguru import logger

from benchpsu.device.power_supply import PowerSupplyController
from benchpsu.types import PollerConfig, PsError
from benchpsu.util.logging import format_error_response

ChangePredicate = Callable[[float, float], bool]


def exact_change(previous: float, new: float) -> bool:
    return new != previous


def tolerance_change(tolerance: float) -> ChangePredicate:
    """Predicate treating readings within `tolerance` (absolute) as unchanged."""

    def changed(previous: float, new: float) -> bool:
        return not np.isclose(new, previous, rtol=0.0, atol=tolerance)

    return changed


class CurrentPoller:
    """Samples current from a controller and reports changes.

    The poller does not own the controller and must be stopped before the
    controller is closed. Each sample is taken under the controller's lock.
    A closed controller or a failed read skips the sample silently (it is
    logged, not reported); the loop simply tries again next interval.

    Parameters
    ----------
    controller : PowerSupplyController
        Supply to sample.
    on_current_changed : callable, optional
        Called with the new current (A) on every change. Runs on the poller
        thread; exceptions it raises are logged and ignored.
    config : PollerConfig, optional
        Sample interval (default 1 s) and change tolerance (default exact).
    changed : callable, optional
        `changed(previous, new) -> bool`, overriding the tolerance in config.
    """

    def __init__(
        self,
        controller: PowerSupplyController,
        on_current_changed: Optional[Callable[[float], None]] = None,
        config: Optional[PollerConfig] = None,
        changed: Optional[ChangePredicate] = None,
    ):
        self.controller = controller
        self.on_current_changed = on_current_changed
        self.config = config if config is not None else PollerConfig()
        if changed is not None:
            self._changed = changed
        elif self.config.tolerance > 0:
            self._changed = tolerance_change(self.config.tolerance)
        else:
            self._changed = exact_change

        self._previous = 0.0
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def sample_interval(self) -> float:
        return self.config.sample_interval

    @property
    def previous_current(self) -> float:
        return self._previous

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def poll_once(self) -> bool:
        """Take one sample. Returns True if a change notification was sent."""
        with self.controller.lock:
            if self.controller.is_open() is not PsError.SUCCESS:
                logger.trace("Current poller: port not open")
                return False
            err, current = self.controller.read_current()

        if err is not PsError.SUCCESS:
            logger.debug("Current poller: failed to get current ({})", err.name)
            return False

        if not self._changed(self._previous, current):
            return False

        self._previous = current
        self._notify(current)
        return True

    def _notify(self, current: float) -> None:
        if self.on_current_changed is None:
            return
        try:
            self.on_current_changed(current)
        except Exception:
            logger.error(
                "Current poller: subscriber raised, continuing. {}",
                format_error_response(),
            )

    def run(self) -> None:
        """Poll until stopped. Blocks; `start` runs this on a thread."""
        logger.debug("Current poller started, interval {} s", self.sample_interval)
        while not self._stop_event.is_set():
            self.poll_once()
            self._stop_event.wait(self.sample_interval)
        logger.debug("Current poller stopped")

    def start(self) -> None:
        """Start the poll thread. After `stop(wait=False)` this waits for the
        previous loop to exit, so do not call it while holding the
        controller lock."""
        if self.is_running:
            if not self._stop_event.is_set():
                return
            # stopped without waiting; let the old loop finish first
            self._thread.join()
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self.run, name="benchpsu-current-poller"
        )
        self._thread.daemon = True
        self._thread.start()

    def stop(self, wait: bool = True, timeout: Optional[float] = None) -> None:
        """Ask the loop to finish; the pending wait is cut short."""
        self._stop_event.set()
        if wait:
            self.join(timeout)

    def join(self, timeout: Optional[float] = None) -> None:
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.stop()
