"""Tests for the background current poller."""

import threading
import time

import pytest
from loguru import logger

from benchpsu.device import MockResourceManager, PowerSupplyController
from benchpsu.meas import CurrentPoller, exact_change, tolerance_change
from benchpsu.types import PollerConfig, PsError


def make_psu(currents):
    rm = MockResourceManager.for_port("COM5", currents=currents)
    return PowerSupplyController("COM5", resource_manager_factory=rm), rm.instrument


class TestPredicates:
    def test_exact(self):
        assert exact_change(0.0, 1.2)
        assert not exact_change(1.2, 1.2)
        assert exact_change(1.2, 1.2000001)

    def test_tolerance(self):
        changed = tolerance_change(0.001)
        assert not changed(0.1, 0.1005)
        assert changed(0.1, 0.102)


@pytest.mark.usefixtures("client_log")
class TestPollOnce:
    def test_only_changes_notified(self):
        psu, _ = make_psu([0.0, 0.0, 1.2, 1.2, 0.0])
        seen = []
        poller = CurrentPoller(psu, seen.append)

        fired = [poller.poll_once() for _ in range(5)]

        assert seen == [1.2, 0.0]
        assert fired == [False, False, True, False, True]
        assert poller.previous_current == 0.0

    def test_initial_previous_is_zero(self, psu):
        poller = CurrentPoller(psu)
        assert poller.previous_current == 0.0
        assert poller.sample_interval == 1.0

    def test_closed_controller_skips_sample(self, closed_psu, instrument):
        seen = []
        poller = CurrentPoller(closed_psu, seen.append)
        assert not poller.poll_once()
        assert seen == []
        assert instrument.written == []

    def test_read_failure_skips_sample(self):
        psu, instrument = make_psu([2.0])
        instrument.timeout_reads = True
        seen = []
        poller = CurrentPoller(psu, seen.append)
        assert not poller.poll_once()
        assert seen == []
        assert poller.previous_current == 0.0

        instrument.timeout_reads = False
        assert poller.poll_once()
        assert seen == [2.0]

    def test_tolerance_from_config(self):
        psu, _ = make_psu([0.1, 0.1005, 0.2])
        seen = []
        poller = CurrentPoller(psu, seen.append, config=PollerConfig(tolerance=0.001))
        for _ in range(3):
            poller.poll_once()
        assert seen == [0.1, 0.2]

    def test_custom_predicate(self):
        psu, _ = make_psu([0.5, 0.7, 0.4])
        seen = []
        poller = CurrentPoller(
            psu, seen.append, changed=lambda previous, new: new > previous
        )
        for _ in range(3):
            poller.poll_once()
        assert seen == [0.5, 0.7]

    def test_subscriber_error_does_not_break_polling(self):
        psu, _ = make_psu([1.0, 2.0])

        def broken(current):
            raise RuntimeError("display gone")

        messages = []
        sink_id = logger.add(messages.append, level="ERROR")
        poller = CurrentPoller(psu, broken)
        try:
            assert poller.poll_once()
            assert poller.poll_once()
        finally:
            logger.remove(sink_id)
        assert poller.previous_current == 2.0
        assert len(messages) == 2
        assert "RuntimeError: display gone" in messages[0]

    def test_no_subscriber(self):
        psu, _ = make_psu([1.0])
        poller = CurrentPoller(psu)
        assert poller.poll_once()
        assert poller.previous_current == 1.0


@pytest.mark.usefixtures("client_log")
class TestThread:
    def test_background_notifications(self):
        psu, _ = make_psu([0.0, 0.3, 0.3, 0.6])
        seen = []
        done = threading.Event()

        def on_current_changed(current):
            seen.append(current)
            if len(seen) == 2:
                done.set()

        poller = CurrentPoller(
            psu, on_current_changed, config=PollerConfig(sample_interval=0.01)
        )
        poller.start()
        try:
            assert done.wait(timeout=5.0)
        finally:
            poller.stop()
        assert seen[:2] == [0.3, 0.6]
        assert not poller.is_running
        psu.close()

    def test_stop_interrupts_wait(self, psu):
        poller = CurrentPoller(psu, config=PollerConfig(sample_interval=30.0))
        poller.start()
        assert poller.is_running
        time.sleep(0.05)

        start = time.monotonic()
        poller.stop(timeout=5.0)
        assert time.monotonic() - start < 2.0
        assert not poller.is_running

    def test_start_twice_keeps_one_thread(self, psu):
        poller = CurrentPoller(psu, config=PollerConfig(sample_interval=0.01))
        poller.start()
        thread = poller._thread
        poller.start()
        assert poller._thread is thread
        poller.stop()

    def test_restart_after_stop(self, psu):
        poller = CurrentPoller(psu, config=PollerConfig(sample_interval=0.01))
        poller.start()
        poller.stop()
        poller.start()
        assert poller.is_running
        poller.stop()
        assert not poller.is_running

    def test_restart_without_waiting(self, psu):
        poller = CurrentPoller(psu, config=PollerConfig(sample_interval=0.01))
        poller.start()
        old_thread = poller._thread
        with psu.lock:
            # the loop is stuck on the lock, so it outlives the stop request
            time.sleep(0.05)
            poller.stop(wait=False)
            assert poller.is_running
        poller.start()
        try:
            assert not old_thread.is_alive()
            assert poller._thread is not old_thread
            time.sleep(0.1)
            assert poller.is_running
        finally:
            poller.stop()
        assert not poller.is_running

    def test_context_manager(self, psu):
        with CurrentPoller(psu, config=PollerConfig(sample_interval=0.01)) as poller:
            assert poller.is_running
        assert not poller.is_running

    def test_survives_controller_close(self, psu, instrument):
        seen = []
        poller = CurrentPoller(
            psu, seen.append, config=PollerConfig(sample_interval=0.01)
        )
        poller.start()
        try:
            psu.close()
            time.sleep(0.05)
            assert poller.is_running
            assert psu.is_open() is PsError.DEVICE_NOT_CONNECTED
        finally:
            poller.stop()
        assert seen == []
