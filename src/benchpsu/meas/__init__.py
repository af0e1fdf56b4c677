"""Monitoring loops that run alongside the interactive controller."""

from .current_poller import (
    CurrentPoller,
    exact_change,
    tolerance_change,
)

__all__ = ["CurrentPoller", "exact_change", "tolerance_change"]
