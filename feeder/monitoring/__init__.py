"""Monitoring for the feeder controller."""

from feeder.monitoring.metrics import FeederMetrics

__all__ = ["FeederMetrics"]
