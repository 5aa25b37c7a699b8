"""Intake-to-machine feeder controller."""

__version__ = "1.0.0"
