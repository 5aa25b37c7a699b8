"""Transfers from the intake to outputs, including circuit configuration markers."""

from feeder.transfer.orchestrator import TransferOrchestrator
from feeder.transfer.tasks import (
    ConfigMarkerEvent,
    TransferKind,
    TransferTask,
    parse_marker_label,
)

__all__ = [
    "ConfigMarkerEvent",
    "TransferKind",
    "TransferOrchestrator",
    "TransferTask",
    "parse_marker_label",
]
