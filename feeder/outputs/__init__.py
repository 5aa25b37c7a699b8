"""Outputs, pairing and allocation."""

from feeder.outputs.output import Output
from feeder.outputs.pairing import OutputPairer
from feeder.outputs.pool import AllocationStrategy, OutputPool

__all__ = [
    "AllocationStrategy",
    "Output",
    "OutputPairer",
    "OutputPool",
]
