# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Batch-system integration for syncloop.

`Slurm` is the only supported backend and the one used by default.
"""

from .interface import BatchInterface, ScheduleRequest, StartTime
from .slurm import Slurm

__all__ = [
    "BatchInterface",
    "ScheduleRequest",
    "Slurm",
    "StartTime",
]
