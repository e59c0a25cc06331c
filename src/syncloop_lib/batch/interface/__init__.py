# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Abstractions for integrating syncloop with HPC batch scheduling systems.

This module defines:

- `BatchInterface`: the abstract interface that every batch-system backend
  implements: submitting a run of a task and requeueing the current job.

- `ScheduleRequest` and `StartTime`: the description of a run to submit.
"""

from .interface import BatchInterface
from .request import ScheduleRequest, StartTime

__all__ = [
    "BatchInterface",
    "ScheduleRequest",
    "StartTime",
]
