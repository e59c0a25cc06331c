# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Slurm backend for syncloop.

Submits runs with `sbatch` using the singleton dependency, the begin time,
and a SIGUSR1 warning before the time limit, and requeues the current job
with `scontrol requeue`.
"""

from .slurm import Slurm

__all__ = [
    "Slurm",
]
