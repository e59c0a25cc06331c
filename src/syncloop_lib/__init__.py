# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Core implementation of the syncloop command-line tool.

syncloop turns one invocation of an rclone mirror into a recurring batch job.
It validates the environment, submits itself to the batch system, runs the
sync, classifies rclone's exit code, and decides when the next run happens.
It survives preemption and time limits by requeueing itself and retries
transient remote errors after a short delay.
"""

from .syncloop import __version__, cli

__all__ = [
    "__version__",
    "cli",
    "batch",
    "core",
    "notify",
    "run",
    "transfer",
]
