# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Requests for future runs of a syncloop task.

A `ScheduleRequest` describes everything the batch system needs to enqueue
another run of the same logical task: the job name (which serializes runs
of the same source path), the earliest start time, and the command line
to replay.
"""

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path

from syncloop_lib.core.config import CFG


class StartTime(Enum):
    """
    Earliest start time of a submitted run.
    """

    # Start as soon as the batch system allows.
    NOW = 1
    # Start after a short delay, used after transient remote errors.
    SHORT_DELAY = 2
    # Start tomorrow, used after a successful sync.
    TOMORROW = 3

    def __str__(self):
        return self.name.lower()

    def toBegin(self) -> str:
        """
        Convert the start time to a value understood by `sbatch --begin`.

        Returns:
            str: 'now', or the configured delays (by default 'now+15minutes' and 'now+1day').
        """
        match self:
            case StartTime.NOW:
                return "now"
            case StartTime.SHORT_DELAY:
                return CFG.scheduler.short_delay
            case StartTime.TOMORROW:
                return CFG.scheduler.next_day


@dataclass(frozen=True)
class ScheduleRequest:
    """
    Request to run a syncloop task (again).

    Attributes:
        job_name (str): Name of the job. Runs sharing a name never run concurrently.
        begin (StartTime): Earliest start time.
        argv (list[str]): Command line to execute in the job.
        work_dir (Path): Directory to execute the command line in.
    """

    job_name: str
    begin: StartTime
    argv: list[str] = field(default_factory=list)
    work_dir: Path = field(default_factory=Path.cwd)
