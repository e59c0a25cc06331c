# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Values describing one syncloop invocation.

`RuntimeContext` is a snapshot of the environment (job id, temporary directory,
user), taken once at start-up and passed to every component instead of reading
environment variables ad hoc. `JobInvocation` describes the logical backup task
and is rebuilt identically by every resubmitted run.
"""

import getpass
import os
import shutil
import sys
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Self

from syncloop_lib.core.config import CFG
from syncloop_lib.core.logger import get_logger

logger = get_logger(__name__)


class ExecutionContext(Enum):
    """
    Whether syncloop runs from a terminal or as a scheduled batch job.
    """

    INTERACTIVE = 1
    SCHEDULED = 2

    def __str__(self):
        return self.name.lower()


@dataclass(frozen=True)
class RuntimeContext:
    """
    Environment-derived values of the current process.

    Attributes:
        job_id (str | None): Id of the batch job, None when not running as a job.
        tmp_dir (Path): Directory for temporary files.
        user (str): Name of the invoking user, also the notification recipient.
        work_dir (Path): Directory the source path is relative to.
        job_end_time (datetime | None): Time at which the scheduler will end the job, if known.
    """

    job_id: str | None
    tmp_dir: Path
    user: str
    work_dir: Path
    job_end_time: datetime | None = None

    @property
    def context(self) -> ExecutionContext:
        return (
            ExecutionContext.SCHEDULED if self.job_id else ExecutionContext.INTERACTIVE
        )

    def isScheduled(self) -> bool:
        """Return True if running inside a batch job."""
        return self.context == ExecutionContext.SCHEDULED

    def timeRemains(self, margin: float = 0.0) -> bool:
        """
        Return True if the scheduler has not announced that the job is about to end.

        Args:
            margin (float): Seconds before the end time that already count as 'no time left'.

        An unknown end time is treated as time remaining.
        """
        if self.job_end_time is None:
            return True
        return datetime.now().timestamp() < self.job_end_time.timestamp() - margin

    @classmethod
    def fromEnvironment(cls) -> Self:
        """
        Collect the runtime context from environment variables.

        Returns:
            RuntimeContext: Snapshot of the current environment.
        """
        env = CFG.env_vars
        job_id = os.environ.get(env.slurm_job_id) or None
        tmp_dir = Path(os.environ.get(env.tmp_dir) or "/tmp")
        user = os.environ.get(env.user) or getpass.getuser()

        job_end_time = None
        if raw_end := os.environ.get(env.slurm_job_end_time):
            try:
                job_end_time = datetime.fromtimestamp(int(raw_end))
            except ValueError:
                logger.warning(
                    f"Ignoring unparsable '{env.slurm_job_end_time}' value '{raw_end}'."
                )

        runtime = cls(
            job_id=job_id,
            tmp_dir=tmp_dir,
            user=user,
            work_dir=Path.cwd(),
            job_end_time=job_end_time,
        )
        logger.debug(f"Runtime context: {runtime}.")
        return runtime


@dataclass(frozen=True)
class JobInvocation:
    """
    The logical backup task: which path is mirrored to which remote location.

    Attributes:
        source (str): Path to synchronize, exactly as given on the command line.
        remote_name (str): Name of the rclone remote.
        base_path (str): Directory inside the remote holding all backups.
        user (str): Name of the user owning the backup.
        executable (str): Program to run when replaying this invocation.
    """

    source: str
    remote_name: str
    base_path: str
    user: str
    executable: str

    @property
    def remote_root(self) -> str:
        """Root of the rclone remote."""
        return f"{self.remote_name}:"

    @property
    def remote_base(self) -> str:
        """Base directory of all backups on the remote."""
        return f"{self.remote_name}:{self.base_path}"

    @property
    def target(self) -> str:
        """Fully qualified remote path the source is mirrored to."""
        return f"{self.remote_base}/{self.user}/{self.source.rstrip('/')}"

    @property
    def job_name(self) -> str:
        """
        Name of the batch job, derived from the final component of the source path.

        Jobs sharing a name are serialized by the scheduler, so two different
        source paths with the same final component cannot run concurrently.
        """
        path = Path(self.source)
        name = path.name
        # ".", ".." and "/" do not name a directory on their own
        if name in ("", ".."):
            name = path.resolve().name or self.source
        return f"{CFG.scheduler.job_name_prefix} {name}"

    @property
    def argv(self) -> list[str]:
        """Command line reproducing this invocation."""
        return [self.executable, self.source]

    @classmethod
    def fromSource(cls, source: str, runtime: RuntimeContext) -> Self:
        """
        Build the invocation for a source path using the configured remote.

        Args:
            source (str): Path to synchronize.
            runtime (RuntimeContext): Context supplying the user name.

        Returns:
            JobInvocation: The logical task.
        """
        return cls(
            source=source,
            remote_name=CFG.remote.name,
            base_path=CFG.remote.base_path,
            user=runtime.user,
            executable=_resolve_executable(),
        )


def _resolve_executable() -> str:
    """
    Return an absolute path to the running syncloop program.

    Resubmitted jobs start in a fresh shell, so a bare program name is
    resolved against PATH now rather than later.
    """
    program = sys.argv[0] if sys.argv and sys.argv[0] else CFG.binary_name
    if os.sep in program:
        return str(Path(program).resolve())
    return shutil.which(program) or program
