# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import shlex
import shutil
import subprocess

from syncloop_lib.batch.interface import BatchInterface, ScheduleRequest
from syncloop_lib.core.config import CFG
from syncloop_lib.core.error import SyncLoopError
from syncloop_lib.core.logger import get_logger

logger = get_logger(__name__)


class Slurm(BatchInterface):
    def envName() -> str:
        return "Slurm"

    def isAvailable() -> bool:
        return shutil.which("sbatch") is not None

    def submit(request: ScheduleRequest) -> str:
        command = Slurm._translateSubmit(request)
        logger.debug(shlex.join(command))

        result = subprocess.run(
            command,
            text=True,
            check=False,
            capture_output=True,
            errors="replace",
        )

        if result.returncode != 0:
            raise SyncLoopError(
                f"Failed to submit job '{request.job_name}': {result.stderr.strip()}."
            )

        # --parsable prints 'job_id' or 'job_id;cluster'
        if not (job_id := result.stdout.strip().split(";")[0]):
            raise SyncLoopError(
                f"Could not read the id of the submitted job '{request.job_name}' from '{result.stdout.strip()}'."
            )

        return job_id

    def requeue(job_id: str) -> None:
        command = Slurm._translateRequeue(job_id)
        logger.debug(shlex.join(command))

        result = subprocess.run(
            command,
            text=True,
            check=False,
            capture_output=True,
            errors="replace",
        )

        if result.returncode != 0:
            raise SyncLoopError(
                f"Failed to requeue job '{job_id}': {result.stderr.strip()}."
            )

    @staticmethod
    def _translateSubmit(request: ScheduleRequest) -> list[str]:
        """
        Generate the sbatch command submitting a run of a syncloop task.

        The replayed command line is executed with `exec` so that the
        SIGUSR1 warning sent to the batch shell reaches syncloop itself.

        Args:
            request (ScheduleRequest): The run to submit.

        Returns:
            list[str]: The sbatch command.
        """
        settings = CFG.scheduler
        command = [
            "sbatch",
            "--parsable",
            "--job-name",
            request.job_name,
            "--begin",
            request.begin.toBegin(),
            "--dependency",
            "singleton",
            "--requeue",
            "--signal",
            f"B:USR1@{settings.signal_warning}",
            "--partition",
            settings.partition,
            "--ntasks",
            "1",
            "--cpus-per-task",
            str(settings.cpus_per_task),
            "--mem-per-cpu",
            settings.mem_per_cpu,
            "--time",
            settings.time,
        ]

        if settings.time_min:
            command += ["--time-min", settings.time_min]

        if settings.oversubscribe:
            command.append("--oversubscribe")

        if settings.mail_type:
            command += ["--mail-type", settings.mail_type]

        command += [
            "--chdir",
            str(request.work_dir),
            "--wrap",
            f"exec {shlex.join(request.argv)}",
        ]

        return command

    @staticmethod
    def _translateRequeue(job_id: str) -> list[str]:
        """
        Generate the command putting a job back into the queue under the same id.

        Args:
            job_id (str): The ID of the job to requeue.

        Returns:
            list[str]: The scontrol requeue command.
        """
        return ["scontrol", "requeue", job_id]
