# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import socket
from time import sleep
from enum import Enum
from pathlib import Path

import syncloop_lib
from syncloop_lib.batch import BatchInterface, ScheduleRequest, Slurm, StartTime
from syncloop_lib.core.config import CFG
from syncloop_lib.core.error import (
    CaptureFileError,
    FatalSyncError,
    SyncLoopError,
    TransientRemoteError,
)
from syncloop_lib.core.logger import get_logger
from syncloop_lib.notify import messages
from syncloop_lib.notify.notifier import Notifier
from syncloop_lib.transfer.attempt import AttemptResult, SyncAttempt
from syncloop_lib.transfer.exit_codes import ExitCategory
from syncloop_lib.transfer.rclone import Rclone

from .context import JobInvocation, RuntimeContext
from .guard import SignalGuard
from .preflight import Preflight

logger = get_logger(__name__, show_time=True)


class RunState(Enum):
    """
    States of a single syncloop run.
    """

    START = 1
    PREFLIGHT = 2
    # Interactive run submitted a scheduled copy of itself.
    SUBMITTED = 3
    RUNNING = 4
    # Sync finished; the next run is scheduled for tomorrow.
    COMPLETED = 5
    # Remote asked us to wait; the next run is scheduled after a short delay.
    RESCHEDULED = 6
    # Scheduler warned about an impending kill; the job was requeued.
    PREEMPTED = 7
    # Scheduler killed the job; requeueing is up to the scheduler.
    TIMED_OUT_EXTERNALLY = 8
    # Operator aborted the run.
    ABORTED = 9
    # Run failed and the user was notified; nothing is rescheduled.
    FAILED = 10

    def __str__(self):
        return self.name.lower()


class Orchestrator:
    """
    Drives one run of a syncloop task.

    Interactively, the orchestrator validates the environment and submits a
    scheduled copy of the invocation. Inside a batch job, it validates the
    environment, runs the sync, and decides when (and whether) the task runs
    again:
      - success: notify the user and run again tomorrow,
      - transient remote error: run again after a short delay, silently,
      - any other classified failure: notify the user and stop,
      - unclassified exit code: treated as transient while the job has time left,
        otherwise as a failure.
    """

    def __init__(
        self,
        invocation: JobInvocation,
        runtime: RuntimeContext,
        batch_system: type[BatchInterface] | None = None,
        notifier: Notifier | None = None,
        rclone: Rclone | None = None,
    ):
        self._invocation = invocation
        self._runtime = runtime
        self._batch_system = batch_system or Slurm
        self._notifier = notifier or Notifier(runtime)
        self._rclone = rclone or Rclone()
        self.state = RunState.START

    def run(self) -> int:
        """
        Execute the run.

        Returns:
            int: Exit code of the process.

        Note that a signal received during the sync ends the process
        from within the signal handler.
        """
        logger.info(
            f"[syncloop v{syncloop_lib.__version__}] Backing up '{self._invocation.source}' "
            f"to '{self._invocation.target}' ({self._runtime.context} run on '{socket.gethostname()}')."
        )

        try:
            self.state = RunState.PREFLIGHT
            Preflight(self._invocation, self._runtime, self._rclone).run()

            # transfers only ever run inside a batch job
            if not self._runtime.isScheduled():
                return self._submitScheduledCopy()

            self.state = RunState.RUNNING
            return self._sync()
        except TransientRemoteError as e:
            return self._handleTransient(e)
        except FatalSyncError as e:
            return self._fail(e)

    def _submitScheduledCopy(self) -> int:
        logger.info(
            "Good to go! Submitting a job. All further messages will be sent to you by email."
        )
        job_id = self._submit(StartTime.NOW)
        self.state = RunState.SUBMITTED
        logger.info(f"Submitted job '{job_id}' ('{self._invocation.job_name}').")
        return CFG.exit_codes.success

    def _sync(self) -> int:
        attempt = SyncAttempt(
            self._rclone.syncCommand(self._invocation.source, self._invocation.target),
            self._outputFile(),
        )

        guard = SignalGuard(attempt, self._batch_system, self._runtime)
        try:
            with attempt, guard:
                try:
                    attempt.start()
                except CaptureFileError as e:
                    raise messages.capture_file_unavailable(
                        str(attempt.output_file), str(e)
                    ) from e
                except SyncLoopError as e:
                    raise messages.transfer_tool_unavailable(str(e)) from e

                result = attempt.wait()
                try:
                    # captured output must still exist when it is attached
                    return self._conclude(result)
                except TransientRemoteError as e:
                    # a preemption warning during resubmission must still requeue the job
                    return self._handleTransient(e)
        except SystemExit:
            if guard.interruption is not None:
                self.state = RunState[guard.interruption.name]
            raise

    def _conclude(self, result: AttemptResult) -> int:
        category = result.category
        logger.debug(f"Sync finished as '{category}' after {result.elapsed}.")

        if category == ExitCategory.UNCLASSIFIED:
            if self._runtime.timeRemains(CFG.scheduler.signal_warning):
                logger.warning(
                    f"Exit code {result.exit_code} is not documented by {self._rclone.binary}. "
                    "The job has time left, so the sync will be tried again."
                )
                raise TransientRemoteError(result.command_line, result.output)

            logger.warning(
                f"Exit code {result.exit_code} is not documented by {self._rclone.binary} "
                "and the job has no time left. Treating it as a failure."
            )
            category = ExitCategory.GENERIC_FAILURE

        if category.isRetryable():
            raise TransientRemoteError(result.command_line, result.output)

        if category.isFatal():
            raise messages.remote_failure(
                category, result.command_line, result.output
            )

        subject, body = messages.backup_completed(self._invocation.source)
        self._notifier.send(subject, body, result.output_file)
        self._submit(StartTime.TOMORROW)
        self.state = RunState.COMPLETED
        logger.info("Sync complete. Next run scheduled for tomorrow.")
        return CFG.exit_codes.success

    def _handleTransient(self, error: TransientRemoteError) -> int:
        if not self._runtime.isScheduled():
            # nothing to resubmit from; ask the user to try again later
            subject, body = messages.transient_wait(error.command, error.output)
            self._notifier.send(subject, body)
            self.state = RunState.FAILED
            return CFG.exit_codes.default

        # TODO: decide whether transient retries should stop after a number of attempts
        logger.warning(
            f"'{error.command}' reported a temporary remote error. "
            f"Resubmitting to start at '{StartTime.SHORT_DELAY.toBegin()}'."
        )
        try:
            self._submit(StartTime.SHORT_DELAY)
        except FatalSyncError as e:
            return self._fail(e)

        self.state = RunState.RESCHEDULED
        return CFG.exit_codes.success

    def _fail(self, error: FatalSyncError) -> int:
        self.state = RunState.FAILED
        logger.error(error.subject)
        self._notifier.send(error.subject, error.body)
        return error.exit_code

    def _submit(self, begin: StartTime) -> str:
        """
        Submit a run of this task.

        Submission is attempted `CFG.scheduler.retry_tries` times since
        the scheduler controller may be briefly unresponsive.

        Raises:
            ResubmitError: If the run could not be submitted.
        """
        batch_system = self._batch_system
        if not batch_system.isAvailable():
            raise messages.resubmit_failed(
                self._invocation.source,
                f"{batch_system.envName()} is not available on '{socket.gethostname()}'.",
            )

        request = ScheduleRequest(
            job_name=self._invocation.job_name,
            begin=begin,
            argv=self._invocation.argv,
            work_dir=self._runtime.work_dir,
        )
        logger.debug(f"Submitting {request}.")

        tries = CFG.scheduler.retry_tries
        for attempt in range(1, tries + 1):
            try:
                return batch_system.submit(request)
            except SyncLoopError as e:
                if attempt >= tries:
                    raise messages.resubmit_failed(
                        self._invocation.source,
                        f"{e}\nGave up after {attempt} attempts.",
                    ) from e
                logger.warning(
                    f"Submitting '{request.job_name}' to start at '{begin.toBegin()}' failed "
                    f"(attempt {attempt} of {tries}): {e} "
                    f"Trying again in {CFG.scheduler.retry_wait} seconds."
                )
                sleep(CFG.scheduler.retry_wait)

        raise messages.resubmit_failed(
            self._invocation.source, f"No submission attempts were made ({tries=})."
        )

    def _outputFile(self) -> Path:
        return self._runtime.tmp_dir / (CFG.transfer.output_file % self._runtime.job_id)
