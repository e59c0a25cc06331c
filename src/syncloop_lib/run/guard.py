# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import signal
import sys
from collections.abc import Callable
from enum import Enum
from types import FrameType
from typing import Any, NoReturn

from syncloop_lib.batch.interface import BatchInterface
from syncloop_lib.core.config import CFG
from syncloop_lib.core.logger import get_logger
from syncloop_lib.transfer.attempt import SyncAttempt

from .context import RuntimeContext

logger = get_logger(__name__, show_time=True)


class Interruption(Enum):
    """
    Ways in which a running sync can be cut short.
    """

    # The scheduler warned that the job will be killed soon (SIGUSR1).
    PREEMPTED = signal.SIGUSR1
    # The scheduler killed the job (SIGTERM), typically after the time limit.
    TIMED_OUT_EXTERNALLY = signal.SIGTERM
    # An operator aborted the job (SIGINT).
    ABORTED = signal.SIGINT

    def __str__(self):
        return self.name.lower()


class SignalGuard:
    """
    Reacts to signals delivered while a sync attempt may be running.

    Every handler discards the captured output, terminates the child
    process of the attempt (if there is one), and ends the process:
      - SIGUSR1 requeues the current job under its existing id and exits with 0,
      - SIGINT exits with 1 without rescheduling,
      - SIGTERM exits with 143 and leaves requeueing to the scheduler.

    The handlers work in every state of the attempt, including before its
    child is started and after it has been reaped.
    """

    def __init__(
        self,
        attempt: SyncAttempt,
        batch_system: type[BatchInterface],
        runtime: RuntimeContext,
    ):
        self._attempt = attempt
        self._batch_system = batch_system
        self._runtime = runtime
        self._previous: dict[signal.Signals, Callable[..., Any] | int | None] = {}
        self.interruption: Interruption | None = None

    def install(self) -> None:
        """Install the signal handlers. Must be called before the attempt starts."""
        for interruption in Interruption:
            self._previous[interruption.value] = signal.signal(
                interruption.value, self._handle
            )
        logger.debug(
            f"Installed signal handlers for attempt '{self._attempt.command_line}'."
        )

    def uninstall(self) -> None:
        """Restore the signal handlers that were active before `install`."""
        for signum, handler in self._previous.items():
            signal.signal(signum, handler if handler is not None else signal.SIG_DFL)
        self._previous.clear()

    def __enter__(self) -> "SignalGuard":
        self.install()
        return self

    def __exit__(self, *_: object) -> None:
        self.uninstall()

    def _handle(self, signum: int, _frame: FrameType | None) -> None:
        if self.interruption is not None:
            # already shutting down; requeueing may make the scheduler signal us again
            logger.debug(
                f"Ignoring {signal.Signals(signum).name} during {self.interruption} shutdown."
            )
            return

        interruption = Interruption(signum)
        self.interruption = interruption
        child = f" (child pid {self._attempt.pid})" if self._attempt.pid else ""
        logger.info(
            f"Received {signal.Signals(signum).name} while the attempt is {self._attempt.state}{child}."
        )

        self._cleanup()

        match interruption:
            case Interruption.PREEMPTED:
                self._requeueAndExit()
            case Interruption.ABORTED:
                logger.error("Sync was aborted. Not rescheduling.")
                sys.exit(CFG.exit_codes.default)
            case Interruption.TIMED_OUT_EXTERNALLY:
                logger.error("Sync was terminated by the batch system.")
                # this may get ignored by the batch system
                # so you should not rely on this specific exit code
                sys.exit(CFG.exit_codes.terminated)

    def _cleanup(self) -> None:
        """
        Discard the captured output and terminate the child, if any.
        """
        self._attempt.discard()
        self._attempt.terminate()

    def _requeueAndExit(self) -> NoReturn:
        if not (job_id := self._runtime.job_id):
            # not running as a job, there is nothing to requeue
            logger.warning("No job id is available. Unable to requeue.")
            sys.exit(CFG.exit_codes.default)

        logger.info(f"Requeueing job '{job_id}'.")
        try:
            # no retrying here since there is no time for that
            self._batch_system.requeue(job_id)
        except Exception as e:
            logger.error(f"Could not requeue job '{job_id}': {e}")
            sys.exit(CFG.exit_codes.default)

        sys.exit(CFG.exit_codes.success)
