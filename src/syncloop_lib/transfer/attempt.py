# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import shlex
import subprocess
from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum
from pathlib import Path
from time import monotonic, sleep
from types import TracebackType
from typing import Self

from syncloop_lib.core.config import CFG
from syncloop_lib.core.error import CaptureFileError, SyncLoopError
from syncloop_lib.core.logger import get_logger

from .exit_codes import ExitCategory, classify

logger = get_logger(__name__, show_time=True)


class AttemptState(Enum):
    """
    Lifecycle of the child process of a sync attempt.
    """

    # Child has not been started yet; there is nothing to terminate.
    NOT_STARTED = 1
    # Child has been started and its process id is known.
    RUNNING = 2
    # Child has exited and has been reaped.
    REAPED = 3

    def __str__(self):
        return self.name.lower()


@dataclass(frozen=True)
class AttemptResult:
    """
    Outcome of a sync attempt whose child exited on its own.

    Attributes:
        command (list[str]): The command that was run.
        exit_code (int): Exit code of the child process.
        output (str): Combined standard output and standard error of the child.
        output_file (Path): File holding the captured output until the attempt is closed.
        elapsed (timedelta): Lifetime of the child process.
    """

    command: list[str]
    exit_code: int
    output: str
    output_file: Path
    elapsed: timedelta

    @property
    def category(self) -> ExitCategory:
        return classify(self.exit_code)

    @property
    def command_line(self) -> str:
        return shlex.join(self.command)


class SyncAttempt:
    """
    A single run of the transfer tool as a supervised child process.

    The combined output of the child is written to a capture file owned by the
    attempt, so it can still be attached to a notification after the child
    exits. The process handle is stored before `start` returns, which lets a
    signal handler terminate the child at any time afterwards.

    Use as a context manager: leaving the context terminates a child that is
    still running, reaps it, and removes the capture file.
    """

    def __init__(self, command: list[str], output_file: Path):
        """
        Args:
            command (list[str]): Command to execute.
            output_file (Path): Where to capture the output of the command.
        """
        self._command = command
        self._output_file = output_file
        self._process: subprocess.Popen[str] | None = None
        self._start_time: datetime | None = None

    @property
    def state(self) -> AttemptState:
        if self._process is None:
            return AttemptState.NOT_STARTED
        if self._process.returncode is None:
            return AttemptState.RUNNING
        return AttemptState.REAPED

    @property
    def pid(self) -> int | None:
        return self._process.pid if self._process else None

    @property
    def output_file(self) -> Path:
        return self._output_file

    @property
    def command_line(self) -> str:
        return shlex.join(self._command)

    def start(self) -> None:
        """
        Start the child process.

        Raises:
            CaptureFileError: If the output file cannot be created.
            SyncLoopError: If the attempt was already started or the command cannot be executed.
        """
        if self._process is not None:
            raise SyncLoopError(
                f"Sync attempt '{self.command_line}' has already been started."
            )

        logger.info(f"Running '{self.command_line}'.")
        logger.debug(f"Capturing output into '{self._output_file}'.")

        try:
            out = self._output_file.open("w")
        except OSError as e:
            raise CaptureFileError(
                f"Failed to create output file '{self._output_file}': {e}"
            ) from e

        try:
            with out:
                self._process = subprocess.Popen(
                    self._command,
                    stdout=out,
                    stderr=subprocess.STDOUT,
                    text=True,
                )
                self._start_time = datetime.now()
        except OSError as e:
            self.discard()
            raise SyncLoopError(f"Failed to execute '{self.command_line}': {e}") from e

        logger.debug(f"Started child process with pid {self._process.pid}.")

    def wait(self) -> AttemptResult:
        """
        Block until the child process exits.

        Returns:
            AttemptResult: Exit code and captured output of the child.

        Raises:
            SyncLoopError: If the attempt has not been started.
        """
        if self._process is None or self._start_time is None:
            raise SyncLoopError(
                f"Sync attempt '{self.command_line}' has not been started."
            )

        # poll instead of blocking in wait() so that signal handlers run promptly
        while self._process.poll() is None:
            sleep(CFG.runner.subprocess_checks_wait_time)

        elapsed = datetime.now() - self._start_time
        logger.info(
            f"'{self.command_line}' exited with code {self._process.returncode} after {elapsed}."
        )

        return AttemptResult(
            command=list(self._command),
            exit_code=self._process.returncode,
            output=self._readOutput(),
            output_file=self._output_file,
            elapsed=elapsed,
        )

    def terminate(self) -> None:
        """
        Terminate the child process if it is running.

        Sends SIGTERM, then SIGKILL if the child does not exit in time.
        Does nothing if the child has not been started or has already been reaped.

        Only non-blocking polls are used: this runs inside signal handlers,
        which may interrupt a `poll()` of the main loop.
        """
        if self._process is None or self._process.poll() is not None:
            return

        logger.info(f"Terminating child process {self._process.pid}.")
        self._process.terminate()

        deadline = monotonic() + CFG.runner.sigterm_to_sigkill
        while self._process.poll() is None:
            if monotonic() >= deadline:
                logger.warning(
                    f"Child process {self._process.pid} did not exit after SIGTERM. Sending SIGKILL."
                )
                self._process.kill()
                return
            sleep(min(CFG.runner.subprocess_checks_wait_time, 0.1))

    def discard(self) -> None:
        """Remove the capture file, if it exists."""
        try:
            self._output_file.unlink(missing_ok=True)
        except OSError as e:
            logger.warning(f"Could not remove '{self._output_file}': {e}.")

    def close(self) -> None:
        """Terminate and reap the child and release the captured output."""
        self.terminate()
        self.discard()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _readOutput(self) -> str:
        try:
            return self._output_file.read_text(errors="replace")
        except OSError as e:
            logger.warning(f"Could not read output of '{self.command_line}': {e}.")
            return ""

