# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import shlex
import shutil
import subprocess
from dataclasses import dataclass

from syncloop_lib.core.config import CFG
from syncloop_lib.core.logger import get_logger

from .exit_codes import ExitCategory, classify

logger = get_logger(__name__)


@dataclass(frozen=True)
class CommandResult:
    """
    Outcome of a finished rclone command.

    Attributes:
        command (list[str]): The command that was run.
        exit_code (int): Exit code of the command.
        output (str): Combined standard output and standard error.
    """

    command: list[str]
    exit_code: int
    output: str

    @property
    def category(self) -> ExitCategory:
        return classify(self.exit_code)

    @property
    def command_line(self) -> str:
        """The command as it would be typed into a shell."""
        return shlex.join(self.command)


class Rclone:
    """
    Thin wrapper around the rclone command-line tool.

    Builds rclone command lines and runs the short read-only commands used to
    validate the environment. Long-running syncs are run by `SyncAttempt`.
    """

    def __init__(self, binary: str | None = None):
        self._binary = binary or CFG.transfer.binary

    @property
    def binary(self) -> str:
        return self._binary

    def isAvailable(self) -> bool:
        """Return True if the rclone binary can be found."""
        return shutil.which(self._binary) is not None

    def version(self) -> CommandResult:
        """Run `rclone version`."""
        return self._run([self._binary, "version"])

    def configShow(self, remote_name: str) -> CommandResult:
        """
        Run `rclone config show` for a remote.

        Exits non-zero if the remote is not configured.
        """
        return self._run([self._binary, "config", "show", remote_name])

    def ls(self, remote_path: str) -> CommandResult:
        """
        Run a shallow `rclone ls` of a remote path.

        Used to check that the remote is reachable and the path exists.
        """
        return self._run(
            [
                self._binary,
                "ls",
                remote_path,
                "--max-depth",
                str(CFG.transfer.list_max_depth),
            ]
        )

    def syncCommand(self, source: str, target: str) -> list[str]:
        """
        Build the command mirroring `source` into `target`.

        Files present only in `target` are deleted by rclone.
        """
        return [self._binary, "sync", source, target, *CFG.transfer.sync_options]

    def _run(self, command: list[str]) -> CommandResult:
        logger.debug(f"Running: {shlex.join(command)}.")
        try:
            result = subprocess.run(
                command,
                text=True,
                check=False,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                errors="replace",
            )
        except OSError as e:
            # rclone could not be started at all; report it like rclone's own usage error
            logger.debug(f"Could not start '{command[0]}': {e}.")
            return CommandResult(command, 1, str(e))

        logger.debug(f"Exit code: {result.returncode}. Output: {result.stdout}")
        return CommandResult(command, result.returncode, result.stdout)
