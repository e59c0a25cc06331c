# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import os

from syncloop_lib.core.error import TransientRemoteError
from syncloop_lib.core.logger import get_logger
from syncloop_lib.notify import messages
from syncloop_lib.transfer.rclone import Rclone

from .context import JobInvocation, RuntimeContext

logger = get_logger(__name__)


class Preflight:
    """
    Checks that a sync can succeed before any scheduler resources are spent on it.

    The checks run in a fixed order and stop at the first failure:
      1. rclone can be found and started,
      2. the rclone remote is configured,
      3. the source path is accessible,
      4. the root of the remote is reachable,
      5. the base directory of the backups is reachable.

    Failures are reported by raising the matching `SyncLoopError`.
    """

    def __init__(
        self,
        invocation: JobInvocation,
        runtime: RuntimeContext,
        rclone: Rclone | None = None,
    ):
        self._invocation = invocation
        self._runtime = runtime
        self._rclone = rclone or Rclone()

    def run(self) -> None:
        """
        Run all checks.

        Raises:
            ConfigurationError: If rclone or its remote is not set up.
            SourceUnavailableError: If the source path cannot be accessed.
            TransientRemoteError: If the remote asked us to wait.
            RemoteFailureError: If the remote cannot be used until something is fixed.
        """
        self.checkTransferTool()
        self.checkRemoteConfig()
        self.checkSource()
        self.checkRemote(self._invocation.remote_root)
        self.checkRemote(self._invocation.remote_base)
        logger.debug("All preflight checks passed.")

    def checkTransferTool(self) -> None:
        logger.debug(f"Checking that '{self._rclone.binary}' is available.")
        if not self._rclone.isAvailable():
            raise messages.transfer_tool_unavailable(
                f"'{self._rclone.binary}' was not found in PATH."
            )

        result = self._rclone.version()
        if result.exit_code != 0:
            raise messages.transfer_tool_unavailable(
                f"'{result.command_line}' exited with code {result.exit_code}:\n{result.output}"
            )

    def checkRemoteConfig(self) -> None:
        logger.debug(f"Checking for remote '{self._invocation.remote_name}'.")
        # local call only, the exit code needs no classification
        if self._rclone.configShow(self._invocation.remote_name).exit_code != 0:
            raise messages.remote_config_missing(
                self._invocation.remote_name,
                self._invocation.source,
                str(self._runtime.work_dir),
            )

    def checkSource(self) -> None:
        """
        Check that the source path is accessible.

        Never retried: a moved or renamed path will not come back on its own.
        """
        logger.debug(f"Checking source path '{self._invocation.source}'.")
        try:
            os.stat(self._invocation.source)
        except OSError as e:
            logger.debug(f"stat failed: {e}.")
            raise messages.source_unavailable(
                self._invocation.source, str(self._runtime.work_dir)
            ) from e

    def checkRemote(self, remote_path: str) -> None:
        """
        Check that a remote path can be listed.

        Success and unclassified exit codes both pass.
        """
        logger.debug(f"Checking remote path '{remote_path}'.")
        result = self._rclone.ls(remote_path)
        category = result.category
        logger.debug(f"Listing '{remote_path}' finished as '{category}'.")

        if category.isRetryable():
            raise TransientRemoteError(result.command_line, result.output)

        if category.isFatal():
            raise messages.remote_failure(
                category, result.command_line, result.output
            )
