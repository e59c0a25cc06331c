# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Exception types used throughout syncloop.

Errors fall into three groups. `UsageError` is reported to the console only.
`FatalSyncError` and its subclasses carry a ready-to-send notification
(subject and body) and are never retried. `TransientRemoteError` signals that
the remote asked us to come back later and leads to a delayed resubmission.
Each exception carries an associated exit code.
"""

from syncloop_lib.core.config import CFG


class SyncLoopError(Exception):
    """Common exception type for all recoverable syncloop errors."""

    exit_code = CFG.exit_codes.default


class UsageError(SyncLoopError):
    """Raised when syncloop is invoked with the wrong arguments."""

    pass


class CaptureFileError(SyncLoopError):
    """Raised when the file capturing the output of a sync cannot be created."""

    pass


class FatalSyncError(SyncLoopError):
    """
    Raised when the backup cannot continue until a human fixes something.

    Attributes:
        subject (str): Subject of the notification sent to the user.
        body (str): Body of the notification sent to the user.
    """

    def __init__(self, subject: str, body: str):
        super().__init__(subject)
        self.subject = subject
        self.body = body


class ConfigurationError(FatalSyncError):
    """Raised when rclone or its remote configuration is unavailable."""

    pass


class SourceUnavailableError(FatalSyncError):
    """Raised when the source path cannot be accessed."""

    pass


class ResubmitError(FatalSyncError):
    """Raised when the next run of the backup could not be submitted."""

    pass


class RemoteFailureError(FatalSyncError):
    """
    Raised when an rclone command fails in a way that waiting will not fix.

    Attributes:
        command (str): The rclone command that was run.
        output (str): Combined output of the command.
    """

    def __init__(self, subject: str, body: str, command: str, output: str):
        super().__init__(subject, body)
        self.command = command
        self.output = output


class TransferGenericFailureError(RemoteFailureError):
    """Raised when rclone fails for a local or otherwise unclassified reason."""

    pass


class RemoteNotFoundError(RemoteFailureError):
    """Raised when rclone reports that a local or remote path was not found."""

    pass


class RemotePermanentError(RemoteFailureError):
    """Raised when the remote service reports a permanent error."""

    pass


class TransientRemoteError(SyncLoopError):
    """
    Raised when the remote service reports a temporary condition
    such as rate limiting.
    """

    def __init__(self, command: str, output: str):
        super().__init__(f"Temporary remote error from '{command}'")
        self.command = command
        self.output = output
