# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Subjects and bodies of all notifications sent by syncloop.

Every fatal condition is turned into an exception carrying its notification
here, so that the wording lives in one place and the orchestrator only has to
decide whether to send it.
"""

from syncloop_lib.core.config import CFG
from syncloop_lib.core.error import (
    ConfigurationError,
    RemoteFailureError,
    RemoteNotFoundError,
    RemotePermanentError,
    ResubmitError,
    SourceUnavailableError,
    TransferGenericFailureError,
)
from syncloop_lib.transfer.exit_codes import ExitCategory

ACTION_REQUIRED = "[ACTION REQUIRED]"
TRY_AGAIN_LATER = "[TRY AGAIN LATER]"


def _command_report(command: str, output: str) -> str:
    return (
        f"The {CFG.transfer.binary} command run was: {command}\n"
        f"Here is the output from {CFG.transfer.binary}:\n"
        f"{output}"
    )


def transfer_tool_unavailable(detail: str) -> ConfigurationError:
    """Build the error reported when rclone cannot be found or started."""
    body = (
        f"The {CFG.transfer.binary} program could not be loaded. "
        "This either means a problem with your environment (for example, "
        "a module that was not loaded), or that the installed version has "
        "been removed or replaced. Either way, this program will not work "
        "until the problem is resolved.\n\n"
        f"Details: {detail}"
    )
    return ConfigurationError(
        f"{CFG.transfer.binary} module load problem {ACTION_REQUIRED}", body
    )


def remote_config_missing(remote_name: str, source: str, work_dir: str) -> ConfigurationError:
    """Build the error reported when the rclone remote is not configured."""
    body = (
        f'Your {CFG.transfer.binary} configuration is missing a "{remote_name}" remote. '
        "That normally means that you need to do some setup work before running "
        "this job. This program will not work until the remote is set up. "
        "Check with your Lab Manager, or a lab-mate, for information on how to "
        "set up the remote!\n\n"
        f"For reference, your job was attempting to back up this path: {source}\n"
        f"The above path is relative to the following location: {work_dir}"
    )
    return ConfigurationError(
        f"{CFG.transfer.binary} configuration problem {ACTION_REQUIRED}", body
    )


def capture_file_unavailable(output_file: str, detail: str) -> ConfigurationError:
    """Build the error reported when the output of a sync cannot be captured."""
    body = (
        f'The output of {CFG.transfer.binary} could not be written to "{output_file}". '
        f"Check that the directory given by ${CFG.env_vars.tmp_dir} exists and is writable "
        "on the compute nodes. Nothing was transferred.\n\n"
        f"Details: {detail}"
    )
    return ConfigurationError(
        f"{CFG.transfer.binary} output file problem {ACTION_REQUIRED}", body
    )


def source_unavailable(source: str, work_dir: str) -> SourceUnavailableError:
    """Build the error reported when the source path cannot be accessed."""
    body = (
        f'The source path "{source}" is not accessible. It may be that the '
        "directory has been moved, or renamed. Either way, this program will "
        "not work anymore. You should try re-submitting it with a new path.\n\n"
        f"For reference, the source path above was relative to the following location: {work_dir}"
    )
    return SourceUnavailableError(
        f"{CFG.transfer.binary} source path problem {ACTION_REQUIRED}", body
    )


def remote_failure(category: ExitCategory, command: str, output: str) -> RemoteFailureError:
    """
    Build the error reported when an rclone command fails fatally.

    Args:
        category (ExitCategory): Category of the rclone exit code. Must be fatal.
        command (str): The rclone command that was run.
        output (str): Combined output of the command.

    Returns:
        RemoteFailureError: The matching error, ready to be raised.
    """
    binary = CFG.transfer.binary
    match category:
        case ExitCategory.NOT_FOUND:
            cls = RemoteNotFoundError
            subject = f"{binary} path not found {ACTION_REQUIRED}"
            lead = (
                f"There was a problem running {binary}. One of the paths wasn't "
                "found, either a local path, or a remote path."
            )
        case ExitCategory.PERMANENT_REMOTE:
            cls = RemotePermanentError
            subject = f"{binary} remote permanent error {ACTION_REQUIRED}"
            lead = (
                f"There was a problem running {binary}. The remote service reported "
                "some sort of permanent error. This is an error that cannot be fixed "
                "by just waiting around. Instead, some action must be taken in order "
                "to fix things."
            )
        case _:
            cls = TransferGenericFailureError
            subject = f"{binary} failure {ACTION_REQUIRED}"
            lead = (
                f"There was a problem running {binary}. This is either because of a "
                "local problem, or because of some other problem that "
                f"{binary} hasn't otherwise classified."
            )

    body = (
        f"{lead} Either way, this program will not work until the underlying "
        "problem is fixed.\n\n"
        f"{_command_report(command, output)}"
    )
    return cls(subject, body, command, output)


def transient_wait(command: str, output: str) -> tuple[str, str]:
    """
    Subject and body shown to an interactive user when the remote asks us to wait.
    """
    body = (
        f"There was a problem running {CFG.transfer.binary}. Too many remote "
        "operations have been performed, and we have been asked to wait until "
        "a later time before doing any more work.\n\n"
        "There is no specific problem to be fixed here. Instead, just wait a "
        "while and re-run the program.\n\n"
        f"{_command_report(command, output)}"
    )
    return f"{CFG.transfer.binary} remote temporary error {TRY_AGAIN_LATER}", body


def resubmit_failed(source: str, detail: str) -> ResubmitError:
    """Build the error reported when the next run could not be submitted."""
    body = (
        f"The next run of the backup of path {source} could not be submitted "
        "to the batch system. Until it is submitted again, this path will not "
        "be backed up.\n\n"
        f"Details: {detail}"
    )
    return ResubmitError(f"Backup resubmission problem {ACTION_REQUIRED}", body)


def backup_completed(source: str) -> tuple[str, str]:
    """Subject and body of the notification sent after a successful sync."""
    body = (
        f"Your backup of path {source} has been completed without errors!\n\n"
        f"The output of the `{CFG.transfer.binary}` command is attached. "
        "Please check it for problems."
    )
    return f"Backup completed for {source}", body
