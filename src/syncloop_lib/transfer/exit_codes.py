# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Classification of rclone exit codes.

This module defines `ExitCategory` and the table mapping rclone's documented
exit codes (https://rclone.org/docs/#exit-code) onto it. The mapping is total:
any code that rclone does not document falls through as `UNCLASSIFIED`.
"""

from enum import Enum


class ExitCategory(Enum):
    """
    Meaning of an rclone exit code, as far as syncloop is concerned.
    """

    # Command completed successfully.
    SUCCESS = 0

    # Local problem or an error rclone did not categorise further.
    GENERIC_FAILURE = 1

    # A local or remote path was not found.
    NOT_FOUND = 2

    # The remote asked us to wait; trying again later may succeed.
    TRANSIENT_REMOTE = 3

    # The remote reported an error that waiting will not fix.
    PERMANENT_REMOTE = 4

    # Exit code not documented by rclone.
    UNCLASSIFIED = 5

    def __str__(self):
        return self.name.lower()

    def isFatal(self) -> bool:
        """
        Return True if a command exiting with this category must not be retried.
        """
        return self in (
            ExitCategory.GENERIC_FAILURE,
            ExitCategory.NOT_FOUND,
            ExitCategory.PERMANENT_REMOTE,
        )

    def isRetryable(self) -> bool:
        """
        Return True if a command exiting with this category should be retried later.
        """
        return self == ExitCategory.TRANSIENT_REMOTE


# rclone exit codes
#   0  success
#   1  syntax or usage error
#   2  error not otherwise categorised
#   3  directory not found
#   4  file not found
#   5  temporary error (more retries might fix)
#   6  less serious errors (NoRetry errors)
#   7  fatal error (account suspended etc.)
#   8  transfer exceeded (--max-transfer reached)
EXIT_CODE_TABLE: dict[int, ExitCategory] = {
    0: ExitCategory.SUCCESS,
    1: ExitCategory.GENERIC_FAILURE,
    2: ExitCategory.GENERIC_FAILURE,
    3: ExitCategory.NOT_FOUND,
    4: ExitCategory.NOT_FOUND,
    5: ExitCategory.TRANSIENT_REMOTE,
    6: ExitCategory.PERMANENT_REMOTE,
    7: ExitCategory.PERMANENT_REMOTE,
    8: ExitCategory.TRANSIENT_REMOTE,
}


def classify(exit_code: int) -> ExitCategory:
    """
    Classify an rclone exit code.

    Args:
        exit_code (int): Exit code of an rclone process.

    Returns:
        ExitCategory: Category of the exit code. Never raises.
    """
    return EXIT_CODE_TABLE.get(exit_code, ExitCategory.UNCLASSIFIED)
