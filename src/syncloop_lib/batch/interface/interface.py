# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab


from abc import ABC

from .request import ScheduleRequest


class BatchInterface(ABC):
    """
    Abstract base class for batch system integrations.

    Concrete batch system classes must implement these methods to allow
    syncloop to submit and requeue its runs.

    All functions should raise SyncLoopError when encountering an error.
    """

    @staticmethod
    def envName() -> str:
        """
        Return the name of the batch system environment.

        Returns:
            str: The batch system name.
        """
        raise NotImplementedError(
            "envName method is not implemented for this batch system implementation"
        )

    @staticmethod
    def isAvailable() -> bool:
        """
        Determine whether the batch system is available on the current host.

        Implementations typically verify this by checking for the presence
        of required commands.

        Returns:
            bool: True if the batch system is available, False otherwise.
        """
        raise NotImplementedError(
            "isAvailable method is not implemented for this batch system implementation"
        )

    @staticmethod
    def submit(request: ScheduleRequest) -> str:
        """
        Submit a run of a syncloop task.

        The submitted job must:
          - not start before the requested start time,
          - never run concurrently with another job of the same name,
          - be warned by a SIGUSR1 signal before it is killed,
          - be eligible for requeueing.

        Args:
            request (ScheduleRequest): What to run and when.

        Returns:
            str: Id of the submitted job.

        Raises:
            SyncLoopError: If the job could not be submitted.
        """
        raise NotImplementedError(
            "submit method is not implemented for this batch system implementation"
        )

    @staticmethod
    def requeue(job_id: str) -> None:
        """
        Put an existing job back into the queue under the same job id.

        Args:
            job_id (str): Id of the job to requeue.

        Raises:
            SyncLoopError: If the job could not be requeued.
        """
        raise NotImplementedError(
            "requeue method is not implemented for this batch system implementation"
        )
