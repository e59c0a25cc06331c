# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

"""
Configuration system for syncloop.

This module defines dataclasses representing all configurable aspects of syncloop,
including the rclone remote to back up to, environment variables, scheduler
options, runner timings, notification settings, and exit codes.

The `Config` class loads user configuration from a TOML file (if available)
and provides a globally accessible `CFG` instance.
"""

import os
import tomllib
from dataclasses import dataclass, field, fields, is_dataclass
from pathlib import Path
from typing import Any, Self


@dataclass
class EnvironmentVariables:
    """Environment variable names used by syncloop."""

    # Enables syncloop debug mode.
    debug_mode: str = "SYNCLOOP_DEBUG"
    # Explicit path to the syncloop config file.
    config: str = "SYNCLOOP_CONFIG"
    # Directory for temporary files.
    tmp_dir: str = "TMPDIR"
    # Name of the invoking user.
    user: str = "USER"
    # Id of the Slurm job (present only inside a job).
    slurm_job_id: str = "SLURM_JOB_ID"
    # Unix time at which Slurm will end the job.
    slurm_job_end_time: str = "SLURM_JOB_END_TIME"


@dataclass
class RemoteSettings:
    """The rclone remote that backups are written to."""

    # Name of the rclone remote (not the name of the drive itself).
    name: str = "quakedrive"
    # Path relative to the root of the remote, without leading or trailing '/'.
    base_path: str = "Sherlock Backups"


@dataclass
class TransferSettings:
    """Settings for the transfer tool."""

    # Name or path of the rclone binary.
    binary: str = "rclone"
    # Extra options passed to `rclone sync`.
    sync_options: list[str] = field(default_factory=list)
    # Depth used for reachability listings.
    list_max_depth: int = 1
    # Template of the capture file name; filled with the job id.
    output_file: str = "rclone.%s.out"


@dataclass
class SchedulerSettings:
    """Settings used when submitting syncloop jobs."""

    # Partition to submit to. Preemptable partitions are preferred.
    partition: str = "owners"
    # Number of CPU cores per job.
    cpus_per_task: int = 1
    # Memory per CPU core.
    mem_per_cpu: str = "1G"
    # Allow sharing of resources with other jobs.
    oversubscribe: bool = True
    # Wall time limit of one run.
    time: str = "2:00:00"
    # Minimal wall time acceptable to the scheduler.
    time_min: str = "0:10:00"
    # Seconds before the end of the job when the preemption warning is sent.
    signal_warning: int = 30
    # Slurm mail types. Only failures, since successes are notified by syncloop.
    mail_type: str = "FAIL"
    # Prefix of the job name; the final component of the source path is appended.
    job_name_prefix: str = "Backup"
    # Start time of a job resubmitted after a transient error.
    short_delay: str = "now+15minutes"
    # Start time of a job resubmitted after a successful sync.
    next_day: str = "now+1day"
    # Maximum number of attempts when submitting a job.
    retry_tries: int = 3
    # Wait time (in seconds) between submission attempts.
    retry_wait: int = 60


@dataclass
class RunnerSettings:
    """Settings for sync attempts."""

    # Delay (in seconds) between sending SIGTERM and SIGKILL to rclone.
    sigterm_to_sigkill: int = 5
    # Interval (in seconds) between successive checks of the running rclone process.
    subprocess_checks_wait_time: int = 2


@dataclass
class NotifierSettings:
    """Settings for user notifications."""

    # Program used to send mail.
    mail_binary: str = "mail"
    # Timeout for sending one mail in seconds.
    timeout: int = 60


@dataclass
class DateFormats:
    """Date and time format strings."""

    # Standard date format used by syncloop.
    standard: str = "%Y-%m-%d %H:%M:%S"


@dataclass
class ExitCodes:
    """Exit codes used by syncloop."""

    # Returned when the job was submitted, finished, or rescheduled.
    success: int = 0
    # Returned on usage errors and on failures that will not be retried.
    default: int = 1
    # Returned after the scheduler killed the job with SIGTERM.
    terminated: int = 143
    # Returned on an unexpected or unhandled error.
    unexpected_error: int = 1


@dataclass
class Config:
    """Main configuration for syncloop."""

    env_vars: EnvironmentVariables = field(default_factory=EnvironmentVariables)
    remote: RemoteSettings = field(default_factory=RemoteSettings)
    transfer: TransferSettings = field(default_factory=TransferSettings)
    scheduler: SchedulerSettings = field(default_factory=SchedulerSettings)
    runner: RunnerSettings = field(default_factory=RunnerSettings)
    notifier: NotifierSettings = field(default_factory=NotifierSettings)
    date_formats: DateFormats = field(default_factory=DateFormats)
    exit_codes: ExitCodes = field(default_factory=ExitCodes)

    # Name of the syncloop binary.
    binary_name: str = "syncloop"

    @classmethod
    def load(cls, config_path: Path | None = None) -> Self:
        """
        Load configuration from TOML file or use defaults.

        Args:
            config_path: Explicit path to config file. If None, searches standard locations.

        Returns:
            Config instance with loaded or default values.
        """
        if config_path is None:
            config_path = Config._get_config_path()

        try:
            if config_path and config_path.exists():
                with config_path.open("rb") as f:
                    config_data = tomllib.load(f)
                return _dict_to_dataclass(cls, config_data)
        except Exception as e:
            raise ValueError(f"Could not read syncloop config '{config_path}': {e}.")

        # no config found - use defaults
        return cls()

    @staticmethod
    def _get_config_path() -> Path | None:
        """
        Search for config file in standard locations (XDG compliant).
        Returns the first existing config file, or None.
        """
        config_locations: list[Path | None] = [
            # 1. Explicit environment variable (highest priority)
            Path(env_path)
            if (env_path := os.getenv(EnvironmentVariables.config))
            else None,
            # 2. Current working directory (for development/override)
            Path.cwd() / "syncloop_config.toml",
            # 3. XDG config home (standard user config location)
            Path(os.getenv("XDG_CONFIG_HOME", Path.home() / ".config"))
            / "syncloop"
            / "config.toml",
        ]

        for path in config_locations:
            if path and path.is_file():
                return path

        return None


def _dict_to_dataclass(cls, data: dict[str, Any]):
    """
    Recursively convert a dictionary to a dataclass instance.
    Handles nested dataclasses properly.
    """
    if not is_dataclass(cls):
        return data

    field_values = {}
    for field_info in fields(cls):
        field_name = field_info.name
        field_type = field_info.type

        if field_name in data:
            value = data[field_name]
            if is_dataclass(field_type) and isinstance(value, dict):
                field_values[field_name] = _dict_to_dataclass(field_type, value)
            else:
                field_values[field_name] = value

    return cls(**field_values)


# Global configuration for syncloop.
CFG = Config.load()
