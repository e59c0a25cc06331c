# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from syncloop_lib.core.error import (
    ConfigurationError,
    RemoteNotFoundError,
    RemotePermanentError,
    SourceUnavailableError,
    TransferGenericFailureError,
    TransientRemoteError,
)
from syncloop_lib.run.context import JobInvocation, RuntimeContext
from syncloop_lib.run.preflight import Preflight
from syncloop_lib.transfer.rclone import CommandResult


def _result(*command: str, exit_code: int = 0, output: str = "") -> CommandResult:
    return CommandResult(list(command), exit_code, output)


@pytest.fixture
def rclone():
    mock = MagicMock()
    mock.binary = "rclone"
    mock.isAvailable.return_value = True
    mock.version.return_value = _result("rclone", "version")
    mock.configShow.return_value = _result("rclone", "config", "show", "quakedrive")
    mock.ls.side_effect = lambda path: _result("rclone", "ls", path)
    return mock


@pytest.fixture
def source(tmp_path):
    path = tmp_path / "data"
    path.mkdir()
    return path


def _preflight(source, rclone) -> Preflight:
    invocation = JobInvocation(
        source=str(source),
        remote_name="quakedrive",
        base_path="Sherlock Backups",
        user="alice",
        executable="/opt/bin/syncloop",
    )
    runtime = RuntimeContext(
        job_id=None, tmp_dir=Path("/tmp"), user="alice", work_dir=Path("/home/alice")
    )
    return Preflight(invocation, runtime, rclone)


def test_preflight_passes_and_checks_both_remote_paths(source, rclone):
    _preflight(source, rclone).run()

    assert [c.args[0] for c in rclone.ls.call_args_list] == [
        "quakedrive:",
        "quakedrive:Sherlock Backups",
    ]


def test_preflight_missing_rclone(source, rclone):
    rclone.isAvailable.return_value = False

    with pytest.raises(ConfigurationError) as exc_info:
        _preflight(source, rclone).run()

    assert "module load problem" in exc_info.value.subject
    rclone.version.assert_not_called()


def test_preflight_broken_rclone(source, rclone):
    rclone.version.return_value = _result(
        "rclone", "version", exit_code=127, output="libc mismatch"
    )

    with pytest.raises(ConfigurationError) as exc_info:
        _preflight(source, rclone).run()

    assert "libc mismatch" in exc_info.value.body


def test_preflight_missing_remote_config(source, rclone):
    rclone.configShow.return_value = _result(
        "rclone", "config", "show", "quakedrive", exit_code=1
    )

    with pytest.raises(ConfigurationError) as exc_info:
        _preflight(source, rclone).run()

    assert "configuration problem" in exc_info.value.subject
    rclone.ls.assert_not_called()


def test_preflight_missing_source(tmp_path, rclone):
    with pytest.raises(SourceUnavailableError) as exc_info:
        _preflight(tmp_path / "nonexistent", rclone).run()

    assert "source path problem" in exc_info.value.subject
    rclone.ls.assert_not_called()


def test_preflight_transient_remote(source, rclone):
    rclone.ls.side_effect = lambda path: _result(
        "rclone", "ls", path, exit_code=5, output="rate limit exceeded"
    )

    with pytest.raises(TransientRemoteError) as exc_info:
        _preflight(source, rclone).run()

    assert exc_info.value.command == "rclone ls quakedrive:"
    assert exc_info.value.output == "rate limit exceeded"


@pytest.mark.parametrize(
    "exit_code, error_cls",
    [
        (1, TransferGenericFailureError),
        (3, RemoteNotFoundError),
        (7, RemotePermanentError),
    ],
)
def test_preflight_fatal_remote_base(source, rclone, exit_code, error_cls):
    def ls(path):
        code = exit_code if path == "quakedrive:Sherlock Backups" else 0
        return _result("rclone", "ls", path, exit_code=code, output="boom")

    rclone.ls.side_effect = ls

    with pytest.raises(error_cls) as exc_info:
        _preflight(source, rclone).run()

    assert exc_info.value.command == "rclone ls 'quakedrive:Sherlock Backups'"
    assert "boom" in exc_info.value.body


def test_preflight_unclassified_remote_exit_passes(source, rclone):
    rclone.ls.side_effect = lambda path: _result("rclone", "ls", path, exit_code=9)

    _preflight(source, rclone).run()
