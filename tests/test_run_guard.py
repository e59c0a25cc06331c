# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import signal
from pathlib import Path
from unittest.mock import MagicMock, call, patch

import pytest

from syncloop_lib.core.error import SyncLoopError
from syncloop_lib.run.context import RuntimeContext
from syncloop_lib.run.guard import Interruption, SignalGuard
from syncloop_lib.transfer.attempt import AttemptState, SyncAttempt


def _runtime(job_id: str | None = "4242") -> RuntimeContext:
    return RuntimeContext(
        job_id=job_id, tmp_dir=Path("/tmp"), user="alice", work_dir=Path("/home/alice")
    )


@pytest.fixture
def attempt():
    mock = MagicMock(spec=SyncAttempt)
    mock.state = AttemptState.RUNNING
    mock.pid = 31337
    mock.command_line = "rclone sync data quakedrive:x"
    return mock


@pytest.fixture
def batch_system():
    return MagicMock()


def test_guard_preempted_requeues_same_job_and_exits_zero(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime("4242"))

    with pytest.raises(SystemExit) as exc_info:
        guard._handle(signal.SIGUSR1, None)

    assert exc_info.value.code == 0
    assert guard.interruption == Interruption.PREEMPTED
    batch_system.requeue.assert_called_once_with("4242")
    batch_system.submit.assert_not_called()
    attempt.discard.assert_called_once()
    attempt.terminate.assert_called_once()


def test_guard_discards_output_before_terminating(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime())

    with pytest.raises(SystemExit):
        guard._handle(signal.SIGUSR1, None)

    assert attempt.mock_calls[:2] == [call.discard(), call.terminate()]


def test_guard_preempted_requeue_failure_exits_one(attempt, batch_system):
    batch_system.requeue.side_effect = SyncLoopError("Invalid job id")
    guard = SignalGuard(attempt, batch_system, _runtime())

    with pytest.raises(SystemExit) as exc_info:
        guard._handle(signal.SIGUSR1, None)

    assert exc_info.value.code == 1
    batch_system.requeue.assert_called_once()


def test_guard_preempted_without_job_id_exits_one(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime(None))

    with pytest.raises(SystemExit) as exc_info:
        guard._handle(signal.SIGUSR1, None)

    assert exc_info.value.code == 1
    batch_system.requeue.assert_not_called()


def test_guard_aborted_exits_one_without_rescheduling(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime())

    with pytest.raises(SystemExit) as exc_info:
        guard._handle(signal.SIGINT, None)

    assert exc_info.value.code == 1
    assert guard.interruption == Interruption.ABORTED
    batch_system.requeue.assert_not_called()
    batch_system.submit.assert_not_called()
    attempt.terminate.assert_called_once()


def test_guard_timed_out_exits_143(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime())

    with pytest.raises(SystemExit) as exc_info:
        guard._handle(signal.SIGTERM, None)

    assert exc_info.value.code == 143
    assert guard.interruption == Interruption.TIMED_OUT_EXTERNALLY
    batch_system.requeue.assert_not_called()


@pytest.mark.parametrize("state", [AttemptState.NOT_STARTED, AttemptState.REAPED])
def test_guard_handles_attempt_without_running_child(tmp_path, batch_system, state):
    output_file = tmp_path / "rclone.4242.out"
    attempt = SyncAttempt(["true"], output_file)
    if state == AttemptState.REAPED:
        attempt.start()
        attempt.wait()
    guard = SignalGuard(attempt, batch_system, _runtime())

    with pytest.raises(SystemExit) as exc_info:
        guard._handle(signal.SIGUSR1, None)

    assert exc_info.value.code == 0
    assert attempt.state == state
    assert not output_file.exists()
    batch_system.requeue.assert_called_once_with("4242")


def test_guard_ignores_signals_after_first(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime())
    guard.interruption = Interruption.PREEMPTED

    guard._handle(signal.SIGTERM, None)

    assert guard.interruption == Interruption.PREEMPTED
    attempt.terminate.assert_not_called()
    batch_system.requeue.assert_not_called()


def test_guard_installs_and_restores_handlers(attempt, batch_system):
    previous = {s: signal.getsignal(s) for s in (signal.SIGUSR1, signal.SIGINT)}

    with SignalGuard(attempt, batch_system, _runtime()) as guard:
        assert signal.getsignal(signal.SIGUSR1) == guard._handle
        assert signal.getsignal(signal.SIGINT) == guard._handle
        assert signal.getsignal(signal.SIGTERM) == guard._handle

    for signum, handler in previous.items():
        assert signal.getsignal(signum) == handler


def test_guard_logs_attempt_state(attempt, batch_system):
    attempt.state = AttemptState.NOT_STARTED
    attempt.pid = None
    guard = SignalGuard(attempt, batch_system, _runtime())

    with patch("syncloop_lib.run.guard.logger") as mock_logger:
        with pytest.raises(SystemExit):
            guard._handle(signal.SIGINT, None)

    message = mock_logger.info.call_args_list[0][0][0]
    assert "SIGINT" in message
    assert "pid" not in message


def test_guard_logs_child_pid(attempt, batch_system):
    guard = SignalGuard(attempt, batch_system, _runtime())

    with patch("syncloop_lib.run.guard.logger") as mock_logger:
        with pytest.raises(SystemExit):
            guard._handle(signal.SIGUSR1, None)

    assert "child pid 31337" in mock_logger.info.call_args_list[0][0][0]
