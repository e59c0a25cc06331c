# Released under MIT License.
# Copyright (c) 2025 Ladislav Bartos and Robert Vacha Lab

import threading
from unittest.mock import MagicMock, patch

import pytest

from syncloop_lib.core.error import CaptureFileError, SyncLoopError
from syncloop_lib.transfer.attempt import CFG, AttemptState, SyncAttempt
from syncloop_lib.transfer.exit_codes import ExitCategory


@pytest.fixture(autouse=True)
def fast_polling():
    with (
        patch.object(CFG.runner, "subprocess_checks_wait_time", 0.01),
        patch.object(CFG.runner, "sigterm_to_sigkill", 1),
    ):
        yield


def test_attempt_initial_state(tmp_path):
    attempt = SyncAttempt(["true"], tmp_path / "rclone.1.out")

    assert attempt.state == AttemptState.NOT_STARTED
    assert attempt.pid is None
    assert attempt.output_file == tmp_path / "rclone.1.out"
    assert not attempt.output_file.exists()


def test_attempt_captures_combined_output_and_exit_code(tmp_path):
    output_file = tmp_path / "rclone.1.out"
    attempt = SyncAttempt(
        ["sh", "-c", "echo transferred; echo 'not found' >&2; exit 3"], output_file
    )

    attempt.start()
    assert attempt.pid is not None

    result = attempt.wait()

    assert attempt.state == AttemptState.REAPED
    assert result.exit_code == 3
    assert result.category == ExitCategory.NOT_FOUND
    assert "transferred" in result.output
    assert "not found" in result.output
    assert result.output_file == output_file
    assert result.command == ["sh", "-c", "echo transferred; echo 'not found' >&2; exit 3"]
    assert result.elapsed.total_seconds() >= 0

    # output stays available until the attempt is closed
    assert output_file.read_text() == result.output
    attempt.close()
    assert not output_file.exists()


def test_attempt_context_manager_releases_output(tmp_path):
    output_file = tmp_path / "rclone.1.out"

    with SyncAttempt(["sh", "-c", "echo done"], output_file) as attempt:
        attempt.start()
        result = attempt.wait()
        assert output_file.exists()

    assert result.exit_code == 0
    assert result.output.strip() == "done"
    assert not output_file.exists()


def test_attempt_context_manager_terminates_running_child(tmp_path):
    output_file = tmp_path / "rclone.1.out"

    with SyncAttempt(["sleep", "30"], output_file) as attempt:
        attempt.start()
        assert attempt.state == AttemptState.RUNNING

    assert attempt.state == AttemptState.REAPED
    assert not output_file.exists()


def test_attempt_terminate_stops_running_child(tmp_path):
    attempt = SyncAttempt(["sleep", "30"], tmp_path / "rclone.1.out")
    attempt.start()

    attempt.terminate()

    assert attempt.state == AttemptState.REAPED
    assert attempt._process.returncode == -15


def test_attempt_terminate_before_start_is_noop(tmp_path):
    attempt = SyncAttempt(["sleep", "30"], tmp_path / "rclone.1.out")

    attempt.terminate()

    assert attempt.state == AttemptState.NOT_STARTED


def test_attempt_terminate_after_reaping_is_noop(tmp_path):
    attempt = SyncAttempt(["true"], tmp_path / "rclone.1.out")
    attempt.start()
    attempt.wait()

    attempt.terminate()

    assert attempt.state == AttemptState.REAPED
    assert attempt._process.returncode == 0


def test_attempt_terminate_kills_child_ignoring_sigterm(tmp_path):
    attempt = SyncAttempt(["rclone"], tmp_path / "rclone.1.out")
    process = MagicMock()
    process.poll.return_value = None
    attempt._process = process

    attempt.terminate()

    process.terminate.assert_called_once()
    process.kill.assert_called_once()
    process.wait.assert_not_called()


def test_attempt_terminate_returns_while_poll_is_interrupted(tmp_path):
    # a signal handler may run while the main loop's poll() holds the waitpid lock
    attempt = SyncAttempt(["sleep", "30"], tmp_path / "rclone.1.out")
    attempt.start()
    finished = threading.Event()

    def terminate():
        attempt.terminate()
        finished.set()

    with attempt._process._waitpid_lock:
        thread = threading.Thread(target=terminate, daemon=True)
        thread.start()
        thread.join(timeout=5)
        assert finished.is_set()

    attempt._process.wait(timeout=5)
    assert attempt.state == AttemptState.REAPED


def test_attempt_start_with_missing_output_directory_raises_capture_error(tmp_path):
    output_file = tmp_path / "missing" / "rclone.1.out"
    attempt = SyncAttempt(["true"], output_file)

    with pytest.raises(CaptureFileError, match="Failed to create output file"):
        attempt.start()

    assert attempt.state == AttemptState.NOT_STARTED


def test_attempt_start_twice_raises(tmp_path):
    attempt = SyncAttempt(["true"], tmp_path / "rclone.1.out")
    attempt.start()

    with pytest.raises(SyncLoopError, match="already been started"):
        attempt.start()

    attempt.close()


def test_attempt_wait_before_start_raises(tmp_path):
    attempt = SyncAttempt(["true"], tmp_path / "rclone.1.out")

    with pytest.raises(SyncLoopError, match="has not been started"):
        attempt.wait()


def test_attempt_start_with_missing_binary_raises_and_leaves_no_output(tmp_path):
    output_file = tmp_path / "rclone.1.out"
    attempt = SyncAttempt(["/nonexistent/rclone", "sync"], output_file)

    with pytest.raises(SyncLoopError, match="Failed to execute"):
        attempt.start()

    assert attempt.state == AttemptState.NOT_STARTED
    assert not output_file.exists()


def test_attempt_discard_without_output_file_is_noop(tmp_path):
    attempt = SyncAttempt(["true"], tmp_path / "rclone.1.out")

    attempt.discard()

    assert not attempt.output_file.exists()
