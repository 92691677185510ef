"""Unit tests for error types."""

from __future__ import annotations

from kubelaunch.errors import (
    ClusterError,
    CommandError,
    CommandTimeoutError,
    EnvironmentMissingError,
    KubelaunchError,
    ReadinessTimeoutError,
    wrap_command_error,
)


class TestErrors:
    """Tests for KubelaunchError and subclasses."""

    def test_str_is_message(self):
        assert str(KubelaunchError("boom")) == "boom"

    def test_default_exit_codes(self):
        assert KubelaunchError("x").exit_code == 1
        assert EnvironmentMissingError("kind missing", tool="kind").exit_code == 127
        assert ReadinessTimeoutError("slow").exit_code == 1

    def test_to_dict(self):
        data = ClusterError("unreachable").to_dict()
        assert data == {"error": "ClusterError", "message": "unreachable", "exit_code": 1}

    def test_wrap_keeps_exit_code(self):
        error = CommandError("kind failed", exit_code=4, command=["kind"], stderr="no docker")

        wrapped = wrap_command_error(error, ClusterError, "Failed to create cluster")

        assert isinstance(wrapped, ClusterError)
        assert wrapped.exit_code == 4
        assert wrapped.message == "Failed to create cluster: no docker"

    def test_wrap_without_stderr_uses_message(self):
        error = CommandError("kind timed out after 60s", command=["kind"])
        wrapped = wrap_command_error(error, ClusterError, "Failed")
        assert wrapped.message == "Failed: kind timed out after 60s"

    def test_errors_are_raisable(self):
        try:
            raise ReadinessTimeoutError("slow", selector="app=sample")
        except KubelaunchError as e:
            assert e.selector == "app=sample"

    def test_command_timeout_is_a_command_error(self):
        error = CommandTimeoutError("kubectl timed out after 5s", command=["kubectl"], timeout_seconds=5)
        assert isinstance(error, CommandError)
        assert error.exit_code == 1
        assert error.timeout_seconds == 5
