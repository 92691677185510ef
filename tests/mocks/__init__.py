"""Test doubles for kubelaunch tests."""

from .fake_tools import FakeClock, FakeTools, make_pod, popen_writing_stderr

__all__ = ["FakeClock", "FakeTools", "make_pod", "popen_writing_stderr"]
