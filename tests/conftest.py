"""Shared fixtures: fake native commands, root privileges and a fixed executable path."""

import subprocess
from pathlib import Path

import pytest

from updaterd.service import base

EXEC_PATH = "/usr/local/bin/updaterd"


class FakeRunner:
    """Stands in for subprocess: records commands and answers from a table.

    `responses` maps a command prefix (tuple) to (returncode, stdout) or to
    an exception instance to raise.
    """

    def __init__(self, responses=None):
        self.responses = dict(responses or {})
        self.commands: list[list[str]] = []

    def set(self, prefix, returncode=0, stdout=""):
        self.responses[tuple(prefix)] = (returncode, stdout)

    def __call__(self, args):
        self.commands.append(list(args))
        for prefix, answer in sorted(self.responses.items(), key=lambda item: -len(item[0])):
            if tuple(args[: len(prefix)]) == prefix:
                if isinstance(answer, Exception):
                    raise answer
                returncode, stdout = answer
                return subprocess.CompletedProcess(args, returncode, stdout=stdout, stderr="")
        return subprocess.CompletedProcess(args, 0, stdout="", stderr="")


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def privileged(monkeypatch):
    monkeypatch.setattr(base, "is_privileged", lambda: True)


@pytest.fixture
def unprivileged(monkeypatch):
    monkeypatch.setattr(base, "is_privileged", lambda: False)


@pytest.fixture(autouse=True)
def fixed_executable(monkeypatch):
    monkeypatch.setattr(base, "executable_path", lambda: Path(EXEC_PATH))
