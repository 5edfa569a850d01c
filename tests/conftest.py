"""Root pytest configuration and shared fixtures."""

from __future__ import annotations

import socket
import sys
import textwrap
from pathlib import Path
from typing import Callable, Iterator

import pytest

from serverrun.config import runtime


@pytest.fixture(autouse=True)
def _isolate_dotenv_defaults(monkeypatch):
    """Keep developer .env files out of configuration lookups."""
    monkeypatch.setattr(runtime, "_DEFAULT_VALUES", {})
    for name in (
        "SERVER_RUN_TIMEOUT_MS",
        "SERVER_RUN_INTERVAL_MS",
        "SERVER_RUN_STALL_TIMEOUT_MS",
        "SERVER_RUN_LOG_DIR",
        "LOG_APPEND",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def free_port() -> int:
    """A TCP port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("localhost", 0))
        return sock.getsockname()[1]


@pytest.fixture
def occupied_port() -> Iterator[int]:
    """A TCP port held by a listening socket for the duration of the test."""
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    sock.bind(("localhost", 0))
    sock.listen(1)
    try:
        yield sock.getsockname()[1]
    finally:
        sock.close()


@pytest.fixture
def python_script(tmp_path: Path) -> Callable[[str], str]:
    """Write a Python script and return a whitespace-splittable command running it."""
    counter = {"n": 0}

    def _make(source: str) -> str:
        counter["n"] += 1
        script = tmp_path / f"script_{counter['n']}.py"
        script.write_text(textwrap.dedent(source))
        return f"{sys.executable} {script}"

    return _make
