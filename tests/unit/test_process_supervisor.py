import asyncio

import pytest

from serverrun.exceptions import SpawnError
from serverrun.process_supervisor import ProcessSupervisor, merge_environment, split_command


def test_split_command_splits_on_whitespace_and_appends_args():
    assert split_command("npm  run dev", ["--port", "3000"]) == ["npm", "run", "dev", "--port", "3000"]


def test_split_command_rejects_empty_command():
    with pytest.raises(SpawnError, match="empty"):
        split_command("   ")


def test_merge_environment_caller_wins(monkeypatch):
    monkeypatch.setenv("SERVER_RUN_TEST_VALUE", "parent")
    merged = merge_environment({"SERVER_RUN_TEST_VALUE": "child", "EXTRA": "1"})
    assert merged["SERVER_RUN_TEST_VALUE"] == "child"
    assert merged["EXTRA"] == "1"
    assert "PATH" in merged


def test_merge_environment_without_overrides(monkeypatch):
    monkeypatch.setenv("SERVER_RUN_TEST_VALUE", "parent")
    assert merge_environment(None)["SERVER_RUN_TEST_VALUE"] == "parent"


@pytest.mark.asyncio
async def test_launch_passes_merged_environment(python_script):
    command = python_script(
        """
        import os
        print("FOO=" + os.environ["FOO"], flush=True)
        """
    )
    supervisor = ProcessSupervisor(install_signal_handlers=False)
    handle = await supervisor.launch(command, env={"FOO": "bar"})
    handle.mark_startup_completed()

    assert await asyncio.wait_for(handle.wait(), timeout=10) == 0
    assert "FOO=bar" in handle.stdout_buffer


@pytest.mark.asyncio
async def test_launch_unknown_executable_raises_spawn_error():
    supervisor = ProcessSupervisor(install_signal_handlers=False)
    with pytest.raises(SpawnError, match="Error launching server") as excinfo:
        await supervisor.launch("server-run-definitely-missing-binary --port 3000")
    assert excinfo.value.command == "server-run-definitely-missing-binary --port 3000"
    assert excinfo.value.exit_code == 1
