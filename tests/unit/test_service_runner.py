import pytest

from serverrun import service_runner


@pytest.fixture(autouse=True)
def _no_logging_setup(monkeypatch):
    calls = []
    monkeypatch.setattr(service_runner, "setup_logging", lambda name, verbose=False: calls.append((name, verbose)))
    return calls


def test_run_async_service_returns_exit_code(_no_logging_setup):
    async def factory():
        return 4

    assert service_runner.run_async_service(factory, service_name="server-run", verbose=True) == 4
    assert _no_logging_setup == [("server-run", True)]


def test_run_async_service_handles_keyboard_interrupt(caplog):
    executed = {}

    async def factory():
        executed["ran"] = True
        raise KeyboardInterrupt()

    with caplog.at_level("INFO"):
        code = service_runner.run_async_service(factory, service_name="server-run")

    assert code == 1
    assert executed.get("ran") is True
    assert any("interrupted by user" in record.message for record in caplog.records)


def test_run_async_service_uses_custom_shutdown_message(caplog):
    async def factory():
        raise KeyboardInterrupt()

    with caplog.at_level("INFO"):
        service_runner.run_async_service(factory, service_name="server-run", shutdown_message="Stopping now")

    assert any(record.message == "Stopping now" for record in caplog.records)


def test_run_async_service_propagates_other_exceptions():
    async def factory():
        raise RuntimeError("boom")

    with pytest.raises(RuntimeError, match="boom"):
        service_runner.run_async_service(factory, service_name="server-run")


def test_run_async_service_can_skip_logging_setup(_no_logging_setup):
    async def factory():
        return 0

    assert service_runner.run_async_service(factory, service_name="server-run", configure_logging=False) == 0
    assert _no_logging_setup == []
