from unittest.mock import AsyncMock, call, patch

import pytest

from serverrun.exceptions import ReadinessCheckError, ReadinessTimeoutError
from serverrun.orchestrator_helpers import await_readiness, readiness_stage, readiness_url
from serverrun.readiness_checker_helpers import CheckResult, PortTarget, UrlTarget


def test_readiness_url_prefers_explicit_url():
    assert readiness_url(3000, "http://localhost:3000/health") == "http://localhost:3000/health"
    assert readiness_url(3000, None) == "http://localhost:3000"
    assert readiness_url(None, None) is None


@pytest.mark.asyncio
async def test_url_ready():
    with patch.object(readiness_stage, "wait_for_target", AsyncMock(return_value=CheckResult.of(True))) as target_wait:
        target = await await_readiness(port=3000, url=None, timeout_ms=1000, interval_ms=100)
    assert target == UrlTarget("http://localhost:3000")
    target_wait.assert_awaited_once_with(UrlTarget("http://localhost:3000"), timeout_ms=1000, interval_ms=100)


@pytest.mark.asyncio
async def test_url_timeout_does_not_fall_back_to_port():
    target_wait = AsyncMock(return_value=CheckResult.of(False))
    with patch.object(readiness_stage, "wait_for_target", target_wait):
        with pytest.raises(ReadinessTimeoutError) as excinfo:
            await await_readiness(port=3000, url=None, timeout_ms=200, interval_ms=50)
    assert excinfo.value.timeout_ms == 200
    target_wait.assert_awaited_once()


@pytest.mark.asyncio
async def test_url_error_falls_back_to_port():
    url_failure = CheckResult.failure(ReadinessCheckError("Unsupported URL scheme"))
    target_wait = AsyncMock(side_effect=[url_failure, CheckResult.of(True)])
    with patch.object(readiness_stage, "wait_for_target", target_wait):
        target = await await_readiness(port=3000, url="ftp://localhost", timeout_ms=200, interval_ms=50)
    assert target == PortTarget(3000)
    assert target_wait.await_args_list == [
        call(UrlTarget("ftp://localhost"), timeout_ms=200, interval_ms=50),
        call(PortTarget(3000), timeout_ms=200, interval_ms=50),
    ]


@pytest.mark.asyncio
async def test_url_error_without_port_raises():
    url_failure = CheckResult.failure(ReadinessCheckError("Unsupported URL scheme"))
    with patch.object(readiness_stage, "wait_for_target", AsyncMock(return_value=url_failure)):
        with pytest.raises(ReadinessCheckError, match="Unsupported URL scheme"):
            await await_readiness(port=None, url="ftp://localhost", timeout_ms=200, interval_ms=50)


@pytest.mark.asyncio
async def test_port_fallback_timeout():
    url_failure = CheckResult.failure(ReadinessCheckError("bad"))
    with patch.object(readiness_stage, "wait_for_target", AsyncMock(side_effect=[url_failure, CheckResult.of(False)])):
        with pytest.raises(ReadinessTimeoutError, match="port 3000"):
            await await_readiness(port=3000, url="bad", timeout_ms=200, interval_ms=50)


@pytest.mark.asyncio
async def test_port_fallback_error_is_raised():
    url_failure = CheckResult.failure(ReadinessCheckError("bad"))
    port_failure = CheckResult.failure(ReadinessCheckError("Error checking port 3000: denied", port=3000))
    with patch.object(readiness_stage, "wait_for_target", AsyncMock(side_effect=[url_failure, port_failure])):
        with pytest.raises(ReadinessCheckError, match="denied"):
            await await_readiness(port=3000, url="bad", timeout_ms=200, interval_ms=50)


@pytest.mark.asyncio
async def test_no_target_is_a_check_error():
    with pytest.raises(ReadinessCheckError):
        await await_readiness(port=None, url=None, timeout_ms=200, interval_ms=50)
