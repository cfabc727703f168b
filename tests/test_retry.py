import asyncio
from unittest.mock import AsyncMock

import pytest

from notesearch.embedding.retry import is_transient, with_retry


class StatusError(Exception):
    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class TestIsTransient:
    @pytest.mark.parametrize(
        "message",
        [
            "Network unreachable",
            "Request timeout",
            "Request timed out.",
            "read ECONNRESET",
            "Connection reset by peer",
            "Connection error.",
            "Rate limit reached for requests",
            "Too Many Requests",
            "Error code: 429",
            "503 Service Unavailable",
        ],
    )
    def test_transient_messages(self, message):
        assert is_transient(Exception(message))

    @pytest.mark.parametrize("message", ["Incorrect API key provided", "Invalid input", "400 bad request"])
    def test_fatal_messages(self, message):
        assert not is_transient(Exception(message))

    def test_status_code(self):
        assert is_transient(StatusError("slow down", 429))
        assert is_transient(StatusError("unavailable", 503))
        assert not is_transient(StatusError("unauthorized", 401))

    def test_timeout_error(self):
        assert is_transient(TimeoutError())


class TestWithRetry:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        fn = AsyncMock(return_value="ok")
        assert await with_retry(fn, "a", key="b", base_delay=0) == "ok"
        fn.assert_awaited_once_with("a", key="b")

    @pytest.mark.asyncio
    async def test_transient_then_success(self):
        fn = AsyncMock(side_effect=[Exception("network down"), Exception("429"), "ok"])
        assert await with_retry(fn, base_delay=0) == "ok"
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_fatal_not_retried(self):
        fn = AsyncMock(side_effect=ValueError("Incorrect API key provided"))
        with pytest.raises(ValueError, match="API key"):
            await with_retry(fn, base_delay=0)
        assert fn.await_count == 1

    @pytest.mark.asyncio
    async def test_exhausted_reraises_last_error(self):
        fn = AsyncMock(side_effect=[Exception("timeout 1"), Exception("timeout 2"), Exception("timeout 3")])
        with pytest.raises(Exception, match="timeout 3"):
            await with_retry(fn, base_delay=0)
        assert fn.await_count == 3

    @pytest.mark.asyncio
    async def test_max_retries_parameter(self):
        fn = AsyncMock(side_effect=Exception("network"))
        with pytest.raises(Exception):
            await with_retry(fn, max_retries=5, base_delay=0)
        assert fn.await_count == 5

    @pytest.mark.asyncio
    async def test_custom_predicate(self):
        fn = AsyncMock(side_effect=[KeyError("x"), "ok"])
        result = await with_retry(fn, base_delay=0, is_retryable=lambda e: isinstance(e, KeyError))
        assert result == "ok"

    @pytest.mark.asyncio
    async def test_default_backoff_doubles(self, monkeypatch):
        delays: list[float] = []

        async def fake_sleep(seconds):
            delays.append(seconds)

        monkeypatch.setattr(asyncio, "sleep", fake_sleep)
        fn = AsyncMock(side_effect=Exception("network"))

        with pytest.raises(Exception, match="network"):
            await with_retry(fn)

        assert fn.await_count == 3
        assert delays == [1.0, 2.0]
