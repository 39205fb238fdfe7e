"""
Tests for the retry helpers.

Tests cover:
- with_retries: success, retry until success, exhaustion, predicate, non-retryable errors
- retry_when_not_unique: one retry on uniqueness conflicts

Run with: pytest backend/tests/test_retry.py -v
"""
import pytest

from slingshot.core.exceptions import UniquenessConflictError
from slingshot.core.retry import retry_when_not_unique, with_retries


class ArgumentError(Exception):
    pass


class Flaky:
    """Coroutine function failing ``failures`` times before returning."""

    def __init__(self, failures, error=KeyError):
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error("boom")
        return "ok"


class TestWithRetries:
    """Tests for with_retries."""

    @pytest.mark.asyncio
    async def test_returns_result_without_retrying(self):
        body = Flaky(0)

        assert await with_retries((KeyError,), 3, body) == "ok"
        assert body.calls == 1

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        body = Flaky(2)

        assert await with_retries((KeyError,), 3, body) == "ok"
        assert body.calls == 3

    @pytest.mark.asyncio
    async def test_raises_once_retries_are_exhausted(self):
        """count retries means count + 1 calls in total."""
        body = Flaky(5)

        with pytest.raises(KeyError):
            await with_retries((KeyError,), 3, body)

        assert body.calls == 4

    @pytest.mark.asyncio
    async def test_zero_count_raises_on_first_failure(self):
        body = Flaky(1)

        with pytest.raises(KeyError):
            await with_retries((KeyError,), 0, body)

        assert body.calls == 1

    @pytest.mark.asyncio
    async def test_other_errors_propagate_unchanged(self):
        body = Flaky(1, error=ArgumentError)

        with pytest.raises(ArgumentError):
            await with_retries((KeyError,), 3, body)

        assert body.calls == 1

    @pytest.mark.asyncio
    async def test_predicate_must_hold_to_retry(self):
        body = Flaky(1)

        with pytest.raises(KeyError):
            await with_retries((KeyError,), 3, body, predicate=lambda e: False)

        assert body.calls == 1

    @pytest.mark.asyncio
    async def test_predicate_allows_retry(self):
        body = Flaky(1)

        result = await with_retries((KeyError,), 3, body, predicate=lambda e: "boom" in str(e))

        assert result == "ok"
        assert body.calls == 2

    @pytest.mark.asyncio
    async def test_negative_count_is_rejected(self):
        with pytest.raises(ValueError):
            await with_retries((KeyError,), -1, Flaky(0))


class TestRetryWhenNotUnique:
    """Tests for retry_when_not_unique."""

    @staticmethod
    def conflict(message):
        return UniquenessConflictError("release", message)

    @pytest.mark.asyncio
    async def test_retries_a_conflict_once(self):
        body = Flaky(1, error=self.conflict)

        assert await retry_when_not_unique(body) == "ok"
        assert body.calls == 2

    @pytest.mark.asyncio
    async def test_second_conflict_propagates(self):
        body = Flaky(2, error=self.conflict)

        with pytest.raises(UniquenessConflictError):
            await retry_when_not_unique(body)

        assert body.calls == 2

    @pytest.mark.asyncio
    async def test_does_not_retry_other_errors(self):
        body = Flaky(1, error=ValueError)

        with pytest.raises(ValueError):
            await retry_when_not_unique(body)

        assert body.calls == 1
