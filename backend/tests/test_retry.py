"""Tests for the auth retry policy."""

import httpx
import pytest
from sqlalchemy.exc import IntegrityError, OperationalError
from tenacity import wait_none

from taumine.auth.retry import auth_retrying, call_with_retry, is_retryable_error


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("POST", "https://auth.example.com/token")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError("failed", request=request, response=response)


class TestIsRetryableError:
    """Test which failures count as transient."""

    @pytest.mark.parametrize(
        "error",
        [
            OperationalError("SELECT 1", {}, Exception("database is locked")),
            httpx.ConnectError("connection refused"),
            httpx.ReadTimeout("timed out"),
            TimeoutError(),
            ConnectionError(),
            status_error(503),
            status_error(429),
        ],
    )
    def test_transient(self, error):
        assert is_retryable_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            IntegrityError("INSERT", {}, Exception("UNIQUE constraint failed")),
            status_error(400),
            ValueError("bad input"),
        ],
    )
    def test_permanent(self, error):
        assert not is_retryable_error(error)


class TestCallWithRetry:
    """Test retrying auth calls."""

    def test_retries_until_success(self):
        calls = []

        def flaky():
            calls.append(1)
            if len(calls) < 3:
                raise ConnectionError("reset")
            return "ok"

        result = call_with_retry(flaky, retrying=auth_retrying(wait=wait_none()))

        assert result == "ok"
        assert len(calls) == 3

    def test_gives_up_after_max_attempts(self):
        calls = []

        def down():
            calls.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            call_with_retry(down, retrying=auth_retrying(max_attempts=3, wait=wait_none()))

        assert len(calls) == 3

    def test_permanent_errors_not_retried(self):
        calls = []

        def invalid():
            calls.append(1)
            raise ValueError("bad")

        with pytest.raises(ValueError):
            call_with_retry(invalid, retrying=auth_retrying(wait=wait_none()))

        assert len(calls) == 1

    def test_passes_arguments(self):
        result = call_with_retry(lambda a, b=0: a + b, 2, b=3, retrying=auth_retrying(wait=wait_none()))

        assert result == 5
