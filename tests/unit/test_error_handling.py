"""Unit tests for error classification and bounded retries."""

import asyncio

import pytest
from unittest.mock import AsyncMock, patch

from ebook_studio.error_handling import (
    CapabilityError,
    EbookStudioError,
    ErrorAnalyzer,
    ErrorCategory,
    ErrorRecoveryHandler,
    ErrorSeverity,
    ImageGenerationError,
    InstructionNotFoundError,
    NotFoundError,
    ProjectNotFoundError,
    RetryPolicy,
    resilient_async,
)


class TestExceptionHierarchy:
    def test_not_found_errors(self):
        assert issubclass(ProjectNotFoundError, NotFoundError)
        assert issubclass(InstructionNotFoundError, NotFoundError)
        assert issubclass(NotFoundError, EbookStudioError)
        assert "p-1" in str(ProjectNotFoundError("p-1"))

    def test_image_error_is_capability_error(self):
        assert issubclass(ImageGenerationError, CapabilityError)


class TestErrorAnalyzer:
    @pytest.mark.parametrize(
        "message,category",
        [
            ("HTTP 429: Too Many Requests", ErrorCategory.RATE_LIMIT),
            ("HTTP 401: Incorrect API key provided", ErrorCategory.AUTHENTICATION_ERROR),
            ("You exceeded your current quota", ErrorCategory.QUOTA_EXCEEDED),
            ("Request timed out", ErrorCategory.TIMEOUT),
            ("HTTP 503: Service Unavailable", ErrorCategory.NETWORK_ERROR),
            ("No image data in response", ErrorCategory.MODEL_ERROR),
        ],
    )
    def test_categorize_by_message(self, message, category):
        assert ErrorAnalyzer.categorize_error(Exception(message)) == category

    def test_categorize_by_type(self):
        assert ErrorAnalyzer.categorize_error(asyncio.TimeoutError()) == ErrorCategory.TIMEOUT
        assert ErrorAnalyzer.categorize_error(ConnectionResetError()) == ErrorCategory.NETWORK_ERROR
        assert ErrorAnalyzer.categorize_error(ValueError("bad")) == ErrorCategory.VALIDATION_ERROR
        assert ErrorAnalyzer.categorize_error(RuntimeError("odd")) == ErrorCategory.PROCESSING_ERROR

    def test_authentication_is_critical(self):
        assert ErrorAnalyzer.assess_severity(ErrorCategory.AUTHENTICATION_ERROR, 1) == ErrorSeverity.CRITICAL

    def test_severity_escalates(self):
        assert ErrorAnalyzer.assess_severity(ErrorCategory.TIMEOUT, 1) == ErrorSeverity.MEDIUM
        assert ErrorAnalyzer.assess_severity(ErrorCategory.TIMEOUT, 4) == ErrorSeverity.HIGH


class TestRetryPolicy:
    def test_exponential_delays_capped(self):
        policy = RetryPolicy(max_attempts=4, min_delay=2.0, max_delay=10.0)
        assert [policy.delay_for(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 8.0, 10.0]


class TestErrorRecoveryHandler:
    @pytest.mark.asyncio
    async def test_success_first_try(self):
        handler = ErrorRecoveryHandler(policy=RetryPolicy(max_attempts=3, min_delay=0, max_delay=0))
        func = AsyncMock(return_value="ok")
        func.__name__ = "func"

        assert await handler.handle_with_recovery(func) == "ok"
        assert func.await_count == 1
        assert handler.get_error_statistics()["total_errors"] == 0

    @pytest.mark.asyncio
    async def test_recovers_after_transient_errors(self):
        handler = ErrorRecoveryHandler(policy=RetryPolicy(max_attempts=4, min_delay=0, max_delay=0))
        func = AsyncMock(side_effect=[Exception("HTTP 503"), Exception("timeout"), "image"])
        func.__name__ = "func"

        assert await handler.handle_with_recovery(func) == "image"
        stats = handler.get_error_statistics()
        assert stats["total_errors"] == 2
        assert stats["recovered_errors"] == 1

    @pytest.mark.asyncio
    async def test_attempts_are_bounded(self):
        handler = ErrorRecoveryHandler(policy=RetryPolicy(max_attempts=4, min_delay=0, max_delay=0))
        func = AsyncMock(side_effect=RuntimeError("still broken"))
        func.__name__ = "func"

        with pytest.raises(RuntimeError, match="still broken"):
            await handler.handle_with_recovery(func)
        assert func.await_count == 4
        assert handler.get_error_statistics()["failed_recoveries"] == 1

    @pytest.mark.asyncio
    async def test_authentication_error_aborts_immediately(self):
        handler = ErrorRecoveryHandler(policy=RetryPolicy(max_attempts=4, min_delay=0, max_delay=0))
        func = AsyncMock(side_effect=Exception("HTTP 401: unauthorized"))
        func.__name__ = "func"

        with pytest.raises(Exception, match="unauthorized"):
            await handler.handle_with_recovery(func)
        assert func.await_count == 1

    @pytest.mark.asyncio
    async def test_backoff_sleeps_between_attempts(self):
        handler = ErrorRecoveryHandler(policy=RetryPolicy(max_attempts=3, min_delay=2.0, max_delay=10.0))
        func = AsyncMock(side_effect=[Exception("HTTP 503"), Exception("HTTP 503"), "ok"])
        func.__name__ = "func"

        with patch("ebook_studio.error_handling.asyncio.sleep", new=AsyncMock()) as sleep:
            assert await handler.handle_with_recovery(func) == "ok"

        assert [call.args[0] for call in sleep.await_args_list] == [2.0, 4.0]


class TestResilientAsync:
    @pytest.mark.asyncio
    async def test_decorator_retries(self):
        attempts = []

        @resilient_async(policy=RetryPolicy(max_attempts=2, min_delay=0, max_delay=0))
        async def flaky():
            attempts.append(1)
            if len(attempts) == 1:
                raise ConnectionError("connection reset")
            return "done"

        assert await flaky() == "done"
        assert len(attempts) == 2
        assert flaky.error_handler.get_error_statistics()["recovered_errors"] == 1
