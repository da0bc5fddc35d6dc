"""Error types and retry handling for the generation pipeline."""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger(__name__)


class EbookStudioError(Exception):
    """Base class for errors raised by the studio."""


class NotFoundError(EbookStudioError):
    """A requested entity does not exist."""


class ProjectNotFoundError(NotFoundError):
    def __init__(self, project_id: str):
        super().__init__(f"Project not found: {project_id}")
        self.project_id = project_id


class InstructionNotFoundError(NotFoundError):
    def __init__(self, instruction_id: str):
        super().__init__(f"Chapter instruction not found: {instruction_id}")
        self.instruction_id = instruction_id


class InvalidStateError(EbookStudioError):
    """An operation was requested on an entity in the wrong lifecycle state."""


class CapabilityError(EbookStudioError):
    """An AI capability call failed or returned unusable output."""


class ImageGenerationError(CapabilityError):
    """The image provider reported a failed generation."""


class OutlineGenerationError(EbookStudioError):
    """The outline stage produced no chapters."""


class MissingCoverImageError(EbookStudioError):
    """Marketing mockups need a chapter image to use as the cover."""


class ErrorSeverity(str, Enum):
    """Error severity levels."""
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class ErrorCategory(str, Enum):
    """Error category types."""
    API_ERROR = "api_error"
    RATE_LIMIT = "rate_limit"
    TIMEOUT = "timeout"
    PROCESSING_ERROR = "processing_error"
    VALIDATION_ERROR = "validation_error"
    NETWORK_ERROR = "network_error"
    AUTHENTICATION_ERROR = "authentication_error"
    QUOTA_EXCEEDED = "quota_exceeded"
    MODEL_ERROR = "model_error"


@dataclass
class ErrorContext:
    """One failed attempt, kept for statistics."""
    function_name: str
    attempt_number: int
    max_attempts: int
    error_category: ErrorCategory
    severity: ErrorSeverity
    timestamp: float
    additional_info: Dict[str, Any] = field(default_factory=dict)


class ErrorAnalyzer:
    """Classifies provider errors from their type and message."""

    ERROR_PATTERNS = {
        ErrorCategory.AUTHENTICATION_ERROR: [
            'authentication', 'unauthorized', 'invalid api key', 'incorrect api key',
            'forbidden', '401', '403', 'permission denied', 'invalid token'
        ],
        ErrorCategory.RATE_LIMIT: [
            'rate limit', 'too many requests', 'requests per minute',
            'rate_limit_exceeded', 'throttled', '429'
        ],
        ErrorCategory.QUOTA_EXCEEDED: [
            'quota', 'limit exceeded', 'usage limit', 'billing',
            'insufficient funds', 'credits'
        ],
        ErrorCategory.TIMEOUT: [
            'timeout', 'timed out', 'deadline exceeded'
        ],
        ErrorCategory.NETWORK_ERROR: [
            'connection error', 'network error', 'connection refused',
            'connection reset', 'dns', 'unreachable', '502', '503', '504'
        ],
        ErrorCategory.MODEL_ERROR: [
            'model not found', 'invalid model', 'model unavailable',
            'content policy', 'safety', 'no image data'
        ],
    }

    @classmethod
    def categorize_error(cls, error: Exception, error_message: Optional[str] = None) -> ErrorCategory:
        """Categorize an error based on its type and message."""
        error_text = (error_message or str(error)).lower()
        error_type = type(error).__name__.lower()

        for category, patterns in cls.ERROR_PATTERNS.items():
            for pattern in patterns:
                if pattern in error_text or pattern in error_type:
                    return category

        if isinstance(error, (asyncio.TimeoutError, TimeoutError)):
            return ErrorCategory.TIMEOUT
        if isinstance(error, (ConnectionError, OSError)):
            return ErrorCategory.NETWORK_ERROR
        if isinstance(error, ValueError):
            return ErrorCategory.VALIDATION_ERROR
        return ErrorCategory.PROCESSING_ERROR

    @classmethod
    def assess_severity(cls, error_category: ErrorCategory, attempt_number: int) -> ErrorSeverity:
        """Assess the severity of an error."""
        severity_mapping = {
            ErrorCategory.AUTHENTICATION_ERROR: ErrorSeverity.CRITICAL,
            ErrorCategory.QUOTA_EXCEEDED: ErrorSeverity.HIGH,
            ErrorCategory.MODEL_ERROR: ErrorSeverity.HIGH,
            ErrorCategory.RATE_LIMIT: ErrorSeverity.MEDIUM,
            ErrorCategory.TIMEOUT: ErrorSeverity.MEDIUM,
            ErrorCategory.NETWORK_ERROR: ErrorSeverity.MEDIUM,
            ErrorCategory.PROCESSING_ERROR: ErrorSeverity.LOW,
            ErrorCategory.VALIDATION_ERROR: ErrorSeverity.LOW,
        }

        base_severity = severity_mapping.get(error_category, ErrorSeverity.MEDIUM)

        # Escalate with repeated attempts
        if attempt_number > 3:
            if base_severity == ErrorSeverity.LOW:
                return ErrorSeverity.MEDIUM
            if base_severity == ErrorSeverity.MEDIUM:
                return ErrorSeverity.HIGH

        return base_severity


@dataclass
class RetryPolicy:
    """Bounded exponential backoff."""
    max_attempts: int = 4
    min_delay: float = 2.0
    max_delay: float = 10.0
    factor: float = 2.0

    def delay_for(self, attempt_number: int) -> float:
        """Delay before the attempt following ``attempt_number`` (1-based)."""
        return min(self.max_delay, self.min_delay * self.factor ** (attempt_number - 1))


class ErrorRecoveryHandler:
    """Runs a coroutine function with bounded retries and keeps error statistics."""

    def __init__(self, max_attempts: int = 4, policy: Optional[RetryPolicy] = None):
        self.policy = policy or RetryPolicy(max_attempts=max_attempts)
        self.max_attempts = self.policy.max_attempts
        self.error_history: List[ErrorContext] = []
        self.recovery_stats = {
            'total_errors': 0,
            'recovered_errors': 0,
            'failed_recoveries': 0,
            'category_counts': {},
        }

    def _should_abort(self, category: ErrorCategory, severity: ErrorSeverity) -> bool:
        return severity == ErrorSeverity.CRITICAL or category == ErrorCategory.QUOTA_EXCEEDED

    async def handle_with_recovery(
        self,
        func: Callable,
        args: tuple = (),
        kwargs: Optional[Dict[str, Any]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """Await ``func`` until it succeeds or the attempts are exhausted.

        The last error is re-raised when every attempt fails, or immediately
        for authentication and quota errors.
        """

        kwargs = kwargs or {}
        context = context or {}
        name = getattr(func, "__name__", repr(func))

        for attempt in range(1, self.max_attempts + 1):
            try:
                result = await func(*args, **kwargs)
            except Exception as error:
                self.recovery_stats['total_errors'] += 1
                category = ErrorAnalyzer.categorize_error(error)
                severity = ErrorAnalyzer.assess_severity(category, attempt)
                counts = self.recovery_stats['category_counts']
                counts[category] = counts.get(category, 0) + 1

                self.error_history.append(
                    ErrorContext(
                        function_name=name,
                        attempt_number=attempt,
                        max_attempts=self.max_attempts,
                        error_category=category,
                        severity=severity,
                        timestamp=time.time(),
                        additional_info=context,
                    )
                )
                if len(self.error_history) > 100:
                    self.error_history = self.error_history[-100:]

                logger.warning(
                    "Error in %s (attempt %d/%d): %s - %s",
                    name, attempt, self.max_attempts, category.value, error,
                )

                if self._should_abort(category, severity):
                    logger.error("Aborting %s after %s error: %s", name, category.value, error)
                    self.recovery_stats['failed_recoveries'] += 1
                    raise

                if attempt >= self.max_attempts:
                    logger.error("Max attempts reached for %s", name)
                    self.recovery_stats['failed_recoveries'] += 1
                    raise

                delay = self.policy.delay_for(attempt)
                if delay > 0:
                    logger.info("Retrying %s in %.1f seconds...", name, delay)
                    await asyncio.sleep(delay)
                continue

            if attempt > 1:
                logger.info("Recovered %s on attempt %d", name, attempt)
                self.recovery_stats['recovered_errors'] += 1
            return result

        raise RuntimeError("retry loop exited without a result")  # pragma: no cover

    def get_error_statistics(self) -> Dict[str, Any]:
        """Summarise the errors seen by this handler."""
        total_errors = self.recovery_stats['total_errors']
        return {
            'total_errors': total_errors,
            'recovered_errors': self.recovery_stats['recovered_errors'],
            'failed_recoveries': self.recovery_stats['failed_recoveries'],
            'category_breakdown': dict(self.recovery_stats['category_counts']),
            'recent_errors': [
                {
                    'function': ctx.function_name,
                    'category': ctx.error_category.value,
                    'severity': ctx.severity.value,
                    'attempt': ctx.attempt_number,
                }
                for ctx in self.error_history[-10:]
            ],
        }


def resilient_async(policy: Optional[RetryPolicy] = None, context: Optional[Dict[str, Any]] = None):
    """Decorator adding bounded retries to an async function."""

    def decorator(func: Callable):
        error_handler = ErrorRecoveryHandler(policy=policy or RetryPolicy())

        @wraps(func)
        async def wrapper(*args, **kwargs):
            return await error_handler.handle_with_recovery(func, args, kwargs, context)

        wrapper.error_handler = error_handler
        return wrapper

    return decorator
