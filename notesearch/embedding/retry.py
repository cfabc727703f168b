from collections.abc import Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt, wait_exponential

from notesearch.constants import BASE_DELAY_MS, MAX_RETRIES
from notesearch.logging import get_logger

_logger = get_logger(__name__)

TRANSIENT_PATTERNS = (
    "network",
    "timeout",
    "timed out",
    "econnreset",
    "connection reset",
    "connection error",
    "rate limit",
    "too many requests",
    "429",
    "503",
)
TRANSIENT_STATUS_CODES = frozenset({429, 503})

type Predicate = Callable[[BaseException], bool]


def is_transient(exc: BaseException) -> bool:
    if getattr(exc, "status_code", None) in TRANSIENT_STATUS_CODES:
        return True
    if isinstance(exc, TimeoutError):
        return True
    message = str(exc).lower()
    return any(pattern in message for pattern in TRANSIENT_PATTERNS)


async def with_retry[T](
    fn: Callable[..., Awaitable[T]],
    *args,
    max_retries: int = MAX_RETRIES,
    base_delay: float = BASE_DELAY_MS / 1000,
    is_retryable: Predicate = is_transient,
    **kwargs,
) -> T:
    """Await ``fn(*args, **kwargs)``, retrying transient failures.

    ``max_retries`` counts total attempts. The wait before attempt ``n + 1`` is
    ``base_delay * 2 ** (n - 1)`` seconds. Errors rejected by ``is_retryable``
    propagate on first occurrence; the last error propagates once attempts run out.
    """

    def log_retry(retry_state: RetryCallState) -> None:
        _logger.warning(
            "Embedding call failed (attempt %d/%d), retrying: %s",
            retry_state.attempt_number,
            max_retries,
            retry_state.outcome.exception(),
        )

    retrying = AsyncRetrying(
        retry=retry_if_exception(is_retryable),
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=base_delay, exp_base=2),
        reraise=True,
        before_sleep=log_retry,
    )
    return await retrying(fn, *args, **kwargs)
