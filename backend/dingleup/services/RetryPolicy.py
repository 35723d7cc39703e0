"""Reusable retry policy: exponential backoff with jitter, independent of any HTTP client."""
import logging
import random
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


def _default_retryable_statuses():
    return frozenset({408, 429})


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0
    backoff_multiplier: float = 2.0
    jitter: float = 0.2
    retryable_statuses: frozenset = field(default_factory=_default_retryable_statuses)

    def is_retryable_status(self, status):
        return status >= 500 or status in self.retryable_statuses

    def compute_delay(self, attempt, rng=random):
        """Delay before retry number ``attempt + 1``; jitter is +/- ``jitter`` of the raw delay"""
        delay = self.base_delay * (self.backoff_multiplier ** attempt)
        delay += delay * self.jitter * (rng.random() * 2 - 1)
        return max(min(delay, self.max_delay), 0.0)


DEFAULT_RETRY_POLICY = RetryPolicy()


def run_with_retry(operation, policy=DEFAULT_RETRY_POLICY, is_retryable_error=None,
                   is_retryable_result=None, sleep=time.sleep, rng=random):
    """
    Call ``operation()`` until it succeeds or the policy gives up.

    :param is_retryable_error: predicate on a raised exception; non-retryable errors propagate at once
    :param is_retryable_result: predicate on a returned value (e.g. a 503 response);
        the last result is returned as-is when retries run out
    """
    attempt = 0
    while True:
        try:
            result = operation()
        except Exception as e:
            if attempt < policy.max_retries and is_retryable_error is not None and is_retryable_error(e):
                delay = policy.compute_delay(attempt, rng)
                logger.info("[retry] Retrying after error %r (attempt %s, delay %.2fs)", e, attempt + 1, delay)
                sleep(delay)
                attempt += 1
                continue
            raise

        if attempt < policy.max_retries and is_retryable_result is not None and is_retryable_result(result):
            delay = policy.compute_delay(attempt, rng)
            logger.info("[retry] Retrying after result (attempt %s, delay %.2fs)", attempt + 1, delay)
            sleep(delay)
            attempt += 1
            continue
        return result
