"""Redis connection and retry policy shared by shard readers and checkpoint stores."""

import logging
from typing import Callable, Optional, TypeVar

import redis
from redis.backoff import ExponentialBackoff
from redis.connection import ConnectionPool
from redis.exceptions import ConnectionError, TimeoutError as RedisTimeoutError
from redis.retry import Retry

from shard_checkpoint.exceptions import RedisConnectionError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Cap on a single backoff sleep, in seconds
MAX_RETRY_DELAY = 5.0


def make_retry(
    max_attempts: int,
    base_delay: float,
    retryable_errors: tuple = (ConnectionError, RedisTimeoutError),
) -> Retry:
    """Build a redis-py Retry allowing max_attempts calls in total.

    Args:
        max_attempts: Total calls, including the first one
        base_delay: Backoff base in seconds; delays double per failure
        retryable_errors: Exceptions that trigger another attempt
    """
    return Retry(
        ExponentialBackoff(cap=MAX_RETRY_DELAY, base=base_delay),
        max_attempts - 1,
        supported_errors=retryable_errors,
    )


def call_with_retry(
    operation: Callable[[], T],
    description: str,
    max_attempts: int = 3,
    base_delay: float = 0.1,
    retryable_errors: tuple = (ConnectionError, RedisTimeoutError),
) -> T:
    """Run operation with exponential backoff, logging each failed attempt.

    The last error is re-raised once max_attempts calls have failed.
    """
    failures = 0

    def log_failure(error: Exception):
        nonlocal failures
        failures += 1
        if failures < max_attempts:
            logger.warning(f"Failed to {description} (attempt {failures}/{max_attempts}): {error}")
        else:
            logger.error(f"Failed to {description} after {max_attempts} attempts: {error}")

    retry = make_retry(max_attempts, base_delay, retryable_errors)
    return retry.call_with_retry(operation, log_failure)


class RedisConnection:
    """Lazily created, pooled Redis client."""

    def __init__(
        self,
        url: str = "redis://localhost:6379",
        max_connections: int = 10,
        decode_responses: bool = True,
    ):
        """Initialize Redis connection.

        No network traffic happens until the client is first used.

        Args:
            url: Redis connection URL
            max_connections: Maximum connections in pool
            decode_responses: Whether to decode responses to strings
        """
        self.url = url
        self._pool: Optional[ConnectionPool] = None
        self._client: Optional[redis.Redis] = None
        self._max_connections = max_connections
        self._decode_responses = decode_responses

    @property
    def client(self) -> redis.Redis:
        """Get or create Redis client."""
        if self._client is None:
            self._pool = ConnectionPool.from_url(
                self.url,
                max_connections=self._max_connections,
                decode_responses=self._decode_responses,
            )
            self._client = redis.Redis(connection_pool=self._pool)
        return self._client

    @property
    def is_open(self) -> bool:
        return self._client is not None

    def ping(self, max_attempts: int = 3, base_delay: float = 0.1) -> bool:
        """Check that Redis answers.

        Raises:
            RedisConnectionError: If Redis cannot be reached
        """
        try:
            return call_with_retry(
                self.client.ping, f"ping {self.url}", max_attempts, base_delay
            )
        except (ConnectionError, RedisTimeoutError) as e:
            raise RedisConnectionError(f"Failed to connect to Redis at {self.url}: {e}") from e

    def close(self):
        """Close connection pool."""
        if self._client:
            self._client.close()
            self._client = None
        if self._pool:
            self._pool.disconnect()
            self._pool = None

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
