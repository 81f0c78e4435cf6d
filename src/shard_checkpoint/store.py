"""Durable storage for aggregate reader checkpoints."""

import json
import logging
from typing import Dict, List, Optional

import redis

from shard_checkpoint.checkpoint import ReaderCheckpoint
from shard_checkpoint.connection import RedisConnection, call_with_retry
from shard_checkpoint.exceptions import ValidationError

logger = logging.getLogger(__name__)

# Retry configuration
MAX_RETRIES = 3
RETRY_BASE_DELAY = 0.1  # 100ms


def encode_checkpoint(checkpoint: ReaderCheckpoint) -> str:
    """Encode a checkpoint as a JSON ordered list."""
    return json.dumps(checkpoint.to_list())


def decode_checkpoint(raw: str) -> Optional[ReaderCheckpoint]:
    """Decode a stored checkpoint, returning None if it is unreadable."""
    try:
        data = json.loads(raw)
        if not isinstance(data, list):
            raise ValidationError(f"Expected a list, got {type(data).__name__}")
        return ReaderCheckpoint.from_list(data)
    except (TypeError, ValueError, ValidationError) as e:
        logger.warning(f"Invalid stored checkpoint {raw!r}: {e}")
        return None


class CheckpointStore:
    """Stores reader group checkpoints in Redis."""

    # Key prefix for checkpoints
    KEY_PREFIX = "shard_checkpoint"

    def __init__(
        self,
        redis_url: str = "redis://localhost:6379",
        key_prefix: Optional[str] = None,
        max_retries: int = MAX_RETRIES,
        retry_base_delay: float = RETRY_BASE_DELAY,
    ):
        """Initialize CheckpointStore.

        Args:
            redis_url: Redis connection URL
            key_prefix: Overrides KEY_PREFIX
            max_retries: Attempts per save/load before giving up
            retry_base_delay: Initial backoff delay in seconds
        """
        self._connection = RedisConnection(redis_url)
        self.key_prefix = key_prefix or self.KEY_PREFIX
        self.max_retries = max_retries
        self.retry_base_delay = retry_base_delay

    @classmethod
    def from_config(cls, config) -> "CheckpointStore":
        """Create a store from a CheckpointConfig."""
        return cls(
            redis_url=config.redis_url,
            key_prefix=config.key_prefix,
            max_retries=config.max_retries,
            retry_base_delay=config.retry_base_delay,
        )

    @property
    def client(self) -> redis.Redis:
        """Get Redis client."""
        return self._connection.client

    def _make_key(self, stream: str, group: str) -> str:
        """Generate Redis key for checkpoint."""
        return f"{self.key_prefix}:{stream}:{group}"

    def _with_retry(self, operation, description: str):
        # Any RedisError is retried, not only connection errors
        return call_with_retry(
            operation,
            description,
            max_attempts=self.max_retries,
            base_delay=self.retry_base_delay,
            retryable_errors=(redis.RedisError,),
        )

    def save(self, stream: str, group: str, checkpoint: ReaderCheckpoint) -> bool:
        """Save the checkpoint of a reader group.

        The checkpoint's finalize hook runs after a successful write.

        Args:
            stream: Stream name
            group: Reader group name
            checkpoint: Aggregate checkpoint to persist

        Returns:
            True if saved, False if every attempt failed
        """
        key = self._make_key(stream, group)
        value = encode_checkpoint(checkpoint)

        try:
            self._with_retry(lambda: self.client.set(key, value), f"save checkpoint {key}")
        except redis.RedisError:
            return False

        logger.debug(f"Saved checkpoint {checkpoint} for {stream}/{group}")
        checkpoint.finalize_checkpoint()
        return True

    def load(self, stream: str, group: str) -> Optional[ReaderCheckpoint]:
        """Load the checkpoint of a reader group.

        Args:
            stream: Stream name
            group: Reader group name

        Returns:
            ReaderCheckpoint, or None if missing, unreadable or unreachable
        """
        key = self._make_key(stream, group)

        try:
            raw = self._with_retry(lambda: self.client.get(key), f"load checkpoint {key}")
        except redis.RedisError:
            return None

        if raw is None:
            return None
        checkpoint = decode_checkpoint(raw)
        if checkpoint is not None:
            logger.debug(f"Loaded checkpoint {checkpoint} for {stream}/{group}")
        return checkpoint

    def delete(self, stream: str, group: str):
        """Delete the checkpoint of a reader group."""
        key = self._make_key(stream, group)
        self.client.delete(key)
        logger.debug(f"Deleted checkpoint for {stream}/{group}")

    def list_groups(self, stream: str) -> List[str]:
        """List reader groups with a stored checkpoint for a stream."""
        prefix = f"{self.key_prefix}:{stream}:"
        return sorted(
            key[len(prefix):] for key in self.client.scan_iter(match=f"{prefix}*")
        )

    def close(self):
        """Close connection."""
        self._connection.close()


class InMemoryCheckpointStore:
    """In-memory checkpoint storage (for testing)."""

    def __init__(self):
        """Initialize in-memory store."""
        self._checkpoints: Dict[str, str] = {}

    def _make_key(self, stream: str, group: str) -> str:
        """Generate key for checkpoint."""
        return f"{stream}:{group}"

    def save(self, stream: str, group: str, checkpoint: ReaderCheckpoint) -> bool:
        """Save the checkpoint of a reader group."""
        self._checkpoints[self._make_key(stream, group)] = encode_checkpoint(checkpoint)
        logger.debug(f"Saved checkpoint {checkpoint} for {stream}/{group}")
        checkpoint.finalize_checkpoint()
        return True

    def load(self, stream: str, group: str) -> Optional[ReaderCheckpoint]:
        """Load the checkpoint of a reader group."""
        raw = self._checkpoints.get(self._make_key(stream, group))
        if raw is None:
            return None
        return decode_checkpoint(raw)

    def delete(self, stream: str, group: str):
        """Delete the checkpoint of a reader group."""
        self._checkpoints.pop(self._make_key(stream, group), None)

    def list_groups(self, stream: str) -> List[str]:
        """List reader groups with a stored checkpoint for a stream."""
        prefix = f"{stream}:"
        return sorted(k[len(prefix):] for k in self._checkpoints if k.startswith(prefix))

    def close(self):
        """Nothing to release."""
        pass
