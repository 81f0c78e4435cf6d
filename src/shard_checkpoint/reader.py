"""Shard reader handles.

A shard reader is bound to one shard and exposes how far it has read as a
ShardCheckpoint. ReaderCheckpoint.as_current_state_of() only ever calls
get_checkpoint(); everything else here belongs to the reading loop.
"""

import logging
import threading
from abc import ABC, abstractmethod
from typing import List, Optional

import redis
from redis.exceptions import ResponseError

from shard_checkpoint.connection import RedisConnection
from shard_checkpoint.exceptions import ShardCheckpointError, ShardNotFoundError
from shard_checkpoint.models import ShardCheckpoint, ShardRecord, StartingPosition

logger = logging.getLogger(__name__)


class ShardRecordsIterator(ABC):
    """Live, stateful reader over a single shard."""

    @property
    @abstractmethod
    def shard_id(self) -> str:
        pass

    @abstractmethod
    def get_checkpoint(self) -> ShardCheckpoint:
        """Return the position of the last record handed out."""
        pass


class RedisShardRecordsIterator(ShardRecordsIterator):
    """Reads one shard's Redis stream with XRANGE, tracking its checkpoint."""

    def __init__(
        self,
        checkpoint: ShardCheckpoint,
        connection: Optional[RedisConnection] = None,
        redis_url: str = "redis://localhost:6379",
        batch_size: int = 100,
    ):
        """Initialize RedisShardRecordsIterator.

        Args:
            checkpoint: Position to resume from
            connection: Shared Redis connection; one is created from
                        redis_url when omitted
            redis_url: Redis connection URL
            batch_size: Default number of records per read()
        """
        self._owns_connection = connection is None
        self._connection = connection or RedisConnection(redis_url)
        self._checkpoint = checkpoint
        # _lock guards _checkpoint only; _read_lock serializes read() calls.
        self._lock = threading.Lock()
        self._read_lock = threading.Lock()
        self.batch_size = batch_size

    @property
    def client(self) -> redis.Redis:
        """Get Redis client."""
        return self._connection.client

    @property
    def shard_id(self) -> str:
        return self._checkpoint.shard_id

    def get_checkpoint(self) -> ShardCheckpoint:
        with self._lock:
            return self._checkpoint

    def _advance(self, checkpoint: ShardCheckpoint):
        with self._lock:
            # mark_exhausted() may have run during the round trip
            if not self._checkpoint.is_exhausted:
                self._checkpoint = checkpoint

    def _resolve_latest(self, checkpoint: ShardCheckpoint) -> ShardCheckpoint:
        """Pin a LATEST checkpoint to the shard's current last entry."""
        entries = self.client.xrevrange(checkpoint.redis_key, count=1)
        if entries:
            resolved = checkpoint.move_after(entries[0][0])
            logger.debug(f"Resolved LATEST for shard {self.shard_id} to {resolved}")
            return resolved
        # Empty shard: everything appended from now on is new.
        return ShardCheckpoint(checkpoint.stream_name, checkpoint.shard_id)

    def read(self, count: Optional[int] = None) -> List[ShardRecord]:
        """Read the next batch of records and advance the checkpoint.

        Reads are serialized with each other, but get_checkpoint() never
        waits on the Redis round trip.

        Args:
            count: Maximum number of records to return (default batch_size)

        Returns:
            Records in shard order; empty when caught up or exhausted

        Raises:
            ShardCheckpointError: If the Redis read fails
        """
        with self._read_lock:
            checkpoint = self.get_checkpoint()
            if checkpoint.is_exhausted:
                return []
            try:
                if checkpoint.position is StartingPosition.LATEST:
                    checkpoint = self._resolve_latest(checkpoint)
                    self._advance(checkpoint)
                entries = self.client.xrange(
                    checkpoint.redis_key,
                    min=checkpoint.start_id(),
                    max="+",
                    count=count or self.batch_size,
                )
            except ResponseError as e:
                raise ShardCheckpointError(
                    f"Failed to read shard {self.shard_id}: {e}"
                ) from e

            records = [
                ShardRecord.from_redis(self.shard_id, message_id, values)
                for message_id, values in entries
            ]
            if records:
                self._advance(checkpoint.move_after(records[-1].sequence_number))
                logger.debug(
                    f"Read {len(records)} records from shard {self.shard_id}, "
                    f"now at {self.get_checkpoint()}"
                )
            return records

    def exists(self) -> bool:
        """Check whether the shard's stream key exists."""
        return bool(self.client.exists(self.get_checkpoint().redis_key))

    def ensure_exists(self):
        """Raise ShardNotFoundError if the shard's stream key is missing."""
        if not self.exists():
            raise ShardNotFoundError(self.shard_id, self.get_checkpoint().stream_name)

    def mark_exhausted(self):
        """Record that the shard has been fully consumed."""
        with self._lock:
            self._checkpoint = self._checkpoint.exhausted()
        logger.info(f"Shard {self.shard_id} exhausted")

    def close(self):
        """Close the connection if this reader created it."""
        if self._owns_connection:
            self._connection.close()

    def __enter__(self):
        """Context manager entry."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Context manager exit."""
        self.close()
