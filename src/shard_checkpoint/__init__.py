# Shard Checkpoint
#
# Tracks per-shard consumption progress for a sharded stream, where every
# shard is a Redis stream read in order.
#
# Key features:
# - Immutable aggregate checkpoint over a group of shard readers
# - Order-preserving split into near-equal partitions for parallel readers
# - Snapshot of live shard readers without disturbing them
# - Durable checkpoint storage in Redis

from shard_checkpoint.assignment import assign_readers, open_readers
from shard_checkpoint.checkpoint import CheckpointMark, ReaderCheckpoint, split_checkpoint
from shard_checkpoint.config import CheckpointConfig, load_checkpoint_config
from shard_checkpoint.models import ShardCheckpoint, ShardRecord, StartingPosition
from shard_checkpoint.reader import ShardRecordsIterator, RedisShardRecordsIterator
from shard_checkpoint.store import CheckpointStore, InMemoryCheckpointStore
from shard_checkpoint.exceptions import (
    ShardCheckpointError,
    ValidationError,
    DuplicateShardError,
    ShardNotFoundError,
    RedisConnectionError,
)

__version__ = "0.1.0"

__all__ = [
    "assign_readers",
    "open_readers",
    "CheckpointMark",
    "ReaderCheckpoint",
    "split_checkpoint",
    "CheckpointConfig",
    "load_checkpoint_config",
    "ShardCheckpoint",
    "ShardRecord",
    "StartingPosition",
    "ShardRecordsIterator",
    "RedisShardRecordsIterator",
    "CheckpointStore",
    "InMemoryCheckpointStore",
    "ShardCheckpointError",
    "ValidationError",
    "DuplicateShardError",
    "ShardNotFoundError",
    "RedisConnectionError",
]
