"""Redistribution of stored progress across parallel reader slots."""

import logging
from typing import List

from shard_checkpoint.checkpoint import ReaderCheckpoint
from shard_checkpoint.config import CheckpointConfig
from shard_checkpoint.connection import RedisConnection
from shard_checkpoint.reader import RedisShardRecordsIterator

logger = logging.getLogger(__name__)


def open_readers(
    checkpoint: ReaderCheckpoint,
    connection: RedisConnection,
    batch_size: int = 100,
) -> List[RedisShardRecordsIterator]:
    """Create one shard reader per position, in checkpoint order."""
    return [
        RedisShardRecordsIterator(shard_checkpoint, connection=connection, batch_size=batch_size)
        for shard_checkpoint in checkpoint
    ]


def assign_readers(
    checkpoint: ReaderCheckpoint,
    config: CheckpointConfig,
    connection: RedisConnection,
) -> List[List[RedisShardRecordsIterator]]:
    """Split a checkpoint for config.desired_num_splits workers and seed their readers.

    Args:
        checkpoint: Progress to resume from
        config: Supplies desired_num_splits and read_batch_size
        connection: Redis connection shared by every reader. The readers do
                    not close it; the caller does once they are done.

    Returns:
        One list of readers per partition, in partition order
    """
    partitions = checkpoint.split_into(config.desired_num_splits)
    logger.info(
        f"Assigning {len(checkpoint)} shards to {len(partitions)} workers "
        f"(requested {config.desired_num_splits})"
    )
    return [
        open_readers(partition, connection, batch_size=config.read_batch_size)
        for partition in partitions
    ]
