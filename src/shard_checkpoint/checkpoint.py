"""Aggregate checkpoint across a set of shards, and its splitter."""

import logging
from abc import ABC, abstractmethod
from typing import Iterable, Iterator, List, Tuple

from shard_checkpoint.exceptions import DuplicateShardError, ValidationError
from shard_checkpoint.models import ShardCheckpoint

logger = logging.getLogger(__name__)


class CheckpointMark(ABC):
    """Lifecycle contract shared by every checkpoint handed to the runtime."""

    @abstractmethod
    def finalize_checkpoint(self) -> None:
        """Called once the checkpoint has been durably committed.

        Implementations must not raise, so callers can invoke this
        unconditionally after a successful commit.
        """
        pass

    def acknowledge(self) -> None:
        """Alias for finalize_checkpoint()."""
        self.finalize_checkpoint()


def divide_and_round_up(numerator: int, denominator: int) -> int:
    """Integer ceiling division for non-negative numerator, positive denominator."""
    return (numerator + denominator - 1) // denominator


class ReaderCheckpoint(CheckpointMark):
    """Total progress of a group of shard readers in a single stream.

    The shards covered may or may not be every shard in the stream. The
    ordered sequence of ShardCheckpoint values is copied into a tuple at
    construction, so an instance never changes afterwards; splitting always
    produces new instances.
    """

    def __init__(self, shard_checkpoints: Iterable[ShardCheckpoint] = ()):
        """Initialize ReaderCheckpoint.

        Args:
            shard_checkpoints: Per-shard positions, in reader order

        Raises:
            ValidationError: If an element is missing or not a ShardCheckpoint
            DuplicateShardError: If a shard appears more than once
        """
        checkpoints = tuple(shard_checkpoints)

        seen = set()
        for index, shard_checkpoint in enumerate(checkpoints):
            if shard_checkpoint is None:
                raise ValidationError(f"Missing shard checkpoint at index {index}")
            if not isinstance(shard_checkpoint, ShardCheckpoint):
                raise ValidationError(
                    f"Expected ShardCheckpoint at index {index}, "
                    f"got {type(shard_checkpoint).__name__}"
                )
            if shard_checkpoint.shard_key in seen:
                raise DuplicateShardError(
                    shard_checkpoint.stream_name, shard_checkpoint.shard_id
                )
            seen.add(shard_checkpoint.shard_key)

        object.__setattr__(self, "_shard_checkpoints", checkpoints)

    def __setattr__(self, name, value):
        raise AttributeError(f"{type(self).__name__} is immutable")

    def __delattr__(self, name):
        raise AttributeError(f"{type(self).__name__} is immutable")

    @classmethod
    def as_current_state_of(cls, readers: Iterable) -> "ReaderCheckpoint":
        """Snapshot the current position of each live shard reader.

        Each reader is asked once for its checkpoint, in the given order.
        Readers are neither advanced nor closed. The result is consistent
        per shard only; readers moving concurrently are not frozen together.

        Args:
            readers: ShardRecordsIterator instances

        Returns:
            ReaderCheckpoint with one position per reader
        """
        shard_checkpoints = []
        for reader in readers:
            if reader is None:
                raise ValidationError("Cannot snapshot a missing shard reader")
            shard_checkpoints.append(reader.get_checkpoint())

        checkpoint = cls(shard_checkpoints)
        logger.debug(f"Snapshotted {len(checkpoint)} shard readers: {checkpoint}")
        return checkpoint

    @property
    def shard_checkpoints(self) -> Tuple[ShardCheckpoint, ...]:
        return self._shard_checkpoints

    @property
    def shard_ids(self) -> Tuple[str, ...]:
        """Shard IDs in checkpoint order."""
        return tuple(sc.shard_id for sc in self._shard_checkpoints)

    def split_into(self, desired_num_splits: int) -> List["ReaderCheckpoint"]:
        """Split this multi-shard checkpoint into partitions of approximately equal size.

        Partitions are consecutive runs of the current order, each holding
        at most ceil(len / desired_num_splits) shards. Fewer partitions than
        requested come back when there are fewer shards than splits, and
        none at all for an empty checkpoint.

        Args:
            desired_num_splits: Upper limit for the number of partitions

        Returns:
            List of checkpoints covering consecutive partitions of this one

        Raises:
            ValidationError: If desired_num_splits is not a positive integer
        """
        if (
            isinstance(desired_num_splits, bool)
            or not isinstance(desired_num_splits, int)
            or desired_num_splits <= 0
        ):
            raise ValidationError(
                f"desired_num_splits must be a positive integer, got {desired_num_splits!r}"
            )

        total = len(self._shard_checkpoints)
        partition_size = divide_and_round_up(total, desired_num_splits)

        checkpoints = [
            ReaderCheckpoint(self._shard_checkpoints[start:start + partition_size])
            for start in range(0, total, partition_size or 1)
        ]
        logger.debug(
            f"Split checkpoint of {total} shards into {len(checkpoints)} partitions "
            f"(requested {desired_num_splits}, partition size {partition_size})"
        )
        return checkpoints

    def finalize_checkpoint(self) -> None:
        """No-op: committing progress belongs to the checkpoint store."""
        pass

    def to_list(self) -> List[dict]:
        """Convert to an ordered list of shard checkpoint dicts for storage."""
        return [sc.to_dict() for sc in self._shard_checkpoints]

    @classmethod
    def from_list(cls, data: Iterable[dict]) -> "ReaderCheckpoint":
        """Create ReaderCheckpoint from the ordered list produced by to_list()."""
        if data is None:
            raise ValidationError("Cannot build a checkpoint from None")
        return cls(ShardCheckpoint.from_dict(item) for item in data)

    def __iter__(self) -> Iterator[ShardCheckpoint]:
        return iter(self._shard_checkpoints)

    def __len__(self) -> int:
        return len(self._shard_checkpoints)

    def __eq__(self, other) -> bool:
        if not isinstance(other, ReaderCheckpoint):
            return NotImplemented
        return self._shard_checkpoints == other._shard_checkpoints

    def __hash__(self) -> int:
        return hash(self._shard_checkpoints)

    def __str__(self) -> str:
        return "[" + ", ".join(str(sc) for sc in self._shard_checkpoints) + "]"

    def __repr__(self) -> str:
        return f"ReaderCheckpoint({list(self._shard_checkpoints)!r})"


def split_checkpoint(
    checkpoint: ReaderCheckpoint, desired_num_splits: int
) -> List[ReaderCheckpoint]:
    """Split a checkpoint into at most desired_num_splits consecutive partitions."""
    return checkpoint.split_into(desired_num_splits)
