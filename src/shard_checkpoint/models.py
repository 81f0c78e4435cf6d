"""Per-shard position value types."""

import re
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional

from shard_checkpoint.exceptions import ValidationError

# Redis stream entry ID format: timestamp-sequence (e.g., "1234567890-0")
SEQUENCE_NUMBER_PATTERN = re.compile(r"\d+-\d+")


class StartingPosition(str, Enum):
    """Where a shard reader resumes relative to its sequence number."""

    TRIM_HORIZON = "TRIM_HORIZON"
    LATEST = "LATEST"
    AT_SEQUENCE_NUMBER = "AT_SEQUENCE_NUMBER"
    AFTER_SEQUENCE_NUMBER = "AFTER_SEQUENCE_NUMBER"
    SHARD_END = "SHARD_END"

    @property
    def needs_sequence_number(self) -> bool:
        return self in (
            StartingPosition.AT_SEQUENCE_NUMBER,
            StartingPosition.AFTER_SEQUENCE_NUMBER,
        )


@dataclass(frozen=True)
class ShardCheckpoint:
    """How far a single shard of a stream has been consumed.

    Instances are immutable; advancing a reader produces a new value.
    """

    stream_name: str
    shard_id: str
    position: StartingPosition = StartingPosition.TRIM_HORIZON
    sequence_number: Optional[str] = None

    def __post_init__(self) -> None:
        """Validate the position after initialization."""
        if not isinstance(self.stream_name, str) or not self.stream_name:
            raise ValidationError(f"stream_name must be a non-empty string, got {self.stream_name!r}")
        if not isinstance(self.shard_id, str) or not self.shard_id:
            raise ValidationError(f"shard_id must be a non-empty string, got {self.shard_id!r}")
        if self.sequence_number is not None and not isinstance(self.sequence_number, str):
            raise ValidationError(
                f"sequence_number must be a string, got {type(self.sequence_number).__name__}"
            )
        if not isinstance(self.position, StartingPosition):
            try:
                object.__setattr__(self, "position", StartingPosition(self.position))
            except (TypeError, ValueError) as e:
                raise ValidationError(f"Unknown starting position: {self.position}") from e

        if self.position.needs_sequence_number:
            if not self.sequence_number or not SEQUENCE_NUMBER_PATTERN.fullmatch(
                self.sequence_number
            ):
                raise ValidationError(
                    f"{self.position.value} requires a sequence number, "
                    f"got {self.sequence_number!r}"
                )
        elif self.sequence_number is not None:
            raise ValidationError(
                f"{self.position.value} does not take a sequence number"
            )

    @property
    def shard_key(self) -> tuple:
        """Identity of the shard this position belongs to."""
        return (self.stream_name, self.shard_id)

    @property
    def redis_key(self) -> str:
        """Redis stream key holding this shard's entries."""
        return f"{self.stream_name}:shard:{self.shard_id}"

    @property
    def is_started(self) -> bool:
        return self.position not in (
            StartingPosition.TRIM_HORIZON,
            StartingPosition.LATEST,
        )

    @property
    def is_exhausted(self) -> bool:
        return self.position is StartingPosition.SHARD_END

    def move_after(self, sequence_number: str) -> "ShardCheckpoint":
        """Return a checkpoint positioned after a processed entry."""
        return replace(
            self,
            position=StartingPosition.AFTER_SEQUENCE_NUMBER,
            sequence_number=sequence_number,
        )

    def exhausted(self) -> "ShardCheckpoint":
        """Return a checkpoint marking the shard as fully consumed."""
        return replace(self, position=StartingPosition.SHARD_END, sequence_number=None)

    def start_id(self) -> str:
        """Lower bound to pass to XRANGE for the next read.

        LATEST maps to "$", which the reader must resolve to a concrete
        entry ID before calling XRANGE.
        """
        if self.position is StartingPosition.TRIM_HORIZON:
            return "-"
        if self.position is StartingPosition.LATEST:
            return "$"
        if self.position is StartingPosition.AT_SEQUENCE_NUMBER:
            return self.sequence_number
        if self.position is StartingPosition.AFTER_SEQUENCE_NUMBER:
            return f"({self.sequence_number}"
        raise ValidationError(f"Shard {self.shard_id} is exhausted")

    def to_dict(self) -> dict:
        """Convert to dictionary for storage."""
        return {
            "stream_name": self.stream_name,
            "shard_id": self.shard_id,
            "position": self.position.value,
            "sequence_number": self.sequence_number,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ShardCheckpoint":
        """Create ShardCheckpoint from its stored dictionary form.

        Args:
            data: Dictionary produced by to_dict()

        Returns:
            ShardCheckpoint instance

        Raises:
            ValidationError: If required keys are missing or invalid
        """
        try:
            return cls(
                stream_name=data["stream_name"],
                shard_id=data["shard_id"],
                position=StartingPosition(data.get("position", "TRIM_HORIZON")),
                sequence_number=data.get("sequence_number"),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise ValidationError(f"Invalid shard checkpoint record: {data!r}") from e

    def __str__(self) -> str:
        if self.sequence_number:
            return f"{self.stream_name}/{self.shard_id}@{self.position.value}:{self.sequence_number}"
        return f"{self.stream_name}/{self.shard_id}@{self.position.value}"


@dataclass
class ShardRecord:
    """Represents one entry read from a shard."""

    shard_id: str
    sequence_number: str
    data: dict = field(default_factory=dict)

    @classmethod
    def from_redis(cls, shard_id: str, message_id: str, values: dict) -> "ShardRecord":
        """Create ShardRecord from Redis XRANGE entry format.

        Args:
            shard_id: Shard the entry was read from
            message_id: Redis entry ID
            values: Entry field/value dict

        Returns:
            ShardRecord instance
        """
        return cls(
            shard_id=shard_id,
            sequence_number=message_id,
            data=dict(values),
        )
