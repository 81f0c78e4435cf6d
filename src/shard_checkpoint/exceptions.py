"""Shard checkpoint exception classes."""


class ShardCheckpointError(Exception):
    """Base exception for shard checkpoint errors."""
    pass


class ValidationError(ShardCheckpointError):
    """Raised when a caller breaks a precondition (bad split count, bad input)."""
    pass


class DuplicateShardError(ValidationError):
    """Raised when a shard appears more than once in one checkpoint."""
    def __init__(self, stream_name: str, shard_id: str):
        self.stream_name = stream_name
        self.shard_id = shard_id
        super().__init__(f"Duplicate shard in checkpoint: {shard_id} (stream: {stream_name})")


class ShardNotFoundError(ShardCheckpointError):
    """Raised when a shard's Redis stream does not exist."""
    def __init__(self, shard_id: str, stream_name: str = None):
        self.shard_id = shard_id
        self.stream_name = stream_name
        msg = f"Shard not found: {shard_id}"
        if stream_name:
            msg += f" (stream: {stream_name})"
        super().__init__(msg)


class RedisConnectionError(ShardCheckpointError):
    """Raised when connection to Redis fails."""
    def __init__(self, message: str = "Failed to connect to Redis"):
        super().__init__(message)
