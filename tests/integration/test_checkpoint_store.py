"""Integration test: persisting reader checkpoints in Redis."""

import pytest

from shard_checkpoint.checkpoint import ReaderCheckpoint
from shard_checkpoint.config import CheckpointConfig
from shard_checkpoint.models import ShardCheckpoint
from shard_checkpoint.store import CheckpointStore

pytestmark = pytest.mark.integration


@pytest.fixture
def store(redis_url, redis_client):
    store = CheckpointStore(redis_url)
    yield store
    store.close()


@pytest.fixture
def checkpoint(stream_name):
    return ReaderCheckpoint(
        [
            ShardCheckpoint(stream_name, "s0").move_after("1700000000000-0"),
            ShardCheckpoint(stream_name, "s1"),
        ]
    )


def test_save_and_load(store, stream_name, checkpoint):
    """Test a saved checkpoint loads back equal and in order."""
    assert store.save(stream_name, "group-a", checkpoint) is True

    loaded = store.load(stream_name, "group-a")

    assert loaded == checkpoint
    assert loaded.shard_ids == ("s0", "s1")


def test_load_missing(store, stream_name):
    """Test a group without a checkpoint loads as None."""
    assert store.load(stream_name, "nobody") is None


def test_invalid_stored_value(store, redis_client, stream_name):
    """Test garbage under the checkpoint key is treated as missing."""
    redis_client.set(f"{CheckpointStore.KEY_PREFIX}:{stream_name}:broken", "{oops")

    assert store.load(stream_name, "broken") is None


def test_delete_and_list_groups(store, stream_name, checkpoint):
    """Test listing and deleting group checkpoints."""
    store.save(stream_name, "group-b", checkpoint)
    store.save(stream_name, "group-a", checkpoint)

    assert store.list_groups(stream_name) == ["group-a", "group-b"]

    store.delete(stream_name, "group-a")

    assert store.list_groups(stream_name) == ["group-b"]
    assert store.load(stream_name, "group-a") is None


def test_from_config_uses_key_prefix(redis_url, redis_client, stream_name, checkpoint):
    """Test the configured key prefix is used for storage."""
    config = CheckpointConfig(redis_url=redis_url, key_prefix="custom_ckpt")
    store = CheckpointStore.from_config(config)
    try:
        store.save(stream_name, "group-a", checkpoint)
        assert redis_client.exists(f"custom_ckpt:{stream_name}:group-a")
    finally:
        store.delete(stream_name, "group-a")
        store.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
