"""Pytest configuration for shard checkpoint tests."""

import os
import uuid

import pytest
import redis


def pytest_configure(config):
    """Configure pytest."""
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests (require Redis)"
    )


@pytest.fixture(scope="session")
def redis_url():
    """Get Redis URL from environment or use default."""
    return os.environ.get("REDIS_URL", "redis://localhost:6379")


@pytest.fixture
def redis_client(redis_url):
    """Redis client for test setup; skips the test when Redis is down."""
    client = redis.from_url(redis_url, decode_responses=True)
    try:
        client.ping()
    except (redis.exceptions.ConnectionError, redis.exceptions.TimeoutError):
        client.close()
        pytest.skip(f"Redis not available at {redis_url}")
    yield client
    client.close()


@pytest.fixture
def stream_name(redis_client):
    """Unique stream name whose shard keys are removed after the test."""
    name = f"test_stream_{uuid.uuid4().hex[:8]}"
    yield name
    for key in redis_client.scan_iter(match=f"{name}:*"):
        redis_client.delete(key)
    for key in redis_client.scan_iter(match=f"*:{name}:*"):
        redis_client.delete(key)
