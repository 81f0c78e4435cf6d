"""Unit tests for the retry helpers and RedisConnection."""

import pytest
from redis.exceptions import ConnectionError

from shard_checkpoint.connection import RedisConnection, call_with_retry
from shard_checkpoint.exceptions import RedisConnectionError


@pytest.fixture
def sleeps(monkeypatch):
    """Record backoff delays instead of sleeping."""
    delays = []
    monkeypatch.setattr("redis.retry.sleep", delays.append)
    return delays


class TestCallWithRetry:
    """Tests for call_with_retry."""

    def test_succeeds_after_retries(self, sleeps):
        """Test transient failures are retried with growing delays."""
        attempts = []

        def flaky():
            attempts.append(1)
            if len(attempts) < 3:
                raise ConnectionError("down")
            return "ok"

        assert call_with_retry(flaky, "read", max_attempts=3, base_delay=0.1) == "ok"
        assert len(attempts) == 3
        assert sleeps == pytest.approx([0.2, 0.4])

    def test_gives_up_after_max_attempts(self, sleeps):
        """Test the last error is raised once attempts run out."""
        attempts = []

        def always_down():
            attempts.append(1)
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            call_with_retry(always_down, "read", max_attempts=2, base_delay=0.1)
        assert len(attempts) == 2
        assert sleeps == pytest.approx([0.2])

    def test_delay_is_capped(self, sleeps):
        """Test backoff never exceeds the cap."""
        def always_down():
            raise ConnectionError("down")

        with pytest.raises(ConnectionError):
            call_with_retry(always_down, "read", max_attempts=4, base_delay=2.0)
        assert sleeps == pytest.approx([4.0, 5.0, 5.0])

    def test_other_errors_not_retried(self, sleeps):
        """Test non-retryable exceptions propagate immediately."""
        def broken():
            raise KeyError("bug")

        with pytest.raises(KeyError):
            call_with_retry(broken, "read", max_attempts=5)
        assert sleeps == []

    def test_logs_each_failure(self, sleeps, caplog):
        """Test retries are logged as warnings and the final failure as an error."""
        def always_down():
            raise ConnectionError("down")

        with caplog.at_level("WARNING", logger="shard_checkpoint.connection"):
            with pytest.raises(ConnectionError):
                call_with_retry(always_down, "save checkpoint", max_attempts=3)

        levels = [r.levelname for r in caplog.records]
        assert levels == ["WARNING", "WARNING", "ERROR"]
        assert "after 3 attempts" in caplog.records[-1].getMessage()


class TestRedisConnection:
    """Tests for RedisConnection without a server."""

    def test_client_is_lazy(self):
        """Test nothing is created until the client is used."""
        conn = RedisConnection("redis://localhost:6379")

        assert conn.is_open is False
        conn.client
        assert conn.is_open is True
        conn.close()
        assert conn.is_open is False

    def test_close_without_connect(self):
        """Test closing an unused connection is safe."""
        RedisConnection().close()

    def test_context_manager_closes(self):
        """Test leaving the context closes the pool."""
        with RedisConnection() as conn:
            conn.client
        assert conn.is_open is False
        assert conn._pool is None

    def test_ping_unreachable_raises(self, sleeps):
        """Test an unreachable server raises RedisConnectionError."""
        conn = RedisConnection("redis://127.0.0.1:1")

        with pytest.raises(RedisConnectionError, match="127.0.0.1:1"):
            conn.ping(max_attempts=2)
        conn.close()


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
