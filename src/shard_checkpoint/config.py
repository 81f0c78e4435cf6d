"""Checkpoint configuration model."""

import os
from dataclasses import dataclass, fields
from typing import Optional

import yaml

CONFIG_SECTION = "shard_checkpoint"


@dataclass
class CheckpointConfig:
    """Configuration for shard readers and checkpoint persistence."""

    redis_url: str = "redis://localhost:6379"
    key_prefix: str = "shard_checkpoint"
    desired_num_splits: int = 1
    read_batch_size: int = 100
    max_retries: int = 3
    retry_base_delay: float = 0.1

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        self._validate()

    def _validate(self) -> None:
        """Validate checkpoint configuration."""
        for name in ("redis_url", "key_prefix"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value:
                raise ValueError(f"{name} must be a non-empty string")
        for name in ("desired_num_splits", "read_batch_size", "max_retries"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise ValueError(f"{name} must be an integer, got {value!r}")
            if value < 1:
                raise ValueError(f"{name} must be >= 1")
        if isinstance(self.retry_base_delay, bool) or not isinstance(
            self.retry_base_delay, (int, float)
        ):
            raise ValueError(f"retry_base_delay must be a number, got {self.retry_base_delay!r}")
        if self.retry_base_delay <= 0:
            raise ValueError("retry_base_delay must be > 0")

    @classmethod
    def from_dict(cls, data: Optional[dict]) -> "CheckpointConfig":
        """Create CheckpointConfig from dictionary.

        Args:
            data: Dictionary with checkpoint configuration, or None/empty

        Returns:
            CheckpointConfig instance
        """
        if not data:
            return cls()

        # Filter to only known fields
        known_fields = {f.name for f in fields(cls)}
        filtered = {k: v for k, v in data.items() if k in known_fields}
        return cls(**filtered)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


def load_checkpoint_config(config_path: str = "config.yaml") -> CheckpointConfig:
    """Load checkpoint configuration from a YAML config file.

    Args:
        config_path: Path to the YAML configuration file

    Returns:
        CheckpointConfig loaded from the shard_checkpoint section, or the
        default config if the file or section is not found.
    """
    config_data = {}
    if os.path.exists(config_path):
        with open(config_path, "r") as f:
            full_config = yaml.safe_load(f) or {}
            config_data = full_config.get(CONFIG_SECTION, {})

    return CheckpointConfig.from_dict(config_data)
