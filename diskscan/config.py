"""
Scan Configuration - Centralized settings for the scanning engine.

Uses environment variables with sensible defaults. Depth and width budgets
here are only defaults: every scan request may override them.
"""

import os
from dataclasses import dataclass, field


def _default_workers() -> int:
    return os.cpu_count() or 4


@dataclass
class ScanConfig:
    """
    Configuration for the scanning engine.

    Concurrency defaults to the hardware thread count; all scans started
    from one service share that pool.
    """

    # --- Budgets ---
    max_depth: int = 6              # Depth at which tree-building stops
    top_children: int = 200         # Children kept per directory (0 = unlimited)

    # --- Progress ---
    progress_interval_ms: int = 120  # Minimum gap between progress samples

    # --- Concurrency ---
    max_workers: int = field(default_factory=_default_workers)

    def __post_init__(self):
        """Reject budgets that cannot be expressed as unsigned values."""
        if self.max_depth < 0:
            raise ValueError(f"max_depth must be >= 0, got {self.max_depth}")
        if self.top_children < 0:
            raise ValueError(f"top_children must be >= 0, got {self.top_children}")
        if self.progress_interval_ms < 0:
            raise ValueError(
                f"progress_interval_ms must be >= 0, got {self.progress_interval_ms}"
            )
        if self.max_workers < 1:
            raise ValueError(f"max_workers must be >= 1, got {self.max_workers}")

    @classmethod
    def from_env(cls) -> "ScanConfig":
        """
        Create config from environment variables.

        Supported env vars:
            DISKSCAN_MAX_DEPTH: Default depth budget
            DISKSCAN_TOP_CHILDREN: Default width budget
            DISKSCAN_PROGRESS_INTERVAL_MS: Progress throttle window
            DISKSCAN_MAX_WORKERS: Filesystem worker threads
        """
        config = cls()

        if max_depth := os.environ.get("DISKSCAN_MAX_DEPTH"):
            config.max_depth = int(max_depth)

        if top_children := os.environ.get("DISKSCAN_TOP_CHILDREN"):
            config.top_children = int(top_children)

        if interval := os.environ.get("DISKSCAN_PROGRESS_INTERVAL_MS"):
            config.progress_interval_ms = int(interval)

        if workers := os.environ.get("DISKSCAN_MAX_WORKERS"):
            config.max_workers = int(workers)

        config.__post_init__()
        return config


# Singleton default config
_default_config: ScanConfig | None = None


def get_config() -> ScanConfig:
    """Get the default configuration (singleton)."""
    global _default_config
    if _default_config is None:
        _default_config = ScanConfig.from_env()
    return _default_config


def set_config(config: ScanConfig | None) -> None:
    """Override the default configuration (for testing)."""
    global _default_config
    _default_config = config
