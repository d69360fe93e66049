"""Engine configuration from environment variables."""

import os
from datetime import timedelta
from typing import Optional


class EngineConfig:
    """Offer timing and sweeper settings."""

    def __init__(
        self,
        offer_ttl_hours: Optional[float] = None,
        sweep_interval_seconds: Optional[float] = None,
        sweep_batch_size: Optional[int] = None,
    ):
        self.offer_ttl_hours = (
            offer_ttl_hours
            if offer_ttl_hours is not None
            else float(os.environ.get("OFFER_TTL_HOURS", "72"))
        )
        self.sweep_interval_seconds = (
            sweep_interval_seconds
            if sweep_interval_seconds is not None
            else float(os.environ.get("SWEEP_INTERVAL_SECONDS", "60"))
        )
        self.sweep_batch_size = (
            sweep_batch_size
            if sweep_batch_size is not None
            else int(os.environ.get("SWEEP_BATCH_SIZE", "100"))
        )

        if self.offer_ttl_hours <= 0:
            raise ValueError("OFFER_TTL_HOURS must be positive")
        if self.sweep_interval_seconds <= 0:
            raise ValueError("SWEEP_INTERVAL_SECONDS must be positive")
        if self.sweep_batch_size < 1:
            raise ValueError("SWEEP_BATCH_SIZE must be at least 1")

    @property
    def offer_ttl(self) -> timedelta:
        return timedelta(hours=self.offer_ttl_hours)


_config = None


def get_engine_config() -> EngineConfig:
    """Get or create the engine config singleton."""
    global _config
    if _config is None:
        _config = EngineConfig()
    return _config
