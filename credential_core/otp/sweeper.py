"""
OTP Sweeper
===========
Periodic removal of expired OTP rows.

The scheduler itself is external; ``run_forever`` is a minimal loop for
processes that have none.
"""

import asyncio
from typing import Optional

import structlog

from ..config import SWEEP_INTERVAL_SECONDS
from ..errors import RetryExhausted
from ..retry import retry_with_backoff
from .manager import OTPManager

logger = structlog.get_logger(__name__)


class OTPSweeper:
    """Runs OTPManager.sweep with retry on transient store failures."""

    def __init__(
        self,
        manager: OTPManager,
        interval_seconds: float = SWEEP_INTERVAL_SECONDS,
        max_attempts: int = 3,
        base_delay: float = 1.0,
    ):
        self.manager = manager
        self.interval_seconds = interval_seconds
        self.max_attempts = max_attempts
        self.base_delay = base_delay
        self.last_deleted: Optional[int] = None

    async def run_once(self) -> int:
        """
        Sweep expired rows once.

        Raises:
            RetryExhausted: The store stayed unavailable for every attempt
        """
        deleted = await retry_with_backoff(
            self.manager.sweep,
            max_attempts=self.max_attempts,
            base_delay=self.base_delay,
        )
        self.last_deleted = deleted
        return deleted

    async def run_forever(self) -> None:
        """Sweep every ``interval_seconds`` until cancelled."""
        logger.info("OTP sweeper started", interval_seconds=self.interval_seconds)
        try:
            while True:
                try:
                    await self.run_once()
                except RetryExhausted as e:
                    logger.error(
                        "Weekly OTP cleanup failed",
                        error_type=type(e.last_exception).__name__,
                    )
                await asyncio.sleep(self.interval_seconds)
        except asyncio.CancelledError:
            logger.info("OTP sweeper stopped")
            raise
