"""Fixed-window request admission."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from gainchef.domain.session import RateLimitRecord
from gainchef.services.state_store import StateStore, StorageKeys

RATE_LIMIT_WINDOW = timedelta(minutes=10)
RATE_LIMIT_MAX_REQUESTS = 20

_logger = logging.getLogger(__name__)


@dataclass
class RateLimiter:
    """Admits at most max_requests per window; no refill inside a window."""

    store: StateStore
    window: timedelta = RATE_LIMIT_WINDOW
    max_requests: int = RATE_LIMIT_MAX_REQUESTS
    clock: Callable[[], datetime] = lambda: datetime.now(tz=UTC)

    def admit(self) -> bool:
        """Count a request and return whether it is admitted."""
        now = self.clock()
        record = self._read(now)
        if now > record.reset_at:
            record = RateLimitRecord(count=0, reset_at=now + self.window)

        if record.count >= self.max_requests:
            self._write(record)
            _logger.info(
                "Rate limit reached: count=%s reset_at=%s",
                record.count,
                record.reset_at.isoformat(),
            )
            return False

        record = RateLimitRecord(count=record.count + 1, reset_at=record.reset_at)
        self._write(record)
        return True

    def _read(self, now: datetime) -> RateLimitRecord:
        raw = self.store.get(StorageKeys.RATE_LIMIT)
        if raw is None:
            return RateLimitRecord(count=0, reset_at=now + self.window)
        return RateLimitRecord.model_validate(raw)

    def _write(self, record: RateLimitRecord) -> None:
        self.store.put(StorageKeys.RATE_LIMIT, record.model_dump(mode="json"))
