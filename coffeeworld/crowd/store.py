"""
Check-In Store

Record keeper of "who is here now":
- Append-only check-in records
- Time-based expiry (validity window)
- Per-user, per-shop rate-limit memory (rate-limit window)
- Compare-and-append to close the check-then-act race

Design Decisions:
1. Explicit `now`: every query takes the instant to evaluate against,
   so the store never reads a clock itself
2. Latest-per-pair index: pruning expired records never shortens the
   rate limit, which outlives the validity window
3. Same contract for every backend: the in-memory store is used for
   tests and development, SqlCheckInStore for deployments
"""

import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from loguru import logger


DEFAULT_VALIDITY_WINDOW = timedelta(minutes=90)
DEFAULT_RATE_LIMIT_WINDOW = timedelta(minutes=120)

# Column width of subject and location ids in SQL storage
MAX_ID_LENGTH = 64


@dataclass(frozen=True)
class CheckInRecord:
    """A timestamped presence claim by one user at one shop."""

    id: str
    subject_id: str
    location_id: str
    occurred_at: datetime

    def age(self, now: datetime) -> timedelta:
        """Time elapsed since the check-in."""
        return now - self.occurred_at


class CheckInConflict(Exception):
    """
    Raised by a guarded append when the (subject, location) pair
    already holds a check-in inside the guard window.
    """

    def __init__(self, existing: CheckInRecord):
        self.existing = existing
        super().__init__(
            f"check-in {existing.id} already recorded for this location"
        )


def utc(value: datetime) -> datetime:
    """Normalize a datetime to an aware UTC instant."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class CheckInStore(ABC):
    """
    Storage contract for check-in records.

    Implementations must be safe under concurrent invocation: writes are
    never lost and readers never observe a half-applied mutation.
    """

    def __init__(
        self,
        validity_window: timedelta = DEFAULT_VALIDITY_WINDOW,
        rate_limit_window: timedelta = DEFAULT_RATE_LIMIT_WINDOW,
    ):
        self.validity_window = validity_window
        self.rate_limit_window = rate_limit_window

    def is_active(self, record: CheckInRecord, now: datetime) -> bool:
        """True while the record counts toward occupancy."""
        return record.age(now) < self.validity_window

    @abstractmethod
    def count_active(self, location_id: str, now: datetime) -> int:
        """Number of active records for a location (0 if unknown)."""

    @abstractmethod
    def list_active(self, location_id: str, now: datetime) -> list[CheckInRecord]:
        """Active records for a location, newest first."""

    @abstractmethod
    def find_active_by_subject_and_location(
        self,
        subject_id: str,
        location_id: str,
        now: datetime,
        window: timedelta,
    ) -> Optional[CheckInRecord]:
        """Most recent record for the pair with age below `window`."""

    @abstractmethod
    def append(
        self,
        record: CheckInRecord,
        guard_window: Optional[timedelta] = None,
    ) -> CheckInRecord:
        """
        Insert a record.

        Args:
            record: Record to insert.
            guard_window: When set, atomically reject the insert if the
                pair already has a record younger than this window
                (measured at `record.occurred_at`).

        Raises:
            CheckInConflict: Guard window violated.
        """

    @abstractmethod
    def prune(self, now: datetime) -> int:
        """Drop expired records. Returns the number of check-ins removed."""


class InMemoryCheckInStore(CheckInStore):
    """
    Process-local check-in store.

    A single re-entrant lock serializes every read and mutation, so
    append+prune is never observed half-done. Suitable for tests and
    single-process development servers only.
    """

    def __init__(
        self,
        validity_window: timedelta = DEFAULT_VALIDITY_WINDOW,
        rate_limit_window: timedelta = DEFAULT_RATE_LIMIT_WINDOW,
    ):
        super().__init__(validity_window, rate_limit_window)
        self._records: list[CheckInRecord] = []
        self._latest: dict[tuple[str, str], CheckInRecord] = {}
        self._lock = threading.RLock()

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def count_active(self, location_id: str, now: datetime) -> int:
        return len(self.list_active(location_id, now))

    def list_active(self, location_id: str, now: datetime) -> list[CheckInRecord]:
        now = utc(now)
        with self._lock:
            active = [
                r for r in self._records
                if r.location_id == location_id and self.is_active(r, now)
            ]
        return sorted(active, key=lambda r: r.occurred_at, reverse=True)

    def find_active_by_subject_and_location(
        self,
        subject_id: str,
        location_id: str,
        now: datetime,
        window: timedelta,
    ) -> Optional[CheckInRecord]:
        now = utc(now)
        with self._lock:
            latest = self._latest.get((subject_id, location_id))
        if latest is not None and latest.age(now) < window:
            return latest
        return None

    def append(
        self,
        record: CheckInRecord,
        guard_window: Optional[timedelta] = None,
    ) -> CheckInRecord:
        key = (record.subject_id, record.location_id)

        with self._lock:
            previous = self._latest.get(key)
            if (
                guard_window is not None
                and previous is not None
                and record.occurred_at - previous.occurred_at < guard_window
            ):
                raise CheckInConflict(previous)

            self._records.append(record)
            if previous is None or record.occurred_at >= previous.occurred_at:
                self._latest[key] = record

        return record

    def prune(self, now: datetime) -> int:
        now = utc(now)
        with self._lock:
            before = len(self._records)
            self._records = [r for r in self._records if self.is_active(r, now)]
            self._latest = {
                key: r for key, r in self._latest.items()
                if r.age(now) < self.rate_limit_window
            }
            removed = before - len(self._records)

        if removed:
            logger.debug(f"Pruned {removed} expired check-ins")
        return removed
