"""
Check-In Service

Authenticated, rule-enforcing facade over the check-in store.

Read path (no auth):
    get_status -> count active check-ins -> classify

Write path (verified users only):
    check_in -> auth checks -> input checks -> rate limit
             -> guarded append -> prune -> recount -> classify
"""

import math
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from loguru import logger

from coffeeworld.crowd.classifier import CrowdLevel, classify
from coffeeworld.crowd.store import (
    MAX_ID_LENGTH,
    CheckInConflict,
    CheckInRecord,
    CheckInStore,
    utc,
)
from coffeeworld.exceptions import (
    InvalidInputError,
    RateLimitedError,
    StorageUnavailableError,
    UnauthenticatedError,
    VerificationRequiredError,
)


Clock = Callable[[], datetime]


def system_clock() -> datetime:
    """Current UTC instant."""
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class Subject:
    """Identity attached to a request by the session layer."""

    subject_id: str
    verified: bool = False
    name: Optional[str] = None


@dataclass
class CrowdStatus:
    """Live occupancy of one shop."""

    location_id: str
    count: int
    level: CrowdLevel
    check_ins: list[CheckInRecord] = field(default_factory=list)
    last_updated: Optional[datetime] = None


@dataclass
class CheckInResult:
    """Outcome of a successful check-in."""

    record: CheckInRecord
    count: int
    level: CrowdLevel


def minutes_remaining(window: timedelta, elapsed: timedelta) -> int:
    """Whole minutes left in `window` after `elapsed`, rounded up."""
    return math.ceil((window - elapsed).total_seconds() / 60)


class CheckInService:
    """
    Orchestrates crowd status reads and check-in writes.

    Usage:
        service = CheckInService(InMemoryCheckInStore())
        status = service.get_status("1")
        result = service.check_in("1", Subject("u1", verified=True))
    """

    def __init__(
        self,
        store: CheckInStore,
        clock: Clock = system_clock,
        id_factory: Callable[[], str] = lambda: str(uuid.uuid4()),
    ):
        self.store = store
        self.clock = clock
        self.id_factory = id_factory

    @property
    def rate_limit_window(self) -> timedelta:
        return self.store.rate_limit_window

    def _now(self) -> datetime:
        return utc(self.clock())

    @staticmethod
    def _require_location(location_id: Optional[str]) -> str:
        if location_id is None or not str(location_id).strip():
            raise InvalidInputError("locationId required")
        location_id = str(location_id).strip()
        if len(location_id) > MAX_ID_LENGTH:
            raise InvalidInputError(
                "locationId too long",
                detail=f"locationId must be at most {MAX_ID_LENGTH} characters",
            )
        return location_id

    def get_status(self, location_id: Optional[str]) -> CrowdStatus:
        """
        Current occupancy and crowd level for a shop.

        Raises:
            InvalidInputError: If location_id is missing, blank or too long.
            StorageUnavailableError: If the store cannot be read.
        """
        location_id = self._require_location(location_id)
        now = self._now()

        check_ins = self.store.list_active(location_id, now)
        count = len(check_ins)

        return CrowdStatus(
            location_id=location_id,
            count=count,
            level=classify(count),
            check_ins=check_ins,
            last_updated=now,
        )

    def check_in(
        self,
        location_id: Optional[str],
        subject: Optional[Subject],
    ) -> CheckInResult:
        """
        Record that a verified user is at a shop.

        Raises:
            UnauthenticatedError: No subject.
            VerificationRequiredError: Subject has not verified with World ID.
            InvalidInputError: Missing or over-long location.
            RateLimitedError: Checked in at this shop within the rate-limit window.
            StorageUnavailableError: Store failure before the write; nothing is recorded.
        """
        if subject is None or not subject.subject_id:
            raise UnauthenticatedError()
        if not subject.verified:
            raise VerificationRequiredError()
        location_id = self._require_location(location_id)

        now = self._now()
        window = self.rate_limit_window

        prior = self.store.find_active_by_subject_and_location(
            subject.subject_id, location_id, now, window
        )
        if prior is not None:
            self._reject(prior, location_id, now)

        # fallback for the response if the recount below fails
        count_before = self.store.count_active(location_id, now)

        record = CheckInRecord(
            id=self.id_factory(),
            subject_id=subject.subject_id,
            location_id=location_id,
            occurred_at=now,
        )

        try:
            self.store.append(record, guard_window=window)
        except CheckInConflict as e:
            # lost a race with a concurrent check-in for the same pair
            self._reject(e.existing, location_id, now)

        # the check-in is stored; housekeeping failures must not fail it
        try:
            self.store.prune(now)
        except StorageUnavailableError as e:
            logger.warning(f"Prune after check-in {record.id} failed: {e.message}")

        try:
            count = self.store.count_active(location_id, now)
        except StorageUnavailableError as e:
            logger.warning(f"Recount after check-in {record.id} failed: {e.message}")
            count = count_before + 1
        level = classify(count)

        logger.info(
            f"Check-in {record.id} recorded at shop {location_id} "
            f"({count} active, {level.value})"
        )

        return CheckInResult(record=record, count=count, level=level)

    def _reject(self, prior: CheckInRecord, location_id: str, now: datetime) -> None:
        wait = minutes_remaining(self.rate_limit_window, prior.age(now))
        logger.warning(
            f"Rejected check-in at shop {location_id}: "
            f"previous check-in {prior.id}, retry in {wait} min"
        )
        raise RateLimitedError(retry_after_minutes=wait)
