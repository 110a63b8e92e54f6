"""
Crowd Module for Coffee World

Live occupancy from user check-ins:
- Crowd level classification
- Check-in storage with expiry and rate-limit memory
- Check-in service enforcing auth and business rules
"""

from coffeeworld.crowd.classifier import (
    CrowdLevel,
    CROWD_THRESHOLDS,
    classify,
)
from coffeeworld.crowd.store import (
    CheckInRecord,
    CheckInConflict,
    CheckInStore,
    InMemoryCheckInStore,
    DEFAULT_VALIDITY_WINDOW,
    DEFAULT_RATE_LIMIT_WINDOW,
)
from coffeeworld.crowd.service import (
    CheckInService,
    CheckInResult,
    CrowdStatus,
    Subject,
    system_clock,
)

__all__ = [
    # Classifier
    "CrowdLevel",
    "CROWD_THRESHOLDS",
    "classify",
    # Store
    "CheckInRecord",
    "CheckInConflict",
    "CheckInStore",
    "InMemoryCheckInStore",
    "DEFAULT_VALIDITY_WINDOW",
    "DEFAULT_RATE_LIMIT_WINDOW",
    # Service
    "CheckInService",
    "CheckInResult",
    "CrowdStatus",
    "Subject",
    "system_clock",
]
