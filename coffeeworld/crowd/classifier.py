"""
Crowd level classification.

Maps the number of active check-ins at a shop to a coarse crowd bucket.
Thresholds are inclusive upper bounds:

    0-2   Low
    3-5   Moderate
    6-10  High
    11+   Very High
"""

from enum import Enum


class CrowdLevel(str, Enum):
    """Discrete crowd bucket derived from live occupancy."""
    LOW = "Low"
    MODERATE = "Moderate"
    HIGH = "High"
    VERY_HIGH = "Very High"

    @property
    def rank(self) -> int:
        """Ordinal position, 0 being the least crowded."""
        return _ORDER.index(self)


_ORDER = [
    CrowdLevel.LOW,
    CrowdLevel.MODERATE,
    CrowdLevel.HIGH,
    CrowdLevel.VERY_HIGH,
]

# (inclusive upper bound, level), checked in order
CROWD_THRESHOLDS = [
    (2, CrowdLevel.LOW),
    (5, CrowdLevel.MODERATE),
    (10, CrowdLevel.HIGH),
]


def classify(count: int) -> CrowdLevel:
    """
    Classify an occupancy count.

    Args:
        count: Number of active check-ins (non-negative).

    Returns:
        CrowdLevel bucket for the count.

    Raises:
        ValueError: If count is negative.
    """
    if count < 0:
        raise ValueError(f"count must be non-negative, got {count}")

    for upper, level in CROWD_THRESHOLDS:
        if count <= upper:
            return level
    return CrowdLevel.VERY_HIGH
