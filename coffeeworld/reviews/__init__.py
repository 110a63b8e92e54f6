"""
Reviews Module for Coffee World
"""

from coffeeworld.reviews.service import (
    ReviewService,
    VoteType,
    MIN_CONTENT_LENGTH,
)

__all__ = [
    "ReviewService",
    "VoteType",
    "MIN_CONTENT_LENGTH",
]
