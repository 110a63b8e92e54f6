"""
Storage Module for Coffee World

Persistent storage backed by SQLAlchemy:
- PostgreSQL for production, SQLite for development/testing
- Check-in store with rate-limit slots
- Reviews and votes
"""

from coffeeworld.storage.models import (
    Base,
    make_engine,
)
from coffeeworld.storage.checkin_repository import (
    SqlCheckInStore,
)
from coffeeworld.storage.review_repository import (
    ReviewRepository,
    StoredReview,
    VoteTally,
)

__all__ = [
    "Base",
    "make_engine",
    # Check-ins
    "SqlCheckInStore",
    # Reviews
    "ReviewRepository",
    "StoredReview",
    "VoteTally",
]
