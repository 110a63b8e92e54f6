"""
Database models for Coffee World.
"""

from datetime import datetime, timezone

from sqlalchemy import (
    Column,
    String,
    Integer,
    Text,
    DateTime,
    ForeignKey,
    Index,
    UniqueConstraint,
    CheckConstraint,
    create_engine,
)
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base
from sqlalchemy.pool import StaticPool

from coffeeworld.crowd.store import MAX_ID_LENGTH, CheckInRecord, utc

Base = declarative_base()


def to_db_time(value: datetime) -> datetime:
    """Store instants as naive UTC so SQLite and PostgreSQL agree."""
    return utc(value).replace(tzinfo=None)


def from_db_time(value: datetime) -> datetime:
    return utc(value)


def utcnow() -> datetime:
    return to_db_time(datetime.now(timezone.utc))


def make_engine(database_url: str, echo: bool = False) -> Engine:
    """
    Create a synchronous engine.

    Async driver suffixes are stripped. In-memory SQLite gets a single
    shared connection, otherwise every session would see an empty database.
    """
    url = database_url.replace("+aiosqlite", "").replace("+asyncpg", "")

    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(url, echo=echo, pool_pre_ping=True)


class CheckInModel(Base):
    """One check-in. Rows are inserted, never updated."""
    __tablename__ = "checkins"

    id = Column(String(36), primary_key=True)  # UUID
    subject_id = Column(String(MAX_ID_LENGTH), nullable=False)
    location_id = Column(String(MAX_ID_LENGTH), nullable=False)
    occurred_at = Column(DateTime, nullable=False)

    __table_args__ = (
        Index("idx_checkins_location_time", "location_id", "occurred_at"),
        Index("idx_checkins_time", "occurred_at"),
    )

    @classmethod
    def from_record(cls, record: CheckInRecord) -> "CheckInModel":
        return cls(
            id=record.id,
            subject_id=record.subject_id,
            location_id=record.location_id,
            occurred_at=to_db_time(record.occurred_at),
        )

    def to_record(self) -> CheckInRecord:
        return CheckInRecord(
            id=self.id,
            subject_id=self.subject_id,
            location_id=self.location_id,
            occurred_at=from_db_time(self.occurred_at),
        )


class CheckInLatestModel(Base):
    """
    Latest check-in per (subject, location).

    The primary key is the rate-limit slot: claiming it with a conditional
    update or a guarded insert is what serializes racing check-ins.
    Kept until the rate-limit window passes, after the check-in row itself
    may already be pruned.
    """
    __tablename__ = "checkin_latest"

    subject_id = Column(String(MAX_ID_LENGTH), primary_key=True)
    location_id = Column(String(MAX_ID_LENGTH), primary_key=True)
    checkin_id = Column(String(36), nullable=False)
    occurred_at = Column(DateTime, nullable=False, index=True)

    def to_record(self) -> CheckInRecord:
        return CheckInRecord(
            id=self.checkin_id,
            subject_id=self.subject_id,
            location_id=self.location_id,
            occurred_at=from_db_time(self.occurred_at),
        )


class ReviewModel(Base):
    """Review of a coffee shop."""
    __tablename__ = "reviews"

    id = Column(String(36), primary_key=True)
    coffee_shop_id = Column(String(MAX_ID_LENGTH), nullable=False, index=True)
    user_id = Column(String(MAX_ID_LENGTH), nullable=False)
    user_name = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    rating = Column(Integer, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("rating >= 1 AND rating <= 5", name="ck_reviews_rating"),
    )


class VoteModel(Base):
    """Up/down vote on a review. One per user per review."""
    __tablename__ = "review_votes"

    id = Column(String(36), primary_key=True)
    review_id = Column(String(36), ForeignKey("reviews.id"), nullable=False, index=True)
    user_id = Column(String(MAX_ID_LENGTH), nullable=False)
    vote_type = Column(String(8), nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("review_id", "user_id", name="uq_review_votes_user"),
        CheckConstraint("vote_type IN ('up', 'down')", name="ck_review_votes_type"),
    )
