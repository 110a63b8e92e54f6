"""
Review Repository for Coffee World

Structured storage for shop reviews and the votes cast on them.
Vote tallies are computed on read so they can never drift from the
vote rows themselves.
"""

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from loguru import logger
from sqlalchemy import case, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from coffeeworld.exceptions import StorageUnavailableError
from .models import Base, ReviewModel, VoteModel, from_db_time, make_engine, to_db_time, utcnow


@dataclass
class StoredReview:
    """Data class for review data transfer."""

    id: str
    coffee_shop_id: str
    user_id: str
    user_name: str
    content: str
    rating: int
    date: datetime
    upvotes: int = 0
    downvotes: int = 0
    user_vote: Optional[str] = None


@dataclass
class VoteTally:
    """Vote counts for a review plus the caller's own vote."""

    review_id: str
    upvotes: int
    downvotes: int
    user_vote: Optional[str] = None


class ReviewRepository:
    """
    Repository for review CRUD and voting.

    Usage:
        repo = ReviewRepository(engine=engine)
        review = repo.create(coffee_shop_id="1", user_id="u1", user_name="Ana",
                             content="Great espresso", rating=5)
        repo.upsert_vote(review.id, "u2", "up")
    """

    def __init__(
        self,
        database_url: Optional[str] = None,
        engine: Optional[Engine] = None,
        create_tables: bool = True,
    ):
        self.engine = engine or make_engine(database_url or "sqlite:///:memory:")
        if create_tables:
            Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)

    def get_session(self) -> Session:
        """Get database session."""
        return self.SessionLocal()

    def _tallies(self, session: Session, review_ids: list[str]) -> dict[str, tuple[int, int]]:
        if not review_ids:
            return {}
        rows = session.execute(
            select(
                VoteModel.review_id,
                func.sum(case((VoteModel.vote_type == "up", 1), else_=0)),
                func.sum(case((VoteModel.vote_type == "down", 1), else_=0)),
            )
            .where(VoteModel.review_id.in_(review_ids))
            .group_by(VoteModel.review_id)
        ).all()
        return {review_id: (int(up or 0), int(down or 0)) for review_id, up, down in rows}

    def _viewer_votes(
        self, session: Session, review_ids: list[str], viewer_id: Optional[str]
    ) -> dict[str, str]:
        if not viewer_id or not review_ids:
            return {}
        rows = session.execute(
            select(VoteModel.review_id, VoteModel.vote_type).where(
                VoteModel.review_id.in_(review_ids),
                VoteModel.user_id == viewer_id,
            )
        ).all()
        return {review_id: vote_type for review_id, vote_type in rows}

    def _to_stored(
        self,
        model: ReviewModel,
        tallies: dict[str, tuple[int, int]],
        viewer_votes: dict[str, str],
    ) -> StoredReview:
        up, down = tallies.get(model.id, (0, 0))
        return StoredReview(
            id=model.id,
            coffee_shop_id=model.coffee_shop_id,
            user_id=model.user_id,
            user_name=model.user_name,
            content=model.content,
            rating=model.rating,
            date=from_db_time(model.created_at),
            upvotes=up,
            downvotes=down,
            user_vote=viewer_votes.get(model.id),
        )

    def list_for_shop(
        self,
        coffee_shop_id: str,
        viewer_id: Optional[str] = None,
    ) -> list[StoredReview]:
        """Reviews for a shop, newest first."""
        try:
            with self.get_session() as session:
                models = session.scalars(
                    select(ReviewModel)
                    .where(ReviewModel.coffee_shop_id == coffee_shop_id)
                    .order_by(ReviewModel.created_at.desc())
                ).all()
                ids = [m.id for m in models]
                tallies = self._tallies(session, ids)
                viewer_votes = self._viewer_votes(session, ids, viewer_id)
                return [self._to_stored(m, tallies, viewer_votes) for m in models]
        except SQLAlchemyError as e:
            logger.error(f"Failed to list reviews for shop {coffee_shop_id}: {e}")
            raise StorageUnavailableError("list_reviews") from e

    def exists(self, review_id: str) -> bool:
        try:
            with self.get_session() as session:
                return session.get(ReviewModel, review_id) is not None
        except SQLAlchemyError as e:
            raise StorageUnavailableError("get_review") from e

    def create(
        self,
        coffee_shop_id: str,
        user_id: str,
        user_name: str,
        content: str,
        rating: int,
        review_id: Optional[str] = None,
        created_at: Optional[datetime] = None,
    ) -> StoredReview:
        """
        Create a new review.

        Returns:
            Created StoredReview (no votes yet)
        """
        model = ReviewModel(
            id=review_id or str(uuid.uuid4()),
            coffee_shop_id=coffee_shop_id,
            user_id=user_id,
            user_name=user_name,
            content=content,
            rating=rating,
            created_at=to_db_time(created_at) if created_at else utcnow(),
        )
        try:
            with self.get_session() as session, session.begin():
                session.add(model)
        except SQLAlchemyError as e:
            logger.error(f"Failed to create review: {e}")
            raise StorageUnavailableError("create_review") from e

        return self._to_stored(model, {}, {})

    def upsert_vote(
        self,
        review_id: str,
        user_id: str,
        vote_type: str,
        created_at: Optional[datetime] = None,
    ) -> VoteTally:
        """
        Record a user's vote, replacing any earlier vote on the same review.

        Returns:
            Updated tally with the user's vote
        """
        voted_at = to_db_time(created_at) if created_at else utcnow()

        try:
            try:
                self._write_vote(review_id, user_id, vote_type, voted_at)
            except IntegrityError:
                # concurrent first vote by the same user; the row exists now
                self._write_vote(review_id, user_id, vote_type, voted_at)

            with self.get_session() as session:
                up, down = self._tallies(session, [review_id]).get(review_id, (0, 0))
        except SQLAlchemyError as e:
            logger.error(f"Failed to record vote on review {review_id}: {e}")
            raise StorageUnavailableError("vote") from e

        return VoteTally(review_id=review_id, upvotes=up, downvotes=down, user_vote=vote_type)

    def _write_vote(self, review_id: str, user_id: str, vote_type: str, voted_at: datetime) -> None:
        with self.get_session() as session, session.begin():
            existing = session.scalars(
                select(VoteModel).where(
                    VoteModel.review_id == review_id,
                    VoteModel.user_id == user_id,
                )
            ).first()
            if existing:
                existing.vote_type = vote_type
                existing.created_at = voted_at
            else:
                session.add(
                    VoteModel(
                        id=str(uuid.uuid4()),
                        review_id=review_id,
                        user_id=user_id,
                        vote_type=vote_type,
                        created_at=voted_at,
                    )
                )

    def count(self) -> int:
        with self.get_session() as session:
            return session.scalar(select(func.count()).select_from(ReviewModel)) or 0
