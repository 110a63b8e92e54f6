"""
Review Service

Shop reviews and helpfulness votes.

Rules:
- Anyone may read reviews
- Only World ID verified users may write a review
- Any signed-in user may vote; voting again replaces the earlier vote
"""

from enum import Enum
from typing import Optional

from loguru import logger

from coffeeworld.crowd.service import Subject
from coffeeworld.crowd.store import MAX_ID_LENGTH
from coffeeworld.exceptions import (
    InvalidInputError,
    NotFoundError,
    UnauthenticatedError,
    VerificationRequiredError,
)
from coffeeworld.storage.review_repository import ReviewRepository, StoredReview, VoteTally


MIN_CONTENT_LENGTH = 5
MAX_CONTENT_LENGTH = 2000


def _check_shop_id_length(coffee_shop_id: str) -> None:
    if len(coffee_shop_id) > MAX_ID_LENGTH:
        raise InvalidInputError(
            "coffeeShopId too long",
            detail=f"coffeeShopId must be at most {MAX_ID_LENGTH} characters",
        )


class VoteType(str, Enum):
    UP = "up"
    DOWN = "down"


class ReviewService:
    """Validates review and vote requests before they reach the repository."""

    def __init__(self, repository: ReviewRepository):
        self.repository = repository

    def list_reviews(
        self,
        coffee_shop_id: Optional[str],
        viewer: Optional[Subject] = None,
    ) -> list[StoredReview]:
        if not coffee_shop_id or not coffee_shop_id.strip():
            raise InvalidInputError("coffeeShopId required")

        coffee_shop_id = coffee_shop_id.strip()
        _check_shop_id_length(coffee_shop_id)

        return self.repository.list_for_shop(
            coffee_shop_id,
            viewer_id=viewer.subject_id if viewer else None,
        )

    def create_review(
        self,
        coffee_shop_id: Optional[str],
        subject: Optional[Subject],
        content: Optional[str],
        rating: Optional[int],
    ) -> StoredReview:
        """
        Publish a review.

        Raises:
            UnauthenticatedError: No session.
            VerificationRequiredError: Session is not World ID verified.
            InvalidInputError: Missing or over-long shop, bad content length, rating out of range.
        """
        if subject is None:
            raise UnauthenticatedError()
        if not subject.verified:
            raise VerificationRequiredError()

        coffee_shop_id = (coffee_shop_id or "").strip()
        if not coffee_shop_id or content is None or rating is None:
            raise InvalidInputError("coffeeShopId, content, and rating are required")
        _check_shop_id_length(coffee_shop_id)

        content = content.strip()
        if len(content) < MIN_CONTENT_LENGTH:
            raise InvalidInputError(
                f"Review content must be at least {MIN_CONTENT_LENGTH} characters"
            )
        if len(content) > MAX_CONTENT_LENGTH:
            raise InvalidInputError(
                f"Review content must be at most {MAX_CONTENT_LENGTH} characters"
            )
        if not 1 <= rating <= 5:
            raise InvalidInputError("Rating must be between 1 and 5")

        review = self.repository.create(
            coffee_shop_id=coffee_shop_id,
            user_id=subject.subject_id,
            user_name=subject.name or "Anonymous User",
            content=content,
            rating=rating,
        )
        logger.info(f"Review {review.id} added for shop {coffee_shop_id}")
        return review

    def vote(
        self,
        review_id: Optional[str],
        subject: Optional[Subject],
        vote_type: Optional[str],
    ) -> VoteTally:
        """
        Cast or change a vote.

        Raises:
            UnauthenticatedError: No session.
            InvalidInputError: Missing review id or unknown vote type.
            NotFoundError: Review does not exist.
        """
        if subject is None:
            raise UnauthenticatedError()
        if not review_id or not vote_type:
            raise InvalidInputError("reviewId and voteType are required")

        try:
            vote = VoteType(vote_type)
        except ValueError:
            raise InvalidInputError("Invalid vote type", detail="voteType must be 'up' or 'down'")

        if not self.repository.exists(review_id):
            raise NotFoundError("Review", review_id)

        return self.repository.upsert_vote(review_id, subject.subject_id, vote.value)
