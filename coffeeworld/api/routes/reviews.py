"""
Review API Routes

Anyone can read reviews; writing one needs a verified session, voting
needs any session.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query, status

from coffeeworld.api.dependencies import get_current_subject, get_review_service
from coffeeworld.api.schemas import (
    ErrorResponse,
    ReviewCreate,
    ReviewCreatedResponse,
    ReviewListResponse,
    ReviewResponse,
    VoteCreate,
    VoteResponse,
)
from coffeeworld.crowd.service import Subject
from coffeeworld.reviews.service import ReviewService


router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get(
    "",
    response_model=ReviewListResponse,
    responses={400: {"model": ErrorResponse, "description": "coffeeShopId missing"}},
)
def list_reviews(
    coffee_shop_id: Optional[str] = Query(None, alias="coffeeShopId"),
    viewer: Optional[Subject] = Depends(get_current_subject),
    service: ReviewService = Depends(get_review_service),
):
    """Reviews for a shop, newest first, with the caller's own votes marked."""
    reviews = service.list_reviews(coffee_shop_id, viewer)
    return ReviewListResponse(
        reviews=[ReviewResponse.model_validate(r) for r in reviews]
    )


@router.post(
    "",
    response_model=ReviewCreatedResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid review"},
        401: {"model": ErrorResponse, "description": "Not signed in"},
        403: {"model": ErrorResponse, "description": "World ID verification required"},
    },
)
def create_review(
    request: Optional[ReviewCreate] = None,
    subject: Optional[Subject] = Depends(get_current_subject),
    service: ReviewService = Depends(get_review_service),
):
    request = request or ReviewCreate()
    review = service.create_review(
        coffee_shop_id=request.coffee_shop_id,
        subject=subject,
        content=request.content,
        rating=request.rating,
    )
    return ReviewCreatedResponse(review=ReviewResponse.model_validate(review))


@router.post(
    "/vote",
    response_model=VoteResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid vote"},
        401: {"model": ErrorResponse, "description": "Not signed in"},
        404: {"model": ErrorResponse, "description": "Unknown review"},
    },
)
def vote_on_review(
    request: Optional[VoteCreate] = None,
    subject: Optional[Subject] = Depends(get_current_subject),
    service: ReviewService = Depends(get_review_service),
):
    """Upvote or downvote a review. Voting again replaces the earlier vote."""
    request = request or VoteCreate()
    tally = service.vote(request.review_id, subject, request.vote_type)
    return VoteResponse.model_validate(tally)
