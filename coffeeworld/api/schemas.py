"""
API Schemas for Coffee World

Pydantic models for request validation and response serialization:
- Check-in and crowd status models
- Coffee shop models
- Review and vote models
- Auth models

Design Decisions:
1. camelCase on the wire, snake_case in Python (alias generator)
2. Required-ness of domain inputs is enforced by the services, so that
   auth errors take precedence over input errors
3. Separate Request/Response: Clear distinction between inputs and outputs
"""

from datetime import datetime
from typing import Optional, Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from coffeeworld.crowd.classifier import CrowdLevel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


# =============================================================================
# Check-in Schemas
# =============================================================================

class CheckInCreate(CamelModel):
    """Check-in request."""

    location_id: Optional[str] = None

    model_config = ConfigDict(
        json_schema_extra={"example": {"locationId": "1"}}
    )


class CheckInResponse(CamelModel):
    """A single check-in."""

    id: str
    subject_id: str
    location_id: str
    occurred_at: datetime


class CrowdStatusResponse(CamelModel):
    """Live occupancy for a shop."""

    location_id: str
    current_count: int = Field(..., ge=0)
    level: CrowdLevel
    check_ins: list[CheckInResponse] = Field(default_factory=list)
    last_updated: Optional[datetime] = None


class CheckInCreatedResponse(CamelModel):
    """Result of a successful check-in."""

    check_in: CheckInResponse
    current_count: int = Field(..., ge=0)
    level: CrowdLevel


# =============================================================================
# Coffee Shop Schemas
# =============================================================================

class CoffeeShopResponse(CamelModel):
    """Coffee shop with its live crowd level."""

    id: str
    name: str
    address: str
    image: str
    rating: float
    review_count: int
    current_count: int = 0
    crowd_level: CrowdLevel = CrowdLevel.LOW


class CoffeeShopListResponse(CamelModel):
    shops: list[CoffeeShopResponse]
    total: int


# =============================================================================
# Review Schemas
# =============================================================================

class ReviewCreate(CamelModel):
    """Review creation request."""

    coffee_shop_id: Optional[str] = None
    content: Optional[str] = None
    rating: Optional[int] = None

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "coffeeShopId": "3",
                "content": "Beautiful latte art and a quiet corner to work.",
                "rating": 5,
            }
        }
    )


class ReviewResponse(CamelModel):
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


class ReviewListResponse(CamelModel):
    reviews: list[ReviewResponse]


class ReviewCreatedResponse(CamelModel):
    review: ReviewResponse


class VoteCreate(CamelModel):
    review_id: Optional[str] = None
    vote_type: Optional[str] = None


class VoteResponse(CamelModel):
    review_id: str
    upvotes: int
    downvotes: int
    user_vote: Optional[str] = None


# =============================================================================
# Auth Schemas
# =============================================================================

class DevLoginRequest(CamelModel):
    """Development sign-in (disabled in production)."""

    username: Optional[str] = Field(None, max_length=100)
    verified: bool = True


class SessionResponse(CamelModel):
    """Issued session token."""

    access_token: str
    token_type: str = "bearer"
    subject_id: str
    name: Optional[str] = None
    is_verified: bool


class CurrentUserResponse(CamelModel):
    subject_id: str
    name: Optional[str] = None
    is_authenticated: bool = True
    is_verified: bool


# =============================================================================
# System Schemas
# =============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""

    error: str
    code: str
    detail: Optional[str] = None
    timestamp: datetime


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    components: dict[str, Any] = Field(default_factory=dict)
