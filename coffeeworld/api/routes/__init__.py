"""
API Routes for Coffee World

Route modules:
- checkins: Live crowd status and check-ins
- shops: Coffee shop catalog with crowd levels
- reviews: Reviews and votes
- auth: World ID sign-in and sessions
"""

from coffeeworld.api.routes.checkins import router as checkins_router
from coffeeworld.api.routes.shops import router as shops_router
from coffeeworld.api.routes.reviews import router as reviews_router
from coffeeworld.api.routes.auth import router as auth_router

__all__ = [
    "checkins_router",
    "shops_router",
    "reviews_router",
    "auth_router",
]
