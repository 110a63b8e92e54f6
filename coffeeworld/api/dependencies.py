"""
Dependency injection for FastAPI routes.

Provides injectable dependencies for:
- Configuration
- Service instances (check-ins, reviews, identity, sessions)
- Authentication
"""

import os
import threading
from datetime import timedelta
from functools import lru_cache
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from loguru import logger


# =============================================================================
# Configuration
# =============================================================================

@dataclass
class Settings:
    """Application settings loaded from environment."""

    # Database
    database_url: str = "sqlite:///./coffeeworld.db"
    database_echo: bool = False

    # Check-ins
    checkin_store: str = "database"  # or "memory"
    checkin_validity_minutes: int = 90
    checkin_rate_limit_minutes: int = 120
    seed_demo_data: bool = True

    # World ID
    worldcoin_app_id: Optional[str] = None
    worldcoin_action: Optional[str] = None
    worldcoin_verify_url: str = "https://developer.worldcoin.org/api/v1/verify"
    verifier_mode: str = "auto"  # auto, worldcoin, simulated

    # Sessions
    session_secret: str = "coffeeworld-dev-secret"
    session_ttl_minutes: int = 30 * 24 * 60
    dev_login_enabled: bool = True

    # Request throttling
    rate_limit_enabled: bool = True
    rate_limit_requests_per_minute: int = 60

    # Environment
    environment: str = "development"
    debug: bool = True

    @property
    def validity_window(self) -> timedelta:
        return timedelta(minutes=self.checkin_validity_minutes)

    @property
    def rate_limit_window(self) -> timedelta:
        return timedelta(minutes=self.checkin_rate_limit_minutes)

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @classmethod
    def from_env(cls) -> "Settings":
        """Load settings from environment variables."""
        environment = os.getenv("COFFEEWORLD_ENV", cls.environment)
        production = environment == "production"
        return cls(
            database_url=os.getenv("DATABASE_URL", cls.database_url),
            database_echo=os.getenv("DATABASE_ECHO", "false").lower() == "true",
            checkin_store=os.getenv("CHECKIN_STORE", cls.checkin_store),
            checkin_validity_minutes=int(os.getenv("CHECKIN_VALIDITY_MINUTES", cls.checkin_validity_minutes)),
            checkin_rate_limit_minutes=int(os.getenv("CHECKIN_RATE_LIMIT_MINUTES", cls.checkin_rate_limit_minutes)),
            seed_demo_data=os.getenv("SEED_DEMO_DATA", "false" if production else "true").lower() == "true",
            worldcoin_app_id=os.getenv("WORLDCOIN_APP_ID"),
            worldcoin_action=os.getenv("WORLDCOIN_ACTION"),
            worldcoin_verify_url=os.getenv("WORLDCOIN_VERIFY_URL", cls.worldcoin_verify_url),
            verifier_mode=os.getenv("VERIFIER_MODE", cls.verifier_mode),
            session_secret=os.getenv("SESSION_SECRET", cls.session_secret),
            session_ttl_minutes=int(os.getenv("SESSION_TTL_MINUTES", cls.session_ttl_minutes)),
            dev_login_enabled=os.getenv("DEV_LOGIN_ENABLED", "false" if production else "true").lower() == "true",
            rate_limit_enabled=os.getenv("RATE_LIMIT_ENABLED", "true").lower() == "true",
            rate_limit_requests_per_minute=int(os.getenv("RATE_LIMIT_RPM", cls.rate_limit_requests_per_minute)),
            environment=environment,
            debug=os.getenv("DEBUG", "false" if production else "true").lower() == "true",
        )


@lru_cache()
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings.from_env()


# =============================================================================
# Service Container (Lazy Loading)
# =============================================================================

class ServiceContainer:
    """
    Container for lazy-loaded service instances.

    Stores share one engine so in-memory SQLite databases are shared too.
    Construction is serialized; sync routes resolve services from the
    threadpool and each store must exist exactly once.
    """

    def __init__(self, settings: Settings, clock=None):
        self.settings = settings
        self.clock = clock
        self._engine = None
        self._checkin_store = None
        self._checkin_service = None
        self._review_repository = None
        self._review_service = None
        self._verifier = None
        self._sessions = None
        self._lock = threading.RLock()

    @property
    def engine(self):
        """Get shared database engine."""
        with self._lock:
            if self._engine is None:
                from ..storage.models import make_engine
                self._engine = make_engine(
                    self.settings.database_url,
                    echo=self.settings.database_echo,
                )
            return self._engine

    @property
    def checkin_store(self):
        """Get check-in store instance."""
        with self._lock:
            if self._checkin_store is None:
                if self.settings.checkin_store == "memory":
                    from ..crowd.store import InMemoryCheckInStore
                    self._checkin_store = InMemoryCheckInStore(
                        validity_window=self.settings.validity_window,
                        rate_limit_window=self.settings.rate_limit_window,
                    )
                else:
                    from ..storage.checkin_repository import SqlCheckInStore
                    self._checkin_store = SqlCheckInStore(
                        engine=self.engine,
                        validity_window=self.settings.validity_window,
                        rate_limit_window=self.settings.rate_limit_window,
                    )
            return self._checkin_store

    @property
    def checkin_service(self):
        """Get check-in service instance."""
        with self._lock:
            if self._checkin_service is None:
                from ..crowd.service import CheckInService, system_clock
                self._checkin_service = CheckInService(
                    store=self.checkin_store,
                    clock=self.clock or system_clock,
                )
            return self._checkin_service

    @property
    def review_repository(self):
        """Get review repository instance."""
        with self._lock:
            if self._review_repository is None:
                from ..storage.review_repository import ReviewRepository
                self._review_repository = ReviewRepository(engine=self.engine)
            return self._review_repository

    @property
    def review_service(self):
        """Get review service instance."""
        with self._lock:
            if self._review_service is None:
                from ..reviews.service import ReviewService
                self._review_service = ReviewService(self.review_repository)
            return self._review_service

    @property
    def verifier(self):
        """Get World ID verifier (strategy fixed at first use)."""
        with self._lock:
            if self._verifier is None:
                from ..identity.verifier import create_verifier
                self._verifier = create_verifier(
                    mode=self.settings.verifier_mode,
                    app_id=self.settings.worldcoin_app_id,
                    action=self.settings.worldcoin_action,
                    verify_url=self.settings.worldcoin_verify_url,
                    environment=self.settings.environment,
                )
                logger.info(f"World ID verifier: {self._verifier.name}")
            return self._verifier

    @property
    def sessions(self):
        """Get session manager instance."""
        with self._lock:
            if self._sessions is None:
                from ..security import SessionManager
                self._sessions = SessionManager(
                    secret_key=self.settings.session_secret,
                    expire_minutes=self.settings.session_ttl_minutes,
                )
            return self._sessions

    def seed_demo_data(self) -> None:
        """Load demo occupancy and reviews."""
        from ..catalog import seed_demo_checkins, seed_demo_reviews
        now = self.checkin_service._now()
        seed_demo_checkins(self.checkin_store, now)
        seed_demo_reviews(self.review_repository)

    async def close(self) -> None:
        if self._verifier is not None:
            await self._verifier.close()
        if self._engine is not None:
            self._engine.dispose()


# Global service container
_service_container: Optional[ServiceContainer] = None


def init_services(settings: Settings) -> ServiceContainer:
    """Initialize service container."""
    global _service_container
    _service_container = ServiceContainer(settings)
    return _service_container


def get_service_container() -> ServiceContainer:
    """Get service container instance."""
    if _service_container is None:
        # Auto-initialize with default settings if not explicitly initialized
        return init_services(get_settings())
    return _service_container


# =============================================================================
# Individual Service Dependencies
# =============================================================================

def get_checkin_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for check-in service."""
    return container.checkin_service


def get_review_service(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for review service."""
    return container.review_service


def get_verifier(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for World ID verifier."""
    return container.verifier


def get_sessions(
    container: ServiceContainer = Depends(get_service_container),
):
    """Dependency for session manager."""
    return container.sessions


# =============================================================================
# Authentication Dependencies
# =============================================================================

# auto_error=False: missing sessions are reported by the services, in order
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/dev", auto_error=False)


async def get_session_token(
    token: Optional[str] = Depends(oauth2_scheme),
) -> Optional[str]:
    """Bearer token from the Authorization header, if any."""
    return token


async def get_current_subject(
    token: Optional[str] = Depends(get_session_token),
    container: ServiceContainer = Depends(get_service_container),
):
    """
    Subject of the current session.

    Returns None for missing, invalid, expired or revoked tokens. Routes
    pass the result to services, which decide whether a session is required.
    """
    return container.sessions.decode(token)


# =============================================================================
# Request Context Dependencies
# =============================================================================

async def get_client_ip(request: Request) -> str:
    """Extract client IP from request, considering proxies."""
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip

    if request.client:
        return request.client.host

    return "unknown"
