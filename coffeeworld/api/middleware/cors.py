"""
CORS Configuration

The mini-app front end runs on a different origin (Next.js dev server
locally, World App webview in production).
"""

import os
from dataclasses import dataclass, field, replace
from typing import List, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware


@dataclass
class CORSConfig:
    """CORS configuration settings."""

    allowed_origins: List[str] = field(default_factory=list)

    allow_credentials: bool = True

    allowed_methods: List[str] = field(default_factory=lambda: [
        "GET", "POST", "OPTIONS"
    ])

    allowed_headers: List[str] = field(default_factory=lambda: [
        "Accept",
        "Content-Type",
        "Authorization",
        "X-Request-ID",
    ])

    expose_headers: List[str] = field(default_factory=lambda: [
        "X-Request-ID",
        "X-Rate-Limit-Remaining",
        "Retry-After",
    ])

    # Max age for preflight cache (in seconds)
    max_age: int = 3600

    # Allow all origins (development only!)
    allow_all_origins: bool = False


CORS_CONFIGS = {
    "development": CORSConfig(
        allowed_origins=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        allow_all_origins=True,
    ),
    "staging": CORSConfig(
        allowed_origins=[
            "https://staging.coffeeworld.example.com",
        ],
    ),
    "production": CORSConfig(
        allowed_origins=[
            "https://coffeeworld.example.com",
            "https://app.coffeeworld.example.com",
        ],
        max_age=7200,
    ),
}


def get_cors_config(environment: Optional[str] = None) -> CORSConfig:
    """Get CORS configuration for the environment, plus CORS_ALLOWED_ORIGINS."""
    if environment is None:
        environment = os.getenv("COFFEEWORLD_ENV", "development")

    base = CORS_CONFIGS.get(environment, CORS_CONFIGS["development"])
    config = replace(base, allowed_origins=list(base.allowed_origins))

    extra_origins = os.getenv("CORS_ALLOWED_ORIGINS", "")
    config.allowed_origins.extend(
        origin.strip() for origin in extra_origins.split(",") if origin.strip()
    )
    return config


def setup_cors(app: FastAPI, config: Optional[CORSConfig] = None) -> None:
    """Configure CORS middleware for the FastAPI application."""
    config = config or get_cors_config()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if config.allow_all_origins else config.allowed_origins,
        # credentials can not be combined with a wildcard origin
        allow_credentials=config.allow_credentials and not config.allow_all_origins,
        allow_methods=config.allowed_methods,
        allow_headers=config.allowed_headers,
        expose_headers=config.expose_headers,
        max_age=config.max_age,
    )
