"""
Authentication API Routes for Coffee World.

Handles:
- World ID sign-in (proof verification, verified session)
- Development sign-in
- Current session lookup and sign-out
"""

import hashlib
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, status
from loguru import logger

from coffeeworld.api.dependencies import (
    ServiceContainer,
    get_client_ip,
    get_current_subject,
    get_service_container,
    get_session_token,
)
from coffeeworld.api.schemas import (
    CurrentUserResponse,
    DevLoginRequest,
    ErrorResponse,
    SessionResponse,
)
from coffeeworld.crowd.service import Subject
from coffeeworld.exceptions import UnauthenticatedError, VerificationFailedError
from coffeeworld.identity.verifier import WorldIDProof, derive_subject_id

router = APIRouter(prefix="/auth", tags=["auth"])

WORLD_ID_DISPLAY_NAME = "World ID User"


@router.post(
    "/worldcoin",
    response_model=SessionResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Missing or invalid proof"},
        503: {"model": ErrorResponse, "description": "Verification service unreachable"},
    },
)
async def sign_in_with_world_id(
    body: Optional[dict[str, Any]] = Body(None),
    container: ServiceContainer = Depends(get_service_container),
    client_ip: str = Depends(get_client_ip),
):
    """
    Verify a World ID proof and open a verified session.

    Accepts the MiniKit envelope (`{"payload": {...}}`) or the flat
    IDKit result.
    """
    proof = WorldIDProof.from_payload(body or {})
    result = await container.verifier.verify(proof)

    if not result.success:
        logger.warning(f"World ID sign-in rejected from {client_ip}: {result.error}")
        raise VerificationFailedError(detail=result.error)

    subject_id = derive_subject_id(
        result.nullifier_hash or proof.nullifier_hash,
        container.settings.worldcoin_app_id or "",
    )
    token = container.sessions.issue(subject_id, name=WORLD_ID_DISPLAY_NAME, verified=True)
    logger.info(f"World ID session opened for {subject_id}")

    return SessionResponse(
        access_token=token,
        subject_id=subject_id,
        name=WORLD_ID_DISPLAY_NAME,
        is_verified=True,
    )


@router.post("/dev", response_model=SessionResponse)
async def dev_sign_in(
    request: Optional[DevLoginRequest] = None,
    container: ServiceContainer = Depends(get_service_container),
):
    """Sign in without World ID. Not available in production."""
    settings = container.settings
    if not settings.dev_login_enabled or settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")

    request = request or DevLoginRequest()
    name = (request.username or "").strip() or "Developer"
    subject_id = f"dev_{hashlib.sha256(name.encode()).hexdigest()[:24]}"

    token = container.sessions.issue(subject_id, name=name, verified=request.verified)
    return SessionResponse(
        access_token=token,
        subject_id=subject_id,
        name=name,
        is_verified=request.verified,
    )


@router.get(
    "/me",
    response_model=CurrentUserResponse,
    responses={401: {"model": ErrorResponse, "description": "Not signed in"}},
)
async def read_current_user(
    subject: Optional[Subject] = Depends(get_current_subject),
):
    if subject is None:
        raise UnauthenticatedError()
    return CurrentUserResponse(
        subject_id=subject.subject_id,
        name=subject.name,
        is_verified=subject.verified,
    )


@router.post(
    "/signout",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={401: {"model": ErrorResponse, "description": "Not signed in"}},
)
async def sign_out(
    token: Optional[str] = Depends(get_session_token),
    container: ServiceContainer = Depends(get_service_container),
) -> None:
    if not token or not container.sessions.revoke(token):
        raise UnauthenticatedError()
