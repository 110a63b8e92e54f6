"""
World ID Verification

One verification client with interchangeable strategies, chosen once at
startup:
- WorldcoinCloudVerifier: Developer Portal verify endpoint (real proofs)
- SimulatedVerifier: development stand-in that accepts mock proofs

Both MiniKit (`{"payload": {...}}`) and IDKit (flat) request bodies are
normalized into a single WorldIDProof before verification.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

import httpx
from loguru import logger

from coffeeworld.exceptions import ExternalServiceError, InvalidInputError


DEFAULT_VERIFY_URL = "https://developer.worldcoin.org/api/v1/verify"

# Proofs shorter than this can not be real zero-knowledge proofs
MOCK_PROOF_MAX_LENGTH = 50


class VerificationLevel(str, Enum):
    ORB = "orb"
    DEVICE = "device"


@dataclass(frozen=True)
class WorldIDProof:
    """Proof material returned by the World ID widget."""

    merkle_root: str
    nullifier_hash: str
    proof: str
    verification_level: str = VerificationLevel.ORB.value

    @classmethod
    def from_payload(cls, body: dict[str, Any]) -> "WorldIDProof":
        """
        Build from either request shape.

        Raises:
            InvalidInputError: Required fields missing.
        """
        if isinstance(body.get("payload"), dict):
            body = body["payload"]

        merkle_root = body.get("merkle_root")
        nullifier_hash = body.get("nullifier_hash")
        proof = body.get("proof")

        if not merkle_root or not nullifier_hash or not proof:
            raise InvalidInputError("Missing required verification parameters")

        return cls(
            merkle_root=str(merkle_root),
            nullifier_hash=str(nullifier_hash),
            proof=str(proof),
            verification_level=str(body.get("verification_level") or VerificationLevel.ORB.value),
        )

    def to_request(self) -> dict:
        return {
            "merkle_root": self.merkle_root,
            "nullifier_hash": self.nullifier_hash,
            "proof": self.proof,
            "verification_level": self.verification_level,
        }

    @property
    def looks_mocked(self) -> bool:
        return "mock" in self.proof or len(self.proof) < MOCK_PROOF_MAX_LENGTH


@dataclass
class VerificationResult:
    success: bool
    nullifier_hash: Optional[str] = None
    error: Optional[str] = None
    simulated: bool = False


def derive_subject_id(nullifier_hash: str, app_id: str = "") -> str:
    """
    Stable user identifier for a nullifier.

    Hashed with the app id so stored records never contain the raw
    nullifier.
    """
    digest = hashlib.sha256(f"{app_id}:{nullifier_hash}".encode()).hexdigest()
    return f"wid_{digest[:32]}"


class IdentityVerifier(ABC):
    """Verifies World ID proofs."""

    name: str = "base"

    @abstractmethod
    async def verify(self, proof: WorldIDProof) -> VerificationResult:
        """Check a proof. Rejections are results, not exceptions."""

    async def close(self) -> None:
        pass


class WorldcoinCloudVerifier(IdentityVerifier):
    """
    Cloud verification against the Worldcoin Developer Portal.

    HTTP 200 means the proof is valid; any other status is a rejection.
    """

    name = "worldcoin"

    def __init__(
        self,
        app_id: str,
        action: Optional[str] = None,
        verify_url: str = DEFAULT_VERIFY_URL,
        timeout: float = 10.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        if not app_id:
            raise ValueError("WorldcoinCloudVerifier requires an app id")
        self.app_id = app_id
        self.action = action
        self.verify_url = verify_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    @property
    def endpoint(self) -> str:
        app_id = self.app_id if self.app_id.startswith("app_") else f"app_{self.app_id}"
        return f"{self.verify_url}/{app_id}"

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout)
        return self._client

    async def verify(self, proof: WorldIDProof) -> VerificationResult:
        payload = proof.to_request()
        if self.action:
            payload["action"] = self.action

        client = await self._get_client()
        try:
            response = await client.post(self.endpoint, json=payload)
        except httpx.HTTPError as e:
            logger.error(f"World ID verification request failed: {e}")
            raise ExternalServiceError("World ID", detail="Verification service unreachable") from e

        if response.status_code == 200:
            return VerificationResult(success=True, nullifier_hash=proof.nullifier_hash)

        try:
            body = response.json()
            reason = body.get("detail") or body.get("code") or "Invalid verification proof"
        except ValueError:
            reason = "Invalid verification proof"

        logger.warning(f"World ID proof rejected ({response.status_code}): {reason}")
        return VerificationResult(success=False, error=str(reason))

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class SimulatedVerifier(IdentityVerifier):
    """Accepts proofs that look mocked. Development and tests only."""

    name = "simulated"

    async def verify(self, proof: WorldIDProof) -> VerificationResult:
        if proof.looks_mocked:
            logger.info("Simulated World ID verification: auto-approving mock proof")
            return VerificationResult(
                success=True,
                nullifier_hash=proof.nullifier_hash,
                simulated=True,
            )
        return VerificationResult(
            success=False,
            error="Simulated verifier only accepts mock proofs",
            simulated=True,
        )


def create_verifier(
    mode: str,
    app_id: Optional[str] = None,
    action: Optional[str] = None,
    verify_url: str = DEFAULT_VERIFY_URL,
    environment: str = "development",
) -> IdentityVerifier:
    """
    Select the verification strategy.

    Args:
        mode: "worldcoin", "simulated" or "auto" (worldcoin when an app id
            is configured, simulated otherwise)
        app_id: Worldcoin app id
        action: Incognito action name bound to the proofs
        verify_url: Developer Portal verify base URL
        environment: Deployment environment; production never simulates
    """
    mode = (mode or "auto").lower()
    if mode == "auto":
        mode = "worldcoin" if app_id else "simulated"

    if mode == "simulated":
        if environment == "production":
            raise ValueError("Simulated World ID verification is not allowed in production")
        logger.warning("Using simulated World ID verification")
        return SimulatedVerifier()

    if mode == "worldcoin":
        return WorldcoinCloudVerifier(app_id=app_id or "", action=action, verify_url=verify_url)

    raise ValueError(f"Unknown verifier mode: {mode}")
