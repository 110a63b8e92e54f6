"""
Unit tests for World ID verification and sessions.
"""

from datetime import timedelta

import httpx
import pytest

from coffeeworld.exceptions import ExternalServiceError, InvalidInputError
from coffeeworld.identity.verifier import (
    SimulatedVerifier,
    WorldcoinCloudVerifier,
    WorldIDProof,
    create_verifier,
    derive_subject_id,
)
from coffeeworld.security import SessionManager

REAL_PROOF = "0x" + "ab" * 128

FLAT_BODY = {
    "merkle_root": "0x1234",
    "nullifier_hash": "0xnullifier",
    "proof": REAL_PROOF,
    "verification_level": "orb",
}


def mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestWorldIDProof:

    def test_flat_shape(self):
        proof = WorldIDProof.from_payload(FLAT_BODY)

        assert proof.nullifier_hash == "0xnullifier"
        assert proof.verification_level == "orb"

    def test_minikit_envelope(self):
        proof = WorldIDProof.from_payload({"payload": {**FLAT_BODY, "verification_level": "device"}})

        assert proof.merkle_root == "0x1234"
        assert proof.verification_level == "device"

    def test_default_level(self):
        body = {k: v for k, v in FLAT_BODY.items() if k != "verification_level"}

        assert WorldIDProof.from_payload(body).verification_level == "orb"

    def test_missing_fields(self):
        with pytest.raises(InvalidInputError, match="Missing required verification parameters"):
            WorldIDProof.from_payload({"merkle_root": "0x1"})

    def test_mock_detection(self):
        assert WorldIDProof("r", "n", "mock-proof").looks_mocked
        assert WorldIDProof("r", "n", "0xshort").looks_mocked
        assert not WorldIDProof("r", "n", REAL_PROOF).looks_mocked


class TestSubjectId:

    def test_stable_and_opaque(self):
        first = derive_subject_id("0xnullifier", "app_staging_1")

        assert first == derive_subject_id("0xnullifier", "app_staging_1")
        assert first.startswith("wid_")
        assert "0xnullifier" not in first

    def test_scoped_by_app(self):
        assert derive_subject_id("0xn", "app_a") != derive_subject_id("0xn", "app_b")


class TestWorldcoinCloudVerifier:

    @pytest.mark.asyncio
    async def test_success(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["body"] = request.read()
            return httpx.Response(200, json={"success": True})

        verifier = WorldcoinCloudVerifier(
            app_id="staging_123",
            action="check-in",
            client=mock_client(handler),
        )
        result = await verifier.verify(WorldIDProof.from_payload(FLAT_BODY))
        await verifier.close()

        assert result.success
        assert result.nullifier_hash == "0xnullifier"
        assert seen["url"].endswith("/api/v1/verify/app_staging_123")
        assert b'"action":"check-in"' in seen["body"].replace(b" ", b"")

    @pytest.mark.asyncio
    async def test_rejection(self):
        def handler(request):
            return httpx.Response(400, json={"code": "invalid_proof", "detail": "Proof is invalid"})

        verifier = WorldcoinCloudVerifier(app_id="app_123", client=mock_client(handler))
        result = await verifier.verify(WorldIDProof.from_payload(FLAT_BODY))

        assert not result.success
        assert result.error == "Proof is invalid"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused")

        verifier = WorldcoinCloudVerifier(app_id="app_123", client=mock_client(handler))

        with pytest.raises(ExternalServiceError):
            await verifier.verify(WorldIDProof.from_payload(FLAT_BODY))

    def test_requires_app_id(self):
        with pytest.raises(ValueError):
            WorldcoinCloudVerifier(app_id="")


class TestSimulatedVerifier:

    @pytest.mark.asyncio
    async def test_accepts_mock_proof(self):
        result = await SimulatedVerifier().verify(WorldIDProof("r", "n", "mock-proof"))

        assert result.success
        assert result.simulated

    @pytest.mark.asyncio
    async def test_rejects_real_looking_proof(self):
        result = await SimulatedVerifier().verify(WorldIDProof.from_payload(FLAT_BODY))

        assert not result.success


class TestCreateVerifier:

    def test_auto_selection(self):
        assert create_verifier("auto").name == "simulated"
        assert create_verifier("auto", app_id="app_1").name == "worldcoin"

    def test_no_simulation_in_production(self):
        with pytest.raises(ValueError):
            create_verifier("simulated", environment="production")
        with pytest.raises(ValueError):
            create_verifier("auto", environment="production")

    def test_unknown_mode(self):
        with pytest.raises(ValueError):
            create_verifier("carrier-pigeon")


class TestSessionManager:

    @pytest.fixture
    def sessions(self):
        return SessionManager(secret_key="test-secret")

    def test_round_trip(self, sessions):
        token = sessions.issue("wid_abc", name="World ID User", verified=True)
        subject = sessions.decode(token)

        assert subject.subject_id == "wid_abc"
        assert subject.verified
        assert subject.name == "World ID User"

    def test_unverified_session(self, sessions):
        subject = sessions.decode(sessions.issue("dev_x"))

        assert not subject.verified

    def test_invalid_tokens(self, sessions):
        assert sessions.decode(None) is None
        assert sessions.decode("not-a-jwt") is None
        other = SessionManager(secret_key="other-secret").issue("wid_abc")
        assert sessions.decode(other) is None

    def test_expired(self, sessions):
        token = sessions.issue("wid_abc", expires_delta=timedelta(seconds=-1))

        assert sessions.decode(token) is None

    def test_revoke(self, sessions):
        token = sessions.issue("wid_abc", verified=True)

        assert sessions.revoke(token)
        assert sessions.decode(token) is None
        assert not sessions.revoke(token)
