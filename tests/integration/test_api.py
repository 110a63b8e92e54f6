"""
Integration tests for API endpoints.
"""

from dataclasses import replace

import pytest
from httpx import AsyncClient, ASGITransport

from coffeeworld.api.dependencies import ServiceContainer, get_service_container
from coffeeworld.api.main import create_app

pytestmark = pytest.mark.asyncio

MOCK_WORLD_ID_PAYLOAD = {
    "payload": {
        "merkle_root": "0xmock-root",
        "nullifier_hash": "0xmock-nullifier",
        "proof": "mock-proof",
        "verification_level": "orb",
    }
}


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    async def test_health_check(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["verifier"] == "simulated"

    async def test_root(self, client):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["name"] == "Coffee World"


class TestCrowdStatus:
    """GET /api/v1/checkins"""

    async def test_missing_location(self, client):
        response = await client.get("/api/v1/checkins")

        assert response.status_code == 400
        body = response.json()
        assert body["error"] == "locationId required"
        assert body["code"] == "INVALID_INPUT"
        assert "timestamp" in body

    async def test_empty_shop(self, client):
        response = await client.get("/api/v1/checkins", params={"locationId": "6"})

        assert response.status_code == 200
        data = response.json()
        assert data["currentCount"] == 0
        assert data["level"] == "Low"
        assert data["checkIns"] == []

    async def test_demo_occupancy(self, client, container):
        container.seed_demo_data()

        high = (await client.get("/api/v1/checkins", params={"locationId": "3"})).json()
        very_high = (await client.get("/api/v1/checkins", params={"locationId": "5"})).json()

        assert (high["currentCount"], high["level"]) == (8, "High")
        assert (very_high["currentCount"], very_high["level"]) == (12, "Very High")
        assert len(high["checkIns"]) == 8


class TestCheckIn:
    """POST /api/v1/checkins"""

    async def test_success(self, client, verified_headers):
        response = await client.post(
            "/api/v1/checkins", json={"locationId": "1"}, headers=verified_headers
        )

        assert response.status_code == 201
        data = response.json()
        assert data["checkIn"]["locationId"] == "1"
        assert data["checkIn"]["subjectId"] == "wid_alice"
        assert data["currentCount"] == 1
        assert data["level"] == "Low"

        status = (await client.get("/api/v1/checkins", params={"locationId": "1"})).json()
        assert status["currentCount"] == 1

    async def test_not_signed_in(self, client):
        response = await client.post("/api/v1/checkins", json={"locationId": "1"})

        assert response.status_code == 401
        assert response.json()["error"] == "must be signed in"

    async def test_invalid_token(self, client):
        response = await client.post(
            "/api/v1/checkins",
            json={"locationId": "1"},
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401

    async def test_not_verified(self, client, unverified_headers):
        response = await client.post(
            "/api/v1/checkins", json={"locationId": "1"}, headers=unverified_headers
        )

        assert response.status_code == 403
        assert response.json()["error"] == "verification required"

    async def test_auth_checked_before_body(self, client, unverified_headers):
        assert (await client.post("/api/v1/checkins")).status_code == 401
        assert (await client.post("/api/v1/checkins", headers=unverified_headers)).status_code == 403

    async def test_missing_location(self, client, verified_headers):
        response = await client.post("/api/v1/checkins", json={}, headers=verified_headers)

        assert response.status_code == 400
        assert response.json()["error"] == "locationId required"

    async def test_overlong_location(self, client, verified_headers):
        response = await client.post(
            "/api/v1/checkins", json={"locationId": "x" * 65}, headers=verified_headers
        )

        assert response.status_code == 400
        assert response.json()["code"] == "INVALID_INPUT"
        status = (await client.get("/api/v1/checkins", params={"locationId": "x" * 64})).json()
        assert status["currentCount"] == 0

    async def test_rate_limited(self, client, container, verified_headers):
        await client.post("/api/v1/checkins", json={"locationId": "1"}, headers=verified_headers)

        response = await client.post(
            "/api/v1/checkins", json={"locationId": "1"}, headers=verified_headers
        )
        assert response.status_code == 429
        assert response.json()["error"] == "wait 120 minutes"
        assert response.headers["Retry-After"] == "7200"

        container.clock.advance(minutes=10)
        response = await client.post(
            "/api/v1/checkins", json={"locationId": "1"}, headers=verified_headers
        )
        assert response.status_code == 429
        assert response.json()["error"] == "wait 110 minutes"

        container.clock.advance(minutes=111)
        response = await client.post(
            "/api/v1/checkins", json={"locationId": "1"}, headers=verified_headers
        )
        assert response.status_code == 201

    async def test_other_shop_not_limited(self, client, verified_headers):
        await client.post("/api/v1/checkins", json={"locationId": "1"}, headers=verified_headers)
        response = await client.post(
            "/api/v1/checkins", json={"locationId": "2"}, headers=verified_headers
        )

        assert response.status_code == 201


class TestShops:
    """GET /api/v1/shops"""

    async def test_list(self, client):
        response = await client.get("/api/v1/shops")

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 6
        assert {shop["id"] for shop in data["shops"]} == {"1", "2", "3", "4", "5", "6"}
        assert all(shop["crowdLevel"] == "Low" for shop in data["shops"])

    async def test_get_with_crowd(self, client, container):
        container.seed_demo_data()

        response = await client.get("/api/v1/shops/3")

        assert response.status_code == 200
        data = response.json()
        assert data["name"] == "Morning Ritual"
        assert data["reviewCount"] == 64
        assert data["currentCount"] == 8
        assert data["crowdLevel"] == "High"

    async def test_unknown_shop(self, client):
        response = await client.get("/api/v1/shops/99")

        assert response.status_code == 404
        assert response.json()["code"] == "NOT_FOUND"


class TestReviews:
    """Review and vote endpoints."""

    async def create_review(self, client, headers, shop_id="4"):
        return await client.post(
            "/api/v1/reviews",
            json={"coffeeShopId": shop_id, "content": "Great cortado, slow service", "rating": 4},
            headers=headers,
        )

    async def test_create_and_list(self, client, verified_headers):
        response = await self.create_review(client, verified_headers)

        assert response.status_code == 201
        review = response.json()["review"]
        assert review["userName"] == "Alice"
        assert review["rating"] == 4

        listed = (await client.get("/api/v1/reviews", params={"coffeeShopId": "4"})).json()
        assert [r["id"] for r in listed["reviews"]] == [review["id"]]

    async def test_list_requires_shop(self, client):
        response = await client.get("/api/v1/reviews")

        assert response.status_code == 400

    async def test_create_requires_verification(self, client, unverified_headers):
        assert (await self.create_review(client, {})).status_code == 401
        assert (await self.create_review(client, unverified_headers)).status_code == 403

    async def test_create_validates_content(self, client, verified_headers):
        response = await client.post(
            "/api/v1/reviews",
            json={"coffeeShopId": "4", "content": "meh", "rating": 2},
            headers=verified_headers,
        )

        assert response.status_code == 400

    async def test_vote(self, client, verified_headers, unverified_headers):
        review_id = (await self.create_review(client, verified_headers)).json()["review"]["id"]

        response = await client.post(
            "/api/v1/reviews/vote",
            json={"reviewId": review_id, "voteType": "up"},
            headers=unverified_headers,
        )

        assert response.status_code == 200
        assert response.json() == {
            "reviewId": review_id,
            "upvotes": 1,
            "downvotes": 0,
            "userVote": "up",
        }

        listed = (await client.get(
            "/api/v1/reviews", params={"coffeeShopId": "4"}, headers=unverified_headers
        )).json()
        assert listed["reviews"][0]["userVote"] == "up"

    async def test_vote_errors(self, client, verified_headers):
        unauthenticated = await client.post(
            "/api/v1/reviews/vote", json={"reviewId": "x", "voteType": "up"}
        )
        bad_type = await client.post(
            "/api/v1/reviews/vote",
            json={"reviewId": "x", "voteType": "meh"},
            headers=verified_headers,
        )
        unknown = await client.post(
            "/api/v1/reviews/vote",
            json={"reviewId": "missing", "voteType": "down"},
            headers=verified_headers,
        )

        assert unauthenticated.status_code == 401
        assert bad_type.status_code == 400
        assert unknown.status_code == 404


class TestAuth:
    """Sign-in, session lookup and sign-out."""

    async def test_world_id_sign_in(self, client):
        response = await client.post("/api/v1/auth/worldcoin", json=MOCK_WORLD_ID_PAYLOAD)

        assert response.status_code == 200
        session = response.json()
        assert session["isVerified"] is True
        assert session["subjectId"].startswith("wid_")

        me = await client.get(
            "/api/v1/auth/me",
            headers={"Authorization": f"Bearer {session['accessToken']}"},
        )
        assert me.status_code == 200
        assert me.json()["subjectId"] == session["subjectId"]
        assert me.json()["isVerified"] is True

    async def test_world_id_session_can_check_in(self, client):
        session = (await client.post("/api/v1/auth/worldcoin", json=MOCK_WORLD_ID_PAYLOAD)).json()

        response = await client.post(
            "/api/v1/checkins",
            json={"locationId": "2"},
            headers={"Authorization": f"Bearer {session['accessToken']}"},
        )

        assert response.status_code == 201

    async def test_world_id_missing_fields(self, client):
        response = await client.post("/api/v1/auth/worldcoin", json={"payload": {}})

        assert response.status_code == 400
        assert response.json()["error"] == "Missing required verification parameters"

    async def test_world_id_rejected_proof(self, client):
        payload = {
            "merkle_root": "0xroot",
            "nullifier_hash": "0xnullifier",
            "proof": "0x" + "cd" * 128,
        }

        response = await client.post("/api/v1/auth/worldcoin", json=payload)

        assert response.status_code == 400
        assert response.json()["code"] == "VERIFICATION_FAILED"

    async def test_dev_sign_in_unverified(self, client):
        session = (await client.post(
            "/api/v1/auth/dev", json={"username": "tester", "verified": False}
        )).json()
        headers = {"Authorization": f"Bearer {session['accessToken']}"}

        me = await client.get("/api/v1/auth/me", headers=headers)
        check_in = await client.post("/api/v1/checkins", json={"locationId": "1"}, headers=headers)

        assert me.json()["name"] == "tester"
        assert me.json()["isVerified"] is False
        assert check_in.status_code == 403

    async def test_me_requires_session(self, client):
        response = await client.get("/api/v1/auth/me")

        assert response.status_code == 401

    async def test_sign_out(self, client, verified_headers):
        response = await client.post("/api/v1/auth/signout", headers=verified_headers)
        assert response.status_code == 204

        assert (await client.get("/api/v1/auth/me", headers=verified_headers)).status_code == 401
        assert (await client.post("/api/v1/auth/signout", headers=verified_headers)).status_code == 401

    async def test_dev_sign_in_disabled(self, container):
        settings = replace(container.settings, dev_login_enabled=False)
        locked = ServiceContainer(settings, clock=container.clock)
        application = create_app(settings)
        application.dependency_overrides[get_service_container] = lambda: locked

        transport = ASGITransport(app=application)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            response = await ac.post("/api/v1/auth/dev", json={"username": "x"})

        assert response.status_code == 404
        await locked.close()
