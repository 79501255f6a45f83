"""End-to-end tests for the HTTP surface and the admission pipeline."""

from datetime import timedelta

import pytest
from fastapi.testclient import TestClient

from app.main import create_application
from app.shared.infrastructure.storage import InMemoryImageStorage
from tests.conftest import TEST_PASSWORD, bearer, make_settings

MISSING_ID = "ffffffffffffffffffffffff"
PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64

FARM = {"name": "Green Acres", "location": "Nashik, Maharashtra", "area": 12.5, "crops": ["wheat", "onion"]}
POST = {
    "title": "Best time to sow wheat",
    "content": "Sow after the first winter rains for a better yield.",
    "category": "crops",
    "tags": ["wheat", "rabi"],
}


def pipeline_of(client):
    return client.app.state.pipeline


def create_farm(client, token, **overrides):
    response = client.post("/api/v1/farms", json={**FARM, **overrides}, headers=bearer(token))
    assert response.status_code == 201, response.text
    return response.json()["data"]


def create_crop(client, token, farm_id):
    response = client.post(
        "/api/v1/crops",
        json={
            "name": "Wheat",
            "variety": "HD-2967",
            "farmId": farm_id,
            "plantingDate": "2024-11-01",
            "expectedHarvestDate": "2025-03-15",
            "area": {"value": 5, "unit": "acres"},
        },
        headers=bearer(token),
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]


class TestHealth:
    """Test health endpoints and common response headers."""

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "healthy"
        assert body["service"] == "krishivedha-api"

    def test_common_headers(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert "X-Response-Time" in response.headers

    def test_detailed_health(self, client):
        response = client.get("/health/detailed")
        assert response.status_code == 200
        body = response.json()
        assert body["rate_limiting"]["tiers"]["auth"]["limit"] == 5
        assert body["retry_policies"]["file_upload"]["max_attempts"] == 2

    def test_openapi_tags(self, client):
        tags = [tag["name"] for tag in client.app.openapi()["tags"]]
        assert tags[:4] == ["Authentication", "Farms", "Crops", "Community"]
        assert "Health Check" in tags

    def test_detailed_health_ip_allowlist(self, document_store):
        app = create_application(settings=make_settings(IP_ALLOWLIST="10.1.1.1"), document_store=document_store)
        with TestClient(app) as client:
            response = client.get("/health/detailed")
        assert response.status_code == 403
        assert response.json()["message"] == "Access denied from this IP address"


class TestErrorEnvelope:
    """Test rendering of failures."""

    def test_unknown_route(self, client):
        response = client.get("/api/v1/tractors")
        assert response.status_code == 404
        body = response.json()
        assert body["success"] is False
        assert body["error"]["type"] == "NOT_FOUND_ERROR"

    def test_unexpected_exception_is_generic(self, app):
        async def boom():
            raise RuntimeError("database password is hunter2")

        app.add_api_route("/boom", boom)
        with TestClient(app) as client:
            response = client.get("/boom")

        assert response.status_code == 500
        body = response.json()
        assert body["error"]["type"] == "SERVER_ERROR"
        assert "hunter2" not in response.text
        assert response.headers["X-Error-Code"] == "SVR_001"

    def test_malformed_json(self, client, register):
        _, token = register()
        response = client.post(
            "/api/v1/farms",
            content=b"{not json",
            headers={**bearer(token), "Content-Type": "application/json"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Request body is not valid JSON"


class TestAuthEndpoints:
    """Test registration, login and profile."""

    def test_register(self, client):
        response = client.post("/api/v1/auth/register", json={
            "name": "Ramesh Kumar",
            "email": "Ramesh@KrishiVedha.in",
            "password": TEST_PASSWORD,
            "location": "Nashik",
            "role": "admin",
        })
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["email"] == "ramesh@krishivedha.in"
        assert "passwordHash" not in data["user"]
        assert "role" not in data["user"]
        assert data["token"]

    def test_register_collects_all_errors(self, client):
        response = client.post("/api/v1/auth/register", json={"name": "R", "email": "nope", "password": "1"})
        assert response.status_code == 400
        body = response.json()
        assert body["message"] == "Validation failed"
        assert body["error"]["type"] == "VALIDATION_ERROR"
        assert {error["field"] for error in body["errors"]} == {"name", "email", "password"}

    def test_register_strips_scripts(self, client):
        response = client.post("/api/v1/auth/register", json={
            "name": "Ramesh<script>alert(1)</script>",
            "email": "ramesh@krishivedha.in",
            "password": TEST_PASSWORD,
        })
        assert response.status_code == 201
        assert response.json()["data"]["user"]["name"] == "Ramesh"

    def test_duplicate_email(self, client, register):
        register()
        response = client.post("/api/v1/auth/register", json={
            "name": "Another Ramesh", "email": "ramesh@krishivedha.in", "password": TEST_PASSWORD,
        })
        assert response.status_code == 409
        assert response.json()["error"]["type"] == "CONFLICT_ERROR"
        assert response.json()["message"] == "User already exists with this email"

    def test_login(self, client, register):
        user, _ = register()
        response = client.post("/api/v1/auth/login", json={"email": "ramesh@krishivedha.in", "password": TEST_PASSWORD})
        assert response.status_code == 200
        assert response.json()["data"]["user"]["_id"] == user["_id"]

    def test_login_wrong_password(self, client, register):
        register()
        response = client.post("/api/v1/auth/login", json={"email": "ramesh@krishivedha.in", "password": "wrong-one"})
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid email or password"
        assert response.headers["WWW-Authenticate"] == "Bearer"

    def test_failed_logins_are_rate_limited(self, client, register):
        register()
        credentials = {"email": "ramesh@krishivedha.in", "password": "wrong-one"}
        statuses = [client.post("/api/v1/auth/login", json=credentials).status_code for _ in range(5)]
        assert statuses == [401] * 5

        response = client.post("/api/v1/auth/login", json=credentials)
        assert response.status_code == 429
        body = response.json()
        assert body["message"] == "Too many authentication attempts, please try again later."
        assert body["error"]["type"] == "RATE_LIMIT_ERROR"
        assert body["retryAfter"] == 900
        assert response.headers["Retry-After"] == "900"
        assert response.headers["RateLimit-Remaining"] == "0"

    def test_successful_logins_are_not_counted(self, client, register):
        register()
        credentials = {"email": "ramesh@krishivedha.in", "password": TEST_PASSWORD}
        statuses = [client.post("/api/v1/auth/login", json=credentials).status_code for _ in range(8)]
        assert statuses == [200] * 8

    def test_failed_login_reports_remaining_quota(self, client, register):
        register()
        response = client.post("/api/v1/auth/login", json={"email": "ramesh@krishivedha.in", "password": "wrong-one"})
        assert response.status_code == 401
        assert response.headers["RateLimit-Limit"] == "5"
        assert response.headers["RateLimit-Remaining"] == "4"
        assert response.headers["RateLimit-Reset"] == "900"

    def test_malformed_login_bodies_are_rate_limited(self, client):
        headers = {"Content-Type": "application/json"}
        statuses = [
            client.post("/api/v1/auth/login", content=b"{not json", headers=headers).status_code
            for _ in range(6)
        ]
        assert statuses == [400] * 5 + [429]

    def test_rate_limit_window_rollover(self, client, register, clock):
        register()
        credentials = {"email": "ramesh@krishivedha.in", "password": "wrong-one"}
        for _ in range(6):
            client.post("/api/v1/auth/login", json=credentials)

        clock.advance(15 * 60 * 1000)
        assert client.post("/api/v1/auth/login", json=credentials).status_code == 401

    def test_password_reset(self, client, register):
        register()
        for email in ("ramesh@krishivedha.in", "nobody@krishivedha.in", "ramesh@krishivedha.in"):
            response = client.post("/api/v1/auth/reset-password", json={"email": email})
            assert response.status_code == 200
        assert client.post("/api/v1/auth/reset-password", json={"email": "x@krishivedha.in"}).status_code == 429

    def test_profile(self, client, register):
        user, token = register()
        response = client.get("/api/v1/auth/profile", headers=bearer(token))
        assert response.status_code == 200
        assert response.json()["data"]["_id"] == user["_id"]

        response = client.put("/api/v1/auth/profile", json={"location": "Pune"}, headers=bearer(token))
        assert response.json()["data"]["location"] == "Pune"
        assert response.json()["data"]["name"] == "Ramesh Kumar"

    def test_profile_requires_token(self, client):
        response = client.get("/api/v1/auth/profile")
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_NO_TOKEN"

    def test_invalid_token(self, client):
        response = client.get("/api/v1/auth/profile", headers=bearer("abc.def.ghi"))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_INVALID_TOKEN"

    def test_expired_token(self, client, register):
        user, _ = register()
        token = pipeline_of(client).authenticator.tokens.create_access_token(
            user["_id"], expires_delta=timedelta(minutes=-1)
        )
        response = client.get("/api/v1/auth/profile", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["error"]["code"] == "AUTH_TOKEN_EXPIRED"

    def test_token_for_deleted_user(self, client):
        token = pipeline_of(client).authenticator.tokens.create_access_token(MISSING_ID)
        response = client.get("/api/v1/auth/profile", headers=bearer(token))
        assert response.json()["error"]["code"] == "AUTH_USER_NOT_FOUND"


class TestFarms:
    """Test farm routes and ownership checks."""

    def test_create_farm(self, client, register):
        user, token = register()
        farm = create_farm(client, token, owner="someone-else")
        assert farm["owner"] == user["_id"]
        assert farm["crops"] == ["wheat", "onion"]

    def test_success_carries_rate_limit_headers(self, client, register):
        _, token = register()
        response = client.get("/api/v1/farms", headers=bearer(token))
        assert response.headers["RateLimit-Limit"] == "100"
        assert "RateLimit-Remaining" in response.headers

    def test_list_only_own_farms(self, client, register):
        _, ramesh = register()
        _, sita = register(name="Sita Devi", email="sita@krishivedha.in")
        create_farm(client, ramesh)
        create_farm(client, ramesh, name="River Field")
        create_farm(client, sita, name="Hill Orchard")

        response = client.get("/api/v1/farms?limit=1&page=2", headers=bearer(ramesh))
        body = response.json()
        assert body["pagination"] == {"page": 2, "limit": 1, "total": 2, "pages": 2}
        assert body["data"][0]["name"] == "Green Acres"

    def test_get_farm_marks_owner(self, client, register):
        _, token = register()
        farm = create_farm(client, token)
        assert client.get(f"/api/v1/farms/{farm['_id']}").json()["data"]["isOwner"] is False
        assert client.get(f"/api/v1/farms/{farm['_id']}", headers=bearer(token)).json()["data"]["isOwner"] is True

    def test_owner_can_update(self, client, register):
        _, token = register()
        farm = create_farm(client, token)
        response = client.put(f"/api/v1/farms/{farm['_id']}", json={"area": 15}, headers=bearer(token))
        assert response.status_code == 200
        assert response.json()["data"]["area"] == 15
        assert response.json()["data"]["name"] == "Green Acres"

    def test_other_user_cannot_update(self, client, register):
        _, ramesh = register()
        _, sita = register(name="Sita Devi", email="sita@krishivedha.in")
        farm = create_farm(client, ramesh)

        response = client.put(f"/api/v1/farms/{farm['_id']}", json={"name": "Mine now"}, headers=bearer(sita))
        assert response.status_code == 403
        body = response.json()
        assert body["message"] == "Access denied: You can only modify your own resources"
        assert body["error"]["type"] == "AUTHORIZATION_ERROR"

    def test_not_found_carries_rate_limit_headers(self, client, register):
        _, token = register()
        response = client.put(f"/api/v1/farms/{MISSING_ID}", json={"name": "Renamed farm"}, headers=bearer(token))
        assert response.status_code == 404
        assert response.headers["RateLimit-Limit"] == "100"
        assert response.headers["RateLimit-Remaining"] == "98"

    def test_missing_farm_is_not_found(self, client, register):
        _, token = register()
        response = client.delete(f"/api/v1/farms/{MISSING_ID}", headers=bearer(token))
        assert response.status_code == 404
        assert response.json()["message"] == "Farm not found"

    def test_malformed_id(self, client, register):
        _, token = register()
        response = client.delete("/api/v1/farms/not-an-id", headers=bearer(token))
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid id format"

    def test_update_requires_authentication(self, client, register):
        _, token = register()
        farm = create_farm(client, token)
        response = client.put(f"/api/v1/farms/{farm['_id']}", json={"area": 1})
        assert response.status_code == 401

    def test_delete(self, client, register):
        _, token = register()
        farm = create_farm(client, token)
        assert client.delete(f"/api/v1/farms/{farm['_id']}", headers=bearer(token)).status_code == 200
        assert client.get(f"/api/v1/farms/{farm['_id']}").status_code == 404


class TestCrops:
    """Test crop routes and image uploads."""

    def test_create_crop(self, client, register):
        user, token = register()
        farm = create_farm(client, token)
        crop = create_crop(client, token, farm["_id"])
        assert crop["owner"] == user["_id"]
        assert crop["status"] == "planted"
        assert crop["plantingDate"] == "2024-11-01"
        assert crop["area"] == {"value": 5.0, "unit": "acres"}

    def test_cannot_plant_on_other_users_farm(self, client, register):
        _, ramesh = register()
        _, sita = register(name="Sita Devi", email="sita@krishivedha.in")
        farm = create_farm(client, ramesh)
        response = client.post(
            "/api/v1/crops",
            json={"name": "Rice", "farmId": farm["_id"], "plantingDate": "2024-07-01"},
            headers=bearer(sita),
        )
        assert response.status_code == 403

    def test_unknown_farm(self, client, register):
        _, token = register()
        response = client.post(
            "/api/v1/crops",
            json={"name": "Rice", "farmId": MISSING_ID, "plantingDate": "2024-07-01"},
            headers=bearer(token),
        )
        assert response.status_code == 404
        assert response.json()["message"] == "Farm not found"

    def test_update_growth_stage(self, client, register):
        _, token = register()
        crop = create_crop(client, token, create_farm(client, token)["_id"])
        response = client.put(
            f"/api/v1/crops/{crop['_id']}",
            json={"status": "growing", "growthStage": "flowering"},
            headers=bearer(token),
        )
        assert response.status_code == 200
        assert response.json()["data"]["growthStage"] == "flowering"

    def test_upload_images(self, client, register, sleeps):
        _, token = register()
        crop = create_crop(client, token, create_farm(client, token)["_id"])

        response = client.post(
            f"/api/v1/crops/{crop['_id']}/images",
            files=[("files", ("leaf.png", PNG_BYTES, "image/png"))],
            headers=bearer(token),
        )
        assert response.status_code == 201, response.text
        images = response.json()["data"]
        assert images[0]["contentType"] == "image/png"
        assert images[0]["size"] == len(PNG_BYTES)
        assert sleeps.calls == []

        stored = client.get(f"/api/v1/crops/{crop['_id']}").json()["data"]
        assert [image["id"] for image in stored["images"]] == [images[0]["id"]]

    def test_upload_rejects_bad_files(self, client, register):
        _, token = register()
        crop = create_crop(client, token, create_farm(client, token)["_id"])
        response = client.post(
            f"/api/v1/crops/{crop['_id']}/images",
            files=[("files", ("notes.pdf", b"%PDF-1.4", "application/pdf"))],
            headers=bearer(token),
        )
        assert response.status_code == 400
        assert response.json()["message"] == "File validation failed"
        assert response.json()["errors"][0]["field"] == "files.1"

    def test_upload_rejects_oversized_file(self, client, register):
        _, token = register()
        crop = create_crop(client, token, create_farm(client, token)["_id"])
        oversized = PNG_BYTES + b"\x00" * (10 * 1024 * 1024)
        response = client.post(
            f"/api/v1/crops/{crop['_id']}/images",
            files=[("files", ("field.png", oversized, "image/png"))],
            headers=bearer(token),
        )
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "File 1: Size exceeds 10MB limit"

    def test_upload_requires_files(self, client, register):
        _, token = register()
        crop = create_crop(client, token, create_farm(client, token)["_id"])
        response = client.post(f"/api/v1/crops/{crop['_id']}/images", headers=bearer(token))
        assert response.status_code == 400
        assert response.json()["errors"][0]["message"] == "At least one file is required"

    def test_upload_to_other_users_crop(self, client, register):
        _, ramesh = register()
        _, sita = register(name="Sita Devi", email="sita@krishivedha.in")
        crop = create_crop(client, ramesh, create_farm(client, ramesh)["_id"])
        response = client.post(
            f"/api/v1/crops/{crop['_id']}/images",
            files=[("files", ("leaf.png", PNG_BYTES, "image/png"))],
            headers=bearer(sita),
        )
        assert response.status_code == 403


class FlakyImageStorage(InMemoryImageStorage):
    """Image storage whose first save fails with a dropped connection."""

    def __init__(self):
        super().__init__()
        self.attempts = 0

    async def save(self, folder, filename, content_type, content):
        self.attempts += 1
        if self.attempts == 1:
            raise ConnectionResetError("connection reset by storage")
        return await super().save(folder, filename, content_type, content)


class TestUploadRetry:
    """Test that storage failures are retried with the file upload policy."""

    @pytest.fixture
    def image_storage(self):
        return FlakyImageStorage()

    def test_transient_storage_failure_is_retried(self, client, register, sleeps, image_storage):
        _, token = register()
        crop = create_crop(client, token, create_farm(client, token)["_id"])
        response = client.post(
            f"/api/v1/crops/{crop['_id']}/images",
            files=[("files", ("leaf.png", PNG_BYTES, "image/png"))],
            headers=bearer(token),
        )
        assert response.status_code == 201
        assert image_storage.attempts == 2
        assert len(sleeps.calls) == 1
        assert 5.0 <= sleeps.calls[0] <= 5.5


class TestCommunity:
    """Test community posts and comments."""

    def test_create_post_sanitized(self, client, register):
        user, token = register()
        response = client.post(
            "/api/v1/community/posts",
            json={**POST, "title": "Best wheat<script>alert(1)</script> tips"},
            headers=bearer(token),
        )
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["title"] == "Best wheat tips"
        assert data["author"] == {"_id": user["_id"], "name": "Ramesh Kumar"}
        assert data["isAuthor"] is True

    def test_list_with_category(self, client, register):
        _, token = register()
        client.post("/api/v1/community/posts", json=POST, headers=bearer(token))
        client.post("/api/v1/community/posts", json={**POST, "category": "pests"}, headers=bearer(token))

        body = client.get("/api/v1/community/posts?category=pests").json()
        assert body["pagination"]["total"] == 1
        assert body["data"][0]["category"] == "pests"
        assert body["data"][0]["isAuthor"] is False

    def test_list_query_validation(self, client):
        response = client.get("/api/v1/community/posts?limit=500")
        assert response.status_code == 400
        assert response.json()["errors"][0]["field"] == "limit"

    def test_community_rate_limit(self, client, register):
        _, token = register()
        statuses = [
            client.post("/api/v1/community/posts", json=POST, headers=bearer(token)).status_code
            for _ in range(11)
        ]
        assert statuses == [201] * 10 + [429]

    def test_comments(self, client, register):
        _, ramesh = register()
        _, sita = register(name="Sita Devi", email="sita@krishivedha.in")
        post = client.post("/api/v1/community/posts", json=POST, headers=bearer(ramesh)).json()["data"]

        response = client.post(
            f"/api/v1/community/posts/{post['_id']}/comments",
            json={"content": "Thanks, this helped!"},
            headers=bearer(sita),
        )
        assert response.status_code == 201
        assert response.json()["data"]["author"]["name"] == "Sita Devi"

        missing = client.post(
            f"/api/v1/community/posts/{MISSING_ID}/comments",
            json={"content": "Hello"},
            headers=bearer(sita),
        )
        assert missing.status_code == 404
        assert missing.json()["message"] == "Post not found"

    def test_only_author_can_delete(self, client, register):
        _, ramesh = register()
        _, sita = register(name="Sita Devi", email="sita@krishivedha.in")
        post = client.post("/api/v1/community/posts", json=POST, headers=bearer(ramesh)).json()["data"]

        assert client.delete(f"/api/v1/community/posts/{post['_id']}", headers=bearer(sita)).status_code == 403
        assert client.delete(f"/api/v1/community/posts/{post['_id']}", headers=bearer(ramesh)).status_code == 200

    def test_author_can_update(self, client, register):
        _, token = register()
        post = client.post("/api/v1/community/posts", json=POST, headers=bearer(token)).json()["data"]
        response = client.put(
            f"/api/v1/community/posts/{post['_id']}",
            json={"tags": ["Irrigation"]},
            headers=bearer(token),
        )
        assert response.json()["data"]["tags"] == ["irrigation"]
        assert response.json()["data"]["title"] == POST["title"]


class TestRateLimitConfiguration:
    """Test configured rate limiting behaviour."""

    def test_general_tier_override(self, document_store):
        settings = make_settings(RATE_LIMIT_OVERRIDES={"general": {"limit": 2}})
        with TestClient(create_application(settings=settings, document_store=document_store)) as client:
            statuses = [client.get("/api/v1/community/posts").status_code for _ in range(3)]
            last = client.get("/api/v1/community/posts")
        assert statuses == [200, 200, 429]
        assert last.json()["message"] == "Too many API requests, please try again later."

    def test_rate_limiting_disabled(self, document_store):
        settings = make_settings(RATE_LIMIT_ENABLED=False, RATE_LIMIT_OVERRIDES={"general": {"limit": 1}})
        with TestClient(create_application(settings=settings, document_store=document_store)) as client:
            responses = [client.get("/api/v1/community/posts") for _ in range(3)]
        assert [r.status_code for r in responses] == [200] * 3
        assert "RateLimit-Limit" not in responses[0].headers

    def test_forwarded_for_keys_by_client(self, document_store):
        settings = make_settings(TRUST_FORWARDED_FOR=True, RATE_LIMIT_OVERRIDES={"general": {"limit": 1}})
        with TestClient(create_application(settings=settings, document_store=document_store)) as client:
            first = client.get("/api/v1/community/posts", headers={"X-Forwarded-For": "203.0.113.5"})
            second = client.get("/api/v1/community/posts", headers={"X-Forwarded-For": "203.0.113.6, 10.0.0.1"})
            repeat = client.get("/api/v1/community/posts", headers={"X-Forwarded-For": "203.0.113.5"})
        assert (first.status_code, second.status_code, repeat.status_code) == (200, 200, 429)


class TestPersistence:
    """Test the SQL document store and local photo storage behind the API."""

    @pytest.fixture
    def sql_settings(self, tmp_path):
        return make_settings(
            DOCUMENT_STORE_BACKEND="sql",
            DATABASE_URL=f"sqlite+aiosqlite:///{tmp_path / 'krishivedha.db'}",
            IMAGE_STORAGE_BACKEND="local",
            UPLOAD_DIR=str(tmp_path / "uploads"),
        )

    def test_accounts_and_farms_survive_restart(self, sql_settings):
        with TestClient(create_application(settings=sql_settings)) as client:
            response = client.post("/api/v1/auth/register", json={
                "name": "Ramesh Kumar", "email": "ramesh@krishivedha.in", "password": TEST_PASSWORD,
            })
            assert response.status_code == 201
            farm = create_farm(client, response.json()["data"]["token"])

        with TestClient(create_application(settings=sql_settings)) as client:
            response = client.post(
                "/api/v1/auth/login", json={"email": "ramesh@krishivedha.in", "password": TEST_PASSWORD}
            )
            assert response.status_code == 200
            token = response.json()["data"]["token"]

            farms = client.get("/api/v1/farms", headers=bearer(token)).json()["data"]
            assert [item["_id"] for item in farms] == [farm["_id"]]

            health = client.get("/health/detailed").json()
            assert health["database"]["status"] == "healthy"
            assert health["database"]["backend"] == "sqlite"

    def test_uploaded_photo_is_served(self, sql_settings):
        with TestClient(create_application(settings=sql_settings)) as client:
            response = client.post("/api/v1/auth/register", json={
                "name": "Ramesh Kumar", "email": "ramesh@krishivedha.in", "password": TEST_PASSWORD,
            })
            token = response.json()["data"]["token"]
            crop = create_crop(client, token, create_farm(client, token)["_id"])

            response = client.post(
                f"/api/v1/crops/{crop['_id']}/images",
                files=[("files", ("leaf.png", PNG_BYTES, "image/png"))],
                headers=bearer(token),
            )
            assert response.status_code == 201, response.text
            image = response.json()["data"][0]

            served = client.get(image["url"])
            assert served.status_code == 200
            assert served.content == PNG_BYTES
