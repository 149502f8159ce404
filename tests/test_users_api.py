"""
tests/test_users_api.py -- Integration tests for /api/v1/users/*.

These run through the real ASGI stack (routing, multipart parsing, exception
handlers, cookies) with an isolated store and FakeUploader from conftest.
Settings use secure_cookies=False so the TestClient, which talks plain http,
stores and replays the session cookies like a browser would.

Coverage:
  - register: Ann Lee scenario, missing fields, missing avatar, duplicates,
    oversize files, first-file-only, temp directory left empty
  - login: cookies + body tokens, wrong password, unknown user, bad bodies
  - current-user: cookie, Bearer header, missing and invalid tokens
  - refresh-token: rotation via cookie and body, stale token rejected
  - logout: cookies cleared, refresh revoked, requires auth
  - envelope shape for success and error responses
"""

from __future__ import annotations

from fastapi.testclient import TestClient

REGISTER = "/api/v1/users/register"
LOGIN = "/api/v1/users/login"
REFRESH = "/api/v1/users/refresh-token"
LOGOUT = "/api/v1/users/logout"
CURRENT = "/api/v1/users/current-user"

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32

ANN = {"fullName": "Ann Lee", "email": "ann@x.com", "username": "AnnL", "password": "p@ss1"}


def _register(client: TestClient, form: dict | None = None, files=None):
    if files is None:
        files = {"avatar": ("avatar.png", PNG, "image/png")}
    return client.post(REGISTER, data=form if form is not None else ANN, files=files)


def _login(client: TestClient, **body):
    return client.post(LOGIN, json=body or {"username": "annl", "password": "p@ss1"})


def _assert_error(resp, status: int, message: str, code: str) -> dict:
    assert resp.status_code == status
    body = resp.json()
    assert body["statusCode"] == status
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"] == message
    assert body["error"] == code
    return body


# ---------------------------------------------------------------------------
# Register
# ---------------------------------------------------------------------------


class TestRegister:
    def test_ann_lee_scenario(self, client):
        resp = _register(client)
        assert resp.status_code == 201
        body = resp.json()
        assert body["success"] is True
        assert body["statusCode"] == 201
        data = body["data"]
        assert data["username"] == "annl"
        assert data["fullName"] == "Ann Lee"
        assert data["email"] == "ann@x.com"
        assert data["avatar"]
        assert data["coverImage"] == ""
        assert data["_id"]
        assert "password" not in data
        assert "password_hash" not in data
        assert "refreshToken" not in data

    def test_cover_image_is_optional_and_uploaded(self, client, uploader):
        files = [
            ("avatar", ("avatar.png", PNG, "image/png")),
            ("coverImage", ("cover.jpg", PNG, "image/jpeg")),
        ]
        data = _register(client, files=files).json()["data"]
        assert data["coverImage"].endswith(".jpg")
        assert len(uploader.uploaded) == 2

    def test_only_first_file_of_a_field_is_used(self, client, uploader):
        files = [
            ("avatar", ("first.png", PNG, "image/png")),
            ("avatar", ("second.png", PNG, "image/png")),
        ]
        assert _register(client, files=files).status_code == 201
        assert len(uploader.uploaded) == 1

    def test_missing_avatar(self, client):
        _assert_error(_register(client, files={}), 400, "Avatar file is required", "validation_error")

    def test_missing_field_is_named(self, client):
        form = dict(ANN, fullName="")
        body = _assert_error(_register(client, form=form), 400, "fullName is required", "validation_error")
        assert body["errors"] == [{"field": "fullName", "message": "fullName is required"}]

    def test_duplicate_username_in_other_case(self, client):
        assert _register(client).status_code == 201
        form = dict(ANN, username="ANNL", email="other@x.com")
        _assert_error(_register(client, form=form), 409, "User with email or username already exists", "conflict")

    def test_oversize_avatar_rejected(self, client, uploader):
        files = {"avatar": ("huge.png", b"x" * 4096, "image/png")}
        resp = _register(client, files=files)
        _assert_error(resp, 400, "avatar exceeds the upload limit of 1024 bytes", "validation_error")
        assert uploader.uploaded == []

    def test_failed_avatar_upload(self, client, uploader):
        uploader.fail_markers.add(".png")
        _assert_error(_register(client), 400, "Avatar file could not be uploaded", "upload_failed")

    def test_temp_directory_is_left_empty(self, client, settings):
        _register(client)
        _register(client, form=dict(ANN, password=""))
        _register(client, form=dict(ANN, username="other", email="other@x.com"), files={})
        assert list(settings.upload_temp_dir.iterdir()) == []


# ---------------------------------------------------------------------------
# Login
# ---------------------------------------------------------------------------


class TestLogin:
    def test_login_sets_both_cookies_and_returns_tokens(self, client):
        _register(client)
        resp = _login(client)
        assert resp.status_code == 200
        body = resp.json()
        assert body["success"] is True
        assert body["data"]["user"]["username"] == "annl"
        assert "password" not in body["data"]["user"]
        assert body["data"]["accessToken"]
        assert body["data"]["refreshToken"]
        assert resp.cookies.get("accessToken") == body["data"]["accessToken"]
        assert resp.cookies.get("refreshToken") == body["data"]["refreshToken"]
        assert all("HttpOnly" in c for c in resp.headers.get_list("set-cookie"))
        assert resp.headers["Cache-Control"] == "no-store"

    def test_login_by_email(self, client):
        _register(client)
        assert _login(client, email="ann@x.com", password="p@ss1").status_code == 200

    def test_wrong_password(self, client, store):
        _register(client)
        resp = _login(client, username="annl", password="nope")
        _assert_error(resp, 401, "Invalid user credentials", "unauthorized")
        assert store.find_by_username_or_email("annl", None).refresh_token is None

    def test_unknown_user(self, client):
        _assert_error(_login(client, username="ghost", password="p@ss1"), 404, "User does not exist", "not_found")

    def test_no_identifier(self, client):
        _assert_error(_login(client, password="p@ss1"), 400, "username or email is required", "validation_error")

    def test_malformed_body(self, client):
        resp = client.post(LOGIN, json=["not", "an", "object"])
        _assert_error(resp, 400, "Request validation failed", "validation_error")


# ---------------------------------------------------------------------------
# Current user (authorization dependency end-to-end)
# ---------------------------------------------------------------------------


class TestCurrentUser:
    def test_with_cookie(self, client):
        _register(client)
        _login(client)
        resp = client.get(CURRENT)
        assert resp.status_code == 200
        assert resp.json()["data"]["username"] == "annl"

    def test_with_bearer_header(self, client):
        _register(client)
        token = _login(client).json()["data"]["accessToken"]
        client.cookies.clear()
        resp = client.get(CURRENT, headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json()["data"]["email"] == "ann@x.com"

    def test_without_token(self, client):
        _assert_error(client.get(CURRENT), 401, "Unauthorized request", "unauthorized")

    def test_with_invalid_token(self, client):
        resp = client.get(CURRENT, headers={"Authorization": "Bearer not-a-token"})
        _assert_error(resp, 401, "Invalid access token", "unauthorized")


# ---------------------------------------------------------------------------
# Refresh
# ---------------------------------------------------------------------------


class TestRefresh:
    def test_rotation_via_cookie_then_stale_token_rejected(self, client):
        _register(client)
        first = _login(client).json()["data"]["refreshToken"]

        resp = client.post(REFRESH)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["refreshToken"] != first
        assert resp.cookies.get("refreshToken") == data["refreshToken"]
        assert resp.cookies.get("accessToken") == data["accessToken"]

        client.cookies.clear()
        stale = client.post(REFRESH, json={"refreshToken": first})
        _assert_error(stale, 401, "Refresh token is expired or already used", "unauthorized")

        fresh = client.post(REFRESH, json={"refreshToken": data["refreshToken"]})
        assert fresh.status_code == 200

    def test_new_access_token_works(self, client):
        _register(client)
        _login(client)
        access = client.post(REFRESH).json()["data"]["accessToken"]
        client.cookies.clear()
        assert client.get(CURRENT, headers={"Authorization": f"Bearer {access}"}).status_code == 200

    def test_no_token(self, client):
        _assert_error(client.post(REFRESH), 401, "Unauthorized request", "unauthorized")

    def test_garbage_token(self, client):
        resp = client.post(REFRESH, json={"refreshToken": "garbage"})
        _assert_error(resp, 401, "Invalid refresh token", "unauthorized")


# ---------------------------------------------------------------------------
# Logout
# ---------------------------------------------------------------------------


class TestLogout:
    def test_logout_clears_cookies_and_revokes_refresh(self, client, store):
        _register(client)
        refresh_token = _login(client).json()["data"]["refreshToken"]

        resp = client.post(LOGOUT)
        assert resp.status_code == 200
        assert resp.json()["data"] == {}
        cleared = resp.headers.get_list("set-cookie")
        assert any(c.startswith("accessToken=") and "Max-Age=0" in c for c in cleared)
        assert any(c.startswith("refreshToken=") and "Max-Age=0" in c for c in cleared)
        assert store.find_by_username_or_email("annl", None).refresh_token is None

        client.cookies.clear()
        again = client.post(REFRESH, json={"refreshToken": refresh_token})
        _assert_error(again, 401, "Refresh token is expired or already used", "unauthorized")

    def test_logout_requires_auth(self, client):
        _assert_error(client.post(LOGOUT), 401, "Unauthorized request", "unauthorized")


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/users/nope")
    assert resp.status_code == 404
    assert resp.json()["success"] is False
    assert resp.json()["error"] == "http_404"
