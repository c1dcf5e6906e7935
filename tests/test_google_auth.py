"""
Tests for the Google login endpoints.

These tests drive the full flow through the app:
    GET /auth/google/login → GET /auth/google/callback → client redirect
with Google replaced by FakeGoogleAuthClient (see conftest.py).
"""

import logging
from urllib.parse import parse_qs, urlparse

import httpx

from huddle.core.config import settings
from huddle.core.state import STATE_COOKIE_NAME
from huddle.deps import get_auth_client, get_credential_verifier
from huddle.environments.base import AuthenticationError
from huddle.environments.google import GoogleAuthClient
from huddle.main import app


def _start_login(client) -> str:
    """Hit the login endpoint and return the state sent to Google."""
    response = client.get("/auth/google/login", follow_redirects=False)
    assert response.status_code == 307
    return parse_qs(urlparse(response.headers["location"]).query)["state"][0]


def _callback(client, **params):
    return client.get("/auth/google/callback", params=params, follow_redirects=False)


def _state_cookie_cleared(response) -> bool:
    return any(
        header.startswith(f"{STATE_COOKIE_NAME}=") and "Max-Age=0" in header
        for header in response.headers.get_list("set-cookie")
    )


def _token_from(response) -> str:
    location = urlparse(response.headers["location"])
    assert f"{location.scheme}://{location.netloc}" == settings.CLIENT_ORIGIN
    assert location.path == "/auth/callback"
    return parse_qs(location.query)["token"][0]


class TestGoogleLogin:
    """Tests for GET /auth/google/login."""

    def test_redirects_to_google(self, client):
        """Should redirect to the consent screen with our client id."""
        response = client.get("/auth/google/login", follow_redirects=False)

        assert response.status_code == 307
        location = urlparse(response.headers["location"])
        params = parse_qs(location.query)
        assert location.netloc == "accounts.google.com"
        assert params["client_id"] == [settings.GOOGLE_CLIENT_ID]
        assert params["scope"] == ["openid profile email"]

    def test_state_matches_cookie(self, client):
        """Should send Google the same state it stores in the cookie."""
        response = client.get("/auth/google/login", follow_redirects=False)

        state = parse_qs(urlparse(response.headers["location"]).query)["state"][0]
        assert response.cookies[STATE_COOKIE_NAME] == state

        header = response.headers["set-cookie"]
        assert "HttpOnly" in header
        assert "Path=/auth/google" in header
        assert "Max-Age=600" in header

    def test_fresh_state_each_time(self, client):
        """Should never reuse a state between logins."""
        assert _start_login(client) != _start_login(client)


class TestGoogleCallbackSuccess:
    """Tests for a callback that completes the login."""

    def test_first_login_creates_account(self, client, count_users, fake_google):
        """Should create the account and hand the client a working credential."""
        state = _start_login(client)

        response = _callback(client, code="4/0Ab-code", state=state)

        assert response.status_code == 307
        identity = get_credential_verifier().verify(_token_from(response))
        assert identity.email == "ada@example.com"
        assert identity.username == "Ada Lovelace"
        assert count_users() == 1
        assert fake_google.exchanged_codes == ["4/0Ab-code"]
        assert fake_google.profile_requests == ["fake-google-access-token"]

    def test_returning_login_reuses_account(self, client, count_users, google_user):
        """Should sign the existing account in without creating another."""
        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        identity = get_credential_verifier().verify(_token_from(response))
        assert identity.user_id == google_user.id
        assert count_users() == 1

    def test_two_logins_one_account(self, client, count_users):
        """Should resolve repeated logins to the same account."""
        first = _callback(client, code="code-1", state=_start_login(client))
        second = _callback(client, code="code-2", state=_start_login(client))

        verifier = get_credential_verifier()
        assert verifier.verify(_token_from(first)).user_id == verifier.verify(_token_from(second)).user_id
        assert count_users() == 1

    def test_credential_works_on_api(self, client):
        """Should give a credential /users/me accepts."""
        response = _callback(client, code="4/0Ab-code", state=_start_login(client))
        token = _token_from(response)

        me = client.get("/users/me", headers={"Authorization": f"Bearer {token}"})

        assert me.status_code == 200
        assert me.json()["email"] == "ada@example.com"
        assert me.json()["provider"] == "google"

    def test_state_cookie_cleared(self, client):
        """Should expire the state cookie on success."""
        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert _state_cookie_cleared(response)

    def test_state_not_replayable(self, client, fake_google):
        """Should reject a second callback with an already used state."""
        state = _start_login(client)
        _callback(client, code="4/0Ab-code", state=state)

        replay = _callback(client, code="4/0Ab-code", state=state)

        assert replay.status_code == 400
        assert replay.text == "Invalid state"
        assert fake_google.exchanged_codes == ["4/0Ab-code"]

    def test_credential_not_logged(self, client, caplog):
        """Should never write the credential to the logs."""
        caplog.set_level(logging.DEBUG, logger="huddle")

        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert _token_from(response) not in caplog.text
        assert "fake-google-access-token" not in caplog.text


class TestGoogleCallbackRejected:
    """Tests for callbacks that must not sign anyone in."""

    def test_tampered_state(self, client, count_users, fake_google):
        """Should reject before any call to Google."""
        _start_login(client)

        response = _callback(client, code="4/0Ab-code", state="forged-state")

        assert response.status_code == 400
        assert response.text == "Invalid state"
        assert fake_google.network_calls == 0
        assert count_users() == 0
        assert _state_cookie_cleared(response)

    def test_missing_cookie(self, client, fake_google):
        """Should reject a callback that never went through login."""
        response = _callback(client, code="4/0Ab-code", state="some-state")

        assert response.status_code == 400
        assert response.text == "Invalid state"
        assert fake_google.network_calls == 0

    def test_missing_state(self, client, fake_google):
        """Should reject a callback without ?state=."""
        _start_login(client)

        response = _callback(client, code="4/0Ab-code")

        assert response.status_code == 400
        assert fake_google.network_calls == 0

    def test_missing_code(self, client, fake_google):
        """Should reject a valid state without a code."""
        response = _callback(client, state=_start_login(client))

        assert response.status_code == 400
        assert response.text == "No authorization code"
        assert fake_google.network_calls == 0
        assert _state_cookie_cleared(response)

    def test_user_denied_consent(self, client, fake_google):
        """Should reject when Google reports an error."""
        response = _callback(client, error="access_denied", state=_start_login(client))

        assert response.status_code == 400
        assert response.text == "Authorization denied"
        assert fake_google.network_calls == 0

    def test_exchange_failure(self, client, count_users, fake_google, provider_unavailable):
        """Should answer 502 when Google rejects the code."""
        fake_google.exchange_error = provider_unavailable

        response = _callback(client, code="used-code", state=_start_login(client))

        assert response.status_code == 502
        assert response.text == "Failed to exchange token"
        assert fake_google.profile_requests == []
        assert count_users() == 0
        assert _state_cookie_cleared(response)

    def test_profile_failure(self, client, count_users, fake_google):
        """Should answer 502 when the profile cannot be fetched."""
        fake_google.profile_error = AuthenticationError("Google API returned status: 401", 401)

        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert response.status_code == 502
        assert response.text == "Failed to get user info"
        assert count_users() == 0

    def test_email_collision(self, client, count_users, local_user):
        """Should answer 409 when the email belongs to a password account."""
        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert response.status_code == 409
        assert response.text == "Email already registered"
        assert "location" not in response.headers
        assert count_users() == 1

    def test_profile_without_email(self, client, count_users, fake_google):
        """Should answer 500 when no account can be built from the profile."""
        fake_google.profile.email = None

        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert response.status_code == 500
        assert response.text == "Failed to resolve account"
        assert count_users() == 0

    def test_failure_logged_with_provider_status(self, client, fake_google, caplog, provider_unavailable):
        """Should log the failure reason and Google's status code."""
        caplog.set_level(logging.INFO, logger="huddle")
        fake_google.exchange_error = provider_unavailable

        _callback(client, code="used-code", state=_start_login(client))

        messages = [r.getMessage() for r in caplog.records if r.levelno >= logging.ERROR]
        assert any("ProviderExchangeFailed" in m and "provider status 400" in m for m in messages)

    def test_unverified_email(self, client, count_users, fake_google):
        """Should answer 403 when Google says the email is unverified."""
        fake_google.profile.email_verified = False

        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert response.status_code == 403
        assert response.text == "Email not verified"
        assert count_users() == 0
        assert _state_cookie_cleared(response)


class TestGoogleCallbackUnexpectedReplies:
    """Tests for provider replies and errors outside the normal failure modes."""

    def test_token_body_not_an_object(self, client, count_users):
        """Should answer 502 when Google's token reply is a JSON list."""
        def google(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=["access_token", "ya29.access"])

        app.dependency_overrides[get_auth_client] = lambda: GoogleAuthClient(
            transport=httpx.MockTransport(google)
        )

        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert response.status_code == 502
        assert response.text == "Failed to exchange token"
        assert count_users() == 0
        assert _state_cookie_cleared(response)

    def test_profile_body_not_an_object(self, client, count_users):
        """Should answer 502 when Google's profile reply is a JSON list."""
        def google(request: httpx.Request) -> httpx.Response:
            if str(request.url) == GoogleAuthClient.TOKEN_URL:
                return httpx.Response(200, json={"access_token": "ya29.access"})
            return httpx.Response(200, json=[{"id": "1"}])

        app.dependency_overrides[get_auth_client] = lambda: GoogleAuthClient(
            transport=httpx.MockTransport(google)
        )

        response = _callback(client, code="4/0Ab-code", state=_start_login(client))

        assert response.status_code == 502
        assert response.text == "Failed to get user info"
        assert count_users() == 0

    def test_unexpected_error_clears_cookie(self, client, fake_google, caplog):
        """Should answer 500, log a traceback and still burn the state."""
        caplog.set_level(logging.INFO, logger="huddle")
        fake_google.exchange_error = RuntimeError("connection pool exhausted")
        state = _start_login(client)

        response = _callback(client, code="4/0Ab-code", state=state)

        assert response.status_code == 500
        assert response.text == "Login failed"
        assert _state_cookie_cleared(response)
        errors = [r for r in caplog.records if r.levelno >= logging.ERROR]
        assert any(r.exc_info and "RuntimeError" in r.getMessage() for r in errors)

        replay = _callback(client, code="4/0Ab-code", state=state)
        assert replay.status_code == 400
