import json

import responses

from nebula_sync.auth import AuthSession, decode_user_id, describe_auth_error
from nebula_sync.errors import AuthError, TransportError
from nebula_sync.remote import AuthDAO
from nebula_sync.storage.prefs import PrefsStore

from conftest import BASE, TOKEN, USER_ID, make_jwt

TOKEN_URL = f"{BASE}/auth/v1/token"
SIGNUP_URL = f"{BASE}/auth/v1/signup"


def _session(client, paths) -> AuthSession:
    return AuthSession(AuthDAO(client), PrefsStore(paths.prefs_path))


def test_decode_user_id_reads_sub_claim():
    assert decode_user_id(TOKEN) == USER_ID
    assert decode_user_id(make_jwt("abc")) == "abc"
    assert decode_user_id("not-a-jwt") == ""
    assert decode_user_id("a.!!!.c") == ""
    assert decode_user_id("") == ""


def test_describe_auth_error_prefers_server_message():
    assert describe_auth_error('{"error_description": "Invalid login credentials"}') == "Invalid login credentials"
    assert describe_auth_error('{"msg": "User already registered"}') == "User already registered"
    assert describe_auth_error("plain text") == "plain text"


@responses.activate
def test_login_persists_tokens(client, paths):
    fresh = make_jwt("user-2")
    responses.add(
        responses.POST,
        TOKEN_URL,
        json={"access_token": fresh, "refresh_token": "r2", "expires_in": 3600, "token_type": "bearer"},
    )
    session = _session(client, paths)

    assert session.login("a@b.c", "pw").value == fresh
    assert "grant_type=password" in responses.calls[0].request.url
    assert json.loads(responses.calls[0].request.body) == {"email": "a@b.c", "password": "pw"}

    restored = _session(client, paths)
    assert restored.access_token == fresh
    assert restored.refresh_token == "r2"
    assert restored.user_id == "user-2"


@responses.activate
def test_login_rejected_keeps_server_payload(client, paths):
    payload = {"error": "invalid_grant", "error_description": "Invalid login credentials"}
    responses.add(responses.POST, TOKEN_URL, status=400, json=payload)

    result = _session(client, paths).login("a@b.c", "wrong")

    assert not result.ok
    assert result.error.status == 400
    assert describe_auth_error(result.message) == "Invalid login credentials"


@responses.activate
def test_login_unreachable(client, paths):
    result = _session(client, paths).login("a@b.c", "pw")
    assert isinstance(result.error, TransportError)


@responses.activate
def test_register_without_token_asks_for_confirmation(client, paths):
    responses.add(responses.POST, SIGNUP_URL, json={"id": "new-user"})
    result = _session(client, paths).register("a@b.c", "pw")
    assert isinstance(result.error, AuthError)
    assert "verify" in result.message


@responses.activate
def test_ensure_token_refreshes_when_only_refresh_token_stored(client, paths):
    prefs = PrefsStore(paths.prefs_path)
    prefs.set("refresh_token", "r1")
    prefs.save()
    responses.add(responses.POST, TOKEN_URL, json={"access_token": TOKEN, "refresh_token": "r2"})

    assert _session(client, paths).ensure_token().value == TOKEN
    assert "grant_type=refresh_token" in responses.calls[0].request.url


def test_refresh_without_session_is_error(client, paths):
    result = _session(client, paths).refresh()
    assert isinstance(result.error, AuthError)


def test_logout_forgets_everything(session, client, paths):
    session.remember_credentials("a@b.c", "pw")
    assert session.saved_credentials() == ("a@b.c", "pw")

    session.logout()

    restored = _session(client, paths)
    assert restored.access_token == ""
    assert restored.saved_credentials() is None
