"""Session tokens: obtained from the auth DAO, persisted in the prefs file."""
from __future__ import annotations

import base64
import json
import logging
from typing import Optional, Tuple

from .errors import AuthError
from .models import LoginResult
from .remote.auth import AuthDAO
from .result import Err, Ok, Result
from .storage.prefs import PrefsStore

logger = logging.getLogger(__name__)

ACCESS_TOKEN_KEY = "access_token"
REFRESH_TOKEN_KEY = "refresh_token"
SAVED_EMAIL_KEY = "saved_email"
SAVED_PASSWORD_KEY = "saved_password"


def decode_user_id(token: str) -> str:
    """Read the ``sub`` claim from a compact JWT without verifying it.

    Returns an empty string when the token cannot be decoded.
    """
    try:
        payload = token.split(".")[1]
        payload += "=" * (-len(payload) % 4)
        claims = json.loads(base64.urlsafe_b64decode(payload))
        return str(claims["sub"])
    except (AttributeError, IndexError, KeyError, TypeError, ValueError):
        return ""


def describe_auth_error(raw: str) -> str:
    """Pull the human message out of an auth error payload, else return it as is."""
    try:
        data = json.loads(raw)
    except (TypeError, ValueError):
        return raw
    if isinstance(data, dict):
        for key in ("msg", "error_description", "message"):
            if data.get(key):
                return str(data[key])
    return raw


class AuthSession:
    """Current credentials, restored from and saved to the prefs file."""

    def __init__(self, dao: AuthDAO, prefs: PrefsStore) -> None:
        self.dao = dao
        self.prefs = prefs
        self._access_token = prefs.get_str(ACCESS_TOKEN_KEY)
        self._refresh_token = prefs.get_str(REFRESH_TOKEN_KEY)

    @property
    def access_token(self) -> str:
        return self._access_token

    @property
    def refresh_token(self) -> str:
        return self._refresh_token

    @property
    def user_id(self) -> str:
        return decode_user_id(self._access_token)

    def current_token(self) -> str:
        return self._access_token

    def login(self, email: str, password: str) -> Result[str]:
        return self._accept(self.dao.login(email, password))

    def register(self, email: str, password: str) -> Result[str]:
        result = self._accept(self.dao.register(email, password))
        if result.ok and not result.value:
            # Signup with e-mail confirmation issues no token yet.
            return Err(AuthError("Registration completed, verify your email address"))
        return result

    def refresh(self) -> Result[str]:
        if not self._refresh_token:
            return Err(AuthError("No session"))
        return self._accept(self.dao.refresh(self._refresh_token))

    def ensure_token(self) -> Result[str]:
        """Cached access token, or a refreshed one when only a refresh token is stored."""
        if self._access_token:
            return Ok(self._access_token)
        return self.refresh()

    def logout(self) -> None:
        self._access_token = ""
        self._refresh_token = ""
        for key in (ACCESS_TOKEN_KEY, REFRESH_TOKEN_KEY, SAVED_EMAIL_KEY, SAVED_PASSWORD_KEY):
            self.prefs.delete(key)
        self._persist()

    def remember_credentials(self, email: str, password: str) -> None:
        self.prefs.set(SAVED_EMAIL_KEY, email)
        self.prefs.set(SAVED_PASSWORD_KEY, password)
        self._persist()

    def saved_credentials(self) -> Optional[Tuple[str, str]]:
        email = self.prefs.get_str(SAVED_EMAIL_KEY)
        password = self.prefs.get_str(SAVED_PASSWORD_KEY)
        if email and password:
            return email, password
        return None

    def _accept(self, result: Result[LoginResult]) -> Result[str]:
        if not result.ok:
            return result
        tokens = result.value
        self._access_token = tokens.access_token
        self._refresh_token = tokens.refresh_token
        self.prefs.set(ACCESS_TOKEN_KEY, tokens.access_token)
        self.prefs.set(REFRESH_TOKEN_KEY, tokens.refresh_token)
        self._persist()
        return Ok(tokens.access_token)

    def _persist(self) -> None:
        try:
            self.prefs.save()
        except OSError as e:
            logger.warning("Could not persist session prefs: %s", e)
