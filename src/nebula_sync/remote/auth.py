from __future__ import annotations

import logging
from typing import Any, Dict

from ..errors import HttpStatusError, SyncError
from ..models import LoginResult
from ..result import Err, Ok, Result
from .client import RestClient

logger = logging.getLogger(__name__)


class AuthDAO:
    """Token-issuing endpoints of the auth service (password, refresh, signup)."""

    def __init__(self, client: RestClient) -> None:
        self.client = client

    def login(self, email: str, password: str) -> Result[LoginResult]:
        return self._token_call(
            "auth/v1/token", {"grant_type": "password"}, {"email": email, "password": password}
        )

    def refresh(self, refresh_token: str) -> Result[LoginResult]:
        return self._token_call(
            "auth/v1/token", {"grant_type": "refresh_token"}, {"refresh_token": refresh_token}
        )

    def register(self, email: str, password: str) -> Result[LoginResult]:
        return self._token_call("auth/v1/signup", None, {"email": email, "password": password})

    def _token_call(self, path: str, params: Any, body: Dict[str, Any]) -> Result[LoginResult]:
        try:
            resp = self.client.request("POST", path, params=params, json=body)
            return Ok(self.client.decode(resp, LoginResult))
        except HttpStatusError as e:
            logger.warning("Auth call %s rejected: HTTP %s", path, e.status)
            # Callers show the server's own error payload.
            return Err(HttpStatusError(e.status, e.body, message=e.body or f"HTTP {e.status}"))
        except SyncError as e:
            logger.warning("Auth call %s failed: %s", path, e)
            return Err(e)
