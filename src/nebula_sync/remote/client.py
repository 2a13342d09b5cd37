from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, Optional, Type, TypeVar

import requests
from pydantic import TypeAdapter, ValidationError

from ..errors import DecodeError, HttpStatusError, TransportError

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_TIMEOUT = 10.0

PREFER_MINIMAL = "return=minimal"
PREFER_UPSERT = "resolution=merge-duplicates,return=minimal"


class RestClient:
    """Thin PostgREST/GoTrue client shared by every DAO.

    Holds the base URL, API key and a ``requests.Session``. It knows nothing
    about resources; DAOs build paths and filters. No retries are made here:
    a failed call is reported once and the caller decides whether to re-run
    the whole sync later.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_TIMEOUT,
        session: Optional[requests.Session] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"User-Agent": "nebula-sync"})

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    def _headers(
        self,
        token: Optional[str] = None,
        prefer: Optional[str] = None,
        has_body: bool = False,
    ) -> Dict[str, str]:
        headers = {"apikey": self.api_key, "Accept": "application/json"}
        if token:
            headers["Authorization"] = f"Bearer {token.strip()}"
        if prefer:
            headers["Prefer"] = prefer
        if has_body:
            headers["Content-Type"] = "application/json"
        return headers

    def request(
        self,
        method: str,
        path: str,
        *,
        token: Optional[str] = None,
        params: Optional[Dict[str, Any]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
        accept_statuses: Iterable[int] = (),
    ) -> requests.Response:
        """Send one request and return the response if its status is acceptable.

        2xx and any status in ``accept_statuses`` are acceptable. Raises
        TransportError when the server cannot be reached and HttpStatusError
        for any other status.
        """
        url = self.url(path)
        headers = self._headers(token=token, prefer=prefer, has_body=json is not None)
        logger.debug("%s %s params=%s", method, url, params)
        try:
            resp = self.session.request(
                method, url, params=params, json=json, headers=headers, timeout=self.timeout
            )
        except requests.Timeout as e:
            raise TransportError(f"Request to {url} timed out after {self.timeout}s") from e
        except requests.RequestException as e:
            raise TransportError(f"Request to {url} failed: {e}") from e
        logger.debug("%s %s -> HTTP %s", method, url, resp.status_code)
        if 200 <= resp.status_code < 300 or resp.status_code in accept_statuses:
            return resp
        raise HttpStatusError(resp.status_code, resp.text)

    @staticmethod
    def decode(resp: requests.Response, shape: Type[T]) -> T:
        """Parse the response body into ``shape`` (a model or a typing construct)."""
        try:
            return TypeAdapter(shape).validate_json(resp.content or b"null")
        except ValidationError as e:
            raise DecodeError(f"Unexpected response body: {e}") from e
