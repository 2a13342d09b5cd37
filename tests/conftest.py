import base64
import json
import sys
from pathlib import Path

import pytest

# Ensure 'src' is on sys.path for test imports without installing the package
ROOT = Path(__file__).resolve().parents[1]
src = ROOT / "src"
if str(src) not in sys.path:
    sys.path.insert(0, str(src))

from nebula_sync.auth import AuthSession  # noqa: E402
from nebula_sync.core.settings import Settings  # noqa: E402
from nebula_sync.paths import AppPaths  # noqa: E402
from nebula_sync.reachability import StaticReachability  # noqa: E402
from nebula_sync.remote import AuthDAO, RestClient  # noqa: E402
from nebula_sync.services import SyncContext  # noqa: E402
from nebula_sync.storage.prefs import PrefsStore  # noqa: E402

BASE = "https://api.test"
USER_ID = "7d0b5c1e-1111-4f6a-9d2e-000000000001"


def make_jwt(sub: str) -> str:
    def seg(obj) -> str:
        return base64.urlsafe_b64encode(json.dumps(obj).encode()).decode().rstrip("=")

    return f"{seg({'alg': 'HS256', 'typ': 'JWT'})}.{seg({'sub': sub, 'role': 'authenticated'})}.sig"


TOKEN = make_jwt(USER_ID)


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch):
    for var in ("NEBULA_API_URL", "NEBULA_API_KEY", "NEBULA_DATA_DIR", "NEBULA_LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)


@pytest.fixture()
def paths(tmp_path):
    p = AppPaths(root=tmp_path / "data")
    p.ensure_dirs()
    return p


@pytest.fixture()
def client():
    return RestClient(BASE, "anon-key", timeout=2)


@pytest.fixture()
def session(client, paths):
    prefs = PrefsStore(paths.prefs_path)
    prefs.set("access_token", TOKEN)
    prefs.set("refresh_token", "refresh-1")
    prefs.save()
    return AuthSession(AuthDAO(client), PrefsStore(paths.prefs_path))


@pytest.fixture()
def make_ctx(session, paths, client):
    def _make(online: bool = True) -> SyncContext:
        return SyncContext.build(
            Settings(), session, StaticReachability(online), paths=paths, client=client
        )

    return _make
