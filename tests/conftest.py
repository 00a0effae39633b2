from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest

from crafthub.catalog.errors import AuthorizationError, BackendError
from crafthub.catalog.schemas import AuthSession
from crafthub.catalog.session import AdminSession
from crafthub.catalog.store import CatalogClient


BASE_TIME = datetime(2025, 3, 26, 12, 0, tzinfo=timezone.utc)
ADMIN_PASSWORD = "secret"


class FakeBackend:
    """In-memory stand-in for ``SupabaseService``.

    Every call is appended to ``calls`` so tests can assert that a
    locally rejected action never reached the backend. Methods named in
    ``failures`` raise ``BackendError``.
    """

    url = "https://hub.example.supabase.co"
    bucket = "content-files"

    def __init__(self) -> None:
        self.tables: Dict[str, List[Dict[str, Any]]] = {"content": [], "comments": []}
        self.files: Dict[str, bytes] = {}
        self.uploads: List[Tuple[str, str]] = []
        self.calls: List[Tuple[str, Any]] = []
        self.failures: set = set()
        self.echo_inserts = True
        self._next_id = 1
        self._tick = 0

    # helpers -----------------------------------------------------------

    def _record(self, method: str, detail: Any = None) -> None:
        self.calls.append((method, detail))
        if method in self.failures:
            raise BackendError(f"{method} failed", detail="simulated failure", remote_status=500)

    def _new_id(self) -> str:
        value = f"id-{self._next_id}"
        self._next_id += 1
        return value

    def _now(self) -> str:
        self._tick += 1
        return (BASE_TIME + timedelta(minutes=self._tick)).isoformat()

    def calls_for(self, method: str) -> List[Any]:
        return [detail for name, detail in self.calls if name == method]

    def add_content(self, **fields: Any) -> Dict[str, Any]:
        row = {
            "id": self._new_id(),
            "title": "Item",
            "type": "Mod",
            "author": "admin",
            "description": "desc",
            "version": "1.0.0",
            "file_size": "1MB",
            "image": "https://img.example/x.png",
            "downloads": 0,
            "rating": 0,
            "ratings_count": 0,
            "file_url": None,
            "created_at": self._now(),
            "updated_at": None,
        }
        row.update(fields)
        self.tables["content"].append(row)
        return row

    def add_comment(self, content_id: str, author: str, text: str) -> Dict[str, Any]:
        row = {
            "id": self._new_id(),
            "content_id": content_id,
            "author": author,
            "text": text,
            "created_at": self._now(),
        }
        self.tables["comments"].append(row)
        return row

    @staticmethod
    def _matches(row: Dict[str, Any], match: Optional[Dict[str, Any]]) -> bool:
        return all(str(row.get(k)) == str(v) for k, v in (match or {}).items())

    # SupabaseService surface ------------------------------------------

    def select(self, table, *, match=None, order=None, access_token=None):
        self._record("select", table)
        rows = [dict(r) for r in self.tables[table] if self._matches(r, match)]
        if order is not None:
            column, descending = order
            rows.sort(key=lambda r: (r.get(column) is not None, r.get(column) or 0), reverse=descending)
        return rows

    def insert(self, table, rows, *, access_token=None):
        self._record("insert", table)
        stored = []
        for row in rows:
            full = dict(row)
            full.setdefault("id", self._new_id())
            full.setdefault("created_at", self._now())
            self.tables[table].append(full)
            stored.append(dict(full))
        return stored if self.echo_inserts else []

    def update(self, table, values, *, match, access_token=None):
        self._record("update", (table, dict(values), access_token))
        updated = []
        for row in self.tables[table]:
            if self._matches(row, match):
                row.update(values)
                updated.append(dict(row))
        return updated

    def delete(self, table, *, match, access_token=None):
        self._record("delete", table)
        self.tables[table] = [r for r in self.tables[table] if not self._matches(r, match)]

    def upload(self, path, data, content_type, *, access_token=None, cache_control="3600", timeout=None):
        self._record("upload", path)
        self.uploads.append((path, content_type))
        self.files[self.public_url(path)] = data

    def public_url(self, path):
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{path}"

    def fetch_file(self, url, *, timeout=None):
        self._record("fetch_file", url)
        if url not in self.files:
            raise BackendError("The file could not be fetched.", detail="404")
        return self.files[url]

    def sign_in(self, email, password):
        self._record("sign_in", email)
        if password != ADMIN_PASSWORD:
            raise AuthorizationError("Invalid login credentials.")
        return AuthSession(access_token="token-1", email=email)

    def get_user(self, access_token):
        self._record("get_user", access_token)
        return {"email": "admin@admin.com"} if access_token == "token-1" else None

    def sign_out(self, access_token):
        self._record("sign_out", access_token)


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def client(backend: FakeBackend) -> CatalogClient:
    return CatalogClient(backend, max_upload_bytes=1024)


@pytest.fixture
def admin_session() -> AdminSession:
    session = AdminSession()
    session.begin(AuthSession(access_token="token-1", email="admin@admin.com"))
    return session


@pytest.fixture
def visitor_session() -> AdminSession:
    return AdminSession()
