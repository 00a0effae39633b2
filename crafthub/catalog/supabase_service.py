"""
Supabase integration for the catalogue.

All persistence, authentication and file storage live on a Supabase
project. This module is the only place that speaks its HTTP
interfaces:

* PostgREST (``/rest/v1``): row reads with ``eq.`` filters and
  ordering, inserts, updates and deletes on the ``content`` and
  ``comments`` tables.
* Storage (``/storage/v1``): uploads into the public bucket and the
  public URL of a stored object.
* GoTrue (``/auth/v1``): password sign-in, the "current user" query
  and sign-out.

Every call carries an explicit timeout so that a stalled backend ends
the user action with a ``BackendError`` instead of leaving it pending.
Failures are logged here and re-raised as ``BackendError``; deciding
whether a failure is swallowed or surfaced belongs to the callers.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import httpx

from .errors import AuthorizationError, BackendError
from .schemas import AuthSession


logger = logging.getLogger(__name__)


class SupabaseService:
    """Thin synchronous client for one Supabase project.

    Parameters
    ----------
    url : str
        Project URL, e.g. ``https://abc.supabase.co``.
    anon_key : str
        Public anon key. Sent as ``apikey`` on every request and as the
        bearer token when no user session is supplied.
    bucket : str
        Storage bucket holding uploaded content files.
    timeout : float
        Default per-request timeout in seconds.
    client : Optional[httpx.Client]
        Pre-built client, mainly so tests can inject a mock transport.
    """

    def __init__(
        self,
        url: str,
        anon_key: str,
        bucket: str = "content-files",
        timeout: float = 10.0,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.url = url.rstrip("/")
        self.anon_key = anon_key
        self.bucket = bucket
        self.timeout = timeout
        self._client = client or httpx.Client(follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    # ------------------------------------------------------------------
    # Low-level request helper

    def _headers(self, access_token: Optional[str] = None) -> Dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {access_token or self.anon_key}",
        }

    def _request(
        self,
        method: str,
        url: str,
        *,
        access_token: Optional[str] = None,
        timeout: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        merged = self._headers(access_token)
        if headers:
            merged.update(headers)
        try:
            response = self._client.request(
                method,
                url,
                headers=merged,
                timeout=timeout if timeout is not None else self.timeout,
                **kwargs,
            )
            response.raise_for_status()
            return response
        except httpx.HTTPStatusError as exc:
            body = exc.response.text[:500]
            logger.error(
                "Backend %s %s returned status %s: %s",
                method, url, exc.response.status_code, body,
            )
            raise BackendError(
                "The content service returned an error.",
                detail=body,
                remote_status=exc.response.status_code,
            ) from exc
        except httpx.HTTPError as exc:
            logger.error("Error calling backend %s %s: %s", method, url, exc)
            raise BackendError(
                "The content service could not be reached.", detail=str(exc)
            ) from exc

    @staticmethod
    def _json_rows(response: httpx.Response) -> List[Dict[str, Any]]:
        if not response.content:
            return []
        data = response.json()
        if isinstance(data, dict):
            return [data]
        return [row for row in data if isinstance(row, dict)]

    def _table_url(self, table: str) -> str:
        return f"{self.url}/rest/v1/{table}"

    @staticmethod
    def _match_params(match: Dict[str, Any]) -> Dict[str, str]:
        return {column: f"eq.{value}" for column, value in match.items()}

    # ------------------------------------------------------------------
    # Tables (PostgREST)

    def select(
        self,
        table: str,
        *,
        match: Optional[Dict[str, Any]] = None,
        order: Optional[Tuple[str, bool]] = None,
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Read rows from ``table``.

        Parameters
        ----------
        match : Optional[Dict[str, Any]]
            Column equality filters.
        order : Optional[Tuple[str, bool]]
            ``(column, descending)``.
        """
        params: Dict[str, str] = {"select": "*"}
        params.update(self._match_params(match or {}))
        if order is not None:
            column, descending = order
            params["order"] = f"{column}.{'desc' if descending else 'asc'}"
        response = self._request(
            "GET", self._table_url(table), access_token=access_token, params=params
        )
        return self._json_rows(response)

    def insert(
        self,
        table: str,
        rows: List[Dict[str, Any]],
        *,
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        """Insert ``rows`` and return whatever rows the backend echoes.

        Row-level security can let a write through while hiding the row
        from the caller, so an empty list does not mean the insert
        failed.
        """
        response = self._request(
            "POST",
            self._table_url(table),
            access_token=access_token,
            json=rows,
            headers={"Prefer": "return=representation"},
        )
        return self._json_rows(response)

    def update(
        self,
        table: str,
        values: Dict[str, Any],
        *,
        match: Dict[str, Any],
        access_token: Optional[str] = None,
    ) -> List[Dict[str, Any]]:
        response = self._request(
            "PATCH",
            self._table_url(table),
            access_token=access_token,
            params=self._match_params(match),
            json=values,
            headers={"Prefer": "return=representation"},
        )
        return self._json_rows(response)

    def delete(
        self,
        table: str,
        *,
        match: Dict[str, Any],
        access_token: Optional[str] = None,
    ) -> None:
        self._request(
            "DELETE",
            self._table_url(table),
            access_token=access_token,
            params=self._match_params(match),
        )

    # ------------------------------------------------------------------
    # Object storage

    def upload(
        self,
        path: str,
        data: bytes,
        content_type: str,
        *,
        access_token: Optional[str] = None,
        cache_control: str = "3600",
        timeout: Optional[float] = None,
    ) -> None:
        url = f"{self.url}/storage/v1/object/{self.bucket}/{quote(path)}"
        self._request(
            "POST",
            url,
            access_token=access_token,
            timeout=timeout,
            content=data,
            headers={
                "Content-Type": content_type or "application/octet-stream",
                "Cache-Control": f"max-age={cache_control}",
                "x-upsert": "false",
            },
        )

    def public_url(self, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{self.bucket}/{quote(path)}"

    def fetch_file(self, url: str, *, timeout: Optional[float] = None) -> bytes:
        """Download the bytes behind a public file reference."""
        try:
            response = self._client.get(
                url, timeout=timeout if timeout is not None else self.timeout
            )
            response.raise_for_status()
        except httpx.HTTPError as exc:
            logger.error("Error fetching file %s: %s", url, exc)
            raise BackendError("The file could not be fetched.", detail=str(exc)) from exc
        return response.content

    # ------------------------------------------------------------------
    # Authentication (GoTrue)

    def sign_in(self, email: str, password: str) -> AuthSession:
        url = f"{self.url}/auth/v1/token"
        try:
            response = self._request(
                "POST",
                url,
                params={"grant_type": "password"},
                json={"email": email, "password": password},
            )
        except BackendError as exc:
            if exc.remote_status in (400, 401):
                raise AuthorizationError("Invalid login credentials.") from exc
            raise
        data = response.json()
        expires_at = None
        if isinstance(data.get("expires_in"), (int, float)):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=data["expires_in"])
        user = data.get("user") or {}
        return AuthSession(
            access_token=data["access_token"],
            email=user.get("email") or email,
            expires_at=expires_at,
        )

    def get_user(self, access_token: str) -> Optional[Dict[str, Any]]:
        """Return the user behind ``access_token``, or ``None`` if rejected."""
        try:
            response = self._request(
                "GET", f"{self.url}/auth/v1/user", access_token=access_token
            )
        except BackendError as exc:
            if exc.remote_status in (401, 403):
                return None
            raise
        return response.json()

    def sign_out(self, access_token: str) -> None:
        self._request("POST", f"{self.url}/auth/v1/logout", access_token=access_token)
