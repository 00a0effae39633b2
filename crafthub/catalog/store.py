"""
Catalog service client.

``CatalogClient`` is the only gateway between the views and the remote
``content`` / ``comments`` tables, the storage bucket and the auth
service. Every mutation is a direct pass-through to the backend: there
is no queue, no retry and no conflict resolution, since the backend is
the single source of truth and a single administrator is assumed.

Local checks (empty fields, file size, star range, admin status) run
before any network call so that a rejected action never reaches the
backend.
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import datetime, timezone
from typing import List, Optional
from urllib.parse import urlparse

from .errors import (
    AuthorizationError,
    BackendError,
    ContentNotFoundError,
    ContentValidationError,
    LoginRequired,
)
from .schemas import (
    CATEGORY_FILTERS,
    AuthSession,
    Comment,
    ContentForm,
    ContentItem,
    DownloadPayload,
    StoredFile,
    UploadedFile,
)
from .session import AdminSession
from .supabase_service import SupabaseService


logger = logging.getLogger(__name__)

CONTENT_TABLE = "content"
COMMENTS_TABLE = "comments"
MAX_UPLOAD_BYTES = 50 * 1024 * 1024
HTML_TYPES = {"text/html", "application/xhtml+xml"}
HTML_EXTENSIONS = {"html", "htm"}


def filter_by_category(items: List[ContentItem], tag: str) -> List[ContentItem]:
    """Return the items whose category matches the filter ``tag``.

    Parameters
    ----------
    items : List[ContentItem]
        The already-fetched catalog.
    tag : str
        One of ``all``, ``resource-pack``, ``mod``, ``client``.

    Returns
    -------
    List[ContentItem]
        A new list; the full catalog for ``all``.
    """
    if tag not in CATEGORY_FILTERS:
        raise ContentValidationError(f"Unknown category filter: {tag}")
    category = CATEGORY_FILTERS[tag]
    if category is None:
        return list(items)
    return [item for item in items if item.type == category.value]


def compute_rating(rating: float, ratings_count: int, star: int) -> float:
    """Fold one more star into a running average, one decimal place."""
    return round((rating * ratings_count + star) / (ratings_count + 1), 1)


def format_size(num_bytes: int) -> str:
    return f"{num_bytes / (1024 * 1024):.2f}MB"


def download_filename(title: str, file_url: str) -> str:
    """Build the saved file name from the item title and the URL's extension."""
    base = re.sub(r"[^a-zA-Z0-9]", "_", title) or "download"
    last_segment = urlparse(file_url).path.rsplit("/", 1)[-1]
    ext = last_segment.rsplit(".", 1)[-1].lower() if "." in last_segment else ""
    return f"{base}.{ext or 'bin'}"


def storage_content_type(upload: UploadedFile) -> str:
    # HTML is stored as opaque bytes so browsers never render it inline
    declared = (upload.content_type or "").split(";")[0].strip().lower()
    if declared in HTML_TYPES or upload.extension in HTML_EXTENSIONS:
        return "application/octet-stream"
    return declared or "application/octet-stream"


def _require_admin(session: AdminSession) -> None:
    if not session.is_admin:
        raise LoginRequired()


class CatalogClient:
    """Read/write access to the catalog on the remote backend.

    Parameters
    ----------
    backend : SupabaseService
        Gateway to the remote tables, storage and auth service.
    max_upload_bytes : int
        Attachment size cap, checked before any upload.
    author_label : str
        Author written on newly created items.
    download_timeout : Optional[float]
        Timeout for file transfers; falls back to the backend default.
    """

    def __init__(
        self,
        backend: SupabaseService,
        max_upload_bytes: int = MAX_UPLOAD_BYTES,
        author_label: str = "admin",
        download_timeout: Optional[float] = None,
    ) -> None:
        self.backend = backend
        self.max_upload_bytes = max_upload_bytes
        self.author_label = author_label
        self.download_timeout = download_timeout

    # ------------------------------------------------------------------
    # Content

    def list_content(self, order_by: str = "downloads") -> List[ContentItem]:
        rows = self.backend.select(CONTENT_TABLE, order=(order_by, True))
        return [ContentItem.model_validate(row) for row in rows]

    def get_content(self, content_id: str) -> ContentItem:
        rows = self.backend.select(CONTENT_TABLE, match={"id": content_id})
        if not rows:
            raise ContentNotFoundError("Content not found.")
        return ContentItem.model_validate(rows[0])

    def update_download_count(self, item: ContentItem) -> Optional[int]:
        """Increment the remote download counter of ``item``.

        The counter is telemetry, not a gate: failures are logged and
        swallowed so the download itself always proceeds.

        Returns
        -------
        Optional[int]
            The new count, or ``None`` when the update failed.
        """
        new_count = item.downloads + 1
        try:
            self.backend.update(
                CONTENT_TABLE, {"downloads": new_count}, match={"id": item.id}
            )
        except BackendError as exc:
            logger.warning("Error updating download count for %s: %s", item.id, exc.detail)
            return None
        return new_count

    def rate(self, item: ContentItem, star: int) -> ContentItem:
        """Add one rating to ``item`` and return the updated copy.

        Nothing is applied locally before the backend accepts the
        write; a ``BackendError`` leaves the caller's state untouched.
        """
        if isinstance(star, bool) or not isinstance(star, int) or not 1 <= star <= 5:
            raise ContentValidationError("Rating must be a whole number from 1 to 5.")
        new_count = item.ratings_count + 1
        new_rating = compute_rating(item.rating, item.ratings_count, star)
        self.backend.update(
            CONTENT_TABLE,
            {"rating": new_rating, "ratings_count": new_count},
            match={"id": item.id},
        )
        return item.model_copy(update={"rating": new_rating, "ratings_count": new_count})

    def fetch_download(self, item: ContentItem) -> DownloadPayload:
        if not item.has_file:
            raise ContentValidationError("No file available for download.")
        data = self.backend.fetch_file(item.file_url, timeout=self.download_timeout)
        return DownloadPayload(filename=download_filename(item.title, item.file_url), data=data)

    # ------------------------------------------------------------------
    # Comments

    def list_comments(self, content_id: str) -> List[Comment]:
        rows = self.backend.select(
            COMMENTS_TABLE, match={"content_id": content_id}, order=("created_at", True)
        )
        return [Comment.model_validate(row) for row in rows]

    def post_comment(self, content_id: str, author: str, text: str) -> Optional[Comment]:
        """Insert a comment.

        Returns the stored comment, or ``None`` when the write went
        through but the backend echoed no row back; callers should then
        re-fetch the thread.
        """
        author = (author or "").strip()
        text = (text or "").strip()
        if not author or not text:
            raise ContentValidationError("Please enter your name and comment.")
        rows = self.backend.insert(
            COMMENTS_TABLE, [{"content_id": content_id, "author": author, "text": text}]
        )
        if not rows:
            return None
        return Comment.model_validate(rows[0])

    def delete_comment(self, comment_id: str, session: AdminSession) -> None:
        if not session.is_admin:
            logger.warning("Unauthorized comment deletion attempt for %s", comment_id)
            raise AuthorizationError("Only administrators can delete comments.")
        self.backend.delete(
            COMMENTS_TABLE, match={"id": comment_id}, access_token=session.access_token
        )

    # ------------------------------------------------------------------
    # Administration

    def check_upload_size(self, upload: UploadedFile) -> None:
        if upload.size > self.max_upload_bytes:
            limit_mb = self.max_upload_bytes // (1024 * 1024)
            raise ContentValidationError(
                f"File size exceeds the {limit_mb}MB limit. Please select a smaller file."
            )

    def upload_file(self, upload: UploadedFile, session: AdminSession) -> StoredFile:
        """Push an attachment to the storage bucket.

        The object path is ``content/<token>-<file name>``, the
        random token keeping concurrent uploads of the same file apart.
        """
        _require_admin(session)
        self.check_upload_size(upload)
        path = f"content/{secrets.token_hex(6)}-{upload.filename}"
        self.backend.upload(
            path,
            upload.data,
            storage_content_type(upload),
            access_token=session.access_token,
            timeout=self.download_timeout,
        )
        return StoredFile(url=self.backend.public_url(path), size=format_size(upload.size))

    def upsert_content(
        self,
        form: ContentForm,
        upload: Optional[UploadedFile],
        session: AdminSession,
        editing_id: Optional[str] = None,
    ) -> None:
        """Create a content item, or update ``editing_id`` in place.

        An attached file is uploaded first; the record is only written
        once the upload succeeded and carries its URL and size.
        """
        _require_admin(session)
        missing = form.missing_fields()
        if missing:
            raise ContentValidationError(
                "Please fill in the required fields: " + ", ".join(missing)
            )

        stored = self.upload_file(upload, session) if upload is not None else None
        data = form.model_dump(mode="json")
        if stored is not None:
            data["file_url"] = stored.url
            data["file_size"] = stored.size

        if editing_id:
            data["updated_at"] = datetime.now(timezone.utc).isoformat()
            self.backend.update(
                CONTENT_TABLE, data, match={"id": editing_id}, access_token=session.access_token
            )
        else:
            data.update(downloads=0, rating=0, ratings_count=0, author=self.author_label)
            self.backend.insert(CONTENT_TABLE, [data], access_token=session.access_token)

    def delete_content(self, content_id: str, session: AdminSession) -> None:
        _require_admin(session)
        self.backend.delete(
            CONTENT_TABLE, match={"id": content_id}, access_token=session.access_token
        )

    # ------------------------------------------------------------------
    # Authentication

    def sign_in(self, email: str, password: str) -> AuthSession:
        if not (email or "").strip() or not password:
            raise ContentValidationError("Please enter your email and password.")
        return self.backend.sign_in(email.strip(), password)

    def sign_out(self, session: AdminSession) -> None:
        if session.access_token:
            self.backend.sign_out(session.access_token)

    def check_session(self, session: AdminSession) -> bool:
        """Ask the auth service whether ``session`` is still active."""
        if not session.access_token:
            return False
        user = self.backend.get_user(session.access_token)
        if user is None:
            session.end()
            return False
        return session.is_admin
