"""
Per-visitor view state.

``BrowsingView`` is the public catalog: a list view filtered by
category and a detail view for one selected item with its rating
widget and comment thread. ``AdminView`` is the administration panel:
the create/update form, its pending attachment and the
delete-with-confirmation flow.

Both views call through ``CatalogClient`` and fold what the backend
returns into their local copies. Nothing here is authoritative; a
refresh always replaces the local list with the server's.
"""

import logging
from typing import List, Optional

from .errors import (
    BackendError,
    CatalogError,
    ContentNotFoundError,
    ContentValidationError,
    LoginRequired,
)
from .schemas import (
    CATEGORY_FILTERS,
    AdminState,
    BrowsingState,
    Comment,
    ContentDetail,
    ContentForm,
    ContentItem,
    SessionState,
    UploadedFile,
)
from .session import AdminSession
from .store import CatalogClient, filter_by_category


logger = logging.getLogger(__name__)

FETCH_ERROR = "Error fetching content. Please try again later."
SAVE_ERROR = "Failed to save content. Please try again."
DELETE_ERROR = "Failed to delete content on server, but removed from view."


def _replace_item(items: List[ContentItem], updated: ContentItem) -> List[ContentItem]:
    return [updated if item.id == updated.id else item for item in items]


class BrowsingView:
    """Public catalog: list view, category filter and detail view."""

    def __init__(self, client: CatalogClient, session: AdminSession) -> None:
        self.client = client
        self.session = session
        self.items: List[ContentItem] = []
        self.category = "all"
        self.selected: Optional[ContentItem] = None
        self.comments: List[Comment] = []
        self.error: Optional[str] = None
        self.loaded = False

    # list view -----------------------------------------------------------

    def load(self) -> None:
        """Fetch the catalog; a failure becomes the banner, never an exception."""
        try:
            self.items = self.client.list_content()
        except BackendError as exc:
            logger.error("Error fetching content: %s", exc.detail)
            self.error = FETCH_ERROR
            return
        self.error = None
        self.loaded = True
        if self.selected is not None:
            self.selected = self.find(self.selected.id)

    def ensure_loaded(self) -> None:
        if not self.loaded:
            self.load()

    def dismiss_error(self) -> None:
        self.error = None

    def set_category(self, tag: str) -> None:
        if tag not in CATEGORY_FILTERS:
            raise ContentValidationError(f"Unknown category filter: {tag}")
        self.category = tag

    @property
    def visible_items(self) -> List[ContentItem]:
        return filter_by_category(self.items, self.category)

    def state(self) -> BrowsingState:
        return BrowsingState(category=self.category, items=self.visible_items, error=self.error)

    # detail view ---------------------------------------------------------

    def find(self, content_id: str) -> Optional[ContentItem]:
        """Look ``content_id`` up in the loaded list, without a network call."""
        return next((item for item in self.items if item.id == content_id), None)

    def select(self, content_id: str) -> None:
        item = self.find(content_id)
        if item is None:
            raise ContentNotFoundError("Content not found.")
        self.selected = item
        self.comments = []
        self.fetch_comments()

    def _ensure_selected(self, content_id: str) -> ContentItem:
        if self.selected is None or self.selected.id != content_id:
            self.select(content_id)
        return self.selected

    def back(self) -> None:
        self.selected = None
        self.comments = []

    def fetch_comments(self) -> None:
        if self.selected is None:
            return
        try:
            self.comments = self.client.list_comments(self.selected.id)
        except BackendError as exc:
            logger.error("Error fetching comments for %s: %s", self.selected.id, exc.detail)

    def detail(self) -> ContentDetail:
        if self.selected is None:
            raise ContentNotFoundError("No content selected.")
        return ContentDetail(
            item=self.selected,
            comments=self.comments,
            filled_stars=self.selected.filled_stars,
            can_download=self.selected.has_file,
            is_admin=self.session.is_admin,
        )

    def _apply(self, updated: ContentItem) -> None:
        self.items = _replace_item(self.items, updated)
        if self.selected is not None and self.selected.id == updated.id:
            self.selected = updated

    def rate(self, content_id: str, star: int) -> ContentItem:
        item = self._ensure_selected(content_id)
        updated = self.client.rate(item, star)
        self._apply(updated)
        return updated

    def record_download(self, content_id: str, downloads: int) -> None:
        item = self.find(content_id)
        if item is not None:
            self._apply(item.model_copy(update={"downloads": downloads}))

    def post_comment(self, content_id: str, author: str, text: str) -> None:
        self._ensure_selected(content_id)
        comment = self.client.post_comment(content_id, author, text)
        if comment is None:
            logger.info("Comment stored without an echoed row, re-fetching thread")
            self.fetch_comments()
        else:
            self.comments.insert(0, comment)

    def delete_comment(self, comment_id: str) -> None:
        self.client.delete_comment(comment_id, self.session)
        self.comments = [c for c in self.comments if c.id != comment_id]


class AdminView:
    """Administration panel gated by the visitor's ``AdminSession``."""

    def __init__(self, client: CatalogClient, session: AdminSession) -> None:
        self.client = client
        self.session = session
        self.panel_requested = False
        self.items: List[ContentItem] = []
        self.form = ContentForm()
        self.editing_id: Optional[str] = None
        self.attachment: Optional[UploadedFile] = None
        self.pending_delete_id: Optional[str] = None
        self.error: Optional[str] = None
        self.needs_resync = False

    @property
    def screen(self) -> str:
        if not self.panel_requested:
            return "closed"
        return "panel" if self.session.is_admin else "login"

    def session_state(self) -> SessionState:
        return SessionState(
            is_admin=self.session.is_admin, email=self.session.email, screen=self.screen
        )

    def state(self) -> AdminState:
        return AdminState(
            screen=self.screen,
            items=self.items if self.session.is_admin else [],
            form=self.form,
            editing_id=self.editing_id,
            attachment=self.attachment.filename if self.attachment else None,
            pending_delete_id=self.pending_delete_id,
            error=self.error,
        )

    def _require_admin(self) -> None:
        if not self.session.is_admin:
            raise LoginRequired()

    # session -------------------------------------------------------------

    def open_panel(self) -> str:
        self.panel_requested = True
        if self.session.is_admin:
            self.refresh()
        return self.screen

    def close_panel(self) -> None:
        self.panel_requested = False

    def login(self, email: str, password: str) -> None:
        auth = self.client.sign_in(email, password)
        self.session.begin(auth)
        self.panel_requested = True
        logger.info("Administrator %s signed in", auth.email)
        self.refresh()

    def logout(self) -> None:
        try:
            self.client.sign_out(self.session)
        except BackendError as exc:
            logger.warning("Error signing out remotely: %s", exc.detail)
        self.session.end()
        self.panel_requested = False
        self.reset_form()
        self.pending_delete_id = None
        self.items = []

    # content list --------------------------------------------------------

    def refresh(self) -> None:
        self._require_admin()
        try:
            self.items = self.client.list_content(order_by="created_at")
        except BackendError as exc:
            logger.error("Error fetching content: %s", exc.detail)
            self.error = FETCH_ERROR
            return
        self.needs_resync = False

    # form ----------------------------------------------------------------

    def reset_form(self) -> None:
        self.form = ContentForm()
        self.editing_id = None
        self.attachment = None

    def update_form(self, **fields) -> None:
        self._require_admin()
        try:
            self.form = ContentForm.model_validate({**self.form.model_dump(), **fields})
        except ValueError as exc:
            raise ContentValidationError("Invalid form value.", detail=str(exc)) from exc

    def edit(self, content_id: str) -> None:
        self._require_admin()
        item = next((i for i in self.items if i.id == content_id), None)
        if item is None:
            raise ContentNotFoundError("Content not found.")
        try:
            self.form = ContentForm.from_item(item)
        except ValueError as exc:
            raise ContentValidationError(
                f"Unknown category on stored item: {item.type}", detail=str(exc)
            ) from exc
        self.editing_id = content_id
        self.attachment = None

    def attach_file(self, upload: UploadedFile) -> None:
        self._require_admin()
        try:
            self.client.check_upload_size(upload)
        except ContentValidationError as exc:
            self.attachment = None
            self.error = exc.message
            raise
        self.attachment = upload
        self.error = None

    def clear_attachment(self) -> None:
        self.attachment = None

    def submit(self) -> None:
        self._require_admin()
        self.error = None
        try:
            self.client.upsert_content(
                self.form, self.attachment, self.session, editing_id=self.editing_id
            )
        except ContentValidationError as exc:
            self.error = exc.message
            raise
        except CatalogError as exc:
            logger.error("Error saving content: %s", exc.detail or exc.message)
            self.error = SAVE_ERROR
            raise
        self.reset_form()
        self.refresh()

    # delete flow ---------------------------------------------------------

    def request_delete(self, content_id: str) -> None:
        self._require_admin()
        self.pending_delete_id = content_id

    def cancel_delete(self) -> None:
        self.pending_delete_id = None

    def confirm_delete(self) -> bool:
        """Delete the pending item; ``False`` when the server refused.

        Either way the item leaves the local list. After a server
        failure the view is flagged for resync and the next successful
        refresh brings back whatever the server still holds.
        """
        self._require_admin()
        content_id = self.pending_delete_id
        if content_id is None:
            raise ContentValidationError("No deletion pending.")
        self.pending_delete_id = None
        self.error = None
        self.items = [item for item in self.items if item.id != content_id]
        try:
            self.client.delete_content(content_id, self.session)
        except BackendError as exc:
            logger.error("Error deleting content %s: %s", content_id, exc.detail)
            self.error = DELETE_ERROR
            self.needs_resync = True
            return False
        self.refresh()
        return True
