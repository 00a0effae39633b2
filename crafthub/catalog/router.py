"""
Route definitions for the public catalogue.

Endpoints under /api/catalog:
- GET    /content                     : catalog list (filtered by the active category)
- POST   /content/refresh             : re-fetch the catalog from the backend
- PUT    /filter                      : change the active category (no re-fetch)
- DELETE /banner                      : dismiss the fetch-error banner
- GET    /content/{content_id}        : select an item, return its detail view
- DELETE /selection                   : back to the list view
- POST   /content/{content_id}/rate   : rate the item 1-5
- GET    /content/{content_id}/download : forced download of the item's file
- GET    /content/{content_id}/comments : re-fetch the comment thread
- POST   /content/{content_id}/comments : post a comment
- DELETE /comments/{comment_id}       : delete a comment (admin only)

Each visitor's view state (loaded list, active category, selection and
comment thread) lives server side, keyed by the session cookie.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import RedirectResponse, Response

from ..dependencies import get_catalog_client, get_visitor
from ..models import CategoryFilterRequest, CommentRequest, RateRequest
from ..storage import Visitor
from .errors import BackendError, CatalogError, ContentValidationError
from .schemas import BrowsingState, ContentDetail
from .store import CatalogClient


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/catalog", tags=["catalog"])


def to_http(exc: CatalogError) -> HTTPException:
    """Translate a catalog failure into the HTTP error shown to the visitor."""
    return HTTPException(status_code=exc.status_code, detail=exc.message)


@router.get("/content", response_model=BrowsingState)
def list_content(visitor: Visitor = Depends(get_visitor)) -> BrowsingState:
    visitor.browsing.ensure_loaded()
    return visitor.browsing.state()


@router.post("/content/refresh", response_model=BrowsingState)
def refresh_content(visitor: Visitor = Depends(get_visitor)) -> BrowsingState:
    visitor.browsing.load()
    return visitor.browsing.state()


@router.put("/filter", response_model=BrowsingState)
def set_filter(
    req: CategoryFilterRequest, visitor: Visitor = Depends(get_visitor)
) -> BrowsingState:
    try:
        visitor.browsing.set_category(req.category)
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.browsing.state()


@router.delete("/banner", response_model=BrowsingState)
def dismiss_banner(visitor: Visitor = Depends(get_visitor)) -> BrowsingState:
    visitor.browsing.dismiss_error()
    return visitor.browsing.state()


@router.get("/content/{content_id}", response_model=ContentDetail)
def select_content(content_id: str, visitor: Visitor = Depends(get_visitor)) -> ContentDetail:
    browsing = visitor.browsing
    browsing.ensure_loaded()
    try:
        browsing.select(content_id)
        return browsing.detail()
    except CatalogError as exc:
        raise to_http(exc)


@router.delete("/selection", response_model=BrowsingState)
def back_to_list(visitor: Visitor = Depends(get_visitor)) -> BrowsingState:
    visitor.browsing.back()
    return visitor.browsing.state()


@router.post("/content/{content_id}/rate", response_model=ContentDetail)
def rate_content(
    content_id: str, req: RateRequest, visitor: Visitor = Depends(get_visitor)
) -> ContentDetail:
    browsing = visitor.browsing
    browsing.ensure_loaded()
    try:
        browsing.rate(content_id, req.star)
        return browsing.detail()
    except CatalogError as exc:
        raise to_http(exc)


@router.get("/content/{content_id}/download")
def download_content(
    content_id: str,
    visitor: Visitor = Depends(get_visitor),
    client: CatalogClient = Depends(get_catalog_client),
):
    """Serve the item's file as a forced download.

    An item the visitor already sees without a file is refused before
    any backend call. Otherwise the stored record is re-read and is the
    authority, not the visitor's cached copy. The counter update is
    best-effort and never blocks the download. When the bytes cannot be
    fetched, the visitor is sent to the stored file URL instead so it
    can be saved manually.
    """
    no_file = ContentValidationError("No file available for download.")
    cached = visitor.browsing.find(content_id)
    if cached is not None and not cached.has_file:
        raise to_http(no_file)
    try:
        item = client.get_content(content_id)
    except CatalogError as exc:
        raise to_http(exc)
    if not item.has_file:
        raise to_http(no_file)

    new_count = client.update_download_count(item)
    if new_count is not None:
        visitor.browsing.record_download(item.id, new_count)

    try:
        payload = client.fetch_download(item)
    except BackendError:
        logger.warning("Forced download of %s failed, redirecting to %s", item.id, item.file_url)
        return RedirectResponse(item.file_url, status_code=307)

    return Response(
        content=payload.data,
        media_type="application/octet-stream",
        headers={
            "Content-Disposition": f'attachment; filename="{payload.filename}"',
            "Content-Length": str(len(payload.data)),
        },
    )


@router.get("/content/{content_id}/comments", response_model=ContentDetail)
def list_comments(content_id: str, visitor: Visitor = Depends(get_visitor)) -> ContentDetail:
    browsing = visitor.browsing
    browsing.ensure_loaded()
    try:
        if browsing.selected is None or browsing.selected.id != content_id:
            browsing.select(content_id)
        else:
            browsing.fetch_comments()
        return browsing.detail()
    except CatalogError as exc:
        raise to_http(exc)


@router.post("/content/{content_id}/comments", response_model=ContentDetail)
def post_comment(
    content_id: str, req: CommentRequest, visitor: Visitor = Depends(get_visitor)
) -> ContentDetail:
    browsing = visitor.browsing
    browsing.ensure_loaded()
    try:
        browsing.post_comment(content_id, req.author, req.text)
        return browsing.detail()
    except CatalogError as exc:
        raise to_http(exc)


@router.delete("/comments/{comment_id}")
def delete_comment(comment_id: str, visitor: Visitor = Depends(get_visitor)):
    try:
        visitor.browsing.delete_comment(comment_id)
    except CatalogError as exc:
        raise to_http(exc)
    return {"status": "ok"}
