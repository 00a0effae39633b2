"""
Route definitions for the administration panel.

Endpoints under /api/admin:
- GET    /session                 : admin status and current screen
- POST   /login                   : sign in and open the panel
- POST   /logout                  : sign out and close the panel
- POST   /panel                   : open the panel (``login`` screen without a session)
- DELETE /panel                   : close the panel
- GET    /content                 : panel state, list re-fetched from the backend
- PUT    /form                    : change form fields
- DELETE /form                    : reset the form / cancel editing
- POST   /form/submit             : create or update the item in the form
- POST   /attachment              : attach a file to the form (multipart)
- DELETE /attachment              : drop the attachment
- POST   /content/{content_id}/edit   : load an item into the form
- POST   /content/{content_id}/delete : ask to delete an item (needs confirmation)
- POST   /delete/confirm          : confirm the pending deletion
- DELETE /delete                  : cancel the pending deletion
"""

from fastapi import APIRouter, Depends, File, UploadFile

from ..dependencies import get_visitor
from ..models import FormUpdateRequest, LoginRequest
from ..storage import Visitor
from .errors import CatalogError, LoginRequired
from .router import to_http
from .schemas import AdminState, SessionState, UploadedFile


router = APIRouter(prefix="/api/admin", tags=["admin"])


@router.get("/session", response_model=SessionState)
def session_state(visitor: Visitor = Depends(get_visitor)) -> SessionState:
    try:
        visitor.admin.client.check_session(visitor.session)
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.session_state()


@router.post("/login", response_model=AdminState)
def login(req: LoginRequest, visitor: Visitor = Depends(get_visitor)) -> AdminState:
    try:
        visitor.admin.login(req.email, req.password)
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.post("/logout", response_model=SessionState)
def logout(visitor: Visitor = Depends(get_visitor)) -> SessionState:
    visitor.admin.logout()
    return visitor.admin.session_state()


@router.post("/panel", response_model=AdminState)
def open_panel(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    visitor.admin.open_panel()
    return visitor.admin.state()


@router.delete("/panel", response_model=SessionState)
def close_panel(visitor: Visitor = Depends(get_visitor)) -> SessionState:
    visitor.admin.close_panel()
    return visitor.admin.session_state()


@router.get("/content", response_model=AdminState)
def admin_content(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    try:
        visitor.admin.refresh()
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.put("/form", response_model=AdminState)
def update_form(req: FormUpdateRequest, visitor: Visitor = Depends(get_visitor)) -> AdminState:
    try:
        visitor.admin.update_form(**req.model_dump(exclude_none=True))
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.delete("/form", response_model=AdminState)
def reset_form(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    visitor.admin.reset_form()
    return visitor.admin.state()


@router.post("/form/submit", response_model=AdminState)
def submit_form(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    try:
        visitor.admin.submit()
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.post("/attachment", response_model=AdminState)
def attach_file(
    file: UploadFile = File(...), visitor: Visitor = Depends(get_visitor)
) -> AdminState:
    # Refuse before buffering anything from the request body
    if not visitor.session.is_admin:
        raise to_http(LoginRequired())
    upload = UploadedFile(
        filename=file.filename or "upload",
        content_type=file.content_type or "",
        # One byte past the cap is enough to reject an oversized file
        data=file.file.read(visitor.admin.client.max_upload_bytes + 1),
    )
    try:
        visitor.admin.attach_file(upload)
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.delete("/attachment", response_model=AdminState)
def clear_attachment(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    visitor.admin.clear_attachment()
    return visitor.admin.state()


@router.post("/content/{content_id}/edit", response_model=AdminState)
def edit_content(content_id: str, visitor: Visitor = Depends(get_visitor)) -> AdminState:
    try:
        visitor.admin.edit(content_id)
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.post("/content/{content_id}/delete", response_model=AdminState)
def request_delete(content_id: str, visitor: Visitor = Depends(get_visitor)) -> AdminState:
    try:
        visitor.admin.request_delete(content_id)
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.post("/delete/confirm", response_model=AdminState)
def confirm_delete(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    # A refused remote delete is reported through ``error`` in the state
    try:
        visitor.admin.confirm_delete()
    except CatalogError as exc:
        raise to_http(exc)
    return visitor.admin.state()


@router.delete("/delete", response_model=AdminState)
def cancel_delete(visitor: Visitor = Depends(get_visitor)) -> AdminState:
    visitor.admin.cancel_delete()
    return visitor.admin.state()
