"""
Error taxonomy for the catalog.

Every failure a user action can run into is one of four kinds:

* ``BackendError``: the remote platform (database, storage or auth)
  could not be reached or answered with an error.
* ``ContentValidationError``: the input was rejected locally, before
  any network call (empty field, oversized file, missing file
  reference, ...).
* ``AuthorizationError``: the visitor has no admin session for an
  admin-only action. Checked locally, no network call is made.
* ``ContentNotFoundError``: the referenced content or comment does not
  exist.

None of these is fatal: each is scoped to the action that raised it and
the routers translate them into HTTP responses.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for catalog failures."""

    status_code = 500

    def __init__(self, message: str, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        # Technical detail for the logs, never shown to visitors
        self.detail = detail


class BackendError(CatalogError):
    status_code = 502

    def __init__(
        self,
        message: str,
        detail: Optional[str] = None,
        remote_status: Optional[int] = None,
    ) -> None:
        super().__init__(message, detail)
        # HTTP status the backend answered with, None for transport errors
        self.remote_status = remote_status


class ContentValidationError(CatalogError):
    status_code = 400


class AuthorizationError(CatalogError):
    status_code = 403


class LoginRequired(AuthorizationError):
    status_code = 401

    def __init__(self, message: str = "Please log in as an administrator.") -> None:
        super().__init__(message)


class ContentNotFoundError(CatalogError):
    status_code = 404
