"""
Administrator session.

Admin status is not a role claim: any visitor holding an active
session from the auth service is treated as the administrator. The
session object is owned by the visitor's state and handed explicitly
to every view and client call that needs it; its lifecycle follows the
auth service's session one-to-one (begins on sign-in, ends on sign-out
or when the service rejects the token).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from .schemas import AuthSession


@dataclass
class AdminSession:
    access_token: Optional[str] = None
    email: Optional[str] = None
    expires_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        if not self.access_token:
            return False
        if self.expires_at is not None and self.expires_at <= datetime.now(timezone.utc):
            return False
        return True

    def begin(self, auth: AuthSession) -> None:
        self.access_token = auth.access_token
        self.email = auth.email
        self.expires_at = auth.expires_at

    def end(self) -> None:
        self.access_token = None
        self.email = None
        self.expires_at = None
