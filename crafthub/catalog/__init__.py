"""
Catalog package for the content hub.

This package holds everything behind the two faces of the site: the
public catalogue (browse, filter, rate, comment, download) and the
administration panel (create, update and delete content, upload
files). Persistence, authentication and file storage are delegated to
a Supabase project reached through ``supabase_service``; the rest of
the package only orchestrates calls and keeps per-visitor view state.
"""

from .router import router as catalog_router  # noqa: F401
from .admin_router import router as admin_router  # noqa: F401
