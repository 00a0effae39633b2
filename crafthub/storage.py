# crafthub/storage.py
import threading
import uuid
from dataclasses import dataclass, field
from typing import Optional, Tuple

from cachetools import TTLCache

from .catalog.session import AdminSession
from .catalog.store import CatalogClient
from .catalog.views import AdminView, BrowsingView

# Idle visitors are dropped after an hour; the registry never holds more than this many
VISITOR_TTL_SECONDS = 60 * 60
MAX_VISITORS = 10_000


@dataclass
class Visitor:
    session: AdminSession
    browsing: BrowsingView
    admin: AdminView
    # Held for the duration of one request so a visitor's views are mutated serially
    lock: threading.Lock = field(default_factory=threading.Lock)


# Visitor id (session cookie) -> that visitor's view state
VISITORS: TTLCache = TTLCache(maxsize=MAX_VISITORS, ttl=VISITOR_TTL_SECONDS)
_visitors_lock = threading.Lock()


def _new_visitor(client: CatalogClient) -> Visitor:
    session = AdminSession()
    return Visitor(
        session=session,
        browsing=BrowsingView(client, session),
        admin=AdminView(client, session),
    )


def get_visitor(visitor_id: Optional[str], client: CatalogClient) -> Tuple[str, Visitor]:
    """Return the visitor behind ``visitor_id``, creating one when unknown or expired.

    Every lookup re-inserts the entry so the idle timeout restarts.
    """
    with _visitors_lock:
        visitor = VISITORS.get(visitor_id) if visitor_id else None
        if visitor is None:
            visitor_id = uuid.uuid4().hex
            visitor = _new_visitor(client)
        VISITORS[visitor_id] = visitor
        return visitor_id, visitor


def clear_visitors() -> None:
    with _visitors_lock:
        VISITORS.clear()
