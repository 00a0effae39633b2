# crafthub/dependencies.py
from functools import lru_cache
from typing import Iterator, Optional

from fastapi import Cookie, Depends, Response

from .catalog.store import CatalogClient
from .catalog.supabase_service import SupabaseService
from .config import Settings, get_settings
from . import storage

SESSION_COOKIE = "crafthub_session"


@lru_cache()
def get_backend() -> SupabaseService:
    settings = get_settings()
    return SupabaseService(
        settings.supabase_url,
        settings.supabase_anon_key,
        bucket=settings.storage_bucket,
        timeout=settings.request_timeout,
    )


def get_catalog_client(
    backend: SupabaseService = Depends(get_backend),
    settings: Settings = Depends(get_settings),
) -> CatalogClient:
    return CatalogClient(
        backend,
        max_upload_bytes=settings.max_upload_bytes,
        author_label=settings.author_label,
        download_timeout=settings.download_timeout,
    )


def get_visitor(
    response: Response,
    visitor_id: Optional[str] = Cookie(default=None, alias=SESSION_COOKIE),
    client: CatalogClient = Depends(get_catalog_client),
) -> Iterator[storage.Visitor]:
    assigned_id, visitor = storage.get_visitor(visitor_id, client)
    if assigned_id != visitor_id:
        response.set_cookie(SESSION_COOKIE, assigned_id, httponly=True, samesite="lax")
    with visitor.lock:
        yield visitor
