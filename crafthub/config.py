# crafthub/config.py
import os
from functools import lru_cache

from dotenv import load_dotenv
from pydantic import BaseModel


class Settings(BaseModel):
    supabase_url: str = ""
    supabase_anon_key: str = ""
    storage_bucket: str = "content-files"
    # Per-action timeouts (seconds) for every call to the backend
    request_timeout: float = 10.0
    download_timeout: float = 60.0
    max_upload_bytes: int = 50 * 1024 * 1024
    author_label: str = "admin"
    log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
    load_dotenv()
    max_upload_mb = int(os.getenv("CRAFTHUB_MAX_UPLOAD_MB", "50"))
    return Settings(
        supabase_url=os.getenv("SUPABASE_URL", "").rstrip("/"),
        supabase_anon_key=os.getenv("SUPABASE_ANON_KEY", ""),
        storage_bucket=os.getenv("CRAFTHUB_BUCKET", "content-files"),
        request_timeout=float(os.getenv("CRAFTHUB_REQUEST_TIMEOUT", "10")),
        download_timeout=float(os.getenv("CRAFTHUB_DOWNLOAD_TIMEOUT", "60")),
        max_upload_bytes=max_upload_mb * 1024 * 1024,
        author_label=os.getenv("CRAFTHUB_AUTHOR_LABEL", "admin"),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
