"""
Pydantic schema definitions for the catalog module.

``ContentItem`` and ``Comment`` mirror the rows of the remote
``content`` and ``comments`` tables. The application only ever holds
transient copies of them; the backend owns and mutates the real
records. ``ContentForm`` is the state of the administration form and
``UploadedFile`` an attachment waiting to be pushed to object storage.
"""

import math
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator
from typing_extensions import Literal


class Category(str, Enum):
    RESOURCE_PACK = "Resource Pack"
    MOD = "Mod"
    CLIENT = "Client"


CategoryFilter = Literal["all", "resource-pack", "mod", "client"]

# Filter tag -> category it selects (None selects everything)
CATEGORY_FILTERS: Dict[str, Optional[Category]] = {
    "all": None,
    "resource-pack": Category.RESOURCE_PACK,
    "mod": Category.MOD,
    "client": Category.CLIENT,
}


class ContentItem(BaseModel):
    """A downloadable catalog entry.

    ``type`` holds the category label exactly as stored remotely
    (``"Resource Pack"``, ``"Mod"`` or ``"Client"``). Rows written by
    older clients may carry nulls in the counters, which are read as 0.
    ``file_url`` is ``None`` until the administrator attaches a file;
    downloads are refused while it is missing.
    """

    id: str
    title: str
    type: str
    author: Optional[str] = None
    description: Optional[str] = None
    version: Optional[str] = None
    file_size: Optional[str] = None
    image: Optional[str] = None
    downloads: int = Field(default=0, ge=0)
    rating: float = Field(default=0.0, ge=0.0, le=5.0)
    ratings_count: int = Field(default=0, ge=0)
    file_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @field_validator("id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value)

    @field_validator("downloads", "ratings_count", "rating", mode="before")
    @classmethod
    def _null_as_zero(cls, value):
        return 0 if value is None else value

    @property
    def has_file(self) -> bool:
        return bool(self.file_url)

    @property
    def filled_stars(self) -> int:
        # Half rounds up: 3.5 shows four stars
        return int(math.floor(self.rating + 0.5))


class Comment(BaseModel):
    id: str
    content_id: str
    author: str
    text: str
    created_at: Optional[datetime] = None

    @field_validator("id", "content_id", mode="before")
    @classmethod
    def _id_as_str(cls, value):
        return str(value)


class ContentForm(BaseModel):
    """Fields the administrator edits before saving a content item.

    An empty form is a valid state (it is what the view resets to), so
    required fields are only enforced by :meth:`missing_fields` at
    submit time.
    """

    title: str = ""
    type: Category = Category.RESOURCE_PACK
    description: str = ""
    version: str = ""
    image: str = ""
    file_size: str = ""
    file_url: Optional[str] = None

    def missing_fields(self) -> List[str]:
        required = ("title", "description", "version", "image")
        return [name for name in required if not getattr(self, name).strip()]

    @classmethod
    def from_item(cls, item: ContentItem) -> "ContentForm":
        return cls(
            title=item.title,
            type=Category(item.type),
            description=item.description or "",
            version=item.version or "",
            image=item.image or "",
            file_size=item.file_size or "",
            file_url=item.file_url,
        )


class UploadedFile(BaseModel):
    filename: str
    content_type: str = ""
    data: bytes = b""

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()


class StoredFile(BaseModel):
    """Result of an upload to object storage."""

    url: str
    size: str


class AuthSession(BaseModel):
    access_token: str
    email: Optional[str] = None
    expires_at: Optional[datetime] = None


class DownloadPayload(BaseModel):
    filename: str
    data: bytes


# ---------------------------------------------------------------------------
# Response bodies


class BrowsingState(BaseModel):
    category: CategoryFilter
    items: List[ContentItem]
    error: Optional[str] = None


class ContentDetail(BaseModel):
    item: ContentItem
    comments: List[Comment] = Field(default_factory=list)
    filled_stars: int
    can_download: bool
    is_admin: bool = False


class SessionState(BaseModel):
    is_admin: bool
    email: Optional[str] = None
    screen: Literal["closed", "login", "panel"]


class AdminState(BaseModel):
    screen: Literal["closed", "login", "panel"]
    items: List[ContentItem] = Field(default_factory=list)
    form: ContentForm
    editing_id: Optional[str] = None
    attachment: Optional[str] = None
    pending_delete_id: Optional[str] = None
    error: Optional[str] = None
