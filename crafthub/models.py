# crafthub/models.py
from typing import Optional

from pydantic import BaseModel, Field

from .catalog.schemas import Category


class CategoryFilterRequest(BaseModel):
    category: str


class RateRequest(BaseModel):
    star: int = Field(..., description="Whole number of stars, 1 to 5.")


class CommentRequest(BaseModel):
    author: str = ""
    text: str = ""


class LoginRequest(BaseModel):
    email: str
    password: str


class FormUpdateRequest(BaseModel):
    title: Optional[str] = None
    type: Optional[Category] = None
    description: Optional[str] = None
    version: Optional[str] = None
    image: Optional[str] = None
    file_size: Optional[str] = None
