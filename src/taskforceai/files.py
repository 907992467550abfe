"""Uploaded file payloads."""

from typing import Optional

from pydantic import BaseModel, Field


class File(BaseModel):
    """An uploaded file."""

    id: str
    filename: str
    purpose: str
    bytes: int
    created_at: str
    mime_type: Optional[str] = None


class FileListResponse(BaseModel):
    files: list[File] = Field(default_factory=list)
    total: int = 0
