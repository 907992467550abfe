"""Conversation thread payloads."""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class Thread(BaseModel):
    """A conversation thread."""

    id: int
    title: str
    created_at: str
    updated_at: str


class ThreadMessage(BaseModel):
    """A message within a thread."""

    id: int
    thread_id: int
    role: Literal["user", "assistant"]
    content: str
    created_at: str


class CreateThreadOptions(BaseModel):
    title: Optional[str] = None
    messages: Optional[list[ThreadMessage]] = None
    metadata: Optional[dict[str, Any]] = None


class ThreadListResponse(BaseModel):
    threads: list[Thread] = Field(default_factory=list)
    total: int = 0


class ThreadMessagesResponse(BaseModel):
    messages: list[ThreadMessage] = Field(default_factory=list)
    total: int = 0


class ThreadRunOptions(BaseModel):
    """Prompt to run inside an existing thread."""

    model_config = ConfigDict(protected_namespaces=())

    prompt: str
    model_id: Optional[str] = None
    options: Optional[dict[str, Any]] = None


class ThreadRunResponse(BaseModel):
    task_id: str
    thread_id: int
    message_id: int
