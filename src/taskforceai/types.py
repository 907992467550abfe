"""Type definitions for the TaskForceAI client library."""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Literal, Optional, Union

import httpx
from pydantic import BaseModel, ConfigDict, Field, field_validator


class TaskState(str, Enum):
    """Task lifecycle state as reported by the API."""

    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self is not TaskState.PROCESSING


class TaskStatus(BaseModel):
    """Current state of a submitted task."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    task_id: str = Field(alias="taskId")
    status: TaskState
    result: Optional[str] = None
    error: Optional[str] = None
    warnings: Optional[list[str]] = None
    metadata: Optional[dict[str, Any]] = None

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal


class TaskResult(TaskStatus):
    """A task status narrowed to successful completion."""

    status: TaskState = TaskState.COMPLETED
    result: str = Field(min_length=1)

    @field_validator("status")
    @classmethod
    def _must_be_completed(cls, value: TaskState) -> TaskState:
        if value is not TaskState.COMPLETED:
            raise ValueError("task result requires status 'completed'")
        return value

    @classmethod
    def from_status(cls, status: TaskStatus) -> "TaskResult":
        """Narrow a completed status. Raises pydantic's ValidationError if it has no result."""
        return cls.model_validate(status.model_dump(by_alias=True))


class ImageAttachment(BaseModel):
    """Image sent along with a prompt."""

    data: str  # base64
    mime_type: str
    name: Optional[str] = None
    detail: Optional[Literal["auto", "low", "high"]] = None


class TaskSubmissionOptions(BaseModel):
    """Options for task submission.

    Named fields cover the options the API recognizes. Anything else goes into
    ``extra`` and is forwarded verbatim inside the request's ``options`` object.
    """

    model_config = ConfigDict(populate_by_name=True, protected_namespaces=())

    model_id: Optional[str] = Field(default=None, alias="modelId")
    silent: bool = False
    mock: bool = False
    vercel_ai_key: Optional[str] = Field(default=None, alias="vercelAiKey")
    images: Optional[list[ImageAttachment]] = None
    extra: dict[str, Any] = Field(default_factory=dict)

    @classmethod
    def coerce(
        cls, options: Union["TaskSubmissionOptions", Mapping[str, Any], None]
    ) -> "TaskSubmissionOptions":
        """Build options from an instance, ``None`` or a plain mapping."""
        if options is None:
            return cls()
        if isinstance(options, TaskSubmissionOptions):
            return options

        known: dict[str, Any] = {}
        extra: dict[str, Any] = dict(options.get("extra") or {})
        for key, value in options.items():
            if key == "extra":
                continue
            if key in _SUBMISSION_FIELDS:
                known[_SUBMISSION_FIELDS[key]] = value
            else:
                extra[key] = value
        return cls(**known, extra=extra)

    def to_request_body(self, prompt: str) -> dict[str, Any]:
        """Build the ``POST /run`` payload for ``prompt``."""
        payload_options: dict[str, Any] = {"silent": self.silent, "mock": self.mock}
        if self.model_id is not None:
            payload_options["modelId"] = self.model_id
        if self.images is not None:
            payload_options["images"] = [
                image.model_dump(exclude_none=True) for image in self.images
            ]
        payload_options.update(self.extra)

        body: dict[str, Any] = {"prompt": prompt, "options": payload_options}
        if self.vercel_ai_key:
            body["vercelAiKey"] = self.vercel_ai_key
        return body


# Wire and Python spellings of the recognized submission options
_SUBMISSION_FIELDS = {
    "model_id": "model_id",
    "modelId": "model_id",
    "silent": "silent",
    "mock": "mock",
    "vercel_ai_key": "vercel_ai_key",
    "vercelAiKey": "vercel_ai_key",
    "images": "images",
}

TaskStatusCallback = Callable[[TaskStatus], Any]
ResponseHook = Callable[[httpx.Response], Any]
