"""Client implementation for TaskForceAI task submission and tracking."""

import asyncio
import logging
import os
from collections.abc import Mapping
from typing import Any, Optional, Union

import httpx
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from taskforceai.exceptions import (
    PollTimeoutError,
    SerializationError,
    TaskFailedError,
    TaskForceAIError,
    ValidationError,
)
from taskforceai.files import File, FileListResponse
from taskforceai.mock import MockBackend
from taskforceai.polling import POLL_TIMEOUT_MESSAGE, TaskStatusPoller, TaskStatusStream
from taskforceai.threads import (
    CreateThreadOptions,
    Thread,
    ThreadListResponse,
    ThreadMessagesResponse,
    ThreadRunOptions,
    ThreadRunResponse,
)
from taskforceai.transport import (
    DEFAULT_BACKOFF,
    DEFAULT_MAX_POLL_ATTEMPTS,
    DEFAULT_MAX_RETRIES,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_TIMEOUT,
    RequestOptions,
    Transport,
    TransportConfig,
)
from taskforceai.types import (
    ResponseHook,
    TaskResult,
    TaskStatus,
    TaskState,
    TaskStatusCallback,
    TaskSubmissionOptions,
)

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://taskforceai.chat/api/developer"

SubmissionOptions = Union[TaskSubmissionOptions, Mapping[str, Any], None]


def _require_task_id(task_id: Any) -> str:
    if not task_id or not isinstance(task_id, str):
        raise ValidationError("Task ID must be a non-empty string")
    return task_id


def _require_prompt(prompt: Any) -> str:
    if not isinstance(prompt, str) or not prompt.strip():
        raise ValidationError("Prompt must be a non-empty string")
    return prompt


def _parse(model: type[BaseModel], payload: Any) -> Any:
    try:
        return model.model_validate(payload)
    except PydanticValidationError as e:
        raise SerializationError(f"Unexpected {model.__name__} payload: {e}") from e


class ClientConfig(BaseModel):
    """Configuration for the TaskForceAI client. Durations are in seconds."""

    api_key: Optional[str] = None
    base_url: str = Field(default=DEFAULT_BASE_URL)
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    response_hook: Optional[ResponseHook] = None
    mock_mode: bool = False
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    backoff: float = Field(default=DEFAULT_BACKOFF, ge=0)
    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, ge=0)
    max_poll_attempts: int = Field(default=DEFAULT_MAX_POLL_ATTEMPTS, ge=0)

    @classmethod
    def from_env(cls, **overrides: Any) -> "ClientConfig":
        """Load configuration from ``TASKFORCEAI_*`` environment variables."""
        params: dict[str, Any] = {}
        if api_key := os.getenv("TASKFORCEAI_API_KEY"):
            params["api_key"] = api_key
        if base_url := os.getenv("TASKFORCEAI_BASE_URL"):
            params["base_url"] = base_url
        if timeout := os.getenv("TASKFORCEAI_TIMEOUT"):
            params["timeout"] = float(timeout)
        mock_mode = os.getenv("TASKFORCEAI_MOCK_MODE", "")
        if mock_mode:
            params["mock_mode"] = mock_mode.lower() in ("1", "true", "yes", "on")
        params.update(overrides)
        return cls(**params)

    def transport_config(self) -> TransportConfig:
        return TransportConfig(
            api_key=self.api_key or "",
            base_url=self.base_url.rstrip("/"),
            timeout=self.timeout,
            response_hook=self.response_hook,
            max_retries=self.max_retries,
            backoff=self.backoff,
        )


class Client:
    """Main client for the TaskForceAI developer API."""

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
        **kwargs: Any,
    ) -> None:
        # Support both keyword arguments and a prepared config
        if config is None:
            config_params: dict[str, Any] = dict(kwargs)
            if api_key is not None:
                config_params["api_key"] = api_key
            if base_url is not None:
                config_params["base_url"] = base_url
            if timeout is not None:
                config_params["timeout"] = timeout
            config = ClientConfig(**config_params)

        if not config.mock_mode and not config.api_key:
            raise TaskForceAIError("API key is required when not in mock mode")

        self._config = config
        self._transport_config = config.transport_config()
        self._http = http_client
        self._owns_http = http_client is None
        self._transport: Optional[Transport] = None
        self._mock: Optional[MockBackend] = MockBackend() if config.mock_mode else None

    @property
    def config(self) -> ClientConfig:
        return self._config

    @staticmethod
    def builder() -> "ClientBuilder":
        """Create a client builder."""
        return ClientBuilder()

    def _ensure_transport(self) -> Transport:
        """Create the HTTP client and transport on first use."""
        if self._transport is None:
            if self._http is None:
                self._http = httpx.AsyncClient(timeout=self._transport_config.timeout)
            self._transport = Transport(self._transport_config, self._http)
        return self._transport

    async def _request(
        self,
        endpoint: str,
        options: Optional[RequestOptions] = None,
        retryable: bool = False,
    ) -> Any:
        if self._mock is not None:
            method = options.method if options else "GET"
            return self._mock.respond(endpoint, method)
        transport = self._ensure_transport()
        return await transport.execute(endpoint, options, retryable=retryable)

    # Tasks

    async def submit_task(self, prompt: str, options: SubmissionOptions = None) -> str:
        """Submit a prompt for processing and return the task ID."""
        _require_prompt(prompt)
        try:
            submission = TaskSubmissionOptions.coerce(options)
        except PydanticValidationError as e:
            raise ValidationError(f"Invalid task submission options: {e}") from e
        body = submission.to_request_body(prompt)
        response = await self._request("/run", RequestOptions(method="POST", body=body))

        task_id = response.get("taskId") if isinstance(response, dict) else None
        if not task_id or not isinstance(task_id, str):
            raise SerializationError("Task submission response did not include a taskId")
        logger.info("Submitted task %s", task_id)
        return task_id

    async def get_task_status(self, task_id: str) -> TaskStatus:
        """Fetch the current status of a task. Transient server errors are retried."""
        _require_task_id(task_id)
        payload = await self._request(f"/status/{task_id}", retryable=True)
        return _parse(TaskStatus, payload)

    async def get_task_result(self, task_id: str) -> TaskResult:
        """Fetch the final result of a completed task."""
        _require_task_id(task_id)
        payload = await self._request(f"/results/{task_id}")
        return _parse(TaskResult, payload)

    def _poller(
        self,
        task_id: str,
        interval: Optional[float],
        max_attempts: Optional[int],
        on_status: Optional[TaskStatusCallback],
        cancel_event: Optional[asyncio.Event],
    ) -> TaskStatusPoller:
        return TaskStatusPoller(
            task_id,
            self.get_task_status,
            interval=self._config.poll_interval if interval is None else interval,
            max_attempts=self._config.max_poll_attempts if max_attempts is None else max_attempts,
            on_status=on_status,
            cancel_event=cancel_event,
        )

    async def wait_for_completion(
        self,
        task_id: str,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_status: Optional[TaskStatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TaskResult:
        """Poll until the task finishes and return its result.

        Raises ``TaskFailedError`` when the task fails and ``PollTimeoutError`` when it does
        not finish within ``max_attempts`` polls.
        """
        async for status in self._poller(task_id, interval, max_attempts, on_status, cancel_event):
            if status.status is TaskState.COMPLETED and status.result:
                logger.info("Task %s completed", task_id)
                return TaskResult.from_status(status)
            if status.status is TaskState.FAILED:
                raise TaskFailedError(status.error or "Task failed", task_id=task_id)
        raise PollTimeoutError(POLL_TIMEOUT_MESSAGE)

    async def run_task(
        self,
        prompt: str,
        options: SubmissionOptions = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_status: Optional[TaskStatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TaskResult:
        """Submit a prompt and wait for its result."""
        task_id = await self.submit_task(prompt, options)
        return await self.wait_for_completion(
            task_id, interval, max_attempts, on_status, cancel_event
        )

    def stream_task_status(
        self,
        task_id: str,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_status: Optional[TaskStatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TaskStatusStream:
        """Return a cancellable stream of status updates for ``task_id``."""
        _require_task_id(task_id)
        poller = self._poller(task_id, interval, max_attempts, on_status, cancel_event)
        return TaskStatusStream(task_id, poller)

    async def run_task_stream(
        self,
        prompt: str,
        options: SubmissionOptions = None,
        interval: Optional[float] = None,
        max_attempts: Optional[int] = None,
        on_status: Optional[TaskStatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> TaskStatusStream:
        """Submit a prompt and return a status stream for the new task."""
        task_id = await self.submit_task(prompt, options)
        return self.stream_task_status(task_id, interval, max_attempts, on_status, cancel_event)

    # Threads

    async def create_thread(self, options: Optional[CreateThreadOptions] = None) -> Thread:
        body = options.model_dump(exclude_none=True) if options else {}
        payload = await self._request("/threads", RequestOptions(method="POST", body=body))
        return _parse(Thread, payload)

    async def list_threads(self, limit: int = 20, offset: int = 0) -> ThreadListResponse:
        payload = await self._request(
            "/threads", RequestOptions(params={"limit": limit, "offset": offset})
        )
        return _parse(ThreadListResponse, payload)

    async def get_thread(self, thread_id: int) -> Thread:
        payload = await self._request(f"/threads/{thread_id}")
        return _parse(Thread, payload)

    async def delete_thread(self, thread_id: int) -> None:
        await self._request(f"/threads/{thread_id}", RequestOptions(method="DELETE"))

    async def get_thread_messages(
        self, thread_id: int, limit: int = 50, offset: int = 0
    ) -> ThreadMessagesResponse:
        payload = await self._request(
            f"/threads/{thread_id}/messages",
            RequestOptions(params={"limit": limit, "offset": offset}),
        )
        return _parse(ThreadMessagesResponse, payload)

    async def run_in_thread(self, thread_id: int, options: ThreadRunOptions) -> ThreadRunResponse:
        """Run a prompt inside an existing thread."""
        _require_prompt(options.prompt)
        payload = await self._request(
            f"/threads/{thread_id}/runs",
            RequestOptions(method="POST", body=options.model_dump(exclude_none=True)),
        )
        return _parse(ThreadRunResponse, payload)

    # Files

    def _bearer_headers(self) -> dict[str, str]:
        if self._config.api_key:
            return {"Authorization": f"Bearer {self._config.api_key}"}
        return {}

    async def upload_file(
        self,
        filename: str,
        content: bytes,
        purpose: Optional[str] = None,
        mime_type: Optional[str] = None,
    ) -> File:
        """Upload ``content`` as a multipart form under ``filename``."""
        data: dict[str, Any] = {}
        if purpose:
            data["purpose"] = purpose
        if mime_type:
            data["mime_type"] = mime_type
        headers = self._bearer_headers()
        payload = await self._request(
            "/files",
            RequestOptions(
                method="POST",
                files={"file": (filename, content)},
                data=data or None,
                headers=headers,
            ),
        )
        return _parse(File, payload)

    async def list_files(self, limit: int = 20, offset: int = 0) -> FileListResponse:
        payload = await self._request(
            "/files", RequestOptions(params={"limit": limit, "offset": offset})
        )
        return _parse(FileListResponse, payload)

    async def get_file(self, file_id: str) -> File:
        payload = await self._request(f"/files/{file_id}")
        return _parse(File, payload)

    async def delete_file(self, file_id: str) -> None:
        await self._request(f"/files/{file_id}", RequestOptions(method="DELETE"))

    async def download_file(self, file_id: str) -> bytes:
        headers = self._bearer_headers()
        content = await self._request(
            f"/files/{file_id}/content", RequestOptions(headers=headers, raw=True)
        )
        return bytes(content)

    async def close(self) -> None:
        """Close the HTTP client if this client created it."""
        if self._http is not None and self._owns_http:
            await self._http.aclose()
            self._http = None
            self._transport = None

    async def __aenter__(self) -> "Client":
        """Async context manager entry."""
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Async context manager exit."""
        await self.close()


class ClientBuilder:
    """Builder for client configuration."""

    def __init__(self) -> None:
        self._config = ClientConfig()

    def api_key(self, api_key: str) -> "ClientBuilder":
        """set API key."""
        self._config.api_key = api_key
        return self

    def base_url(self, base_url: str) -> "ClientBuilder":
        """set API base URL."""
        self._config.base_url = base_url
        return self

    def timeout(self, timeout: float) -> "ClientBuilder":
        """set per-request timeout in seconds."""
        self._config.timeout = timeout
        return self

    def response_hook(self, hook: ResponseHook) -> "ClientBuilder":
        """set a hook that observes every HTTP response."""
        self._config.response_hook = hook
        return self

    def mock_mode(self, enabled: bool = True) -> "ClientBuilder":
        """enable local mock mode."""
        self._config.mock_mode = enabled
        return self

    def max_retries(self, retries: int) -> "ClientBuilder":
        """set retry count for retryable requests."""
        self._config.max_retries = retries
        return self

    def polling(self, interval: float, max_attempts: int) -> "ClientBuilder":
        """set default poll interval (seconds) and attempt budget."""
        self._config.poll_interval = interval
        self._config.max_poll_attempts = max_attempts
        return self

    def build(self) -> Client:
        """Build the client."""
        return Client(self._config)
