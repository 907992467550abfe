"""HTTP transport with timeout, cancellation and retry handling."""

import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from pydantic import BaseModel, ConfigDict, Field

from taskforceai.exceptions import (
    APIError,
    NetworkError,
    RequestTimeoutError,
    RetriesExhaustedError,
    SerializationError,
    TaskForceAIError,
    ValidationError,
)
from taskforceai.types import ResponseHook

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_BACKOFF = 0.5
DEFAULT_MAX_RETRIES = 3
DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLL_ATTEMPTS = 150


class TransportConfig(BaseModel):
    """Immutable per-client request settings shared by every call."""

    model_config = ConfigDict(frozen=True)

    api_key: str
    base_url: str
    timeout: float = Field(default=DEFAULT_TIMEOUT, gt=0)
    response_hook: Optional[ResponseHook] = None
    max_retries: int = Field(default=DEFAULT_MAX_RETRIES, ge=0)
    backoff: float = Field(default=DEFAULT_BACKOFF, ge=0)


@dataclass
class RequestOptions:
    """Caller-supplied parts of a single request."""

    method: str = "GET"
    body: Any = None
    params: Optional[dict[str, Any]] = None
    headers: Optional[dict[str, str]] = None
    files: Optional[dict[str, Any]] = None
    data: Optional[dict[str, Any]] = None
    cancel_event: Optional[asyncio.Event] = None
    raw: bool = False


class _RetryableFailure(Exception):
    """Internal marker for a failed attempt that the retry policy may repeat."""

    def __init__(self, error: TaskForceAIError) -> None:
        super().__init__(error.message)
        self.error = error


def backoff_delay(attempt: int, base: float = DEFAULT_BACKOFF) -> float:
    """Linear backoff: the delay after failed attempt ``n`` (0-based) is ``base * (n + 1)``."""
    return base * (attempt + 1)


def extract_error_message(response: httpx.Response) -> str:
    """Pick the most useful error message from a non-2xx response."""
    fallback = f"HTTP {response.status_code}"
    text = response.text
    try:
        parsed = json.loads(text)
    except ValueError:
        parsed = None
    else:
        if isinstance(parsed, dict):
            error = parsed.get("error")
            return error if isinstance(error, str) else fallback
    stripped = text.strip()
    return stripped or fallback


class Transport:
    """Issues requests against the API base URL with the client's retry policy."""

    def __init__(self, config: TransportConfig, http_client: httpx.AsyncClient) -> None:
        self._config = config
        self._http = http_client

    @property
    def config(self) -> TransportConfig:
        return self._config

    async def execute(
        self,
        endpoint: str,
        options: Optional[RequestOptions] = None,
        *,
        retryable: bool = False,
        max_retries: Optional[int] = None,
    ) -> Any:
        """Perform one logical request and return the decoded body.

        Retries 5xx responses and network failures when ``retryable`` is set, waiting
        ``backoff_delay(attempt)`` between attempts. Timeouts and cancellation are never
        retried.
        """
        options = options or RequestOptions()
        retries = self._config.max_retries if max_retries is None else max_retries
        if retries < 0:
            raise ValidationError(f"max_retries must be non-negative, got {retries}")
        url = f"{self._config.base_url}{endpoint}"

        for attempt in range(retries + 1):
            logger.debug("%s %s (attempt %d/%d)", options.method, url, attempt + 1, retries + 1)
            try:
                return await self._attempt(url, options)
            except _RetryableFailure as failure:
                error = failure.error
                if not retryable:
                    raise error from error.__cause__
                if attempt == retries:
                    raise RetriesExhaustedError(
                        f"Request failed after maximum retries: {error.message}",
                        last_error=error,
                    ) from error
                delay = backoff_delay(attempt, self._config.backoff)
                logger.warning(
                    "Request %s %s failed (%s), retrying in %.2fs",
                    options.method,
                    url,
                    error.message,
                    delay,
                )
                await asyncio.sleep(delay)

    async def _attempt(self, url: str, options: RequestOptions) -> Any:
        request = self._build_request(url, options)
        try:
            response = await self._send(request, options.cancel_event)
        except httpx.TimeoutException as exc:
            raise RequestTimeoutError("Request timeout") from exc
        except httpx.HTTPError as exc:
            error = NetworkError(f"Network error: {str(exc) or 'Unknown error'}")
            error.__cause__ = exc
            raise _RetryableFailure(error) from exc

        self._notify_hook(response)

        if not response.is_success:
            error = APIError(extract_error_message(response), status_code=response.status_code)
            if 500 <= response.status_code < 600:
                raise _RetryableFailure(error)
            raise error

        if options.raw:
            return response.content
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise SerializationError(
                f"Invalid JSON in response: {exc}", status_code=response.status_code
            ) from exc

    def _build_request(self, url: str, options: RequestOptions) -> httpx.Request:
        headers = httpx.Headers({"x-api-key": self._config.api_key})
        if options.files is None:
            headers["Content-Type"] = "application/json"
        if options.headers:
            # Caller values win, matching header names case-insensitively
            headers.update(options.headers)

        content = None
        if options.body is not None:
            content = json.dumps(options.body)

        return self._http.build_request(
            options.method,
            url,
            params=options.params,
            headers=headers,
            content=content,
            files=options.files,
            data=options.data,
        )

    async def _send(
        self, request: httpx.Request, cancel_event: Optional[asyncio.Event]
    ) -> httpx.Response:
        """Send ``request``, aborting when the timeout elapses or ``cancel_event`` fires."""
        if cancel_event is not None and cancel_event.is_set():
            raise RequestTimeoutError("Request timeout")

        send = asyncio.ensure_future(self._http.send(request))
        waiters: set[asyncio.Future[Any]] = {send}
        if cancel_event is not None:
            waiters.add(asyncio.ensure_future(cancel_event.wait()))

        try:
            done, _ = await asyncio.wait(
                waiters, timeout=self._config.timeout, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            pending = [waiter for waiter in waiters if not waiter.done()]
            for waiter in pending:
                waiter.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if send not in done:
            raise RequestTimeoutError("Request timeout")
        return send.result()

    def _notify_hook(self, response: httpx.Response) -> None:
        hook = self._config.response_hook
        if hook is None:
            return
        try:
            # The body is already decoded, so the copy must not claim an encoding
            headers = [
                (name, value)
                for name, value in response.headers.multi_items()
                if name.lower() != "content-encoding"
            ]
            hook(
                httpx.Response(
                    response.status_code,
                    headers=headers,
                    content=response.content,
                    request=response.request,
                )
            )
        except Exception:
            # Hook failures must not abort the request
            logger.warning("Response hook failed for %s", response.request.url, exc_info=True)
