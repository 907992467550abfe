"""Task status polling and cancellable status streams."""

import asyncio
import logging
from collections.abc import Awaitable
from enum import Enum
from typing import Callable, Optional

from taskforceai.exceptions import (
    PollingCancelledError,
    PollTimeoutError,
    StreamCancelledError,
)
from taskforceai.transport import DEFAULT_MAX_POLL_ATTEMPTS, DEFAULT_POLL_INTERVAL
from taskforceai.types import TaskStatus, TaskStatusCallback

logger = logging.getLogger(__name__)

POLL_TIMEOUT_MESSAGE = "Task did not complete within the expected time"


class PollState(str, Enum):
    """Lifecycle of a single poll sequence."""

    NOT_STARTED = "not_started"
    FETCHING = "fetching"
    EMITTED = "emitted"
    CONTINUING = "continuing"
    TERMINAL = "terminal"
    CANCELLED = "cancelled"
    ERRORED = "errored"

    @property
    def is_finished(self) -> bool:
        return self in (PollState.TERMINAL, PollState.CANCELLED, PollState.ERRORED)


class TaskStatusPoller:
    """Fetches task status on a fixed interval until the task reaches a terminal state.

    The poller only advances when pulled: each ``pull()`` sleeps for ``interval`` if a
    non-terminal status was emitted before, checks the cancellation signal, then fetches
    exactly one status. The sequence ends after a ``completed`` or ``failed`` status and
    fails with ``PollTimeoutError`` once ``max_attempts`` statuses have been fetched
    without reaching one.
    """

    def __init__(
        self,
        task_id: str,
        fetch_status: Callable[[str], Awaitable[TaskStatus]],
        interval: float = DEFAULT_POLL_INTERVAL,
        max_attempts: int = DEFAULT_MAX_POLL_ATTEMPTS,
        on_status: Optional[TaskStatusCallback] = None,
        cancel_event: Optional[asyncio.Event] = None,
    ) -> None:
        self.task_id = task_id
        self._fetch_status = fetch_status
        self._interval = interval
        self._max_attempts = max_attempts
        self._on_status = on_status
        self._cancel_event = cancel_event
        self._state = PollState.NOT_STARTED
        self._attempts = 0

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def attempts(self) -> int:
        """Number of statuses fetched so far."""
        return self._attempts

    async def pull(self) -> TaskStatus:
        """Advance the sequence by one status.

        Raises ``StopAsyncIteration`` once the sequence is finished.
        """
        if self._state.is_finished:
            raise StopAsyncIteration

        if self._state is PollState.EMITTED:
            self._state = PollState.CONTINUING
            await asyncio.sleep(self._interval)

        if self._attempts >= self._max_attempts:
            self._state = PollState.ERRORED
            raise PollTimeoutError(POLL_TIMEOUT_MESSAGE)

        if self._cancel_event is not None and self._cancel_event.is_set():
            self._state = PollState.CANCELLED
            raise PollingCancelledError("Task polling cancelled")

        self._state = PollState.FETCHING
        try:
            status = await self._fetch_status(self.task_id)
        except BaseException:
            self._state = PollState.ERRORED
            raise
        self._attempts += 1
        logger.debug(
            "Task %s is %s (poll %d/%d)",
            self.task_id,
            status.status.value,
            self._attempts,
            self._max_attempts,
        )

        if self._on_status is not None:
            try:
                self._on_status(status)
            except BaseException:
                self._state = PollState.ERRORED
                raise

        self._state = PollState.TERMINAL if status.is_terminal else PollState.EMITTED
        return status

    def __aiter__(self) -> "TaskStatusPoller":
        return self

    async def __anext__(self) -> TaskStatus:
        return await self.pull()


class TaskStatusStream:
    """Cancellable, pull-based view of a task's status updates.

    Use it with ``async for``. After ``cancel()`` the next pull raises
    ``StreamCancelledError`` without fetching.
    """

    def __init__(self, task_id: str, poller: TaskStatusPoller) -> None:
        self.task_id = task_id
        self._poller = poller
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Stop the stream. Calling it again has no effect."""
        if not self._cancelled:
            logger.debug("Status stream for task %s cancelled", self.task_id)
        self._cancelled = True

    def __aiter__(self) -> "TaskStatusStream":
        return self

    async def __anext__(self) -> TaskStatus:
        if self._cancelled:
            raise StreamCancelledError("Task stream cancelled")
        return await self._poller.pull()
