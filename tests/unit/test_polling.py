"""Unit tests for task status polling and streams."""

import asyncio
from typing import Optional
from unittest.mock import AsyncMock

import pytest

from taskforceai import (
    APIError,
    PollingCancelledError,
    PollState,
    PollTimeoutError,
    StreamCancelledError,
    TaskStatus,
    TaskStatusPoller,
    TaskStatusStream,
)


def status(state: str, result: Optional[str] = None, error: Optional[str] = None) -> TaskStatus:
    return TaskStatus(task_id="task", status=state, result=result, error=error)


def fetcher(*statuses: TaskStatus) -> AsyncMock:
    """Fetch mock that returns ``statuses`` in order, repeating the last one."""
    queue = list(statuses)

    async def fetch(task_id: str) -> TaskStatus:
        return queue.pop(0) if len(queue) > 1 else queue[0]

    return AsyncMock(side_effect=fetch)


async def collect(poller: TaskStatusPoller) -> list[TaskStatus]:
    return [item async for item in poller]


class TestTaskStatusPoller:
    """Test the poll state machine."""

    async def test_yields_until_terminal_status(self) -> None:
        fetch = fetcher(status("processing"), status("processing"), status("completed", "done"))
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10)

        statuses = await collect(poller)

        assert [s.status.value for s in statuses] == ["processing", "processing", "completed"]
        assert fetch.await_count == 3
        assert poller.state is PollState.TERMINAL
        assert poller.attempts == 3

    async def test_failed_status_ends_sequence(self) -> None:
        fetch = fetcher(status("failed", error="boom"))
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10)

        statuses = await collect(poller)

        assert len(statuses) == 1
        assert statuses[0].error == "boom"
        fetch.assert_awaited_once_with("task")

    async def test_observer_called_in_fetch_order(self) -> None:
        fetch = fetcher(status("processing"), status("completed", "done"))
        seen: list[str] = []
        poller = TaskStatusPoller(
            "task", fetch, interval=0, max_attempts=5, on_status=lambda s: seen.append(s.status)
        )

        await collect(poller)

        assert seen == ["processing", "completed"]

    async def test_exhausted_attempts_raise_after_last_fetch(self) -> None:
        fetch = fetcher(status("processing"))
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=3)

        assert (await poller.pull()).status == "processing"
        assert (await poller.pull()).status == "processing"
        assert (await poller.pull()).status == "processing"
        with pytest.raises(PollTimeoutError, match="did not complete within the expected time"):
            await poller.pull()

        assert fetch.await_count == 3
        assert poller.state is PollState.ERRORED

    async def test_sleeps_between_fetches_but_not_after_terminal(self, no_sleep: AsyncMock) -> None:
        fetch = fetcher(status("processing"), status("processing"), status("completed", "ok"))
        poller = TaskStatusPoller("task", fetch, interval=2.0, max_attempts=10)

        await collect(poller)

        assert [call.args[0] for call in no_sleep.await_args_list] == [2.0, 2.0]

    async def test_cancel_event_checked_before_fetch(self) -> None:
        fetch = fetcher(status("processing"))
        cancel = asyncio.Event()
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10, cancel_event=cancel)

        await poller.pull()
        cancel.set()
        with pytest.raises(PollingCancelledError, match="Task polling cancelled"):
            await poller.pull()

        assert fetch.await_count == 1
        assert poller.state is PollState.CANCELLED

    async def test_preset_cancel_event_prevents_any_fetch(self) -> None:
        fetch = fetcher(status("processing"))
        cancel = asyncio.Event()
        cancel.set()
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10, cancel_event=cancel)

        with pytest.raises(PollingCancelledError):
            await poller.pull()

        fetch.assert_not_awaited()

    async def test_fetch_errors_propagate_and_end_sequence(self) -> None:
        fetch = AsyncMock(side_effect=APIError("Not found", status_code=404))
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10)

        with pytest.raises(APIError, match="Not found"):
            await poller.pull()

        assert poller.state is PollState.ERRORED
        assert await collect(poller) == []

    async def test_observer_error_ends_sequence(self) -> None:
        fetch = fetcher(status("completed", "ok"))

        def observer(item: TaskStatus) -> None:
            raise RuntimeError("observer broke")

        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10, on_status=observer)

        with pytest.raises(RuntimeError, match="observer broke"):
            await poller.pull()

        assert poller.state is PollState.ERRORED
        assert await collect(poller) == []
        fetch.assert_awaited_once()

    async def test_finished_poller_is_not_restartable(self) -> None:
        fetch = fetcher(status("completed", "done"))
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=10)

        assert len(await collect(poller)) == 1
        assert await collect(poller) == []
        fetch.assert_awaited_once()

    async def test_zero_attempts_fails_without_fetching(self) -> None:
        fetch = fetcher(status("processing"))
        poller = TaskStatusPoller("task", fetch, interval=0, max_attempts=0)

        with pytest.raises(PollTimeoutError):
            await poller.pull()

        fetch.assert_not_awaited()


class TestTaskStatusStream:
    """Test the cancellable stream wrapper."""

    async def test_iterates_all_statuses(self) -> None:
        fetch = fetcher(status("processing"), status("completed", "ok"))
        stream = TaskStatusStream("task", TaskStatusPoller("task", fetch, interval=0))

        received = [item async for item in stream]

        assert stream.task_id == "task"
        assert [s.status.value for s in received] == ["processing", "completed"]

    async def test_cancel_fails_next_pull_without_fetching(self) -> None:
        fetch = fetcher(status("processing"))
        stream = TaskStatusStream("task", TaskStatusPoller("task", fetch, interval=0))

        first = await stream.__anext__()
        assert first.status == "processing"

        stream.cancel()
        with pytest.raises(StreamCancelledError, match="Task stream cancelled"):
            await stream.__anext__()

        assert fetch.await_count == 1

    async def test_cancel_is_idempotent(self) -> None:
        fetch = fetcher(status("completed", "ok"))
        stream = TaskStatusStream("task", TaskStatusPoller("task", fetch, interval=0))

        stream.cancel()
        stream.cancel()

        assert stream.cancelled is True
        with pytest.raises(StreamCancelledError):
            await stream.__anext__()
        with pytest.raises(StreamCancelledError):
            await stream.__anext__()
        fetch.assert_not_awaited()

    async def test_cancel_inside_async_for(self) -> None:
        fetch = fetcher(status("processing"))
        stream = TaskStatusStream("task", TaskStatusPoller("task", fetch, interval=0))
        received: list[TaskStatus] = []

        with pytest.raises(StreamCancelledError):
            async for item in stream:
                received.append(item)
                stream.cancel()

        assert len(received) == 1
