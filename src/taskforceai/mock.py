"""Local stand-in for the API used when the client runs in mock mode."""

import logging
import uuid
from typing import Any

from taskforceai.exceptions import TaskForceAIError

logger = logging.getLogger(__name__)

MOCK_RESULT = "This is a mock response. Configure your API key to get real results."


class MockBackend:
    """Fabricates task lifecycle responses without network I/O.

    A task reports ``processing`` on its first status lookup and ``completed`` with
    ``MOCK_RESULT`` on every lookup after that.
    """

    def __init__(self) -> None:
        self._observations: dict[str, int] = {}

    def respond(self, endpoint: str, method: str = "GET") -> Any:
        if method == "POST" and endpoint == "/run":
            task_id = f"mock-{uuid.uuid4().hex[:8]}"
            self._observations[task_id] = 0
            logger.debug("Mock task %s created", task_id)
            return {"taskId": task_id, "status": "processing"}

        if method == "GET" and endpoint.startswith("/status/"):
            task_id = endpoint.rsplit("/", 1)[-1]
            count = self._observations.get(task_id, 0)
            self._observations[task_id] = count + 1
            if count < 1:
                return {
                    "taskId": task_id,
                    "status": "processing",
                    "message": "Mock task processing...",
                }
            return {"taskId": task_id, "status": "completed", "result": MOCK_RESULT}

        if method == "GET" and endpoint.startswith("/results/"):
            task_id = endpoint.rsplit("/", 1)[-1]
            return {"taskId": task_id, "status": "completed", "result": MOCK_RESULT}

        raise TaskForceAIError(f"Mock mode does not support {method} {endpoint}")

    def observations(self, task_id: str) -> int:
        """Number of status lookups made for ``task_id``."""
        return self._observations.get(task_id, 0)
