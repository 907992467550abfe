"""TaskForceAI Python Client Library.

An async, type-safe Python client for the TaskForceAI task orchestration API.
"""

import logging

from taskforceai._version import __version__, __version_info__
from taskforceai.client import Client, ClientBuilder, ClientConfig
from taskforceai.exceptions import (
    APIError,
    NetworkError,
    PollingCancelledError,
    PollTimeoutError,
    RequestTimeoutError,
    RetriesExhaustedError,
    SerializationError,
    StreamCancelledError,
    TaskFailedError,
    TaskForceAIError,
    ValidationError,
)
from taskforceai.files import File, FileListResponse
from taskforceai.mock import MOCK_RESULT
from taskforceai.polling import PollState, TaskStatusPoller, TaskStatusStream
from taskforceai.threads import (
    CreateThreadOptions,
    Thread,
    ThreadListResponse,
    ThreadMessage,
    ThreadMessagesResponse,
    ThreadRunOptions,
    ThreadRunResponse,
)
from taskforceai.transport import RequestOptions, Transport, TransportConfig
from taskforceai.types import (
    ImageAttachment,
    TaskResult,
    TaskState,
    TaskStatus,
    TaskSubmissionOptions,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "APIError",
    "Client",
    "ClientBuilder",
    "ClientConfig",
    "CreateThreadOptions",
    "File",
    "FileListResponse",
    "ImageAttachment",
    "MOCK_RESULT",
    "NetworkError",
    "PollState",
    "PollTimeoutError",
    "PollingCancelledError",
    "RequestOptions",
    "RequestTimeoutError",
    "RetriesExhaustedError",
    "SerializationError",
    "StreamCancelledError",
    "TaskFailedError",
    "TaskForceAIError",
    "TaskResult",
    "TaskState",
    "TaskStatus",
    "TaskStatusPoller",
    "TaskStatusStream",
    "TaskSubmissionOptions",
    "Thread",
    "ThreadListResponse",
    "ThreadMessage",
    "ThreadMessagesResponse",
    "ThreadRunOptions",
    "ThreadRunResponse",
    "Transport",
    "TransportConfig",
    "ValidationError",
    "__version__",
    "__version_info__",
]
