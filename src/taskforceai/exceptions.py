"""Exception hierarchy for the TaskForceAI client library."""

from typing import Any, Optional


class TaskForceAIError(Exception):
    """Base exception for all TaskForceAI errors.

    ``status_code`` is set only when the failure came from a non-2xx HTTP response.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, **extra_data: Any) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.extra_data = extra_data

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "message": self.message,
            "status_code": self.status_code,
            "error_type": self.__class__.__name__,
            **self.extra_data,
        }


class ValidationError(TaskForceAIError):
    """Raised when a prompt or task identifier is invalid. No request is made."""

    pass


class APIError(TaskForceAIError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(self, message: str, status_code: int, **extra_data: Any) -> None:
        super().__init__(message, status_code=status_code, **extra_data)


class NetworkError(TaskForceAIError):
    """Raised when the HTTP exchange could not complete."""

    pass


class RequestTimeoutError(TaskForceAIError):
    """Raised when a request times out or its cancellation signal fires."""

    pass


class RetriesExhaustedError(TaskForceAIError):
    """Raised when a retryable request failed on every attempt."""

    def __init__(self, message: str, last_error: TaskForceAIError, **extra_data: Any) -> None:
        super().__init__(message, status_code=last_error.status_code, **extra_data)
        self.last_error = last_error


class SerializationError(TaskForceAIError):
    """Raised when a successful response body cannot be decoded."""

    pass


class PollTimeoutError(TaskForceAIError):
    """Raised when a task does not reach a terminal status within the attempt budget."""

    pass


class PollingCancelledError(TaskForceAIError):
    """Raised when polling observes its cancellation signal."""

    pass


class StreamCancelledError(TaskForceAIError):
    """Raised when a cancelled status stream is pulled."""

    pass


class TaskFailedError(TaskForceAIError):
    """Raised when the backend reports the task as failed."""

    def __init__(self, message: str, task_id: Optional[str] = None, **extra_data: Any) -> None:
        super().__init__(message, **extra_data)
        self.task_id = task_id
