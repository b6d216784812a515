"""Exception types raised by the todo client.

Everything the HTTP layer can go wrong with ends up as a TaskApiError
subclass; the store catches these at its operation boundary.
"""
from typing import Optional


class TodoClientError(Exception):
    """Base class for all todo client errors."""


class ValidationError(TodoClientError):
    """Raised when input is rejected before any request is sent."""


class UnknownTaskError(TodoClientError):
    """Raised when an update references a task the client has never seen."""

    def __init__(self, task_id):
        super().__init__(f"unknown task id {task_id!r}")
        self.task_id = task_id


class TaskApiError(TodoClientError):
    """A remote call to the /tasks API failed."""


class ApiTransportError(TaskApiError):
    """The server could not be reached (DNS, connect, timeout...)."""


class ApiStatusError(TaskApiError):
    def __init__(self, status_code: int, detail: Optional[str] = None):
        msg = f"server returned HTTP {status_code}"
        if detail:
            msg = f"{msg}: {detail}"
        super().__init__(msg)
        self.status_code = status_code
        self.detail = detail


class ApiPayloadError(TaskApiError):
    """The response body was not JSON or did not look like a task."""
