"""Remote task service implementations."""

from .base import RemoteTaskService
from .file import FileTaskService
from .http import HttpTaskService
from .memory import InMemoryTaskService

__all__ = ["FileTaskService", "HttpTaskService", "InMemoryTaskService", "RemoteTaskService"]
