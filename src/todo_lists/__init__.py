"""Todo Lists - named, file-backed task lists with recurrence and export."""

__version__ = "0.1.0"

from .todo import Task, TaskStatus, Priority, Recurrence
from .storage import ListStore, TaskRecordFormat
from .manager import TaskManager, CompletionResult, ArchiveResult

__all__ = [
    "Task",
    "TaskStatus",
    "Priority",
    "Recurrence",
    "ListStore",
    "TaskRecordFormat",
    "TaskManager",
    "CompletionResult",
    "ArchiveResult",
    "__version__",
]
