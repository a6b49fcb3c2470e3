"""Task data model for todo lists."""

from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional

from .exceptions import (
    InvalidPriorityError,
    InvalidRecurrenceError,
    CorruptRecordError,
)
from .utils.datetime import is_valid_date, parse_date


NONE_SENTINEL = "none"


class Priority(Enum):
    """Task priority levels."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    NONE = "none"

    @property
    def rank(self) -> int:
        """Sort rank: high=1, medium=2, low=3, anything else=4."""
        return _PRIORITY_RANK.get(self, 4)

    @classmethod
    def parse(cls, value: Optional[str]) -> "Priority":
        """Parse a priority case-insensitively; empty input means ``none``."""
        if isinstance(value, cls):
            return value
        if value is None or not value.strip():
            return cls.NONE
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidPriorityError(value) from None


_PRIORITY_RANK = {Priority.HIGH: 1, Priority.MEDIUM: 2, Priority.LOW: 3}


class TaskStatus(Enum):
    """Task status states. Tasks only ever move from INCOMPLETE to DONE."""
    INCOMPLETE = "Incomplete"
    DONE = "Done"

    @classmethod
    def parse(cls, value: str) -> "TaskStatus":
        """Parse a stored status case-insensitively."""
        if isinstance(value, cls):
            return value
        for status in cls:
            if status.value.lower() == (value or "").strip().lower():
                return status
        raise ValueError(f"Unknown status: {value}")


class Recurrence(Enum):
    """How often a task repeats once completed."""
    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"

    @property
    def is_recurring(self) -> bool:
        return self is not Recurrence.NONE

    @classmethod
    def parse(cls, value: Optional[str]) -> "Recurrence":
        """Parse a recurrence case-insensitively; empty input means ``none``."""
        if isinstance(value, cls):
            return value
        if value is None or not value.strip():
            return cls.NONE
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidRecurrenceError(value) from None


def sanitize_text(value: Optional[str]) -> str:
    """Replace record delimiters and line breaks with spaces."""
    if value is None:
        return ""
    return value.replace("\r", " ").replace("\n", " ").replace("|", " ")


def sanitize_tags(value) -> List[str]:
    """Normalize a comma separated string (or iterable) into tag tokens.

    Spaces are removed from every token, as are delimiters and line breaks;
    empty tokens are dropped.
    """
    if value is None:
        return []
    if isinstance(value, str):
        tokens = value.split(",")
    else:
        tokens = [token for item in value for token in str(item).split(",")]

    tags = []
    for token in tokens:
        cleaned = "".join(sanitize_text(token).split())
        if cleaned:
            tags.append(cleaned)
    return tags


@dataclass
class Task:
    """One record in a todo list.

    ``due`` holds the stored date text, or ``None`` for the ``none`` sentinel.
    It is kept as text so a hand-edited invalid date in a list file still
    loads and can be reported instead of silently dropped.
    """

    id: int
    description: str
    due: Optional[str] = None
    priority: Priority = Priority.NONE
    tags: List[str] = field(default_factory=list)
    status: TaskStatus = TaskStatus.INCOMPLETE
    recurrence: Recurrence = Recurrence.NONE

    @property
    def due_date(self) -> Optional[date]:
        """The due date, or None when absent or not a valid calendar date."""
        if self.due and is_valid_date(self.due):
            return parse_date(self.due)
        return None

    @property
    def due_text(self) -> str:
        return self.due or NONE_SENTINEL

    @property
    def tags_text(self) -> str:
        return ",".join(self.tags)

    @property
    def is_done(self) -> bool:
        return self.status is TaskStatus.DONE

    def is_overdue(self, reference: date) -> bool:
        """Past due and not yet Done. Completed tasks are never overdue."""
        due = self.due_date
        return due is not None and due < reference and not self.is_done

    def complete(self) -> None:
        """Mark the task as Done."""
        self.status = TaskStatus.DONE

    def copy(self, **changes) -> "Task":
        """Return a copy with ``changes`` applied (tags list is not shared)."""
        changes.setdefault("tags", list(self.tags))
        return replace(self, **changes)

    def to_dict(self) -> Dict[str, Any]:
        """Flat export shape: id as an integer, every other field as text."""
        return {
            "id": self.id,
            "description": self.description,
            "due": self.due_text,
            "priority": self.priority.value,
            "tags": self.tags_text,
            "status": self.status.value,
            "recurrence": self.recurrence.value,
        }

    @classmethod
    def from_fields(cls, fields: List[str]) -> "Task":
        """Build a task from the seven stored field strings.

        Raises:
            CorruptRecordError: If any field cannot be interpreted.
        """
        raw = "|".join(fields)
        if len(fields) != 7:
            raise CorruptRecordError(f"expected 7 fields, found {len(fields)}", raw)

        raw_id, description, due, priority, tags, status, recurrence = fields
        try:
            task_id = int(raw_id)
        except ValueError:
            raise CorruptRecordError(f"non-numeric id '{raw_id}'", raw) from None
        if task_id < 1:
            raise CorruptRecordError(f"id must be positive, got {task_id}", raw)

        try:
            return cls(
                id=task_id,
                description=description,
                due=None if due.strip().lower() in ("", NONE_SENTINEL) else due.strip(),
                priority=Priority.parse(priority),
                tags=tags.split(",") if tags else [],
                status=TaskStatus.parse(status),
                recurrence=Recurrence.parse(recurrence),
            )
        except (ValueError, InvalidPriorityError, InvalidRecurrenceError) as e:
            raise CorruptRecordError(str(e), raw) from e
