"""
Query Engine for todo lists

Filtering, sorting and keyword search over a loaded set of tasks. Filters are
AND-combined; sorting is stable so ties keep their original file order.
"""

import logging
from dataclasses import dataclass
from datetime import date, timedelta
from enum import Enum
from typing import Callable, List, Optional, Union

from .exceptions import InvalidSortKeyError, MissingRequiredFieldError
from .todo import Task
from .utils.datetime import today as current_date


logger = logging.getLogger(__name__)

WEEK_WINDOW_DAYS = 7


class SortKey(Enum):
    """Supported sort orders for viewing a list"""
    DUE = "due"
    PRIORITY = "priority"
    ID = "id"

    @classmethod
    def parse(cls, value: Union[str, "SortKey", None]) -> Optional["SortKey"]:
        if value is None or isinstance(value, cls):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise InvalidSortKeyError(value) from None


class DueBucket(Enum):
    """Named relative due-date filters"""
    TODAY = "today"
    OVERDUE = "overdue"
    WEEK = "week"


@dataclass
class TaskFilter:
    """Criteria for viewing a list. Unset fields do not filter."""
    priority: Optional[str] = None
    tag: Optional[str] = None
    due: Optional[str] = None
    status: Optional[str] = None

    def is_empty(self) -> bool:
        return not any([self.priority, self.tag, self.due, self.status])


def matches_priority(task: Task, priority: str) -> bool:
    return task.priority.value == priority.strip().lower()


def matches_status(task: Task, status: str) -> bool:
    return task.status.value.lower() == status.strip().lower()


def matches_tag(task: Task, tag: str) -> bool:
    """Exact membership in the tag set, or a substring of the raw tag text."""
    needle = tag.strip().lower()
    tokens = [token.lower() for token in task.tags]
    return needle in tokens or needle in task.tags_text.lower()


def matches_due(task: Task, due_filter: str, reference: date) -> bool:
    """Match a due bucket (today, overdue, week) or an exact due date.

    Tasks without a due date never match.
    """
    if task.due is None:
        return False

    bucket_name = due_filter.strip().lower()
    try:
        bucket = DueBucket(bucket_name)
    except ValueError:
        return task.due == due_filter.strip()

    due = task.due_date
    if due is None:
        return False

    if bucket is DueBucket.TODAY:
        return due == reference
    elif bucket is DueBucket.OVERDUE:
        return task.is_overdue(reference)
    elif bucket is DueBucket.WEEK:
        return reference <= due <= reference + timedelta(days=WEEK_WINDOW_DAYS)

    return False


def _due_sort_key(task: Task):
    # Missing (or unreadable) due dates sort last
    due = task.due_date
    return (due is None, due or date.max)


_SORT_KEYS = {
    SortKey.DUE: _due_sort_key,
    SortKey.PRIORITY: lambda task: task.priority.rank,
    SortKey.ID: lambda task: task.id,
}


class QueryEngine:
    """Filters, sorts and searches tasks."""

    def __init__(self, clock: Callable[[], date] = current_date):
        self.clock = clock

    def filter(self, tasks: List[Task], criteria: Optional[TaskFilter] = None) -> List[Task]:
        """Keep tasks matching every supplied criterion, in original order."""
        if criteria is None or criteria.is_empty():
            return list(tasks)

        reference = self.clock()
        result = []
        for task in tasks:
            if criteria.priority and not matches_priority(task, criteria.priority):
                continue
            if criteria.status and not matches_status(task, criteria.status):
                continue
            if criteria.tag and not matches_tag(task, criteria.tag):
                continue
            if criteria.due and not matches_due(task, criteria.due, reference):
                continue
            result.append(task)
        return result

    def sort(self, tasks: List[Task], key: Union[str, SortKey, None] = None) -> List[Task]:
        """Stable sort by due, priority or id; no key keeps file order."""
        sort_key = SortKey.parse(key)
        if sort_key is None:
            return list(tasks)
        return sorted(tasks, key=_SORT_KEYS[sort_key])

    def view(
        self,
        tasks: List[Task],
        criteria: Optional[TaskFilter] = None,
        sort: Union[str, SortKey, None] = None,
    ) -> List[Task]:
        """Filter then sort."""
        sort_key = SortKey.parse(sort)
        selected = self.filter(tasks, criteria)
        logger.debug(f"View selected {len(selected)} of {len(tasks)} tasks")
        return self.sort(selected, sort_key)

    def search(self, tasks: List[Task], query: str) -> List[Task]:
        """Case-insensitive substring search over description and tags."""
        if not query or not query.strip():
            raise MissingRequiredFieldError("query")

        needle = query.lower()
        return [
            task for task in tasks
            if needle in task.description.lower() or needle in task.tags_text.lower()
        ]
