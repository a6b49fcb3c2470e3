"""
Recurring task expansion

When a recurring task is completed, its next instance is generated from it:
same description, priority, tags and recurrence, due one interval later, and
Incomplete. A task without a usable due date has no anchor and produces no
next instance.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .todo import Task, TaskStatus
from .utils.datetime import add_interval, format_date, is_valid_date


logger = logging.getLogger(__name__)


class RecurrenceOutcome(Enum):
    """What happened to the recurrence when a task was completed"""
    NOT_RECURRING = "not_recurring"
    CREATED = "created"
    NO_DUE_DATE = "no_due_date"
    INVALID_DUE_DATE = "invalid_due_date"


@dataclass
class RecurrencePlan:
    """Result of evaluating a completed task's recurrence"""
    outcome: RecurrenceOutcome
    next_due: Optional[str] = None


def plan_next_occurrence(task: Task) -> RecurrencePlan:
    """Decide whether ``task`` spawns a next instance and when it is due."""
    if not task.recurrence.is_recurring:
        return RecurrencePlan(RecurrenceOutcome.NOT_RECURRING)

    if task.due is None:
        return RecurrencePlan(RecurrenceOutcome.NO_DUE_DATE)

    if not is_valid_date(task.due):
        logger.warning(f"Task {task.id} has invalid due date '{task.due}'; not recurring")
        return RecurrencePlan(RecurrenceOutcome.INVALID_DUE_DATE)

    next_due = add_interval(task.due_date, task.recurrence)
    return RecurrencePlan(RecurrenceOutcome.CREATED, format_date(next_due))


def generate_next_instance(task: Task, new_id: int, next_due: str) -> Task:
    """Clone a completed recurring task into its next Incomplete instance."""
    return task.copy(id=new_id, due=next_due, status=TaskStatus.INCOMPLETE)
