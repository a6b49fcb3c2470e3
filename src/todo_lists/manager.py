"""Task lifecycle operations for a single todo list.

Every operation validates its input completely before touching the list file.
Mutations other than add compute the full next state in memory and publish it
with one atomic rewrite, all while holding the list's advisory lock.
"""

import logging
from dataclasses import dataclass, field
from datetime import date
from pathlib import Path
from typing import Callable, List, Optional, Union

from .exceptions import (
    InvalidDateError,
    MissingRequiredFieldError,
    TaskAlreadyDoneError,
    TaskNotFoundError,
)
from .export import ExportFormat, ExportManager
from .query_engine import QueryEngine, SortKey, TaskFilter
from .recurring import RecurrenceOutcome, generate_next_instance, plan_next_occurrence
from .storage import ListStore
from .todo import (
    NONE_SENTINEL,
    Priority,
    Recurrence,
    Task,
    TaskStatus,
    sanitize_tags,
    sanitize_text,
)
from .utils.datetime import is_valid_date, today as current_date


logger = logging.getLogger(__name__)


@dataclass
class CompletionResult:
    """Outcome of completing a task."""
    task: Task
    outcome: RecurrenceOutcome
    next_task: Optional[Task] = None


@dataclass
class ArchiveResult:
    """Outcome of archiving a list."""
    archived: List[Task] = field(default_factory=list)
    remaining: List[Task] = field(default_factory=list)
    archive_path: Optional[Path] = None


def normalize_due(value: Optional[str]) -> Optional[str]:
    """Validate a due date from user input; empty or ``none`` means no due date."""
    if value is None:
        return None
    value = value.strip()
    if not value or value.lower() == NONE_SENTINEL:
        return None
    if not is_valid_date(value):
        raise InvalidDateError(value)
    return value


def _require_description(value: Optional[str]) -> str:
    description = sanitize_text(value).strip() if value is not None else ""
    if not description:
        raise MissingRequiredFieldError("description")
    return description


class TaskManager:
    """Add, complete, delete, modify and archive tasks in one list."""

    def __init__(
        self,
        store: ListStore,
        clock: Callable[[], date] = current_date,
    ):
        self.store = store
        self.clock = clock
        self.query_engine = QueryEngine(clock)

    @property
    def list_name(self) -> str:
        return self.store.name

    def _find(self, tasks: List[Task], task_id: int) -> int:
        for index, task in enumerate(tasks):
            if task.id == task_id:
                return index
        raise TaskNotFoundError(task_id, self.list_name)

    # Mutations

    def add(
        self,
        description: str,
        due: Optional[str] = None,
        priority: Optional[str] = None,
        tags=None,
        recurrence: Optional[str] = None,
    ) -> Task:
        """Append a new Incomplete task and return it."""
        clean_description = _require_description(description)
        clean_due = normalize_due(due)
        clean_priority = Priority.parse(priority)
        clean_recurrence = Recurrence.parse(recurrence)
        clean_tags = sanitize_tags(tags)

        with self.store.locked():
            task = Task(
                id=self.store.next_id(),
                description=clean_description,
                due=clean_due,
                priority=clean_priority,
                tags=clean_tags,
                status=TaskStatus.INCOMPLETE,
                recurrence=clean_recurrence,
            )
            self.store.append(task)

        logger.info(f"Added task {task.id} to list '{self.list_name}'")
        return task

    def complete(self, task_id: int) -> CompletionResult:
        """Mark a task Done, spawning its next instance if it recurs."""
        with self.store.locked():
            tasks = self.store.load()
            index = self._find(tasks, task_id)
            task = tasks[index]
            if task.is_done:
                raise TaskAlreadyDoneError(task_id)

            completed = task.copy(status=TaskStatus.DONE)
            tasks[index] = completed

            plan = plan_next_occurrence(completed)
            next_task = None
            if plan.outcome is RecurrenceOutcome.CREATED:
                next_task = generate_next_instance(
                    completed, self.store.next_id(tasks), plan.next_due
                )
                tasks.append(next_task)

            self.store.rewrite_all(tasks)

        logger.info(f"Completed task {task_id} in list '{self.list_name}'")
        if next_task is not None:
            logger.info(f"Created recurring task {next_task.id} due {next_task.due}")
        return CompletionResult(task=completed, outcome=plan.outcome, next_task=next_task)

    def delete(self, task_id: int) -> Task:
        """Remove a task permanently and return it."""
        with self.store.locked():
            tasks = self.store.load()
            index = self._find(tasks, task_id)
            removed = tasks.pop(index)
            self.store.rewrite_all(tasks)

        logger.info(f"Deleted task {task_id} from list '{self.list_name}'")
        return removed

    def modify(
        self,
        task_id: int,
        description: Optional[str] = None,
        due: Optional[str] = None,
        priority: Optional[str] = None,
        tags=None,
        recurrence: Optional[str] = None,
    ) -> Task:
        """Update the supplied fields of a task; ``None`` leaves a field as is.

        Pass ``due="none"`` to clear a due date and ``tags=""`` to clear tags.
        Status and id cannot be changed here.
        """
        changes = {}
        if description is not None:
            changes["description"] = _require_description(description)
        if due is not None:
            changes["due"] = normalize_due(due)
        if priority is not None:
            changes["priority"] = Priority.parse(priority)
        if tags is not None:
            changes["tags"] = sanitize_tags(tags)
        if recurrence is not None:
            changes["recurrence"] = Recurrence.parse(recurrence)

        with self.store.locked():
            tasks = self.store.load()
            index = self._find(tasks, task_id)
            if not changes:
                return tasks[index]

            updated = tasks[index].copy(**changes)
            tasks[index] = updated
            self.store.rewrite_all(tasks)

        logger.info(f"Modified task {task_id} ({', '.join(changes)}) in list '{self.list_name}'")
        return updated

    def archive(self) -> ArchiveResult:
        """Move Done tasks to the archive file and keep the rest live."""
        with self.store.locked():
            tasks = self.store.load()
            done = [task for task in tasks if task.is_done]
            remaining = [task for task in tasks if not task.is_done]

            # Archive first: an interruption may duplicate records, never lose them
            if done:
                self.store.append_archive(done)
            self.store.rewrite_all(remaining)

        logger.info(f"Archived {len(done)} tasks from list '{self.list_name}'")
        return ArchiveResult(
            archived=done,
            remaining=remaining,
            archive_path=self.store.archive_path,
        )

    # Queries

    def tasks(self) -> List[Task]:
        return self.store.load()

    def archived_tasks(self) -> List[Task]:
        return self.store.load_archive()

    def view(
        self,
        criteria: Optional[TaskFilter] = None,
        sort: Union[str, SortKey, None] = None,
    ) -> List[Task]:
        """Filtered, sorted tasks of this list."""
        sort_key = SortKey.parse(sort)
        return self.query_engine.view(self.store.load(), criteria, sort_key)

    def search(self, query: str) -> List[Task]:
        """Tasks whose description or tags contain ``query``."""
        return self.query_engine.search(self.store.load(), query)

    def export(
        self,
        fmt: Union[str, ExportFormat],
        output_dir=".",
        exporter: Optional[ExportManager] = None,
    ) -> Path:
        """Write every task of the list to ``<list>.<format>`` in ``output_dir``."""
        export_format = ExportFormat.parse(fmt)
        exporter = exporter or ExportManager()
        extension = exporter.get_file_extension(export_format)
        output_path = Path(output_dir).expanduser() / f"{self.list_name}.{extension}"
        exporter.export_tasks(self.store.load(), export_format, output_path)
        logger.info(f"Exported list '{self.list_name}' to {output_path}")
        return output_path
