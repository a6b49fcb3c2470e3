"""Exception hierarchy for the todo list core."""

from typing import Optional


class TodoListError(Exception):
    """Base exception for all todo list operations."""
    pass


class ValidationError(TodoListError):
    """User input was rejected before any change was applied."""
    pass


class InvalidDateError(ValidationError):
    """A date is not a canonical YYYY-MM-DD calendar date."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(f"Invalid due date: {value} (use YYYY-MM-DD)")


class InvalidRecurrenceError(ValidationError):
    """Recurrence outside none, daily, weekly, monthly, yearly."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid recurrence: {value} (must be one of none, daily, weekly, monthly, yearly)"
        )


class InvalidPriorityError(ValidationError):
    """Priority outside high, medium, low, none."""

    def __init__(self, value: str):
        self.value = value
        super().__init__(
            f"Invalid priority: {value} (must be one of high, medium, low, none)"
        )


class InvalidUnitError(ValidationError):
    """Date arithmetic was asked for an unsupported interval."""

    def __init__(self, unit: str):
        self.unit = unit
        super().__init__(f"Cannot compute next date for interval '{unit}'")


class MissingRequiredFieldError(ValidationError):
    """A required argument was absent or empty."""

    def __init__(self, field_name: str):
        self.field_name = field_name
        super().__init__(f"Missing required field: {field_name}")


class InvalidListNameError(ValidationError):
    """List names map to file names and may not escape the data directory."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"Invalid list name: '{name}'")


class InvalidSortKeyError(ValidationError):
    """Sort key outside due, priority, id."""

    def __init__(self, key: str):
        self.key = key
        super().__init__(f"Invalid sort key: {key} (must be one of due, priority, id)")


class UnsupportedExportFormatError(ValidationError):
    """Export format outside csv, json, txt."""

    def __init__(self, fmt: str):
        self.format = fmt
        super().__init__(f"Unknown export format: {fmt} (must be one of csv, json, txt)")


class TaskAlreadyDoneError(ValidationError):
    """Tasks only move from Incomplete to Done once."""

    def __init__(self, task_id: int):
        self.task_id = task_id
        super().__init__(f"Task [{task_id}] is already Done.")


class TaskNotFoundError(TodoListError):
    """No record with the requested id exists in the list."""

    def __init__(self, task_id: int, list_name: Optional[str] = None):
        self.task_id = task_id
        self.list_name = list_name
        if list_name:
            message = f"Task id {task_id} not found in list '{list_name}'."
        else:
            message = f"Task id {task_id} not found."
        super().__init__(message)


class CorruptRecordError(TodoListError):
    """A stored line could not be decoded into a task."""

    def __init__(self, reason: str, line: str, line_number: Optional[int] = None):
        self.reason = reason
        self.line = line
        self.line_number = line_number
        where = f" on line {line_number}" if line_number is not None else ""
        super().__init__(f"Corrupt record{where}: {reason}")


class ListNotWritableError(TodoListError):
    """The list directory or one of its files could not be created or written."""

    def __init__(self, path, cause: Optional[BaseException] = None):
        self.path = path
        self.cause = cause
        detail = f": {cause}" if cause else ""
        super().__init__(f"Cannot write {path}{detail}")


class DuplicateTaskIdError(TodoListError):
    """A write would store two records with the same id."""

    def __init__(self, list_name: str, task_ids):
        self.list_name = list_name
        self.task_ids = sorted(task_ids)
        ids = ", ".join(str(task_id) for task_id in self.task_ids)
        super().__init__(f"Duplicate task ids in list '{list_name}': {ids}")
