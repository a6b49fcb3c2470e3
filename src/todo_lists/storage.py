"""Storage layer for todo lists using pipe-delimited record files.

Each list lives in ``<data_dir>/<name>.todo`` with one task per line::

    # id|description|due|priority|tags|status|recurrence
    1|Finish report|2025-12-01|high|work,report|Incomplete|none

Completed tasks moved out by archiving go to ``<name>.archive`` in the same
record shape. Lines starting with ``#`` are comments and never data.
"""

import fcntl
import logging
import os
import stat
import tempfile
from collections import Counter
from contextlib import contextmanager
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from .exceptions import (
    CorruptRecordError,
    DuplicateTaskIdError,
    InvalidListNameError,
    ListNotWritableError,
)
from .todo import Task


logger = logging.getLogger(__name__)

DELIMITER = "|"
COMMENT_MARKER = "#"
FIELD_NAMES = ("id", "description", "due", "priority", "tags", "status", "recurrence")
HEADER = COMMENT_MARKER + " " + DELIMITER.join(FIELD_NAMES)
NEXT_ID_KEY = "next_id"

LIST_SUFFIX = ".todo"
ARCHIVE_SUFFIX = ".archive"
LOCK_SUFFIX = ".lock"


class TaskRecordFormat:
    """Handles conversion between Task objects and stored record lines."""

    @staticmethod
    def encode(task: Task) -> str:
        """Join the seven fields in their fixed order.

        Free text must already be sanitized; callers creating or modifying
        tasks run ``sanitize_text``/``sanitize_tags`` first.
        """
        return DELIMITER.join(
            [
                str(task.id),
                task.description,
                task.due_text,
                task.priority.value,
                task.tags_text,
                task.status.value,
                task.recurrence.value,
            ]
        )

    @staticmethod
    def decode(line: str, line_number: Optional[int] = None) -> Optional[Task]:
        """Parse a record line back into a Task.

        Returns None for blank and comment lines.

        Raises:
            CorruptRecordError: If the line is not a well-formed record.
        """
        line = line.rstrip("\r\n")
        if not line.strip() or line.startswith(COMMENT_MARKER):
            return None

        try:
            return Task.from_fields(line.split(DELIMITER))
        except CorruptRecordError as e:
            e.line_number = line_number
            raise

    @classmethod
    def decode_lines(
        cls, lines: Iterable[str], source: str = "", unique_ids: bool = True
    ) -> List[Task]:
        """Decode every record, skipping corrupt lines with a warning.

        With ``unique_ids`` a record repeating an earlier id is corrupt too;
        the first occurrence wins.
        """
        tasks = []
        seen = set()
        for number, line in enumerate(lines, start=1):
            try:
                task = cls.decode(line, number)
                if task is not None and unique_ids and task.id in seen:
                    raise CorruptRecordError(
                        f"duplicate id {task.id}", line.rstrip("\r\n"), number
                    )
            except CorruptRecordError as e:
                logger.warning(f"Skipping corrupt record in {source} line {number}: {e.reason}")
                continue
            if task is not None:
                seen.add(task.id)
                tasks.append(task)
        return tasks


def read_next_id_mark(lines: Iterable[str]) -> int:
    """The highest ``# next_id=N`` mark among comment lines, or 0."""
    mark = 0
    for line in lines:
        if not line.startswith(COMMENT_MARKER):
            continue
        key, _, value = line[len(COMMENT_MARKER):].strip().partition("=")
        if key != NEXT_ID_KEY:
            continue
        try:
            mark = max(mark, int(value))
        except ValueError:
            logger.warning(f"Ignoring unreadable id mark: {line.strip()}")
    return mark


def validate_list_name(name: str) -> str:
    """Reject list names that are empty or would escape the data directory."""
    if not name or not name.strip():
        raise InvalidListNameError(name or "")
    if name.startswith(".") or "/" in name or "\\" in name or os.sep in name:
        raise InvalidListNameError(name)
    return name


def atomic_write(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` via a temp file in the same directory.

    Readers observe either the old or the new file, never a partial one.
    """
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as tmp:
            tmp.write(content)
            tmp.flush()
            os.fsync(tmp.fileno())
        if path.exists():
            os.chmod(tmp_name, stat.S_IMODE(path.stat().st_mode))
        os.replace(tmp_name, path)
    finally:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)


class ListStore:
    """File-backed store for a single named todo list and its archive."""

    def __init__(self, data_dir, name: str):
        self.data_dir = Path(data_dir).expanduser()
        self.name = validate_list_name(name)

    @classmethod
    def open(cls, data_dir, name: str) -> "ListStore":
        """Resolve a list, creating its directory and file on first use."""
        store = cls(data_dir, name)
        store.ensure_exists()
        return store

    @classmethod
    def create(cls, data_dir, name: str) -> "ListStore":
        """Explicitly create a list; an existing list is left untouched."""
        return cls.open(data_dir, name)

    @staticmethod
    def list_names(data_dir) -> List[str]:
        """Names of all lists in ``data_dir``, sorted."""
        directory = Path(data_dir).expanduser()
        if not directory.exists():
            return []
        return sorted(path.stem for path in directory.glob(f"*{LIST_SUFFIX}"))

    @property
    def path(self) -> Path:
        return self.data_dir / f"{self.name}{LIST_SUFFIX}"

    @property
    def archive_path(self) -> Path:
        return self.data_dir / f"{self.name}{ARCHIVE_SUFFIX}"

    @property
    def lock_path(self) -> Path:
        return self.data_dir / f"{self.name}{LOCK_SUFFIX}"

    def ensure_exists(self) -> None:
        """Create the data directory and a header-only list file if missing."""
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            if not self.path.exists():
                with open(self.path, "w", encoding="utf-8") as f:
                    f.write(HEADER + "\n")
                logger.debug(f"Created list file {self.path}")
        except OSError as e:
            raise ListNotWritableError(self.path, e) from e

    def _read(self, path: Path, unique_ids: bool = True) -> List[Task]:
        if not path.exists():
            return []
        with open(path, "r", encoding="utf-8") as f:
            tasks = TaskRecordFormat.decode_lines(f, source=str(path), unique_ids=unique_ids)
        logger.debug(f"Loaded {len(tasks)} tasks from {path}")
        return tasks

    def load(self) -> List[Task]:
        """Load all well-formed tasks in file order."""
        return self._read(self.path)

    def load_archive(self) -> List[Task]:
        """Load archived tasks in file order."""
        return self._read(self.archive_path, unique_ids=False)

    def _next_id_mark(self) -> int:
        if not self.path.exists():
            return 0
        with open(self.path, "r", encoding="utf-8") as f:
            return read_next_id_mark(f)

    def next_id(self, tasks: Optional[List[Task]] = None) -> int:
        """The next unused id for this list, starting at 1.

        Ids of live and archived records are never handed out again, nor is
        any id below the ``next_id`` mark left by the last rewrite.
        """
        if tasks is None:
            tasks = self.load()
        used = [task.id for task in tasks] + [task.id for task in self.load_archive()]
        return max(max(used, default=0) + 1, self._next_id_mark())

    def _append_lines(self, path: Path, tasks: Iterable[Task]) -> None:
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            is_new = not path.exists()
            with open(path, "a", encoding="utf-8") as f:
                if is_new:
                    f.write(HEADER + "\n")
                for task in tasks:
                    f.write(TaskRecordFormat.encode(task) + "\n")
        except OSError as e:
            raise ListNotWritableError(path, e) from e

    def append(self, task: Task) -> None:
        """Append one record to the end of the list file."""
        self._append_lines(self.path, [task])
        logger.debug(f"Appended task {task.id} to {self.path}")

    def append_archive(self, tasks: List[Task]) -> None:
        """Append records to the archive file, creating it if needed."""
        self._append_lines(self.archive_path, tasks)
        logger.debug(f"Appended {len(tasks)} tasks to {self.archive_path}")

    def rewrite_all(self, tasks: List[Task]) -> None:
        """Atomically replace the list file with exactly ``tasks``.

        The header keeps a ``next_id`` mark so ids of records removed here
        stay retired.

        Raises:
            DuplicateTaskIdError: If two of ``tasks`` share an id.
            ListNotWritableError: If the file cannot be replaced.
        """
        counts = Counter(task.id for task in tasks)
        duplicates = [task_id for task_id, count in counts.items() if count > 1]
        if duplicates:
            raise DuplicateTaskIdError(self.name, duplicates)

        next_id = max(self.next_id(), self.next_id(tasks))
        lines = [HEADER, f"{COMMENT_MARKER} {NEXT_ID_KEY}={next_id}"]
        lines.extend(TaskRecordFormat.encode(task) for task in tasks)
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            atomic_write(self.path, "\n".join(lines) + "\n")
        except OSError as e:
            raise ListNotWritableError(self.path, e) from e
        logger.debug(f"Rewrote {self.path} with {len(tasks)} tasks")

    @contextmanager
    def locked(self) -> Iterator["ListStore"]:
        """Hold an advisory exclusive lock across a read-modify-write span.

        The lock lives in a sidecar file so atomic replacement of the list
        file itself does not release it.
        """
        try:
            self.data_dir.mkdir(parents=True, exist_ok=True)
            lock_file = open(self.lock_path, "a")
        except OSError as e:
            raise ListNotWritableError(self.lock_path, e) from e

        with lock_file:
            fcntl.flock(lock_file, fcntl.LOCK_EX)
            try:
                yield self
            finally:
                fcntl.flock(lock_file, fcntl.LOCK_UN)
