"""Tests for the record codec and list store."""

import fcntl
import os
import stat
import threading

import pytest

from todo_lists.exceptions import (
    CorruptRecordError,
    DuplicateTaskIdError,
    InvalidListNameError,
    ListNotWritableError,
    TodoListError,
)
from todo_lists.storage import HEADER, ListStore, TaskRecordFormat, read_next_id_mark
from todo_lists.todo import Priority, Recurrence, Task, TaskStatus


def make_task(task_id, **kwargs):
    kwargs.setdefault("description", f"Task {task_id}")
    return Task(id=task_id, **kwargs)


class TestTaskRecordFormat:
    """Tests for encoding and decoding record lines."""

    def test_encode_field_order(self):
        task = Task(
            id=7, description="Finish report", due="2025-12-01", priority=Priority.HIGH,
            tags=["work", "report"], status=TaskStatus.INCOMPLETE, recurrence=Recurrence.NONE,
        )
        assert TaskRecordFormat.encode(task) == "7|Finish report|2025-12-01|high|work,report|Incomplete|none"

    def test_encode_sentinels(self):
        assert TaskRecordFormat.encode(make_task(1, description="x")) == "1|x|none|none||Incomplete|none"

    def test_round_trip(self):
        task = Task(
            id=12, description="  Call mom, then dad ", due="2024-02-29", priority=Priority.LOW,
            tags=["family", "phone"], status=TaskStatus.DONE, recurrence=Recurrence.YEARLY,
        )
        assert TaskRecordFormat.decode(TaskRecordFormat.encode(task)) == task

    @pytest.mark.parametrize("tags", [["home work"], ["home work", "", "x"], [" padded "]])
    def test_round_trip_keeps_tags_verbatim(self, tags):
        task = Task(id=4, description="Fix sink", tags=tags)
        assert TaskRecordFormat.decode(TaskRecordFormat.encode(task)) == task

    def test_decode_skips_comments_and_blank_lines(self):
        assert TaskRecordFormat.decode(HEADER) is None
        assert TaskRecordFormat.decode("# anything") is None
        assert TaskRecordFormat.decode("   \n") is None

    def test_decode_is_case_insensitive_for_enums(self):
        task = TaskRecordFormat.decode("3|x|none|HIGH||done|Weekly\n")
        assert task.priority is Priority.HIGH
        assert task.status is TaskStatus.DONE
        assert task.recurrence is Recurrence.WEEKLY

    def test_decode_keeps_invalid_due_text(self):
        task = TaskRecordFormat.decode("3|x|2025-02-30|none||Incomplete|daily")
        assert task.due == "2025-02-30"
        assert task.due_date is None

    def test_decode_malformed_raises_with_line_number(self):
        with pytest.raises(CorruptRecordError) as excinfo:
            TaskRecordFormat.decode("3|only|four|fields", line_number=5)
        assert excinfo.value.line_number == 5

    def test_decode_lines_skips_malformed(self, caplog):
        lines = [
            HEADER,
            "1|good one|none|none||Incomplete|none",
            "this line is garbage",
            "2|good two|none|low||Done|none",
        ]
        tasks = TaskRecordFormat.decode_lines(lines, source="work.todo")

        assert [t.id for t in tasks] == [1, 2]
        assert "Skipping corrupt record" in caplog.text

    def test_decode_lines_skips_repeated_ids(self, caplog):
        lines = [
            "1|a|none|none||Incomplete|none",
            "1|a again|none|none||Incomplete|none",
            "2|b|none|none||Incomplete|none",
        ]
        tasks = TaskRecordFormat.decode_lines(lines, source="work.todo")

        assert [(t.id, t.description) for t in tasks] == [(1, "a"), (2, "b")]
        assert "duplicate id 1" in caplog.text

    def test_decode_lines_can_keep_repeated_ids(self):
        lines = ["1|a|none|none||Done|none", "1|a|none|none||Done|none"]
        assert len(TaskRecordFormat.decode_lines(lines, unique_ids=False)) == 2


class TestNextIdMark:
    """Tests for reading the retired-id mark from comment lines."""

    def test_reads_mark(self):
        assert read_next_id_mark([HEADER + "\n", "# next_id=8\n", "1|a|none|none||Done|none\n"]) == 8

    def test_missing_mark(self):
        assert read_next_id_mark([HEADER, "1|a|none|none||Done|none"]) == 0

    def test_unreadable_mark_is_ignored(self, caplog):
        assert read_next_id_mark(["# next_id=lots"]) == 0
        assert "Ignoring unreadable id mark" in caplog.text


class TestListStore:
    """Tests for the file-backed list store."""

    def test_open_creates_file_with_header(self, tmp_path):
        store = ListStore.open(tmp_path / "nested" / "dir", "home")

        assert store.path.exists()
        assert store.path.read_text() == HEADER + "\n"
        assert store.load() == []

    def test_open_existing_list_is_untouched(self, tmp_path):
        store = ListStore.open(tmp_path, "home")
        store.append(make_task(1))
        ListStore.open(tmp_path, "home")
        assert [t.id for t in store.load()] == [1]

    @pytest.mark.parametrize("name", ["", "   ", "../escape", "a/b", ".hidden"])
    def test_invalid_list_names(self, tmp_path, name):
        with pytest.raises(InvalidListNameError):
            ListStore(tmp_path, name)

    def test_next_id_empty(self, store):
        assert store.next_id() == 1

    def test_next_id_uses_max_not_count(self, store):
        store.append(make_task(3))
        store.append(make_task(1))
        assert store.next_id() == 4

    def test_next_id_counts_archived_records(self, store):
        store.append(make_task(1))
        store.append_archive([make_task(5, status=TaskStatus.DONE)])
        assert store.next_id() == 6

    def test_rewrite_retires_removed_ids(self, store, read_records):
        for task_id in (1, 2, 3):
            store.append(make_task(task_id))

        store.rewrite_all([make_task(1)])

        assert store.path.read_text().splitlines()[:2] == [HEADER, "# next_id=4"]
        assert read_records(store.path) == ["1|Task 1|none|none||Incomplete|none"]
        assert store.next_id() == 4

    def test_append_and_load_preserve_file_order(self, store):
        for task_id in (2, 1, 3):
            store.append(make_task(task_id))
        assert [t.id for t in store.load()] == [2, 1, 3]

    def test_load_skips_injected_malformed_line(self, store):
        store.append(make_task(1))
        with open(store.path, "a", encoding="utf-8") as f:
            f.write("broken|line\n")
        store.append(make_task(2))

        assert [t.id for t in store.load()] == [1, 2]

    def test_rewrite_all_replaces_contents(self, store, read_records):
        for task_id in (1, 2, 3):
            store.append(make_task(task_id))

        store.rewrite_all([make_task(3), make_task(1)])

        assert read_records(store.path) == [
            "3|Task 3|none|none||Incomplete|none",
            "1|Task 1|none|none||Incomplete|none",
        ]
        assert store.path.read_text().startswith(HEADER + "\n")

    def test_rewrite_all_leaves_no_temp_files(self, store):
        store.rewrite_all([make_task(1)])
        leftovers = [p.name for p in store.data_dir.iterdir() if p.name.endswith(".tmp")]
        assert leftovers == []

    def test_sequential_rewrites_always_leave_complete_records(self, store, read_records):
        first = [make_task(i, description=f"first {i}", tags=["a", "b"]) for i in range(1, 50)]
        second = [make_task(i, description=f"second {i}", due="2025-01-01") for i in range(1, 10)]

        for batch in (first, second):
            store.rewrite_all(batch)
            lines = read_records(store.path)
            assert len(lines) == len(batch)
            assert all(len(line.split("|")) == 7 for line in lines)
            assert store.path.read_text().endswith("\n")

    def test_rewrite_all_rejects_duplicate_ids(self, store):
        store.append(make_task(1))
        before = store.path.read_text()

        with pytest.raises(DuplicateTaskIdError) as excinfo:
            store.rewrite_all([make_task(1), make_task(2), make_task(1)])

        assert isinstance(excinfo.value, TodoListError)
        assert excinfo.value.task_ids == [1]
        assert store.path.read_text() == before

    def test_rewrite_keeps_file_mode(self, store):
        os.chmod(store.path, 0o640)
        store.rewrite_all([make_task(1)])
        assert stat.S_IMODE(store.path.stat().st_mode) == 0o640

    def test_rewrite_failure_keeps_original(self, store, monkeypatch):
        store.append(make_task(1))

        def fail(*args, **kwargs):
            raise OSError("disk full")

        monkeypatch.setattr("todo_lists.storage.os.replace", fail)
        with pytest.raises(ListNotWritableError):
            store.rewrite_all([make_task(9)])

        assert [t.id for t in store.load()] == [1]

    def test_append_archive_creates_and_appends(self, store):
        store.append_archive([make_task(1, status=TaskStatus.DONE)])
        store.append_archive([make_task(2, status=TaskStatus.DONE)])

        assert store.archive_path.read_text().startswith(HEADER + "\n")
        assert [t.id for t in store.load_archive()] == [1, 2]

    def test_load_archive_missing(self, store):
        assert store.load_archive() == []

    def test_list_names(self, tmp_path):
        ListStore.open(tmp_path, "work")
        ListStore.open(tmp_path, "home")
        (tmp_path / "work.archive").write_text("")
        assert ListStore.list_names(tmp_path) == ["home", "work"]

    def test_list_names_missing_dir(self, tmp_path):
        assert ListStore.list_names(tmp_path / "nope") == []

    def test_unwritable_directory(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        with pytest.raises(ListNotWritableError):
            ListStore.open(blocker / "data", "work")

    def test_locked_excludes_other_holders(self, store):
        entered = threading.Event()
        release = threading.Event()

        def holder():
            with store.locked():
                entered.set()
                release.wait(5)

        thread = threading.Thread(target=holder)
        thread.start()
        try:
            assert entered.wait(5)
            with open(store.lock_path, "a") as other:
                with pytest.raises(BlockingIOError):
                    fcntl.flock(other, fcntl.LOCK_EX | fcntl.LOCK_NB)
        finally:
            release.set()
            thread.join(5)

        with open(store.lock_path, "a") as other:
            fcntl.flock(other, fcntl.LOCK_EX | fcntl.LOCK_NB)
            fcntl.flock(other, fcntl.LOCK_UN)
