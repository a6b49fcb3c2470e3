"""
Export System for todo lists

Renders the full record set of a list (unfiltered, in file order) as CSV,
JSON or plain text. Exporters are pure transformations; only ExportManager
touches the filesystem.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from enum import Enum
from pathlib import Path
from typing import Dict, List, Optional, Union

from .exceptions import ListNotWritableError, UnsupportedExportFormatError
from .storage import FIELD_NAMES
from .todo import Task


logger = logging.getLogger(__name__)

TEXT_HEADER = "ID | Description | Due | Priority | Tags | Status | Recurrence"
TEXT_RULE = "-" * 67


class ExportFormat(Enum):
    """Supported export formats"""
    CSV = "csv"
    JSON = "json"
    TXT = "txt"

    @classmethod
    def parse(cls, value: Union[str, "ExportFormat"]) -> "ExportFormat":
        if isinstance(value, cls):
            return value
        try:
            return cls((value or "").strip().lower().lstrip("-"))
        except ValueError:
            raise UnsupportedExportFormatError(value) from None


class BaseExporter(ABC):
    """Abstract base class for exporters"""

    @abstractmethod
    def export_tasks(self, tasks: List[Task]) -> str:
        """Export tasks to string format"""
        pass

    @abstractmethod
    def get_file_extension(self) -> str:
        """Get recommended file extension"""
        pass


class CSVExporter(BaseExporter):
    """Export to CSV format.

    Fields are joined with commas and not quoted: descriptions never contain
    delimiters, and the tag list keeps its raw comma-joined form.
    """

    def export_tasks(self, tasks: List[Task]) -> str:
        rows = [",".join(FIELD_NAMES)]
        for task in tasks:
            record = task.to_dict()
            rows.append(",".join(str(record[name]) for name in FIELD_NAMES))
        return "\n".join(rows) + "\n"

    def get_file_extension(self) -> str:
        return "csv"


class JSONExporter(BaseExporter):
    """Export to a JSON array with one object per task"""

    def export_tasks(self, tasks: List[Task]) -> str:
        return json.dumps([task.to_dict() for task in tasks], indent=2, ensure_ascii=False) + "\n"

    def get_file_extension(self) -> str:
        return "json"


def format_text_line(task: Task) -> str:
    """``[id] description | due | priority | tags | status | recurrence``"""
    return (
        f"[{task.id}] {task.description} | {task.due_text} | {task.priority.value} | "
        f"{task.tags_text} | {task.status.value} | {task.recurrence.value}"
    )


class TextExporter(BaseExporter):
    """Export to the plain text listing shape"""

    def export_tasks(self, tasks: List[Task]) -> str:
        lines = [TEXT_HEADER, TEXT_RULE]
        lines.extend(format_text_line(task) for task in tasks)
        return "\n".join(lines) + "\n"

    def get_file_extension(self) -> str:
        return "txt"


class ExportManager:
    """Manages different export formats and operations"""

    def __init__(self):
        self.exporters: Dict[ExportFormat, BaseExporter] = {
            ExportFormat.CSV: CSVExporter(),
            ExportFormat.JSON: JSONExporter(),
            ExportFormat.TXT: TextExporter(),
        }

    def render(self, tasks: List[Task], format: Union[str, ExportFormat]) -> str:
        """Render tasks in the given format without writing anything"""
        export_format = ExportFormat.parse(format)
        return self.exporters[export_format].export_tasks(tasks)

    def export_tasks(
        self,
        tasks: List[Task],
        format: Union[str, ExportFormat],
        output_path: Optional[Union[str, Path]] = None,
    ) -> str:
        """Export tasks in specified format, writing to ``output_path`` if given"""
        content = self.render(tasks, format)

        if output_path:
            self._write_to_file(content, Path(output_path))

        return content

    def get_supported_formats(self) -> List[str]:
        return [fmt.value for fmt in self.exporters]

    def get_file_extension(self, format: Union[str, ExportFormat]) -> str:
        return self.exporters[ExportFormat.parse(format)].get_file_extension()

    def _write_to_file(self, content: str, file_path: Path):
        try:
            os.makedirs(file_path.parent, exist_ok=True)
            with open(file_path, "w", encoding="utf-8") as f:
                f.write(content)
        except OSError as e:
            raise ListNotWritableError(file_path, e) from e
        logger.debug(f"Wrote export to {file_path}")
