"""
JSON file storage backend.

Persists the whole school database as a single JSON document. Every
mutation rewrites the file through a temporary sibling and os.replace(),
so readers never see a partially written database.
"""

import os
import tempfile
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.errors import StorageError
from src.logger import get_logger
from src.models import AnswerKey, Exam, SchoolClass, Student, Submission, Teacher
from src.storage.memory import InMemoryStorage

logger = get_logger(__name__)

SCHEMA_VERSION = 1


class DatabaseMeta(BaseModel):
    """Metadata block of the database document."""

    version: int = SCHEMA_VERSION


class Database(BaseModel):
    """Layout of the JSON database document."""

    model_config = ConfigDict(populate_by_name=True)

    classes: list[SchoolClass] = Field(default_factory=list)
    students: list[Student] = Field(default_factory=list)
    teachers: list[Teacher] = Field(default_factory=list)
    exams: list[Exam] = Field(default_factory=list)
    answer_keys: list[AnswerKey] = Field(default_factory=list)
    submissions: list[Submission] = Field(default_factory=list)
    meta: DatabaseMeta = Field(default_factory=DatabaseMeta, alias="_meta")


class JsonFileStorage(InMemoryStorage):
    """
    Storage backend backed by one JSON file.

    The file is read once on construction. A missing file is an empty
    database; it is created on the first write.
    """

    def __init__(self, path: Path | str):
        """
        Initialize the storage.

        Args:
            path: Location of the JSON database file.

        Raises:
            StorageError: If the file exists but cannot be read or decoded.
        """
        self._path = Path(path) if isinstance(path, str) else path
        super().__init__()
        self._load()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> None:
        """Replace in-memory state with the contents of the file."""
        self._reset()
        if not self._path.exists():
            logger.info("No database at %s, starting empty", self._path)
            return

        try:
            raw = self._path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"Cannot read database file '{self._path}': {e}", cause=e) from e
        except UnicodeDecodeError as e:
            raise StorageError(f"Corrupt database file '{self._path}': {e}", cause=e) from e

        try:
            database = Database.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Corrupt database file '{self._path}': {e}", cause=e) from e

        if database.meta.version != SCHEMA_VERSION:
            raise StorageError(
                f"Unsupported database version {database.meta.version} in '{self._path}' "
                f"(expected {SCHEMA_VERSION})"
            )

        self._classes = {c.id: c for c in database.classes}
        self._students = {s.id: s for s in database.students}
        self._teachers = {t.id: t for t in database.teachers}
        self._exams = {e.id: e for e in database.exams}
        self._answer_keys = {k.id: k for k in database.answer_keys}
        self._submissions = {s.id: s for s in database.submissions}

    def _snapshot(self) -> Database:
        return Database(
            classes=list(self._classes.values()),
            students=list(self._students.values()),
            teachers=list(self._teachers.values()),
            exams=list(self._exams.values()),
            answer_keys=list(self._answer_keys.values()),
            submissions=list(self._submissions.values()),
        )

    def _commit(self) -> None:
        """
        Write the current state to disk.

        On failure the in-memory state is reloaded from the file so it
        matches what was last written, then StorageError is raised.
        """
        content = self._snapshot().model_dump_json(by_alias=True, indent=2)

        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(content)
                os.replace(tmp_name, self._path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            self._load()
            raise StorageError(f"Cannot write database file '{self._path}': {e}", cause=e) from e

        logger.debug("Wrote database to %s", self._path)
