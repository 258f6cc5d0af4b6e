"""
Pytest configuration and fixtures.

Provides common test fixtures for all test modules.
"""

import tempfile
from datetime import date
from pathlib import Path
from typing import Generator

import pytest

from src.answer_key import AnswerKeyManager
from src.config import Settings, get_settings
from src.grading import GradingEngine, SubmissionManager
from src.models import Exam, SchoolClass, Student
from src.storage import InMemoryStorage


# ==============================================================================
# Directory Fixtures
# ==============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


# ==============================================================================
# Record Fixtures
# ==============================================================================


@pytest.fixture
def school_class() -> SchoolClass:
    """A sample class."""
    return SchoolClass(name="3rd Grade A", year=2024, course="Mathematics")


@pytest.fixture
def students(school_class: SchoolClass) -> list[Student]:
    """Two students enrolled in the sample class."""
    return [
        Student(name="Ana Souza", enrollment="2024001", class_id=school_class.id),
        Student(name="Bruno Lima", enrollment="2024002", class_id=school_class.id),
    ]


@pytest.fixture
def exam(school_class: SchoolClass) -> Exam:
    """A two-question exam for the sample class."""
    return Exam(
        class_id=school_class.id,
        title="Fractions Quiz",
        held_on=date(2024, 5, 10),
        question_count=2,
    )


@pytest.fixture
def storage(school_class: SchoolClass, students: list[Student], exam: Exam) -> InMemoryStorage:
    """In-memory storage seeded with the class, its students and the exam."""
    backend = InMemoryStorage()
    backend.add_class(school_class)
    for student in students:
        backend.add_student(student)
    backend.add_exam(exam)
    return backend


# ==============================================================================
# Service Fixtures
# ==============================================================================


@pytest.fixture
def engine(storage: InMemoryStorage) -> GradingEngine:
    return GradingEngine(storage)


@pytest.fixture
def key_manager(storage: InMemoryStorage, engine: GradingEngine) -> AnswerKeyManager:
    return AnswerKeyManager(storage, engine)


@pytest.fixture
def submission_manager(storage: InMemoryStorage, engine: GradingEngine) -> SubmissionManager:
    return SubmissionManager(storage, engine)


# ==============================================================================
# Settings Fixtures
# ==============================================================================


@pytest.fixture
def test_settings(temp_dir: Path) -> Settings:
    """Create test settings pointing at a temporary data file."""
    return Settings(
        data_file=temp_dir / "gradebook.json",
        grade_scale=10.0,
        log_level="WARNING",
    )


@pytest.fixture
def cli_env(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Generator[Path, None, None]:
    """Point the CLI at a temporary data file."""
    data_file = temp_dir / "cli" / "gradebook.json"
    monkeypatch.setenv("GRADEBOOK_DATA_FILE", str(data_file))
    monkeypatch.setenv("GRADEBOOK_GRADE_SCALE", "10")
    get_settings.cache_clear()
    yield data_file
    get_settings.cache_clear()
