"""
Pydantic models for the gradebook.

These models define the schemas for:
- School records (classes, students, teachers, exams)
- Answer keys and student submissions
- Grading results

Records are immutable; updates go through model_copy() and are saved
back through a storage backend.
"""

import re
from datetime import date, datetime
from enum import Enum
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def new_id() -> str:
    """Generate a new record identifier."""
    return str(uuid4())


# ==============================================================================
# Marks
# ==============================================================================


class Choice(str, Enum):
    """An answer a student can mark on the sheet."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"


class KeyMark(str, Enum):
    """An expected mark on the answer key. N voids the question."""

    A = "A"
    B = "B"
    C = "C"
    D = "D"
    E = "E"
    N = "N"

    @property
    def is_void(self) -> bool:
        return self is KeyMark.N

    def accepts(self, answer: Choice | None) -> bool:
        """Whether a student's answer earns credit against this mark."""
        if self.is_void or answer is None:
            return False
        return answer.value == self.value


class UngradableReason(str, Enum):
    """Why a ScoreResult carries no score."""

    NO_SCORABLE_QUESTIONS = "no-scorable-questions"


# ==============================================================================
# School Records
# ==============================================================================


class SchoolClass(BaseModel):
    """A class (turma) that students belong to and exams are given to."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    year: int = Field(..., ge=1900, le=2200)
    course: str = Field(..., min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Student(BaseModel):
    """A student enrolled in one class."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    enrollment: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Enrollment number, unique across the school",
    )
    class_id: str
    created_at: datetime = Field(default_factory=datetime.utcnow)


class Teacher(BaseModel):
    """A teacher record."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1, max_length=200)
    email: str
    specialty: str = Field(..., min_length=1, max_length=200)
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Reject obviously malformed addresses and normalize case."""
        v = v.strip().lower()
        if not EMAIL_PATTERN.match(v):
            raise ValueError(f"Invalid e-mail address: {v!r}")
        return v


class Exam(BaseModel):
    """
    An exam given to a class.

    `question_count` is fixed once an answer key exists; only the key
    manager's resize operation may change it afterwards. `graded` flips
    to true the first time a submission for this exam is scored.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    class_id: str
    title: str = Field(..., min_length=1, max_length=500)
    held_on: date
    question_count: int = Field(..., ge=1, le=500)
    graded: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)


# ==============================================================================
# Grading Models
# ==============================================================================


class ScoreResult(BaseModel):
    """
    Outcome of grading one submission against one answer key.

    `score` is the unrounded fraction correct / gradable in [0, 1].
    When the key has no scorable questions the score is None and
    `reason` says why; it is never reported as zero.
    """

    model_config = ConfigDict(frozen=True)

    score: float | None = Field(default=None, ge=0.0, le=1.0)
    gradable: int = Field(..., ge=0)
    correct: int = Field(..., ge=0)
    reason: UngradableReason | None = None

    @model_validator(mode="after")
    def validate_consistency(self) -> "ScoreResult":
        """Ensure the counts and the score agree with each other."""
        if self.correct > self.gradable:
            raise ValueError(
                f"Correct answers ({self.correct}) cannot exceed "
                f"gradable questions ({self.gradable})"
            )
        if self.score is None and self.reason is None:
            raise ValueError("An ungradable result must carry a reason")
        if self.score is not None and self.reason is not None:
            raise ValueError("A scored result cannot carry an ungradable reason")
        return self

    @computed_field  # type: ignore[prop-decorator]
    @property
    def is_gradable(self) -> bool:
        return self.score is not None


class AnswerKey(BaseModel):
    """
    The answer key (gabarito) of one exam.

    Holds one expected mark per question. The key is valid for grading
    only while its length matches the exam's question count.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    exam_id: str
    marks: tuple[KeyMark, ...] = Field(..., min_length=1)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def question_count(self) -> int:
        return len(self.marks)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def gradable_count(self) -> int:
        """Number of questions that are not voided."""
        return sum(1 for mark in self.marks if not mark.is_void)

    def is_valid_for(self, exam: Exam) -> bool:
        return exam.id == self.exam_id and len(self.marks) == exam.question_count


class Submission(BaseModel):
    """
    One student's answers (resposta) to one exam.

    A None entry is a blank. The answers may be shorter or longer than
    the exam; only positions inside the key are graded, and nothing
    beyond it is ever dropped from the record.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=new_id)
    exam_id: str
    student_id: str
    answers: tuple[Choice | None, ...] = ()
    result: ScoreResult | None = None
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime | None = None

    @computed_field  # type: ignore[prop-decorator]
    @property
    def score(self) -> float | None:
        """Stored score, None until graded or when the key is ungradable."""
        if self.result is None:
            return None
        return self.result.score


class Summary(BaseModel):
    """Record counts shown on the dashboard."""

    model_config = ConfigDict(frozen=True)

    classes: int = 0
    students: int = 0
    teachers: int = 0
    exams: int = 0
    graded_exams: int = 0
    submissions: int = 0
