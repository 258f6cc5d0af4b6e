"""
Base class for storage backends.

Defines the interface the grading core depends on. Backends own every
record; the core only reads them and hands back updated copies to save.
"""

from abc import ABC, abstractmethod
from typing import Sequence

from src.errors import NotFoundError
from src.models import AnswerKey, Exam, Student, Submission


class Storage(ABC):
    """
    Abstract persistence boundary.

    Every method may raise NotFoundError or StorageError. Callers
    propagate these unchanged; backends decide whether to retry.
    """

    # ==========================================================================
    # Exams
    # ==========================================================================

    @abstractmethod
    def get_exam(self, exam_id: str) -> Exam:
        """Return the exam or raise NotFoundError."""
        ...

    @abstractmethod
    def save_exam(self, exam: Exam) -> None:
        """Overwrite an existing exam."""
        ...

    # ==========================================================================
    # Answer Keys
    # ==========================================================================

    @abstractmethod
    def get_answer_key(self, exam_id: str) -> AnswerKey:
        """Return the answer key of an exam or raise NotFoundError."""
        ...

    @abstractmethod
    def find_answer_key(self, key_id: str) -> AnswerKey:
        """Return an answer key by its own id or raise NotFoundError."""
        ...

    @abstractmethod
    def add_answer_key(self, key: AnswerKey) -> None:
        """Store a new key; ConflictError if the exam already has one."""
        ...

    @abstractmethod
    def save_answer_key(self, key: AnswerKey) -> None:
        """Overwrite an existing answer key."""
        ...

    # ==========================================================================
    # Students and Submissions
    # ==========================================================================

    @abstractmethod
    def get_student(self, student_id: str) -> Student:
        """Return the student or raise NotFoundError."""
        ...

    @abstractmethod
    def list_submissions(self, exam_id: str) -> list[Submission]:
        """Return every submission for an exam, oldest first."""
        ...

    @abstractmethod
    def get_submission(self, exam_id: str, student_id: str) -> Submission:
        """Return the submission of one student for one exam or raise NotFoundError."""
        ...

    @abstractmethod
    def add_submission(self, submission: Submission) -> None:
        """Store a new submission; ConflictError if the pair already has one."""
        ...

    @abstractmethod
    def save_submissions(self, batch: Sequence[Submission]) -> None:
        """
        Overwrite existing submissions as one unit.

        Either every submission in the batch is written or none is.
        """
        ...

    def has_answer_key(self, exam_id: str) -> bool:
        """Check whether an exam has an answer key."""
        try:
            self.get_answer_key(exam_id)
        except NotFoundError:
            return False
        return True

    def has_submission(self, exam_id: str, student_id: str) -> bool:
        """Check whether a student already has answers for an exam."""
        try:
            self.get_submission(exam_id, student_id)
        except NotFoundError:
            return False
        return True
