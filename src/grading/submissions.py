"""
Student submission records.

Records answer sheets (respostas) and grades each one as it is entered
or edited. Editing one student's answers never re-grades anyone else.
"""

from datetime import datetime
from typing import Sequence

from src.answer_key.parser import to_choices
from src.errors import ConflictError
from src.grading.engine import GradingEngine
from src.logger import get_logger
from src.models import Choice, Submission
from src.storage.base import Storage

logger = get_logger(__name__)


class SubmissionManager:
    """Creates, edits and looks up student submissions."""

    def __init__(self, storage: Storage, engine: GradingEngine | None = None):
        self._storage = storage
        self._engine = engine or GradingEngine(storage)

    def submit(
        self, exam_id: str, student_id: str, answers: Sequence[Choice | str | None]
    ) -> Submission:
        """
        Record and grade a student's answers.

        Args:
            exam_id: The exam answered.
            student_id: The student who answered.
            answers: One entry per question; None or a blank symbol for
                an unanswered question.

        Returns:
            The stored submission, scored if the exam has an answer key.

        Raises:
            NotFoundError: If the exam or student does not exist.
            ConflictError: If the student already has answers for the exam,
                or the exam's key no longer matches its question count.
            InvalidMarkError: If an answer is not a blank or one of A-E.
        """
        submission = Submission(
            exam_id=exam_id,
            student_id=student_id,
            answers=to_choices(answers),
        )
        self._storage.get_student(student_id)
        if self._storage.has_submission(exam_id, student_id):
            raise ConflictError(
                f"Student {student_id} already has answers for exam {exam_id}"
            )

        graded = self._engine.score(submission)
        if graded.result is not None:
            self._engine.mark_graded(self._storage.get_exam(exam_id))
        self._storage.add_submission(graded)
        logger.info("Recorded answers of student %s for exam %s", student_id, exam_id)
        return graded

    def update(
        self, exam_id: str, student_id: str, answers: Sequence[Choice | str | None]
    ) -> Submission:
        """
        Replace a student's answers and re-grade that submission only.

        Raises:
            NotFoundError: If the student has no answers for the exam.
            ConflictError: If the exam's key no longer matches its question count.
            InvalidMarkError: If an answer is not a blank or one of A-E.
        """
        new_answers = to_choices(answers)
        current = self._storage.get_submission(exam_id, student_id)
        updated = current.model_copy(
            update={"answers": new_answers, "result": None, "updated_at": datetime.utcnow()}
        )
        return self._engine.grade_submission(updated)

    def get(self, exam_id: str, student_id: str) -> Submission:
        return self._storage.get_submission(exam_id, student_id)

    def list_for_exam(self, exam_id: str) -> list[Submission]:
        return self._storage.list_submissions(exam_id)
