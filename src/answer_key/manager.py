"""
Answer key manager.

Owns the answer key (gabarito) of each exam: creation, mark edits and
resizing. Any edit that can change scores hands off to the grading
engine so stored scores always match the current key.
"""

from datetime import datetime
from typing import Sequence

from src.answer_key.parser import to_key_mark, to_key_marks
from src.errors import GradebookError, RangeError
from src.grading.engine import GradingEngine
from src.logger import get_logger
from src.models import AnswerKey, Exam, KeyMark
from src.storage.base import Storage

logger = get_logger(__name__)

MAX_QUESTIONS = 500


class AnswerKeyManager:
    """
    Creates and edits answer keys.

    Edits are validated in full before anything is saved. After an edit
    the affected submissions are re-scored as one staged batch and
    committed right after the key itself.
    """

    def __init__(self, storage: Storage, engine: GradingEngine | None = None):
        """
        Initialize the manager.

        Args:
            storage: Backend holding exams, keys and submissions.
            engine: Grading engine used for re-grades. Built on the same
                storage if not provided.
        """
        self._storage = storage
        self._engine = engine or GradingEngine(storage)

    def get_key(self, exam_id: str) -> AnswerKey:
        """Return the answer key of an exam."""
        return self._storage.get_answer_key(exam_id)

    def create_key(self, exam_id: str, question_count: int | None = None) -> AnswerKey:
        """
        Create the answer key of an exam with every question void.

        Args:
            exam_id: The exam the key belongs to.
            question_count: Number of questions. Defaults to the exam's
                count; a different value updates the exam, which is
                allowed because no key exists yet.

        Returns:
            The new answer key.

        Raises:
            NotFoundError: If the exam does not exist.
            ConflictError: If the exam already has a key.
            RangeError: If question_count is out of range.
        """
        exam = self._storage.get_exam(exam_id)
        count = exam.question_count if question_count is None else question_count
        self._check_count(count)

        key = AnswerKey(exam_id=exam.id, marks=(KeyMark.N,) * count)
        self._storage.add_answer_key(key)

        if count != exam.question_count:
            self._storage.save_exam(exam.model_copy(update={"question_count": count}))

        logger.info("Created answer key %s for exam %s with %d question(s)", key.id, exam_id, count)
        return key

    def set_mark(self, key_id: str, position: int, mark: KeyMark | str) -> AnswerKey:
        """
        Change the expected mark of one question.

        Args:
            key_id: The answer key to edit.
            position: Zero-based question index.
            mark: One of A-E, or N to void the question.

        Returns:
            The updated answer key.

        Raises:
            NotFoundError: If the key does not exist.
            RangeError: If position is outside the key.
            InvalidMarkError: If mark is not in the alphabet.
        """
        key = self._storage.find_answer_key(key_id)
        if not 0 <= position < len(key.marks):
            raise RangeError(
                f"Question position {position} is outside 0..{len(key.marks) - 1}", position
            )
        new_mark = to_key_mark(mark, position)

        marks = list(key.marks)
        marks[position] = new_mark
        logger.debug("Key %s: question %d set to %s", key_id, position + 1, new_mark.value)
        return self._apply(key, tuple(marks), force_regrade=False)

    def set_marks(self, key_id: str, marks: Sequence[KeyMark | str]) -> AnswerKey:
        """
        Replace every mark of the key at once.

        Raises:
            NotFoundError: If the key does not exist.
            RangeError: If the number of marks differs from the question count.
            InvalidMarkError: If any mark is not in the alphabet.
        """
        key = self._storage.find_answer_key(key_id)
        if len(marks) != len(key.marks):
            raise RangeError(
                f"Expected {len(key.marks)} mark(s), got {len(marks)}; use resize to change "
                "the number of questions",
                len(marks),
            )
        return self._apply(key, to_key_marks(marks), force_regrade=False)

    def resize(self, key_id: str, new_question_count: int) -> AnswerKey:
        """
        Change the number of questions of an exam.

        Shrinking drops marks from the end of the key; growing appends
        void questions. Stored student answers are never cut; only the
        graded range changes. Every submission is re-graded afterwards.

        Raises:
            NotFoundError: If the key or its exam does not exist.
            RangeError: If new_question_count is out of range.
        """
        self._check_count(new_question_count)
        key = self._storage.find_answer_key(key_id)
        exam = self._storage.get_exam(key.exam_id)

        marks = key.marks[:new_question_count]
        marks += (KeyMark.N,) * (new_question_count - len(marks))

        exam = exam.model_copy(update={"question_count": new_question_count})
        logger.info(
            "Resizing key %s from %d to %d question(s)", key_id, len(key.marks), new_question_count
        )
        return self._apply(key, marks, force_regrade=True, exam=exam)

    def _apply(
        self,
        key: AnswerKey,
        marks: tuple[KeyMark, ...],
        force_regrade: bool,
        exam: Exam | None = None,
    ) -> AnswerKey:
        """
        Save new marks and re-grade the exam when required.

        The re-graded submissions are staged before anything is written.
        An exam is re-graded when it was already graded, or always when
        force_regrade is set (question alignment changed). If the batch
        commit fails, the previous key and exam are put back. The batch is
        the last write of a commit, so stored scores are untouched then.
        """
        original_exam = self._storage.get_exam(key.exam_id)
        resized = exam is not None
        if exam is None:
            exam = original_exam

        updated = key.model_copy(update={"marks": marks, "updated_at": datetime.utcnow()})

        batch = None
        if force_regrade or exam.graded:
            batch = self._engine.stage_regrade(updated, self._storage.list_submissions(exam.id))

        if resized:
            self._storage.save_exam(exam)
        self._storage.save_answer_key(updated)

        if batch is not None:
            try:
                self._engine.commit_regrade(exam, batch)
            except GradebookError:
                logger.error("Re-grade of exam %s failed; restoring key %s", exam.id, key.id)
                self._storage.save_answer_key(key)
                self._storage.save_exam(original_exam)
                raise
            logger.info("Re-graded %d submission(s) for exam %s", len(batch), exam.id)

        return updated

    @staticmethod
    def _check_count(count: int) -> None:
        if not 1 <= count <= MAX_QUESTIONS:
            raise RangeError(f"Question count must be between 1 and {MAX_QUESTIONS}", count)
