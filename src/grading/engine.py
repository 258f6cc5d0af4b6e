"""
Grading engine - the core orchestrator.

Decides when scores must be recomputed and commits recomputed
submissions back to storage as a single batch.
"""

from typing import Sequence

from src.errors import ConflictError, NotFoundError
from src.grading.scorer import grade as score_submission
from src.logger import get_logger
from src.models import AnswerKey, Exam, ScoreResult, Submission
from src.storage.base import Storage

logger = get_logger(__name__)


class GradingEngine:
    """
    Main grading engine.

    Scoring itself is a pure function; this class adds the re-grade
    rules on top of it. Re-grading stages every new score first and
    saves them in one call, so an exam is never left half re-graded.
    """

    def __init__(self, storage: Storage):
        """
        Initialize the grading engine.

        Args:
            storage: Backend holding exams, keys and submissions.
        """
        self._storage = storage

    def grade(self, key: AnswerKey, submission: Submission) -> ScoreResult:
        """Score one submission against a key without saving anything."""
        return score_submission(key, submission)

    def stage_regrade(
        self, key: AnswerKey, submissions: Sequence[Submission]
    ) -> list[Submission]:
        """
        Re-score submissions against a key without committing them.

        Args:
            key: The answer key to grade against.
            submissions: Submissions of the key's exam.

        Returns:
            Copies of the submissions carrying their new results.
        """
        return [
            submission.model_copy(update={"result": score_submission(key, submission)})
            for submission in submissions
        ]

    def mark_graded(self, exam: Exam) -> Exam:
        """Flag an exam as graded, saving it only if the flag changes."""
        if not exam.graded:
            exam = exam.model_copy(update={"graded": True})
            self._storage.save_exam(exam)
            logger.info("Exam %s is now graded", exam.id)
        return exam

    def commit_regrade(self, exam: Exam, batch: Sequence[Submission]) -> Exam:
        """
        Save a staged batch and mark the exam as graded if anything was scored.

        The graded flag is written first and the batch last, so a failed
        batch leaves every stored score as it was.

        Returns:
            The exam as stored after the commit.
        """
        if batch:
            exam = self.mark_graded(exam)
        self._storage.save_submissions(batch)
        return exam

    def regrade_exam(self, exam_id: str) -> dict[str, ScoreResult]:
        """
        Re-grade every submission of an exam against its current key.

        Args:
            exam_id: The exam to re-grade.

        Returns:
            New result of each submission, keyed by submission id.

        Raises:
            NotFoundError: If the exam or its answer key does not exist.
            ConflictError: If the key no longer matches the exam's question count.
            StorageError: If the storage backend fails.
        """
        exam = self._storage.get_exam(exam_id)
        key = self._storage.get_answer_key(exam_id)
        self._check_key(key, exam)

        batch = self.stage_regrade(key, self._storage.list_submissions(exam_id))
        self.commit_regrade(exam, batch)

        logger.info("Re-graded %d submission(s) for exam %s", len(batch), exam_id)
        return {s.id: s.result for s in batch if s.result is not None}

    def score(self, submission: Submission) -> Submission:
        """
        Score a submission against its exam's key without saving it.

        Returns:
            A copy carrying the new result, or the submission unchanged
            if the exam has no answer key yet.

        Raises:
            NotFoundError: If the exam does not exist.
            ConflictError: If the key no longer matches the exam's question count.
        """
        exam = self._storage.get_exam(submission.exam_id)
        try:
            key = self._storage.get_answer_key(exam.id)
        except NotFoundError:
            logger.info("Exam %s has no answer key yet; %s left ungraded", exam.id, submission.id)
            return submission
        self._check_key(key, exam)
        return submission.model_copy(update={"result": score_submission(key, submission)})

    def grade_submission(self, submission: Submission) -> Submission:
        """
        Grade and save a single stored submission.

        Other submissions of the same exam are never touched. Scoring
        happens before any write, so a refused grade leaves storage as
        it was. Without an answer key the submission is saved unscored.

        Returns:
            The submission as stored.
        """
        graded = self.score(submission)
        if graded.result is None:
            self._storage.save_submissions([graded])
        else:
            self.commit_regrade(self._storage.get_exam(graded.exam_id), [graded])
        return graded

    @staticmethod
    def _check_key(key: AnswerKey, exam: Exam) -> None:
        if not key.is_valid_for(exam):
            raise ConflictError(
                f"Answer key {key.id} has {key.question_count} mark(s) but exam "
                f"{exam.id} has {exam.question_count} question(s)"
            )
