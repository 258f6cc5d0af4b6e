"""
In-memory storage backend.

Keeps every record in dictionaries keyed by id and enforces the
reference rules between them. Each mutation validates everything it
needs before touching state, so a failed call leaves nothing half-written.
"""

from typing import Sequence

from src.errors import ConflictError, NotFoundError
from src.logger import get_logger
from src.models import (
    AnswerKey,
    Exam,
    SchoolClass,
    Student,
    Submission,
    Summary,
    Teacher,
)
from src.storage.base import Storage

logger = get_logger(__name__)


class InMemoryStorage(Storage):
    """
    Storage backend holding records in process memory.

    Subclasses that persist elsewhere override `_commit`, which runs
    after every successful mutation.
    """

    def __init__(self) -> None:
        self._reset()

    def _reset(self) -> None:
        self._classes: dict[str, SchoolClass] = {}
        self._students: dict[str, Student] = {}
        self._teachers: dict[str, Teacher] = {}
        self._exams: dict[str, Exam] = {}
        self._answer_keys: dict[str, AnswerKey] = {}
        self._submissions: dict[str, Submission] = {}

    def _commit(self) -> None:
        """Hook run after each mutation. Nothing to do in memory."""

    # ==========================================================================
    # Classes
    # ==========================================================================

    def add_class(self, school_class: SchoolClass) -> None:
        if school_class.id in self._classes:
            raise ConflictError(f"Class already exists: {school_class.id}")
        self._classes[school_class.id] = school_class
        self._commit()

    def get_class(self, class_id: str) -> SchoolClass:
        try:
            return self._classes[class_id]
        except KeyError:
            raise NotFoundError("Class", class_id) from None

    def list_classes(self) -> list[SchoolClass]:
        return list(self._classes.values())

    def update_class(self, school_class: SchoolClass) -> None:
        self.get_class(school_class.id)
        self._classes[school_class.id] = school_class
        self._commit()

    def delete_class(self, class_id: str) -> None:
        """
        Delete a class.

        Raises:
            NotFoundError: If the class does not exist.
            ConflictError: If students or exams still reference it.
        """
        self.get_class(class_id)

        student_count = sum(1 for s in self._students.values() if s.class_id == class_id)
        if student_count:
            raise ConflictError(
                f"Class {class_id} still has {student_count} student(s); "
                "move or delete them first"
            )

        exam_count = sum(1 for e in self._exams.values() if e.class_id == class_id)
        if exam_count:
            raise ConflictError(
                f"Class {class_id} still has {exam_count} exam(s); delete them first"
            )

        del self._classes[class_id]
        self._commit()

    # ==========================================================================
    # Students
    # ==========================================================================

    def add_student(self, student: Student) -> None:
        self.get_class(student.class_id)
        if student.id in self._students:
            raise ConflictError(f"Student already exists: {student.id}")
        for existing in self._students.values():
            if existing.enrollment == student.enrollment:
                raise ConflictError(f"Enrollment number already in use: {student.enrollment}")
        self._students[student.id] = student
        self._commit()

    def get_student(self, student_id: str) -> Student:
        try:
            return self._students[student_id]
        except KeyError:
            raise NotFoundError("Student", student_id) from None

    def list_students(self, class_id: str | None = None) -> list[Student]:
        return [
            s for s in self._students.values() if class_id is None or s.class_id == class_id
        ]

    def update_student(self, student: Student) -> None:
        """
        Replace a student's details.

        Raises:
            NotFoundError: If the student or their new class does not exist.
            ConflictError: If another student already has the enrollment number.
        """
        self.get_student(student.id)
        self.get_class(student.class_id)
        for existing in self._students.values():
            if existing.id != student.id and existing.enrollment == student.enrollment:
                raise ConflictError(f"Enrollment number already in use: {student.enrollment}")
        self._students[student.id] = student
        self._commit()

    def delete_student(self, student_id: str) -> None:
        """Delete a student together with their submissions."""
        self.get_student(student_id)
        orphaned = [sid for sid, s in self._submissions.items() if s.student_id == student_id]
        for submission_id in orphaned:
            del self._submissions[submission_id]
        del self._students[student_id]
        logger.info("Deleted student %s and %d submission(s)", student_id, len(orphaned))
        self._commit()

    # ==========================================================================
    # Teachers
    # ==========================================================================

    def add_teacher(self, teacher: Teacher) -> None:
        if teacher.id in self._teachers:
            raise ConflictError(f"Teacher already exists: {teacher.id}")
        for existing in self._teachers.values():
            if existing.email == teacher.email:
                raise ConflictError(f"E-mail already in use: {teacher.email}")
        self._teachers[teacher.id] = teacher
        self._commit()

    def get_teacher(self, teacher_id: str) -> Teacher:
        try:
            return self._teachers[teacher_id]
        except KeyError:
            raise NotFoundError("Teacher", teacher_id) from None

    def list_teachers(self) -> list[Teacher]:
        return list(self._teachers.values())

    def update_teacher(self, teacher: Teacher) -> None:
        self.get_teacher(teacher.id)
        for existing in self._teachers.values():
            if existing.id != teacher.id and existing.email == teacher.email:
                raise ConflictError(f"E-mail already in use: {teacher.email}")
        self._teachers[teacher.id] = teacher
        self._commit()

    def delete_teacher(self, teacher_id: str) -> None:
        self.get_teacher(teacher_id)
        del self._teachers[teacher_id]
        self._commit()

    # ==========================================================================
    # Exams
    # ==========================================================================

    def add_exam(self, exam: Exam) -> None:
        self.get_class(exam.class_id)
        if exam.id in self._exams:
            raise ConflictError(f"Exam already exists: {exam.id}")
        self._exams[exam.id] = exam
        self._commit()

    def get_exam(self, exam_id: str) -> Exam:
        try:
            return self._exams[exam_id]
        except KeyError:
            raise NotFoundError("Exam", exam_id) from None

    def save_exam(self, exam: Exam) -> None:
        self.get_exam(exam.id)
        self._exams[exam.id] = exam
        self._commit()

    def list_exams(self, class_id: str | None = None) -> list[Exam]:
        return [e for e in self._exams.values() if class_id is None or e.class_id == class_id]

    def update_exam(self, exam: Exam) -> None:
        """
        Replace an exam's details.

        The graded flag is kept as stored. The question count may only
        change while the exam has no answer key.

        Raises:
            NotFoundError: If the exam or its new class does not exist.
            ConflictError: If the question count differs once a key exists.
        """
        current = self.get_exam(exam.id)
        self.get_class(exam.class_id)
        if exam.question_count != current.question_count and self.has_answer_key(exam.id):
            raise ConflictError(
                f"Exam {exam.id} has an answer key; resize the key to change its questions"
            )
        self._exams[exam.id] = exam.model_copy(update={"graded": current.graded})
        self._commit()

    def delete_exam(self, exam_id: str) -> None:
        """Delete an exam together with its answer key and submissions."""
        self.get_exam(exam_id)
        self._answer_keys = {
            kid: k for kid, k in self._answer_keys.items() if k.exam_id != exam_id
        }
        before = len(self._submissions)
        self._submissions = {
            sid: s for sid, s in self._submissions.items() if s.exam_id != exam_id
        }
        del self._exams[exam_id]
        logger.info(
            "Deleted exam %s with %d submission(s)", exam_id, before - len(self._submissions)
        )
        self._commit()

    # ==========================================================================
    # Answer Keys
    # ==========================================================================

    def get_answer_key(self, exam_id: str) -> AnswerKey:
        for key in self._answer_keys.values():
            if key.exam_id == exam_id:
                return key
        raise NotFoundError("Answer key for exam", exam_id)

    def find_answer_key(self, key_id: str) -> AnswerKey:
        try:
            return self._answer_keys[key_id]
        except KeyError:
            raise NotFoundError("Answer key", key_id) from None

    def add_answer_key(self, key: AnswerKey) -> None:
        self.get_exam(key.exam_id)
        if key.id in self._answer_keys or self.has_answer_key(key.exam_id):
            raise ConflictError(f"Exam {key.exam_id} already has an answer key")
        self._answer_keys[key.id] = key
        self._commit()

    def save_answer_key(self, key: AnswerKey) -> None:
        current = self.find_answer_key(key.id)
        if current.exam_id != key.exam_id:
            raise ConflictError(f"Answer key {key.id} cannot move to another exam")
        self._answer_keys[key.id] = key
        self._commit()

    # ==========================================================================
    # Submissions
    # ==========================================================================

    def list_submissions(self, exam_id: str) -> list[Submission]:
        self.get_exam(exam_id)
        return [s for s in self._submissions.values() if s.exam_id == exam_id]

    def get_submission(self, exam_id: str, student_id: str) -> Submission:
        for submission in self._submissions.values():
            if submission.exam_id == exam_id and submission.student_id == student_id:
                return submission
        raise NotFoundError("Submission", f"exam={exam_id} student={student_id}")

    def add_submission(self, submission: Submission) -> None:
        self.get_exam(submission.exam_id)
        self.get_student(submission.student_id)
        if submission.id in self._submissions:
            raise ConflictError(f"Submission already exists: {submission.id}")
        for existing in self._submissions.values():
            if (
                existing.exam_id == submission.exam_id
                and existing.student_id == submission.student_id
            ):
                raise ConflictError(
                    f"Student {submission.student_id} already has answers for "
                    f"exam {submission.exam_id}"
                )
        self._submissions[submission.id] = submission
        self._commit()

    def save_submissions(self, batch: Sequence[Submission]) -> None:
        # Check the whole batch before writing any of it
        for submission in batch:
            current = self._submissions.get(submission.id)
            if current is None:
                raise NotFoundError("Submission", submission.id)
            if (current.exam_id, current.student_id) != (
                submission.exam_id,
                submission.student_id,
            ):
                raise ConflictError(f"Submission {submission.id} cannot change exam or student")

        for submission in batch:
            self._submissions[submission.id] = submission
        logger.debug("Committed %d submission(s)", len(batch))
        self._commit()

    # ==========================================================================
    # Dashboard
    # ==========================================================================

    def summary(self) -> Summary:
        """Count records for the dashboard."""
        return Summary(
            classes=len(self._classes),
            students=len(self._students),
            teachers=len(self._teachers),
            exams=len(self._exams),
            graded_exams=sum(1 for e in self._exams.values() if e.graded),
            submissions=len(self._submissions),
        )
