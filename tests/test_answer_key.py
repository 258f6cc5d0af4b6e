"""
Unit tests for answer key management and mark parsing.

Tests key creation, mark edits, resizing and the re-grades they
trigger, plus the parser used for typed keys and answer sheets.
"""

import pytest

from src.answer_key import AnswerKeyManager, MarkParser, to_choice, to_key_mark
from src.errors import ConflictError, InvalidMarkError, NotFoundError, RangeError
from src.grading import SubmissionManager
from src.models import Choice, Exam, KeyMark, Student
from src.storage import InMemoryStorage


class TestCreateKey:
    """Tests for AnswerKeyManager.create_key."""

    def test_create_key_all_void(self, key_manager: AnswerKeyManager, exam: Exam) -> None:
        """Test a new key has one void mark per question."""
        key = key_manager.create_key(exam.id)

        assert key.exam_id == exam.id
        assert key.marks == (KeyMark.N, KeyMark.N)
        assert key.gradable_count == 0

    def test_create_key_unknown_exam(self, key_manager: AnswerKeyManager) -> None:
        """Test creating a key for a missing exam fails."""
        with pytest.raises(NotFoundError, match="Exam"):
            key_manager.create_key("no-such-exam")

    def test_create_second_key_conflicts(self, key_manager: AnswerKeyManager, exam: Exam) -> None:
        """Test an exam can only have one key."""
        key_manager.create_key(exam.id)

        with pytest.raises(ConflictError):
            key_manager.create_key(exam.id)

    def test_create_key_with_other_count_updates_exam(
        self, key_manager: AnswerKeyManager, storage: InMemoryStorage, exam: Exam
    ) -> None:
        """Test an explicit question count becomes the exam's count."""
        key = key_manager.create_key(exam.id, question_count=5)

        assert len(key.marks) == 5
        assert storage.get_exam(exam.id).question_count == 5

    def test_create_key_rejects_zero_questions(
        self, key_manager: AnswerKeyManager, exam: Exam
    ) -> None:
        """Test a key needs at least one question."""
        with pytest.raises(RangeError):
            key_manager.create_key(exam.id, question_count=0)


class TestSetMark:
    """Tests for AnswerKeyManager.set_mark and set_marks."""

    def test_set_mark(self, key_manager: AnswerKeyManager, exam: Exam) -> None:
        """Test setting one mark leaves the others alone."""
        key = key_manager.create_key(exam.id)

        updated = key_manager.set_mark(key.id, 1, "b")

        assert updated.marks == (KeyMark.N, KeyMark.B)
        assert updated.updated_at is not None
        assert key_manager.get_key(exam.id) == updated

    @pytest.mark.parametrize("position", [-1, 2, 10])
    def test_set_mark_out_of_range(
        self, key_manager: AnswerKeyManager, exam: Exam, position: int
    ) -> None:
        """Test positions outside the key are rejected."""
        key = key_manager.create_key(exam.id)

        with pytest.raises(RangeError):
            key_manager.set_mark(key.id, position, "A")

    @pytest.mark.parametrize("mark", ["F", "", "AB", 1, None])
    def test_set_mark_invalid(self, key_manager: AnswerKeyManager, exam: Exam, mark) -> None:
        """Test marks outside A-E and N are rejected without changing the key."""
        key = key_manager.create_key(exam.id)

        with pytest.raises(InvalidMarkError):
            key_manager.set_mark(key.id, 0, mark)

        assert key_manager.get_key(exam.id).marks == key.marks

    def test_set_mark_unknown_key(self, key_manager: AnswerKeyManager) -> None:
        """Test editing a missing key fails."""
        with pytest.raises(NotFoundError):
            key_manager.set_mark("no-such-key", 0, "A")

    def test_set_marks_replaces_all(self, key_manager: AnswerKeyManager, exam: Exam) -> None:
        """Test replacing the whole key at once."""
        key = key_manager.create_key(exam.id)

        updated = key_manager.set_marks(key.id, ["A", KeyMark.E])

        assert updated.marks == (KeyMark.A, KeyMark.E)

    def test_set_marks_wrong_length(self, key_manager: AnswerKeyManager, exam: Exam) -> None:
        """Test a full replacement must keep the question count."""
        key = key_manager.create_key(exam.id)

        with pytest.raises(RangeError, match="resize"):
            key_manager.set_marks(key.id, ["A", "B", "C"])

    def test_set_mark_before_grading_does_not_score(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        exam: Exam,
        students: list[Student],
    ) -> None:
        """Test key edits on an ungraded exam leave stored results alone."""
        submission_manager.submit(exam.id, students[0].id, ["A", "B"])
        key = key_manager.create_key(exam.id)

        key_manager.set_mark(key.id, 0, "A")

        submission = storage.get_submission(exam.id, students[0].id)
        assert submission.result is None
        assert not storage.get_exam(exam.id).graded


class TestRegradePropagation:
    """Tests for re-grades triggered by key edits."""

    def test_voiding_question_regrades_every_submission(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        exam: Exam,
        students: list[Student],
    ) -> None:
        """Test voiding question 2 of key [A, B] re-scores both students to 1.0."""
        key = key_manager.create_key(exam.id)
        key = key_manager.set_marks(key.id, ["A", "B"])

        first = submission_manager.submit(exam.id, students[0].id, ["A", "B"])
        second = submission_manager.submit(exam.id, students[1].id, ["A", "C"])
        assert first.score == 1.0
        assert second.score == 0.5
        assert storage.get_exam(exam.id).graded

        key_manager.set_mark(key.id, 1, "N")

        for student in students:
            stored = storage.get_submission(exam.id, student.id)
            assert stored.score == 1.0
            assert stored.result is not None
            assert stored.result.gradable == 1
        assert storage.get_exam(exam.id).graded

    def test_voiding_lowers_score_of_correct_answer(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        exam: Exam,
        students: list[Student],
    ) -> None:
        """Test a student who had the voided question right loses that credit."""
        key = key_manager.create_key(exam.id)
        key = key_manager.set_marks(key.id, ["A", "B"])
        submission_manager.submit(exam.id, students[0].id, ["C", "B"])
        assert storage.get_submission(exam.id, students[0].id).score == 0.5

        key_manager.set_mark(key.id, 1, "N")

        assert storage.get_submission(exam.id, students[0].id).score == 0.0

    def test_voiding_every_question_makes_scores_null(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        exam: Exam,
        students: list[Student],
    ) -> None:
        """Test an all-void key stores no score instead of zero."""
        key = key_manager.create_key(exam.id)
        key = key_manager.set_marks(key.id, ["A", "N"])
        submission_manager.submit(exam.id, students[0].id, ["A", "A"])

        key_manager.set_mark(key.id, 0, "N")

        stored = storage.get_submission(exam.id, students[0].id)
        assert stored.score is None
        assert stored.result is not None
        assert stored.result.reason is not None


class TestResize:
    """Tests for AnswerKeyManager.resize."""

    @pytest.fixture
    def long_exam(self, storage: InMemoryStorage, exam: Exam) -> Exam:
        three = exam.model_copy(update={"id": "exam-3q", "question_count": 3})
        storage.add_exam(three)
        return three

    def test_shrink_keeps_raw_answers(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        long_exam: Exam,
        students: list[Student],
    ) -> None:
        """Test resize(2) of key [A,B,C] keeps the answers and scores 1.0 over 2."""
        key = key_manager.create_key(long_exam.id)
        key = key_manager.set_marks(key.id, ["A", "B", "C"])
        submitted = submission_manager.submit(long_exam.id, students[0].id, ["A", "B", "C"])
        assert submitted.score == 1.0

        resized = key_manager.resize(key.id, 2)

        assert resized.marks == (KeyMark.A, KeyMark.B)
        assert storage.get_exam(long_exam.id).question_count == 2
        stored = storage.get_submission(long_exam.id, students[0].id)
        assert stored.answers == (Choice.A, Choice.B, Choice.C)
        assert stored.score == 1.0
        assert stored.result is not None
        assert stored.result.gradable == 2

    def test_grow_pads_with_void(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        exam: Exam,
        students: list[Student],
    ) -> None:
        """Test growing appends void questions that do not change scores."""
        key = key_manager.create_key(exam.id)
        key = key_manager.set_marks(key.id, ["A", "B"])
        submission_manager.submit(exam.id, students[0].id, ["A", "C"])

        resized = key_manager.resize(key.id, 4)

        assert resized.marks == (KeyMark.A, KeyMark.B, KeyMark.N, KeyMark.N)
        assert storage.get_exam(exam.id).question_count == 4
        stored = storage.get_submission(exam.id, students[0].id)
        assert stored.score == 0.5
        assert stored.result is not None
        assert stored.result.gradable == 2

    def test_resize_regrades_even_ungraded_exam(
        self,
        key_manager: AnswerKeyManager,
        submission_manager: SubmissionManager,
        storage: InMemoryStorage,
        exam: Exam,
        students: list[Student],
    ) -> None:
        """Test a resize always runs a full re-grade pass."""
        submission_manager.submit(exam.id, students[0].id, ["A"])
        key = key_manager.create_key(exam.id)
        key = key_manager.set_marks(key.id, ["A", "B"])
        assert storage.get_submission(exam.id, students[0].id).result is None

        key_manager.resize(key.id, 1)

        assert storage.get_submission(exam.id, students[0].id).score == 1.0
        assert storage.get_exam(exam.id).graded

    @pytest.mark.parametrize("count", [0, -3, 501])
    def test_resize_out_of_range(
        self, key_manager: AnswerKeyManager, exam: Exam, count: int
    ) -> None:
        """Test question counts outside the allowed range are rejected."""
        key = key_manager.create_key(exam.id)

        with pytest.raises(RangeError):
            key_manager.resize(key.id, count)


class TestMarkParser:
    """Tests for MarkParser and the mark converters."""

    def test_parse_compact_key(self) -> None:
        """Test one character per question."""
        assert MarkParser().parse_key("ABCDEN") == tuple(KeyMark)

    def test_parse_spaced_lowercase_key(self) -> None:
        """Test whitespace-separated marks in any case."""
        assert MarkParser().parse_key(" a b  n ") == (KeyMark.A, KeyMark.B, KeyMark.N)

    def test_parse_empty_key(self) -> None:
        """Test an empty key is rejected."""
        with pytest.raises(RangeError, match="empty"):
            MarkParser().parse_key("   ")

    def test_parse_key_invalid_symbol(self) -> None:
        """Test the error names the offending question."""
        with pytest.raises(InvalidMarkError, match="Question 3"):
            MarkParser().parse_key("ABX")

    def test_parse_answers_with_blanks(self) -> None:
        """Test blank symbols become None."""
        assert MarkParser().parse_answers("A-C_.*") == (
            Choice.A,
            None,
            Choice.C,
            None,
            None,
            None,
        )

    def test_parse_delimited_answers(self) -> None:
        """Test empty delimited fields are blanks."""
        assert MarkParser().parse_answers("a, ,c;d") == (Choice.A, None, Choice.C, Choice.D)

    def test_parse_empty_answers(self) -> None:
        """Test an empty sheet is allowed."""
        assert MarkParser().parse_answers("") == ()

    def test_answers_reject_void_mark(self) -> None:
        """Test N is a key-only mark."""
        with pytest.raises(InvalidMarkError):
            MarkParser().parse_answers("AN")

    def test_converters(self) -> None:
        """Test conversions between enum types."""
        assert to_key_mark(Choice.D) is KeyMark.D
        assert to_choice(KeyMark.E) is Choice.E
        assert to_choice(None) is None
        with pytest.raises(InvalidMarkError):
            to_choice(KeyMark.N)
