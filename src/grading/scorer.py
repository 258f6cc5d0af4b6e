"""
Scoring of one submission against one answer key.

Pure and total: for any key and submission it returns a ScoreResult
and never raises. Blank and missing answers count as wrong, void
questions do not count at all, and the score is never rounded.
"""

from src.models import AnswerKey, ScoreResult, Submission, UngradableReason


def grade(key: AnswerKey, submission: Submission) -> ScoreResult:
    """
    Grade a submission against an answer key.

    Position i of the answers is compared with position i of the key.
    Answers beyond the key's length are ignored.

    Args:
        key: The exam's answer key.
        submission: The student's answers.

    Returns:
        ScoreResult with score = correct / gradable, or no score and a
        reason when every question on the key is void.
    """
    answers = submission.answers
    gradable = 0
    correct = 0

    for position, mark in enumerate(key.marks):
        if mark.is_void:
            continue
        gradable += 1
        answer = answers[position] if position < len(answers) else None
        if mark.accepts(answer):
            correct += 1

    if gradable == 0:
        return ScoreResult(
            score=None,
            gradable=0,
            correct=0,
            reason=UngradableReason.NO_SCORABLE_QUESTIONS,
        )

    return ScoreResult(score=correct / gradable, gradable=gradable, correct=correct)
