"""
Grading Engine Module.

Scores student answers against answer keys and keeps stored scores in
step with key edits.
"""

from src.grading.engine import GradingEngine
from src.grading.scorer import grade
from src.grading.submissions import SubmissionManager

__all__ = [
    "GradingEngine",
    "SubmissionManager",
    "grade",
]
