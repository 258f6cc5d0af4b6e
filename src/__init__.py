"""
Answer Sheet Grader - school answer-key and grading tool.

This package keeps classes, students, exams, answer keys and student
answer sheets, and scores every sheet against its exam's key, re-grading
whenever the key changes.
"""

__version__ = "1.0.0"
