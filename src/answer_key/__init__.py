"""
Answer Key Module.

Provides creation, editing and parsing of exam answer keys.
"""

from src.answer_key.manager import AnswerKeyManager
from src.answer_key.parser import MarkParser, to_choice, to_key_mark

__all__ = [
    "AnswerKeyManager",
    "MarkParser",
    "to_choice",
    "to_key_mark",
]
