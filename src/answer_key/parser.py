"""
Mark parser module.

Turns raw mark values and typed-in answer sheets into the closed mark
alphabets. Supports compact ("ABCDN"), spaced ("A B C D N") and
delimited ("a, b, , d") input.
"""

import re
from typing import Iterable

from src.errors import InvalidMarkError, RangeError
from src.models import Choice, KeyMark

# Symbols a sheet may use for an unanswered question
BLANK_SYMBOLS = frozenset({"", "-", "_", ".", "*"})


def to_key_mark(value: object, position: int | None = None) -> KeyMark:
    """
    Convert a value to an answer key mark.

    Args:
        value: A KeyMark, a Choice, or a one-letter string (any case).
        position: Zero-based question index, for error messages.

    Raises:
        InvalidMarkError: If the value is not one of A-E or N.
    """
    if isinstance(value, KeyMark):
        return value
    if isinstance(value, Choice):
        return KeyMark(value.value)
    if isinstance(value, str):
        try:
            return KeyMark(value.strip().upper())
        except ValueError:
            pass
    raise InvalidMarkError(value, position)


def to_choice(value: object, position: int | None = None) -> Choice | None:
    """
    Convert a value to a student answer.

    Args:
        value: A Choice, None, a blank symbol, or a one-letter string (any case).
        position: Zero-based question index, for error messages.

    Returns:
        The Choice, or None for a blank answer.

    Raises:
        InvalidMarkError: If the value is neither a blank nor one of A-E.
    """
    if value is None or isinstance(value, Choice):
        return value
    if isinstance(value, KeyMark):
        if value.is_void:
            raise InvalidMarkError(value.value, position)
        return Choice(value.value)
    if isinstance(value, str):
        token = value.strip().upper()
        if token in BLANK_SYMBOLS:
            return None
        try:
            return Choice(token)
        except ValueError:
            pass
    raise InvalidMarkError(value, position)


def to_key_marks(values: Iterable[object]) -> tuple[KeyMark, ...]:
    return tuple(to_key_mark(v, i) for i, v in enumerate(values))


def to_choices(values: Iterable[object]) -> tuple[Choice | None, ...]:
    return tuple(to_choice(v, i) for i, v in enumerate(values))


class MarkParser:
    """
    Parses typed mark sequences.

    Supports formats:
    1. Compact: "ABCDN" or "AB-DE" (one character per question)
    2. Spaced: "A B C D N"
    3. Delimited: "A,B,,D" or "A;B;-;D" (empty fields are blanks)
    """

    DELIMITER_PATTERN = re.compile(r"[,;]")
    WHITESPACE_PATTERN = re.compile(r"\s+")

    def tokenize(self, content: str) -> list[str]:
        """Split raw text into one token per question."""
        text = content.strip()
        if not text:
            return []
        if self.DELIMITER_PATTERN.search(text):
            return [token.strip() for token in self.DELIMITER_PATTERN.split(text)]
        if self.WHITESPACE_PATTERN.search(text):
            return self.WHITESPACE_PATTERN.split(text)
        return list(text)

    def parse_key(self, content: str) -> tuple[KeyMark, ...]:
        """
        Parse answer key text.

        Raises:
            RangeError: If the text holds no marks.
            InvalidMarkError: If a token is not one of A-E or N.
        """
        tokens = self.tokenize(content)
        if not tokens:
            raise RangeError("Answer key text is empty", 0)
        return to_key_marks(tokens)

    def parse_answers(self, content: str) -> tuple[Choice | None, ...]:
        """
        Parse a student's answer sheet text.

        Empty text is an empty sheet.

        Raises:
            InvalidMarkError: If a token is neither a blank nor one of A-E.
        """
        return to_choices(self.tokenize(content))
