"""Reading shared Wordle results out of chat messages.

A shared result looks like::

    Wordle 1,234 3/6

    ⬛🟨⬛⬛⬛
    ⬛🟩🟩⬛🟨
    🟩🟩🟩🟩🟩

The header is followed by a blank spacer line and one grid row per guess.
"""

import logging
from typing import List

from classes import ParsedScore, PlayerKey, ValidationResult
from config import ALL_CORRECT, DNF_LABEL, DNF_VALUE, MAX_GUESSES
from errors import MalformedSubmission, ParseError

LOGGER = logging.getLogger(__name__)


def split_lines(message: str) -> List[str]:
    return [line.rstrip() for line in message.rstrip().split("\n")]


def parse_score(message: str, submitter: PlayerKey) -> ParsedScore:
    """Read the header line of a shared result.

    Only the structure is checked here: three tokens on the first line and a
    numeric puzzle number. Everything else is left to validate_score.
    """
    if not message or not message.strip():
        raise ParseError(ParseError.EMPTY_MESSAGE)

    lines = split_lines(message)
    header = lines[0].split()
    if len(header) != 3:
        raise ParseError(ParseError.MALFORMED_HEADER, lines[0])

    word, puzzle_label, score_label = header
    digits = puzzle_label.replace(",", "")
    if not digits.isdecimal():
        raise ParseError(ParseError.MALFORMED_PUZZLE_NUMBER, puzzle_label)

    return ParsedScore(
        submitter=submitter,
        word=word,
        puzzle=int(digits),
        label=score_label,
        lines=lines,
    )


def validate_score(parsed: ParsedScore) -> ValidationResult:
    scoring = parsed.label.split("/")
    if len(scoring) != 2 or scoring[1] != str(MAX_GUESSES):
        return ValidationResult(False, reason=f"score must be out of {MAX_GUESSES}")

    guesses, lines = scoring[0], parsed.lines

    if guesses == DNF_LABEL:
        # did not finish: every guess row used and the last one is not solved
        if len(lines) == MAX_GUESSES + 2 and lines[-1] != ALL_CORRECT:
            return ValidationResult(True, value=DNF_VALUE)
        return ValidationResult(False, reason="unfinished grid does not match")

    if not guesses.isdecimal() or not 1 <= int(guesses) <= MAX_GUESSES:
        return ValidationResult(False, reason=f"guesses must be 1-{MAX_GUESSES} or {DNF_LABEL}")

    value = int(guesses)
    if len(lines) != value + 2:
        return ValidationResult(False, reason="grid does not match the number of guesses")

    if lines[-1] != ALL_CORRECT:
        return ValidationResult(False, reason="grid does not end with a solved row")

    return ValidationResult(True, value=value)


def read_score(message: str, submitter: PlayerKey) -> ParsedScore:
    """Parse and validate a submission, raising MalformedSubmission on any failure."""
    parsed = parse_score(message, submitter)
    result = validate_score(parsed)
    if not result:
        LOGGER.info("Rejected score from %s: %s", submitter, result.reason)
        raise MalformedSubmission(result.reason)
    parsed.value = result.value
    return parsed
