from api import Puzzle
from classes import PlayerKey
from config import ALL_CORRECT
from errors import UpstreamUnavailable

MISS_ROW = "⬛🟨⬛⬛⬛"

ALICE = PlayerKey(user_id=1, name="Alice")
BOB = PlayerKey(user_id=2, name="Bob")

ROUND_ID = "Wordle Club|-100123"


def share_text(puzzle=1000, label="3/6", guesses=3, solved=True, word="Wordle"):
    """Build a shared result the way the game formats it."""
    rows = [MISS_ROW] * (guesses - 1) + [ALL_CORRECT if solved else MISS_ROW]
    return "\n".join([f"{word} {puzzle:,} {label}", ""] + rows)


class FakePuzzles:
    """Stands in for the puzzle service; advance `number` to move time forward."""

    def __init__(self, number=999, print_date="2026-10-19"):
        self.number = number
        self.print_date = print_date
        self.fail = False
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.fail:
            raise UpstreamUnavailable("puzzle service down")
        return Puzzle(print_date=self.print_date, number=self.number)
