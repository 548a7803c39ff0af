import datetime
import logging
import time
from typing import NamedTuple, Optional, TypedDict

import requests

from config import (
    PUZZLE_API_BACKOFF,
    PUZZLE_API_BASE,
    PUZZLE_API_RETRIES,
    PUZZLE_API_TIMEOUT,
    PUZZLE_TZ,
)
from errors import UpstreamUnavailable

LOGGER = logging.getLogger(__name__)


class WordleResponse(TypedDict):
    """Daily puzzle metadata as served by the puzzle service.

    JSON object with fields:
    - id: internal puzzle id
    - solution: the answer (never shown to players)
    - print_date: "YYYY-MM-DD"
    - days_since_launch: the puzzle's sequence number
    - editor: puzzle editor
    """

    id: int
    solution: str
    print_date: str
    days_since_launch: int
    editor: str


class Puzzle(NamedTuple):
    print_date: str
    number: int


def puzzle_date(now: Optional[datetime.datetime] = None) -> str:
    """Return today's puzzle date as "YYYY-MM-DD" on the Eastern calendar."""
    now = now or datetime.datetime.now(PUZZLE_TZ)
    return now.astimezone(PUZZLE_TZ).strftime("%Y-%m-%d")


def fetch_puzzle(date: str) -> WordleResponse:
    url = f"{PUZZLE_API_BASE}/{date}.json"
    r = requests.get(url, timeout=PUZZLE_API_TIMEOUT)
    r.raise_for_status()
    return r.json()


def get_todays_puzzle(
    now: Optional[datetime.datetime] = None,
    retries: int = PUZZLE_API_RETRIES,
    backoff: float = PUZZLE_API_BACKOFF,
) -> Puzzle:
    """Fetch today's puzzle number, retrying with exponential backoff.

    Raises UpstreamUnavailable once every attempt has failed. There is no
    fallback value: a wrong sequence number would shift every day index of a
    round.
    """
    date = puzzle_date(now)
    last_error: Optional[Exception] = None

    for attempt in range(1, max(retries, 1) + 1):
        try:
            data = fetch_puzzle(date)
            return Puzzle(
                print_date=str(data["print_date"]),
                number=int(data["days_since_launch"]),
            )
        except (requests.RequestException, KeyError, TypeError, ValueError) as exc:
            last_error = exc
            LOGGER.warning(
                "Puzzle lookup for %s failed (attempt %d/%d): %s",
                date, attempt, retries, exc,
            )
            if attempt < retries:
                time.sleep(backoff * 2 ** (attempt - 1))

    raise UpstreamUnavailable(f"could not fetch puzzle for {date}: {last_error}")
