import datetime
import logging
import secrets
import sqlite3
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional

from classes import DayScore, PlayerCard, PlayerKey, RoundConfig, RoundMetadata, RoundScorecard
from config import DB_PATH, DB_TIMEOUT, DNF_LABEL, DNF_VALUE, MISSED_VALUE, MULLIGAN_VALUE
from errors import (
    AlreadyFinalized,
    AlreadyScored,
    DuplicateActiveRound,
    InvalidRoundConfig,
    RoundNotFound,
    RoundNotStarted,
    RoundOver,
    StorageUnavailable,
)

LOGGER = logging.getLogger(__name__)

MULLIGAN_LABEL = "M"

# scorecard display symbols
MISSED_SYMBOL = "-"
MULLIGAN_SYMBOL = "M"
BLANK_SYMBOL = "_"

ARCHIVE_SUFFIX = "bkp"


def completed_days(start_puzzle: int, holes: int, current_puzzle: int) -> int:
    """Number of round days that are over, given today's puzzle number."""
    return max(0, min(current_puzzle - start_puzzle, holes))


def encode_value(value: float) -> str:
    if value == DNF_VALUE:
        return DNF_LABEL
    return str(int(value))


def decode_cell(cell: str) -> DayScore:
    if cell == DNF_LABEL:
        return DayScore(DNF_VALUE, DNF_LABEL)
    if cell == MULLIGAN_LABEL:
        return DayScore(MULLIGAN_VALUE, MULLIGAN_SYMBOL)
    return DayScore(int(cell), cell)


def archived_id(round_id: str, today: Optional[datetime.date] = None) -> str:
    today = today or datetime.date.today()
    return f"{round_id}|{today.strftime('%y-%m-%d')}|{secrets.token_hex(2)}|{ARCHIVE_SUFFIX}"


class RoundStore:
    """sqlite-backed score tables, one per round.

    Each round is laid out like a sheet: a header of player columns
    (round_players), one row per day plus a trailing total row (round_cells),
    and a metadata block (rounds).
    """

    def __init__(self, path: str = DB_PATH, timeout: float = DB_TIMEOUT):
        self.path = path
        self.timeout = timeout

    @contextmanager
    def _connect(self) -> Iterator[sqlite3.Connection]:
        try:
            conn = sqlite3.connect(self.path, timeout=self.timeout)
        except sqlite3.Error as exc:
            raise StorageUnavailable(f"cannot open {self.path}: {exc}") from exc
        conn.row_factory = sqlite3.Row
        try:
            with conn:
                yield conn
        except sqlite3.Error as exc:
            raise StorageUnavailable(str(exc)) from exc
        finally:
            conn.close()

    def init(self) -> None:
        """Initialize the SQLite database and required tables."""
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS rounds (
                    round_id TEXT PRIMARY KEY,
                    chat_id INTEGER,
                    thread_id INTEGER,
                    holes INTEGER NOT NULL,
                    mulligans INTEGER NOT NULL DEFAULT 0,
                    start_date TEXT NOT NULL DEFAULT '',
                    start_puzzle INTEGER NOT NULL,
                    archived INTEGER NOT NULL DEFAULT 0,
                    finalized INTEGER NOT NULL DEFAULT 0
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS round_players (
                    round_id TEXT NOT NULL,
                    player_key TEXT NOT NULL,
                    position INTEGER NOT NULL,
                    PRIMARY KEY (round_id, player_key)
                )
                """
            )
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS round_cells (
                    round_id TEXT NOT NULL,
                    row INTEGER NOT NULL,
                    player_key TEXT NOT NULL,
                    value TEXT NOT NULL,
                    PRIMARY KEY (round_id, row, player_key)
                )
                """
            )

    # rounds

    def _active_row(self, conn: sqlite3.Connection, round_id: str) -> sqlite3.Row:
        row = conn.execute(
            "SELECT * FROM rounds WHERE round_id = ? AND archived = 0", (round_id,)
        ).fetchone()
        if row is None:
            raise RoundNotFound(round_id)
        return row

    @staticmethod
    def _metadata(row: sqlite3.Row, current_puzzle: Optional[int] = None) -> RoundMetadata:
        done = 0
        if current_puzzle is not None:
            done = completed_days(row["start_puzzle"], row["holes"], current_puzzle)
        return RoundMetadata(
            id=row["round_id"],
            holes=row["holes"],
            mulligans=row["mulligans"],
            start_puzzle=row["start_puzzle"],
            start_date=row["start_date"],
            chat_id=row["chat_id"],
            thread_id=row["thread_id"],
            completed_days=done,
            is_complete=done >= row["holes"],
            archived=bool(row["archived"]),
            finalized=bool(row["finalized"]),
        )

    def create_round(self, config: RoundConfig) -> None:
        if config.holes < 1 or not 0 <= config.mulligans <= config.holes:
            raise InvalidRoundConfig(f"{config.mulligans} mulligans for {config.holes} holes")

        with self._connect() as conn:
            existing = conn.execute(
                "SELECT 1 FROM rounds WHERE round_id = ? AND archived = 0", (config.id,)
            ).fetchone()
            if existing:
                raise DuplicateActiveRound(config.id)
            conn.execute(
                """
                INSERT INTO rounds (round_id, chat_id, thread_id, holes, mulligans, start_date, start_puzzle)
                VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    config.id,
                    config.chat_id,
                    config.thread_id,
                    config.holes,
                    config.mulligans,
                    config.start_date,
                    config.start_puzzle,
                ),
            )

    def get_round(self, round_id: str, current_puzzle: Optional[int] = None) -> RoundMetadata:
        with self._connect() as conn:
            return self._metadata(self._active_row(conn, round_id), current_puzzle)

    def list_active_rounds(self, current_puzzle: int) -> List[RoundMetadata]:
        """Return every round that has not been archived, oldest first."""
        with self._connect() as conn:
            rows = conn.execute(
                "SELECT * FROM rounds WHERE archived = 0 ORDER BY rowid"
            ).fetchall()
        return [self._metadata(row, current_puzzle) for row in rows]

    def archive_round(self, round_id: str) -> str:
        """Rename a round out of the active namespace. Returns the archived id."""
        new_id = archived_id(round_id)
        with self._connect() as conn:
            self._active_row(conn, round_id)
            conn.execute(
                "UPDATE rounds SET round_id = ?, archived = 1 WHERE round_id = ?",
                (new_id, round_id),
            )
            conn.execute(
                "UPDATE round_players SET round_id = ? WHERE round_id = ?", (new_id, round_id)
            )
            conn.execute(
                "UPDATE round_cells SET round_id = ? WHERE round_id = ?", (new_id, round_id)
            )
        LOGGER.info("Archived round %s as %s", round_id, new_id)
        return new_id

    # scores

    def record_score(self, round_id: str, player: PlayerKey, puzzle: int, value: float) -> int:
        """Write a player's score for the day of `puzzle`. Returns the day index."""
        with self._connect() as conn:
            meta = self._metadata(self._active_row(conn, round_id))
            day = puzzle - meta.start_puzzle

            if day < 0:
                raise RoundNotStarted(f"puzzle {puzzle} is before day 0 of {round_id}")
            if day >= meta.holes:
                raise RoundOver(f"puzzle {puzzle} is past the last day of {round_id}")

            existing = conn.execute(
                "SELECT value FROM round_cells WHERE round_id = ? AND row = ? AND player_key = ?",
                (round_id, day, player.key),
            ).fetchone()
            if existing is not None:
                raise AlreadyScored(f"{player} already scored day {day} of {round_id}")

            # new players get a column before their first value is written
            conn.execute(
                """
                INSERT OR IGNORE INTO round_players (round_id, player_key, position)
                VALUES (?, ?, (SELECT COUNT(*) FROM round_players WHERE round_id = ?))
                """,
                (round_id, player.key, round_id),
            )
            try:
                conn.execute(
                    "INSERT INTO round_cells (round_id, row, player_key, value) VALUES (?, ?, ?, ?)",
                    (round_id, day, player.key, encode_value(value)),
                )
            except sqlite3.IntegrityError as exc:
                raise AlreadyScored(f"{player} already scored day {day} of {round_id}") from exc
        return day

    def read_scorecard(self, round_id: str, current_puzzle: int) -> RoundScorecard:
        with self._connect() as conn:
            meta = self._metadata(self._active_row(conn, round_id), current_puzzle)
            players = [
                r["player_key"]
                for r in conn.execute(
                    "SELECT player_key FROM round_players WHERE round_id = ? ORDER BY position",
                    (round_id,),
                )
            ]
            cells = {
                (r["row"], r["player_key"]): r["value"]
                for r in conn.execute(
                    "SELECT row, player_key, value FROM round_cells WHERE round_id = ? AND row < ?",
                    (round_id, meta.holes),
                )
            }

        scorecard = RoundScorecard(metadata=meta)
        for player in players:
            card = PlayerCard()
            for day in range(meta.holes):
                cell = cells.get((day, player))
                if cell is not None:
                    card.days.append(decode_cell(cell))
                elif day < meta.completed_days:
                    card.days.append(DayScore(MISSED_VALUE, MISSED_SYMBOL))
                else:
                    card.days.append(DayScore(None, BLANK_SYMBOL))
            card.total = sum(v for v in card.values if v is not None)
            scorecard.scores[player] = card
        return scorecard

    def apply_finalization(
        self,
        round_id: str,
        mulligans: Dict[str, List[int]],
        totals: Dict[str, float],
    ) -> None:
        """Write mulligan markers and the total row, then mark the round finalized.

        Everything happens in one transaction and is refused if the round was
        already finalized, so mulligans are never applied twice.
        """
        with self._connect() as conn:
            row = self._active_row(conn, round_id)
            if row["finalized"]:
                raise AlreadyFinalized(round_id)

            for player, days in mulligans.items():
                for day in days:
                    conn.execute(
                        """
                        INSERT INTO round_cells (round_id, row, player_key, value)
                        VALUES (?, ?, ?, ?)
                        ON CONFLICT(round_id, row, player_key) DO UPDATE SET
                            value = excluded.value
                        """,
                        (round_id, day, player, MULLIGAN_LABEL),
                    )
            for player, total in totals.items():
                conn.execute(
                    """
                    INSERT INTO round_cells (round_id, row, player_key, value)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT(round_id, row, player_key) DO UPDATE SET
                        value = excluded.value
                    """,
                    (round_id, row["holes"], player, f"{total:g}"),
                )
            conn.execute("UPDATE rounds SET finalized = 1 WHERE round_id = ?", (round_id,))

    def read_total(self, round_id: str, player: str) -> Optional[float]:
        """Return a player's finalized total; archived rounds are included."""
        with self._connect() as conn:
            meta = conn.execute(
                "SELECT holes FROM rounds WHERE round_id = ?", (round_id,)
            ).fetchone()
            if meta is None:
                raise RoundNotFound(round_id)
            row = conn.execute(
                "SELECT value FROM round_cells WHERE round_id = ? AND row = ? AND player_key = ?",
                (round_id, meta["holes"], player),
            ).fetchone()
        return float(row["value"]) if row else None
