"""Round lifecycle: creation, score submission and the daily tick.

A round's phase is never stored. It is worked out on every read from the
round's starting puzzle number and today's puzzle number:

    PENDING   today's puzzle is before the first scored puzzle
    ACTIVE    some days remain
    COMPLETE  every day is over, results not yet tabulated
    ARCHIVED  results tabulated and the round renamed out of the way
"""

import asyncio
import logging
from collections import Counter
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional, Union

from api import Puzzle, get_todays_puzzle
from classes import (
    DayElapsed,
    FinalResult,
    ParsedScore,
    RoundConfig,
    RoundMetadata,
    RoundPhase,
    RoundScorecard,
)
from config import MULLIGAN_VALUE
from db import MULLIGAN_SYMBOL, RoundStore
from errors import (
    AlreadyFinalized,
    DuplicateActiveRound,
    InvalidRoundConfig,
    MalformedSubmission,
    StorageUnavailable,
)

LOGGER = logging.getLogger(__name__)

TickOutcome = Union[DayElapsed, FinalResult]


def round_phase(meta: RoundMetadata, current_puzzle: int) -> RoundPhase:
    if meta.archived:
        return RoundPhase.ARCHIVED
    if current_puzzle < meta.start_puzzle:
        return RoundPhase.PENDING
    if meta.is_complete:
        return RoundPhase.COMPLETE
    return RoundPhase.ACTIVE


def pick_mulligans(values: List[float], count: int) -> List[int]:
    """Return the day indexes of the `count` highest values.

    Equal values are taken in day order, so the first of a repeated maximum
    goes first.
    """
    if count <= 0:
        return []
    order = sorted(range(len(values)), key=lambda day: (-(values[day] or 0), day))
    return sorted(order[:count])


def pick_winners(totals: Dict[str, float]) -> List[str]:
    if not totals:
        return []
    best = min(totals.values())
    return [player for player, total in totals.items() if total == best]


class RoundLifecycle:
    """The only place rounds are created, scored and finalized.

    Store and puzzle-service calls block, so they run in worker threads.
    Writes to the same round are serialized with a per-round asyncio lock,
    which is dropped again once no coroutine holds or waits on it.
    """

    def __init__(
        self,
        store: RoundStore,
        fetch_puzzle: Callable[[], Puzzle] = get_todays_puzzle,
    ):
        self.store = store
        self.fetch_puzzle = fetch_puzzle
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Counter = Counter()

    @asynccontextmanager
    async def round_lock(self, round_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(round_id, asyncio.Lock())
        self._lock_users[round_id] += 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[round_id] -= 1
            if self._lock_users[round_id] <= 0:
                del self._lock_users[round_id]
                self._locks.pop(round_id, None)

    async def current_puzzle(self) -> Puzzle:
        return await asyncio.to_thread(self.fetch_puzzle)

    async def initiate_round(
        self,
        round_id: str,
        holes: int,
        mulligans: int,
        chat_id: Optional[int] = None,
        thread_id: Optional[int] = None,
    ) -> RoundConfig:
        """Start a new round; scoring opens with tomorrow's puzzle.

        An existing active round with the same id is archived first.
        """
        if holes < 1:
            raise InvalidRoundConfig("a round needs at least one hole")
        if mulligans < 0 or mulligans > holes:
            raise InvalidRoundConfig(f"can't have {mulligans} mulligans in {holes} holes")

        today = await self.current_puzzle()
        config = RoundConfig(
            id=round_id,
            holes=holes,
            mulligans=mulligans,
            start_puzzle=today.number + 1,
            start_date=today.print_date,
            chat_id=chat_id,
            thread_id=thread_id,
        )

        async with self.round_lock(round_id):
            try:
                await asyncio.to_thread(self.store.create_round, config)
            except DuplicateActiveRound:
                LOGGER.warning("Round %s already active, archiving it to start a new one", round_id)
                await asyncio.to_thread(self.store.archive_round, round_id)
                await asyncio.to_thread(self.store.create_round, config)

        LOGGER.info(
            "Started round %s: %d holes, %d mulligans, first puzzle %d",
            round_id, holes, mulligans, config.start_puzzle,
        )
        return config

    async def submit_score(self, round_id: str, score: ParsedScore) -> int:
        """Record a validated score. Returns the day index it was stored under."""
        if score.value is None:
            raise MalformedSubmission("score has not been validated")

        async with self.round_lock(round_id):
            day = await asyncio.to_thread(
                self.store.record_score, round_id, score.submitter, score.puzzle, score.value
            )
        LOGGER.info("Recorded %s for %s on day %d of %s", score.label, score.submitter, day, round_id)
        return day

    async def get_scorecard(self, round_id: str) -> RoundScorecard:
        today = await self.current_puzzle()
        return await self._read_scorecard(round_id, today.number)

    async def _read_scorecard(self, round_id: str, current_puzzle: int) -> RoundScorecard:
        scorecard = await asyncio.to_thread(self.store.read_scorecard, round_id, current_puzzle)
        scorecard.phase = round_phase(scorecard.metadata, current_puzzle)
        return scorecard

    async def daily_tick(self) -> List[TickOutcome]:
        """Advance every active round by a day, finalizing the ones that are over.

        Fails with UpstreamUnavailable before touching any round if today's
        puzzle cannot be fetched.
        """
        today = await self.current_puzzle()
        rounds = await asyncio.to_thread(self.store.list_active_rounds, today.number)

        outcomes: List[TickOutcome] = []
        for meta in rounds:
            try:
                if meta.is_complete:
                    outcomes.append(await self.finalize_round(meta.id, today.number))
                else:
                    scorecard = await self._read_scorecard(meta.id, today.number)
                    outcomes.append(DayElapsed(scorecard))
            except StorageUnavailable:
                LOGGER.exception("Storage failure during daily tick for round %s", meta.id)
        return outcomes

    async def finalize_round(self, round_id: str, current_puzzle: int) -> TickOutcome:
        """Tabulate and archive a finished round.

        The round is re-read under its lock. If the id now names a round that
        is still running (it was replaced since the tick listed it), nothing
        is written and a DayElapsed for that round is returned instead.
        """
        async with self.round_lock(round_id):
            scorecard = await self._read_scorecard(round_id, current_puzzle)
            meta = scorecard.metadata
            if not meta.is_complete:
                LOGGER.info("Round %s is not over yet, skipping finalization", round_id)
                return DayElapsed(scorecard)

            if not meta.finalized:
                mulligans: Dict[str, List[int]] = {}
                for player, card in scorecard.scores.items():
                    days = pick_mulligans(card.values, meta.mulligans)
                    mulligans[player] = days
                    for day in days:
                        card.days[day].value = MULLIGAN_VALUE
                        card.days[day].symbol = MULLIGAN_SYMBOL
                    card.total = sum(v for v in card.values if v is not None)

                totals = {player: card.total for player, card in scorecard.scores.items()}
                try:
                    await asyncio.to_thread(
                        self.store.apply_finalization, round_id, mulligans, totals
                    )
                except AlreadyFinalized:
                    LOGGER.warning("Round %s was finalized concurrently, re-reading", round_id)
                    scorecard = await self._read_scorecard(round_id, current_puzzle)
            else:
                LOGGER.warning("Round %s already finalized, archiving only", round_id)

            archived = await asyncio.to_thread(self.store.archive_round, round_id)

        totals = {player: card.total for player, card in scorecard.scores.items()}
        winners = pick_winners(totals)
        LOGGER.info("Finalized round %s, winners: %s", round_id, ", ".join(winners) or "none")
        return FinalResult(
            scorecard=scorecard,
            winners=winners,
            winning_score=min(totals.values()) if totals else None,
            archived_id=archived,
        )
