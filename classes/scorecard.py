from dataclasses import dataclass, field
from typing import Dict, List, Optional

from .round_state import RoundMetadata, RoundPhase


@dataclass
class DayScore:
    # None means the day is not playable yet
    value: Optional[float]
    symbol: str


@dataclass
class PlayerCard:
    total: float = 0
    days: List[DayScore] = field(default_factory=list)

    @property
    def values(self) -> List[Optional[float]]:
        return [d.value for d in self.days]

    @property
    def symbols(self) -> List[str]:
        return [d.symbol for d in self.days]


@dataclass
class RoundScorecard:
    metadata: RoundMetadata
    scores: Dict[str, PlayerCard] = field(default_factory=dict)
    phase: Optional[RoundPhase] = None

    def standings(self) -> List[tuple]:
        """Return (player_key, card) pairs, lowest total first."""
        return sorted(self.scores.items(), key=lambda item: item[1].total)


@dataclass
class FinalResult:
    scorecard: RoundScorecard
    winners: List[str] = field(default_factory=list)
    winning_score: Optional[float] = None
    archived_id: str = ""

    @property
    def tie(self) -> bool:
        return len(self.winners) > 1


@dataclass
class DayElapsed:
    scorecard: RoundScorecard
