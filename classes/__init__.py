from .player import PlayerKey
from .round_state import RoundConfig, RoundKey, RoundMetadata, RoundPhase
from .score import ParsedScore, ValidationResult
from .scorecard import DayElapsed, DayScore, FinalResult, PlayerCard, RoundScorecard

__all__ = [
    "PlayerKey",
    "RoundConfig",
    "RoundKey",
    "RoundMetadata",
    "RoundPhase",
    "ParsedScore",
    "ValidationResult",
    "DayElapsed",
    "DayScore",
    "FinalResult",
    "PlayerCard",
    "RoundScorecard",
]
