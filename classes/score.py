from dataclasses import dataclass, field
from typing import List, Optional

from .player import PlayerKey


@dataclass
class ParsedScore:
    """A submission whose header line has been read but not yet validated."""

    submitter: PlayerKey
    word: str
    puzzle: int
    label: str  # e.g. "3/6" or "X/6"
    lines: List[str] = field(default_factory=list)
    # set once the submission passes validation
    value: Optional[float] = None


@dataclass
class ValidationResult:
    valid: bool
    value: Optional[float] = None
    reason: str = ""

    def __bool__(self) -> bool:
        return self.valid
