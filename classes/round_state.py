from dataclasses import dataclass
from enum import Enum
from typing import Optional


class RoundPhase(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETE = "complete"
    ARCHIVED = "archived"


@dataclass(frozen=True)
class RoundKey:
    """Identifies the active round of a chat (or forum topic) by title and chat id."""

    title: str
    chat_id: int

    @property
    def id(self) -> str:
        return f"{self.title}|{self.chat_id}"

    def __str__(self) -> str:
        return self.id


@dataclass
class RoundConfig:
    id: str
    holes: int
    mulligans: int
    start_puzzle: int
    start_date: str = ""  # "YYYY-MM-DD", display only
    chat_id: Optional[int] = None
    thread_id: Optional[int] = None


@dataclass
class RoundMetadata(RoundConfig):
    completed_days: int = 0
    is_complete: bool = False
    archived: bool = False
    finalized: bool = False

    @property
    def remaining_days(self) -> int:
        return self.holes - self.completed_days
