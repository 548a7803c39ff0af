from dataclasses import dataclass


@dataclass(frozen=True)
class PlayerKey:
    """Identifies a player within a round: telegram user id plus first name.

    The pair is what gets written as the player's column header, so a player
    who changes their first name shows up as a new column.
    """

    user_id: int
    name: str

    @property
    def key(self) -> str:
        return f"{self.user_id}|{self.name}"

    @classmethod
    def parse(cls, key: str) -> "PlayerKey":
        user_id, _, name = key.partition("|")
        return cls(user_id=int(user_id), name=name)

    def __str__(self) -> str:
        return self.key
