from collections import OrderedDict
from typing import List, NamedTuple, Optional, Tuple

from telegram import Message, User
from telegram.helpers import mention_html

from classes import FinalResult, PlayerKey, RoundKey, RoundPhase, RoundScorecard


def get_round_key(message: Message) -> RoundKey:
    """Derive the round key for the chat (or forum topic) a message was sent in."""
    chat = message.chat
    title = chat.title or str(chat.id)

    if chat.type == "supergroup":
        reply = message.reply_to_message
        if reply is not None and reply.forum_topic_created is not None:
            title = reply.forum_topic_created.name

    return RoundKey(title=title, chat_id=chat.id)


def get_player_key(user: User) -> PlayerKey:
    return PlayerKey(user_id=user.id, name=user.first_name)


def format_score(value: Optional[float]) -> str:
    if value is None:
        return ""
    return f"{value:g}"


def player_link(player_key: str) -> str:
    player = PlayerKey.parse(player_key)
    return mention_html(player.user_id, player.name)


def get_results(scorecard: RoundScorecard) -> List[str]:
    results = []
    for player, card in scorecard.standings():
        results.append(f"{player_link(player)}: <code>{format_score(card.total)}</code>")
        results.append(f"   <code>{' '.join(card.symbols)}</code>")
    return results


def scorecard_message(scorecard: RoundScorecard) -> str:
    meta = scorecard.metadata
    lines = ["<b>Current Round</b>", "-----"]
    if meta.start_date:
        lines.append(f"Started on {meta.start_date}")
    if scorecard.phase is RoundPhase.PENDING:
        lines.append("Scoring opens tomorrow")
    lines.append(f"{meta.completed_days} days completed")
    lines.append(f"{meta.remaining_days} days remaining")
    lines.append("-----")

    lines.append("Scores:")
    lines.append("")
    if scorecard.scores:
        lines.extend(get_results(scorecard))
    else:
        lines.append("No scores yet!")

    lines.append("-----")
    if meta.mulligans:
        lines.append(f"{meta.mulligans} mulligan(s) will be accounted for at the end of the round.")
    lines.append("Thanks for playing!")
    return "\n".join(lines)


def day_elapsed_message(scorecard: RoundScorecard) -> str:
    return "\n".join(
        [
            f"One more day down! You have {scorecard.metadata.remaining_days} days remaining!",
            "Don't forget to submit today's score if you want to win!",
            "",
            "Feel free to use the /scorecard command to check the current standings.",
        ]
    )


def final_scorecard_message(result: FinalResult) -> str:
    lines = ["<b>Round Complete</b>", "-----", "🏆🏆🏆🏆🏆"]
    if not result.winners:
        lines.append("Nobody played this round!")
    elif result.tie:
        lines.append(" and ".join(player_link(w) for w in result.winners) + " win!")
    else:
        lines.append(f"{player_link(result.winners[0])} wins!")
    lines.append("🏆🏆🏆🏆🏆")

    lines.append("-----")
    lines.append("Final results:")
    lines.append("")
    lines.extend(get_results(result.scorecard))
    return "\n".join(lines)


class PendingReaction(NamedTuple):
    thread_id: Optional[int]
    stage: int


class PendingReactions:
    """Bot messages that are waiting for someone to react to them.

    Keyed by (chat id, message id), since message ids are only unique within
    a chat. Lives in memory only and is lost on restart. An entry is removed as soon
    as a reaction matches it; the oldest entries are dropped past `limit`.
    """

    def __init__(self, limit: int = 100):
        self.limit = limit
        self._pending: "OrderedDict[Tuple[int, int], PendingReaction]" = OrderedDict()

    def add(
        self, chat_id: int, message_id: int, thread_id: Optional[int] = None, stage: int = 0
    ) -> None:
        self._pending[(chat_id, message_id)] = PendingReaction(thread_id, stage)
        while len(self._pending) > self.limit:
            self._pending.popitem(last=False)

    def pop(self, chat_id: int, message_id: int) -> Optional[PendingReaction]:
        return self._pending.pop((chat_id, message_id), None)

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: Tuple[int, int]) -> bool:
        return key in self._pending
