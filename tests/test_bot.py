"""Tests for the Telegram handlers, driven with stand-in updates."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from telegram.error import Forbidden
from telegram.ext import ConversationHandler

import bot
import replies
from classes import DayElapsed, RoundMetadata, RoundScorecard
from errors import StorageUnavailable, UpstreamUnavailable
from utils import PendingReactions

CHAT_ID = -100123
INITIATOR = SimpleNamespace(id=1, first_name="Alice")
OTHER = SimpleNamespace(id=2, first_name="Bob")


def make_update(text, user=INITIATOR):
    message = MagicMock()
    message.text = text
    message.chat = SimpleNamespace(type="group", title="Wordle Club", id=CHAT_ID)
    message.chat_id = CHAT_ID
    message.reply_to_message = None
    message.is_topic_message = False
    message.reply_text = AsyncMock()
    return SimpleNamespace(effective_message=message, effective_user=user)


def make_context(chat_data=None):
    lifecycle = MagicMock()
    lifecycle.initiate_round = AsyncMock()
    return SimpleNamespace(
        chat_data={} if chat_data is None else chat_data,
        bot_data={"lifecycle": lifecycle, "reactions": PendingReactions()},
        bot=SimpleNamespace(send_message=AsyncMock()),
    )


def replied(update):
    return [c.args[0] for c in update.effective_message.reply_text.await_args_list]


def pending_round(**extra):
    state = {"initiator": INITIATOR.id, "name": INITIATOR.first_name}
    state.update(extra)
    return {"new_round": state}


class TestNewRoundConversation:
    @pytest.mark.asyncio
    async def test_wordle_asks_for_confirmation(self):
        update, context = make_update("/wordle"), make_context()

        state = await bot.wordle_cmd(update, context)

        assert state == bot.CONFIRM
        assert context.chat_data["new_round"]["initiator"] == INITIATOR.id

    @pytest.mark.asyncio
    async def test_initiator_cannot_confirm_own_round(self):
        update, context = make_update("yes"), make_context(pending_round())

        state = await bot.confirm_round(update, context)

        assert state == ConversationHandler.END
        assert replied(update) == [replies.SAME_PERSON]
        assert context.chat_data == {}

    @pytest.mark.asyncio
    async def test_decline(self):
        update, context = make_update("No", user=OTHER), make_context(pending_round())

        state = await bot.confirm_round(update, context)

        assert state == ConversationHandler.END
        assert replied(update) == [replies.DECLINE_RESPONSE]
        assert context.chat_data == {}

    @pytest.mark.asyncio
    async def test_second_player_confirms(self):
        update, context = make_update("y", user=OTHER), make_context(pending_round())

        state = await bot.confirm_round(update, context)

        assert state == bot.HOLES
        assert replied(update)[-1] == replies.ASK_HOLES
        assert "new_round" in context.chat_data

    @pytest.mark.asyncio
    async def test_unclear_confirmation(self):
        update, context = make_update("maybe", user=OTHER), make_context(pending_round())

        state = await bot.confirm_round(update, context)

        assert state == ConversationHandler.END
        assert replied(update) == [replies.ERROR_CONFIRMATION]

    @pytest.mark.asyncio
    async def test_only_initiator_answers_holes(self):
        update, context = make_update("9", user=OTHER), make_context(pending_round())

        state = await bot.holes_answer(update, context)

        assert state == bot.HOLES
        assert "holes" not in context.chat_data["new_round"]

    @pytest.mark.asyncio
    async def test_stop_abandons_setup(self):
        update, context = make_update("Stop"), make_context(pending_round())

        state = await bot.holes_answer(update, context)

        assert state == ConversationHandler.END
        assert replied(update) == [replies.LEAVING]
        assert context.chat_data == {}

    @pytest.mark.asyncio
    async def test_holes_must_be_a_number(self):
        update, context = make_update("nine"), make_context(pending_round())

        state = await bot.holes_answer(update, context)

        assert state == ConversationHandler.END
        assert replied(update) == [replies.NOT_A_NUMBER]

    @pytest.mark.asyncio
    async def test_holes_then_mulligans(self):
        update, context = make_update("9"), make_context(pending_round())

        state = await bot.holes_answer(update, context)

        assert state == bot.MULLIGANS
        assert context.chat_data["new_round"]["holes"] == 9
        assert replied(update) == [replies.ASK_MULLIGANS]

    @pytest.mark.asyncio
    async def test_too_many_mulligans(self):
        update, context = make_update("10"), make_context(pending_round(holes=9))

        state = await bot.mulligans_answer(update, context)

        assert state == ConversationHandler.END
        assert replied(update) == [replies.TOO_MANY_MULLIGANS]
        context.bot_data["lifecycle"].initiate_round.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_round_is_started(self):
        update, context = make_update("2"), make_context(pending_round(holes=9))

        state = await bot.mulligans_answer(update, context)

        assert state == ConversationHandler.END
        context.bot_data["lifecycle"].initiate_round.assert_awaited_once_with(
            f"Wordle Club|{CHAT_ID}", holes=9, mulligans=2, chat_id=CHAT_ID, thread_id=None
        )
        assert replied(update) == [replies.START_NEW_ROUND.format(holes=9, mulligans=2)]
        assert context.chat_data == {}

    @pytest.mark.asyncio
    async def test_puzzle_service_down(self):
        update, context = make_update("2"), make_context(pending_round(holes=9))
        context.bot_data["lifecycle"].initiate_round.side_effect = UpstreamUnavailable("down")

        await bot.mulligans_answer(update, context)

        assert replied(update) == [replies.UPSTREAM_DOWN]

    @pytest.mark.asyncio
    async def test_storage_down(self):
        update, context = make_update("2"), make_context(pending_round(holes=9))
        context.bot_data["lifecycle"].initiate_round.side_effect = StorageUnavailable("locked")

        await bot.mulligans_answer(update, context)

        assert replied(update) == [replies.STORAGE_DOWN]


class TestReactions:
    @pytest.mark.asyncio
    async def test_reaction_in_another_chat_is_ignored(self):
        context = make_context()
        context.bot_data["reactions"].add(CHAT_ID, 10)
        update = SimpleNamespace(
            message_reaction=SimpleNamespace(
                new_reaction=[SimpleNamespace(emoji=bot.REACTION_EMOJI)],
                message_id=10,
                chat=SimpleNamespace(id=-100456),
            )
        )

        await bot.reaction_msg(update, context)

        context.bot.send_message.assert_not_awaited()
        assert (CHAT_ID, 10) in context.bot_data["reactions"]

    @pytest.mark.asyncio
    async def test_reaction_gets_follow_up(self):
        context = make_context()
        context.bot_data["reactions"].add(CHAT_ID, 10, thread_id=5)
        context.bot.send_message.return_value = SimpleNamespace(message_id=11)
        update = SimpleNamespace(
            message_reaction=SimpleNamespace(
                new_reaction=[SimpleNamespace(emoji=bot.REACTION_EMOJI)],
                message_id=10,
                chat=SimpleNamespace(id=CHAT_ID),
            )
        )

        await bot.reaction_msg(update, context)

        context.bot.send_message.assert_awaited_once_with(
            chat_id=CHAT_ID, text=replies.BAD_BOT_FOLLOW_UP, message_thread_id=5
        )
        assert (CHAT_ID, 11) in context.bot_data["reactions"]


class TestDailyTickJob:
    @staticmethod
    def elapsed(round_id, chat_id):
        meta = RoundMetadata(
            id=round_id, holes=9, mulligans=1, start_puzzle=1000,
            chat_id=chat_id, completed_days=1,
        )
        return DayElapsed(RoundScorecard(metadata=meta))

    @pytest.mark.asyncio
    async def test_blocked_chat_does_not_stop_other_rounds(self):
        context = make_context()
        context.bot_data["lifecycle"].daily_tick = AsyncMock(
            return_value=[self.elapsed("Kicked|-1", -1), self.elapsed("Wordle Club|-100123", CHAT_ID)]
        )

        async def send(chat_id, **kwargs):
            if chat_id == -1:
                raise Forbidden("bot was kicked from the group chat")

        context.bot.send_message.side_effect = send

        await bot.daily_tick_job(context)

        sent_to = [c.kwargs["chat_id"] for c in context.bot.send_message.await_args_list]
        assert sent_to == [-1, CHAT_ID]

    @pytest.mark.asyncio
    async def test_puzzle_service_down_posts_nothing(self):
        context = make_context()
        context.bot_data["lifecycle"].daily_tick = AsyncMock(side_effect=UpstreamUnavailable("down"))

        await bot.daily_tick_job(context)

        context.bot.send_message.assert_not_awaited()
