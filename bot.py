import datetime
import logging
from typing import Optional, Union

from telegram import ForceReply, Update
from telegram.error import TelegramError
from telegram.ext import (
    Application,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    MessageReactionHandler,
    filters,
)
from telegram.helpers import mention_html

import replies
from classes import FinalResult
from config import (
    BOT_TOKEN,
    CONVERSATION_TIMEOUT,
    DAILY_TICK_HOUR,
    DAILY_TICK_MINUTE,
    DB_PATH,
    LOG_LEVEL,
    TZ,
)
from db import RoundStore
from errors import (
    InvalidRoundConfig,
    OperatorFacingError,
    RoundNotFound,
    UpstreamUnavailable,
    UserFacingError,
)
from rounds import RoundLifecycle, TickOutcome
from scoring import read_score
from utils import (
    PendingReactions,
    day_elapsed_message,
    final_scorecard_message,
    get_player_key,
    get_round_key,
    scorecard_message,
)

# module logger
LOGGER = logging.getLogger(__name__)

# /wordle conversation states
CONFIRM, HOLES, MULLIGANS = range(3)

STOP_WORD = "stop"
REACTION_EMOJI = "👏"


# helpers
def get_lifecycle(context: ContextTypes.DEFAULT_TYPE) -> RoundLifecycle:
    return context.bot_data["lifecycle"]


def get_reactions(context: ContextTypes.DEFAULT_TYPE) -> PendingReactions:
    return context.bot_data["reactions"]


def thread_of(update: Update) -> Optional[int]:
    message = update.effective_message
    if message is not None and message.is_topic_message:
        return message.message_thread_id
    return None


# 1. start / help / instructions
async def instructions_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    await update.effective_message.reply_text(replies.INSTRUCTIONS)


# 2. score submissions
async def score_msg(update: Update, context: ContextTypes.DEFAULT_TYPE):
    message = update.effective_message
    user = update.effective_user

    if user is None or not message.text:
        await message.reply_text(replies.UNKNOWN_PERSON)
        return

    round_key = get_round_key(message)
    try:
        score = read_score(message.text, get_player_key(user))
        await get_lifecycle(context).submit_score(round_key.id, score)
    except UserFacingError as exc:
        reply = replies.SCORE_ERROR.get(exc.code, replies.GENERIC_SCORE_ERROR)
        await message.reply_text(reply, do_quote=True)
    except OperatorFacingError:
        LOGGER.exception("Failed to record score for %s in %s", user.id, round_key)
        await message.reply_text(replies.GENERIC_SCORE_ERROR, do_quote=True)
    else:
        await message.reply_text(replies.score_reply(score.value), do_quote=True)


# 3. current standings
async def scorecard_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE):
    message = update.effective_message
    round_key = get_round_key(message)

    try:
        scorecard = await get_lifecycle(context).get_scorecard(round_key.id)
    except RoundNotFound:
        await message.reply_text(replies.SCORE_ERROR[RoundNotFound.code])
        return
    except UpstreamUnavailable:
        LOGGER.exception("Puzzle lookup failed for /scorecard in %s", round_key)
        await message.reply_text(replies.UPSTREAM_DOWN)
        return

    await message.reply_text(scorecard_message(scorecard), parse_mode="HTML")


# 4. new round conversation
async def wordle_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    user = update.effective_user
    message = update.effective_message

    if user is None:
        await message.reply_text(replies.UNKNOWN_PERSON)
        return ConversationHandler.END

    context.chat_data["new_round"] = {"initiator": user.id, "name": user.first_name}
    await message.reply_text(
        replies.CONFIRM_NEW_ROUND.format(initiator=mention_html(user.id, user.first_name)),
        parse_mode="HTML",
        reply_markup=ForceReply(),
    )
    return CONFIRM


async def confirm_round(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    message = update.effective_message
    respondent = update.effective_user
    pending = context.chat_data.get("new_round")
    text = (message.text or "").strip().lower()

    if pending is None or respondent is None:
        await message.reply_text(replies.UNKNOWN_PERSON)
    elif text in ("no", "n"):
        await message.reply_text(replies.DECLINE_RESPONSE)
    elif respondent.id == pending["initiator"]:
        await message.reply_text(replies.SAME_PERSON, do_quote=True)
    elif text in ("yes", "y"):
        await message.reply_text("Let's get this round started!")
        await message.reply_text(replies.ASK_HOLES)
        return HOLES
    else:
        await message.reply_text(replies.ERROR_CONFIRMATION, do_quote=True)

    context.chat_data.pop("new_round", None)
    return ConversationHandler.END


async def read_number(update: Update, context: ContextTypes.DEFAULT_TYPE) -> Union[int, None]:
    """Read the initiator's numeric answer.

    Returns the number, or None when the message was from someone else and
    the conversation should keep waiting. Raises ValueError when the
    conversation should be abandoned.
    """
    message = update.effective_message
    respondent = update.effective_user
    pending = context.chat_data.get("new_round")
    text = (message.text or "").strip()

    if pending is None or respondent is None:
        await message.reply_text(replies.UNKNOWN_PERSON)
        raise ValueError("unknown respondent")
    if text.lower() == STOP_WORD:
        await message.reply_text(replies.LEAVING)
        raise ValueError("stopped")
    if respondent.id != pending["initiator"]:
        await message.reply_text(
            replies.INITIATOR_ONLY.format(initiator=mention_html(pending["initiator"], pending["name"])),
            parse_mode="HTML",
        )
        return None

    try:
        return int(text)
    except ValueError:
        await message.reply_text(replies.NOT_A_NUMBER)
        raise


async def holes_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    try:
        holes = await read_number(update, context)
    except ValueError:
        context.chat_data.pop("new_round", None)
        return ConversationHandler.END
    if holes is None:
        return HOLES

    context.chat_data["new_round"]["holes"] = holes
    await update.effective_message.reply_text(replies.ASK_MULLIGANS)
    return MULLIGANS


async def mulligans_answer(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    try:
        mulligans = await read_number(update, context)
    except ValueError:
        context.chat_data.pop("new_round", None)
        return ConversationHandler.END
    if mulligans is None:
        return MULLIGANS

    message = update.effective_message
    pending = context.chat_data.pop("new_round")
    holes = pending["holes"]

    if mulligans > holes:
        await message.reply_text(replies.TOO_MANY_MULLIGANS)
        return ConversationHandler.END

    round_key = get_round_key(message)
    try:
        await get_lifecycle(context).initiate_round(
            round_key.id,
            holes=holes,
            mulligans=mulligans,
            chat_id=message.chat_id,
            thread_id=thread_of(update),
        )
    except InvalidRoundConfig as exc:
        await message.reply_text(f"I can't start that round: {exc}")
    except UpstreamUnavailable:
        LOGGER.exception("Puzzle lookup failed starting round %s", round_key)
        await message.reply_text(replies.UPSTREAM_DOWN)
    except OperatorFacingError:
        LOGGER.exception("Could not start round %s", round_key)
        await message.reply_text(replies.STORAGE_DOWN)
    else:
        await message.reply_text(replies.START_NEW_ROUND.format(holes=holes, mulligans=mulligans))
    return ConversationHandler.END


async def stop_cmd(update: Update, context: ContextTypes.DEFAULT_TYPE) -> int:
    context.chat_data.pop("new_round", None)
    await update.effective_message.reply_text(replies.LEAVING)
    return ConversationHandler.END


# 5. easter egg
async def bad_bot_msg(update: Update, context: ContextTypes.DEFAULT_TYPE):
    msg = await update.effective_message.reply_text(replies.BAD_BOT, do_quote=True)
    get_reactions(context).add(msg.chat_id, msg.message_id, thread_of(update))


async def reaction_msg(update: Update, context: ContextTypes.DEFAULT_TYPE):
    reaction = update.message_reaction
    if not any(getattr(r, "emoji", None) == REACTION_EMOJI for r in reaction.new_reaction):
        return

    pending = get_reactions(context).pop(reaction.chat.id, reaction.message_id)
    if pending is None:
        return

    if pending.stage == 0:
        msg = await context.bot.send_message(
            chat_id=reaction.chat.id,
            text=replies.BAD_BOT_FOLLOW_UP,
            message_thread_id=pending.thread_id,
        )
        get_reactions(context).add(reaction.chat.id, msg.message_id, pending.thread_id, stage=1)
    else:
        await context.bot.send_message(
            chat_id=reaction.chat.id,
            text=replies.BAD_BOT_LAST_WORD,
            message_thread_id=pending.thread_id,
        )


# job queue handlers
async def daily_tick_job(context: ContextTypes.DEFAULT_TYPE):
    """
    Tell every active round a day has passed, and wrap up finished rounds.
    """
    try:
        outcomes = await get_lifecycle(context).daily_tick()
    except UpstreamUnavailable:
        LOGGER.exception("Daily tick skipped: puzzle lookup failed")
        return

    for outcome in outcomes:
        meta = outcome.scorecard.metadata
        if meta.chat_id is None:
            LOGGER.warning("Round %s has no chat to post to", meta.id)
            continue

        # one unreachable chat must not cost the others their notice
        try:
            await post_outcome(context, outcome)
        except TelegramError:
            LOGGER.exception("Could not post daily update for round %s", meta.id)


async def post_outcome(context: ContextTypes.DEFAULT_TYPE, outcome: TickOutcome):
    meta = outcome.scorecard.metadata
    if isinstance(outcome, FinalResult):
        await context.bot.send_message(
            chat_id=meta.chat_id,
            text="The round is complete! Lets see who won!",
            message_thread_id=meta.thread_id,
        )
        text = final_scorecard_message(outcome)
    else:
        text = day_elapsed_message(outcome.scorecard)

    await context.bot.send_message(
        chat_id=meta.chat_id,
        text=text,
        message_thread_id=meta.thread_id,
        parse_mode="HTML",
    )


async def error_handler(update: object, context: ContextTypes.DEFAULT_TYPE):
    LOGGER.error("Unhandled error while processing %s", update, exc_info=context.error)
    if isinstance(update, Update) and update.effective_message:
        await update.effective_message.reply_text(replies.BOT_ERROR)


def build_application(token: str, store: RoundStore) -> Application:
    app = Application.builder().token(token).build()
    app.bot_data["lifecycle"] = RoundLifecycle(store)
    app.bot_data["reactions"] = PendingReactions()

    text = filters.TEXT & ~filters.COMMAND
    new_round = ConversationHandler(
        entry_points=[CommandHandler("wordle", wordle_cmd)],
        states={
            CONFIRM: [MessageHandler(text, confirm_round)],
            HOLES: [MessageHandler(text, holes_answer)],
            MULLIGANS: [MessageHandler(text, mulligans_answer)],
        },
        fallbacks=[CommandHandler(STOP_WORD, stop_cmd)],
        per_user=False,
        conversation_timeout=CONVERSATION_TIMEOUT,
    )

    app.add_handler(new_round)
    app.add_handler(CommandHandler(["start", "help", "instructions"], instructions_cmd))
    app.add_handler(CommandHandler("scorecard", scorecard_cmd))
    # separate groups so a score is still recorded mid-conversation
    app.add_handler(MessageHandler(filters.Regex(r"^Wordle") & ~filters.COMMAND, score_msg), group=1)
    app.add_handler(MessageHandler(filters.Regex(r"(?i)\bbad bot\b") & ~filters.COMMAND, bad_bot_msg), group=2)
    app.add_handler(MessageReactionHandler(reaction_msg))
    app.add_error_handler(error_handler)

    # tally once a day
    app.job_queue.run_daily(
        daily_tick_job,
        time=datetime.time(DAILY_TICK_HOUR, DAILY_TICK_MINUTE, tzinfo=TZ),
    )
    return app


def main():
    # Configure basic logging once at startup
    logging.basicConfig(
        level=LOG_LEVEL,
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )

    if not BOT_TOKEN:
        LOGGER.error("BOT_TOKEN not set. Add it to your environment or a .env file.")
        raise SystemExit(1)

    store = RoundStore(DB_PATH)
    store.init()
    app = build_application(BOT_TOKEN, store)

    LOGGER.info("Polling...")
    app.run_polling(allowed_updates=Update.ALL_TYPES)


if __name__ == "__main__":
    main()
