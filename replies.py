"""Canned chat replies."""

import random

GOLF_SCORE_RESPONSES = {
    1: ("Hole in One", [
        "A god among us...",
        "You really took us on a magic carpet ride",
        "ERROR: You are too intelligent and broke the bot",
    ]),
    2: ("Eagle", [
        "Houston, Tranquility Base here. The Eagle has landed.",
        "You're so mighty! I'm glad to watch you soar",
        "Your wit is seldom exceeded.",
    ]),
    3: ("Birdie", [
        "*tweet tweet*",
        "That actually wasn't a waste of time",
        "Great day to be you.",
    ]),
    4: ("Par", [
        "Well, you tried your best...",
        "Decidedly mediocre.",
        "Four score and twenty years ago...",
    ]),
    5: ("Bogey", [
        "Tomorrow is another day.",
        "At least you finished!",
    ]),
    6: ("Double Bogey", [
        "Cutting it a little close there.",
        "Phew.",
    ]),
    6.5: ("Triple Bogey", [
        "Better luck tomorrow.",
        "The word won this time.",
    ]),
}

SCORE_ERROR = {
    "MALFORMED_SUBMISSION": "That doesn't look like a Wordle score to me. Share your result straight from the game!",
    "ROUND_NOT_FOUND": (
        "What are you trying to play?? A round hasn't been started!\n"
        "Start a new round with /wordle to get playing Wordle Golf!"
    ),
    "ROUND_OVER": "It appears the round has ended. Start a new round to continue playing Wordle Golf!",
    "ROUND_NOT_STARTED": "The round hasn't started yet. Wait till tomorrow!",
    "ALREADY_SCORED": "You have already submitted your score for today. No need to resubmit!",
}

GENERIC_SCORE_ERROR = "There was an issue submitting your score :(\nI'm not sure why"

BOT_ERROR = "I'm sorry, there was an error :(\nI've been a bad bot"

START_NEW_ROUND = """New round initiated! Scoring will open tomorrow!

You must submit a wordle score each day for the next {holes} days. The lowest score over this period wins!
You have {mulligans} mulligan(s): your worst days are dropped at the end of the round.

And may the odds be ever in your favor!
"""

CONFIRM_NEW_ROUND = (
    "{initiator} has requested to start a new round of Wordle Golf. "
    "Would someone confirm? (yes/no)\n\n🚨This will reset any existing round!"
)

UNKNOWN_PERSON = "I'm sorry, I can't figure out who's talking."

SAME_PERSON = "You can't start a new round with yourself silly! Make some friends and then we'll talk..."

DECLINE_RESPONSE = "Well that's no fun! Maybe next time."

ERROR_CONFIRMATION = "Hmmm, I don't really know what's going on! Now I'm not going to start a new round 🫣"

ASK_HOLES = "How many holes (days) would you like to play?"

ASK_MULLIGANS = "How many mulligans (skip days) would you like to include?"

TOO_MANY_MULLIGANS = "I'm sorry, you can't have more mulligans than holes. goodbye."

NOT_A_NUMBER = "I'm sorry, that is not a valid number. goodbye."

INITIATOR_ONLY = "I'm sorry, the initiator of the game gets to choose the settings. {initiator}?"

LEAVING = "Leaving this dialogue..."

UPSTREAM_DOWN = "I couldn't reach the Wordle servers, try again in a bit."
STORAGE_DOWN = "I couldn't save that round, try again in a bit."

INSTRUCTIONS = """Welcome to Wordle Golf! I'm here to help you keep score

Use the /wordle command to start a new round.
The lowest score over the round wins!

Each day, complete the Wordle and use the share button to submit your score to this chat thread. Only share your summary! No screenshots of the actual words used.

At the end of the round, I'll let you know who is smart and who is not!
You can use the /scorecard command to see the standings at any time.

Scoring:
- 1 point for each guess it took to get the word
- 6.5 points if you do not finish
- 7 points if you miss the day
- your worst days are dropped as mulligans at the end of the round

Good luck!
"""

BAD_BOT = "You can tell me off with a 👏 reaction"

BAD_BOT_FOLLOW_UP = "Ouch! Fine, I'll do better."

BAD_BOT_LAST_WORD = "Alright, alright, I get it!"


def score_reply(value: float) -> str:
    if value not in GOLF_SCORE_RESPONSES:
        return f"You have been marked down for a score of {value:g}."
    name, responses = GOLF_SCORE_RESPONSES[value]
    return f"{name}! {random.choice(responses)}"
