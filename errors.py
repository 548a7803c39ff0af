"""Error taxonomy for round and score handling.

User-facing errors are reported back to whoever sent the message.
Operator-facing errors mean something outside the chat is broken and should
be logged with full context.
"""


class WordleGolfError(Exception):
    code = "UNKNOWN"


class UserFacingError(WordleGolfError):
    pass


class OperatorFacingError(WordleGolfError):
    pass


class MalformedSubmission(UserFacingError):
    code = "MALFORMED_SUBMISSION"


class ParseError(MalformedSubmission):
    """Raised when the header line of a submission cannot be read."""

    MALFORMED_HEADER = "MALFORMED_HEADER"
    MALFORMED_PUZZLE_NUMBER = "MALFORMED_PUZZLE_NUMBER"
    EMPTY_MESSAGE = "EMPTY_MESSAGE"

    def __init__(self, reason: str, detail: str = ""):
        super().__init__(f"{reason}: {detail}" if detail else reason)
        self.reason = reason


class InvalidRoundConfig(UserFacingError):
    code = "INVALID_ROUND_CONFIG"


class RoundNotFound(UserFacingError):
    code = "ROUND_NOT_FOUND"


class RoundNotStarted(UserFacingError):
    code = "ROUND_NOT_STARTED"


class RoundOver(UserFacingError):
    code = "ROUND_OVER"


class AlreadyScored(UserFacingError):
    code = "ALREADY_SCORED"


class DuplicateActiveRound(UserFacingError):
    code = "DUPLICATE_ACTIVE_ROUND"


class StorageUnavailable(OperatorFacingError):
    code = "STORAGE_UNAVAILABLE"


class UpstreamUnavailable(OperatorFacingError):
    code = "UPSTREAM_UNAVAILABLE"


class AlreadyFinalized(OperatorFacingError):
    code = "ALREADY_FINALIZED"
