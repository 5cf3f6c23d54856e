# engine_py/src/uno_engine/errors.py

class GameError(Exception):
    """Base exception for game-related errors."""
    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"[{code}] {message}")


class InvariantViolation(GameError):
    """Raised when the engine reaches a state the rules say cannot exist."""
    def __init__(self, message: str):
        super().__init__(INTERNAL_ERROR, message)


class InsufficientCards(InvariantViolation):
    """A draw could not be satisfied even after reshuffling the discard pile."""
    def __init__(self, requested: int, available: int):
        self.requested = requested
        self.available = available
        super().__init__(f"Cannot draw {requested} cards, only {available} left after reshuffle")


# Rejection codes (validation)
PLAYER_NOT_FOUND = "PLAYER_NOT_FOUND"
NOT_YOUR_TURN = "NOT_YOUR_TURN"
CARD_NOT_IN_HAND = "CARD_NOT_IN_HAND"
CARD_NOT_PLAYABLE = "CARD_NOT_PLAYABLE"
WILD_COLOR_REQUIRED = "WILD_COLOR_REQUIRED"
WRONG_PHASE = "WRONG_PHASE"
RULE_DISABLED = "RULE_DISABLED"
INVALID_UNO_CALL = "INVALID_UNO_CALL"
INVALID_CATCH = "INVALID_CATCH"
INVALID_TARGET = "INVALID_TARGET"
INVALID_COLOR = "INVALID_COLOR"
ALREADY_SLAPPED = "ALREADY_SLAPPED"
INVALID_RULE = "INVALID_RULE"
STACK_PENDING = "STACK_PENDING"
GAME_OVER = "GAME_OVER"
STALE_ACTION = "STALE_ACTION"
UNKNOWN_ACTION = "UNKNOWN_ACTION"

# Room / host codes
ROOM_NOT_FOUND = "ROOM_NOT_FOUND"
ROOM_FULL = "ROOM_FULL"
GAME_IN_PROGRESS = "GAME_IN_PROGRESS"
GAME_NOT_STARTED = "GAME_NOT_STARTED"
NOT_HOST = "NOT_HOST"
NOT_ENOUGH_PLAYERS = "NOT_ENOUGH_PLAYERS"
NOT_IN_ROOM = "NOT_IN_ROOM"
NAME_TAKEN = "NAME_TAKEN"
IDENTITY_MISMATCH = "IDENTITY_MISMATCH"
INTERNAL_ERROR = "INTERNAL_ERROR"
