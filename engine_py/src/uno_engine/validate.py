"""
Action validation.

Every action is checked here before it is applied. A failed check never
touches the state; it is reported back as a code and a message.
"""

from typing import Callable, Dict, Optional

from .constants import (
    ACTION_ACCEPT_OFFER, ACTION_CALL_UNO, ACTION_CATCH_UNO, ACTION_CREATE_RULE,
    ACTION_DECLINE_OFFER, ACTION_DECLINE_REQUEST, ACTION_DRAW_CARD, ACTION_JUMP_IN,
    ACTION_OFFER_CARD, ACTION_PASS_TURN, ACTION_PLAY_CARD, ACTION_REPORT_SPEAKING,
    ACTION_REQUEST_CARD, ACTION_SELECT_COLOR, ACTION_SLAP, COLORS, CUSTOM_RULE_TYPES,
    PHASE_CARD_REQUEST, PHASE_COLOR_SELECTION, PHASE_CUSTOM_RULE, PHASE_GAME_OVER,
    PHASE_OFFERING_CARD, PHASE_PLAYING, PHASE_SLAP_RACE, PHASE_WAITING,
)
from .errors import (
    ALREADY_SLAPPED, CARD_NOT_IN_HAND, CARD_NOT_PLAYABLE, GAME_OVER, INVALID_CATCH,
    INVALID_COLOR, INVALID_RULE, INVALID_TARGET, INVALID_UNO_CALL, NOT_YOUR_TURN,
    PLAYER_NOT_FOUND, RULE_DISABLED, STACK_PENDING, STALE_ACTION, UNKNOWN_ACTION,
    WILD_COLOR_REQUIRED, WRONG_PHASE,
)
from .legality import is_exact_jump_in_match
from .models import GameAction, GameState, Player
from .queries import can_jump_in, get_top_card, get_valid_moves, is_current_player


class ValidationResult:
    """Result of action validation."""

    def __init__(
        self,
        valid: bool,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None,
        jump_in: bool = False
    ):
        self.valid = valid
        self.error_code = error_code
        self.error_message = error_message
        self.jump_in = jump_in

    @classmethod
    def success(cls, jump_in: bool = False) -> 'ValidationResult':
        """Create a successful validation result."""
        return cls(valid=True, jump_in=jump_in)

    @classmethod
    def error(cls, error_code: str, error_message: str) -> 'ValidationResult':
        """Create an error validation result."""
        return cls(valid=False, error_code=error_code, error_message=error_message)

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "ValidationResult(valid=True)"
        return f"ValidationResult(valid=False, error_code={self.error_code!r})"


_OK = ValidationResult.success()


def _require_phase(state: GameState, phase: str) -> Optional[ValidationResult]:
    if state.phase != phase:
        return ValidationResult.error(
            WRONG_PHASE,
            f"Action requires phase {phase} (current: {state.phase})"
        )
    return None


def _require_turn(state: GameState, player: Player) -> Optional[ValidationResult]:
    if not is_current_player(state, player.id):
        return ValidationResult.error(
            NOT_YOUR_TURN,
            f"It's not your turn (current turn: {state.players[state.current_player_index].id})"
        )
    return None


def _require_target(state: GameState, player: Player, target_id: Optional[str]) -> ValidationResult:
    target = state.get_player(target_id)
    if not target:
        return ValidationResult.error(INVALID_TARGET, "Target player not found")
    if target.id == player.id:
        return ValidationResult.error(INVALID_TARGET, "Cannot target yourself")
    return _OK


def validate_play_card(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    card = player.find_card(action.card_id)
    if not card:
        return ValidationResult.error(CARD_NOT_IN_HAND, "Card not in hand")

    error = _require_phase(state, PHASE_PLAYING)
    if error:
        return error

    if not is_current_player(state, player.id):
        if can_jump_in(state, player.id, card.id):
            return ValidationResult.success(jump_in=True)
        return _require_turn(state, player)

    if card not in get_valid_moves(state, player.id):
        if state.stacked_draw_amount > 0:
            return ValidationResult.error(
                CARD_NOT_PLAYABLE,
                f"A penalty of {state.stacked_draw_amount} is pending: counter with the same draw card or draw"
            )
        return ValidationResult.error(CARD_NOT_PLAYABLE, "Card cannot be played on the current pile")

    if card.is_wild:
        if action.chosen_color is None:
            if not state.config.wild_color_prompt:
                return ValidationResult.error(WILD_COLOR_REQUIRED, "Must select a color for wild card")
        elif action.chosen_color not in COLORS:
            return ValidationResult.error(INVALID_COLOR, f"Unknown color: {action.chosen_color}")

    return _OK


def validate_jump_in(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    if not state.config.enabled_rules.jump_in:
        return ValidationResult.error(RULE_DISABLED, "Jump-in is not enabled")

    card = player.find_card(action.card_id)
    if not card:
        return ValidationResult.error(CARD_NOT_IN_HAND, "Card not in hand")

    error = _require_phase(state, PHASE_PLAYING)
    if error:
        return error

    if not is_exact_jump_in_match(card, get_top_card(state)):
        return ValidationResult.error(
            CARD_NOT_PLAYABLE,
            "Jump-in needs the same color and number as the top card"
        )
    return ValidationResult.success(jump_in=True)


def validate_draw_card(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    return _require_phase(state, PHASE_PLAYING) or _require_turn(state, player) or _OK


def validate_pass_turn(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    error = _require_phase(state, PHASE_PLAYING) or _require_turn(state, player)
    if error:
        return error
    if state.stacked_draw_amount > 0:
        return ValidationResult.error(
            STACK_PENDING,
            f"Cannot pass with a pending penalty of {state.stacked_draw_amount}"
        )
    return _OK


def validate_call_uno(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    if not state.config.enabled_rules.uno_call:
        return ValidationResult.error(RULE_DISABLED, "UNO calls are not enabled")
    if len(player.hand) != 2:
        return ValidationResult.error(INVALID_UNO_CALL, "Can only call UNO with 2 cards")
    return _OK


def validate_catch_uno(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    if not state.config.enabled_rules.uno_call:
        return ValidationResult.error(RULE_DISABLED, "UNO calls are not enabled")

    result = _require_target(state, player, action.target_player_id)
    if not result:
        return result

    target = state.get_player(action.target_player_id)
    if len(target.hand) != 1 or target.has_called_uno:
        return ValidationResult.error(INVALID_CATCH, "Cannot catch this player")
    return _OK


def validate_slap(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    error = _require_phase(state, PHASE_SLAP_RACE)
    if error:
        return error
    if player.id in state.pending_action.attempts:
        return ValidationResult.error(ALREADY_SLAPPED, "Already slapped")
    return _OK


def validate_create_rule(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    error = _require_phase(state, PHASE_CUSTOM_RULE)
    if error:
        return error

    if state.pending_action.player_id != player.id:
        return ValidationResult.error(NOT_YOUR_TURN, "Only the player who played the 0 creates the rule")

    rule = action.custom_rule or {}
    if not str(rule.get('text') or '').strip():
        return ValidationResult.error(INVALID_RULE, "Rule text is required")
    if rule.get('type') not in CUSTOM_RULE_TYPES:
        return ValidationResult.error(INVALID_RULE, f"Rule type must be one of {CUSTOM_RULE_TYPES}")
    return _OK


def validate_select_color(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    error = _require_phase(state, PHASE_COLOR_SELECTION)
    if error:
        return error

    if state.pending_action.player_id != player.id:
        return ValidationResult.error(NOT_YOUR_TURN, "Only the player who played the wild picks the color")
    if action.chosen_color not in COLORS:
        return ValidationResult.error(INVALID_COLOR, f"Unknown color: {action.chosen_color}")
    return _OK


def validate_request_card(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    if not state.config.enabled_rules.offer_card:
        return ValidationResult.error(RULE_DISABLED, "Card requests are not enabled")

    error = _require_phase(state, PHASE_PLAYING) or _require_turn(state, player)
    if error:
        return error

    result = _require_target(state, player, action.target_player_id)
    if not result:
        return result

    # An exchange never empties the giver's hand
    if len(state.get_player(action.target_player_id).hand) < 2:
        return ValidationResult.error(INVALID_TARGET, "Target has no card to spare")
    return _OK


def _validate_request_target(state: GameState, player: Player) -> Optional[ValidationResult]:
    error = _require_phase(state, PHASE_CARD_REQUEST)
    if error:
        return error
    if state.pending_action.target_id != player.id:
        return ValidationResult.error(NOT_YOUR_TURN, "The request was not addressed to you")
    return None


def validate_decline_request(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    return _validate_request_target(state, player) or _OK


def validate_offer_card(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    error = _validate_request_target(state, player)
    if error:
        return error
    if not player.find_card(action.card_id):
        return ValidationResult.error(CARD_NOT_IN_HAND, "Card not in hand")
    return _OK


def _validate_offer_target(state: GameState, player: Player) -> Optional[ValidationResult]:
    error = _require_phase(state, PHASE_OFFERING_CARD)
    if error:
        return error
    if state.pending_action.target_id != player.id:
        return ValidationResult.error(NOT_YOUR_TURN, "Only the requester decides on the offer")
    return None


def validate_accept_offer(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    error = _validate_offer_target(state, player)
    if error:
        return error

    pending = state.pending_action
    offerer = state.get_player(pending.offerer_id)
    if not offerer or not offerer.find_card(pending.offered_card_id):
        return ValidationResult.error(CARD_NOT_IN_HAND, "The offered card is no longer available")
    return _OK


def validate_decline_offer(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    return _validate_offer_target(state, player) or _OK


def validate_report_speaking(state: GameState, player: Player, action: GameAction) -> ValidationResult:
    if not state.config.enabled_rules.silence:
        return ValidationResult.error(RULE_DISABLED, "Silence mode is not enabled")
    if not state.silence_mode:
        return ValidationResult.error(WRONG_PHASE, "Silence mode is not active")
    return _require_target(state, player, action.target_player_id)


VALIDATORS: Dict[str, Callable[[GameState, Player, GameAction], ValidationResult]] = {
    ACTION_PLAY_CARD: validate_play_card,
    ACTION_JUMP_IN: validate_jump_in,
    ACTION_DRAW_CARD: validate_draw_card,
    ACTION_PASS_TURN: validate_pass_turn,
    ACTION_CALL_UNO: validate_call_uno,
    ACTION_CATCH_UNO: validate_catch_uno,
    ACTION_SLAP: validate_slap,
    ACTION_CREATE_RULE: validate_create_rule,
    ACTION_SELECT_COLOR: validate_select_color,
    ACTION_REQUEST_CARD: validate_request_card,
    ACTION_DECLINE_REQUEST: validate_decline_request,
    ACTION_OFFER_CARD: validate_offer_card,
    ACTION_ACCEPT_OFFER: validate_accept_offer,
    ACTION_DECLINE_OFFER: validate_decline_offer,
    ACTION_REPORT_SPEAKING: validate_report_speaking,
}


def validate_action(
    state: GameState,
    action: GameAction,
    expected_version: Optional[int] = None,
    now: Optional[float] = None
) -> ValidationResult:
    """
    Validate an action against the current state.

    Args:
        state: Current game state
        action: Action to check
        expected_version: If given, the state version the action was decided on
        now: Clock reading; when given, slaps after the race deadline are refused

    Returns:
        ValidationResult with validation outcome
    """
    validator = VALIDATORS.get(action.type)
    if validator is None:
        return ValidationResult.error(UNKNOWN_ACTION, f"Unknown action type: {action.type}")

    if expected_version is not None and expected_version != state.version:
        return ValidationResult.error(
            STALE_ACTION,
            f"Action was decided on version {expected_version}, state is at {state.version}"
        )

    if state.phase == PHASE_GAME_OVER:
        return ValidationResult.error(GAME_OVER, "The game is over")
    if state.phase == PHASE_WAITING:
        return ValidationResult.error(WRONG_PHASE, "The game has not been dealt yet")

    player = state.get_player(action.player_id)
    if not player:
        return ValidationResult.error(PLAYER_NOT_FOUND, "Player not found")

    result = validator(state, player, action)
    if result and action.type == ACTION_SLAP and now is not None and now > state.pending_action.deadline:
        return ValidationResult.error(WRONG_PHASE, "The slap race is over")
    return result
