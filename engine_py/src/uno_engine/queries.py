"""
Read-only queries over a game state.

Used by validation, the card-effect handlers and the scripted opponents so
that every caller answers "what may be played" the same way.
"""

from typing import List, Optional

from .constants import PHASE_PLAYING
from .legality import can_counter_stack, effective_color, is_exact_jump_in_match, is_playable
from .models import Card, GameState, PendingDraw, Player


def next_player_index(index: int, direction: int, player_count: int, steps: int = 1) -> int:
    """Step ``steps`` seats from ``index`` in ``direction``, wrapping around."""
    for _ in range(steps):
        index = (index + direction + player_count) % player_count
    return index


def get_top_card(state: GameState) -> Card:
    return state.discard_pile[-1]


def get_current_color(state: GameState) -> str:
    return effective_color(get_top_card(state), state.chosen_color)


def get_current_player(state: GameState) -> Player:
    return state.players[state.current_player_index]


def is_current_player(state: GameState, player_id: str) -> bool:
    return get_current_player(state).id == player_id


def get_stacked_value(state: GameState) -> Optional[str]:
    """Draw kind that may counter the pending penalty, if one is pending."""
    if state.stacked_draw_amount <= 0:
        return None
    if isinstance(state.pending_action, PendingDraw):
        return state.pending_action.card_value
    return get_top_card(state).value


def get_valid_moves(state: GameState, player_id: str) -> List[Card]:
    """Cards the player could legally play in turn right now."""
    player = state.get_player(player_id)
    if not player or not state.discard_pile:
        return []

    stacked_value = get_stacked_value(state)
    if stacked_value is not None:
        # Only the same draw kind passes the penalty on
        return [card for card in player.hand if can_counter_stack(card, stacked_value)]

    top_card = get_top_card(state)
    current_color = get_current_color(state)
    return [card for card in player.hand if is_playable(card, top_card, current_color)]


def can_jump_in(state: GameState, player_id: str, card_id: Optional[str]) -> bool:
    if not state.config.enabled_rules.jump_in:
        return False
    if state.phase != PHASE_PLAYING or not state.discard_pile:
        return False

    player = state.get_player(player_id)
    if not player:
        return False

    card = player.find_card(card_id)
    if not card:
        return False

    return is_exact_jump_in_match(card, get_top_card(state))


def get_jump_in_cards(state: GameState, player_id: str) -> List[Card]:
    player = state.get_player(player_id)
    if not player:
        return []
    return [card for card in player.hand if can_jump_in(state, player_id, card.id)]


def get_stuck_players(state: GameState, exclude_player_id: Optional[str] = None) -> List[Player]:
    """Players with no legal move, the candidates for asking for a card."""
    if not state.config.enabled_rules.offer_card:
        return []

    return [
        player for player in state.players
        if player.id != exclude_player_id and not get_valid_moves(state, player.id)
    ]


def get_uncalled_uno_players(state: GameState) -> List[Player]:
    """Players holding one card without having declared, i.e. catchable."""
    return [p for p in state.players if len(p.hand) == 1 and not p.has_called_uno]
