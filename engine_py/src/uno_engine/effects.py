"""
Card effects and turn flow.

Every function here works on the engine's private working copy of the
state and appends the events it causes to ``events``. None of them
validate; they run only after an action has passed validation.
"""

import logging
from typing import Any, Dict, List

from .constants import (
    CUSTOM_RULE_NUMBER, EVENT_CARD_DRAWN, EVENT_SILENCE_TOGGLED, EVENT_SLAP_RACE_STARTED,
    EVENT_TURN_CHANGED, PHASE_CUSTOM_RULE, PHASE_SLAP_RACE, SILENCE_NUMBER, SLAP_NUMBER,
)
from .event_bus import GameEvent
from .legality import get_draw_amount, is_draw_card, is_reverse_card, is_skip_card
from .models import Card, GameState, PendingDraw, PendingRuleCreation, PendingSlap
from .queries import next_player_index
from .shuffle import draw_cards, reshuffle_discard, reshuffle_rng

logger = logging.getLogger(__name__)


def add_event(events: List[GameEvent], event_type: str, payload: Dict[str, Any], now: float):
    events.append(GameEvent(type=event_type, payload=payload, timestamp=now))


def advance_turn(state: GameState, events: List[GameEvent], now: float, steps: int = 1):
    """Move the turn ``steps`` seats in the current direction."""
    previous = state.current_player
    state.current_player_index = next_player_index(
        state.current_player_index, state.direction, len(state.players), steps
    )
    state.turn_started_at = now
    add_event(events, EVENT_TURN_CHANGED, {
        'previous_player_id': previous.id,
        'current_player_id': state.current_player.id,
        'direction': state.direction,
    }, now)


def ensure_draw_pile(state: GameState, count: int):
    """Reshuffle the discard pile under the draw pile if ``count`` cards are not there."""
    if count <= len(state.draw_pile):
        return

    state.reshuffle_count += 1
    rng = reshuffle_rng(state.seed, state.reshuffle_count)
    state.draw_pile, state.discard_pile = reshuffle_discard(state.draw_pile, state.discard_pile, rng)
    logger.info(
        f"Game {state.id}: reshuffled discard pile, draw pile now {len(state.draw_pile)} cards"
    )


def force_draw(
    state: GameState,
    player_id: str,
    count: int,
    events: List[GameEvent],
    now: float,
    reason: str = 'draw'
) -> List[Card]:
    """
    Move ``count`` cards from the draw pile into a player's hand.

    Raises:
        InsufficientCards: if even the reshuffled pile is too small
    """
    ensure_draw_pile(state, count)
    drawn, state.draw_pile = draw_cards(state.draw_pile, count)

    player = state.get_player(player_id)
    player.hand.extend(drawn)
    player.has_called_uno = False

    add_event(events, EVENT_CARD_DRAWN, {
        'player_id': player_id,
        'count': count,
        'reason': reason,
        'cards': [card.to_dict() for card in drawn],
        'participants': [player_id],
    }, now)
    return drawn


def _resolve_draw_card(state: GameState, card: Card, events: List[GameEvent], now: float):
    amount = get_draw_amount(card)

    if not state.config.enabled_rules.stack_draw:
        advance_turn(state, events, now)
        force_draw(state, state.current_player.id, amount, events, now, reason='penalty')
        advance_turn(state, events, now)
        return

    state.stacked_draw_amount += amount
    advance_turn(state, events, now)

    victim = state.current_player
    if any(c.value == card.value for c in victim.hand):
        state.pending_action = PendingDraw(amount=state.stacked_draw_amount, card_value=card.value)
        return

    force_draw(state, victim.id, state.stacked_draw_amount, events, now, reason='penalty')
    state.stacked_draw_amount = 0
    state.pending_action = None
    advance_turn(state, events, now)


def resolve_card_effect(state: GameState, card: Card, events: List[GameEvent], now: float):
    """
    Run the effect of ``card``, which is already on top of the discard pile.

    The player who played it must be the current player.
    """
    rules = state.config.enabled_rules

    if is_draw_card(card):
        _resolve_draw_card(state, card, events, now)
        return

    if is_skip_card(card):
        advance_turn(state, events, now, steps=2)
        return

    if is_reverse_card(card):
        state.direction *= -1
        # With two players a reverse only skips the opponent
        advance_turn(state, events, now, steps=2 if len(state.players) == 2 else 1)
        return

    if card.value == SILENCE_NUMBER and rules.silence:
        state.silence_mode = not state.silence_mode
        add_event(events, EVENT_SILENCE_TOGGLED, {
            'player_id': state.current_player.id,
            'active': state.silence_mode,
        }, now)

    elif card.value == CUSTOM_RULE_NUMBER and rules.custom_rule:
        state.phase = PHASE_CUSTOM_RULE
        state.pending_action = PendingRuleCreation(player_id=state.current_player.id)
        return

    elif card.value == SLAP_NUMBER and rules.slap:
        state.phase = PHASE_SLAP_RACE
        state.pending_action = PendingSlap(deadline=now + state.config.slap_window_seconds, started_at=now)
        add_event(events, EVENT_SLAP_RACE_STARTED, {
            'player_id': state.current_player.id,
            'deadline': state.pending_action.deadline,
        }, now)
        return

    advance_turn(state, events, now)
