"""
Card request and offer exchange.

A current player may ask another player for a card. The asked player
declines or offers one of their cards; the requester then accepts or
declines the offer. None of these steps moves the turn pointer.
"""

from typing import List

from .constants import (
    EVENT_CARD_OFFERED, EVENT_CARD_REQUESTED, EVENT_OFFER_RESPONDED, EVENT_REQUEST_DECLINED,
    PHASE_CARD_REQUEST, PHASE_OFFERING_CARD, PHASE_PLAYING,
)
from .effects import add_event
from .errors import InvariantViolation
from .event_bus import GameEvent
from .models import GameAction, GameState, PendingCardRequest, PendingOfferDecision


def _close_exchange(state: GameState):
    state.phase = PHASE_PLAYING
    state.pending_action = None


def request_card(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    state.phase = PHASE_CARD_REQUEST
    state.pending_action = PendingCardRequest(
        requester_id=action.player_id,
        target_id=action.target_player_id
    )
    add_event(events, EVENT_CARD_REQUESTED, {
        'requester_id': action.player_id,
        'target_id': action.target_player_id,
    }, now)


def decline_request(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    pending = state.pending_action
    _close_exchange(state)
    add_event(events, EVENT_REQUEST_DECLINED, {
        'requester_id': pending.requester_id,
        'target_id': pending.target_id,
    }, now)


def offer_card(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    pending = state.pending_action
    state.phase = PHASE_OFFERING_CARD
    state.pending_action = PendingOfferDecision(
        offerer_id=action.player_id,
        target_id=pending.requester_id,
        offered_card_id=action.card_id
    )
    card = state.get_player(action.player_id).find_card(action.card_id)
    add_event(events, EVENT_CARD_OFFERED, {
        'offerer_id': action.player_id,
        'target_id': pending.requester_id,
        'card': card.to_dict(),
        'participants': [action.player_id, pending.requester_id],
    }, now)


def accept_offer(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    pending = state.pending_action
    offerer = state.get_player(pending.offerer_id)
    requester = state.get_player(pending.target_id)

    card = offerer.find_card(pending.offered_card_id)
    if card is None:
        raise InvariantViolation(f"Offered card {pending.offered_card_id} vanished from {offerer.id}")

    # Remove before add so the card is never held twice
    offerer.hand = [c for c in offerer.hand if c.id != card.id]
    requester.hand.append(card)
    requester.has_called_uno = False

    _close_exchange(state)
    add_event(events, EVENT_OFFER_RESPONDED, {
        'offerer_id': offerer.id,
        'target_id': requester.id,
        'accepted': True,
        'card': card.to_dict(),
        'participants': [offerer.id, requester.id],
    }, now)


def decline_offer(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    pending = state.pending_action
    _close_exchange(state)
    add_event(events, EVENT_OFFER_RESPONDED, {
        'offerer_id': pending.offerer_id,
        'target_id': pending.target_id,
        'accepted': False,
    }, now)
