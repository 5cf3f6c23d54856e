"""
State serialization and sanitization utilities.
"""

from typing import Any, Dict, Optional

import orjson

from .constants import ACTION_OFFER_CARD, HIDDEN_CARD
from .event_bus import GameEvent
from .models import GameAction, GameState, PendingAction, PendingOfferDecision, Player
from .queries import get_current_color


def sanitize_state(state: GameState, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """
    Sanitize game state for transmission to one observer.

    Args:
        state: Game state to sanitize
        viewer_id: ID of the player viewing the state (to show their cards)

    Returns:
        Sanitized state dictionary safe for JSON transmission. Other
        players' hands are replaced with placeholders of the same length,
        the draw pile is reduced to its size and the shuffle seed is left out.
    """
    top_card = state.top_card
    return {
        "id": state.id,
        "version": state.version,
        "phase": state.phase,
        "players": [_sanitize_player(player, viewer_id) for player in state.players],
        "current_player_index": state.current_player_index,
        "current_player_id": state.current_player.id if state.players else None,
        "direction": state.direction,
        "draw_pile_count": len(state.draw_pile),
        "discard_pile": [card.to_dict() for card in state.discard_pile],
        "top_card": top_card.to_dict() if top_card else None,
        "current_color": get_current_color(state) if top_card else None,
        "chosen_color": state.chosen_color,
        "pending_action": _sanitize_pending(state.pending_action, viewer_id),
        "custom_rules": [
            {
                "id": rule.id,
                "text": rule.text,
                "type": rule.type,
                "created_by": rule.created_by,
                "created_at": rule.created_at
            }
            for rule in state.custom_rules
        ],
        "silence_mode": state.silence_mode,
        "stacked_draw_amount": state.stacked_draw_amount,
        "turn_started_at": state.turn_started_at,
        "winner": state.winner,
        "last_action": _sanitize_action(state, state.last_action, viewer_id),
        "rules": state.config.to_wire(),
    }


def _sanitize_player(player: Player, viewer_id: Optional[str]) -> Dict[str, Any]:
    if player.id == viewer_id:
        hand = [card.to_dict() for card in player.hand]
    else:
        hand = [dict(HIDDEN_CARD) for _ in player.hand]

    return {
        "id": player.id,
        "name": player.name,
        "hand": hand,
        "hand_count": len(player.hand),
        "has_called_uno": player.has_called_uno,
        "connected": player.connected,
        "kind": player.kind,
    }


def _sanitize_pending(pending: Optional[PendingAction], viewer_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if pending is None:
        return None

    data = {key: value for key, value in vars(pending).items()}
    if isinstance(pending, PendingOfferDecision):
        # Only the two players in the exchange see which card is on offer
        if viewer_id not in (pending.offerer_id, pending.target_id):
            data["offered_card_id"] = None
    elif "attempts" in data:
        data["attempts"] = dict(data["attempts"])
    return data


def _sanitize_action(state: GameState, action: Optional[GameAction], viewer_id: Optional[str]) -> Optional[Dict[str, Any]]:
    if action is None:
        return None

    data = {
        "type": action.type,
        "player_id": action.player_id,
        "card_id": action.card_id,
        "target_player_id": action.target_player_id,
        "chosen_color": action.chosen_color,
        "custom_rule": dict(action.custom_rule) if action.custom_rule else None,
        "timestamp": action.timestamp,
    }
    if action.type == ACTION_OFFER_CARD:
        pending = state.pending_action
        allowed = {action.player_id}
        if isinstance(pending, PendingOfferDecision):
            allowed.add(pending.target_id)
        if viewer_id not in allowed:
            data["card_id"] = None
    return data


def _sanitize_event_data(data: Dict[str, Any], viewer_id: Optional[str]) -> Dict[str, Any]:
    """Hide card details from observers who were not part of the exchange or draw."""
    sanitized = dict(data)
    participants = sanitized.pop("participants", None)
    if participants is None or viewer_id in participants:
        return sanitized

    if "cards" in sanitized:
        sanitized["card_count"] = len(sanitized["cards"])
        del sanitized["cards"]
    if "card" in sanitized:
        del sanitized["card"]
    return sanitized


def serialize_event(event: GameEvent, viewer_id: Optional[str] = None) -> Dict[str, Any]:
    """Event as seen by one observer."""
    return {
        "type": event.type,
        "payload": _sanitize_event_data(event.payload, viewer_id),
        "timestamp": event.timestamp,
    }


def create_minimal_state_update(state: GameState) -> Dict[str, Any]:
    """Create a minimal state update with only essential information."""
    return {
        "id": state.id,
        "version": state.version,
        "phase": state.phase,
        "current_player_id": state.current_player.id if state.players else None,
        "hand_counts": {player.id: len(player.hand) for player in state.players},
        "stacked_draw_amount": state.stacked_draw_amount,
    }


def encode(payload: Any) -> bytes:
    """JSON-encode a sanitized payload."""
    return orjson.dumps(payload)


def decode(raw) -> Any:
    return orjson.loads(raw)
