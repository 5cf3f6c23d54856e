"""
Shared fixtures for building hand-crafted game states.
"""

import pytest

from uno_engine.constants import PHASE_PLAYING
from uno_engine.models import GameAction, GameState, Player
from uno_engine.rules import create_rules
from uno_engine.shuffle import build_deck


def _build_state(
    hands,
    top,
    config=None,
    current=0,
    direction=1,
    draw_pile=None,
    leftover_to='draw',
    seed=7
):
    """
    Build a playing-phase state from card ids.

    ``hands`` maps player id to card ids in seat order. Every card not
    placed explicitly goes to the draw pile (or under the discard top) so
    the full deck stays accounted for.
    """
    by_id = {card.id: card for card in build_deck()}
    used = {top}
    players = []
    for player_id, card_ids in hands.items():
        players.append(Player(id=player_id, name=player_id.title(), hand=[by_id[c] for c in card_ids]))
        used.update(card_ids)

    draw = [by_id[c] for c in (draw_pile or [])]
    used.update(draw_pile or [])
    leftover = [card for card in build_deck() if card.id not in used]

    discard = [by_id[top]]
    if leftover_to == 'draw':
        draw.extend(leftover)
    else:
        discard = leftover + discard

    return GameState(
        id='test',
        config=config or create_rules(),
        seed=seed,
        phase=PHASE_PLAYING,
        players=players,
        current_player_index=current,
        direction=direction,
        draw_pile=draw,
        discard_pile=discard,
    )


@pytest.fixture
def build_state():
    return _build_state


@pytest.fixture
def act():
    def make(action_type, player_id, **kwargs):
        return GameAction(type=action_type, player_id=player_id, **kwargs)
    return make
