"""
Tests for the card predicates and state queries.
"""

from uno_engine.legality import (
    can_counter_stack, card_display_name, effective_color, get_draw_amount, is_exact_jump_in_match,
    is_playable,
)
from uno_engine.models import PendingDraw
from uno_engine.queries import (
    can_jump_in, get_jump_in_cards, get_stuck_players, get_uncalled_uno_players, get_valid_moves,
    next_player_index,
)
from uno_engine.rules import create_rules
from uno_engine.shuffle import build_deck

CARDS = {card.id: card for card in build_deck()}


def test_effective_color():
    assert effective_color(CARDS['red-3-1']) == 'red'
    assert effective_color(CARDS['red-3-1'], 'blue') == 'red'
    assert effective_color(CARDS['wild-wild-1'], 'green') == 'green'
    assert effective_color(CARDS['wild-wild-1']) == 'wild'


def test_is_playable_by_color_and_value():
    top = CARDS['red-3-1']
    assert is_playable(CARDS['red-9-1'], top, 'red')
    assert is_playable(CARDS['blue-3-2'], top, 'red')
    assert not is_playable(CARDS['blue-4-1'], top, 'red')


def test_is_playable_action_match():
    """Test action cards match by kind across colours."""
    top = CARDS['red-skip-1']
    assert is_playable(CARDS['green-skip-2'], top, 'red')
    assert not is_playable(CARDS['green-reverse-1'], top, 'red')


def test_wild_always_playable():
    top = CARDS['blue-draw2-1']
    assert is_playable(CARDS['wild-wild-1'], top, 'blue')
    assert is_playable(CARDS['wild-wild_draw4-3'], top, 'blue')


def test_chosen_color_on_wild_top():
    top = CARDS['wild-wild-2']
    assert is_playable(CARDS['yellow-1-1'], top, 'yellow')
    assert not is_playable(CARDS['red-1-1'], top, 'yellow')


def test_exact_jump_in_match():
    top = CARDS['red-8-1']
    assert is_exact_jump_in_match(CARDS['red-8-2'], top)
    assert not is_exact_jump_in_match(CARDS['blue-8-1'], top)
    assert not is_exact_jump_in_match(CARDS['red-9-1'], top)
    assert not is_exact_jump_in_match(CARDS['red-skip-2'], CARDS['red-skip-1'])


def test_counter_stack_same_kind_only():
    assert can_counter_stack(CARDS['blue-draw2-1'], 'draw2')
    assert not can_counter_stack(CARDS['wild-wild_draw4-1'], 'draw2')
    assert can_counter_stack(CARDS['wild-wild_draw4-1'], 'wild_draw4')
    assert not can_counter_stack(CARDS['red-draw2-1'], 'wild_draw4')


def test_draw_amounts():
    assert get_draw_amount(CARDS['red-draw2-1']) == 2
    assert get_draw_amount(CARDS['wild-wild_draw4-1']) == 4
    assert get_draw_amount(CARDS['red-5-1']) == 0


def test_display_names():
    assert card_display_name(CARDS['red-7-1']) == 'Red 7'
    assert card_display_name(CARDS['wild-wild_draw4-1']) == 'Wild +4'


def test_next_player_index_wraps_both_ways():
    for count in range(2, 9):
        assert next_player_index(count - 1, 1, count) == 0
        assert next_player_index(0, -1, count) == count - 1
        for index in range(count):
            assert next_player_index(index, 1, count) == (index + 1) % count
            assert next_player_index(index, -1, count) == (index - 1) % count
            assert next_player_index(index, 1, count, steps=2) == (index + 2) % count


def test_valid_moves(build_state):
    state = build_state(
        {'p1': ['red-2-1', 'blue-8-2', 'green-4-1', 'wild-wild-1'], 'p2': ['yellow-1-1']},
        top='red-8-1'
    )
    assert [c.id for c in get_valid_moves(state, 'p1')] == ['red-2-1', 'blue-8-2', 'wild-wild-1']


def test_valid_moves_under_pending_penalty(build_state):
    """Test that only the same draw kind is offered while a penalty is pending."""
    state = build_state(
        {'p1': ['red-draw2-1'], 'p2': ['blue-draw2-1', 'red-3-1', 'wild-wild_draw4-1']},
        top='red-draw2-2',
        current=1
    )
    state.stacked_draw_amount = 2
    state.pending_action = PendingDraw(amount=2, card_value='draw2')

    assert [c.id for c in get_valid_moves(state, 'p2')] == ['blue-draw2-1']


def test_jump_in_queries(build_state):
    state = build_state(
        {'p1': ['blue-1-1'], 'p2': ['yellow-1-1'], 'p3': ['red-8-2', 'blue-8-1']},
        top='red-8-1'
    )
    assert can_jump_in(state, 'p3', 'red-8-2')
    assert not can_jump_in(state, 'p3', 'blue-8-1')
    assert [c.id for c in get_jump_in_cards(state, 'p3')] == ['red-8-2']

    state.config = create_rules(jump_in=False)
    assert not can_jump_in(state, 'p3', 'red-8-2')


def test_uncalled_and_stuck_players(build_state):
    state = build_state(
        {'p1': ['red-2-1'], 'p2': ['yellow-1-1', 'green-3-1'], 'p3': ['blue-6-1']},
        top='red-8-1'
    )
    state.players[2].has_called_uno = True

    assert [p.id for p in get_uncalled_uno_players(state)] == ['p1']
    assert [p.id for p in get_stuck_players(state, exclude_player_id='p1')] == ['p2', 'p3']
