"""
Tests for session creation and the action transition function.
"""

import random

import pytest

from uno_engine.bots.policy import ScriptedOpponent
from uno_engine.bots.runner import BotRunner
from uno_engine.constants import (
    PHASE_CARD_REQUEST, PHASE_COLOR_SELECTION, PHASE_CUSTOM_RULE, PHASE_GAME_OVER,
    PHASE_OFFERING_CARD, PHASE_PLAYING, PHASE_SLAP_RACE,
)
from uno_engine.engine import (
    GameEngine, apply_action, create_game, pick_slap_loser, process_action, resolve_slap_race,
    set_player_connected,
)
from uno_engine.errors import (
    ALREADY_SLAPPED, CARD_NOT_PLAYABLE, GAME_OVER, INVALID_CATCH, INVALID_RULE, INVALID_TARGET,
    INVALID_UNO_CALL, NOT_ENOUGH_PLAYERS, NOT_YOUR_TURN, ROOM_FULL, RULE_DISABLED,
    WILD_COLOR_REQUIRED, WRONG_PHASE, GameError,
)
from uno_engine.models import Player, RosterEntry
from uno_engine.queries import get_current_color
from uno_engine.rules import create_rules
from uno_engine.shuffle import validate_deck_integrity

NOW = 100.0


def roster(count):
    return [RosterEntry(id=f"p{i}", name=f"Player {i}") for i in range(count)]


def apply(state, action, now=NOW):
    result = process_action(state, action, now=now)
    assert result.success, result.error_code
    return result


def event_types(result):
    return [event.type for event in result.events]


# Session creation

def test_create_game_deals_hands():
    """Test dealing 7 cards each and revealing a numeral."""
    state = create_game(create_rules(), roster(4), seed=11)

    assert state.phase == PHASE_PLAYING
    assert state.version == 0
    assert [len(p.hand) for p in state.players] == [7, 7, 7, 7]
    assert len(state.draw_pile) == 79
    assert len(state.discard_pile) == 1
    assert state.top_card.is_number and not state.top_card.is_wild
    assert validate_deck_integrity(state)


def test_create_game_is_reproducible():
    first = create_game(create_rules(), roster(3), seed=5, game_id='g')
    second = create_game(create_rules(), roster(3), seed=5, game_id='g')

    assert [p.hand for p in first.players] == [p.hand for p in second.players]
    assert first.draw_pile == second.draw_pile
    assert first.top_card == second.top_card


def test_create_game_player_limits():
    with pytest.raises(GameError) as exc:
        create_game(create_rules(), roster(1), seed=1)
    assert exc.value.code == NOT_ENOUGH_PLAYERS

    with pytest.raises(GameError) as exc:
        create_game(create_rules(), roster(9), seed=1)
    assert exc.value.code == ROOM_FULL


def test_create_game_rejects_duplicate_ids():
    entries = [RosterEntry(id='p0', name='A'), RosterEntry(id='p0', name='B')]
    with pytest.raises(GameError):
        create_game(create_rules(), entries, seed=1)


def test_create_game_custom_hand_size():
    state = create_game(create_rules(hand_size=5), roster(2), seed=3)
    assert [len(p.hand) for p in state.players] == [5, 5]


# Turn flow

def test_number_card_advances_turn(build_state, act):
    state = build_state({'p0': ['red-3-1', 'blue-1-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = apply(state, act('play_card', 'p0', card_id='red-3-1'))

    new_state = result.state
    assert new_state.current_player_index == 1
    assert new_state.top_card.id == 'red-3-1'
    assert [c.id for c in new_state.players[0].hand] == ['blue-1-1']
    assert new_state.version == 1
    assert event_types(result) == ['card_played', 'turn_changed', 'state_changed']


def test_skip_four_players(build_state, act):
    hands = {f"p{i}": [f"yellow-{i + 1}-1", f"green-{i + 1}-1"] for i in range(4)}
    hands['p0'] = ['red-skip-1', 'blue-1-1']
    state = build_state(hands, top='red-8-1')

    result = apply(state, act('play_card', 'p0', card_id='red-skip-1'))
    assert result.state.current_player_index == 2


def test_reverse_four_players(build_state, act):
    hands = {f"p{i}": [f"yellow-{i + 1}-1", f"green-{i + 1}-1"] for i in range(4)}
    hands['p0'] = ['red-reverse-1', 'blue-1-1']
    state = build_state(hands, top='red-8-1')

    result = apply(state, act('play_card', 'p0', card_id='red-reverse-1'))
    assert result.state.direction == -1
    assert result.state.current_player_index == 3


def test_reverse_two_players_acts_as_skip(build_state, act):
    state = build_state({'p0': ['red-reverse-1', 'blue-1-1'], 'p1': ['yellow-2-1']}, top='red-8-1')

    result = apply(state, act('play_card', 'p0', card_id='red-reverse-1'))
    assert result.state.direction == -1
    assert result.state.current_player_index == 0


def test_draw_card_advances(build_state, act):
    state = build_state({'p0': ['blue-1-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    top_of_pile = state.draw_pile[0]

    result = apply(state, act('draw_card', 'p0'))

    assert result.state.players[0].hand[-1] == top_of_pile
    assert result.state.current_player_index == 1
    assert event_types(result) == ['card_drawn', 'turn_changed', 'state_changed']


def test_pass_turn(build_state, act):
    state = build_state({'p0': ['blue-1-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = apply(state, act('pass_turn', 'p0'))
    assert result.state.current_player_index == 1


def test_not_your_turn(build_state, act):
    state = build_state({'p0': ['blue-1-1'], 'p1': ['yellow-8-1']}, top='red-8-1')
    result = process_action(state, act('play_card', 'p1', card_id='yellow-8-1'))
    assert not result.success
    assert result.error_code == NOT_YOUR_TURN


# Stacked draw penalties

def _stack_state(build_state, config=None, p1_hand=None):
    return build_state(
        {
            'p0': ['red-draw2-1', 'red-3-1'],
            'p1': p1_hand or ['blue-draw2-1', 'blue-4-1'],
            'p2': ['green-9-1', 'yellow-2-1', 'green-1-1'],
        },
        top='red-8-1',
        config=config
    )


def test_stacked_penalty_lands_on_player_without_counter(build_state, act):
    """Test +2 then +2 makes the next player without a +2 draw four."""
    state = _stack_state(build_state)

    first = apply(state, act('play_card', 'p0', card_id='red-draw2-1'))
    assert first.state.current_player_index == 1
    assert first.state.stacked_draw_amount == 2
    assert first.state.pending_action.card_value == 'draw2'

    second = apply(first.state, act('play_card', 'p1', card_id='blue-draw2-1'))
    final = second.state
    assert len(final.get_player('p2').hand) == 7
    assert final.stacked_draw_amount == 0
    assert final.pending_action is None
    assert final.current_player_index == 0
    assert validate_deck_integrity(final)

    drawn = [e for e in second.events if e.type == 'card_drawn']
    assert drawn[0].payload['count'] == 4
    assert drawn[0].payload['reason'] == 'penalty'


def test_stacked_penalty_drawn_instead_of_countered(build_state, act):
    state = _stack_state(build_state)
    first = apply(state, act('play_card', 'p0', card_id='red-draw2-1'))

    second = apply(first.state, act('draw_card', 'p1'))
    final = second.state
    assert len(final.get_player('p1').hand) == 4
    assert final.stacked_draw_amount == 0
    assert final.pending_action is None
    assert final.current_player_index == 2


def test_wild_draw_four_does_not_counter_draw_two(build_state, act):
    state = _stack_state(build_state, p1_hand=['blue-draw2-1', 'wild-wild_draw4-1', 'blue-4-1'])
    first = apply(state, act('play_card', 'p0', card_id='red-draw2-1'))

    result = process_action(first.state, act('play_card', 'p1', card_id='wild-wild_draw4-1', chosen_color='red'))
    assert not result.success
    assert result.error_code == CARD_NOT_PLAYABLE

    passed = process_action(first.state, act('pass_turn', 'p1'))
    assert passed.error_code == 'STACK_PENDING'


def test_draw_two_without_stacking(build_state, act):
    state = _stack_state(build_state, config=create_rules(stack_draw=False))

    result = apply(state, act('play_card', 'p0', card_id='red-draw2-1'))
    assert len(result.state.get_player('p1').hand) == 4
    assert result.state.current_player_index == 2
    assert result.state.stacked_draw_amount == 0


# Winning

def test_last_card_wins(build_state, act):
    state = build_state({'p0': ['red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = apply(state, act('play_card', 'p0', card_id='red-3-1'))

    assert result.state.phase == PHASE_GAME_OVER
    assert result.state.winner == 'p0'
    game_over = [e for e in result.events if e.type == 'game_over'][0]
    assert game_over.payload['winner_id'] == 'p0'

    after = process_action(result.state, act('draw_card', 'p1'))
    assert after.error_code == GAME_OVER


@pytest.mark.parametrize('card_id', ['red-0-1', 'red-draw2-1', 'red-5-1', 'red-7-1'])
def test_last_card_wins_before_effect(build_state, act, card_id):
    """Test the win is checked before the card's effect runs."""
    state = build_state({'p0': [card_id], 'p1': ['blue-draw2-1', 'yellow-2-1']}, top='red-8-1')
    result = apply(state, act('play_card', 'p0', card_id=card_id))

    assert result.state.phase == PHASE_GAME_OVER
    assert result.state.winner == 'p0'
    assert len(result.state.get_player('p1').hand) == 2
    assert result.state.stacked_draw_amount == 0
    assert result.state.pending_action is None


# Wilds

def test_wild_requires_color(build_state, act):
    state = build_state({'p0': ['wild-wild-1', 'red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = process_action(state, act('play_card', 'p0', card_id='wild-wild-1'))
    assert result.error_code == WILD_COLOR_REQUIRED


def test_wild_sets_color(build_state, act):
    state = build_state({'p0': ['wild-wild-1', 'red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = apply(state, act('play_card', 'p0', card_id='wild-wild-1', chosen_color='blue'))

    assert result.state.chosen_color == 'blue'
    assert get_current_color(result.state) == 'blue'
    assert result.state.current_player_index == 1


def test_wild_color_prompt(build_state, act):
    state = build_state(
        {'p0': ['wild-wild-1', 'red-3-1'], 'p1': ['yellow-2-1']},
        top='red-8-1',
        config=create_rules(wild_color_prompt=True)
    )
    played = apply(state, act('play_card', 'p0', card_id='wild-wild-1'))
    assert played.state.phase == PHASE_COLOR_SELECTION
    assert played.state.pending_action.player_id == 'p0'
    assert played.state.current_player_index == 0

    wrong = process_action(played.state, act('select_color', 'p1', chosen_color='green'))
    assert wrong.error_code == NOT_YOUR_TURN

    chosen = apply(played.state, act('select_color', 'p0', chosen_color='green'))
    assert chosen.state.phase == PHASE_PLAYING
    assert get_current_color(chosen.state) == 'green'
    assert chosen.state.current_player_index == 1


# House rules

def test_seven_toggles_silence(build_state, act):
    state = build_state(
        {'p0': ['red-7-1', 'red-3-1'], 'p1': ['yellow-2-1'], 'p2': ['green-2-1']},
        top='red-8-1'
    )
    result = apply(state, act('play_card', 'p0', card_id='red-7-1'))

    assert result.state.silence_mode is True
    toggled = [e for e in result.events if e.type == 'silence_toggled'][0]
    assert toggled.payload['active'] is True
    assert result.state.current_player_index == 1

    reported = apply(result.state, act('report_speaking', 'p1', target_player_id='p2'))
    assert len(reported.state.get_player('p2').hand) == 2


def test_report_speaking_needs_silence(build_state, act):
    state = build_state({'p0': ['red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = process_action(state, act('report_speaking', 'p0', target_player_id='p1'))
    assert result.error_code == WRONG_PHASE

    state.config = create_rules(silence=False)
    result = process_action(state, act('report_speaking', 'p0', target_player_id='p1'))
    assert result.error_code == RULE_DISABLED


def test_seven_without_silence_rule(build_state, act):
    state = build_state(
        {'p0': ['red-7-1', 'red-3-1'], 'p1': ['yellow-2-1']},
        top='red-8-1',
        config=create_rules(silence=False)
    )
    result = apply(state, act('play_card', 'p0', card_id='red-7-1'))
    assert result.state.silence_mode is False
    assert result.state.current_player_index == 1


def test_zero_opens_custom_rule_creation(build_state, act):
    state = build_state({'p0': ['red-0-1', 'red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    played = apply(state, act('play_card', 'p0', card_id='red-0-1'))

    assert played.state.phase == PHASE_CUSTOM_RULE
    assert played.state.current_player_index == 0

    other = process_action(played.state, act('create_custom_rule', 'p1', custom_rule={'text': 'x', 'type': 'speech'}))
    assert other.error_code == NOT_YOUR_TURN

    empty = process_action(played.state, act('create_custom_rule', 'p0', custom_rule={'text': '  ', 'type': 'speech'}))
    assert empty.error_code == INVALID_RULE

    bad_type = process_action(played.state, act('create_custom_rule', 'p0', custom_rule={'text': 'x', 'type': 'dance'}))
    assert bad_type.error_code == INVALID_RULE

    created = apply(played.state, act('create_custom_rule', 'p0', custom_rule={'text': 'No talking', 'type': 'speech'}))
    rule = created.state.custom_rules[0]
    assert rule.id == 'rule-1'
    assert rule.text == 'No talking'
    assert rule.created_by == 'p0'
    assert created.state.phase == PHASE_PLAYING
    assert created.state.current_player_index == 1


def _slap_state(build_state, act):
    state = build_state(
        {'p0': ['red-5-1', 'red-3-1'], 'p1': ['yellow-2-1', 'green-1-1'], 'p2': ['green-2-1', 'blue-1-1']},
        top='red-8-1'
    )
    return apply(state, act('play_card', 'p0', card_id='red-5-1')).state


def test_five_starts_slap_race(build_state, act):
    state = _slap_state(build_state, act)

    assert state.phase == PHASE_SLAP_RACE
    assert state.pending_action.deadline == NOW + 3.0
    assert state.current_player_index == 0


def test_slap_race_resolves_when_everyone_slapped(build_state, act):
    """Test the slowest slapper draws one and play passes on."""
    state = _slap_state(build_state, act)
    state = apply(state, act('slap', 'p1', timestamp=100.5)).state
    state = apply(state, act('slap', 'p2', timestamp=100.2)).state

    again = process_action(state, act('slap', 'p2', timestamp=100.3))
    assert again.error_code == ALREADY_SLAPPED

    result = apply(state, act('slap', 'p0', timestamp=100.9))
    final = result.state
    assert final.phase == PHASE_PLAYING
    assert len(final.get_player('p0').hand) == 2
    assert final.current_player_index == 1
    ended = [e for e in result.events if e.type == 'slap_race_ended'][0]
    assert ended.payload['loser_id'] == 'p0'


def test_slap_race_non_slapper_loses(build_state, act):
    state = _slap_state(build_state, act)
    state = apply(state, act('slap', 'p1', timestamp=100.5)).state

    final = resolve_slap_race(state, now=104.0)
    assert final.phase == PHASE_PLAYING
    assert len(final.get_player('p0').hand) == 2
    assert len(final.get_player('p2').hand) == 2
    assert final.version == state.version + 1


def test_resolve_slap_race_with_results(build_state, act):
    state = _slap_state(build_state, act)
    final = resolve_slap_race(state, {'p0': 1.0, 'p1': 2.0, 'p2': 2.0}, now=104.0)
    assert len(final.get_player('p1').hand) == 3


def test_slap_after_deadline_rejected(build_state, act):
    state = _slap_state(build_state, act)

    late = process_action(state, act('slap', 'p1', timestamp=0.0), now=163.0)
    assert late.error_code == WRONG_PHASE
    assert late.state is state
    assert state.pending_action.attempts == {}

    assert process_action(state, act('slap', 'p1'), now=103.0).success


def test_slap_timestamps_clamped_to_race_window(build_state, act):
    """Test a backdated or future slap time cannot decide the race."""
    state = _slap_state(build_state, act)
    state = apply(state, act('slap', 'p1', timestamp=0.0), now=101.0).state
    state = apply(state, act('slap', 'p2', timestamp=500.0), now=101.0).state
    assert state.pending_action.attempts == {'p1': 100.0, 'p2': 103.0}

    result = apply(state, act('slap', 'p0', timestamp=102.9), now=102.9)
    ended = [e for e in result.events if e.type == 'slap_race_ended'][0]
    assert ended.payload['loser_id'] == 'p2'
    assert len(result.state.get_player('p2').hand) == 3


def test_resolve_slap_race_outside_race(build_state):
    state = build_state({'p0': ['red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    with pytest.raises(GameError) as exc:
        resolve_slap_race(state)
    assert exc.value.code == WRONG_PHASE


def test_pick_slap_loser():
    players = [Player(id='a', name='A'), Player(id='b', name='B'), Player(id='c', name='C')]
    assert pick_slap_loser(players, {'a': 1.0, 'c': 2.0}) == 'b'
    assert pick_slap_loser(players, {'a': 3.0, 'b': 3.0, 'c': 1.0}) == 'a'
    assert pick_slap_loser(players, {'a': 1.0, 'b': 2.0, 'c': 4.0}) == 'c'


# UNO calls

def test_call_uno(build_state, act):
    state = build_state({'p0': ['red-3-1', 'red-4-1'], 'p1': ['yellow-2-1', 'blue-1-1', 'blue-2-1']}, top='red-8-1')
    called = apply(state, act('call_uno', 'p0'))
    assert called.state.get_player('p0').has_called_uno

    invalid = process_action(state, act('call_uno', 'p1'))
    assert invalid.error_code == INVALID_UNO_CALL

    played = apply(called.state, act('play_card', 'p0', card_id='red-3-1'))
    caught = process_action(played.state, act('catch_uno', 'p1', target_player_id='p0'))
    assert caught.error_code == INVALID_CATCH


def test_catch_uno(build_state, act):
    state = build_state({'p0': ['red-3-1', 'red-4-1'], 'p1': ['yellow-2-1', 'blue-1-1']}, top='red-8-1')
    played = apply(state, act('play_card', 'p0', card_id='red-3-1'))

    self_catch = process_action(played.state, act('catch_uno', 'p0', target_player_id='p0'))
    assert self_catch.error_code == INVALID_TARGET

    caught = apply(played.state, act('catch_uno', 'p1', target_player_id='p0'))
    assert len(caught.state.get_player('p0').hand) == 3
    event = [e for e in caught.events if e.type == 'uno_caught'][0]
    assert event.payload == {'catcher_id': 'p1', 'target_id': 'p0', 'penalty': 2}


def test_uno_rule_disabled(build_state, act):
    state = build_state(
        {'p0': ['red-3-1', 'red-4-1'], 'p1': ['yellow-2-1']},
        top='red-8-1',
        config=create_rules(uno_call=False)
    )
    assert process_action(state, act('call_uno', 'p0')).error_code == RULE_DISABLED


# Jump-in

def test_jump_in_exact_match(build_state, act):
    state = build_state(
        {'p0': ['blue-1-1', 'green-3-1'], 'p1': ['yellow-2-1', 'green-6-1'], 'p2': ['red-8-2', 'blue-4-1']},
        top='red-8-1'
    )
    result = apply(state, act('play_card', 'p2', card_id='red-8-2'))

    jump = [e for e in result.events if e.type == 'jump_in'][0]
    assert jump.payload == {'player_id': 'p2', 'skipped_player_id': 'p0'}
    assert result.state.top_card.id == 'red-8-2'
    assert result.state.current_player_index == 0


def test_jump_in_requires_exact_match(build_state, act):
    state = build_state(
        {'p0': ['blue-1-1'], 'p1': ['yellow-2-1'], 'p2': ['blue-8-1', 'red-9-1']},
        top='red-8-1'
    )
    for card_id in ('blue-8-1', 'red-9-1'):
        result = process_action(state, act('play_card', 'p2', card_id=card_id))
        assert result.error_code == NOT_YOUR_TURN


def test_jump_in_disabled(build_state, act):
    state = build_state(
        {'p0': ['blue-1-1'], 'p1': ['yellow-2-1'], 'p2': ['red-8-2', 'blue-4-1']},
        top='red-8-1',
        config=create_rules(jump_in=False)
    )
    result = process_action(state, act('play_card', 'p2', card_id='red-8-2'))
    assert result.error_code == NOT_YOUR_TURN

    explicit = process_action(state, act('jump_in', 'p2', card_id='red-8-2'))
    assert explicit.error_code == RULE_DISABLED


# Card requests

def _request_state(build_state):
    return build_state(
        {'p0': ['red-3-1', 'blue-1-1'], 'p1': ['green-4-1', 'green-5-1', 'yellow-9-1']},
        top='red-8-1'
    )


def test_request_offer_accept(build_state, act):
    state = _request_state(build_state)

    requested = apply(state, act('request_card', 'p0', target_player_id='p1'))
    assert requested.state.phase == PHASE_CARD_REQUEST
    assert process_action(requested.state, act('draw_card', 'p0')).error_code == WRONG_PHASE

    offered = apply(requested.state, act('offer_card', 'p1', card_id='green-4-1'))
    assert offered.state.phase == PHASE_OFFERING_CARD
    assert offered.state.pending_action.offered_card_id == 'green-4-1'

    accepted = apply(offered.state, act('accept_offer', 'p0'))
    final = accepted.state
    assert final.phase == PHASE_PLAYING
    assert [c.id for c in final.get_player('p0').hand] == ['red-3-1', 'blue-1-1', 'green-4-1']
    assert [c.id for c in final.get_player('p1').hand] == ['green-5-1', 'yellow-9-1']
    assert final.current_player_index == 0
    assert validate_deck_integrity(final)


def test_request_declined(build_state, act):
    state = _request_state(build_state)
    requested = apply(state, act('request_card', 'p0', target_player_id='p1'))

    wrong = process_action(requested.state, act('decline_request', 'p0'))
    assert wrong.error_code == NOT_YOUR_TURN

    declined = apply(requested.state, act('decline_request', 'p1'))
    assert declined.state.phase == PHASE_PLAYING
    assert declined.state.pending_action is None
    assert declined.state.current_player_index == 0


def test_offer_declined(build_state, act):
    state = _request_state(build_state)
    requested = apply(state, act('request_card', 'p0', target_player_id='p1'))
    offered = apply(requested.state, act('offer_card', 'p1', card_id='yellow-9-1'))

    declined = apply(offered.state, act('decline_offer', 'p0'))
    assert declined.state.phase == PHASE_PLAYING
    assert len(declined.state.get_player('p1').hand) == 3
    assert len(declined.state.get_player('p0').hand) == 2


def test_request_rule_disabled(build_state, act):
    state = _request_state(build_state)
    state.config = create_rules(offer_card=False)
    result = process_action(state, act('request_card', 'p0', target_player_id='p1'))
    assert result.error_code == RULE_DISABLED


# Draw pile exhaustion

def test_reshuffle_when_draw_pile_runs_out(build_state, act):
    state = build_state(
        {'p0': ['red-3-1', 'red-4-1'], 'p1': ['yellow-2-1']},
        top='red-8-1',
        draw_pile=['blue-1-1'],
        leftover_to='discard'
    )
    assert len(state.draw_pile) == 1

    result = apply(state, act('catch_uno', 'p0', target_player_id='p1'))
    final = result.state

    assert final.reshuffle_count == 1
    assert [c.id for c in final.discard_pile] == ['red-8-1']
    assert len(final.get_player('p1').hand) == 3
    assert validate_deck_integrity(final)


# Purity

def test_apply_action_leaves_input_untouched(build_state, act):
    state = build_state({'p0': ['red-3-1', 'blue-1-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    hand_before = list(state.players[0].hand)
    draw_before = list(state.draw_pile)

    new_state = apply_action(state, act('play_card', 'p0', card_id='red-3-1'), now=NOW)

    assert new_state is not state
    assert state.version == 0
    assert state.players[0].hand == hand_before
    assert state.draw_pile == draw_before
    assert state.top_card.id == 'red-8-1'
    assert new_state.last_action.card_id == 'red-3-1'


def test_rejection_returns_same_state(build_state, act):
    state = build_state({'p0': ['red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    result = process_action(state, act('play_card', 'p0', card_id='green-4-1'))

    assert not result.success
    assert result.state is state
    assert [e.type for e in result.events] == ['action_rejected']
    assert result.events[0].payload['reason'] == 'CARD_NOT_IN_HAND'


def test_set_player_connected(build_state):
    state = build_state({'p0': ['red-3-1'], 'p1': ['yellow-2-1']}, top='red-8-1')
    new_state = set_player_connected(state, 'p1', False)

    assert new_state.get_player('p1').connected is False
    assert state.get_player('p1').connected is True
    assert new_state.version == 1
    assert new_state.current_player_index == state.current_player_index


# Whole games

@pytest.mark.parametrize('difficulty', ['low', 'medium', 'high'])
@pytest.mark.parametrize('players', [2, 3, 4])
def test_scripted_games_conserve_cards(difficulty, players):
    """Test seeded games between scripted players keep all 108 cards and finish."""
    seed = players * 100 + len(difficulty)
    engine = GameEngine(
        create_rules(),
        roster(players),
        seed=seed,
        clock=lambda: 1000.0,
        check_integrity=True
    )
    bots = {
        f"p{i}": ScriptedOpponent(f"p{i}", difficulty, random.Random(seed + i))
        for i in range(players)
    }
    runner = BotRunner(engine, bots)

    runner.run(max_steps=5000)

    assert runner.rejections == 0
    assert engine.state.phase == PHASE_GAME_OVER
    assert validate_deck_integrity(engine.state)
    winner = engine.state.get_player(engine.state.winner)
    assert winner.hand == []


def test_scripted_games_are_reproducible():
    def play():
        engine = GameEngine(create_rules(), roster(3), seed=21, game_id='g', clock=lambda: 1000.0)
        bots = {f"p{i}": ScriptedOpponent(f"p{i}", 'medium', random.Random(i)) for i in range(3)}
        BotRunner(engine, bots).run()
        return engine.state

    first, second = play(), play()
    assert first.winner == second.winner
    assert first.version == second.version
    assert first.discard_pile == second.discard_pile
