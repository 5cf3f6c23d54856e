"""Rule engine: session creation and the action transition function"""

import copy
import logging
import random
import threading
import time
import uuid
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from .constants import (
    ACTION_ACCEPT_OFFER, ACTION_CALL_UNO, ACTION_CATCH_UNO, ACTION_CREATE_RULE,
    ACTION_DECLINE_OFFER, ACTION_DECLINE_REQUEST, ACTION_DRAW_CARD, ACTION_JUMP_IN,
    ACTION_OFFER_CARD, ACTION_PASS_TURN, ACTION_PLAY_CARD, ACTION_REPORT_SPEAKING,
    ACTION_REQUEST_CARD, ACTION_SELECT_COLOR, ACTION_SLAP,
    EVENT_ACTION_REJECTED, EVENT_CARD_PLAYED, EVENT_CUSTOM_RULE_CREATED, EVENT_GAME_OVER,
    EVENT_JUMP_IN, EVENT_SLAP_RACE_ENDED, EVENT_SPEAKING_REPORTED, EVENT_STATE_CHANGED,
    EVENT_UNO_CALLED, EVENT_UNO_CAUGHT,
    PHASE_COLOR_SELECTION, PHASE_GAME_OVER, PHASE_PLAYING, PHASE_SLAP_RACE, PHASE_WAITING,
    SLAP_PENALTY, SPEAKING_PENALTY, UNO_PENALTY,
)
from .effects import add_event, advance_turn, force_draw, resolve_card_effect
from .errors import GameError, InvariantViolation, NOT_ENOUGH_PLAYERS, ROOM_FULL, WRONG_PHASE
from .event_bus import EventBus, GameEvent
from .exchange import accept_offer, decline_offer, decline_request, offer_card, request_card
from .models import (
    Card, CustomRule, GameAction, GameState, PendingColorSelection, PendingDraw, Player, RosterEntry,
)
from .queries import get_current_color, get_top_card, get_valid_moves, is_current_player
from .rules import RoomConfig
from .shuffle import build_deck, deal_hands, pick_starting_card, shuffle_deck, validate_deck_integrity
from .validate import ValidationResult, validate_action

logger = logging.getLogger(__name__)


class EngineResult:
    """Outcome of processing one action."""

    def __init__(
        self,
        success: bool,
        state: GameState,
        events: Optional[List[GameEvent]] = None,
        error_code: Optional[str] = None,
        error_message: Optional[str] = None
    ):
        self.success = success
        self.state = state
        self.events = events or []
        self.error_code = error_code
        self.error_message = error_message


def create_game(
    config: RoomConfig,
    roster: Sequence[RosterEntry],
    seed: Optional[int] = None,
    game_id: Optional[str] = None,
    now: Optional[float] = None
) -> GameState:
    """
    Shuffle, deal and reveal the opening discard.

    Args:
        config: House rules for the session
        roster: Players in seat order
        seed: Shuffle seed; a random one is picked when omitted
        game_id: Session id; generated when omitted
        now: Clock reading for the first turn

    Returns:
        A fresh state in the playing phase
    """
    if len(roster) < config.min_players:
        raise GameError(NOT_ENOUGH_PLAYERS, f"Need at least {config.min_players} players")
    if len(roster) > config.max_players:
        raise GameError(ROOM_FULL, f"At most {config.max_players} players can play")
    if len({entry.id for entry in roster}) != len(roster):
        raise GameError(NOT_ENOUGH_PLAYERS, "Player ids must be unique")

    now = time.time() if now is None else now
    seed = random.randrange(2 ** 32) if seed is None else seed

    state = GameState(
        id=game_id or str(uuid.uuid4())[:8],
        config=config,
        seed=seed,
        phase=PHASE_WAITING,
        players=[Player(id=entry.id, name=entry.name, kind=entry.kind) for entry in roster],
    )

    deck = shuffle_deck(build_deck(), seed=seed)
    hands, deck = deal_hands(deck, len(state.players), config.hand_size)
    for player, hand in zip(state.players, hands):
        player.hand = hand

    first_card, deck = pick_starting_card(deck)
    state.draw_pile = deck
    state.discard_pile = [first_card]
    state.turn_started_at = now
    state.phase = PHASE_PLAYING

    logger.info(f"Game {state.id} dealt to {len(state.players)} players, opening card {first_card.id}")
    return state


def pick_slap_loser(players: Sequence[Player], attempts: Mapping[str, float]) -> str:
    """
    Loser of a slap race.

    The first player in seat order who never slapped; failing that, the
    slowest slapper, earliest seat winning ties.
    """
    for player in players:
        if player.id not in attempts:
            return player.id

    latest = max(attempts[player.id] for player in players)
    return next(player.id for player in players if attempts[player.id] == latest)


def _finish_slap_race(state: GameState, attempts: Mapping[str, float], events: List[GameEvent], now: float):
    loser_id = pick_slap_loser(state.players, attempts)
    state.phase = PHASE_PLAYING
    state.pending_action = None
    force_draw(state, loser_id, SLAP_PENALTY, events, now, reason='slap')
    add_event(events, EVENT_SLAP_RACE_ENDED, {
        'loser_id': loser_id,
        'attempts': dict(attempts),
    }, now)
    advance_turn(state, events, now)


def _finish_game(state: GameState, player: Player, events: List[GameEvent], now: float):
    state.phase = PHASE_GAME_OVER
    state.winner = player.id
    state.pending_action = None
    state.stacked_draw_amount = 0
    add_event(events, EVENT_GAME_OVER, {'winner_id': player.id, 'winner_name': player.name}, now)
    logger.info(f"Game {state.id} won by {player.name} ({player.id})")


# Action handlers. Each mutates the working copy in place.

def _play_card(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    player = state.get_player(action.player_id)

    if not is_current_player(state, player.id):
        # Jump-in: the player takes the turn before the card resolves
        add_event(events, EVENT_JUMP_IN, {
            'player_id': player.id,
            'skipped_player_id': state.current_player.id,
        }, now)
        state.current_player_index = state.player_index(player.id)
        state.turn_started_at = now

    card = player.find_card(action.card_id)
    player.hand = [c for c in player.hand if c.id != card.id]
    state.discard_pile.append(card)
    state.chosen_color = action.chosen_color if card.is_wild else None

    add_event(events, EVENT_CARD_PLAYED, {
        'player_id': player.id,
        'card': card.to_dict(),
        'chosen_color': state.chosen_color,
        'cards_left': len(player.hand),
    }, now)

    if not player.hand:
        _finish_game(state, player, events, now)
        return

    if card.is_wild and state.chosen_color is None:
        state.phase = PHASE_COLOR_SELECTION
        state.pending_action = PendingColorSelection(player_id=player.id)
        return

    resolve_card_effect(state, card, events, now)


def _draw_card(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    if state.stacked_draw_amount > 0:
        force_draw(state, action.player_id, state.stacked_draw_amount, events, now, reason='penalty')
        state.stacked_draw_amount = 0
        if isinstance(state.pending_action, PendingDraw):
            state.pending_action = None
    else:
        force_draw(state, action.player_id, 1, events, now)
    advance_turn(state, events, now)


def _pass_turn(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    advance_turn(state, events, now)


def _call_uno(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    state.get_player(action.player_id).has_called_uno = True
    add_event(events, EVENT_UNO_CALLED, {'player_id': action.player_id}, now)


def _catch_uno(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    force_draw(state, action.target_player_id, UNO_PENALTY, events, now, reason='uno_caught')
    add_event(events, EVENT_UNO_CAUGHT, {
        'catcher_id': action.player_id,
        'target_id': action.target_player_id,
        'penalty': UNO_PENALTY,
    }, now)


def _report_speaking(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    force_draw(state, action.target_player_id, SPEAKING_PENALTY, events, now, reason='speaking')
    add_event(events, EVENT_SPEAKING_REPORTED, {
        'reporter_id': action.player_id,
        'target_id': action.target_player_id,
        'penalty': SPEAKING_PENALTY,
    }, now)


def _slap(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    pending = state.pending_action
    attempts = pending.attempts
    timestamp = now if action.timestamp is None else action.timestamp
    # Reported times are kept inside the race window
    if pending.started_at is not None:
        timestamp = max(timestamp, pending.started_at)
    attempts[action.player_id] = min(timestamp, pending.deadline)
    if len(attempts) >= len(state.players):
        _finish_slap_race(state, attempts, events, now)


def _create_custom_rule(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    rule = CustomRule(
        id=f"rule-{len(state.custom_rules) + 1}",
        text=action.custom_rule['text'].strip(),
        type=action.custom_rule['type'],
        created_by=action.player_id,
        created_at=now
    )
    state.custom_rules.append(rule)
    state.phase = PHASE_PLAYING
    state.pending_action = None
    add_event(events, EVENT_CUSTOM_RULE_CREATED, {
        'rule_id': rule.id,
        'text': rule.text,
        'type': rule.type,
        'created_by': rule.created_by,
    }, now)
    advance_turn(state, events, now)


def _select_color(state: GameState, action: GameAction, events: List[GameEvent], now: float):
    state.chosen_color = action.chosen_color
    state.phase = PHASE_PLAYING
    state.pending_action = None
    resolve_card_effect(state, get_top_card(state), events, now)


ACTION_HANDLERS: Dict[str, Callable[[GameState, GameAction, List[GameEvent], float], None]] = {
    ACTION_PLAY_CARD: _play_card,
    ACTION_JUMP_IN: _play_card,
    ACTION_DRAW_CARD: _draw_card,
    ACTION_PASS_TURN: _pass_turn,
    ACTION_CALL_UNO: _call_uno,
    ACTION_CATCH_UNO: _catch_uno,
    ACTION_SLAP: _slap,
    ACTION_CREATE_RULE: _create_custom_rule,
    ACTION_SELECT_COLOR: _select_color,
    ACTION_REQUEST_CARD: request_card,
    ACTION_DECLINE_REQUEST: decline_request,
    ACTION_OFFER_CARD: offer_card,
    ACTION_ACCEPT_OFFER: accept_offer,
    ACTION_DECLINE_OFFER: decline_offer,
    ACTION_REPORT_SPEAKING: _report_speaking,
}


def _state_changed(state: GameState, events: List[GameEvent], now: float):
    add_event(events, EVENT_STATE_CHANGED, {'version': state.version, 'phase': state.phase}, now)


def apply_action(
    state: GameState,
    action: GameAction,
    now: Optional[float] = None,
    events: Optional[List[GameEvent]] = None
) -> GameState:
    """
    Apply a validated action and return the next state.

    The input state is never modified.

    Args:
        state: Current state
        action: Action that has passed validate_action
        now: Clock reading, defaults to time.time()
        events: If given, the events caused by the action are appended here

    Returns:
        New state with its version incremented
    """
    now = time.time() if now is None else now
    events = events if events is not None else []

    new_state = copy.deepcopy(state)
    ACTION_HANDLERS[action.type](new_state, action, events, now)

    new_state.last_action = copy.deepcopy(action)
    new_state.increment_version()
    _state_changed(new_state, events, now)
    return new_state


def process_action(
    state: GameState,
    action: GameAction,
    expected_version: Optional[int] = None,
    now: Optional[float] = None
) -> EngineResult:
    """Validate then apply; a rejection leaves the state untouched."""
    now = time.time() if now is None else now

    validation = validate_action(state, action, expected_version, now)
    if not validation:
        event = GameEvent(type=EVENT_ACTION_REJECTED, payload={
            'action': action.type,
            'player_id': action.player_id,
            'reason': validation.error_code,
            'message': validation.error_message,
        }, timestamp=now)
        return EngineResult(
            success=False,
            state=state,
            events=[event],
            error_code=validation.error_code,
            error_message=validation.error_message
        )

    events: List[GameEvent] = []
    new_state = apply_action(state, action, now, events)
    return EngineResult(success=True, state=new_state, events=events)


def resolve_slap_race(
    state: GameState,
    results: Optional[Mapping[str, float]] = None,
    now: Optional[float] = None,
    events: Optional[List[GameEvent]] = None
) -> GameState:
    """
    Close a slap race and return the next state.

    Args:
        state: State in the slap race phase
        results: player id -> slap timestamp; defaults to the attempts
            recorded on the pending slap
        now: Clock reading
        events: If given, the events caused are appended here

    Raises:
        GameError: if no slap race is running
    """
    if state.phase != PHASE_SLAP_RACE:
        raise GameError(WRONG_PHASE, "No slap race is running")

    now = time.time() if now is None else now
    events = events if events is not None else []

    new_state = copy.deepcopy(state)
    attempts = dict(new_state.pending_action.attempts if results is None else results)
    attempts = {pid: ts for pid, ts in attempts.items() if new_state.get_player(pid)}
    _finish_slap_race(new_state, attempts, events, now)

    new_state.increment_version()
    _state_changed(new_state, events, now)
    return new_state


def set_player_connected(state: GameState, player_id: str, connected: bool) -> GameState:
    """Flip a player's liveness flag. Turns are not paused."""
    new_state = copy.deepcopy(state)
    player = new_state.get_player(player_id)
    if player and player.connected != connected:
        player.connected = connected
        new_state.increment_version()
    return new_state


class GameEngine:
    """
    One session's state with a single-writer lock and an event bus.

    The same class backs local play, scripted opponents and the networked
    host; all of them submit actions through ``dispatch``.
    """

    def __init__(
        self,
        config: RoomConfig,
        roster: Sequence[RosterEntry],
        seed: Optional[int] = None,
        game_id: Optional[str] = None,
        event_bus: Optional[EventBus] = None,
        clock: Callable[[], float] = time.time,
        check_integrity: bool = False
    ):
        self.config = config
        self.roster = list(roster)
        self.event_bus = event_bus or EventBus()
        self.clock = clock
        self.check_integrity = check_integrity
        self._lock = threading.RLock()
        self._state = create_game(config, self.roster, seed, game_id, clock())

    @property
    def state(self) -> GameState:
        return self._state

    @property
    def lock(self) -> threading.RLock:
        return self._lock

    def on(self, event_type: str, handler: Callable[[GameEvent], None]) -> Callable[[], None]:
        return self.event_bus.subscribe(event_type, handler)

    def off(self, event_type: str, handler: Callable[[GameEvent], None]):
        self.event_bus.unsubscribe(event_type, handler)

    def validate(self, action: GameAction, expected_version: Optional[int] = None) -> ValidationResult:
        return validate_action(self._state, action, expected_version, self.clock())

    def _commit(self, new_state: GameState, events: List[GameEvent]):
        if self.check_integrity and not validate_deck_integrity(new_state):
            raise InvariantViolation(f"Deck integrity broken at version {new_state.version}")
        self._state = new_state
        self.event_bus.publish(events)

    def dispatch(self, action: GameAction, expected_version: Optional[int] = None) -> EngineResult:
        """Validate and apply an action, then announce its events."""
        with self._lock:
            result = process_action(self._state, action, expected_version, self.clock())
            if result.success:
                self._commit(result.state, result.events)
            else:
                logger.debug(
                    f"Game {self._state.id}: rejected {action.type} from {action.player_id}: "
                    f"{result.error_code}"
                )
                self.event_bus.publish(result.events)
            return result

    def resolve_slap_race(self, results: Optional[Mapping[str, float]] = None) -> GameState:
        with self._lock:
            events: List[GameEvent] = []
            self._commit(resolve_slap_race(self._state, results, self.clock(), events), events)
            return self._state

    def expire_slap_race(self, deadline: Optional[float] = None) -> bool:
        """
        Close the running slap race with the attempts collected so far.

        When ``deadline`` is given, only the race that was scheduled with
        that deadline is closed; a later race is left alone.
        """
        with self._lock:
            if self._state.phase != PHASE_SLAP_RACE:
                return False
            if deadline is not None and self._state.pending_action.deadline != deadline:
                return False
            self.resolve_slap_race()
            return True

    def set_connected(self, player_id: str, connected: bool) -> GameState:
        with self._lock:
            self._state = set_player_connected(self._state, player_id, connected)
            return self._state

    def reset(self, seed: Optional[int] = None) -> GameState:
        """Re-deal with the same rules and roster."""
        with self._lock:
            previous_version = self._state.version
            self._state = create_game(self.config, self.roster, seed, self._state.id, self.clock())
            # Versions keep counting so actions decided on the old deal stay stale
            self._state.version = previous_version + 1
            self.event_bus.emit(GameEvent(
                type=EVENT_STATE_CHANGED,
                payload={'version': self._state.version, 'phase': self._state.phase},
                timestamp=self._state.turn_started_at
            ))
            return self._state

    # Read-only queries

    def valid_moves(self, player_id: str) -> List[Card]:
        return get_valid_moves(self._state, player_id)

    def current_color(self) -> str:
        return get_current_color(self._state)

    def top_card(self) -> Card:
        return get_top_card(self._state)
