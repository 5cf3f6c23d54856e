"""Game constants and utilities"""

from typing import List

# Card colours
RED = 'red'
YELLOW = 'yellow'
GREEN = 'green'
BLUE = 'blue'
WILD = 'wild'
COLORS: List[str] = [RED, YELLOW, GREEN, BLUE]

# Card values
NUMBERS = list(range(10))
SKIP = 'skip'
REVERSE = 'reverse'
DRAW_TWO = 'draw2'
WILD_CARD = 'wild'
WILD_DRAW_FOUR = 'wild_draw4'
ACTION_VALUES = [SKIP, REVERSE, DRAW_TWO]
WILD_VALUES = [WILD_CARD, WILD_DRAW_FOUR]

DRAW_AMOUNTS = {DRAW_TWO: 2, WILD_DRAW_FOUR: 4}

# Deck composition
WILD_COPIES = 4
DECK_SIZE = 108
INITIAL_HAND_SIZE = 7

# Phases
PHASE_WAITING = 'waiting'
PHASE_PLAYING = 'playing'
PHASE_COLOR_SELECTION = 'color_selection'
PHASE_SLAP_RACE = 'slap_race'
PHASE_CUSTOM_RULE = 'custom_rule_creation'
PHASE_CARD_REQUEST = 'card_request'
PHASE_OFFERING_CARD = 'offering_card'
PHASE_GAME_OVER = 'game_over'

# Action kinds
ACTION_PLAY_CARD = 'play_card'
ACTION_DRAW_CARD = 'draw_card'
ACTION_CALL_UNO = 'call_uno'
ACTION_CATCH_UNO = 'catch_uno'
ACTION_SLAP = 'slap'
ACTION_CREATE_RULE = 'create_custom_rule'
ACTION_REQUEST_CARD = 'request_card'
ACTION_DECLINE_REQUEST = 'decline_request'
ACTION_OFFER_CARD = 'offer_card'
ACTION_ACCEPT_OFFER = 'accept_offer'
ACTION_DECLINE_OFFER = 'decline_offer'
ACTION_REPORT_SPEAKING = 'report_speaking'
ACTION_SELECT_COLOR = 'select_color'
ACTION_PASS_TURN = 'pass_turn'
ACTION_JUMP_IN = 'jump_in'

ACTION_TYPES = [
    ACTION_PLAY_CARD, ACTION_DRAW_CARD, ACTION_CALL_UNO, ACTION_CATCH_UNO,
    ACTION_SLAP, ACTION_CREATE_RULE, ACTION_REQUEST_CARD, ACTION_DECLINE_REQUEST,
    ACTION_OFFER_CARD, ACTION_ACCEPT_OFFER, ACTION_DECLINE_OFFER,
    ACTION_REPORT_SPEAKING, ACTION_SELECT_COLOR, ACTION_PASS_TURN, ACTION_JUMP_IN,
]

# Pending action kinds
PENDING_DRAW_CARDS = 'draw_cards'
PENDING_SLAP = 'slap'
PENDING_SELECT_COLOR = 'select_color'
PENDING_CREATE_RULE = 'create_rule'
PENDING_CARD_REQUEST = 'card_request'
PENDING_OFFER_DECISION = 'offer_decision'

# Event kinds
EVENT_STATE_CHANGED = 'state_changed'
EVENT_CARD_PLAYED = 'card_played'
EVENT_CARD_DRAWN = 'card_drawn'
EVENT_TURN_CHANGED = 'turn_changed'
EVENT_UNO_CALLED = 'uno_called'
EVENT_UNO_CAUGHT = 'uno_caught'
EVENT_SLAP_RACE_STARTED = 'slap_race_started'
EVENT_SLAP_RACE_ENDED = 'slap_race_ended'
EVENT_SILENCE_TOGGLED = 'silence_toggled'
EVENT_SPEAKING_REPORTED = 'speaking_reported'
EVENT_CUSTOM_RULE_CREATED = 'custom_rule_created'
EVENT_CARD_REQUESTED = 'card_requested'
EVENT_REQUEST_DECLINED = 'request_declined'
EVENT_CARD_OFFERED = 'card_offered'
EVENT_OFFER_RESPONDED = 'offer_responded'
EVENT_JUMP_IN = 'jump_in'
EVENT_GAME_OVER = 'game_over'
EVENT_ACTION_REJECTED = 'action_rejected'

# Custom rule kinds
CUSTOM_RULE_TYPES = ['behavioral', 'speech', 'penalty', 'action']

# Player kinds
PLAYER_HUMAN = 'human'
PLAYER_SCRIPTED = 'scripted'

# House-rule numerals
SILENCE_NUMBER = 7
CUSTOM_RULE_NUMBER = 0
SLAP_NUMBER = 5

# Penalties and timing
UNO_PENALTY = 2
SPEAKING_PENALTY = 1
SLAP_PENALTY = 1
SLAP_WINDOW_SECONDS = 3.0

# Room limits
MIN_PLAYERS = 2
MAX_PLAYERS = 8

# Placeholder used when redacting another player's hand
HIDDEN_CARD = {'id': 'hidden', 'color': 'hidden', 'value': 'hidden'}
