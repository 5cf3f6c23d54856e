"""Game models and data structures"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Union

from .constants import (
    PHASE_WAITING, PLAYER_HUMAN, WILD,
    PENDING_DRAW_CARDS, PENDING_SLAP, PENDING_SELECT_COLOR, PENDING_CREATE_RULE,
    PENDING_CARD_REQUEST, PENDING_OFFER_DECISION,
)
from .rules import RoomConfig

CardValue = Union[int, str]


@dataclass(frozen=True)
class Card:
    id: str
    color: str  # red|yellow|green|blue|wild
    value: CardValue  # 0-9, skip, reverse, draw2, wild, wild_draw4

    @property
    def is_wild(self) -> bool:
        return self.color == WILD

    @property
    def is_number(self) -> bool:
        return isinstance(self.value, int)

    def to_dict(self) -> dict:
        return {'id': self.id, 'color': self.color, 'value': self.value}


@dataclass
class Player:
    id: str
    name: str
    hand: List[Card] = field(default_factory=list)
    has_called_uno: bool = False
    connected: bool = True
    kind: str = PLAYER_HUMAN  # human|scripted

    def find_card(self, card_id: Optional[str]) -> Optional[Card]:
        return next((c for c in self.hand if c.id == card_id), None)


@dataclass
class RosterEntry:
    """Identity handed to the engine when a session is created."""
    id: str
    name: str
    kind: str = PLAYER_HUMAN


@dataclass
class CustomRule:
    id: str
    text: str
    type: str  # behavioral|speech|penalty|action
    created_by: str
    created_at: float


@dataclass
class GameAction:
    type: str
    player_id: str
    card_id: Optional[str] = None
    target_player_id: Optional[str] = None
    chosen_color: Optional[str] = None
    custom_rule: Optional[Dict[str, str]] = None  # {'text': ..., 'type': ...}
    timestamp: Optional[float] = None


# Pending actions, one dataclass per kind

@dataclass
class PendingDraw:
    amount: int
    card_value: str  # draw2 or wild_draw4, the only value that may counter
    kind: str = PENDING_DRAW_CARDS


@dataclass
class PendingSlap:
    deadline: float
    attempts: Dict[str, float] = field(default_factory=dict)  # player_id -> timestamp
    started_at: Optional[float] = None
    kind: str = PENDING_SLAP


@dataclass
class PendingColorSelection:
    player_id: str
    kind: str = PENDING_SELECT_COLOR


@dataclass
class PendingRuleCreation:
    player_id: str
    kind: str = PENDING_CREATE_RULE


@dataclass
class PendingCardRequest:
    requester_id: str
    target_id: str
    kind: str = PENDING_CARD_REQUEST


@dataclass
class PendingOfferDecision:
    offerer_id: str
    target_id: str  # the original requester, who now decides
    offered_card_id: str
    kind: str = PENDING_OFFER_DECISION


PendingAction = Union[
    PendingDraw,
    PendingSlap,
    PendingColorSelection,
    PendingRuleCreation,
    PendingCardRequest,
    PendingOfferDecision,
]


@dataclass
class GameState:
    id: str
    config: RoomConfig
    seed: int
    version: int = 0
    phase: str = PHASE_WAITING
    players: List[Player] = field(default_factory=list)
    current_player_index: int = 0
    direction: int = 1
    draw_pile: List[Card] = field(default_factory=list)  # head is the next draw
    discard_pile: List[Card] = field(default_factory=list)  # tail is the visible top
    chosen_color: Optional[str] = None  # colour picked for a wild on top
    pending_action: Optional[PendingAction] = None
    custom_rules: List[CustomRule] = field(default_factory=list)
    silence_mode: bool = False
    stacked_draw_amount: int = 0
    turn_started_at: float = 0.0
    winner: Optional[str] = None
    last_action: Optional[GameAction] = None
    reshuffle_count: int = 0

    def get_player(self, player_id: Optional[str]) -> Optional[Player]:
        return next((p for p in self.players if p.id == player_id), None)

    def player_index(self, player_id: str) -> int:
        return next((i for i, p in enumerate(self.players) if p.id == player_id), -1)

    @property
    def current_player(self) -> Player:
        return self.players[self.current_player_index]

    @property
    def top_card(self) -> Optional[Card]:
        return self.discard_pile[-1] if self.discard_pile else None

    def increment_version(self):
        self.version += 1
