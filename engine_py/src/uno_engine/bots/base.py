"""
Base bot interface and utilities.
"""

import random
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from ..constants import (
    ACTION_ACCEPT_OFFER, ACTION_CALL_UNO, ACTION_CATCH_UNO, ACTION_CREATE_RULE,
    ACTION_DECLINE_OFFER, ACTION_DECLINE_REQUEST, ACTION_DRAW_CARD, ACTION_OFFER_CARD,
    ACTION_PLAY_CARD, ACTION_SELECT_COLOR, ACTION_SLAP,
)
from ..models import Card, GameAction, GameState, Player
from ..queries import get_valid_moves, is_current_player


class BotDecision:
    """An action a bot wants to take and how long it 'thinks' first."""

    def __init__(self, action: GameAction, delay: float = 0.0):
        self.action = action
        # Scheduling hint only, never negative
        self.delay = max(0.0, delay)

    @property
    def type(self) -> str:
        return self.action.type

    @classmethod
    def play(cls, player_id: str, card: Card, chosen_color: Optional[str] = None, delay: float = 0.0) -> 'BotDecision':
        """Create a play action."""
        return cls(GameAction(
            type=ACTION_PLAY_CARD,
            player_id=player_id,
            card_id=card.id,
            chosen_color=chosen_color
        ), delay)

    @classmethod
    def draw(cls, player_id: str, delay: float = 0.0) -> 'BotDecision':
        """Create a draw action."""
        return cls(GameAction(type=ACTION_DRAW_CARD, player_id=player_id), delay)

    @classmethod
    def call_uno(cls, player_id: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_CALL_UNO, player_id=player_id), delay)

    @classmethod
    def catch_uno(cls, player_id: str, target_id: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_CATCH_UNO, player_id=player_id, target_player_id=target_id), delay)

    @classmethod
    def slap(cls, player_id: str, timestamp: float, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_SLAP, player_id=player_id, timestamp=timestamp), delay)

    @classmethod
    def create_rule(cls, player_id: str, text: str, rule_type: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(
            type=ACTION_CREATE_RULE,
            player_id=player_id,
            custom_rule={'text': text, 'type': rule_type}
        ), delay)

    @classmethod
    def select_color(cls, player_id: str, color: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_SELECT_COLOR, player_id=player_id, chosen_color=color), delay)

    @classmethod
    def offer(cls, player_id: str, card: Card, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_OFFER_CARD, player_id=player_id, card_id=card.id), delay)

    @classmethod
    def decline_request(cls, player_id: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_DECLINE_REQUEST, player_id=player_id), delay)

    @classmethod
    def accept_offer(cls, player_id: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_ACCEPT_OFFER, player_id=player_id), delay)

    @classmethod
    def decline_offer(cls, player_id: str, delay: float = 0.0) -> 'BotDecision':
        return cls(GameAction(type=ACTION_DECLINE_OFFER, player_id=player_id), delay)

    def __repr__(self) -> str:
        return f"BotDecision({self.action.type}, player={self.action.player_id}, delay={self.delay:.2f})"


class BaseBot(ABC):
    """Abstract base class for bot players."""

    def __init__(self, player_id: str, rng: Optional[random.Random] = None):
        self.player_id = player_id
        self.rng = rng

    @abstractmethod
    def choose_action(self, state: GameState, now: Optional[float] = None) -> Optional[BotDecision]:
        """
        Choose an action based on the current game state.

        Must not modify ``state``.

        Args:
            state: Current game state
            now: Clock reading used for time-stamped actions

        Returns:
            BotDecision to take, or None if no action needed
        """
        pass

    def get_rng(self, state: GameState) -> random.Random:
        """The bot's generator, or one derived from the state so repeated asks agree."""
        if self.rng is not None:
            return self.rng
        return random.Random(f"{state.id}:{state.version}:{self.player_id}")

    def get_player(self, state: GameState) -> Optional[Player]:
        return state.get_player(self.player_id)

    def get_player_hand(self, state: GameState) -> List[Card]:
        """Get this bot's current hand."""
        player = self.get_player(state)
        return player.hand if player else []

    def is_my_turn(self, state: GameState) -> bool:
        """Check if it's this bot's turn."""
        return bool(state.players) and is_current_player(state, self.player_id)

    def get_valid_moves(self, state: GameState) -> List[Card]:
        return get_valid_moves(state, self.player_id)

    def get_other_players(self, state: GameState) -> List[Player]:
        """Get list of other players."""
        return [p for p in state.players if p.id != self.player_id]

    def count_cards_in_hand(self, state: GameState, player_id: str) -> int:
        """Get number of cards in another player's hand."""
        player = state.get_player(player_id)
        return len(player.hand) if player else 0

    def color_counts(self, cards: List[Card]) -> Dict[str, int]:
        counts: Dict[str, int] = {}
        for card in cards:
            if not card.is_wild:
                counts[card.color] = counts.get(card.color, 0) + 1
        return counts
