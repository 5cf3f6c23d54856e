"""
Scripted opponent policy with three difficulty tiers.

Strategy by tier:
- low: random legal card, random wild colour, unreliable UNO calls
- medium: fixed priority (draw-fours, draw-twos, skips, reverses, high
  numerals, wilds last), fairly reliable calls
- high: scores each card against its own hand and the rivals' hand sizes,
  near-perfect calls, jumps in when it can
"""

import random
import time
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from .base import BaseBot, BotDecision
from ..constants import (
    COLORS, DRAW_TWO, PHASE_CARD_REQUEST, PHASE_COLOR_SELECTION, PHASE_CUSTOM_RULE,
    PHASE_OFFERING_CARD, PHASE_PLAYING, PHASE_SLAP_RACE, REVERSE, SILENCE_NUMBER, SKIP,
    SLAP_NUMBER, WILD_CARD, WILD_DRAW_FOUR,
)
from ..legality import is_playable
from ..models import Card, GameState, Player
from ..queries import get_current_color, get_jump_in_cards, get_top_card, get_uncalled_uno_players


class Difficulty(str, Enum):
    LOW = 'low'
    MEDIUM = 'medium'
    HIGH = 'high'

    @classmethod
    def parse(cls, value) -> 'Difficulty':
        """Accept tier names and the easy/hard aliases."""
        if isinstance(value, cls):
            return value
        aliases = {'easy': cls.LOW, 'hard': cls.HIGH}
        key = str(value).lower()
        return aliases.get(key) or cls(key)


@dataclass
class TierSettings:
    declare_chance: float  # chance of remembering to call UNO
    catch_chance: float  # chance of catching a missed call
    think_delay: float  # base seconds before acting
    slap_delay: float  # base slap reaction in seconds
    jitter: float = 0.5
    jumps_in: bool = False


TIERS: Dict[Difficulty, TierSettings] = {
    Difficulty.LOW: TierSettings(declare_chance=0.6, catch_chance=0.3, think_delay=1.5, slap_delay=1.5),
    Difficulty.MEDIUM: TierSettings(declare_chance=0.85, catch_chance=0.6, think_delay=1.0, slap_delay=0.8),
    Difficulty.HIGH: TierSettings(declare_chance=0.98, catch_chance=0.9, think_delay=0.5, slap_delay=0.2, jumps_in=True),
}

PRESET_RULES = [
    ('Must say thank you when drawing', 'speech'),
    ('No pointing at people', 'behavioral'),
    ('Knock before playing a card', 'action'),
    ('Draw 1 if you touch your face', 'penalty'),
    ('Must speak in an accent', 'behavioral'),
]

MEDIUM_PRIORITY = {WILD_DRAW_FOUR: 100, DRAW_TWO: 80, SKIP: 60, REVERSE: 50, WILD_CARD: 10}


class ScriptedOpponent(BaseBot):
    """A bot that plays by the rules of its difficulty tier."""

    def __init__(
        self,
        player_id: str,
        difficulty=Difficulty.MEDIUM,
        rng: Optional[random.Random] = None,
        settings: Optional[TierSettings] = None
    ):
        super().__init__(player_id, rng)
        self.difficulty = Difficulty.parse(difficulty)
        self.settings = settings or TIERS[self.difficulty]

    def choose_action(self, state: GameState, now: Optional[float] = None) -> Optional[BotDecision]:
        """Choose the best action for the current state."""
        player = self.get_player(state)
        if not player or not state.discard_pile:
            return None

        now = time.time() if now is None else now
        rng = self.get_rng(state)
        pending = state.pending_action

        if state.phase == PHASE_SLAP_RACE:
            if self.player_id in pending.attempts:
                return None
            delay = self.settings.slap_delay + rng.random() * self.settings.jitter
            return BotDecision.slap(self.player_id, timestamp=now + delay, delay=delay)

        if state.phase == PHASE_CUSTOM_RULE:
            if pending.player_id != self.player_id:
                return None
            text, rule_type = rng.choice(PRESET_RULES)
            return BotDecision.create_rule(self.player_id, text, rule_type, self._think(rng))

        if state.phase == PHASE_COLOR_SELECTION:
            if pending.player_id != self.player_id:
                return None
            return BotDecision.select_color(self.player_id, self._pick_color(player.hand, rng), self._think(rng))

        if state.phase == PHASE_CARD_REQUEST:
            if pending.target_id != self.player_id:
                return None
            return self._answer_request(player, rng)

        if state.phase == PHASE_OFFERING_CARD:
            if pending.target_id != self.player_id:
                return None
            return self._answer_offer(state, rng)

        if state.phase != PHASE_PLAYING:
            return None

        return self._decide_play(state, player, rng)

    def _think(self, rng: random.Random) -> float:
        return self.settings.think_delay + rng.random() * self.settings.jitter

    def _decide_play(self, state: GameState, player: Player, rng: random.Random) -> Optional[BotDecision]:
        uno_rule = state.config.enabled_rules.uno_call

        if uno_rule:
            for target in get_uncalled_uno_players(state):
                if target.id != self.player_id and rng.random() < self.settings.catch_chance:
                    return BotDecision.catch_uno(self.player_id, target.id, self._think(rng))

        if not self.is_my_turn(state):
            if self.settings.jumps_in:
                cards = get_jump_in_cards(state, self.player_id)
                if cards:
                    return BotDecision.play(self.player_id, cards[0], delay=self._think(rng))
            return None

        if (
            uno_rule and len(player.hand) == 2 and not player.has_called_uno
            and rng.random() < self.settings.declare_chance
        ):
            return BotDecision.call_uno(self.player_id, self._think(rng))

        valid_moves = self.get_valid_moves(state)
        # Also covers a pending penalty with no counter in hand
        if not valid_moves:
            return BotDecision.draw(self.player_id, self._think(rng))

        card = self.pick_card(state, valid_moves, player.hand, rng)
        chosen_color = self._pick_color([c for c in player.hand if c.id != card.id], rng) if card.is_wild else None
        return BotDecision.play(self.player_id, card, chosen_color, self._think(rng))

    def pick_card(self, state: GameState, valid_moves: List[Card], hand: List[Card], rng: random.Random) -> Card:
        if self.difficulty == Difficulty.LOW:
            return rng.choice(valid_moves)
        if self.difficulty == Difficulty.MEDIUM:
            return max(valid_moves, key=self._priority)
        return max(valid_moves, key=lambda card: self._score(state, card, valid_moves, hand))

    def _priority(self, card: Card) -> int:
        if card.is_number:
            return 20 + card.value
        return MEDIUM_PRIORITY.get(card.value, 0)

    def _score(self, state: GameState, card: Card, valid_moves: List[Card], hand: List[Card]) -> float:
        score = 0.0

        # Keep the colour we hold most of in play
        score += sum(1 for c in hand if c.color == card.color) * 5

        if card.is_wild and any(not c.is_wild for c in valid_moves):
            score -= 50

        rivals = self.get_other_players(state)
        if rivals and min(len(p.hand) for p in rivals) <= 3:
            if card.value in (SKIP, REVERSE):
                score += 30
            elif card.value == DRAW_TWO:
                score += 40
            elif card.value == WILD_DRAW_FOUR:
                score += 50

        if card.value == SLAP_NUMBER:
            score -= 10
        elif card.value == SILENCE_NUMBER:
            score += 5

        if card.is_number:
            score += card.value
        return score

    def _pick_color(self, cards: List[Card], rng: random.Random) -> str:
        counts = self.color_counts(cards)
        if self.difficulty == Difficulty.LOW or not counts:
            return rng.choice(COLORS)
        return max(COLORS, key=lambda color: counts.get(color, 0))

    def _answer_request(self, player: Player, rng: random.Random) -> BotDecision:
        delay = self._think(rng)
        hand = player.hand
        if self.difficulty == Difficulty.LOW and hand and rng.random() < 0.5:
            return BotDecision.offer(self.player_id, rng.choice(hand), delay)
        if self.difficulty == Difficulty.MEDIUM and len(hand) > 4:
            # Give away the least useful card: the lowest numeral, else anything
            numerals = [c for c in hand if c.is_number]
            card = min(numerals, key=lambda c: c.value) if numerals else hand[0]
            return BotDecision.offer(self.player_id, card, delay)
        return BotDecision.decline_request(self.player_id, delay)

    def _answer_offer(self, state: GameState, rng: random.Random) -> BotDecision:
        pending = state.pending_action
        delay = self._think(rng)
        offerer = state.get_player(pending.offerer_id)
        card = offerer.find_card(pending.offered_card_id) if offerer else None
        if card is None:
            return BotDecision.decline_offer(self.player_id, delay)

        if is_playable(card, get_top_card(state), get_current_color(state)):
            return BotDecision.accept_offer(self.player_id, delay)
        if self.difficulty == Difficulty.LOW and rng.random() < 0.5:
            return BotDecision.accept_offer(self.player_id, delay)
        return BotDecision.decline_offer(self.player_id, delay)


def create_bot(player_id: str, difficulty='medium', rng: Optional[random.Random] = None) -> ScriptedOpponent:
    return ScriptedOpponent(player_id, difficulty, rng)


def decide(
    state: GameState,
    player_id: str,
    difficulty='medium',
    rng: Optional[random.Random] = None,
    now: Optional[float] = None
) -> Optional[BotDecision]:
    """
    Decide what ``player_id`` does next without touching ``state``.

    Returns:
        BotDecision, or None when the player has nothing to do
    """
    return ScriptedOpponent(player_id, difficulty, rng).choose_action(state, now)
