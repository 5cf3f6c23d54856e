"""
Synchronous driver for scripted players in a local session.

The runner asks every bot for a decision, applies the quickest one and
repeats. Thinking delays order the bots but are never slept on.
"""

import logging
from typing import Dict, List, Optional, Tuple

from .base import BaseBot, BotDecision
from ..constants import PHASE_GAME_OVER, PHASE_SLAP_RACE
from ..engine import EngineResult, GameEngine

logger = logging.getLogger(__name__)


class BotRunner:
    def __init__(self, engine: GameEngine, bots: Dict[str, BaseBot]):
        self.engine = engine
        self.bots = bots
        self.rejections = 0

    def next_decision(self) -> Optional[Tuple[BaseBot, BotDecision]]:
        """Quickest decision among all bots; seat order breaks ties."""
        state = self.engine.state
        now = self.engine.clock()
        best = None
        for player in state.players:
            bot = self.bots.get(player.id)
            if bot is None:
                continue
            decision = bot.choose_action(state, now)
            if decision and (best is None or decision.delay < best[1].delay):
                best = (bot, decision)
        return best

    def step(self) -> Optional[EngineResult]:
        """
        Apply one bot decision.

        Returns:
            The engine result, or None when no bot has anything to do
        """
        state = self.engine.state
        if state.phase == PHASE_GAME_OVER:
            return None

        choice = self.next_decision()
        if choice is None:
            if state.phase == PHASE_SLAP_RACE and self.engine.expire_slap_race():
                return EngineResult(success=True, state=self.engine.state)
            return None

        bot, decision = choice
        result = self.engine.dispatch(decision.action, expected_version=state.version)
        if not result.success:
            self.rejections += 1
            logger.warning(f"Bot {bot.player_id} action {decision.type} rejected: {result.error_code}")
        return result

    def run(self, max_steps: int = 5000) -> List[EngineResult]:
        """Play until the game ends, the bots run out of things to do or ``max_steps``."""
        results = []
        for _ in range(max_steps):
            result = self.step()
            if result is None:
                break
            results.append(result)
            if not result.success:
                break
        return results
