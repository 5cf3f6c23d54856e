"""Scripted opponents."""

from .base import BaseBot, BotDecision
from .policy import Difficulty, ScriptedOpponent, create_bot, decide

__all__ = ["BaseBot", "BotDecision", "Difficulty", "ScriptedOpponent", "create_bot", "decide"]
