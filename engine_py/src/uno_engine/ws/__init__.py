"""
WebSocket server and event handling for the Uno game.
"""

from .events import parse_inbound_event
from .server import ConnectionManager, GameWebSocketManager

__all__ = ["ConnectionManager", "GameWebSocketManager", "parse_inbound_event"]
