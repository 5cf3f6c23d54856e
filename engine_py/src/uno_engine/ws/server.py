"""
WebSocket transport for the room host.

Every message is handled on the event loop; the host serializes actions
per room. After each accepted change scripted players and slap timers are
rescheduled against the new state, then the room gets its engine events
and a fresh redacted snapshot. Outbound messages go through one queue per
connection, so a slow observer never holds up the room.
"""

import asyncio
import logging
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import WebSocket, WebSocketDisconnect

from ..bots.base import BotDecision
from ..constants import EVENT_ACTION_REJECTED, PHASE_SLAP_RACE
from ..errors import INTERNAL_ERROR, NOT_IN_ROOM, STALE_ACTION, GameError, InvariantViolation
from ..event_bus import ALL_EVENTS, GameEvent
from ..host import GameHost
from ..serialization import decode, encode, sanitize_state, serialize_event
from .events import (
    INVALID_EVENT, ActionEvent, AddBotEvent, CreateRoomEvent, JoinEvent, LeaveEvent,
    RequestStateEvent, ResetEvent, StartEvent, ToggleReadyEvent, UpdateRulesEvent,
    create_error_event, create_game_event, create_join_success_event, create_room_update_event,
    create_state_full_event, parse_inbound_event,
)

logger = logging.getLogger(__name__)

# Seconds a single send may take before the observer is dropped
SEND_TIMEOUT = 5.0
# Messages that may wait for one connection before it is dropped
OUTBOX_SIZE = 256


class ConnectionManager:
    """Manages WebSocket connections per room."""

    def __init__(self, on_drop: Optional[Callable[[str, str], None]] = None):
        self.room_connections: Dict[str, Dict[str, WebSocket]] = defaultdict(dict)
        self.connection_info: Dict[WebSocket, Tuple[str, str]] = {}
        self.outboxes: Dict[WebSocket, asyncio.Queue] = {}
        self.writers: Dict[WebSocket, asyncio.Task] = {}
        # Called with (room_id, player_id) when a seated connection is dropped
        self.on_drop = on_drop

    def open(self, websocket: WebSocket):
        """Start the writer task of an accepted socket."""
        outbox = asyncio.Queue(maxsize=OUTBOX_SIZE)
        self.outboxes[websocket] = outbox
        self.writers[websocket] = asyncio.create_task(self._write(websocket, outbox))

    def close(self, websocket: WebSocket):
        """Stop the socket's writer; anything still queued is discarded."""
        self.outboxes.pop(websocket, None)
        task = self.writers.pop(websocket, None)
        if task and task is not asyncio.current_task():
            task.cancel()

    def connect(self, websocket: WebSocket, room_id: str, player_id: str):
        """Attach an accepted socket to a player seat."""
        self.room_connections[room_id][player_id] = websocket
        self.connection_info[websocket] = (room_id, player_id)
        logger.info(f"Player {player_id} connected to room {room_id}")

    def disconnect(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        """Detach a socket from its seat. Returns (room_id, player_id) it belonged to."""
        room_id, player_id = self.connection_info.pop(websocket, (None, None))
        if room_id is None:
            return None, None

        connections = self.room_connections.get(room_id, {})
        if connections.get(player_id) is websocket:
            del connections[player_id]
        if not connections:
            self.room_connections.pop(room_id, None)

        logger.info(f"Player {player_id} disconnected from room {room_id}")
        return room_id, player_id

    def get_identity(self, websocket: WebSocket) -> Tuple[Optional[str], Optional[str]]:
        return self.connection_info.get(websocket, (None, None))

    def room_members(self, room_id: str) -> List[Tuple[str, WebSocket]]:
        return list(self.room_connections.get(room_id, {}).items())

    def send(self, websocket: WebSocket, payload: Dict[str, Any]) -> bool:
        """Queue a message without waiting for it to be written."""
        outbox = self.outboxes.get(websocket)
        if outbox is None:
            return False
        try:
            outbox.put_nowait(payload)
            return True
        except asyncio.QueueFull:
            logger.warning("Outbox full, dropping slow connection")
            self._drop(websocket)
            return False

    async def _write(self, websocket: WebSocket, outbox: asyncio.Queue):
        while True:
            payload = await outbox.get()
            try:
                await asyncio.wait_for(websocket.send_text(encode(payload).decode()), SEND_TIMEOUT)
            except Exception as e:
                logger.warning(f"Send failed: {e}")
                self._drop(websocket)
                return

    def _drop(self, websocket: WebSocket):
        self.close(websocket)
        room_id, player_id = self.disconnect(websocket)
        if room_id and self.on_drop:
            self.on_drop(room_id, player_id)


class GameWebSocketManager:
    def __init__(self, host: Optional[GameHost] = None):
        self.host = host or GameHost()
        self.connections = ConnectionManager(on_drop=self._on_connection_dropped)
        self.bot_tasks: Dict[str, asyncio.Task] = {}
        self.slap_timers: Dict[str, Tuple[float, asyncio.Task]] = {}
        self.pending_events: Dict[str, List[GameEvent]] = defaultdict(list)
        self._watched_rooms = set()

    async def handle_websocket(self, websocket: WebSocket):
        await websocket.accept()
        self.connections.open(websocket)
        logger.info("WebSocket connection accepted")

        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    event = parse_inbound_event(decode(raw))
                    await self.handle_event(websocket, event)
                except InvariantViolation as e:
                    logger.exception("Engine invariant broken")
                    self._send_error(websocket, e.code, e.message)
                except GameError as e:
                    self._send_error(websocket, e.code, e.message)
                except ValueError as e:
                    self._send_error(websocket, INVALID_EVENT, str(e))
                except Exception:
                    logger.exception("Error handling event")
                    self._send_error(websocket, INTERNAL_ERROR, "Internal server error")
        except WebSocketDisconnect:
            logger.info("WebSocket disconnected")
        finally:
            self.connections.close(websocket)
            room_id, player_id = self.connections.disconnect(websocket)
            if room_id:
                self._on_connection_dropped(room_id, player_id)

    def _on_connection_dropped(self, room_id: str, player_id: str):
        """A seated player's socket is gone: flag them, or close the room if it emptied."""
        if self.host.mark_disconnected(room_id, player_id) is None:
            self._forget_room(room_id)
            return
        self.broadcast_room(room_id)
        self.broadcast_state(room_id)

    def _forget_room(self, room_id: str):
        self._cancel_room_tasks(room_id)
        self.pending_events.pop(room_id, None)
        self._watched_rooms.discard(room_id)

    async def handle_event(self, websocket: WebSocket, event):
        """Handle an inbound event."""
        if isinstance(event, CreateRoomEvent):
            room = self.host.create_room(event.name, event.rules)
            self._join(websocket, room.id, room.host_id, is_host=True)
            return
        if isinstance(event, JoinEvent):
            member = self.host.join_room(event.room_id, event.name)
            self._join(websocket, event.room_id, member.id, is_host=False)
            return

        room_id, player_id = self.connections.get_identity(websocket)
        if room_id is None:
            raise GameError(NOT_IN_ROOM, "Join a room first")

        if isinstance(event, AddBotEvent):
            self.host.add_bot(room_id, player_id, event.difficulty)
            self.broadcast_room(room_id)
        elif isinstance(event, ToggleReadyEvent):
            self.host.toggle_ready(room_id, player_id)
            self.broadcast_room(room_id)
        elif isinstance(event, UpdateRulesEvent):
            self.host.update_rules(room_id, player_id, event.rules)
            self.broadcast_room(room_id)
        elif isinstance(event, StartEvent):
            self.host.start_game(room_id, player_id, event.seed)
            self._watch_room(room_id)
            self.broadcast_room(room_id)
            self.after_change(room_id)
        elif isinstance(event, ResetEvent):
            self.host.reset_game(room_id, player_id, event.seed)
            self.pending_events.pop(room_id, None)
            self.after_change(room_id)
        elif isinstance(event, LeaveEvent):
            self.connections.disconnect(websocket)
            room = self.host.leave_room(room_id, player_id)
            if room is None:
                self._forget_room(room_id)
            else:
                self.broadcast_room(room_id)
                self.broadcast_state(room_id)
        elif isinstance(event, RequestStateEvent):
            snapshot = self.host.snapshot_for(room_id, player_id)
            if snapshot is None:
                self.connections.send(websocket, create_room_update_event(self.host.room_summary(room_id)).model_dump())
            else:
                self.connections.send(websocket, create_state_full_event(snapshot).model_dump())
        elif isinstance(event, ActionEvent):
            result = self.host.submit_action(
                room_id, player_id, event.action.to_game_action(), event.expected_version
            )
            if result.success:
                self.after_change(room_id)
            else:
                self._send_error(websocket, result.error_code, result.error_message)
        else:
            raise ValueError(f"Unhandled event type: {type(event)}")

    def _join(self, websocket: WebSocket, room_id: str, player_id: str, is_host: bool):
        self.connections.connect(websocket, room_id, player_id)
        self.connections.send(
            websocket, create_join_success_event(player_id, room_id, is_host).model_dump()
        )
        self.broadcast_room(room_id)

    def _send_error(self, websocket: WebSocket, code: str, message: str):
        self.connections.send(websocket, create_error_event(code, message).model_dump())

    def _watch_room(self, room_id: str):
        """Collect the room's engine events for the next flush."""
        if room_id in self._watched_rooms:
            return
        room = self.host.get_room(room_id)

        def collect(event: GameEvent):
            if event.type != EVENT_ACTION_REJECTED:
                self.pending_events[room_id].append(event)

        room.event_bus.subscribe(ALL_EVENTS, collect)
        self._watched_rooms.add(room_id)

    # Fan-out

    def _fan_out(self, room_id: str, build):
        """Queue each connected player their own messages."""
        for player_id, websocket in self.connections.room_members(room_id):
            for payload in build(player_id):
                if not self.connections.send(websocket, payload):
                    break

    def broadcast_room(self, room_id: str):
        if room_id not in self.host.rooms:
            return
        payload = create_room_update_event(self.host.room_summary(room_id)).model_dump()
        self._fan_out(room_id, lambda player_id: [payload])

    def broadcast_state(self, room_id: str, events: Optional[List[GameEvent]] = None):
        room = self.host.rooms.get(room_id)
        if room is None or room.engine is None:
            return
        state = room.engine.state
        events = events or []

        def build(player_id: str):
            messages = [
                create_game_event(event.type, serialize_event(event, player_id)["payload"], event.timestamp).model_dump()
                for event in events
            ]
            messages.append(create_state_full_event(sanitize_state(state, player_id)).model_dump())
            return messages

        self._fan_out(room_id, build)

    def after_change(self, room_id: str):
        events = self.pending_events.pop(room_id, [])
        self.schedule_bots(room_id)
        self.arm_slap_timer(room_id)
        self.broadcast_state(room_id, events)

    # Scheduling

    def _cancel_room_tasks(self, room_id: str):
        task = self.bot_tasks.pop(room_id, None)
        if task:
            task.cancel()
        timer = self.slap_timers.pop(room_id, None)
        if timer:
            timer[1].cancel()

    def schedule_bots(self, room_id: str):
        """Replace the room's pending bot move with one decided on the current state."""
        task = self.bot_tasks.pop(room_id, None)
        if task:
            task.cancel()

        room = self.host.rooms.get(room_id)
        if room is None or room.engine is None:
            return

        decisions = self.host.bot_decisions(room_id)
        if not decisions:
            return

        decision = min(decisions, key=lambda d: d.delay)
        version = room.engine.state.version
        logger.debug(f"Room {room_id}: scheduling {decision} at version {version}")
        self.bot_tasks[room_id] = asyncio.create_task(self._run_bot(room_id, decision, version))

    async def _run_bot(self, room_id: str, decision: BotDecision, version: int):
        await asyncio.sleep(decision.delay)
        if self.bot_tasks.get(room_id) is asyncio.current_task():
            del self.bot_tasks[room_id]

        try:
            result = self.host.submit_action(
                room_id, decision.action.player_id, decision.action, expected_version=version
            )
        except InvariantViolation:
            logger.exception(f"Room {room_id}: engine invariant broken on bot move")
            return
        except GameError as e:
            logger.info(f"Room {room_id}: bot move dropped: {e}")
            return

        if result.success:
            self.after_change(room_id)
        elif result.error_code == STALE_ACTION:
            self.schedule_bots(room_id)
        else:
            logger.warning(f"Room {room_id}: bot {decision} rejected: {result.error_code}")

    def arm_slap_timer(self, room_id: str):
        """Make sure a running slap race is closed at its deadline."""
        room = self.host.rooms.get(room_id)
        engine = room.engine if room else None
        if engine is None or engine.state.phase != PHASE_SLAP_RACE:
            timer = self.slap_timers.pop(room_id, None)
            if timer:
                timer[1].cancel()
            return

        deadline = engine.state.pending_action.deadline
        current = self.slap_timers.get(room_id)
        if current and current[0] == deadline:
            return
        if current:
            current[1].cancel()

        delay = max(0.0, deadline - self.host.clock())
        self.slap_timers[room_id] = (deadline, asyncio.create_task(self._expire_slap(room_id, deadline, delay)))

    async def _expire_slap(self, room_id: str, deadline: float, delay: float):
        await asyncio.sleep(delay)
        current = self.slap_timers.get(room_id)
        if current and current[0] == deadline:
            del self.slap_timers[room_id]
        if self.host.expire_slap_race(room_id, deadline):
            logger.info(f"Room {room_id}: slap race closed at deadline")
            self.after_change(room_id)
