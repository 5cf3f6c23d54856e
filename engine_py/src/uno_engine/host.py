"""
Authoritative room host.

Owns one GameEngine per room, checks that actions come from the player
they claim to be, and keeps lobby membership and readiness. Actions for
a room are processed one at a time under that room's lock.
"""

import logging
import threading
import time
import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Callable, Dict, List, Optional, Union

from .bots.base import BotDecision
from .bots.policy import ScriptedOpponent
from .constants import (
    ACTION_SLAP, EVENT_ACTION_REJECTED, PHASE_GAME_OVER, PHASE_WAITING, PLAYER_HUMAN, PLAYER_SCRIPTED,
)
from .engine import EngineResult, GameEngine
from .errors import (
    GAME_IN_PROGRESS, GAME_NOT_STARTED, IDENTITY_MISMATCH, NAME_TAKEN, NOT_ENOUGH_PLAYERS,
    NOT_HOST, NOT_IN_ROOM, ROOM_FULL, ROOM_NOT_FOUND, GameError,
)
from .event_bus import EventBus, GameEvent
from .models import GameAction, GameState, RosterEntry
from .rules import EnabledRules, RoomConfig
from .serialization import sanitize_state

logger = logging.getLogger(__name__)

BOT_NAMES = ['Ada', 'Basil', 'Cleo', 'Dex', 'Echo', 'Fig', 'Gus', 'Hex']


@dataclass
class RoomMember:
    id: str
    name: str
    kind: str = PLAYER_HUMAN
    ready: bool = False
    connected: bool = True
    difficulty: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "kind": self.kind,
            "ready": self.ready,
            "connected": self.connected,
            "difficulty": self.difficulty,
        }


@dataclass
class Room:
    id: str
    host_id: str
    config: RoomConfig
    members: List[RoomMember] = field(default_factory=list)
    engine: Optional[GameEngine] = None
    # Shared by every game played in the room so subscribers survive a reset
    event_bus: EventBus = field(default_factory=EventBus)
    bots: Dict[str, ScriptedOpponent] = field(default_factory=dict)
    created_at: float = 0.0

    def get_member(self, player_id: str) -> Optional[RoomMember]:
        return next((m for m in self.members if m.id == player_id), None)

    @property
    def started(self) -> bool:
        return self.engine is not None

    @property
    def phase(self) -> str:
        return self.engine.state.phase if self.engine else PHASE_WAITING


def _field_name(model, key: str) -> Optional[str]:
    return next((name for name, info in model.model_fields.items() if key in (name, info.alias)), None)


def _merge_rules(config: RoomConfig, rules: Union[Dict[str, Any], RoomConfig]) -> RoomConfig:
    """Overlay a partial rules dict (wire or Python names) onto ``config``."""
    if isinstance(rules, RoomConfig):
        return rules

    data = config.model_dump()
    for key, value in rules.items():
        name = _field_name(RoomConfig, key)
        if name is None:
            raise ValueError(f"Unknown rule setting: {key}")
        if name != 'enabled_rules':
            data[name] = value
            continue
        for flag, enabled in value.items():
            flag_name = _field_name(EnabledRules, flag)
            if flag_name is None:
                raise ValueError(f"Unknown house rule: {flag}")
            data['enabled_rules'][flag_name] = enabled
    return RoomConfig.model_validate(data)


class GameHost:
    """All rooms of one server process."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self.rooms: Dict[str, Room] = {}
        # One lock per existing room; guarded by _registry_lock
        self.room_locks: Dict[str, threading.RLock] = {}
        self._registry_lock = threading.Lock()
        self.clock = clock

    def _new_id(self) -> str:
        return str(uuid.uuid4())[:8]

    def _lock(self, room_id: str) -> threading.RLock:
        lock = self.room_locks.get(room_id)
        if lock is None:
            raise GameError(ROOM_NOT_FOUND, f"Room {room_id} not found")
        return lock

    def _delete_room(self, room_id: str):
        with self._registry_lock:
            self.rooms.pop(room_id, None)
            self.room_locks.pop(room_id, None)
        logger.info(f"Room {room_id} deleted (no connected players)")

    def _settle_departure(self, room: Room, player_id: str) -> Optional[Room]:
        """Delete the room once no connected human is left, else pass on hosting."""
        humans = [m for m in room.members if m.kind == PLAYER_HUMAN and m.connected]
        if not humans:
            self._delete_room(room.id)
            return None

        if room.host_id == player_id:
            room.host_id = humans[0].id
            logger.info(f"Room {room.id}: host passed to {humans[0].name}")
        return room

    def get_room(self, room_id: str) -> Room:
        room = self.rooms.get(room_id)
        if not room:
            raise GameError(ROOM_NOT_FOUND, f"Room {room_id} not found")
        return room

    def _require_member(self, room: Room, player_id: str) -> RoomMember:
        member = room.get_member(player_id)
        if not member:
            raise GameError(NOT_IN_ROOM, "You are not in this room")
        return member

    def _require_host(self, room: Room, player_id: str):
        self._require_member(room, player_id)
        if room.host_id != player_id:
            raise GameError(NOT_HOST, "Only the host can do that")

    def _require_engine(self, room: Room) -> GameEngine:
        if room.engine is None:
            raise GameError(GAME_NOT_STARTED, "The game has not started")
        return room.engine

    # Lobby

    def create_room(
        self,
        host_name: str,
        rules: Optional[Union[Dict[str, Any], RoomConfig]] = None,
        room_id: Optional[str] = None
    ) -> Room:
        """Create a room; the creator becomes its host."""
        room_id = room_id or self._new_id().upper()
        with self._registry_lock:
            if room_id in self.rooms:
                raise GameError(GAME_IN_PROGRESS, f"Room {room_id} already exists")

            config = _merge_rules(RoomConfig(), rules or {})
            host = RoomMember(id=self._new_id(), name=host_name)
            room = Room(
                id=room_id,
                host_id=host.id,
                config=config,
                members=[host],
                created_at=self.clock()
            )
            self.room_locks[room_id] = threading.RLock()
            self.rooms[room_id] = room
            logger.info(f"Room {room_id} created by {host_name} ({host.id})")
            return room

    def join_room(
        self,
        room_id: str,
        name: str,
        kind: str = PLAYER_HUMAN,
        difficulty: Optional[str] = None
    ) -> RoomMember:
        with self._lock(room_id):
            room = self.get_room(room_id)
            if room.started:
                raise GameError(GAME_IN_PROGRESS, "Game already in progress")
            if len(room.members) >= room.config.max_players:
                raise GameError(ROOM_FULL, "Room is full")
            if any(m.name == name for m in room.members):
                raise GameError(NAME_TAKEN, f"Name {name} is already taken")

            member = RoomMember(id=self._new_id(), name=name, kind=kind)
            if kind == PLAYER_SCRIPTED:
                member.ready = True
                member.difficulty = difficulty or room.config.bot_difficulty
            room.members.append(member)
            logger.info(f"{name} ({member.id}) joined room {room_id}")
            return member

    def add_bot(self, room_id: str, requester_id: str, difficulty: Optional[str] = None) -> RoomMember:
        """Host adds a scripted opponent to the lobby."""
        with self._lock(room_id):
            room = self.get_room(room_id)
            self._require_host(room, requester_id)
            taken = {m.name for m in room.members}
            name = next((n for n in BOT_NAMES if n not in taken), f"Bot {len(room.members) + 1}")
            return self.join_room(room_id, name, PLAYER_SCRIPTED, difficulty)

    def leave_room(self, room_id: str, player_id: str) -> Optional[Room]:
        """
        Remove a member, or mark them disconnected once a game is running.

        Returns:
            The room, or None when it was deleted because no humans remain
        """
        with self._lock(room_id):
            room = self.get_room(room_id)
            member = self._require_member(room, player_id)

            if room.started:
                self._set_connected(room, member, False)
            else:
                room.members.remove(member)
            return self._settle_departure(room, player_id)

    def toggle_ready(self, room_id: str, player_id: str) -> bool:
        with self._lock(room_id):
            room = self.get_room(room_id)
            member = self._require_member(room, player_id)
            member.ready = not member.ready
            return member.ready

    def update_rules(self, room_id: str, player_id: str, rules: Dict[str, Any]) -> RoomConfig:
        with self._lock(room_id):
            room = self.get_room(room_id)
            self._require_host(room, player_id)
            if room.started:
                raise GameError(GAME_IN_PROGRESS, "Rules are fixed once the game starts")
            room.config = _merge_rules(room.config, rules)
            return room.config

    def start_game(self, room_id: str, player_id: str, seed: Optional[int] = None) -> GameState:
        with self._lock(room_id):
            room = self.get_room(room_id)
            self._require_host(room, player_id)
            if room.started:
                raise GameError(GAME_IN_PROGRESS, "Game already in progress")
            if len(room.members) < room.config.min_players:
                raise GameError(NOT_ENOUGH_PLAYERS, f"Need at least {room.config.min_players} players")

            roster = [RosterEntry(id=m.id, name=m.name, kind=m.kind) for m in room.members]
            room.engine = GameEngine(
                room.config,
                roster,
                seed=seed,
                game_id=room.id,
                event_bus=room.event_bus,
                clock=self.clock
            )
            room.bots = {
                m.id: ScriptedOpponent(m.id, m.difficulty or room.config.bot_difficulty)
                for m in room.members if m.kind == PLAYER_SCRIPTED
            }
            logger.info(f"Game started in room {room_id} with {len(roster)} players")
            return room.engine.state

    def reset_game(self, room_id: str, player_id: str, seed: Optional[int] = None) -> GameState:
        """Host re-deals with the same rules and players."""
        with self._lock(room_id):
            room = self.get_room(room_id)
            self._require_host(room, player_id)
            engine = self._require_engine(room)
            engine.reset(seed)
            for member in room.members:
                if not member.connected:
                    engine.set_connected(member.id, False)
            return engine.state

    # Play

    def submit_action(
        self,
        room_id: str,
        claimed_player_id: str,
        action: GameAction,
        expected_version: Optional[int] = None
    ) -> EngineResult:
        """
        Process an action sent on behalf of ``claimed_player_id``.

        Rule violations come back as an unsuccessful EngineResult; room
        problems raise GameError.
        """
        with self._lock(room_id):
            room = self.get_room(room_id)
            member = self._require_member(room, claimed_player_id)
            engine = self._require_engine(room)

            if action.player_id != claimed_player_id:
                logger.warning(
                    f"Room {room_id}: {claimed_player_id} tried to act as {action.player_id}"
                )
                message = "Actions can only be sent for yourself"
                event = GameEvent(type=EVENT_ACTION_REJECTED, payload={
                    'action': action.type,
                    'player_id': claimed_player_id,
                    'reason': IDENTITY_MISMATCH,
                    'message': message,
                }, timestamp=self.clock())
                return EngineResult(
                    success=False,
                    state=engine.state,
                    events=[event],
                    error_code=IDENTITY_MISMATCH,
                    error_message=message
                )

            if action.type == ACTION_SLAP and member.kind == PLAYER_HUMAN:
                # Slap times from clients are not trusted
                action = replace(action, timestamp=self.clock())

            result = engine.dispatch(action, expected_version)
            if not result.success:
                logger.info(
                    f"Room {room_id}: rejected {action.type} from {claimed_player_id}: "
                    f"{result.error_code} {result.error_message}"
                )
            return result

    def expire_slap_race(self, room_id: str, deadline: Optional[float] = None) -> bool:
        lock = self.room_locks.get(room_id)
        if lock is None:
            return False
        with lock:
            room = self.rooms.get(room_id)
            if not room or not room.engine:
                return False
            return room.engine.expire_slap_race(deadline)

    def bot_decisions(self, room_id: str, now: Optional[float] = None) -> List[BotDecision]:
        """What each scripted player in the room wants to do next."""
        with self._lock(room_id):
            room = self.get_room(room_id)
            if not room.engine or room.engine.state.phase == PHASE_GAME_OVER:
                return []
            state = room.engine.state
            now = self.clock() if now is None else now
            decisions = []
            for player in state.players:
                bot = room.bots.get(player.id)
                decision = bot.choose_action(state, now) if bot else None
                if decision:
                    decisions.append(decision)
            return decisions

    # Liveness

    def _set_connected(self, room: Room, member: RoomMember, connected: bool):
        member.connected = connected
        if room.engine:
            room.engine.set_connected(member.id, connected)

    def mark_disconnected(self, room_id: str, player_id: str) -> Optional[Room]:
        """
        Flip a member's liveness flag off; turns are not paused.

        Returns:
            The room, or None when it is gone because no connected human remains
        """
        lock = self.room_locks.get(room_id)
        if lock is None:
            return None
        with lock:
            room = self.rooms.get(room_id)
            member = room.get_member(player_id) if room else None
            if not member:
                return room
            self._set_connected(room, member, False)
            logger.info(f"Room {room_id}: {member.name} disconnected")
            return self._settle_departure(room, player_id)

    def mark_connected(self, room_id: str, player_id: str):
        with self._lock(room_id):
            room = self.get_room(room_id)
            member = self._require_member(room, player_id)
            self._set_connected(room, member, True)

    # Views

    def snapshot_for(self, room_id: str, viewer_id: Optional[str]) -> Optional[Dict[str, Any]]:
        """Redacted state for one viewer, None before the game starts."""
        with self._lock(room_id):
            room = self.get_room(room_id)
            if not room.engine:
                return None
            return sanitize_state(room.engine.state, viewer_id)

    def room_summary(self, room_id: str) -> Dict[str, Any]:
        with self._lock(room_id):
            room = self.get_room(room_id)
            return {
                "id": room.id,
                "host_id": room.host_id,
                "phase": room.phase,
                "started": room.started,
                "members": [m.to_dict() for m in room.members],
                "rules": room.config.to_wire(),
            }

    def list_rooms(self) -> List[Dict[str, Any]]:
        """Get public information about rooms for listings."""
        return [
            {
                "id": room.id,
                "phase": room.phase,
                "player_count": len(room.members),
                "max_players": room.config.max_players,
            }
            for room in list(self.rooms.values())
        ]
