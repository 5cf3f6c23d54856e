"""
WebSocket event models and validation.
"""

import time
from enum import Enum
from typing import Any, Dict, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..constants import CUSTOM_RULE_TYPES
from ..models import GameAction


class EventType(str, Enum):
    """Inbound event types."""
    CREATE_ROOM = "create_room"
    JOIN = "join"
    ADD_BOT = "add_bot"
    TOGGLE_READY = "toggle_ready"
    UPDATE_RULES = "update_rules"
    START = "start"
    RESET = "reset"
    LEAVE = "leave"
    REQUEST_STATE = "request_state"
    ACTION = "action"


class OutboundEventType(str, Enum):
    """Outbound event types."""
    JOIN_SUCCESS = "join_success"
    ROOM_UPDATE = "room_update"
    STATE_FULL = "state_full"
    GAME_EVENT = "game_event"
    ERROR = "error"


INVALID_EVENT = "INVALID_EVENT"


# Inbound event models
class BaseEvent(BaseModel):
    """Base event model."""
    type: EventType


class CreateRoomEvent(BaseEvent):
    """Create a room and become its host."""
    type: EventType = EventType.CREATE_ROOM
    name: str = Field(..., min_length=1, max_length=30)
    rules: Optional[Dict[str, Any]] = None


class JoinEvent(BaseEvent):
    """Join room event."""
    type: EventType = EventType.JOIN
    room_id: str = Field(..., min_length=1, max_length=50)
    name: str = Field(..., min_length=1, max_length=30)


class AddBotEvent(BaseEvent):
    """Host adds a scripted opponent."""
    type: EventType = EventType.ADD_BOT
    difficulty: Optional[str] = None

    @field_validator('difficulty')
    @classmethod
    def validate_difficulty(cls, v):
        if v is not None and v not in ('low', 'medium', 'high', 'easy', 'hard'):
            raise ValueError(f'Unknown difficulty: {v}')
        return v


class ToggleReadyEvent(BaseEvent):
    type: EventType = EventType.TOGGLE_READY


class UpdateRulesEvent(BaseEvent):
    type: EventType = EventType.UPDATE_RULES
    rules: Dict[str, Any]


class StartEvent(BaseEvent):
    """Start game event."""
    type: EventType = EventType.START
    seed: Optional[int] = None


class ResetEvent(BaseEvent):
    """Re-deal with the same players and rules."""
    type: EventType = EventType.RESET
    seed: Optional[int] = None


class LeaveEvent(BaseEvent):
    type: EventType = EventType.LEAVE


class RequestStateEvent(BaseEvent):
    """Request full state event."""
    type: EventType = EventType.REQUEST_STATE


class CustomRulePayload(BaseModel):
    text: str = Field(..., max_length=200)
    type: str

    @field_validator('type')
    @classmethod
    def validate_type(cls, v):
        if v not in CUSTOM_RULE_TYPES:
            raise ValueError(f'Rule type must be one of {CUSTOM_RULE_TYPES}')
        return v


class ActionPayload(BaseModel):
    """A game action as sent by clients, camelCase on the wire."""

    model_config = ConfigDict(populate_by_name=True)

    type: str
    player_id: str = Field(..., alias="playerId")
    card_id: Optional[str] = Field(default=None, alias="cardId")
    target_player_id: Optional[str] = Field(default=None, alias="targetPlayerId")
    chosen_color: Optional[str] = Field(default=None, alias="chosenColor")
    custom_rule: Optional[CustomRulePayload] = Field(default=None, alias="customRule")
    timestamp: Optional[float] = None

    def to_game_action(self) -> GameAction:
        return GameAction(
            type=self.type,
            player_id=self.player_id,
            card_id=self.card_id,
            target_player_id=self.target_player_id,
            chosen_color=self.chosen_color,
            custom_rule=self.custom_rule.model_dump() if self.custom_rule else None,
            timestamp=self.timestamp
        )


class ActionEvent(BaseEvent):
    """A game action."""

    model_config = ConfigDict(populate_by_name=True)

    type: EventType = EventType.ACTION
    action: ActionPayload
    expected_version: Optional[int] = Field(default=None, alias="expectedVersion")


# Union type for all inbound events
InboundEvent = Union[
    CreateRoomEvent,
    JoinEvent,
    AddBotEvent,
    ToggleReadyEvent,
    UpdateRulesEvent,
    StartEvent,
    ResetEvent,
    LeaveEvent,
    RequestStateEvent,
    ActionEvent
]


# Outbound event models
class JoinSuccessEvent(BaseModel):
    """Join success confirmation event."""
    type: OutboundEventType = OutboundEventType.JOIN_SUCCESS
    player_id: str
    room_id: str
    is_host: bool
    timestamp: float


class RoomUpdateEvent(BaseModel):
    """Lobby membership, readiness and rules."""
    type: OutboundEventType = OutboundEventType.ROOM_UPDATE
    room: Dict[str, Any]
    timestamp: float


class StateFullEvent(BaseModel):
    """Full state event."""
    type: OutboundEventType = OutboundEventType.STATE_FULL
    state: Dict[str, Any]
    timestamp: float


class GameEventMessage(BaseModel):
    """One engine event as seen by the receiving player."""
    type: OutboundEventType = OutboundEventType.GAME_EVENT
    event_type: str
    data: Dict[str, Any]
    timestamp: float


class ErrorEvent(BaseModel):
    """Error event."""
    type: OutboundEventType = OutboundEventType.ERROR
    code: str
    message: str
    timestamp: float


OutboundEvent = Union[
    JoinSuccessEvent,
    RoomUpdateEvent,
    StateFullEvent,
    GameEventMessage,
    ErrorEvent
]


EVENT_MAP = {
    EventType.CREATE_ROOM: CreateRoomEvent,
    EventType.JOIN: JoinEvent,
    EventType.ADD_BOT: AddBotEvent,
    EventType.TOGGLE_READY: ToggleReadyEvent,
    EventType.UPDATE_RULES: UpdateRulesEvent,
    EventType.START: StartEvent,
    EventType.RESET: ResetEvent,
    EventType.LEAVE: LeaveEvent,
    EventType.REQUEST_STATE: RequestStateEvent,
    EventType.ACTION: ActionEvent,
}


def parse_inbound_event(data: Dict[str, Any]) -> InboundEvent:
    """
    Parse raw event data into appropriate event model.

    Args:
        data: Raw event data from WebSocket

    Returns:
        Parsed event model

    Raises:
        ValueError: If event type is invalid or data is malformed
    """
    if not isinstance(data, dict):
        raise ValueError("Event must be a JSON object")

    event_type = data.get("type")
    if not event_type:
        raise ValueError("Missing event type")

    try:
        event_type = EventType(event_type)
    except ValueError:
        raise ValueError(f"Invalid event type: {event_type}")

    try:
        return EVENT_MAP[event_type].model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid event data: {e}")


def create_error_event(code: str, message: str) -> ErrorEvent:
    """Create an error event."""
    return ErrorEvent(code=code, message=message, timestamp=time.time())


def create_join_success_event(player_id: str, room_id: str, is_host: bool) -> JoinSuccessEvent:
    """Create a join success event."""
    return JoinSuccessEvent(player_id=player_id, room_id=room_id, is_host=is_host, timestamp=time.time())


def create_room_update_event(room: Dict[str, Any]) -> RoomUpdateEvent:
    return RoomUpdateEvent(room=room, timestamp=time.time())


def create_state_full_event(state: Dict[str, Any]) -> StateFullEvent:
    """Create a full state event."""
    return StateFullEvent(state=state, timestamp=time.time())


def create_game_event(event_type: str, data: Dict[str, Any], timestamp: Optional[float] = None) -> GameEventMessage:
    """Create an engine event notification."""
    return GameEventMessage(
        event_type=event_type,
        data=data,
        timestamp=time.time() if timestamp is None else timestamp
    )
