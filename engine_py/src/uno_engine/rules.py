"""
House-rule configuration for a session.
"""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .constants import INITIAL_HAND_SIZE, MAX_PLAYERS, MIN_PLAYERS, SLAP_WINDOW_SECONDS


class EnabledRules(BaseModel):
    """Which optional house rules are switched on. Wire names are camelCase."""

    model_config = ConfigDict(populate_by_name=True)

    silence: bool = Field(
        default=True,
        description="Sevens toggle silence mode"
    )
    custom_rule: bool = Field(
        default=True,
        alias="customRule",
        description="Zeros let the player invent a rule"
    )
    stack_draw: bool = Field(
        default=True,
        alias="stackDraw",
        description="Draw cards of the same kind can be stacked onto a pending penalty"
    )
    stack_skip: bool = Field(
        default=True,
        alias="stackSkip",
        description="Accepted for compatibility, has no effect on play"
    )
    slap: bool = Field(
        default=True,
        description="Fives start a slap race"
    )
    jump_in: bool = Field(
        default=True,
        alias="jumpIn",
        description="Exact colour and number matches may be played out of turn"
    )
    uno_call: bool = Field(
        default=True,
        alias="unoCall",
        description="Players must declare UNO and can be caught"
    )
    offer_card: bool = Field(
        default=True,
        alias="offerCard",
        description="Players may ask each other for cards"
    )


class RoomConfig(BaseModel):
    """Configuration consumed when a session is created."""

    model_config = ConfigDict(populate_by_name=True)

    enabled_rules: EnabledRules = Field(
        default_factory=EnabledRules,
        alias="enabledRules",
        description="Optional house rules"
    )
    min_players: int = Field(
        default=MIN_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        alias="minPlayers",
        description="Minimum number of players required to start"
    )
    max_players: int = Field(
        default=MAX_PLAYERS,
        ge=MIN_PLAYERS,
        le=MAX_PLAYERS,
        alias="maxPlayers",
        description="Maximum number of players allowed"
    )
    hand_size: int = Field(
        default=INITIAL_HAND_SIZE,
        ge=1,
        le=10,
        alias="handSize",
        description="Cards dealt to each player"
    )
    slap_window_seconds: float = Field(
        default=SLAP_WINDOW_SECONDS,
        gt=0,
        le=30,
        alias="slapWindowSeconds",
        description="How long a slap race stays open"
    )
    wild_color_prompt: bool = Field(
        default=False,
        alias="wildColorPrompt",
        description="A wild played without a colour opens colour selection instead of being rejected"
    )
    bot_difficulty: Literal['low', 'medium', 'high'] = Field(
        default='medium',
        alias="botDifficulty",
        description="Default tier for scripted opponents"
    )

    @field_validator('max_players')
    @classmethod
    def validate_max_players(cls, v, info):
        """Validate maximum players doesn't fall below minimum."""
        min_players = info.data.get('min_players', MIN_PLAYERS)
        if v < min_players:
            raise ValueError(f'max_players ({v}) must be >= min_players ({min_players})')
        return v

    def validate_player_count(self, player_count: int) -> bool:
        """Check if a player count is valid for this configuration."""
        return self.min_players <= player_count <= self.max_players

    def is_enabled(self, rule: str) -> bool:
        return bool(getattr(self.enabled_rules, rule))

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True)


# Default configuration instance
default_rules = RoomConfig()


def create_rules(**overrides) -> RoomConfig:
    """Create a RoomConfig with optional overrides.

    Rule flags (``stack_draw=False``) may be passed directly alongside
    top-level settings (``hand_size=5``).
    """
    config_dict = default_rules.model_dump()
    rule_names = set(EnabledRules.model_fields)
    for key, value in overrides.items():
        if key in rule_names:
            config_dict['enabled_rules'][key] = value
        else:
            config_dict[key] = value
    return RoomConfig(**config_dict)
