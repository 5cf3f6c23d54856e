"""
Pure card predicates shared by the engine, the scripted opponents and any UI.

Nothing here looks at game state beyond the cards and colour passed in.
"""

from typing import Optional

from .constants import DRAW_AMOUNTS, REVERSE, SKIP, WILD
from .models import Card


def effective_color(top_card: Card, chosen_color: Optional[str] = None) -> str:
    """
    Colour used for legality checks.

    The pile top's colour, or the chosen colour when the top is a wild.
    A wild top without a chosen colour stays colourless.
    """
    if top_card.color == WILD and chosen_color:
        return chosen_color
    return top_card.color


def is_playable(card: Card, top_card: Card, current_color: str) -> bool:
    """Whether ``card`` may be played onto ``top_card`` in turn."""
    # Wild cards are always playable
    if card.color == WILD:
        return True

    if card.color == current_color:
        return True

    # Rank or action kind match; a coloured card never carries a wild value
    return card.value == top_card.value


def is_exact_jump_in_match(card: Card, top_card: Card) -> bool:
    """Same colour and same numeral. Action and wild cards never qualify."""
    return (
        card.color == top_card.color and
        card.value == top_card.value and
        card.is_number
    )


def is_draw_card(card: Card) -> bool:
    return card.value in DRAW_AMOUNTS


def is_skip_card(card: Card) -> bool:
    return card.value == SKIP


def is_reverse_card(card: Card) -> bool:
    return card.value == REVERSE


def get_draw_amount(card: Card) -> int:
    return DRAW_AMOUNTS.get(card.value, 0)


def can_counter_stack(card: Card, stacked_value: str) -> bool:
    """A stacked penalty can only be passed on with the same draw kind."""
    return card.value == stacked_value


def card_display_name(card: Card) -> str:
    names = {'skip': 'Skip', 'reverse': 'Reverse', 'draw2': '+2', 'wild': 'Wild', 'wild_draw4': 'Wild +4'}
    value_name = str(card.value) if card.is_number else names.get(card.value, str(card.value))
    if card.color == WILD:
        return value_name
    return f"{card.color.capitalize()} {value_name}"
