"""
Deck construction, shuffling, drawing and dealing.
"""

import random
from collections import Counter
from typing import List, Optional, Tuple

from .constants import ACTION_VALUES, COLORS, NUMBERS, WILD, WILD_COPIES, WILD_VALUES
from .errors import InsufficientCards
from .models import Card, GameState


def _card(color: str, value, copy: int) -> Card:
    return Card(id=f"{color}-{value}-{copy}", color=color, value=value)


def build_deck() -> List[Card]:
    """
    Build the full 108-card deck.

    Per colour: one 0, two each of 1-9 and two each of skip, reverse and
    draw-two. Plus four wilds and four wild-draw-fours.
    """
    deck = []

    for color in COLORS:
        deck.append(_card(color, 0, 1))
        for number in NUMBERS[1:]:
            deck.append(_card(color, number, 1))
            deck.append(_card(color, number, 2))
        for action in ACTION_VALUES:
            deck.append(_card(color, action, 1))
            deck.append(_card(color, action, 2))

    for copy in range(1, WILD_COPIES + 1):
        for value in WILD_VALUES:
            deck.append(_card(WILD, value, copy))

    return deck


def shuffle_deck(deck: List[Card], seed=None, rng: Optional[random.Random] = None) -> List[Card]:
    """
    Shuffle a deck, deterministically if a seed or generator is provided.

    Args:
        deck: Cards to shuffle
        seed: Optional seed for deterministic shuffling
        rng: Optional generator to draw randomness from (wins over seed)

    Returns:
        Shuffled copy of the deck, the input is left untouched
    """
    deck_copy = list(deck)

    if rng is None:
        rng = random.Random(seed) if seed is not None else random.Random()
    # random.shuffle is Fisher-Yates
    rng.shuffle(deck_copy)

    return deck_copy


def reshuffle_rng(seed: int, reshuffle_count: int) -> random.Random:
    """Generator for the n-th reshuffle of a game, reproducible from the game seed."""
    return random.Random(f"{seed}:{reshuffle_count}")


def draw_cards(deck: List[Card], count: int) -> Tuple[List[Card], List[Card]]:
    """
    Take the first ``count`` cards.

    Returns:
        (drawn, remaining)

    Raises:
        InsufficientCards: if the deck holds fewer than ``count`` cards
    """
    if count > len(deck):
        raise InsufficientCards(count, len(deck))
    return list(deck[:count]), list(deck[count:])


def deal_hands(deck: List[Card], player_count: int, hand_size: int) -> Tuple[List[List[Card]], List[Card]]:
    """
    Deal ``hand_size`` cards to each of ``player_count`` players.

    Returns:
        (hands in seat order, remaining deck)
    """
    hands = []
    remaining = deck
    for _ in range(player_count):
        hand, remaining = draw_cards(remaining, hand_size)
        hands.append(hand)
    return hands, remaining


def pick_starting_card(deck: List[Card]) -> Tuple[Card, List[Card]]:
    """
    Reveal the first non-wild numeral as the opening discard.

    Falls back to the head of the deck if no numeral exists.
    """
    index = next(
        (i for i, card in enumerate(deck) if not card.is_wild and card.is_number),
        0
    )
    card = deck[index]
    return card, deck[:index] + deck[index + 1:]


def reshuffle_discard(
    draw_pile: List[Card],
    discard_pile: List[Card],
    rng: random.Random
) -> Tuple[List[Card], List[Card]]:
    """
    Rebuild the draw pile from the discard pile, keeping its top card.

    The remaining draw pile and everything under the discard top are
    shuffled together; the top card stays as a one-card discard pile.
    """
    if not discard_pile:
        return list(draw_pile), []
    top_card = discard_pile[-1]
    new_draw = shuffle_deck(list(draw_pile) + list(discard_pile[:-1]), rng=rng)
    return new_draw, [top_card]


def all_cards(state: GameState) -> List[Card]:
    """Every card the state knows about, wherever it sits."""
    cards = list(state.draw_pile) + list(state.discard_pile)
    for player in state.players:
        cards.extend(player.hand)
    return cards


def validate_deck_integrity(state: GameState) -> bool:
    """
    Validate that all cards are accounted for and no duplicates exist.

    Args:
        state: Game state to validate

    Returns:
        True if draw pile, discard pile and hands partition the full deck
    """
    cards = all_cards(state)
    expected = build_deck()

    ids = [card.id for card in cards]
    return (
        len(ids) == len(set(ids)) and
        set(ids) == {card.id for card in expected} and
        Counter(cards) == Counter(expected)
    )


def composition(cards: List[Card]) -> Counter:
    """Multiset of (colour, value) pairs, ignoring identities."""
    return Counter((card.color, card.value) for card in cards)
