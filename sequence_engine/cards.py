"""
Card and deck utilities for Sequence.

Two standard 52-card decks are used (104 cards, no physical jokers). Jacks are
tagged by suit colour: red jacks are two-eyed (wild placement), black jacks are
one-eyed (chip removal).
"""
from __future__ import annotations

import random
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import EngineError, ErrorCode
from .utils.seeding import new_seed

RANKS: List[str] = ["A", "2", "3", "4", "5", "6", "7", "8", "9", "10", "J", "Q", "K"]

DECK_COPIES = 2
DECK_SIZE = 52 * DECK_COPIES


class Suit(str, Enum):
    HEARTS = "hearts"
    DIAMONDS = "diamonds"
    CLUBS = "clubs"
    SPADES = "spades"


SUITS: List[Suit] = [Suit.HEARTS, Suit.DIAMONDS, Suit.CLUBS, Suit.SPADES]
RED_SUITS = (Suit.HEARTS, Suit.DIAMONDS)


class JackType(str, Enum):
    TWO_EYED = "two-eyed"   # wild
    ONE_EYED = "one-eyed"   # removal


# Cards per player keyed by player count; other counts fall back to 6.
HAND_SIZE_BY_PLAYERS: Dict[int, int] = {
    2: 7,
    3: 6, 4: 6,
    6: 5,
    8: 4, 9: 4,
    10: 3, 11: 3, 12: 3,
}
DEFAULT_HAND_SIZE = 6


def jack_type_for(suit: Suit, rank: str) -> Optional[JackType]:
    if rank != "J":
        return None
    return JackType.TWO_EYED if suit in RED_SUITS else JackType.ONE_EYED


@dataclass(frozen=True)
class Card:
    id: str
    suit: Suit
    rank: str
    is_joker: bool = False
    jack_type: Optional[JackType] = None

    @classmethod
    def make(cls, deck_index: int, suit: Suit, rank: str) -> "Card":
        suit = Suit(suit)
        return cls(
            id=f"card-{deck_index}-{suit.value}-{rank}",
            suit=suit,
            rank=rank,
            jack_type=jack_type_for(suit, rank),
        )

    @classmethod
    def from_id(cls, card_id: str) -> "Card":
        """Rebuild a card from its id, e.g. ``card-1-spades-10``."""
        parts = str(card_id).split("-")
        if len(parts) != 4 or parts[0] != "card":
            raise EngineError(ErrorCode.ERR_UNKNOWN_CARD, details={"card": card_id})
        _, deck_index, suit, rank = parts
        if deck_index not in {str(i) for i in range(DECK_COPIES)} or rank not in RANKS:
            raise EngineError(ErrorCode.ERR_UNKNOWN_CARD, details={"card": card_id})
        try:
            suit_enum = Suit(suit)
        except ValueError:
            raise EngineError(ErrorCode.ERR_UNKNOWN_CARD, details={"card": card_id})
        return cls.make(int(deck_index), suit_enum, rank)

    @property
    def key(self) -> Tuple[Suit, str]:
        return (self.suit, self.rank)

    @property
    def label(self) -> str:
        return f"{self.rank}{self.suit.value[0].upper()}"

    def matches(self, other: Optional["Card"]) -> bool:
        return other is not None and self.suit == other.suit and self.rank == other.rank

    def to_dict(self) -> Dict[str, object]:
        out: Dict[str, object] = {
            "id": self.id,
            "suit": self.suit.value,
            "rank": self.rank,
            "isJoker": self.is_joker,
        }
        if self.jack_type is not None:
            out["jackType"] = self.jack_type.value
        return out


def is_two_eyed_jack(card: Optional[Card]) -> bool:
    return card is not None and card.jack_type == JackType.TWO_EYED


def is_one_eyed_jack(card: Optional[Card]) -> bool:
    return card is not None and card.jack_type == JackType.ONE_EYED


def is_jack(card: Optional[Card]) -> bool:
    return card is not None and card.jack_type is not None


def board_card_keys() -> List[Tuple[Suit, str]]:
    """The 48 (suit, rank) pairs printed on the board: every non-jack card."""
    return [(suit, rank) for suit in SUITS for rank in RANKS if rank != "J"]


def generate_deck() -> List[Card]:
    """Two concatenated standard decks, 104 cards with unique ids."""
    return [Card.make(deck_index, suit, rank)
            for deck_index in range(DECK_COPIES)
            for suit in SUITS
            for rank in RANKS]


def shuffle_deck(deck: Sequence[Card], seed: Optional[int] = None) -> List[Card]:
    """Return a shuffled copy of the deck; the input is left untouched."""
    rng = random.Random(new_seed() if seed is None else seed)
    shuffled = list(deck)
    rng.shuffle(shuffled)
    return shuffled


def hand_size_for(player_count: int) -> int:
    return HAND_SIZE_BY_PLAYERS.get(int(player_count), DEFAULT_HAND_SIZE)


def deal_cards(deck: Sequence[Card], player_count: int) -> Tuple[List[List[Card]], List[Card]]:
    """Deal round-robin from the top of the deck.

    Returns (hands, remaining_deck). The top of the deck is index 0, matching
    the order cards are drawn later on.
    """
    if player_count < 1:
        raise EngineError(ErrorCode.ERR_INVALID_PLAYER_COUNT, details={"playerCount": player_count})
    per_player = hand_size_for(player_count)
    needed = per_player * player_count
    if needed > len(deck):
        raise EngineError(ErrorCode.ERR_INVALID_PLAYER_COUNT,
                          message="Deck exhausted during initial deal",
                          details={"playerCount": player_count, "deck": len(deck)})
    hands: List[List[Card]] = [[] for _ in range(player_count)]
    for idx in range(needed):
        hands[idx % player_count].append(deck[idx])
    return hands, list(deck[needed:])
