# sequence_engine/board_layout.py
"""
Builds the 10x10 card layout for a room.

Each non-corner cell is bound to one card; the four corners are free spaces.
Every non-jack (suit, rank) pair is printed exactly twice (48 pairs x 2 = 96
cells). The layout is generated once per room and shared verbatim with every
participant, so it is immutable after construction.
"""

from __future__ import annotations

import logging
import random
from collections import Counter
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple, Union

from .cards import Card, Suit, board_card_keys
from .errors import EngineError, ErrorCode
from .utils.seeding import new_seed

__all__ = [
    "BOARD_SIZE",
    "CORNERS",
    "BoardLayout",
    "create_board_layout",
    "fallback_layout",
    "in_bounds",
    "validate_grid",
]

logger = logging.getLogger(__name__)

BOARD_SIZE = 10
CORNERS: Tuple[Tuple[int, int], ...] = ((0, 0), (0, 9), (9, 0), (9, 9))

Position = Tuple[int, int]
Grid = Sequence[Sequence[Optional[Card]]]


def in_bounds(r: int, c: int) -> bool:
    return 0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE


def playable_cells() -> List[Position]:
    return [(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE) if (r, c) not in CORNERS]


def _board_card(r: int, c: int, suit: Suit, rank: str) -> Card:
    return Card(id=f"board-{r}-{c}", suit=suit, rank=rank)


class BoardLayout:
    """Read-only mapping (row, col) -> bound Card, or None for a free corner."""

    def __init__(self, grid: Grid):
        validate_grid(grid)
        self._grid: Tuple[Tuple[Optional[Card], ...], ...] = tuple(tuple(row) for row in grid)
        positions: Dict[Tuple[Suit, str], List[Position]] = {}
        for r, row in enumerate(self._grid):
            for c, card in enumerate(row):
                if card is not None:
                    positions.setdefault(card.key, []).append((r, c))
        self._positions = {k: tuple(v) for k, v in positions.items()}

    # shared by reference: copying an immutable layout is pointless
    def __copy__(self) -> "BoardLayout":
        return self

    def __deepcopy__(self, memo: Dict[int, Any]) -> "BoardLayout":
        return self

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, BoardLayout):
            return NotImplemented
        return self.grid_keys() == other.grid_keys()

    def __hash__(self) -> int:
        return hash(self.grid_keys())

    def __iter__(self) -> Iterator[Tuple[Position, Optional[Card]]]:
        for r, row in enumerate(self._grid):
            for c, card in enumerate(row):
                yield (r, c), card

    @property
    def grid(self) -> Tuple[Tuple[Optional[Card], ...], ...]:
        return self._grid

    def grid_keys(self) -> Tuple[Tuple[Optional[Tuple[Suit, str]], ...], ...]:
        return tuple(tuple(card.key if card else None for card in row) for row in self._grid)

    def card_at(self, r: int, c: int) -> Optional[Card]:
        if not in_bounds(r, c):
            return None
        return self._grid[r][c]

    def is_free(self, r: int, c: int) -> bool:
        return (r, c) in CORNERS

    def positions_for(self, card: Card) -> Tuple[Position, ...]:
        """Cells bound to the card's (suit, rank); empty for jacks."""
        return self._positions.get(card.key, ())

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        """Broadcast form keyed by "row-col"; free corners carry ``card: None``."""
        out: Dict[str, Dict[str, Any]] = {}
        for (r, c), card in self:
            out[f"{r}-{c}"] = {"row": r, "col": c, "card": card.to_dict() if card else None, "free": card is None}
        return out

    @classmethod
    def from_dict(cls, data: Dict[str, Dict[str, Any]]) -> "BoardLayout":
        grid: List[List[Optional[Card]]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
        for key, entry in data.items():
            try:
                r, c = (int(x) for x in key.split("-"))
            except ValueError:
                raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, details={"key": key})
            if not in_bounds(r, c):
                raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, details={"key": key})
            card = entry.get("card")
            if card:
                grid[r][c] = _board_card(r, c, Suit(card["suit"]), str(card["rank"]))
        return cls(grid)


def validate_grid(grid: Grid) -> None:
    """Corners free; 96 bound cells; each non-jack pair exactly twice; no jacks."""
    if len(grid) != BOARD_SIZE or any(len(row) != BOARD_SIZE for row in grid):
        raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, "Board must be 10x10")
    for r, c in CORNERS:
        if grid[r][c] is not None:
            raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, "Corners must be free", {"row": r, "col": c})

    bound = [grid[r][c] for r, c in playable_cells()]
    missing = [pos for pos, card in zip(playable_cells(), bound) if card is None]
    if missing:
        raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, "Unbound playable cells", {"cells": missing})

    counts = Counter(card.key for card in bound)
    expected = set(board_card_keys())
    bad = {f"{rank}-{suit.value}": n for (suit, rank), n in counts.items()
           if (suit, rank) not in expected or n != 2}
    if bad or len(counts) != len(expected):
        raise EngineError(ErrorCode.ERR_LAYOUT_INVALID,
                          "Card multiplicities invalid (expect each non-jack exactly twice)",
                          {"bad": bad})


def _random_grid(rng: random.Random) -> List[List[Optional[Card]]]:
    pool = board_card_keys() * 2
    rng.shuffle(pool)
    grid: List[List[Optional[Card]]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    for (r, c) in playable_cells():
        if not pool:
            break
        suit, rank = pool.pop()
        grid[r][c] = _board_card(r, c, suit, rank)
    if pool:
        raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, "Cards left over after placement",
                          {"remaining": len(pool)})
    return grid


def fallback_layout() -> BoardLayout:
    """Deterministic layout: the 48 board cards row-major, twice over."""
    keys = board_card_keys()
    grid: List[List[Optional[Card]]] = [[None] * BOARD_SIZE for _ in range(BOARD_SIZE)]
    for idx, (r, c) in enumerate(playable_cells()):
        suit, rank = keys[idx % len(keys)]
        grid[r][c] = _board_card(r, c, suit, rank)
    return BoardLayout(grid)


def create_board_layout(seed: Optional[Union[int, str]] = None) -> BoardLayout:
    """Randomised layout for one room; degrades to ``fallback_layout`` on failure.

    ``seed`` may be an int or a string such as the room id, so every process
    building the same room's layout gets the same board.
    """
    rng = random.Random(new_seed() if seed is None else seed)
    try:
        return BoardLayout(_random_grid(rng))
    except EngineError as exc:
        logger.warning("Board layout generation failed (%s); using fallback layout", exc,
                       extra={"error_code": exc.code.value})
        return fallback_layout()
