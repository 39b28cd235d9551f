# sequence_engine/rules.py
"""
Move legality for a single card against a single target cell.

Priority order:
  1. Two-eyed jack (wild): any unoccupied, non-free cell.
  2. One-eyed jack (removal): an opposing chip that is not in a recorded sequence.
  3. Regular card: an unoccupied cell printed with the same suit and rank.

Nothing here mutates the board.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import AbstractSet, Any, List, Optional, Sequence, Tuple

from .board_layout import BOARD_SIZE, BoardLayout, in_bounds
from .cards import Card, is_jack, is_one_eyed_jack, is_two_eyed_jack
from .errors import EngineError, ErrorCode
from .state import Chip

Position = Tuple[int, int]
Board = Sequence[Sequence[Optional[Chip]]]


@dataclass(frozen=True)
class MoveCheck:
    legal: bool
    removed_chip: Optional[Chip] = None
    error: Optional[ErrorCode] = None


def coerce_position(position: Any) -> Position:
    """(row, col) as ints inside the board, else ERR_OUT_OF_BOUNDS."""
    try:
        r, c = position
        r, c = int(r), int(c)
    except (TypeError, ValueError):
        raise EngineError(ErrorCode.ERR_OUT_OF_BOUNDS, details={"position": repr(position)})
    if not in_bounds(r, c):
        raise EngineError(ErrorCode.ERR_OUT_OF_BOUNDS, details={"row": r, "col": c})
    return r, c


def check_move(
    card: Card,
    position: Any,
    layout: BoardLayout,
    board: Board,
    team: str,
    protected: AbstractSet[Position] = frozenset(),
) -> Optional[Chip]:
    """Raise EngineError if illegal. Returns the chip to clear for a removal, else None."""
    r, c = coerce_position(position)
    chip = board[r][c]

    if is_two_eyed_jack(card):
        if layout.is_free(r, c):
            raise EngineError(ErrorCode.ERR_FREE_SPACE, details={"reason": "wild_on_free_space", "row": r, "col": c})
        if chip is not None:
            raise EngineError(ErrorCode.ERR_TARGET_OCCUPIED, details={"row": r, "col": c})
        return None

    if is_one_eyed_jack(card):
        if layout.is_free(r, c):
            raise EngineError(ErrorCode.ERR_FREE_SPACE, details={"row": r, "col": c})
        if chip is None:
            raise EngineError(ErrorCode.ERR_TARGET_EMPTY, details={"row": r, "col": c})
        if chip.team == team:
            raise EngineError(ErrorCode.ERR_CANNOT_REMOVE_OWN_CHIP, details={"row": r, "col": c})
        if (r, c) in protected:
            raise EngineError(ErrorCode.ERR_CHIP_PROTECTED, details={"reason": "cell_in_sequence", "row": r, "col": c})
        return chip

    if layout.is_free(r, c):
        raise EngineError(ErrorCode.ERR_FREE_SPACE, details={"row": r, "col": c})
    expected = layout.card_at(r, c)
    if not card.matches(expected):
        raise EngineError(ErrorCode.ERR_NOT_MATCHING_CARD,
                          details={"expected": expected.label if expected else None,
                                   "card": card.label, "row": r, "col": c})
    if chip is not None:
        raise EngineError(ErrorCode.ERR_TARGET_OCCUPIED, details={"row": r, "col": c})
    return None


def resolve_move(
    card: Card,
    position: Any,
    layout: BoardLayout,
    board: Board,
    team: str,
    protected: AbstractSet[Position] = frozenset(),
) -> MoveCheck:
    try:
        removed = check_move(card, position, layout, board, team, protected)
    except EngineError as exc:
        return MoveCheck(legal=False, error=exc.code)
    return MoveCheck(legal=True, removed_chip=removed)


def is_legal_move(card: Card, position: Any, layout: BoardLayout, board: Board, team: str,
                  protected: AbstractSet[Position] = frozenset()) -> bool:
    return resolve_move(card, position, layout, board, team, protected).legal


# ---- target enumeration -----------------------------------------------------

def open_cells(layout: BoardLayout, board: Board) -> List[Position]:
    return [(r, c) for r in range(BOARD_SIZE) for c in range(BOARD_SIZE)
            if not layout.is_free(r, c) and board[r][c] is None]


def removable_cells(board: Board, team: str, protected: AbstractSet[Position]) -> List[Position]:
    out: List[Position] = []
    for r in range(BOARD_SIZE):
        for c in range(BOARD_SIZE):
            chip = board[r][c]
            if chip is not None and chip.team != team and (r, c) not in protected:
                out.append((r, c))
    return out


def valid_targets(card: Card, layout: BoardLayout, board: Board, team: str,
                  protected: AbstractSet[Position] = frozenset()) -> List[Position]:
    if is_two_eyed_jack(card):
        return open_cells(layout, board)
    if is_one_eyed_jack(card):
        return removable_cells(board, team, protected)
    return [(r, c) for (r, c) in layout.positions_for(card) if board[r][c] is None]


def is_dead_card(card: Card, layout: BoardLayout, board: Board) -> bool:
    """A non-jack card is dead once every cell printed with it is occupied."""
    if is_jack(card):
        return False
    return all(board[r][c] is not None for (r, c) in layout.positions_for(card))
