# sequence_engine/sequences.py
"""
Sequence detection around a freshly placed chip.

Only the four axes through the pivot are scanned, each in both directions, so a
contiguous run is seen once. A run of five or more becomes one record covering
every contiguous cell, however long it is. A second record on the same axis
needs four fresh cells next to an existing same-team sequence, sharing exactly
one cell with it. Free corners hold no chip and break a run unless
``free_corners_count`` is set.
"""
from __future__ import annotations

from typing import List, Optional, Sequence as Seq, Set, Tuple

from .board_layout import BoardLayout, in_bounds
from .state import Chip, Direction, GameState, Sequence

Position = Tuple[int, int]
Board = Seq[Seq[Optional[Chip]]]

SEQUENCE_LENGTH = 5

# (dr, dc, axis, direction)
_AXES = [
    (0, 1, "H", Direction.HORIZONTAL),
    (1, 0, "V", Direction.VERTICAL),
    (1, 1, "D1", Direction.DIAGONAL),   # ↘
    (1, -1, "D2", Direction.DIAGONAL),  # ↙
]


def _cell_counts_for_team(board: Board, layout: BoardLayout, r: int, c: int, team: str,
                          free_corners: bool) -> bool:
    if layout.is_free(r, c):
        return free_corners
    chip = board[r][c]
    return chip is not None and chip.team == team


def gather_run(board: Board, layout: BoardLayout, r: int, c: int, dr: int, dc: int, team: str,
               free_corners: bool = False) -> List[Position]:
    """Ordered positions of the full contiguous run through (r, c) along (dr, dc)."""
    back: List[Position] = []
    rr, cc = r - dr, c - dc
    while in_bounds(rr, cc) and _cell_counts_for_team(board, layout, rr, cc, team, free_corners):
        back.append((rr, cc))
        rr -= dr; cc -= dc
    back.reverse()
    fwd: List[Position] = []
    rr, cc = r + dr, c + dc
    while in_bounds(rr, cc) and _cell_counts_for_team(board, layout, rr, cc, team, free_corners):
        fwd.append((rr, cc))
        rr += dr; cc += dc
    return back + [(r, c)] + fwd


def _fresh_segment(run: List[Position], pivot: Position, covered: Set[Position]) -> List[Position]:
    """Cells of the run a new sequence may claim, given already-recorded cells."""
    if not covered.intersection(run):
        return run if len(run) >= SEQUENCE_LENGTH else []
    i = run.index(pivot)
    lo = i
    while lo - 1 >= 0 and run[lo - 1] not in covered:
        lo -= 1
    hi = i
    while hi + 1 < len(run) and run[hi + 1] not in covered:
        hi += 1
    segment = run[lo:hi + 1]
    if len(segment) >= SEQUENCE_LENGTH:
        return segment
    if len(segment) == SEQUENCE_LENGTH - 1:
        if lo - 1 >= 0:
            return [run[lo - 1]] + segment
        if hi + 1 < len(run):
            return segment + [run[hi + 1]]
    return []


def find_new_sequences(
    board: Board,
    layout: BoardLayout,
    existing: Seq[Sequence],
    position: Position,
    team: str,
    free_corners: bool = False,
) -> List[Sequence]:
    r, c = position
    found: List[Sequence] = []
    for dr, dc, axis, direction in _AXES:
        run = gather_run(board, layout, r, c, dr, dc, team, free_corners)
        if len(run) < SEQUENCE_LENGTH:
            continue
        covered: Set[Position] = set()
        for seq in existing:
            if seq.team == team and seq.axis == axis:
                covered.update(seq.positions)
        cells = _fresh_segment(run, (r, c), covered)
        if not cells:
            continue
        n = len(existing) + len(found)
        found.append(Sequence(
            id=f"sequence-{n}-{team}-{cells[0][0]}-{cells[0][1]}-{axis}",
            team=team,
            positions=list(cells),
            direction=direction,
            axis=axis,
        ))
    return found


def detect_sequences(state: GameState, position: Position) -> List[Sequence]:
    """New sequences completed by the chip at ``position``; nothing is recorded."""
    chip = state.chip_at(*position)
    if chip is None or state.layout is None:
        return []
    return find_new_sequences(state.board, state.layout, state.sequences, position, chip.team,
                              state.config.free_corners_count)


# ---- queries ----------------------------------------------------------------

def get_team_sequences(state: GameState, team: str) -> List[Sequence]:
    return [seq for seq in state.sequences if seq.team == team]


def is_position_in_sequence(state: GameState, position: Position, team: Optional[str] = None) -> bool:
    return tuple(position) in state.protected_cells(team)


def get_longest_sequence(state: GameState, team: str) -> Optional[Sequence]:
    team_sequences = get_team_sequences(state, team)
    if not team_sequences:
        return None
    return max(team_sequences, key=lambda s: len(s.positions))


def would_create_sequence(state: GameState, position: Position, team: str) -> bool:
    """True if a chip of ``team`` at the open cell ``position`` would complete a sequence."""
    r, c = position
    if state.layout is None or not in_bounds(r, c) or state.board[r][c] is not None or state.layout.is_free(r, c):
        return False
    board = [list(row) for row in state.board]
    board[r][c] = Chip(id="probe", player_id="", team=team, position=(r, c))
    found = find_new_sequences(board, state.layout, state.sequences, (r, c), team,
                               state.config.free_corners_count)
    return bool(found)
