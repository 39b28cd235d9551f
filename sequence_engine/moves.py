# sequence_engine/moves.py
"""
Read-only views over a GameState: possible moves for a hand, highlight masks
for a selected card, and dead-card detection. Nothing here changes the state.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Tuple

import numpy as np

from .board_layout import BOARD_SIZE, BoardLayout
from .cards import Card, is_one_eyed_jack
from .rules import is_dead_card, valid_targets
from .state import ActionType, GameAction, GameState

Position = Tuple[int, int]


@dataclass(frozen=True)
class PossibleMove:
    card: Card
    position: Position

    @property
    def is_removal(self) -> bool:
        return is_one_eyed_jack(self.card)

    def to_action(self, player_id: str) -> GameAction:
        move_type = ActionType.REMOVE_CHIP if self.is_removal else ActionType.PLAY_CARD
        return GameAction(type=move_type, player_id=player_id, card=self.card, position=self.position)


def _layout(state: GameState, layout: Optional[BoardLayout]) -> Optional[BoardLayout]:
    return layout if layout is not None else state.layout


def get_valid_targets(state: GameState, player_id: str, card: Card,
                      layout: Optional[BoardLayout] = None) -> List[Position]:
    """Legal cells for one selected card of ``player_id``."""
    layout = _layout(state, layout)
    player = state.player(player_id)
    if player is None or layout is None:
        return []
    return valid_targets(card, layout, state.board, player.team, state.protected_cells())


def get_possible_moves(state: GameState, player_id: str,
                       layout: Optional[BoardLayout] = None) -> List[PossibleMove]:
    """Every (card, position) pair currently legal for the player's hand."""
    layout = _layout(state, layout)
    player = state.player(player_id)
    if player is None or layout is None:
        return []
    protected = state.protected_cells()
    moves: List[PossibleMove] = []
    for card in player.hand:
        for pos in valid_targets(card, layout, state.board, player.team, protected):
            moves.append(PossibleMove(card=card, position=pos))
    return moves


def legal_target_mask(state: GameState, player_id: str, card: Card,
                      layout: Optional[BoardLayout] = None) -> np.ndarray:
    """(10, 10) float32 grid, 1 = highlight the cell for the selected card."""
    mask = np.zeros((BOARD_SIZE, BOARD_SIZE), dtype=np.float32)
    for (r, c) in get_valid_targets(state, player_id, card, layout):
        mask[r, c] = 1.0
    return mask


def get_dead_cards(state: GameState, player_id: str,
                   layout: Optional[BoardLayout] = None) -> List[Card]:
    layout = _layout(state, layout)
    player = state.player(player_id)
    if player is None or layout is None:
        return []
    return [card for card in player.hand if is_dead_card(card, layout, state.board)]


def handle_dead_cards(state: GameState, player_id: str,
                      layout: Optional[BoardLayout] = None) -> List[GameAction]:
    """Pre-built discard actions, one per dead card, ready for apply_game_action."""
    return [
        GameAction(type=ActionType.DISCARD_DEAD_CARD, player_id=player_id, card=card)
        for card in get_dead_cards(state, player_id, layout)
    ]
