from __future__ import annotations
from typing import Optional

from overrides import overrides

from ..base_agent import AgentCtx, moves_from
from .random_agent import RandomAgent
from ...sequences import would_create_sequence
from ...state import GameAction, GameState


class GreedySequenceAgent(RandomAgent):
    """Completes a sequence when one placement does it; otherwise plays like RandomAgent."""

    @overrides
    def select_action(self, state: GameState, ctx: Optional[AgentCtx] = None) -> GameAction:
        player_id = state.current_player
        team = state.team_of(player_id)
        for move in moves_from(state, ctx):
            if not move.is_removal and would_create_sequence(state, move.position, team):
                return move.to_action(player_id)
        return super().select_action(state, ctx)
