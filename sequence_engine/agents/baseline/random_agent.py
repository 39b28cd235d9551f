from __future__ import annotations
from typing import Optional

from overrides import overrides

from ..base_agent import AgentCtx, BaseAgent, moves_from, pass_action
from ...moves import handle_dead_cards
from ...state import GameAction, GameState


class RandomAgent(BaseAgent):
    """Discards one dead card per turn, then plays a uniformly random legal move, else passes."""

    def __init__(self, seed: Optional[int] = None):
        super().__init__(seed)
        self._discarded_on_turn: Optional[int] = None

    @overrides
    def reset(self, player_id: str) -> None:
        super().reset(player_id)
        self._discarded_on_turn = None

    @overrides
    def select_action(self, state: GameState, ctx: Optional[AgentCtx] = None) -> GameAction:
        player_id = state.current_player
        if self._discarded_on_turn != state.turn_count:
            dead = ctx["dead"] if ctx is not None and "dead" in ctx else handle_dead_cards(state, player_id)
            if dead:
                self._discarded_on_turn = state.turn_count
                return dead[0]
        moves = moves_from(state, ctx)
        if not moves:
            return pass_action(player_id)
        return moves[int(self.rng.integers(len(moves)))].to_action(player_id)
