# sequence_engine/agents/base_agent.py
from __future__ import annotations

from typing import Any, Dict, List, Optional

import numpy as np

from ..moves import PossibleMove, get_possible_moves, handle_dead_cards
from ..state import ActionType, GameAction, GameState

# e.g. {"state": GameState, "player_id": str, "seat": int, "moves": [...], "dead": [...]}
AgentCtx = Dict[str, Any]


class BaseAgent:
    """
    Minimal agent interface: given the current state, return one GameAction
    for the active player. The ctx dict carries precomputed moves so agents
    sharing a table do not recompute them.
    """
    def __init__(self, seed: Optional[int] = None):
        self.rng = np.random.default_rng(seed)
        self.player_id: Optional[str] = None

    def reset(self, player_id: str) -> None:
        self.player_id = player_id

    def select_action(self, state: GameState, ctx: Optional[AgentCtx] = None) -> GameAction:
        raise NotImplementedError

    def make_new_agent(self, seed: Optional[int] = None) -> "BaseAgent":
        return type(self)(seed)


def build_ctx(state: GameState, seat: int) -> AgentCtx:
    player_id = state.current_player
    return {
        "state": state,
        "player_id": player_id,
        "seat": seat,
        "moves": get_possible_moves(state, player_id),
        "dead": handle_dead_cards(state, player_id),
    }


def pass_action(player_id: str) -> GameAction:
    return GameAction(type=ActionType.PASS_TURN, player_id=player_id)


def moves_from(state: GameState, ctx: Optional[AgentCtx]) -> List[PossibleMove]:
    if ctx is not None and "moves" in ctx:
        return ctx["moves"]
    return get_possible_moves(state, state.current_player)
