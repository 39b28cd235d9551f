# sequence_engine/agents/selfplay_manager.py
from __future__ import annotations

import copy
import logging
from typing import Any, Dict, List, Optional

from .base_agent import BaseAgent, build_ctx, pass_action
from ..cards import DECK_SIZE
from ..engine_core import GameEngine
from ..payloads import action_to_dict
from ..state import GameConfig
from ..utils.logging import JSONLLogger

logger = logging.getLogger(__name__)


class SelfPlayManager:
    """
    Runs whole games between a list of agents, seat i played by agents[i % len(agents)].
    Card conservation is checked after every accepted action.
    """

    def __init__(self, agents: List[BaseAgent], config: Optional[GameConfig] = None,
                 max_steps: int = 2000, move_log: Optional[JSONLLogger] = None):
        self.agents = list(agents)
        self.config = config or GameConfig()
        self.max_steps = int(max_steps)
        self.move_log = move_log

    def play_episode(self, player_count: int, seed: Optional[int] = None) -> Dict[str, Any]:
        config = copy.deepcopy(self.config)
        if seed is not None:
            config.seed = seed
        engine = GameEngine(config)
        state = engine.start_new(player_count)

        for seat, pid in enumerate(state.turn_order):
            self.agents[seat % len(self.agents)].reset(pid)

        steps = 0
        rejected = 0
        truncated = False
        while not engine.is_terminal():
            if steps >= self.max_steps:
                truncated = True
                break
            seat = state.turn_order.index(state.current_player)
            agent = self.agents[seat % len(self.agents)]
            action = agent.select_action(state, build_ctx(state, seat))

            result = engine.submit(action)
            if not result.accepted:
                rejected += 1
                logger.warning("Agent action rejected (%s); passing instead", result.error.code.value,
                               extra={"player_id": state.current_player})
                result = engine.submit(pass_action(state.current_player))
            state = result.state
            steps += 1

            if state.card_count() != DECK_SIZE:
                raise RuntimeError(f"Card conservation broken at step {steps}: {state.card_count()} cards")
            if self.move_log is not None:
                self.move_log.log(steps, {"seed": state.seed, "action": action_to_dict(action),
                                          "move": result.move})

        return {
            "seed": state.seed,
            "steps": steps,
            "rejected": rejected,
            "terminated": engine.is_terminal(),
            "truncated": truncated,
            "winner": engine.winner_team(),
            "sequences": {t.id: state.team_sequence_count(t.id) for t in state.teams},
        }
