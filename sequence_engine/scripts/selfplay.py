from __future__ import annotations
import argparse
import json
import logging

from ..agents.baseline.greedy_sequence_agent import GreedySequenceAgent
from ..agents.baseline.random_agent import RandomAgent
from ..agents.selfplay_manager import SelfPlayManager
from ..state import GameConfig
from ..utils.jsonio import load_config
from ..utils.logging import JSONLLogger, setup_logging_from_cfg
from ..utils.seeding import resolve_seed

logger = logging.getLogger(__name__)

def main(argv=None):
    p = argparse.ArgumentParser(description="Play Sequence games between baseline agents.")
    p.add_argument("--config", default=None, help="JSON file merged over configs/default.json")
    p.add_argument("--players", type=int, default=2)
    p.add_argument("--games", type=int, default=1)
    p.add_argument("--seed", default="random")
    p.add_argument("--max-steps", type=int, default=2000)
    p.add_argument("--log", default=None, help="append every move to this JSONL file")
    args = p.parse_args(argv)

    cfg = load_config(args.config)
    setup_logging_from_cfg(cfg)
    config = GameConfig.from_dict(cfg)

    base_seed = resolve_seed(args.seed)
    move_log = JSONLLogger(args.log) if args.log else None
    agents = [GreedySequenceAgent(seed=base_seed), RandomAgent(seed=base_seed + 1)]
    mgr = SelfPlayManager(agents, config, max_steps=args.max_steps, move_log=move_log)

    results = []
    try:
        for g in range(args.games):
            seed = base_seed + g
            res = mgr.play_episode(args.players, seed=seed)
            logger.info("Game %d: winner=%s steps=%d", g + 1, res["winner"], res["steps"])
            results.append(res)
    finally:
        if move_log is not None:
            move_log.close()

    wins = {}
    for res in results:
        wins[res["winner"]] = wins.get(res["winner"], 0) + 1
    print(json.dumps({"games": len(results), "wins": wins}, default=str))
    return results

if __name__ == "__main__":
    main()
