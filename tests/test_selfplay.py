import json
import logging

import pytest

from sequence_engine.agents.base_agent import BaseAgent, build_ctx
from sequence_engine.agents.baseline.greedy_sequence_agent import GreedySequenceAgent
from sequence_engine.agents.baseline.random_agent import RandomAgent
from sequence_engine.agents.selfplay_manager import SelfPlayManager
from sequence_engine.board_layout import fallback_layout
from sequence_engine.cards import Card, Suit
from sequence_engine.engine_core import new_game
from sequence_engine.scripts import selfplay
from sequence_engine.state import ActionType, Chip, GameConfig
from sequence_engine.utils.logging import JSONLLogger


@pytest.mark.parametrize("players", [2, 3, 4])
def test_random_games_conserve_cards(players):
    mgr = SelfPlayManager([RandomAgent(seed=1), RandomAgent(seed=2)], GameConfig(), max_steps=1500)
    res = mgr.play_episode(players, seed=players)
    assert res["steps"] > 0
    assert res["terminated"] or res["truncated"]
    if res["terminated"]:
        assert res["winner"] in res["sequences"]


def test_greedy_agent_completes_a_sequence():
    state = new_game(2, config=GameConfig(seed=3), layout=fallback_layout())
    for c in range(2, 6):
        state.board[4][c] = Chip(id=f"c{c}", player_id="player1", team="team1", position=(4, c))
    state.player("player1").hand[0] = Card.make(0, Suit.HEARTS, "J")
    agent = GreedySequenceAgent(seed=0)
    agent.reset("player1")
    action = agent.select_action(state, build_ctx(state, 0))
    assert action.type == ActionType.PLAY_CARD
    assert action.position in {(4, 1), (4, 6)}


def test_random_agent_discards_once_per_turn():
    layout = fallback_layout()
    state = new_game(2, config=GameConfig(seed=4), layout=layout)
    card = Card.make(0, Suit.CLUBS, "4")
    state.player("player1").hand[0] = card
    for r, c in layout.positions_for(card):
        state.board[r][c] = Chip(id=f"x{r}{c}", player_id="player2", team="team2", position=(r, c))
    agent = RandomAgent(seed=0)
    first = agent.select_action(state, build_ctx(state, 0))
    assert first.type == ActionType.DISCARD_DEAD_CARD
    second = agent.select_action(state, build_ctx(state, 0))
    assert second.type != ActionType.DISCARD_DEAD_CARD


def test_base_agent_is_abstract():
    state = new_game(2, config=GameConfig(seed=1))
    with pytest.raises(NotImplementedError):
        BaseAgent().select_action(state)
    assert isinstance(RandomAgent(seed=1).make_new_agent(2), RandomAgent)


def test_move_log(tmp_path):
    log = JSONLLogger(str(tmp_path / "moves.jsonl"))
    mgr = SelfPlayManager([RandomAgent(seed=5)], GameConfig(), max_steps=20, move_log=log)
    res = mgr.play_episode(2, seed=9)
    log.close()
    lines = (tmp_path / "moves.jsonl").read_text().splitlines()
    assert len(lines) == res["steps"] == 20
    assert json.loads(lines[0])["action"]["playerId"] == "player1"


def test_selfplay_script(tmp_path, capsys):
    out_log = tmp_path / "sp.jsonl"
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    try:
        results = selfplay.main(["--players", "2", "--games", "2", "--seed", "5",
                                 "--max-steps", "300", "--log", str(out_log)])
    finally:
        root.handlers = handlers
        root.setLevel(level)
    assert len(results) == 2
    assert out_log.exists()
    summary = json.loads(capsys.readouterr().out.strip().splitlines()[-1])
    assert summary["games"] == 2
