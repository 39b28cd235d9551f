import copy

import pytest

from sequence_engine.board_layout import fallback_layout
from sequence_engine.cards import Card, Suit
from sequence_engine.engine_core import (
    GameEngine, apply_game_action, check_win_condition, initialize_game, new_game,
    resolve_action, start_game, try_apply_action,
)
from sequence_engine.errors import EngineError, ErrorCode
from sequence_engine.state import ActionType, Chip, GameAction, GameConfig, GamePhase

LAYOUT = fallback_layout()


def setup_game_2p(seed=42, **rules):
    return new_game(2, config=GameConfig(seed=seed, **rules), layout=LAYOUT)


def card_for(r, c, deck=1):
    bound = LAYOUT.card_at(r, c)
    return Card.make(deck, bound.suit, bound.rank)


def give(state, player_id, card):
    state.player(player_id).hand[0] = card
    return card


def put(state, player_id, *cells):
    team = state.team_of(player_id)
    for r, c in cells:
        state.board[r][c] = Chip(id=f"chip-{r}-{c}", player_id=player_id, team=team,
                                 position=(r, c), card=card_for(r, c, deck=0))


def play(player_id, card, pos):
    return GameAction(type=ActionType.PLAY_CARD, player_id=player_id, card=card, position=pos)


def remove(player_id, card, pos):
    return GameAction(type=ActionType.REMOVE_CHIP, player_id=player_id, card=card, position=pos)


def pass_turn(player_id):
    return GameAction(type=ActionType.PASS_TURN, player_id=player_id)


def rejected_with(state, action):
    result = try_apply_action(state, action)
    assert not result.accepted and result.state is state
    return result.error.code


# ---- placement ---------------------------------------------------------------

def test_normal_card_play_places_chip_draws_and_advances():
    state = setup_game_2p()
    card = give(state, "player1", card_for(4, 4))
    deck_before = len(state.deck)
    new = apply_game_action(state, play("player1", card, (4, 4)))
    assert new is not state
    chip = new.board[4][4]
    assert chip.team == "team1" and chip.player_id == "player1" and chip.card == card
    assert len(new.player("player1").hand) == 7
    assert len(new.deck) == deck_before - 1
    assert new.current_player == "player2"
    assert new.player("player2").is_active and not new.player("player1").is_active
    # input untouched
    assert state.board[4][4] is None and state.current_player == "player1"
    assert new.card_count() == 104


def test_card_must_match_cell():
    state = setup_game_2p()
    card = give(state, "player1", card_for(4, 5))
    assert rejected_with(state, play("player1", card, (4, 4))) == ErrorCode.ERR_NOT_MATCHING_CARD


def test_occupied_corner_and_out_of_bounds():
    state = setup_game_2p()
    card = give(state, "player1", card_for(4, 4))
    put(state, "player2", (4, 4))
    assert rejected_with(state, play("player1", card, (4, 4))) == ErrorCode.ERR_TARGET_OCCUPIED
    assert rejected_with(state, play("player1", card, (0, 0))) == ErrorCode.ERR_FREE_SPACE
    assert rejected_with(state, play("player1", card, (10, 3))) == ErrorCode.ERR_OUT_OF_BOUNDS


def test_card_not_in_hand():
    state = setup_game_2p()
    absent = state.deck[0]
    assert rejected_with(state, play("player1", absent, (4, 4))) == ErrorCode.ERR_CARD_NOT_IN_HAND


def test_wrong_turn_unknown_player_and_unknown_move():
    state = setup_game_2p()
    assert rejected_with(state, pass_turn("player2")) == ErrorCode.ERR_NOT_YOUR_TURN
    assert rejected_with(state, pass_turn("ghost")) == ErrorCode.ERR_PLAYER_NOT_FOUND
    bogus = GameAction(type="fly", player_id="player1")
    assert rejected_with(state, bogus) == ErrorCode.ERR_UNKNOWN_MOVE


def test_illegal_action_is_a_noop():
    state = setup_game_2p()
    card = give(state, "player1", card_for(4, 5))
    before = copy.deepcopy(state)
    out = apply_game_action(state, play("player1", card, (4, 4)))
    assert out is state
    assert state == before


def test_resolve_action_raises():
    state = setup_game_2p()
    with pytest.raises(EngineError) as exc:
        resolve_action(state, pass_turn("player2"))
    assert exc.value.code == ErrorCode.ERR_NOT_YOUR_TURN
    assert exc.value.to_dict()["code"] == "ERR_NOT_YOUR_TURN"


# ---- phases ------------------------------------------------------------------

def test_actions_rejected_outside_playing_phase():
    state = initialize_game(2, config=GameConfig(seed=3), layout=LAYOUT)
    assert state.game_phase == GamePhase.SETUP
    assert rejected_with(state, pass_turn("player1")) == ErrorCode.ERR_MATCH_NOT_ACTIVE
    started = start_game(state)
    assert started.game_phase == GamePhase.PLAYING and state.game_phase == GamePhase.SETUP
    with pytest.raises(EngineError):
        start_game(started)


# ---- jacks -------------------------------------------------------------------

def test_two_eyed_jack_is_wild_on_open_cells():
    state = setup_game_2p()
    jack = give(state, "player1", Card.make(0, Suit.HEARTS, "J"))
    put(state, "player2", (5, 5))
    assert rejected_with(state, play("player1", jack, (0, 9))) == ErrorCode.ERR_FREE_SPACE
    assert rejected_with(state, play("player1", jack, (5, 5))) == ErrorCode.ERR_TARGET_OCCUPIED
    new = apply_game_action(state, play("player1", jack, (3, 7)))
    assert new.board[3][7].team == "team1" and new.board[3][7].card == jack


def test_one_eyed_jack_removes_opponent_chip():
    state = setup_game_2p()
    jack = give(state, "player1", Card.make(0, Suit.CLUBS, "J"))
    put(state, "player2", (6, 3))
    put(state, "player1", (6, 4))
    before = state.card_count()

    assert rejected_with(state, play("player1", jack, (2, 2))) == ErrorCode.ERR_INVALID_JACK_USE
    assert rejected_with(state, remove("player1", jack, (2, 2))) == ErrorCode.ERR_TARGET_EMPTY
    assert rejected_with(state, remove("player1", jack, (6, 4))) == ErrorCode.ERR_CANNOT_REMOVE_OWN_CHIP
    assert rejected_with(state, remove("player1", jack, (0, 0))) == ErrorCode.ERR_FREE_SPACE

    removed_card = state.board[6][3].card
    new = apply_game_action(state, remove("player1", jack, (6, 3)))
    assert new.board[6][3] is None
    assert new.player("player1").discard_pile == [jack]
    assert new.discard_pile == [removed_card]
    assert len(new.player("player1").hand) == 7
    assert new.current_player == "player2"
    assert new.card_count() == before


def test_regular_card_cannot_remove():
    state = setup_game_2p()
    card = give(state, "player1", card_for(6, 3))
    put(state, "player2", (6, 3))
    assert rejected_with(state, remove("player1", card, (6, 3))) == ErrorCode.ERR_INVALID_JACK_USE


def test_removal_by_target_chip():
    state = setup_game_2p()
    jack = give(state, "player1", Card.make(1, Suit.SPADES, "J"))
    put(state, "player2", (6, 3))
    target = state.board[6][3]
    action = GameAction(type=ActionType.REMOVE_CHIP, player_id="player1", card=jack, target_chip=target)
    assert apply_game_action(state, action).board[6][3] is None
    stale = Chip(id="other", player_id="player2", team="team2", position=(6, 3))
    action = GameAction(type=ActionType.REMOVE_CHIP, player_id="player1", card=jack, target_chip=stale)
    assert rejected_with(state, action) == ErrorCode.ERR_INVALID_ACTION


# ---- sequences and winning ---------------------------------------------------

def test_sequence_win_stops_the_turn():
    state = setup_game_2p(required_sequences=1)
    put(state, "player1", (4, 2), (4, 3), (4, 5), (4, 6))
    card = give(state, "player1", card_for(4, 4))
    new = apply_game_action(state, play("player1", card, (4, 4)))
    assert new.game_phase == GamePhase.FINISHED
    assert new.winner == "team1" and check_win_condition(new) == "team1"
    assert len(new.sequences) == 1
    assert sorted(new.sequences[0].positions) == [(4, 2), (4, 3), (4, 4), (4, 5), (4, 6)]
    # no draw, no advance once the game is won
    assert len(new.player("player1").hand) == 6
    assert new.current_player == "player1"
    assert rejected_with(new, pass_turn("player1")) == ErrorCode.ERR_MATCH_NOT_ACTIVE


def test_one_sequence_is_not_enough_for_two_teams():
    state = setup_game_2p()
    assert state.required_sequences == 2
    put(state, "player1", (4, 1), (4, 2), (4, 3), (4, 5), (4, 6))
    card = give(state, "player1", card_for(4, 4))
    new = apply_game_action(state, play("player1", card, (4, 4)))
    assert new.game_phase == GamePhase.PLAYING
    assert len(new.sequences) == 1 and len(new.sequences[0].positions) == 6
    assert check_win_condition(new) is None


def test_joining_two_fours_is_one_sequence_not_a_win():
    state = setup_game_2p()
    put(state, "player1", (4, 0), (4, 1), (4, 2), (4, 3), (4, 5), (4, 6), (4, 7), (4, 8))
    card = give(state, "player1", card_for(4, 4))
    new = apply_game_action(state, play("player1", card, (4, 4)))
    assert len(new.sequences) == 1
    assert new.sequences[0].positions == [(4, c) for c in range(0, 9)]
    assert new.winner is None and new.game_phase == GamePhase.PLAYING


def test_four_chips_beside_a_corner_are_not_a_sequence():
    state = setup_game_2p(required_sequences=1)
    put(state, "player1", (0, 1), (0, 2), (0, 3))
    card = give(state, "player1", card_for(0, 4))
    new = apply_game_action(state, play("player1", card, (0, 4)))
    assert new.sequences == [] and new.game_phase == GamePhase.PLAYING

    corners = setup_game_2p(required_sequences=1, free_corners_count=True)
    put(corners, "player1", (0, 1), (0, 2), (0, 3))
    card = give(corners, "player1", card_for(0, 4))
    new = apply_game_action(corners, play("player1", card, (0, 4)))
    assert new.sequences[0].positions == [(0, c) for c in range(0, 5)]
    assert new.winner == "team1"


def test_protection_survives_neighbour_removal():
    state = setup_game_2p()
    put(state, "player1", (4, 2), (4, 3), (4, 5), (4, 6), (5, 6))
    card = give(state, "player1", card_for(4, 4))
    state = apply_game_action(state, play("player1", card, (4, 4)))
    assert len(state.sequences) == 1

    give(state, "player2", Card.make(0, Suit.CLUBS, "J"))
    jack = state.player("player2").hand[0]
    assert rejected_with(state, remove("player2", jack, (4, 6))) == ErrorCode.ERR_CHIP_PROTECTED
    state = apply_game_action(state, remove("player2", jack, (5, 6)))
    assert state.board[5][6] is None
    assert len(state.sequences) == 1
    state = apply_game_action(state, pass_turn("player1"))

    jack = give(state, "player2", Card.make(1, Suit.CLUBS, "J"))
    assert rejected_with(state, remove("player2", jack, (4, 6))) == ErrorCode.ERR_CHIP_PROTECTED


def test_opponent_chips_break_runs():
    state = setup_game_2p(required_sequences=1)
    put(state, "player1", (4, 2), (4, 3), (4, 6))
    put(state, "player2", (4, 5))
    card = give(state, "player1", card_for(4, 4))
    new = apply_game_action(state, play("player1", card, (4, 4)))
    assert new.sequences == [] and new.game_phase == GamePhase.PLAYING


# ---- pass, dead cards, deck --------------------------------------------------

def test_pass_advances_without_draw():
    state = setup_game_2p()
    new = apply_game_action(state, pass_turn("player1"))
    assert new.current_player == "player2"
    assert len(new.deck) == len(state.deck)
    assert len(new.player("player1").hand) == 7


def test_pass_can_be_disallowed_when_moves_exist():
    state = setup_game_2p(allow_pass_with_moves=False)
    give(state, "player1", Card.make(0, Suit.HEARTS, "J"))
    assert rejected_with(state, pass_turn("player1")) == ErrorCode.ERR_INVALID_ACTION


def test_turn_order_alternates_teams_and_wraps():
    state = new_game(4, config=GameConfig(seed=9), layout=LAYOUT)
    seen = []
    for _ in range(5):
        seen.append(state.current_player)
        state = apply_game_action(state, pass_turn(state.current_player))
    assert seen == ["player1", "player2", "player3", "player4", "player1"]
    teams = [state.team_of(pid) for pid in seen]
    assert all(a != b for a, b in zip(teams, teams[1:]))


def test_dead_card_discard_keeps_the_turn():
    state = setup_game_2p()
    card = give(state, "player1", card_for(4, 4))
    put(state, "player2", *LAYOUT.positions_for(card))
    discard = GameAction(type=ActionType.DISCARD_DEAD_CARD, player_id="player1", card=card)
    new = apply_game_action(state, discard)
    assert new is not state
    assert new.current_player == "player1"
    assert len(new.player("player1").hand) == 7
    assert new.player("player1").discard_pile == [card]
    assert new.card_count() == state.card_count()


def test_live_cards_and_jacks_are_not_dead():
    state = setup_game_2p()
    card = give(state, "player1", card_for(4, 4))
    discard = GameAction(type=ActionType.DISCARD_DEAD_CARD, player_id="player1", card=card)
    assert rejected_with(state, discard) == ErrorCode.ERR_CARD_NOT_DEAD
    jack = give(state, "player1", Card.make(0, Suit.SPADES, "J"))
    discard = GameAction(type=ActionType.DISCARD_DEAD_CARD, player_id="player1", card=jack)
    assert rejected_with(state, discard) == ErrorCode.ERR_CARD_NOT_DEAD


def test_empty_deck_reshuffles_discards():
    state = setup_game_2p()
    state.discard_pile, state.deck = state.deck, []
    pile = len(state.discard_pile)
    jack = give(state, "player1", Card.make(0, Suit.DIAMONDS, "J"))
    new = apply_game_action(state, play("player1", jack, (3, 3)))
    assert new.reshuffles == 1
    assert new.discard_pile == []
    assert len(new.deck) == pile - 1
    assert len(new.player("player1").hand) == 7
    assert new.card_count() == 104


def test_nothing_to_draw_shrinks_hand():
    state = setup_game_2p()
    state.deck = []
    jack = give(state, "player1", Card.make(0, Suit.DIAMONDS, "J"))
    new = apply_game_action(state, play("player1", jack, (3, 3)))
    assert len(new.player("player1").hand) == 6
    assert new.current_player == "player2"


# ---- stateful wrapper --------------------------------------------------------

def test_game_engine_wrapper():
    engine = GameEngine(GameConfig())
    engine.seed(5)
    state = engine.start_new(2)
    assert state.game_phase == GamePhase.PLAYING
    result = engine.submit(pass_turn("player2"))
    assert not result.accepted and engine.state is state
    new_state, record = engine.step(pass_turn("player1"))
    assert record["type"] == "pass_turn" and engine.state is new_state
    assert engine.legal_moves_for("player2")
    assert not engine.is_terminal() and engine.winner_team() is None


# ---- scenarios ---------------------------------------------------------------

def test_scenario_regular_placement_at_3_4():
    state = setup_game_2p(seed=1)
    card = give(state, "player1", card_for(3, 4))
    held = len(state.player("player1").hand)
    new = apply_game_action(state, play("player1", card, (3, 4)))
    assert new.board[3][4].player_id == "player1"
    assert new.game_phase == GamePhase.PLAYING
    # one card out, one replacement drawn from the top of the deck
    assert len(new.player("player1").hand) == held
    assert new.player("player1").hand[-1] == state.deck[0]


def test_scenario_card_not_held_is_deep_equal_noop():
    state = setup_game_2p(seed=2)
    before = copy.deepcopy(state)
    out = apply_game_action(state, play("player1", state.deck[5], (3, 4)))
    assert out == before


@pytest.mark.parametrize("end", [(4, 2), (4, 6)])
def test_scenario_fifth_chip_at_either_end(end):
    state = setup_game_2p(required_sequences=1)
    run = [(4, c) for c in range(2, 7) if (4, c) != end]
    put(state, "player1", *run)
    card = give(state, "player1", card_for(*end))
    new = apply_game_action(state, play("player1", card, end))
    assert len(new.sequences) == 1 and len(new.sequences[0].positions) >= 5
    assert new.game_phase == GamePhase.FINISHED
