# sequence_engine/engine_core.py
"""
Turn state machine: setup -> playing -> finished.

One action per turn for the active player:
  validate -> mutate hand/board/discards -> detect sequences (placements only)
  -> win check -> draw a replacement -> advance along turn_order.

Every accepted action returns a fresh GameState (deep copy, then mutate); the
input state is never touched, so a state still being broadcast stays valid.
"""
from __future__ import annotations

import copy
import logging
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence as Seq, Tuple

from .board_layout import BoardLayout, create_board_layout
from .cards import Card, deal_cards, generate_deck, is_one_eyed_jack, shuffle_deck
from .errors import EngineError, ErrorCode
from .moves import get_possible_moves
from .rules import check_move, is_dead_card
from .sequences import detect_sequences
from .state import (
    ActionType,
    Chip,
    GameAction,
    GameConfig,
    GamePhase,
    GameState,
    Player,
    Team,
)
from .teams import player_id as default_player_id, required_sequences_for, team_id, team_policy_for
from .utils.seeding import derive_seed, resolve_seed

logger = logging.getLogger(__name__)

MoveRecord = Dict[str, Any]


# ---- setup ------------------------------------------------------------------

def initialize_game(
    player_count: int,
    player_names: Optional[Seq[str]] = None,
    config: Optional[GameConfig] = None,
    layout: Optional[BoardLayout] = None,
    player_ids: Optional[Seq[str]] = None,
) -> GameState:
    """Shuffle, deal and seat players; the game is left in the setup phase."""
    policy = team_policy_for(player_count)
    config = config or GameConfig()
    seed = resolve_seed(config.seed)

    deck = shuffle_deck(generate_deck(), seed=seed)
    hands, remaining = deal_cards(deck, policy.player_count)

    ids = list(player_ids) if player_ids else [default_player_id(i) for i in range(player_count)]
    names = list(player_names) if player_names else [f"Player {i + 1}" for i in range(player_count)]
    if len(ids) != player_count or len(names) != player_count or len(set(ids)) != player_count:
        raise EngineError(ErrorCode.ERR_INVALID_PLAYER_COUNT,
                          details={"playerCount": player_count, "ids": len(ids), "names": len(names)})

    players = [
        Player(id=ids[i], name=names[i], team=team_id(policy.team_index_for(i)),
               hand=hands[i], is_active=(i == 0))
        for i in range(player_count)
    ]
    teams = [Team(id=team_id(t), player_ids=[p.id for p in players if p.team == team_id(t)])
             for t in range(policy.teams)]

    if layout is None:
        layout = create_board_layout(seed=derive_seed(seed, "layout"))

    state = GameState(
        players=players,
        teams=teams,
        current_player=ids[0],
        deck=remaining,
        game_phase=GamePhase.SETUP,
        player_count=player_count,
        required_sequences=required_sequences_for(player_count, config.required_sequences),
        dealer=ids[0],
        turn_order=list(ids),
        layout=layout,
        config=config,
        seed=seed,
    )
    logger.info("Game initialised: %d players, %d teams, %d sequences to win",
                player_count, policy.teams, state.required_sequences)
    return state


def start_game(state: GameState) -> GameState:
    """setup -> playing. Phases never move backwards."""
    if state.game_phase != GamePhase.SETUP:
        raise EngineError(ErrorCode.ERR_MATCH_NOT_ACTIVE, details={"gamePhase": state.game_phase.value})
    new_state = copy.deepcopy(state)
    new_state.game_phase = GamePhase.PLAYING
    logger.info("Game started; %s to play", new_state.current_player)
    return new_state


def new_game(player_count: int, **kwargs: Any) -> GameState:
    return start_game(initialize_game(player_count, **kwargs))


# ---- deck helpers -----------------------------------------------------------

def _reshuffle(state: GameState) -> None:
    pool: List[Card] = list(state.discard_pile)
    for p in state.players:
        pool.extend(p.discard_pile)
    if not pool:
        return
    if state.reshuffles >= state.config.max_reshuffles:
        logger.warning("Reshuffle cap reached (%d); deck stays empty", state.reshuffles)
        return
    rng = random.Random(derive_seed(state.seed, "reshuffle", state.reshuffles))
    rng.shuffle(pool)
    state.deck = pool
    state.discard_pile = []
    for p in state.players:
        p.discard_pile = []
    state.reshuffles += 1
    logger.debug("Discard piles reshuffled into a fresh deck of %d cards", len(pool))


def _draw_card(state: GameState) -> Optional[Card]:
    if not state.deck:
        _reshuffle(state)
    if not state.deck:
        return None
    return state.deck.pop(0)


def _draw_into_hand(state: GameState, player: Player) -> Optional[Card]:
    card = _draw_card(state)
    if card is not None:
        player.hand.append(card)
    return card


def _advance_turn(state: GameState) -> None:
    order = state.turn_order
    idx = order.index(state.current_player)
    nxt = order[(idx + 1) % len(order)]
    for p in state.players:
        p.is_active = (p.id == nxt)
    state.current_player = nxt
    state.turn_count += 1


def _take_card(player: Player, card: Optional[Card]) -> Card:
    if card is None:
        raise EngineError(ErrorCode.ERR_INVALID_ACTION, details={"reason": "card_missing"})
    held = player.find_card(card.id)
    if held is None:
        raise EngineError(ErrorCode.ERR_CARD_NOT_IN_HAND, details={"card": card.id})
    return held


def _remove_from_hand(player: Player, card: Card) -> None:
    for i, held in enumerate(player.hand):
        if held.id == card.id:
            del player.hand[i]
            return


# ---- action handlers --------------------------------------------------------

def _play_card(state: GameState, actor: Player, action: GameAction, record: MoveRecord) -> None:
    card = _take_card(actor, action.card)
    if is_one_eyed_jack(card):
        raise EngineError(ErrorCode.ERR_INVALID_JACK_USE, details={"as": "play_card", "card": card.id})
    if action.position is None:
        raise EngineError(ErrorCode.ERR_INVALID_ACTION, details={"reason": "position_missing"})
    check_move(card, action.position, state.layout, state.board, actor.team, state.protected_cells())
    r, c = int(action.position[0]), int(action.position[1])

    _remove_from_hand(actor, card)
    state.board[r][c] = Chip(
        id=f"chip-{actor.id}-{r}-{c}-{state.turn_count}",
        player_id=actor.id,
        team=actor.team,
        position=(r, c),
        card=card,
    )

    new_sequences = detect_sequences(state, (r, c))
    state.sequences.extend(new_sequences)
    for seq in new_sequences:
        logger.info("Sequence %s recorded for %s (%d cells)", seq.id, seq.team, len(seq.positions),
                    extra={"team": seq.team})

    record.update({
        "card": card.id,
        "position": (r, c),
        "sequences": [seq.id for seq in new_sequences],
    })

    if state.team_sequence_count(actor.team) >= state.required_sequences:
        state.game_phase = GamePhase.FINISHED
        state.winner = actor.team
        record["winner"] = actor.team
        logger.info("Game won by %s with %d sequences", actor.team,
                    state.team_sequence_count(actor.team), extra={"team": actor.team})
        return

    _draw_into_hand(state, actor)
    _advance_turn(state)


def _remove_chip(state: GameState, actor: Player, action: GameAction, record: MoveRecord) -> None:
    card = _take_card(actor, action.card)
    if not is_one_eyed_jack(card):
        raise EngineError(ErrorCode.ERR_INVALID_JACK_USE, details={"as": "remove_chip", "card": card.id})
    target = action.target_position
    if target is None:
        raise EngineError(ErrorCode.ERR_INVALID_ACTION, details={"reason": "target_missing"})
    chip = check_move(card, target, state.layout, state.board, actor.team, state.protected_cells())
    if action.target_chip is not None and action.target_chip.id and action.target_chip.id != chip.id:
        raise EngineError(ErrorCode.ERR_INVALID_ACTION,
                          details={"reason": "stale_target_chip", "expected": chip.id, "got": action.target_chip.id})
    r, c = chip.position

    _remove_from_hand(actor, card)
    state.board[r][c] = None
    actor.discard_pile.append(card)
    if chip.card is not None:
        state.discard_pile.append(chip.card)

    record.update({"card": card.id, "removed": (r, c), "removedChip": chip.id})
    _draw_into_hand(state, actor)
    _advance_turn(state)


def _pass_turn(state: GameState, actor: Player, action: GameAction, record: MoveRecord) -> None:
    if not state.config.allow_pass_with_moves and get_possible_moves(state, actor.id):
        raise EngineError(ErrorCode.ERR_INVALID_ACTION, details={"reason": "pass_with_legal_moves"})
    _advance_turn(state)


def _discard_dead_card(state: GameState, actor: Player, action: GameAction, record: MoveRecord) -> None:
    card = _take_card(actor, action.card)
    if not is_dead_card(card, state.layout, state.board):
        raise EngineError(ErrorCode.ERR_CARD_NOT_DEAD, details={"card": card.id})
    _remove_from_hand(actor, card)
    actor.discard_pile.append(card)
    drawn = _draw_into_hand(state, actor)
    record.update({"card": card.id, "drew": drawn is not None})


_HANDLERS = {
    ActionType.PLAY_CARD: _play_card,
    ActionType.REMOVE_CHIP: _remove_chip,
    ActionType.PASS_TURN: _pass_turn,
    ActionType.DISCARD_DEAD_CARD: _discard_dead_card,
}


# ---- public API -------------------------------------------------------------

def resolve_action(state: GameState, action: GameAction) -> Tuple[GameState, MoveRecord]:
    """Apply one action. Raises EngineError when illegal; ``state`` is never mutated."""
    if state.game_phase != GamePhase.PLAYING:
        raise EngineError(ErrorCode.ERR_MATCH_NOT_ACTIVE, details={"gamePhase": state.game_phase.value})
    if state.layout is None:
        raise EngineError(ErrorCode.ERR_LAYOUT_INVALID, details={"reason": "no_layout"})
    try:
        move_type = ActionType(action.type)
    except ValueError:
        raise EngineError(ErrorCode.ERR_UNKNOWN_MOVE, details={"move_type": str(action.type)})
    if state.player(action.player_id) is None:
        raise EngineError(ErrorCode.ERR_PLAYER_NOT_FOUND, details={"playerId": action.player_id})
    if action.player_id != state.current_player:
        raise EngineError(ErrorCode.ERR_NOT_YOUR_TURN,
                          details={"playerId": action.player_id, "currentPlayer": state.current_player})

    new_state = copy.deepcopy(state)
    actor = new_state.player(action.player_id)
    record: MoveRecord = {"player": actor.id, "team": actor.team, "type": move_type.value}
    _HANDLERS[move_type](new_state, actor, action, record)
    return new_state, record


def apply_game_action(state: GameState, action: GameAction) -> GameState:
    """Illegal actions are a no-op: the input state is returned unchanged."""
    try:
        new_state, _ = resolve_action(state, action)
    except EngineError as exc:
        logger.info("Rejected %s from %s: %s", getattr(action.type, "value", action.type),
                    action.player_id, exc.code.value, extra={"error_code": exc.code.value})
        return state
    return new_state


@dataclass
class ActionResult:
    state: GameState
    accepted: bool
    error: Optional[EngineError] = None
    move: Optional[MoveRecord] = None


def try_apply_action(state: GameState, action: GameAction) -> ActionResult:
    """Like apply_game_action, but keeps the rejection reason for the caller."""
    try:
        new_state, record = resolve_action(state, action)
    except EngineError as exc:
        logger.info("Rejected %s from %s: %s", getattr(action.type, "value", action.type),
                    action.player_id, exc.code.value, extra={"error_code": exc.code.value})
        return ActionResult(state=state, accepted=False, error=exc)
    return ActionResult(state=new_state, accepted=True, move=record)


def check_win_condition(state: GameState) -> Optional[str]:
    for team in state.teams:
        if state.team_sequence_count(team.id) >= state.required_sequences:
            return team.id
    return None


class GameEngine:
    """Holds one room's current state and seed; thin stateful wrapper over the functions above."""

    def __init__(self, config: Optional[GameConfig] = None):
        self.game_config: GameConfig = config or GameConfig()
        self.state: Optional[GameState] = None

    def seed(self, seed: int) -> None:
        self.game_config.seed = seed

    def start_new(self, player_count: int, player_names: Optional[Seq[str]] = None,
                  player_ids: Optional[Seq[str]] = None,
                  layout: Optional[BoardLayout] = None) -> GameState:
        self.state = new_game(player_count, player_names=player_names, player_ids=player_ids,
                              config=copy.deepcopy(self.game_config), layout=layout)
        return self.state

    def _require_state(self) -> GameState:
        if self.state is None:
            raise RuntimeError("Game not started")
        return self.state

    def step(self, action: GameAction) -> Tuple[GameState, MoveRecord]:
        new_state, record = resolve_action(self._require_state(), action)
        self.state = new_state
        return new_state, record

    def submit(self, action: GameAction) -> ActionResult:
        result = try_apply_action(self._require_state(), action)
        self.state = result.state
        return result

    def legal_moves_for(self, player_id: str):
        return get_possible_moves(self._require_state(), player_id)

    def is_terminal(self) -> bool:
        return self.state is not None and self.state.game_phase == GamePhase.FINISHED

    def winner_team(self) -> Optional[str]:
        return self.state.winner if self.state is not None else None
