# sequence_engine/state.py
from __future__ import annotations

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple, Union

from .board_layout import BOARD_SIZE, BoardLayout
from .cards import Card

Position = Tuple[int, int]


class GamePhase(str, Enum):
    SETUP = "setup"
    PLAYING = "playing"
    FINISHED = "finished"


class ActionType(str, Enum):
    PLAY_CARD = "play_card"
    REMOVE_CHIP = "remove_chip"
    PASS_TURN = "pass_turn"
    DISCARD_DEAD_CARD = "discard_dead_card"


class Direction(str, Enum):
    HORIZONTAL = "horizontal"
    VERTICAL = "vertical"
    DIAGONAL = "diagonal"


@dataclass
class GameConfig:
    """
    Rule and engine options bound to one game.
    `from_dict` reads the nested JSON layout of configs/default.json
    (top-level "rules" and "engine" sections, both optional).
    """
    # Rules
    required_sequences: Optional[int] = None    # None -> team policy (2 for <=2 teams, else 1)
    free_corners_count: bool = False            # opt-in: corners count as a chip of every team
    allow_pass_with_moves: bool = True

    # Engine options
    seed: Optional[int] = None                  # None -> high-entropy seed
    max_reshuffles: int = 1000

    @classmethod
    def from_dict(cls, cfg: Dict[str, Any]) -> "GameConfig":
        rules = dict(cfg.get("rules", {}))
        eng = dict(cfg.get("engine", {}))

        required = rules.get("required_sequences")
        seed = eng.get("seed")
        return cls(
            required_sequences=None if required is None else int(required),
            free_corners_count=bool(rules.get("free_corners_count", False)),
            allow_pass_with_moves=bool(rules.get("allow_pass_with_moves", True)),
            seed=None if seed in (None, "random") else int(seed),
            max_reshuffles=int(eng.get("max_reshuffles", 1000)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass
class Chip:
    id: str
    player_id: str
    team: str
    position: Position
    # card that placed the chip; it stays on the board with the chip
    card: Optional[Card] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "playerId": self.player_id,
            "team": self.team,
            "position": {"row": self.position[0], "col": self.position[1]},
        }


@dataclass
class Sequence:
    id: str
    team: str
    positions: List[Position]
    direction: Direction
    axis: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "team": self.team,
            "positions": [{"row": r, "col": c} for r, c in self.positions],
            "direction": self.direction.value,
        }


@dataclass
class Player:
    id: str
    name: str
    team: str
    hand: List[Card] = field(default_factory=list)
    is_active: bool = False
    discard_pile: List[Card] = field(default_factory=list)

    def find_card(self, card_id: str) -> Optional[Card]:
        for card in self.hand:
            if card.id == card_id:
                return card
        return None

    def to_dict(self, *, hide_hand: bool = False) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "team": self.team,
            "hand": None if hide_hand else [c.to_dict() for c in self.hand],
            "handSize": len(self.hand),
            "isActive": self.is_active,
            "discardPile": [c.to_dict() for c in self.discard_pile],
        }


@dataclass
class Team:
    id: str
    player_ids: List[str] = field(default_factory=list)


@dataclass
class GameAction:
    type: Union[ActionType, str]
    player_id: str
    card: Optional[Card] = None
    position: Optional[Position] = None
    target_chip: Optional[Chip] = None

    @property
    def target_position(self) -> Optional[Position]:
        """Cell addressed by the action; removals may name it through target_chip."""
        if self.position is not None:
            return self.position
        if self.target_chip is not None:
            return self.target_chip.position
        return None


def empty_board() -> List[List[Optional[Chip]]]:
    return [[None for _ in range(BOARD_SIZE)] for _ in range(BOARD_SIZE)]


@dataclass
class GameState:
    """
    Aggregate root for one game. Owned by the state machine in engine_core;
    every accepted action produces a new GameState and leaves the old one intact.
    """
    players: List[Player] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    current_player: str = ""
    board: List[List[Optional[Chip]]] = field(default_factory=empty_board)
    deck: List[Card] = field(default_factory=list)
    discard_pile: List[Card] = field(default_factory=list)
    game_phase: GamePhase = GamePhase.SETUP
    sequences: List[Sequence] = field(default_factory=list)
    winner: Optional[str] = None
    player_count: int = 0
    required_sequences: int = 2
    dealer: str = ""
    turn_order: List[str] = field(default_factory=list)

    # shared, read-only
    layout: Optional[BoardLayout] = None
    config: GameConfig = field(default_factory=GameConfig)

    # shuffle bookkeeping
    seed: int = 0
    reshuffles: int = 0
    turn_count: int = 0

    # ----------------- lookups -----------------

    def player(self, player_id: str) -> Optional[Player]:
        for p in self.players:
            if p.id == player_id:
                return p
        return None

    @property
    def active_player(self) -> Optional[Player]:
        return self.player(self.current_player)

    def team_of(self, player_id: str) -> Optional[str]:
        p = self.player(player_id)
        return p.team if p else None

    def chip_at(self, r: int, c: int) -> Optional[Chip]:
        if 0 <= r < BOARD_SIZE and 0 <= c < BOARD_SIZE:
            return self.board[r][c]
        return None

    def chips(self) -> Iterator[Chip]:
        for row in self.board:
            for chip in row:
                if chip is not None:
                    yield chip

    def protected_cells(self, team: Optional[str] = None) -> Set[Position]:
        """Cells belonging to any recorded sequence (optionally of one team)."""
        out: Set[Position] = set()
        for seq in self.sequences:
            if team is None or seq.team == team:
                out.update(seq.positions)
        return out

    def team_sequence_count(self, team: str) -> int:
        return sum(1 for seq in self.sequences if seq.team == team)

    def card_count(self) -> int:
        """deck + discard + hands + personal discards + chips; always 104."""
        return (
            len(self.deck)
            + len(self.discard_pile)
            + sum(len(p.hand) for p in self.players)
            + sum(len(p.discard_pile) for p in self.players)
            + sum(1 for _ in self.chips())
        )

    # ----------------- serialisation -----------------

    def to_dict(self) -> Dict[str, Any]:
        return {
            "players": [p.to_dict() for p in self.players],
            "teams": [{"id": t.id, "playerIds": list(t.player_ids)} for t in self.teams],
            "currentPlayer": self.current_player,
            "board": [[chip.to_dict() if chip else None for chip in row] for row in self.board],
            "deck": [c.to_dict() for c in self.deck],
            "discardPile": [c.to_dict() for c in self.discard_pile],
            "gamePhase": self.game_phase.value,
            "sequences": [s.to_dict() for s in self.sequences],
            "winner": self.winner,
            "playerCount": self.player_count,
            "requiredSequences": self.required_sequences,
            "dealer": self.dealer,
            "turnOrder": list(self.turn_order),
            "turnCount": self.turn_count,
        }

    def public_view(self, player_id: Optional[str] = None) -> Dict[str, Any]:
        """Broadcast copy: only ``player_id``'s hand is shown; deck order is hidden."""
        out = self.to_dict()
        out["players"] = [p.to_dict(hide_hand=(p.id != player_id)) for p in self.players]
        out["deck"] = None
        out["deckSize"] = len(self.deck)
        return out
