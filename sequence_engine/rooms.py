# sequence_engine/rooms.py
"""
Room registry and lobby bookkeeping.

A room is the single writer for its game: every mutation of its GameState goes
through ``Room.lock``, so two actions are never applied concurrently against
the same state. The store is injected rather than global, and drops a room
when its last member leaves.
"""
from __future__ import annotations

import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

from overrides import overrides

from .board_layout import BoardLayout
from .engine_core import ActionResult, new_game, try_apply_action
from .errors import EngineError, ErrorCode
from .payloads import parse_action
from .state import ActionType, GameAction, GameConfig, GamePhase, GameState
from .teams import player_id as default_player_id
from .utils.logging import player_id_var, room_id_var

logger = logging.getLogger(__name__)


@dataclass
class RoomSettings:
    max_players: int = 4
    min_players: int = 2
    turn_time_limit: float = 60.0
    room_id_min_length: int = 3
    room_id_max_length: int = 10
    name_min_length: int = 1
    name_max_length: int = 20

    @classmethod
    def from_dict(cls, room_cfg: Dict[str, Any]) -> "RoomSettings":
        defaults = cls()
        return cls(**{
            name: type(getattr(defaults, name))(room_cfg.get(name, getattr(defaults, name)))
            for name in defaults.__dataclass_fields__
        })


@dataclass
class RoomMember:
    id: str
    name: str
    is_admin: bool = False
    is_connected: bool = True


@dataclass
class Room:
    id: str
    settings: RoomSettings = field(default_factory=RoomSettings)
    config: GameConfig = field(default_factory=GameConfig)
    members: Dict[str, RoomMember] = field(default_factory=dict)
    admin_id: Optional[str] = None
    state: Optional[GameState] = None
    layout: Optional[BoardLayout] = None
    # member id -> engine player id
    seats: Dict[str, str] = field(default_factory=dict)
    turn_started_at: float = 0.0
    clock: Callable[[], float] = field(default=time.monotonic, repr=False, compare=False)
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    @property
    def lobby_state(self) -> str:
        if self.state is None:
            return "waiting"
        return self.state.game_phase.value

    # ---- membership -------------------------------------------------------

    def join(self, member_id: str, name: str, is_admin: bool = False) -> RoomMember:
        name = (name or "").strip()
        if not (self.settings.name_min_length <= len(name) <= self.settings.name_max_length):
            raise EngineError(ErrorCode.ERR_INVALID_NAME, details={"name": name})
        with self.lock:
            existing = next((m for m in self.members.values() if m.name.lower() == name.lower()), None)
            if existing is not None:
                if existing.is_admin != is_admin:
                    raise EngineError(ErrorCode.ERR_NAME_TAKEN, details={"name": name})
                # same person reconnecting under a new connection id
                self._replace_member(existing.id, member_id)
                logger.info("Member %s rejoined as %s", existing.id, member_id, extra={"room_id": self.id})
                return self.members[member_id]
            if len(self.members) >= self.settings.max_players:
                raise EngineError(ErrorCode.ERR_ROOM_FULL, details={"maxPlayers": self.settings.max_players})
            if self.state is not None and self.state.game_phase != GamePhase.FINISHED:
                raise EngineError(ErrorCode.ERR_GAME_IN_PROGRESS)
            member = RoomMember(id=member_id, name=name, is_admin=is_admin)
            self.members[member_id] = member
            if is_admin and self.admin_id is None:
                self.admin_id = member_id
            logger.info("Member %s joined (%d in room)", member_id, len(self.members), extra={"room_id": self.id})
            return member

    def _replace_member(self, old_id: str, new_id: str) -> None:
        member = self.members.pop(old_id)
        member.id = new_id
        member.is_connected = True
        self.members[new_id] = member
        if self.admin_id == old_id:
            self.admin_id = new_id
        if old_id in self.seats:
            self.seats[new_id] = self.seats.pop(old_id)

    def leave(self, member_id: str) -> bool:
        """Remove a member; returns True when the room is now empty."""
        with self.lock:
            self.members.pop(member_id, None)
            if self.admin_id == member_id:
                self.admin_id = next((m.id for m in self.members.values() if m.is_admin), None)
            logger.info("Member %s left (%d in room)", member_id, len(self.members), extra={"room_id": self.id})
            return not self.members

    # ---- game -------------------------------------------------------------

    def start_game(self, member_id: str) -> GameState:
        with self.lock:
            if member_id != self.admin_id:
                raise EngineError(ErrorCode.ERR_NOT_AUTHORIZED, message="Only admin can start the game")
            if len(self.members) < self.settings.min_players:
                raise EngineError(ErrorCode.ERR_NOT_ENOUGH_PLAYERS,
                                  details={"players": len(self.members), "minPlayers": self.settings.min_players})
            if self.state is not None and self.state.game_phase == GamePhase.PLAYING:
                raise EngineError(ErrorCode.ERR_GAME_IN_PROGRESS)

            members: List[RoomMember] = list(self.members.values())
            ids = [default_player_id(i) for i in range(len(members))]
            # layout follows the game seed, so a seeded room replays its board
            state = new_game(len(members), player_names=[m.name for m in members],
                             player_ids=ids, config=self.config)
            self.state = state
            self.layout = state.layout
            self.seats = {m.id: pid for m, pid in zip(members, ids)}
            self.turn_started_at = self.clock()
            logger.info("Game started with %d players", len(members), extra={"room_id": self.id})
            return self.state

    def _apply(self, action: GameAction) -> ActionResult:
        if self.state is None:
            err = EngineError(ErrorCode.ERR_MATCH_NOT_ACTIVE)
            return ActionResult(state=self.state, accepted=False, error=err)
        result = try_apply_action(self.state, action)
        if result.accepted:
            self.state = result.state
            self.turn_started_at = self.clock()
        return result

    def submit(self, member_id: str, payload: Dict[str, Any]) -> ActionResult:
        """Validate a raw payload from ``member_id`` and apply it to the room's game."""
        room_token = room_id_var.set(self.id)
        player_token = player_id_var.set(self.seats.get(member_id))
        try:
            with self.lock:
                try:
                    action = parse_action(payload)
                except EngineError as exc:
                    return ActionResult(state=self.state, accepted=False, error=exc)
                if self.seats.get(member_id) != action.player_id:
                    err = EngineError(ErrorCode.ERR_NOT_AUTHORIZED,
                                      details={"memberId": member_id, "playerId": action.player_id})
                    return ActionResult(state=self.state, accepted=False, error=err)
                return self._apply(action)
        finally:
            player_id_var.reset(player_token)
            room_id_var.reset(room_token)

    def expire_turn(self, now: Optional[float] = None) -> Optional[ActionResult]:
        """Pass on behalf of an idle player once the turn time limit has elapsed."""
        with self.lock:
            if self.state is None or self.state.game_phase != GamePhase.PLAYING:
                return None
            now = self.clock() if now is None else now
            if now - self.turn_started_at < self.settings.turn_time_limit:
                return None
            idle = self.state.current_player
            logger.info("Turn time limit reached for %s; passing", idle, extra={"room_id": self.id})
            return self._apply(GameAction(type=ActionType.PASS_TURN, player_id=idle))

    def snapshot(self, member_id: Optional[str] = None) -> Dict[str, Any]:
        with self.lock:
            out: Dict[str, Any] = {
                "id": self.id,
                "players": [vars(m).copy() for m in self.members.values()],
                "lobbyState": self.lobby_state,
                "gameState": None,
                "boardLayout": self.layout.to_dict() if self.layout else None,
            }
            if self.state is not None:
                out["gameState"] = self.state.public_view(self.seats.get(member_id) if member_id else None)
            return out


class RoomStore(ABC):
    """Keyed store of independent rooms."""

    @abstractmethod
    def get(self, room_id: str) -> Optional[Room]:
        raise NotImplementedError

    @abstractmethod
    def create(self, room_id: str, settings: Optional[RoomSettings] = None,
               config: Optional[GameConfig] = None) -> Room:
        raise NotImplementedError

    @abstractmethod
    def remove(self, room_id: str) -> bool:
        raise NotImplementedError

    def require(self, room_id: str) -> Room:
        room = self.get(room_id)
        if room is None:
            raise EngineError(ErrorCode.ERR_ROOM_NOT_FOUND, details={"roomId": room_id})
        return room

    def join(self, room_id: str, member_id: str, name: str, is_admin: bool = False) -> Room:
        """Only an admin may open a room that does not exist yet."""
        room = self.get(room_id)
        if room is None:
            if not is_admin:
                raise EngineError(ErrorCode.ERR_ROOM_NOT_FOUND, details={"roomId": room_id})
            room = self.create(room_id)
        room.join(member_id, name, is_admin=is_admin)
        return room

    def leave(self, room_id: str, member_id: str) -> None:
        room = self.get(room_id)
        if room is not None and room.leave(member_id):
            self.remove(room_id)
            logger.info("Room closed after last member left", extra={"room_id": room_id})


class InMemoryRoomStore(RoomStore):

    def __init__(self, settings: Optional[RoomSettings] = None, config: Optional[GameConfig] = None):
        self.settings = settings or RoomSettings()
        self.config = config or GameConfig()
        self._rooms: Dict[str, Room] = {}
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rooms)

    @overrides
    def get(self, room_id: str) -> Optional[Room]:
        with self._lock:
            return self._rooms.get(room_id)

    @overrides
    def create(self, room_id: str, settings: Optional[RoomSettings] = None,
               config: Optional[GameConfig] = None) -> Room:
        settings = settings or self.settings
        if not (settings.room_id_min_length <= len(room_id or "") <= settings.room_id_max_length):
            raise EngineError(ErrorCode.ERR_INVALID_ROOM_ID, details={"roomId": room_id})
        with self._lock:
            if room_id in self._rooms:
                raise EngineError(ErrorCode.ERR_ROOM_EXISTS, details={"roomId": room_id})
            room = Room(id=room_id, settings=settings, config=config or self.config)
            self._rooms[room_id] = room
        logger.info("Room created", extra={"room_id": room_id})
        return room

    @overrides
    def remove(self, room_id: str) -> bool:
        with self._lock:
            return self._rooms.pop(room_id, None) is not None
