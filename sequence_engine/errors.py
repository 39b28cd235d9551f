"""
Error codes and EngineError exception for rule violations and lobby failures.
"""
from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(str, Enum):
    ERR_GENERIC = "ERR_GENERIC"
    # turn / phase
    ERR_NOT_YOUR_TURN = "ERR_NOT_YOUR_TURN"
    ERR_MATCH_NOT_ACTIVE = "ERR_MATCH_NOT_ACTIVE"
    ERR_PLAYER_NOT_FOUND = "ERR_PLAYER_NOT_FOUND"
    # cards
    ERR_CARD_NOT_IN_HAND = "ERR_CARD_NOT_IN_HAND"
    ERR_UNKNOWN_CARD = "ERR_UNKNOWN_CARD"
    ERR_CARD_NOT_DEAD = "ERR_CARD_NOT_DEAD"
    # targets
    ERR_OUT_OF_BOUNDS = "ERR_OUT_OF_BOUNDS"
    ERR_FREE_SPACE = "ERR_FREE_SPACE"
    ERR_TARGET_OCCUPIED = "ERR_TARGET_OCCUPIED"
    ERR_TARGET_EMPTY = "ERR_TARGET_EMPTY"
    ERR_NOT_MATCHING_CARD = "ERR_NOT_MATCHING_CARD"
    ERR_INVALID_JACK_USE = "ERR_INVALID_JACK_USE"
    ERR_CANNOT_REMOVE_OWN_CHIP = "ERR_CANNOT_REMOVE_OWN_CHIP"
    ERR_CHIP_PROTECTED = "ERR_CHIP_PROTECTED"
    # payloads / setup
    ERR_UNKNOWN_MOVE = "ERR_UNKNOWN_MOVE"
    ERR_INVALID_ACTION = "ERR_INVALID_ACTION"
    ERR_INVALID_PLAYER_COUNT = "ERR_INVALID_PLAYER_COUNT"
    ERR_LAYOUT_INVALID = "ERR_LAYOUT_INVALID"
    # rooms
    ERR_ROOM_NOT_FOUND = "ERR_ROOM_NOT_FOUND"
    ERR_ROOM_EXISTS = "ERR_ROOM_EXISTS"
    ERR_ROOM_FULL = "ERR_ROOM_FULL"
    ERR_INVALID_ROOM_ID = "ERR_INVALID_ROOM_ID"
    ERR_INVALID_NAME = "ERR_INVALID_NAME"
    ERR_NAME_TAKEN = "ERR_NAME_TAKEN"
    ERR_NOT_AUTHORIZED = "ERR_NOT_AUTHORIZED"
    ERR_NOT_ENOUGH_PLAYERS = "ERR_NOT_ENOUGH_PLAYERS"
    ERR_GAME_IN_PROGRESS = "ERR_GAME_IN_PROGRESS"


class EngineError(Exception):
    """Base exception for game engine errors.

    Attributes:
        code: ErrorCode enum
        message: optional human message (not shown to client; for logs)
        details: optional structured data (e.g. {'row': 3, 'col': 2, 'card': 'card-0-hearts-A'})
    """

    def __init__(
        self,
        code: ErrorCode,
        message: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.details = details or {}
        super().__init__(message or code.value)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code.value, "details": self.details}
