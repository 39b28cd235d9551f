"""Validation of raw action payloads coming from the transport layer.

Incoming dicts use the broadcast (camelCase) shape::

    {"type": "play_card", "playerId": "player1",
     "card": "card-0-hearts-7", "position": {"row": 3, "col": 4}}

``card`` may also be a card object with an ``id``; ``position`` may be a
``[row, col]`` pair. Malformed payloads are rejected here, before the engine.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ValidationError, field_validator

from .cards import Card
from .errors import EngineError, ErrorCode
from .state import ActionType, Chip, GameAction


class PositionPayload(BaseModel):
    row: int
    col: int


def _coerce_position(value: Any) -> Any:
    if isinstance(value, (list, tuple)) and len(value) == 2:
        return {"row": value[0], "col": value[1]}
    return value


class CardPayload(BaseModel):
    id: str


class ChipPayload(BaseModel):
    id: Optional[str] = None
    playerId: Optional[str] = None
    team: Optional[str] = None
    position: PositionPayload

    @field_validator("position", mode="before")
    @classmethod
    def _position(cls, value: Any) -> Any:
        return _coerce_position(value)


class ActionPayload(BaseModel):
    type: ActionType
    playerId: str
    card: Optional[Union[str, CardPayload]] = None
    position: Optional[PositionPayload] = None
    targetChip: Optional[ChipPayload] = None

    @field_validator("position", mode="before")
    @classmethod
    def _position(cls, value: Any) -> Any:
        return _coerce_position(value)


def parse_action(payload: Dict[str, Any]) -> GameAction:
    """Raw dict -> GameAction, or EngineError(ERR_INVALID_ACTION / ERR_UNKNOWN_CARD)."""
    try:
        data = ActionPayload.model_validate(payload or {})
    except ValidationError as exc:
        errors: List[Dict[str, Any]] = [{"loc": list(e["loc"]), "msg": e["msg"]} for e in exc.errors()]
        raise EngineError(ErrorCode.ERR_INVALID_ACTION, details={"errors": errors})

    card = None
    if data.card is not None:
        card_id = data.card if isinstance(data.card, str) else data.card.id
        card = Card.from_id(card_id)

    position = (data.position.row, data.position.col) if data.position else None

    target_chip = None
    if data.targetChip is not None:
        tc = data.targetChip
        target_chip = Chip(
            id=tc.id or "",
            player_id=tc.playerId or "",
            team=tc.team or "",
            position=(tc.position.row, tc.position.col),
        )

    return GameAction(type=data.type, player_id=data.playerId, card=card,
                      position=position, target_chip=target_chip)


def action_to_dict(action: GameAction) -> Dict[str, Any]:
    out: Dict[str, Any] = {
        "type": ActionType(action.type).value,
        "playerId": action.player_id,
    }
    if action.card is not None:
        out["card"] = action.card.id
    if action.position is not None:
        out["position"] = {"row": action.position[0], "col": action.position[1]}
    if action.target_chip is not None:
        out["targetChip"] = action.target_chip.to_dict()
    return out
