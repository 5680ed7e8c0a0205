"""Room model referenced by the dungeon graph."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Mapping

__all__ = ["Room", "RoomState", "RoomType", "SchemaError"]


class SchemaError(ValueError):
    """Raised when room data fails validation."""


class RoomType(Enum):
    """Role a room plays in a generated dungeon."""

    START = "start"
    COMBAT = "combat"
    ELITE = "elite"
    TREASURE = "treasure"
    SHOP = "shop"
    EVENT = "event"
    REST = "rest"
    BOSS = "boss"

    @property
    def display_name(self) -> str:
        return _ROOM_TYPE_NAMES[self]

    @classmethod
    def parse(cls, value: object) -> "RoomType":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        raise SchemaError(f"Unknown room type '{value}'")


_ROOM_TYPE_NAMES: Mapping[RoomType, str] = {
    RoomType.START: "Start",
    RoomType.COMBAT: "Combat",
    RoomType.ELITE: "Elite",
    RoomType.TREASURE: "Treasure",
    RoomType.SHOP: "Shop",
    RoomType.EVENT: "Event",
    RoomType.REST: "Rest",
    RoomType.BOSS: "Boss",
}


class RoomState(Enum):
    """Progress tag maintained by generation and gameplay code."""

    UNEXPLORED = "unexplored"
    LOCKED = "locked"
    ACTIVE = "active"
    CLEARED = "cleared"

    @classmethod
    def parse(cls, value: object) -> "RoomState":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            lowered = value.strip().lower()
            for member in cls:
                if member.value == lowered:
                    return member
        raise SchemaError(f"Unknown room state '{value}'")


@dataclass
class Room:
    """A single dungeon area. ``state`` is mutated by gameplay code."""

    id: str
    type: RoomType
    state: RoomState = RoomState.UNEXPLORED

    @classmethod
    def from_mapping(cls, data: Mapping[str, object]) -> "Room":
        if not isinstance(data, Mapping):
            raise SchemaError("room must be a mapping")
        raw_id = data.get("id")
        if raw_id is None or not str(raw_id).strip():
            raise SchemaError("room is missing an id")
        room_type = RoomType.parse(data.get("type"))
        raw_state = data.get("state")
        state = RoomState.UNEXPLORED if raw_state is None else RoomState.parse(raw_state)
        return cls(id=str(raw_id).strip(), type=room_type, state=state)

    def to_dict(self) -> dict[str, str]:
        return {"id": self.id, "type": self.type.value, "state": self.state.value}
