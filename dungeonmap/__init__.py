"""Dungeon connectivity graph and its analysis helpers."""

from .graph import UNREACHABLE, DungeonGraph, GraphStatistics, UnknownRoomError
from .rooms import Room, RoomState, RoomType, SchemaError

__all__ = [
    "UNREACHABLE",
    "DungeonGraph",
    "GraphStatistics",
    "Room",
    "RoomState",
    "RoomType",
    "SchemaError",
    "UnknownRoomError",
]
