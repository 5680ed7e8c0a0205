"""Undirected connectivity graph for generated dungeons."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Dict, Iterator, List, Mapping, Optional

from .rooms import Room, RoomState, RoomType

__all__ = ["DungeonGraph", "GraphStatistics", "UNREACHABLE", "UnknownRoomError"]

# Returned by ``shortest_distance`` when no path exists.
UNREACHABLE = -1


class UnknownRoomError(KeyError):
    """Raised by a strict graph when a mutation names a room it does not hold."""

    def __init__(self, room_id: str) -> None:
        super().__init__(room_id)
        self.room_id = room_id

    def __str__(self) -> str:
        return f"Unknown room '{self.room_id}'"


@dataclass(frozen=True)
class GraphStatistics:
    """Read-only snapshot of a graph's size and shape."""

    room_count: int
    connection_count: int
    average_connections_per_room: float
    is_connected: bool
    rooms_by_type: Mapping[RoomType, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, object]:
        return {
            "room_count": self.room_count,
            "connection_count": self.connection_count,
            "average_connections_per_room": round(self.average_connections_per_room, 2),
            "is_connected": self.is_connected,
            "rooms_by_type": {
                room_type.value: count for room_type, count in self.rooms_by_type.items()
            },
        }


class DungeonGraph:
    """Rooms and the undirected connections between them.

    Mutations are tolerant by default: self-connections, connections naming
    unknown rooms, removal of missing edges and re-insertion of an existing
    room are accepted and leave the graph untouched. Passing ``strict=True``
    turns unknown room ids in ``add_connection``/``remove_connection`` into
    :class:`UnknownRoomError`. Queries never raise in either mode.
    """

    def __init__(self, *, strict: bool = False) -> None:
        self.strict = strict
        self._rooms: Dict[str, Room] = {}
        self._adjacency: Dict[str, set[str]] = {}

    # -- mutation ----------------------------------------------------------
    def add_room(self, room: Room) -> bool:
        """Insert ``room`` unless its id is already present.

        Returns ``True`` when the room was inserted.
        """

        if room.id in self._rooms:
            return False
        self._rooms[room.id] = room
        self._adjacency[room.id] = set()
        return True

    def add_connection(self, room_a: str, room_b: str) -> bool:
        """Connect two rooms in both directions.

        Returns ``True`` only when a new edge was created.
        """

        if room_a == room_b:
            return False
        if not self._check_known(room_a, room_b):
            return False
        if room_b in self._adjacency[room_a]:
            return False
        self._adjacency[room_a].add(room_b)
        self._adjacency[room_b].add(room_a)
        return True

    def remove_connection(self, room_a: str, room_b: str) -> bool:
        """Disconnect two rooms. Returns ``True`` when an edge was removed."""

        if not self._check_known(room_a, room_b):
            return False
        if room_b not in self._adjacency[room_a]:
            return False
        self._adjacency[room_a].discard(room_b)
        self._adjacency[room_b].discard(room_a)
        return True

    def clear(self) -> None:
        self._rooms.clear()
        self._adjacency.clear()

    def _check_known(self, *room_ids: str) -> bool:
        for room_id in room_ids:
            if room_id not in self._rooms:
                if self.strict:
                    raise UnknownRoomError(room_id)
                return False
        return True

    # -- queries -----------------------------------------------------------
    @property
    def rooms(self) -> Mapping[str, Room]:
        return MappingProxyType(self._rooms)

    def get_room(self, room_id: str) -> Optional[Room]:
        return self._rooms.get(room_id)

    def neighbors(self, room_id: str) -> List[Room]:
        return [
            self._rooms[neighbor_id]
            for neighbor_id in self._adjacency.get(room_id, ())
            if neighbor_id in self._rooms
        ]

    def neighbor_ids(self, room_id: str) -> List[str]:
        return list(self._adjacency.get(room_id, ()))

    def are_connected(self, room_a: str, room_b: str) -> bool:
        return room_b in self._adjacency.get(room_a, ())

    def degree(self, room_id: str) -> int:
        return len(self._adjacency.get(room_id, ()))

    def rooms_by_type(self, room_type: RoomType) -> List[Room]:
        return [room for room in self._rooms.values() if room.type == room_type]

    def rooms_by_state(self, state: RoomState) -> List[Room]:
        return [room for room in self._rooms.values() if room.state == state]

    def start_room(self) -> Optional[Room]:
        return self._first_of_type(RoomType.START)

    def boss_room(self) -> Optional[Room]:
        return self._first_of_type(RoomType.BOSS)

    def _first_of_type(self, room_type: RoomType) -> Optional[Room]:
        for room in self._rooms.values():
            if room.type == room_type:
                return room
        return None

    def edges(self) -> List[tuple[str, str]]:
        """Return each connection once, in room insertion order."""

        order = {room_id: index for index, room_id in enumerate(self._rooms)}
        pairs: List[tuple[str, str]] = []
        for room_id, neighbors in self._adjacency.items():
            for neighbor_id in neighbors:
                if order[room_id] < order[neighbor_id]:
                    pairs.append((room_id, neighbor_id))
        return pairs

    def __contains__(self, room_id: object) -> bool:
        return room_id in self._rooms

    def __len__(self) -> int:
        return len(self._rooms)

    def __iter__(self) -> Iterator[str]:
        return iter(self._rooms)

    # -- traversal ---------------------------------------------------------
    def shortest_distance(self, from_room: str, to_room: str) -> int:
        """Breadth-first hop count between two rooms, or ``UNREACHABLE``."""

        if from_room == to_room:
            return 0
        if from_room not in self._rooms or to_room not in self._rooms:
            return UNREACHABLE

        visited = {from_room}
        queue: deque[tuple[str, int]] = deque([(from_room, 0)])
        while queue:
            current, distance = queue.popleft()
            for neighbor_id in self._adjacency.get(current, ()):
                if neighbor_id == to_room:
                    return distance + 1
                if neighbor_id not in visited:
                    # Mark on enqueue so diamond-shaped paths expand once.
                    visited.add(neighbor_id)
                    queue.append((neighbor_id, distance + 1))
        return UNREACHABLE

    def distances_from(self, from_room: str) -> Dict[str, int]:
        """Hop count to every room reachable from ``from_room``, itself included."""

        if from_room not in self._rooms:
            return {}
        distances = {from_room: 0}
        queue: deque[str] = deque([from_room])
        while queue:
            current = queue.popleft()
            next_distance = distances[current] + 1
            for neighbor_id in self._adjacency.get(current, ()):
                if neighbor_id not in distances:
                    distances[neighbor_id] = next_distance
                    queue.append(neighbor_id)
        return distances

    def farthest_room(self, from_room: str) -> Optional[tuple[str, int]]:
        """Return the ``(room_id, distance)`` farthest from ``from_room``.

        Ties go to whichever room breadth-first search reached first.
        """

        distances = self.distances_from(from_room)
        if not distances:
            return None
        room_id = max(distances, key=distances.__getitem__)
        return room_id, distances[room_id]

    def is_connected(self) -> bool:
        if not self._rooms:
            return True

        start = next(iter(self._rooms))
        visited: set[str] = set()
        stack = [start]
        while stack:
            current = stack.pop()
            if current in visited:
                continue
            visited.add(current)
            for neighbor_id in self._adjacency.get(current, ()):
                if neighbor_id not in visited:
                    stack.append(neighbor_id)
        return len(visited) == len(self._rooms)

    def statistics(self) -> GraphStatistics:
        room_count = len(self._rooms)
        connection_count = sum(len(neighbors) for neighbors in self._adjacency.values()) // 2
        average = connection_count / room_count if room_count else 0.0
        by_type = {room_type: 0 for room_type in RoomType}
        for room in self._rooms.values():
            if room.type in by_type:
                by_type[room.type] += 1
        return GraphStatistics(
            room_count=room_count,
            connection_count=connection_count,
            average_connections_per_room=average,
            is_connected=self.is_connected(),
            rooms_by_type=MappingProxyType(by_type),
        )
