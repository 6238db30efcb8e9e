from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Iterable

CAMPUS_OPEN_HOUR = 8
CAMPUS_CLOSE_HOUR = 19
# Labs stay open one hour longer than desks and meeting rooms.
CLOSING_HOUR_BY_TYPE = {"desk": CAMPUS_CLOSE_HOUR, "lab": 20, "meeting-room": CAMPUS_CLOSE_HOUR}

@dataclass(frozen=True)
class Resource:
    resource_id: str
    name: str
    resource_type: str
    floor: str
    detail: str = ""
    capacity: int | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {
            "resource_id": self.resource_id,
            "name": self.name,
            "resource_type": self.resource_type,
            "floor": self.floor,
            "detail": self.detail,
        }
        if self.capacity is not None:
            payload["capacity"] = self.capacity
        return payload


DESKS = [
    Resource("A-12", "Desk A-12", "desk", "1st Floor", "Quiet Zone"),
    Resource("A-13", "Desk A-13", "desk", "1st Floor", "Quiet Zone"),
    Resource("B-01", "Desk B-01", "desk", "2nd Floor", "Collaboration Zone"),
    Resource("B-02", "Desk B-02", "desk", "2nd Floor", "Collaboration Zone"),
    Resource("C-05", "Desk C-05", "desk", "3rd Floor", "Window Seats"),
    Resource("C-06", "Desk C-06", "desk", "3rd Floor", "Window Seats"),
]

LABS = [
    Resource("lab1", "Computer Lab 1", "lab", "2nd Floor", "30 computers", capacity=30),
    Resource("lab2", "Computer Lab 2", "lab", "2nd Floor", "25 computers", capacity=25),
    Resource("lab3", "Computer Lab 3", "lab", "3rd Floor", "40 computers", capacity=40),
    Resource("lab4", "Mac Lab", "lab", "3rd Floor", "20 computers", capacity=20),
]

MEETING_ROOMS = [
    Resource("mr1", "Meeting Room A", "meeting-room", "1st Floor", "Projector, Whiteboard, Video Conference", capacity=8),
    Resource("mr2", "Meeting Room B", "meeting-room", "2nd Floor", "Projector, Smart TV, Whiteboard", capacity=12),
    Resource("mr3", "Conference Room", "meeting-room", "3rd Floor", "Projector, Video Conference, Audio System, Whiteboard", capacity=20),
    Resource("mr4", "Small Meeting Room", "meeting-room", "1st Floor", "Whiteboard, TV", capacity=4),
]


class ResourceCatalog:
    def __init__(self, resources: Iterable[Resource]) -> None:
        self._resources: dict[str, Resource] = {}
        for resource in resources:
            if resource.name in self._resources:
                raise ValueError(f"Duplicate resource name: {resource.name}")
            self._resources[resource.name] = resource

    def __contains__(self, name: object) -> bool:
        return name in self._resources

    def __len__(self) -> int:
        return len(self._resources)

    def get(self, name: str) -> Resource | None:
        return self._resources.get(name)

    def by_type(self, resource_type: str | None = None) -> list[Resource]:
        return [
            resource
            for resource in self._resources.values()
            if resource_type is None or resource.resource_type == resource_type
        ]

    def names(self, resource_type: str | None = None) -> list[str]:
        return [resource.name for resource in self.by_type(resource_type)]


DEFAULT_CATALOG = ResourceCatalog(DESKS + LABS + MEETING_ROOMS)
