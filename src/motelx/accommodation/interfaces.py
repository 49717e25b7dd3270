"""
Интерфейсы (порты) для контекста размещения.
"""

from __future__ import annotations

from typing import List, Optional, Protocol

from ..shared_kernel import DateRange
from .domain import AvailableRoomType, Room, RoomType
from .filters import FilterSet


class IRoomCatalogRepository(Protocol):
    """Справочник типов номеров и номеров."""

    def add_room_type(self, room_type: RoomType) -> None: ...
    def add_room(self, room: Room) -> None: ...
    def get_room_type(self, name: str) -> Optional[RoomType]: ...
    def get_room(self, room_num: int) -> Optional[Room]: ...
    def list_room_types(self) -> List[RoomType]: ...
    def list_rooms(self, room_type: Optional[str] = None) -> List[Room]: ...


class IAvailabilityRepository(Protocol):
    """Запросы доступности номеров."""

    def find_available_room_types(
        self, period: DateRange, party_size: int, filters: Optional[FilterSet] = None
    ) -> List[AvailableRoomType]: ...

    def find_free_room_number(self, room_type: str, period: DateRange) -> Optional[int]: ...
