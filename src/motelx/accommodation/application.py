"""
Прикладной слой контекста размещения.

Поиск свободных типов номеров на период и выбор конкретного
свободного номера для выбранного типа.
"""

from datetime import date
from typing import Iterable, List, Optional

from pydantic import BaseModel, Field, model_validator

from ..shared_kernel import DateRange, ILogger, NoRoomAvailableException
from ..shared_kernel.infrastructure import get_logger
from . import interfaces as ports
from .domain import AvailableRoomType, Room, RoomType
from .filters import FilterSet

# DTO для входящих данных


class AvailabilityQuery(BaseModel):
    """Запрос на поиск свободных номеров."""

    arrival: date
    departure: date
    party_size: int = Field(..., gt=0)
    filters: FilterSet = Field(default_factory=FilterSet)

    @model_validator(mode="after")
    def departure_after_arrival(self) -> "AvailabilityQuery":
        DateRange(arrival=self.arrival, departure=self.departure)
        return self

    @property
    def period(self) -> DateRange:
        return DateRange(arrival=self.arrival, departure=self.departure)


# Сервисы приложения


class AvailabilityApplicationService:
    """Сервис поиска свободных номеров."""

    def __init__(self, availability: ports.IAvailabilityRepository, logger: Optional[ILogger] = None):
        self._availability = availability
        self._logger = logger or get_logger(__name__)

    def search(self, query: AvailabilityQuery) -> List[AvailableRoomType]:
        """Возвращает типы номеров, в которых есть хотя бы один свободный номер."""
        result = self._availability.find_available_room_types(
            query.period, query.party_size, query.filters
        )
        self._logger.debug(
            "Availability search",
            arrival=query.arrival,
            departure=query.departure,
            party_size=query.party_size,
            found=len(result),
        )
        return result

    def find_available_room_types(
        self,
        arrival: date,
        departure: date,
        party_size: int,
        filters: Optional[FilterSet] = None,
    ) -> List[AvailableRoomType]:
        query = AvailabilityQuery(
            arrival=arrival,
            departure=departure,
            party_size=party_size,
            filters=filters or FilterSet(),
        )
        return self.search(query)

    def find_free_room_number(self, room_type: str, arrival: date, departure: date) -> int:
        """Возвращает наименьший свободный номер выбранного типа."""
        period = DateRange(arrival=arrival, departure=departure)
        room_num = self._availability.find_free_room_number(room_type, period)
        if room_num is None:
            raise NoRoomAvailableException(room_type, arrival, departure)
        return room_num


class RoomCatalogApplicationService:
    """Сервис ведения справочника номеров."""

    def __init__(self, catalog: ports.IRoomCatalogRepository, logger: Optional[ILogger] = None):
        self._catalog = catalog
        self._logger = logger or get_logger(__name__)

    @property
    def catalog(self) -> ports.IRoomCatalogRepository:
        return self._catalog

    def seed(self, room_types: Iterable[RoomType], rooms: Iterable[Room]) -> None:
        """Добавляет отсутствующие типы номеров и номера."""
        added_types = 0
        added_rooms = 0
        for room_type in room_types:
            if self._catalog.get_room_type(room_type.name) is None:
                self._catalog.add_room_type(room_type)
                added_types += 1
        for room in rooms:
            if self._catalog.get_room(room.room_num) is None:
                self._catalog.add_room(room)
                added_rooms += 1
        self._logger.info("Room catalog seeded", room_types=added_types, rooms=added_rooms)

    def get_room_type(self, name: str) -> Optional[RoomType]:
        return self._catalog.get_room_type(name)

    def list_room_types(self) -> List[RoomType]:
        return self._catalog.list_room_types()

    def list_rooms(self, room_type: Optional[str] = None) -> List[Room]:
        return self._catalog.list_rooms(room_type)
