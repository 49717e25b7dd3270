"""
Инфраструктурный слой контекста размещения.

Реализации репозиториев поверх параметризованных SQL-запросов.
"""

from typing import Any, List, Optional, Tuple

from ..shared_kernel import BusinessRuleValidationException, DateRange, IDatabase, OverlapPolicy
from . import interfaces as ports
from .domain import AvailableRoomType, Room, RoomType
from .filters import FilterSet, FilterStatementBuilder


def blocking_clause(period: DateRange, policy: OverlapPolicy) -> Tuple[str, Tuple[Any, ...]]:
    """SQL-условие, при котором бронь из ``reservations`` блокирует период.

    Должно совпадать с ``domain.blocks`` для той же политики.
    """
    if policy == OverlapPolicy.STRICT:
        return (
            "reservations.arrival < ? AND reservations.departure > ?",
            (period.departure, period.arrival),
        )
    return (
        "(reservations.arrival BETWEEN ? AND ?) OR (reservations.departure BETWEEN ? AND ?)",
        (period.arrival, period.departure, period.arrival, period.departure),
    )


class SqlRoomCatalogRepository(ports.IRoomCatalogRepository):
    """Справочник номеров в таблицах ``room_types`` и ``rooms``."""

    def __init__(self, db: IDatabase):
        self._db = db

    def add_room_type(self, room_type: RoomType) -> None:
        self._db.execute(
            "INSERT INTO room_types (name, description, price, max_person, pets_allowed) "
            "VALUES (?, ?, ?, ?, ?)",
            (
                room_type.name,
                room_type.description,
                room_type.price,
                room_type.max_person,
                room_type.pets_allowed,
            ),
        )

    def add_room(self, room: Room) -> None:
        if self.get_room_type(room.room_type) is None:
            raise BusinessRuleValidationException(
                f"Неизвестный тип номера {room.room_type!r} для номера {room.room_num}"
            )
        self._db.execute(
            "INSERT INTO rooms (room_num, floor, room_type) VALUES (?, ?, ?)",
            (room.room_num, room.floor, room.room_type),
        )

    def get_room_type(self, name: str) -> Optional[RoomType]:
        row = self._db.fetch_one("SELECT * FROM room_types WHERE name = ?", (name,))
        return RoomType.model_validate(row) if row else None

    def get_room(self, room_num: int) -> Optional[Room]:
        row = self._db.fetch_one("SELECT * FROM rooms WHERE room_num = ?", (room_num,))
        return Room.model_validate(row) if row else None

    def list_room_types(self) -> List[RoomType]:
        rows = self._db.fetch_all("SELECT * FROM room_types ORDER BY name")
        return [RoomType.model_validate(row) for row in rows]

    def list_rooms(self, room_type: Optional[str] = None) -> List[Room]:
        if room_type is None:
            rows = self._db.fetch_all("SELECT * FROM rooms ORDER BY room_num")
        else:
            rows = self._db.fetch_all(
                "SELECT * FROM rooms WHERE room_type = ? ORDER BY room_num", (room_type,)
            )
        return [Room.model_validate(row) for row in rows]


class SqlAvailabilityRepository(ports.IAvailabilityRepository):
    """Поиск свободных типов номеров и конкретного свободного номера."""

    def __init__(self, db: IDatabase, policy: OverlapPolicy = OverlapPolicy.LEGACY):
        self._db = db
        self._policy = policy

    def base_statement(self, period: DateRange, party_size: int) -> Tuple[str, Tuple[Any, ...]]:
        """Базовый запрос поиска без фильтров и без группировки."""
        clause, clause_args = blocking_clause(period, self._policy)
        query = (
            "SELECT rt.name AS room_type, rt.description, "
            "rt.price * (julianday(?) - julianday(?)) AS cost, rt.pets_allowed "
            "FROM rooms JOIN room_types rt ON rt.name = rooms.room_type "
            "WHERE rooms.room_num NOT IN ("
            f"SELECT reservations.room_num FROM reservations WHERE {clause}"
            ") AND rt.max_person >= ?"
        )
        return query, (period.departure, period.arrival, *clause_args, party_size)

    def find_available_room_types(
        self, period: DateRange, party_size: int, filters: Optional[FilterSet] = None
    ) -> List[AvailableRoomType]:
        query, args = self.base_statement(period, party_size)
        statement = FilterStatementBuilder(query, args).build(filters)
        rows = self._db.fetch_all(
            statement.query + " GROUP BY rt.name ORDER BY rt.name", statement.args
        )
        return [AvailableRoomType.model_validate(row) for row in rows]

    def find_free_room_number(self, room_type: str, period: DateRange) -> Optional[int]:
        clause, clause_args = blocking_clause(period, self._policy)
        row = self._db.fetch_one(
            "SELECT rooms.room_num FROM rooms "
            "WHERE rooms.room_type = ? AND rooms.room_num NOT IN ("
            f"SELECT reservations.room_num FROM reservations WHERE {clause}"
            ") ORDER BY rooms.room_num LIMIT 1",
            (room_type, *clause_args),
        )
        return row["room_num"] if row else None
