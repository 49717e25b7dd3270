"""
Запросы чтения для панелей бронирований.

Текущий статус бронирования вычисляется как статус последнего события
(наибольший ``created_at``, при равенстве - наибольший ``event_id``).
Бронирования без событий в выборки не попадают.
"""

import json
from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator

from ..shared_kernel import BookingId, IDatabase

_CURRENT_EVENT = (
    "re1.event_id = (SELECT re2.event_id FROM reservation_events re2 "
    "WHERE re2.res_id = r.res_id "
    "ORDER BY re2.created_at DESC, re2.event_id DESC LIMIT 1)"
)

_SERVICES = (
    "(SELECT json_group_array(rs.service_name) FROM reservation_services rs "
    "WHERE rs.res_id = r.res_id) AS services"
)

_SUMMARY_COLUMNS = (
    "r.res_id, r.user_email, g.first_name, g.last_name, g.address, g.city, g.phone, "
    "r.room_num, r.guests AS party_size, r.arrival, r.departure, r.transaction_date, "
    "re1.status, r.total_price, " + _SERVICES
)

_SUMMARY_FROM = (
    "FROM reservations r "
    "JOIN reservation_events re1 ON re1.res_id = r.res_id "
    "JOIN guests g ON g.guest_id = r.guest_id "
)


class ReservationSummary(BaseModel):
    """Строка списка бронирований."""

    res_id: BookingId
    user_email: str
    first_name: str
    last_name: str
    address: str
    city: str
    phone: str
    room_num: int
    party_size: int
    arrival: date
    departure: date
    transaction_date: datetime
    status: str
    total_price: float
    services: List[str] = Field(default_factory=list)

    @field_validator("services", mode="before")
    @classmethod
    def parse_services(cls, v):
        if v is None or v == "":
            return []
        if isinstance(v, str):
            return sorted(json.loads(v))
        return v


class ReservationDetail(ReservationSummary):
    """Полная карточка бронирования."""

    room_type: str
    floor: int
    room_price: float
    nights: int


class ReservationQueryService:
    """Чтение бронирований вместе с гостем, текущим статусом и услугами."""

    def __init__(self, db: IDatabase):
        self._db = db

    def fetch_single(self, booking_id: BookingId) -> Optional[ReservationDetail]:
        row = self._db.fetch_one(
            f"SELECT {_SUMMARY_COLUMNS}, "
            "rt.name AS room_type, rooms.floor, "
            "rt.price * (julianday(r.departure) - julianday(r.arrival)) AS room_price, "
            "CAST(julianday(r.departure) - julianday(r.arrival) AS INTEGER) AS nights "
            f"{_SUMMARY_FROM}"
            "JOIN rooms ON rooms.room_num = r.room_num "
            "JOIN room_types rt ON rt.name = rooms.room_type "
            f"WHERE {_CURRENT_EVENT} AND r.res_id = ?",
            (booking_id,),
        )
        return ReservationDetail.model_validate(row) if row else None

    def fetch_all(self) -> List[ReservationSummary]:
        """Все бронирования, новые первыми."""
        rows = self._db.fetch_all(
            f"SELECT {_SUMMARY_COLUMNS} {_SUMMARY_FROM}"
            f"WHERE {_CURRENT_EVENT} "
            "ORDER BY r.transaction_date DESC, r.rowid DESC"
        )
        return [ReservationSummary.model_validate(row) for row in rows]

    def filter_by_status(self, status: str) -> List[ReservationSummary]:
        """Бронирования с заданным текущим статусом, старые первыми."""
        rows = self._db.fetch_all(
            f"SELECT {_SUMMARY_COLUMNS} {_SUMMARY_FROM}"
            f"WHERE {_CURRENT_EVENT} AND re1.status = ? "
            "ORDER BY r.transaction_date, r.rowid",
            (status,),
        )
        return [ReservationSummary.model_validate(row) for row in rows]
