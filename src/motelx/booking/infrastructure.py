"""
Инфраструктурный слой контекста бронирования.

Содержит реализации репозиториев поверх параметризованных SQL-запросов,
Unit of Work на транзакциях хранилища и блокировки по типу номера.
"""

import threading
from contextlib import contextmanager
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from ..shared_kernel import BookingId, IDatabase, ILogger
from ..shared_kernel.infrastructure import get_logger
from . import interfaces as ports
from .domain import GuestInput, Reservation, ReservationEvent


class SqlGuestRepository(ports.IGuestRepository):
    """Гости в таблице ``guests``."""

    def __init__(self, db: IDatabase):
        self._db = db

    def add(self, guest: GuestInput) -> Optional[int]:
        result = self._db.execute(
            "INSERT INTO guests (first_name, last_name, address, city, dob, phone) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            (guest.first_name, guest.last_name, guest.address, guest.city, guest.dob, guest.phone),
        )
        if result.rowcount < 1:
            return None
        return result.lastrowid

    def count(self) -> int:
        return self._db.fetch_one("SELECT COUNT(*) AS n FROM guests")["n"]


class SqlReservationRepository(ports.IReservationRepository):
    """Бронирования в таблице ``reservations``."""

    def __init__(self, db: IDatabase):
        self._db = db

    def add(self, reservation: Reservation) -> bool:
        result = self._db.execute(
            "INSERT INTO reservations "
            "(res_id, user_email, guest_id, room_num, guests, arrival, departure, total_price, "
            "transaction_date) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)",
            (
                reservation.res_id,
                reservation.user_email,
                reservation.guest_id,
                reservation.room_num,
                reservation.guests,
                reservation.arrival,
                reservation.departure,
                reservation.total_price,
                reservation.transaction_date,
            ),
        )
        return result.rowcount > 0

    def get_by_id(self, booking_id: BookingId) -> Optional[Reservation]:
        row = self._db.fetch_one("SELECT * FROM reservations WHERE res_id = ?", (booking_id,))
        return Reservation.model_validate(row) if row else None

    def count(self) -> int:
        return self._db.fetch_one("SELECT COUNT(*) AS n FROM reservations")["n"]


class SqlReservationServiceRepository(ports.IReservationServiceRepository):
    """Дополнительные услуги в таблице ``reservation_services``."""

    def __init__(self, db: IDatabase):
        self._db = db

    def add(self, booking_id: BookingId, service_name: str) -> bool:
        result = self._db.execute(
            "INSERT INTO reservation_services (res_id, service_name) VALUES (?, ?)",
            (booking_id, service_name),
        )
        return result.rowcount > 0

    def list_for(self, booking_id: BookingId) -> List[str]:
        rows = self._db.fetch_all(
            "SELECT service_name FROM reservation_services WHERE res_id = ? ORDER BY service_id",
            (booking_id,),
        )
        return [row["service_name"] for row in rows]


class SqlReservationEventRepository(ports.IReservationEventRepository):
    """Журнал статусов в таблице ``reservation_events``.

    При равном ``created_at`` более поздним считается событие
    с большим ``event_id``.
    """

    def __init__(self, db: IDatabase):
        self._db = db

    def append(
        self,
        booking_id: BookingId,
        actor_email: str,
        status: str,
        details: str,
        created_at: datetime,
    ) -> bool:
        result = self._db.execute(
            "INSERT INTO reservation_events (res_id, user_email, status, details, created_at) "
            "VALUES (?, ?, ?, ?, ?)",
            (booking_id, actor_email, status, details, created_at),
        )
        return result.rowcount > 0

    def latest(self, booking_id: BookingId) -> Optional[ReservationEvent]:
        row = self._db.fetch_one(
            "SELECT * FROM reservation_events WHERE res_id = ? "
            "ORDER BY created_at DESC, event_id DESC LIMIT 1",
            (booking_id,),
        )
        return ReservationEvent.model_validate(row) if row else None

    def history(self, booking_id: BookingId) -> List[ReservationEvent]:
        rows = self._db.fetch_all(
            "SELECT * FROM reservation_events WHERE res_id = ? ORDER BY created_at, event_id",
            (booking_id,),
        )
        return [ReservationEvent.model_validate(row) for row in rows]


class BookingUnitOfWork(ports.IBookingUnitOfWork):
    """Единица работы для контекста бронирования.

    Все записи внутри ``with`` выполняются в одной транзакции хранилища:
    при исключении откатываются целиком.
    """

    def __init__(self, db: IDatabase, logger: Optional[ILogger] = None):
        self._db = db
        self._guests = SqlGuestRepository(db)
        self._reservations = SqlReservationRepository(db)
        self._services = SqlReservationServiceRepository(db)
        self._events = SqlReservationEventRepository(db)
        self._logger = logger or get_logger(__name__)
        self._transaction = None

    @property
    def guests(self) -> ports.IGuestRepository:
        return self._guests

    @property
    def reservations(self) -> ports.IReservationRepository:
        return self._reservations

    @property
    def services(self) -> ports.IReservationServiceRepository:
        return self._services

    @property
    def events(self) -> ports.IReservationEventRepository:
        return self._events

    def savepoint(self):
        """Вложенная транзакция: откатывает только свои изменения."""
        return self._db.transaction()

    def __enter__(self) -> "BookingUnitOfWork":
        self._transaction = self._db.transaction()
        self._transaction.__enter__()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        transaction, self._transaction = self._transaction, None
        transaction.__exit__(exc_type, exc_val, exc_tb)
        if exc_type is None:
            self._logger.debug("BookingUnitOfWork committed")
        else:
            self._logger.warning("BookingUnitOfWork rolled back", error=repr(exc_val))
        return False  # Пробрасываем исключение дальше, если оно было


class RoomTypeLocks:
    """Блокировки процесса по типу номера.

    Удерживаются на всё время транзакции оформления, чтобы поиск
    свободного номера и запись брони не разделялись чужой записью.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def _lock_for(self, room_type: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(room_type)
            if lock is None:
                lock = self._locks[room_type] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, room_type: str) -> Iterator[None]:
        with self._lock_for(room_type):
            yield
