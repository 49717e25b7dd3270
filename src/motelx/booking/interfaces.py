"""
Интерфейсы (порты) для контекста бронирования.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, ContextManager, List, Optional, Protocol

from ..shared_kernel import BookingId
from .domain import GuestInput, Reservation, ReservationEvent


class IGuestRepository(Protocol):
    """Интерфейс репозитория для гостей."""

    def add(self, guest: GuestInput) -> Optional[int]: ...
    def count(self) -> int: ...


class IReservationRepository(Protocol):
    """Интерфейс репозитория для бронирований."""

    def add(self, reservation: Reservation) -> bool: ...
    def get_by_id(self, booking_id: BookingId) -> Optional[Reservation]: ...
    def count(self) -> int: ...


class IReservationServiceRepository(Protocol):
    """Интерфейс репозитория для дополнительных услуг бронирования."""

    def add(self, booking_id: BookingId, service_name: str) -> bool: ...
    def list_for(self, booking_id: BookingId) -> List[str]: ...


class IReservationEventRepository(Protocol):
    """Интерфейс журнала событий статуса."""

    def append(
        self,
        booking_id: BookingId,
        actor_email: str,
        status: str,
        details: str,
        created_at: datetime,
    ) -> bool: ...
    def latest(self, booking_id: BookingId) -> Optional[ReservationEvent]: ...
    def history(self, booking_id: BookingId) -> List[ReservationEvent]: ...


class IBookingUnitOfWork(Protocol):
    """Интерфейс Unit of Work для контекста Booking."""

    @property
    def guests(self) -> IGuestRepository: ...
    @property
    def reservations(self) -> IReservationRepository: ...
    @property
    def services(self) -> IReservationServiceRepository: ...
    @property
    def events(self) -> IReservationEventRepository: ...

    def savepoint(self) -> ContextManager[None]: ...
    def __enter__(self) -> IBookingUnitOfWork: ...
    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None: ...
