"""
Доменная модель контекста бронирования.

Черновик бронирования и данные гостя, которые вызывающая сторона
собирает до оформления, а также сохраняемые записи: гость, бронирование,
дополнительная услуга и событие статуса.
"""

from datetime import date, datetime
from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from ..shared_kernel import BookingId, BookingStatus, DateRange


class GuestInput(BaseModel):
    """Данные гостя из формы бронирования."""

    model_config = ConfigDict(frozen=True)

    first_name: str = Field(..., min_length=1)
    last_name: str = Field(..., min_length=1)
    address: str = ""
    city: str = ""
    dob: Optional[date] = None
    phone: str = ""


class BookingDraft(BaseModel):
    """Черновик бронирования, собранный вызывающей стороной.

    Передается в процесс оформления явно и живет только в рамках запроса.
    """

    model_config = ConfigDict(frozen=True)

    room_type: str = Field(..., min_length=1)
    arrival: date
    departure: date
    party_size: int = Field(..., gt=0)
    services: FrozenSet[str] = frozenset()
    total_price: float = Field(..., ge=0)

    @model_validator(mode="after")
    def departure_after_arrival(self) -> "BookingDraft":
        DateRange(arrival=self.arrival, departure=self.departure)
        return self

    @property
    def period(self) -> DateRange:
        return DateRange(arrival=self.arrival, departure=self.departure)


class Reservation(BaseModel):
    """Бронирование. После создания не изменяется."""

    model_config = ConfigDict(frozen=True)

    res_id: BookingId
    user_email: str
    guest_id: int
    room_num: int
    guests: int = Field(..., gt=0)
    arrival: date
    departure: date
    total_price: float
    transaction_date: datetime


class ReservationEvent(BaseModel):
    """Запись журнала статусов бронирования."""

    model_config = ConfigDict(frozen=True)

    event_id: int
    res_id: BookingId
    user_email: str
    status: str
    details: str = ""
    created_at: datetime


class BookingConfirmation(BaseModel):
    """Результат успешного оформления.

    ``clear_draft`` сообщает вызывающей стороне, что черновик можно удалить.
    """

    booking_id: BookingId
    room_num: int
    guest_id: int
    status: str = BookingStatus.NEW.value
    clear_draft: bool = True


def new_booking_details(actor_email: str) -> str:
    """Текст первого события нового бронирования."""
    return f"New booking created by user {actor_email}"
