"""
Основные доменные типы и утилиты общего ядра.
"""

from datetime import date, datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, ValidationInfo, field_validator

# Публичный идентификатор бронирования (строка фиксированной длины)
BookingId = str


class DateRange(BaseModel):
    """Диапазон дат проживания [arrival, departure)."""

    model_config = ConfigDict(frozen=True)

    arrival: date
    departure: date

    @field_validator("departure")
    @classmethod
    def departure_after_arrival(cls, v: date, info: ValidationInfo) -> date:
        arrival = info.data.get("arrival")
        if arrival is not None and v <= arrival:
            raise ValueError("Дата выезда должна быть позже даты заезда")
        return v

    @property
    def nights(self) -> int:
        """Количество ночей в бронировании."""
        return (self.departure - self.arrival).days


class BookingStatus(str, Enum):
    """Известные статусы бронирования.

    Журнал событий хранит статус как свободную строку, поэтому
    этот список не ограничивает административные переходы.
    """

    NEW = "new"
    CONFIRMED = "confirmed"
    CHECKED_IN = "checked-in"
    CHECKED_OUT = "checked-out"
    CANCELLED = "cancelled"


# Общие исключения
class DomainException(Exception):
    """Базовое исключение для доменных ошибок."""

    pass


class BusinessRuleValidationException(DomainException):
    """Исключение при нарушении бизнес-правил."""

    pass


class BookingException(DomainException):
    """Базовое исключение процесса создания бронирования.

    ``recoverable`` отличает ситуации, которые пользователь может исправить
    сам (другие даты или тип номера), от системных сбоев записи.
    """

    recoverable = False


class NoRoomAvailableException(BookingException):
    """Нет свободного номера выбранного типа на выбранные даты."""

    recoverable = True

    def __init__(self, room_type: str, arrival: date, departure: date):
        super().__init__(
            f"Нет свободных номеров типа {room_type!r} "
            f"на период {arrival.isoformat()} - {departure.isoformat()}"
        )
        self.room_type = room_type
        self.arrival = arrival
        self.departure = departure


class GuestPersistException(BookingException):
    """Не удалось сохранить данные гостя."""

    pass


class ReservationPersistException(BookingException):
    """Не удалось сохранить бронирование."""

    pass


class ServicePersistException(BookingException):
    """Не удалось сохранить дополнительные услуги бронирования."""

    pass


class EventPersistException(BookingException):
    """Не удалось записать событие статуса бронирования."""

    pass


class DuplicateBookingIdException(BookingException):
    """Сгенерированный идентификатор бронирования уже занят."""

    pass


class StorageException(DomainException):
    """Базовое исключение уровня хранилища."""

    pass


class StorageUnavailableException(StorageException):
    """Хранилище недоступно или операция прервана по таймауту.

    Результат записи в этом случае неизвестен, повторять ее автоматически нельзя.
    """

    pass


class ConstraintViolationException(StorageException):
    """Нарушено ограничение целостности хранилища."""

    def __init__(self, message: str, constraint: Optional[str] = None):
        super().__init__(message)
        self.constraint = constraint


# Общие утилиты
def now() -> datetime:
    """Возвращает текущую дату и время."""
    return datetime.now()
