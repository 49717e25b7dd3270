"""
Общее ядро (Shared Kernel) системы бронирования мотеля.

Содержит общие типы данных, исключения, порты внешних возможностей
и их инфраструктурные реализации.
"""

from .config import OverlapPolicy, Settings, load_settings
from .domain import (
    BookingException,
    BookingId,
    BookingStatus,
    BusinessRuleValidationException,
    ConstraintViolationException,
    DateRange,
    # Исключения
    DomainException,
    DuplicateBookingIdException,
    EventPersistException,
    GuestPersistException,
    NoRoomAvailableException,
    ReservationPersistException,
    ServicePersistException,
    StorageException,
    StorageUnavailableException,
    # Утилиты
    now,
)
from .interfaces import Clock, IDatabase, IIdGenerator, ILogger, QueryResult, Row

__all__ = [
    # Базовые типы
    "BookingId",
    "DateRange",
    "BookingStatus",
    # Настройки
    "OverlapPolicy",
    "Settings",
    "load_settings",
    # Порты
    "Clock",
    "IDatabase",
    "IIdGenerator",
    "ILogger",
    "QueryResult",
    "Row",
    # Исключения
    "DomainException",
    "BusinessRuleValidationException",
    "BookingException",
    "NoRoomAvailableException",
    "GuestPersistException",
    "ReservationPersistException",
    "ServicePersistException",
    "EventPersistException",
    "DuplicateBookingIdException",
    "StorageException",
    "StorageUnavailableException",
    "ConstraintViolationException",
    # Утилиты
    "now",
]
