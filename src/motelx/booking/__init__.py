"""
Модуль контекста бронирования (Booking Context).

Отвечает за оформление бронирований, включая:
- Сохранение гостя, выбор номера и запись брони одной транзакцией
- Дополнительные услуги бронирования
- Журнал статусов и чтение бронирований для панелей
"""

from . import application, domain, infrastructure, interfaces, queries

__all__ = [
    "domain",
    "application",
    "infrastructure",
    "interfaces",
    "queries",
]
