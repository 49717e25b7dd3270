"""
Модуль контекста размещения (Accommodation Context).

Отвечает за справочник номеров и поиск свободных номеров:
- Типы номеров, номера, цены и вместимость
- Поиск свободных типов номеров на период с фильтрами
- Выбор конкретного свободного номера для бронирования
"""

from . import application, domain, filters, infrastructure, interfaces

__all__ = [
    "domain",
    "application",
    "filters",
    "infrastructure",
    "interfaces",
]
