"""
Интерфейсы (порты) общего ядра.

Внешние возможности, которые ядро бронирования получает извне:
хранилище с параметризованными запросами, генератор идентификаторов,
логгер и источник текущего времени.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable, ContextManager, Dict, List, Optional, Protocol, Sequence

Row = Dict[str, Any]

# Источник текущего времени (подменяется в тестах)
Clock = Callable[[], datetime]


@dataclass(frozen=True)
class QueryResult:
    """Результат выполнения одного параметризованного запроса."""

    rowcount: int = 0
    lastrowid: Optional[int] = None
    rows: List[Row] = field(default_factory=list)


class ILogger(Protocol):
    """Интерфейс для логгера."""

    def info(self, message: str, **kwargs: Any) -> None: ...
    def error(self, message: str, **kwargs: Any) -> None: ...
    def warning(self, message: str, **kwargs: Any) -> None: ...
    def debug(self, message: str, **kwargs: Any) -> None: ...


class IDatabase(Protocol):
    """Интерфейс драйвера базы данных.

    Плейсхолдеры позиционные (``?``), аргументы передаются в том же порядке.
    """

    def execute(self, sql: str, args: Sequence[Any] = ()) -> QueryResult: ...
    def fetch_all(self, sql: str, args: Sequence[Any] = ()) -> List[Row]: ...
    def fetch_one(self, sql: str, args: Sequence[Any] = ()) -> Optional[Row]: ...
    def transaction(self) -> ContextManager[None]: ...


class IIdGenerator(Protocol):
    """Генератор публичных идентификаторов бронирования."""

    def generate(self, length: int) -> str: ...
