"""
Инфраструктурный слой общего ядра.

Содержит адаптер хранилища поверх DB-API драйвера ``sqlite3``, схему
таблиц, генератор идентификаторов бронирования и настройку логирования.
"""

from __future__ import annotations

import logging
import re
import secrets
import sqlite3
import string
import threading
from contextlib import contextmanager
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any, Iterator, List, Optional, Sequence

import structlog

from .domain import ConstraintViolationException, StorageUnavailableException
from .interfaces import ILogger, QueryResult, Row

SCHEMA = """
CREATE TABLE IF NOT EXISTS room_types (
    name         TEXT PRIMARY KEY,
    description  TEXT NOT NULL DEFAULT '',
    price        REAL NOT NULL CHECK (price >= 0),
    max_person   INTEGER NOT NULL CHECK (max_person > 0),
    pets_allowed INTEGER NOT NULL DEFAULT 0
);

CREATE TABLE IF NOT EXISTS rooms (
    room_num  INTEGER PRIMARY KEY,
    floor     INTEGER NOT NULL,
    room_type TEXT NOT NULL REFERENCES room_types (name)
);

CREATE TABLE IF NOT EXISTS guests (
    guest_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    first_name TEXT NOT NULL,
    last_name  TEXT NOT NULL,
    address    TEXT NOT NULL DEFAULT '',
    city       TEXT NOT NULL DEFAULT '',
    dob        TEXT,
    phone      TEXT NOT NULL DEFAULT ''
);

CREATE TABLE IF NOT EXISTS reservations (
    res_id           TEXT PRIMARY KEY,
    user_email       TEXT NOT NULL,
    guest_id         INTEGER NOT NULL REFERENCES guests (guest_id),
    room_num         INTEGER NOT NULL REFERENCES rooms (room_num),
    guests           INTEGER NOT NULL CHECK (guests > 0),
    arrival          TEXT NOT NULL,
    departure        TEXT NOT NULL,
    total_price      REAL NOT NULL,
    transaction_date TEXT NOT NULL,
    CHECK (departure > arrival)
);

CREATE INDEX IF NOT EXISTS reservations_room_dates
    ON reservations (room_num, arrival, departure);

CREATE TABLE IF NOT EXISTS reservation_services (
    service_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    res_id       TEXT NOT NULL REFERENCES reservations (res_id),
    service_name TEXT NOT NULL,
    UNIQUE (res_id, service_name)
);

CREATE TABLE IF NOT EXISTS reservation_events (
    event_id   INTEGER PRIMARY KEY AUTOINCREMENT,
    res_id     TEXT NOT NULL REFERENCES reservations (res_id),
    user_email TEXT NOT NULL,
    status     TEXT NOT NULL,
    details    TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL
);

CREATE INDEX IF NOT EXISTS reservation_events_res_id
    ON reservation_events (res_id, created_at, event_id);
"""

# "UNIQUE constraint failed: reservations.res_id" -> "reservations.res_id"
_CONSTRAINT_RE = re.compile(r"constraint failed:\s*(?P<name>.+)$", re.IGNORECASE)

_UNAVAILABLE_MARKERS = ("locked", "busy", "unable to open", "disk i/o")


def to_db_value(value: Any) -> Any:
    """Приводит значение Python к типу, который хранится в SQLite."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        # Фиксированная ширина, чтобы строки сортировались хронологически
        return value.isoformat(timespec="microseconds")
    if isinstance(value, date):
        return value.isoformat()
    return value


class _ConnectionState(threading.local):
    connection: Optional[sqlite3.Connection] = None
    depth: int = 0


class SQLiteDatabase:
    """Адаптер хранилища поверх ``sqlite3``.

    Каждый поток получает собственное соединение, поэтому один экземпляр
    можно разделять между обработчиками запросов. Для базы ``:memory:``
    это означает отдельную базу на каждый поток.

    Транзакции открываются через ``BEGIN IMMEDIATE``: блокировка записи
    берется сразу, и конкурирующие писатели (в том числе из других
    процессов) ждут ее до ``timeout`` секунд. Вложенные транзакции
    превращаются в точки сохранения.
    """

    def __init__(self, path: str = ":memory:", timeout: float = 5.0, logger: Optional[ILogger] = None):
        self._path = path
        self._timeout = timeout
        self._state = _ConnectionState()
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def path(self) -> str:
        return self._path

    def _connection(self) -> sqlite3.Connection:
        if self._state.connection is None:
            try:
                conn = sqlite3.connect(self._path, timeout=self._timeout, isolation_level=None)
            except sqlite3.OperationalError as e:
                raise StorageUnavailableException(str(e)) from e
            conn.row_factory = sqlite3.Row
            conn.execute("PRAGMA foreign_keys = ON")
            self._state.connection = conn
        return self._state.connection

    def close(self) -> None:
        """Закрывает соединение текущего потока."""
        if self._state.connection is not None:
            self._state.connection.close()
            self._state.connection = None
            self._state.depth = 0

    def _run(self, sql: str, args: Sequence[Any] = ()) -> sqlite3.Cursor:
        conn = self._connection()
        try:
            return conn.execute(sql, [to_db_value(a) for a in args])
        except sqlite3.IntegrityError as e:
            match = _CONSTRAINT_RE.search(str(e))
            raise ConstraintViolationException(
                str(e), constraint=match.group("name").strip() if match else None
            ) from e
        except sqlite3.OperationalError as e:
            if any(marker in str(e).lower() for marker in _UNAVAILABLE_MARKERS):
                self._logger.error("Storage unavailable", error=str(e), path=self._path)
                raise StorageUnavailableException(str(e)) from e
            raise

    def execute(self, sql: str, args: Sequence[Any] = ()) -> QueryResult:
        cursor = self._run(sql, args)
        rows: List[Row] = []
        if cursor.description is not None:
            rows = [dict(row) for row in cursor.fetchall()]
        return QueryResult(rowcount=cursor.rowcount, lastrowid=cursor.lastrowid, rows=rows)

    def fetch_all(self, sql: str, args: Sequence[Any] = ()) -> List[Row]:
        return self.execute(sql, args).rows

    def fetch_one(self, sql: str, args: Sequence[Any] = ()) -> Optional[Row]:
        rows = self.execute(sql, args).rows
        return rows[0] if rows else None

    def executescript(self, script: str) -> None:
        self._connection().executescript(script)

    @contextmanager
    def transaction(self) -> Iterator[None]:
        depth = self._state.depth
        savepoint = f"sp_{depth}"
        self._run("BEGIN IMMEDIATE" if depth == 0 else f"SAVEPOINT {savepoint}")
        self._state.depth = depth + 1
        try:
            yield
        except BaseException:
            self._state.depth = depth
            if depth == 0:
                if self._connection().in_transaction:
                    self._run("ROLLBACK")
            else:
                self._run(f"ROLLBACK TO SAVEPOINT {savepoint}")
                self._run(f"RELEASE SAVEPOINT {savepoint}")
            raise
        self._state.depth = depth
        if depth == 0:
            try:
                self._run("COMMIT")
            except StorageUnavailableException:
                if self._connection().in_transaction:
                    self._run("ROLLBACK")
                raise
        else:
            self._run(f"RELEASE SAVEPOINT {savepoint}")


def create_schema(db: SQLiteDatabase) -> None:
    """Создает таблицы, если их еще нет."""
    db.executescript(SCHEMA)


class RandomStringGenerator:
    """Генератор случайных идентификаторов из заглавных букв и цифр."""

    alphabet = string.ascii_uppercase + string.digits

    def generate(self, length: int) -> str:
        if length < 1:
            raise ValueError("Длина идентификатора должна быть положительной")
        return "".join(secrets.choice(self.alphabet) for _ in range(length))


def configure_logging(level: str = "INFO", json_logs: bool = False) -> None:
    """Настраивает structlog поверх стандартного logging."""
    renderer = (
        structlog.processors.JSONRenderer()
        if json_logs
        else structlog.processors.KeyValueRenderer(key_order=["timestamp", "level", "logger", "event"])
    )
    structlog.configure(
        processors=[
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    handler = logging.StreamHandler()
    handler.setFormatter(structlog.stdlib.ProcessorFormatter(processor=renderer))

    package_logger = logging.getLogger("motelx")
    package_logger.handlers = [handler]
    package_logger.setLevel(level.upper())
    package_logger.propagate = False


def get_logger(name: str) -> ILogger:
    return structlog.get_logger(name)
