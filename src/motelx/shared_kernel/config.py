"""
Настройки приложения.

Значения читаются из переменных окружения с префиксом ``MOTELX_``;
отсутствующие переменные заменяются значениями по умолчанию.
"""

from __future__ import annotations

import os
from enum import Enum
from typing import Literal, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

ENV_PREFIX = "MOTELX_"


class OverlapPolicy(str, Enum):
    """Правило, по которому существующее бронирование блокирует период."""

    # Конец или начало существующей брони попадает в новый период (включительно)
    LEGACY = "legacy"
    # Полноценная проверка пересечения интервалов
    STRICT = "strict"


class Settings(BaseModel):
    """Неизменяемый снимок настроек."""

    model_config = ConfigDict(frozen=True)

    database_path: str = "motelx.db"
    busy_timeout: float = Field(5.0, gt=0)
    booking_id_length: int = Field(10, ge=4, le=64)
    booking_id_attempts: int = Field(5, ge=1)
    overlap_policy: OverlapPolicy = OverlapPolicy.LEGACY
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    log_json: bool = False


def _to_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Загружает настройки из окружения.

    Некорректные значения приводят к ``pydantic.ValidationError``.
    """
    if env is None:
        env = os.environ

    values = {}
    for name in Settings.model_fields:
        raw = env.get(ENV_PREFIX + name.upper())
        if raw is None or raw.strip() == "":
            continue
        if name == "log_json":
            values[name] = _to_bool(raw)
        elif name == "log_level":
            values[name] = raw.strip().upper()
        else:
            values[name] = raw.strip()

    return Settings(**values)
