"""
Построитель фильтров для поиска свободных номеров.

Дописывает к базовому параметризованному запросу условия ``AND`` только
для заданных фильтров и держит список аргументов в том же порядке,
что и плейсхолдеры ``?`` в итоговом тексте. К хранилищу не обращается.
"""

import re
from typing import Any, Mapping, NamedTuple, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

_PRICE_RE = re.compile(r"\d+(?:[.,]\d+)?")

# поле FilterSet -> параметр запроса
REQUEST_PARAMS = (("max_price", "price"), ("floor", "floor"), ("pets_allowed", "pets"))


class FilterSet(BaseModel):
    """Необязательные фильтры поиска. Порядок полей задает порядок условий."""

    model_config = ConfigDict(frozen=True)

    max_price: Optional[float] = Field(None, ge=0)
    floor: Optional[int] = None
    pets_allowed: Optional[bool] = None

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FilterSet":
        """Собирает фильтры из параметров запроса ``price``, ``floor``, ``pets``."""
        values = {}
        for field_name, param in REQUEST_PARAMS:
            raw = params.get(param)
            if raw not in (None, ""):
                values[field_name] = raw
        return cls(**values)

    @field_validator("max_price", mode="before")
    @classmethod
    def parse_price(cls, v):
        # "$150" -> 150.0; строка без числа остается как есть и не пройдет проверку
        if isinstance(v, str):
            price = extract_price(v)
            return v if price is None else price
        return v

    @field_validator("pets_allowed", mode="before")
    @classmethod
    def parse_pets(cls, v):
        if isinstance(v, str):
            if v.strip() not in ("0", "1"):
                raise ValueError("Ожидается 0 или 1")
            return v.strip() == "1"
        return v


# (поле FilterSet, условие) в порядке объявления
FILTER_CLAUSES: Tuple[Tuple[str, str], ...] = (
    ("max_price", "price <= ?"),
    ("floor", "floor = ?"),
    ("pets_allowed", "pets_allowed = ?"),
)


class FilterStatement(NamedTuple):
    """Готовый запрос и его позиционные аргументы."""

    query: str
    args: Tuple[Any, ...]


class FilterStatementBuilder:
    """Дописывает условия фильтров к базовому запросу."""

    def __init__(self, query: str, args: Sequence[Any] = ()):
        self._query = query
        self._args = tuple(args)

    def build(self, filters: Optional[FilterSet] = None) -> FilterStatement:
        query = self._query
        args = list(self._args)

        if filters is not None:
            for field_name, clause in FILTER_CLAUSES:
                value = getattr(filters, field_name)
                if value is None:
                    continue
                query += f" AND {clause}"
                args.append(value)

        return FilterStatement(query=query, args=tuple(args))


def extract_price(raw: str) -> Optional[float]:
    """Извлекает число из строки цены вида ``"$150"`` или ``"99,50"``."""
    match = _PRICE_RE.search(raw)
    if match is None:
        return None
    return float(match.group(0).replace(",", "."))
