"""
Доменная модель контекста размещения.

Справочник типов номеров и самих номеров, а также правило,
по которому существующее бронирование блокирует запрошенный период.
"""

from datetime import date

from pydantic import BaseModel, ConfigDict, Field

from ..shared_kernel import DateRange, OverlapPolicy


class RoomType(BaseModel):
    """Тип номера: общая цена, описание, вместимость и правила для животных."""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1)
    description: str = ""
    price: float = Field(..., ge=0, description="Цена за ночь")
    max_person: int = Field(..., gt=0)
    pets_allowed: bool = False

    def cost_for(self, period: DateRange) -> float:
        """Стоимость проживания: цена за ночь на количество ночей."""
        return self.price * period.nights


class Room(BaseModel):
    """Конкретный номер определенного типа."""

    model_config = ConfigDict(frozen=True)

    room_num: int = Field(..., gt=0)
    floor: int
    room_type: str


class AvailableRoomType(BaseModel):
    """Строка результата поиска: тип номера, свободный на весь период."""

    room_type: str
    description: str
    cost: float
    pets_allowed: bool


def blocks(
    existing_arrival: date,
    existing_departure: date,
    window: DateRange,
    policy: OverlapPolicy = OverlapPolicy.LEGACY,
) -> bool:
    """Проверяет, блокирует ли существующее бронирование период ``window``.

    ``LEGACY``: бронь блокирует период, если ее дата заезда или дата выезда
    попадает в [arrival, departure] включительно. Бронь, целиком накрывающая
    период, при этом не обнаруживается.

    ``STRICT``: обычное пересечение полуоткрытых интервалов.
    """
    if policy == OverlapPolicy.STRICT:
        return existing_arrival < window.departure and existing_departure > window.arrival

    return (
        window.arrival <= existing_arrival <= window.departure
        or window.arrival <= existing_departure <= window.departure
    )
