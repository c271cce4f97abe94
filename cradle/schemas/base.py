# cradle/schemas/base.py
from __future__ import annotations

from datetime import date, datetime
from typing import Annotated, Any

from pydantic import AfterValidator, BaseModel, BeforeValidator, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

from cradle.db.enums import Period
from cradle.utils.dates import get_date_range, parse_datetime, to_naive


def _coerce_datetime(value: Any) -> Any:
    # "2024-01-15" и "2024-01-15T10:00:00Z": оба допустимы
    if isinstance(value, (str, date)) and not isinstance(value, datetime):
        return parse_datetime(value)
    return value


# Любое время из запроса -> naive локальное
LocalDateTime = Annotated[datetime, BeforeValidator(_coerce_datetime), AfterValidator(to_naive)]

Id = Annotated[str, Field(min_length=1, max_length=64)]
Notes = Annotated[str, Field(max_length=500)]


class CamelModel(BaseModel):
    """JSON наружу и внутрь в camelCase, в Python snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class DateRange(CamelModel):
    start: LocalDateTime
    end: LocalDateTime


class ChildInput(CamelModel):
    child_id: Id


class IdInput(CamelModel):
    id: Id


class PeriodFilter(ChildInput):
    """Фильтр списка: явный dateRange важнее period, без обоих отдаём всё подряд."""

    period: Period | None = None
    date_range: DateRange | None = None

    def window(self) -> tuple[datetime, datetime] | None:
        if self.date_range is not None:
            return self.date_range.start, self.date_range.end
        if self.period is not None:
            return get_date_range(self.period.value)
        return None


class SummaryInput(ChildInput):
    period: Period = Period.TODAY


class IntervalUpdate(CamelModel):
    """Общая проверка для обновлений интервальных записей."""

    @model_validator(mode="after")
    def _check_order(self):
        start = getattr(self, "start_time", None)
        end = getattr(self, "end_time", None)
        if start is not None and end is not None and end < start:
            raise ValueError("endTime must not be before startTime")
        return self


class SuccessOut(CamelModel):
    success: bool = True
