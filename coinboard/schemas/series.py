from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field, model_validator


class PricePoint(BaseModel):
    model_config = ConfigDict(frozen=True)

    ts: int
    price: float = Field(ge=0)


Series = tuple[PricePoint, ...]


class SeriesWindow(BaseModel):
    """Either the fixed last-day window or an explicit [start, end) range in seconds."""

    model_config = ConfigDict(frozen=True)

    start: int | None = None
    end: int | None = None

    @model_validator(mode="after")
    def check_bounds(self) -> "SeriesWindow":
        if (self.start is None) != (self.end is None):
            raise ValueError("window needs both start and end, or neither")
        if self.start is not None and self.end is not None and self.start >= self.end:
            raise ValueError("window start must be before end")
        return self

    @classmethod
    def last_day(cls) -> "SeriesWindow":
        return cls()

    @classmethod
    def between(cls, start: int, end: int) -> "SeriesWindow":
        return cls(start=int(start), end=int(end))

    @property
    def is_last_day(self) -> bool:
        return self.start is None


class ChartSegment(BaseModel):
    above_average: bool
    points: list[PricePoint]


class DetailChart(BaseModel):
    asset_id: str
    time_range: str
    points: list[PricePoint]
    average: float
    segments: list[ChartSegment]
