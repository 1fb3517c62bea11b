from pydantic import BaseModel

from coinboard.schemas.series import PricePoint


class SlotView(BaseModel):
    index: int
    asset_id: str | None = None
    state: str = "UNBOUND"
    points: list[PricePoint] = []
    generation: int = 0
    updated_at: int | None = None


class BindRequest(BaseModel):
    asset_id: str
