from pydantic import BaseModel, ConfigDict, Field


class Asset(BaseModel):
    model_config = ConfigDict(frozen=True, extra="ignore")

    id: str
    name: str
    symbol: str
    current_price: float = Field(ge=0)
    image: str
    market_cap: int | None = Field(default=None, ge=0)
    price_change_percentage_24h: float | None = None
    market_cap_rank: int
