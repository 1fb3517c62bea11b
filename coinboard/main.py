from __future__ import annotations

from contextlib import asynccontextmanager

from fastapi import FastAPI

from coinboard.api.routes import router
from coinboard.config.settings import Settings, get_settings
from coinboard.errors import AssetListUnavailableError
from coinboard.integrations.coingecko_rest import CoinGeckoRestClient
from coinboard.services.detail_chart import DetailChartService
from coinboard.services.favorites import FavoritesStore
from coinboard.services.fetch_coordinator import FetchCoordinator
from coinboard.services.market_gateway import MarketDataGateway
from coinboard.services.series_cache import SeriesCache
from coinboard.services.series_list import SeriesListController
from coinboard.services.slot_board import SlotBoard


def build_state(app: FastAPI, settings: Settings, rest_client=None) -> None:
    """Wire the core onto app.state. One cache instance per process."""
    if rest_client is None:
        rest_client = CoinGeckoRestClient(
            vs_currency=settings.COINBOARD_VS_CURRENCY,
            base_url=settings.COINGECKO_API_BASE,
            timeout=settings.COINBOARD_HTTP_TIMEOUT_SEC,
        )
    gateway = MarketDataGateway(rest_client)
    cache = SeriesCache()
    coordinator = FetchCoordinator(
        cache,
        gateway,
        stagger_sec=settings.COINBOARD_FETCH_STAGGER_SEC,
        fetch_timeout_sec=settings.COINBOARD_FETCH_TIMEOUT_SEC,
    )
    favorites = FavoritesStore(settings.COINBOARD_FAVORITES_PATH)

    app.state.settings = settings
    app.state.market_gateway = gateway
    app.state.series_cache = cache
    app.state.fetch_coordinator = coordinator
    app.state.favorites = favorites
    app.state.list_controller = SeriesListController(favorites)
    app.state.slot_board = SlotBoard(coordinator, size=settings.COINBOARD_SLOT_COUNT)
    app.state.detail_service = DetailChartService(cache, gateway)


@asynccontextmanager
async def lifespan(app: FastAPI):
    try:
        app.state.list_controller.refresh(app.state.market_gateway)
    except AssetListUnavailableError:
        # list stays empty; /v1/assets/refresh can retry
        print("[APP][startup_refresh_failed]", flush=True)

    try:
        yield
    finally:
        app.state.fetch_coordinator.shutdown()
        print("[APP][shutdown] coordinator timers cancelled", flush=True)


app = FastAPI(title="Coinboard", version="0.1.0", lifespan=lifespan)
app.include_router(router, prefix="/v1")
build_state(app, get_settings())
