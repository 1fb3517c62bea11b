from fastapi import APIRouter, HTTPException, Request

from coinboard.errors import AssetListUnavailableError, SeriesUnavailableError
from coinboard.schemas.slot import BindRequest
from coinboard.services.series_list import FilterMode, SortKey

router = APIRouter()


def _list_controller(request: Request):
    return request.app.state.list_controller


@router.get('/assets')
def get_assets(request: Request, filter: str | None = None, search: str | None = None):
    controller = _list_controller(request)
    filter_mode = _filter_mode(filter) if filter is not None else None

    rows = controller.visible(filter_mode=filter_mode, search_text=search)
    return {
        **controller.state(),
        'count': len(rows),
        'assets': [a.model_dump() for a in rows],
    }


def _filter_mode(value: str) -> FilterMode:
    try:
        return FilterMode(value)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='INVALID_FILTER') from exc


@router.post('/assets/filter/{mode}')
def set_filter(mode: str, request: Request):
    controller = _list_controller(request)
    controller.set_filter(_filter_mode(mode))
    return controller.state()


@router.post('/assets/search')
def set_search(request: Request, text: str = ''):
    controller = _list_controller(request)
    controller.set_search(text)
    return controller.state()


@router.post('/assets/refresh')
def refresh_assets(request: Request):
    controller = _list_controller(request)
    try:
        rows = controller.refresh(request.app.state.market_gateway)
    except AssetListUnavailableError as exc:
        raise HTTPException(status_code=503, detail='ASSET_LIST_UNAVAILABLE') from exc
    return {'count': len(rows), 'state': controller.state()}


@router.post('/assets/sort/{key}')
def toggle_sort(key: str, request: Request):
    try:
        sort_key = SortKey(key)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='INVALID_SORT_KEY') from exc
    controller = _list_controller(request)
    controller.toggle_sort(sort_key)
    return controller.state()


@router.get('/assets/{asset_id}/chart')
def get_asset_chart(asset_id: str, request: Request, range: str = '24h'):
    service = request.app.state.detail_service
    try:
        service.window_for(range)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail='INVALID_RANGE') from exc
    try:
        chart = service.chart(asset_id, range)
    except SeriesUnavailableError as exc:
        raise HTTPException(status_code=404, detail='SERIES_UNAVAILABLE') from exc
    return chart.model_dump()


@router.get('/favorites')
def list_favorites(request: Request):
    return {'ids': sorted(request.app.state.favorites.all_favorite_ids())}


@router.put('/favorites/{asset_id}')
def add_favorite(asset_id: str, request: Request):
    request.app.state.favorites.add(asset_id)
    return {'asset_id': asset_id, 'favorite': True}


@router.delete('/favorites/{asset_id}')
def remove_favorite(asset_id: str, request: Request):
    request.app.state.favorites.remove(asset_id)
    return {'asset_id': asset_id, 'favorite': False}


@router.post('/slots/{index}/bind')
def bind_slot(index: int, body: BindRequest, request: Request):
    board = request.app.state.slot_board
    try:
        outcome = board.bind(index, body.asset_id)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail='SLOT_NOT_FOUND') from exc
    return {'outcome': outcome, 'slot': board.view(index).model_dump()}


@router.get('/slots')
def list_slots(request: Request):
    return [v.model_dump() for v in request.app.state.slot_board.views()]


@router.get('/slots/{index}')
def get_slot(index: int, request: Request):
    try:
        view = request.app.state.slot_board.view(index)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail='SLOT_NOT_FOUND') from exc
    return view.model_dump()


@router.get('/metrics/series')
def series_metrics(request: Request):
    state = request.app.state
    metrics = state.fetch_coordinator.metrics()
    metrics.update(state.market_gateway.metrics())
    metrics.update(state.slot_board.metrics())
    metrics['cache_rejected_writes'] = state.series_cache.rejected_writes
    return metrics
