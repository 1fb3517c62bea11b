import unittest

from fastapi.testclient import TestClient

from coinboard.config.settings import Settings
from coinboard.main import app, build_state
from coinboard.services.fetch_coordinator import FetchCoordinator
from coinboard.services.slot_board import SlotBoard


class StubRestClient:
    def __init__(self) -> None:
        self.fail_list = False
        self.chart_calls = 0
        self.range_calls = 0

    def list_markets(self):
        if self.fail_list:
            raise ConnectionError("upstream down")
        return [
            {
                "id": "bitcoin",
                "symbol": "btc",
                "name": "Bitcoin",
                "image": "https://img.test/btc.png",
                "current_price": 60000.0,
                "market_cap": 500,
                "market_cap_rank": 1,
                "price_change_percentage_24h": 1.2,
            },
            {
                "id": "ethereum",
                "symbol": "eth",
                "name": "Ethereum",
                "image": "https://img.test/eth.png",
                "current_price": 3000.0,
                "market_cap": 200,
                "market_cap_rank": 2,
                "price_change_percentage_24h": -0.4,
            },
        ]

    def get_market_chart(self, asset_id, days=1):
        self.chart_calls += 1
        if asset_id == "unknown":
            return {"error": "coin not found"}
        return {"prices": [[1700000000000, 10.0], [1700000300000, 14.0], [1700000600000, 12.0]]}

    def get_market_chart_range(self, asset_id, start, end):
        self.range_calls += 1
        if asset_id == "glitch":
            return {"prices": [[start * 1000, float("nan")], [float("inf"), 1.0]]}
        return {"prices": [[start * 1000, 11.0]]}


class InlineTimer:
    def __init__(self, interval, function, args=None, kwargs=None) -> None:
        self.interval = interval
        self.function = function
        self.args = args or ()
        self.daemon = False

    def start(self) -> None:
        # stagger fires immediately; watchdog never fires
        if self.interval == 1.0:
            self.function(*self.args)

    def cancel(self) -> None:
        pass


class ApiContractTest(unittest.TestCase):
    def setUp(self):
        self.rest_client = StubRestClient()
        build_state(app, Settings(COINBOARD_SLOT_COUNT=2), rest_client=self.rest_client)
        coordinator = FetchCoordinator(
            app.state.series_cache,
            app.state.market_gateway,
            timer_factory=InlineTimer,
        )
        app.state.fetch_coordinator = coordinator
        app.state.slot_board = SlotBoard(coordinator, size=2)
        self.client = TestClient(app)

    def test_refresh_then_list_sorted_and_filtered(self):
        r = self.client.post('/v1/assets/refresh')
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['count'], 2)

        r = self.client.post('/v1/assets/sort/market_cap')
        self.assertEqual(r.json()['sort_direction'], 'asc')
        body = self.client.get('/v1/assets').json()
        self.assertEqual([a['id'] for a in body['assets']], ['ethereum', 'bitcoin'])

        self.client.post('/v1/assets/sort/market_cap')
        body = self.client.get('/v1/assets').json()
        self.assertEqual([a['id'] for a in body['assets']], ['bitcoin', 'ethereum'])

        body = self.client.get('/v1/assets', params={'search': 'ETH'}).json()
        self.assertEqual(body['count'], 1)
        self.assertEqual(body['search'], '')
        self.assertEqual(self.client.get('/v1/assets').json()['count'], 2)

        state = self.client.post('/v1/assets/search', params={'text': 'ETH'}).json()
        self.assertEqual(state['search'], 'ETH')
        self.assertEqual(self.client.get('/v1/assets').json()['count'], 1)

    def test_refresh_failure_is_surfaced(self):
        self.rest_client.fail_list = True

        r = self.client.post('/v1/assets/refresh')

        self.assertEqual(r.status_code, 503)
        self.assertEqual(r.json(), {'detail': 'ASSET_LIST_UNAVAILABLE'})
        self.assertEqual(self.client.get('/v1/assets').json()['last_error'], 'ASSET_LIST_UNAVAILABLE')

    def test_invalid_sort_and_filter(self):
        self.assertEqual(self.client.post('/v1/assets/sort/volume').status_code, 400)
        self.assertEqual(self.client.get('/v1/assets', params={'filter': 'hot'}).status_code, 400)
        self.assertEqual(self.client.post('/v1/assets/filter/hot').json(), {'detail': 'INVALID_FILTER'})

    def test_favorites_filter(self):
        self.client.post('/v1/assets/refresh')

        r = self.client.put('/v1/favorites/ethereum')
        self.assertEqual(r.json(), {'asset_id': 'ethereum', 'favorite': True})
        self.assertEqual(self.client.get('/v1/favorites').json(), {'ids': ['ethereum']})

        body = self.client.get('/v1/assets', params={'filter': 'favorites'}).json()
        self.assertEqual([a['id'] for a in body['assets']], ['ethereum'])
        self.assertEqual(body['filter'], 'all')

        state = self.client.post('/v1/assets/filter/favorites').json()
        self.assertEqual(state['filter'], 'favorites')

        self.client.delete('/v1/favorites/ethereum')
        body = self.client.get('/v1/assets').json()
        self.assertEqual(body['count'], 0)

    def test_slot_bind_fetches_then_serves_from_cache(self):
        r = self.client.post('/v1/slots/0/bind', json={'asset_id': 'bitcoin'})
        self.assertEqual(r.status_code, 200)
        self.assertEqual(r.json()['outcome'], 'scheduled')
        self.assertEqual(r.json()['slot']['state'], 'READY')
        self.assertEqual(len(r.json()['slot']['points']), 3)

        r = self.client.post('/v1/slots/1/bind', json={'asset_id': 'bitcoin'})
        self.assertEqual(r.json()['outcome'], 'cached')
        self.assertEqual(self.rest_client.chart_calls, 1)

        slots = self.client.get('/v1/slots').json()
        self.assertEqual([s['asset_id'] for s in slots], ['bitcoin', 'bitcoin'])

    def test_slot_with_no_data_and_missing_slot(self):
        r = self.client.post('/v1/slots/0/bind', json={'asset_id': 'unknown'})
        self.assertEqual(r.json()['slot']['state'], 'EMPTY')

        self.assertEqual(self.client.get('/v1/slots/0').json()['state'], 'EMPTY')
        self.assertEqual(self.client.get('/v1/slots/9').status_code, 404)
        r = self.client.post('/v1/slots/9/bind', json={'asset_id': 'bitcoin'})
        self.assertEqual(r.json(), {'detail': 'SLOT_NOT_FOUND'})

    def test_detail_chart_ranges(self):
        r = self.client.get('/v1/assets/bitcoin/chart')
        self.assertEqual(r.status_code, 200)
        body = r.json()
        self.assertEqual(body['time_range'], '24h')
        self.assertEqual(body['average'], 12.0)
        self.assertEqual(len(body['points']), 3)

        self.client.get('/v1/assets/bitcoin/chart')
        self.assertEqual(self.rest_client.chart_calls, 1)

        r = self.client.get('/v1/assets/bitcoin/chart', params={'range': '1h'})
        self.assertEqual(r.json()['time_range'], '1h')
        self.client.get('/v1/assets/bitcoin/chart', params={'range': '1h'})
        self.assertEqual(self.rest_client.range_calls, 2)

    def test_detail_chart_errors(self):
        self.assertEqual(self.client.get('/v1/assets/bitcoin/chart', params={'range': '7d'}).status_code, 400)
        r = self.client.get('/v1/assets/unknown/chart')
        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json(), {'detail': 'SERIES_UNAVAILABLE'})

    def test_non_finite_upstream_values_are_no_data(self):
        r = self.client.get('/v1/assets/glitch/chart', params={'range': '1h'})

        self.assertEqual(r.status_code, 404)
        self.assertEqual(r.json(), {'detail': 'SERIES_UNAVAILABLE'})

    def test_series_metrics_contains_operational_fields(self):
        self.client.post('/v1/slots/0/bind', json={'asset_id': 'bitcoin'})

        payload = self.client.get('/v1/metrics/series').json()

        for key in (
            'cached_series',
            'in_flight',
            'cache_hits',
            'deduplicated',
            'timeouts',
            'series_calls',
            'series_failures',
            'deliveries_dropped',
            'cache_rejected_writes',
        ):
            self.assertIn(key, payload)
        self.assertEqual(payload['cached_series'], 1)
        self.assertEqual(payload['in_flight'], 0)


if __name__ == "__main__":
    unittest.main()
