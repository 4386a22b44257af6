"""Tests for the HTTP API routes."""

import pytest
from fastapi.testclient import TestClient

from crypto_chart_api.api import create_app, status_for_error
from crypto_chart_api.data.exceptions import (
    EmptySeries,
    MalformedResponse,
    MissingSection,
    NoData,
    UpstreamBadStatus,
    UpstreamUnavailable,
)


@pytest.fixture
def client(service):
    """Create a test client over the mocked service."""
    app = create_app(service=service)
    with TestClient(app) as test_client:
        yield test_client


class TestStatusMapping:
    """Test error to HTTP status mapping."""

    @pytest.mark.parametrize("error,status", [
        (UpstreamBadStatus(404, "Not Found"), 404),
        (UpstreamBadStatus(500, "Internal Server Error"), 502),
        (UpstreamBadStatus(429, "Too Many Requests"), 502),
        (UpstreamUnavailable("down"), 502),
        (MalformedResponse("bad"), 502),
        (MissingSection("no market_data"), 502),
        (NoData("empty"), 404),
        (EmptySeries("empty"), 404),
    ])
    def test_status_for_error(self, error, status):
        assert status_for_error(error) == status


class TestRoutes:
    """Test the API endpoints."""

    def test_lifespan_starts_and_stops_service(self, service, mock_client):
        with TestClient(create_app(service=service)):
            mock_client.start.assert_awaited_once()
        mock_client.stop.assert_awaited_once()

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        body = response.json()
        assert body['status'] == 'ok'
        assert body['cache']['size'] == 0
        assert 'upstream' not in body

    def test_health_skips_provider_by_default(self, client, mock_client):
        client.get("/api/health")

        mock_client.health_check.assert_not_called()

    def test_health_with_upstream_check(self, client, mock_client):
        response = client.get("/api/health", params={"upstream": "true"})

        assert response.status_code == 200
        assert response.json()['upstream'] == 'ok'
        mock_client.health_check.assert_awaited_once()

    def test_health_with_unreachable_upstream(self, client, mock_client):
        mock_client.health_check.return_value = False

        response = client.get("/api/health?upstream=true")

        assert response.status_code == 200
        assert response.json()['upstream'] == 'unreachable'

    def test_coins(self, client, mock_client):
        response = client.get("/api/coins")

        assert response.status_code == 200
        coins = response.json()['coins']
        assert coins[0] == {"id": "bitcoin", "name": "Bitcoin", "symbol": "BTC"}
        assert len(coins) == 5
        mock_client.fetch_price_series.assert_not_called()

    def test_prices(self, client, mock_client):
        response = client.get("/api/prices/BITCOIN")

        assert response.status_code == 200
        assert response.json() == {"prices": [100.0, 105.5, 98.2]}
        assert mock_client.fetch_price_series.await_args.args[0] == "bitcoin"

    def test_prices_with_timeframe(self, client, mock_client):
        client.get("/api/prices/bitcoin/30d")

        assert mock_client.fetch_price_series.await_args.args[1].days == "30"

    def test_repeated_prices_hit_cache(self, client, mock_client):
        client.get("/api/prices/bitcoin")
        client.get("/api/prices/bitcoin")

        assert mock_client.fetch_price_series.await_count == 1

    def test_stats(self, client):
        response = client.get("/api/stats/bitcoin")

        assert response.status_code == 200
        stats = response.json()['stats']
        assert stats['market_cap'] == 1300000000000.0
        assert stats['ath_date'] == "2024-03-14T07:10:36.635Z"
        assert stats['price_change_percent']['year'] == 120.4

    def test_chart(self, client, mock_renderer):
        response = client.get("/api/chart/bitcoin")

        assert response.status_code == 200
        assert response.headers['content-type'] == "image/png"
        assert response.content.startswith(b"\x89PNG")
        mock_renderer.render.assert_called_once()

    def test_unknown_coin_is_404(self, client, mock_client):
        mock_client.fetch_statistics.side_effect = UpstreamBadStatus(404, "Not Found", "nope")

        response = client.get("/api/stats/nope")

        assert response.status_code == 404
        assert response.json() == {
            'error': 'upstream_bad_status',
            'message': 'API error: 404 Not Found'
        }

    def test_upstream_failure_is_502(self, client, mock_client):
        mock_client.fetch_price_series.side_effect = UpstreamUnavailable("connection refused")

        response = client.get("/api/chart/bitcoin")

        assert response.status_code == 502
        assert response.json()['error'] == 'upstream_unavailable'

    def test_cors_headers(self, client):
        response = client.get("/api/coins", headers={"Origin": "http://example.com"})

        assert response.headers['access-control-allow-origin'] == "*"

    def test_cors_preflight(self, client):
        response = client.options("/api/coins", headers={
            "Origin": "http://example.com",
            "Access-Control-Request-Method": "GET",
        })

        assert response.status_code == 200
        assert "GET" in response.headers['access-control-allow-methods']
