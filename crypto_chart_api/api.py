"""FastAPI routes exposing market data, statistics and charts."""

from contextlib import asynccontextmanager
from typing import Any, Dict, Optional
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from .data.exceptions import (
    MarketDataError,
    UpstreamBadStatus,
    NoData,
    EmptySeries,
)
from .data.service import MarketDataService

logger = logging.getLogger(__name__)


def status_for_error(exc: MarketDataError) -> int:
    """HTTP status returned for a market data error."""
    if isinstance(exc, UpstreamBadStatus) and exc.status == 404:
        return 404
    if isinstance(exc, (NoData, EmptySeries)):
        return 404
    return 502


def create_app(service: Optional[MarketDataService] = None,
               config: Optional[Dict[str, Any]] = None) -> FastAPI:
    """Create the API application.

    Args:
        service: Market data service; built from ``config`` when omitted
        config: Loaded configuration dictionary

    Returns:
        FastAPI application whose lifespan owns the service
    """
    if service is None:
        service = MarketDataService.from_config(config or {})

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        await service.initialize()
        try:
            yield
        finally:
            await service.shutdown()

    app = FastAPI(title="Crypto Chart API", lifespan=lifespan)
    app.state.service = service

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Origin", "Content-Type"],
    )

    @app.exception_handler(MarketDataError)
    async def market_data_error_handler(request: Request, exc: MarketDataError):
        status = status_for_error(exc)
        logger.warning(f"{request.url.path} failed with {exc.kind}: {exc.message}")
        return JSONResponse(status_code=status, content=exc.to_dict())

    @app.get("/api/health")
    async def health(upstream: bool = False):
        body = {'status': 'ok', 'cache': service.get_cache_stats()}
        if upstream:
            reachable = await service.check_upstream()
            body['upstream'] = 'ok' if reachable else 'unreachable'
        return body

    @app.get("/api/coins")
    async def coins():
        return {'coins': service.list_default_coins()}

    @app.get("/api/chart/{symbol}")
    async def chart(symbol: str, timeframe: str = "1d"):
        image = await service.get_chart(symbol, timeframe)
        return Response(content=image, media_type="image/png")

    @app.get("/api/prices/{symbol}")
    async def prices(symbol: str):
        series = await service.get_prices(symbol)
        return series.to_dict()

    @app.get("/api/prices/{symbol}/{timeframe}")
    async def prices_for_timeframe(symbol: str, timeframe: str):
        series = await service.get_prices(symbol, timeframe)
        return series.to_dict()

    @app.get("/api/stats/{symbol}")
    async def stats(symbol: str):
        statistics = await service.get_statistics(symbol)
        return {'stats': statistics.to_dict()}

    return app
