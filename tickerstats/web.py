"""
FastAPI interface for the statistics engine.

Routes:
    GET /tickers                                   registered symbols
    GET /stocks/{ticker}?minutes=m&aggregation=average
    GET /stockcorrelation?minutes=m&ticker=A&ticker=B
    GET /correlationmatrix?minutes=m

Errors are returned as {"error": message}: 404 for unknown tickers and
empty windows, 400 for invalid parameters.
"""

import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import FastAPI, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError, validator

from tickerstats.config import EngineConfig, load_config
from tickerstats.data_sources.random_walk import RandomWalkSource
from tickerstats.errors import InvalidWindowError, UnknownSymbolError
from tickerstats.ingest import IngestionDriver
from tickerstats.service import StatsService

logger = logging.getLogger(__name__)

MINUTES_HINT = "minutes is required (1–60)."


class CorrelationQuery(BaseModel):
    tickers: List[str]

    @validator("tickers")
    def validate_tickers(cls, v):
        if len(v) != 2:
            raise ValueError("Provide minutes(1–60) and two ticker values.")
        return [ticker.strip().upper() for ticker in v]


def parse_minutes(raw: Optional[str]):
    """Parse the minutes query parameter; range checks happen in the engine."""
    if raw is None or raw.strip() == "":
        raise InvalidWindowError(MINUTES_HINT)
    try:
        return int(raw)
    except ValueError:
        pass
    try:
        return float(raw)
    except ValueError:
        raise InvalidWindowError(MINUTES_HINT) from None


def create_app(
    config: Optional[EngineConfig] = None,
    service: Optional[StatsService] = None,
    driver: Optional[IngestionDriver] = None,
    start_ingestion: bool = True
) -> FastAPI:
    """
    Wire store, price source, ingestion driver and routes into an app.

    Args:
        config: Engine configuration (defaults to load_config())
        service: Prebuilt service (defaults to one built from config)
        driver: Prebuilt ingestion driver (defaults to a random walk over
            the service's store)
        start_ingestion: Whether to run the driver for the app's lifetime

    Returns:
        FastAPI application
    """
    config = config or load_config()
    service = service or StatsService.from_config(config)
    if driver is None and start_ingestion:
        driver = IngestionDriver(
            service.store,
            RandomWalkSource(seed=config.seed),
            tick_interval_seconds=config.tick_interval_seconds,
            fetch_timeout_seconds=config.fetch_timeout_seconds,
        )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Serving window statistics for: {', '.join(service.symbols)}")
        if start_ingestion and driver is not None:
            driver.start()
        try:
            yield
        finally:
            if start_ingestion and driver is not None:
                driver.stop()

    app = FastAPI(title="Ticker Window Statistics", lifespan=lifespan)
    app.state.service = service
    app.state.driver = driver

    @app.exception_handler(UnknownSymbolError)
    async def unknown_symbol_handler(request: Request, exc: UnknownSymbolError):
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(InvalidWindowError)
    async def invalid_window_handler(request: Request, exc: InvalidWindowError):
        return JSONResponse(status_code=400, content={"error": str(exc)})

    @app.get("/tickers")
    def list_tickers():
        """Registered symbols."""
        return list(service.symbols)

    @app.get("/stocks/{ticker}")
    def get_average(
        ticker: str,
        minutes: Optional[str] = None,
        aggregation: Optional[str] = None
    ):
        """Average price of one ticker over the last `minutes` minutes."""
        symbol = ticker.strip().upper()
        if symbol not in service.store:
            raise UnknownSymbolError(symbol)
        m = parse_minutes(minutes)
        service.reader.validate(m)
        if aggregation != "average":
            return JSONResponse(status_code=400, content={"error": "Only aggregation=average supported."})

        result = service.get_window_average(symbol, m)
        if result.is_empty:
            return JSONResponse(
                status_code=404,
                content={"error": f"No data for '{symbol}' in last {m} min."}
            )
        return result.to_dict()

    @app.get("/stockcorrelation")
    def get_correlation(
        minutes: Optional[str] = None,
        ticker: List[str] = Query(default=[])
    ):
        """Correlation between exactly two tickers."""
        if not minutes or not ticker:
            return JSONResponse(status_code=400, content={"error": "minutes and ticker[] are required."})
        try:
            query = CorrelationQuery(tickers=ticker)
        except ValidationError:
            return JSONResponse(
                status_code=400,
                content={"error": "Provide minutes(1–60) and two ticker values."}
            )
        m = parse_minutes(minutes)

        symbol_a, symbol_b = query.tickers
        return service.get_correlation(symbol_a, symbol_b, m).to_dict()

    @app.get("/correlationmatrix")
    def get_matrix(minutes: Optional[str] = None):
        """Correlation matrix with per-ticker averages and standard deviations."""
        m = parse_minutes(minutes)
        return service.get_correlation_matrix(m).to_dict()

    return app


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("tickerstats.web:create_app", factory=True, host="0.0.0.0", port=3000)
