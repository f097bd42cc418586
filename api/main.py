"""
StrategyLab API - FastAPI Backend
Strategy backtesting and live signal checks over caller-supplied candles
"""
import os
from contextlib import asynccontextmanager
from dotenv import load_dotenv

# Load environment variables BEFORE other imports
load_dotenv()

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from routes import backtest
from config import get_backtest_config

# Configure structured logging with correlation IDs
from services.logging_config import (
    setup_logging,
    get_logger,
    CorrelationIdMiddleware
)

# LOG_FORMAT=json in production, LOG_LEVEL for verbosity
setup_logging()
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events"""
    # Startup: fail fast on a bad BACKTEST_* environment
    get_backtest_config()
    logger.info("StrategyLab API starting up")
    yield
    # Shutdown
    logger.info("StrategyLab API shutting down")


app = FastAPI(
    title="StrategyLab API",
    description="Rule-based strategy backtesting and signal checks",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS middleware - supports env var ALLOWED_ORIGINS for production
default_origins = [
    "http://localhost:5173",
    "http://localhost:3000",
]
custom_origins = os.getenv("ALLOWED_ORIGINS", "")
if custom_origins:
    default_origins.extend([o.strip() for o in custom_origins.split(",") if o.strip()])

app.add_middleware(
    CORSMiddleware,
    allow_origins=default_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Correlation ID middleware for request tracing
app.add_middleware(CorrelationIdMiddleware)

# Include routers - Backtesting
app.include_router(backtest.router)


@app.get("/")
async def root():
    return {"message": "StrategyLab API", "version": "0.1.0", "features": [
        "Backtesting Engine",
        "Strategy Registry",
        "Live Signal Check",
        "Indicator Snapshot",
    ]}


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
