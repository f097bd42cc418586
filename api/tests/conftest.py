"""
StrategyLab API Test Configuration
==================================
Shared pytest fixtures and configuration for all tests.

This file is automatically loaded by pytest and provides:
- Candle series fixtures (flat, random walk, hand-built scenarios)
- A deterministic BacktestConfig that ignores BACKTEST_* environment variables
- Test client fixtures for FastAPI testing
"""
import pytest
import sys
import os
from typing import List

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from fastapi.testclient import TestClient
from main import app

from config import BacktestConfig, reset_backtest_config
from models.backtest import Candle
from tests.mocks.fixtures import (
    generate_band_touch_candles,
    generate_flat_candles,
    generate_irb_breakout_candles,
    generate_random_walk_candles,
    generate_squeeze_breakout_candles,
    generate_trend_pullback_candles,
)


# ============================================================
# FastAPI Test Client Fixtures
# ============================================================

@pytest.fixture(scope="function")
def client() -> TestClient:
    """
    Create a fresh FastAPI test client for each test function.

    Returns:
        TestClient instance for making requests
    """
    return TestClient(app)


# ============================================================
# Configuration Fixtures
# ============================================================

@pytest.fixture
def default_config() -> BacktestConfig:
    """
    Bookkeeping constants spelled out explicitly so BACKTEST_* variables
    in the developer's environment cannot change test outcomes.
    """
    return BacktestConfig(
        starting_balance=10000.0,
        fee_rate=0.001,
        slippage=0.0005,
        max_position_fraction=0.95,
        periods_per_year=252,
    )


@pytest.fixture
def frictionless_config() -> BacktestConfig:
    """No fees and no slippage, for exact P&L arithmetic"""
    return BacktestConfig(
        starting_balance=10000.0,
        fee_rate=0.0,
        slippage=0.0,
        max_position_fraction=0.95,
        periods_per_year=252,
    )


@pytest.fixture(autouse=True)
def clean_config_singleton():
    """Drop the cached environment config around every test"""
    reset_backtest_config()
    yield
    reset_backtest_config()


# ============================================================
# Candle Fixtures
# ============================================================

@pytest.fixture
def flat_candles() -> List[Candle]:
    """60 identical candles"""
    return generate_flat_candles(count=60)


@pytest.fixture
def random_walk_candles() -> List[Candle]:
    """400 seeded random-walk candles, enough for every strategy"""
    return generate_random_walk_candles(count=400, seed=42)


@pytest.fixture
def trend_pullback_candles() -> List[Candle]:
    """250-candle uptrend with one pullback and bullish engulfing at bar 200"""
    return generate_trend_pullback_candles(count=250, pullback_at=198)


@pytest.fixture
def band_touch_candles() -> List[Candle]:
    """Lower Bollinger Band touch on a volume spike at bar 55"""
    return generate_band_touch_candles()


@pytest.fixture
def irb_breakout_candles() -> List[Candle]:
    """Steep ramp with a bullish IRB at bar 96, broken at bar 97, target hit at bar 99"""
    return generate_irb_breakout_candles()


@pytest.fixture
def squeeze_breakout_candles() -> List[Candle]:
    """Band squeeze resolved upward on a volume spike at bar 110, then TP1, TP2 and the trail"""
    return generate_squeeze_breakout_candles()


# ============================================================
# Indicator Service Fixture
# ============================================================

@pytest.fixture
def indicator_service():
    """
    Create an indicator service instance for testing calculations.

    Returns:
        IndicatorService instance
    """
    from services.indicators import IndicatorService
    return IndicatorService()
