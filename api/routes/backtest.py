"""
API routes for backtesting.

Provides endpoints to replay strategies over caller-supplied candles, browse
the strategy registry, check the live signal and inspect indicator values.
"""

import logging
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from fastapi import APIRouter, HTTPException, Response

from config import BacktestConfig, get_backtest_config
from exceptions import CandleDataError, ConfigurationError, StrategyLabError
from models.backtest import (
    BacktestRequest,
    BacktestResult,
    BacktestSettings,
    Candle,
    CandlesRequest,
    IndicatorSnapshot,
    SignalResponse,
    StrategyInfo,
)
from services.backtesting.engine import run_backtest
from services.backtesting.registry import get_strategy_description, list_strategies
from services.indicators import IndicatorService, is_nan
from services.signal_checker import check_signal

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/backtest", tags=["backtest"])
indicator_service = IndicatorService()


def ensure_ascending(candles: Sequence[Candle]) -> None:
    """Reject series whose timestamps are not strictly ascending"""
    for i in range(1, len(candles)):
        if candles[i].time <= candles[i - 1].time:
            raise CandleDataError(
                f"Candles must be ascending by time: candle {i} ({candles[i].time}) "
                f"is not after candle {i - 1} ({candles[i - 1].time})",
                index=i,
            )


def build_config(settings: Optional[BacktestSettings]) -> BacktestConfig:
    """
    Apply per-request overrides on top of the environment config.

    A bad BACKTEST_* environment is a server fault (500); only invalid
    overrides are the caller's (400).
    """
    try:
        config = get_backtest_config()
    except ConfigurationError as e:
        logger.error(f"Server backtest configuration is invalid: {e}")
        raise HTTPException(status_code=500, detail=e.to_dict())

    if settings is None:
        return config
    overrides = settings.model_dump(exclude_none=True)
    if not overrides:
        return config
    return replace(config, **overrides)


def _last(values: List[float]) -> Optional[float]:
    if not values or is_nan(values[-1]):
        return None
    return values[-1]


@router.post("/run", response_model=BacktestResult)
def run_backtest_endpoint(request: BacktestRequest):
    """
    Replay a strategy over the supplied candles.

    Example request:
    ```json
    {
        "strategy_id": "ema-crossover-partial",
        "candles": [{"time": 1700000000, "open": 100, "high": 101, "low": 99, "close": 100.5, "volume": 1200}],
        "settings": {"starting_balance": 25000, "fee_rate": 0.0005}
    }
    ```
    """
    try:
        ensure_ascending(request.candles)
        config = build_config(request.settings)

        logger.info(f"Starting backtest: {request.strategy_id} on {len(request.candles)} candles")
        result = run_backtest(request.candles, request.strategy_id, config)
        logger.info(f"Backtest complete: {result.total_trades} trades, {result.total_return_pct:.1f}% return")
        # Serialized by the model so an infinite profit factor becomes "Infinity"
        return Response(content=result.model_dump_json(), media_type="application/json")

    except HTTPException:
        raise
    except StrategyLabError as e:
        logger.warning(f"Backtest rejected: {e}")
        raise HTTPException(status_code=400, detail=e.to_dict())
    except Exception as e:
        logger.error(f"Backtest failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=f"Backtest failed: {str(e)}")


@router.get("/strategies", response_model=List[StrategyInfo])
def list_strategies_endpoint():
    """
    List all available backtestable strategies.

    Returns name, rule text and minimum candle count for each strategy.
    """
    return list_strategies()


@router.get("/strategies/{strategy_id}", response_model=StrategyInfo)
def get_strategy_endpoint(strategy_id: str):
    """Describe one strategy; unknown ids describe the default strategy"""
    return get_strategy_description(strategy_id)


@router.post("/signal", response_model=SignalResponse)
def check_signal_endpoint(request: CandlesRequest):
    """Check the last candle for a Buy/Sell confluence signal"""
    try:
        ensure_ascending(request.candles)
        return SignalResponse(signal=check_signal(request.candles))
    except StrategyLabError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except Exception as e:
        logger.error(f"Signal check failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/indicators", response_model=IndicatorSnapshot)
def indicator_snapshot_endpoint(request: CandlesRequest):
    """Latest value of every indicator the strategies use; null while warming up"""
    try:
        candles = request.candles
        ensure_ascending(candles)
        closes = [c.close for c in candles]

        upper, middle, lower = indicator_service.calculate_bollinger_bands(closes, 20, 2.0)
        macd_line, signal_line, histogram = indicator_service.calculate_macd(closes, 12, 26, 9)
        stoch_k, stoch_d = indicator_service.calculate_stoch_rsi(closes, 14, 14, 3, 3)

        values: Dict[str, Optional[float]] = {
            "sma_50": _last(indicator_service.calculate_sma(closes, 50)),
            "sma_200": _last(indicator_service.calculate_sma(closes, 200)),
            "ema_9": _last(indicator_service.calculate_ema(closes, 9)),
            "ema_20": _last(indicator_service.calculate_ema(closes, 20)),
            "ema_21": _last(indicator_service.calculate_ema(closes, 21)),
            "ema_50": _last(indicator_service.calculate_ema(closes, 50)),
            "ema_200": _last(indicator_service.calculate_ema(closes, 200)),
            "rsi_14": _last(indicator_service.calculate_rsi(closes, 14)),
            "macd": _last(macd_line),
            "macd_signal": _last(signal_line),
            "macd_histogram": _last(histogram),
            "bb_upper": _last(upper),
            "bb_middle": _last(middle),
            "bb_lower": _last(lower),
            "atr_14": _last(indicator_service.calculate_atr(candles, 14)),
            "stoch_rsi_k": _last(stoch_k),
            "stoch_rsi_d": _last(stoch_d),
        }
        return IndicatorSnapshot(candle_count=len(candles), values=values)

    except StrategyLabError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
    except Exception as e:
        logger.error(f"Indicator snapshot failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/health")
def backtest_health():
    """Health check for backtest service."""
    return {"status": "healthy", "service": "backtest"}
