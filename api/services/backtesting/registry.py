"""
Strategy registry.

Maps strategy identifiers to their policy classes and human-readable rules.
Dispatch order here is the order strategies are listed to clients.
"""

import logging
from typing import Dict, List, Type

from models.backtest import StrategyInfo
from .strategies import (
    BaseStrategy,
    BBSnapBackStrategy,
    BBSqueezeBreakoutStrategy,
    DynamicRetestStrategy,
    EMACrossoverStrategy,
    HoffmanIRBStrategy,
    HTFMomentumStrategy,
    MeanReversionStrategy,
    TrendContinuationStrategy,
)

logger = logging.getLogger(__name__)

DEFAULT_STRATEGY_ID = "mean-reversion-hf"

STRATEGIES: Dict[str, Type[BaseStrategy]] = {
    cls.strategy_id: cls
    for cls in (
        MeanReversionStrategy,
        EMACrossoverStrategy,
        BBSqueezeBreakoutStrategy,
        TrendContinuationStrategy,
        BBSnapBackStrategy,
        HoffmanIRBStrategy,
        HTFMomentumStrategy,
        DynamicRetestStrategy,
    )
}

_HTF_BUY_RULES = [
    "LONG: Low holds above EMA 200 while the candle trades through EMA 50",
    "RSI(14) between 40 and 55; setup expires after 5 bars or a close 1% below EMA 50",
    "Entry: next open after a green candle closes above EMA 50",
    "Stop: 10-bar swing low, at least 2x ATR | TP1: 20-bar swing high (50%, breakeven)",
]
_HTF_SELL_RULES = [
    "Long only: no short entries",
    "Exit remainder on a close below EMA 20 after TP1",
    "Stop: swing low / 2 ATR, breakeven after TP1",
]

_DESCRIPTIONS: Dict[str, Dict] = {
    "mean-reversion-hf": {
        "name": "Mean Reversion (BB + RSI - High Frequency)",
        "description": "Bidirectional mean reversion strategy targeting 500+ trades over 5 years with 55-65% win rate.",
        "buy_rules": [
            "LONG: Lower BB touch + RSI < 35 + Vol > 1.2x avg",
            "Exit: Middle BB OR RSI > 70 OR 3% stop OR 48 bar timeout",
            "Risk: 2% per trade with proper sizing",
        ],
        "sell_rules": [
            "SHORT: Upper BB touch + RSI > 65 + Vol > 1.2x avg",
            "Exit: Middle BB OR RSI < 30 OR 3% stop OR 48 bar timeout",
            "Mean reversion works both ways!",
        ],
    },
    "ema-crossover-partial": {
        "name": "EMA Crossover with Partial Exits",
        "description": "Trend-following strategy with 1.8% stop loss and partial profit-taking at 1.5x and 2.5x risk.",
        "buy_rules": [
            "LONG: EMA 20 crosses above EMA 50 + RSI > 50",
            "Stop Loss: 1.8% below entry",
            "First TP: 1.5x risk (exit 50%, move SL to breakeven)",
            "Second TP: 2.5x risk (exit remaining 50%)",
        ],
        "sell_rules": [
            "SHORT: EMA 20 crosses below EMA 50 + RSI < 50",
            "Stop Loss: 1.8% above entry",
            "First TP: 1.5x risk (exit 50%, move SL to breakeven)",
            "Second TP: 2.5x risk (exit remaining 50%)",
        ],
    },
    "bb-squeeze-breakout": {
        "name": "BB Squeeze Breakout (Pro)",
        "description": "High-probability squeeze breakouts. Target: 58-62% WR, PF 2.1-2.4, Sharpe 1.8-2.2",
        "buy_rules": [
            "LONG: BB squeeze (width in bottom 20%) + breakout above upper BB",
            "Volume > 2x avg + RSI 50-70 + MACD positive & rising",
            "TP1: 2.5% (50% exit), TP2: 4.5% (50% exit)",
            "Stop: 1.8% -> Breakeven after TP1 -> 2% trailing after TP2",
        ],
        "sell_rules": [
            "SHORT: BB squeeze + breakdown below lower BB",
            "Volume > 2x avg + RSI 30-50 + MACD negative & falling",
            "TP1: 2.5% (50%), TP2: 4.5% (50%)",
            "Max hold: 48 bars",
        ],
    },
    "50ema-trend-continuation": {
        "name": "50 EMA Trend Continuation (Price Action)",
        "description": "Price action strategy with 50 EMA, pullback, and engulfing patterns. Target: 2R.",
        "buy_rules": [
            "LONG: Price above 50 EMA (bullish trend identified)",
            "Pullback: 2+ bearish candles",
            "Entry: Bullish engulfing pattern forms",
            "Stop: Below swing low | Target: 2x risk (2R)",
        ],
        "sell_rules": [
            "SHORT: Price below 50 EMA (bearish trend)",
            "Pullback: 2+ bullish candles",
            "Entry: Bearish engulfing pattern forms",
            "Stop: Above swing high | Target: 2x risk (2R)",
        ],
    },
    "bb-snap-back": {
        "name": "BB Snap Back (Rubber Band Effect)",
        "description": 'EMA 200 + BB (20,2) + RSI(7) mean reversion. Catch the "snap" when price stretches too far.',
        "buy_rules": [
            "LONG: Price > EMA 200 + touches Lower BB + RSI(7) < 30",
            "Entry: First GREEN candle closes back inside BB",
            "TP1: Middle BB (50% exit, move SL to breakeven)",
            "TP2: Upper BB (50% exit) | Stop: Swing low or 1.5 ATR",
        ],
        "sell_rules": [
            "SHORT: Price < EMA 200 + touches Upper BB + RSI(7) > 70",
            "Entry: First RED candle closes back inside BB",
            "TP1: Middle BB (50% exit, breakeven)",
            "TP2: Lower BB (50%) | Stop: Swing high or 1.5 ATR",
        ],
    },
    "hoffman-irb": {
        "name": "Hoffman IRB (Inventory Retracement Bar)",
        "description": "Rob Hoffman's IRB setup: EMA trend + retracement bar + breakout entries.",
        "buy_rules": [
            "LONG: EMA20 > EMA80 + trend angle >= 28 degrees",
            "Wait for IRB signal (45% retracement candle)",
            "Entry: Breakout above IRB candle high",
            "Stop: Below IRB low | Target: 1.3R | Move to breakeven at 1:1",
        ],
        "sell_rules": [
            "SHORT: EMA20 < EMA80 + trend angle <= -28 degrees",
            "Wait for IRB signal (45% retracement candle)",
            "Entry: Breakdown below IRB candle low",
            "Stop: Above IRB high | Target: 1.3R | Breakeven at 1:1",
        ],
    },
    "htf-sma-crossover-momentum": {
        "name": "HTF SMA Crossover Momentum",
        "description": "Long-only pullback entries at the 50 EMA inside a 200 EMA uptrend, scaling out at the prior swing high.",
        "buy_rules": _HTF_BUY_RULES,
        "sell_rules": _HTF_SELL_RULES,
    },
    "dynamic-retest": {
        "name": "Dynamic Retest (50 EMA)",
        "description": "Retest of the 50 EMA as dynamic support in an established uptrend. Same rules as HTF momentum.",
        "buy_rules": _HTF_BUY_RULES,
        "sell_rules": _HTF_SELL_RULES,
    },
}


def resolve_strategy(strategy_id: str) -> Type[BaseStrategy]:
    """
    Look up a strategy class.

    Unknown identifiers fall back to the default strategy.
    """
    strategy_class = STRATEGIES.get(strategy_id)
    if strategy_class is None:
        logger.warning(f"Unknown strategy '{strategy_id}', falling back to {DEFAULT_STRATEGY_ID}")
        strategy_class = STRATEGIES[DEFAULT_STRATEGY_ID]
    return strategy_class


def get_strategy_description(strategy_id: str = DEFAULT_STRATEGY_ID) -> StrategyInfo:
    """Name, description and rule text for a strategy; unknown ids get the default's"""
    resolved_id = strategy_id if strategy_id in _DESCRIPTIONS else DEFAULT_STRATEGY_ID
    text = _DESCRIPTIONS[resolved_id]
    return StrategyInfo(
        id=resolved_id,
        name=text["name"],
        description=text["description"],
        buy_rules=list(text["buy_rules"]),
        sell_rules=list(text["sell_rules"]),
        min_candles=STRATEGIES[resolved_id].min_candles,
    )


def list_strategies() -> List[StrategyInfo]:
    """All registered strategies in dispatch order"""
    return [get_strategy_description(strategy_id) for strategy_id in STRATEGIES]
