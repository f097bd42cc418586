"""
Pydantic models for the backtest engine and signal checker
Value objects passed in and out of the core, and request/response models
for the backtest endpoints
"""
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict
from enum import Enum


# ============== Enums ==============

class TradeSide(str, Enum):
    """Direction of a simulated position"""
    LONG = "long"
    SHORT = "short"


class TradeOutcome(str, Enum):
    """Classification of a closed trade by P&L sign"""
    WIN = "Win"
    LOSS = "Loss"


class SignalSide(str, Enum):
    """Direction of a live signal"""
    BUY = "Buy"
    SELL = "Sell"


# ============== Core Value Objects ==============

class Candle(BaseModel):
    """One OHLCV bar. Callers supply candles ascending by time."""
    model_config = ConfigDict(frozen=True)

    time: int = Field(..., description="Bar timestamp")
    open: float
    high: float
    low: float
    close: float
    volume: float = 0.0


class ExecutedTrade(BaseModel):
    """A full or partial close recorded in the trade ledger"""
    model_config = ConfigDict(frozen=True)

    entry_time: int
    entry_price: float
    exit_time: int
    exit_price: float
    side: TradeSide
    pnl: float
    pnl_percent: float = Field(..., description="P&L as % of balance after the close")
    outcome: TradeOutcome
    exit_reason: str = ""


class BacktestResult(BaseModel):
    """Outcome of one backtest run"""
    model_config = ConfigDict(ser_json_inf_nan="strings")

    strategy_id: str
    total_trades: int = 0
    wins: int = 0
    losses: int = 0
    win_rate: float = Field(0, description="Winning closes as % of all closes")
    profit_factor: float = 0
    sharpe_ratio: float = 0
    total_return_pct: float = 0
    max_drawdown_pct: float = 0
    final_balance: float = 0
    equity_curve: List[float] = []
    trades: List[ExecutedTrade] = []


class Signal(BaseModel):
    """Directional signal on the latest bar"""
    side: SignalSide
    price: float
    reason: str


class StrategyInfo(BaseModel):
    """Registry metadata for a backtestable strategy"""
    id: str
    name: str
    description: str
    buy_rules: List[str]
    sell_rules: List[str]
    min_candles: int


# ============== API Requests / Responses ==============

class BacktestSettings(BaseModel):
    """Optional per-request overrides of the bookkeeping constants"""
    starting_balance: Optional[float] = Field(None, gt=0)
    fee_rate: Optional[float] = Field(None, ge=0)
    slippage: Optional[float] = Field(None, ge=0)
    max_position_fraction: Optional[float] = Field(None, gt=0, le=1)


class BacktestRequest(BaseModel):
    """Request to replay a strategy over a candle series"""
    strategy_id: str = "mean-reversion-hf"
    candles: List[Candle]
    settings: Optional[BacktestSettings] = None


class CandlesRequest(BaseModel):
    """Request carrying only a candle series"""
    candles: List[Candle]


class SignalResponse(BaseModel):
    """Signal check result; signal is null when nothing qualifies"""
    signal: Optional[Signal] = None


class IndicatorSnapshot(BaseModel):
    """Latest value of each indicator; null while still warming up"""
    candle_count: int
    values: Dict[str, Optional[float]]
