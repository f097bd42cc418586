"""
StrategyLab Custom Exception Classes

The backtest core degrades to empty or neutral results instead of raising.
These exceptions cover the edges around it: configuration and request
validation performed before a run starts.

Exception Hierarchy:
    StrategyLabError (base)
    |-- ConfigurationError
    +-- CandleDataError

Usage:
    from exceptions import StrategyLabError, CandleDataError

    try:
        ensure_ascending(candles)
    except CandleDataError as e:
        raise HTTPException(status_code=400, detail=e.to_dict())
"""

from typing import Optional, Any, Dict


class StrategyLabError(Exception):
    """
    Base exception for all StrategyLab errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable error code for logging/diagnostics
        details: Additional context about the error
    """

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.error_code = error_code or "STRATEGYLAB_ERROR"
        self.details = details or {}
        super().__init__(self.message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        return {
            "error": True,
            "error_code": self.error_code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(StrategyLabError):
    """
    Raised when backtest configuration values are out of range.

    Attributes:
        details["errors"]: One message per invalid field
    """

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(
            message=message,
            error_code="INVALID_CONFIGURATION",
            details=details
        )


class CandleDataError(StrategyLabError):
    """
    Raised when a caller-supplied candle series is unusable.

    The engine itself never validates ordering; the API layer does before
    handing candles to the core.

    Attributes:
        index: Position of the first offending candle (if applicable)
    """

    def __init__(
        self,
        message: str,
        index: Optional[int] = None
    ):
        self.index = index
        details = {"index": index} if index is not None else {}
        super().__init__(
            message=message,
            error_code="INVALID_CANDLE_DATA",
            details=details
        )
