"""
Backtest Configuration
Bookkeeping constants shared by every strategy replay.

All values can be overridden via environment variables with the BACKTEST_ prefix.
Example: BACKTEST_FEE_RATE=0.0005 overrides fee_rate
"""

import os
import logging
from dataclasses import dataclass, field, asdict
from typing import Optional

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


def _get_env_float(key: str, default: float) -> float:
    """Get float from environment variable with fallback to default."""
    env_key = f"BACKTEST_{key.upper()}"
    value = os.getenv(env_key)
    if value is not None:
        try:
            result = float(value)
            logger.info(f"Config override: {key} = {result} (from {env_key})")
            return result
        except ValueError:
            logger.warning(f"Invalid float for {env_key}: {value}, using default {default}")
    return default


def _get_env_int(key: str, default: int) -> int:
    """Get integer from environment variable with fallback to default."""
    env_key = f"BACKTEST_{key.upper()}"
    value = os.getenv(env_key)
    if value is not None:
        try:
            result = int(value)
            logger.info(f"Config override: {key} = {result} (from {env_key})")
            return result
        except ValueError:
            logger.warning(f"Invalid int for {env_key}: {value}, using default {default}")
    return default


@dataclass(frozen=True)
class BacktestConfig:
    """
    Simulation constants for one backtest run.

    Passed explicitly into run_backtest so tests can vary them. Per-strategy
    risk fractions and stop distances belong to the strategy classes.
    """

    # Balance every run starts from
    starting_balance: float = field(default_factory=lambda: _get_env_float('starting_balance', 10000.0))

    # Fee charged on traded notional, on entry and on every exit
    fee_rate: float = field(default_factory=lambda: _get_env_float('fee_rate', 0.001))

    # Fill price moved against the trader on entry and exit
    slippage: float = field(default_factory=lambda: _get_env_float('slippage', 0.0005))

    # Position notional cap as a fraction of balance
    max_position_fraction: float = field(default_factory=lambda: _get_env_float('max_position_fraction', 0.95))

    # Bars per year used to annualize the Sharpe ratio
    periods_per_year: int = field(default_factory=lambda: _get_env_int('periods_per_year', 252))

    def __post_init__(self):
        """Validate configuration values."""
        self.validate()

    def validate(self):
        """Validate that all values are within reasonable ranges."""
        errors = []

        if self.starting_balance <= 0:
            errors.append(f"starting_balance must be positive, got {self.starting_balance}")

        if self.fee_rate < 0:
            errors.append(f"fee_rate cannot be negative, got {self.fee_rate}")

        if self.slippage < 0:
            errors.append(f"slippage cannot be negative, got {self.slippage}")

        if not 0 < self.max_position_fraction <= 1:
            errors.append(f"max_position_fraction must be between 0 and 1, got {self.max_position_fraction}")

        if self.periods_per_year < 1:
            errors.append(f"periods_per_year must be at least 1, got {self.periods_per_year}")

        if errors:
            for error in errors:
                logger.error(f"Config validation error: {error}")
            raise ConfigurationError(
                f"Invalid backtest configuration: {'; '.join(errors)}",
                details={"errors": errors},
            )

    def to_dict(self) -> dict:
        """Convert config to dictionary."""
        return asdict(self)


# Singleton instance
_config_instance: Optional[BacktestConfig] = None


def get_backtest_config() -> BacktestConfig:
    """Get the singleton BacktestConfig instance."""
    global _config_instance
    if _config_instance is None:
        _config_instance = BacktestConfig()
        logger.info(f"Initialized BacktestConfig: {_config_instance.to_dict()}")
    return _config_instance


def reset_backtest_config():
    """Reset config instance (useful for testing)."""
    global _config_instance
    _config_instance = None
