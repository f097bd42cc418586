"""
API Endpoint Tests for StrategyLab
Tests the backtest, registry, signal and indicator endpoints
"""
import pytest
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tests.mocks.fixtures import generate_band_touch_candles, generate_flat_candles


def _payload(candles):
    return [c.model_dump() for c in candles]


class TestHealthEndpoints:
    """Test health and status endpoints"""

    def test_root_endpoint(self, client):
        """Test root endpoint returns API info"""
        response = client.get("/")
        assert response.status_code == 200
        data = response.json()
        assert data["message"] == "StrategyLab API"
        assert "version" in data
        assert "features" in data

    def test_health_endpoint(self, client):
        """Test health check endpoint"""
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_backtest_health(self, client):
        response = client.get("/api/backtest/health")
        assert response.status_code == 200
        assert response.json()["service"] == "backtest"

    def test_correlation_id_echoed(self, client):
        response = client.get("/health", headers={"X-Correlation-ID": "test-cid-123"})
        assert response.headers["x-correlation-id"] == "test-cid-123"


class TestStrategyEndpoints:
    """Registry endpoints"""

    def test_list_strategies(self, client):
        response = client.get("/api/backtest/strategies")
        assert response.status_code == 200
        data = response.json()
        assert len(data) == 8
        assert data[0]["id"] == "mean-reversion-hf"
        assert all(item["buy_rules"] and item["sell_rules"] for item in data)

    def test_get_strategy(self, client):
        response = client.get("/api/backtest/strategies/hoffman-irb")
        assert response.status_code == 200
        data = response.json()
        assert data["id"] == "hoffman-irb"
        assert data["min_candles"] == 100

    def test_unknown_strategy_returns_default(self, client):
        response = client.get("/api/backtest/strategies/nope")
        assert response.status_code == 200
        assert response.json()["id"] == "mean-reversion-hf"


class TestBacktestEndpoint:
    """POST /api/backtest/run"""

    def test_flat_run(self, client):
        response = client.post("/api/backtest/run", json={
            "strategy_id": "ema-crossover-partial",
            "candles": _payload(generate_flat_candles(count=60)),
            "settings": {"starting_balance": 5000, "fee_rate": 0.0, "slippage": 0.0},
        })
        assert response.status_code == 200
        data = response.json()
        assert data["strategy_id"] == "ema-crossover-partial"
        assert data["total_trades"] == 0
        assert data["final_balance"] == 5000
        assert data["equity_curve"] == [5000.0] * 11

    def test_winning_run_serializes_infinite_profit_factor(self, client):
        response = client.post("/api/backtest/run", json={
            "strategy_id": "mean-reversion-hf",
            "candles": _payload(generate_band_touch_candles()),
        })
        assert response.status_code == 200
        data = response.json()
        assert data["wins"] == 1
        assert data["losses"] == 0
        assert data["profit_factor"] == "Infinity"
        assert data["trades"][0]["side"] == "long"
        assert data["trades"][0]["outcome"] == "Win"

    def test_short_series_returns_empty_result(self, client):
        response = client.post("/api/backtest/run", json={
            "strategy_id": "bb-snap-back",
            "candles": _payload(generate_flat_candles(count=100)),
        })
        assert response.status_code == 200
        data = response.json()
        assert data["total_trades"] == 0
        assert len(data["equity_curve"]) == 1

    def test_unordered_candles_rejected(self, client):
        candles = _payload(generate_flat_candles(count=60))
        candles[10], candles[11] = candles[11], candles[10]

        response = client.post("/api/backtest/run", json={"candles": candles})
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error_code"] == "INVALID_CANDLE_DATA"
        assert detail["details"]["index"] == 11

    def test_invalid_settings_rejected(self, client):
        response = client.post("/api/backtest/run", json={
            "candles": _payload(generate_flat_candles(count=60)),
            "settings": {"fee_rate": -0.5},
        })
        assert response.status_code == 422

    def test_bad_environment_config_is_server_error(self, client, monkeypatch):
        """An invalid BACKTEST_* variable is the server's fault, not the caller's"""
        monkeypatch.setenv("BACKTEST_FEE_RATE", "-1")

        response = client.post("/api/backtest/run", json={
            "candles": _payload(generate_flat_candles(count=60)),
        })
        assert response.status_code == 500
        assert response.json()["detail"]["error_code"] == "INVALID_CONFIGURATION"

    def test_missing_candles_rejected(self, client):
        response = client.post("/api/backtest/run", json={"strategy_id": "hoffman-irb"})
        assert response.status_code == 422


class TestSignalEndpoint:
    """POST /api/backtest/signal"""

    def test_no_signal(self, client):
        response = client.post("/api/backtest/signal", json={"candles": _payload(generate_flat_candles(count=50))})
        assert response.status_code == 200
        assert response.json() == {"signal": None}

    def test_unordered_candles_rejected(self, client):
        candles = _payload(generate_flat_candles(count=50))
        candles.reverse()
        response = client.post("/api/backtest/signal", json={"candles": candles})
        assert response.status_code == 400


class TestIndicatorEndpoint:
    """POST /api/backtest/indicators"""

    def test_snapshot(self, client):
        response = client.post("/api/backtest/indicators", json={"candles": _payload(generate_flat_candles(count=30))})
        assert response.status_code == 200
        data = response.json()
        values = data["values"]

        assert data["candle_count"] == 30
        assert values["ema_9"] == pytest.approx(100.0)
        assert values["rsi_14"] == 100.0
        assert values["atr_14"] == 0.0
        # Still warming up
        assert values["sma_50"] is None
        assert values["ema_200"] is None
        assert values["macd_signal"] is None
