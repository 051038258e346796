"""
Rotas HTTP com a fonte externa substituída por uma fonte falsa
"""

import pytest
from fastapi.testclient import TestClient

from core.exceptions import SourceUnavailableError
from core.history import History
from main import app
from predictors.registry import all_predictor_names
from tests.conftest import random_rounds


class FakeSource:
    def __init__(self, history=None, error=None):
        self._history = history if history is not None else History()
        self._error = error

    @property
    def has_data(self):
        return self._error is None

    async def history(self):
        if self._error is not None:
            raise self._error
        return self._history


@pytest.fixture
def client(settings, combiner):
    with TestClient(app) as test_client:
        app.state.settings = settings
        app.state.combiner = combiner
        app.state.source = FakeSource(History(random_rounds(60, seed=8)))
        yield test_client


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json()["status"] == "online"


def test_ping_and_health(client):
    assert client.get("/ping").json()["message"] == "pong"

    health = client.get("/health").json()
    assert health["status"] == "healthy"
    assert health["model"]["trained"] is False
    assert health["model"]["warmed"] is False
    assert "bias" in health["model"]
    assert set(health["model"]["weights"]) == set(app.state.combiner.feature_names)


def test_prediction(client):
    response = client.get("/api/prediction")
    assert response.status_code == 200
    assert "X-Process-Time" in response.headers

    data = response.json()
    assert response.headers["X-Predicted-Round"] == str(data["nextRound"])
    assert data["prediction"] in ("HIGH", "LOW")
    assert 0.5 <= data["confidence"] <= 0.995
    assert data["nextRound"] == data["lastRound"]["index"] + 1
    assert {p["name"] for p in data["perPredictorBreakdown"]} == set(all_predictor_names())
    assert data["backtest"]["sampleSize"] == 25
    assert data["backtest"]["perRoundDetail"] == []


def test_prediction_full(client):
    data = client.get("/api/prediction/full", params={"detail": 5}).json()
    walk = data["walkForward"]

    # Acurácia sobre a janela completa (BACKTEST_WINDOW=25), detalhe só das 5 últimas
    assert walk["sampleSize"] == 25
    assert len(walk["perRoundDetail"]) == 5
    assert walk["perRoundDetail"][-1]["round"] == data["lastRound"]["index"]

    for detail in walk["perRoundDetail"]:
        assert {p["name"] for p in detail["perPredictorBreakdown"]} == set(all_predictor_names())
        assert "entropy" in detail["diagnostics"]
        assert "optimizedWeights" in detail["diagnostics"]


def test_prediction_full_detail_larger_than_window(client):
    walk = client.get("/api/prediction/full", params={"detail": 40}).json()["walkForward"]
    assert walk["sampleSize"] == 40
    assert len(walk["perRoundDetail"]) == 40


def test_prediction_full_detail_limit(client):
    assert client.get("/api/prediction/full", params={"detail": 61}).status_code == 422


def test_backtest(client):
    data = client.get("/api/backtest", params={"window": 10, "bankroll": 500}).json()
    assert data["sampleSize"] == 10
    assert data["initialBankroll"] == 500
    assert "finalBankroll" in data
    assert "maxDrawdown" in data
    assert "perPredictorBreakdown" not in data["perRoundDetail"][0]


def test_backtest_window_too_large(client):
    response = client.get("/api/backtest", params={"window": 10_000})
    assert response.status_code == 400
    assert response.json()["error"] == "Bad Request"


def test_history_newest_first(client):
    data = client.get("/api/history", params={"limit": 5}).json()
    indices = [r["index"] for r in data["rounds"]]
    assert data["total"] == 5
    assert indices == sorted(indices, reverse=True)
    assert indices[0] == 60


def test_source_unavailable_is_502(client):
    app.state.source = FakeSource(error=SourceUnavailableError("fonte fora do ar"))
    response = client.get("/api/prediction")
    assert response.status_code == 502
    body = response.json()
    assert body["error"] == "Bad Gateway"
    assert "timestamp" in body


def test_empty_history_is_502(client):
    app.state.source = FakeSource(History())
    assert client.get("/api/prediction").status_code == 502
