"""
predictors/autoregressive.py

Autorregressão de ordem 2 (coeficientes fixos) sobre a série de totais
"""

from typing import Any, Dict

from core.history import History, Outcome
from predictors.base import BasePredictor, PredictorOutput
from utils.constants import TOTAL_MIDPOINT
from utils.helpers import last_n, mean

WINDOW = 20
PHI_1 = 0.6
PHI_2 = 0.3
BASE_CONFIDENCE = 0.52
DISTANCE_SCALE = 0.08
MAX_BONUS = 0.3


class AutoregressivePredictor(BasePredictor):
    """
    Projeta o próximo total como desvio da média recente:

        next = mu + phi1 * (x[-1] - mu) + phi2 * (x[-2] - mu)
    """

    name = "autoregressive"
    default_min_history = 4

    def __init__(self, config: Dict[str, Any] = None):
        super().__init__(config)
        self.window = self.get_config_value("window", WINDOW)
        self.phi_1 = self.get_config_value("phi_1", PHI_1)
        self.phi_2 = self.get_config_value("phi_2", PHI_2)

    def project(self, totals) -> float:
        window = last_n(totals, self.window)
        mu = mean(window, default=TOTAL_MIDPOINT)
        return mu + self.phi_1 * (window[-1] - mu) + self.phi_2 * (window[-2] - mu)

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return self.insufficient(history)

        projected = self.project(history.totals)
        distance = projected - TOTAL_MIDPOINT
        meta = {"projected_total": round(projected, 3)}

        if distance == 0:
            return PredictorOutput.neutral("AR(2): projeção exatamente no ponto médio", **meta)

        pred = Outcome.HIGH if distance > 0 else Outcome.LOW
        conf = BASE_CONFIDENCE + min(MAX_BONUS, abs(distance) * DISTANCE_SCALE)

        return PredictorOutput(
            prediction=pred,
            confidence=conf,
            rationale=[f"AR(2) projeta total {projected:.2f} -> {pred.display}"],
            metadata=meta,
        )
