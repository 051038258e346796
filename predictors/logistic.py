"""
predictors/logistic.py

Preditor LOGÍSTICO - combina as features do histórico com a opinião
dos preditores heurísticos através do modelo logístico online
"""

from typing import Any, Dict, List, Mapping

from core.history import History, Outcome
from ml.features import extract_features
from ml.logistic import OnlineLogisticModel
from ml.ml_config import PREDICTOR_FEATURE_PREFIX
from predictors.base import BasePredictor, PredictorOutput

NAME = "logistic"


def build_model_features(history: History, outputs: Mapping[str, PredictorOutput]) -> Dict[str, float]:
    """
    Vetor completo do modelo: features base + "probabilidade de Tài"
    de cada preditor heurístico
    """
    features = extract_features(history)
    for name, out in outputs.items():
        features[f"{PREDICTOR_FEATURE_PREFIX}{name}"] = out.p_high
    return features


class LogisticPredictor(BasePredictor):
    """
    Adaptador do modelo logístico para a interface de preditor

    Args:
        model: Modelo logístico (compartilhado ou de replay)
        heuristics: Preditores heurísticos usados como features
    """

    name = NAME
    default_min_history = 1

    def __init__(self, model: OnlineLogisticModel, heuristics: List[BasePredictor] = None,
                 config: Dict[str, Any] = None):
        super().__init__(config)
        self.model = model
        self.heuristics = heuristics or []

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return self.insufficient(history)

        outputs = {p.name: p.safe_predict(history) for p in self.heuristics}
        return self.predict_from_features(build_model_features(history, outputs))

    def predict_from_features(self, features: Dict[str, float]) -> PredictorOutput:
        if not self.model.is_trained:
            return PredictorOutput.neutral("Logístico: modelo ainda não treinado", updates=0)

        p_high = self.model.predict_proba(features)
        pred = Outcome.HIGH if p_high >= 0.5 else Outcome.LOW
        conf = p_high if pred is Outcome.HIGH else 1.0 - p_high

        return PredictorOutput(
            prediction=pred,
            confidence=conf,
            rationale=[f"Logístico online: P(Tài)={p_high:.3f} ({self.model.updates} atualizações)"],
            metadata={"p_high": round(p_high, 4), "updates": self.model.updates, "warmed": self.model.warmed},
        )
