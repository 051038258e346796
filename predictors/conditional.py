"""
predictors/conditional.py

Modelos de FREQUÊNCIA CONDICIONAL

Agrupa o histórico por uma chave derivada da rodada (formato dos dados,
paridade do total, faixa da soma) e prevê o resultado seguinte mais
frequente no grupo da rodada atual. Grupos com poucas amostras retornam
"evidência insuficiente", por mais enviesados que estejam.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict

from core.history import History, Outcome, Round
from ml.features import dice_shape, parity, sum_bucket
from predictors.base import BasePredictor, PredictorOutput

BASE_CONFIDENCE = 0.55
MARGIN_SCALE = 1.5
MAX_BONUS = 0.40


@dataclass
class FollowCounts:
    """Contagem de resultados seguintes para uma chave"""
    high: int = 0
    low: int = 0

    @property
    def total(self) -> int:
        return self.high + self.low

    def add(self, outcome: Outcome) -> None:
        if outcome is Outcome.HIGH:
            self.high += 1
        else:
            self.low += 1


class ConditionalFrequencyPredictor(BasePredictor):
    """
    Preditor genérico por chave

    Args:
        name: Nome no registro
        key_fn: Função Round -> chave (Enum)
        label: Nome exibido nas explicações
        min_count: Mínimo de amostras no grupo
    """

    default_min_history = 2

    def __init__(
        self,
        name: str,
        key_fn: Callable[[Round], Enum],
        label: str,
        min_count: int,
        config: Dict[str, Any] = None,
    ):
        super().__init__(config)
        self.name = name
        self.key_fn = key_fn
        self.label = label
        self.min_count = self.get_config_value("min_count", min_count)

    def build_table(self, history: History) -> Dict[Enum, FollowCounts]:
        table: Dict[Enum, FollowCounts] = {}
        rounds = history.rounds
        for i in range(len(rounds) - 1):
            key = self.key_fn(rounds[i])
            table.setdefault(key, FollowCounts()).add(rounds[i + 1].outcome)
        return table

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return PredictorOutput.neutral(f"{self.label}: histórico insuficiente", samples=len(history))

        key = self.key_fn(history[-1])
        counts = self.build_table(history).get(key, FollowCounts())

        if counts.total < self.min_count:
            return PredictorOutput.neutral(
                f"{self.label}: amostras insuficientes para chave={key.value} (amostras={counts.total})",
                key=key.value,
                samples=counts.total,
            )

        p_high = counts.high / counts.total
        pred = Outcome.HIGH if p_high >= 0.5 else Outcome.LOW
        conf = BASE_CONFIDENCE + min(MAX_BONUS, abs(p_high - 0.5) * MARGIN_SCALE)

        return PredictorOutput(
            prediction=pred,
            confidence=conf,
            rationale=[f"{self.label}: chave={key.value}, P(Tài)={p_high:.3f} em {counts.total} amostras"],
            metadata={"key": key.value, "samples": counts.total, "p_high": round(p_high, 4)},
        )


def dice_shape_predictor(config: Dict[str, Any] = None) -> ConditionalFrequencyPredictor:
    return ConditionalFrequencyPredictor("dice_shape", dice_shape, "Formato dos dados", 5, config)


def parity_predictor(config: Dict[str, Any] = None) -> ConditionalFrequencyPredictor:
    return ConditionalFrequencyPredictor("parity", parity, "Paridade do total anterior", 8, config)


def sum_bucket_predictor(config: Dict[str, Any] = None) -> ConditionalFrequencyPredictor:
    return ConditionalFrequencyPredictor("sum_bucket", sum_bucket, "Faixa da soma", 8, config)
