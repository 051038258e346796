"""
ensemble/table.py

Tabela walk-forward: a opinião de cada preditor em cada prefixo do histórico

A linha j é calculada SOMENTE com as rodadas 0..j. O rótulo da linha j
(resultado da rodada j+1) é guardado à parte e só é lido por quem decide
em um ponto posterior a j+1. A coluna logística vem de um modelo de
replay treinado em sequência: antes de prever a linha j ele recebe o
exemplo (linha j-1, resultado j), que já era conhecido em j.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from core.history import History, Outcome
from ml.logistic import OnlineLogisticModel, TrainingExample
from ml.ml_config import feature_names_for
from predictors.base import BasePredictor, PredictorOutput
from predictors.logistic import NAME as LOGISTIC_NAME
from predictors.logistic import LogisticPredictor, build_model_features

logger = logging.getLogger(__name__)


@dataclass
class TableRow:
    """Opiniões e features visíveis na posição `position`"""
    position: int
    round_index: int
    outputs: Dict[str, PredictorOutput]
    features: Dict[str, float]


class WalkForwardTable:
    """
    Pré-calcula uma vez por requisição as saídas de todos os preditores
    em todos os prefixos, para que backtest e otimizador avaliem pesos
    apenas com álgebra vetorial

    Args:
        history: Histórico completo da requisição
        heuristics: Preditores heurísticos (ordem define as colunas)
        logistic_seed: Semente do modelo de replay
        learning_rate / l2: Hiperparâmetros do modelo de replay
    """

    def __init__(
        self,
        history: History,
        heuristics: List[BasePredictor],
        logistic_seed: Optional[int] = None,
        learning_rate: float = 0.05,
        l2: float = 0.001,
    ):
        self.history = history
        self.heuristic_names = [p.name for p in heuristics]
        self.names = self.heuristic_names + [LOGISTIC_NAME]
        self.feature_names = feature_names_for(self.heuristic_names)

        replay = OnlineLogisticModel(self.feature_names, learning_rate, l2, seed=logistic_seed)
        replay_predictor = LogisticPredictor(replay)

        self.rows: List[TableRow] = []
        for j in range(len(history)):
            prefix = history.prefix(j)

            if j > 0:
                prev = self.rows[j - 1]
                replay.train([TrainingExample(prev.round_index, prev.features, history[j].outcome)])

            outputs = {p.name: p.safe_predict(prefix) for p in heuristics}
            features = build_model_features(prefix, outputs)
            outputs[LOGISTIC_NAME] = replay_predictor.predict_from_features(features)

            self.rows.append(TableRow(j, history[j].index, outputs, features))

        self._build_arrays()
        logger.debug(f"Tabela walk-forward: {len(self.rows)} linhas x {len(self.names)} preditores")

    def _build_arrays(self) -> None:
        n, k = len(self.rows), len(self.names)
        self.high = np.zeros((n, k))
        self.low = np.zeros((n, k))
        for j, row in enumerate(self.rows):
            for c, name in enumerate(self.names):
                out = row.outputs[name]
                if out.prediction is Outcome.HIGH:
                    self.high[j, c] = out.confidence
                elif out.prediction is Outcome.LOW:
                    self.low[j, c] = out.confidence

        outcomes = self.history.outcomes
        self.is_high = np.array([o is Outcome.HIGH for o in outcomes], dtype=bool)
        # Resultado da rodada seguinte (sem valor para a última linha)
        self.next_is_high = np.zeros(n, dtype=bool)
        if n > 1:
            self.next_is_high[:-1] = self.is_high[1:]

    def __len__(self) -> int:
        return len(self.rows)

    def examples(self, start: int, end: int) -> List[TrainingExample]:
        """
        Exemplos rotulados das linhas start..end-1 (o rótulo da linha j é a rodada j+1)
        """
        end = min(end, len(self.rows) - 1)
        return [
            TrainingExample(self.rows[j].round_index, self.rows[j].features, self.history[j + 1].outcome)
            for j in range(max(0, start), end)
        ]
