# logistic.py
"""
Modelo logístico online (estado compartilhado do processo).

Ciclo de vida:
  - criado uma vez no início do processo (get_shared_model)
  - warm-fit no máximo uma vez, na primeira vez que um histórico longo
    o suficiente é visto (checagem e marcação sob lock)
  - depois disso só recebe atualizações incrementais de rodadas cujo
    resultado seguinte já é conhecido (absorb), durante o backtest
  - nunca é atualizado por uma previsão ao vivo
  - não tem teardown: só é reiniciado com o processo

Cada passe de treino é feito em uma cópia e trocado sob o lock, então
do ponto de vista do modelo um passe é tudo-ou-nada.
"""

from __future__ import annotations

import logging
import math
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import numpy as np

from core.history import Outcome
from ml.ml_config import INIT_SCALE, L2_REG, LEARNING_RATE, WARM_FIT_MIN_HISTORY

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrainingExample:
    """Features da rodada `round_index` e o resultado da rodada seguinte"""
    round_index: int
    features: Dict[str, float]
    label: Outcome


def _sigmoid(z: float) -> float:
    if z >= 0:
        return 1.0 / (1.0 + math.exp(-z))
    ez = math.exp(z)
    return ez / (1.0 + ez)


class OnlineLogisticModel:
    """
    Regressão logística com gradiente por exemplo e decaimento L2

    Args:
        feature_names: Assinatura do vetor de entrada
        learning_rate: Passo do gradiente
        l2: Decaimento dos pesos
        seed: Semente da inicialização aleatória (pesos pequenos)
    """

    def __init__(
        self,
        feature_names: List[str],
        learning_rate: float = LEARNING_RATE,
        l2: float = L2_REG,
        seed: Optional[int] = None,
    ):
        self.feature_names = list(feature_names)
        self.learning_rate = learning_rate
        self.l2 = l2

        rng = np.random.default_rng(seed)
        # (pesos, bias) trocados juntos numa única atribuição
        self._params: Tuple[np.ndarray, float] = (
            rng.normal(0.0, INIT_SCALE, size=len(self.feature_names)),
            float(rng.normal(0.0, INIT_SCALE)),
        )

        self.updates = 0
        self.warmed = False
        self.last_trained_index: Optional[int] = None
        self._lock = threading.Lock()

    @property
    def weights(self) -> np.ndarray:
        return self._params[0]

    @property
    def bias(self) -> float:
        return self._params[1]

    # ---------- inferência ----------

    def vectorize(self, features: Dict[str, float]) -> np.ndarray:
        return np.array([float(features.get(name, 0.0)) for name in self.feature_names])

    def predict_proba(self, features: Dict[str, float]) -> float:
        """Probabilidade de Tài"""
        weights, bias = self._params
        z = float(np.dot(weights, self.vectorize(features))) + bias
        return _sigmoid(z)

    @property
    def is_trained(self) -> bool:
        return self.updates > 0

    # ---------- treino ----------

    def update(self, features: Dict[str, float], label: Outcome) -> float:
        """
        Um passo de gradiente na log-loss

        Returns:
            Probabilidade prevista antes da atualização
        """
        weights, bias = self._params
        x = self.vectorize(features)
        p = _sigmoid(float(np.dot(weights, x)) + bias)
        y = 1.0 if label is Outcome.HIGH else 0.0
        error = p - y

        self._params = (
            weights - self.learning_rate * (error * x + self.l2 * weights),
            bias - self.learning_rate * error,
        )
        self.updates += 1
        return p

    def train(self, examples: Iterable[TrainingExample]) -> int:
        """Atualizações sequenciais, em ordem; retorna a quantidade aplicada"""
        applied = 0
        for ex in examples:
            if self.last_trained_index is not None and ex.round_index <= self.last_trained_index:
                continue
            self.update(ex.features, ex.label)
            self.last_trained_index = ex.round_index
            applied += 1
        return applied

    def copy(self) -> "OnlineLogisticModel":
        clone = OnlineLogisticModel.__new__(OnlineLogisticModel)
        clone.feature_names = list(self.feature_names)
        clone.learning_rate = self.learning_rate
        clone.l2 = self.l2
        weights, bias = self._params
        clone._params = (weights.copy(), bias)
        clone.updates = self.updates
        clone.warmed = self.warmed
        clone.last_trained_index = self.last_trained_index
        clone._lock = threading.Lock()
        return clone

    def _load_state(self, other: "OnlineLogisticModel") -> None:
        self._params = other._params
        self.updates = other.updates
        self.last_trained_index = other.last_trained_index

    def warm_fit(
        self,
        history_length: int,
        examples_factory: Callable[[], Iterable[TrainingExample]],
        min_history: int = WARM_FIT_MIN_HISTORY,
    ) -> bool:
        """
        Treino em lote, executado no máximo uma vez por processo

        Args:
            history_length: Tamanho do histórico visto
            examples_factory: Gera os exemplos (só é chamado se o warm-fit rodar)
            min_history: O histórico precisa ser maior que isso

        Returns:
            True se este chamado executou o warm-fit
        """
        if self.warmed or history_length <= min_history:
            return False

        with self._lock:
            if self.warmed:
                return False

            staged = self.copy()
            applied = staged.train(examples_factory())
            self._load_state(staged)
            self.warmed = True

        logger.info(f"🧠 Warm-fit do modelo logístico concluído ({applied} exemplos)")
        return True

    def absorb(self, examples: Iterable[TrainingExample]) -> int:
        """
        Atualização incremental com rodadas já resolvidas e ainda não vistas

        Returns:
            Quantidade de exemplos aplicados
        """
        with self._lock:
            staged = self.copy()
            applied = staged.train(examples)
            if applied:
                self._load_state(staged)

        if applied:
            logger.info(f"🧠 Modelo logístico absorveu {applied} rodada(s) nova(s)")
        return applied

    def state_dict(self) -> Dict[str, object]:
        """Estado serializável (exposto no /health)"""
        weights, bias = self._params
        return {
            "weights": {n: round(float(w), 6) for n, w in zip(self.feature_names, weights)},
            "bias": round(bias, 6),
            "updates": self.updates,
            "warmed": self.warmed,
            "last_trained_index": self.last_trained_index,
        }


# Instância única (singleton) do processo
_SHARED_MODEL: Optional[OnlineLogisticModel] = None
_SHARED_LOCK = threading.Lock()


def get_shared_model(
    feature_names: List[str],
    learning_rate: float = LEARNING_RATE,
    l2: float = L2_REG,
    seed: Optional[int] = None,
) -> OnlineLogisticModel:
    """
    Retorna a instância singleton do modelo logístico.

    Raises:
        ValueError: Se o singleton já existe com outra assinatura de features
    """
    global _SHARED_MODEL
    with _SHARED_LOCK:
        if _SHARED_MODEL is None:
            _SHARED_MODEL = OnlineLogisticModel(feature_names, learning_rate, l2, seed)
            logger.info(f"🧠 Modelo logístico criado com {len(feature_names)} features")
        elif _SHARED_MODEL.feature_names != list(feature_names):
            raise ValueError(
                f"Modelo logístico do processo já criado com {len(_SHARED_MODEL.feature_names)} features; "
                f"assinatura diferente recebida ({len(feature_names)} features)"
            )
        return _SHARED_MODEL


def reset_shared_model() -> None:
    """Descarta o singleton (equivalente a reiniciar o processo)"""
    global _SHARED_MODEL
    with _SHARED_LOCK:
        _SHARED_MODEL = None
