"""
ensemble/optimizer.py

Otimizador de pesos: hill-climb com aceitação de simulated annealing

Parte de todos os pesos = 1, perturba um peso por iteração e aceita a
proposta se a acurácia não piorar; se piorar, aceita com probabilidade
exp((acc - melhor) / T), com T decaindo ao longo das iterações. O melhor
vetor já visto é sempre o retornado, então o resultado nunca fica abaixo
da acurácia inicial.
"""

import logging
import math
import random
from dataclasses import dataclass
from typing import Callable, Dict, NamedTuple, Optional

import numpy as np

from ensemble.evaluation import evaluate
from ensemble.table import WalkForwardTable

logger = logging.getLogger(__name__)


class SearchState(NamedTuple):
    """Estado da busca, passado adiante a cada iteração"""
    current: np.ndarray
    current_acc: float
    best: np.ndarray
    best_acc: float


@dataclass
class OptimizationResult:
    weights: Dict[str, float]
    accuracy: float
    baseline_accuracy: float
    samples: int
    iterations: int = 0
    accepted: int = 0

    def to_dict(self) -> Dict[str, object]:
        return {
            "weights": {k: round(v, 3) for k, v in self.weights.items()},
            "accuracy": round(self.accuracy, 4),
            "baselineAccuracy": round(self.baseline_accuracy, 4),
            "samples": self.samples,
            "iterations": self.iterations,
            "accepted": self.accepted,
        }


class WeightOptimizer:
    """
    Args:
        iterations: Orçamento de iterações
        t0: Temperatura inicial
        step: Amplitude da perturbação multiplicativa (0.8 -> +-40%)
        weight_min / weight_max: Faixa válida de cada peso
        min_samples: Janela mínima para a busca fazer sentido
    """

    def __init__(
        self,
        iterations: int = 600,
        t0: float = 0.08,
        step: float = 0.8,
        weight_min: float = 0.2,
        weight_max: float = 3.5,
        min_samples: int = 10,
    ):
        self.iterations = iterations
        self.t0 = t0
        self.step = step
        self.weight_min = weight_min
        self.weight_max = weight_max
        self.min_samples = min_samples

    @classmethod
    def from_settings(cls, settings) -> "WeightOptimizer":
        return cls(
            iterations=settings.OPTIMIZER_ITERATIONS,
            t0=settings.OPTIMIZER_T0,
            step=settings.OPTIMIZER_STEP,
            weight_min=settings.OPTIMIZER_WEIGHT_MIN,
            weight_max=settings.OPTIMIZER_WEIGHT_MAX,
            min_samples=settings.OPTIMIZER_MIN_SAMPLES,
        )

    def temperature(self, iteration: int, total: int) -> float:
        return self.t0 / (1.0 + iteration / max(1, total))

    def step_state(
        self,
        state: SearchState,
        iteration: int,
        total: int,
        score: Callable[[np.ndarray], float],
        rng: random.Random,
    ) -> SearchState:
        """Uma iteração: propõe, avalia e decide; retorna o novo estado"""
        j = rng.randrange(len(state.current))
        factor = 1.0 + (rng.random() - 0.5) * self.step

        proposal = state.current.copy()
        proposal[j] = min(self.weight_max, max(self.weight_min, proposal[j] * factor))
        acc = score(proposal)

        if acc < state.current_acc:
            prob = math.exp((acc - state.best_acc) / self.temperature(iteration, total))
            if rng.random() >= prob:
                return state

        if acc >= state.best_acc:
            return SearchState(proposal, acc, proposal, acc)
        return SearchState(proposal, acc, state.best, state.best_acc)

    def optimize(
        self,
        table: WalkForwardTable,
        end: int,
        window: int,
        rng: Optional[random.Random] = None,
        iterations: Optional[int] = None,
    ) -> OptimizationResult:
        """
        Busca o vetor de pesos de maior acurácia walk-forward

        Args:
            table: Tabela walk-forward
            end: Posição da decisão (só linhas anteriores são avaliadas)
            window: Janela de avaliação
            rng: Fonte de aleatoriedade (semente fixa -> resultado determinístico)
            iterations: Sobrescreve o orçamento padrão

        Returns:
            OptimizationResult com os melhores pesos por nome
        """
        rng = rng or random.Random()
        total = self.iterations if iterations is None else iterations

        def score(weights: np.ndarray) -> float:
            return evaluate(table, weights, end, window, self.min_samples)[0]

        ones = np.ones(len(table.names))
        baseline, samples = evaluate(table, ones, end, window, self.min_samples)
        state = SearchState(ones, baseline, ones, baseline)

        accepted = 0
        if samples >= self.min_samples:
            for it in range(total):
                new_state = self.step_state(state, it, total, score, rng)
                if new_state is not state:
                    accepted += 1
                state = new_state
        else:
            total = 0

        logger.debug(
            f"Otimizador: baseline={baseline:.3f} melhor={state.best_acc:.3f} "
            f"({accepted}/{total} aceitas, {samples} amostras)"
        )

        return OptimizationResult(
            weights={name: float(w) for name, w in zip(table.names, state.best)},
            accuracy=state.best_acc,
            baseline_accuracy=baseline,
            samples=samples,
            iterations=total,
            accepted=accepted,
        )
