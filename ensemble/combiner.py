"""
ensemble/combiner.py

Combinador do ensemble: voto ponderado dos preditores

Peso final de cada preditor = importância base
                              x desempenho local recente
                              x multiplicador do otimizador
(sempre indexado pelo nome, limitado a [WEIGHT_MIN, WEIGHT_MAX])
"""

import logging
import random
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional

from core.exceptions import EmptyHistoryError
from core.history import History, Outcome
from ensemble.evaluation import local_performance
from ensemble.optimizer import OptimizationResult, WeightOptimizer
from ensemble.table import WalkForwardTable
from ml.features import dice_shape
from ml.logistic import OnlineLogisticModel, get_shared_model
from ml.ml_config import WARM_FIT_MIN_HISTORY, WARM_FIT_OFFSET, ENTROPY_WINDOW, SWITCH_WINDOW, feature_names_for
from predictors.base import BasePredictor, PredictorOutput
from predictors.logistic import NAME as LOGISTIC_NAME
from predictors.logistic import LogisticPredictor
from predictors.markov import MarkovPredictor
from predictors.registry import BASE_IMPORTANCE, build_heuristic_predictors
from utils.helpers import clamp, last_n, shannon_entropy, streak_of_end, switch_rate

logger = logging.getLogger(__name__)

TOP_PATTERNS = 6
RNG_SEED_STRIDE = 1_000_003

# Nível de risco (quanto maior, mais arriscado seguir a previsão)
RISK_SWITCH_COEF = 0.12
RISK_LONG_STREAK = 6
RISK_STREAK_PENALTY = 0.06
RISK_ENTROPY_CAP = 0.12
RISK_LOW_MAX = 0.20
RISK_MEDIUM_MAX = 0.35


class RiskLevel(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


@dataclass
class PredictorVote:
    """Contribuição de um preditor para o voto"""
    name: str
    output: PredictorOutput
    weight: float

    @property
    def vote_score(self) -> float:
        if self.output.is_neutral:
            return 0.0
        return self.output.confidence * self.weight

    def to_dict(self) -> Dict[str, Any]:
        pred = self.output.prediction
        return {
            "name": self.name,
            "prediction": pred.value if pred else None,
            "confidence": round(self.output.confidence, 4),
            "weight": round(self.weight, 4),
            "voteScore": round(self.vote_score, 4),
            "rationale": list(self.output.rationale),
        }


@dataclass
class EnsembleDecision:
    """Decisão final do ensemble em uma posição do histórico"""
    round_index: int
    prediction: Outcome
    confidence: float
    risk_level: RiskLevel
    rationale: List[str]
    votes: List[PredictorVote]
    diagnostics: Dict[str, Any]
    optimization: OptimizationResult
    score_high: float = 0.0
    score_low: float = 0.0
    agreement: float = 0.0
    insufficient_history: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prediction": self.prediction.value,
            "predictionLabel": self.prediction.display,
            "confidence": round(self.confidence, 4),
            "riskLevel": self.risk_level.value,
            "rationale": list(self.rationale),
            "diagnostics": self.diagnostics,
            "perPredictorBreakdown": [v.to_dict() for v in self.votes],
            "insufficientHistory": self.insufficient_history,
        }


def risk_level(confidence: float, history: History) -> RiskLevel:
    """
    Classifica o risco combinando a confiança com a instabilidade recente
    (taxa de alternância, sequência longa e entropia)
    """
    outcomes = history.outcomes
    risk = 1.0 - confidence
    risk += RISK_SWITCH_COEF * switch_rate(last_n(outcomes, SWITCH_WINDOW))
    if streak_of_end(outcomes) >= RISK_LONG_STREAK:
        risk += RISK_STREAK_PENALTY
    risk += min(RISK_ENTROPY_CAP, shannon_entropy(last_n(outcomes, ENTROPY_WINDOW)) / 4.0)

    if risk <= RISK_LOW_MAX:
        return RiskLevel.LOW
    if risk <= RISK_MEDIUM_MAX:
        return RiskLevel.MEDIUM
    return RiskLevel.HIGH


def transition_probabilities(history: History) -> Dict[str, float]:
    """P(próximo | atual) sobre todo o histórico, ex: {"T->X": 0.52}"""
    counts = MarkovPredictor.transition_counts(history.outcomes, order=1)
    probs: Dict[str, float] = {}
    for current in (Outcome.HIGH, Outcome.LOW):
        row = counts[(current,)]
        total = row[Outcome.HIGH] + row[Outcome.LOW]
        for nxt in (Outcome.HIGH, Outcome.LOW):
            p = row[nxt] / total if total else 0.5
            probs[f"{current.symbol}->{nxt.symbol}"] = round(p, 4)
    return probs


def top_patterns(history: History, limit: int = TOP_PATTERNS) -> List[Dict[str, Any]]:
    """Histograma dos formatos de dados (todas as rodadas), mais frequentes primeiro"""
    counter = Counter(dice_shape(r).value for r in history)
    return [{"pattern": shape, "count": count} for shape, count in counter.most_common(limit)]


class EnsembleCombiner:
    """
    Orquestra preditores, otimizador e modelo logístico compartilhado

    Args:
        settings: Instância de Settings
        heuristics: Preditores heurísticos (padrão: registro completo)
        shared_model: Modelo logístico do processo (padrão: singleton)
    """

    def __init__(
        self,
        settings,
        heuristics: Optional[List[BasePredictor]] = None,
        shared_model: Optional[OnlineLogisticModel] = None,
    ):
        self.settings = settings
        self.heuristics = heuristics if heuristics is not None else build_heuristic_predictors()
        self.feature_names = feature_names_for([p.name for p in self.heuristics])
        self.shared_model = shared_model or get_shared_model(
            self.feature_names,
            learning_rate=settings.LOGISTIC_LEARNING_RATE,
            l2=settings.LOGISTIC_L2,
            seed=settings.LOGISTIC_SEED,
        )
        self.live_logistic = LogisticPredictor(self.shared_model)
        self.optimizer = WeightOptimizer.from_settings(settings)

    # ========== TABELA / RNG ==========

    def build_table(self, history: History) -> WalkForwardTable:
        return WalkForwardTable(
            history,
            self.heuristics,
            logistic_seed=self.settings.LOGISTIC_SEED,
            learning_rate=self.settings.LOGISTIC_LEARNING_RATE,
            l2=self.settings.LOGISTIC_L2,
        )

    def rng_for(self, round_index: int) -> random.Random:
        """Gerador por decisão; determinístico quando OPTIMIZER_SEED está definido"""
        seed = self.settings.OPTIMIZER_SEED
        if seed is None:
            return random.Random()
        return random.Random(seed * RNG_SEED_STRIDE + round_index)

    # ========== MODELO COMPARTILHADO ==========

    def maybe_warm_fit(self, table: WalkForwardTable) -> bool:
        """Warm-fit único do modelo compartilhado, na primeira vez que o histórico é longo"""
        n = len(table)
        return self.shared_model.warm_fit(
            n,
            lambda: table.examples(WARM_FIT_OFFSET, n - 1),
            min_history=WARM_FIT_MIN_HISTORY,
        )

    def absorb(self, table: WalkForwardTable) -> int:
        """Atualiza o modelo compartilhado com as rodadas já resolvidas"""
        return self.shared_model.absorb(table.examples(0, len(table) - 1))

    def _live_logistic_output(self, table: WalkForwardTable) -> PredictorOutput:
        try:
            return self.live_logistic.predict_from_features(table.rows[-1].features)
        except Exception as e:
            logger.warning(f"⚠️ Modelo logístico falhou na previsão ao vivo: {e}")
            return PredictorOutput.neutral("Logístico: falha na previsão", fault=True)

    # ========== DECISÃO ==========

    def final_weights(
        self,
        performance: Dict[str, float],
        optimized: Dict[str, float],
    ) -> Dict[str, float]:
        return {
            name: clamp(
                BASE_IMPORTANCE.get(name, 1.0) * performance.get(name, 1.0) * optimized.get(name, 1.0),
                self.settings.WEIGHT_MIN,
                self.settings.WEIGHT_MAX,
            )
            for name in performance
        }

    def decide(
        self,
        table: WalkForwardTable,
        position: int,
        rng: Optional[random.Random] = None,
        iterations: Optional[int] = None,
        overrides: Optional[Dict[str, PredictorOutput]] = None,
    ) -> EnsembleDecision:
        """
        Decisão do ensemble usando SOMENTE as rodadas 0..position

        Args:
            table: Tabela walk-forward do histórico
            position: Posição da última rodada visível
            rng: Fonte de aleatoriedade do otimizador
            iterations: Orçamento do otimizador (padrão: OPTIMIZER_ITERATIONS)
            overrides: Saídas que substituem as da tabela (ex: logístico ao vivo)

        Returns:
            EnsembleDecision para a rodada position+1
        """
        s = self.settings
        row = table.rows[position]
        visible = table.history.prefix(position)
        last_outcome = visible[-1].outcome

        outputs = dict(row.outputs)
        if overrides:
            outputs.update(overrides)

        performance = local_performance(table, position, s.LOCAL_PERF_LOOKBACK, s.LOCAL_PERF_MIN_VOTES)
        window = min(s.OPTIMIZER_WINDOW, max(s.OPTIMIZER_MIN_WINDOW, position))
        optimization = self.optimizer.optimize(table, position, window, rng=rng, iterations=iterations)
        weights = self.final_weights(performance, optimization.weights)

        votes = [PredictorVote(name, outputs[name], weights[name]) for name in table.names]
        score_high = sum(v.vote_score for v in votes if v.output.prediction is Outcome.HIGH)
        score_low = sum(v.vote_score for v in votes if v.output.prediction is Outcome.LOW)

        diagnostics = self.diagnostics(visible, optimization, performance)

        if score_high == 0 and score_low == 0:
            return EnsembleDecision(
                round_index=row.round_index,
                prediction=last_outcome,
                confidence=0.5,
                risk_level=RiskLevel.HIGH,
                rationale=[
                    "Histórico insuficiente: nenhum preditor emitiu opinião",
                    f"Repetindo o último resultado observado ({last_outcome.display}) com confiança mínima",
                ],
                votes=votes,
                diagnostics=diagnostics,
                optimization=optimization,
                insufficient_history=True,
            )

        if score_high > score_low:
            prediction = Outcome.HIGH
        elif score_low > score_high:
            prediction = Outcome.LOW
        else:
            prediction = last_outcome

        raw = max(score_high, score_low) / (score_high + score_low)
        voters = sum(1 for v in votes if not v.output.is_neutral)
        if voters < s.CONF_MIN_VOTERS:
            raw = 0.5 + (raw - 0.5) * voters / s.CONF_MIN_VOTERS
        agreement = sum(1 for v in votes if v.output.prediction is prediction) / len(votes)
        confidence = clamp(
            0.5
            + s.CONF_RAW_COEF * (raw - 0.5)
            + s.CONF_AGREE_COEF * (agreement - 0.5)
            + s.CONF_ACC_COEF * (optimization.accuracy - 0.5),
            0.5,
            s.CONF_CAP,
        )

        rationale = [
            f"Voto ponderado: Tài={score_high:.3f} vs Xỉu={score_low:.3f}",
            f"Concordância entre preditores: {agreement:.0%}",
            f"Acurácia do backtest com pesos otimizados: {optimization.accuracy:.1%} "
            f"({optimization.samples} rodadas)",
        ]
        if score_high == score_low:
            rationale.append(f"Empate no voto: repetindo o último resultado ({last_outcome.display})")

        leader = max(votes, key=lambda v: v.vote_score if v.output.prediction is prediction else -1.0)
        if leader.output.rationale:
            rationale.append(f"Principal voto ({leader.name}): {leader.output.rationale[0]}")

        return EnsembleDecision(
            round_index=row.round_index,
            prediction=prediction,
            confidence=confidence,
            risk_level=risk_level(confidence, visible),
            rationale=rationale,
            votes=votes,
            diagnostics=diagnostics,
            optimization=optimization,
            score_high=score_high,
            score_low=score_low,
            agreement=agreement,
        )

    def diagnostics(
        self,
        history: History,
        optimization: OptimizationResult,
        performance: Dict[str, float],
    ) -> Dict[str, Any]:
        outcomes = history.outcomes
        return {
            "entropy": round(shannon_entropy(last_n(outcomes, ENTROPY_WINDOW)), 4),
            "streak": streak_of_end(outcomes),
            "streakOutcome": outcomes[-1].value if outcomes else None,
            "transitionProbabilities": transition_probabilities(history),
            "topPatterns": top_patterns(history),
            "optimizedWeights": {k: round(v, 3) for k, v in optimization.weights.items()},
            "optimizedAccuracy": round(optimization.accuracy, 4),
            "optimizedSamples": optimization.samples,
            "localPerformance": {k: round(v, 3) for k, v in performance.items()},
        }

    # ========== PREVISÃO AO VIVO ==========

    def predict(self, history: History, table: Optional[WalkForwardTable] = None) -> EnsembleDecision:
        """
        Previsão da próxima rodada a partir do histórico completo

        Raises:
            EmptyHistoryError: Se o histórico estiver vazio
        """
        if not history:
            raise EmptyHistoryError("Histórico vazio: nada para prever")

        table = table or self.build_table(history)
        self.maybe_warm_fit(table)

        last = history.last
        decision = self.decide(
            table,
            len(table) - 1,
            rng=self.rng_for(last.index),
            overrides={LOGISTIC_NAME: self._live_logistic_output(table)},
        )

        logger.info(
            f"🎯 Rodada {last.index + 1}: {decision.prediction.display} "
            f"({decision.confidence:.1%}, risco {decision.risk_level.value})"
        )
        return decision
