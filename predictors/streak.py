"""
predictors/streak.py

Filtro de QUEBRA DE SEQUÊNCIA (bẻ cầu)

Mapeia o tamanho da sequência atual para uma probabilidade de quebra
(tabela em degraus) e a refina com a taxa de quebra observada no próprio
histórico para sequências do mesmo tamanho.
"""

from typing import Any, Dict, List, Optional, Tuple

from core.history import History
from predictors.base import BasePredictor, PredictorOutput
from utils.helpers import streak_of_end

# (tamanho mínimo, probabilidade de quebra) - do maior para o menor
BREAK_TABLE: List[Tuple[int, float]] = [
    (12, 0.86),
    (10, 0.80),
    (8, 0.74),
    (6, 0.68),
    (4, 0.62),
]
BREAK_THRESHOLD = 0.62
CONTINUE_CONFIDENCE = 0.56
MIN_EMPIRICAL_SAMPLES = 5
EMPIRICAL_PRIOR = 10


class StreakBreakPredictor(BasePredictor):
    """Estimador de quebra da sequência atual"""

    name = "streak"
    default_min_history = 1

    def __init__(self, config: Dict[str, Any] = None):
        super().__init__(config)
        self.break_table = self.get_config_value("break_table", BREAK_TABLE)
        self.threshold = self.get_config_value("threshold", BREAK_THRESHOLD)
        self.continue_confidence = self.get_config_value("continue_confidence", CONTINUE_CONFIDENCE)
        self.min_empirical_samples = self.get_config_value("min_empirical_samples", MIN_EMPIRICAL_SAMPLES)
        self.empirical_prior = self.get_config_value("empirical_prior", EMPIRICAL_PRIOR)

    def table_probability(self, streak: int) -> float:
        for min_len, prob in self.break_table:
            if streak >= min_len:
                return prob
        return 0.0

    @staticmethod
    def empirical_break_rate(outcomes, streak: int) -> Tuple[Optional[float], int]:
        """
        Taxa de quebra histórica para sequências de exatamente `streak`

        Considera apenas posições com sucessor conhecido (anteriores à última).

        Returns:
            (taxa ou None, amostras)
        """
        breaks = 0
        samples = 0
        run = 0
        for j in range(len(outcomes) - 1):
            run = run + 1 if j > 0 and outcomes[j] == outcomes[j - 1] else 1
            if run == streak:
                samples += 1
                if outcomes[j + 1] != outcomes[j]:
                    breaks += 1
        if samples == 0:
            return None, 0
        return breaks / samples, samples

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return PredictorOutput.neutral("Sequência: dados insuficientes", samples=len(history))

        outcomes = history.outcomes
        streak = streak_of_end(outcomes)
        current = outcomes[-1]

        break_prob = self.table_probability(streak)
        empirical, samples = None, 0
        if break_prob > 0:
            empirical, samples = self.empirical_break_rate(outcomes, streak)
            if empirical is not None and samples >= self.min_empirical_samples:
                blend = samples / (samples + self.empirical_prior)
                break_prob = (1 - blend) * break_prob + blend * empirical

        meta = {"streak": streak, "break_prob": round(break_prob, 4), "empirical_samples": samples}
        if empirical is not None:
            meta["empirical_rate"] = round(empirical, 4)

        if break_prob >= self.threshold:
            return PredictorOutput(
                prediction=current.opposite,
                confidence=break_prob,
                rationale=[f"Sequência de {streak} {current.display} -> chance de quebra {break_prob:.0%}"],
                metadata=meta,
            )

        return PredictorOutput(
            prediction=current,
            confidence=self.continue_confidence,
            rationale=[f"Sequência de {streak} -> segue a sequência"],
            metadata=meta,
        )
