"""
predictors/pattern_miner.py

Minerador de PADRÕES - sequências Tài/Xỉu recorrentes

Na janela recente, conta todas as subsequências de tamanho 3..6 e escolhe
a mais frequente (empate: a mais longa, depois a primeira vista). Para cada
ocorrência histórica seguida de mais uma rodada, tabula o resultado
seguinte. Com poucas continuações, cai para um voto ponderado pela
recência.
"""

import logging
from typing import Any, Dict, List, Tuple

from core.history import History, Outcome
from predictors.base import BasePredictor, PredictorOutput
from utils.helpers import last_n

logger = logging.getLogger(__name__)

WINDOW = 40
MIN_LENGTH = 3
MAX_LENGTH = 6
MIN_FOLLOW = 4
RECENCY_BASE = 1.12

FOLLOW_BASE_CONFIDENCE = 0.6
FOLLOW_SCALE = 1.4
FOLLOW_MAX_BONUS = 0.38
RECENT_BASE_CONFIDENCE = 0.6
RECENT_SCALE = 0.9
RECENT_MAX_BONUS = 0.28


class PatternMinerPredictor(BasePredictor):
    """Minerador de subsequências frequentes"""

    name = "pattern"
    default_min_history = MIN_LENGTH

    def __init__(self, config: Dict[str, Any] = None):
        super().__init__(config)
        self.window = self.get_config_value("window", WINDOW)
        self.min_length = self.get_config_value("min_length", MIN_LENGTH)
        self.max_length = self.get_config_value("max_length", MAX_LENGTH)
        self.min_follow = self.get_config_value("min_follow", MIN_FOLLOW)
        self.recency_base = self.get_config_value("recency_base", RECENCY_BASE)

    def most_frequent_pattern(self, use: List[Outcome]) -> Tuple[Tuple[Outcome, ...], int]:
        """
        Subsequência mais frequente da janela

        Returns:
            (padrão, contagem) - desempate: mais longo, depois primeiro visto
        """
        counts: Dict[Tuple[Outcome, ...], int] = {}
        first_seen: Dict[Tuple[Outcome, ...], int] = {}
        order = 0
        for length in range(self.min_length, self.max_length + 1):
            for i in range(len(use) - length + 1):
                key = tuple(use[i:i + length])
                counts[key] = counts.get(key, 0) + 1
                if key not in first_seen:
                    first_seen[key] = order
                    order += 1

        best = min(counts, key=lambda k: (-counts[k], -len(k), first_seen[k]))
        return best, counts[best]

    @staticmethod
    def follow_counts(outcomes, pattern: Tuple[Outcome, ...]) -> Dict[Outcome, int]:
        """Resultados que seguiram cada ocorrência do padrão"""
        follow = {Outcome.HIGH: 0, Outcome.LOW: 0}
        length = len(pattern)
        for i in range(len(outcomes) - length):
            if tuple(outcomes[i:i + length]) == pattern:
                follow[outcomes[i + length]] += 1
        return follow

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return PredictorOutput.neutral("Padrões: nenhum padrão forte (histórico curto)", samples=len(history))

        outcomes = history.outcomes
        use = last_n(outcomes, self.window)

        best, count = self.most_frequent_pattern(use)
        label = "".join(o.symbol for o in best)
        follow = self.follow_counts(outcomes, best)
        n_follow = follow[Outcome.HIGH] + follow[Outcome.LOW]

        if n_follow < self.min_follow:
            return self._recency_vote(use, label, count)

        p_high = follow[Outcome.HIGH] / n_follow
        pred = Outcome.HIGH if p_high >= 0.5 else Outcome.LOW
        conf = FOLLOW_BASE_CONFIDENCE + min(FOLLOW_MAX_BONUS, abs(p_high - 0.5) * FOLLOW_SCALE)

        return PredictorOutput(
            prediction=pred,
            confidence=conf,
            rationale=[f"Padrão {label} x{count}, continuação: P(Tài)={p_high:.3f} ({n_follow} amostras)"],
            metadata={"pattern": label, "count": count, "follow_high": follow[Outcome.HIGH],
                      "follow_low": follow[Outcome.LOW]},
        )

    def _recency_vote(self, use: List[Outcome], label: str, count: int) -> PredictorOutput:
        """Voto ponderado exponencialmente pela recência"""
        high_score = 0.0
        low_score = 0.0
        for i, outcome in enumerate(use):
            weight = self.recency_base ** i
            if outcome is Outcome.HIGH:
                high_score += weight
            else:
                low_score += weight

        pred = Outcome.HIGH if high_score >= low_score else Outcome.LOW
        dominance = abs(high_score - low_score) / ((high_score + low_score) or 1.0)
        conf = RECENT_BASE_CONFIDENCE + min(RECENT_MAX_BONUS, dominance * RECENT_SCALE)

        return PredictorOutput(
            prediction=pred,
            confidence=conf,
            rationale=["Sem continuação forte; voto ponderado pelas rodadas recentes"],
            metadata={"pattern": label, "count": count, "fallback": "recency"},
        )
