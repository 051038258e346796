"""
predictors/markov.py

Cadeia de Markov (ordem 1 ou 2) sobre os resultados recentes

Contagens de transição com suavização de Laplace (+1) em uma janela
recente. Usa estado de 2 símbolos quando há suporte suficiente; caso
contrário cai para ordem 1.
"""

from collections import defaultdict
from typing import Any, Dict, Tuple

from core.history import History, Outcome
from predictors.base import BasePredictor, PredictorOutput
from utils.helpers import last_n

WINDOW = 80
LAPLACE = 1
MIN_ORDER2_SUPPORT = 4
BASE_CONFIDENCE = 0.58
MARGIN_SCALE = 1.2
MAX_BONUS = 0.35

State = Tuple[Outcome, ...]


class MarkovPredictor(BasePredictor):
    """Estimador de transições Tài/Xỉu"""

    name = "markov"
    default_min_history = 2

    def __init__(self, config: Dict[str, Any] = None):
        super().__init__(config)
        self.window = self.get_config_value("window", WINDOW)
        self.laplace = self.get_config_value("laplace", LAPLACE)
        self.max_order = self.get_config_value("max_order", 2)
        self.min_order2_support = self.get_config_value("min_order2_support", MIN_ORDER2_SUPPORT)

    @staticmethod
    def transition_counts(outcomes, order: int) -> Dict[State, Dict[Outcome, int]]:
        """Contagens {estado: {próximo: n}} sem suavização"""
        counts: Dict[State, Dict[Outcome, int]] = defaultdict(lambda: {Outcome.HIGH: 0, Outcome.LOW: 0})
        for i in range(order, len(outcomes)):
            state = tuple(outcomes[i - order:i])
            counts[state][outcomes[i]] += 1
        return counts

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return PredictorOutput.neutral("Markov: dados insuficientes", samples=len(history))

        use = last_n(history.outcomes, self.window)

        order = 1
        if self.max_order >= 2 and len(use) >= 3:
            state2 = tuple(use[-2:])
            counts2 = self.transition_counts(use, 2).get(state2)
            if counts2 and sum(counts2.values()) >= self.min_order2_support:
                order = 2

        state = tuple(use[-order:])
        observed = self.transition_counts(use, order).get(state, {Outcome.HIGH: 0, Outcome.LOW: 0})
        n_high = observed[Outcome.HIGH] + self.laplace
        n_low = observed[Outcome.LOW] + self.laplace

        p_high = n_high / (n_high + n_low)
        p_low = 1.0 - p_high

        pred = Outcome.HIGH if p_high >= p_low else Outcome.LOW
        conf = BASE_CONFIDENCE + min(MAX_BONUS, abs(p_high - p_low) * MARGIN_SCALE)
        state_label = "".join(o.symbol for o in state)

        return PredictorOutput(
            prediction=pred,
            confidence=conf,
            rationale=[f"Markov ordem {order} a partir de {state_label}: P(Tài)={p_high:.2f}"],
            metadata={
                "order": order,
                "state": state_label,
                "p_high": round(p_high, 4),
                "samples": observed[Outcome.HIGH] + observed[Outcome.LOW],
            },
        )
