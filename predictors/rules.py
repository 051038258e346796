"""
predictors/rules.py

Preditor de REGRAS - gatilhos heurísticos em ordem de prioridade

1. Viés 4 de 5          -> maioria        (0.92)
2. Exatamente 3 iguais  -> quebra         (0.86)
3. Zigzag de 5 rodadas  -> continua zigzag (0.82)

Se nenhum gatilho disparar, cai no sistema de pontos (média, tendência,
extremos, paridade, média das faces, sequência de tamanho médio).
"""

import logging
from typing import Any, Dict, List

from core.history import History, Outcome
from ml.features import dice_face_average
from predictors.base import BasePredictor, PredictorOutput
from utils.constants import TOTAL_MIDPOINT
from utils.helpers import last_n, mean, parity_ratio, run_length_before_streak, streak_of_end

logger = logging.getLogger(__name__)

# ========== GATILHOS ==========
BIAS_WINDOW = 5
BIAS_MIN_COUNT = 4
BIAS_CONFIDENCE = 0.92
BREAK_STREAK = 3
BREAK_CONFIDENCE = 0.86
ZIGZAG_WINDOW = 5
ZIGZAG_CONFIDENCE = 0.82

# ========== PONTUAÇÃO ==========
AVG_HIGH = 12.0
AVG_LOW = 9.5
AVG_POINTS = 2
TREND_POINTS = 2
EXTREME_HIGH = 17
EXTREME_LOW = 6
EXTREME_POINTS = 3
UNIFORM_HIGH = 12
UNIFORM_LOW = 9
UNIFORM_POINTS = 3
PARITY_WINDOW = 10
PARITY_SKEW = 0.7
PARITY_POINTS = 1
FACE_WINDOW = 3
FACE_HIGH = 4.5
FACE_LOW = 2.5
FACE_POINTS = 1
MID_STREAK = 2
MID_STREAK_POINTS = 1

SCORE_BASE_CONFIDENCE = 0.68
SCORE_STEP = 0.06
SCORE_MAX_BONUS = 0.25
TIE_AVG_HIGH = 11.0
TIE_AVG_LOW = 10.0
TIE_CONFIDENCE = 0.64
ALTERNATE_CONFIDENCE = 0.6


class RulePredictor(BasePredictor):
    """
    Pontuador por regras

    Os gatilhos são verificados de cima para baixo; o primeiro satisfeito
    encerra a análise com confiança fixa.
    """

    name = "rules"
    default_min_history = BIAS_WINDOW

    def __init__(self, config: Dict[str, Any] = None):
        super().__init__(config)
        self.bias_min_count = self.get_config_value("bias_min_count", BIAS_MIN_COUNT)
        self.bias_confidence = self.get_config_value("bias_confidence", BIAS_CONFIDENCE)
        self.break_streak = self.get_config_value("break_streak", BREAK_STREAK)
        self.break_confidence = self.get_config_value("break_confidence", BREAK_CONFIDENCE)
        self.zigzag_confidence = self.get_config_value("zigzag_confidence", ZIGZAG_CONFIDENCE)

    def predict(self, history: History) -> PredictorOutput:
        if not self.has_enough_history(history):
            return self.insufficient(history)

        outcomes = history.outcomes
        last = outcomes[-1]
        last5 = last_n(outcomes, BIAS_WINDOW)

        # 1. Viés 4 de 5
        for side in (Outcome.HIGH, Outcome.LOW):
            count = last5.count(side)
            if count >= self.bias_min_count:
                return PredictorOutput(
                    prediction=side,
                    confidence=self.bias_confidence,
                    rationale=[f"{len(last5)} rodadas recentes inclinadas para {side.display} ({count}/{len(last5)})"],
                    metadata={"rule": "bias_4_of_5", "count": count},
                )

        # 2. Exatamente 3 iguais no final -> quebra
        streak = streak_of_end(outcomes)
        if streak == self.break_streak:
            return PredictorOutput(
                prediction=last.opposite,
                confidence=self.break_confidence,
                rationale=[f"{streak} {last.display} seguidos -> prioriza quebra para {last.opposite.display}"],
                metadata={"rule": "three_in_a_row_break", "streak": streak},
            )

        # 3. Zigzag perfeito
        zigzag = last_n(outcomes, ZIGZAG_WINDOW)
        if len(zigzag) == ZIGZAG_WINDOW and all(zigzag[i] != zigzag[i - 1] for i in range(1, len(zigzag))):
            return PredictorOutput(
                prediction=last.opposite,
                confidence=self.zigzag_confidence,
                rationale=["Zigzag claro nas últimas 5 rodadas -> continua alternando"],
                metadata={"rule": "zigzag"},
            )

        return self._score(history)

    def _score(self, history: History) -> PredictorOutput:
        """Sistema de pontos aditivo"""
        outcomes = history.outcomes
        totals = history.totals
        last = outcomes[-1]
        total3 = last_n(totals, 3)
        total5 = last_n(totals, 5)

        score = {Outcome.HIGH: 0, Outcome.LOW: 0}
        explain: List[str] = []

        avg5 = mean(total5, default=TOTAL_MIDPOINT)
        if avg5 >= AVG_HIGH:
            score[Outcome.HIGH] += AVG_POINTS
            explain.append(f"Média do total em 5 rodadas alta (>={AVG_HIGH:g}) -> Tài")
        elif avg5 <= AVG_LOW:
            score[Outcome.LOW] += AVG_POINTS
            explain.append(f"Média do total em 5 rodadas baixa (<={AVG_LOW:g}) -> Xỉu")

        if len(total3) == 3:
            if total3[2] > total3[1] > total3[0]:
                score[Outcome.HIGH] += TREND_POINTS
                explain.append("Tendência de alta em 3 rodadas -> Tài")
            elif total3[2] < total3[1] < total3[0]:
                score[Outcome.LOW] += TREND_POINTS
                explain.append("Tendência de queda em 3 rodadas -> Xỉu")

        last_total = totals[-1]
        if last_total >= EXTREME_HIGH:
            score[Outcome.HIGH] += EXTREME_POINTS
            explain.append(f"Total extremamente alto (>={EXTREME_HIGH}) -> Tài")
        if last_total <= EXTREME_LOW:
            score[Outcome.LOW] += EXTREME_POINTS
            explain.append(f"Total extremamente baixo (<={EXTREME_LOW}) -> Xỉu")

        if len(total5) == 5 and all(t >= UNIFORM_HIGH for t in total5):
            score[Outcome.HIGH] += UNIFORM_POINTS
            explain.append("5 totais altos seguidos -> Tài")
        if len(total5) == 5 and all(t <= UNIFORM_LOW for t in total5):
            score[Outcome.LOW] += UNIFORM_POINTS
            explain.append("5 totais baixos seguidos -> Xỉu")

        even = parity_ratio(last_n(totals, PARITY_WINDOW))
        if even >= PARITY_SKEW:
            score[Outcome.LOW] += PARITY_POINTS
            explain.append(f"Paridade concentrada em pares ({even:.0%}) -> Xỉu")
        elif even <= 1.0 - PARITY_SKEW:
            score[Outcome.HIGH] += PARITY_POINTS
            explain.append(f"Paridade concentrada em ímpares ({1 - even:.0%}) -> Tài")

        face_avg = dice_face_average(last_n(history.rounds, FACE_WINDOW))
        if face_avg >= FACE_HIGH:
            score[Outcome.HIGH] += FACE_POINTS
            explain.append(f"Média das faces alta ({face_avg:.2f}) -> Tài")
        elif face_avg <= FACE_LOW:
            score[Outcome.LOW] += FACE_POINTS
            explain.append(f"Média das faces baixa ({face_avg:.2f}) -> Xỉu")

        streak = streak_of_end(outcomes)
        if streak == MID_STREAK:
            previous_run = run_length_before_streak(outcomes)
            if previous_run >= MID_STREAK:
                # Cầu 2-2: a dupla anterior quebrou, esta também tende a quebrar
                score[last.opposite] += MID_STREAK_POINTS
                explain.append("Padrão 2-2 -> quebra da dupla")
            else:
                score[last] += MID_STREAK_POINTS
                explain.append(f"Dupla de {last.display} após rodada isolada -> estende")

        high, low = score[Outcome.HIGH], score[Outcome.LOW]
        meta = {"rule": "score", "avg5": round(avg5, 3), "last_total": last_total,
                "score_high": high, "score_low": low}

        if high != low:
            pred = Outcome.HIGH if high > low else Outcome.LOW
            conf = SCORE_BASE_CONFIDENCE + min(SCORE_MAX_BONUS, abs(high - low) * SCORE_STEP)
            return PredictorOutput(pred, conf, explain, meta)

        # Empate: viés pela média e, por último, alternância
        if avg5 >= TIE_AVG_HIGH:
            pred, conf = Outcome.HIGH, TIE_CONFIDENCE
            explain.append("Empate -> viés pela média (Tài)")
        elif avg5 <= TIE_AVG_LOW:
            pred, conf = Outcome.LOW, TIE_CONFIDENCE
            explain.append("Empate -> viés pela média (Xỉu)")
        else:
            pred, conf = last.opposite, ALTERNATE_CONFIDENCE
            explain.append("Sem inclinação -> alterna a partir da última")

        return PredictorOutput(pred, conf, explain, meta)
