# features.py
"""
Responsável por transformar o histórico em um vetor numérico de features
e pelas chaves categóricas (formato dos dados, faixa de soma, paridade).

Saída principal:
    extract_features(history) -> {feature_name: valor}

Esse módulo NÃO treina nada, só organiza os sinais em forma numérica
para o modelo logístico.
"""

from __future__ import annotations

from enum import Enum
from typing import Dict, List

from core.history import History, Outcome, Round
from ml.ml_config import (
    AUTOCORR_WINDOW,
    BASE_FEATURE_NAMES,
    DICE_FACE_WINDOW,
    ENTROPY_WINDOW,
    MEAN_TOTAL_WINDOWS,
    PARITY_WINDOW,
    RATIO_WINDOWS,
    STREAK_SCALE,
    SWITCH_WINDOW,
)
from utils.constants import FACE_MIDPOINT, SUM_BUCKET_RANGES, TOTAL_MAX, TOTAL_MIN
from utils.helpers import (
    autocorrelation,
    clamp,
    last_n,
    mean,
    parity_ratio,
    ratio_of,
    shannon_entropy,
    streak_of_end,
    switch_rate,
)

FeatureDict = Dict[str, float]


class DiceShape(Enum):
    """Formato dos três dados de uma rodada"""
    TRIPLE = "triple"       # três iguais
    PAIR = "pair"           # exatamente dois iguais
    STRAIGHT = "straight"   # sequência (ex: 2-3-4)
    MIXED = "mixed"


class SumBucket(Enum):
    """Faixa do total (5 faixas cobrindo 3..18)"""
    VERY_LOW = "<=6"
    LOW = "7-9"
    MIDDLE = "10-12"
    HIGH = "13-15"
    VERY_HIGH = ">=16"


class Parity(Enum):
    EVEN = "even"
    ODD = "odd"


def dice_shape(rnd: Round) -> DiceShape:
    a, b, c = rnd.dice
    if a == b == c:
        return DiceShape.TRIPLE
    if a == b or b == c or a == c:
        return DiceShape.PAIR

    s = sorted(rnd.dice)
    if s[0] + 1 == s[1] and s[1] + 1 == s[2]:
        return DiceShape.STRAIGHT
    return DiceShape.MIXED


def sum_bucket(rnd: Round) -> SumBucket:
    for bucket, (_, _, upper) in zip(SumBucket, SUM_BUCKET_RANGES):
        if rnd.total <= upper:
            return bucket
    return SumBucket.VERY_HIGH


def parity(rnd: Round) -> Parity:
    return Parity.EVEN if rnd.total % 2 == 0 else Parity.ODD


def dice_face_average(rounds: List[Round]) -> float:
    """Média das faces dos dados na janela (3.5 se vazia)"""
    faces = [d for r in rounds for d in r.dice]
    return mean(faces, default=FACE_MIDPOINT)


def _normalize_total(value: float) -> float:
    return (value - TOTAL_MIN) / (TOTAL_MAX - TOTAL_MIN)


def extract_features(history: History) -> FeatureDict:
    """
    Extrai o vetor de features base do histórico

    Args:
        history: Histórico visível (nenhuma rodada futura)

    Returns:
        Dict {feature_name: valor} com todas as chaves de BASE_FEATURE_NAMES
    """
    outcomes = history.outcomes
    totals = history.totals
    features: FeatureDict = {}

    for w in RATIO_WINDOWS:
        features[f"ratio_high_{w}"] = ratio_of(last_n(outcomes, w), Outcome.HIGH)

    for w in MEAN_TOTAL_WINDOWS:
        window = last_n(totals, w)
        features[f"mean_total_{w}"] = _normalize_total(mean(window)) if window else 0.5

    # Positivo para sequência de Tài, negativo para Xỉu
    streak = streak_of_end(outcomes)
    sign = 1.0 if outcomes and outcomes[-1] is Outcome.HIGH else -1.0
    features["streak_signed"] = clamp(sign * streak / STREAK_SCALE, -1.0, 1.0) if streak else 0.0

    features[f"switch_rate_{SWITCH_WINDOW}"] = switch_rate(last_n(outcomes, SWITCH_WINDOW))
    features[f"entropy_{ENTROPY_WINDOW}"] = shannon_entropy(last_n(outcomes, ENTROPY_WINDOW))

    recent_totals = last_n(totals, AUTOCORR_WINDOW)
    features[f"autocorr_lag1_{AUTOCORR_WINDOW}"] = autocorrelation(recent_totals, lag=1)
    features[f"autocorr_lag2_{AUTOCORR_WINDOW}"] = autocorrelation(recent_totals, lag=2)

    features[f"parity_ratio_{PARITY_WINDOW}"] = parity_ratio(last_n(totals, PARITY_WINDOW))

    face_avg = dice_face_average(last_n(history.rounds, DICE_FACE_WINDOW))
    features[f"dice_face_avg_{DICE_FACE_WINDOW}"] = (face_avg - 1.0) / 5.0

    # Garante a assinatura completa e ordenada
    return {name: float(features.get(name, 0.0)) for name in BASE_FEATURE_NAMES}
