"""
utils/helpers.py

Funções auxiliares de janela utilizadas pelos preditores e pelas features

Todas as funções truncam a janela ao tamanho disponível e nunca
levantam erro nem retornam NaN: janelas vazias retornam 0 para
contagens/taxas e 0.5 para proporções.
"""

import math
from collections import Counter
from typing import Hashable, List, Sequence, TypeVar

import numpy as np

T = TypeVar("T")


def last_n(values: Sequence[T], n: int) -> List[T]:
    """
    Retorna os últimos N elementos (ou todos, se houver menos)

    Exemplo:
        last_n([1, 2, 3], 2) -> [2, 3]
        last_n([1, 2, 3], 0) -> []
    """
    if n <= 0:
        return []
    return list(values[-n:])


def mean(values: Sequence[float], default: float = 0.0) -> float:
    """Média aritmética com fallback para sequência vazia"""
    if not values:
        return default
    return sum(values) / len(values)


def streak_of_end(values: Sequence[Hashable]) -> int:
    """
    Comprimento da sequência de valores iguais no final

    Exemplo:
        streak_of_end(['L', 'H', 'H']) -> 2
        streak_of_end(['H', 'L']) -> 1
        streak_of_end([]) -> 0
    """
    if not values:
        return 0

    last = values[-1]
    streak = 1
    for i in range(len(values) - 2, -1, -1):
        if values[i] != last:
            break
        streak += 1
    return streak


def run_length_before_streak(values: Sequence[Hashable]) -> int:
    """
    Comprimento da sequência imediatamente anterior à sequência final

    Exemplo:
        run_length_before_streak(['H', 'L', 'L', 'H', 'H']) -> 2
    """
    streak = streak_of_end(values)
    return streak_of_end(values[: len(values) - streak])


def switch_rate(values: Sequence[Hashable]) -> float:
    """Fração de pares adjacentes diferentes (0 se não houver pares)"""
    if len(values) < 2:
        return 0.0
    switches = sum(1 for i in range(1, len(values)) if values[i] != values[i - 1])
    return switches / (len(values) - 1)


def shannon_entropy(values: Sequence[Hashable]) -> float:
    """Entropia de Shannon (bits) da distribuição dos valores"""
    if not values:
        return 0.0

    n = len(values)
    entropy = 0.0
    for count in Counter(values).values():
        p = count / n
        entropy -= p * math.log2(p)
    return entropy


def autocorrelation(series: Sequence[float], lag: int = 1) -> float:
    """
    Autocorrelação (Pearson) da série com ela mesma deslocada em `lag`

    Retorna 0.0 quando não há pontos suficientes ou a variância é nula.
    """
    if lag <= 0 or len(series) < lag + 2:
        return 0.0

    x = np.asarray(series[:-lag], dtype=float)
    y = np.asarray(series[lag:], dtype=float)

    x_dev = x - x.mean()
    y_dev = y - y.mean()
    denominator = math.sqrt(float((x_dev ** 2).sum()) * float((y_dev ** 2).sum()))
    if denominator == 0:
        return 0.0

    return float((x_dev * y_dev).sum() / denominator)


def parity_ratio(totals: Sequence[int]) -> float:
    """Fração de totais pares (0.5 para janela vazia)"""
    if not totals:
        return 0.5
    return sum(1 for t in totals if t % 2 == 0) / len(totals)


def ratio_of(values: Sequence[Hashable], target: Hashable) -> float:
    """Fração de elementos iguais a `target` (0.5 para janela vazia)"""
    if not values:
        return 0.5
    return sum(1 for v in values if v == target) / len(values)


def clamp(value: float, low: float, high: float) -> float:
    """Limita `value` ao intervalo [low, high]"""
    return max(low, min(high, value))
