"""
ensemble/evaluation.py

Avaliação walk-forward de um vetor de pesos sobre a tabela pré-calculada

Para decidir no ponto `end`, só são avaliadas as linhas j < end: o rótulo
da linha j é a rodada j+1 <= end, que já era conhecida em `end`.
"""

from typing import Dict, Tuple

import numpy as np

from ensemble.table import WalkForwardTable

NEUTRAL_ACCURACY = 0.5

# Multiplicador de desempenho local: 0.75 .. 1.35
PERF_FLOOR = 0.75
PERF_SCALE = 1.2
PERF_MAX_BONUS = 0.6


def evaluation_rows(end: int, window: int) -> range:
    """Linhas avaliadas para uma decisão no ponto `end`"""
    n = max(0, min(window, end))
    return range(end - n, end)


def vote_decisions(table: WalkForwardTable, rows: range, weights: np.ndarray) -> np.ndarray:
    """
    Decisão do voto ponderado em cada linha (True = Tài)

    Empate (inclusive todos neutros) repete o último resultado observado.
    """
    sl = slice(rows.start, rows.stop)
    score_high = table.high[sl] @ weights
    score_low = table.low[sl] @ weights
    return np.where(
        score_high > score_low,
        True,
        np.where(score_high < score_low, False, table.is_high[sl]),
    )


def evaluate(
    table: WalkForwardTable,
    weights: np.ndarray,
    end: int,
    window: int,
    min_samples: int = 10,
) -> Tuple[float, int]:
    """
    Acurácia walk-forward do voto com pesos fixos

    Args:
        table: Tabela walk-forward
        weights: Um peso por coluna de `table.names`
        end: Posição da decisão (só linhas anteriores são avaliadas)
        window: Tamanho máximo da janela
        min_samples: Abaixo disso retorna 0.5

    Returns:
        (acurácia, amostras)
    """
    rows = evaluation_rows(end, window)
    samples = len(rows)
    if samples < min_samples:
        return NEUTRAL_ACCURACY, samples

    decisions = vote_decisions(table, rows, weights)
    actual = table.next_is_high[rows.start:rows.stop]
    return float(np.mean(decisions == actual)), samples


def local_performance(
    table: WalkForwardTable,
    end: int,
    lookback: int,
    min_votes: int = 8,
) -> Dict[str, float]:
    """
    Multiplicador por preditor a partir da sua acurácia recente

    Só conta as linhas em que o preditor opinou; com menos de `min_votes`
    opiniões o multiplicador é 1.0.

    Returns:
        {nome: multiplicador em [0.75, 1.35]}
    """
    rows = evaluation_rows(end, lookback)
    sl = slice(rows.start, rows.stop)
    actual = table.next_is_high[sl]

    multipliers: Dict[str, float] = {}
    for c, name in enumerate(table.names):
        said_high = table.high[sl, c] > 0
        said_low = table.low[sl, c] > 0
        voted = said_high | said_low
        n_votes = int(voted.sum())
        if n_votes < min_votes:
            multipliers[name] = 1.0
            continue

        correct = int((voted & (said_high == actual)).sum())
        acc = correct / n_votes
        multipliers[name] = PERF_FLOOR + min(PERF_MAX_BONUS, max(0.0, (acc - 0.5) * PERF_SCALE))

    return multipliers
