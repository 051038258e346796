"""
ensemble/backtest.py

Backtest walk-forward do ensemble completo

Para cada posição i da janela final (exceto a última rodada, que ainda
não tem sucessor), a decisão é refeita usando somente as rodadas 0..i,
com seu próprio otimizador, e comparada ao resultado real da rodada i+1.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import EmptyHistoryError
from core.history import History, Outcome
from ensemble.bankroll import BankrollConfig, BankrollResult, simulate_bankroll
from ensemble.combiner import EnsembleCombiner, RiskLevel
from ensemble.table import WalkForwardTable

logger = logging.getLogger(__name__)


@dataclass
class RoundDetail:
    """Uma decisão do backtest e o que realmente aconteceu"""
    round_index: int
    predicted: Outcome
    actual: Outcome
    confidence: float
    risk_level: RiskLevel
    insufficient_history: bool = False
    stake: float = 0.0
    bankroll: Optional[float] = None
    votes: List[Dict[str, Any]] = field(default_factory=list)
    diagnostics: Dict[str, Any] = field(default_factory=dict)

    @property
    def correct(self) -> bool:
        return self.predicted is self.actual

    def to_dict(self, verbose: bool = False) -> Dict[str, Any]:
        data = {
            "round": self.round_index,
            "predicted": self.predicted.value,
            "actual": self.actual.value,
            "correct": self.correct,
            "confidence": round(self.confidence, 4),
            "riskLevel": self.risk_level.value,
            "insufficientHistory": self.insufficient_history,
        }
        if self.bankroll is not None:
            data["stake"] = round(self.stake, 2)
            data["bankroll"] = round(self.bankroll, 2)
        if verbose:
            data["perPredictorBreakdown"] = self.votes
            data["diagnostics"] = self.diagnostics
        return data


@dataclass
class BacktestReport:
    accuracy: float
    sample_size: int
    details: List[RoundDetail] = field(default_factory=list)
    bankroll: Optional[BankrollResult] = None

    @property
    def correct(self) -> int:
        return sum(1 for d in self.details if d.correct)

    def to_dict(self, detail_limit: Optional[int] = None, verbose: bool = False) -> Dict[str, Any]:
        """
        Args:
            detail_limit: Mantém só as últimas N rodadas do detalhe (0 = nenhuma)
            verbose: Inclui votos por preditor e diagnósticos de cada rodada
        """
        details = self.details
        if detail_limit is not None:
            details = details[-detail_limit:] if detail_limit > 0 else []

        data: Dict[str, Any] = {
            "accuracy": round(self.accuracy, 4),
            "sampleSize": self.sample_size,
            "correct": self.correct,
            "perRoundDetail": [d.to_dict(verbose) for d in details],
        }
        if self.bankroll is not None:
            data["initialBankroll"] = round(self.bankroll.initial, 2)
            data["finalBankroll"] = round(self.bankroll.final, 2)
            data["peakBankroll"] = round(self.bankroll.peak, 2)
            data["maxDrawdown"] = round(self.bankroll.max_drawdown, 4)
        return data


def run_backtest(
    history: History,
    combiner: EnsembleCombiner,
    window: Optional[int] = None,
    bankroll: Optional[BankrollConfig] = None,
    iterations: Optional[int] = None,
    table: Optional[WalkForwardTable] = None,
) -> BacktestReport:
    """
    Executa o backtest causal sobre a janela final do histórico

    Args:
        history: Histórico completo
        combiner: Combinador (preditores, otimizador e configurações)
        window: Quantidade de decisões avaliadas (padrão: BACKTEST_WINDOW)
        bankroll: Parâmetros da simulação de banca (None desliga a simulação)
        iterations: Orçamento do otimizador por decisão (padrão: BACKTEST_OPTIMIZER_ITERATIONS)
        table: Tabela já calculada para este histórico (opcional)

    Returns:
        BacktestReport

    Raises:
        EmptyHistoryError: Se o histórico estiver vazio
    """
    if not history:
        raise EmptyHistoryError("Histórico vazio: nada para avaliar")

    settings = combiner.settings
    window = settings.BACKTEST_WINDOW if window is None else window
    if window < 0:
        raise ValueError(f"Janela de backtest inválida: {window}")
    iterations = settings.BACKTEST_OPTIMIZER_ITERATIONS if iterations is None else iterations

    table = table or combiner.build_table(history)
    n = len(history)
    samples = min(window, n - 1)
    start = n - 1 - samples

    details: List[RoundDetail] = []
    for i in range(start, n - 1):
        decision = combiner.decide(table, i, rng=combiner.rng_for(history[i].index), iterations=iterations)
        details.append(RoundDetail(
            round_index=history[i + 1].index,
            predicted=decision.prediction,
            actual=history[i + 1].outcome,
            confidence=decision.confidence,
            risk_level=decision.risk_level,
            insufficient_history=decision.insufficient_history,
            votes=[v.to_dict() for v in decision.votes],
            diagnostics=decision.diagnostics,
        ))

    accuracy = sum(1 for d in details if d.correct) / len(details) if details else 0.5

    result = None
    if bankroll is not None:
        result = simulate_bankroll(((d.confidence, d.correct) for d in details), bankroll)
        for d, step in zip(details, result.steps):
            d.stake = step.stake
            d.bankroll = step.bankroll

    logger.info(f"📊 Backtest: {accuracy:.1%} de acerto em {len(details)} rodadas")

    return BacktestReport(accuracy=accuracy, sample_size=len(details), details=details, bankroll=result)
