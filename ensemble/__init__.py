# ========== ensemble/__init__.py ==========
"""
Combinação dos preditores: tabela walk-forward, otimizador, backtest e banca
"""

from ensemble.backtest import BacktestReport, RoundDetail, run_backtest
from ensemble.bankroll import BankrollConfig, kelly_fraction, kelly_stake, simulate_bankroll
from ensemble.combiner import EnsembleCombiner, EnsembleDecision, RiskLevel
from ensemble.optimizer import OptimizationResult, WeightOptimizer
from ensemble.table import WalkForwardTable

__all__ = [
    'BacktestReport',
    'RoundDetail',
    'run_backtest',
    'BankrollConfig',
    'kelly_fraction',
    'kelly_stake',
    'simulate_bankroll',
    'EnsembleCombiner',
    'EnsembleDecision',
    'RiskLevel',
    'OptimizationResult',
    'WeightOptimizer',
    'WalkForwardTable',
]
