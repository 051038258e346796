# ========== routes/backtest.py ==========
"""
Rota de backtest walk-forward com simulação de banca
"""

from fastapi import APIRouter, Query, Request
from starlette.concurrency import run_in_threadpool
from datetime import datetime
from typing import Dict, Optional

from core.exceptions import EmptyHistoryError
from core.history import History
from ensemble.backtest import BacktestReport, run_backtest
from ensemble.bankroll import BankrollConfig
from ensemble.combiner import EnsembleCombiner

router = APIRouter()


def _backtest_and_absorb(
    combiner: EnsembleCombiner,
    history: History,
    window: int,
    bankroll: BankrollConfig,
) -> BacktestReport:
    table = combiner.build_table(history)
    report = run_backtest(history, combiner, window=window, bankroll=bankroll, table=table)
    # Rodadas já resolvidas alimentam o modelo compartilhado
    combiner.absorb(table)
    return report


@router.get("")
async def get_backtest(
    request: Request,
    window: Optional[int] = Query(default=None, ge=1, description="Quantidade de rodadas avaliadas"),
    bankroll: Optional[float] = Query(default=None, gt=0, description="Banca inicial da simulação"),
) -> Dict:
    """
    Backtest causal do ensemble sobre as últimas `window` rodadas

    Args:
        window: Rodadas avaliadas (padrão BACKTEST_WINDOW, máx BACKTEST_MAX_WINDOW)
        bankroll: Banca inicial (padrão BANKROLL_INITIAL)
    """
    settings = request.app.state.settings
    window = settings.BACKTEST_WINDOW if window is None else window
    if window > settings.BACKTEST_MAX_WINDOW:
        raise ValueError(f"window deve ser no máximo {settings.BACKTEST_MAX_WINDOW}")

    history = await request.app.state.source.history()
    if not history:
        raise EmptyHistoryError("A fonte não retornou nenhuma rodada válida")

    config = BankrollConfig.from_settings(settings, initial=bankroll)
    report = await run_in_threadpool(
        _backtest_and_absorb, request.app.state.combiner, history, window, config
    )

    request.state.summary = f"backtest {report.accuracy:.1%} em {report.sample_size} rodadas"

    return {
        "timestamp": datetime.now().isoformat(),
        "historySize": len(history),
        "window": window,
        **report.to_dict(),
    }
