# ========== routes/prediction.py ==========
"""
Rotas de previsão da próxima rodada
"""

from fastapi import APIRouter, Query, Request
from starlette.concurrency import run_in_threadpool
from datetime import datetime
from typing import Dict, Tuple

from core.exceptions import EmptyHistoryError
from core.history import History
from ensemble.backtest import BacktestReport, run_backtest
from ensemble.bankroll import BankrollConfig
from ensemble.combiner import EnsembleCombiner, EnsembleDecision

router = APIRouter()

DISCLAIMER = (
    "Previsão estatística baseada em padrões históricos. "
    "Resultados de dados são aleatórios: não há garantia de acerto."
)


def _predict_and_backtest(
    combiner: EnsembleCombiner,
    history: History,
    window: int = None,
) -> Tuple[EnsembleDecision, BacktestReport]:
    # Mesma tabela para a previsão e para o backtest
    table = combiner.build_table(history)
    decision = combiner.predict(history, table=table)
    report = run_backtest(
        history,
        combiner,
        window=window,
        bankroll=BankrollConfig.from_settings(combiner.settings),
        table=table,
    )
    return decision, report


async def _load_history(request: Request) -> History:
    history = await request.app.state.source.history()
    if not history:
        raise EmptyHistoryError("A fonte não retornou nenhuma rodada válida")
    return history


def _envelope(request: Request, history: History, decision: EnsembleDecision) -> Dict:
    last = history.last
    # Lido pelo LoggingMiddleware
    request.state.predicted_round = last.index + 1
    request.state.summary = (
        f"{decision.prediction.display} {decision.confidence:.1%} risco {decision.risk_level.value}"
    )
    return {
        "timestamp": datetime.now().isoformat(),
        "nextRound": last.index + 1,
        "lastRound": {**last.to_dict(), "label": last.outcome.display},
        "historySize": len(history),
        **decision.to_dict(),
        "disclaimer": DISCLAIMER,
    }


@router.get("")
async def get_prediction(request: Request) -> Dict:
    """
    Previsão da próxima rodada (Tài/Xỉu)

    Returns:
        Envelope da previsão + última rodada + resumo do backtest
    """
    history = await _load_history(request)
    combiner = request.app.state.combiner

    decision, report = await run_in_threadpool(_predict_and_backtest, combiner, history)

    return {
        **_envelope(request, history, decision),
        "backtest": report.to_dict(detail_limit=0),
    }


@router.get("/full")
async def get_prediction_full(
    request: Request,
    detail: int = Query(default=40, ge=1, le=60, description="Rodadas no detalhe walk-forward"),
) -> Dict:
    """
    Previsão atual + detalhe walk-forward das últimas `detail` rodadas

    A acurácia reportada cobre a janela completa de backtest (BACKTEST_WINDOW);
    cada rodada do detalhe traz os votos por preditor e os diagnósticos.
    """
    history = await _load_history(request)
    combiner = request.app.state.combiner
    window = max(request.app.state.settings.BACKTEST_WINDOW, detail)

    decision, report = await run_in_threadpool(_predict_and_backtest, combiner, history, window)

    return {
        **_envelope(request, history, decision),
        "walkForward": report.to_dict(detail_limit=detail, verbose=True),
    }
