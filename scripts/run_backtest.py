# ========== scripts/run_backtest.py ==========
"""
Backtest walk-forward do ensemble pela linha de comando

Execute:
    python scripts/run_backtest.py --input historico.json
    python scripts/run_backtest.py --input historico.csv --window 200 --output detalhe.csv
    python scripts/run_backtest.py --fetch --seed 42
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List

sys.path.append('.')

import pandas as pd

from config.settings import Settings
from core.api import DiceHistoryAPI
from core.history import shape_history
from ensemble.backtest import run_backtest
from ensemble.bankroll import BankrollConfig
from ensemble.combiner import EnsembleCombiner
from ml.logistic import OnlineLogisticModel
from ml.ml_config import feature_names_for
from predictors.registry import build_heuristic_predictors


def load_records(path: Path) -> List[Any]:
    """
    Carrega registros brutos de um arquivo JSON ou CSV

    O JSON pode ser uma lista ou um objeto com 'data' / 'results' / 'history'.
    """
    if path.suffix.lower() == ".csv":
        df = pd.read_csv(path)
    else:
        with path.open(encoding="utf-8") as f:
            payload = json.load(f)
        if isinstance(payload, dict):
            payload = next((payload[k] for k in ("data", "results", "history") if isinstance(payload.get(k), list)), [])
        df = pd.DataFrame(payload)

    # NaN -> None para que campos ausentes sejam tratados como ausentes
    df = df.astype(object).where(pd.notna(df), None)
    return df.to_dict(orient="records")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Backtest walk-forward do ensemble Tài/Xỉu')

    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument('--input', type=Path, help='Arquivo JSON ou CSV com o histórico')
    source.add_argument('--fetch', action='store_true', help='Buscar o histórico na fonte configurada')

    parser.add_argument('--window', type=int, default=None, help='Rodadas avaliadas (padrão: BACKTEST_WINDOW)')
    parser.add_argument('--bankroll', type=float, default=None, help='Banca inicial (padrão: BANKROLL_INITIAL)')
    parser.add_argument('--iterations', type=int, default=None, help='Iterações do otimizador por rodada')
    parser.add_argument('--seed', type=int, default=None, help='Semente do otimizador (resultado reprodutível)')
    parser.add_argument('--output', type=Path, default=None, help='Salvar o detalhe por rodada em CSV')
    return parser


def main(argv: List[str] = None) -> int:
    """Função principal"""
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(name)s - %(levelname)s - %(message)s')

    settings = Settings()
    if args.seed is not None:
        settings.OPTIMIZER_SEED = args.seed

    if args.fetch:
        api = DiceHistoryAPI(settings.SOURCE_URL, timeout_seconds=settings.FETCH_TIMEOUT_SECONDS)
        records = asyncio.run(api.fetch())
    else:
        records = load_records(args.input)

    history = shape_history(records, max_size=settings.MAX_HISTORY_SIZE)
    if not history:
        print("❌ Nenhuma rodada válida no histórico")
        return 1

    heuristics = build_heuristic_predictors()
    # Modelo próprio: o script não compartilha estado com a API
    model = OnlineLogisticModel(
        feature_names_for([p.name for p in heuristics]),
        learning_rate=settings.LOGISTIC_LEARNING_RATE,
        l2=settings.LOGISTIC_L2,
        seed=settings.LOGISTIC_SEED,
    )
    combiner = EnsembleCombiner(settings, heuristics=heuristics, shared_model=model)

    report = run_backtest(
        history,
        combiner,
        window=args.window,
        bankroll=BankrollConfig.from_settings(settings, initial=args.bankroll),
        iterations=args.iterations,
    )

    print("=" * 60)
    print("BACKTEST WALK-FORWARD")
    print("=" * 60)
    print(f"📊 Histórico: {len(history)} rodadas ({history[0].index} .. {history.last.index})")
    print(f"🎯 Acurácia: {report.accuracy:.2%} ({report.correct}/{report.sample_size})")
    if report.bankroll is not None:
        print(f"💰 Banca: {report.bankroll.initial:.2f} -> {report.bankroll.final:.2f}")
        print(f"📉 Drawdown máximo: {report.bankroll.max_drawdown:.2%}")
    print("=" * 60)

    if args.output is not None:
        df = pd.DataFrame([d.to_dict() for d in report.details])
        df.to_csv(args.output, index=False)
        print(f"💾 Detalhe salvo em {args.output}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
