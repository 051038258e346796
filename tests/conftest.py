"""
Fixtures compartilhadas: históricos sintéticos, configurações e ensemble
com modelo logístico isolado (nunca o singleton do processo)
"""

import random
from typing import List, Optional, Sequence, Tuple

import pytest

from config.settings import Settings
from core.history import History, Outcome, Round
from ensemble.combiner import EnsembleCombiner
from ml.logistic import OnlineLogisticModel, reset_shared_model
from ml.ml_config import feature_names_for
from predictors.registry import build_heuristic_predictors
from utils.constants import HIGH_TOTAL_THRESHOLD

# Dados "típicos" para cada lado quando o teste só se importa com o resultado
HIGH_DICE: Tuple[int, int, int] = (4, 4, 5)
LOW_DICE: Tuple[int, int, int] = (2, 3, 3)


def random_dice(rng: random.Random) -> Tuple[int, int, int]:
    return rng.randint(1, 6), rng.randint(1, 6), rng.randint(1, 6)


def make_round(index: int, outcome: Outcome, dice: Optional[Sequence[int]] = None) -> Round:
    dice = tuple(dice) if dice is not None else (HIGH_DICE if outcome is Outcome.HIGH else LOW_DICE)
    return Round(index=index, dice=dice, total=sum(dice), outcome=outcome)


def history_from_symbols(symbols: str, start_index: int = 1) -> History:
    """'TXXT' -> History com Tài/Xỉu nessa ordem"""
    outcomes = [Outcome.HIGH if s == "T" else Outcome.LOW for s in symbols]
    return History(make_round(start_index + i, o) for i, o in enumerate(outcomes))


def random_rounds(n: int, seed: int, start_index: int = 1) -> List[Round]:
    rng = random.Random(seed)
    rounds = []
    for i in range(n):
        dice = random_dice(rng)
        outcome = Outcome.HIGH if sum(dice) >= HIGH_TOTAL_THRESHOLD else Outcome.LOW
        rounds.append(Round(index=start_index + i, dice=dice, total=sum(dice), outcome=outcome))
    return rounds


def raw_record(index: int, dice: Sequence[int], result: str) -> dict:
    """Registro no formato da fonte original"""
    return {
        "Phien": index,
        "Xuc_xac_1": dice[0],
        "Xuc_xac_2": dice[1],
        "Xuc_xac_3": dice[2],
        "Tong": sum(dice),
        "Ket_qua": result,
    }


@pytest.fixture
def settings() -> Settings:
    return Settings(
        OPTIMIZER_SEED=42,
        OPTIMIZER_ITERATIONS=60,
        BACKTEST_WINDOW=25,
        BACKTEST_OPTIMIZER_ITERATIONS=15,
    )


@pytest.fixture
def logistic_model() -> OnlineLogisticModel:
    names = feature_names_for([p.name for p in build_heuristic_predictors()])
    return OnlineLogisticModel(names, seed=7)


@pytest.fixture
def combiner(settings, logistic_model) -> EnsembleCombiner:
    return EnsembleCombiner(settings, shared_model=logistic_model)


@pytest.fixture
def random_history() -> History:
    return History(random_rounds(140, seed=2024))


@pytest.fixture(autouse=True)
def _isolate_shared_model():
    reset_shared_model()
    yield
    reset_shared_model()
