"""
predictors/registry.py

Registro nomeado dos preditores e tabela de importância base

Os pesos são sempre indexados pelo NOME do preditor, nunca pela posição.
"""

from typing import Any, Dict, List

from predictors.autoregressive import AutoregressivePredictor
from predictors.base import BasePredictor
from predictors.conditional import dice_shape_predictor, parity_predictor, sum_bucket_predictor
from predictors.logistic import NAME as LOGISTIC_NAME
from predictors.markov import MarkovPredictor
from predictors.pattern_miner import PatternMinerPredictor
from predictors.rules import RulePredictor
from predictors.streak import StreakBreakPredictor

# Importância base de cada preditor (ajustável)
BASE_IMPORTANCE: Dict[str, float] = {
    "rules": 1.2,
    "markov": 1.0,
    "pattern": 1.1,
    "streak": 0.95,
    "dice_shape": 1.0,
    "parity": 0.95,
    "sum_bucket": 0.95,
    "autoregressive": 0.9,
    LOGISTIC_NAME: 1.0,
}


def build_heuristic_predictors(configs: Dict[str, Dict[str, Any]] = None) -> List[BasePredictor]:
    """
    Cria os preditores heurísticos, em ordem estável

    Args:
        configs: {nome_do_preditor: config} para sobrescrever constantes
    """
    configs = configs or {}
    predictors: List[BasePredictor] = [
        RulePredictor(configs.get("rules")),
        MarkovPredictor(configs.get("markov")),
        PatternMinerPredictor(configs.get("pattern")),
        StreakBreakPredictor(configs.get("streak")),
        dice_shape_predictor(configs.get("dice_shape")),
        parity_predictor(configs.get("parity")),
        sum_bucket_predictor(configs.get("sum_bucket")),
        AutoregressivePredictor(configs.get("autoregressive")),
    ]

    names = [p.name for p in predictors]
    if len(set(names)) != len(names):
        raise ValueError(f"Nomes de preditores duplicados: {names}")
    return predictors


def heuristic_names() -> List[str]:
    return [p.name for p in build_heuristic_predictors()]


def all_predictor_names() -> List[str]:
    return heuristic_names() + [LOGISTIC_NAME]
