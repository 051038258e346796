# ========== predictors/__init__.py ==========
"""
Preditores independentes do ensemble
"""

from predictors.base import BasePredictor, PredictorOutput
from predictors.registry import BASE_IMPORTANCE, build_heuristic_predictors
from predictors.logistic import LogisticPredictor

__all__ = [
    'BasePredictor',
    'PredictorOutput',
    'BASE_IMPORTANCE',
    'build_heuristic_predictors',
    'LogisticPredictor',
]
