# ========== utils/__init__.py ==========
"""
Utilitários do sistema
"""

from utils.constants import (
    TOTAL_MIDPOINT,
    SUM_BUCKET_RANGES,
    OUTCOME_DISPLAY,
)

from utils.helpers import (
    last_n,
    mean,
    streak_of_end,
    switch_rate,
    shannon_entropy,
    autocorrelation,
    parity_ratio,
    ratio_of,
    clamp,
)

__all__ = [
    'TOTAL_MIDPOINT',
    'SUM_BUCKET_RANGES',
    'OUTCOME_DISPLAY',
    'last_n',
    'mean',
    'streak_of_end',
    'switch_rate',
    'shannon_entropy',
    'autocorrelation',
    'parity_ratio',
    'ratio_of',
    'clamp',
]
