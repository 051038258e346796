# ml_config.py
"""
Configurações centrais do modelo logístico online.

Aqui ficam:
- janelas usadas na extração de features
- lista de features esperadas pelo modelo
- hiperparâmetros de treino e do warm-fit
"""

from typing import List

# Janelas (em rodadas) usadas pelas features
RATIO_WINDOWS: List[int] = [5, 10, 20, 80]
MEAN_TOTAL_WINDOWS: List[int] = [10, 120]
SWITCH_WINDOW: int = 12
ENTROPY_WINDOW: int = 30
AUTOCORR_WINDOW: int = 20
PARITY_WINDOW: int = 10
DICE_FACE_WINDOW: int = 5
STREAK_SCALE: float = 10.0

# Nomes das features extraídas do histórico.
# IMPORTANTE: essa lista define a "assinatura" do vetor de entrada do modelo.
BASE_FEATURE_NAMES: List[str] = [
    *[f"ratio_high_{w}" for w in RATIO_WINDOWS],
    *[f"mean_total_{w}" for w in MEAN_TOTAL_WINDOWS],
    "streak_signed",
    f"switch_rate_{SWITCH_WINDOW}",
    f"entropy_{ENTROPY_WINDOW}",
    f"autocorr_lag1_{AUTOCORR_WINDOW}",
    f"autocorr_lag2_{AUTOCORR_WINDOW}",
    f"parity_ratio_{PARITY_WINDOW}",
    f"dice_face_avg_{DICE_FACE_WINDOW}",
]

# Prefixo das features derivadas dos preditores heurísticos ("probabilidade de Tài")
PREDICTOR_FEATURE_PREFIX: str = "p_"

# Hiperparâmetros do gradiente
LEARNING_RATE: float = 0.05
L2_REG: float = 0.001
INIT_SCALE: float = 0.01

# Warm-fit: só dispara com histórico maior que o limiar, treinando do offset
# até a penúltima rodada (a última ainda não tem sucessor conhecido)
WARM_FIT_MIN_HISTORY: int = 120
WARM_FIT_OFFSET: int = 50


def feature_names_for(predictor_names: List[str]) -> List[str]:
    """Assinatura completa: features base + uma por preditor heurístico"""
    return BASE_FEATURE_NAMES + [f"{PREDICTOR_FEATURE_PREFIX}{name}" for name in predictor_names]
