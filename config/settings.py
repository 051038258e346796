# ========== config/settings.py ==========
"""
Configurações centralizadas da aplicação
"""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """
    Configurações da aplicação usando Pydantic Settings
    """

    # ===== APLICAÇÃO =====
    APP_NAME: str = "Tài Xỉu Ensemble Predictor"
    APP_VERSION: str = "1.0.0"
    ENVIRONMENT: str = "development"  # development, staging, production
    API_HOST: str = "0.0.0.0"
    API_PORT: int = 8000

    # ===== FONTE DE HISTÓRICO =====
    SOURCE_URL: str = "https://fullsrc-daynesun.onrender.com/api/taixiu/history"
    FETCH_TIMEOUT_SECONDS: float = 12.0
    CACHE_TTL_SECONDS: float = 10.0
    MAX_HISTORY_SIZE: int = 500

    # ===== CORS =====
    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:8080",
        "http://127.0.0.1:3000",
        "*"  # Permitir todos em desenvolvimento
    ]

    # ===== ENSEMBLE =====
    LOCAL_PERF_LOOKBACK: int = 60
    LOCAL_PERF_MIN_VOTES: int = 8
    WEIGHT_MIN: float = 0.05
    WEIGHT_MAX: float = 6.0

    # Calibração da confiança final
    CONF_RAW_COEF: float = 0.6
    CONF_AGREE_COEF: float = 0.2
    CONF_ACC_COEF: float = 0.5
    CONF_CAP: float = 0.995
    # Abaixo deste número de preditores opinando, a margem do voto é atenuada
    CONF_MIN_VOTERS: int = 3

    # ===== OTIMIZADOR (hill-climb + annealing) =====
    OPTIMIZER_WINDOW: int = 120
    OPTIMIZER_MIN_WINDOW: int = 30
    OPTIMIZER_ITERATIONS: int = 600
    OPTIMIZER_T0: float = 0.08
    OPTIMIZER_STEP: float = 0.8  # fator multiplicativo 1 +- 40%
    OPTIMIZER_WEIGHT_MIN: float = 0.2
    OPTIMIZER_WEIGHT_MAX: float = 3.5
    OPTIMIZER_MIN_SAMPLES: int = 10
    OPTIMIZER_SEED: Optional[int] = None

    # ===== BACKTEST =====
    BACKTEST_WINDOW: int = 120
    BACKTEST_MAX_WINDOW: int = 300
    BACKTEST_OPTIMIZER_ITERATIONS: int = 200
    WALKFORWARD_DETAIL: int = 40

    # ===== BANCA (Kelly) =====
    BANKROLL_INITIAL: float = 1000.0
    BANKROLL_PAYOUT: float = 0.95
    BANKROLL_MAX_FRACTION: float = 0.2
    BANKROLL_MIN_STAKE: float = 1.0

    # ===== MODELO LOGÍSTICO =====
    LOGISTIC_LEARNING_RATE: float = 0.05
    LOGISTIC_L2: float = 0.001
    LOGISTIC_SEED: Optional[int] = 7

    # ===== LOGGING =====
    LOG_LEVEL: str = "INFO"
    LOG_FILE: str = "api.log"

    class Config:
        env_file = ".env"
        case_sensitive = True
