"""
main.py - Aplicação Principal da API de Previsão Tài/Xỉu

Arquitetura:
    - Separação de responsabilidades
    - Injeção de dependências (app.state)
    - Preditores isolados combinados por um ensemble ponderado
    - Configurações centralizadas
"""

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from dotenv import load_dotenv
import logging
import sys
from datetime import datetime

# Importar configurações
from config.settings import Settings

# Importar fonte de dados e ensemble
from core.api import DiceHistoryAPI, HistorySource
from ensemble.combiner import EnsembleCombiner

# Importar rotas
from routes import prediction, backtest, history, health

# Importar middleware customizado
from middleware.logging_middleware import LoggingMiddleware
from middleware.error_handler import error_handler_middleware

# ========== CARREGAR CONFIGURAÇÕES ==========
load_dotenv()
settings = Settings()

# ========== CONFIGURAÇÃO DE LOGGING ==========
logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout),
        logging.FileHandler(settings.LOG_FILE)
    ]
)
logger = logging.getLogger(__name__)


# ========== LIFESPAN (STARTUP/SHUTDOWN) ==========
@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator:
    """
    Gerencia o ciclo de vida da aplicação
    - Startup: cria a fonte de histórico e o ensemble (com o modelo logístico do processo)
    - Shutdown: apenas loga; não há estado persistido
    """
    # ===== STARTUP =====
    logger.info("=" * 60)
    logger.info(f"  {settings.APP_NAME}")
    logger.info("=" * 60)
    logger.info(f"  Versão: {settings.APP_VERSION}")
    logger.info(f"  Ambiente: {settings.ENVIRONMENT}")
    logger.info(f"  Fonte: {settings.SOURCE_URL}")
    logger.info("=" * 60)

    api = DiceHistoryAPI(settings.SOURCE_URL, timeout_seconds=settings.FETCH_TIMEOUT_SECONDS)

    # Injetar dependências na aplicação
    app.state.settings = settings
    app.state.source = HistorySource(api, ttl_seconds=settings.CACHE_TTL_SECONDS, max_size=settings.MAX_HISTORY_SIZE)
    app.state.combiner = EnsembleCombiner(settings)

    logger.info(f"✅ Aplicação iniciada na porta {settings.API_PORT}")

    yield

    # ===== SHUTDOWN =====
    logger.info("👋 Aplicação encerrada")


# ========== CRIAR APLICAÇÃO FASTAPI ==========
app = FastAPI(
    title=settings.APP_NAME,
    description="""
    API de previsão Tài/Xỉu (soma de três dados) por ensemble de preditores.

    ## Preditores:
    - **RULES**: Regras heurísticas de sequência, tendência e extremos
    - **MARKOV**: Transições de ordem 1/2
    - **PATTERN**: Mineração de padrões recentes
    - **STREAK**: Probabilidade de quebra de sequência
    - **CONDICIONAIS**: Formato dos dados, paridade e faixa da soma
    - **AUTOREGRESSIVE**: Projeção AR(2) do total
    - **LOGISTIC**: Regressão logística online

    ## Endpoints Principais:
    - `/api/prediction` - Previsão da próxima rodada
    - `/api/prediction/full` - Previsão + detalhe walk-forward
    - `/api/backtest` - Backtest com simulação de banca
    - `/api/history` - Histórico normalizado
    - `/health` - Status da aplicação

    Previsões são estatísticas: não há garantia de acerto.
    """,
    version=settings.APP_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if settings.ENVIRONMENT != "production" else None,
    redoc_url="/redoc" if settings.ENVIRONMENT != "production" else None,
)

# ========== CONFIGURAR CORS ==========
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ========== MIDDLEWARE CUSTOMIZADO ==========
app.add_middleware(LoggingMiddleware)
app.middleware("http")(error_handler_middleware)

# ========== INCLUIR ROTAS ==========
app.include_router(
    prediction.router,
    prefix="/api/prediction",
    tags=["Previsão"],
)

app.include_router(
    backtest.router,
    prefix="/api/backtest",
    tags=["Backtest"],
)

app.include_router(
    history.router,
    prefix="/api/history",
    tags=["Histórico"],
)

app.include_router(
    health.router,
    prefix="",
    tags=["Health"],
)


# ========== ROTA RAIZ ==========
@app.get("/", tags=["Root"])
async def root():
    """
    Endpoint raiz - Informações da API
    """
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "online",
        "timestamp": datetime.now().isoformat(),
        "environment": settings.ENVIRONMENT,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "prediction": "/api/prediction",
            "prediction_full": "/api/prediction/full?detail=40",
            "backtest": "/api/backtest?window=120&bankroll=1000",
            "history": "/api/history?limit=50",
        },
    }


# ========== TRATAMENTO DE EXCEÇÕES GLOBAIS ==========
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """
    Tratador global de exceções
    """
    logger.error(f"❌ Erro não tratado: {exc}", exc_info=True)

    return JSONResponse(
        status_code=500,
        content={
            "error": "Internal Server Error",
            "message": str(exc) if settings.ENVIRONMENT != "production" else "Erro interno do servidor",
            "timestamp": datetime.now().isoformat(),
        }
    )


# ========== MAIN (para execução direta) ==========
if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.API_HOST,
        port=settings.API_PORT,
        reload=settings.ENVIRONMENT == "development",
        log_level="info",
    )
