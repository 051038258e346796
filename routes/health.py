# ========== routes/health.py ==========
"""
Rota de Health Check
"""

from fastapi import APIRouter, Request
from datetime import datetime

router = APIRouter()


@router.get("/health")
async def health_check(request: Request):
    """
    Verifica status da aplicação, da fonte e do modelo logístico
    """
    settings = request.app.state.settings
    source = request.app.state.source
    model = request.app.state.combiner.shared_model

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "source": "cached" if source.has_data else "not_fetched",
        "model": {"trained": model.is_trained, **model.state_dict()},
        "version": settings.APP_VERSION,
    }


@router.get("/ping")
async def ping():
    """
    Ping simples
    """
    return {"message": "pong", "timestamp": datetime.now().isoformat()}
