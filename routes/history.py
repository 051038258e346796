# ========== routes/history.py ==========
"""
Rota para consultar o histórico normalizado
"""

from fastapi import APIRouter, Request, Query
from typing import Dict
from datetime import datetime

router = APIRouter()


@router.get("")
async def get_history(
    request: Request,
    limit: int = Query(default=50, ge=1, le=500, description="Quantidade de rodadas"),
) -> Dict:
    """
    Busca as rodadas normalizadas, da mais recente para a mais antiga
    """
    history = await request.app.state.source.history()
    recent = history.tail(limit)

    return {
        "timestamp": datetime.now().isoformat(),
        "total": len(recent),
        "rounds": [
            {**r.to_dict(), "label": r.outcome.display}
            for r in reversed(recent.rounds)
        ],
    }
