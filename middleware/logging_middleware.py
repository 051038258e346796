"""
Middleware para logging de requisições
"""

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
import time
import logging

logger = logging.getLogger(__name__)


class LoggingMiddleware(BaseHTTPMiddleware):
    """
    Loga método, rota, status e duração de cada requisição

    Rotas de previsão/backtest deixam em request.state:
        predicted_round: rodada prevista (vira o header X-Predicted-Round)
        summary: resumo da decisão, incluído na linha de log
    """

    async def dispatch(self, request: Request, call_next):
        start_time = time.perf_counter()
        query = f"?{request.url.query}" if request.url.query else ""

        logger.info(f"➡️  {request.method} {request.url.path}{query}")

        response = await call_next(request)

        process_time = time.perf_counter() - start_time
        predicted_round = getattr(request.state, "predicted_round", None)
        summary = getattr(request.state, "summary", None)

        detail = ""
        if predicted_round is not None:
            detail += f" - Rodada {predicted_round}"
        if summary:
            detail += f" - {summary}"

        logger.info(
            f"⬅️  {request.method} {request.url.path} - "
            f"Status: {response.status_code} - "
            f"Tempo: {process_time:.2f}s{detail}"
        )

        response.headers["X-Process-Time"] = f"{process_time:.4f}"
        if predicted_round is not None:
            response.headers["X-Predicted-Round"] = str(predicted_round)
        return response
