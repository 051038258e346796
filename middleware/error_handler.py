"""
Middleware para tratamento de erros
"""

from fastapi import Request
from fastapi.responses import JSONResponse
from datetime import datetime
import logging

from core.exceptions import EmptyHistoryError, MalformedHistoryError, SourceUnavailableError

logger = logging.getLogger(__name__)


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={
            "error": error,
            "message": message,
            "timestamp": datetime.now().isoformat(),
        }
    )


async def error_handler_middleware(request: Request, call_next):
    """
    Middleware para capturar e tratar erros
    """
    try:
        response = await call_next(request)
        return response

    except SourceUnavailableError as e:
        logger.error(f"Fonte indisponível: {e}")
        return error_response(502, "Bad Gateway", str(e))

    except (EmptyHistoryError, MalformedHistoryError) as e:
        logger.error(f"Histórico inválido: {e}")
        return error_response(502, "Bad Gateway", f"Dados de histórico inválidos: {e}")

    except ValueError as e:
        logger.error(f"ValueError: {e}")
        return error_response(400, "Bad Request", str(e))

    except Exception as e:
        logger.error(f"Erro não tratado: {e}", exc_info=True)
        return error_response(500, "Internal Server Error", "Erro interno do servidor")
