from typing import Any, Dict, List, Optional, Union
import asyncio
import httpx
import logging
import time

from core.exceptions import SourceUnavailableError
from core.history import History, shape_history


logger = logging.getLogger(__name__)

# Chaves aceitas quando a fonte envolve a lista em um objeto
_LIST_KEYS = ("data", "results", "history")


class DiceHistoryAPI:
    def __init__(self, url: str, timeout_seconds: float = 12.0):
        self.url = url
        self.timeout_seconds = timeout_seconds

    async def fetch(self) -> List[Any]:
        """
        Consulta o histórico bruto de rodadas na fonte externa.
        - Retorna sempre a lista de registros, sem normalizar.
        - Em caso de falha (HTTP, timeout, JSON inválido ou formato inesperado),
          levanta SourceUnavailableError para o chamador tratar.
        """
        # Timeouts explícitos para não pendurar a requisição do cliente
        timeout = httpx.Timeout(self.timeout_seconds, connect=5.0)

        try:
            async with httpx.AsyncClient(timeout=timeout) as client:
                resp = await client.get(self.url)
                resp.raise_for_status()

                try:
                    data: Union[List[Any], Dict[str, Any]] = resp.json()
                except ValueError as exc:
                    raise SourceUnavailableError(f"JSON inválido recebido de {self.url}") from exc

                # Aceita lista bruta OU dict com 'data' / 'results' / 'history'
                if isinstance(data, list):
                    records = data
                elif isinstance(data, dict):
                    records = next((data[k] for k in _LIST_KEYS if isinstance(data.get(k), list)), None)
                    if records is None:
                        raise SourceUnavailableError(f"Nenhuma lista de rodadas na resposta de {self.url}")
                else:
                    raise SourceUnavailableError(
                        f"Formato de resposta inesperado ({type(data).__name__}) em {self.url}"
                    )

                logger.info("✅ %d registros obtidos da fonte", len(records))
                return records

        except (httpx.HTTPError, asyncio.TimeoutError) as exc:
            # Erros de rede/HTTP/timeout mapeados para erro de domínio
            logger.error("❌ Falha HTTP/Timeout ao consultar a fonte: %s", exc)
            raise SourceUnavailableError(f"Falha ao consultar a fonte de histórico: {exc}") from exc


class HistorySource:
    """
    Fonte de histórico com cache em memória

    Dentro do TTL devolve a última resposta sem consultar a fonte. Em falha
    transitória mantém a última resposta válida; só levanta erro se nunca
    obteve dados.

    Args:
        api: Cliente da fonte externa
        ttl_seconds: Validade do cache
        max_size: Quantidade máxima de rodadas mantidas (as mais recentes)
    """

    def __init__(self, api: DiceHistoryAPI, ttl_seconds: float = 10.0, max_size: Optional[int] = 500):
        self.api = api
        self.ttl_seconds = ttl_seconds
        self.max_size = max_size
        self._records: Optional[List[Any]] = None
        self._fetched_at = 0.0
        self._lock = asyncio.Lock()

    @property
    def has_data(self) -> bool:
        return self._records is not None

    async def records(self) -> List[Any]:
        async with self._lock:
            if self._records is not None and time.monotonic() - self._fetched_at < self.ttl_seconds:
                return self._records

            try:
                self._records = await self.api.fetch()
                self._fetched_at = time.monotonic()
            except SourceUnavailableError:
                if self._records is None:
                    raise
                logger.warning("⚠️ Fonte indisponível, usando o último histórico em cache")

            return self._records

    async def history(self) -> History:
        """Histórico normalizado (ordenado, apenas rodadas válidas)"""
        return shape_history(await self.records(), max_size=self.max_size)
