"""
core/exceptions.py

Erros de domínio da API de previsão
"""


class PredictionError(Exception):
    """Erro base de todas as falhas do domínio de previsão."""
    pass


class SourceUnavailableError(PredictionError):
    """A fonte de histórico não respondeu ou não retornou dados utilizáveis."""
    pass


class MalformedHistoryError(PredictionError):
    """O histórico recebido viola a ordenação (índices duplicados ou fora de ordem)."""
    pass


class PredictorFault(PredictionError):
    """
    Um preditor individual falhou ou produziu saída inválida.

    Nunca é propagado para o cliente: o chamador converte em
    "evidência insuficiente" para aquele preditor apenas.
    """

    def __init__(self, predictor_name: str, message: str):
        super().__init__(f"{predictor_name}: {message}")
        self.predictor_name = predictor_name


class EmptyHistoryError(PredictionError):
    """Nenhuma rodada válida restou após a normalização: não há o que prever."""
    pass
