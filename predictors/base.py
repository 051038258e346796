"""
predictors/base.py

Classe base abstrata para todos os preditores do ensemble
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from core.exceptions import PredictorFault
from core.history import History, Outcome

logger = logging.getLogger(__name__)

# Limites de confiança de um preditor individual (nunca 1.0)
MIN_CONFIDENCE = 0.5
MAX_CONFIDENCE = 0.99


@dataclass
class PredictorOutput:
    """
    Resultado de um preditor

    Attributes:
        prediction: Tài/Xỉu ou None ("evidência insuficiente")
        confidence: Confiança em [0.5, 1.0)
        rationale: Explicações em ordem
        metadata: Informações adicionais sobre a análise
    """
    prediction: Optional[Outcome]
    confidence: float
    rationale: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def neutral(cls, reason: str, **metadata: Any) -> "PredictorOutput":
        """Evidência insuficiente: não contribui com voto"""
        return cls(prediction=None, confidence=MIN_CONFIDENCE, rationale=[reason], metadata=metadata)

    @property
    def is_neutral(self) -> bool:
        return self.prediction is None

    @property
    def p_high(self) -> float:
        """Confiança reexpressa como "probabilidade de Tài" """
        if self.prediction is None:
            return 0.5
        return self.confidence if self.prediction is Outcome.HIGH else 1.0 - self.confidence

    def to_dict(self) -> Dict[str, Any]:
        return {
            "prediction": self.prediction.value if self.prediction else None,
            "confidence": round(self.confidence, 4),
            "rationale": list(self.rationale),
            "metadata": self.metadata,
        }


class BasePredictor(ABC):
    """
    Classe base abstrata para todos os preditores

    Todos os preditores (Regras, Markov, Padrões, Sequência, ...)
    devem herdar desta classe e implementar o método predict()
    """

    #: Nome estável usado no registro e na tabela de pesos
    name: str = "base"

    #: Tamanho mínimo do histórico para emitir opinião
    default_min_history: int = 1

    def __init__(self, config: Dict[str, Any] = None):
        """
        Inicializa o preditor

        Args:
            config: Dicionário de configurações específicas do preditor
        """
        self.config = config or {}
        self.min_history = self.get_config_value("min_history", self.default_min_history)

    @abstractmethod
    def predict(self, history: History) -> PredictorOutput:
        """
        Analisa o histórico visível e retorna a opinião sobre a próxima rodada

        Este método DEVE ser implementado por todas as classes filhas

        Args:
            history: Histórico já observado (nunca contém o futuro)

        Returns:
            PredictorOutput
        """
        raise NotImplementedError(
            f"O preditor {self.name} deve implementar o método predict()"
        )

    def safe_predict(self, history: History) -> PredictorOutput:
        """
        Executa predict() isolando falhas

        Qualquer exceção ou saída malformada vira "evidência insuficiente"
        apenas para este preditor; o erro é logado e nunca propagado.
        """
        try:
            out = self.predict(history)
            self._validate_output(out)
        except Exception as e:
            fault = e if isinstance(e, PredictorFault) else PredictorFault(self.name, str(e))
            logger.warning(f"⚠️  Falha no preditor {fault}")
            return PredictorOutput.neutral(f"{self.name}: falha interna ({e})", fault=True)

        if out.prediction is None:
            out.confidence = MIN_CONFIDENCE
        else:
            out.confidence = self.clip_confidence(out.confidence)
        return out

    def _validate_output(self, out: Any) -> None:
        if not isinstance(out, PredictorOutput):
            raise PredictorFault(self.name, f"saída inválida ({type(out).__name__})")
        if out.prediction is not None and not isinstance(out.prediction, Outcome):
            raise PredictorFault(self.name, f"previsão inválida ({out.prediction!r})")
        if out.confidence != out.confidence:  # NaN
            raise PredictorFault(self.name, "confiança NaN")

    def has_enough_history(self, history: History) -> bool:
        return len(history) >= self.min_history

    def insufficient(self, history: History) -> PredictorOutput:
        return PredictorOutput.neutral(
            f"{self.name}: histórico insuficiente ({len(history)} < {self.min_history})",
            samples=len(history),
        )

    @staticmethod
    def clip_confidence(confidence: float) -> float:
        return max(MIN_CONFIDENCE, min(MAX_CONFIDENCE, float(confidence)))

    def get_config_value(self, key: str, default: Any) -> Any:
        """
        Obtém valor de configuração com fallback para default

        Args:
            key: Chave da configuração
            default: Valor padrão

        Returns:
            Valor da configuração ou default
        """
        return self.config.get(key, default)

    def __str__(self) -> str:
        """Representação em string do preditor"""
        return f"{self.__class__.__name__}(name={self.name}, config={self.config})"

    def __repr__(self) -> str:
        """Representação técnica do preditor"""
        return self.__str__()
