"""
core/history.py

Modelo de histórico: normaliza os registros brutos da fonte em uma
sequência ordenada de rodadas (Round) com resultado Tài/Xỉu.
"""

import logging
import unicodedata
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, Iterator, List, Optional, Tuple, Union, overload

from core.exceptions import MalformedHistoryError
from utils.constants import DICE_FACES, DICE_PER_ROUND, HIGH_LABELS, LOW_LABELS, OUTCOME_DISPLAY

logger = logging.getLogger(__name__)


class Outcome(Enum):
    """Resultado binário de uma rodada"""
    HIGH = "HIGH"   # Tài
    LOW = "LOW"     # Xỉu

    @property
    def opposite(self) -> "Outcome":
        return Outcome.LOW if self is Outcome.HIGH else Outcome.HIGH

    @property
    def display(self) -> str:
        return OUTCOME_DISPLAY[self.value]

    @property
    def symbol(self) -> str:
        """Símbolo curto usado em padrões e transições (T/X)"""
        return "T" if self is Outcome.HIGH else "X"


@dataclass(frozen=True)
class Round:
    """
    Uma rodada do histórico

    Attributes:
        index: Identificador da rodada (ordem temporal)
        dice: Os três dados, na ordem da fonte
        total: Soma informada pela fonte
        outcome: Resultado normalizado
    """
    index: int
    dice: Tuple[int, int, int]
    total: int
    outcome: Outcome

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "dice": list(self.dice),
            "total": self.total,
            "outcome": self.outcome.value,
        }


class History:
    """
    Sequência ordenada (crescente por índice) e somente leitura de rodadas

    Construída uma vez por requisição. Índices duplicados ou fora de ordem
    levantam MalformedHistoryError.
    """

    __slots__ = ("_rounds", "_outcomes", "_totals")

    def __init__(self, rounds: Iterable[Round] = ()):
        self._rounds: Tuple[Round, ...] = tuple(rounds)

        for prev, cur in zip(self._rounds, self._rounds[1:]):
            if cur.index <= prev.index:
                raise MalformedHistoryError(
                    f"Índices fora de ordem ou duplicados: {prev.index} -> {cur.index}"
                )

        self._outcomes: Tuple[Outcome, ...] = tuple(r.outcome for r in self._rounds)
        self._totals: Tuple[int, ...] = tuple(r.total for r in self._rounds)

    @classmethod
    def _trusted(cls, rounds: Tuple[Round, ...]) -> "History":
        # Fatias de um histórico já validado não precisam ser revalidadas
        obj = cls.__new__(cls)
        obj._rounds = rounds
        obj._outcomes = tuple(r.outcome for r in rounds)
        obj._totals = tuple(r.total for r in rounds)
        return obj

    def __len__(self) -> int:
        return len(self._rounds)

    def __iter__(self) -> Iterator[Round]:
        return iter(self._rounds)

    @overload
    def __getitem__(self, item: int) -> Round: ...

    @overload
    def __getitem__(self, item: slice) -> "History": ...

    def __getitem__(self, item: Union[int, slice]) -> Union[Round, "History"]:
        if isinstance(item, slice):
            return History._trusted(self._rounds[item])
        return self._rounds[item]

    def __bool__(self) -> bool:
        return bool(self._rounds)

    def __repr__(self) -> str:
        return f"History(len={len(self)})"

    @property
    def rounds(self) -> Tuple[Round, ...]:
        return self._rounds

    @property
    def outcomes(self) -> Tuple[Outcome, ...]:
        return self._outcomes

    @property
    def totals(self) -> Tuple[int, ...]:
        return self._totals

    @property
    def last(self) -> Optional[Round]:
        return self._rounds[-1] if self._rounds else None

    def prefix(self, i: int) -> "History":
        """Rodadas 0..i (inclusive) - o que era visível no momento i"""
        return self[: i + 1]

    def tail(self, n: int) -> "History":
        """As N rodadas mais recentes"""
        if n <= 0:
            return History()
        return self[-n:]


def _strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(c for c in decomposed if unicodedata.category(c) != "Mn")


def normalize_result(value: Any) -> Optional[Outcome]:
    """
    Normaliza o rótulo textual da fonte para Outcome

    Ignora maiúsculas/minúsculas e acentos ("Tài", "TAI", "tai" -> HIGH).

    Returns:
        Outcome ou None se o rótulo não for reconhecido
    """
    if value is None:
        return None
    if isinstance(value, Outcome):
        return value

    text = _strip_accents(str(value)).strip().lower()
    if text in HIGH_LABELS:
        return Outcome.HIGH
    if text in LOW_LABELS:
        return Outcome.LOW
    return None


# Nomes de campo aceitos: formato da fonte original e aliases em inglês
_INDEX_KEYS = ("Phien", "phien", "index", "round", "session")
_TOTAL_KEYS = ("Tong", "tong", "total", "sum")
_RESULT_KEYS = ("Ket_qua", "ket_qua", "result", "outcome")
_DICE_KEYS = (("Xuc_xac_1", "Xuc_xac_2", "Xuc_xac_3"), ("d1", "d2", "d3"))


def _first_present(record: Dict[str, Any], keys: Tuple[str, ...]) -> Any:
    for key in keys:
        if record.get(key) is not None:
            return record[key]
    return None


def _extract_dice(record: Dict[str, Any]) -> Optional[List[Any]]:
    dice = record.get("dice")
    if isinstance(dice, (list, tuple)):
        return list(dice)

    for keys in _DICE_KEYS:
        values = [record.get(k) for k in keys]
        if all(v is not None for v in values):
            return values
    return None


def parse_round(record: Any) -> Optional[Round]:
    """
    Converte um registro bruto em Round

    Returns:
        Round ou None se o registro for inválido (campo ausente, valor não
        inteiro, dado fora de 1..6 ou resultado não reconhecido)
    """
    if not isinstance(record, dict):
        return None

    outcome = normalize_result(_first_present(record, _RESULT_KEYS))
    if outcome is None:
        return None

    raw_index = _first_present(record, _INDEX_KEYS)
    raw_dice = _extract_dice(record)
    if raw_index is None or raw_dice is None or len(raw_dice) != DICE_PER_ROUND:
        return None

    try:
        index = int(raw_index)
        dice = tuple(int(d) for d in raw_dice)
        raw_total = _first_present(record, _TOTAL_KEYS)
        # O total da fonte é mantido; só é recalculado quando ausente
        total = int(raw_total) if raw_total is not None else sum(dice)
    except (TypeError, ValueError):
        return None

    if any(d not in DICE_FACES for d in dice):
        return None

    return Round(index=index, dice=dice, total=total, outcome=outcome)


def shape_history(raw_records: Any, max_size: Optional[int] = None) -> History:
    """
    Normaliza os registros brutos da fonte em um History

    Args:
        raw_records: Lista de registros (ordenada ou não)
        max_size: Mantém apenas as N rodadas mais recentes

    Returns:
        History ordenado por índice, apenas com rodadas válidas

    Raises:
        MalformedHistoryError: Se houver índices duplicados
    """
    if not isinstance(raw_records, list):
        return History()

    rounds = [r for r in (parse_round(rec) for rec in raw_records) if r is not None]

    dropped = len(raw_records) - len(rounds)
    if dropped:
        logger.info(f"🧹 {dropped} registro(s) descartado(s) na normalização")

    rounds.sort(key=lambda r: r.index)

    if max_size is not None and max_size > 0:
        rounds = rounds[-max_size:]

    return History(rounds)
