"""
utils/constants.py

Constantes utilizadas em toda a aplicação
Baseado nas regras do Tài/Xỉu com 3 dados
"""

from typing import Dict, List, Tuple

# ========== DADOS ==========
DICE_FACES: Tuple[int, ...] = (1, 2, 3, 4, 5, 6)
DICE_PER_ROUND: int = 3

TOTAL_MIN: int = 3
TOTAL_MAX: int = 18

# Ponto médio da série de totais (Tài >= 11, Xỉu <= 10)
TOTAL_MIDPOINT: float = 10.5
HIGH_TOTAL_THRESHOLD: int = 11

# Média de uma face de dado honesto
FACE_MIDPOINT: float = 3.5

# ========== FAIXAS DE SOMA ==========
# (rótulo, mínimo, máximo) - cobrem 3..18 sem sobreposição
SUM_BUCKET_RANGES: List[Tuple[str, int, int]] = [
    ("<=6", TOTAL_MIN, 6),
    ("7-9", 7, 9),
    ("10-12", 10, 12),
    ("13-15", 13, 15),
    (">=16", 16, TOTAL_MAX),
]


# ========== RÓTULOS DE TEXTO ==========
# Variações aceitas na fonte (já sem acento e em minúsculas)
HIGH_LABELS = {"t", "tai", "high", "h", "big", "over"}
LOW_LABELS = {"x", "xiu", "low", "l", "small", "under"}

# Nome exibido de cada resultado
OUTCOME_DISPLAY: Dict[str, str] = {
    "HIGH": "Tài",
    "LOW": "Xỉu",
}
