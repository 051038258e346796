"""
ensemble/bankroll.py

Simulação de banca com aposta pelo critério de Kelly

Aposta = fração de Kelly da banca atual, com piso de aposta mínima e teto
em `max_fraction` da banca. Acerto soma a aposta; erro subtrai.
"""

from dataclasses import dataclass, field
from typing import Iterable, List, Tuple


@dataclass(frozen=True)
class BankrollConfig:
    initial: float = 1000.0
    payout: float = 0.95
    max_fraction: float = 0.2
    min_stake: float = 1.0

    @classmethod
    def from_settings(cls, settings, initial: float = None) -> "BankrollConfig":
        return cls(
            initial=settings.BANKROLL_INITIAL if initial is None else initial,
            payout=settings.BANKROLL_PAYOUT,
            max_fraction=settings.BANKROLL_MAX_FRACTION,
            min_stake=settings.BANKROLL_MIN_STAKE,
        )


def kelly_fraction(probability: float, payout: float) -> float:
    """
    f* = (b*p - q) / b, com b = retorno líquido por unidade apostada

    Returns:
        Fração da banca (0 quando não há vantagem)
    """
    if payout <= 0:
        return 0.0
    f = (payout * probability - (1.0 - probability)) / payout
    return max(0.0, f)


def kelly_stake(bankroll: float, confidence: float, config: BankrollConfig) -> float:
    """Aposta da rodada, nunca acima de max_fraction * banca"""
    if bankroll <= 0:
        return 0.0

    f = kelly_fraction(confidence, config.payout)
    if f <= 0:
        return 0.0

    stake = max(config.min_stake, f * bankroll)
    return min(stake, config.max_fraction * bankroll, bankroll)


@dataclass
class BankrollStep:
    stake: float
    correct: bool
    bankroll: float


@dataclass
class BankrollResult:
    initial: float
    final: float
    peak: float
    max_drawdown: float
    steps: List[BankrollStep] = field(default_factory=list)


def simulate_bankroll(rounds: Iterable[Tuple[float, bool]], config: BankrollConfig) -> BankrollResult:
    """
    Args:
        rounds: Sequência de (confiança, acertou)
        config: Parâmetros da banca

    Returns:
        BankrollResult com banca final, pico e drawdown máximo (fração do pico)
    """
    bankroll = config.initial
    peak = bankroll
    max_drawdown = 0.0
    steps: List[BankrollStep] = []

    for confidence, correct in rounds:
        stake = kelly_stake(bankroll, confidence, config)
        bankroll = bankroll + stake if correct else bankroll - stake

        peak = max(peak, bankroll)
        if peak > 0:
            max_drawdown = max(max_drawdown, (peak - bankroll) / peak)
        steps.append(BankrollStep(stake=stake, correct=correct, bankroll=bankroll))

    return BankrollResult(
        initial=config.initial,
        final=bankroll,
        peak=peak,
        max_drawdown=max_drawdown,
        steps=steps,
    )
