import pytest

from ensemble.bankroll import BankrollConfig, kelly_fraction, kelly_stake, simulate_bankroll

CONFIG = BankrollConfig(initial=100.0, payout=0.95, max_fraction=0.2, min_stake=1.0)


def test_kelly_fraction():
    assert kelly_fraction(0.5, 0.95) == 0.0
    assert kelly_fraction(0.3, 0.95) == 0.0
    assert kelly_fraction(0.6, 0.95) == pytest.approx((0.95 * 0.6 - 0.4) / 0.95)


def test_no_edge_means_no_bet():
    assert kelly_stake(100.0, 0.5, CONFIG) == 0.0
    assert kelly_stake(0.0, 0.9, CONFIG) == 0.0


def test_stake_is_capped_by_max_fraction():
    assert kelly_stake(100.0, 0.95, CONFIG) == pytest.approx(20.0)
    # Aposta mínima nunca ultrapassa o teto
    assert kelly_stake(3.0, 0.6, CONFIG) == pytest.approx(0.6)


def test_fixed_sequence_respects_limits():
    confidences = [0.9, 0.55, 0.7, 0.5, 0.8, 0.95, 0.6, 0.52, 0.85, 0.75]
    correct = [True, False, True, False, False, True, False, True, True, False]

    result = simulate_bankroll(zip(confidences, correct), CONFIG)

    assert len(result.steps) == 10
    bankroll = CONFIG.initial
    for step in result.steps:
        assert step.stake <= CONFIG.max_fraction * bankroll + 1e-9
        assert step.bankroll >= 0
        bankroll = step.bankroll
    assert result.final == pytest.approx(bankroll)
    assert result.steps[3].stake == 0.0


def test_growth_and_drawdown():
    wins = simulate_bankroll([(0.9, True)] * 3, CONFIG)
    assert wins.final == pytest.approx(172.8)
    assert wins.max_drawdown == 0.0

    mixed = simulate_bankroll([(0.9, True), (0.9, False)], CONFIG)
    assert mixed.peak == pytest.approx(120.0)
    assert mixed.final == pytest.approx(96.0)
    assert mixed.max_drawdown == pytest.approx(0.2)
