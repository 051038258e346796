import math

import pytest

from core.history import History, Outcome
from ml.features import DiceShape, Parity, SumBucket, dice_shape, extract_features, parity, sum_bucket
from ml.ml_config import BASE_FEATURE_NAMES
from tests.conftest import history_from_symbols, make_round, random_rounds
from utils.helpers import (
    autocorrelation,
    last_n,
    parity_ratio,
    run_length_before_streak,
    shannon_entropy,
    streak_of_end,
    switch_rate,
)


# ========== HELPERS ==========

def test_window_helpers_truncate():
    assert last_n([1, 2, 3], 5) == [1, 2, 3]
    assert last_n([1, 2, 3], 0) == []
    assert streak_of_end([]) == 0
    assert streak_of_end(["X", "T", "T"]) == 2
    assert run_length_before_streak(["T", "X", "X", "T", "T"]) == 2


def test_switch_rate_and_entropy():
    assert switch_rate(["T"]) == 0.0
    assert switch_rate(["T", "X", "T", "X"]) == 1.0
    assert shannon_entropy([]) == 0.0
    assert shannon_entropy(["T", "X"]) == pytest.approx(1.0)
    assert shannon_entropy(["T", "T", "T"]) == 0.0


def test_autocorrelation_degenerate_cases():
    assert autocorrelation([10, 10, 10, 10], lag=1) == 0.0
    assert autocorrelation([10, 11], lag=1) == 0.0
    assert autocorrelation([3, 18, 3, 18, 3, 18], lag=2) == pytest.approx(1.0)


def test_parity_ratio_empty_window():
    assert parity_ratio([]) == 0.5
    assert parity_ratio([4, 6, 7, 9]) == 0.5


# ========== CHAVES ==========

@pytest.mark.parametrize("dice,expected", [
    ((3, 3, 3), DiceShape.TRIPLE),
    ((2, 5, 2), DiceShape.PAIR),
    ((4, 2, 3), DiceShape.STRAIGHT),
    ((1, 4, 6), DiceShape.MIXED),
])
def test_dice_shape(dice, expected):
    assert dice_shape(make_round(1, Outcome.LOW, dice)) is expected


@pytest.mark.parametrize("dice,expected", [
    ((1, 2, 3), SumBucket.VERY_LOW),
    ((2, 2, 3), SumBucket.LOW),
    ((4, 4, 4), SumBucket.MIDDLE),
    ((5, 5, 5), SumBucket.HIGH),
    ((6, 5, 5), SumBucket.VERY_HIGH),
])
def test_sum_bucket_boundaries(dice, expected):
    assert sum_bucket(make_round(1, Outcome.LOW, dice)) is expected


def test_parity_of_total():
    assert parity(make_round(1, Outcome.HIGH, (6, 5, 1))) is Parity.EVEN
    assert parity(make_round(1, Outcome.HIGH, (6, 5, 2))) is Parity.ODD


# ========== VETOR DE FEATURES ==========

def test_extract_features_signature_is_stable():
    features = extract_features(History(random_rounds(50, seed=3)))
    assert list(features) == BASE_FEATURE_NAMES
    assert all(math.isfinite(v) for v in features.values())


def test_extract_features_single_round():
    features = extract_features(history_from_symbols("T"))
    assert list(features) == BASE_FEATURE_NAMES
    assert all(math.isfinite(v) for v in features.values())
    assert features["streak_signed"] > 0


def test_streak_feature_sign():
    assert extract_features(history_from_symbols("TXXX"))["streak_signed"] < 0
