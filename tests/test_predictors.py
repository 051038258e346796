import pytest

from core.history import History, Outcome
from ml.logistic import TrainingExample
from predictors.autoregressive import AutoregressivePredictor
from predictors.base import BasePredictor, PredictorOutput
from predictors.conditional import dice_shape_predictor, parity_predictor, sum_bucket_predictor
from predictors.logistic import LogisticPredictor, build_model_features
from predictors.markov import MarkovPredictor
from predictors.pattern_miner import PatternMinerPredictor
from predictors.registry import BASE_IMPORTANCE, all_predictor_names, build_heuristic_predictors
from predictors.rules import RulePredictor
from predictors.streak import StreakBreakPredictor
from tests.conftest import history_from_symbols, make_round, random_rounds

H, L = Outcome.HIGH, Outcome.LOW


def dice_for(total):
    """Três dados somando `total` (faces o mais parecidas possível)"""
    base, rem = divmod(total, 3)
    return base, base + (rem >= 2), base + (rem >= 1)


def scored_history(symbols, totals):
    """'TTXXT' + totais -> History com dados coerentes com cada total"""
    return History(
        make_round(i + 1, H if s == "T" else L, dice_for(t))
        for i, (s, t) in enumerate(zip(symbols, totals))
    )


class ExplodingPredictor(BasePredictor):
    name = "exploding"

    def predict(self, history):
        raise RuntimeError("boom")


class OverconfidentPredictor(BasePredictor):
    name = "overconfident"

    def predict(self, history):
        return PredictorOutput(Outcome.HIGH, 1.5, ["certeza absoluta"])


class BrokenOutputPredictor(BasePredictor):
    name = "broken"

    def predict(self, history):
        return {"prediction": "HIGH"}


# ========== REGISTRO ==========

def test_registry_names_match_importance_table():
    names = all_predictor_names()
    assert len(names) == len(set(names))
    assert set(names) == set(BASE_IMPORTANCE)


# ========== ISOLAMENTO ==========

@pytest.mark.parametrize("predictor", [ExplodingPredictor(), BrokenOutputPredictor()])
def test_safe_predict_contains_faults(predictor):
    out = predictor.safe_predict(history_from_symbols("TXT"))
    assert out.is_neutral
    assert out.confidence == 0.5
    assert out.metadata["fault"] is True


def test_safe_predict_clips_confidence():
    out = OverconfidentPredictor().safe_predict(history_from_symbols("T"))
    assert out.prediction is Outcome.HIGH
    assert out.confidence < 1.0


def test_single_round_never_crashes(logistic_model):
    history = history_from_symbols("T")
    predictors = build_heuristic_predictors() + [LogisticPredictor(logistic_model)]
    for predictor in predictors:
        out = predictor.safe_predict(history)
        assert 0.5 <= out.confidence < 1.0
        assert out.metadata.get("fault") is None, predictor.name


def test_confidence_bounds_on_random_prefixes():
    history = History(random_rounds(90, seed=11))
    predictors = build_heuristic_predictors()
    for i in range(0, len(history), 7):
        prefix = history.prefix(i)
        for predictor in predictors:
            out = predictor.safe_predict(prefix)
            assert 0.5 <= out.confidence < 1.0
            if out.is_neutral:
                assert out.confidence == 0.5


# ========== CENÁRIOS ==========

def test_strict_alternation():
    history = history_from_symbols("TX" * 10)
    last = history.last.outcome

    rules = RulePredictor().safe_predict(history)
    assert rules.prediction is last.opposite
    assert 0.78 <= rules.confidence <= 0.82
    assert rules.metadata["rule"] == "zigzag"

    streak = StreakBreakPredictor().safe_predict(history)
    assert streak.prediction is last
    assert streak.metadata["streak"] == 1


def test_five_high_streak_rules_and_streak_disagree():
    history = history_from_symbols("TX" * 5 + "TTTTT")

    rules = RulePredictor().safe_predict(history)
    assert rules.prediction is Outcome.HIGH
    assert rules.confidence == pytest.approx(0.92)

    streak = StreakBreakPredictor().safe_predict(history)
    assert streak.prediction is Outcome.LOW
    assert streak.confidence == pytest.approx(0.62)


def test_three_in_a_row_break_rule():
    out = RulePredictor().safe_predict(history_from_symbols("XTTXXX"))
    assert out.prediction is Outcome.HIGH
    assert out.metadata["rule"] == "three_in_a_row_break"


def test_rules_needs_five_rounds():
    assert RulePredictor().safe_predict(history_from_symbols("TTTT")).is_neutral


# ========== SISTEMA DE PONTOS ==========

@pytest.mark.parametrize(
    "symbols, totals, expected, confidence, score_high, score_low",
    [
        # sem pontos, média neutra -> alterna a partir da última
        ("TTXXT", [11, 11, 10, 10, 11], L, 0.60, 0, 0),
        # empate com média >= 11 / <= 10 -> viés pela média
        ("TTXXT", [11, 12, 11, 11, 12], H, 0.64, 0, 0),
        ("TXXTX", [11, 10, 8, 12, 9], L, 0.64, 0, 0),
        # paridade concentrada em ímpares
        ("TTXXT", [11, 11, 9, 9, 11], H, 0.74, 1, 0),
        # média das faces alta
        ("XXTXT", [8, 7, 14, 13, 14], H, 0.74, 1, 0),
        # tendência de queda
        ("TXTTX", [13, 10, 12, 11, 9], L, 0.80, 0, 2),
        # total extremamente baixo
        ("TTXTX", [14, 12, 9, 11, 5], L, 0.86, 0, 3),
        # dupla após dupla (2-2) -> quebra
        ("XTTXX", [10, 11, 12, 9, 10], H, 0.74, 1, 0),
        # média + tendência + extremo + dupla estendida: bônus limitado a 0.25
        ("XTXTT", [10, 13, 9, 14, 17], H, 0.93, 8, 0),
    ],
)
def test_rules_score_points(symbols, totals, expected, confidence, score_high, score_low):
    out = RulePredictor().safe_predict(scored_history(symbols, totals))
    assert out.metadata["rule"] == "score"
    assert out.prediction is expected
    assert out.confidence == pytest.approx(confidence)
    assert out.metadata["score_high"] == score_high
    assert out.metadata["score_low"] == score_low


def test_rules_score_rationale_names_each_point():
    out = RulePredictor().safe_predict(scored_history("XTXTT", [10, 13, 9, 14, 17]))
    text = " | ".join(out.rationale)
    assert "Média do total em 5 rodadas alta" in text
    assert "Tendência de alta" in text
    assert "extremamente alto" in text
    assert "Dupla de Tài após rodada isolada" in text


@pytest.mark.parametrize(
    "symbols, totals, expected",
    [
        # média +2, uniforme +3 contra paridade +1
        ("TTTTT", [12, 13, 12, 14, 12], H),
        ("XXXXX", [9, 8, 9, 7, 9], L),
    ],
)
def test_rules_uniform_totals_outweigh_parity(symbols, totals, expected):
    # Sem o gatilho de viés, cinco iguais caem no sistema de pontos
    out = RulePredictor({"bias_min_count": 6}).safe_predict(scored_history(symbols, totals))
    assert out.metadata["rule"] == "score"
    assert out.prediction is expected
    assert out.confidence == pytest.approx(0.68 + 4 * 0.06)
    assert {out.metadata["score_high"], out.metadata["score_low"]} == {5, 1}


def test_markov_prefers_order_two_on_alternation():
    out = MarkovPredictor().safe_predict(history_from_symbols("TX" * 10))
    assert out.metadata["order"] == 2
    assert out.prediction is Outcome.HIGH
    assert out.confidence >= 0.9


def test_markov_falls_back_to_order_one_with_little_support():
    # Estado TT visto uma só vez (-> X); ordem 1: T -> T duas vezes, T -> X uma
    out = MarkovPredictor().safe_predict(history_from_symbols("TTXTT"))
    assert out.metadata["order"] == 1
    assert out.metadata["state"] == "T"
    assert out.prediction is Outcome.HIGH
    assert out.metadata["p_high"] == pytest.approx(0.6)
    assert out.confidence == pytest.approx(0.58 + 0.2 * 1.2)


def test_markov_order_one_when_state_never_seen():
    out = MarkovPredictor().safe_predict(history_from_symbols("XXXXTT"))
    assert out.metadata["order"] == 1
    assert out.metadata["samples"] == 1
    assert out.prediction is Outcome.HIGH


def test_long_streak_uses_break_table():
    out = StreakBreakPredictor().safe_predict(history_from_symbols("X" + "T" * 12))
    assert out.prediction is Outcome.LOW
    assert out.confidence == pytest.approx(0.86)


def test_empirical_break_rate():
    rate, samples = StreakBreakPredictor.empirical_break_rate([H, H, L, L, H, H, L], 2)
    assert samples == 3
    assert rate == 1.0


def test_streak_blends_empirical_break_rate():
    # 5 sequências anteriores de exatamente 4 Tài, todas quebradas
    out = StreakBreakPredictor().safe_predict(history_from_symbols("XTTTT" * 6))
    blend = 5 / 15
    expected = (1 - blend) * 0.62 + blend * 1.0

    assert out.metadata["streak"] == 4
    assert out.metadata["empirical_samples"] == 5
    assert out.metadata["empirical_rate"] == 1.0
    assert out.prediction is Outcome.LOW
    assert out.confidence == pytest.approx(expected)


def test_streak_empirical_continuation_overrides_table():
    # Sequências anteriores de 4 sempre viraram 5: a quebra cai abaixo do limiar
    out = StreakBreakPredictor().safe_predict(history_from_symbols("XTTTTT" * 5 + "XTTTT"))
    assert out.metadata["streak"] == 4
    assert out.metadata["empirical_rate"] == 0.0
    assert out.metadata["break_prob"] == pytest.approx(0.62 * 2 / 3, abs=1e-4)
    assert out.prediction is Outcome.HIGH
    assert out.confidence == pytest.approx(0.56)


def test_pattern_miner_tie_breaks_by_length_then_first_seen():
    miner = PatternMinerPredictor()
    best, count = miner.most_frequent_pattern([H, L, H, L, H, L])
    assert best == (H, L, H, L)
    assert count == 2


def test_pattern_miner_output_is_bounded():
    out = PatternMinerPredictor().safe_predict(History(random_rounds(60, seed=5)))
    assert out.prediction in (Outcome.HIGH, Outcome.LOW)
    assert 0.6 <= out.confidence < 1.0


def test_pattern_miner_recency_vote_without_follow_ups():
    # Todas as subsequências aparecem uma vez: vence a mais longa, sem continuação
    out = PatternMinerPredictor().safe_predict(history_from_symbols("TTXTX"))
    weights = [1.12 ** i for i in range(5)]
    high = weights[0] + weights[1] + weights[3]
    low = weights[2] + weights[4]

    assert out.metadata["fallback"] == "recency"
    assert out.metadata["pattern"] == "TTXTX"
    assert out.prediction is Outcome.HIGH
    assert out.confidence == pytest.approx(0.6 + (high - low) / (high + low) * 0.9)


def test_autoregressive_direction():
    high = History(make_round(i, Outcome.HIGH, (6, 6, 5)) for i in range(10))
    low = History(make_round(i, Outcome.LOW, (1, 2, 2)) for i in range(10))
    assert AutoregressivePredictor().safe_predict(high).prediction is Outcome.HIGH
    assert AutoregressivePredictor().safe_predict(low).prediction is Outcome.LOW


def test_autoregressive_neutral_exactly_at_midpoint():
    # mu = 6, últimos dois = 11: 6 + 0.6 * 5 + 0.3 * 5 = 10.5
    totals = [3, 3, 3, 3, 7, 7, 11, 11]
    history = History(
        make_round(i + 1, H if t >= 11 else L, dice_for(t)) for i, t in enumerate(totals)
    )
    out = AutoregressivePredictor().safe_predict(history)
    assert out.is_neutral
    assert out.metadata["projected_total"] == 10.5


# ========== FREQUÊNCIA CONDICIONAL ==========

def _triples_followed_by_high(n_triples: int) -> History:
    rounds = []
    idx = 1
    for _ in range(n_triples):
        rounds.append(make_round(idx, Outcome.LOW, (1, 3, 6)))
        rounds.append(make_round(idx + 1, Outcome.HIGH, (6, 6, 6)))
        rounds.append(make_round(idx + 2, Outcome.HIGH, (2, 4, 6)))
        idx += 3
    rounds.append(make_round(idx, Outcome.HIGH, (5, 5, 5)))
    return History(rounds)


def test_conditional_gating_ignores_skew_below_min_count():
    out = dice_shape_predictor().safe_predict(_triples_followed_by_high(3))
    assert out.is_neutral
    assert out.confidence == 0.5
    assert out.metadata["samples"] == 3


def test_conditional_predicts_with_enough_samples():
    out = dice_shape_predictor().safe_predict(_triples_followed_by_high(5))
    assert out.prediction is Outcome.HIGH
    assert out.confidence == pytest.approx(0.95)
    assert out.metadata["key"] == "triple"


def _even_low_then_odd_high(pairs: int) -> History:
    """(8 Xỉu, 13 Tài) repetido, terminando em 8: par / faixa 7-9 sempre seguidos de Tài"""
    totals = [8, 13] * pairs + [8]
    return History(
        make_round(i + 1, H if t >= 11 else L, dice_for(t)) for i, t in enumerate(totals)
    )


@pytest.mark.parametrize(
    "factory, key",
    [(parity_predictor, "even"), (sum_bucket_predictor, "7-9")],
)
def test_parity_and_sum_bucket_gating(factory, key):
    below = factory().safe_predict(_even_low_then_odd_high(7))
    assert below.is_neutral
    assert below.metadata["samples"] == 7
    assert below.metadata["key"] == key

    enough = factory().safe_predict(_even_low_then_odd_high(8))
    assert enough.prediction is Outcome.HIGH
    assert enough.confidence == pytest.approx(0.95)
    assert enough.metadata["key"] == key
    assert enough.metadata["samples"] == 8


# ========== LOGÍSTICO ==========

def test_logistic_neutral_until_trained(logistic_model):
    history = History(random_rounds(30, seed=9))
    predictor = LogisticPredictor(logistic_model, build_heuristic_predictors())
    assert predictor.safe_predict(history).is_neutral


def test_logistic_predicts_after_training(logistic_model):
    history = History(random_rounds(30, seed=9))
    heuristics = build_heuristic_predictors()
    outputs = {p.name: p.safe_predict(history) for p in heuristics}
    features = build_model_features(history, outputs)
    logistic_model.train([TrainingExample(i, features, Outcome.HIGH) for i in range(50)])

    out = LogisticPredictor(logistic_model, heuristics).safe_predict(history)
    assert out.prediction is Outcome.HIGH
    assert 0.5 <= out.confidence < 1.0
