import pytest

from core.exceptions import MalformedHistoryError
from core.history import History, Outcome, normalize_result, parse_round, shape_history
from tests.conftest import make_round, raw_record


@pytest.mark.parametrize("label,expected", [
    ("Tài", Outcome.HIGH),
    ("TAI", Outcome.HIGH),
    ("tai", Outcome.HIGH),
    ("Xỉu", Outcome.LOW),
    ("XIU", Outcome.LOW),
    ("big", Outcome.HIGH),
    ("small", Outcome.LOW),
])
def test_normalize_result_ignores_case_and_accents(label, expected):
    assert normalize_result(label) is expected


@pytest.mark.parametrize("label", ["", "draw", None, "tài xỉu"])
def test_normalize_result_rejects_unknown_labels(label):
    assert normalize_result(label) is None


def test_parse_round_source_format():
    rnd = parse_round(raw_record(101, (6, 5, 1), "Tài"))
    assert rnd.index == 101
    assert rnd.dice == (6, 5, 1)
    assert rnd.total == 12
    assert rnd.outcome is Outcome.HIGH


def test_parse_round_english_aliases_and_dice_list():
    rnd = parse_round({"index": "7", "dice": [1, 2, 3], "result": "low"})
    assert rnd.index == 7
    assert rnd.total == 6
    assert rnd.outcome is Outcome.LOW


def test_parse_round_keeps_source_total():
    record = raw_record(5, (1, 1, 1), "Xỉu")
    record["Tong"] = 4
    assert parse_round(record).total == 4


@pytest.mark.parametrize("record", [
    {"Phien": 1, "Xuc_xac_1": 7, "Xuc_xac_2": 1, "Xuc_xac_3": 1, "Ket_qua": "Tài"},
    {"Phien": 1, "Xuc_xac_1": 1, "Xuc_xac_2": 1, "Ket_qua": "Tài"},
    {"Phien": "abc", "Xuc_xac_1": 1, "Xuc_xac_2": 1, "Xuc_xac_3": 1, "Ket_qua": "Tài"},
    {"Phien": 1, "Xuc_xac_1": 1, "Xuc_xac_2": 1, "Xuc_xac_3": 1, "Ket_qua": "?"},
    "not a dict",
])
def test_parse_round_rejects_invalid_records(record):
    assert parse_round(record) is None


def test_shape_history_sorts_drops_and_trims():
    raw = [
        raw_record(3, (6, 6, 1), "Tài"),
        raw_record(1, (1, 2, 3), "Xỉu"),
        {"Phien": 2, "Ket_qua": "???"},
        raw_record(2, (5, 5, 5), "Tài"),
    ]
    history = shape_history(raw)
    assert [r.index for r in history] == [1, 2, 3]

    trimmed = shape_history(raw, max_size=2)
    assert [r.index for r in trimmed] == [2, 3]


def test_shape_history_non_list_payload_is_empty():
    assert len(shape_history({"error": "down"})) == 0


def test_duplicate_indices_raise():
    raw = [raw_record(1, (1, 2, 3), "Xỉu"), raw_record(1, (6, 6, 6), "Tài")]
    with pytest.raises(MalformedHistoryError):
        shape_history(raw)


def test_history_prefix_and_tail():
    history = History(make_round(i, Outcome.HIGH if i % 2 else Outcome.LOW) for i in range(10))
    assert len(history.prefix(3)) == 4
    assert history.prefix(3).last.index == 3
    assert [r.index for r in history.tail(2)] == [8, 9]
    assert len(history.tail(0)) == 0
    assert isinstance(history[2:5], History)
