import pytest

from scan_history import ScanHistory


def test_history_never_exceeds_capacity():
    history = ScanHistory(capacity=3)
    for i in range(10):
        history.push({"n": i})
        assert len(history) <= 3
    assert len(history) == 3


def test_history_evicts_oldest_first():
    history = ScanHistory(capacity=2)
    history.push({"n": 1})
    history.push({"n": 2})
    history.push({"n": 3})
    assert history.items() == [{"n": 2}, {"n": 3}]


def test_empty_history_is_falsy():
    history = ScanHistory()
    assert not history
    history.push({"n": 1})
    assert history
    history.clear()
    assert not history


def test_capacity_must_be_positive():
    with pytest.raises(ValueError):
        ScanHistory(capacity=0)
