"""Tests for synthetic gap filling."""

import pytest

from chartfeed.marketdata.candle import Candle
from chartfeed.marketdata.gaps import fill_gaps


def _candle(time, open_, high=None, low=None, close=None):
    return Candle(
        time=time,
        open=open_,
        high=high if high is not None else open_,
        low=low if low is not None else open_,
        close=close if close is not None else open_,
    )


def test_fills_two_missing_buckets_from_following_open() -> None:
    candles = [_candle(0, 10.0, 11.0, 9.0, 10.5), _candle(180, 20.0, 21.0, 19.0, 20.5)]

    filled = fill_gaps(candles, 60)

    assert [c.time for c in filled] == [0, 60, 120, 180]
    for synthetic in filled[1:3]:
        assert synthetic.synthetic is True
        assert synthetic.open == pytest.approx(20.0)
        assert synthetic.close == pytest.approx(20.0)
        assert synthetic.high == pytest.approx(20.0 * 1.0003)
        assert synthetic.low == pytest.approx(20.0 * 0.9996)
    # Real candles pass through untouched
    assert filled[0] is candles[0]
    assert filled[3] is candles[1]
    assert not filled[0].synthetic


def test_short_series_returned_unchanged() -> None:
    assert fill_gaps([], 60) == []
    one = [_candle(0, 1.0)]
    assert fill_gaps(one, 60) == one


def test_contiguous_series_has_nothing_inserted() -> None:
    candles = [_candle(t, 1.0) for t in (0, 60, 120)]
    assert fill_gaps(candles, 60) == candles


def test_idempotent() -> None:
    candles = [_candle(0, 1.0), _candle(300, 2.0), _candle(360, 3.0), _candle(900, 4.0)]

    once = fill_gaps(candles, 60)
    twice = fill_gaps(once, 60)

    assert twice == once
    deltas = {b.time - a.time for a, b in zip(once, once[1:])}
    assert deltas == {60}


def test_does_not_modify_input() -> None:
    candles = [_candle(0, 1.0), _candle(180, 2.0)]
    fill_gaps(candles, 60)
    assert len(candles) == 2


def test_offset_times_are_preserved() -> None:
    """Display-shifted times keep their offset in synthetic candles."""
    candles = [_candle(3600 + 0, 1.0), _candle(3600 + 120, 2.0)]
    filled = fill_gaps(candles, 60)
    assert [c.time for c in filled] == [3600, 3660, 3720]


def test_misaligned_neighbours_leave_no_wide_gap() -> None:
    candles = [_candle(0, 1.0), _candle(150, 2.0)]

    filled = fill_gaps(candles, 60)

    assert [c.time for c in filled] == [0, 30, 90, 150]
    assert max(b.time - a.time for a, b in zip(filled, filled[1:])) <= 60
    assert fill_gaps(filled, 60) == filled
