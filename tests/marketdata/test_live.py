"""Tests for live-price reconciliation of the tail candle."""

import pytest

from chartfeed.marketdata.candle import Candle
from chartfeed.marketdata.live import apply_live_price, average_price_value
from chartfeed.marketdata.series import CandleSeries


def _series(*candles):
    return CandleSeries(candles, period=60)


class TestApplyLivePrice:

    def test_amends_tail_in_current_bucket(self):
        series = _series(
            Candle(time=0, open=9.0, high=10.0, low=8.0, close=9.5),
            Candle(time=60, open=9.5, high=11.0, low=9.0, close=10.0),
        )

        apply_live_price(series, 12.0, 60, now=90, tz_offset=0)

        assert len(series) == 2
        last = series.latest
        assert last.close == 12.0
        assert last.high == 12.0
        assert last.open == 9.5
        # Earlier candle untouched
        assert series.candles[0].close == 9.5

    def test_live_low_only_rises(self):
        """The amended low is max(low, price): it can rise, never fall."""
        series = _series(Candle(time=60, open=10.0, high=11.0, low=9.0, close=10.0))

        apply_live_price(series, 8.0, 60, now=70, tz_offset=0)
        assert series.latest.low == 9.0
        assert series.latest.close == 8.0

        apply_live_price(series, 9.5, 60, now=80, tz_offset=0)
        assert series.latest.low == 9.5
        assert series.latest.high == 11.0

    def test_appends_new_candle_when_bucket_advanced(self):
        series = _series(Candle(time=0, open=9.0, high=10.0, low=8.0, close=9.5))

        apply_live_price(series, 11.0, 60, now=130, tz_offset=0)

        assert len(series) == 2
        new = series.latest
        assert new.time == 120
        assert new.open == 9.5
        assert new.high == new.low == new.close == 11.0

    def test_timezone_offset_applied_to_current_bucket(self):
        series = _series(Candle(time=3660, open=1.0, high=1.0, low=1.0, close=1.0))

        apply_live_price(series, 2.0, 60, now=65, tz_offset=3600)

        assert len(series) == 1
        assert series.latest.close == 2.0

    def test_empty_series_unchanged(self):
        series = _series()
        apply_live_price(series, 5.0, 60, now=0, tz_offset=0)
        assert len(series) == 0

    def test_tail_newer_than_now_is_left_alone(self):
        series = _series(Candle(time=600, open=1.0, high=1.0, low=1.0, close=1.0))
        apply_live_price(series, 5.0, 60, now=100, tz_offset=0)
        assert len(series) == 1
        assert series.latest.close == 1.0


class TestAveragePriceValue:

    def test_converts_30_decimal_fixed_point(self):
        raw = 64250_123456 * 10 ** 24  # 64250.123456 USD
        assert average_price_value(raw) == pytest.approx(64250.12)

    def test_truncates_rather_than_rounds(self):
        raw = 1_999 * 10 ** 27  # 1.999
        assert average_price_value(raw) == pytest.approx(1.99)

    def test_accepts_string(self):
        assert average_price_value(str(10 ** 30)) == pytest.approx(1.0)
