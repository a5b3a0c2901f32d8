"""Tests for contentpilot/llm/pricing.py: cost table and off-peak window."""

from datetime import UTC, datetime, timedelta, timezone

import pytest

from contentpilot.llm.pricing import calculate_cost, is_off_peak

PEAK = datetime(2026, 3, 2, 10, 0, tzinfo=UTC)
OFF_PEAK = datetime(2026, 3, 2, 18, 0, tzinfo=UTC)


class TestOffPeak:
    @pytest.mark.parametrize("hour,minute,expected", [
        (16, 29, False),
        (16, 30, True),
        (23, 59, True),
        (0, 29, True),
        (0, 30, False),
        (12, 0, False),
    ])
    def test_window(self, hour, minute, expected):
        assert is_off_peak(datetime(2026, 3, 2, hour, minute, tzinfo=UTC)) is expected

    def test_converts_timezones(self):
        # 19:00 in UTC+2 is 17:00 UTC
        local = datetime(2026, 3, 2, 19, 0, tzinfo=timezone(timedelta(hours=2)))
        assert is_off_peak(local) is True


class TestCalculateCost:
    def test_deepseek_standard(self):
        cost = calculate_cost("deepseek-chat", 1_000_000, 1_000_000, now=PEAK)
        assert cost == pytest.approx(0.27 + 1.10)

    def test_deepseek_off_peak_discount(self):
        cost = calculate_cost("deepseek-chat", 1_000_000, 1_000_000, now=OFF_PEAK)
        assert cost == pytest.approx(0.135 + 0.55)

    def test_flat_model_ignores_window(self):
        assert calculate_cost("gpt-4o-mini", 1_000_000, 0, now=PEAK) == pytest.approx(0.15)
        assert calculate_cost("gpt-4o-mini", 1_000_000, 0, now=OFF_PEAK) == pytest.approx(0.15)

    def test_unknown_model_is_free(self):
        assert calculate_cost("offline-stub", 5000, 5000) == 0.0
