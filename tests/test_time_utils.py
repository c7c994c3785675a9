"""
Testes dos Utilitários de Período
=================================
"""

from datetime import date, datetime, timezone

import pytest

from vitrine.core.utils.time_utils import (
    commission_due_date, format_month_year, month_bounds, month_key, parse_month_year,
)


class TestMonthBounds:

    def test_bounds_follow_business_timezone(self):
        start, end = month_bounds("2025-03")

        assert start == datetime(2025, 3, 1, 3, 0, tzinfo=timezone.utc)
        assert end == datetime(2025, 4, 1, 3, 0, tzinfo=timezone.utc)

    def test_december_rolls_over_the_year(self):
        _, end = month_bounds("2024-12")
        assert end == datetime(2025, 1, 1, 3, 0, tzinfo=timezone.utc)

    def test_late_night_order_belongs_to_local_month(self):
        # 01/04 às 02h UTC ainda é 31/03 no horário de Brasília
        assert month_key(datetime(2025, 4, 1, 2, 0, tzinfo=timezone.utc)) == "2025-03"


class TestMonthYear:

    @pytest.mark.parametrize("value", ["2025-13", "2025-3", "25-03", "", None])
    def test_invalid_format(self, value):
        with pytest.raises(ValueError):
            parse_month_year(value)

    def test_due_date_is_next_month(self):
        assert commission_due_date("2025-12") == date(2026, 1, 5)

    def test_label(self):
        assert format_month_year("2025-03") == "Março/2025"
