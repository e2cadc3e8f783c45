from datetime import date

import pytest

from exceptions import InvalidInputError
from utils import add_months, calculate_tenure, format_tenure, parse_date, format_won


def test_add_months_clamps_to_month_end():
    assert add_months(date(2025, 1, 31), 1) == date(2025, 2, 28)
    assert add_months(date(2024, 11, 15), 3) == date(2025, 2, 15)


def test_calculate_tenure():
    tenure = calculate_tenure(date(2020, 3, 15), date(2023, 5, 20))
    assert (tenure['years'], tenure['months'], tenure['days']) == (3, 2, 5)
    assert tenure['total_days'] == (date(2023, 5, 20) - date(2020, 3, 15)).days + 1


def test_format_tenure():
    assert format_tenure(date(2020, 3, 15), date(2023, 5, 20)) == '3년 2개월 5일'
    assert format_tenure(date(2023, 1, 1), date(2024, 1, 1)) == '1년'
    assert format_tenure(date(2024, 1, 1), date(2024, 1, 1)) == '0일'


def test_format_won():
    assert format_won(1234567) == '1,234,567원'
    assert format_won(None) == '0원'


def test_parse_date():
    assert parse_date('2025-02-03') == date(2025, 2, 3)
    assert parse_date(date(2025, 2, 3)) == date(2025, 2, 3)
    assert parse_date('') is None
    with pytest.raises(InvalidInputError):
        parse_date('2025-02-30')

