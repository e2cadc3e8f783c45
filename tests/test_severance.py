from datetime import date
from types import SimpleNamespace

from severance import (calculate_severance_pay, calculate_average_daily_wage, calculate_ordinary_daily_wage,
                       calculate_service_days)


def make_employee(join_date=date(2023, 1, 1)):
    return SimpleNamespace(join_date=join_date, base_salary=3000000, meal_allowance=100000,
                           transport_allowance=0, position_allowance=0)


def payroll(year, month, total_gross=3100000):
    return SimpleNamespace(year=year, month=month, total_gross=total_gross)


RECENT = [payroll(2025, 10), payroll(2025, 11), payroll(2025, 12)]


def test_service_days_include_both_ends():
    assert calculate_service_days(date(2023, 1, 1), date(2025, 12, 31)) == 1096


def test_average_daily_wage():
    assert calculate_average_daily_wage(RECENT) == 9300000 // 92
    assert calculate_average_daily_wage([]) == 0


def test_ordinary_daily_wage():
    assert calculate_ordinary_daily_wage(make_employee()) == 3100000 * 12 // 365


def test_severance_uses_higher_of_average_and_ordinary_wage():
    result = calculate_severance_pay(make_employee(), RECENT, date(2025, 12, 31))
    assert result.eligible
    assert result.method == 'ORDINARY_WAGE'
    assert result.applied_daily_wage == 101917
    assert result.amount == 9180906


def test_average_wage_method_when_higher():
    recent = [payroll(2025, 10, 4000000), payroll(2025, 11, 4000000), payroll(2025, 12, 4000000)]
    result = calculate_severance_pay(make_employee(), recent, date(2025, 12, 31))
    assert result.method == 'AVERAGE_WAGE'
    assert result.applied_daily_wage == 12000000 // 92


def test_under_one_year_is_not_eligible():
    result = calculate_severance_pay(make_employee(date(2025, 6, 1)), RECENT, date(2025, 12, 31))
    assert not result.eligible
    assert result.amount == 0
