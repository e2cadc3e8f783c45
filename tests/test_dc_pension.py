from types import SimpleNamespace

from dc_pension import (calculate_base_salary, calculate_dc_contribution, calculate_monthly_dc_total,
                        calculate_annual_dc_total)


def payrolls(*amounts):
    return [SimpleNamespace(total_gross=amount) for amount in amounts]


def test_base_salary_is_floored_average():
    assert calculate_base_salary(payrolls(3000000, 3000000, 3000001)) == 3000000
    assert calculate_base_salary([]) == 0


def test_contribution_is_one_twelfth():
    result = calculate_dc_contribution(payrolls(3600000, 3600000, 3600000))

    assert result.monthly_base_salary == 3600000
    assert result.minimum_contribution == 300000
    assert result.recommended_contribution == 300000
    assert result.annual_projection == 3600000
    assert result.is_within_tax_limit
    assert result.contribution_rate == '8.33%'


def test_tax_limit_exceeded():
    result = calculate_dc_contribution(payrolls(240000000))
    assert result.annual_projection == 240000000
    assert not result.is_within_tax_limit


def test_without_payrolls():
    result = calculate_dc_contribution([])
    assert result.minimum_contribution == 0
    assert result.annual_projection == 0


def test_totals():
    contributions = [calculate_dc_contribution(payrolls(3600000)), calculate_dc_contribution(payrolls(1200000))]
    assert calculate_monthly_dc_total(contributions) == 400000
    assert calculate_annual_dc_total(contributions) == 4800000
