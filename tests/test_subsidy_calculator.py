from datetime import date
from types import SimpleNamespace

import pytest

from exceptions import InvalidInputError
from subsidy_calculator import (check_flexible_work, check_replacement_worker, check_parental_leave_grant,
                                check_work_sharing, check_infra_support, check_subsidy, calculate_age,
                                full_months_between)


def make_employee(**fields):
    defaults = dict(work_type='OFFICE', join_date=date(2025, 1, 1), status='ACTIVE', leave_type=None,
                    leave_start_date=None, contract_type='REGULAR', birth_date=date(1990, 1, 1),
                    weekly_work_hours=40)
    defaults.update(fields)
    return SimpleNamespace(**defaults)


def test_calculate_age():
    assert calculate_age(date(2000, 6, 15), date(2025, 6, 14)) == 24
    assert calculate_age(date(2000, 6, 15), date(2025, 6, 15)) == 25
    assert calculate_age(None) == 0


def test_full_months_between():
    assert full_months_between(date(2025, 4, 15), date(2025, 6, 1)) == 1
    assert full_months_between(date(2025, 1, 1), date(2025, 6, 1)) == 5


def test_flexible_work():
    employee = make_employee(work_type='REMOTE')
    result = check_flexible_work(employee, 2025, 6, usage_count=5)
    assert result.eligible
    assert result.calculated_amount == 600000

    assert not check_flexible_work(employee, 2025, 6, usage_count=3).eligible
    assert not check_flexible_work(make_employee(), 2025, 6, usage_count=5).eligible


def test_flexible_work_requires_three_months_of_service():
    employee = make_employee(work_type='HYBRID', join_date=date(2025, 4, 15))
    result = check_flexible_work(employee, 2025, 6, usage_count=8)
    assert not result.eligible
    assert '3개월' in result.reason


def test_replacement_worker_amount_depends_on_age():
    on_leave = make_employee(status='ON_LEAVE', leave_type='MATERNITY', leave_start_date=date(2025, 3, 1))
    young = make_employee(contract_type='REPLACEMENT', birth_date=date(2000, 1, 1))
    older = make_employee(contract_type='REPLACEMENT', birth_date=date(1985, 1, 1))

    result = check_replacement_worker(on_leave, young, date(2025, 3, 1), on=date(2025, 6, 1))
    assert result.eligible
    assert result.calculated_amount == 1400000
    assert check_replacement_worker(on_leave, older, date(2025, 3, 1), on=date(2025, 6, 1)).calculated_amount \
        == 1300000


def test_replacement_worker_rejections():
    on_leave = make_employee(status='ON_LEAVE', leave_type='PARENTAL', leave_start_date=date(2025, 3, 1))
    replacement = make_employee(contract_type='REPLACEMENT')

    assert not check_replacement_worker(make_employee(), replacement, date(2025, 3, 1)).eligible
    assert not check_replacement_worker(on_leave, make_employee(), date(2025, 3, 1)).eligible
    result = check_replacement_worker(on_leave, replacement, date(2025, 2, 1))
    assert not result.eligible
    assert '휴직 시작일' in result.reason


def test_parental_leave_grant_infant_bonus():
    employee = make_employee(status='ON_LEAVE', leave_type='PARENTAL')
    result = check_parental_leave_grant(employee, date(2025, 1, 15), 2025, 6)
    assert result.eligible
    assert result.calculated_amount == 300000 + 1000000
    assert result.details['child_age_months'] == 4

    result = check_parental_leave_grant(employee, date(2024, 3, 1), 2025, 6)
    assert result.calculated_amount == 300000


def test_parental_leave_grant_child_too_old():
    employee = make_employee(status='ON_LEAVE', leave_type='PARENTAL')
    result = check_parental_leave_grant(employee, date(2023, 6, 1), 2025, 6)
    assert not result.eligible
    assert result.details['child_age_months'] == 24


def test_work_sharing():
    employee = make_employee(birth_date=date(1990, 1, 1))
    assert not check_work_sharing(employee).eligible

    result = check_work_sharing(employee, weekly_hours=35, on=date(2025, 6, 1))
    assert result.eligible
    assert result.calculated_amount == 400000

    young = make_employee(birth_date=date(2001, 1, 1), weekly_work_hours=30)
    assert check_work_sharing(young, on=date(2025, 6, 1)).calculated_amount == 600000


def test_infra_support():
    assert not check_infra_support(0).eligible
    assert check_infra_support(2).calculated_amount == 1800000


def test_check_subsidy_dispatch():
    employee = make_employee(work_type='REMOTE')
    assert check_subsidy('FLEXIBLE_WORK', employee, 2025, 6, usage_count=4).eligible
    assert check_subsidy('INFRA_SUPPORT', employee, 2025, 6, employees_under_30=1).eligible

    with pytest.raises(InvalidInputError):
        check_subsidy('UNKNOWN', employee, 2025, 6)
    with pytest.raises(InvalidInputError):
        check_subsidy('PARENTAL_LEAVE_GRANT', employee, 2025, 6)
