from datetime import date

import pytest

from models import Notification, EmployeeStatus, LeaveRecord
from notifications import get_or_initialize_preference
from reminders import check_contract_expiring, check_probation_ending, check_annual_leave_low, run_daily_checks

TODAY = date(2026, 6, 1)
JOINED = date(2023, 1, 2)


@pytest.fixture
def users(ctx, make_user):
    return [make_user(f'user{i}') for i in range(4)]


def test_contract_expiring_on_warning_days(users, make_employee):
    make_employee('계약직', user=users[0], join_date=JOINED, contract_end_date=date(2026, 6, 8))
    make_employee('미대상', user=users[1], join_date=JOINED, contract_end_date=date(2026, 6, 10))
    make_employee('퇴사자', user=users[2], join_date=JOINED, contract_end_date=date(2026, 6, 8),
                  status=EmployeeStatus.RESIGNED, resign_date=date(2026, 5, 1))
    make_employee('계정없음', join_date=JOINED, contract_end_date=date(2026, 6, 2))

    assert check_contract_expiring(TODAY) == 1
    notification = Notification.query.one()
    assert notification.recipient_id == users[0].id
    assert '7일 후 만료' in notification.message


def test_probation_ending(users, make_employee):
    make_employee('수습', user=users[0], join_date=date(2026, 3, 2), probation_end_date=date(2026, 6, 4))
    make_employee('정규', user=users[1], join_date=JOINED, probation_end_date=date(2026, 6, 5))

    assert check_probation_ending(TODAY) == 1
    assert Notification.query.one().type == 'PROBATION_ENDING'


def test_annual_leave_low(users, make_employee):
    make_employee('신입', user=users[0], join_date=date(2026, 4, 1))
    veteran = make_employee('고참', user=users[1], join_date=JOINED)
    make_employee('사용많음', user=users[2], join_date=JOINED)

    assert check_annual_leave_low(TODAY) == 1

    heavy_user = users[2].employee
    heavy_user.leave_records.append(LeaveRecord(type='ANNUAL', start_date=date(2026, 3, 2),
                                                end_date=date(2026, 3, 20), days=14, status='APPROVED'))
    assert check_annual_leave_low(TODAY) == 2
    assert veteran.id not in [n.related_entity_id for n in Notification.query.all()]


def test_disabled_reminder_still_counted(users, make_employee):
    make_employee('계약직', user=users[0], join_date=JOINED, contract_end_date=date(2026, 7, 1))
    get_or_initialize_preference(users[0])

    assert check_contract_expiring(TODAY) == 1
    assert Notification.query.count() == 0


def test_run_daily_checks(users, make_employee):
    make_employee('계약직', user=users[0], join_date=JOINED, contract_end_date=date(2026, 6, 2))
    make_employee('수습', user=users[1], join_date=date(2026, 4, 1), probation_end_date=date(2026, 6, 15))

    assert run_daily_checks(TODAY) == {
        'contract_expiring': 1,
        'probation_ending': 1,
        'annual_leave_low': 1,
    }


def test_annual_leave_check_runs_on_first_of_month_only(users, make_employee):
    make_employee('신입', user=users[0], join_date=date(2026, 4, 1))

    assert run_daily_checks(date(2026, 6, 2))['annual_leave_low'] is None
    assert Notification.query.count() == 0
    assert run_daily_checks(date(2026, 7, 1))['annual_leave_low'] == 1
