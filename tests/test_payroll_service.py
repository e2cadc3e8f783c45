from datetime import date

import pandas as pd
import pytest

from app import db
from attendance_service import record_attendance, confirm_attendance, get_monthly_attendance
from exceptions import InvalidStateError, DuplicateError, PermissionDeniedError
from models import Role, Document, DocumentStatus, Notification, EmployeeStatus
from payroll_service import (create_monthly_payroll, confirm_payrolls, delete_payroll, list_payrolls,
                             export_payroll_ledger, calculate_employee_severance, LEDGER_COLUMNS)


@pytest.fixture
def setup(ctx, make_user, make_department, make_employee):
    admin = make_user('admin', Role.ADMIN)
    viewer = make_user('viewer')
    dev = make_department('개발팀')
    support = make_department('경영지원팀')
    employee = make_employee('이사원', department=dev, user=viewer, join_date=date(2023, 1, 1),
                             meal_allowance=200000)
    other = make_employee('최과장', department=support, base_salary=4000000, join_date=date(2020, 1, 1))
    return admin, viewer, employee, other


def test_create_monthly_payroll_snapshot(setup):
    admin, _, employee, _ = setup
    record = create_monthly_payroll(admin, employee.id, 2026, 3)

    assert record.base_salary == 3000000
    assert record.total_gross == 3200000
    assert record.total_taxable == 3000000
    assert record.income_tax == 74350
    assert record.net_salary == 2826699
    assert not record.is_confirmed


def test_only_confirmed_attendance_adds_overtime(setup):
    admin, _, employee, _ = setup
    confirmed = record_attendance(admin, employee.id, date(2026, 3, 2), '09:00', '21:00', 60)
    record_attendance(admin, employee.id, date(2026, 3, 3), '09:00', '22:00', 60)
    assert confirm_attendance(admin, [confirmed.id]) == 1

    record = create_monthly_payroll(admin, employee.id, 2026, 3)
    assert record.variable_overtime_amount == 64593
    assert record.total_taxable == 3064593
    assert record.income_tax == 79480


def test_confirmed_attendance_cannot_be_edited(setup):
    admin, _, employee, _ = setup
    record = record_attendance(admin, employee.id, '2026-03-02', '09:00', '18:00')
    confirm_attendance(admin, [record.id])

    with pytest.raises(InvalidStateError):
        record_attendance(admin, employee.id, '2026-03-02', '09:00', '20:00')

    records, stats = get_monthly_attendance(admin, employee.id, 2026, 3)
    assert len(records) == 1
    assert stats['total_work_hours'] == '8시간'


def test_duplicate_payroll(setup):
    admin, _, employee, _ = setup
    create_monthly_payroll(admin, employee.id, 2026, 3)
    with pytest.raises(DuplicateError):
        create_monthly_payroll(admin, employee.id, 2026, 3)


def test_payroll_requires_active_employee_and_admin(setup):
    admin, viewer, employee, other = setup
    with pytest.raises(PermissionDeniedError):
        create_monthly_payroll(viewer, employee.id, 2026, 3)

    other.status = EmployeeStatus.RESIGNED
    db.session.commit()
    with pytest.raises(InvalidStateError):
        create_monthly_payroll(admin, other.id, 2026, 3)


def test_confirm_issues_payslip_and_notifies(setup):
    admin, viewer, employee, _ = setup
    record = create_monthly_payroll(admin, employee.id, 2026, 3)

    assert confirm_payrolls(admin, [record.id]) == 1
    assert confirm_payrolls(admin, [record.id]) == 0

    payslip = Document.query.filter_by(type='PAYSLIP', employee_id=employee.id).one()
    assert payslip.status == DocumentStatus.ISSUED
    assert payslip.title == '2026년 3월 임금명세서'
    assert payslip.get_content()['payroll_record_id'] == record.id

    notification = Notification.query.filter_by(recipient_id=viewer.id).one()
    assert notification.type == 'PAYSLIP_READY'

    with pytest.raises(InvalidStateError):
        delete_payroll(admin, record.id)


def test_viewer_lists_only_own_payroll(setup):
    admin, viewer, employee, other = setup
    create_monthly_payroll(admin, employee.id, 2026, 3)
    create_monthly_payroll(admin, other.id, 2026, 3)

    assert len(list_payrolls(admin, 2026, 3)) == 2
    assert [r.employee_id for r in list_payrolls(viewer)] == [employee.id]


def test_payroll_ledger_export(setup):
    admin, _, employee, other = setup
    create_monthly_payroll(admin, employee.id, 2026, 3)
    create_monthly_payroll(admin, other.id, 2026, 3)

    output, filename = export_payroll_ledger(admin, 2026, 3)
    assert filename == '급여대장_2026년03월.xlsx'

    df = pd.read_excel(output, engine='openpyxl')
    assert list(df.columns) == LEDGER_COLUMNS
    assert list(df['부서']) == ['개발팀', '경영지원팀']
    first = df.iloc[0]
    assert first['건강보험'] == 107850 + 14171
    assert first['실수령액'] == 2826699
    assert first['확정여부'] == '미확정'


def test_severance_uses_payrolls_up_to_resign_month(setup):
    admin, _, employee, _ = setup
    for month in (1, 2, 3, 4):
        create_monthly_payroll(admin, employee.id, 2026, month)

    result = calculate_employee_severance(admin, employee.id, '2026-03-31')
    assert result.eligible
    assert result.average_daily_wage == 3200000 * 3 // 90
    assert result.method == 'AVERAGE_WAGE'
