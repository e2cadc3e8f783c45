from datetime import date

import openpyxl
import pytest

from accounting_service import (get_withholding_tax_summary, export_withholding_tax, get_all_severance_estimates,
                                get_dc_contribution, get_all_dc_contributions, get_payroll_stats_by_department,
                                get_payroll_stats_by_position, get_monthly_trend)
from exceptions import InvalidInputError, NotFoundError, PermissionDeniedError
from models import Role, PayrollRecord
from payroll_service import create_monthly_payroll

MARCH_END = date(2026, 3, 31)


@pytest.fixture
def setup(ctx, make_user, make_department, make_employee):
    admin = make_user('admin', Role.ADMIN)
    manager = make_user('manager', Role.MANAGER)
    dev = make_department('개발팀')
    support = make_department('경영지원팀')
    employee = make_employee('이사원', department=dev, join_date=date(2023, 1, 1), meal_allowance=200000)
    other = make_employee('최과장', department=support, position='과장', base_salary=4000000,
                          join_date=date(2020, 1, 1))
    return admin, manager, employee, other


def payrolls_for(admin, employees, months=(1, 2, 3)):
    for employee in employees:
        for month in months:
            create_monthly_payroll(admin, employee.id, 2026, month)


def test_withholding_tax_summary(setup):
    admin, manager, employee, other = setup
    payrolls_for(admin, [employee, other], months=(1,))
    payrolls_for(admin, [employee], months=(2,))

    summary, yearly_total = get_withholding_tax_summary(admin, 2026)

    assert [row['month'] for row in summary] == ['2026-01', '2026-02']
    assert [row['employee_count'] for row in summary] == [2, 1]
    assert summary[0]['total_gross'] == 7200000
    assert summary[0]['total_non_taxable'] == 200000
    assert yearly_total['total_gross'] == 10400000
    assert yearly_total['income_tax'] == sum(r.income_tax for r in PayrollRecord.query.all())

    with pytest.raises(PermissionDeniedError):
        get_withholding_tax_summary(manager, 2026)
    with pytest.raises(InvalidInputError):
        get_withholding_tax_summary(admin, 1900)


def test_withholding_tax_export(setup):
    admin, _, employee, other = setup
    payrolls_for(admin, [employee, other], months=(1, 2))

    output, filename = export_withholding_tax(admin, 2026)

    assert filename == '원천징수_2026.xlsx'
    sheet = openpyxl.load_workbook(output)['2026년 원천징수 집계']
    assert [cell.value for cell in sheet[1]][:3] == ['연월', '인원', '총 급여']
    total_row = sheet[4]
    assert total_row[0].value == '합계'
    assert total_row[2].value == 14400000
    assert total_row[0].font.bold

    with pytest.raises(InvalidInputError, match='급여 기록이 없습니다'):
        export_withholding_tax(admin, 2025)


def test_all_severance_estimates(setup, make_employee):
    admin, manager, employee, other = setup
    payrolls_for(admin, [employee, other])
    make_employee('신입', join_date=date(2026, 1, 2))
    make_employee('입사예정', join_date=date(2026, 5, 1))

    estimates = get_all_severance_estimates(admin, '2026-03-31')

    assert [e['name'] for e in estimates] == ['최과장', '이사원', '신입']
    assert estimates[0]['amount'] > estimates[1]['amount'] > 0
    assert estimates[0]['department'] == '경영지원팀'
    assert not estimates[2]['eligible'] and estimates[2]['amount'] == 0

    with pytest.raises(PermissionDeniedError):
        get_all_severance_estimates(manager)


def test_dc_contributions(setup):
    admin, _, employee, other = setup
    payrolls_for(admin, [employee, other])

    rows, totals = get_all_dc_contributions(admin, on=MARCH_END)

    assert [r['name'] for r in rows] == ['최과장', '이사원']
    assert rows[1]['monthly_base_salary'] == 3200000
    assert rows[1]['minimum_contribution'] == 266666
    assert totals == {'monthly_total': 333333 + 266666, 'annual_total': (333333 + 266666) * 12}

    detail = get_dc_contribution(admin, employee.id, on=MARCH_END)
    assert detail['recommended_contribution'] == 266666
    assert detail['employee_no'] == employee.employee_no
    with pytest.raises(NotFoundError):
        get_dc_contribution(admin, 999)


def test_payroll_statistics(setup):
    admin, manager, employee, other = setup
    payrolls_for(admin, [employee, other], months=(1,))
    payrolls_for(admin, [employee], months=(3,))

    january = PayrollRecord.query.filter_by(employee_id=employee.id, month=1).one()
    by_department = get_payroll_stats_by_department(admin, 2026, 1)
    assert [s['name'] for s in by_department] == ['경영지원팀', '개발팀']
    assert by_department[1] == {'name': '개발팀', 'employee_count': 1, 'total_gross': 3200000,
                                'total_net': january.net_salary, 'avg_salary': 3200000}

    by_position = get_payroll_stats_by_position(admin, 2026, 1)
    assert [s['name'] for s in by_position] == ['과장', '사원']

    trend = get_monthly_trend(admin, 2026)
    assert len(trend) == 12
    assert trend[0]['employee_count'] == 2 and trend[0]['total_gross'] == 7200000
    assert trend[1]['employee_count'] == 0 and trend[1]['avg_salary'] == 0
    assert trend[2]['total_gross'] == 3200000

    with pytest.raises(PermissionDeniedError):
        get_monthly_trend(manager, 2026)
