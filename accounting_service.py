"""회계/재무: 원천징수 집계, 퇴직금 추계, DC형 부담금, 급여 통계 (관리자 전용)"""
import io
import logging
from dataclasses import asdict
from datetime import date

import pandas as pd
from openpyxl.styles import Font

from app import db
from dc_pension import calculate_dc_contribution, calculate_monthly_dc_total, calculate_annual_dc_total
from exceptions import InvalidInputError, NotFoundError
from models import Employee, EmployeeStatus, PayrollRecord, Role
from payroll_service import recent_payrolls
from rbac import require_roles
from severance import calculate_severance_pay
from utils import parse_date
from withholding_tax import aggregate_withholding_tax, calculate_yearly_total

logger = logging.getLogger(__name__)

WITHHOLDING_COLUMNS = {
    'month': '연월',
    'employee_count': '인원',
    'total_gross': '총 급여',
    'total_taxable': '과세 대상',
    'total_non_taxable': '비과세',
    'income_tax': '소득세',
    'local_income_tax': '지방소득세',
    'total_tax': '원천징수 합계',
}

NO_DEPARTMENT = '미지정'


def _require_admin(actor, message):
    require_roles(actor, Role.ADMIN, message=message)


def _validate_year(year):
    if year is None or not 2000 <= year <= 2100:
        raise InvalidInputError('조회 연도가 올바르지 않습니다.')


def _employee_summary(employee):
    return {
        'id': employee.id,
        'employee_no': employee.employee_no,
        'name': employee.name,
        'department': employee.department_name or NO_DEPARTMENT,
        'position': employee.position,
        'join_date': employee.join_date.isoformat(),
    }


# ─── 원천징수 ───

def get_withholding_tax_summary(actor, year):
    """월별 원천징수 집계와 연간 합계"""
    _require_admin(actor, '관리자만 원천징수 내역을 조회할 수 있습니다.')
    _validate_year(year)
    records = PayrollRecord.query.filter(PayrollRecord.year == year).all()
    summary = aggregate_withholding_tax(records)
    return summary, calculate_yearly_total(summary)


def export_withholding_tax(actor, year):
    """원천징수 집계 엑셀 (BytesIO, 파일명)"""
    _require_admin(actor, '관리자만 Excel 내보내기를 사용할 수 있습니다.')
    summary, yearly_total = get_withholding_tax_summary(actor, year)
    if not summary:
        raise InvalidInputError(f'{year}년 급여 기록이 없습니다.')

    total_row = dict(yearly_total, month='합계', employee_count='')
    df = pd.DataFrame(summary + [total_row], columns=list(WITHHOLDING_COLUMNS))
    df = df.rename(columns=WITHHOLDING_COLUMNS)

    sheet_name = f'{year}년 원천징수 집계'
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        sheet = writer.sheets[sheet_name]
        # 헤더 다음부터 데이터, 마지막 행이 합계
        for cell in sheet[len(df) + 1]:
            cell.font = Font(bold=True)
    output.seek(0)

    logger.info("원천징수 엑셀 생성: %d년 (%d개월)", year, len(summary))
    return output, f'원천징수_{year}.xlsx'


# ─── 퇴직금 추계 ───

def get_all_severance_estimates(actor, retirement_date=None):
    """재직자 전체 퇴직금 추계 (퇴직금 내림차순)"""
    _require_admin(actor, '관리자만 퇴직금 추계를 조회할 수 있습니다.')
    target = parse_date(retirement_date) or date.today()

    estimates = []
    for employee in Employee.query.filter(Employee.status == EmployeeStatus.ACTIVE).all():
        if target < employee.join_date:
            continue
        result = calculate_severance_pay(employee, recent_payrolls(employee.id, target), target)
        estimates.append(dict(_employee_summary(employee), **asdict(result)))

    estimates.sort(key=lambda e: e['amount'], reverse=True)
    return estimates


# ─── DC형 퇴직연금 ───

def get_dc_contribution(actor, employee_id, on=None):
    _require_admin(actor, '관리자만 DC형 부담금을 조회할 수 있습니다.')
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    contribution = calculate_dc_contribution(recent_payrolls(employee.id, on or date.today()))
    return dict(_employee_summary(employee), **asdict(contribution))


def get_all_dc_contributions(actor, on=None):
    """재직자 전체 DC형 부담금 (권장 부담금 내림차순)과 월/연 합계"""
    _require_admin(actor, '관리자만 DC형 부담금을 조회할 수 있습니다.')
    on = on or date.today()

    rows, contributions = [], []
    for employee in Employee.query.filter(Employee.status == EmployeeStatus.ACTIVE).all():
        contribution = calculate_dc_contribution(recent_payrolls(employee.id, on))
        contributions.append(contribution)
        rows.append(dict(_employee_summary(employee), **asdict(contribution)))

    rows.sort(key=lambda r: r['recommended_contribution'], reverse=True)
    totals = {
        'monthly_total': calculate_monthly_dc_total(contributions),
        'annual_total': calculate_annual_dc_total(contributions),
    }
    return rows, totals


# ─── 급여 통계 ───

def _payroll_records(year, month=None):
    query = PayrollRecord.query.join(Employee).filter(PayrollRecord.year == year)
    if month:
        query = query.filter(PayrollRecord.month == month)
    return query.all()


def _group_stats(records, key):
    groups = {}
    for record in records:
        group = groups.setdefault(key(record), {'employees': set(), 'total_gross': 0, 'total_net': 0})
        group['employees'].add(record.employee_id)
        group['total_gross'] += record.total_gross
        group['total_net'] += record.net_salary

    stats = []
    for name, group in groups.items():
        count = len(group['employees'])
        stats.append({
            'name': name,
            'employee_count': count,
            'total_gross': group['total_gross'],
            'total_net': group['total_net'],
            'avg_salary': group['total_gross'] // count,
        })
    return stats


def get_payroll_stats_by_department(actor, year, month=None):
    _require_admin(actor, '관리자만 통계를 조회할 수 있습니다.')
    _validate_year(year)
    stats = _group_stats(_payroll_records(year, month),
                         lambda r: r.employee.department_name or NO_DEPARTMENT)
    return sorted(stats, key=lambda s: s['total_gross'], reverse=True)


def get_payroll_stats_by_position(actor, year, month=None):
    _require_admin(actor, '관리자만 통계를 조회할 수 있습니다.')
    _validate_year(year)
    stats = _group_stats(_payroll_records(year, month), lambda r: r.employee.position)
    return sorted(stats, key=lambda s: s['avg_salary'], reverse=True)


def get_monthly_trend(actor, year):
    """1~12월 인건비 추이 (기록 없는 달은 0)"""
    _require_admin(actor, '관리자만 통계를 조회할 수 있습니다.')
    _validate_year(year)
    records = _payroll_records(year)

    trend = []
    for month in range(1, 13):
        items = [r for r in records if r.month == month]
        total_gross = sum(r.total_gross for r in items)
        trend.append({
            'year': year,
            'month': month,
            'employee_count': len(items),
            'total_gross': total_gross,
            'total_net': sum(r.net_salary for r in items),
            'avg_salary': total_gross // len(items) if items else 0,
        })
    return trend
