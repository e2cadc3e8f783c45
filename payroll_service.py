import io
import logging
from datetime import datetime

import pandas as pd

from app import db
from attendance_service import monthly_records
from constants import RECENT_PAYROLL_MONTHS
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, DuplicateError
from models import Employee, EmployeeStatus, PayrollRecord, Document, DocumentStatus, Department, Role
from notifications import notify_payslip_ready
from rbac import require_roles, require_payroll_access
from salary import calculate_hourly_rate, calculate_variable_allowances, calculate_salary
from severance import calculate_severance_pay
from utils import parse_date

logger = logging.getLogger(__name__)

LEDGER_COLUMNS = [
    '부서', '사번', '성명', '기본급', '식대', '교통비', '직책수당', '변동OT', '변동야간', '변동휴일',
    '총지급액', '국민연금', '건강보험', '고용보험', '소득세', '지방소득세', '총공제액', '실수령액', '확정여부',
]


def _validate_period(year, month):
    if not (2000 <= int(year) <= 2100) or not (1 <= int(month) <= 12):
        raise InvalidInputError('급여 연월이 올바르지 않습니다.')


def _get_payroll(payroll_id):
    record = db.session.get(PayrollRecord, payroll_id)
    if record is None:
        raise NotFoundError('급여 기록을 찾을 수 없습니다.')
    return record


def create_monthly_payroll(actor, employee_id, year, month):
    """월 급여 생성 (급여 구성 스냅샷 + 확정 근태 기준 변동수당)"""
    require_roles(actor, Role.ADMIN, message='급여 생성 권한이 없습니다.')
    _validate_period(year, month)

    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    if employee.status != EmployeeStatus.ACTIVE:
        raise InvalidStateError('재직 중인 직원만 급여를 생성할 수 있습니다.')

    existing = PayrollRecord.query.filter_by(employee_id=employee.id, year=year, month=month).first()
    if existing:
        raise DuplicateError(f'{year}년 {month}월 급여가 이미 생성되어 있습니다.')

    records = monthly_records(employee.id, year, month, confirmed_only=True)
    variable = calculate_variable_allowances(records, calculate_hourly_rate(employee), employee.use_fixed_ot)
    breakdown = calculate_salary(employee, variable)

    record = PayrollRecord(employee_id=employee.id, year=year, month=month, **breakdown.to_dict())
    db.session.add(record)
    db.session.commit()
    logger.info("급여 생성: %s %d-%02d 실수령 %d원", employee.employee_no, year, month, record.net_salary)
    return record


def confirm_payrolls(actor, payroll_ids):
    """급여 확정 후 명세서 발급. 반환값: 확정된 건수"""
    require_roles(actor, Role.ADMIN, message='급여 확정 권한이 없습니다.')
    if not payroll_ids:
        raise InvalidInputError('확정할 급여를 선택해주세요.')

    records = PayrollRecord.query.filter(
        PayrollRecord.id.in_(payroll_ids),
        PayrollRecord.is_confirmed.is_(False)
    ).all()

    now = datetime.now()
    for record in records:
        record.is_confirmed = True
        record.confirmed_at = now
        record.confirmed_by = actor.id

        payslip = Document(
            type='PAYSLIP',
            title=f'{record.year}년 {record.month}월 임금명세서',
            status=DocumentStatus.ISSUED,
            employee_id=record.employee_id,
            created_by=actor.id,
            issued_at=now,
        )
        payslip.set_content({'year': record.year, 'month': record.month, 'payroll_record_id': record.id})
        db.session.add(payslip)

    db.session.commit()
    logger.info("급여 확정: %d건 by %s", len(records), actor.username)

    for record in records:
        notify_payslip_ready(record.id)
    return len(records)


def delete_payroll(actor, payroll_id):
    require_roles(actor, Role.ADMIN, message='급여 삭제 권한이 없습니다.')
    record = _get_payroll(payroll_id)
    if record.is_confirmed:
        raise InvalidStateError('확정된 급여는 삭제할 수 없습니다.')
    db.session.delete(record)
    db.session.commit()


def get_payroll(actor, payroll_id):
    record = _get_payroll(payroll_id)
    require_payroll_access(actor, record)
    return record


def list_payrolls(actor, year=None, month=None):
    query = PayrollRecord.query.join(Employee)
    if actor.role != Role.ADMIN:
        # 관리자 외에는 본인 급여만
        query = query.filter(Employee.user_id == actor.id)
    if year:
        query = query.filter(PayrollRecord.year == year)
    if month:
        query = query.filter(PayrollRecord.month == month)
    return query.order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc(), Employee.employee_no).all()


def export_payroll_ledger(actor, year, month):
    """급여대장 엑셀 (BytesIO, 파일명)"""
    require_roles(actor, Role.ADMIN, message='급여대장 다운로드 권한이 없습니다.')
    _validate_period(year, month)

    records = (
        PayrollRecord.query
        .join(Employee)
        .outerjoin(Department, Employee.department_id == Department.id)
        .filter(PayrollRecord.year == year, PayrollRecord.month == month)
        .order_by(Department.name, Employee.employee_no)
        .all()
    )

    data = []
    for record in records:
        employee = record.employee
        data.append({
            '부서': employee.department_name or '',
            '사번': employee.employee_no,
            '성명': employee.name,
            '기본급': record.base_salary,
            '식대': record.meal_allowance,
            '교통비': record.transport_allowance,
            '직책수당': record.position_allowance,
            '변동OT': record.variable_overtime_amount,
            '변동야간': record.variable_night_amount,
            '변동휴일': record.variable_holiday_amount,
            '총지급액': record.total_gross,
            '국민연금': record.national_pension,
            '건강보험': record.health_insurance + record.long_term_care,
            '고용보험': record.employment_insurance,
            '소득세': record.income_tax,
            '지방소득세': record.local_income_tax,
            '총공제액': record.total_deduction,
            '실수령액': record.net_salary,
            '확정여부': '확정' if record.is_confirmed else '미확정',
        })

    df = pd.DataFrame(data, columns=LEDGER_COLUMNS)

    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=f'{year}년{month}월')
    output.seek(0)

    filename = f'급여대장_{year}년{month:02d}월.xlsx'
    return output, filename


def calculate_employee_severance(actor, employee_id, resign_date):
    """퇴직금 계산 (퇴사일 이전 최근 3개월 급여 기준)"""
    require_roles(actor, Role.ADMIN, message='퇴직금 계산 권한이 없습니다.')
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')

    resign_date = parse_date(resign_date) or employee.resign_date
    if resign_date is None:
        raise InvalidInputError('퇴사일을 입력하세요.')
    if resign_date < employee.join_date:
        raise InvalidInputError('퇴사일은 입사일 이후여야 합니다.')

    return calculate_severance_pay(employee, recent_payrolls(employee.id, resign_date), resign_date)


def recent_payrolls(employee_id, until, months=RECENT_PAYROLL_MONTHS):
    """기준일이 속한 달까지의 최근 급여 기록 (최신순)"""
    period_key = until.year * 12 + until.month
    return (
        PayrollRecord.query
        .filter(PayrollRecord.employee_id == employee_id,
                PayrollRecord.year * 12 + PayrollRecord.month <= period_key)
        .order_by(PayrollRecord.year.desc(), PayrollRecord.month.desc())
        .limit(months)
        .all()
    )


def payroll_to_dict(record):
    data = {
        'id': record.id,
        'employee_id': record.employee_id,
        'employee_name': record.employee.name if record.employee else None,
        'year': record.year,
        'month': record.month,
        'is_confirmed': record.is_confirmed,
    }
    for column in ('base_salary', 'meal_allowance', 'transport_allowance', 'position_allowance',
                   'fixed_ot_amount', 'fixed_night_amount', 'fixed_holiday_amount',
                   'variable_overtime_amount', 'variable_night_amount', 'variable_holiday_amount',
                   'total_gross', 'total_taxable', 'national_pension', 'health_insurance',
                   'long_term_care', 'employment_insurance', 'total_insurance', 'income_tax',
                   'local_income_tax', 'total_deduction', 'net_salary'):
        data[column] = getattr(record, column)
    return data
