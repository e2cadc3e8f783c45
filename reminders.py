"""자동 알림 (매일: 계약 만료/수습 종료, 매월 1일: 연차 부족)"""
import logging
from datetime import date

from leave_calculator import get_annual_leave_summary, COUNTED_STATUSES
from models import Employee, EmployeeStatus
from notifications import notify_user

logger = logging.getLogger(__name__)

CONTRACT_WARNING_DAYS = (30, 14, 7, 3, 1)
PROBATION_WARNING_DAYS = (14, 7, 3, 1)
ANNUAL_LEAVE_LOW_THRESHOLD = 3
ANNUAL_LEAVE_CHECK_DAY = 1  # 매월 1일


def _active_employees_with_user():
    return Employee.query.filter(
        Employee.status == EmployeeStatus.ACTIVE,
        Employee.user_id.isnot(None)
    ).all()


def check_contract_expiring(today=None):
    """계약 만료 30/14/7/3/1일 전 알림"""
    today = today or date.today()
    notified = 0
    for employee in _active_employees_with_user():
        if employee.contract_end_date is None:
            continue
        days_remaining = (employee.contract_end_date - today).days
        if days_remaining in CONTRACT_WARNING_DAYS:
            notify_user(
                employee.user_id, 'CONTRACT_EXPIRING', '계약 만료 임박',
                f'근로계약이 {days_remaining}일 후 만료됩니다. 인사팀에 문의하세요.',
                'Employee', employee.id, f'/admin/employees/{employee.id}',
            )
            notified += 1
    logger.info("계약 만료 경고 발송 완료 (%d명)", notified)
    return notified


def check_probation_ending(today=None):
    today = today or date.today()
    notified = 0
    for employee in _active_employees_with_user():
        if employee.probation_end_date is None:
            continue
        days_remaining = (employee.probation_end_date - today).days
        if days_remaining in PROBATION_WARNING_DAYS:
            notify_user(
                employee.user_id, 'PROBATION_ENDING', '수습 종료 임박',
                f'수습 기간이 {days_remaining}일 후 종료됩니다. 평가 준비를 해주세요.',
                'Employee', employee.id, f'/admin/employees/{employee.id}',
            )
            notified += 1
    logger.info("수습 종료 경고 발송 완료 (%d명)", notified)
    return notified


def check_annual_leave_low(today=None):
    """잔여 연차 3일 이하 경고 (월 1회 실행)"""
    today = today or date.today()
    notified = 0
    for employee in _active_employees_with_user():
        records = [r for r in employee.leave_records if r.status in COUNTED_STATUSES]
        summary = get_annual_leave_summary(employee.join_date, records, today)
        if summary['remaining'] <= ANNUAL_LEAVE_LOW_THRESHOLD:
            notify_user(
                employee.user_id, 'ANNUAL_LEAVE_LOW', '연차 부족 알림',
                f"잔여 연차가 {summary['remaining']:g}일 남았습니다. 연차를 계획적으로 사용하세요.",
                'Employee', employee.id, '/employee/leaves',
            )
            notified += 1
    logger.info("연차 부족 경고 발송 완료 (%d명)", notified)
    return notified


def run_daily_checks(today=None):
    """cron 진입점. 연차 부족 경고는 매월 1일에만 실행되며 그 외에는 None"""
    today = today or date.today()
    return {
        'contract_expiring': check_contract_expiring(today),
        'probation_ending': check_probation_ending(today),
        'annual_leave_low': check_annual_leave_low(today) if today.day == ANNUAL_LEAVE_CHECK_DAY else None,
    }
