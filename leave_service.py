import logging
from datetime import date, datetime

from app import db
from constants import LEAVE_TYPES, HALF_DAY_TYPES, STATUTORY_LEAVE_TYPES, SPOUSE_MATERNITY_LEAVE_DAYS, \
    PARENTAL_LEAVE_MAX_MONTHS
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, DuplicateError, PermissionDeniedError
from leave_calculator import (
    get_annual_leave_summary, validate_maternity_leave, validate_spouse_maternity_leave,
    validate_parental_leave, COUNTED_STATUSES,
)
from models import Employee, EmployeeStatus, LeaveRecord, LeaveStatus, Role
from notifications import notify_leave_approved, notify_leave_rejected
from rbac import require_roles, require_employee_access, can_access_employee, employee_query_for
from utils import get_leave_days_count, check_overlapping_leave, parse_date

logger = logging.getLogger(__name__)

MIN_REJECT_REASON_LENGTH = 5


def _get_leave(leave_id):
    leave = db.session.get(LeaveRecord, leave_id)
    if leave is None:
        raise NotFoundError('휴가 기록을 찾을 수 없습니다.')
    return leave


def _active_records(employee):
    return [r for r in employee.leave_records if r.status in COUNTED_STATUSES]


def _validate_by_type(employee, leave_type, start_date, end_date, days, child_birth_date, is_multiple):
    if leave_type == 'ANNUAL':
        summary = get_annual_leave_summary(employee.join_date, _active_records(employee))
        if days > summary['remaining']:
            raise InvalidInputError(
                f"연차 잔여일({summary['remaining']:g}일)이 부족합니다 (신청: {days:g}일)."
            )

    elif leave_type == 'MATERNITY':
        if child_birth_date is None:
            raise InvalidInputError('출산휴가는 자녀 출생일을 입력해야 합니다.')
        is_valid, error = validate_maternity_leave(start_date, end_date, child_birth_date, is_multiple)
        if not is_valid:
            raise InvalidInputError(error or '출산휴가 기간이 유효하지 않습니다.')

    elif leave_type == 'SPOUSE_MATERNITY':
        if child_birth_date is None:
            raise InvalidInputError('배우자 출산휴가는 자녀 출생일을 입력해야 합니다.')
        is_valid, error = validate_spouse_maternity_leave(start_date, child_birth_date)
        if not is_valid:
            raise InvalidInputError(error or '배우자 출산휴가 기간이 유효하지 않습니다.')

        # 누적 사용일수 20일 이하
        used = sum(r.days for r in _active_records(employee) if r.type == 'SPOUSE_MATERNITY')
        if used + days > SPOUSE_MATERNITY_LEAVE_DAYS:
            raise InvalidInputError(
                f'배우자 출산휴가는 최대 {SPOUSE_MATERNITY_LEAVE_DAYS}일입니다 '
                f'(현재 사용: {used:g}일, 신청: {days:g}일).'
            )

    elif leave_type == 'PARENTAL':
        if child_birth_date is None:
            raise InvalidInputError('육아휴직은 자녀 출생일을 입력해야 합니다.')
        is_valid, _ = validate_parental_leave(start_date, end_date)
        if not is_valid:
            raise InvalidInputError(f'육아휴직은 최대 {PARENTAL_LEAVE_MAX_MONTHS}개월입니다.')


def create_leave_request(actor, employee_id, data):
    """휴가 신청 (대기 상태로 생성)"""
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    if actor.role == Role.VIEWER and employee.user_id != actor.id:
        raise PermissionDeniedError('본인의 휴가만 신청할 수 있습니다.')
    require_employee_access(actor, employee)

    leave_type = data.get('type') or data.get('leave_type')
    if leave_type not in LEAVE_TYPES:
        raise InvalidInputError('유효하지 않은 휴가 유형입니다.')

    start_date = parse_date(data.get('start_date'))
    end_date = parse_date(data.get('end_date'))
    if start_date is None or end_date is None:
        raise InvalidInputError('휴가 기간을 입력하세요.')
    if start_date > end_date:
        raise InvalidInputError('시작일은 종료일보다 이전이어야 합니다.')

    half_day_type = data.get('half_day_type') or None
    if half_day_type is not None:
        if half_day_type not in HALF_DAY_TYPES:
            raise InvalidInputError('유효하지 않은 반차 유형입니다.')
        if start_date != end_date:
            raise InvalidInputError('반차는 하루만 신청할 수 있습니다.')

    overlapping = check_overlapping_leave(employee.id, start_date, end_date)
    if overlapping:
        raise DuplicateError(
            f'이미 해당 기간에 휴가가 등록되어 있습니다 '
            f'({overlapping.start_date:%Y-%m-%d} ~ {overlapping.end_date:%Y-%m-%d}).'
        )

    days = get_leave_days_count(start_date, end_date, half_day_type)
    if days <= 0:
        raise InvalidInputError('선택한 기간에 근무일이 없습니다.')

    child_birth_date = parse_date(data.get('child_birth_date'))
    is_multiple = bool(data.get('is_multiple_birth', False))
    _validate_by_type(employee, leave_type, start_date, end_date, days, child_birth_date, is_multiple)

    leave = LeaveRecord(
        employee_id=employee.id,
        type=leave_type,
        start_date=start_date,
        end_date=end_date,
        days=days,
        half_day_type=half_day_type,
        reason=data.get('reason'),
        child_birth_date=child_birth_date,
        is_multiple_birth=is_multiple,
        status=LeaveStatus.PENDING,
    )
    db.session.add(leave)
    db.session.commit()
    logger.info("휴가 신청: %s %s %s~%s (%s일)", employee.name, leave_type, start_date, end_date, days)
    return leave


def _require_leave_manager(actor, leave, message):
    require_roles(actor, Role.ADMIN, Role.MANAGER, message=message)
    if not can_access_employee(actor, leave.employee):
        raise PermissionDeniedError(message)


def approve_leave(actor, leave_id):
    leave = _get_leave(leave_id)
    _require_leave_manager(actor, leave, '휴가 승인 권한이 없습니다.')
    if leave.status != LeaveStatus.PENDING:
        raise InvalidStateError('대기 중인 신청만 승인할 수 있습니다.')

    leave.status = LeaveStatus.APPROVED
    leave.approved_by = actor.id
    leave.approved_at = datetime.now()

    # 법정 휴가 승인 시 휴직 처리
    if leave.type in STATUTORY_LEAVE_TYPES:
        employee = leave.employee
        employee.status = EmployeeStatus.ON_LEAVE
        employee.leave_type = leave.type
        employee.leave_start_date = leave.start_date
        employee.leave_end_date = leave.end_date

    db.session.commit()
    logger.info("휴가 승인: #%d by %s", leave.id, actor.username)

    notify_leave_approved(leave.id)
    return leave


def reject_leave(actor, leave_id, reason):
    leave = _get_leave(leave_id)
    _require_leave_manager(actor, leave, '휴가 반려 권한이 없습니다.')

    reason = (reason or '').strip()
    if len(reason) < MIN_REJECT_REASON_LENGTH:
        raise InvalidInputError(f'반려 사유는 최소 {MIN_REJECT_REASON_LENGTH}자 이상 입력해야 합니다.')
    if leave.status != LeaveStatus.PENDING:
        raise InvalidStateError('대기 중인 신청만 반려할 수 있습니다.')
    if leave.type in STATUTORY_LEAVE_TYPES:
        raise InvalidStateError(
            '출산휴가/육아휴직/배우자출산휴가는 법정 의무 휴가로 반려할 수 없습니다. '
            '시기 변경이 필요한 경우 직원과 협의하세요.'
        )

    leave.status = LeaveStatus.REJECTED
    leave.approved_by = actor.id
    leave.approved_at = datetime.now()
    leave.reject_reason = reason
    db.session.commit()
    logger.info("휴가 반려: #%d by %s", leave.id, actor.username)

    notify_leave_rejected(leave.id)
    return leave


def delete_leave(actor, leave_id):
    leave = _get_leave(leave_id)

    if actor.role == Role.VIEWER:
        # 본인의 대기 중 신청만 취소 가능
        if leave.employee.user_id != actor.id or leave.status != LeaveStatus.PENDING:
            raise PermissionDeniedError('휴가 삭제 권한이 없습니다.')
    else:
        _require_leave_manager(actor, leave, '휴가 삭제 권한이 없습니다.')

    if leave.status == LeaveStatus.APPROVED:
        raise InvalidStateError('승인된 휴가는 삭제할 수 없습니다. 취소 기능을 이용하세요.')

    db.session.delete(leave)
    db.session.commit()


def list_leaves(actor, status=None, employee_id=None, year=None):
    employee_ids = [e.id for e in employee_query_for(actor).all()]
    query = LeaveRecord.query.filter(LeaveRecord.employee_id.in_(employee_ids))
    if status:
        query = query.filter(LeaveRecord.status == status)
    if employee_id:
        query = query.filter(LeaveRecord.employee_id == employee_id)
    if year:
        query = query.filter(LeaveRecord.start_date >= date(year, 1, 1),
                             LeaveRecord.start_date <= date(year, 12, 31))
    return query.order_by(LeaveRecord.start_date.desc()).all()


def get_leave_summary(actor, employee_id, year=None):
    """연차 현황 (발생/사용/잔여)"""
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    require_employee_access(actor, employee)

    as_of = date.today()
    if year is not None and year != as_of.year:
        as_of = date(year, 12, 31)
    return get_annual_leave_summary(employee.join_date, _active_records(employee), as_of)


def leave_to_dict(leave):
    return {
        'id': leave.id,
        'employee_id': leave.employee_id,
        'employee_name': leave.employee.name if leave.employee else None,
        'type': leave.type,
        'type_label': LEAVE_TYPES.get(leave.type),
        'start_date': leave.start_date.isoformat(),
        'end_date': leave.end_date.isoformat(),
        'days': leave.days,
        'half_day_type': leave.half_day_type,
        'reason': leave.reason,
        'status': leave.status,
        'reject_reason': leave.reject_reason,
        'child_birth_date': leave.child_birth_date.isoformat() if leave.child_birth_date else None,
    }
