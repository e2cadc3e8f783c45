import logging
from datetime import date, datetime

from app import db
from attendance import summarize_day, calculate_monthly_stats, format_minutes_to_hours
from constants import DEFAULT_BREAK_MINUTES
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, PermissionDeniedError
from models import AttendanceRecord, Employee, Role
from notifications import notify_attendance_confirmed
from rbac import require_roles, require_employee_access
from utils import parse_date, add_months

logger = logging.getLogger(__name__)


def record_attendance(actor, employee_id, day, clock_in, clock_out,
                      break_minutes=DEFAULT_BREAK_MINUTES, is_holiday=False):
    """출퇴근 기록 등록/수정 (직원+날짜 기준)"""
    require_roles(actor, Role.ADMIN, Role.MANAGER, message='근태 기록 권한이 없습니다.')
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    require_employee_access(actor, employee)

    work_date = parse_date(day)
    if work_date is None:
        raise InvalidInputError('근무일을 입력하세요.')
    if break_minutes is None:
        break_minutes = DEFAULT_BREAK_MINUTES
    if break_minutes < 0:
        raise InvalidInputError('휴게시간은 0분 이상이어야 합니다.')

    try:
        summary = summarize_day(clock_in, clock_out, break_minutes)
    except ValueError:
        raise InvalidInputError('출퇴근 시각 형식이 올바르지 않습니다 (HH:MM).')

    record = AttendanceRecord.query.filter_by(employee_id=employee.id, date=work_date).first()
    if record is None:
        record = AttendanceRecord(employee_id=employee.id, date=work_date)
        db.session.add(record)
    elif record.is_confirmed:
        raise InvalidStateError('확정된 근태 기록은 수정할 수 없습니다.')

    record.clock_in = clock_in
    record.clock_out = clock_out
    record.break_minutes = break_minutes
    record.work_minutes = summary['work_minutes']
    record.overtime_minutes = summary['overtime_minutes']
    record.night_minutes = summary['night_minutes']
    record.is_holiday = bool(is_holiday)

    db.session.commit()
    return record


def confirm_attendance(actor, record_ids):
    """근태 확정 (관리자). 반환값: 확정된 건수"""
    require_roles(actor, Role.ADMIN, message='근태 확정 권한이 없습니다.')
    if not record_ids:
        raise InvalidInputError('확정할 근태 기록을 선택해주세요.')

    records = AttendanceRecord.query.filter(
        AttendanceRecord.id.in_(record_ids),
        AttendanceRecord.is_confirmed.is_(False)
    ).all()

    now = datetime.now()
    for record in records:
        record.is_confirmed = True
        record.confirmed_at = now
        record.confirmed_by = actor.id
    db.session.commit()
    logger.info("근태 확정: %d건 by %s", len(records), actor.username)

    for record in records:
        notify_attendance_confirmed(record.id)
    return len(records)


def _get_record(record_id):
    record = db.session.get(AttendanceRecord, record_id)
    if record is None:
        raise NotFoundError('해당 기록을 찾을 수 없습니다.')
    return record


def unconfirm_attendance(actor, record_id):
    """근태 확정 해제 (부서장은 소속 부서만)"""
    require_roles(actor, Role.ADMIN, Role.MANAGER, message='근태 확정 해제 권한이 없습니다.')
    record = _get_record(record_id)
    require_employee_access(actor, record.employee)

    record.is_confirmed = False
    record.confirmed_at = None
    record.confirmed_by = None
    db.session.commit()
    logger.info("근태 확정 해제: #%d by %s", record.id, actor.username)
    return record


def delete_attendance(actor, record_id):
    """출퇴근 기록 삭제 (관리자 또는 본인/소속 부서, 미확정 기록만)"""
    record = _get_record(record_id)
    if actor.role != Role.ADMIN:
        if actor.role == Role.MANAGER:
            require_employee_access(actor, record.employee)
        elif record.employee.user_id != actor.id:
            raise PermissionDeniedError('본인 기록만 삭제할 수 있습니다.')

    if record.is_confirmed:
        raise InvalidStateError('확정된 기록은 삭제할 수 없습니다. 관리자에게 문의하세요.')

    db.session.delete(record)
    db.session.commit()


def get_monthly_attendance(actor, employee_id, year, month):
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    require_employee_access(actor, employee)

    records = monthly_records(employee.id, year, month)
    stats = calculate_monthly_stats(records)
    stats['total_work_hours'] = format_minutes_to_hours(stats['total_work_minutes'])
    return records, stats


def monthly_records(employee_id, year, month, confirmed_only=False):
    start = date(year, month, 1)
    end = add_months(start, 1)
    query = AttendanceRecord.query.filter(
        AttendanceRecord.employee_id == employee_id,
        AttendanceRecord.date >= start,
        AttendanceRecord.date < end
    )
    if confirmed_only:
        query = query.filter(AttendanceRecord.is_confirmed.is_(True))
    return query.order_by(AttendanceRecord.date).all()


def attendance_to_dict(record):
    return {
        'id': record.id,
        'employee_id': record.employee_id,
        'date': record.date.isoformat(),
        'clock_in': record.clock_in,
        'clock_out': record.clock_out,
        'break_minutes': record.break_minutes,
        'work_minutes': record.work_minutes,
        'overtime_minutes': record.overtime_minutes,
        'night_minutes': record.night_minutes,
        'is_holiday': record.is_holiday,
        'is_confirmed': record.is_confirmed,
    }
