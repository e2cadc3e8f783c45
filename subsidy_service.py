import json
import logging
from datetime import date, datetime

from app import db
from constants import SUBSIDY_TYPES, SUBSIDY_STATUS, YOUTH_AGE_LIMIT
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, DuplicateError, PermissionDeniedError
from models import Employee, EmployeeStatus, SubsidyApplication, SubsidyStatus, Role
from notifications import notify_subsidy_approved
from rbac import require_roles, can_access_employee, employee_query_for
from subsidy_calculator import check_subsidy, calculate_age
from utils import parse_date, parse_int, parse_float

logger = logging.getLogger(__name__)


def _get_subsidy(subsidy_id):
    subsidy = db.session.get(SubsidyApplication, subsidy_id)
    if subsidy is None:
        raise NotFoundError('지원금 신청을 찾을 수 없습니다.')
    return subsidy


def _get_employee(actor, employee_id):
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    if not can_access_employee(actor, employee):
        raise PermissionDeniedError('해당 직원의 지원금을 신청할 권한이 없습니다.')
    return employee


def count_employees_under_30(on=None):
    on = on or date.today()
    employees = Employee.query.filter(Employee.status != EmployeeStatus.RESIGNED).all()
    return sum(1 for e in employees if e.birth_date and calculate_age(e.birth_date, on) < YOUTH_AGE_LIMIT)


def resolve_inputs(subsidy_type, data):
    """지원금 유형별 판정 입력값 준비. 반환값: (판정 입력, 저장용 입력)"""
    if subsidy_type == 'FLEXIBLE_WORK':
        usage_count = parse_int(data.get('usage_count'), '유연근무 사용 횟수가 올바르지 않습니다.') or 0
        return {'usage_count': usage_count}, {'usage_count': usage_count}

    if subsidy_type == 'REPLACEMENT_WORKER':
        replacement_id = parse_int(data.get('replacement_employee_id'), '대체인력 직원 ID가 올바르지 않습니다.')
        if not replacement_id:
            raise InvalidInputError('대체인력 직원을 선택해주세요.')
        replacement = db.session.get(Employee, replacement_id)
        if replacement is None:
            raise NotFoundError('대체인력 직원을 찾을 수 없습니다.')
        start = parse_date(data.get('replacement_start_date')) or replacement.join_date
        return (
            {'replacement': replacement, 'replacement_start_date': start},
            {'replacement_employee_id': replacement.id, 'replacement_start_date': start.isoformat()},
        )

    if subsidy_type == 'PARENTAL_LEAVE_GRANT':
        child_birth_date = parse_date(data.get('child_birth_date'))
        if child_birth_date is None:
            raise InvalidInputError('자녀 출생일을 입력해주세요.')
        return {'child_birth_date': child_birth_date}, {'child_birth_date': child_birth_date.isoformat()}

    if subsidy_type == 'WORK_SHARING':
        weekly_hours = parse_float(data.get('weekly_hours'), '주당 근로시간이 올바르지 않습니다.')
        return {'weekly_hours': weekly_hours}, {'weekly_hours': weekly_hours}

    if subsidy_type == 'INFRA_SUPPORT':
        under_30 = count_employees_under_30()
        return {'employees_under_30': under_30}, {}

    raise InvalidInputError('유효하지 않은 지원금 유형입니다.')


def _period(data):
    year = parse_int(data.get('year'), '신청 연월을 입력하세요.')
    month = parse_int(data.get('month'), '신청 연월을 입력하세요.')
    if year is None or month is None:
        raise InvalidInputError('신청 연월을 입력하세요.')
    if not 1 <= month <= 12:
        raise InvalidInputError('신청 연월이 올바르지 않습니다.')
    return year, month


def check_eligibility(actor, data):
    """자격 판정만 수행 (저장하지 않음)"""
    require_roles(actor, Role.ADMIN, Role.MANAGER, message='지원금 조회 권한이 없습니다.')
    subsidy_type = data.get('type')
    if subsidy_type not in SUBSIDY_TYPES:
        raise InvalidInputError('유효하지 않은 지원금 유형입니다.')
    employee = _get_employee(actor, data.get('employee_id'))
    year, month = _period(data)
    inputs, _ = resolve_inputs(subsidy_type, data)
    return check_subsidy(subsidy_type, employee, year, month, **inputs)


def _evaluate(subsidy_type, employee, year, month, data):
    inputs, stored = resolve_inputs(subsidy_type, data)
    result = check_subsidy(subsidy_type, employee, year, month, **inputs)
    if not result.eligible:
        raise InvalidInputError(f'지원 요건을 충족하지 않습니다: {result.reason}')
    details = dict(result.details)
    details['inputs'] = stored
    return result, details


def create_subsidy_application(actor, data):
    require_roles(actor, Role.ADMIN, Role.MANAGER, message='지원금 신청 권한이 없습니다.')
    subsidy_type = data.get('type')
    if subsidy_type not in SUBSIDY_TYPES:
        raise InvalidInputError('유효하지 않은 지원금 유형입니다.')
    employee = _get_employee(actor, data.get('employee_id'))
    year, month = _period(data)

    existing = SubsidyApplication.query.filter_by(
        employee_id=employee.id, type=subsidy_type, year=year, month=month
    ).first()
    if existing:
        raise DuplicateError(f'{year}년 {month}월 {SUBSIDY_TYPES[subsidy_type]}이(가) 이미 신청되어 있습니다.')

    result, details = _evaluate(subsidy_type, employee, year, month, data)

    subsidy = SubsidyApplication(
        employee_id=employee.id,
        type=subsidy_type,
        year=year,
        month=month,
        status=SubsidyStatus.PENDING,
        calculated_amount=result.calculated_amount,
        requested_amount=result.calculated_amount,
        details=json.dumps(details, ensure_ascii=False),
        submitted_by=actor.id,
    )
    db.session.add(subsidy)
    db.session.commit()
    logger.info("지원금 신청: %s %s %d-%02d %d원", employee.name, subsidy_type, year, month,
                subsidy.requested_amount)
    return subsidy


def _require_editable(actor, subsidy, action):
    if subsidy.status != SubsidyStatus.PENDING:
        raise InvalidStateError(f'대기 중인 신청만 {action}할 수 있습니다.')
    if actor.role != Role.ADMIN and subsidy.submitted_by != actor.id:
        raise PermissionDeniedError(f'본인이 신청한 건만 {action}할 수 있습니다.')


def update_subsidy_application(actor, subsidy_id, data):
    subsidy = _get_subsidy(subsidy_id)
    _require_editable(actor, subsidy, '수정')

    merged = dict(subsidy.get_details().get('inputs', {}))
    merged.update(data)
    year, month = _period({'year': data.get('year', subsidy.year), 'month': data.get('month', subsidy.month)})

    if (year, month) != (subsidy.year, subsidy.month):
        duplicate = SubsidyApplication.query.filter(
            SubsidyApplication.employee_id == subsidy.employee_id,
            SubsidyApplication.type == subsidy.type,
            SubsidyApplication.year == year,
            SubsidyApplication.month == month,
            SubsidyApplication.id != subsidy.id,
        ).first()
        if duplicate:
            raise DuplicateError('해당 연월에 같은 지원금이 이미 신청되어 있습니다.')

    result, details = _evaluate(subsidy.type, subsidy.employee, year, month, merged)
    subsidy.year = year
    subsidy.month = month
    subsidy.calculated_amount = result.calculated_amount
    subsidy.requested_amount = result.calculated_amount
    subsidy.details = json.dumps(details, ensure_ascii=False)
    db.session.commit()
    return subsidy


def delete_subsidy_application(actor, subsidy_id):
    subsidy = _get_subsidy(subsidy_id)
    _require_editable(actor, subsidy, '삭제')
    db.session.delete(subsidy)
    db.session.commit()


def _require_processor(actor, subsidy, action):
    require_roles(actor, Role.ADMIN, Role.MANAGER, message=f'지원금 {action} 권한이 없습니다.')
    if not can_access_employee(actor, subsidy.employee):
        raise PermissionDeniedError(f'다른 부서 직원의 지원금은 {action}할 수 없습니다.')
    if subsidy.status != SubsidyStatus.PENDING:
        raise InvalidStateError(f'대기 중인 신청만 {action}할 수 있습니다.')


def approve_subsidy(actor, subsidy_id, approved_amount=None):
    subsidy = _get_subsidy(subsidy_id)
    _require_processor(actor, subsidy, '승인')

    approved_amount = parse_int(approved_amount, '승인 금액이 올바르지 않습니다.')
    if approved_amount is not None and approved_amount < 0:
        raise InvalidInputError('승인 금액은 0원 이상이어야 합니다.')
    subsidy.approved_amount = approved_amount if approved_amount is not None else subsidy.requested_amount
    subsidy.status = SubsidyStatus.APPROVED
    subsidy.processed_by = actor.id
    subsidy.processed_at = datetime.now()
    db.session.commit()
    logger.info("지원금 승인: #%d %d원 by %s", subsidy.id, subsidy.approved_amount, actor.username)

    notify_subsidy_approved(subsidy.id)
    return subsidy


def reject_subsidy(actor, subsidy_id, reason):
    subsidy = _get_subsidy(subsidy_id)
    _require_processor(actor, subsidy, '반려')

    reason = (reason or '').strip()
    if not reason:
        raise InvalidInputError('반려 사유를 입력하세요.')

    subsidy.status = SubsidyStatus.REJECTED
    subsidy.reject_reason = reason
    subsidy.processed_by = actor.id
    subsidy.processed_at = datetime.now()
    db.session.commit()
    return subsidy


def mark_subsidy_paid(actor, subsidy_id):
    """지급 완료 처리 (관리자, 승인된 신청만)"""
    require_roles(actor, Role.ADMIN, message='지급 처리는 관리자만 할 수 있습니다.')
    subsidy = _get_subsidy(subsidy_id)
    if subsidy.status != SubsidyStatus.APPROVED:
        raise InvalidStateError('승인된 신청만 지급 처리할 수 있습니다.')

    subsidy.status = SubsidyStatus.PAID
    subsidy.paid_by = actor.id
    subsidy.paid_at = datetime.now()
    db.session.commit()
    logger.info("지원금 지급 완료: #%d %d원", subsidy.id, subsidy.approved_amount)
    return subsidy


def list_subsidies(actor, status=None, year=None):
    employee_ids = [e.id for e in employee_query_for(actor).all()]
    query = SubsidyApplication.query.filter(SubsidyApplication.employee_id.in_(employee_ids))
    if status:
        query = query.filter(SubsidyApplication.status == status)
    if year:
        query = query.filter(SubsidyApplication.year == year)
    return query.order_by(SubsidyApplication.year.desc(), SubsidyApplication.month.desc(),
                          SubsidyApplication.id.desc()).all()


def subsidy_to_dict(subsidy):
    return {
        'id': subsidy.id,
        'employee_id': subsidy.employee_id,
        'employee_name': subsidy.employee.name if subsidy.employee else None,
        'type': subsidy.type,
        'type_label': SUBSIDY_TYPES.get(subsidy.type),
        'year': subsidy.year,
        'month': subsidy.month,
        'status': subsidy.status,
        'status_label': SUBSIDY_STATUS.get(subsidy.status),
        'calculated_amount': subsidy.calculated_amount,
        'requested_amount': subsidy.requested_amount,
        'approved_amount': subsidy.approved_amount,
        'reject_reason': subsidy.reject_reason,
        'paid_at': subsidy.paid_at.isoformat() if subsidy.paid_at else None,
        'details': subsidy.get_details(),
    }
