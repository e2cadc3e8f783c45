import logging
from datetime import datetime

from sqlalchemy import or_

from app import db
from constants import EXPENSE_CATEGORIES, EXPENSE_STATUS, EXPENSE_MAX_AMOUNT
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, PermissionDeniedError
from models import Expense, ExpenseStatus, Employee, Role
from notifications import notify_expense_approved, notify_expense_rejected
from rbac import require_roles, can_access_employee
from utils import parse_date, parse_int

logger = logging.getLogger(__name__)


def _get_expense(expense_id):
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        raise NotFoundError('경비를 찾을 수 없습니다.')
    return expense


def create_expense(actor, data):
    """경비 신청 (로그인 사용자 누구나)"""
    title = (data.get('title') or '').strip()
    if not 2 <= len(title) <= 50:
        raise InvalidInputError('항목명은 2자 이상 50자 이하로 입력해주세요.')

    amount = parse_int(data.get('amount'), '금액을 입력해주세요.')
    if amount is None:
        raise InvalidInputError('금액을 입력해주세요.')
    if amount <= 0:
        raise InvalidInputError('금액은 0보다 커야 합니다.')
    if amount > EXPENSE_MAX_AMOUNT:
        raise InvalidInputError('금액은 1천만원 이하로 입력해주세요.')

    category = data.get('category')
    if category not in EXPENSE_CATEGORIES:
        raise InvalidInputError('카테고리를 선택해주세요.')

    expense_date = parse_date(data.get('date'))
    if expense_date is None:
        raise InvalidInputError('날짜를 선택해주세요.')

    description = (data.get('description') or '').strip()
    if len(description) > 500:
        raise InvalidInputError('상세 내역은 500자 이하로 입력해주세요.')

    expense = Expense(
        title=title,
        amount=amount,
        category=category,
        date=expense_date,
        description=description or None,
        status=ExpenseStatus.PENDING,
        submitter_id=actor.id,
        employee_id=actor.employee.id if actor.employee else None,
    )
    db.session.add(expense)
    db.session.commit()
    logger.info("경비 신청: %s %s %d원", actor.username, title, amount)
    return expense


def _require_processor(actor, expense, action):
    require_roles(actor, Role.ADMIN, Role.MANAGER, message=f'경비 {action} 권한이 없습니다.')
    if expense.status != ExpenseStatus.PENDING:
        raise InvalidStateError('이미 처리된 경비입니다.')
    if actor.role == Role.MANAGER:
        if expense.employee is None:
            raise PermissionDeniedError(f'직원이 연결되지 않은 경비는 관리자만 {action}할 수 있습니다.')
        if not can_access_employee(actor, expense.employee):
            raise PermissionDeniedError(f'다른 부서 직원의 경비는 {action}할 수 없습니다.')


def approve_expense(actor, expense_id):
    expense = _get_expense(expense_id)
    _require_processor(actor, expense, '승인')

    expense.status = ExpenseStatus.APPROVED
    expense.approver_id = actor.id
    expense.approved_at = datetime.now()
    db.session.commit()
    logger.info("경비 승인: #%d by %s", expense.id, actor.username)

    notify_expense_approved(expense.id)
    return expense


def reject_expense(actor, expense_id, reason):
    expense = _get_expense(expense_id)
    _require_processor(actor, expense, '반려')

    reason = (reason or '').strip()
    if not reason:
        raise InvalidInputError('반려 사유를 입력하세요.')

    expense.status = ExpenseStatus.REJECTED
    expense.approver_id = actor.id
    expense.reject_reason = reason
    db.session.commit()

    notify_expense_rejected(expense.id, reason)
    return expense


def list_expenses(actor, status=None):
    """관리자: 전체, 부서장: 소속 부서 + 본인 신청, 일반: 본인 신청"""
    query = Expense.query
    if actor.role == Role.MANAGER:
        conditions = [Expense.submitter_id == actor.id]
        if actor.department_id is not None:
            conditions.append(Employee.department_id == actor.department_id)
        query = query.outerjoin(Employee, Expense.employee_id == Employee.id).filter(or_(*conditions))
    elif actor.role != Role.ADMIN:
        query = query.filter(Expense.submitter_id == actor.id)
    if status:
        query = query.filter(Expense.status == status)
    return query.order_by(Expense.date.desc(), Expense.id.desc()).all()


def expense_to_dict(expense):
    return {
        'id': expense.id,
        'title': expense.title,
        'amount': expense.amount,
        'category': expense.category,
        'date': expense.date.isoformat(),
        'description': expense.description,
        'status': expense.status,
        'status_label': EXPENSE_STATUS.get(expense.status),
        'submitter_id': expense.submitter_id,
        'submitter_name': expense.submitter.name if expense.submitter else None,
        'employee_id': expense.employee_id,
        'approver_id': expense.approver_id,
        'approved_at': expense.approved_at.isoformat() if expense.approved_at else None,
        'reject_reason': expense.reject_reason,
    }
