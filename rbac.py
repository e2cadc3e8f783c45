"""역할 기반 접근 제어 (admin: 전체, manager: 소속 부서, viewer: 본인)"""
from functools import wraps

from flask import jsonify
from flask_login import current_user

from exceptions import PermissionDeniedError
from models import Employee, Role

SCOPE_ALL = 'all'
SCOPE_DEPARTMENT = 'department'
SCOPE_SELF = 'self'


def get_scope(user):
    if user.role == Role.ADMIN:
        return SCOPE_ALL
    if user.role == Role.MANAGER:
        return SCOPE_DEPARTMENT
    return SCOPE_SELF


def employee_query_for(user, query=None):
    """사용자 권한 범위로 제한된 직원 쿼리"""
    if query is None:
        query = Employee.query

    scope = get_scope(user)
    if scope == SCOPE_ALL:
        return query
    if scope == SCOPE_DEPARTMENT:
        # 부서 정보가 없는 부서장은 아무것도 볼 수 없음
        return query.filter(Employee.department_id == user.department_id,
                            Employee.department_id.isnot(None))
    return query.filter(Employee.user_id == user.id)


def can_access_employee(user, employee):
    scope = get_scope(user)
    if scope == SCOPE_ALL:
        return True
    if scope == SCOPE_DEPARTMENT:
        return employee.department_id is not None and employee.department_id == user.department_id
    return employee.user_id == user.id


def require_roles(user, *roles, message='권한이 없습니다.'):
    if user is None or user.role not in roles:
        raise PermissionDeniedError(message)


def require_employee_access(user, employee):
    if not can_access_employee(user, employee):
        raise PermissionDeniedError('해당 직원 정보에 접근할 권한이 없습니다.')


def require_payroll_access(user, record):
    """급여 정보는 관리자 또는 본인만 조회 가능"""
    if user.role == Role.ADMIN:
        return
    if record.employee is not None and record.employee.user_id == user.id:
        return
    raise PermissionDeniedError('급여 정보는 관리자 또는 본인만 조회할 수 있습니다.')


def roles_required(*roles):
    """라우트 권한 확인용 데코레이터"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated or current_user.role not in roles:
                return jsonify({'success': False, 'error': '권한이 없습니다.'}), 403
            return f(*args, **kwargs)
        return decorated_function
    return decorator


admin_required = roles_required(Role.ADMIN)
