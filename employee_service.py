import logging
import re

import pandas as pd

from app import db
from constants import POSITIONS, EMPLOYEE_STATUS, CONTRACT_TYPES, WORK_TYPES, SALARY_TYPES
from exceptions import InvalidInputError, NotFoundError, DuplicateError
from models import Employee, EmployeeStatus, Department, Role, User
from rbac import require_roles, require_employee_access
from salary import validate_minimum_wage
from utils import parse_date, parse_int, parse_float, format_tenure

logger = logging.getLogger(__name__)

DATE_FIELDS = ('birth_date', 'join_date', 'resign_date', 'contract_end_date', 'probation_end_date')
INT_FIELDS = ('base_salary', 'meal_allowance', 'transport_allowance', 'position_allowance',
              'fixed_ot_amount', 'fixed_night_amount', 'fixed_holiday_amount',
              'dependents', 'children_under_20', 'department_id', 'user_id')
BOOL_FIELDS = ('tax_free_meal', 'tax_free_transport', 'use_fixed_ot',
               'national_pension', 'health_insurance', 'employment_insurance')
TEXT_FIELDS = ('name', 'email', 'phone', 'address', 'position', 'contract_type',
               'work_type', 'salary_type', 'work_start_time', 'work_end_time')
FLOAT_FIELDS = ('weekly_work_hours',)

# 엑셀 업로드 열 -> 필드
EXCEL_COLUMNS = {
    '이름': 'name',
    '이메일': 'email',
    '전화번호': 'phone',
    '부서': 'department',
    '직급': 'position',
    '입사일': 'join_date',
    '생년월일': 'birth_date',
    '계약유형': 'contract_type',
    '근무형태': 'work_type',
    '기본급': 'base_salary',
    '식대': 'meal_allowance',
    '교통비': 'transport_allowance',
    '직책수당': 'position_allowance',
    '부양가족수': 'dependents',
    '자녀수': 'children_under_20',
}
REQUIRED_EXCEL_COLUMNS = ['이름', '부서', '직급', '입사일', '기본급']
FIELD_LABELS = {field_name: column for column, field_name in EXCEL_COLUMNS.items()}
FIELD_LABELS.update({'weekly_work_hours': '주당 근로시간', 'fixed_ot_amount': '고정OT',
                     'fixed_night_amount': '고정야간수당', 'fixed_holiday_amount': '고정휴일수당',
                     'department_id': '부서', 'user_id': '사용자'})


def generate_employee_no():
    """사번 자동 생성 (EMP + 3자리 일련번호)"""
    numbers = [0]
    for (employee_no,) in db.session.query(Employee.employee_no).all():
        match = re.fullmatch(r'EMP(\d+)', employee_no or '')
        if match:
            numbers.append(int(match.group(1)))
    return f'EMP{max(numbers) + 1:03d}'


def _to_bool(value):
    if isinstance(value, str):
        return value.strip().lower() in ('1', 'true', 'y', 'yes', 'on')
    return bool(value)


def _clean(data):
    """허용된 필드만 골라 타입 변환"""
    cleaned = {}
    for key, value in data.items():
        if key in DATE_FIELDS:
            cleaned[key] = parse_date(value)
        elif key in INT_FIELDS:
            cleaned[key] = parse_int(value, f'{FIELD_LABELS.get(key, key)} 값이 올바르지 않습니다.')
        elif key in FLOAT_FIELDS:
            cleaned[key] = parse_float(value, f'{FIELD_LABELS.get(key, key)} 값이 올바르지 않습니다.')
        elif key in BOOL_FIELDS:
            cleaned[key] = _to_bool(value)
        elif key in TEXT_FIELDS:
            cleaned[key] = str(value).strip() if value is not None else None
    return cleaned


def _validate(fields):
    name = fields.get('name')
    if name is not None and len(name) < 2:
        raise InvalidInputError('이름은 최소 2자 이상이어야 합니다.')
    if 'position' in fields and fields['position'] not in POSITIONS:
        raise InvalidInputError(f"유효하지 않은 직급입니다: {fields['position']}")
    if fields.get('contract_type') and fields['contract_type'] not in CONTRACT_TYPES:
        raise InvalidInputError('유효하지 않은 계약 유형입니다.')
    if fields.get('work_type') and fields['work_type'] not in WORK_TYPES:
        raise InvalidInputError('유효하지 않은 근무 형태입니다.')
    if fields.get('salary_type') and fields['salary_type'] not in SALARY_TYPES:
        raise InvalidInputError('유효하지 않은 급여 형태입니다.')
    for key in ('base_salary', 'meal_allowance', 'transport_allowance', 'position_allowance'):
        if fields.get(key) is not None and fields[key] < 0:
            raise InvalidInputError('급여 항목은 0 이상이어야 합니다.')
    if fields.get('department_id') and db.session.get(Department, fields['department_id']) is None:
        raise NotFoundError('부서를 찾을 수 없습니다.')


def _check_email(email, exclude_id=None):
    if not email:
        return
    query = Employee.query.filter(Employee.email == email)
    if exclude_id is not None:
        query = query.filter(Employee.id != exclude_id)
    if query.first():
        raise DuplicateError('이미 등록된 이메일입니다.')


def _check_minimum_wage(employee):
    is_valid, _, message = validate_minimum_wage(employee)
    if not is_valid:
        raise InvalidInputError(message)


def get_employee(employee_id):
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')
    return employee


def get_employee_for(actor, employee_id):
    employee = get_employee(employee_id)
    require_employee_access(actor, employee)
    return employee


def create_employee(actor, data):
    require_roles(actor, Role.ADMIN, message='직원 등록 권한이 없습니다.')

    fields = _clean(data)
    if not fields.get('name'):
        raise InvalidInputError('이름을 입력하세요.')
    if not fields.get('join_date'):
        raise InvalidInputError('입사일을 입력하세요.')
    if fields.get('base_salary') is None:
        raise InvalidInputError('기본급을 입력하세요.')
    fields.setdefault('position', '사원')
    _validate(fields)
    _check_email(fields.get('email'))

    employee = Employee(employee_no=generate_employee_no(), status=EmployeeStatus.ACTIVE)
    for key, value in fields.items():
        if value is not None:
            setattr(employee, key, value)

    _check_minimum_wage(employee)

    db.session.add(employee)
    db.session.commit()
    logger.info("직원 등록: %s %s", employee.employee_no, employee.name)
    return employee


def update_employee(actor, employee_id, data):
    require_roles(actor, Role.ADMIN, message='직원 정보 수정 권한이 없습니다.')
    employee = get_employee(employee_id)

    fields = _clean(data)
    fields.pop('user_id', None)
    _validate(fields)
    _check_email(fields.get('email'), exclude_id=employee.id)

    for key, value in fields.items():
        setattr(employee, key, value)

    _check_minimum_wage(employee)
    db.session.commit()
    return employee


def update_employee_status(actor, employee_id, status, resign_date=None):
    require_roles(actor, Role.ADMIN, message='직원 상태 변경 권한이 없습니다.')
    if status not in EMPLOYEE_STATUS:
        raise InvalidInputError('유효하지 않은 직원 상태입니다.')

    employee = get_employee(employee_id)
    resign_date = parse_date(resign_date)

    if status == EmployeeStatus.RESIGNED:
        if resign_date is None:
            raise InvalidInputError('퇴사 처리 시 퇴사일을 입력해야 합니다.')
        if resign_date < employee.join_date:
            raise InvalidInputError('퇴사일은 입사일 이후여야 합니다.')
        employee.resign_date = resign_date
    elif status == EmployeeStatus.ACTIVE:
        # 복직 시 휴직 정보 초기화
        employee.leave_type = None
        employee.leave_start_date = None
        employee.leave_end_date = None
        employee.resign_date = None

    employee.status = status
    db.session.commit()
    logger.info("직원 상태 변경: %s -> %s", employee.employee_no, status)
    return employee


def bulk_update_work_type(actor, employee_ids, work_type):
    require_roles(actor, Role.ADMIN, message='근무 형태 변경 권한이 없습니다.')
    if work_type not in WORK_TYPES:
        raise InvalidInputError('유효하지 않은 근무 형태입니다.')
    if not employee_ids:
        raise InvalidInputError('직원을 선택해주세요.')

    updated = Employee.query.filter(Employee.id.in_(employee_ids)).update(
        {'work_type': work_type}, synchronize_session='fetch'
    )
    db.session.commit()
    return updated


def link_user_account(actor, employee_id, user_id):
    """직원과 로그인 계정 연결"""
    require_roles(actor, Role.ADMIN)
    employee = get_employee(employee_id)
    user = db.session.get(User, user_id)
    if user is None:
        raise NotFoundError('사용자를 찾을 수 없습니다.')
    if user.employee is not None and user.employee.id != employee.id:
        raise DuplicateError('이미 다른 직원과 연결된 계정입니다.')
    employee.user_id = user.id
    db.session.commit()
    return employee


def _excel_row_data(columns, row):
    """엑셀 한 행 -> 직원 입력값 (셀 형식 오류는 InvalidInputError)"""
    data = {}
    for column, field_name in EXCEL_COLUMNS.items():
        if column not in columns or not pd.notna(row[column]):
            continue
        value = row[column]
        if field_name in ('join_date', 'birth_date'):
            try:
                value = pd.to_datetime(value).date()
            except (ValueError, TypeError, OverflowError):
                raise InvalidInputError(f'{column} 날짜 형식이 올바르지 않습니다 ({value}).')
        elif field_name in INT_FIELDS:
            value = parse_int(value, f'{column} 값은 숫자여야 합니다 ({value}).')
        else:
            value = str(value).strip()
        data[field_name] = value
    return data


def import_employees_from_excel(actor, file):
    """엑셀 파일로 직원 일괄 등록. 반환값: (등록 건수, 오류 메시지 목록)"""
    require_roles(actor, Role.ADMIN, message='직원 등록 권한이 없습니다.')

    try:
        df = pd.read_excel(file, engine='openpyxl')
    except (ValueError, OSError) as e:
        raise InvalidInputError(f'엑셀 파일을 읽을 수 없습니다: {e}')

    missing_columns = [col for col in REQUIRED_EXCEL_COLUMNS if col not in df.columns]
    if missing_columns:
        raise InvalidInputError(f'엑셀 파일에 다음 열이 누락되었습니다: {", ".join(missing_columns)}')

    departments = {d.name: d.id for d in Department.query.all()}
    created = 0
    errors = []

    for idx, row in df.iterrows():
        row_no = idx + 2  # 헤더 행 포함
        try:
            data = _excel_row_data(df.columns, row)
            department_name = data.pop('department', None)
            if department_name not in departments:
                raise InvalidInputError(f'존재하지 않는 부서입니다 ({department_name}).')
            data['department_id'] = departments[department_name]
            create_employee(actor, data)
            created += 1
        except (InvalidInputError, NotFoundError, DuplicateError) as e:
            db.session.rollback()
            errors.append(f'행 {row_no}: {e.message}')

    logger.info("직원 일괄 등록: 성공 %d건, 실패 %d건", created, len(errors))
    return created, errors


def employee_to_dict(employee, include_salary=False):
    data = {
        'id': employee.id,
        'employee_no': employee.employee_no,
        'name': employee.name,
        'email': employee.email,
        'phone': employee.phone,
        'department_id': employee.department_id,
        'department': employee.department_name,
        'position': employee.position,
        'join_date': employee.join_date.isoformat() if employee.join_date else None,
        'resign_date': employee.resign_date.isoformat() if employee.resign_date else None,
        'tenure': format_tenure(employee.join_date, employee.resign_date) if employee.join_date else None,
        'status': employee.status,
        'status_label': EMPLOYEE_STATUS.get(employee.status),
        'contract_type': employee.contract_type,
        'work_type': employee.work_type,
        'leave_type': employee.leave_type,
    }
    if include_salary:
        data.update({
            'salary_type': employee.salary_type,
            'base_salary': employee.base_salary,
            'meal_allowance': employee.meal_allowance,
            'transport_allowance': employee.transport_allowance,
            'position_allowance': employee.position_allowance,
            'use_fixed_ot': employee.use_fixed_ot,
            'dependents': employee.dependents,
            'children_under_20': employee.children_under_20,
        })
    return data
