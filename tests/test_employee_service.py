import io
from datetime import date

import pandas as pd
import pytest

from employee_service import (generate_employee_no, create_employee, update_employee, update_employee_status,
                              bulk_update_work_type, link_user_account, import_employees_from_excel,
                              get_employee_for, employee_to_dict)
from exceptions import DuplicateError, InvalidInputError, NotFoundError, PermissionDeniedError
from models import Role, Employee, EmployeeStatus


@pytest.fixture
def admin(ctx, make_user):
    return make_user('admin', Role.ADMIN)


def employee_data(**fields):
    data = {'name': '홍길동', 'email': 'hong@example.com', 'position': '대리', 'join_date': '2024-03-04',
            'base_salary': 3000000, 'meal_allowance': 200000}
    data.update(fields)
    return data


def test_generate_employee_no(admin, make_employee):
    assert generate_employee_no() == 'EMP001'
    make_employee('김철수')
    make_employee('이영희')
    assert generate_employee_no() == 'EMP003'


def test_create_employee(admin):
    employee = create_employee(admin, employee_data())

    assert employee.employee_no == 'EMP001'
    assert employee.status == EmployeeStatus.ACTIVE
    assert employee.join_date == date(2024, 3, 4)
    assert employee.base_salary == 3000000


def test_create_employee_validation(admin, make_user):
    viewer = make_user('viewer')
    with pytest.raises(PermissionDeniedError):
        create_employee(viewer, employee_data())
    with pytest.raises(InvalidInputError):
        create_employee(admin, employee_data(name='홍'))
    with pytest.raises(InvalidInputError):
        create_employee(admin, employee_data(position='인턴'))
    with pytest.raises(InvalidInputError):
        create_employee(admin, employee_data(base_salary=None))
    with pytest.raises(NotFoundError):
        create_employee(admin, employee_data(department_id=99))
    with pytest.raises(InvalidInputError, match='최저임금 미달'):
        create_employee(admin, employee_data(base_salary=1500000, meal_allowance=0))

    create_employee(admin, employee_data())
    with pytest.raises(DuplicateError):
        create_employee(admin, employee_data(name='홍길순'))


def test_update_employee(admin):
    employee = create_employee(admin, employee_data())
    update_employee(admin, employee.id, {'position': '과장', 'base_salary': '3500000', 'user_id': 7})

    assert employee.position == '과장'
    assert employee.base_salary == 3500000
    assert employee.user_id is None


def test_resign_and_reinstate(admin):
    employee = create_employee(admin, employee_data())

    with pytest.raises(InvalidInputError):
        update_employee_status(admin, employee.id, EmployeeStatus.RESIGNED)
    with pytest.raises(InvalidInputError):
        update_employee_status(admin, employee.id, EmployeeStatus.RESIGNED, '2024-01-01')

    update_employee_status(admin, employee.id, EmployeeStatus.RESIGNED, '2026-02-28')
    assert employee.resign_date == date(2026, 2, 28)

    update_employee_status(admin, employee.id, EmployeeStatus.ACTIVE)
    assert employee.resign_date is None
    assert employee_to_dict(employee)['status_label'] == '재직'


def test_bulk_update_work_type(admin, make_employee):
    first = make_employee('김철수')
    second = make_employee('이영희')

    assert bulk_update_work_type(admin, [first.id, second.id], 'REMOTE') == 2
    assert {e.work_type for e in Employee.query.all()} == {'REMOTE'}
    with pytest.raises(InvalidInputError):
        bulk_update_work_type(admin, [first.id], 'UNKNOWN')


def test_link_user_account(admin, make_user, make_employee):
    user = make_user('kim')
    first = make_employee('김철수')
    second = make_employee('이영희')

    link_user_account(admin, first.id, user.id)
    assert user.employee is first
    with pytest.raises(DuplicateError):
        link_user_account(admin, second.id, user.id)


def test_employee_access_scope(admin, make_user, make_department, make_employee):
    manager = make_user('manager', Role.MANAGER)
    dev = make_department('개발팀')
    sales = make_department('영업팀')
    make_employee('김부장', department=dev, user=manager)
    colleague = make_employee('이사원', department=dev)
    outsider = make_employee('박대리', department=sales)

    assert get_employee_for(manager, colleague.id) is colleague
    with pytest.raises(PermissionDeniedError):
        get_employee_for(manager, outsider.id)


def excel_file(rows):
    buffer = io.BytesIO()
    pd.DataFrame(rows).to_excel(buffer, index=False, engine='openpyxl')
    buffer.seek(0)
    return buffer


def test_import_employees_from_excel(admin, make_department):
    make_department('개발팀')
    file = excel_file([
        {'이름': '김철수', '부서': '개발팀', '직급': '사원', '입사일': '2025-01-02', '기본급': 3000000},
        {'이름': '이영희', '부서': '없는팀', '직급': '대리', '입사일': '2025-01-02', '기본급': 3200000},
        {'이름': '박민수', '부서': '개발팀', '직급': '사원', '입사일': '2025-01-02', '기본급': 1500000},
    ])

    created, errors = import_employees_from_excel(admin, file)

    assert created == 1
    assert len(errors) == 2
    assert errors[0].startswith('행 3:')
    assert '최저임금 미달' in errors[1]
    assert Employee.query.one().department_name == '개발팀'



def test_import_reports_malformed_cells_per_row(admin, make_department):
    make_department('개발팀')
    file = excel_file([
        {'이름': '김철수', '부서': '개발팀', '직급': '사원', '입사일': '2025-01-02', '기본급': 3000000},
        {'이름': '이영희', '부서': '개발팀', '직급': '대리', '입사일': '2025-01-02', '기본급': '삼백만원'},
        {'이름': '박민수', '부서': '개발팀', '직급': '사원', '입사일': '내일', '기본급': 3000000},
        {'이름': '최지우', '부서': '개발팀', '직급': '사원', '입사일': '2025-02-03', '기본급': 3100000},
    ])

    created, errors = import_employees_from_excel(admin, file)

    assert created == 2
    assert len(errors) == 2
    assert errors[0].startswith('행 3:') and '기본급' in errors[0]
    assert errors[1].startswith('행 4:') and '입사일' in errors[1]
    assert sorted(e.name for e in Employee.query.all()) == ['김철수', '최지우']


def test_non_numeric_fields_are_rejected(admin):
    with pytest.raises(InvalidInputError, match='기본급'):
        create_employee(admin, employee_data(base_salary='abc'))
    with pytest.raises(InvalidInputError):
        create_employee(admin, employee_data(dependents=[1]))
    with pytest.raises(InvalidInputError):
        create_employee(admin, employee_data(weekly_work_hours='마흔'))
    assert create_employee(admin, employee_data(base_salary='3,000,000')).base_salary == 3000000


def test_import_requires_columns(admin):
    file = excel_file([{'이름': '김철수', '부서': '개발팀'}])
    with pytest.raises(InvalidInputError, match='누락'):
        import_employees_from_excel(admin, file)
