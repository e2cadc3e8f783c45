#!/usr/bin/env python3
"""개발용 초기 데이터 (계정, 부서, 직원, 공휴일, 회사 정보)"""
from datetime import date

from app import app, db, seed_initial_data
from models import CompanyInfo, Department, Employee, User, Role
from employee_service import generate_employee_no

DEPARTMENTS = ['개발팀', '디자인팀', '마케팅팀', '영업팀', '인사팀', '경영지원팀']

ACCOUNTS = [
    {'username': 'manager', 'email': 'manager@example.com', 'name': '김부장', 'role': Role.MANAGER,
     'password': 'manager1234'},
    {'username': 'viewer', 'email': 'viewer@example.com', 'name': '이사원', 'role': Role.VIEWER,
     'password': 'viewer1234'},
]

EMPLOYEES = [
    {
        'name': '김부장', 'email': 'manager@example.com', 'department': '개발팀', 'position': '부장',
        'join_date': date(2018, 3, 2), 'birth_date': date(1980, 5, 12),
        'base_salary': 5500000, 'meal_allowance': 200000, 'transport_allowance': 100000,
        'position_allowance': 300000, 'dependents': 4, 'children_under_20': 2, 'account': 'manager',
    },
    {
        'name': '이사원', 'email': 'viewer@example.com', 'department': '개발팀', 'position': '사원',
        'join_date': date(2025, 7, 1), 'birth_date': date(1999, 2, 3),
        'base_salary': 2800000, 'meal_allowance': 200000, 'probation_end_date': date(2025, 9, 30),
        'account': 'viewer',
    },
    {
        'name': '박대리', 'email': 'park@example.com', 'department': '디자인팀', 'position': '대리',
        'join_date': date(2022, 1, 10), 'birth_date': date(1994, 8, 21),
        'base_salary': 3500000, 'meal_allowance': 200000, 'work_type': 'FLEXIBLE_HOURS', 'dependents': 2,
    },
    {
        'name': '최과장', 'email': 'choi@example.com', 'department': '영업팀', 'position': '과장',
        'join_date': date(2020, 4, 1), 'birth_date': date(1988, 11, 30),
        'base_salary': 4200000, 'meal_allowance': 200000, 'position_allowance': 150000,
        'use_fixed_ot': True, 'fixed_ot_amount': 300000, 'dependents': 3, 'children_under_20': 1,
    },
    {
        'name': '정주임', 'email': 'jung@example.com', 'department': '인사팀', 'position': '주임',
        'join_date': date(2024, 3, 4), 'birth_date': date(1997, 6, 15),
        'base_salary': 3000000, 'meal_allowance': 200000, 'contract_type': 'CONTRACT',
        'contract_end_date': date(2026, 3, 3),
    },
]


def seed_all():
    """기존 데이터가 있으면 건너뜀"""
    with app.app_context():
        seed_initial_data()

        if not CompanyInfo.query.first():
            db.session.add(CompanyInfo(name='(주)샘플컴퍼니', ceo_name='홍길동',
                                       registration_number='123-45-67890',
                                       address='서울특별시 강남구 테헤란로 123',
                                       phone='02-1234-5678', payday=25))

        for index, name in enumerate(DEPARTMENTS, start=1):
            if not Department.query.filter_by(name=name).first():
                db.session.add(Department(name=name, sort_order=index))
        db.session.commit()

        users = {}
        for account in ACCOUNTS:
            user = User.query.filter_by(username=account['username']).first()
            if user is None:
                user = User(username=account['username'], email=account['email'],
                            name=account['name'], role=account['role'])
                user.set_password(account['password'])
                db.session.add(user)
                print(f"계정 생성: {account['username']} ({account['role']})")
            users[account['username']] = user
        db.session.commit()

        departments = {d.name: d for d in Department.query.all()}
        for data in EMPLOYEES:
            data = dict(data)
            if Employee.query.filter_by(email=data['email']).first():
                continue
            account = data.pop('account', None)
            department = departments[data.pop('department')]
            employee = Employee(employee_no=generate_employee_no(), department_id=department.id, **data)
            if account:
                employee.user_id = users[account].id
            db.session.add(employee)
            db.session.commit()
            print(f"직원 등록: {employee.employee_no} {employee.name} ({department.name})")

        print("초기 데이터 생성이 완료되었습니다.")


if __name__ == "__main__":
    seed_all()
