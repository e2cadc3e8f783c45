import os

# app 모듈 임포트 전에 테스트 설정 적용
os.environ['APP_ENV'] = 'testing'
os.environ['DATABASE_URL'] = 'sqlite://'

from datetime import date

import pytest

from app import app as flask_app, db
from employee_service import generate_employee_no
from models import User, Employee, Department, Role

PASSWORD = 'password123'


@pytest.fixture
def app():
    with flask_app.app_context():
        db.drop_all()
        db.create_all()
    yield flask_app
    with flask_app.app_context():
        db.session.remove()
        db.drop_all()


@pytest.fixture
def ctx(app):
    """서비스 계층 테스트용 앱 컨텍스트"""
    with app.app_context():
        yield app
        db.session.remove()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def make_user(app):
    def _make(username, role=Role.VIEWER, name=None):
        user = User(username=username, email=f'{username}@example.com', name=name or username, role=role)
        user.set_password(PASSWORD)
        db.session.add(user)
        db.session.commit()
        return user
    return _make


@pytest.fixture
def make_department(app):
    def _make(name):
        department = Department(name=name)
        db.session.add(department)
        db.session.commit()
        return department
    return _make


@pytest.fixture
def make_employee(app):
    def _make(name, department=None, user=None, join_date=None, **fields):
        fields.setdefault('base_salary', 3000000)
        employee = Employee(
            employee_no=generate_employee_no(),
            name=name,
            department_id=department.id if department else None,
            user_id=user.id if user else None,
            join_date=join_date or date(date.today().year - 3, 1, 1),
            **fields
        )
        db.session.add(employee)
        db.session.commit()
        return employee
    return _make


@pytest.fixture
def login(client):
    def _login(username, password=PASSWORD):
        response = client.post('/login', json={'username': username, 'password': password})
        assert response.status_code == 200, response.get_json()
        return response
    return _login

