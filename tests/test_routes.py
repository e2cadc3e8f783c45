import io
from datetime import date, timedelta

import pandas as pd
import pytest

from app import db
from models import Role, CompanyInfo
from conftest import PASSWORD


@pytest.fixture
def data(app, make_user, make_department, make_employee):
    with app.app_context():
        admin = make_user('admin', Role.ADMIN, name='관리자')
        viewer = make_user('viewer', name='이사원')
        dev = make_department('개발팀')
        employee = make_employee('이사원', department=dev, user=viewer)
        db.session.add(CompanyInfo(name='(주)샘플컴퍼니', ceo_name='홍길동', payday=25))
        db.session.commit()
        return {'admin': admin.id, 'viewer': viewer.id, 'department': dev.id, 'employee': employee.id}


@pytest.fixture
def client_for(app):
    def _client(username):
        client = app.test_client()
        response = client.post('/login', json={'username': username, 'password': PASSWORD})
        assert response.status_code == 200, response.get_json()
        return client
    return _client


def test_index(client):
    response = client.get('/')
    assert response.status_code == 200
    assert response.get_json()['authenticated'] is False


def test_login_required_returns_json_401(client):
    response = client.get('/me')
    assert response.status_code == 401
    assert response.get_json()['success'] is False


def test_login(client, data):
    response = client.post('/login', json={'username': 'admin', 'password': 'wrong-password'})
    assert response.status_code == 401

    response = client.post('/login', json={'username': '', 'password': PASSWORD})
    assert response.status_code == 400
    assert response.get_json()['error'] == '아이디를 입력하세요.'

    response = client.post('/login', json={'username': 'viewer', 'password': PASSWORD})
    assert response.status_code == 200
    assert response.get_json()['user']['employee_id'] == data['employee']
    assert client.get('/me').get_json()['user']['username'] == 'viewer'

    client.post('/logout')
    assert client.get('/me').status_code == 401


def test_change_password(client_for, data):
    client = client_for('viewer')
    response = client.post('/change-password', json={
        'current_password': PASSWORD, 'new_password': 'new-password1', 'new_password_confirm': 'mismatch',
    })
    assert response.status_code == 400
    assert response.get_json()['error'] == '비밀번호가 일치하지 않습니다.'

    response = client.post('/change-password', json={
        'current_password': PASSWORD, 'new_password': 'new-password1', 'new_password_confirm': 'new-password1',
    })
    assert response.status_code == 200


def test_viewer_cannot_use_admin_api(client_for, data):
    client = client_for('viewer')
    assert client.get('/admin/employees').status_code == 403
    assert client.get('/subsidies').status_code == 403
    assert client.get('/employee/profile').get_json()['data']['name'] == '이사원'


def test_register_employee(client_for, data):
    client = client_for('admin')
    payload = {'name': '김철수', 'email': 'kim@example.com', 'department_id': data['department'],
               'position': '사원', 'join_date': '2025-01-02', 'base_salary': 3000000}

    response = client.post('/admin/employees', json=payload)
    assert response.status_code == 201
    assert response.get_json()['data']['employee_no'] == 'EMP002'

    response = client.post('/admin/employees', json=payload)
    assert response.status_code == 409

    response = client.post('/admin/employees', json={**payload, 'email': 'lee@example.com', 'base_salary': ''})
    assert response.status_code == 400
    assert response.get_json()['error'] == '기본급을 입력하세요.'

    names = [e['name'] for e in client.get('/admin/employees').get_json()['data']]
    assert names == ['이사원', '김철수']



def test_non_numeric_payloads_are_bad_requests(client_for, data):
    client = client_for('admin')

    response = client.put(f"/admin/employees/{data['employee']}", json={'base_salary': 'abc'})
    assert response.status_code == 400
    assert response.get_json()['success'] is False

    response = client.post('/admin/employees/bulk-work-type', json={'employee_ids': ['x'], 'work_type': 'REMOTE'})
    assert response.status_code == 400
    assert response.get_json()['error'] == '대상 ID가 올바르지 않습니다.'

    response = client.post('/documents', json={'type': 'NOTICE', 'title': '공지',
                                              'approvers': [{'approver_id': 'x', 'order': 1}]})
    assert response.status_code == 400


def test_duplicate_notification_preference_is_bad_request(client_for, data):
    client = client_for('viewer')
    response = client.put('/employee/notification-preferences', json={
        'email_enabled': True, 'web_enabled': True,
        'type_preferences': [{'type': 'SYSTEM'}, {'type': 'SYSTEM'}],
    })
    assert response.status_code == 400
    assert '중복' in response.get_json()['error']


def test_leave_request_and_approval(client_for, data):
    viewer = client_for('viewer')
    start = date(date.today().year, 3, 2)
    start += timedelta(days=(7 - start.weekday()) % 7)

    response = viewer.post('/employee/leaves', json={
        'type': 'ANNUAL', 'start_date': start.isoformat(), 'end_date': (start + timedelta(days=1)).isoformat(),
        'reason': '개인 사유',
    })
    assert response.status_code == 201, response.get_json()
    leave = response.get_json()['data']
    assert leave['days'] == 2

    response = viewer.post('/employee/leaves', json={
        'type': 'ANNUAL', 'start_date': start.isoformat(), 'end_date': (start - timedelta(days=1)).isoformat(),
    })
    assert response.status_code == 400

    admin = client_for('admin')
    response = admin.post(f"/admin/leaves/{leave['id']}/approve")
    assert response.get_json()['data']['status'] == 'APPROVED'

    assert viewer.get('/employee/notifications/unread-count').get_json()['count'] == 1


def test_payroll_ledger_download(client_for, data):
    client = client_for('admin')
    response = client.post('/admin/payroll', json={'employee_id': data['employee'], 'year': 2026, 'month': 3})
    assert response.status_code == 201

    response = client.get('/admin/payroll/ledger?year=2026&month=3')
    assert response.status_code == 200
    assert response.mimetype == 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet'

    ledger = pd.read_excel(io.BytesIO(response.data), engine='openpyxl')
    assert list(ledger['성명']) == ['이사원']
    assert ledger['기본급'][0] == 3000000


def test_payslip_visible_to_owner(client_for, data):
    admin = client_for('admin')
    payroll_id = admin.post('/admin/payroll', json={'employee_id': data['employee'], 'year': 2026,
                                                    'month': 3}).get_json()['data']['id']
    assert admin.post('/admin/payroll/confirm', json={'payroll_ids': [payroll_id]}).get_json()['confirmed'] == 1

    viewer = client_for('viewer')
    payslips = viewer.get('/employee/payslips').get_json()
    assert [p['id'] for p in payslips['data']] == [payroll_id]

    response = viewer.get(f"/employee/payslips/{payslips['documents'][0]['id']}/pdf")
    assert response.status_code == 200
    assert response.mimetype == 'application/pdf'
    assert response.data.startswith(b'%PDF')


def test_document_workflow(client_for, data):
    admin = client_for('admin')
    response = admin.post('/documents/employment-contract', json={
        'employee_id': data['employee'], 'approvers': [data['admin']],
    })
    assert response.status_code == 201
    document_id = response.get_json()['data']['id']

    viewer = client_for('viewer')
    assert viewer.post(f'/documents/{document_id}/approve', json={}).status_code == 403

    response = admin.post(f'/documents/{document_id}/approve', json={'comment': '승인합니다.'})
    assert response.get_json()['data']['status'] == 'APPROVED'
    assert admin.post(f'/documents/{document_id}/reject', json={'reason': '재검토'}).status_code == 409

    response = viewer.get(f'/documents/{document_id}/pdf')
    assert response.status_code == 200
    assert response.data.startswith(b'%PDF')


def test_document_validation_errors(client_for, data):
    client = client_for('admin')
    response = client.post('/documents', json={'type': 'NOTICE', 'title': '', 'approvers': [data['admin']]})
    assert response.status_code == 400
    assert response.get_json()['error'] == '제목을 입력하세요.'

    response = client.post('/documents', json={'type': 'NOTICE', 'title': '공지', 'approvers': []})
    assert response.status_code == 400

    assert client.get('/documents/999').status_code == 404


def test_subsidy_check(client_for, data, app):
    with app.app_context():
        from models import Employee
        employee = db.session.get(Employee, data['employee'])
        employee.work_type = 'REMOTE'
        db.session.commit()

    client = client_for('admin')
    response = client.post('/subsidies/check', json={
        'employee_id': data['employee'], 'type': 'FLEXIBLE_WORK', 'year': 2026, 'month': 3, 'usage_count': 4,
    })
    assert response.get_json()['data']['eligible'] is True
    assert response.get_json()['data']['calculated_amount'] == 600000



def test_expense_claim_flow(client_for, data):
    viewer = client_for('viewer')
    response = viewer.post('/expenses', json={'title': '세미나 참가비', 'amount': 'abc', 'category': '교육비',
                                             'date': '2026-03-05'})
    assert response.status_code == 400

    response = viewer.post('/expenses', json={'title': '세미나 참가비', 'amount': 50000, 'category': '교육비',
                                             'date': '2026-03-05'})
    assert response.status_code == 201, response.get_json()
    expense_id = response.get_json()['data']['id']
    assert viewer.post(f'/expenses/{expense_id}/approve').status_code == 403

    admin = client_for('admin')
    response = admin.post(f'/expenses/{expense_id}/reject', json={'reason': '영수증 누락'})
    assert response.get_json()['data']['status'] == 'REJECTED'
    assert viewer.get('/expenses').get_json()['data'][0]['reject_reason'] == '영수증 누락'


def test_accounting_reports(client_for, data):
    admin = client_for('admin')
    admin.post('/admin/payroll', json={'employee_id': data['employee'], 'year': 2026, 'month': 3})

    body = admin.get('/admin/accounting/withholding-tax?year=2026').get_json()['data']
    assert [row['month'] for row in body['summary']] == ['2026-03']

    response = admin.get('/admin/accounting/withholding-tax/export?year=2026')
    assert response.status_code == 200
    assert admin.get('/admin/accounting/withholding-tax/export?year=2025').status_code == 400

    assert admin.get('/admin/accounting/severance-estimates').get_json()['data'][0]['name'] == '이사원'
    assert admin.get('/admin/accounting/dc-pension').status_code == 200
    stats = admin.get('/admin/accounting/payroll-stats?year=2026&month=3').get_json()['data']
    assert stats['by_department'][0]['name'] == '개발팀'

    assert client_for('viewer').get('/admin/accounting/withholding-tax').status_code == 403


def test_notification_logs(client_for, data):
    admin = client_for('admin')
    admin.post('/employee/notification-preferences/test', json={'type': 'APPROVAL_REQUEST'})

    body = admin.get('/admin/notification-logs?type=APPROVAL_REQUEST').get_json()
    assert body['pagination']['total'] == 1
    assert body['data'][0]['status'] == 'SKIPPED'
    assert admin.get('/admin/notification-logs/types').get_json()['data'] == ['APPROVAL_REQUEST']


def test_dashboard(client_for, data):
    body = client_for('viewer').get('/dashboard').get_json()['data']
    assert body['role'] == Role.VIEWER
    assert body['employee_count'] == 1
    assert 'pending_subsidy_count' not in body


def test_unknown_route(client):
    response = client.get('/no-such-page')
    assert response.status_code == 404
    assert response.get_json()['success'] is False
