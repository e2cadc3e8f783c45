from datetime import date, timedelta

import pytest

from app import db
from exceptions import InvalidInputError, InvalidStateError, DuplicateError, PermissionDeniedError
from leave_service import (create_leave_request, approve_leave, reject_leave, delete_leave, list_leaves,
                           get_leave_summary)
from models import Role, Employee, EmployeeStatus, LeaveStatus, Notification, Holiday


def monday(month=3):
    day = date(date.today().year, month, 2)
    return day + timedelta(days=(7 - day.weekday()) % 7)


@pytest.fixture
def setup(ctx, make_user, make_department, make_employee):
    admin = make_user('admin', Role.ADMIN)
    viewer = make_user('viewer')
    dev = make_department('개발팀')
    sales = make_department('영업팀')
    employee = make_employee('이사원', department=dev, user=viewer)
    other = make_employee('박대리', department=sales)
    return admin, viewer, employee, other


def annual(start, end=None, **extra):
    data = {'type': 'ANNUAL', 'start_date': start, 'end_date': end or start}
    data.update(extra)
    return data


def test_viewer_requests_own_leave(setup):
    _, viewer, employee, _ = setup
    leave = create_leave_request(viewer, employee.id, annual(monday()))

    assert leave.status == LeaveStatus.PENDING
    assert leave.days == 1


def test_half_day_counts_half(setup):
    _, viewer, employee, _ = setup
    leave = create_leave_request(viewer, employee.id, annual(monday(), half_day_type='AM'))
    assert leave.days == 0.5


def test_viewer_cannot_request_for_others(setup):
    _, viewer, _, other = setup
    with pytest.raises(PermissionDeniedError):
        create_leave_request(viewer, other.id, annual(monday()))


def test_overlapping_request_is_rejected(setup):
    admin, _, employee, _ = setup
    start = monday()
    create_leave_request(admin, employee.id, annual(start, start + timedelta(days=2)))
    with pytest.raises(DuplicateError):
        create_leave_request(admin, employee.id, annual(start + timedelta(days=1)))


def test_half_day_must_be_single_day(setup):
    admin, _, employee, _ = setup
    start = monday()
    with pytest.raises(InvalidInputError, match='반차는 하루만'):
        create_leave_request(admin, employee.id, annual(start, start + timedelta(days=1), half_day_type='PM'))


def test_weekend_only_request_has_no_work_days(setup):
    admin, _, employee, _ = setup
    saturday = monday() + timedelta(days=5)
    with pytest.raises(InvalidInputError, match='근무일이 없습니다'):
        create_leave_request(admin, employee.id, annual(saturday, saturday + timedelta(days=1)))


def test_half_day_on_holiday_has_no_work_days(setup):
    admin, _, employee, _ = setup
    holiday = monday() + timedelta(days=1)
    db.session.add(Holiday(date=holiday, name='임시공휴일'))
    db.session.commit()

    with pytest.raises(InvalidInputError, match='근무일이 없습니다'):
        create_leave_request(admin, employee.id, annual(holiday, half_day_type='AM'))
    with pytest.raises(InvalidInputError, match='근무일이 없습니다'):
        create_leave_request(admin, employee.id, annual(monday() + timedelta(days=5), half_day_type='PM'))


def test_annual_leave_cannot_exceed_remaining(setup):
    admin, _, employee, _ = setup
    start = monday(2)
    # 5주 = 25 근무일 (발생 연차 16일)
    with pytest.raises(InvalidInputError, match='연차 잔여일'):
        create_leave_request(admin, employee.id, annual(start, start + timedelta(days=32)))


def test_approve_notifies_employee(setup):
    admin, viewer, employee, _ = setup
    leave = create_leave_request(viewer, employee.id, annual(monday()))

    approve_leave(admin, leave.id)

    assert leave.status == LeaveStatus.APPROVED
    assert leave.approved_by == admin.id
    notification = Notification.query.filter_by(recipient_id=viewer.id).one()
    assert notification.type == 'LEAVE_APPROVED'

    with pytest.raises(InvalidStateError):
        approve_leave(admin, leave.id)


def test_approving_maternity_leave_puts_employee_on_leave(setup):
    admin, _, employee, _ = setup
    start = monday()
    leave = create_leave_request(admin, employee.id, {
        'type': 'MATERNITY',
        'start_date': start,
        'end_date': start + timedelta(days=89),
        'child_birth_date': start + timedelta(days=30),
    })
    approve_leave(admin, leave.id)

    employee = db.session.get(Employee, employee.id)
    assert employee.status == EmployeeStatus.ON_LEAVE
    assert employee.leave_type == 'MATERNITY'
    assert employee.leave_start_date == start


def test_maternity_leave_requires_birth_date(setup):
    admin, _, employee, _ = setup
    start = monday()
    with pytest.raises(InvalidInputError, match='자녀 출생일'):
        create_leave_request(admin, employee.id, {'type': 'MATERNITY', 'start_date': start,
                                                  'end_date': start + timedelta(days=60)})


def test_reject_rules(setup):
    admin, viewer, employee, _ = setup
    leave = create_leave_request(viewer, employee.id, annual(monday()))

    with pytest.raises(InvalidInputError):
        reject_leave(admin, leave.id, '안됨')

    reject_leave(admin, leave.id, '업무 일정 조정 필요')
    assert leave.status == LeaveStatus.REJECTED
    assert leave.reject_reason == '업무 일정 조정 필요'


def test_statutory_leave_cannot_be_rejected(setup):
    admin, _, employee, _ = setup
    start = monday()
    leave = create_leave_request(admin, employee.id, {
        'type': 'SPOUSE_MATERNITY', 'start_date': start, 'end_date': start + timedelta(days=4),
        'child_birth_date': start - timedelta(days=3),
    })
    with pytest.raises(InvalidStateError):
        reject_leave(admin, leave.id, '업무 일정 조정 필요')


def test_spouse_maternity_leave_is_cumulative(setup):
    admin, _, employee, _ = setup
    start = monday()
    birth = start - timedelta(days=1)
    create_leave_request(admin, employee.id, {
        'type': 'SPOUSE_MATERNITY', 'start_date': start, 'end_date': start + timedelta(days=18),
        'child_birth_date': birth,
    })
    later = start + timedelta(days=21)
    with pytest.raises(InvalidInputError, match='최대 20일'):
        create_leave_request(admin, employee.id, {
            'type': 'SPOUSE_MATERNITY', 'start_date': later, 'end_date': later + timedelta(days=11),
            'child_birth_date': birth,
        })


def test_manager_of_other_department_cannot_approve(setup, make_user, make_employee):
    _, viewer, employee, other = setup
    manager = make_user('manager', Role.MANAGER)
    make_employee('김부장', department=other.department, user=manager)
    leave = create_leave_request(viewer, employee.id, annual(monday()))

    with pytest.raises(PermissionDeniedError):
        approve_leave(manager, leave.id)


def test_delete_rules(setup):
    admin, viewer, employee, _ = setup
    pending = create_leave_request(viewer, employee.id, annual(monday()))
    approved = create_leave_request(viewer, employee.id, annual(monday() + timedelta(days=7)))
    approve_leave(admin, approved.id)

    with pytest.raises(InvalidStateError):
        delete_leave(admin, approved.id)
    with pytest.raises(PermissionDeniedError):
        delete_leave(viewer, approved.id)

    delete_leave(viewer, pending.id)
    assert [leave.id for leave in list_leaves(admin)] == [approved.id]


def test_list_leaves_is_scoped(setup):
    admin, viewer, employee, other = setup
    create_leave_request(admin, employee.id, annual(monday()))
    create_leave_request(admin, other.id, annual(monday()))

    assert len(list_leaves(admin)) == 2
    assert [leave.employee_id for leave in list_leaves(viewer)] == [employee.id]


def test_leave_summary_counts_pending_requests(setup):
    _, viewer, employee, _ = setup
    start = monday()
    create_leave_request(viewer, employee.id, annual(start, start + timedelta(days=1)))

    summary = get_leave_summary(viewer, employee.id)
    assert summary['total'] == 16
    assert summary['used'] == 2
    assert summary['remaining'] == 14
