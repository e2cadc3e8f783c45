from datetime import date

import pytest

from attendance_service import record_attendance, confirm_attendance, unconfirm_attendance, delete_attendance
from exceptions import InvalidStateError, NotFoundError, PermissionDeniedError
from models import AttendanceRecord, Role


@pytest.fixture
def setup(ctx, make_user, make_department, make_employee):
    admin = make_user('admin', Role.ADMIN)
    manager = make_user('manager', Role.MANAGER)
    viewer = make_user('viewer')
    dev = make_department('개발팀')
    sales = make_department('영업팀')
    make_employee('김부장', department=dev, user=manager)
    employee = make_employee('이사원', department=dev, user=viewer)
    other = make_employee('박대리', department=sales)
    return admin, manager, viewer, employee, other


def test_unconfirm_clears_confirmation(setup):
    admin, manager, _, employee, other = setup
    record = record_attendance(admin, employee.id, date(2026, 3, 2), '09:00', '18:00')
    confirm_attendance(admin, [record.id])

    unconfirm_attendance(manager, record.id)

    assert not record.is_confirmed
    assert record.confirmed_at is None and record.confirmed_by is None
    # 확정 해제 후 다시 수정 가능
    record_attendance(admin, employee.id, date(2026, 3, 2), '09:00', '20:00')

    outside = record_attendance(admin, other.id, date(2026, 3, 2), '09:00', '18:00')
    with pytest.raises(PermissionDeniedError):
        unconfirm_attendance(manager, outside.id)


def test_viewer_cannot_unconfirm(setup):
    admin, _, viewer, employee, _ = setup
    record = record_attendance(admin, employee.id, date(2026, 3, 2), '09:00', '18:00')
    with pytest.raises(PermissionDeniedError):
        unconfirm_attendance(viewer, record.id)
    with pytest.raises(NotFoundError):
        unconfirm_attendance(admin, 999)


def test_delete_own_unconfirmed_record(setup):
    admin, _, viewer, employee, other = setup
    mine = record_attendance(admin, employee.id, date(2026, 3, 2), '09:00', '18:00')
    theirs = record_attendance(admin, other.id, date(2026, 3, 2), '09:00', '18:00')

    with pytest.raises(PermissionDeniedError, match='본인 기록만'):
        delete_attendance(viewer, theirs.id)

    delete_attendance(viewer, mine.id)
    assert AttendanceRecord.query.count() == 1


def test_confirmed_record_cannot_be_deleted(setup):
    admin, manager, _, employee, other = setup
    record = record_attendance(admin, employee.id, date(2026, 3, 2), '09:00', '18:00')
    confirm_attendance(admin, [record.id])

    with pytest.raises(InvalidStateError):
        delete_attendance(admin, record.id)

    outside = record_attendance(admin, other.id, date(2026, 3, 3), '09:00', '18:00')
    with pytest.raises(PermissionDeniedError):
        delete_attendance(manager, outside.id)
    delete_attendance(admin, outside.id)
    assert AttendanceRecord.query.count() == 1
