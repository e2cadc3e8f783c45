import pytest

from app import db
from document_service import (create_document, update_document, delete_document, approve_document,
                              reject_document, issue_document, archive_document, list_documents,
                              get_document_for, create_employment_contract, get_document_pdf,
                              get_payslip_pdf, get_career_certificate_pdf)
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, PermissionDeniedError
from models import Role, Document, DocumentStatus, ApprovalStatus, Notification, CompanyInfo
from payroll_service import create_monthly_payroll, confirm_payrolls


@pytest.fixture
def setup(ctx, make_user, make_department, make_employee):
    admin = make_user('admin', Role.ADMIN)
    manager = make_user('manager', Role.MANAGER)
    director = make_user('director', Role.ADMIN)
    viewer = make_user('viewer')
    dev = make_department('개발팀')
    make_employee('김부장', department=dev, user=manager, position='부장')
    employee = make_employee('이사원', department=dev, user=viewer)
    db.session.add(CompanyInfo(name='(주)샘플컴퍼니', ceo_name='홍길동', address='서울시 강남구', payday=25))
    db.session.commit()
    return admin, manager, director, viewer, employee


def new_document(actor, approvers, employee=None, doc_type='OTHER'):
    return create_document(actor, {
        'type': doc_type,
        'title': '업무 보고',
        'content': {'body': '3월 업무 보고입니다.'},
        'approvers': approvers,
        'employee_id': employee.id if employee else None,
    })


def test_create_requests_first_approver(setup):
    admin, manager, director, _, employee = setup
    document = new_document(admin, [manager.id, director.id], employee)

    assert document.status == DocumentStatus.PENDING_APPROVAL
    assert document.version_number == 1
    assert [(a.approver_id, a.approval_order) for a in document.approvals] == [(manager.id, 1), (director.id, 2)]

    notification = Notification.query.filter_by(recipient_id=manager.id).one()
    assert notification.type == 'APPROVAL_REQUEST'
    assert Notification.query.filter_by(recipient_id=director.id).count() == 0


def test_approval_line_validation(setup):
    admin, manager, director, _, _ = setup
    with pytest.raises(InvalidInputError):
        new_document(admin, [])
    with pytest.raises(InvalidInputError):
        new_document(admin, [manager.id, manager.id])
    with pytest.raises(InvalidInputError):
        new_document(admin, [{'approver_id': manager.id, 'approval_order': 1},
                             {'approver_id': director.id, 'approval_order': 1}])
    with pytest.raises(NotFoundError):
        new_document(admin, [9999])
    with pytest.raises(InvalidInputError):
        new_document(admin, list(range(1, 8)))


def test_sequential_approval(setup):
    admin, manager, director, viewer, employee = setup
    document = new_document(admin, [manager.id, director.id], employee)

    with pytest.raises(InvalidStateError, match='이전 순위'):
        approve_document(director, document.id)
    with pytest.raises(PermissionDeniedError):
        approve_document(viewer, document.id)

    approve_document(manager, document.id, '확인했습니다.')
    assert document.status == DocumentStatus.PENDING_APPROVAL
    assert Notification.query.filter_by(recipient_id=director.id, type='APPROVAL_REQUEST').count() == 1

    approve_document(director, document.id)
    assert document.status == DocumentStatus.APPROVED
    assert Notification.query.filter_by(recipient_id=admin.id, type='DOCUMENT_APPROVED').count() == 1

    with pytest.raises(InvalidStateError):
        approve_document(director, document.id)


def test_reject_skips_later_approvals(setup):
    admin, manager, director, _, employee = setup
    document = new_document(admin, [manager.id, director.id], employee)

    reject_document(manager, document.id, '내용 보완 필요')

    assert document.status == DocumentStatus.REJECTED
    assert [a.status for a in document.approvals] == [ApprovalStatus.REJECTED, ApprovalStatus.SKIPPED]
    assert document.approvals[0].comment == '내용 보완 필요'
    assert Notification.query.filter_by(recipient_id=admin.id, type='DOCUMENT_REJECTED').count() == 1


def test_reject_requires_reason(setup):
    admin, manager, _, _, _ = setup
    document = new_document(admin, [manager.id])
    with pytest.raises(InvalidInputError):
        reject_document(manager, document.id, '  ')


def test_manager_cannot_process_other_department_document(setup, make_user, make_department, make_employee):
    admin, _, _, _, employee = setup
    sales = make_department('영업팀')
    sales_manager = make_user('sales_manager', Role.MANAGER)
    make_employee('정팀장', department=sales, user=sales_manager)

    document = new_document(admin, [sales_manager.id], employee)
    with pytest.raises(PermissionDeniedError):
        approve_document(sales_manager, document.id)


def test_update_replaces_line_and_bumps_version(setup):
    admin, manager, director, viewer, _ = setup
    document = new_document(admin, [manager.id])
    approve_document(manager, document.id)
    assert document.status == DocumentStatus.APPROVED

    with pytest.raises(InvalidStateError):
        update_document(admin, document.id, {'title': '수정'})

    draft = new_document(admin, [manager.id])
    with pytest.raises(PermissionDeniedError):
        update_document(viewer, draft.id, {'title': '수정'})

    update_document(admin, draft.id, {'title': '업무 보고 (수정)', 'approvers': [director.id]})
    assert draft.title == '업무 보고 (수정)'
    assert draft.version_number == 2
    assert [a.approver_id for a in draft.approvals] == [director.id]


def test_issue_archive_and_delete(setup):
    admin, manager, _, _, _ = setup
    document = new_document(admin, [manager.id])

    with pytest.raises(InvalidStateError):
        issue_document(admin, document.id)
    with pytest.raises(InvalidStateError):
        delete_document(admin, document.id)

    approve_document(manager, document.id)
    with pytest.raises(PermissionDeniedError):
        issue_document(manager, document.id)
    issue_document(admin, document.id)
    assert document.status == DocumentStatus.ISSUED
    assert document.issued_at is not None

    archive_document(admin, document.id)
    assert document.status == DocumentStatus.ARCHIVED

    rejected = new_document(admin, [manager.id])
    reject_document(manager, rejected.id, '중복 문서')
    delete_document(admin, rejected.id)
    assert db.session.get(Document, rejected.id) is None


def test_document_visibility(setup, make_user):
    admin, manager, director, viewer, employee = setup
    stranger = make_user('stranger')
    about_viewer = new_document(admin, [director.id], employee)
    unrelated = new_document(admin, [director.id])

    assert {d.id for d in list_documents(viewer)} == {about_viewer.id}
    assert {d.id for d in list_documents(manager)} == {about_viewer.id}
    assert {d.id for d in list_documents(director)} == {about_viewer.id, unrelated.id}
    assert get_document_for(viewer, about_viewer.id) is about_viewer
    with pytest.raises(PermissionDeniedError):
        get_document_for(stranger, about_viewer.id)


def test_employment_contract_content_and_pdf(setup):
    admin, manager, _, viewer, employee = setup
    document = create_employment_contract(admin, employee.id, [manager.id])

    content = document.get_content()
    assert document.type == 'EMPLOYMENT_CONTRACT'
    assert content['contract_start_date'] == employee.join_date.isoformat()
    assert content['salary']['base_salary'] == 3000000
    assert content['salary_payment']['payment_date'] == 25
    assert content['work_location'] == '서울시 강남구'
    assert content['social_insurance']['industrial_accident'] is True

    pdf_bytes, filename = get_document_pdf(viewer, document.id)
    assert pdf_bytes.startswith(b'%PDF')
    assert filename == '근로계약서_이사원.pdf'


def test_payslip_pdf_is_limited_to_owner(setup, make_user):
    admin, _, _, viewer, employee = setup
    stranger = make_user('stranger')
    record = create_monthly_payroll(admin, employee.id, 2026, 3)
    confirm_payrolls(admin, [record.id])
    payslip = Document.query.filter_by(type='PAYSLIP').one()

    pdf_bytes, filename = get_payslip_pdf(viewer, payslip.id)
    assert pdf_bytes.startswith(b'%PDF')
    assert filename == '임금명세서_2026년3월_이사원.pdf'
    with pytest.raises(PermissionDeniedError):
        get_payslip_pdf(stranger, payslip.id)


def test_certificates(setup):
    admin, manager, _, viewer, employee = setup
    employment = new_document(admin, [manager.id], employee, doc_type='EMPLOYMENT_CERTIFICATE')
    career = new_document(admin, [manager.id], employee, doc_type='CAREER_CERTIFICATE')

    pdf_bytes, filename = get_document_pdf(viewer, employment.id)
    assert pdf_bytes.startswith(b'%PDF')
    assert filename == '재직증명서_이사원.pdf'

    with pytest.raises(InvalidStateError):
        get_career_certificate_pdf(viewer, career.id)


def test_pdf_for_unsupported_type(setup):
    admin, manager, _, _, _ = setup
    document = new_document(admin, [manager.id])
    with pytest.raises(InvalidInputError):
        get_document_pdf(admin, document.id)
