"""전자결재 문서 (순차 다단계 결재) 및 PDF 다운로드"""
import logging
from datetime import datetime

from sqlalchemy import or_

from app import db
from constants import DOCUMENT_TYPES, DOCUMENT_STATUS, APPROVAL_STATUS, MAX_APPROVERS
from exceptions import InvalidInputError, InvalidStateError, NotFoundError, PermissionDeniedError
from models import (Document, DocumentStatus, Approval, ApprovalStatus, Employee, EmployeeStatus,
                    PayrollRecord, CompanyInfo, User, Role)
from notifications import notify_approval_request, notify_document_approved, notify_document_rejected
from pdf import render_employment_contract, render_payslip, render_certificate
from rbac import require_roles, can_access_employee
from utils import format_tenure, parse_int

logger = logging.getLogger(__name__)

MAX_TITLE_LENGTH = 200
MAX_COMMENT_LENGTH = 500
EDITABLE_STATUSES = (DocumentStatus.DRAFT, DocumentStatus.PENDING_APPROVAL)
DELETABLE_STATUSES = (DocumentStatus.DRAFT, DocumentStatus.REJECTED)


def get_document(document_id):
    document = db.session.get(Document, document_id)
    if document is None:
        raise NotFoundError('문서를 찾을 수 없습니다.')
    return document


def _validate_title(title):
    title = (title or '').strip()
    if not title:
        raise InvalidInputError('제목을 입력하세요.')
    if len(title) > MAX_TITLE_LENGTH:
        raise InvalidInputError(f'제목은 {MAX_TITLE_LENGTH}자 이하로 입력하세요.')
    return title


def _normalize_approvers(approvers):
    """결재선 검증. approvers: 사용자 ID 목록 또는 {approver_id, approval_order} 목록"""
    if not approvers:
        raise InvalidInputError('결재자를 1명 이상 지정해야 합니다.')
    if not isinstance(approvers, (list, tuple)):
        raise InvalidInputError('결재선 정보가 올바르지 않습니다.')
    if len(approvers) > MAX_APPROVERS:
        raise InvalidInputError(f'결재자는 최대 {MAX_APPROVERS}명까지 지정할 수 있습니다.')

    line = []
    for index, item in enumerate(approvers, start=1):
        if isinstance(item, dict):
            approver_id = parse_int(item.get('approver_id'), '결재자 ID가 올바르지 않습니다.')
            order = parse_int(item.get('approval_order', index), '결재 순서가 올바르지 않습니다.')
        else:
            approver_id, order = parse_int(item, '결재자 ID가 올바르지 않습니다.'), index
        if approver_id is None or order is None:
            raise InvalidInputError('결재선 정보가 올바르지 않습니다.')
        line.append((approver_id, order))

    orders = [order for _, order in line]
    if len(set(orders)) != len(orders) or min(orders) < 1:
        raise InvalidInputError('결재 순서가 중복되었거나 올바르지 않습니다.')
    approver_ids = [approver_id for approver_id, _ in line]
    if len(set(approver_ids)) != len(approver_ids):
        raise InvalidInputError('같은 결재자를 중복 지정할 수 없습니다.')

    found = {u.id for u in User.query.filter(User.id.in_(approver_ids)).all()}
    missing = [i for i in approver_ids if i not in found]
    if missing:
        raise NotFoundError('결재자를 찾을 수 없습니다.')

    return sorted(line, key=lambda x: x[1])


def _replace_approval_line(document, line):
    document.approvals.clear()
    for approver_id, order in line:
        document.approvals.append(Approval(approver_id=approver_id, approval_order=order,
                                           status=ApprovalStatus.PENDING))


def _first_pending_approver(document):
    for approval in document.approvals:
        if approval.status == ApprovalStatus.PENDING:
            return approval.approver_id
    return None


def _require_owner_or_admin(actor, document, message):
    if actor.role != Role.ADMIN and document.created_by != actor.id:
        raise PermissionDeniedError(message)


def create_document(actor, data):
    """문서 작성 후 결재 요청"""
    doc_type = data.get('type')
    if doc_type not in DOCUMENT_TYPES:
        raise InvalidInputError('유효하지 않은 문서 유형입니다.')
    title = _validate_title(data.get('title'))
    line = _normalize_approvers(data.get('approvers') or data.get('approver_ids'))

    employee_id = data.get('employee_id')
    if employee_id is not None:
        employee = db.session.get(Employee, employee_id)
        if employee is None:
            raise NotFoundError('직원을 찾을 수 없습니다.')
        if not can_access_employee(actor, employee):
            raise PermissionDeniedError('해당 직원의 문서를 작성할 권한이 없습니다.')

    document = Document(
        type=doc_type,
        title=title,
        status=DocumentStatus.PENDING_APPROVAL,
        version_number=1,
        employee_id=employee_id,
        created_by=actor.id,
    )
    document.set_content(data.get('content') or {})
    _replace_approval_line(document, line)

    db.session.add(document)
    db.session.commit()
    logger.info("문서 결재 요청: #%d %s (결재자 %d명)", document.id, doc_type, len(line))

    notify_approval_request(document.id, _first_pending_approver(document))
    return document


def update_document(actor, document_id, data):
    document = get_document(document_id)
    if document.status not in EDITABLE_STATUSES:
        raise InvalidStateError('결재 진행 중이거나 완료된 문서는 수정할 수 없습니다.')
    _require_owner_or_admin(actor, document, '본인이 작성한 문서만 수정할 수 있습니다.')

    if 'title' in data:
        document.title = _validate_title(data['title'])
    if 'content' in data:
        document.set_content(data['content'] or {})

    approvers = data.get('approvers') or data.get('approver_ids')
    line_replaced = False
    if approvers is not None:
        line = _normalize_approvers(approvers)
        _replace_approval_line(document, line)
        document.status = DocumentStatus.PENDING_APPROVAL
        document.version_number += 1
        line_replaced = True

    db.session.commit()

    if line_replaced:
        notify_approval_request(document.id, _first_pending_approver(document))
    return document


def delete_document(actor, document_id):
    document = get_document(document_id)
    if document.status not in DELETABLE_STATUSES:
        raise InvalidStateError('초안 또는 반려된 문서만 삭제할 수 있습니다.')
    _require_owner_or_admin(actor, document, '본인이 작성한 문서만 삭제할 수 있습니다.')
    db.session.delete(document)
    db.session.commit()


def _pending_approval_for(actor, document, action):
    """결재자 본인의 대기 결재와 이전 순위 승인 여부 확인"""
    if document.status != DocumentStatus.PENDING_APPROVAL:
        raise InvalidStateError('결재 대기 중인 문서가 아닙니다.')

    approval = next((a for a in document.approvals if a.approver_id == actor.id), None)
    if approval is None:
        raise PermissionDeniedError(f'담당 결재자만 {action}할 수 있습니다.')
    if approval.status != ApprovalStatus.PENDING:
        raise InvalidStateError('이미 처리된 결재입니다.')

    # 부서장은 소속 부서 직원 문서만 처리
    if actor.role == Role.MANAGER and document.employee is not None:
        if document.employee.department_id != actor.department_id:
            raise PermissionDeniedError(f'다른 부서 직원의 문서는 {action}할 수 없습니다.')

    previous = [a for a in document.approvals if a.approval_order < approval.approval_order]
    if any(a.status != ApprovalStatus.APPROVED for a in previous):
        raise InvalidStateError('이전 순위 결재가 승인되지 않았습니다.')
    return approval


def approve_document(actor, document_id, comment=None):
    if comment and len(comment) > MAX_COMMENT_LENGTH:
        raise InvalidInputError(f'의견은 {MAX_COMMENT_LENGTH}자 이하로 입력하세요.')

    document = get_document(document_id)
    approval = _pending_approval_for(actor, document, '승인')

    approval.status = ApprovalStatus.APPROVED
    approval.comment = comment
    approval.processed_at = datetime.now()

    next_approver_id = _first_pending_approver(document)
    if next_approver_id is None:
        document.status = DocumentStatus.APPROVED
    db.session.commit()
    logger.info("문서 승인: #%d %d차 by %s", document.id, approval.approval_order, actor.username)

    if next_approver_id is None:
        notify_document_approved(document.id)
    else:
        notify_approval_request(document.id, next_approver_id)
    return document


def reject_document(actor, document_id, reason):
    reason = (reason or '').strip()
    if not reason:
        raise InvalidInputError('반려 사유를 입력하세요.')
    if len(reason) > MAX_COMMENT_LENGTH:
        raise InvalidInputError(f'반려 사유는 {MAX_COMMENT_LENGTH}자 이하로 입력하세요.')

    document = get_document(document_id)
    approval = _pending_approval_for(actor, document, '반려')

    now = datetime.now()
    approval.status = ApprovalStatus.REJECTED
    approval.comment = reason
    approval.processed_at = now

    # 후순위 결재는 건너뜀 처리
    for later in document.approvals:
        if later.approval_order > approval.approval_order and later.status == ApprovalStatus.PENDING:
            later.status = ApprovalStatus.SKIPPED
            later.processed_at = now

    document.status = DocumentStatus.REJECTED
    db.session.commit()
    logger.info("문서 반려: #%d %d차 by %s", document.id, approval.approval_order, actor.username)

    notify_document_rejected(document.id, reason)
    return document


def issue_document(actor, document_id):
    require_roles(actor, Role.ADMIN, message='문서 발급 권한이 없습니다.')
    document = get_document(document_id)
    if document.status != DocumentStatus.APPROVED:
        raise InvalidStateError('승인된 문서만 발급할 수 있습니다.')
    document.status = DocumentStatus.ISSUED
    document.issued_at = datetime.now()
    db.session.commit()
    return document


def archive_document(actor, document_id):
    require_roles(actor, Role.ADMIN, message='문서 보관 권한이 없습니다.')
    document = get_document(document_id)
    if document.status != DocumentStatus.ISSUED:
        raise InvalidStateError('발급된 문서만 보관할 수 있습니다.')
    document.status = DocumentStatus.ARCHIVED
    document.archived_at = datetime.now()
    db.session.commit()
    return document


def list_documents(actor, status=None, doc_type=None):
    """권한 범위 내 문서 목록"""
    query = Document.query
    if actor.role != Role.ADMIN:
        approver_doc_ids = db.session.query(Approval.document_id).filter(Approval.approver_id == actor.id)
        conditions = [Document.created_by == actor.id, Document.id.in_(approver_doc_ids)]
        if actor.role == Role.MANAGER and actor.department_id is not None:
            dept_employee_ids = db.session.query(Employee.id).filter(
                Employee.department_id == actor.department_id)
            conditions.append(Document.employee_id.in_(dept_employee_ids))
        elif actor.employee is not None:
            conditions.append(Document.employee_id == actor.employee.id)
        query = query.filter(or_(*conditions))

    if status:
        query = query.filter(Document.status == status)
    if doc_type:
        query = query.filter(Document.type == doc_type)
    return query.order_by(Document.created_at.desc(), Document.id.desc()).all()


def get_document_for(actor, document_id):
    """조회 권한 확인 후 문서 반환"""
    document = get_document(document_id)
    if actor.role == Role.ADMIN or document.created_by == actor.id:
        return document
    if any(a.approver_id == actor.id for a in document.approvals):
        return document
    employee = document.employee
    if employee is not None:
        if actor.role == Role.MANAGER and can_access_employee(actor, employee):
            return document
        if employee.user_id == actor.id:
            return document
    raise PermissionDeniedError('문서를 조회할 권한이 없습니다.')


# ─── 근로계약서 ───

def build_employment_contract_content(employee, company):
    """근로계약서 필수 기재사항 (근로기준법 제17조)"""
    is_fixed_term = employee.contract_type in ('CONTRACT', 'REPLACEMENT', 'PARTTIME')
    return {
        'contract_start_date': employee.join_date.isoformat(),
        'contract_end_date': employee.contract_end_date.isoformat() if employee.contract_end_date else None,
        'work_location': (company.address if company and company.address else '회사 소재지'),
        'job_description': f'{employee.department_name or "소속 부서"} {employee.position} 업무',
        'working_hours': {
            'weekly_work_hours': employee.weekly_work_hours or 40,
            'work_start_time': employee.work_start_time or '09:00',
            'work_end_time': employee.work_end_time or '18:00',
            'break_minutes': 60,
        },
        'weekly_rest_day': '일요일',
        'salary': {
            'salary_type': employee.salary_type,
            'base_salary': employee.base_salary,
            'meal_allowance': employee.meal_allowance,
            'transport_allowance': employee.transport_allowance,
            'position_allowance': employee.position_allowance,
            'fixed_ot_amount': employee.fixed_ot_amount if employee.use_fixed_ot else 0,
        },
        'salary_payment': {
            'payment_date': company.payday if company and company.payday else 25,
            'payment_method': '근로자 명의 예금통장에 입금',
        },
        'annual_leave_policy': '근로기준법 제60조에 따라 연차 유급휴가를 부여한다.',
        'social_insurance': {
            'national_pension': employee.national_pension,
            'health_insurance': employee.health_insurance,
            'employment_insurance': employee.employment_insurance,
            'industrial_accident': True,
        },
        'renewal_condition': '계약 만료 30일 전까지 상호 협의하여 갱신 여부를 결정한다.' if is_fixed_term else None,
        'probation': {
            'has_probation': employee.probation_end_date is not None,
            'probation_end_date': (employee.probation_end_date.isoformat()
                                   if employee.probation_end_date else None),
        },
        'company_name': company.name if company else '',
        'generated_at': datetime.now().isoformat(timespec='seconds'),
    }


def create_employment_contract(actor, employee_id, approver_ids):
    require_roles(actor, Role.ADMIN, Role.MANAGER, message='근로계약서 작성 권한이 없습니다.')
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        raise NotFoundError('직원을 찾을 수 없습니다.')

    company = CompanyInfo.query.first()
    return create_document(actor, {
        'type': 'EMPLOYMENT_CONTRACT',
        'title': f'근로계약서 - {employee.name}',
        'employee_id': employee.id,
        'content': build_employment_contract_content(employee, company),
        'approvers': approver_ids,
    })


# ─── PDF 다운로드 (pdf_bytes, 파일명) ───

def _require_document_viewer(actor, document, message):
    employee = document.employee
    if employee is None:
        raise NotFoundError('직원 정보를 찾을 수 없습니다.')
    if actor.role == Role.VIEWER and employee.user_id != actor.id:
        raise PermissionDeniedError(message)
    if not can_access_employee(actor, employee):
        raise PermissionDeniedError(message)
    return employee


def get_contract_pdf(actor, document_id):
    document = get_document(document_id)
    if document.type != 'EMPLOYMENT_CONTRACT':
        raise InvalidInputError('근로계약서 문서만 PDF 다운로드가 가능합니다.')
    employee = _require_document_viewer(actor, document, '본인의 근로계약서만 조회할 수 있습니다.')
    return render_employment_contract(document.get_content(), employee), f'근로계약서_{employee.name}.pdf'


def get_payslip_pdf(actor, document_id):
    document = get_document(document_id)
    if document.type != 'PAYSLIP':
        raise InvalidInputError('임금명세서만 다운로드 가능합니다.')
    if actor.role != Role.ADMIN and (document.employee is None or document.employee.user_id != actor.id):
        raise PermissionDeniedError('본인의 급여명세서만 조회할 수 있습니다.')

    content = document.get_content()
    record = db.session.get(PayrollRecord, content.get('payroll_record_id'))
    if record is None:
        raise NotFoundError('급여 기록을 찾을 수 없습니다.')
    employee = record.employee
    filename = f'임금명세서_{record.year}년{record.month}월_{employee.name}.pdf'
    return render_payslip(record, employee), filename


def get_employment_certificate_pdf(actor, document_id):
    document = get_document(document_id)
    if document.type != 'EMPLOYMENT_CERTIFICATE':
        raise InvalidInputError('재직증명서만 다운로드 가능합니다.')
    employee = _require_document_viewer(actor, document, '본인의 증명서만 조회할 수 있습니다.')
    if employee.status == EmployeeStatus.RESIGNED:
        raise InvalidStateError('퇴사자는 경력증명서를 신청하세요.')

    company = CompanyInfo.query.first()
    tenure = format_tenure(employee.join_date)
    return render_certificate('EMPLOYMENT', employee, company, tenure), f'재직증명서_{employee.name}.pdf'


def get_career_certificate_pdf(actor, document_id):
    document = get_document(document_id)
    if document.type != 'CAREER_CERTIFICATE':
        raise InvalidInputError('경력증명서만 다운로드 가능합니다.')
    employee = _require_document_viewer(actor, document, '본인의 증명서만 조회할 수 있습니다.')
    if employee.status != EmployeeStatus.RESIGNED or employee.resign_date is None:
        raise InvalidStateError('경력증명서는 퇴사자만 발급할 수 있습니다. 재직자는 재직증명서를 신청하세요.')

    company = CompanyInfo.query.first()
    tenure = format_tenure(employee.join_date, employee.resign_date)
    return render_certificate('CAREER', employee, company, tenure), f'경력증명서_{employee.name}.pdf'


PDF_GETTERS = {
    'EMPLOYMENT_CONTRACT': get_contract_pdf,
    'PAYSLIP': get_payslip_pdf,
    'EMPLOYMENT_CERTIFICATE': get_employment_certificate_pdf,
    'CAREER_CERTIFICATE': get_career_certificate_pdf,
}


def get_document_pdf(actor, document_id):
    document = get_document(document_id)
    getter = PDF_GETTERS.get(document.type)
    if getter is None:
        raise InvalidInputError('PDF 다운로드를 지원하지 않는 문서 유형입니다.')
    return getter(actor, document_id)


def document_to_dict(document, include_content=False):
    data = {
        'id': document.id,
        'type': document.type,
        'type_label': DOCUMENT_TYPES.get(document.type),
        'title': document.title,
        'status': document.status,
        'status_label': DOCUMENT_STATUS.get(document.status),
        'version_number': document.version_number,
        'employee_id': document.employee_id,
        'created_by': document.created_by,
        'issued_at': document.issued_at.isoformat() if document.issued_at else None,
        'created_at': document.created_at.isoformat() if document.created_at else None,
        'approvals': [
            {
                'approver_id': a.approver_id,
                'approver_name': a.approver.name if a.approver else None,
                'approval_order': a.approval_order,
                'status': a.status,
                'status_label': APPROVAL_STATUS.get(a.status),
                'comment': a.comment,
                'processed_at': a.processed_at.isoformat() if a.processed_at else None,
            }
            for a in document.approvals
        ],
    }
    if include_content:
        data['content'] = document.get_content()
    return data
