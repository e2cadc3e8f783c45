import io

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required, current_user

from exceptions import InvalidInputError
from forms import DocumentForm, ApprovalForm, RejectForm, first_error
from document_service import (create_document, update_document, delete_document, approve_document,
                              reject_document, issue_document, archive_document, list_documents,
                              get_document_for, create_employment_contract, get_document_pdf,
                              document_to_dict)
from utils import parse_int

documents_bp = Blueprint('documents', __name__)


def _json():
    return request.get_json(silent=True) or {}


def _validated(form):
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))
    return form


@documents_bp.route('', methods=['GET'])
@login_required
def document_list():
    """권한 범위 내 결재 문서 목록"""
    documents = list_documents(current_user, request.args.get('status'), request.args.get('type'))
    return jsonify({'success': True, 'data': [document_to_dict(d) for d in documents]})


@documents_bp.route('', methods=['POST'])
@login_required
def new_document():
    """문서 작성 및 결재 요청"""
    form = _validated(DocumentForm())
    data = _json()
    document = create_document(current_user, {
        'type': form.type.data,
        'title': form.title.data,
        'employee_id': form.employee_id.data,
        'content': data.get('content'),
        'approvers': data.get('approvers') or data.get('approver_ids'),
    })
    return jsonify({'success': True, 'data': document_to_dict(document, include_content=True)}), 201


@documents_bp.route('/employment-contract', methods=['POST'])
@login_required
def new_employment_contract():
    """직원 정보로 근로계약서 자동 작성"""
    data = _json()
    if not data.get('employee_id'):
        raise InvalidInputError('직원을 선택해주세요.')
    employee_id = parse_int(data['employee_id'], '직원 ID가 올바르지 않습니다.')
    document = create_employment_contract(current_user, employee_id,
                                          data.get('approvers') or data.get('approver_ids'))
    return jsonify({'success': True, 'data': document_to_dict(document, include_content=True)}), 201


@documents_bp.route('/<int:document_id>', methods=['GET'])
@login_required
def document_detail(document_id):
    document = get_document_for(current_user, document_id)
    return jsonify({'success': True, 'data': document_to_dict(document, include_content=True)})


@documents_bp.route('/<int:document_id>', methods=['PUT'])
@login_required
def edit_document(document_id):
    document = update_document(current_user, document_id, _json())
    return jsonify({'success': True, 'data': document_to_dict(document, include_content=True)})


@documents_bp.route('/<int:document_id>', methods=['DELETE'])
@login_required
def remove_document(document_id):
    delete_document(current_user, document_id)
    return jsonify({'success': True})


# ─── 결재 처리 ───

@documents_bp.route('/<int:document_id>/approve', methods=['POST'])
@login_required
def approve(document_id):
    form = _validated(ApprovalForm())
    document = approve_document(current_user, document_id, form.comment.data or None)
    return jsonify({'success': True, 'data': document_to_dict(document)})


@documents_bp.route('/<int:document_id>/reject', methods=['POST'])
@login_required
def reject(document_id):
    form = _validated(RejectForm())
    document = reject_document(current_user, document_id, form.reason.data)
    return jsonify({'success': True, 'data': document_to_dict(document)})


@documents_bp.route('/<int:document_id>/issue', methods=['POST'])
@login_required
def issue(document_id):
    document = issue_document(current_user, document_id)
    return jsonify({'success': True, 'data': document_to_dict(document)})


@documents_bp.route('/<int:document_id>/archive', methods=['POST'])
@login_required
def archive(document_id):
    document = archive_document(current_user, document_id)
    return jsonify({'success': True, 'data': document_to_dict(document)})


@documents_bp.route('/<int:document_id>/pdf')
@login_required
def download_pdf(document_id):
    """문서 유형별 PDF 다운로드"""
    pdf_bytes, filename = get_document_pdf(current_user, document_id)
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )
