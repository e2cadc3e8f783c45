import io
from datetime import date

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required, current_user

from exceptions import InvalidInputError, NotFoundError
from forms import LeaveRequestForm, first_error
from models import Document, DocumentStatus
from attendance_service import get_monthly_attendance, delete_attendance, attendance_to_dict
from document_service import get_payslip_pdf, get_document_pdf, document_to_dict
from employee_service import employee_to_dict
from leave_service import create_leave_request, list_leaves, delete_leave, get_leave_summary, leave_to_dict
from notifications import (
    list_notifications, unread_count, mark_as_read, mark_all_as_read, notification_to_dict,
    get_or_initialize_preference, preference_to_dict, update_preference, send_test_notification,
)
from payroll_service import list_payrolls, payroll_to_dict
from utils import get_leave_days_count, parse_date

employee_bp = Blueprint('employee', __name__)

CERTIFICATE_TYPES = ('EMPLOYMENT_CERTIFICATE', 'CAREER_CERTIFICATE', 'EMPLOYMENT_CONTRACT')


def _my_employee():
    employee = current_user.employee
    if employee is None:
        raise NotFoundError('연결된 직원 정보가 없습니다.')
    return employee


def _pdf_response(pdf_bytes, filename):
    return send_file(
        io.BytesIO(pdf_bytes),
        mimetype='application/pdf',
        as_attachment=True,
        download_name=filename
    )


@employee_bp.route('/profile')
@login_required
def profile():
    return jsonify({'success': True, 'data': employee_to_dict(_my_employee(), include_salary=True)})


# ─── 휴가 ───

@employee_bp.route('/leaves', methods=['GET'])
@login_required
def my_leaves():
    """내 휴가 내역"""
    employee = _my_employee()
    year = request.args.get('year', type=int)
    leaves = list_leaves(current_user, status=request.args.get('status'), employee_id=employee.id, year=year)
    return jsonify({'success': True, 'data': [leave_to_dict(leave) for leave in leaves]})


@employee_bp.route('/leaves', methods=['POST'])
@login_required
def request_leave():
    """휴가 신청 (관리자/부서장은 employee_id로 대리 신청)"""
    form = LeaveRequestForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))

    employee_id = form.employee_id.data or _my_employee().id
    leave = create_leave_request(current_user, employee_id, {
        'type': form.type.data,
        'start_date': form.start_date.data,
        'end_date': form.end_date.data,
        'half_day_type': form.half_day_type.data or None,
        'reason': form.reason.data,
        'child_birth_date': form.child_birth_date.data,
        'is_multiple_birth': form.is_multiple_birth.data,
    })
    return jsonify({'success': True, 'data': leave_to_dict(leave)}), 201


@employee_bp.route('/leaves/<int:leave_id>', methods=['DELETE'])
@login_required
def cancel_leave(leave_id):
    """대기 중인 휴가 신청 취소"""
    delete_leave(current_user, leave_id)
    return jsonify({'success': True})


@employee_bp.route('/leave-summary')
@login_required
def leave_summary():
    employee_id = request.args.get('employee_id', type=int) or _my_employee().id
    summary = get_leave_summary(current_user, employee_id, request.args.get('year', type=int))
    return jsonify({'success': True, 'data': summary})


@employee_bp.route('/calculate-leave-days', methods=['POST'])
@login_required
def calculate_leave_days():
    """휴가 일수 계산 API"""
    data = request.get_json(silent=True) or {}
    start_date = parse_date(data.get('start_date'))
    end_date = parse_date(data.get('end_date'))
    if start_date is None or end_date is None:
        raise InvalidInputError('휴가 기간을 입력하세요.')
    days = get_leave_days_count(start_date, end_date, data.get('half_day_type') or None)
    return jsonify({'days': days})


# ─── 근태 ───

@employee_bp.route('/attendance')
@login_required
def my_attendance():
    today = date.today()
    year = request.args.get('year', today.year, type=int)
    month = request.args.get('month', today.month, type=int)
    records, stats = get_monthly_attendance(current_user, _my_employee().id, year, month)
    return jsonify({'success': True, 'data': [attendance_to_dict(r) for r in records], 'stats': stats})


@employee_bp.route('/attendance/<int:record_id>', methods=['DELETE'])
@login_required
def remove_my_attendance(record_id):
    """본인 미확정 근태 기록 삭제"""
    delete_attendance(current_user, record_id)
    return jsonify({'success': True})


# ─── 급여명세서 / 증명서 ───

@employee_bp.route('/payslips')
@login_required
def my_payslips():
    """확정된 내 급여 내역과 명세서 문서"""
    employee = _my_employee()
    payrolls = [p for p in list_payrolls(current_user, year=request.args.get('year', type=int))
                if p.is_confirmed and p.employee_id == employee.id]
    documents = Document.query.filter_by(employee_id=employee.id, type='PAYSLIP') \
        .order_by(Document.created_at.desc()).all()
    return jsonify({
        'success': True,
        'data': [payroll_to_dict(p) for p in payrolls],
        'documents': [document_to_dict(d) for d in documents],
    })


@employee_bp.route('/payslips/<int:document_id>/pdf')
@login_required
def download_payslip(document_id):
    pdf_bytes, filename = get_payslip_pdf(current_user, document_id)
    return _pdf_response(pdf_bytes, filename)


@employee_bp.route('/certificates')
@login_required
def my_certificates():
    employee = _my_employee()
    documents = Document.query.filter(
        Document.employee_id == employee.id,
        Document.type.in_(CERTIFICATE_TYPES),
        Document.status.in_([DocumentStatus.APPROVED, DocumentStatus.ISSUED])
    ).order_by(Document.created_at.desc()).all()
    return jsonify({'success': True, 'data': [document_to_dict(d) for d in documents]})


@employee_bp.route('/certificates/<int:document_id>/pdf')
@login_required
def download_certificate(document_id):
    pdf_bytes, filename = get_document_pdf(current_user, document_id)
    return _pdf_response(pdf_bytes, filename)


# ─── 알림 ───

@employee_bp.route('/notifications')
@login_required
def notifications():
    unread_only = request.args.get('unread_only', 'false').lower() == 'true'
    limit = request.args.get('limit', 50, type=int)
    items = list_notifications(current_user, unread_only=unread_only, limit=limit)
    return jsonify({'success': True, 'data': [notification_to_dict(n) for n in items]})


@employee_bp.route('/notifications/unread-count')
@login_required
def notifications_unread_count():
    return jsonify({'success': True, 'count': unread_count(current_user)})


@employee_bp.route('/notifications/<int:notification_id>/read', methods=['POST'])
@login_required
def read_notification(notification_id):
    notification = mark_as_read(current_user, notification_id)
    return jsonify({'success': True, 'data': notification_to_dict(notification)})


@employee_bp.route('/notifications/read-all', methods=['POST'])
@login_required
def read_all_notifications():
    updated = mark_all_as_read(current_user)
    return jsonify({'success': True, 'updated': updated})


@employee_bp.route('/notification-preferences', methods=['GET'])
@login_required
def get_notification_preferences():
    preference = get_or_initialize_preference(current_user)
    return jsonify({'success': True, 'data': preference_to_dict(preference)})


@employee_bp.route('/notification-preferences', methods=['PUT'])
@login_required
def put_notification_preferences():
    data = request.get_json(silent=True) or {}
    preference = update_preference(
        current_user,
        data.get('email_enabled', True),
        data.get('web_enabled', True),
        data.get('type_preferences', []),
    )
    return jsonify({'success': True, 'data': preference_to_dict(preference)})


@employee_bp.route('/notification-preferences/test', methods=['POST'])
@login_required
def test_notification():
    data = request.get_json(silent=True) or {}
    notification = send_test_notification(current_user, data.get('type', 'SYSTEM'))
    return jsonify({
        'success': True,
        'data': notification_to_dict(notification) if notification else None,
    })
