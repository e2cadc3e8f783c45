import logging
from datetime import date

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from app import app, db
from exceptions import ActionError
from models import Employee, EmployeeStatus, LeaveRecord, LeaveStatus, Document, DocumentStatus, \
    Approval, ApprovalStatus, SubsidyApplication, SubsidyStatus, Role
from notifications import unread_count
from rbac import employee_query_for

logger = logging.getLogger(__name__)

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    """서비스 상태"""
    return jsonify({
        'success': True,
        'service': app.config.get('COMPANY_NAME') or 'HR Payroll',
        'authenticated': current_user.is_authenticated,
    })


@main_bp.route('/dashboard')
@login_required
def dashboard():
    """대시보드 - 권한 범위 내 현황 집계"""
    employees = employee_query_for(current_user)
    employee_ids = [e.id for e in employees.all()]

    data = {
        'role': current_user.role,
        'employee_count': employees.filter(Employee.status == EmployeeStatus.ACTIVE).count(),
        'on_leave_count': employees.filter(Employee.status == EmployeeStatus.ON_LEAVE).count(),
        'pending_leave_count': LeaveRecord.query.filter(
            LeaveRecord.employee_id.in_(employee_ids),
            LeaveRecord.status == LeaveStatus.PENDING
        ).count(),
        'pending_approval_count': Approval.query.join(Document).filter(
            Approval.approver_id == current_user.id,
            Approval.status == ApprovalStatus.PENDING,
            Document.status == DocumentStatus.PENDING_APPROVAL
        ).count(),
        'unread_notification_count': unread_count(current_user),
        'today': date.today().isoformat(),
    }
    if current_user.role in (Role.ADMIN, Role.MANAGER):
        data['pending_subsidy_count'] = SubsidyApplication.query.filter(
            SubsidyApplication.employee_id.in_(employee_ids),
            SubsidyApplication.status == SubsidyStatus.PENDING
        ).count()
    return jsonify({'success': True, 'data': data})


@main_bp.app_errorhandler(ActionError)
def handle_action_error(e):
    """서비스 계층 오류 -> JSON 응답"""
    db.session.rollback()
    return jsonify(e.to_dict()), e.status_code


@main_bp.app_errorhandler(404)
def page_not_found(e):
    """404 에러 핸들러"""
    return jsonify({'success': False, 'error': '페이지를 찾을 수 없습니다.'}), 404


@main_bp.app_errorhandler(405)
def method_not_allowed(e):
    return jsonify({'success': False, 'error': '허용되지 않은 요청입니다.'}), 405


@main_bp.app_errorhandler(500)
def internal_server_error(e):
    """500 에러 핸들러"""
    db.session.rollback()
    logger.error("서버 내부 오류: %s", e)
    return jsonify({'success': False, 'error': '서버 내부 오류가 발생했습니다.'}), 500
