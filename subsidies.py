from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from exceptions import InvalidInputError
from forms import SubsidyForm, RejectForm, first_error
from models import Role
from notifications import send_subsidy_deadline_reminders
from rbac import roles_required, admin_required
from subsidy_service import (check_eligibility, create_subsidy_application, update_subsidy_application,
                             delete_subsidy_application, approve_subsidy, reject_subsidy, mark_subsidy_paid,
                             list_subsidies, subsidy_to_dict)
from utils import parse_int

subsidies_bp = Blueprint('subsidies', __name__)

staff_required = roles_required(Role.ADMIN, Role.MANAGER)


def _json():
    return request.get_json(silent=True) or {}


def _subsidy_data():
    """폼 검증 후 유형별 추가 입력값을 합친 신청 데이터"""
    form = SubsidyForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))
    data = dict(_json())
    data.update({
        'employee_id': form.employee_id.data,
        'type': form.type.data,
        'year': form.year.data,
        'month': form.month.data,
    })
    return data


@subsidies_bp.route('', methods=['GET'])
@login_required
@staff_required
def subsidy_list():
    subsidies = list_subsidies(current_user, request.args.get('status'), request.args.get('year', type=int))
    return jsonify({'success': True, 'data': [subsidy_to_dict(s) for s in subsidies]})


@subsidies_bp.route('/check', methods=['POST'])
@login_required
@staff_required
def check():
    """지원 요건 사전 판정 (저장하지 않음)"""
    result = check_eligibility(current_user, _subsidy_data())
    return jsonify({
        'success': True,
        'data': {
            'eligible': result.eligible,
            'calculated_amount': result.calculated_amount,
            'reason': result.reason,
            'details': result.details,
        },
    })


@subsidies_bp.route('', methods=['POST'])
@login_required
@staff_required
def apply():
    subsidy = create_subsidy_application(current_user, _subsidy_data())
    return jsonify({'success': True, 'data': subsidy_to_dict(subsidy)}), 201


@subsidies_bp.route('/<int:subsidy_id>', methods=['PUT'])
@login_required
@staff_required
def edit(subsidy_id):
    subsidy = update_subsidy_application(current_user, subsidy_id, _json())
    return jsonify({'success': True, 'data': subsidy_to_dict(subsidy)})


@subsidies_bp.route('/<int:subsidy_id>', methods=['DELETE'])
@login_required
@staff_required
def remove(subsidy_id):
    delete_subsidy_application(current_user, subsidy_id)
    return jsonify({'success': True})


@subsidies_bp.route('/<int:subsidy_id>/approve', methods=['POST'])
@login_required
@staff_required
def approve(subsidy_id):
    subsidy = approve_subsidy(current_user, subsidy_id, _json().get('approved_amount'))
    return jsonify({'success': True, 'data': subsidy_to_dict(subsidy)})


@subsidies_bp.route('/<int:subsidy_id>/reject', methods=['POST'])
@login_required
@staff_required
def reject(subsidy_id):
    form = RejectForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))
    subsidy = reject_subsidy(current_user, subsidy_id, form.reason.data)
    return jsonify({'success': True, 'data': subsidy_to_dict(subsidy)})


@subsidies_bp.route('/<int:subsidy_id>/pay', methods=['POST'])
@login_required
@admin_required
def pay(subsidy_id):
    """지급 완료 처리"""
    subsidy = mark_subsidy_paid(current_user, subsidy_id)
    return jsonify({'success': True, 'data': subsidy_to_dict(subsidy)})


@subsidies_bp.route('/deadline-reminders', methods=['POST'])
@login_required
@admin_required
def deadline_reminders():
    """신청 마감 안내 메일 일괄 발송"""
    data = _json()
    employee_ids = data.get('employee_ids')
    if not isinstance(employee_ids, list):
        raise InvalidInputError('알림 대상 직원을 선택해주세요.')
    result = send_subsidy_deadline_reminders(
        current_user,
        data.get('type'),
        data.get('deadline'),
        [parse_int(i, '직원 ID가 올바르지 않습니다.') for i in employee_ids],
        parse_int(data.get('estimated_amount'), '예상 지급액이 올바르지 않습니다.') or 0,
    )
    return jsonify({'success': True, 'data': result})
