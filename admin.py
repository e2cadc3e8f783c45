import logging
from dataclasses import asdict
from datetime import date

from flask import Blueprint, jsonify, request, send_file
from flask_login import login_required, current_user

from app import db
from exceptions import InvalidInputError, NotFoundError, DuplicateError
from forms import (EmployeeForm, EmployeeStatusForm, RejectForm, AttendanceForm, PayrollForm, HolidayForm,
                   CompanyInfoForm, BulkUploadForm, first_error)
from holidays import add_korean_holidays
from models import Holiday, CompanyInfo, Department, Employee, Role
from rbac import roles_required, admin_required, employee_query_for
from utils import parse_int
from attendance_service import (record_attendance, confirm_attendance, unconfirm_attendance, delete_attendance,
                                get_monthly_attendance, attendance_to_dict)
from employee_service import (create_employee, update_employee, update_employee_status, bulk_update_work_type,
                              import_employees_from_excel, link_user_account, get_employee_for,
                              employee_to_dict)
from leave_service import list_leaves, approve_leave, reject_leave, delete_leave, leave_to_dict
from payroll_service import (create_monthly_payroll, confirm_payrolls, delete_payroll, get_payroll,
                             list_payrolls, export_payroll_ledger, calculate_employee_severance,
                             payroll_to_dict)
from accounting_service import (get_withholding_tax_summary, export_withholding_tax, get_all_severance_estimates,
                                get_dc_contribution, get_all_dc_contributions, get_payroll_stats_by_department,
                                get_payroll_stats_by_position, get_monthly_trend)
from notifications import list_notification_logs, list_notification_log_types, notification_log_to_dict

logger = logging.getLogger(__name__)

admin_bp = Blueprint('admin', __name__)

staff_required = roles_required(Role.ADMIN, Role.MANAGER)


def _json():
    return request.get_json(silent=True) or {}


def _validated(form):
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))
    return form


def _id_list(key):
    ids = _json().get(key)
    if not isinstance(ids, list) or not ids:
        raise InvalidInputError('대상을 선택해주세요.')
    ids = [parse_int(i, '대상 ID가 올바르지 않습니다.') for i in ids]
    if None in ids:
        raise InvalidInputError('대상 ID가 올바르지 않습니다.')
    return ids


# ─── 직원 관리 ───

@admin_bp.route('/departments')
@login_required
@staff_required
def departments():
    items = Department.query.order_by(Department.sort_order, Department.name).all()
    return jsonify({'success': True, 'data': [{'id': d.id, 'name': d.name} for d in items]})


@admin_bp.route('/employees', methods=['GET'])
@login_required
@staff_required
def list_employees():
    """직원 목록 (권한 범위 내)"""
    query = employee_query_for(current_user)
    if request.args.get('status'):
        query = query.filter(Employee.status == request.args['status'])
    if request.args.get('department_id', type=int):
        query = query.filter(Employee.department_id == request.args.get('department_id', type=int))
    if request.args.get('q'):
        query = query.filter(Employee.name.contains(request.args['q'].strip()))
    include_salary = current_user.role == Role.ADMIN
    employees = query.order_by(Employee.employee_no).all()
    return jsonify({'success': True, 'data': [employee_to_dict(e, include_salary) for e in employees]})


@admin_bp.route('/employees', methods=['POST'])
@login_required
@admin_required
def register_employee():
    """직원 등록"""
    _validated(EmployeeForm())
    employee = create_employee(current_user, _json())
    return jsonify({'success': True, 'data': employee_to_dict(employee, include_salary=True)}), 201


@admin_bp.route('/employees/<int:employee_id>', methods=['GET'])
@login_required
@staff_required
def employee_detail(employee_id):
    employee = get_employee_for(current_user, employee_id)
    include_salary = current_user.role == Role.ADMIN
    return jsonify({'success': True, 'data': employee_to_dict(employee, include_salary)})


@admin_bp.route('/employees/<int:employee_id>', methods=['PUT'])
@login_required
@admin_required
def edit_employee(employee_id):
    employee = update_employee(current_user, employee_id, _json())
    return jsonify({'success': True, 'data': employee_to_dict(employee, include_salary=True)})


@admin_bp.route('/employees/<int:employee_id>/status', methods=['POST'])
@login_required
@admin_required
def change_employee_status(employee_id):
    form = _validated(EmployeeStatusForm())
    employee = update_employee_status(current_user, employee_id, form.status.data, form.resign_date.data)
    return jsonify({'success': True, 'data': employee_to_dict(employee)})


@admin_bp.route('/employees/<int:employee_id>/link-user', methods=['POST'])
@login_required
@admin_required
def link_employee_user(employee_id):
    user_id = _json().get('user_id')
    if not user_id:
        raise InvalidInputError('사용자를 선택해주세요.')
    employee = link_user_account(current_user, employee_id, parse_int(user_id, '사용자 ID가 올바르지 않습니다.'))
    return jsonify({'success': True, 'data': employee_to_dict(employee)})


@admin_bp.route('/employees/bulk-work-type', methods=['POST'])
@login_required
@admin_required
def change_work_type():
    updated = bulk_update_work_type(current_user, _id_list('employee_ids'), _json().get('work_type'))
    return jsonify({'success': True, 'updated': updated})


@admin_bp.route('/employees/import', methods=['POST'])
@login_required
@admin_required
def upload_employees():
    """엑셀 파일로 직원 일괄 등록"""
    form = _validated(BulkUploadForm())
    created, errors = import_employees_from_excel(current_user, form.file.data)
    return jsonify({'success': True, 'created': created, 'errors': errors})


@admin_bp.route('/employees/<int:employee_id>/severance')
@login_required
@admin_required
def employee_severance(employee_id):
    result = calculate_employee_severance(current_user, employee_id, request.args.get('resign_date'))
    return jsonify({'success': True, 'data': asdict(result)})


# ─── 휴가 관리 ───

@admin_bp.route('/leaves')
@login_required
@staff_required
def manage_leaves():
    leaves = list_leaves(
        current_user,
        status=request.args.get('status'),
        employee_id=request.args.get('employee_id', type=int),
        year=request.args.get('year', type=int),
    )
    return jsonify({'success': True, 'data': [leave_to_dict(leave) for leave in leaves]})


@admin_bp.route('/leaves/<int:leave_id>/approve', methods=['POST'])
@login_required
@staff_required
def approve_leave_request(leave_id):
    leave = approve_leave(current_user, leave_id)
    return jsonify({'success': True, 'data': leave_to_dict(leave)})


@admin_bp.route('/leaves/<int:leave_id>/reject', methods=['POST'])
@login_required
@staff_required
def reject_leave_request(leave_id):
    form = _validated(RejectForm())
    leave = reject_leave(current_user, leave_id, form.reason.data)
    return jsonify({'success': True, 'data': leave_to_dict(leave)})


@admin_bp.route('/leaves/<int:leave_id>', methods=['DELETE'])
@login_required
@staff_required
def remove_leave(leave_id):
    delete_leave(current_user, leave_id)
    return jsonify({'success': True})


# ─── 근태 관리 ───

@admin_bp.route('/attendance', methods=['GET'])
@login_required
@staff_required
def attendance_list():
    today = date.today()
    employee_id = request.args.get('employee_id', type=int)
    if not employee_id:
        raise InvalidInputError('직원을 선택해주세요.')
    records, stats = get_monthly_attendance(
        current_user, employee_id,
        request.args.get('year', today.year, type=int),
        request.args.get('month', today.month, type=int),
    )
    return jsonify({'success': True, 'data': [attendance_to_dict(r) for r in records], 'stats': stats})


@admin_bp.route('/attendance', methods=['POST'])
@login_required
@staff_required
def save_attendance():
    form = _validated(AttendanceForm())
    record = record_attendance(
        current_user, form.employee_id.data, form.date.data, form.clock_in.data, form.clock_out.data,
        form.break_minutes.data, form.is_holiday.data,
    )
    return jsonify({'success': True, 'data': attendance_to_dict(record)})


@admin_bp.route('/attendance/confirm', methods=['POST'])
@login_required
@admin_required
def confirm_attendance_records():
    confirmed = confirm_attendance(current_user, _id_list('record_ids'))
    return jsonify({'success': True, 'confirmed': confirmed})


@admin_bp.route('/attendance/<int:record_id>/unconfirm', methods=['POST'])
@login_required
@staff_required
def unconfirm_attendance_record(record_id):
    record = unconfirm_attendance(current_user, record_id)
    return jsonify({'success': True, 'data': attendance_to_dict(record)})


@admin_bp.route('/attendance/<int:record_id>', methods=['DELETE'])
@login_required
@staff_required
def remove_attendance(record_id):
    delete_attendance(current_user, record_id)
    return jsonify({'success': True})


# ─── 급여 관리 ───

@admin_bp.route('/payroll', methods=['GET'])
@login_required
@admin_required
def payroll_list():
    records = list_payrolls(current_user, request.args.get('year', type=int), request.args.get('month', type=int))
    return jsonify({'success': True, 'data': [payroll_to_dict(r) for r in records]})


@admin_bp.route('/payroll', methods=['POST'])
@login_required
@admin_required
def create_payroll():
    form = _validated(PayrollForm())
    record = create_monthly_payroll(current_user, form.employee_id.data, form.year.data, form.month.data)
    return jsonify({'success': True, 'data': payroll_to_dict(record)}), 201


@admin_bp.route('/payroll/confirm', methods=['POST'])
@login_required
@admin_required
def confirm_payroll_records():
    confirmed = confirm_payrolls(current_user, _id_list('payroll_ids'))
    return jsonify({'success': True, 'confirmed': confirmed})


@admin_bp.route('/payroll/<int:payroll_id>', methods=['GET'])
@login_required
def payroll_detail(payroll_id):
    record = get_payroll(current_user, payroll_id)
    return jsonify({'success': True, 'data': payroll_to_dict(record)})


@admin_bp.route('/payroll/<int:payroll_id>', methods=['DELETE'])
@login_required
@admin_required
def remove_payroll(payroll_id):
    delete_payroll(current_user, payroll_id)
    return jsonify({'success': True})


@admin_bp.route('/payroll/ledger')
@login_required
@admin_required
def payroll_ledger():
    """급여대장 엑셀 다운로드"""
    today = date.today()
    output, filename = export_payroll_ledger(
        current_user,
        request.args.get('year', today.year, type=int),
        request.args.get('month', today.month, type=int),
    )
    return send_file(
        output,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=filename
    )


# ─── 회계/재무 ───

@admin_bp.route('/accounting/withholding-tax')
@login_required
@admin_required
def withholding_tax_summary():
    """월별 원천징수 집계"""
    year = request.args.get('year', date.today().year, type=int)
    summary, yearly_total = get_withholding_tax_summary(current_user, year)
    return jsonify({'success': True, 'data': {'year': year, 'summary': summary, 'yearly_total': yearly_total}})


@admin_bp.route('/accounting/withholding-tax/export')
@login_required
@admin_required
def withholding_tax_export():
    output, filename = export_withholding_tax(current_user, request.args.get('year', date.today().year, type=int))
    return send_file(
        output,
        mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
        as_attachment=True,
        download_name=filename
    )


@admin_bp.route('/accounting/severance-estimates')
@login_required
@admin_required
def severance_estimates():
    estimates = get_all_severance_estimates(current_user, request.args.get('retirement_date'))
    return jsonify({
        'success': True,
        'data': estimates,
        'total_amount': sum(e['amount'] for e in estimates),
    })


@admin_bp.route('/accounting/dc-pension')
@login_required
@admin_required
def dc_pension_list():
    rows, totals = get_all_dc_contributions(current_user)
    return jsonify({'success': True, 'data': rows, 'totals': totals})


@admin_bp.route('/accounting/dc-pension/<int:employee_id>')
@login_required
@admin_required
def dc_pension_detail(employee_id):
    return jsonify({'success': True, 'data': get_dc_contribution(current_user, employee_id)})


@admin_bp.route('/accounting/payroll-stats')
@login_required
@admin_required
def payroll_stats():
    """부서별/직급별 급여 통계와 월별 추이"""
    year = request.args.get('year', date.today().year, type=int)
    month = request.args.get('month', type=int)
    return jsonify({
        'success': True,
        'data': {
            'by_department': get_payroll_stats_by_department(current_user, year, month),
            'by_position': get_payroll_stats_by_position(current_user, year, month),
            'monthly_trend': get_monthly_trend(current_user, year),
        },
    })


# ─── 공휴일 관리 ───

@admin_bp.route('/holidays', methods=['GET'])
@login_required
@staff_required
def manage_holidays():
    year = request.args.get('year', date.today().year, type=int)
    holidays = Holiday.query.filter(
        db.extract('year', Holiday.date) == year
    ).order_by(Holiday.date).all()
    return jsonify({'success': True, 'data': [
        {'id': h.id, 'date': h.date.isoformat(), 'name': h.name} for h in holidays
    ]})


@admin_bp.route('/holidays', methods=['POST'])
@login_required
@admin_required
def add_holiday():
    form = _validated(HolidayForm())
    if Holiday.query.filter_by(date=form.date.data).first():
        raise DuplicateError('이미 등록된 공휴일입니다.')
    holiday = Holiday(date=form.date.data, name=form.name.data)
    db.session.add(holiday)
    db.session.commit()
    return jsonify({'success': True, 'data': {'id': holiday.id, 'date': holiday.date.isoformat(),
                                              'name': holiday.name}}), 201


@admin_bp.route('/holidays/korean/<int:year>', methods=['POST'])
@login_required
@admin_required
def add_korean_holidays_for_year(year):
    added = add_korean_holidays(year)
    return jsonify({'success': True, 'added': added})


@admin_bp.route('/holidays/<int:holiday_id>', methods=['DELETE'])
@login_required
@admin_required
def delete_holiday(holiday_id):
    holiday = db.session.get(Holiday, holiday_id)
    if holiday is None:
        raise NotFoundError('공휴일을 찾을 수 없습니다.')
    db.session.delete(holiday)
    db.session.commit()
    return jsonify({'success': True})


# ─── 회사 정보 ───

def _company_to_dict(company):
    if company is None:
        return None
    return {
        'name': company.name,
        'ceo_name': company.ceo_name,
        'registration_number': company.registration_number,
        'address': company.address,
        'phone': company.phone,
        'payday': company.payday,
    }


@admin_bp.route('/company', methods=['GET'])
@login_required
def company_info():
    return jsonify({'success': True, 'data': _company_to_dict(CompanyInfo.query.first())})


@admin_bp.route('/company', methods=['PUT'])
@login_required
@admin_required
def update_company_info():
    form = _validated(CompanyInfoForm())
    company = CompanyInfo.query.first()
    if company is None:
        company = CompanyInfo()
        db.session.add(company)
    company.name = form.name.data
    company.ceo_name = form.ceo_name.data
    company.registration_number = form.registration_number.data
    company.address = form.address.data
    company.phone = form.phone.data
    company.payday = form.payday.data or 25
    db.session.commit()
    logger.info("회사 정보 변경: %s", company.name)
    return jsonify({'success': True, 'data': _company_to_dict(company)})


# ─── 알림 발송 이력 ───

@admin_bp.route('/notification-logs')
@login_required
@admin_required
def notification_logs():
    logs, pagination = list_notification_logs(
        current_user,
        notification_type=request.args.get('type'),
        status=request.args.get('status'),
        recipient_id=request.args.get('recipient_id', type=int),
        start_date=request.args.get('start_date'),
        end_date=request.args.get('end_date'),
        page=request.args.get('page', 1, type=int),
        limit=request.args.get('limit', 20, type=int),
    )
    return jsonify({
        'success': True,
        'data': [notification_log_to_dict(log) for log in logs],
        'pagination': pagination,
    })


@admin_bp.route('/notification-logs/types')
@login_required
@admin_required
def notification_log_types():
    return jsonify({'success': True, 'data': list_notification_log_types(current_user)})
