from flask import Blueprint, jsonify, request
from flask_login import login_required, current_user

from exceptions import InvalidInputError
from expense_service import create_expense, approve_expense, reject_expense, list_expenses, expense_to_dict
from forms import ExpenseForm, RejectForm, first_error
from models import Role
from rbac import roles_required

expenses_bp = Blueprint('expenses', __name__)

staff_required = roles_required(Role.ADMIN, Role.MANAGER)


@expenses_bp.route('', methods=['GET'])
@login_required
def expense_list():
    expenses = list_expenses(current_user, request.args.get('status'))
    return jsonify({'success': True, 'data': [expense_to_dict(e) for e in expenses]})


@expenses_bp.route('', methods=['POST'])
@login_required
def submit():
    form = ExpenseForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))
    expense = create_expense(current_user, {
        'title': form.title.data,
        'amount': form.amount.data,
        'category': form.category.data,
        'date': form.date.data,
        'description': form.description.data,
    })
    return jsonify({'success': True, 'data': expense_to_dict(expense)}), 201


@expenses_bp.route('/<int:expense_id>/approve', methods=['POST'])
@login_required
@staff_required
def approve(expense_id):
    expense = approve_expense(current_user, expense_id)
    return jsonify({'success': True, 'data': expense_to_dict(expense)})


@expenses_bp.route('/<int:expense_id>/reject', methods=['POST'])
@login_required
@staff_required
def reject(expense_id):
    form = RejectForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))
    expense = reject_expense(current_user, expense_id, form.reason.data)
    return jsonify({'success': True, 'data': expense_to_dict(expense)})
