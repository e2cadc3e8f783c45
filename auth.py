import logging

from flask import Blueprint, jsonify
from flask_login import login_user, logout_user, current_user, login_required
from flask_wtf.csrf import generate_csrf

from app import db
from exceptions import InvalidInputError
from forms import LoginForm, ChangePasswordForm, first_error
from models import User

logger = logging.getLogger(__name__)

auth_bp = Blueprint('auth', __name__)


def user_to_dict(user):
    return {
        'id': user.id,
        'username': user.username,
        'name': user.name,
        'email': user.email,
        'role': user.role,
        'employee_id': user.employee.id if user.employee else None,
    }


@auth_bp.route('/csrf-token')
def csrf_token():
    """폼 전송용 CSRF 토큰"""
    return jsonify({'csrf_token': generate_csrf()})


@auth_bp.route('/login', methods=['POST'])
def login():
    """로그인"""
    form = LoginForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))

    user = User.query.filter_by(username=form.username.data).first()
    if user is None or not user.check_password(form.password.data):
        logger.warning("로그인 실패: %s", form.username.data)
        return jsonify({'success': False, 'error': '아이디 또는 비밀번호가 잘못되었습니다.'}), 401

    login_user(user)
    return jsonify({'success': True, 'user': user_to_dict(user)})


@auth_bp.route('/logout', methods=['GET', 'POST'])
@login_required
def logout():
    """로그아웃"""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'user': user_to_dict(current_user)})


@auth_bp.route('/change-password', methods=['POST'])
@login_required
def change_password():
    """비밀번호 변경"""
    form = ChangePasswordForm()
    if not form.validate_on_submit():
        raise InvalidInputError(first_error(form))

    if not current_user.check_password(form.current_password.data):
        raise InvalidInputError('현재 비밀번호가 올바르지 않습니다.')

    current_user.set_password(form.new_password.data)
    db.session.commit()
    return jsonify({'success': True, 'message': '비밀번호가 변경되었습니다.'})
