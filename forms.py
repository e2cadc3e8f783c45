from flask_wtf import FlaskForm
from flask_wtf.file import FileField, FileRequired, FileAllowed
from wtforms import StringField, PasswordField, SelectField, TextAreaField, DateField, IntegerField, \
    BooleanField, FloatField
from wtforms.validators import DataRequired, InputRequired, Email, EqualTo, Length, NumberRange, Optional, Regexp, \
    ValidationError

from constants import LEAVE_TYPES, HALF_DAY_TYPES, POSITIONS, EMPLOYEE_STATUS, DOCUMENT_TYPES, SUBSIDY_TYPES, \
    EXPENSE_CATEGORIES, EXPENSE_MAX_AMOUNT

TIME_PATTERN = r'^([01]\d|2[0-3]):[0-5]\d$'


def first_error(form):
    """폼 검증 오류 중 첫 번째 메시지"""
    for errors in form.errors.values():
        if errors:
            return errors[0]
    return '입력값이 올바르지 않습니다.'


class LoginForm(FlaskForm):
    """로그인 폼"""
    username = StringField('아이디', validators=[DataRequired('아이디를 입력하세요.')])
    password = PasswordField('비밀번호', validators=[DataRequired('비밀번호를 입력하세요.')])


class ChangePasswordForm(FlaskForm):
    """비밀번호 변경 폼"""
    current_password = PasswordField('현재 비밀번호', validators=[DataRequired('현재 비밀번호를 입력하세요.')])
    new_password = PasswordField('새 비밀번호', validators=[
        DataRequired('새 비밀번호를 입력하세요.'),
        Length(min=8, message='비밀번호는 최소 8자 이상이어야 합니다.')
    ])
    new_password_confirm = PasswordField('새 비밀번호 확인', validators=[
        DataRequired('새 비밀번호 확인을 입력하세요.'),
        EqualTo('new_password', message='비밀번호가 일치하지 않습니다.')
    ])


class EmployeeForm(FlaskForm):
    """직원 등록 폼"""
    name = StringField('이름', validators=[
        DataRequired('이름을 입력하세요.'),
        Length(min=2, max=100, message='이름은 2자 이상이어야 합니다.')
    ])
    email = StringField('이메일', validators=[Optional(), Email('올바른 이메일 형식이 아닙니다.')])
    phone = StringField('전화번호', validators=[Optional()])
    department_id = IntegerField('부서', validators=[Optional()])
    position = SelectField('직급', choices=[(p, p) for p in POSITIONS], default='사원')
    join_date = DateField('입사일', validators=[DataRequired('입사일을 선택하세요.')], format='%Y-%m-%d')
    birth_date = DateField('생년월일', validators=[Optional()], format='%Y-%m-%d')
    base_salary = IntegerField('기본급', validators=[
        InputRequired('기본급을 입력하세요.'),
        NumberRange(min=0, message='기본급은 0 이상이어야 합니다.')
    ])


class EmployeeStatusForm(FlaskForm):
    status = SelectField('상태', choices=list(EMPLOYEE_STATUS.items()),
                         validators=[DataRequired('상태를 선택하세요.')])
    resign_date = DateField('퇴사일', validators=[Optional()], format='%Y-%m-%d')


class LeaveRequestForm(FlaskForm):
    """휴가 신청 폼"""
    employee_id = IntegerField('직원', validators=[Optional()])
    type = SelectField('휴가 유형', choices=list(LEAVE_TYPES.items()),
                       validators=[DataRequired('휴가 유형을 선택하세요.')])
    start_date = DateField('시작일', validators=[DataRequired('시작일을 선택하세요.')], format='%Y-%m-%d')
    end_date = DateField('종료일', validators=[DataRequired('종료일을 선택하세요.')], format='%Y-%m-%d')
    half_day_type = SelectField('반차', choices=[('', '종일')] + list(HALF_DAY_TYPES.items()),
                                validators=[Optional()])
    reason = TextAreaField('휴가 사유')
    child_birth_date = DateField('자녀 출생일', validators=[Optional()], format='%Y-%m-%d')
    is_multiple_birth = BooleanField('다태아')

    def validate_end_date(self, field):
        if self.start_date.data and field.data and field.data < self.start_date.data:
            raise ValidationError('시작일은 종료일보다 이전이어야 합니다.')


class RejectForm(FlaskForm):
    """반려 사유 폼"""
    reason = TextAreaField('반려 사유', validators=[
        DataRequired('반려 사유를 입력하세요.'),
        Length(max=500, message='반려 사유는 500자 이하로 입력하세요.')
    ])


class ApprovalForm(FlaskForm):
    comment = TextAreaField('의견', validators=[Optional(), Length(max=500, message='의견은 500자 이하로 입력하세요.')])


class DocumentForm(FlaskForm):
    """전자결재 문서 폼 (결재선은 JSON 목록으로 별도 전달)"""
    type = SelectField('문서 유형', choices=list(DOCUMENT_TYPES.items()),
                       validators=[DataRequired('문서 유형을 선택하세요.')])
    title = StringField('제목', validators=[
        DataRequired('제목을 입력하세요.'),
        Length(max=200, message='제목은 200자 이하로 입력하세요.')
    ])
    employee_id = IntegerField('대상 직원', validators=[Optional()])


class AttendanceForm(FlaskForm):
    """출퇴근 기록 폼"""
    employee_id = IntegerField('직원', validators=[DataRequired('직원을 선택하세요.')])
    date = DateField('근무일', validators=[DataRequired('근무일을 선택하세요.')], format='%Y-%m-%d')
    clock_in = StringField('출근', validators=[
        DataRequired('출근 시각을 입력하세요.'), Regexp(TIME_PATTERN, message='HH:MM 형식으로 입력하세요.')
    ])
    clock_out = StringField('퇴근', validators=[
        DataRequired('퇴근 시각을 입력하세요.'), Regexp(TIME_PATTERN, message='HH:MM 형식으로 입력하세요.')
    ])
    break_minutes = IntegerField('휴게시간(분)', default=60, validators=[
        Optional(), NumberRange(min=0, max=720, message='휴게시간이 올바르지 않습니다.')
    ])
    is_holiday = BooleanField('휴일 근무')


class PayrollForm(FlaskForm):
    employee_id = IntegerField('직원', validators=[DataRequired('직원을 선택하세요.')])
    year = IntegerField('연도', validators=[DataRequired('연도를 입력하세요.'), NumberRange(min=2000, max=2100)])
    month = IntegerField('월', validators=[
        DataRequired('월을 입력하세요.'), NumberRange(min=1, max=12, message='월은 1~12 사이여야 합니다.')
    ])


class SubsidyForm(FlaskForm):
    """지원금 신청 폼 (유형별 추가 입력은 JSON으로 전달)"""
    employee_id = IntegerField('직원', validators=[DataRequired('직원을 선택하세요.')])
    type = SelectField('지원금 유형', choices=list(SUBSIDY_TYPES.items()),
                       validators=[DataRequired('지원금 유형을 선택하세요.')])
    year = IntegerField('연도', validators=[DataRequired('연도를 입력하세요.')])
    month = IntegerField('월', validators=[
        DataRequired('월을 입력하세요.'), NumberRange(min=1, max=12, message='월은 1~12 사이여야 합니다.')
    ])
    usage_count = IntegerField('유연근무 사용 횟수', validators=[Optional(), NumberRange(min=0)])
    replacement_employee_id = IntegerField('대체인력', validators=[Optional()])
    replacement_start_date = DateField('대체인력 근무 시작일', validators=[Optional()], format='%Y-%m-%d')
    child_birth_date = DateField('자녀 출생일', validators=[Optional()], format='%Y-%m-%d')
    weekly_hours = FloatField('주당 근로시간', validators=[Optional(), NumberRange(min=0, max=52)])


class ExpenseForm(FlaskForm):
    """경비 신청 폼"""
    title = StringField('항목명', validators=[
        DataRequired('항목명을 입력해주세요.'),
        Length(min=2, max=50, message='항목명은 2자 이상 50자 이하로 입력해주세요.')
    ])
    amount = IntegerField('금액', validators=[
        InputRequired('금액을 입력해주세요.'),
        NumberRange(min=1, max=EXPENSE_MAX_AMOUNT, message='금액은 1원 이상 1천만원 이하로 입력해주세요.')
    ])
    category = SelectField('카테고리', choices=[(c, c) for c in EXPENSE_CATEGORIES],
                           validators=[DataRequired('카테고리를 선택해주세요.')])
    date = DateField('날짜', validators=[DataRequired('날짜를 선택해주세요.')], format='%Y-%m-%d')
    description = TextAreaField('상세 내역', validators=[
        Optional(), Length(max=500, message='상세 내역은 500자 이하로 입력해주세요.')
    ])


class HolidayForm(FlaskForm):
    """공휴일 등록 폼"""
    date = DateField('날짜', validators=[DataRequired('날짜를 선택하세요.')], format='%Y-%m-%d')
    name = StringField('공휴일명', validators=[DataRequired('공휴일명을 입력하세요.')])


class CompanyInfoForm(FlaskForm):
    """회사 정보 관리 폼"""
    name = StringField('회사명', validators=[DataRequired('회사명을 입력하세요.')])
    ceo_name = StringField('대표자명', validators=[DataRequired('대표자명을 입력하세요.')])
    registration_number = StringField('사업자등록번호')
    address = StringField('회사 주소')
    phone = StringField('전화번호')
    payday = IntegerField('급여 지급일', default=25, validators=[
        Optional(), NumberRange(min=1, max=31, message='급여 지급일은 1~31일 사이여야 합니다.')
    ])


class BulkUploadForm(FlaskForm):
    """직원 일괄 등록 (엑셀)"""
    file = FileField('엑셀 파일', validators=[
        FileRequired('파일을 선택하세요.'),
        FileAllowed(['xlsx'], '엑셀(.xlsx) 파일만 업로드할 수 있습니다.')
    ])
