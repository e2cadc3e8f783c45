import json

from app import db
from flask_login import UserMixin
from datetime import datetime
from werkzeug.security import generate_password_hash, check_password_hash

# 사용자 역할 정의
class Role:
    ADMIN = 'admin'
    MANAGER = 'manager'
    VIEWER = 'viewer'

class EmployeeStatus:
    ACTIVE = 'ACTIVE'
    ON_LEAVE = 'ON_LEAVE'
    RESIGNED = 'RESIGNED'

# 휴가 상태 정의
class LeaveStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'

class DocumentStatus:
    DRAFT = 'DRAFT'
    PENDING_APPROVAL = 'PENDING_APPROVAL'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    ISSUED = 'ISSUED'
    ARCHIVED = 'ARCHIVED'

class ApprovalStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    SKIPPED = 'SKIPPED'

class SubsidyStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'
    PAID = 'PAID'

class ExpenseStatus:
    PENDING = 'PENDING'
    APPROVED = 'APPROVED'
    REJECTED = 'REJECTED'


class CompanyInfo(db.Model):
    """회사 정보 모델"""
    __tablename__ = 'company_info'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(100), nullable=False)  # 회사명
    ceo_name = db.Column(db.String(50), nullable=False)  # 대표자명
    registration_number = db.Column(db.String(30))  # 사업자등록번호
    address = db.Column(db.String(200))  # 회사 주소
    phone = db.Column(db.String(20))  # 전화번호
    payday = db.Column(db.Integer, default=25)  # 급여 지급일

    def __repr__(self):
        return f'<CompanyInfo {self.name}>'


class Department(db.Model):
    __tablename__ = 'departments'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(50), unique=True, nullable=False)
    sort_order = db.Column(db.Integer, default=0)

    employees = db.relationship('Employee', backref='department')

    def __repr__(self):
        return f'<Department {self.name}>'


class User(UserMixin, db.Model):
    __tablename__ = 'users'

    id = db.Column(db.Integer, primary_key=True)
    username = db.Column(db.String(64), unique=True, nullable=False)
    email = db.Column(db.String(120), unique=True, nullable=False)
    password_hash = db.Column(db.String(256), nullable=False)
    name = db.Column(db.String(100), nullable=False)  # 사용자 실명
    role = db.Column(db.String(20), nullable=False, default=Role.VIEWER)  # 역할 (관리자/부서장/일반)
    created_at = db.Column(db.DateTime, default=datetime.now)

    # 관계 설정
    employee = db.relationship('Employee', backref='user', uselist=False)

    def set_password(self, password):
        self.password_hash = generate_password_hash(password)

    def check_password(self, password):
        return check_password_hash(self.password_hash, password)

    def is_admin(self):
        return self.role == Role.ADMIN

    def is_manager(self):
        return self.role == Role.MANAGER

    @property
    def department_id(self):
        """연결된 직원 정보의 부서 (없으면 None)"""
        return self.employee.department_id if self.employee else None

    def __repr__(self):
        return f'<User {self.username}>'


class Employee(db.Model):
    """직원 인사/급여 기본 정보"""
    __tablename__ = 'employees'

    id = db.Column(db.Integer, primary_key=True)
    employee_no = db.Column(db.String(20), unique=True, nullable=False)  # 사번
    name = db.Column(db.String(100), nullable=False)
    email = db.Column(db.String(120), unique=True)
    phone = db.Column(db.String(20))
    address = db.Column(db.String(200))
    birth_date = db.Column(db.Date)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True)
    department_id = db.Column(db.Integer, db.ForeignKey('departments.id'))
    position = db.Column(db.String(20), nullable=False, default='사원')  # 직급

    join_date = db.Column(db.Date, nullable=False)  # 입사일
    resign_date = db.Column(db.Date)  # 퇴사일
    status = db.Column(db.String(20), nullable=False, default=EmployeeStatus.ACTIVE)
    contract_type = db.Column(db.String(20), nullable=False, default='REGULAR')
    contract_end_date = db.Column(db.Date)  # 계약 만료일 (계약직)
    probation_end_date = db.Column(db.Date)  # 수습 종료일
    work_type = db.Column(db.String(20), nullable=False, default='OFFICE')
    work_start_time = db.Column(db.String(5), default='09:00')
    work_end_time = db.Column(db.String(5), default='18:00')
    weekly_work_hours = db.Column(db.Float, default=40)

    # 급여 구성
    salary_type = db.Column(db.String(10), nullable=False, default='MONTHLY')
    base_salary = db.Column(db.Integer, nullable=False, default=0)  # 기본급 (시급제는 시급)
    meal_allowance = db.Column(db.Integer, nullable=False, default=0)  # 식대
    transport_allowance = db.Column(db.Integer, nullable=False, default=0)  # 교통비
    position_allowance = db.Column(db.Integer, nullable=False, default=0)  # 직책수당
    tax_free_meal = db.Column(db.Boolean, nullable=False, default=True)
    tax_free_transport = db.Column(db.Boolean, nullable=False, default=True)
    use_fixed_ot = db.Column(db.Boolean, nullable=False, default=False)  # 포괄임금
    fixed_ot_amount = db.Column(db.Integer, nullable=False, default=0)
    fixed_night_amount = db.Column(db.Integer, nullable=False, default=0)
    fixed_holiday_amount = db.Column(db.Integer, nullable=False, default=0)

    # 원천징수/4대보험
    dependents = db.Column(db.Integer, nullable=False, default=1)  # 공제대상 가족 수 (본인 포함)
    children_under_20 = db.Column(db.Integer, nullable=False, default=0)
    national_pension = db.Column(db.Boolean, nullable=False, default=True)
    health_insurance = db.Column(db.Boolean, nullable=False, default=True)
    employment_insurance = db.Column(db.Boolean, nullable=False, default=True)

    # 휴직 정보
    leave_type = db.Column(db.String(20))
    leave_start_date = db.Column(db.Date)
    leave_end_date = db.Column(db.Date)

    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    leave_records = db.relationship('LeaveRecord', backref='employee', cascade='all, delete-orphan')
    payroll_records = db.relationship('PayrollRecord', backref='employee', cascade='all, delete-orphan')
    attendance_records = db.relationship('AttendanceRecord', backref='employee', cascade='all, delete-orphan')

    @property
    def department_name(self):
        return self.department.name if self.department else ''

    def __repr__(self):
        return f'<Employee {self.employee_no} {self.name}>'


class LeaveRecord(db.Model):
    __tablename__ = 'leave_records'

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    type = db.Column(db.String(20), nullable=False, default='ANNUAL')
    start_date = db.Column(db.Date, nullable=False)
    end_date = db.Column(db.Date, nullable=False)
    days = db.Column(db.Float, nullable=False)  # 반차 지원을 위해 Float 타입
    half_day_type = db.Column(db.String(2))  # AM / PM
    reason = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=LeaveStatus.PENDING)
    child_birth_date = db.Column(db.Date)  # 출산/육아 관련 휴가
    is_multiple_birth = db.Column(db.Boolean, default=False)

    # 승인/반려 정보
    approved_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    approved_at = db.Column(db.DateTime)
    reject_reason = db.Column(db.Text)

    created_at = db.Column(db.DateTime, default=datetime.now)

    approver = db.relationship('User', foreign_keys=[approved_by])

    def __repr__(self):
        return f'<LeaveRecord {self.id} {self.employee_id} {self.status}>'


class AttendanceRecord(db.Model):
    __tablename__ = 'attendance_records'
    __table_args__ = (db.UniqueConstraint('employee_id', 'date', name='uq_attendance_employee_date'),)

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    date = db.Column(db.Date, nullable=False)
    clock_in = db.Column(db.String(5))  # HH:MM
    clock_out = db.Column(db.String(5))
    break_minutes = db.Column(db.Integer, nullable=False, default=60)
    work_minutes = db.Column(db.Integer, nullable=False, default=0)
    overtime_minutes = db.Column(db.Integer, nullable=False, default=0)
    night_minutes = db.Column(db.Integer, nullable=False, default=0)
    is_holiday = db.Column(db.Boolean, nullable=False, default=False)  # 휴일 근무 여부
    is_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    confirmed_at = db.Column(db.DateTime)
    confirmed_by = db.Column(db.Integer, db.ForeignKey('users.id'))

    @property
    def holiday_minutes(self):
        return self.work_minutes if self.is_holiday else 0

    def __repr__(self):
        return f'<AttendanceRecord {self.employee_id} {self.date}>'


class PayrollRecord(db.Model):
    """월별 급여 기록 (생성 시점의 급여 구성 스냅샷)"""
    __tablename__ = 'payroll_records'
    __table_args__ = (db.UniqueConstraint('employee_id', 'year', 'month', name='uq_payroll_employee_month'),)

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)

    base_salary = db.Column(db.Integer, nullable=False, default=0)
    meal_allowance = db.Column(db.Integer, nullable=False, default=0)
    transport_allowance = db.Column(db.Integer, nullable=False, default=0)
    position_allowance = db.Column(db.Integer, nullable=False, default=0)
    fixed_ot_amount = db.Column(db.Integer, nullable=False, default=0)
    fixed_night_amount = db.Column(db.Integer, nullable=False, default=0)
    fixed_holiday_amount = db.Column(db.Integer, nullable=False, default=0)
    variable_overtime_amount = db.Column(db.Integer, nullable=False, default=0)
    variable_night_amount = db.Column(db.Integer, nullable=False, default=0)
    variable_holiday_amount = db.Column(db.Integer, nullable=False, default=0)

    total_gross = db.Column(db.Integer, nullable=False, default=0)
    total_taxable = db.Column(db.Integer, nullable=False, default=0)
    national_pension = db.Column(db.Integer, nullable=False, default=0)
    health_insurance = db.Column(db.Integer, nullable=False, default=0)
    long_term_care = db.Column(db.Integer, nullable=False, default=0)
    employment_insurance = db.Column(db.Integer, nullable=False, default=0)
    total_insurance = db.Column(db.Integer, nullable=False, default=0)
    income_tax = db.Column(db.Integer, nullable=False, default=0)
    local_income_tax = db.Column(db.Integer, nullable=False, default=0)
    total_deduction = db.Column(db.Integer, nullable=False, default=0)
    net_salary = db.Column(db.Integer, nullable=False, default=0)

    is_confirmed = db.Column(db.Boolean, nullable=False, default=False)
    confirmed_at = db.Column(db.DateTime)
    confirmed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    created_at = db.Column(db.DateTime, default=datetime.now)

    def __repr__(self):
        return f'<PayrollRecord {self.employee_id} {self.year}-{self.month}>'


class Document(db.Model):
    __tablename__ = 'documents'

    id = db.Column(db.Integer, primary_key=True)
    type = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    content = db.Column(db.Text)  # JSON 문자열
    status = db.Column(db.String(20), nullable=False, default=DocumentStatus.DRAFT)
    version_number = db.Column(db.Integer, nullable=False, default=1)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'))  # 문서 대상 직원
    created_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    issued_at = db.Column(db.DateTime)
    archived_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.now)
    updated_at = db.Column(db.DateTime, default=datetime.now, onupdate=datetime.now)

    employee = db.relationship('Employee')
    creator = db.relationship('User', foreign_keys=[created_by])
    approvals = db.relationship('Approval', backref='document', cascade='all, delete-orphan',
                                order_by='Approval.approval_order')

    def get_content(self):
        return json.loads(self.content) if self.content else {}

    def set_content(self, data):
        self.content = json.dumps(data, ensure_ascii=False, default=str)

    def __repr__(self):
        return f'<Document {self.id} {self.type} {self.status}>'


class Approval(db.Model):
    """결재선 (순차 결재)"""
    __tablename__ = 'approvals'

    id = db.Column(db.Integer, primary_key=True)
    document_id = db.Column(db.Integer, db.ForeignKey('documents.id'), nullable=False)
    approver_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    approval_order = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=ApprovalStatus.PENDING)
    comment = db.Column(db.Text)
    processed_at = db.Column(db.DateTime)

    approver = db.relationship('User')

    def __repr__(self):
        return f'<Approval {self.document_id} #{self.approval_order} {self.status}>'


class SubsidyApplication(db.Model):
    __tablename__ = 'subsidy_applications'
    __table_args__ = (db.UniqueConstraint('employee_id', 'type', 'year', 'month', name='uq_subsidy_period'),)

    id = db.Column(db.Integer, primary_key=True)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'), nullable=False)
    type = db.Column(db.String(30), nullable=False)
    year = db.Column(db.Integer, nullable=False)
    month = db.Column(db.Integer, nullable=False)
    status = db.Column(db.String(20), nullable=False, default=SubsidyStatus.PENDING)
    calculated_amount = db.Column(db.Integer, nullable=False, default=0)
    requested_amount = db.Column(db.Integer, nullable=False, default=0)
    approved_amount = db.Column(db.Integer)
    details = db.Column(db.Text)  # 자격 판정 입력값 (JSON)
    reject_reason = db.Column(db.Text)
    submitted_by = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    processed_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    processed_at = db.Column(db.DateTime)
    paid_by = db.Column(db.Integer, db.ForeignKey('users.id'))
    paid_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.now)

    employee = db.relationship('Employee')

    def get_details(self):
        return json.loads(self.details) if self.details else {}

    def __repr__(self):
        return f'<SubsidyApplication {self.id} {self.type} {self.status}>'


class Expense(db.Model):
    """경비 청구"""
    __tablename__ = 'expenses'

    id = db.Column(db.Integer, primary_key=True)
    title = db.Column(db.String(50), nullable=False)
    amount = db.Column(db.Integer, nullable=False)
    category = db.Column(db.String(20), nullable=False)
    date = db.Column(db.Date, nullable=False)  # 사용일
    description = db.Column(db.Text)
    status = db.Column(db.String(20), nullable=False, default=ExpenseStatus.PENDING)
    submitter_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    employee_id = db.Column(db.Integer, db.ForeignKey('employees.id'))  # 신청 시점의 연결 직원
    approver_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    approved_at = db.Column(db.DateTime)
    reject_reason = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.now)

    submitter = db.relationship('User', foreign_keys=[submitter_id])
    approver = db.relationship('User', foreign_keys=[approver_id])
    employee = db.relationship('Employee')

    def __repr__(self):
        return f'<Expense {self.id} {self.amount} {self.status}>'


class Notification(db.Model):
    __tablename__ = 'notifications'

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id'), nullable=False)
    recipient_name = db.Column(db.String(100))  # 발송 시점 스냅샷
    recipient_email = db.Column(db.String(120))
    type = db.Column(db.String(30), nullable=False)
    title = db.Column(db.String(200), nullable=False)
    message = db.Column(db.Text, nullable=False)
    related_entity_type = db.Column(db.String(50))
    related_entity_id = db.Column(db.Integer)
    action_url = db.Column(db.String(200))
    is_read = db.Column(db.Boolean, nullable=False, default=False)
    read_at = db.Column(db.DateTime)
    created_at = db.Column(db.DateTime, default=datetime.now)

    def __repr__(self):
        return f'<Notification {self.id} {self.type} -> {self.recipient_id}>'


class NotificationPreference(db.Model):
    __tablename__ = 'notification_preferences'

    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey('users.id'), unique=True, nullable=False)
    email_enabled = db.Column(db.Boolean, nullable=False, default=True)
    web_enabled = db.Column(db.Boolean, nullable=False, default=True)

    type_preferences = db.relationship('NotificationTypePreference', backref='preference',
                                       cascade='all, delete-orphan')


class NotificationTypePreference(db.Model):
    __tablename__ = 'notification_type_preferences'
    __table_args__ = (db.UniqueConstraint('preference_id', 'type', name='uq_type_preference'),)

    id = db.Column(db.Integer, primary_key=True)
    preference_id = db.Column(db.Integer, db.ForeignKey('notification_preferences.id'), nullable=False)
    type = db.Column(db.String(30), nullable=False)
    email_enabled = db.Column(db.Boolean, nullable=False, default=False)
    web_enabled = db.Column(db.Boolean, nullable=False, default=True)


class NotificationLog(db.Model):
    """이메일 발송 이력"""
    __tablename__ = 'notification_logs'

    id = db.Column(db.Integer, primary_key=True)
    recipient_id = db.Column(db.Integer, db.ForeignKey('users.id'))
    recipient_email = db.Column(db.String(120))
    type = db.Column(db.String(30))
    subject = db.Column(db.String(200))
    status = db.Column(db.String(10), nullable=False)  # SENT / FAILED / SKIPPED
    error_message = db.Column(db.Text)
    created_at = db.Column(db.DateTime, default=datetime.now)

    recipient = db.relationship('User')


class Holiday(db.Model):
    """공휴일 관리 모델"""
    __tablename__ = 'holidays'

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, unique=True)
    name = db.Column(db.String(100), nullable=False)

    def __repr__(self):
        return f'<Holiday {self.date} {self.name}>'
