"""알림 설정, 웹 알림, 이메일 발송"""
import logging
import smtplib
from datetime import date, datetime, timedelta
from functools import wraps
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText

from flask import current_app

from app import db
from constants import NOTIFICATION_TYPES, DOCUMENT_TYPES, SUBSIDY_TYPES, LEAVE_TYPES
from exceptions import InvalidInputError, NotFoundError
from models import (
    User, Notification, NotificationPreference, NotificationTypePreference,
    NotificationLog, Document, PayrollRecord, SubsidyApplication, LeaveRecord,
    AttendanceRecord, Expense, Employee, Role,
)
from rbac import require_roles
from utils import parse_date

logger = logging.getLogger(__name__)

EMAIL = 'email'
WEB = 'web'

# 중요 알림만 기본 활성화
DEFAULT_TYPE_PREFERENCES = {
    'APPROVAL_REQUEST': {'email_enabled': True, 'web_enabled': True},
    'DOCUMENT_APPROVED': {'email_enabled': True, 'web_enabled': True},
    'DOCUMENT_REJECTED': {'email_enabled': True, 'web_enabled': True},
    'PAYSLIP_READY': {'email_enabled': True, 'web_enabled': True},
    'SUBSIDY_APPROVED': {'email_enabled': False, 'web_enabled': True},
    'LEAVE_APPROVED': {'email_enabled': False, 'web_enabled': True},
    'LEAVE_REJECTED': {'email_enabled': False, 'web_enabled': True},
    'EXPENSE_APPROVED': {'email_enabled': False, 'web_enabled': True},
    'EXPENSE_REJECTED': {'email_enabled': False, 'web_enabled': True},
    'ATTENDANCE_CONFIRMED': {'email_enabled': False, 'web_enabled': True},
    'ANNUAL_LEAVE_LOW': {'email_enabled': False, 'web_enabled': False},
    'CONTRACT_EXPIRING': {'email_enabled': False, 'web_enabled': False},
    'PROBATION_ENDING': {'email_enabled': False, 'web_enabled': False},
    'SYSTEM': {'email_enabled': False, 'web_enabled': False},
}


# ─── 알림 설정 ───

def get_or_initialize_preference(user):
    """알림 설정 조회 (없으면 기본값으로 생성)"""
    preference = NotificationPreference.query.filter_by(user_id=user.id).first()
    if preference:
        return preference

    preference = NotificationPreference(user_id=user.id, email_enabled=True, web_enabled=True)
    for notification_type, defaults in DEFAULT_TYPE_PREFERENCES.items():
        preference.type_preferences.append(
            NotificationTypePreference(type=notification_type, **defaults)
        )
    db.session.add(preference)
    db.session.commit()
    return preference


def preference_to_dict(preference):
    return {
        'email_enabled': preference.email_enabled,
        'web_enabled': preference.web_enabled,
        'type_preferences': [
            {
                'type': tp.type,
                'label': NOTIFICATION_TYPES.get(tp.type, tp.type),
                'email_enabled': tp.email_enabled,
                'web_enabled': tp.web_enabled,
            }
            for tp in sorted(preference.type_preferences, key=lambda tp: list(NOTIFICATION_TYPES).index(tp.type))
        ],
    }


def update_preference(user, email_enabled, web_enabled, type_preferences):
    """전체 설정 갱신 (유형별 설정은 모두 교체)"""
    if not isinstance(type_preferences, list):
        raise InvalidInputError('유형별 알림 설정 형식이 올바르지 않습니다.')
    seen = set()
    for item in type_preferences:
        if not isinstance(item, dict):
            raise InvalidInputError('유형별 알림 설정 형식이 올바르지 않습니다.')
        if item.get('type') not in NOTIFICATION_TYPES:
            raise InvalidInputError(f"알 수 없는 알림 유형입니다: {item.get('type')}")
        if item['type'] in seen:
            raise InvalidInputError(f"알림 유형이 중복되었습니다: {item['type']}")
        seen.add(item['type'])

    preference = get_or_initialize_preference(user)
    preference.email_enabled = bool(email_enabled)
    preference.web_enabled = bool(web_enabled)

    preference.type_preferences.clear()
    db.session.flush()
    for item in type_preferences:
        preference.type_preferences.append(NotificationTypePreference(
            type=item['type'],
            email_enabled=bool(item.get('email_enabled', False)),
            web_enabled=bool(item.get('web_enabled', True)),
        ))

    db.session.commit()
    return preference


def is_notification_enabled(user_id, notification_type, channel=WEB):
    preference = NotificationPreference.query.filter_by(user_id=user_id).first()
    if preference is None:
        return True

    if channel == EMAIL and not preference.email_enabled:
        return False
    if channel == WEB and not preference.web_enabled:
        return False

    type_preference = NotificationTypePreference.query.filter_by(
        preference_id=preference.id, type=notification_type
    ).first()
    if type_preference is None:
        return True
    return type_preference.email_enabled if channel == EMAIL else type_preference.web_enabled


# ─── 이메일 ───

def send_email(to, subject, body, notification_type=None, recipient_id=None):
    """텍스트 이메일 발송. 결과는 NotificationLog에 기록 (SENT/FAILED/SKIPPED)"""
    log = deliver_email(to, subject, body, notification_type, recipient_id)
    return log.status == 'SENT'


def deliver_email(to, subject, body, notification_type=None, recipient_id=None):
    config = current_app.config
    status, error = 'SENT', None

    if not to:
        status, error = 'SKIPPED', '수신자 이메일 주소가 없습니다.'
    elif not config.get('MAIL_ENABLED'):
        status, error = 'SKIPPED', '메일 발송이 비활성화되어 있습니다.'
    else:
        msg = MIMEMultipart()
        msg['From'] = config['MAIL_SENDER']
        msg['To'] = to
        msg['Subject'] = subject
        msg.attach(MIMEText(body, 'plain', 'utf-8'))

        try:
            with smtplib.SMTP(config['MAIL_SERVER'], config['MAIL_PORT'], timeout=10) as server:
                server.starttls()
                if config.get('MAIL_USERNAME'):
                    server.login(config['MAIL_USERNAME'], config['MAIL_PASSWORD'])
                server.sendmail(config['MAIL_SENDER'], [to], msg.as_string())
            logger.info("이메일 발송 성공: %s (%s)", to, subject)
        except (smtplib.SMTPException, OSError) as e:
            status, error = 'FAILED', str(e)
            logger.error("이메일 발송 실패: %s (%s): %s", to, subject, e)

    log = NotificationLog(
        recipient_id=recipient_id,
        recipient_email=to,
        type=notification_type,
        subject=subject,
        status=status,
        error_message=error,
    )
    db.session.add(log)
    db.session.commit()
    return log


def _email_body(recipient_name, message, action_url):
    base_url = current_app.config.get('APP_BASE_URL', '')
    lines = [f'안녕하세요, {recipient_name}님', '', message]
    if action_url:
        lines += ['', f'바로가기: {base_url}{action_url}']
    lines += ['', '본 메일은 발신 전용입니다.']
    return '\n'.join(lines)


# ─── 웹 알림 ───

def create_web_notification(recipient_id, notification_type, title, message,
                            related_entity_type=None, related_entity_id=None, action_url=None):
    """웹 알림 생성 후 이메일 발송

    웹 알림이 비활성화된 유형은 이메일도 보내지 않고 None 반환.
    """
    recipient = db.session.get(User, recipient_id)
    if recipient is None:
        raise NotFoundError('알림 수신자를 찾을 수 없습니다.')

    if not is_notification_enabled(recipient_id, notification_type, WEB):
        logger.debug("웹 알림 비활성화로 건너뜀: user=%s type=%s", recipient_id, notification_type)
        return None

    notification = Notification(
        recipient_id=recipient.id,
        recipient_name=recipient.name,
        recipient_email=recipient.email,
        type=notification_type,
        title=title,
        message=message,
        related_entity_type=related_entity_type,
        related_entity_id=related_entity_id,
        action_url=action_url,
    )
    db.session.add(notification)
    db.session.commit()

    if is_notification_enabled(recipient_id, notification_type, EMAIL):
        send_email(recipient.email, f'[인사관리] {title}',
                   _email_body(recipient.name, message, action_url), notification_type, recipient.id)

    return notification


def _safe_notify(func):
    """알림 실패가 원래 처리를 실패시키지 않도록 감싼다"""
    @wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except Exception:
            db.session.rollback()
            logger.exception("알림 생성 실패: %s", func.__name__)
            return None
    return wrapper


def _creator_name(document):
    if document.creator is None:
        return '알 수 없음'
    return document.creator.name


@_safe_notify
def notify_approval_request(document_id, approver_id):
    """결재 대기 알림 (다음 결재자)"""
    document = db.session.get(Document, document_id)
    if document is None:
        return None
    type_name = DOCUMENT_TYPES.get(document.type, document.type)
    return create_web_notification(
        approver_id, 'APPROVAL_REQUEST', '결재 대기',
        f'{_creator_name(document)}님의 {type_name} 결재가 요청되었습니다.',
        'Document', document.id, f'/documents/{document.id}',
    )


@_safe_notify
def notify_document_approved(document_id):
    """문서 최종 승인 알림 (작성자)"""
    document = db.session.get(Document, document_id)
    if document is None:
        return None
    type_name = DOCUMENT_TYPES.get(document.type, document.type)
    return create_web_notification(
        document.created_by, 'DOCUMENT_APPROVED', '문서 승인 완료',
        f'"{document.title}" {type_name}가 최종 승인되었습니다.',
        'Document', document.id, f'/documents/{document.id}',
    )


@_safe_notify
def notify_document_rejected(document_id, reason):
    document = db.session.get(Document, document_id)
    if document is None:
        return None
    type_name = DOCUMENT_TYPES.get(document.type, document.type)
    return create_web_notification(
        document.created_by, 'DOCUMENT_REJECTED', '문서 반려됨',
        f'"{document.title}" {type_name}가 반려되었습니다. 사유: {reason}',
        'Document', document.id, f'/documents/{document.id}',
    )


@_safe_notify
def notify_payslip_ready(payroll_id):
    payroll = db.session.get(PayrollRecord, payroll_id)
    if payroll is None or payroll.employee.user_id is None:
        return None
    return create_web_notification(
        payroll.employee.user_id, 'PAYSLIP_READY', '급여명세서 발급 완료',
        f'{payroll.year}년 {payroll.month}월 급여가 확정되어 명세서가 발급되었습니다. '
        f'(실수령액: {payroll.net_salary:,}원)',
        'PayrollRecord', payroll.id, '/employee/payslips',
    )


@_safe_notify
def notify_subsidy_approved(subsidy_id):
    subsidy = db.session.get(SubsidyApplication, subsidy_id)
    if subsidy is None or subsidy.employee.user_id is None:
        return None
    type_name = SUBSIDY_TYPES.get(subsidy.type, subsidy.type)
    amount = subsidy.approved_amount if subsidy.approved_amount is not None else subsidy.requested_amount
    return create_web_notification(
        subsidy.employee.user_id, 'SUBSIDY_APPROVED', '지원금 승인 완료',
        f'{type_name} 신청이 승인되었습니다. ({amount:,}원)',
        'SubsidyApplication', subsidy.id, '/subsidies',
    )


@_safe_notify
def notify_leave_approved(leave_id):
    leave = db.session.get(LeaveRecord, leave_id)
    if leave is None or leave.employee.user_id is None:
        return None
    type_name = LEAVE_TYPES.get(leave.type, leave.type)
    return create_web_notification(
        leave.employee.user_id, 'LEAVE_APPROVED', '휴가 승인',
        f'{leave.start_date:%Y-%m-%d} ~ {leave.end_date:%Y-%m-%d} {type_name} 신청이 승인되었습니다.',
        'LeaveRecord', leave.id, '/employee/leaves',
    )


@_safe_notify
def notify_leave_rejected(leave_id):
    leave = db.session.get(LeaveRecord, leave_id)
    if leave is None or leave.employee.user_id is None:
        return None
    type_name = LEAVE_TYPES.get(leave.type, leave.type)
    return create_web_notification(
        leave.employee.user_id, 'LEAVE_REJECTED', '휴가 반려',
        f'{leave.start_date:%Y-%m-%d} {type_name} 신청이 반려되었습니다. 사유: {leave.reject_reason}',
        'LeaveRecord', leave.id, '/employee/leaves',
    )


@_safe_notify
def notify_attendance_confirmed(attendance_id):
    record = db.session.get(AttendanceRecord, attendance_id)
    if record is None or record.employee.user_id is None:
        return None
    return create_web_notification(
        record.employee.user_id, 'ATTENDANCE_CONFIRMED', '근태 확정 완료',
        f'{record.date:%Y-%m-%d} 근태 기록이 관리자에 의해 확정되었습니다.',
        'AttendanceRecord', record.id, '/employee/attendance',
    )


@_safe_notify
def notify_expense_approved(expense_id):
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        return None
    return create_web_notification(
        expense.submitter_id, 'EXPENSE_APPROVED', '경비 승인 완료',
        f'"{expense.title}" 경비가 승인되었습니다. ({expense.amount:,}원)',
        'Expense', expense.id, '/expenses',
    )


@_safe_notify
def notify_expense_rejected(expense_id, reason):
    expense = db.session.get(Expense, expense_id)
    if expense is None:
        return None
    return create_web_notification(
        expense.submitter_id, 'EXPENSE_REJECTED', '경비 반려',
        f'"{expense.title}" 경비가 반려되었습니다. 사유: {reason or "-"}',
        'Expense', expense.id, '/expenses',
    )


@_safe_notify
def notify_user(user_id, notification_type, title, message, related_entity_type=None,
                related_entity_id=None, action_url=None):
    """자동 알림 등 일반 알림"""
    return create_web_notification(user_id, notification_type, title, message,
                                   related_entity_type, related_entity_id, action_url)


def send_test_notification(user, notification_type):
    if notification_type not in NOTIFICATION_TYPES:
        raise InvalidInputError('알 수 없는 알림 유형입니다.')
    return create_web_notification(
        user.id, notification_type,
        f'[테스트] {NOTIFICATION_TYPES[notification_type]}',
        '알림 설정 테스트 메시지입니다. 정상적으로 수신되었습니다.',
        action_url='/employee/notifications',
    )


# ─── 조회/읽음 처리 ───

def list_notifications(user, unread_only=False, limit=50):
    query = Notification.query.filter_by(recipient_id=user.id)
    if unread_only:
        query = query.filter_by(is_read=False)
    return query.order_by(Notification.created_at.desc(), Notification.id.desc()).limit(limit).all()


def unread_count(user):
    return Notification.query.filter_by(recipient_id=user.id, is_read=False).count()


def mark_as_read(user, notification_id):
    notification = db.session.get(Notification, notification_id)
    if notification is None or notification.recipient_id != user.id:
        raise NotFoundError('알림을 찾을 수 없습니다.')
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = datetime.now()
        db.session.commit()
    return notification


def mark_all_as_read(user):
    now = datetime.now()
    updated = Notification.query.filter_by(recipient_id=user.id, is_read=False).update(
        {'is_read': True, 'read_at': now}
    )
    db.session.commit()
    return updated


def notification_to_dict(notification):
    return {
        'id': notification.id,
        'type': notification.type,
        'title': notification.title,
        'message': notification.message,
        'related_entity_type': notification.related_entity_type,
        'related_entity_id': notification.related_entity_id,
        'action_url': notification.action_url,
        'is_read': notification.is_read,
        'created_at': notification.created_at.isoformat() if notification.created_at else None,
    }


# ─── 지원금 마감 알림 (이메일) ───

def send_subsidy_deadline_reminder(employee_id, subsidy_type, deadline, estimated_amount, today=None):
    """직원 1명에게 마감 안내 메일 발송. 반환값: (성공 여부, 오류 메시지)"""
    employee = db.session.get(Employee, employee_id)
    if employee is None:
        return False, '직원을 찾을 수 없습니다.'
    if not employee.email:
        return False, f'{employee.name}: 직원의 이메일 주소가 없습니다.'

    d_day = (deadline - (today or date.today())).days
    if d_day < 0:
        return False, '마감일이 이미 지났습니다.'

    type_name = SUBSIDY_TYPES.get(subsidy_type)
    if type_name is None:
        return False, '유효하지 않은 지원금 유형입니다.'

    body = _email_body(
        employee.name,
        f'{type_name} 신청 마감일({deadline:%Y-%m-%d})이 {d_day}일 남았습니다.\n'
        f'예상 지급액: {estimated_amount:,}원\n기한 내에 신청을 완료해주세요.',
        '/subsidies',
    )
    log = deliver_email(employee.email, f'[긴급] {type_name} 신청 마감 D-{d_day}일 전', body,
                        'SUBSIDY_DEADLINE', employee.user_id)
    if log.status != 'SENT':
        return False, f'{employee.name}: {log.error_message}'
    return True, None


def send_subsidy_deadline_reminders(actor, subsidy_type, deadline, employee_ids, estimated_amount, today=None):
    """대상 직원 전체에게 마감 안내 메일 발송 (관리자)"""
    require_roles(actor, Role.ADMIN, message='지원금 마감 알림은 관리자만 발송할 수 있습니다.')
    if subsidy_type not in SUBSIDY_TYPES:
        raise InvalidInputError('유효하지 않은 지원금 유형입니다.')
    deadline = parse_date(deadline)
    if deadline is None:
        raise InvalidInputError('마감일을 입력하세요.')
    if not employee_ids:
        raise InvalidInputError('알림 대상 직원을 선택해주세요.')

    sent, errors = 0, []
    for employee_id in employee_ids:
        success, error = send_subsidy_deadline_reminder(employee_id, subsidy_type, deadline,
                                                        estimated_amount, today)
        if success:
            sent += 1
        else:
            errors.append(error)

    logger.info("지원금 마감 알림 발송: %s 성공 %d건, 실패 %d건", subsidy_type, sent, len(errors))
    return {'total_sent': sent, 'total_failed': len(errors), 'errors': errors}


# ─── 발송 이력 ───

def list_notification_logs(actor, notification_type=None, status=None, recipient_id=None,
                           start_date=None, end_date=None, page=1, limit=20):
    """이메일 발송 이력 조회 (관리자). 반환값: (로그 목록, 페이지 정보)"""
    require_roles(actor, Role.ADMIN, message='관리자만 알림 로그를 조회할 수 있습니다.')
    page = max(1, page or 1)
    limit = max(1, min(100, limit or 20))

    query = NotificationLog.query
    if notification_type:
        query = query.filter(NotificationLog.type == notification_type)
    if status:
        query = query.filter(NotificationLog.status == status)
    if recipient_id:
        query = query.filter(NotificationLog.recipient_id == recipient_id)
    start_date, end_date = parse_date(start_date), parse_date(end_date)
    if start_date:
        query = query.filter(NotificationLog.created_at >= datetime.combine(start_date, datetime.min.time()))
    if end_date:
        # 종료일 당일 포함
        query = query.filter(NotificationLog.created_at < datetime.combine(end_date + timedelta(days=1),
                                                                           datetime.min.time()))

    total = query.count()
    logs = (query.order_by(NotificationLog.created_at.desc(), NotificationLog.id.desc())
            .offset((page - 1) * limit).limit(limit).all())
    return logs, {
        'total': total,
        'page': page,
        'limit': limit,
        'total_pages': (total + limit - 1) // limit,
    }


def list_notification_log_types(actor):
    require_roles(actor, Role.ADMIN, message='관리자만 알림 유형을 조회할 수 있습니다.')
    rows = (db.session.query(NotificationLog.type).filter(NotificationLog.type.isnot(None))
            .distinct().order_by(NotificationLog.type).all())
    return [row[0] for row in rows]


def notification_log_to_dict(log):
    return {
        'id': log.id,
        'recipient_id': log.recipient_id,
        'recipient_name': log.recipient.name if log.recipient else None,
        'recipient_email': log.recipient_email,
        'type': log.type,
        'subject': log.subject,
        'status': log.status,
        'error_message': log.error_message,
        'created_at': log.created_at.isoformat() if log.created_at else None,
    }
