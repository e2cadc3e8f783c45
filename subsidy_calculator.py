"""정부 지원금 자격 판정 (2026년 기준)"""
from dataclasses import dataclass, field
from datetime import date

from constants import (
    FLEXIBLE_WORK_MONTHLY, FLEXIBLE_WORK_MIN_USAGE, FLEXIBLE_WORK_MIN_SERVICE_MONTHS,
    REPLACEMENT_WORKER_UNDER_30, REPLACEMENT_WORKER_OVER_30,
    PARENTAL_LEAVE_GRANT_MONTHLY, PARENTAL_LEAVE_GRANT_INFANT_BONUS,
    PARENTAL_LEAVE_GRANT_CHILD_MAX_MONTHS, PARENTAL_LEAVE_GRANT_INFANT_MONTHS,
    WORK_SHARING_UNDER_30, WORK_SHARING_OVER_30, WORK_SHARING_MAX_WEEKLY_HOURS,
    INFRA_SUPPORT_MAX_PER_YEAR, YOUTH_AGE_LIMIT,
)
from exceptions import InvalidInputError

FLEXIBLE_WORK_TYPES = ('FLEXIBLE_HOURS', 'REMOTE', 'HYBRID')


@dataclass(frozen=True)
class SubsidyEligibility:
    eligible: bool
    calculated_amount: int = 0
    reason: str = None
    details: dict = field(default_factory=dict)


def _ineligible(reason, **details):
    return SubsidyEligibility(eligible=False, calculated_amount=0, reason=reason, details=details)


def calculate_age(birth_date, on=None):
    """만 나이 (생년월일이 없으면 0)"""
    if birth_date is None:
        return 0
    on = on or date.today()
    age = on.year - birth_date.year
    if (on.month, on.day) < (birth_date.month, birth_date.day):
        age -= 1
    return age


def full_months_between(start, end):
    """경과한 만 개월 수 (음수 가능)"""
    months = (end.year - start.year) * 12 + (end.month - start.month)
    if months > 0 and end.day < start.day:
        months -= 1
    elif months < 0 and end.day > start.day:
        months += 1
    return months


def check_flexible_work(employee, year, month, usage_count):
    if employee.work_type not in FLEXIBLE_WORK_TYPES:
        return _ineligible('유연근무 형태가 아닙니다. (시차출퇴근/재택근무/하이브리드만 가능)')

    if usage_count < FLEXIBLE_WORK_MIN_USAGE:
        return _ineligible(
            f'월 {FLEXIBLE_WORK_MIN_USAGE}회 이상 유연근무를 사용해야 합니다. (현재: {usage_count}회)'
        )

    if full_months_between(employee.join_date, date(year, month, 1)) < FLEXIBLE_WORK_MIN_SERVICE_MONTHS:
        return _ineligible('입사 후 3개월이 경과해야 신청 가능합니다.')

    return SubsidyEligibility(
        eligible=True,
        calculated_amount=FLEXIBLE_WORK_MONTHLY,
        details={'work_type': employee.work_type, 'usage_count': usage_count},
    )


def check_replacement_worker(employee, replacement, replacement_start_date, on=None):
    """출산육아기 대체인력 지원금 (employee: 휴직자, replacement: 대체인력)"""
    if employee.status != 'ON_LEAVE':
        return _ineligible('휴직 상태가 아닙니다.')

    if employee.leave_type not in ('MATERNITY', 'PARENTAL'):
        return _ineligible('출산휴가 또는 육아휴직 상태여야 합니다.')

    if replacement.contract_type != 'REPLACEMENT':
        return _ineligible('대체인력 계약 유형이 아닙니다.')

    if employee.leave_start_date and replacement_start_date < employee.leave_start_date:
        return _ineligible('대체인력 근무 시작일이 휴직 시작일보다 빠릅니다.')

    age = calculate_age(replacement.birth_date, on)
    amount = REPLACEMENT_WORKER_UNDER_30 if age < YOUTH_AGE_LIMIT else REPLACEMENT_WORKER_OVER_30
    return SubsidyEligibility(
        eligible=True,
        calculated_amount=amount,
        details={
            'leave_type': employee.leave_type,
            'replacement_age': age,
            'replacement_start_date': replacement_start_date.isoformat(),
        },
    )


def check_parental_leave_grant(employee, child_birth_date, year, month):
    if employee.status != 'ON_LEAVE':
        return _ineligible('휴직 상태가 아닙니다.')

    if employee.leave_type != 'PARENTAL':
        return _ineligible('육아휴직 상태여야 합니다.')

    child_months = full_months_between(child_birth_date, date(year, month, 1))
    if child_months < 0:
        return _ineligible('자녀 출생일이 미래입니다.')
    if child_months > PARENTAL_LEAVE_GRANT_CHILD_MAX_MONTHS:
        return _ineligible('자녀 출생일 기준 18개월 이내에만 신청 가능합니다.', child_age_months=child_months)

    # 12개월 미만 자녀는 일시금 추가
    bonus = PARENTAL_LEAVE_GRANT_INFANT_BONUS if child_months < PARENTAL_LEAVE_GRANT_INFANT_MONTHS else 0
    return SubsidyEligibility(
        eligible=True,
        calculated_amount=PARENTAL_LEAVE_GRANT_MONTHLY + bonus,
        details={
            'child_age_months': child_months,
            'monthly_grant': PARENTAL_LEAVE_GRANT_MONTHLY,
            'lump_sum_grant': bonus,
        },
    )


def check_work_sharing(employee, weekly_hours=None, on=None):
    if weekly_hours is None:
        weekly_hours = employee.weekly_work_hours
    if weekly_hours >= WORK_SHARING_MAX_WEEKLY_HOURS:
        return _ineligible('주당 소정근로시간이 40시간 이상입니다. (주당 근로시간 단축 필요)')

    age = calculate_age(employee.birth_date, on)
    amount = WORK_SHARING_UNDER_30 if age < YOUTH_AGE_LIMIT else WORK_SHARING_OVER_30
    return SubsidyEligibility(
        eligible=True,
        calculated_amount=amount,
        details={'age': age, 'weekly_hours': weekly_hours},
    )


def check_infra_support(employees_under_30):
    if employees_under_30 < 1:
        return _ineligible('30세 미만 직원이 1명 이상 있어야 합니다.')
    return SubsidyEligibility(
        eligible=True,
        calculated_amount=INFRA_SUPPORT_MAX_PER_YEAR,
        details={'employees_under_30': employees_under_30},
    )


def check_subsidy(subsidy_type, employee, year, month, **inputs):
    """지원금 유형별 판정 함수로 분기"""
    if subsidy_type == 'FLEXIBLE_WORK':
        return check_flexible_work(employee, year, month, inputs.get('usage_count', 0))
    if subsidy_type == 'REPLACEMENT_WORKER':
        replacement = inputs.get('replacement')
        if replacement is None:
            raise InvalidInputError('대체인력 직원을 선택해주세요.')
        start = inputs.get('replacement_start_date') or replacement.join_date
        return check_replacement_worker(employee, replacement, start, inputs.get('on'))
    if subsidy_type == 'PARENTAL_LEAVE_GRANT':
        child_birth_date = inputs.get('child_birth_date')
        if child_birth_date is None:
            raise InvalidInputError('자녀 출생일을 입력해주세요.')
        return check_parental_leave_grant(employee, child_birth_date, year, month)
    if subsidy_type == 'WORK_SHARING':
        return check_work_sharing(employee, inputs.get('weekly_hours'), inputs.get('on'))
    if subsidy_type == 'INFRA_SUPPORT':
        return check_infra_support(inputs.get('employees_under_30', 0))
    raise InvalidInputError('유효하지 않은 지원금 유형입니다.')
