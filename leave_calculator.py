"""연차 및 법정 휴가 계산 (근로기준법 기준)"""
from datetime import date, timedelta

from constants import (
    ANNUAL_LEAVE_UNDER_ONE_YEAR_MAX, ANNUAL_LEAVE_BASE, ANNUAL_LEAVE_MAX,
    MATERNITY_LEAVE_DAYS, MATERNITY_LEAVE_DAYS_MULTIPLE,
    MATERNITY_POST_BIRTH_MIN_DAYS, MATERNITY_POST_BIRTH_MIN_DAYS_MULTIPLE,
    PARENTAL_LEAVE_MAX_MONTHS, SPOUSE_MATERNITY_CLAIM_DAYS,
)

COUNTED_STATUSES = ('APPROVED', 'PENDING')


def months_between(start, end):
    """달력 기준 개월 수 (일자는 무시)"""
    return (end.year - start.year) * 12 + (end.month - start.month)


def calculate_total_annual_leave(join_date, as_of=None):
    """발생 연차 일수

    1년 미만: 1개월 개근 시 1일 (최대 11일)
    1년 이상: 15일 + 2년마다 1일 가산 (최대 25일)
    """
    as_of = as_of or date.today()
    if as_of < join_date:
        return 0

    months = months_between(join_date, as_of)
    if months < 12:
        return min(months, ANNUAL_LEAVE_UNDER_ONE_YEAR_MAX)

    years = months // 12
    additional = max(0, years - 1) // 2
    return min(ANNUAL_LEAVE_BASE + additional, ANNUAL_LEAVE_MAX)


def _counts_as_annual(record):
    return record.type == 'ANNUAL' and record.status in COUNTED_STATUSES


def calculate_used_annual_leave(records, year):
    """해당 연도에 시작한 연차 사용(신청 포함) 일수"""
    return sum(r.days for r in records if _counts_as_annual(r) and r.start_date.year == year)


def _add_years(d, years):
    try:
        return d.replace(year=d.year + years)
    except ValueError:  # 2월 29일
        return d.replace(year=d.year + years, day=28)


def get_annual_leave_summary(join_date, records, as_of=None):
    as_of = as_of or date.today()
    year = as_of.year
    months = months_between(join_date, as_of)

    total = calculate_total_annual_leave(join_date, as_of)

    # 입사 2년차에는 1년 미만 기간에 사용한 연차를 차감
    if 12 <= months < 24:
        first_year_end = _add_years(join_date, 1)
        used_in_first_year = sum(
            r.days for r in records
            if _counts_as_annual(r) and join_date <= r.start_date < first_year_end
        )
        total = max(0, total - used_in_first_year)

    used = calculate_used_annual_leave(records, year)
    return {
        'year': year,
        'total': total,
        'used': used,
        'remaining': max(0, total - used),
    }


def count_work_days(start_date, end_date, holidays=()):
    """평일(월~금) 수, 공휴일 제외"""
    if start_date > end_date:
        return 0

    holidays = set(holidays)
    days = 0
    current = start_date
    while current <= end_date:
        if current.weekday() < 5 and current not in holidays:
            days += 1
        current += timedelta(days=1)
    return days


def validate_maternity_leave(start_date, end_date, child_birth_date, is_multiple=False):
    """출산전후휴가 검증. 반환값: (유효 여부, 오류 메시지)"""
    total_days = (end_date - start_date).days + 1
    max_days = MATERNITY_LEAVE_DAYS_MULTIPLE if is_multiple else MATERNITY_LEAVE_DAYS
    if total_days > max_days:
        return False, f'출산전후휴가는 최대 {max_days}일입니다 (현재: {total_days}일).'

    days_after_birth = (end_date - child_birth_date).days
    min_after = MATERNITY_POST_BIRTH_MIN_DAYS_MULTIPLE if is_multiple else MATERNITY_POST_BIRTH_MIN_DAYS
    if days_after_birth < min_after:
        return False, (
            f'출산 후 최소 {min_after}일을 연속으로 사용해야 합니다 (현재: {days_after_birth}일).'
        )

    if not (start_date <= child_birth_date <= end_date):
        return False, '자녀 출생일은 휴가 기간 내에 있어야 합니다.'

    return True, None


def validate_spouse_maternity_leave(start_date, child_birth_date):
    days_since_birth = (start_date - child_birth_date).days
    if days_since_birth < 0:
        return False, '배우자 출산휴가는 출산일 이후에만 사용 가능합니다.'
    if days_since_birth > SPOUSE_MATERNITY_CLAIM_DAYS:
        return False, (
            f'배우자 출산휴가는 출산일로부터 {SPOUSE_MATERNITY_CLAIM_DAYS}일 이내에 사용해야 합니다 '
            f'(현재: {days_since_birth}일 경과).'
        )
    return True, None


def parental_leave_months(start_date, end_date):
    """육아휴직 기간 (30일 = 1개월 환산)"""
    return ((end_date - start_date).days + 1) / 30


def validate_parental_leave(start_date, end_date):
    months = parental_leave_months(start_date, end_date)
    if months > PARENTAL_LEAVE_MAX_MONTHS:
        return False, f'육아휴직은 최대 {PARENTAL_LEAVE_MAX_MONTHS}개월까지 사용할 수 있습니다.'
    return True, None
