import calendar
from datetime import date, datetime

from exceptions import InvalidInputError
from models import Holiday, LeaveRecord, LeaveStatus
from leave_calculator import count_work_days


def is_weekend(day):
    """주말인지 확인 (토:5, 일:6)"""
    return day.weekday() >= 5


def is_holiday(day):
    """공휴일인지 확인"""
    holiday = Holiday.query.filter_by(date=day).first()
    return holiday is not None


def get_holiday_dates(start_date, end_date):
    """기간 내 등록된 공휴일 날짜 목록"""
    holidays = Holiday.query.filter(
        Holiday.date >= start_date,
        Holiday.date <= end_date
    ).all()
    return {h.date for h in holidays}


def get_leave_days_count(start_date, end_date, half_day_type=None):
    """휴가 일수 계산 (주말, 공휴일 제외)"""
    if start_date > end_date:
        return 0

    # 반차 처리 (휴일 반차는 0일)
    if half_day_type:
        if is_weekend(start_date) or is_holiday(start_date):
            return 0
        return 0.5

    return count_work_days(start_date, end_date, get_holiday_dates(start_date, end_date))


def check_overlapping_leave(employee_id, start_date, end_date, exclude_id=None):
    """같은 기간에 대기/승인된 휴가가 있으면 해당 기록 반환"""
    query = LeaveRecord.query.filter(
        LeaveRecord.employee_id == employee_id,
        LeaveRecord.status.in_([LeaveStatus.PENDING, LeaveStatus.APPROVED]),
        LeaveRecord.start_date <= end_date,
        LeaveRecord.end_date >= start_date
    )
    if exclude_id is not None:
        query = query.filter(LeaveRecord.id != exclude_id)
    return query.first()


def add_months(day, months):
    """월 더하기 (말일 초과 시 해당 월 말일)"""
    month_index = day.month - 1 + months
    year = day.year + month_index // 12
    month = month_index % 12 + 1
    last_day = calendar.monthrange(year, month)[1]
    return date(year, month, min(day.day, last_day))


def calculate_tenure(start_date, end_date=None):
    """근속 기간 (년, 개월, 일, 입사일 포함 총 일수)"""
    end_date = end_date or date.today()
    if start_date > end_date:
        return {'years': 0, 'months': 0, 'days': 0, 'total_days': 0}

    years = end_date.year - start_date.year
    if (end_date.month, end_date.day) < (start_date.month, start_date.day):
        years -= 1
    after_years = add_months(start_date, years * 12)

    months = (end_date.year - after_years.year) * 12 + (end_date.month - after_years.month)
    if end_date.day < after_years.day:
        months -= 1
    after_months = add_months(after_years, months)

    return {
        'years': years,
        'months': months,
        'days': (end_date - after_months).days,
        'total_days': (end_date - start_date).days + 1,
    }


def format_tenure(start_date, end_date=None):
    """'3년 2개월 15일' 형식 (0인 단위 생략)"""
    tenure = calculate_tenure(start_date, end_date)
    parts = []
    if tenure['years'] > 0:
        parts.append(f"{tenure['years']}년")
    if tenure['months'] > 0:
        parts.append(f"{tenure['months']}개월")
    if tenure['days'] > 0 or not parts:
        parts.append(f"{tenure['days']}일")
    return ' '.join(parts)


def format_won(amount):
    return f'{int(amount or 0):,}원'


def parse_date(value):
    """date 또는 'YYYY-MM-DD' 문자열 -> date (빈 값은 None)"""
    if value is None or value == '':
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.strptime(str(value)[:10], '%Y-%m-%d').date()
    except ValueError:
        raise InvalidInputError(f'날짜 형식이 올바르지 않습니다: {value}')


def parse_int(value, message='숫자 형식이 올바르지 않습니다.'):
    """정수 변환 (빈 값은 None, 변환 실패는 InvalidInputError)"""
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidInputError(message)
    if isinstance(value, float):
        if not value.is_integer():
            raise InvalidInputError(message)
        return int(value)
    try:
        return int(str(value).strip().replace(',', ''))
    except ValueError:
        raise InvalidInputError(message)


def parse_float(value, message='숫자 형식이 올바르지 않습니다.'):
    if value is None or value == '':
        return None
    if isinstance(value, bool):
        raise InvalidInputError(message)
    try:
        return float(str(value).strip().replace(',', ''))
    except ValueError:
        raise InvalidInputError(message)
