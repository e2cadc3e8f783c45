"""근태 계산 (근무시간, 연장/야간 근무, 주간 근로시간)"""
from constants import DEFAULT_BREAK_MINUTES, DAILY_STANDARD_MINUTES, MAX_WEEKLY_HOURS

DAY_MINUTES = 24 * 60
NIGHT_START = 22 * 60  # 22:00
NIGHT_END = 6 * 60  # 06:00


def parse_time(value):
    """'HH:MM' -> 자정 기준 분"""
    hours, minutes = value.split(':')
    hours, minutes = int(hours), int(minutes)
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        raise ValueError(f'잘못된 시간 형식입니다: {value}')
    return hours * 60 + minutes


def _shift_span(clock_in, clock_out):
    start = parse_time(clock_in)
    end = parse_time(clock_out)
    if end < start:  # 자정을 넘긴 근무
        end += DAY_MINUTES
    return start, end


def calculate_work_minutes(clock_in, clock_out, break_minutes=DEFAULT_BREAK_MINUTES):
    """실근무 분 (휴게시간 제외)"""
    start, end = _shift_span(clock_in, clock_out)
    return max(0, end - start - (break_minutes or 0))


def calculate_overtime_minutes(work_minutes):
    return max(0, work_minutes - DAILY_STANDARD_MINUTES)


def calculate_night_minutes(clock_in, clock_out):
    """22:00~06:00 사이 근무 분"""
    start, end = _shift_span(clock_in, clock_out)

    total = 0
    # 전날 밤, 당일 밤 구간을 모두 확인
    for day in (-1, 0, 1):
        night_start = NIGHT_START + day * DAY_MINUTES
        night_end = NIGHT_END + (day + 1) * DAY_MINUTES
        overlap = min(end, night_end) - max(start, night_start)
        if overlap > 0:
            total += overlap
    return total


def summarize_day(clock_in, clock_out, break_minutes=DEFAULT_BREAK_MINUTES):
    work = calculate_work_minutes(clock_in, clock_out, break_minutes)
    return {
        'work_minutes': work,
        'overtime_minutes': calculate_overtime_minutes(work),
        'night_minutes': calculate_night_minutes(clock_in, clock_out),
    }


def calculate_weekly_hours(records):
    """주간 근로시간 합계와 52시간 준수 여부"""
    total_minutes = sum(r.work_minutes for r in records)
    hours = round(total_minutes / 60, 1)
    return {
        'total_hours': hours,
        'is_within_limit': hours <= MAX_WEEKLY_HOURS,
        'excess_hours': round(max(0, hours - MAX_WEEKLY_HOURS), 1),
    }


def calculate_monthly_stats(records):
    stats = {
        'work_days': 0,
        'total_work_minutes': 0,
        'total_overtime_minutes': 0,
        'total_night_minutes': 0,
        'total_holiday_minutes': 0,
    }
    for record in records:
        if record.work_minutes > 0:
            stats['work_days'] += 1
        stats['total_work_minutes'] += record.work_minutes
        stats['total_overtime_minutes'] += record.overtime_minutes
        stats['total_night_minutes'] += record.night_minutes
        if getattr(record, 'is_holiday', False):
            stats['total_holiday_minutes'] += record.work_minutes
    return stats


def format_minutes_to_hours(minutes):
    """분 -> 'X시간 Y분'"""
    hours, rest = divmod(int(minutes), 60)
    if hours == 0:
        return f'{rest}분'
    if rest == 0:
        return f'{hours}시간'
    return f'{hours}시간 {rest}분'
