import logging
from datetime import date

from app import db
from models import Holiday

logger = logging.getLogger(__name__)

# 연도별 공휴일 (음력 명절, 대체공휴일 포함)
KOREAN_HOLIDAYS = {
    2025: [
        (date(2025, 1, 1), "신정"),
        (date(2025, 1, 28), "설날 연휴"),
        (date(2025, 1, 29), "설날"),
        (date(2025, 1, 30), "설날 연휴"),
        (date(2025, 3, 1), "삼일절"),
        (date(2025, 3, 3), "삼일절 대체공휴일"),
        (date(2025, 5, 5), "어린이날 / 부처님오신날"),
        (date(2025, 5, 6), "대체공휴일"),
        (date(2025, 6, 6), "현충일"),
        (date(2025, 8, 15), "광복절"),
        (date(2025, 10, 3), "개천절"),
        (date(2025, 10, 5), "추석 연휴"),
        (date(2025, 10, 6), "추석"),
        (date(2025, 10, 7), "추석 연휴"),
        (date(2025, 10, 8), "추석 대체공휴일"),
        (date(2025, 10, 9), "한글날"),
        (date(2025, 12, 25), "성탄절"),
    ],
    2026: [
        (date(2026, 1, 1), "신정"),
        (date(2026, 2, 16), "설날 연휴"),
        (date(2026, 2, 17), "설날"),
        (date(2026, 2, 18), "설날 연휴"),
        (date(2026, 3, 1), "삼일절"),
        (date(2026, 3, 2), "삼일절 대체공휴일"),
        (date(2026, 5, 5), "어린이날"),
        (date(2026, 5, 24), "부처님오신날"),
        (date(2026, 5, 25), "부처님오신날 대체공휴일"),
        (date(2026, 6, 6), "현충일"),
        (date(2026, 8, 15), "광복절"),
        (date(2026, 8, 17), "광복절 대체공휴일"),
        (date(2026, 9, 24), "추석 연휴"),
        (date(2026, 9, 25), "추석"),
        (date(2026, 9, 26), "추석 연휴"),
        (date(2026, 10, 3), "개천절"),
        (date(2026, 10, 5), "개천절 대체공휴일"),
        (date(2026, 10, 9), "한글날"),
        (date(2026, 12, 25), "성탄절"),
    ],
}

# 양력 고정 공휴일 (등록된 연도가 아닐 때 사용)
FIXED_HOLIDAYS = [
    ((1, 1), "신정"),
    ((3, 1), "삼일절"),
    ((5, 5), "어린이날"),
    ((6, 6), "현충일"),
    ((8, 15), "광복절"),
    ((10, 3), "개천절"),
    ((10, 9), "한글날"),
    ((12, 25), "성탄절"),
]


def get_korean_holidays(year):
    """해당 연도의 (날짜, 이름) 목록"""
    if year in KOREAN_HOLIDAYS:
        return list(KOREAN_HOLIDAYS[year])
    return [(date(year, month, day), name) for (month, day), name in FIXED_HOLIDAYS]


def add_korean_holidays(year):
    """한국 공휴일 추가 (이미 등록된 날짜 제외). 추가된 건수 반환"""
    existing_dates = {
        h.date for h in Holiday.query.filter(
            Holiday.date >= date(year, 1, 1),
            Holiday.date <= date(year, 12, 31)
        ).all()
    }

    added = 0
    for holiday_date, holiday_name in get_korean_holidays(year):
        if holiday_date not in existing_dates:
            db.session.add(Holiday(date=holiday_date, name=holiday_name))
            added += 1

    db.session.commit()
    logger.info("%d년 공휴일 %d건 등록", year, added)
    return added
