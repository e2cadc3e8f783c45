import sys

from app import app
from holidays import add_korean_holidays

# 앱 컨텍스트 내에서 실행 (예: python add_holidays.py 2026)
years = [int(y) for y in sys.argv[1:]] or [2025, 2026]

with app.app_context():
    for year in years:
        print(f"{year}년 공휴일 등록 중...")
        count = add_korean_holidays(year)
        print(f"{year}년 공휴일 {count}건 등록 완료")

    print("공휴일 등록이 완료되었습니다.")
