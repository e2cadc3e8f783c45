from app import app
from reminders import run_daily_checks

# 앱 컨텍스트 내에서 실행 (cron 등록용, 매일 1회)
with app.app_context():
    result = run_daily_checks()
    print(f"계약 만료 알림: {result['contract_expiring']}명")
    print(f"수습 종료 알림: {result['probation_ending']}명")
    if result['annual_leave_low'] is not None:
        print(f"연차 부족 알림: {result['annual_leave_low']}명")
