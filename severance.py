"""퇴직금 계산 (근로자퇴직급여 보장법)"""
import calendar
from dataclasses import dataclass


@dataclass(frozen=True)
class SeveranceResult:
    eligible: bool
    service_days: int
    service_years: float
    average_daily_wage: int
    ordinary_daily_wage: int
    applied_daily_wage: int
    method: str  # AVERAGE_WAGE / ORDINARY_WAGE
    amount: int


def calculate_average_daily_wage(recent_payrolls):
    """평균임금 일액 = 최근 3개월 총지급액 / 해당 월 총일수"""
    if not recent_payrolls:
        return 0
    total_wages = sum(p.total_gross for p in recent_payrolls)
    total_days = sum(calendar.monthrange(p.year, p.month)[1] for p in recent_payrolls)
    return total_wages // total_days if total_days > 0 else 0


def calculate_ordinary_daily_wage(employee):
    """통상임금 일액 = (기본급 + 고정수당) x 12 / 365"""
    monthly = (
        employee.base_salary
        + (employee.meal_allowance or 0)
        + (employee.transport_allowance or 0)
        + (employee.position_allowance or 0)
    )
    return monthly * 12 // 365


def calculate_service_days(join_date, resign_date):
    # 입사일과 퇴사일 모두 포함
    return (resign_date - join_date).days + 1


def calculate_severance_pay(employee, recent_payrolls, resign_date):
    service_days = calculate_service_days(employee.join_date, resign_date)
    service_years = round(service_days / 365, 2)

    if service_days < 365:
        return SeveranceResult(
            eligible=False,
            service_days=service_days,
            service_years=service_years,
            average_daily_wage=0,
            ordinary_daily_wage=0,
            applied_daily_wage=0,
            method='AVERAGE_WAGE',
            amount=0,
        )

    average = calculate_average_daily_wage(recent_payrolls)
    ordinary = calculate_ordinary_daily_wage(employee)
    # 평균임금이 통상임금보다 적으면 통상임금을 평균임금으로 함
    applied = max(average, ordinary)

    return SeveranceResult(
        eligible=True,
        service_days=service_days,
        service_years=service_years,
        average_daily_wage=average,
        ordinary_daily_wage=ordinary,
        applied_daily_wage=applied,
        method='AVERAGE_WAGE' if average >= ordinary else 'ORDINARY_WAGE',
        amount=applied * 30 * service_days // 365,
    )
