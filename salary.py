"""급여 구성 계산 (시급 환산, 변동수당, 공제, 최저임금 검증)"""
from dataclasses import dataclass, asdict

from constants import (
    STANDARD_MONTHLY_HOURS, MINIMUM_HOURLY_WAGE, OVERTIME_RATE, NIGHT_WORK_RATE,
    HOLIDAY_WORK_RATE, TAX_FREE_MEAL_LIMIT, TAX_FREE_TRANSPORT_LIMIT,
)
from income_tax import calculate_income_tax
from insurance import insurance_for, round_won


@dataclass(frozen=True)
class VariableAllowances:
    overtime_amount: int = 0
    night_amount: int = 0
    holiday_amount: int = 0
    overtime_minutes: int = 0
    night_minutes: int = 0
    holiday_minutes: int = 0

    @property
    def total(self):
        return self.overtime_amount + self.night_amount + self.holiday_amount


@dataclass(frozen=True)
class SalaryBreakdown:
    base_salary: int
    meal_allowance: int
    transport_allowance: int
    position_allowance: int
    fixed_ot_amount: int
    fixed_night_amount: int
    fixed_holiday_amount: int
    variable_overtime_amount: int
    variable_night_amount: int
    variable_holiday_amount: int
    total_gross: int
    total_taxable: int
    national_pension: int
    health_insurance: int
    long_term_care: int
    employment_insurance: int
    total_insurance: int
    income_tax: int
    local_income_tax: int
    total_deduction: int
    net_salary: int

    def to_dict(self):
        return asdict(self)


def calculate_hourly_rate(employee):
    """통상시급 (시급제는 기본급 그대로, 월급제는 209시간 기준)"""
    if employee.salary_type == 'HOURLY':
        return employee.base_salary
    return round_won(employee.base_salary / STANDARD_MONTHLY_HOURS)


def calculate_variable_allowances(records, hourly_rate, use_fixed_ot=False):
    """확정된 근태 기록의 연장/야간/휴일 근무 수당"""
    confirmed = [r for r in records if r.is_confirmed]
    overtime = sum(r.overtime_minutes for r in confirmed)
    night = sum(r.night_minutes for r in confirmed)
    holiday = sum(r.work_minutes for r in confirmed if getattr(r, 'is_holiday', False))

    # 포괄임금제는 고정수당으로 대체
    if use_fixed_ot:
        return VariableAllowances(overtime_minutes=overtime, night_minutes=night, holiday_minutes=holiday)

    return VariableAllowances(
        overtime_amount=round_won(hourly_rate * OVERTIME_RATE * overtime / 60),
        night_amount=round_won(hourly_rate * NIGHT_WORK_RATE * night / 60),
        holiday_amount=round_won(hourly_rate * HOLIDAY_WORK_RATE * holiday / 60),
        overtime_minutes=overtime,
        night_minutes=night,
        holiday_minutes=holiday,
    )


def fixed_allowances(employee):
    if not employee.use_fixed_ot:
        return 0, 0, 0
    return employee.fixed_ot_amount or 0, employee.fixed_night_amount or 0, employee.fixed_holiday_amount or 0


def tax_free_amount(employee):
    amount = 0
    if employee.tax_free_meal:
        amount += min(employee.meal_allowance or 0, TAX_FREE_MEAL_LIMIT)
    if employee.tax_free_transport:
        amount += min(employee.transport_allowance or 0, TAX_FREE_TRANSPORT_LIMIT)
    return amount


def calculate_salary(employee, variable=None):
    """월 급여 계산

    총지급액 = 기본급 + 식대 + 교통비 + 직책수당 + 고정OT(포괄임금) + 변동수당.
    보험료는 기본급 기준, 소득세는 비과세분을 뺀 과세급여 기준으로 계산한다.
    """
    if variable is None:
        variable = VariableAllowances()

    fixed_ot, fixed_night, fixed_holiday = fixed_allowances(employee)
    gross = (
        employee.base_salary
        + (employee.meal_allowance or 0)
        + (employee.transport_allowance or 0)
        + (employee.position_allowance or 0)
        + fixed_ot + fixed_night + fixed_holiday
        + variable.total
    )
    taxable = max(0, gross - tax_free_amount(employee))

    insurance = insurance_for(employee)
    income_tax, local_income_tax = calculate_income_tax(
        taxable,
        dependents=getattr(employee, 'dependents', 1) or 1,
        children=getattr(employee, 'children_under_20', 0) or 0,
    )
    total_deduction = insurance.total + income_tax + local_income_tax

    return SalaryBreakdown(
        base_salary=employee.base_salary,
        meal_allowance=employee.meal_allowance or 0,
        transport_allowance=employee.transport_allowance or 0,
        position_allowance=employee.position_allowance or 0,
        fixed_ot_amount=fixed_ot,
        fixed_night_amount=fixed_night,
        fixed_holiday_amount=fixed_holiday,
        variable_overtime_amount=variable.overtime_amount,
        variable_night_amount=variable.night_amount,
        variable_holiday_amount=variable.holiday_amount,
        total_gross=gross,
        total_taxable=taxable,
        national_pension=insurance.national_pension,
        health_insurance=insurance.health_insurance,
        long_term_care=insurance.long_term_care,
        employment_insurance=insurance.employment_insurance,
        total_insurance=insurance.total,
        income_tax=income_tax,
        local_income_tax=local_income_tax,
        total_deduction=total_deduction,
        net_salary=gross - total_deduction,
    )


def validate_minimum_wage(employee):
    """최저임금 충족 여부 (고정OT 제외)

    반환값: (충족 여부, 환산 시급, 메시지)
    """
    allowances = (
        (employee.meal_allowance or 0)
        + (employee.transport_allowance or 0)
        + (employee.position_allowance or 0)
    )
    if employee.salary_type == 'HOURLY':
        hourly = employee.base_salary + round_won(allowances / STANDARD_MONTHLY_HOURS)
    else:
        hourly = round_won((employee.base_salary + allowances) / STANDARD_MONTHLY_HOURS)

    if hourly < MINIMUM_HOURLY_WAGE:
        return False, hourly, (
            f'최저임금 미달입니다. 환산 시급 {hourly:,}원 (2026년 최저시급 {MINIMUM_HOURLY_WAGE:,}원)'
        )
    return True, hourly, '최저임금 기준을 충족합니다.'
