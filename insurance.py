"""4대보험료 계산 (2026년 요율)"""
import math
from collections import namedtuple

from constants import (
    NATIONAL_PENSION_RATE, NATIONAL_PENSION_LOWER_LIMIT, NATIONAL_PENSION_UPPER_LIMIT,
    HEALTH_INSURANCE_RATE, HEALTH_INSURANCE_UPPER_LIMIT, LONG_TERM_CARE_RATE,
    EMPLOYMENT_INSURANCE_EMPLOYEE_RATE, EMPLOYMENT_INSURANCE_EMPLOYER_RATE,
    INDUSTRIAL_ACCIDENT_RATE,
)

InsuranceResult = namedtuple('InsuranceResult', [
    'national_pension', 'health_insurance', 'long_term_care',
    'employment_insurance', 'industrial_accident', 'total',
])


def round_won(amount):
    """원 단위 반올림 (0.5는 올림)"""
    return int(math.floor(amount + 0.5))


def pension_base(base):
    # 국민연금 기준소득월액 상·하한
    return min(max(base, NATIONAL_PENSION_LOWER_LIMIT), NATIONAL_PENSION_UPPER_LIMIT)


def health_base(base):
    return min(base, HEALTH_INSURANCE_UPPER_LIMIT)


def calculate_insurance(base, national_pension=True, health_insurance=True, employment_insurance=True):
    """근로자 부담 4대보험료"""
    pension = round_won(pension_base(base) * NATIONAL_PENSION_RATE) if national_pension else 0
    health = round_won(health_base(base) * HEALTH_INSURANCE_RATE) if health_insurance else 0
    long_term_care = round_won(health * LONG_TERM_CARE_RATE) if health_insurance else 0
    employment = round_won(base * EMPLOYMENT_INSURANCE_EMPLOYEE_RATE) if employment_insurance else 0

    return InsuranceResult(
        national_pension=pension,
        health_insurance=health,
        long_term_care=long_term_care,
        employment_insurance=employment,
        industrial_accident=0,
        total=pension + health + long_term_care + employment,
    )


def calculate_employer_insurance(base, national_pension=True, health_insurance=True, employment_insurance=True,
                                 include_industrial_accident=True):
    """사업주 부담 4대보험료 (산재보험은 include_industrial_accident일 때만)"""
    pension = round_won(pension_base(base) * NATIONAL_PENSION_RATE) if national_pension else 0
    health = round_won(health_base(base) * HEALTH_INSURANCE_RATE) if health_insurance else 0
    long_term_care = round_won(health * LONG_TERM_CARE_RATE) if health_insurance else 0
    employment = round_won(base * EMPLOYMENT_INSURANCE_EMPLOYER_RATE) if employment_insurance else 0
    industrial = round_won(base * INDUSTRIAL_ACCIDENT_RATE) if include_industrial_accident else 0

    return InsuranceResult(
        national_pension=pension,
        health_insurance=health,
        long_term_care=long_term_care,
        employment_insurance=employment,
        industrial_accident=industrial,
        total=pension + health + long_term_care + employment + industrial,
    )


def insurance_for(employee, base=None):
    """직원의 가입 여부 플래그를 반영한 근로자 부담분"""
    if base is None:
        base = employee.base_salary
    return calculate_insurance(
        base,
        national_pension=getattr(employee, 'national_pension', True),
        health_insurance=getattr(employee, 'health_insurance', True),
        employment_insurance=getattr(employee, 'employment_insurance', True),
    )
