"""DC형(확정기여형) 퇴직연금 부담금 계산

근로자퇴직급여 보장법 제20조: 연간 임금총액의 1/12 이상 납입.
기준소득월액은 최근 3개월 총지급액의 평균 (원 미만 절사).
"""
from dataclasses import dataclass

from constants import DC_CONTRIBUTION_DIVISOR, DC_TAX_DEDUCTIBLE_LIMIT, DC_CONTRIBUTION_RATE_LABEL


@dataclass(frozen=True)
class DCContribution:
    monthly_base_salary: int
    minimum_contribution: int
    recommended_contribution: int
    annual_projection: int
    tax_deductible_limit: int
    is_within_tax_limit: bool
    contribution_rate: str


def calculate_base_salary(recent_payrolls):
    if not recent_payrolls:
        return 0
    return sum(p.total_gross for p in recent_payrolls) // len(recent_payrolls)


def calculate_dc_contribution(recent_payrolls):
    monthly_base_salary = calculate_base_salary(recent_payrolls)
    minimum = monthly_base_salary // DC_CONTRIBUTION_DIVISOR
    # 권장 부담금은 현재 법정 최소와 동일
    recommended = minimum
    annual_projection = recommended * 12

    return DCContribution(
        monthly_base_salary=monthly_base_salary,
        minimum_contribution=minimum,
        recommended_contribution=recommended,
        annual_projection=annual_projection,
        tax_deductible_limit=DC_TAX_DEDUCTIBLE_LIMIT,
        is_within_tax_limit=annual_projection <= DC_TAX_DEDUCTIBLE_LIMIT,
        contribution_rate=DC_CONTRIBUTION_RATE_LABEL,
    )


def calculate_monthly_dc_total(contributions):
    return sum(c.recommended_contribution for c in contributions)


def calculate_annual_dc_total(contributions):
    return sum(c.annual_projection for c in contributions)
