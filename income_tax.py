"""근로소득 간이세액표(2024, 국세청) 기반 원천징수 세액 계산"""
import csv
import math
import os
from bisect import bisect_right
from functools import lru_cache

TAX_TABLE_PATH = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'data', 'income_tax_table_2024.csv')

MAX_DEPENDENTS = 11
TABLE_LIMIT = 10000  # 천원, 간이세액표 최대 구간

# 월급여 1,000만원인 경우의 세액 (공제대상가족 1~11명)
TAX_AT_TABLE_LIMIT = (
    1507400, 1431570, 1200840, 1170840, 1140840, 1110840,
    1080840, 1050840, 1020840, 990840, 960840,
)

# 1,000만원 초과 구간: (하한, 누적 가산액, 초과분 적용률(만분율))
HIGH_INCOME_BRACKETS = (
    (87000000, 31034600, 4500),
    (45000000, 13394600, 4200),
    (30000000, 7394600, 4000),
    (28000000, 6610600, 3920),  # 98% x 40%
    (14000000, 1397000, 3724),  # 98% x 38%
    (10000000, 25000, 3430),  # 98% x 35%
)

CHILD_TAX_CREDITS = {0: 0, 1: 12500, 2: 29160, 3: 54160}
CHILD_TAX_CREDIT_EXTRA = 25000  # 4명 이상 1명당


@lru_cache(maxsize=1)
def load_tax_table(path=TAX_TABLE_PATH):
    """세액표 CSV를 (구간 하한 목록, 행 목록)으로 읽기"""
    rows = []
    with open(path, newline='', encoding='utf-8') as f:
        reader = csv.reader(f)
        next(reader)  # 헤더
        for line in reader:
            if not line:
                continue
            values = [int(v) for v in line]
            rows.append((values[0], values[1], tuple(values[2:])))

    # 0~0 구간은 조회 대상이 아님
    rows = [row for row in rows if row[1] > row[0]]
    rows.sort(key=lambda r: r[0])
    return [r[0] for r in rows], rows


def _clamp_dependents(dependents):
    return max(1, min(MAX_DEPENDENTS, int(dependents or 1)))


def floor_to_10(amount):
    """10원 미만 절사"""
    return int(math.floor(amount)) // 10 * 10


def lookup_table_tax(taxable, dependents=1):
    """간이세액표 조회 (자녀 세액공제 전)"""
    if taxable <= 0:
        return 0

    dependents = _clamp_dependents(dependents)
    salary = int(taxable // 1000)  # 천원 단위

    if salary >= TABLE_LIMIT:
        return _high_income_tax(taxable, dependents)

    starts, rows = load_tax_table()
    index = bisect_right(starts, salary) - 1
    if index < 0:
        return 0

    min_salary, max_salary, taxes = rows[index]
    if not (min_salary <= salary < max_salary):
        return 0
    return taxes[dependents - 1]


def _high_income_tax(taxable, dependents):
    base = TAX_AT_TABLE_LIMIT[dependents - 1]
    for lower, addition, rate in HIGH_INCOME_BRACKETS:
        if taxable >= lower:
            return base + addition + int(taxable - lower) * rate // 10000
    return base


def child_tax_credit(children):
    """자녀 세액공제 (8세 이상 20세 이하 자녀, 월 환산)"""
    children = max(0, int(children or 0))
    if children in CHILD_TAX_CREDITS:
        return CHILD_TAX_CREDITS[children]
    return CHILD_TAX_CREDITS[3] + (children - 3) * CHILD_TAX_CREDIT_EXTRA


def calculate_income_tax(taxable, dependents=1, children=0):
    """소득세와 지방소득세 계산

    반환값: (소득세, 지방소득세). 둘 다 10원 미만 절사.
    """
    table_tax = lookup_table_tax(taxable, dependents)
    income_tax = floor_to_10(max(0, table_tax - child_tax_credit(children)))
    local_income_tax = floor_to_10(income_tax // 10)  # 소득세의 10%
    return income_tax, local_income_tax
