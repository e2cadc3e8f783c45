"""원천징수 세액 집계 (소득세법 제127조, 지방소득세는 소득세의 10%)"""
from collections import OrderedDict

SUMMARY_FIELDS = ('total_gross', 'total_taxable', 'total_non_taxable', 'income_tax', 'local_income_tax',
                  'total_tax')


def aggregate_withholding_tax(records):
    """급여 기록을 연월별로 집계 (연월 오름차순)"""
    by_month = OrderedDict()
    for record in sorted(records, key=lambda r: (r.year, r.month)):
        key = f'{record.year}-{record.month:02d}'
        by_month.setdefault(key, []).append(record)

    summary = []
    for month, items in by_month.items():
        total_gross = sum(r.total_gross for r in items)
        total_taxable = sum(r.total_taxable for r in items)
        income_tax = sum(r.income_tax for r in items)
        local_income_tax = sum(r.local_income_tax for r in items)
        summary.append({
            'month': month,
            'employee_count': len(items),
            'total_gross': total_gross,
            'total_taxable': total_taxable,
            'total_non_taxable': total_gross - total_taxable,
            'income_tax': income_tax,
            'local_income_tax': local_income_tax,
            'total_tax': income_tax + local_income_tax,
        })
    return summary


def calculate_yearly_total(summary):
    return {field: sum(row[field] for row in summary) for field in SUMMARY_FIELDS}
