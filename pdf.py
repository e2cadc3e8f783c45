"""근로계약서/임금명세서/증명서 PDF 생성 (reportlab)"""
import io
from datetime import date

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.cidfonts import UnicodeCIDFont
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

from constants import CONTRACT_TYPES, SALARY_TYPES
from utils import format_won

KOREAN_FONT = 'HYSMyeongJo-Medium'

_font_registered = False


def _setup_korean_font():
    # reportlab 내장 CID 폰트 (별도 폰트 파일 불필요)
    global _font_registered
    if not _font_registered:
        pdfmetrics.registerFont(UnicodeCIDFont(KOREAN_FONT))
        _font_registered = True
    return KOREAN_FONT


def _styles():
    font = _setup_korean_font()
    styles = getSampleStyleSheet()
    for name in ('Title', 'Normal', 'Heading2'):
        styles[name].fontName = font
    return styles


def _table(rows, col_widths, header=False):
    table = Table(rows, colWidths=col_widths)
    style = [
        ('FONTNAME', (0, 0), (-1, -1), KOREAN_FONT),
        ('FONTSIZE', (0, 0), (-1, -1), 10),
        ('GRID', (0, 0), (-1, -1), 0.5, colors.black),
        ('VALIGN', (0, 0), (-1, -1), 'MIDDLE'),
        ('BACKGROUND', (0, 0), (0, -1), colors.HexColor('#F2F2F2')),
    ]
    if header:
        style.append(('BACKGROUND', (0, 0), (-1, 0), colors.HexColor('#D9E1F2')))
    table.setStyle(TableStyle(style))
    return table


def _build(story):
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(buffer, pagesize=A4, topMargin=20 * mm, bottomMargin=20 * mm)
    doc.build(story)
    return buffer.getvalue()


def render_employment_contract(content, employee):
    styles = _styles()
    story = [Paragraph('근로계약서', styles['Title']), Spacer(1, 8 * mm)]

    def section(title, rows):
        story.append(Paragraph(title, styles['Heading2']))
        story.append(_table(rows, [45 * mm, 125 * mm]))
        story.append(Spacer(1, 4 * mm))

    section('1. 당사자', [
        ['사업장명', content.get('company_name', '')],
        ['근로자 성명', employee.name],
        ['사번', employee.employee_no],
        ['부서', employee.department_name or '-'],
        ['직급', employee.position],
    ])
    section('2. 근로계약 기간', [
        ['계약 유형', CONTRACT_TYPES.get(employee.contract_type, employee.contract_type)],
        ['계약 시작일', content.get('contract_start_date') or '-'],
        ['계약 종료일', content.get('contract_end_date') or '기간의 정함이 없음'],
    ])
    section('3. 근무 장소 및 업무 내용', [
        ['근무 장소', content.get('work_location', '')],
        ['업무 내용', content.get('job_description', '')],
    ])

    hours = content.get('working_hours', {})
    section('4. 소정근로시간', [
        ['주당 근로시간', f"{hours.get('weekly_work_hours', 40):g}시간"],
        ['근무 시간', f"{hours.get('work_start_time', '')} ~ {hours.get('work_end_time', '')}"],
        ['휴게 시간', f"{hours.get('break_minutes', 60)}분"],
    ])
    section('5. 근무일 및 휴일', [
        ['근무일', '월요일 ~ 금요일 (주 5일)'],
        ['주휴일', content.get('weekly_rest_day', '')],
    ])

    salary = content.get('salary', {})
    payment = content.get('salary_payment', {})
    section('6. 임금', [
        ['급여 형태', SALARY_TYPES.get(salary.get('salary_type'), '')],
        ['기본급', format_won(salary.get('base_salary'))],
        ['식대', format_won(salary.get('meal_allowance'))],
        ['교통비', format_won(salary.get('transport_allowance'))],
        ['직책수당', format_won(salary.get('position_allowance'))],
        ['고정연장수당', format_won(salary.get('fixed_ot_amount'))],
        ['지급일', f"매월 {payment.get('payment_date', 25)}일"],
        ['지급방법', payment.get('payment_method', '')],
    ])
    section('7. 연차 유급휴가', [['연차 정책', Paragraph(content.get('annual_leave_policy', ''), styles['Normal'])]])

    insurance = content.get('social_insurance', {})
    section('8. 사회보험 적용', [
        [label, '적용' if insurance.get(key) else '미적용']
        for key, label in (('national_pension', '국민연금'), ('health_insurance', '건강보험'),
                           ('employment_insurance', '고용보험'), ('industrial_accident', '산재보험'))
    ])

    probation = content.get('probation') or {}
    if probation.get('has_probation'):
        section('9. 수습기간', [['수습 종료일', probation.get('probation_end_date') or '-']])
    if content.get('renewal_condition'):
        section('10. 계약 갱신 조건', [['갱신 조건', Paragraph(content['renewal_condition'], styles['Normal'])]])

    story.append(Spacer(1, 10 * mm))
    story.append(Paragraph(f"작성일: {content.get('generated_at', '')[:10]}", styles['Normal']))
    story.append(Paragraph('사업주: ____________ (인)    근로자: ____________ (인)', styles['Normal']))
    return _build(story)


def render_payslip(record, employee):
    styles = _styles()
    story = [
        Paragraph(f'{record.year}년 {record.month}월 임금명세서', styles['Title']),
        Spacer(1, 6 * mm),
        _table([
            ['성명', employee.name, '사번', employee.employee_no],
            ['부서', employee.department_name or '-', '직급', employee.position],
        ], [30 * mm, 55 * mm, 30 * mm, 55 * mm]),
        Spacer(1, 6 * mm),
    ]

    payments = [
        ('기본급', record.base_salary),
        ('식대', record.meal_allowance),
        ('교통비', record.transport_allowance),
        ('직책수당', record.position_allowance),
        ('고정연장수당', record.fixed_ot_amount),
        ('고정야간수당', record.fixed_night_amount),
        ('고정휴일수당', record.fixed_holiday_amount),
        ('연장근로수당', record.variable_overtime_amount),
        ('야간근로수당', record.variable_night_amount),
        ('휴일근로수당', record.variable_holiday_amount),
    ]
    deductions = [
        ('국민연금', record.national_pension),
        ('건강보험', record.health_insurance),
        ('장기요양보험', record.long_term_care),
        ('고용보험', record.employment_insurance),
        ('소득세', record.income_tax),
        ('지방소득세', record.local_income_tax),
    ]

    rows = [['지급 항목', '금액', '공제 항목', '금액']]
    payments = [p for p in payments if p[1]]
    for i in range(max(len(payments), len(deductions))):
        left = payments[i] if i < len(payments) else ('', None)
        right = deductions[i] if i < len(deductions) else ('', None)
        rows.append([
            left[0], format_won(left[1]) if left[1] is not None else '',
            right[0], format_won(right[1]) if right[1] is not None else '',
        ])
    rows.append(['지급 합계', format_won(record.total_gross), '공제 합계', format_won(record.total_deduction)])
    story.append(_table(rows, [40 * mm, 45 * mm, 40 * mm, 45 * mm], header=True))
    story.append(Spacer(1, 6 * mm))
    story.append(_table([['실수령액', format_won(record.net_salary)]], [85 * mm, 85 * mm]))
    return _build(story)


def render_certificate(kind, employee, company, tenure):
    """kind: EMPLOYMENT (재직증명서) / CAREER (경력증명서)"""
    styles = _styles()
    title = '재직증명서' if kind == 'EMPLOYMENT' else '경력증명서'
    period_end = employee.resign_date.isoformat() if kind == 'CAREER' else '현재'

    story = [
        Paragraph(title, styles['Title']),
        Spacer(1, 10 * mm),
        _table([
            ['성명', employee.name],
            ['생년월일', employee.birth_date.isoformat() if employee.birth_date else '-'],
            ['소속', employee.department_name or '-'],
            ['직위', employee.position],
            ['근무기간', f'{employee.join_date.isoformat()} ~ {period_end} ({tenure})'],
        ], [45 * mm, 125 * mm]),
        Spacer(1, 15 * mm),
        Paragraph(f'위 사실을 {"증명" if kind == "CAREER" else "확인"}합니다.', styles['Normal']),
        Spacer(1, 10 * mm),
        Paragraph(date.today().strftime('%Y년 %m월 %d일'), styles['Normal']),
        Spacer(1, 5 * mm),
    ]
    if company is not None:
        story.append(Paragraph(f'{company.name}  대표이사 {company.ceo_name} (인)', styles['Normal']))
        if company.address:
            story.append(Paragraph(company.address, styles['Normal']))
    return _build(story)
