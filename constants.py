# 2026년 기준 노무/급여 상수

# 직급
POSITIONS = ['사원', '주임', '대리', '과장', '차장', '부장', '이사']

# 직원 상태
EMPLOYEE_STATUS = {
    'ACTIVE': '재직',
    'ON_LEAVE': '휴직',
    'RESIGNED': '퇴사',
}

# 계약 유형
CONTRACT_TYPES = {
    'REGULAR': '정규직',
    'CONTRACT': '계약직',
    'PARTTIME': '파트타임',
    'REPLACEMENT': '대체인력',
}

# 근무 형태
WORK_TYPES = {
    'OFFICE': '사무실 근무',
    'FLEXIBLE_HOURS': '시차출퇴근',
    'REMOTE': '재택근무',
    'HYBRID': '하이브리드',
}

# 급여 형태
SALARY_TYPES = {
    'MONTHLY': '월급제',
    'HOURLY': '시급제',
}

# 휴가/휴직 유형
LEAVE_TYPES = {
    'ANNUAL': '연차',
    'MATERNITY': '출산전후휴가',
    'PARENTAL': '육아휴직',
    'SPOUSE_MATERNITY': '배우자출산휴가',
    'SICK': '병가',
    'PERSONAL': '개인사유',
    'COMPENSATORY': '대체휴무',
}

# 법정 휴가 (반려 불가, 승인 시 휴직 처리)
STATUTORY_LEAVE_TYPES = ('MATERNITY', 'PARENTAL', 'SPOUSE_MATERNITY')

LEAVE_STATUS = {
    'PENDING': '대기',
    'APPROVED': '승인',
    'REJECTED': '반려',
}

HALF_DAY_TYPES = {
    'AM': '오전 반차',
    'PM': '오후 반차',
}

# 사용자 역할
USER_ROLES = {
    'admin': '관리자',
    'manager': '부서장',
    'viewer': '일반직원',
}

# 문서
DOCUMENT_TYPES = {
    'EMPLOYMENT_CONTRACT': '근로계약서',
    'PAYSLIP': '임금명세서',
    'EMPLOYMENT_CERTIFICATE': '재직증명서',
    'CAREER_CERTIFICATE': '경력증명서',
    'RESIGNATION': '퇴직서류',
    'NOTICE': '공지사항',
    'OTHER': '기타',
}

DOCUMENT_STATUS = {
    'DRAFT': '초안',
    'PENDING_APPROVAL': '결재대기',
    'APPROVED': '승인',
    'REJECTED': '반려',
    'ISSUED': '발급완료',
    'ARCHIVED': '보관',
}

APPROVAL_STATUS = {
    'PENDING': '대기',
    'APPROVED': '승인',
    'REJECTED': '반려',
    'SKIPPED': '건너뜀',
}

MAX_APPROVERS = 5

# 지원금
SUBSIDY_TYPES = {
    'FLEXIBLE_WORK': '유연근무 장려금',
    'REPLACEMENT_WORKER': '출산육아기 대체인력 지원금',
    'PARENTAL_LEAVE_GRANT': '육아휴직 부여 지원금',
    'WORK_SHARING': '업무분담 지원금',
    'INFRA_SUPPORT': '유연근무 인프라 구축비',
}

SUBSIDY_STATUS = {
    'PENDING': '대기',
    'APPROVED': '승인',
    'REJECTED': '반려',
    'PAID': '지급완료',
}

# 경비
EXPENSE_CATEGORIES = ['교통비', '식비', '숙박비', '사무용품', '교육비', '기타']
EXPENSE_MAX_AMOUNT = 10000000

EXPENSE_STATUS = {
    'PENDING': '대기',
    'APPROVED': '승인',
    'REJECTED': '반려',
}

# 알림
NOTIFICATION_TYPES = {
    'APPROVAL_REQUEST': '결재 요청',
    'DOCUMENT_APPROVED': '문서 승인',
    'DOCUMENT_REJECTED': '문서 반려',
    'PAYSLIP_READY': '급여명세서 발급',
    'SUBSIDY_APPROVED': '지원금 승인',
    'LEAVE_APPROVED': '휴가 승인',
    'LEAVE_REJECTED': '휴가 반려',
    'EXPENSE_APPROVED': '경비 승인',
    'EXPENSE_REJECTED': '경비 반려',
    'ATTENDANCE_CONFIRMED': '근태 확정',
    'ANNUAL_LEAVE_LOW': '연차 부족 알림',
    'CONTRACT_EXPIRING': '계약 만료 임박',
    'PROBATION_ENDING': '수습 종료 알림',
    'SYSTEM': '시스템 알림',
}

NOTIFICATION_GROUPS = [
    {
        'id': 'approval',
        'title': '결재 및 승인 알림',
        'types': ['APPROVAL_REQUEST', 'DOCUMENT_APPROVED', 'DOCUMENT_REJECTED',
                  'SUBSIDY_APPROVED', 'LEAVE_APPROVED', 'LEAVE_REJECTED',
                  'EXPENSE_APPROVED', 'EXPENSE_REJECTED'],
    },
    {
        'id': 'payroll',
        'title': '급여 및 근태 알림',
        'types': ['PAYSLIP_READY', 'ATTENDANCE_CONFIRMED'],
    },
    {
        'id': 'auto',
        'title': '자동 알림',
        'types': ['ANNUAL_LEAVE_LOW', 'CONTRACT_EXPIRING', 'PROBATION_ENDING'],
    },
    {
        'id': 'system',
        'title': '시스템 알림',
        'types': ['SYSTEM'],
    },
]

# 근로기준 (2026)
MINIMUM_HOURLY_WAGE = 10320
MINIMUM_MONTHLY_WAGE = 2156880
STANDARD_MONTHLY_HOURS = 209
OVERTIME_RATE = 1.5
NIGHT_WORK_RATE = 1.5
HOLIDAY_WORK_RATE = 1.5
MAX_WEEKLY_HOURS = 52
DAILY_STANDARD_MINUTES = 480
DEFAULT_BREAK_MINUTES = 60

# 4대보험 요율 (2026)
NATIONAL_PENSION_RATE = 0.0475  # 근로자/사업주 각각
NATIONAL_PENSION_LOWER_LIMIT = 400000
NATIONAL_PENSION_UPPER_LIMIT = 6370000
HEALTH_INSURANCE_RATE = 0.03595  # 근로자/사업주 각각
HEALTH_INSURANCE_UPPER_LIMIT = 12700000
LONG_TERM_CARE_RATE = 0.1314  # 건강보험료 대비
EMPLOYMENT_INSURANCE_EMPLOYEE_RATE = 0.009
EMPLOYMENT_INSURANCE_EMPLOYER_RATE = 0.0105
INDUSTRIAL_ACCIDENT_RATE = 0.007  # 사업주 전액 부담

# 비과세 한도 (월)
TAX_FREE_MEAL_LIMIT = 200000
TAX_FREE_TRANSPORT_LIMIT = 200000

# 출산/육아 법정 기준
MATERNITY_LEAVE_DAYS = 90
MATERNITY_LEAVE_DAYS_MULTIPLE = 120
MATERNITY_POST_BIRTH_MIN_DAYS = 45
MATERNITY_POST_BIRTH_MIN_DAYS_MULTIPLE = 60
PARENTAL_LEAVE_MAX_MONTHS = 18
SPOUSE_MATERNITY_LEAVE_DAYS = 20
SPOUSE_MATERNITY_CLAIM_DAYS = 120  # 출산일로부터 사용 가능 기간

# 연차
ANNUAL_LEAVE_UNDER_ONE_YEAR_MAX = 11
ANNUAL_LEAVE_BASE = 15
ANNUAL_LEAVE_MAX = 25

# 정부 지원금 (2026)
FLEXIBLE_WORK_MONTHLY = 600000
FLEXIBLE_WORK_MIN_USAGE = 4
FLEXIBLE_WORK_MIN_SERVICE_MONTHS = 3
REPLACEMENT_WORKER_UNDER_30 = 1400000
REPLACEMENT_WORKER_OVER_30 = 1300000
PARENTAL_LEAVE_GRANT_MONTHLY = 300000
PARENTAL_LEAVE_GRANT_INFANT_BONUS = 1000000
PARENTAL_LEAVE_GRANT_CHILD_MAX_MONTHS = 18
PARENTAL_LEAVE_GRANT_INFANT_MONTHS = 12
WORK_SHARING_UNDER_30 = 600000
WORK_SHARING_OVER_30 = 400000
WORK_SHARING_MAX_WEEKLY_HOURS = 40
INFRA_SUPPORT_MAX_PER_YEAR = 1800000
YOUTH_AGE_LIMIT = 30

# DC형 퇴직연금 (근로자퇴직급여 보장법 제20조)
DC_CONTRIBUTION_DIVISOR = 12  # 연간 임금총액의 1/12 이상
DC_TAX_DEDUCTIBLE_LIMIT = 18000000  # 연간 손비 인정 한도
DC_CONTRIBUTION_RATE_LABEL = '8.33%'

# 최근 급여 기준 기간 (퇴직금/DC형)
RECENT_PAYROLL_MONTHS = 3
