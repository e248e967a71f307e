"""
Static reference data for the valuation engine
Multiple table, KSIC industry mapping, adjustment bands and archetype ratios
"""
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType


class IndustryGroup(Enum):
    """Coarse industry groups with their own multiple triple"""
    MANUFACTURING = "제조업"
    IT_SERVICES = "IT서비스"
    SAAS_PLATFORM = "SaaS/플랫폼"
    DISTRIBUTION_COMMERCE = "유통/커머스"
    HEALTHCARE = "헬스케어"
    OTHER = "기타"


class EmployeeBand(Enum):
    UNDER_10 = "<10"
    FROM_10_TO_30 = "10~30"
    FROM_30_TO_100 = "30~100"
    OVER_100 = "100+"


@dataclass(frozen=True)
class MultipleRange:
    """EV/EBITDA multiple triple"""
    low: float
    median: float
    high: float


# =============================================================================
# EV/EBITDA MULTIPLES
# =============================================================================

INDUSTRY_MULTIPLES = MappingProxyType({
    IndustryGroup.MANUFACTURING: MultipleRange(4.0, 5.5, 7.0),
    IndustryGroup.IT_SERVICES: MultipleRange(5.0, 7.0, 9.0),
    IndustryGroup.SAAS_PLATFORM: MultipleRange(8.0, 11.0, 15.0),
    IndustryGroup.DISTRIBUTION_COMMERCE: MultipleRange(4.0, 6.0, 8.0),
    IndustryGroup.HEALTHCARE: MultipleRange(6.0, 8.0, 11.0),
    IndustryGroup.OTHER: MultipleRange(4.0, 7.0, 9.0),
})

# KSIC top-level section letter -> industry group
KSIC_TO_INDUSTRY = MappingProxyType({
    "A": IndustryGroup.OTHER,  # Agriculture, forestry, fishing
    "B": IndustryGroup.OTHER,  # Mining
    "C": IndustryGroup.MANUFACTURING,
    "D": IndustryGroup.OTHER,  # Electricity, gas, steam
    "E": IndustryGroup.OTHER,  # Water, sewage, waste
    "F": IndustryGroup.OTHER,  # Construction
    "G": IndustryGroup.DISTRIBUTION_COMMERCE,  # Wholesale and retail
    "H": IndustryGroup.OTHER,  # Transportation and storage
    "I": IndustryGroup.OTHER,  # Accommodation and food
    "J": IndustryGroup.IT_SERVICES,  # Information and communication
    "K": IndustryGroup.OTHER,  # Finance and insurance
    "L": IndustryGroup.OTHER,  # Real estate
    "M": IndustryGroup.IT_SERVICES,  # Professional, scientific, technical
    "N": IndustryGroup.OTHER,  # Business support
    "O": IndustryGroup.OTHER,  # Public administration
    "P": IndustryGroup.OTHER,  # Education
    "Q": IndustryGroup.HEALTHCARE,  # Health and social work
    "R": IndustryGroup.OTHER,  # Arts, sports, recreation
    "S": IndustryGroup.OTHER,  # Membership organisations, repair
    "T": IndustryGroup.OTHER,  # Households as employers
    "U": IndustryGroup.OTHER,  # Extraterritorial organisations
})

# Section letter + two-digit division, checked before the section table
KSIC_SUBCLASS_OVERRIDES = MappingProxyType({
    "J58": IndustryGroup.SAAS_PLATFORM,  # Publishing, incl. software publishing
    "J62": IndustryGroup.SAAS_PLATFORM,  # Computer programming, system integration
    "J63": IndustryGroup.SAAS_PLATFORM,  # Information services
})

KSIC_CATEGORIES = (
    ("A", "농업, 임업 및 어업"),
    ("B", "광업"),
    ("C", "제조업"),
    ("D", "전기, 가스, 증기 및 공기조절 공급업"),
    ("E", "수도, 하수 및 폐기물 처리, 원료 재생업"),
    ("F", "건설업"),
    ("G", "도매 및 소매업"),
    ("H", "운수 및 창고업"),
    ("I", "숙박 및 음식점업"),
    ("J", "정보통신업"),
    ("K", "금융 및 보험업"),
    ("L", "부동산업"),
    ("M", "전문, 과학 및 기술 서비스업"),
    ("N", "사업시설 관리, 사업 지원 및 임대 서비스업"),
    ("O", "공공 행정, 국방 및 사회보장 행정"),
    ("P", "교육 서비스업"),
    ("Q", "보건업 및 사회복지 서비스업"),
    ("R", "예술, 스포츠 및 여가관련 서비스업"),
    ("S", "협회 및 단체, 수리 및 기타 개인 서비스업"),
    ("T", "가구 내 고용활동"),
    ("U", "국제 및 외국기관"),
)

# =============================================================================
# ADJUSTMENT BANDS
# =============================================================================

# (minimum revenue growth %, adjustment), evaluated top-down
GROWTH_ADJUSTMENT_BANDS = (
    (12.0, 0.10),  # exceptional
    (9.0, 0.065),  # high
    (6.0, 0.04),  # medium
    (3.0, 0.0),  # normal
    (0.0, -0.04),  # stagnant
)
NEGATIVE_GROWTH_ADJUSTMENT = -0.125

SIZE_ADJUSTMENTS = MappingProxyType({
    EmployeeBand.UNDER_10: -0.27,
    EmployeeBand.FROM_10_TO_30: -0.15,
    EmployeeBand.FROM_30_TO_100: -0.05,
    EmployeeBand.OVER_100: 0.0,
})

# (company age strictly below, adjustment), evaluated top-down
AGE_ADJUSTMENT_BANDS = (
    (3, -0.07),
    (5, -0.03),
)
MATURE_AGE_ADJUSTMENT = 0.0

# EV range as (low factor, high factor) around the adjusted midpoint
EV_RANGE_SPREAD_NORMAL = (0.90, 1.10)
EV_RANGE_SPREAD_WIDE = (0.85, 1.15)
WIDE_SPREAD_WARNING_COUNT = 2

# Consistency thresholds
MARGIN_WARNING_RATIO = 0.5
MIN_GROWTH_PCT = -100.0
MAX_GROWTH_PCT = 300.0
MIN_FOUNDED_YEAR = 1900

# =============================================================================
# PAYOUT SIMULATION
# =============================================================================

ALLOWED_LOCK_IN_YEARS = (1, 3, 5)
MAX_EQUITY_SCENARIOS = 10
MIN_DISCOUNT_RATE = 0.08
MAX_DISCOUNT_RATE = 0.20
PCT_SUM_TOLERANCE = 0.01

DEFAULT_ESCROW_PROBABILITY = 0.9
DEFAULT_EARNOUT_PROBABILITY = 0.6

HIGH_DISCOUNT_RATE_WARNING = 0.15
LOW_UPFRONT_WARNING_PCT = 30.0
LOW_ESCROW_PROBABILITY_WARNING = 0.7
HIGH_DEFERRED_SHARE_PCT = 50.0

# =============================================================================
# DEAL ARCHETYPES
# =============================================================================

ALL_CASH_TARGET_SALE_RATIO = 1.0

ROLLOVER_TARGET_SALE_RATIO = 0.65
ROLLOVER_RETAINED_RATIO = 0.35

EARNOUT_BASE_PAYMENT_RATIO = 0.75
EARNOUT_RATIO = 0.25
EARNOUT_YEARS = 2

CASH_AND_STOCK_CASH_RATIO = 0.6
CASH_AND_STOCK_STOCK_RATIO = 0.4
CASH_AND_STOCK_LOCKUP_YEARS = 1
CASH_AND_STOCK_STOCK_DISCOUNT = 0.1

ASSET_CONTRIBUTION_RATIO = 0.5

# Eligibility thresholds
CONTROL_MIN_FOUNDER_SHARE_PCT = 50.0
ROLLOVER_MIN_FOUNDER_SHARE_PCT = 30.0
ROLLOVER_MIN_GROWTH_PCT = 10.0
HIGH_GROWTH_PCT = 15.0

SYNERGY_KEYWORDS = ("시너지", "synergy")
BUSINESS_UNIT_KEYWORDS = ("사업부", "business unit")

# Cap table sanity
UNUSUAL_MIN_FOUNDER_SHARE_PCT = 30.0
UNUSUAL_MAX_OPTION_POOL_PCT = 20.0
