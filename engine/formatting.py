"""
Display helpers for KRW amounts and percentages
"""
import math


def round_krw(value: float) -> int:
    """Round a currency amount half-up to whole won"""
    return int(math.floor(value + 0.5))


def format_krw(value: float) -> str:
    """Format won in 조/억/만 units, e.g. 1.2조 원, 125억 원, 3.4억 원, 500만 원"""
    abs_value = abs(value)
    sign = "-" if value < 0 else ""

    if abs_value >= 1_000_000_000_000:
        return f"{sign}{abs_value / 1_000_000_000_000:.1f}조 원"
    if abs_value >= 100_000_000:
        billions = abs_value / 100_000_000
        if billions >= 10:
            return f"{sign}{round_krw(billions):,}억 원"
        return f"{sign}{billions:.1f}억 원"
    if abs_value >= 10_000:
        return f"{sign}{round_krw(abs_value / 10_000):,}만 원"
    return f"{sign}{round_krw(abs_value):,}원"


def format_pct(fraction: float, decimals: int = 0) -> str:
    """Format a fraction as a percentage, handling inf/nan"""
    if math.isinf(fraction) or math.isnan(fraction):
        return "N/A"
    return f"{fraction * 100:.{decimals}f}%"


def format_signed_pct(fraction: float) -> str:
    """Format an adjustment like +10% / -3.5%"""
    pct = fraction * 100
    text = f"{pct:.1f}".rstrip("0").rstrip(".")
    return f"+{text}%" if pct > 0 else f"{text}%"
