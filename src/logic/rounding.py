# src/logic/rounding.py

from decimal import Decimal, ROUND_HALF_UP
from typing import Optional

from src.core.config.settings import settings


def _quantize(value: Optional[Decimal], scale: int) -> Optional[Decimal]:
    if value is None:
        return None
    return value.quantize(Decimal(1).scaleb(-scale), rounding=ROUND_HALF_UP)


def to_currency(value: Optional[Decimal]) -> Optional[Decimal]:
    """Rounds a money amount for storage. Applied once, when state is committed."""
    return _quantize(value, settings.CURRENCY_SCALE)


def to_ratio(value: Optional[Decimal]) -> Optional[Decimal]:
    """Rounds ratios, unit costs and per-share figures for storage."""
    return _quantize(value, settings.RATIO_SCALE)
