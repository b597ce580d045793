"""
Stock threshold calculation and classification

Bands scale with each product's own minimum stock:
    low       = min_stock (DEFAULT_MIN_STOCK when unset)
    critical  = floor(low * CRITICAL_STOCK_RATIO)
    overstock = low * OVERSTOCK_MULTIPLIER

classify_stock() applies the alert branches in fixed precedence, first
match wins:
    1. stock <= 0          -> OUT_OF_STOCK / CRITICAL (threshold 0)
    2. stock <= critical   -> LOW_STOCK / HIGH
    3. stock <= low        -> LOW_STOCK / MEDIUM
    4. stock >= overstock  -> OVERSTOCK / LOW
    5. otherwise           -> healthy (None)
"""
import math
from dataclasses import dataclass
from typing import Optional

from bikeshop_backend.core.config import settings
from bikeshop_backend.models.alert import AlertType, AlertPriority


@dataclass(frozen=True)
class StockThresholds:
    low: int
    critical: int
    overstock: int


@dataclass(frozen=True)
class StockCondition:
    """Alert-worthy classification of one stock reading."""
    type: AlertType
    priority: AlertPriority
    threshold: int


def effective_min_stock(min_stock: Optional[int]) -> int:
    """Apply the default minimum stock. Zero counts as unset."""
    if min_stock is None or min_stock <= 0:
        return settings.DEFAULT_MIN_STOCK
    return min_stock


def calculate_thresholds(min_stock: Optional[int]) -> StockThresholds:
    low = effective_min_stock(min_stock)
    return StockThresholds(
        low=low,
        critical=math.floor(low * settings.CRITICAL_STOCK_RATIO),
        overstock=low * settings.OVERSTOCK_MULTIPLIER,
    )


def classify_stock(stock: int, thresholds: StockThresholds) -> Optional[StockCondition]:
    if stock <= 0:
        return StockCondition(AlertType.OUT_OF_STOCK, AlertPriority.CRITICAL, 0)
    if stock <= thresholds.critical:
        return StockCondition(AlertType.LOW_STOCK, AlertPriority.HIGH, thresholds.critical)
    if stock <= thresholds.low:
        return StockCondition(AlertType.LOW_STOCK, AlertPriority.MEDIUM, thresholds.low)
    if stock >= thresholds.overstock:
        return StockCondition(AlertType.OVERSTOCK, AlertPriority.LOW, thresholds.overstock)
    return None


def stale_alert_types(stock: int, thresholds: StockThresholds) -> list:
    """
    Alert types whose triggering condition no longer holds for this stock.

    OVERSTOCK is only included when ALERT_AUTO_RESOLVE_OVERSTOCK is enabled.
    """
    stale = []
    if stock > 0:
        stale.append(AlertType.OUT_OF_STOCK)
    if stock > thresholds.low:
        stale.append(AlertType.LOW_STOCK)
    if settings.ALERT_AUTO_RESOLVE_OVERSTOCK and stock < thresholds.overstock:
        stale.append(AlertType.OVERSTOCK)
    return stale
