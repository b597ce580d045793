"""
Tests for stock threshold calculation and classification.
"""
import pytest
from unittest.mock import patch

from bikeshop_backend.core.config import settings
from bikeshop_backend.models import AlertType, AlertPriority
from bikeshop_backend.services.thresholds import (
    StockThresholds,
    calculate_thresholds,
    classify_stock,
    effective_min_stock,
    stale_alert_types,
)


class TestEffectiveMinStock:
    @pytest.mark.parametrize("min_stock", [None, 0, -5])
    def test_unset_or_non_positive_uses_default(self, min_stock):
        assert effective_min_stock(min_stock) == 10

    def test_positive_value_kept(self):
        assert effective_min_stock(4) == 4


class TestCalculateThresholds:
    def test_default_minimum(self):
        assert calculate_thresholds(None) == StockThresholds(low=10, critical=3, overstock=100)

    def test_critical_is_floored(self):
        # 7 * 0.3 = 2.1
        assert calculate_thresholds(7).critical == 2

    def test_small_minimum_has_zero_critical_band(self):
        thresholds = calculate_thresholds(3)
        assert thresholds.critical == 0
        assert thresholds.overstock == 30


class TestClassifyStock:
    """min_stock 10 -> low 10, critical 3, overstock 100"""

    @pytest.fixture
    def thresholds(self):
        return calculate_thresholds(10)

    @pytest.mark.parametrize(
        "stock,alert_type,priority,threshold",
        [
            (0, AlertType.OUT_OF_STOCK, AlertPriority.CRITICAL, 0),
            (-1, AlertType.OUT_OF_STOCK, AlertPriority.CRITICAL, 0),
            (2, AlertType.LOW_STOCK, AlertPriority.HIGH, 3),
            (3, AlertType.LOW_STOCK, AlertPriority.HIGH, 3),
            (4, AlertType.LOW_STOCK, AlertPriority.MEDIUM, 10),
            (10, AlertType.LOW_STOCK, AlertPriority.MEDIUM, 10),
            (100, AlertType.OVERSTOCK, AlertPriority.LOW, 100),
            (150, AlertType.OVERSTOCK, AlertPriority.LOW, 100),
        ],
    )
    def test_branches(self, thresholds, stock, alert_type, priority, threshold):
        condition = classify_stock(stock, thresholds)
        assert condition.type == alert_type
        assert condition.priority == priority
        assert condition.threshold == threshold

    @pytest.mark.parametrize("stock", [11, 50, 99])
    def test_healthy_stock(self, thresholds, stock):
        assert classify_stock(stock, thresholds) is None

    def test_out_of_stock_wins_over_low_when_critical_band_is_empty(self):
        condition = classify_stock(0, calculate_thresholds(3))
        assert condition.type == AlertType.OUT_OF_STOCK

    def test_one_unit_with_empty_critical_band_is_medium(self):
        condition = classify_stock(1, calculate_thresholds(3))
        assert condition.type == AlertType.LOW_STOCK
        assert condition.priority == AlertPriority.MEDIUM


class TestStaleAlertTypes:
    @pytest.fixture
    def thresholds(self):
        return calculate_thresholds(10)

    def test_out_of_stock_only_stale_above_zero(self, thresholds):
        assert stale_alert_types(0, thresholds) == []
        assert stale_alert_types(5, thresholds) == [AlertType.OUT_OF_STOCK]

    def test_low_stock_stale_above_low_threshold(self, thresholds):
        assert stale_alert_types(11, thresholds) == [AlertType.OUT_OF_STOCK, AlertType.LOW_STOCK]

    def test_overstock_kept_by_default(self, thresholds):
        assert AlertType.OVERSTOCK not in stale_alert_types(50, thresholds)

    def test_overstock_stale_when_enabled(self, thresholds):
        with patch.object(settings, "ALERT_AUTO_RESOLVE_OVERSTOCK", True):
            assert AlertType.OVERSTOCK in stale_alert_types(50, thresholds)
            assert AlertType.OVERSTOCK not in stale_alert_types(100, thresholds)
