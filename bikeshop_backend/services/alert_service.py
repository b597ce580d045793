"""
Stock Alert Service

Evaluates every product's stock against its thresholds and keeps the alert
lifecycle (ACTIVE -> RESOLVED -> PURGED) in the database.

Evaluation pass:
- Products are processed sequentially, each in its own SAVEPOINT and commit.
- A failure on one product is rolled back, logged and collected in
  StockCheckResult.errors; the pass moves on to the next product.
- Only a failed catalog fetch aborts the pass.

Passes are serialized in-process so the scheduler and a manual recheck never
interleave. Across processes the partial unique index on
(product_id, type) WHERE is_active turns a lost race into a per-product error.
"""
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from typing import List, Optional, Sequence

from sqlalchemy import select, delete, func, case
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bikeshop_backend.core.exceptions import (
    AlertServiceError,
    AlertNotFoundError,
    ProductNotFoundError,
)
from bikeshop_backend.core.utils import utcnow
from bikeshop_backend.models import (
    Alert,
    AlertType,
    AlertPriority,
    PRIORITY_RANK,
    SYSTEM_RESOLVER,
    Product,
)
from bikeshop_backend.schemas.alert import AlertCreate, AlertFilters, AlertStats
from bikeshop_backend.services.thresholds import (
    StockCondition,
    StockThresholds,
    calculate_thresholds,
    classify_stock,
    stale_alert_types,
)

logger = logging.getLogger(__name__)

DEFAULT_RETENTION_DAYS = 30

_stock_check_lock = asyncio.Lock()


@dataclass
class ProductCheckError:
    product_id: int
    sku: Optional[str]
    error: str


@dataclass
class ProductCheckOutcome:
    product_id: int
    alert: Optional[Alert] = None
    resolved_count: int = 0


@dataclass
class StockCheckResult:
    """Outcome of one evaluation pass."""
    products_checked: int = 0
    alerts: List[Alert] = field(default_factory=list)
    resolved_count: int = 0
    errors: List[ProductCheckError] = field(default_factory=list)

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)


def describe_condition(name: str, sku: str, stock: int, condition: StockCondition) -> tuple:
    """Title and message for an alert, regenerated on every refresh."""
    if condition.type == AlertType.OUT_OF_STOCK:
        return (
            f"Product out of stock: {name}",
            f"Product {name} (SKU: {sku}) is completely out of stock",
        )
    if condition.type == AlertType.LOW_STOCK and condition.priority == AlertPriority.HIGH:
        return (
            f"Critical low stock: {name}",
            f"Product {name} has critically low stock: {stock} units remaining",
        )
    if condition.type == AlertType.LOW_STOCK:
        return (
            f"Low stock warning: {name}",
            f"Product {name} is running low on stock: {stock} units remaining",
        )
    return (
        f"Overstock detected: {name}",
        f"Product {name} has excess stock: {stock} units (threshold: {condition.threshold})",
    )


class AlertService:
    """Alert rule engine and alert lifecycle store."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # ==================== Evaluation ====================

    async def check_stock_levels(self) -> StockCheckResult:
        """
        Run one evaluation pass over the full catalog.

        Returns the alerts created or refreshed in this pass, the number of
        alerts auto-resolved, and the products that failed.

        Raises:
            AlertServiceError: the catalog could not be fetched
        """
        async with _stock_check_lock:
            logger.info("Starting stock level monitoring")

            try:
                products = await self._fetch_catalog()
            except Exception as e:
                logger.error(f"Error fetching catalog for stock check: {e}")
                raise AlertServiceError("Failed to check stock levels") from e

            result = StockCheckResult()

            for product in products:
                result.products_checked += 1
                try:
                    async with self.db.begin_nested():
                        outcome = await self._evaluate_product(product)
                    await self.db.commit()
                except Exception as e:
                    # A failed commit leaves the session unusable until rolled back
                    await self.db.rollback()
                    logger.error(
                        f"Stock check failed for product {product.id} ({product.sku}): "
                        f"{type(e).__name__}: {e}"
                    )
                    result.errors.append(
                        ProductCheckError(product_id=product.id, sku=product.sku, error=str(e))
                    )
                    continue

                if outcome.alert is not None:
                    result.alerts.append(outcome.alert)
                result.resolved_count += outcome.resolved_count

            if result.errors:
                # Rollbacks expired the alerts committed earlier in the pass
                for alert in result.alerts:
                    await self.db.refresh(alert)

            logger.info(
                f"Stock monitoring completed: {result.products_checked} products, "
                f"{len(result.alerts)} alerts created/refreshed, "
                f"{result.resolved_count} auto-resolved, {len(result.errors)} failed"
            )
            return result

    async def check_product_stock(self, product_id: int) -> ProductCheckOutcome:
        """
        Evaluate a single product, e.g. right after a stock movement.

        Raises:
            ProductNotFoundError: unknown product id
            AlertServiceError: the evaluation failed
        """
        result = await self.db.execute(
            select(Product.id, Product.name, Product.sku, Product.stock, Product.min_stock)
            .where(Product.id == product_id)
        )
        product = result.one_or_none()
        if product is None:
            raise ProductNotFoundError(product_id)

        try:
            outcome = await self._evaluate_product(product)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error checking stock alerts for product {product_id}: {e}")
            raise AlertServiceError(
                "Failed to check product stock", details={"product_id": product_id}
            ) from e

        return outcome

    async def _fetch_catalog(self) -> Sequence:
        # Plain rows, not entities: a savepoint rollback must not expire them
        result = await self.db.execute(
            select(Product.id, Product.name, Product.sku, Product.stock, Product.min_stock)
            .order_by(Product.id)
        )
        return result.all()

    async def _evaluate_product(self, product) -> ProductCheckOutcome:
        thresholds = calculate_thresholds(product.min_stock)
        condition = classify_stock(product.stock, thresholds)

        outcome = ProductCheckOutcome(product_id=product.id)
        if condition is not None:
            outcome.alert = await self._create_or_refresh(product, condition)
        outcome.resolved_count = await self._auto_resolve(product.id, product.stock, thresholds)
        return outcome

    async def _create_or_refresh(self, product, condition: StockCondition) -> Alert:
        """Refresh the active alert for (product, type) or open a new one."""
        title, message = describe_condition(product.name, product.sku, product.stock, condition)

        result = await self.db.execute(
            select(Alert)
            .where(
                Alert.product_id == product.id,
                Alert.type == condition.type,
                Alert.is_active.is_(True),
            )
            .limit(1)
        )
        existing = result.scalar_one_or_none()

        if existing is not None:
            existing.priority = condition.priority
            existing.threshold = condition.threshold
            existing.current_value = product.stock
            existing.title = title
            existing.message = message
            existing.updated_at = utcnow()
            await self.db.flush()
            return existing

        return await self._insert_alert(
            AlertCreate(
                product_id=product.id,
                type=condition.type,
                priority=condition.priority,
                title=title,
                message=message,
                threshold=condition.threshold,
                current_value=product.stock,
            )
        )

    async def _auto_resolve(self, product_id: int, stock: int, thresholds: StockThresholds) -> int:
        """Close active alerts whose triggering condition no longer holds."""
        stale_types = stale_alert_types(stock, thresholds)
        if not stale_types:
            return 0

        result = await self.db.execute(
            select(Alert)
            .where(
                Alert.product_id == product_id,
                Alert.type.in_(stale_types),
                Alert.is_active.is_(True),
            )
            .with_for_update()
        )
        alerts = result.scalars().all()
        for alert in alerts:
            self._mark_resolved(alert, SYSTEM_RESOLVER)

        if alerts:
            await self.db.flush()
            logger.info(
                f"Auto-resolved {len(alerts)} alert(s) for product {product_id} "
                f"(stock={stock}): {', '.join(a.type.value for a in alerts)}"
            )
        return len(alerts)

    @staticmethod
    def _mark_resolved(alert: Alert, resolved_by: Optional[str]) -> None:
        now = utcnow()
        alert.is_active = False
        alert.resolved_at = now
        alert.resolved_by = resolved_by
        alert.updated_at = now

    async def _insert_alert(self, data: AlertCreate) -> Alert:
        alert = Alert(
            product_id=data.product_id,
            type=data.type,
            priority=data.priority,
            title=data.title,
            message=data.message,
            threshold=data.threshold,
            current_value=data.current_value,
            is_active=True,
        )
        self.db.add(alert)
        await self.db.flush()
        logger.info(f"Alert created: {alert.id} - {alert.title}")
        return alert

    # ==================== Lifecycle ====================

    async def create_alert(self, data: AlertCreate) -> Alert:
        if await self.db.get(Product, data.product_id) is None:
            raise ProductNotFoundError(data.product_id)

        try:
            alert = await self._insert_alert(data)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error creating alert: {e}")
            raise AlertServiceError("Failed to create alert") from e
        return alert

    async def get_active_alerts(self, filters: Optional[AlertFilters] = None) -> List[Alert]:
        """
        List alerts with their product, most urgent first.

        Defaults to active alerts only; the created_at range is inclusive on
        both ends.
        """
        filters = filters or AlertFilters()

        query = (
            select(Alert)
            .options(selectinload(Alert.product))
            .where(Alert.is_active.is_(filters.is_active))
        )
        if filters.type:
            query = query.where(Alert.type == filters.type)
        if filters.priority:
            query = query.where(Alert.priority == filters.priority)
        if filters.product_id:
            query = query.where(Alert.product_id == filters.product_id)
        if filters.date_from:
            query = query.where(Alert.created_at >= filters.date_from)
        if filters.date_to:
            query = query.where(Alert.created_at <= filters.date_to)

        priority_rank = case(
            *[(Alert.priority == priority, rank) for priority, rank in PRIORITY_RANK.items()],
            else_=-1,
        )
        query = query.order_by(priority_rank.desc(), Alert.created_at.desc(), Alert.id.desc())

        try:
            result = await self.db.execute(query)
        except Exception as e:
            logger.error(f"Error getting active alerts: {e}")
            raise AlertServiceError("Failed to get active alerts") from e
        return list(result.scalars().all())

    async def get_alert(self, alert_id: int) -> Alert:
        result = await self.db.execute(
            select(Alert).options(selectinload(Alert.product)).where(Alert.id == alert_id)
        )
        alert = result.scalar_one_or_none()
        if alert is None:
            raise AlertNotFoundError(alert_id)
        return alert

    async def resolve_alert(self, alert_id: int, resolved_by: Optional[str] = None) -> Alert:
        """
        Resolve one alert.

        Resolving an already resolved alert returns it untouched, so
        resolved_at keeps the original resolution time.

        Raises:
            AlertNotFoundError: unknown alert id
        """
        alert = await self.db.get(Alert, alert_id)
        if alert is None:
            raise AlertNotFoundError(alert_id)

        if not alert.is_active:
            logger.info(f"Alert {alert_id} already resolved by {alert.resolved_by or SYSTEM_RESOLVER}")
            return alert

        try:
            self._mark_resolved(alert, resolved_by)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error resolving alert {alert_id}: {e}")
            raise AlertServiceError("Failed to resolve alert", details={"alert_id": alert_id}) from e

        logger.info(f"Alert resolved: {alert_id} by {resolved_by or SYSTEM_RESOLVER}")
        return alert

    async def bulk_resolve_alerts(self, alert_ids: List[int], resolved_by: Optional[str] = None) -> int:
        """
        Resolve every listed alert that exists and is still active.

        Unknown or already resolved ids are skipped. Returns the count updated.
        """
        if not alert_ids:
            return 0

        try:
            result = await self.db.execute(
                select(Alert)
                .where(Alert.id.in_(list(set(alert_ids))), Alert.is_active.is_(True))
                .with_for_update()
            )
            alerts = result.scalars().all()
            for alert in alerts:
                self._mark_resolved(alert, resolved_by)
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error bulk resolving alerts: {e}")
            raise AlertServiceError("Failed to bulk resolve alerts") from e

        logger.info(f"Bulk resolved {len(alerts)} alerts by {resolved_by or SYSTEM_RESOLVER}")
        return len(alerts)

    async def get_alert_stats(self) -> AlertStats:
        try:
            result = await self.db.execute(
                select(Alert.type, Alert.priority, func.count(Alert.id))
                .where(Alert.is_active.is_(True))
                .group_by(Alert.type, Alert.priority)
            )
            rows = result.all()
        except Exception as e:
            logger.error(f"Error getting alert stats: {e}")
            raise AlertServiceError("Failed to get alert statistics") from e

        stats = AlertStats()
        for alert_type, priority, count in rows:
            stats.total += count
            stats.by_type[AlertType(alert_type)] += count
            stats.by_priority[AlertPriority(priority)] += count
        stats.critical = stats.by_priority[AlertPriority.CRITICAL]
        return stats

    async def cleanup_old_alerts(self, days_old: int = DEFAULT_RETENTION_DAYS) -> int:
        """
        Permanently delete alerts resolved more than `days_old` days ago.

        Destructive: meant for the retention job, not for ad hoc calls.
        """
        cutoff = utcnow() - timedelta(days=days_old)

        try:
            result = await self.db.execute(
                delete(Alert)
                .where(
                    Alert.is_active.is_(False),
                    Alert.resolved_at.is_not(None),
                    Alert.resolved_at < cutoff,
                )
                .execution_options(synchronize_session=False)
            )
            await self.db.commit()
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Error cleaning up old alerts: {e}")
            raise AlertServiceError("Failed to cleanup old alerts") from e

        deleted = result.rowcount or 0
        logger.info(f"Cleaned up {deleted} alerts resolved before {cutoff.isoformat()}")
        return deleted
