"""
Stock Service

Stock movements plus the reporting that reads them back:
- record_movement: validated stock change with audit row, then alert re-check
- list_movements / get_movement / get_product_movements / get_movement_stats
- get_stock_history: stock level after every movement in a window
- calculate_stock_metrics: usage, rotation and stock level over 90 days
- get_products_requiring_attention / recommend_stock_levels
"""
import logging
import math
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import select, and_, or_, func
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from bikeshop_backend.core.exceptions import (
    AlertServiceError,
    InsufficientStockError,
    MovementNotFoundError,
    ProductNotFoundError,
    StockValidationError,
)
from bikeshop_backend.core.utils import ensure_utc, utcnow
from bikeshop_backend.models import Product, StockMovement, MovementType, stock_delta
from bikeshop_backend.schemas.stock import (
    MovementFilters,
    MovementStats,
    MovementSummary,
    StockHistoryEntry,
    StockMetrics,
    StockRecommendation,
)
from bikeshop_backend.services.alert_service import AlertService
from bikeshop_backend.services.thresholds import effective_min_stock

logger = logging.getLogger(__name__)

METRICS_WINDOW_DAYS = 90
RECENT_WINDOW_DAYS = 30
SAFETY_STOCK_DAYS = 7
TARGET_COVER_DAYS = 30
MAX_HISTORY_DAYS = 365
DEFAULT_PAGE_SIZE = 10
MAX_PAGE_SIZE = 100
DEFAULT_PRODUCT_MOVEMENTS = 20


@dataclass
class StockUpdateResult:
    movement: StockMovement
    previous_stock: int
    new_stock: int

    @property
    def difference(self) -> int:
        return self.new_stock - self.previous_stock


@dataclass
class MovementPageResult:
    movements: List[StockMovement]
    total_count: int
    page: int
    limit: int

    @property
    def total_pages(self) -> int:
        return math.ceil(self.total_count / self.limit)

    @property
    def has_next_page(self) -> bool:
        return self.page < self.total_pages

    @property
    def has_prev_page(self) -> bool:
        return self.page > 1


class StockService:
    """Stock movements, history and metrics for one product at a time."""

    def __init__(self, db: AsyncSession, alert_service: Optional[AlertService] = None):
        self.db = db
        self.alert_service = alert_service or AlertService(db)

    async def _get_product(self, product_id: int, for_update: bool = False) -> Product:
        query = select(Product).where(Product.id == product_id)
        if for_update:
            query = query.with_for_update()
        result = await self.db.execute(query)
        product = result.scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(product_id)
        return product

    # ==================== Movements ====================

    async def record_movement(
        self,
        product_id: int,
        movement_type: MovementType,
        quantity: int,
        reason: Optional[str],
        performed_by: str,
        reference_type: Optional[str] = None,
        reference_id: Optional[str] = None,
    ) -> StockUpdateResult:
        """
        Apply a stock movement and write its audit row in one transaction.

        IN/OUT/TRANSFER take a positive quantity; ADJUSTMENT takes a signed
        one. TRANSFER is recorded without touching stock.

        Raises:
            StockValidationError: zero or wrongly signed quantity
            InsufficientStockError: movement would take stock below 0
            ProductNotFoundError: unknown product id
        """
        movement_type = MovementType(movement_type)
        if quantity == 0:
            raise StockValidationError("Quantity cannot be 0")
        if movement_type != MovementType.ADJUSTMENT and quantity < 0:
            raise StockValidationError(
                f"Quantity must be positive for {movement_type.value} movements",
                details={"movement_type": movement_type.value, "quantity": quantity},
            )

        product = await self._get_product(product_id, for_update=True)
        previous_stock = product.stock
        new_stock = previous_stock + stock_delta(movement_type, quantity)

        if new_stock < 0:
            await self.db.rollback()
            raise InsufficientStockError(
                f"Insufficient stock. Current stock: {previous_stock}, requested: {abs(quantity)}",
                current_stock=previous_stock,
                requested=abs(quantity),
            )

        movement = StockMovement(
            product_id=product_id,
            movement_type=movement_type,
            quantity=quantity,
            reason=reason,
            reference_type=reference_type,
            reference_id=reference_id,
            performed_by=performed_by,
        )
        self.db.add(movement)
        product.stock = new_stock
        await self.db.commit()

        logger.info(
            f"Stock movement {movement.id} for product {product_id} ({product.sku}): "
            f"{previous_stock} -> {new_stock} ({movement_type.value} {quantity:+d}) by {performed_by}"
        )

        # The movement stands even if alert evaluation fails; the next pass retries it
        try:
            await self.alert_service.check_product_stock(product_id)
        except AlertServiceError as e:
            logger.error(f"Alert re-check after movement {movement.id} failed: {e.to_dict()}")

        return StockUpdateResult(movement=movement, previous_stock=previous_stock, new_stock=new_stock)

    async def list_movements(
        self,
        filters: Optional[MovementFilters] = None,
        page: int = 1,
        limit: int = DEFAULT_PAGE_SIZE,
    ) -> MovementPageResult:
        """
        One page of movements with their product, newest first.

        The created_at range is inclusive on both ends.

        Raises:
            StockValidationError: page below 1 or limit outside 1..MAX_PAGE_SIZE
        """
        if page < 1:
            raise StockValidationError("page must be 1 or greater", details={"page": page})
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise StockValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE}", details={"limit": limit}
            )

        filters = filters or MovementFilters()
        conditions = []
        if filters.product_id:
            conditions.append(StockMovement.product_id == filters.product_id)
        if filters.movement_type:
            conditions.append(StockMovement.movement_type == filters.movement_type)
        if filters.performed_by:
            conditions.append(StockMovement.performed_by == filters.performed_by)
        if filters.date_from:
            conditions.append(StockMovement.created_at >= filters.date_from)
        if filters.date_to:
            conditions.append(StockMovement.created_at <= filters.date_to)

        total_count = await self.db.scalar(
            select(func.count(StockMovement.id)).where(*conditions)
        )
        result = await self.db.execute(
            select(StockMovement)
            .options(selectinload(StockMovement.product))
            .where(*conditions)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        )
        return MovementPageResult(
            movements=list(result.scalars().all()),
            total_count=total_count or 0,
            page=page,
            limit=limit,
        )

    async def get_movement(self, movement_id: int) -> StockMovement:
        result = await self.db.execute(
            select(StockMovement)
            .options(selectinload(StockMovement.product))
            .where(StockMovement.id == movement_id)
        )
        movement = result.scalar_one_or_none()
        if movement is None:
            raise MovementNotFoundError(movement_id)
        return movement

    async def get_product_movements(
        self, product_id: int, limit: int = DEFAULT_PRODUCT_MOVEMENTS
    ) -> List[StockMovement]:
        """Latest movements of one product, newest first."""
        if limit < 1 or limit > MAX_PAGE_SIZE:
            raise StockValidationError(
                f"limit must be between 1 and {MAX_PAGE_SIZE}", details={"limit": limit}
            )
        await self._get_product(product_id)

        result = await self.db.execute(
            select(StockMovement)
            .options(selectinload(StockMovement.product))
            .where(StockMovement.product_id == product_id)
            .order_by(StockMovement.created_at.desc(), StockMovement.id.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def get_movement_stats(self, product_id: Optional[int] = None) -> MovementStats:
        """
        Movement totals for one product, or for the whole shop.

        total_adjustments adds up adjustment sizes regardless of sign, and
        net_change only counts IN against OUT.
        """
        query = select(
            StockMovement.movement_type,
            func.count(StockMovement.id),
            func.sum(func.abs(StockMovement.quantity)),
            func.max(StockMovement.created_at),
        ).group_by(StockMovement.movement_type)
        if product_id is not None:
            await self._get_product(product_id)
            query = query.where(StockMovement.product_id == product_id)

        rows = (await self.db.execute(query)).all()

        by_type = {movement_type: 0 for movement_type in MovementType}
        units = {movement_type: 0 for movement_type in MovementType}
        last_movement = None
        for movement_type, count, quantity, latest in rows:
            movement_type = MovementType(movement_type)
            by_type[movement_type] = count
            units[movement_type] = int(quantity or 0)
            latest = ensure_utc(latest)
            if latest is not None and (last_movement is None or latest > last_movement):
                last_movement = latest

        return MovementStats(
            total_in=units[MovementType.IN],
            total_out=units[MovementType.OUT],
            total_adjustments=units[MovementType.ADJUSTMENT],
            net_change=units[MovementType.IN] - units[MovementType.OUT],
            total_movements=sum(by_type.values()),
            movements_by_type=by_type,
            last_movement=last_movement,
        )

    # ==================== History ====================

    async def get_stock_history(self, product_id: int, days: int = 30) -> List[StockHistoryEntry]:
        """
        Rebuild the stock level after each movement in the last `days` days.

        Walks backwards from the current stock, undoing one movement at a time.
        """
        if days < 1 or days > MAX_HISTORY_DAYS:
            raise StockValidationError(f"days must be between 1 and {MAX_HISTORY_DAYS}")

        product = await self._get_product(product_id)
        since = utcnow() - timedelta(days=days)

        result = await self.db.execute(
            select(StockMovement)
            .where(StockMovement.product_id == product_id, StockMovement.created_at >= since)
            .order_by(StockMovement.created_at.asc(), StockMovement.id.asc())
        )
        movements = result.scalars().all()

        history: List[StockHistoryEntry] = []
        stock_after = product.stock
        for movement in reversed(movements):
            history.append(
                StockHistoryEntry(
                    date=movement.created_at,
                    stock=stock_after,
                    movement=MovementSummary(
                        id=movement.id,
                        movement_type=movement.movement_type,
                        quantity=movement.quantity,
                        reason=movement.reason,
                        performed_by=movement.performed_by,
                    ),
                )
            )
            stock_after -= movement.delta

        history.reverse()
        return history

    # ==================== Metrics ====================

    async def calculate_stock_metrics(self, product_id: int) -> StockMetrics:
        product = await self._get_product(product_id)
        now = utcnow()

        result = await self.db.execute(
            select(StockMovement)
            .where(
                StockMovement.product_id == product_id,
                StockMovement.created_at >= now - timedelta(days=METRICS_WINDOW_DAYS),
            )
            .order_by(StockMovement.created_at.desc())
        )
        movements = result.scalars().all()

        recent_cutoff = now - timedelta(days=RECENT_WINDOW_DAYS)
        movements_30_days = sum(
            1 for m in movements if ensure_utc(m.created_at) >= recent_cutoff
        )

        units_out = sum(m.quantity for m in movements if m.movement_type == MovementType.OUT)
        average_usage = units_out / METRICS_WINDOW_DAYS
        days_until_stockout = math.floor(product.stock / average_usage) if average_usage > 0 else -1
        stock_rotation = units_out / product.stock if product.stock > 0 else 0.0

        min_stock = effective_min_stock(product.min_stock)
        is_low_stock = product.stock <= min_stock
        is_overstock = product.max_stock is not None and product.stock > product.max_stock

        if product.stock == 0:
            stock_level = "CRITICAL"
        elif is_low_stock:
            stock_level = "LOW"
        elif is_overstock:
            stock_level = "OVERSTOCK"
        elif product.max_stock and product.stock > product.max_stock * 0.8:
            stock_level = "HIGH"
        else:
            stock_level = "NORMAL"

        return StockMetrics(
            product_id=product.id,
            current_stock=product.stock,
            min_stock=min_stock,
            max_stock=product.max_stock,
            stock_rotation=stock_rotation,
            average_usage=average_usage,
            days_until_stockout=days_until_stockout,
            stock_value=Decimal(product.stock) * Decimal(product.cost_price or 0),
            last_movement_date=movements[0].created_at if movements else None,
            total_movements=len(movements),
            movements_30_days=movements_30_days,
            is_low_stock=is_low_stock,
            is_overstock=is_overstock,
            stock_level=stock_level,
        )

    async def get_products_requiring_attention(self) -> Dict[str, List[Product]]:
        """Active products grouped into out_of_stock, low_stock and overstock."""
        result = await self.db.execute(
            select(Product)
            .where(
                Product.is_active.is_(True),
                or_(
                    Product.stock <= 0,
                    Product.stock <= Product.min_stock,
                    Product.min_stock.is_(None),
                    Product.min_stock == 0,
                    and_(Product.max_stock.is_not(None), Product.stock > Product.max_stock),
                ),
            )
            .order_by(Product.stock.asc(), Product.name.asc())
        )
        candidates = result.scalars().all()

        groups: Dict[str, List[Product]] = {"out_of_stock": [], "low_stock": [], "overstock": []}
        for product in candidates:
            if product.stock <= 0:
                groups["out_of_stock"].append(product)
            elif product.stock <= effective_min_stock(product.min_stock):
                groups["low_stock"].append(product)
            elif product.max_stock is not None and product.stock > product.max_stock:
                groups["overstock"].append(product)

        groups["overstock"].sort(key=lambda p: p.stock, reverse=True)
        return groups

    async def recommend_stock_levels(self, product_id: int) -> StockRecommendation:
        metrics = await self.calculate_stock_metrics(product_id)

        safety_stock = math.ceil(metrics.average_usage * SAFETY_STOCK_DAYS)
        recommended_min = max(safety_stock, 1)
        recommended_max = math.ceil(metrics.average_usage * TARGET_COVER_DAYS)

        reasoning = (
            f"Based on average usage of {metrics.average_usage:.1f} units/day. "
            f"Safety stock: {safety_stock} units ({SAFETY_STOCK_DAYS} days). "
            f"Maximum stock covers {TARGET_COVER_DAYS} days of operation."
        )

        return StockRecommendation(
            product_id=product_id,
            recommended_min_stock=recommended_min,
            recommended_max_stock=recommended_max,
            reasoning=reasoning,
        )
