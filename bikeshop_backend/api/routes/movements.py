"""
Inventory Movement API Routes

Read side of the stock audit trail: paginated listing with filters, a single
movement, the latest movements of one product and movement totals. Movements
are written through /products-stock/{product_id}/movements.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError

from bikeshop_backend.api.deps import get_stock_service
from bikeshop_backend.core.exceptions import StockValidationError
from bikeshop_backend.models import MovementType
from bikeshop_backend.schemas.stock import (
    MovementFilters,
    MovementPage,
    MovementStats,
    MovementWithProductResponse,
)
from bikeshop_backend.services.stock_service import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_PRODUCT_MOVEMENTS,
    MAX_PAGE_SIZE,
    StockService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/inventory-movements", tags=["movements"])


@router.get("", response_model=MovementPage)
async def list_movements(
    product_id: Optional[int] = Query(None, ge=1),
    movement_type: Optional[MovementType] = None,
    performed_by: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    page: int = 1,
    limit: int = Query(DEFAULT_PAGE_SIZE, description=f"Page size (1-{MAX_PAGE_SIZE})"),
    service: StockService = Depends(get_stock_service),
):
    """List movements newest first, one page at a time."""
    try:
        filters = MovementFilters(
            product_id=product_id,
            movement_type=movement_type,
            performed_by=performed_by,
            date_from=date_from,
            date_to=date_to,
        )
    except ValidationError as e:
        raise StockValidationError(
            "Invalid movement filters", details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e

    result = await service.list_movements(filters, page=page, limit=limit)
    return MovementPage(
        movements=[MovementWithProductResponse.model_validate(m) for m in result.movements],
        total_count=result.total_count,
        total_pages=result.total_pages,
        current_page=result.page,
        has_next_page=result.has_next_page,
        has_prev_page=result.has_prev_page,
    )


@router.get("/stats", response_model=MovementStats)
async def get_movement_stats(
    product_id: Optional[int] = Query(None, ge=1),
    service: StockService = Depends(get_stock_service),
):
    """Movement totals for one product, or for every product when omitted."""
    return await service.get_movement_stats(product_id)


@router.get("/stats/{product_id}", response_model=MovementStats)
async def get_product_movement_stats(product_id: int, service: StockService = Depends(get_stock_service)):
    return await service.get_movement_stats(product_id)


@router.get("/product/{product_id}", response_model=List[MovementWithProductResponse])
async def get_product_movements(
    product_id: int,
    limit: int = Query(DEFAULT_PRODUCT_MOVEMENTS, description=f"Number of movements (1-{MAX_PAGE_SIZE})"),
    service: StockService = Depends(get_stock_service),
):
    movements = await service.get_product_movements(product_id, limit)
    return [MovementWithProductResponse.model_validate(m) for m in movements]


@router.get("/{movement_id}", response_model=MovementWithProductResponse)
async def get_movement(movement_id: int, service: StockService = Depends(get_stock_service)):
    movement = await service.get_movement(movement_id)
    return MovementWithProductResponse.model_validate(movement)
