"""
Product Stock API Routes

Stock movements with audit trail, stock history reconstruction, usage
metrics, reorder recommendations and the attention report.
"""
import logging

from fastapi import APIRouter, Depends, Query

from bikeshop_backend.api.deps import get_stock_service
from bikeshop_backend.schemas.stock import (
    AttentionResponse,
    AttentionSummary,
    MovementCreate,
    MovementResponse,
    ProductStockItem,
    StockHistoryResponse,
    StockMetrics,
    StockRecommendation,
    StockUpdateResponse,
)
from bikeshop_backend.services.stock_service import MAX_HISTORY_DAYS, StockService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/products-stock", tags=["stock"])


@router.get("/attention", response_model=AttentionResponse)
async def get_products_requiring_attention(service: StockService = Depends(get_stock_service)):
    """Active products that are out of stock, low on stock or overstocked."""
    groups = await service.get_products_requiring_attention()

    items = {
        key: [ProductStockItem.model_validate(p) for p in products]
        for key, products in groups.items()
    }
    return AttentionResponse(
        summary=AttentionSummary(
            out_of_stock=len(items["out_of_stock"]),
            low_stock=len(items["low_stock"]),
            overstock=len(items["overstock"]),
            total=sum(len(v) for v in items.values()),
        ),
        **items,
    )


@router.post("/{product_id}/movements", response_model=StockUpdateResponse, status_code=201)
async def record_movement(
    product_id: int,
    request: MovementCreate,
    service: StockService = Depends(get_stock_service),
):
    """Record a stock movement and re-check the product's alerts."""
    result = await service.record_movement(
        product_id=product_id,
        movement_type=request.movement_type,
        quantity=request.quantity,
        reason=request.reason,
        performed_by=request.performed_by,
        reference_type=request.reference_type,
        reference_id=request.reference_id,
    )
    return StockUpdateResponse(
        movement=MovementResponse.model_validate(result.movement),
        previous_stock=result.previous_stock,
        new_stock=result.new_stock,
        difference=result.difference,
    )


@router.get("/{product_id}/history", response_model=StockHistoryResponse)
async def get_stock_history(
    product_id: int,
    days: int = Query(30, description=f"Window in days (1-{MAX_HISTORY_DAYS})"),
    service: StockService = Depends(get_stock_service),
):
    history = await service.get_stock_history(product_id, days)
    return StockHistoryResponse(
        product_id=product_id,
        days=days,
        entries=len(history),
        history=history,
    )


@router.get("/{product_id}/metrics", response_model=StockMetrics)
async def get_stock_metrics(product_id: int, service: StockService = Depends(get_stock_service)):
    return await service.calculate_stock_metrics(product_id)


@router.get("/{product_id}/recommendations", response_model=StockRecommendation)
async def get_stock_recommendations(
    product_id: int,
    service: StockService = Depends(get_stock_service),
):
    return await service.recommend_stock_levels(product_id)
