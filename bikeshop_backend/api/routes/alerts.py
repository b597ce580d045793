"""
Stock Alert API Routes

Manual stock checks plus the alert lifecycle: list, inspect, create,
resolve, bulk resolve and retention cleanup. Domain errors are translated
to HTTP responses by the registered ERPBaseError handler.
"""
import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import ValidationError

from bikeshop_backend.api.deps import get_alert_service
from bikeshop_backend.core.exceptions import AlertValidationError
from bikeshop_backend.models import AlertType, AlertPriority
from bikeshop_backend.schemas.alert import (
    AlertCreate,
    AlertFilters,
    AlertResponse,
    AlertStats,
    AlertWithProductResponse,
    BulkResolveRequest,
    BulkResolveResponse,
    CleanupResponse,
    ProductCheckErrorResponse,
    ResolveAlertRequest,
    StockCheckResponse,
)
from bikeshop_backend.services.alert_service import AlertService, DEFAULT_RETENTION_DAYS

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/alerts", tags=["alerts"])


@router.post("/check", response_model=StockCheckResponse)
async def check_stock_levels(service: AlertService = Depends(get_alert_service)):
    """Run a stock-level pass over the whole catalog now."""
    result = await service.check_stock_levels()
    return StockCheckResponse(
        products_checked=result.products_checked,
        alerts=[AlertResponse.model_validate(a) for a in result.alerts],
        resolved_count=result.resolved_count,
        errors=[
            ProductCheckErrorResponse(product_id=e.product_id, sku=e.sku, error=e.error)
            for e in result.errors
        ],
    )


@router.get("", response_model=List[AlertWithProductResponse])
async def list_alerts(
    type: Optional[AlertType] = None,
    priority: Optional[AlertPriority] = None,
    product_id: Optional[int] = Query(None, ge=1),
    is_active: bool = True,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    service: AlertService = Depends(get_alert_service),
):
    """List alerts, most urgent first. Defaults to active alerts."""
    try:
        filters = AlertFilters(
            type=type,
            priority=priority,
            product_id=product_id,
            is_active=is_active,
            date_from=date_from,
            date_to=date_to,
        )
    except ValidationError as e:
        raise AlertValidationError(
            "Invalid alert filters", details={"errors": e.errors(include_url=False, include_context=False)}
        ) from e

    alerts = await service.get_active_alerts(filters)
    return [AlertWithProductResponse.model_validate(a) for a in alerts]


@router.get("/stats", response_model=AlertStats)
async def get_alert_stats(service: AlertService = Depends(get_alert_service)):
    return await service.get_alert_stats()


@router.post("/bulk-resolve", response_model=BulkResolveResponse)
async def bulk_resolve_alerts(
    request: BulkResolveRequest,
    service: AlertService = Depends(get_alert_service),
):
    """Resolve every listed alert that is still active. Unknown ids are skipped."""
    resolved = await service.bulk_resolve_alerts(request.alert_ids, request.resolved_by)
    return BulkResolveResponse(resolved=resolved)


@router.delete("/cleanup", response_model=CleanupResponse)
async def cleanup_old_alerts(
    days_old: int = Query(DEFAULT_RETENTION_DAYS, ge=1, le=3650),
    service: AlertService = Depends(get_alert_service),
):
    """Permanently delete alerts resolved more than days_old days ago."""
    deleted = await service.cleanup_old_alerts(days_old)
    logger.info(f"Alert cleanup requested via API: {deleted} deleted (days_old={days_old})")
    return CleanupResponse(deleted=deleted, days_old=days_old)


@router.post("", response_model=AlertResponse, status_code=201)
async def create_alert(
    request: AlertCreate,
    service: AlertService = Depends(get_alert_service),
):
    alert = await service.create_alert(request)
    return AlertResponse.model_validate(alert)


@router.get("/{alert_id}", response_model=AlertWithProductResponse)
async def get_alert(alert_id: int, service: AlertService = Depends(get_alert_service)):
    alert = await service.get_alert(alert_id)
    return AlertWithProductResponse.model_validate(alert)


@router.post("/{alert_id}/resolve", response_model=AlertResponse)
async def resolve_alert(
    alert_id: int,
    request: Optional[ResolveAlertRequest] = None,
    service: AlertService = Depends(get_alert_service),
):
    resolved_by = request.resolved_by if request else None
    alert = await service.resolve_alert(alert_id, resolved_by)
    return AlertResponse.model_validate(alert)
