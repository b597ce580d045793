"""
Alert Schemas

Pydantic models for alert API requests, responses and service filters.
"""
from datetime import datetime
from typing import Optional, List, Dict

from pydantic import BaseModel, ConfigDict, Field

from bikeshop_backend.models.alert import AlertType, AlertPriority
from bikeshop_backend.schemas.common import DateRangeFilter


# ==================== Requests ====================


class AlertCreate(BaseModel):
    """Create an alert manually."""
    product_id: int
    type: AlertType
    priority: AlertPriority
    title: str = Field(..., min_length=1, max_length=255)
    message: str = Field(..., min_length=1)
    threshold: Optional[int] = None
    current_value: Optional[int] = None


class AlertFilters(DateRangeFilter):
    """Filters for listing alerts. Empty filters return every active alert."""
    type: Optional[AlertType] = None
    priority: Optional[AlertPriority] = None
    product_id: Optional[int] = None
    is_active: bool = True


class ResolveAlertRequest(BaseModel):
    resolved_by: Optional[str] = Field(None, max_length=100)


class BulkResolveRequest(BaseModel):
    alert_ids: List[int] = Field(..., min_length=1)
    resolved_by: Optional[str] = Field(None, max_length=100)


# ==================== Responses ====================


class ProductSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    name: str
    stock: int
    min_stock: Optional[int] = None


class AlertResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    type: AlertType
    priority: AlertPriority
    title: str
    message: str
    threshold: Optional[int] = None
    current_value: Optional[int] = None
    is_active: bool
    created_at: datetime
    updated_at: datetime
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None


class AlertWithProductResponse(AlertResponse):
    product: ProductSummary


class AlertStats(BaseModel):
    """Counts over active alerts. Every enum key is always present."""
    total: int = 0
    by_type: Dict[AlertType, int] = Field(
        default_factory=lambda: {alert_type: 0 for alert_type in AlertType}
    )
    by_priority: Dict[AlertPriority, int] = Field(
        default_factory=lambda: {priority: 0 for priority in AlertPriority}
    )
    critical: int = 0


class ProductCheckErrorResponse(BaseModel):
    product_id: int
    sku: Optional[str] = None
    error: str


class StockCheckResponse(BaseModel):
    products_checked: int
    alerts: List[AlertResponse]
    resolved_count: int
    errors: List[ProductCheckErrorResponse] = []


class BulkResolveResponse(BaseModel):
    resolved: int


class CleanupResponse(BaseModel):
    deleted: int
    days_old: int
