"""
Stock Schemas

Pydantic models for stock movements, history and metrics endpoints.
"""
from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional, List, Literal

from pydantic import BaseModel, ConfigDict, Field

from bikeshop_backend.models.stock_movement import MovementType
from bikeshop_backend.schemas.common import DateRangeFilter


StockLevel = Literal["CRITICAL", "LOW", "NORMAL", "HIGH", "OVERSTOCK"]


class MovementCreate(BaseModel):
    """Record a stock movement. ADJUSTMENT accepts a signed quantity."""
    movement_type: MovementType
    quantity: int
    reason: str = Field(..., min_length=3, max_length=255)
    performed_by: str = Field(..., min_length=1, max_length=100)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[str] = Field(None, max_length=64)


class MovementResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    product_id: int
    movement_type: MovementType
    quantity: int
    reason: Optional[str] = None
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    performed_by: str
    created_at: datetime


class StockUpdateResponse(BaseModel):
    movement: MovementResponse
    previous_stock: int
    new_stock: int
    difference: int


class MovementSummary(BaseModel):
    id: int
    movement_type: MovementType
    quantity: int
    reason: Optional[str] = None
    performed_by: str


class StockHistoryEntry(BaseModel):
    date: datetime
    stock: int  # level right after the movement
    movement: MovementSummary


class StockHistoryResponse(BaseModel):
    product_id: int
    days: int
    entries: int
    history: List[StockHistoryEntry]


class StockMetrics(BaseModel):
    product_id: int
    current_stock: int
    min_stock: int
    max_stock: Optional[int] = None
    stock_rotation: float
    average_usage: float  # units out per day over 90 days
    days_until_stockout: int  # -1 when there is no usage
    stock_value: Decimal
    last_movement_date: Optional[datetime] = None
    total_movements: int
    movements_30_days: int
    is_low_stock: bool
    is_overstock: bool
    stock_level: StockLevel


class ProductStockItem(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sku: str
    name: str
    stock: int
    min_stock: Optional[int] = None
    max_stock: Optional[int] = None


class AttentionSummary(BaseModel):
    out_of_stock: int
    low_stock: int
    overstock: int
    total: int


class AttentionResponse(BaseModel):
    summary: AttentionSummary
    out_of_stock: List[ProductStockItem]
    low_stock: List[ProductStockItem]
    overstock: List[ProductStockItem]


class StockRecommendation(BaseModel):
    product_id: int
    recommended_min_stock: int
    recommended_max_stock: int
    reasoning: str


class MovementFilters(DateRangeFilter):
    """Filters for the movement listing; every field is optional."""
    product_id: Optional[int] = None
    movement_type: Optional[MovementType] = None
    performed_by: Optional[str] = Field(None, max_length=100)


class MovementWithProductResponse(MovementResponse):
    product: ProductStockItem


class MovementPage(BaseModel):
    movements: List[MovementWithProductResponse]
    total_count: int
    total_pages: int
    current_page: int
    has_next_page: bool
    has_prev_page: bool


class MovementStats(BaseModel):
    total_in: int
    total_out: int
    total_adjustments: int  # sum of absolute adjustment quantities
    net_change: int  # total_in - total_out
    total_movements: int
    movements_by_type: Dict[MovementType, int]
    last_movement: Optional[datetime] = None
