from bikeshop_backend.schemas.alert import (
    AlertCreate,
    AlertFilters,
    AlertResponse,
    AlertStats,
    AlertWithProductResponse,
    BulkResolveRequest,
    ResolveAlertRequest,
)
from bikeshop_backend.schemas.stock import (
    MovementCreate,
    MovementFilters,
    StockMetrics,
    StockRecommendation,
)
