"""
Bike Shop ERP Exception Hierarchy

Structured exception classes for the alerting and stock subsystems.
All exceptions include code, message, and details so API handlers and
background jobs can log and serialize them the same way.

Exception Hierarchy:
    ERPBaseError
    ├── AlertServiceError
    │   ├── AlertNotFoundError
    │   └── AlertValidationError
    └── StockError
        ├── ProductNotFoundError
        ├── MovementNotFoundError
        └── StockValidationError
            └── InsufficientStockError
"""
import logging
from typing import Optional, Dict, Any

logger = logging.getLogger(__name__)


class ERPBaseError(Exception):
    """
    Base exception for all Bike Shop ERP custom errors.

    Attributes:
        message: Human-readable error description
        code: Machine-readable error code for programmatic handling
        details: Additional context for debugging/audit
    """

    default_code: str = "ERP_ERROR"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.code = code or self.default_code
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for logging/serialization."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(code={self.code!r}, message={self.message!r})"


# =============================================================================
# ALERT ERRORS
# =============================================================================

class AlertServiceError(ERPBaseError):
    """Base exception for alert lifecycle failures."""
    default_code = "ALERT_ERROR"


class AlertNotFoundError(AlertServiceError):
    """Alert id does not exist."""
    default_code = "ALERT_NOT_FOUND"

    def __init__(self, alert_id: int, **kwargs):
        details = kwargs.pop("details", {})
        details["alert_id"] = alert_id
        super().__init__(f"Alert {alert_id} not found", details=details, **kwargs)


class AlertValidationError(AlertServiceError):
    """Alert request or filter is malformed."""
    default_code = "ALERT_VALIDATION_FAILED"


# =============================================================================
# STOCK ERRORS
# =============================================================================

class StockError(ERPBaseError):
    """Base exception for stock movement and reporting errors."""
    default_code = "STOCK_ERROR"


class ProductNotFoundError(StockError):
    """Product id does not exist."""
    default_code = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: int, **kwargs):
        details = kwargs.pop("details", {})
        details["product_id"] = product_id
        super().__init__(f"Product {product_id} not found", details=details, **kwargs)


class MovementNotFoundError(StockError):
    """Stock movement id does not exist."""
    default_code = "MOVEMENT_NOT_FOUND"

    def __init__(self, movement_id: int, **kwargs):
        details = kwargs.pop("details", {})
        details["movement_id"] = movement_id
        super().__init__(f"Movement {movement_id} not found", details=details, **kwargs)


class StockValidationError(StockError):
    """Movement request is malformed."""
    default_code = "STOCK_VALIDATION_FAILED"


class InsufficientStockError(StockValidationError):
    """Movement would take stock below zero."""
    default_code = "INSUFFICIENT_STOCK"

    def __init__(
        self,
        message: str,
        current_stock: Optional[int] = None,
        requested: Optional[int] = None,
        **kwargs
    ):
        details = kwargs.pop("details", {})
        details.update({
            "current_stock": current_stock,
            "requested": requested,
        })
        super().__init__(message, details=details, **kwargs)
