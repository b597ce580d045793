"""
Stock Movement model for inventory tracking and audit

Track change provenance (who, when, reason). Sales, returns and manual
counts all reach the product's stock through a movement row.
"""
import enum
from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from bikeshop_backend.core.database import Base
from bikeshop_backend.core.utils import utcnow


class MovementType(str, enum.Enum):
    IN = "IN"
    OUT = "OUT"
    ADJUSTMENT = "ADJUSTMENT"  # signed quantity
    TRANSFER = "TRANSFER"  # recorded only, stock unchanged


def stock_delta(movement_type: MovementType, quantity: int) -> int:
    """Effect of a movement on the product's stock."""
    if movement_type == MovementType.IN:
        return quantity
    if movement_type == MovementType.OUT:
        return -quantity
    if movement_type == MovementType.ADJUSTMENT:
        return quantity
    return 0


class StockMovement(Base):
    """Audit trail for inventory stock changes"""
    __tablename__ = "stock_movements"

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    movement_type = Column(SQLEnum(MovementType, name="movement_type"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False)

    # Why
    reason = Column(String(255), nullable=True)

    # Reference to source
    reference_type = Column(String(50), nullable=True)
    # sale, layaway, purchase, manual, count
    reference_id = Column(String(64), nullable=True)

    # Who
    performed_by = Column(String(100), nullable=False)

    # When
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    product = relationship("Product", back_populates="stock_movements")

    __table_args__ = (
        Index("ix_stock_movements_product_created", product_id, created_at),
    )

    @property
    def delta(self) -> int:
        return stock_delta(self.movement_type, self.quantity)

    def __repr__(self):
        return f"<StockMovement {self.id}: {self.movement_type} {self.quantity:+d} on product {self.product_id}>"
