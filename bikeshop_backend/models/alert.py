"""
Stock Alert model

One row per stock condition on one product. At most one active row per
(product_id, type); the partial unique index enforces it at the storage layer.

Lifecycle: ACTIVE -> RESOLVED -> PURGED (deleted by retention cleanup).
A recurring condition opens a new row, resolved rows never reactivate.
"""
import enum
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, ForeignKey,
    Index, Enum as SQLEnum
)
from sqlalchemy.orm import relationship

from bikeshop_backend.core.database import Base
from bikeshop_backend.core.utils import utcnow


class AlertType(str, enum.Enum):
    LOW_STOCK = "LOW_STOCK"
    OUT_OF_STOCK = "OUT_OF_STOCK"
    OVERSTOCK = "OVERSTOCK"


class AlertPriority(str, enum.Enum):
    """Declaration order is triage order: LOW < MEDIUM < HIGH < CRITICAL."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    CRITICAL = "CRITICAL"

    @property
    def rank(self) -> int:
        return PRIORITY_RANK[self]


PRIORITY_RANK = {priority: index for index, priority in enumerate(AlertPriority)}

SYSTEM_RESOLVER = "system"


class Alert(Base):
    """Open or resolved condition about one product's stock level"""
    __tablename__ = "alerts"

    id = Column(Integer, primary_key=True, index=True)

    product_id = Column(
        Integer,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
        index=True
    )

    type = Column(SQLEnum(AlertType, name="alert_type"), nullable=False, index=True)
    priority = Column(SQLEnum(AlertPriority, name="alert_priority"), nullable=False)

    title = Column(String(255), nullable=False)
    message = Column(Text, nullable=False)

    # Boundary that was crossed and the stock seen on the last refresh
    threshold = Column(Integer, nullable=True)
    current_value = Column(Integer, nullable=True)

    # Status
    is_active = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)
    resolved_at = Column(DateTime(timezone=True), nullable=True)
    resolved_by = Column(String(100), nullable=True)

    product = relationship("Product", back_populates="alerts")

    __table_args__ = (
        Index("ix_alerts_active_type", is_active, type),
        Index("ix_alerts_resolved_at", resolved_at),
        Index(
            "uq_alerts_product_type_active",
            product_id,
            type,
            unique=True,
            postgresql_where=is_active.is_(True),
            sqlite_where=is_active.is_(True),
        ),
    )

    def __repr__(self):
        state = "active" if self.is_active else "resolved"
        return f"<Alert {self.id}: {self.type} {self.priority} for product {self.product_id} ({state})>"
