"""
Product and Category models
"""
from sqlalchemy import (
    Column, Integer, String, Boolean, DateTime, Text, Numeric,
    ForeignKey, CheckConstraint
)
from sqlalchemy.orm import relationship

from bikeshop_backend.core.database import Base
from bikeshop_backend.core.utils import utcnow


class Category(Base):
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String(100), unique=True, nullable=False)
    description = Column(Text)

    products = relationship("Product", back_populates="category")

    def __repr__(self):
        return f"<Category {self.id}: {self.name}>"


class Product(Base):
    __tablename__ = "products"

    id = Column(Integer, primary_key=True, index=True)
    sku = Column(String(64), unique=True, index=True, nullable=False)
    name = Column(String(255), nullable=False, index=True)
    description = Column(Text)

    # Categorization
    category_id = Column(
        Integer,
        ForeignKey("categories.id", ondelete="SET NULL"),
        nullable=True,
        index=True
    )

    # Pricing
    cost_price = Column(Numeric(12, 2), nullable=False, default=0)
    sale_price = Column(Numeric(12, 2), nullable=False, default=0)

    # Inventory
    stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=True)  # NULL/0 -> DEFAULT_MIN_STOCK
    max_stock = Column(Integer, nullable=True)

    is_active = Column(Boolean, nullable=False, default=True)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=utcnow, onupdate=utcnow)

    # Relationships
    category = relationship("Category", back_populates="products")
    alerts = relationship("Alert", back_populates="product", passive_deletes=True)
    stock_movements = relationship("StockMovement", back_populates="product", passive_deletes=True)

    __table_args__ = (
        CheckConstraint("stock >= 0", name="chk_product_stock_non_negative"),
        CheckConstraint("min_stock IS NULL OR min_stock >= 0", name="chk_product_min_stock"),
    )

    def __repr__(self):
        return f"<Product {self.id}: {self.sku} stock={self.stock}>"
