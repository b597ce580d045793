"""
API dependencies
"""
from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from bikeshop_backend.core.database import get_db
from bikeshop_backend.services.alert_service import AlertService
from bikeshop_backend.services.stock_service import StockService


async def get_alert_service(db: AsyncSession = Depends(get_db)) -> AlertService:
    """Alert service bound to the request session"""
    return AlertService(db)


async def get_stock_service(
    alert_service: AlertService = Depends(get_alert_service),
) -> StockService:
    """Stock service sharing the alert service's session"""
    return StockService(alert_service.db, alert_service=alert_service)
