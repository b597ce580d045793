"""
Shared schema pieces
"""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from bikeshop_backend.core.utils import ensure_utc


class DateRangeFilter(BaseModel):
    """
    Inclusive created_at range.

    Bounds are normalised to aware UTC, so a bound with an offset and one
    without can be compared.
    """
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def normalise_to_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @model_validator(mode="after")
    def validate_date_range(self):
        if self.date_from and self.date_to and self.date_from > self.date_to:
            raise ValueError("date_from must not be after date_to")
        return self
