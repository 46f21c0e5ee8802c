"""
Pydantic schemas for member profile data.
"""
from datetime import datetime
from typing import Optional
from pydantic import BaseModel, ConfigDict


class OfficershipEntry(BaseModel):
    """One officer position a member holds or has held."""
    officerid: int
    officer_name: str
    from_date: datetime
    till_date: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    def is_current(self, now: datetime) -> bool:
        return self.from_date <= now and (self.till_date is None or self.till_date > now)
