from datetime import datetime
from typing import Optional
from pydantic import BaseModel, Field


class BlacklistEntry(BaseModel):

    id: str
    user_id: str
    org_id: int
    instance_id: Optional[int] = None
    reason: str
    blocked_until: datetime
    is_active: bool
    overridden_by: Optional[str] = None
    overridden_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class BlacklistRequest(BaseModel):
    user_id: str
    reason: str
    days: int = Field(..., ge=1)


class BlacklistStatus(BaseModel):
    user_id: str
    blacklisted: bool
    entry: Optional[BlacklistEntry] = None
