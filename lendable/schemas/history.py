from datetime import datetime
from typing import Any, Dict, Optional
from pydantic import BaseModel


class HistoryEntry(BaseModel):

    id: int
    item_id: str
    user_id: Optional[str] = None
    action: str
    details: Optional[Dict[str, Any]] = None
    created_at: datetime

    class Config:
        from_attributes = True
