from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class ActivityLogEntry(BaseModel):
    id: int
    user_id: int
    activity_type: str
    description: str
    metadata: Optional[Dict[str, Any]] = Field(None, validation_alias="meta")
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
        populate_by_name = True
