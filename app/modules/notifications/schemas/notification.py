from typing import Literal, Optional
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field

NotificationType = Literal["like", "follow"]

class Notification(BaseModel):
    """Notification model returned to client and written to the cache list"""
    id: str
    # Serialized as "from"/"to", the column names of the notifications table
    from_id: str = Field(serialization_alias="from")
    to_id: str = Field(serialization_alias="to")
    type: NotificationType
    read: bool = False
    created_at: datetime
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
