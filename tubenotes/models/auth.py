from datetime import datetime, timezone
from typing import Optional
from pydantic import BaseModel, Field

class DeviceCodeSession(BaseModel):
    device_code: str
    user_code: str
    verification_url: str
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

class PollResponse(BaseModel):
    status: Optional[str] = None
    token: Optional[str] = None
    error: Optional[str] = None
