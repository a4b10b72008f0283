from typing import Any, Dict, Optional
from pydantic import BaseModel, ConfigDict
from tubenotes.core.errors import ErrorKind

PROCESSING_ERROR_TITLE = "Processing Error"

class TranscriptRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    video_url: str
    language: str
    include_title: bool
    token: str
    request_id: str
    timestamp: int  # epoch milliseconds

    def to_payload(self, source: str, user_agent: str, plugin_version: str) -> Dict[str, Any]:
        return {
            "video_url": self.video_url,
            "source": source,
            "timestamp": self.timestamp,
            "language": self.language,
            "include_title": self.include_title,
            "token": self.token,
            "user_agent": user_agent,
            "plugin_version": plugin_version,
            "request_id": self.request_id,
            "credits_check": True,
        }

class TranscriptResult(BaseModel):
    title: str
    content: str
    # Set only on the sentinel variant
    error: Optional[ErrorKind] = None

    @property
    def is_error(self) -> bool:
        return self.title == PROCESSING_ERROR_TITLE

class UserAccountInfo(BaseModel):
    credits_remaining: Optional[float] = None
    plan_type: Optional[str] = None
    request_cost: Optional[float] = None
