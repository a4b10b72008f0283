from enum import Enum
from typing import FrozenSet, Literal, Optional
from pydantic import BaseModel

class StatusKind(str, Enum):
    LOADING = "loading"
    SUCCESS = "success"
    FAILURE = "failure"
    NEUTRAL = "neutral"

class ProgressEvent(BaseModel):
    type: Literal["status", "marker_acquired", "marker_released"]
    text: Optional[str] = None
    kind: Optional[StatusKind] = None
    marker_id: Optional[str] = None

class ProgressState(BaseModel):
    countdown_seconds_remaining: int = 0
    active_loading_markers: FrozenSet[str] = frozenset()
