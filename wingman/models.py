from __future__ import annotations

import base64
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from .errors import ErrorKind


@dataclass(frozen=True)
class ImageBlob:
    """In-memory image acquired from the file picker or a camera snapshot."""
    data: bytes
    mime_type: str
    source: str = "file"
    filename: Optional[str] = None

    @property
    def preview_url(self) -> str:
        encoded = base64.b64encode(self.data).decode("ascii")
        return f"data:{self.mime_type};base64,{encoded}"

    def as_part(self) -> Dict[str, object]:
        """Inline blob part accepted by the Gemini SDK."""
        return {"mime_type": self.mime_type, "data": self.data}


class PipelineStatus(str, Enum):
    IDLE = "idle"
    EXTRACTING_TEXT = "extracting_text"
    GENERATING = "generating"


class ReplyOption(BaseModel):
    """One categorized reply suggestion."""
    title: str
    reply: str


class ApiResponse(BaseModel):
    """Schema-constrained generation result."""
    options: List[ReplyOption] = Field(min_length=1)


class SafetyVerdict(BaseModel):
    """Moderation verdict returned by the model."""
    inappropriate: bool
    reason: Optional[str] = None


class CaptureRequest(BaseModel):
    """Image payload posted by the browser as a base64 data URL."""
    source: Literal["file", "camera"] = "file"
    data_url: str
    filename: Optional[str] = None


class CameraFailureRequest(BaseModel):
    """Camera failure reported by the browser."""
    kind: Literal["permission_denied", "camera_unavailable"]


class TextRequest(BaseModel):
    text: str = ""


class ErrorInfo(BaseModel):
    kind: ErrorKind
    message: str


class PipelineSnapshot(BaseModel):
    """Serializable view of the orchestrator state for the frontend."""
    status: PipelineStatus
    text: str
    image_preview: Optional[str] = None
    results: Optional[ApiResponse] = None
    error: Optional[ErrorInfo] = None
    copied: Dict[int, bool] = Field(default_factory=dict)
    capture_revision: int = 0
