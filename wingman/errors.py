from __future__ import annotations

from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Machine-readable error kinds that survive to the HTTP boundary."""
    PERMISSION_DENIED = "permission_denied"
    CAMERA_UNAVAILABLE = "camera_unavailable"
    INVALID_CAPTURE = "invalid_capture"
    EXTRACTION_FAILED = "extraction_failed"
    CONTENT_REJECTED = "content_rejected"
    GENERATION_FAILED = "generation_failed"
    MISSING_INPUT = "missing_input"
    PIPELINE_BUSY = "pipeline_busy"
    CONFIGURATION_MISSING = "configuration_missing"


class WingmanError(Exception):
    """Base error carrying an explicit kind and a user-facing message."""

    kind: ErrorKind = ErrorKind.GENERATION_FAILED
    default_message = "An unknown error occurred."

    def __init__(self, message: Optional[str] = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class PermissionDenied(WingmanError):
    kind = ErrorKind.PERMISSION_DENIED
    default_message = "Camera access was denied. Allow camera access or upload a screenshot instead."


class CameraUnavailable(WingmanError):
    kind = ErrorKind.CAMERA_UNAVAILABLE
    default_message = "No camera is available on this device. Upload a screenshot instead."


class InvalidCapture(WingmanError):
    kind = ErrorKind.INVALID_CAPTURE
    default_message = "Could not read that image. Please pick another screenshot."


class ExtractionFailed(WingmanError):
    kind = ErrorKind.EXTRACTION_FAILED
    default_message = "Could not read the text from the screenshot. Please try again or type it manually."


class GenerationFailed(WingmanError):
    kind = ErrorKind.GENERATION_FAILED
    default_message = "Failed to get advice from Wingman. The model might be busy, please try again."


class MissingInput(WingmanError):
    kind = ErrorKind.MISSING_INPUT
    default_message = "Please enter her message or upload a screenshot."


class PipelineBusy(WingmanError):
    kind = ErrorKind.PIPELINE_BUSY
    default_message = "Wingman is still working on the last request."


class ConfigurationMissing(WingmanError):
    kind = ErrorKind.CONFIGURATION_MISSING
    default_message = "GEMINI_API_KEY environment variable not set."


class ContentRejected(WingmanError):
    """Positive moderation verdict; must reach the caller unmodified."""

    kind = ErrorKind.CONTENT_REJECTED

    def __init__(self, reason: Optional[str] = None) -> None:
        self.reason = (reason or "").strip() or None
        if self.reason:
            message = f"This message was flagged as inappropriate ({self.reason}). Wingman can't help with that one."
        else:
            message = "This message was flagged as inappropriate. Wingman can't help with that one."
        super().__init__(message)
