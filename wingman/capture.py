from __future__ import annotations

import logging
from typing import Optional

from .errors import CameraUnavailable, InvalidCapture, PermissionDenied
from .models import ImageBlob
from .utils import split_data_url

logger = logging.getLogger("wingman.capture")

CAPTURE_SOURCES = ("file", "camera")


class CaptureAdapter:
    """Normalize picker uploads and camera snapshots into ImageBlob instances.

    The browser owns the live camera stream; it sends the rasterized frame as a
    data URL and reports camera failures here. The adapter also owns the capture
    source revision, which the frontend watches to clear its file picker.
    """

    def __init__(self) -> None:
        self._revision = 0

    @property
    def revision(self) -> int:
        return self._revision

    def acquire_image(self, source: str, data_url: str, filename: Optional[str] = None) -> ImageBlob:
        """Purpose: Decode a picker file or camera frame into an ImageBlob.
        Inputs/Outputs: Inputs are the source ("file"/"camera"), a base64 data URL and
            an optional filename; output is an ImageBlob.
        Side Effects / State: None.
        Dependencies: Uses utils.split_data_url.
        Failure Modes: Raises InvalidCapture for an unknown source or an undecodable
            payload. File type and size are not validated.
        If Removed: No screenshot can enter the pipeline.
        Testing Notes: Camera frames keep their JPEG mime type and "camera" source.
        """
        if source not in CAPTURE_SOURCES:
            raise InvalidCapture()
        decoded = split_data_url(data_url)
        if decoded is None:
            logger.warning("capture payload could not be decoded source=%s", source)
            raise InvalidCapture()
        mime_type, data = decoded
        logger.info("image acquired source=%s mime=%s bytes=%s", source, mime_type, len(data))
        return ImageBlob(data=data, mime_type=mime_type, source=source, filename=filename)

    def report_camera_failure(self, kind: str) -> None:
        """Raise the tagged error for a camera failure reported by the browser."""
        logger.info("camera failure reported kind=%s", kind)
        if kind == "permission_denied":
            raise PermissionDenied()
        raise CameraUnavailable()

    def reset_source(self) -> int:
        # Bumping the revision tells the frontend to clear its picker value.
        self._revision += 1
        return self._revision
