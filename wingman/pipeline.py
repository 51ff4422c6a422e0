"""Wingman pipeline orchestration.

Role:
    Sequences capture -> extract -> moderate -> generate and owns the only mutable
    state of the app: input text, attached image, reply results, the error slot and
    the per-option copy flags. Observers subscribe for snapshots instead of reading
    shared globals.

State machine:
    IDLE -> EXTRACTING_TEXT -> IDLE   on capture (success or failure)
    IDLE -> GENERATING -> IDLE        on get_help
    clear() returns to IDLE from any status.

Run tokens:
    Every capture/get_help/clear starts a new run id. In-flight model calls are not
    aborted; when they return under a stale run id their result or error is dropped.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from .capture import CaptureAdapter
from .errors import MissingInput, PipelineBusy, WingmanError
from .extraction import ContentExtractionClient
from .generation import ReplyGenerationClient
from .models import ApiResponse, ErrorInfo, ImageBlob, PipelineSnapshot, PipelineStatus

logger = logging.getLogger("wingman.pipeline")

Listener = Callable[[PipelineSnapshot], None]


@dataclass
class PipelineState:
    """Mutable state owned by WingmanPipeline."""
    status: PipelineStatus = PipelineStatus.IDLE
    text: str = ""
    image: Optional[ImageBlob] = None
    results: Optional[ApiResponse] = None
    error: Optional[WingmanError] = None
    copied_until: Dict[int, float] = field(default_factory=dict)
    run_id: int = 0


class WingmanPipeline:
    def __init__(
        self,
        capture: CaptureAdapter,
        extractor: ContentExtractionClient,
        generator: ReplyGenerationClient,
        copy_feedback_seconds: float = 2.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Purpose: Wire the capture adapter and model clients into one state machine.
        Inputs/Outputs: Inputs are the components, the copy-feedback window and a clock.
        Side Effects / State: Creates an empty PipelineState.
        Dependencies: CaptureAdapter, ContentExtractionClient, ReplyGenerationClient.
        Failure Modes: None at init.
        If Removed: Routes have nothing to drive and no state to render.
        Testing Notes: Inject fake clients and a fake clock.
        """
        self._capture = capture
        self._extractor = extractor
        self._generator = generator
        self._copy_feedback_seconds = copy_feedback_seconds
        self._clock = clock
        self._state = PipelineState()
        self._listeners: List[Listener] = []

    @property
    def status(self) -> PipelineStatus:
        return self._state.status

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a snapshot listener; returns the matching unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def snapshot(self) -> PipelineSnapshot:
        state = self._state
        now = self._clock()
        error = None
        if state.error is not None:
            error = ErrorInfo(kind=state.error.kind, message=state.error.message)
        return PipelineSnapshot(
            status=state.status,
            text=state.text,
            image_preview=state.image.preview_url if state.image else None,
            results=state.results,
            error=error,
            copied={index: now < until for index, until in state.copied_until.items()},
            capture_revision=self._capture.revision,
        )

    async def capture(self, source: str, data_url: str, filename: Optional[str] = None) -> PipelineSnapshot:
        """Purpose: Attach a new screenshot and prefill the text from it.
        Inputs/Outputs: Inputs are the capture source, data URL and filename; returns
            the snapshot after extraction finished.
        Side Effects / State: Resets text/results/error/copy flags, attaches the image,
            runs extraction, then sets the text. On failure clears the image and resets
            the capture source.
        Dependencies: CaptureAdapter.acquire_image and ContentExtractionClient.extract_text.
        Failure Modes: WingmanError lands in the error slot; ContentRejected keeps its kind.
        If Removed: Screenshots never reach the extraction step.
        Testing Notes: A rejected extraction must leave no image attached.
        """
        run_id = self._start_run()
        self._reset_derived()
        try:
            image = self._capture.acquire_image(source, data_url, filename)
        except WingmanError as exc:
            # The superseded run is stale now and will not reset the status itself.
            self._state.status = PipelineStatus.IDLE
            self._state.image = None
            self._state.error = exc
            self._capture.reset_source()
            self._notify()
            return self.snapshot()

        self._state.image = image
        self._state.status = PipelineStatus.EXTRACTING_TEXT
        self._notify()
        logger.info("run=%s step=extraction status=start source=%s", run_id, source)

        try:
            text = await self._extractor.extract_text(image)
        except WingmanError as exc:
            if self._is_current(run_id):
                logger.info("run=%s step=extraction status=failed kind=%s", run_id, exc.kind.value)
                self._state.image = None
                self._state.error = exc
                self._capture.reset_source()
        else:
            if self._is_current(run_id):
                logger.info("run=%s step=extraction status=success text_len=%s", run_id, len(text))
                self._state.text = text
        finally:
            self._finish(run_id, "extraction")
        return self.snapshot()

    async def get_help(self) -> PipelineSnapshot:
        """Purpose: Generate reply options for the current text and/or screenshot.
        Inputs/Outputs: No inputs; returns the snapshot after generation finished.
        Side Effects / State: Clears error/results/copy flags, sets results on success.
        Dependencies: ReplyGenerationClient.generate_replies.
        Failure Modes: Missing input or a busy pipeline set the error slot without a
            model call; generation errors land in the error slot.
        If Removed: Users cannot ask for replies.
        Testing Notes: Whitespace-only text without an image is missing input.
        """
        if self._state.status is not PipelineStatus.IDLE:
            self._state.error = PipelineBusy()
            self._notify()
            return self.snapshot()

        text = self._state.text.strip()
        image = self._state.image
        if not text and image is None:
            self._state.error = MissingInput()
            self._notify()
            return self.snapshot()

        run_id = self._start_run()
        self._state.status = PipelineStatus.GENERATING
        self._state.error = None
        self._state.results = None
        self._state.copied_until = {}
        self._notify()
        logger.info("run=%s step=generation status=start has_image=%s text_len=%s", run_id, image is not None, len(text))

        try:
            results = await self._generator.generate_replies(text, image)
        except WingmanError as exc:
            if self._is_current(run_id):
                logger.info("run=%s step=generation status=failed kind=%s", run_id, exc.kind.value)
                self._state.error = exc
        else:
            if self._is_current(run_id):
                self._state.results = results
        finally:
            self._finish(run_id, "generation")
        return self.snapshot()

    def set_text(self, text: str) -> PipelineSnapshot:
        self._state.text = text or ""
        self._notify()
        return self.snapshot()

    def clear(self) -> PipelineSnapshot:
        """Reset all derived state regardless of status and invalidate the running request."""
        run_id = self._start_run()
        self._state.status = PipelineStatus.IDLE
        self._state.image = None
        self._reset_derived()
        self._capture.reset_source()
        logger.info("run=%s step=clear", run_id)
        self._notify()
        return self.snapshot()

    def mark_copied(self, index: int) -> PipelineSnapshot:
        """Flag one reply option as copied for the feedback window.

        Raises IndexError when no option exists at ``index``.
        """
        results = self._state.results
        if results is None or not 0 <= index < len(results.options):
            raise IndexError(index)
        self._state.copied_until[index] = self._clock() + self._copy_feedback_seconds
        self._notify()
        return self.snapshot()

    def report_camera_failure(self, kind: str) -> PipelineSnapshot:
        self._state.error = None
        try:
            self._capture.report_camera_failure(kind)
        except WingmanError as exc:
            self._state.error = exc
        self._notify()
        return self.snapshot()

    def _start_run(self) -> int:
        self._state.run_id += 1
        return self._state.run_id

    def _is_current(self, run_id: int) -> bool:
        return run_id == self._state.run_id

    def _reset_derived(self) -> None:
        self._state.text = ""
        self._state.results = None
        self._state.error = None
        self._state.copied_until = {}

    def _finish(self, run_id: int, step: str) -> None:
        if not self._is_current(run_id):
            logger.info("run=%s step=%s status=stale current=%s", run_id, step, self._state.run_id)
            return
        self._state.status = PipelineStatus.IDLE
        if isinstance(self._state.error, PipelineBusy):
            self._state.error = None
        self._notify()

    def _notify(self) -> None:
        if not self._listeners:
            return
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)
