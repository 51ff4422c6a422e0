from __future__ import annotations

import logging
from pathlib import Path

from .errors import ExtractionFailed
from .gemini_client import GeminiClient
from .models import ImageBlob
from .prompt_loader import load_named_prompt
from .safety import SafetyGate

logger = logging.getLogger("wingman.extraction")


class ContentExtractionClient:
    """Transcribe the other person's latest message from a chat screenshot."""

    def __init__(self, gemini: GeminiClient, safety: SafetyGate, prompts_dir: Path, model: str) -> None:
        self._gemini = gemini
        self._safety = safety
        self._prompts_dir = prompts_dir
        self._model = model

    async def extract_text(self, image: ImageBlob) -> str:
        """Purpose: Return the screened transcription of the counterpart's last message.
        Inputs/Outputs: Input is an ImageBlob; output is the stripped transcription,
            possibly empty when the model finds no text.
        Side Effects / State: One extraction call, then one moderation call for non-blank text.
        Dependencies: Uses GeminiClient, extract_text.txt and SafetyGate.
        Failure Modes: Any model/transport failure raises ExtractionFailed with the cause
            chained. ContentRejected from the SafetyGate propagates unmodified.
        If Removed: Screenshots cannot prefill the message box.
        Testing Notes: A rejected verdict must surface as ContentRejected, not ExtractionFailed.
        """
        prompt = load_named_prompt(self._prompts_dir, "extract_text")
        try:
            text = await self._gemini.generate_content(
                [image.as_part(), {"text": prompt}],
                model=self._model,
            )
        except Exception as exc:
            logger.exception("text extraction failed mime=%s bytes=%s", image.mime_type, len(image.data))
            raise ExtractionFailed() from exc

        text = text.strip()
        logger.info("text extracted source=%s text_len=%s", image.source, len(text))
        await self._safety.check_content(text)
        return text
