from __future__ import annotations

import logging
from pathlib import Path

from pydantic import ValidationError

from .errors import ContentRejected
from .gemini_client import GeminiClient
from .models import SafetyVerdict
from .prompt_loader import load_named_prompt
from .utils import safe_json_loads

logger = logging.getLogger("wingman.safety")

VERDICT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "inappropriate": {"type": "BOOLEAN"},
        "reason": {"type": "STRING"},
    },
    "required": ["inappropriate"],
}


class SafetyGate:
    """Fail-open moderation check backed by a schema-constrained model call."""

    def __init__(
        self,
        gemini: GeminiClient,
        prompts_dir: Path,
        model: str,
        temperature: float = 0.0,
    ) -> None:
        self._gemini = gemini
        self._prompts_dir = prompts_dir
        self._model = model
        self._temperature = temperature

    async def check_content(self, text: str) -> None:
        """Purpose: Reject text the moderation model flags as inappropriate.
        Inputs/Outputs: Input is free text; returns None when the text may pass.
        Side Effects / State: One model call for non-blank text.
        Dependencies: Uses GeminiClient, moderation.txt and SafetyVerdict.
        Failure Modes: Raises ContentRejected on a positive verdict. Transport errors
            and malformed verdicts are logged and the text passes (fail-open).
        If Removed: Extracted and typed messages reach reply generation unscreened.
        Testing Notes: Blank text must never reach the model.
        """
        if not text or not text.strip():
            return

        prompt = load_named_prompt(self._prompts_dir, "moderation")
        try:
            raw = await self._gemini.generate_content(
                [{"text": f"{prompt}\n{text}"}],
                model=self._model,
                response_schema=VERDICT_SCHEMA,
                temperature=self._temperature,
            )
        except Exception:
            logger.warning("moderation call failed, passing content through", exc_info=True)
            return

        data = safe_json_loads(raw)
        if data is None:
            logger.warning("moderation verdict unparsable, passing content through raw_len=%s", len(raw))
            return
        try:
            verdict = SafetyVerdict.model_validate(data)
        except ValidationError:
            logger.warning("moderation verdict invalid, passing content through keys=%s", sorted(data))
            return

        if verdict.inappropriate:
            logger.info("moderation rejected content reason=%s", verdict.reason)
            raise ContentRejected(verdict.reason)
        logger.debug("moderation passed text_len=%s", len(text))
