"""Reply generation: persona prompt assembly and schema-constrained parsing.

The prompt is a list of parts sent in one request:
    1. the Desi Wingman persona/strategy instruction,
    2. the screenshot, when one is attached,
    3. her message quoted verbatim, when text is present,
    4. an "analyze the screenshot" instruction, when only an image is present.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional

from pydantic import ValidationError

from .errors import GenerationFailed
from .gemini_client import GeminiClient
from .models import ApiResponse, ImageBlob
from .prompt_loader import load_named_prompt
from .safety import SafetyGate
from .utils import safe_json_loads

logger = logging.getLogger("wingman.generation")

EXPECTED_OPTION_COUNT = 3

SCREENSHOT_ONLY_INSTRUCTION = "Analyze the screenshot and provide replies to the last message from her."
SPEECHLESS_MESSAGE = "Wingman is speechless... Try rephrasing or a different screenshot."

REPLY_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "options": {
            "type": "ARRAY",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING"},
                    "reply": {"type": "STRING"},
                },
                "required": ["title", "reply"],
            },
        }
    },
    "required": ["options"],
}


def build_reply_parts(system_prompt: str, text: str, image: Optional[ImageBlob]) -> List[Dict[str, object]]:
    """Assemble the ordered request parts for one generation call."""
    parts: List[Dict[str, object]] = [{"text": system_prompt}]
    if image is not None:
        parts.append(image.as_part())
    if text:
        parts.append({"text": f'Her message text: "{text}"'})
    if image is not None and not text:
        parts.append({"text": SCREENSHOT_ONLY_INSTRUCTION})
    return parts


class ReplyGenerationClient:
    """Request three categorized reply suggestions from Gemini."""

    def __init__(
        self,
        gemini: GeminiClient,
        safety: SafetyGate,
        prompts_dir: Path,
        model: str,
        temperature: float = 0.9,
    ) -> None:
        self._gemini = gemini
        self._safety = safety
        self._prompts_dir = prompts_dir
        self._model = model
        self._temperature = temperature

    async def generate_replies(self, text: str, image: Optional[ImageBlob] = None) -> ApiResponse:
        """Purpose: Screen the text, then request and validate reply options.
        Inputs/Outputs: Inputs are her message text (may be empty) and an optional
            screenshot; output is an ApiResponse with at least one option.
        Side Effects / State: One moderation call (non-blank text) and one generation call.
        Dependencies: Uses SafetyGate, GeminiClient, wingman_system.txt and REPLY_SCHEMA.
        Failure Modes: ContentRejected is re-raised unmodified. Transport errors, bad JSON
            and missing/empty options raise GenerationFailed.
        If Removed: The "get help" action has nothing to call.
        Testing Notes: Check the exact parts sent for text-only and image-only inputs.
        """
        await self._safety.check_content(text)

        system_prompt = load_named_prompt(self._prompts_dir, "wingman_system")
        parts = build_reply_parts(system_prompt, text, image)
        try:
            raw = await self._gemini.generate_content(
                parts,
                model=self._model,
                response_schema=REPLY_SCHEMA,
                temperature=self._temperature,
            )
        except Exception as exc:
            logger.exception("reply generation call failed has_image=%s text_len=%s", image is not None, len(text))
            raise GenerationFailed() from exc

        return self._parse(raw)

    def _parse(self, raw: str) -> ApiResponse:
        data = safe_json_loads(raw)
        if data is None:
            logger.error("reply generation returned non-JSON raw_len=%s", len(raw))
            raise GenerationFailed()
        if not data.get("options"):
            logger.warning("reply generation returned no options")
            raise GenerationFailed(SPEECHLESS_MESSAGE)
        try:
            response = ApiResponse.model_validate(data)
        except ValidationError as exc:
            logger.error("reply generation returned invalid options: %s", exc)
            raise GenerationFailed() from exc

        if len(response.options) != EXPECTED_OPTION_COUNT:
            logger.warning(
                "reply generation returned %s options, expected %s",
                len(response.options),
                EXPECTED_OPTION_COUNT,
            )
        logger.info("reply generation succeeded options=%s", len(response.options))
        return response
