from __future__ import annotations

from typing import Any, Dict, List, Optional

import google.generativeai as genai

try:  # Prefer typed enums when available
    from google.generativeai import types as genai_types

    DEFAULT_SAFETY_SETTINGS = [
        {
            "category": genai_types.HarmCategory.HARM_CATEGORY_HARASSMENT,
            "threshold": genai_types.HarmBlockThreshold.BLOCK_NONE,
        },
        {
            "category": genai_types.HarmCategory.HARM_CATEGORY_HATE_SPEECH,
            "threshold": genai_types.HarmBlockThreshold.BLOCK_NONE,
        },
        {
            "category": genai_types.HarmCategory.HARM_CATEGORY_SEXUALLY_EXPLICIT,
            "threshold": genai_types.HarmBlockThreshold.BLOCK_NONE,
        },
        {
            "category": genai_types.HarmCategory.HARM_CATEGORY_DANGEROUS_CONTENT,
            "threshold": genai_types.HarmBlockThreshold.BLOCK_NONE,
        },
    ]
except Exception:  # pragma: no cover - fallback for older SDKs
    DEFAULT_SAFETY_SETTINGS = [
        {"category": "HARM_CATEGORY_HARASSMENT", "threshold": "BLOCK_NONE"},
        {"category": "HARM_CATEGORY_HATE_SPEECH", "threshold": "BLOCK_NONE"},
        {"category": "HARM_CATEGORY_SEXUALLY_EXPLICIT", "threshold": "BLOCK_NONE"},
        {"category": "HARM_CATEGORY_DANGEROUS_CONTENT", "threshold": "BLOCK_NONE"},
    ]

from .config import Settings
from .errors import ConfigurationMissing


class GeminiClient:
    """Thin async wrapper around the Gemini SDK with model caching and safety settings.

    Moderation is done by our own SafetyGate, so the SDK's blocking thresholds are
    relaxed; a blocked candidate would otherwise surface as an opaque failure.
    """

    def __init__(self, settings: Settings) -> None:
        """Purpose: Configure the Gemini SDK and initialize the model cache.
        Inputs/Outputs: Input is Settings; no return value.
        Side Effects / State: Configures SDK global API key and caches model instances.
        Dependencies: Uses google.generativeai and Settings from config.
        Failure Modes: Raises ConfigurationMissing if the API key is missing.
        If Removed: No model call can execute and the app fails at startup.
        Testing Notes: Validate missing key raises ConfigurationMissing.
        """
        if not settings.gemini_api_key:
            raise ConfigurationMissing()
        genai.configure(api_key=settings.gemini_api_key)
        self._settings = settings
        self._models: Dict[str, genai.GenerativeModel] = {}
        self._default_model = _normalize_model_name(settings.gemini_model_replies)

    async def generate_content(
        self,
        parts: List[Any],
        model: Optional[str] = None,
        response_schema: Optional[Dict[str, Any]] = None,
        temperature: Optional[float] = None,
        max_output_tokens: int = 2048,
    ) -> str:
        """Purpose: Send one multimodal request and return the response text.
        Inputs/Outputs: Input is a list of parts (text dicts or inline image blobs),
            optional model name, JSON schema and sampling config; returns stripped text.
        Side Effects / State: May add a model to the internal cache; one network call.
        Dependencies: Uses genai.GenerativeModel.generate_content_async.
        Failure Modes: SDK/transport errors propagate; blocked responses raise
            ValueError from the SDK when reading .text.
        If Removed: Extraction, moderation and reply generation cannot call Gemini.
        Testing Notes: Replace with a fake client in unit tests.
        """
        model_name = _normalize_model_name(model) if model else self._default_model
        if not model_name:
            raise ValueError("Gemini model name is required")
        if model_name not in self._models:
            self._models[model_name] = genai.GenerativeModel(model_name)

        generation_config: Dict[str, Any] = {"max_output_tokens": max_output_tokens}
        if temperature is not None:
            generation_config["temperature"] = temperature
        if response_schema is not None:
            generation_config["response_mime_type"] = "application/json"
            generation_config["response_schema"] = response_schema

        response = await self._models[model_name].generate_content_async(
            parts,
            generation_config=generation_config,
            safety_settings=DEFAULT_SAFETY_SETTINGS,
        )
        text: Optional[str] = getattr(response, "text", None)
        return (text or "").strip()


def _normalize_model_name(name: Optional[str]) -> str:
    """Strip the "models/" prefix and whitespace from a model name."""
    if not name:
        return ""
    cleaned = name.strip()
    if cleaned.startswith("models/"):
        return cleaned.split("/", 1)[1]
    return cleaned
