from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

BASE_DIR = Path(__file__).resolve().parent

DEFAULT_MODEL = "gemini-2.5-flash"


@dataclass(frozen=True)
class Settings:
    """Configuration container for models, prompts, and UI feedback timing."""
    gemini_api_key: str
    gemini_model_extraction: str
    gemini_model_moderation: str
    gemini_model_replies: str
    generation_temperature: float
    moderation_temperature: float
    copy_feedback_seconds: float
    prompts_dir: Path
    frontend_dir: Path


def load_settings() -> Settings:
    """Purpose: Load configuration from environment variables and defaults.
    Inputs/Outputs: No inputs; returns a Settings instance.
    Side Effects / State: Reads environment variables and filesystem paths.
    Dependencies: Uses os.getenv and BASE_DIR for default paths.
    Failure Modes: Invalid numeric env values raise ValueError. A missing API key is
        not rejected here; GeminiClient raises ConfigurationMissing at startup.
    If Removed: App cannot configure models/prompts and fails at startup.
    Testing Notes: Verify defaults and per-step model overrides via environment.
    """
    # Per-step model names fall back to GEMINI_MODEL, then the shared default.
    base_model = os.getenv("GEMINI_MODEL", DEFAULT_MODEL)
    frontend_dir = os.getenv("FRONTEND_DIR")

    return Settings(
        gemini_api_key=os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY", ""),
        gemini_model_extraction=os.getenv("GEMINI_MODEL_EXTRACTION") or base_model,
        gemini_model_moderation=os.getenv("GEMINI_MODEL_MODERATION") or base_model,
        gemini_model_replies=os.getenv("GEMINI_MODEL_REPLIES") or base_model,
        generation_temperature=float(os.getenv("GENERATION_TEMPERATURE", "0.9")),
        moderation_temperature=float(os.getenv("MODERATION_TEMPERATURE", "0.0")),
        copy_feedback_seconds=float(os.getenv("COPY_FEEDBACK_SECONDS", "2.0")),
        prompts_dir=(BASE_DIR / "prompts").resolve(),
        frontend_dir=Path(frontend_dir) if frontend_dir else (BASE_DIR / ".." / "frontend").resolve(),
    )
