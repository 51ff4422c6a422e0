from __future__ import annotations

from functools import lru_cache
from pathlib import Path


def load_prompt(prompt_path: Path) -> str:
    """Purpose: Load a prompt file as UTF-8 text, stripping BOM and trailing whitespace.
    Inputs/Outputs: Input is a Path to the prompt file; output is the decoded string.
    Side Effects / State: None; reads the filesystem.
    Dependencies: Uses Path.read_text/read_bytes; used by the model clients.
    Failure Modes: Missing files raise FileNotFoundError; UnicodeDecodeError triggers a
        tolerant decode that can drop invalid bytes.
    If Removed: Extraction, moderation and generation have no instructions to send.
    Testing Notes: Validate BOM-stripping on a temp file.
    """
    try:
        text = prompt_path.read_text(encoding="utf-8")
    except UnicodeDecodeError:
        text = prompt_path.read_bytes().decode("utf-8", errors="ignore")
    return text.lstrip("\ufeff").rstrip()


@lru_cache(maxsize=None)
def load_named_prompt(prompts_dir: Path, name: str) -> str:
    """Load `<prompts_dir>/<name>.txt` once per process."""
    return load_prompt(prompts_dir / f"{name}.txt")
